"""Append-only log of physical exits and returns."""
from enum import Enum
from hostel_outpass import db
from hostel_outpass.models.base import BaseModel
from hostel_outpass.utils.helpers import utcnow

class GateAction(Enum):
    EXIT = 'exit'
    RETURN = 'return'

class GateLog(BaseModel):
    """One scan at a gate."""
    
    __tablename__ = 'gate_logs'
    
    outpass_id = db.Column(db.String(64), nullable=False, index=True)
    outpass_record_id = db.Column(db.Integer, db.ForeignKey('outpasses.id'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    action = db.Column(db.Enum(GateAction), nullable=False)
    gate = db.Column(db.String(60), nullable=False, default='Unknown Gate')
    security_id = db.Column(db.String(20), nullable=False, default='Unknown')
    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False)
    
    @property
    def display_id(self) -> str:
        return f"GL-{self.id:03d}" if self.id else None
    
    def to_dict(self, exclude: list = None) -> dict:
        result = super().to_dict(exclude=exclude)
        result['id'] = self.display_id
        result['record_id'] = self.id
        return result
