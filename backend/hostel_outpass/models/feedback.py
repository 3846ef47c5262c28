"""Student feedback on a rejected outpass."""
from hostel_outpass import db
from hostel_outpass.models.base import BaseModel

class Feedback(BaseModel):
    
    __tablename__ = 'feedback'
    
    outpass_id = db.Column(db.String(64), nullable=False, index=True)
    outpass_record_id = db.Column(db.Integer, db.ForeignKey('outpasses.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    feedback_text = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='pending')
    
    def to_dict(self, exclude: list = None) -> dict:
        result = super().to_dict(exclude=exclude)
        result['id'] = f"FB-{self.id:03d}" if self.id else None
        result['record_id'] = self.id
        return result
