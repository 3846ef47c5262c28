"""Student profile attached to a student user account."""
from hostel_outpass import db
from hostel_outpass.models.base import BaseModel

class Student(BaseModel):
    """Hostel resident profile."""
    
    __tablename__ = 'students'
    
    # Link to User
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True)
    
    # Residence
    roll_no = db.Column(db.String(30), unique=True, nullable=True, index=True)  # CS12345
    room_no = db.Column(db.String(20), nullable=True)
    hostel = db.Column(db.String(120), nullable=True, index=True)
    
    # Contact
    contact = db.Column(db.String(20), nullable=True)
    parent_contact = db.Column(db.String(20), nullable=True)
    
    # Profile completion
    profile_completed = db.Column(db.Boolean, default=False, nullable=False)
    profile_completed_at = db.Column(db.DateTime, nullable=True)
    
    # Relationships
    user = db.relationship('User', backref=db.backref('student_profile', uselist=False))
    
    @property
    def name(self) -> str:
        return self.user.name if self.user else None
    
    @property
    def email(self) -> str:
        return self.user.email if self.user else None
    
    def snapshot(self) -> dict:
        """Copy embedded into an outpass at request time."""
        return {
            'name': self.name,
            'roll_no': self.roll_no,
            'room_no': self.room_no,
            'hostel': self.hostel,
            'contact': self.contact,
            'parent_contact': self.parent_contact
        }
    
    def to_dict(self, exclude: list = None) -> dict:
        result = super().to_dict(exclude=exclude)
        result['name'] = self.name
        result['email'] = self.email
        return result
