"""Audit record of one notification dispatch attempt."""
from enum import Enum
from hostel_outpass import db
from hostel_outpass.models.base import BaseModel, serialize_value
from hostel_outpass.utils.helpers import utcnow

class RecipientType(Enum):
    PARENT = 'parent'
    ADMIN = 'admin'
    STUDENT = 'student'

class NotificationChannel(Enum):
    SMS = 'sms'
    EMAIL = 'email'
    APP = 'app'
    SYSTEM = 'system'

class NotificationStatus(Enum):
    SENT = 'sent'
    FAILED = 'failed'

class NotificationPriority(Enum):
    NORMAL = 'normal'
    HIGH = 'high'

class NotificationCategory(Enum):
    STATUS_CHANGE = 'status_change'
    NEW_REQUEST = 'new_request'
    REMINDER = 'reminder'
    FEEDBACK = 'feedback'

class Notification(BaseModel):
    """Written once per recipient when a dispatch completes; never updated."""
    
    __tablename__ = 'notifications'
    
    type = db.Column(db.Enum(RecipientType), nullable=False, index=True)
    recipient_id = db.Column(db.String(40), nullable=False, index=True)
    outpass_id = db.Column(db.String(64), nullable=False, index=True)
    outpass_record_id = db.Column(db.Integer, db.ForeignKey('outpasses.id'), nullable=True, index=True)
    
    channel = db.Column(db.Enum(NotificationChannel), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    subject = db.Column(db.String(255), nullable=True)
    message = db.Column(db.Text, nullable=False)
    priority = db.Column(db.Enum(NotificationPriority), nullable=False, default=NotificationPriority.NORMAL)
    category = db.Column(db.Enum(NotificationCategory), nullable=False, default=NotificationCategory.STATUS_CHANGE)
    outpass_status = db.Column(db.String(20), nullable=True)
    
    status = db.Column(db.Enum(NotificationStatus), nullable=False)
    provider_message_id = db.Column(db.String(120), nullable=True)
    error = db.Column(db.Text, nullable=True)
    sent_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    
    @property
    def display_id(self) -> str:
        return f"NOT-{self.id:03d}" if self.id else None
    
    def to_dict(self, exclude: list = None) -> dict:
        result = super().to_dict(exclude=exclude)
        result['id'] = self.display_id
        result['record_id'] = self.id
        return result
    
    def __repr__(self) -> str:
        return f'<Notification {self.display_id} {serialize_value(self.channel)}>'
