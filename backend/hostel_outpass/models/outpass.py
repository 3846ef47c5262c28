"""Outpass model and its lifecycle enumerations."""
from datetime import datetime, time
from enum import Enum
from zoneinfo import ZoneInfo
from hostel_outpass import db
from hostel_outpass.exceptions import ValidationError
from hostel_outpass.models.base import BaseModel, serialize_value

class OutpassType(Enum):
    """Reason categories a student can request."""
    MARKET = 'Market'
    HOME = 'Home'
    MEDICAL = 'Medical'
    ACADEMIC = 'Academic'

    @classmethod
    def parse(cls, value) -> 'OutpassType':
        if isinstance(value, cls):
            return value
        for member in cls:
            if str(value).strip().lower() == member.value.lower():
                return member
        allowed = ', '.join(m.value for m in cls)
        raise ValidationError(f"Invalid outpass type: {value}. Use one of {allowed}")

class OutpassStatus(Enum):
    """Outpass lifecycle states."""
    PENDING = 'Pending'
    APPROVED = 'Approved'
    REJECTED = 'Rejected'
    EXITED = 'Exited'
    RETURNED = 'Returned'
    LATE = 'Late'
    CANCELLED = 'Cancelled'

    @classmethod
    def parse(cls, value) -> 'OutpassStatus':
        if isinstance(value, cls):
            return value
        for member in cls:
            if str(value).strip().lower() == member.value.lower():
                return member
        raise ValidationError(f"Invalid outpass status: {value}")

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

TERMINAL_STATUSES = frozenset({
    OutpassStatus.RETURNED,
    OutpassStatus.REJECTED,
    OutpassStatus.CANCELLED
})

# Statuses a gate officer can act on
GATE_ACTIONABLE_STATUSES = frozenset({
    OutpassStatus.APPROVED,
    OutpassStatus.EXITED,
    OutpassStatus.LATE
})

def outpass_code(roll_no: str) -> str:
    return f"OP-{roll_no}"

class Outpass(BaseModel):
    """A time-boxed permission to leave campus."""
    
    __tablename__ = 'outpasses'
    
    # OP-<rollNo>; repeats once an earlier outpass reaches a terminal state
    code = db.Column(db.String(64), nullable=False, index=True)
    
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    roll_no = db.Column(db.String(30), nullable=False, index=True)
    hostel = db.Column(db.String(120), nullable=True, index=True)
    
    # Request
    type = db.Column(db.Enum(OutpassType), nullable=False)
    purpose = db.Column(db.String(255), nullable=False)
    place = db.Column(db.String(255), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    expected_return_time = db.Column(db.String(5), nullable=False)  # HH:MM
    
    # Lifecycle
    status = db.Column(db.Enum(OutpassStatus), nullable=False, default=OutpassStatus.PENDING, index=True)
    approved_by = db.Column(db.String(20), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    reject_reason = db.Column(db.Text, nullable=True)
    exit_time = db.Column(db.DateTime, nullable=True)
    exit_gate = db.Column(db.String(60), nullable=True)
    actual_return_at = db.Column(db.DateTime, nullable=True)
    return_gate = db.Column(db.String(60), nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    barcode_token = db.Column(db.String(64), nullable=True, index=True)
    notification_sent = db.Column(db.Boolean, nullable=False, default=False)
    
    # Student details as they were when the request was made
    student_snapshot = db.Column(db.JSON, nullable=False, default=dict)
    
    student = db.relationship('Student', backref=db.backref('outpasses', lazy='dynamic'))
    
    @property
    def is_active(self) -> bool:
        return not self.status.is_terminal
    
    @property
    def student_name(self) -> str:
        return (self.student_snapshot or {}).get('name') or 'Unknown Student'
    
    @property
    def parent_contact(self) -> str:
        return (self.student_snapshot or {}).get('parent_contact')
    
    @property
    def student_contact(self) -> str:
        return (self.student_snapshot or {}).get('contact')
    
    def expected_return_at(self, tz_name: str) -> datetime:
        """Aware datetime of the promised return in the campus timezone."""
        try:
            hours, minutes = (int(part) for part in self.expected_return_time.split(':'))
            local = datetime.combine(self.date, time(hours, minutes), tzinfo=ZoneInfo(tz_name))
        except (AttributeError, TypeError, ValueError) as e:
            raise ValidationError(
                f"Outpass {self.code} has an unreadable return time: {self.expected_return_time}"
            ) from e
        return local
    
    def to_dict(self, exclude: list = None) -> dict:
        exclude = set(exclude or [])
        result = {
            'id': self.code,
            'record_id': self.id,
            'student_id': self.student_id,
            'type': serialize_value(self.type),
            'purpose': self.purpose,
            'place': self.place,
            'date': serialize_value(self.date),
            'expected_return_time': self.expected_return_time,
            'status': serialize_value(self.status),
            'created_at': serialize_value(self.created_at),
            'approved_by': self.approved_by,
            'approved_at': serialize_value(self.approved_at),
            'reject_reason': self.reject_reason,
            'exit_time': serialize_value(self.exit_time),
            'exit_gate': self.exit_gate,
            'actual_return_at': serialize_value(self.actual_return_at),
            'return_gate': self.return_gate,
            'cancelled_at': serialize_value(self.cancelled_at),
            'barcode_token': self.barcode_token,
            'notification_sent': self.notification_sent,
            'student': dict(self.student_snapshot or {})
        }
        return {key: value for key, value in result.items() if key not in exclude}
    
    def __repr__(self) -> str:
        return f'<Outpass {self.code} {self.status.value}>'
