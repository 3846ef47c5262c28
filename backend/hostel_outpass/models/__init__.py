"""Models package with all models."""
from .base import BaseModel
from .user import User, UserRole, ADMIN_ROLES
from .student import Student
from .outpass import (
    Outpass, OutpassStatus, OutpassType,
    TERMINAL_STATUSES, GATE_ACTIONABLE_STATUSES, outpass_code
)
from .notification import (
    Notification, RecipientType, NotificationChannel, NotificationStatus,
    NotificationPriority, NotificationCategory
)
from .gate_log import GateLog, GateAction
from .feedback import Feedback

__all__ = [
    'BaseModel', 'User', 'UserRole', 'ADMIN_ROLES', 'Student',
    'Outpass', 'OutpassStatus', 'OutpassType',
    'TERMINAL_STATUSES', 'GATE_ACTIONABLE_STATUSES', 'outpass_code',
    'Notification', 'RecipientType', 'NotificationChannel', 'NotificationStatus',
    'NotificationPriority', 'NotificationCategory',
    'GateLog', 'GateAction', 'Feedback'
]
