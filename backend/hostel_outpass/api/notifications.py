"""Notifications feed API."""
from flask import Blueprint, request
from hostel_outpass.exceptions import ValidationError
from hostel_outpass.models.notification import RecipientType
from hostel_outpass.models.user import UserRole
from hostel_outpass.services import get_notification_repository
from hostel_outpass.services.student_service import StudentService
from hostel_outpass.utils.decorators import current_user, roles_required
from hostel_outpass.utils.helpers import success_response

notifications_bp = Blueprint('notifications', __name__)

def parse_recipient_type(value: str) -> RecipientType:
    try:
        return RecipientType(value.strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid recipient type: {value}")

@notifications_bp.route('/', methods=['GET'])
@roles_required(UserRole.STUDENT, UserRole.HOSTEL_ADMIN, UserRole.SUPER_ADMIN)
def get_notifications():
    """Notification feed, newest first.

    Query parameters: ``recipient_id``, ``type``, ``types`` (comma
    separated), ``outpass_id`` and ``limit``. Students always get their
    own student notifications and hostel admins only their hostel's.
    """
    user = current_user()
    recipient_id = request.args.get('recipient_id')
    recipient_type = request.args.get('type')
    types = request.args.get('types')

    filters = {
        'recipient_id': recipient_id,
        'recipient_type': parse_recipient_type(recipient_type) if recipient_type else None,
        'recipient_types': [parse_recipient_type(t) for t in types.split(',') if t.strip()] if types else None,
        'outpass_id': request.args.get('outpass_id'),
        'limit': request.args.get('limit', type=int)
    }

    if user.role == UserRole.STUDENT:
        filters['recipient_id'] = StudentService.get_profile(user).roll_no
        filters['recipient_type'] = RecipientType.STUDENT
        filters['recipient_types'] = None
    elif user.role == UserRole.HOSTEL_ADMIN:
        filters['hostel'] = user.hostel

    notifications = get_notification_repository().list_by_filter(**filters)
    return success_response(data={
        'notifications': [notification.to_dict() for notification in notifications],
        'total': len(notifications)
    })
