"""Outpass API: requests, reviews and cancellations."""
from flask import Blueprint, request
from hostel_outpass.exceptions import AuthorizationError, ValidationError
from hostel_outpass.models.user import UserRole
from hostel_outpass.services import get_outpass_service
from hostel_outpass.services.student_service import StudentService
from hostel_outpass.utils.decorators import (
    admin_required, current_user, login_required, student_required
)
from hostel_outpass.utils.helpers import json_body, success_response

outpasses_bp = Blueprint('outpasses', __name__)

STATUS_FIELDS = ('approved_by', 'reject_reason', 'exit_time', 'exit_gate', 'return_time',
                 'actual_return_at', 'return_gate')

def ensure_can_view(user, outpass) -> None:
    if user.role == UserRole.STUDENT:
        student = user.student_profile
        if not student or outpass.student_id != student.id:
            raise AuthorizationError("You can only view your own outpasses")
    elif user.role == UserRole.HOSTEL_ADMIN and not user.can_manage_hostel(outpass.hostel):
        raise AuthorizationError("You can only view outpasses from your own hostel")

@outpasses_bp.route('/', methods=['GET'])
@login_required
def list_outpasses():
    """Students see their own outpasses, hostel admins their hostel's."""
    user = current_user()
    filters = {
        'status': request.args.get('status'),
        'hostel': request.args.get('hostel'),
        'on_date': request.args.get('date'),
        'roll_no': request.args.get('roll_no', '').strip().upper() or None
    }

    if user.role == UserRole.STUDENT:
        filters['student_id'] = StudentService.get_profile(user).id
        filters['roll_no'] = None
    elif user.role == UserRole.HOSTEL_ADMIN:
        filters['hostel'] = user.hostel

    outpasses = get_outpass_service().list_outpasses(**filters)
    return success_response(data={
        'outpasses': [outpass.to_dict() for outpass in outpasses],
        'total': len(outpasses)
    })

@outpasses_bp.route('/<outpass_id>', methods=['GET'])
@login_required
def get_outpass(outpass_id):
    outpass = get_outpass_service().get_outpass(outpass_id)
    ensure_can_view(current_user(), outpass)
    return success_response(data=outpass.to_dict())

@outpasses_bp.route('/', methods=['POST'])
@student_required
def create_outpass():
    """Request a new outpass."""
    student = StudentService.get_profile(current_user())
    outpass = get_outpass_service().create_outpass(student, json_body())
    return success_response(data=outpass.to_dict(), message="Outpass request submitted"), 201

@outpasses_bp.route('/<outpass_id>/status', methods=['PUT'])
@admin_required
def update_status(outpass_id):
    """Generic status update with the fields the target status needs."""
    data = json_body()
    if not data.get('status'):
        raise ValidationError("Missing required field: status")

    service = get_outpass_service()
    outpass = service.get_outpass(outpass_id)
    ensure_can_view(current_user(), outpass)

    fields = {key: data[key] for key in STATUS_FIELDS if key in data}
    if str(data['status']).strip().lower() in ('approved', 'rejected') and 'approved_by' not in fields:
        fields['approved_by'] = current_user().staff_id or str(current_user().id)

    outpass = service.update_outpass_status(outpass_id, data['status'], fields)
    return success_response(data=outpass.to_dict(), message=f"Outpass is {outpass.status.value}")

@outpasses_bp.route('/<outpass_id>/approve', methods=['POST'])
@admin_required
def approve_outpass(outpass_id):
    outpass = get_outpass_service().review(outpass_id, 'Approved', current_user())
    return success_response(data=outpass.to_dict(), message="Outpass approved")

@outpasses_bp.route('/<outpass_id>/reject', methods=['POST'])
@admin_required
def reject_outpass(outpass_id):
    data = request.get_json(silent=True) or {}
    outpass = get_outpass_service().review(
        outpass_id, 'Rejected', current_user(), reject_reason=data.get('reject_reason')
    )
    return success_response(data=outpass.to_dict(), message="Outpass rejected")

@outpasses_bp.route('/<outpass_id>/cancel', methods=['POST'])
@student_required
def cancel_outpass(outpass_id):
    student = StudentService.get_profile(current_user())
    outpass = get_outpass_service().cancel_outpass(outpass_id, student)
    return success_response(data=outpass.to_dict(), message="Outpass cancelled")
