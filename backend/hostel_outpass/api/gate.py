"""Gate API: scan lookups and exit/return recording."""
from flask import Blueprint, request
from hostel_outpass.exceptions import ValidationError
from hostel_outpass.models.user import UserRole
from hostel_outpass.services import get_gate_service
from hostel_outpass.utils.decorators import current_user, roles_required, security_required
from hostel_outpass.utils.helpers import json_body, success_response

gate_bp = Blueprint('gate', __name__)

def record(action: str):
    data = json_body()
    outpass_id = (data.get('outpass_id') or '').strip()
    if not outpass_id:
        raise ValidationError("Missing required field: outpass_id")

    guard = current_user()
    log = get_gate_service().record_gate_action(
        outpass_id,
        action,
        data.get('gate') or guard.gate,
        guard.staff_id or str(guard.id)
    )
    outpass = get_gate_service().outpass_service.get_outpass(outpass_id)
    return success_response(
        data={'outpass': outpass.to_dict(), 'gate_log': log.to_dict()},
        message=f"Student {outpass.student_name} ({outpass.roll_no}) marked {outpass.status.value}"
    )

@gate_bp.route('/scan', methods=['GET'])
@security_required
def scan():
    """Resolve a scanned barcode or a typed roll number."""
    outpass = get_gate_service().find_outpass_by_token(request.args.get('token', ''))
    return success_response(data=outpass.to_dict())

@gate_bp.route('/exit', methods=['POST'])
@security_required
def record_exit():
    return record('exit')

@gate_bp.route('/return', methods=['POST'])
@security_required
def record_return():
    return record('return')

@gate_bp.route('/logs', methods=['GET'])
@roles_required(UserRole.SECURITY, UserRole.HOSTEL_ADMIN, UserRole.SUPER_ADMIN)
def list_logs():
    logs = get_gate_service().list_gate_logs(
        outpass_id=request.args.get('outpass_id'),
        student_id=request.args.get('student_id', type=int),
        action=request.args.get('action'),
        gate=request.args.get('gate')
    )
    return success_response(data={
        'logs': [log.to_dict() for log in logs],
        'total': len(logs)
    })
