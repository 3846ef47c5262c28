"""Feedback API for rejected outpasses."""
from flask import Blueprint, request
from hostel_outpass.models.user import UserRole
from hostel_outpass.services import get_feedback_service
from hostel_outpass.services.student_service import StudentService
from hostel_outpass.utils.decorators import current_user, login_required, student_required
from hostel_outpass.utils.helpers import json_body, success_response

feedback_bp = Blueprint('feedback', __name__)

@feedback_bp.route('/', methods=['POST'])
@student_required
def submit_feedback():
    data = json_body()
    student = StudentService.get_profile(current_user())
    feedback = get_feedback_service().submit_feedback(
        (data.get('outpass_id') or '').strip(), student, data.get('feedback_text')
    )
    return success_response(data=feedback.to_dict(), message="Feedback submitted successfully"), 201

@feedback_bp.route('/', methods=['GET'])
@login_required
def list_feedback():
    """Students see their own feedback; staff can filter by outpass or student."""
    user = current_user()
    student_id = request.args.get('student_id', type=int)
    if user.role == UserRole.STUDENT:
        student_id = StudentService.get_profile(user).id

    entries = get_feedback_service().list_feedback(
        outpass_id=request.args.get('outpass_id'),
        student_id=student_id
    )
    return success_response(data={
        'feedback': [entry.to_dict() for entry in entries],
        'total': len(entries)
    })
