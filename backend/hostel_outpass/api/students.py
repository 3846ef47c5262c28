"""Student profile API."""
from flask import Blueprint, request
from hostel_outpass import limiter
from hostel_outpass.exceptions import ValidationError
from hostel_outpass.services.student_service import StudentService
from hostel_outpass.utils.decorators import (
    admin_required, current_user, student_required, super_admin_required
)
from hostel_outpass.utils.helpers import json_body, success_response

students_bp = Blueprint('students', __name__)

@students_bp.route('/', methods=['GET'])
@admin_required
def get_students():
    """List students, optionally filtered by hostel, roll number or email."""
    students = StudentService.list_students(
        current_user(),
        hostel=request.args.get('hostel'),
        roll_no=request.args.get('roll_no'),
        email=request.args.get('email')
    )
    return success_response(data={
        'students': [student.to_dict() for student in students],
        'total': len(students)
    })

@students_bp.route('/me', methods=['GET'])
@student_required
def get_my_profile():
    student = StudentService.get_profile(current_user())
    return success_response(data=student.to_dict())

@students_bp.route('/me/profile', methods=['PUT'])
@student_required
def update_my_profile():
    """Complete the profile the first time, edit room and contacts afterwards."""
    student = StudentService.get_profile(current_user())
    data = json_body()

    if student.profile_completed:
        student = StudentService.update_profile(current_user(), data)
        message = "Profile updated successfully"
    else:
        student = StudentService.complete_profile(current_user(), data)
        message = "Profile completed successfully"

    return success_response(data=student.to_dict(), message=message)

@students_bp.route('/bulk', methods=['POST'])
@super_admin_required
@limiter.limit("5 per hour")
def create_students_bulk():
    """Create multiple students from CSV/Excel file."""
    if 'file' not in request.files:
        raise ValidationError("No file provided")

    df = StudentService.read_import_file(request.files['file'])
    results = StudentService.create_students_bulk(df)
    created = sum(1 for result in results if result['success'])

    return success_response(
        data={
            'total': len(results),
            'created': created,
            'failed': len(results) - created,
            'results': results
        },
        message=f"Imported {created} of {len(results)} students"
    ), 201
