"""Authentication API for students, hostel admins and gate security."""
from flask import Blueprint
from flask_jwt_extended import jwt_required, get_jwt_identity
from hostel_outpass import limiter
from hostel_outpass.models.user import UserRole
from hostel_outpass.services.auth_service import AuthService
from hostel_outpass.utils.decorators import current_user, login_required
from hostel_outpass.utils.helpers import json_body, success_response

auth_bp = Blueprint("auth", __name__)

@auth_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint."""
    return success_response(message="Auth service is running")

@auth_bp.route("/student/register", methods=["POST"])
@limiter.limit("10 per hour")
def student_register():
    """Student self sign-up; the profile is completed afterwards."""
    data = json_body()
    result = AuthService.register_student(
        data.get("email"), data.get("password"), data.get("name")
    )
    return success_response(data=result, message="Registration successful"), 201

@auth_bp.route("/student/login", methods=["POST"])
@limiter.limit("5 per minute")
def student_login():
    data = json_body()
    result = AuthService.login_student(data.get("email"), data.get("password"))
    return success_response(data=result, message="Login successful")

@auth_bp.route("/admin/login", methods=["POST"])
@limiter.limit("5 per minute")
def admin_login():
    data = json_body()
    result = AuthService.login_admin(data.get("username"), data.get("password"))
    return success_response(data=result, message="Login successful")

@auth_bp.route("/gate/login", methods=["POST"])
@limiter.limit("5 per minute")
def gate_login():
    """Security login for a specific gate."""
    data = json_body()
    result = AuthService.login_gate(data.get("username"), data.get("password"), data.get("gate"))
    return success_response(data=result, message="Login successful")

@auth_bp.route("/me", methods=["GET"])
@login_required
def get_current_user():
    """Get current user profile."""
    user = current_user()
    response_data = user.to_dict()

    if user.role == UserRole.STUDENT and user.student_profile:
        response_data['student_profile'] = user.student_profile.to_dict()

    return success_response(data=response_data)

@auth_bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh_token():
    """Refresh access token."""
    result = AuthService.refresh(get_jwt_identity())
    return success_response(data=result, message="Token refreshed")
