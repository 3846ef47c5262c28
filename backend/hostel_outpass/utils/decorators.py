"""Custom decorators for authorization."""
from functools import wraps
from flask import g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from hostel_outpass import db
from hostel_outpass.models.user import User, UserRole
from hostel_outpass.utils.helpers import error_response

def current_user() -> User:
    """User loaded by the role decorators for this request."""
    return g.get('current_user')

def roles_required(*roles: UserRole):
    """Require a valid JWT whose active user holds one of ``roles``."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()
            user = db.session.get(User, int(get_jwt_identity()))
            
            if not user:
                return error_response("User not found", 404)
            
            if not user.is_active:
                return error_response("Account is deactivated", 403)
            
            if roles and user.role not in roles:
                return error_response("You do not have access to this resource", 403)
            
            g.current_user = user
            return f(*args, **kwargs)
        return decorated_function
    return decorator

def admin_required(f):
    """Decorator to require a hostel or super admin."""
    return roles_required(UserRole.HOSTEL_ADMIN, UserRole.SUPER_ADMIN)(f)

def super_admin_required(f):
    return roles_required(UserRole.SUPER_ADMIN)(f)

def student_required(f):
    """Decorator to require student role."""
    return roles_required(UserRole.STUDENT)(f)

def security_required(f):
    """Decorator to require gate security."""
    return roles_required(UserRole.SECURITY)(f)

def login_required(f):
    """Any authenticated, active user."""
    return roles_required()(f)
