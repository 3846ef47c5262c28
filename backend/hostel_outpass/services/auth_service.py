"""Authentication service for students, hostel staff and gate security."""
import logging
from flask_jwt_extended import create_access_token, create_refresh_token
from hostel_outpass import db
from hostel_outpass.exceptions import (
    AuthenticationError, AuthorizationError, ConflictError, ValidationError
)
from hostel_outpass.models.user import User, UserRole, ADMIN_ROLES
from hostel_outpass.models.student import Student
from hostel_outpass.utils.helpers import utcnow
from hostel_outpass.utils.validators import validate_email, validate_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"

class AuthService:

    @staticmethod
    def issue_tokens(user: User) -> dict:
        """Access and refresh tokens carrying the user's role claims."""
        claims = user.token_claims()
        return {
            "access_token": create_access_token(identity=str(user.id), additional_claims=claims),
            "refresh_token": create_refresh_token(identity=str(user.id), additional_claims=claims),
            "user": user.to_dict()
        }

    @staticmethod
    def register_student(email: str, password: str, name: str) -> dict:
        """Create a student account with an empty profile."""
        email = validate_email(email)
        validate_password(password)

        name = (name or '').strip()
        if len(name) < 2:
            raise ValidationError("Name must be at least 2 characters long")

        if User.query.filter_by(email=email).first():
            raise ConflictError("Email already exists")

        user = User(email=email, name=name, role=UserRole.STUDENT)
        user.set_password(password)
        db.session.add(user)
        db.session.flush()

        student = Student(user_id=user.id, profile_completed=False)
        db.session.add(student)
        db.session.commit()

        logger.info("Registered student account %s", email)
        result = AuthService.issue_tokens(user)
        result["student"] = student.to_dict()
        return result

    @staticmethod
    def _authenticate(user: User, password: str) -> User:
        if not user or not password or not user.check_password(password):
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not user.is_active:
            raise AuthorizationError("Account is deactivated")

        user.last_login = utcnow()
        user.save()
        return user

    @staticmethod
    def login_student(email: str, password: str) -> dict:
        user = User.query.filter_by(email=(email or '').strip().lower()).first()
        user = AuthService._authenticate(user, password)

        if user.role != UserRole.STUDENT:
            raise AuthenticationError(INVALID_CREDENTIALS)

        result = AuthService.issue_tokens(user)
        result["student"] = user.student_profile.to_dict() if user.student_profile else None
        return result

    @staticmethod
    def login_admin(username: str, password: str) -> dict:
        user = User.query.filter_by(username=(username or '').strip()).first()
        user = AuthService._authenticate(user, password)

        if user.role not in ADMIN_ROLES:
            raise AuthenticationError(INVALID_CREDENTIALS)

        logger.info("Admin %s logged in", user.staff_id or user.username)
        return AuthService.issue_tokens(user)

    @staticmethod
    def login_gate(username: str, password: str, gate: str) -> dict:
        """Security login; the guard must be posted at ``gate``."""
        gate = (gate or '').strip()
        if not gate:
            raise ValidationError("Gate is required")

        user = User.query.filter_by(username=(username or '').strip()).first()
        user = AuthService._authenticate(user, password)

        if user.role != UserRole.SECURITY:
            raise AuthenticationError(INVALID_CREDENTIALS)

        if user.gate and user.gate.lower() != gate.lower():
            raise AuthorizationError(f"You are not assigned to {gate}")

        logger.info("Security %s logged in at %s", user.staff_id or user.username, gate)
        return AuthService.issue_tokens(user)

    @staticmethod
    def create_staff(
        username: str,
        email: str,
        name: str,
        password: str,
        role: str,
        staff_id: str = None,
        hostel: str = None,
        gate: str = None
    ) -> User:
        """Create an admin or security account."""
        try:
            user_role = UserRole(role)
        except ValueError:
            raise ValidationError(f"Invalid role: {role}")

        if user_role == UserRole.STUDENT:
            raise ValidationError("Use student registration for student accounts")
        if user_role == UserRole.HOSTEL_ADMIN and not hostel:
            raise ValidationError("Hostel admins need a hostel")

        email = validate_email(email)
        validate_password(password)

        if User.query.filter_by(email=email).first():
            raise ConflictError("Email already exists")
        if User.query.filter_by(username=username).first():
            raise ConflictError("Username already exists")
        if staff_id and User.query.filter_by(staff_id=staff_id).first():
            raise ConflictError(f"Staff ID {staff_id} already exists")

        user = User(
            username=username,
            email=email,
            name=name,
            role=user_role,
            staff_id=staff_id,
            hostel=hostel,
            gate=gate
        )
        user.set_password(password)
        return user.save()

    @staticmethod
    def refresh(user_id) -> dict:
        """New access token for an active user."""
        user = db.session.get(User, int(user_id))
        if not user or not user.is_active:
            raise AuthenticationError("User not found or inactive")

        return {
            "access_token": create_access_token(
                identity=str(user.id), additional_claims=user.token_claims()
            ),
            "user": user.to_dict()
        }
