"""User model for authentication and authorization."""
from enum import Enum
from werkzeug.security import generate_password_hash, check_password_hash
from hostel_outpass import db
from hostel_outpass.models.base import BaseModel

class UserRole(Enum):
    """User roles enumeration."""
    STUDENT = 'student'
    HOSTEL_ADMIN = 'hostel_admin'
    SUPER_ADMIN = 'super_admin'
    SECURITY = 'security'

ADMIN_ROLES = (UserRole.HOSTEL_ADMIN, UserRole.SUPER_ADMIN)

class User(BaseModel):
    """User model for students, hostel staff and gate security."""
    
    __tablename__ = 'users'
    
    # Basic Information
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    username = db.Column(db.String(80), unique=True, nullable=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    
    # Role and scope
    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.STUDENT)
    staff_id = db.Column(db.String(20), unique=True, nullable=True, index=True)  # AD-001, SEC-001
    hostel = db.Column(db.String(120), nullable=True)  # hostel admins
    gate = db.Column(db.String(60), nullable=True)  # security
    
    # Status
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)
    
    def set_password(self, password: str) -> None:
        """Set user password with hashing."""
        self.password_hash = generate_password_hash(password)
    
    def check_password(self, password: str) -> bool:
        """Check if provided password matches user's password."""
        return check_password_hash(self.password_hash, password)
    
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
    
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT
    
    def can_manage_hostel(self, hostel: str) -> bool:
        """Super admins see every hostel, hostel admins only their own."""
        if self.role == UserRole.SUPER_ADMIN:
            return True
        if self.role == UserRole.HOSTEL_ADMIN:
            return self.hostel == hostel
        return False
    
    def token_claims(self) -> dict:
        """Extra claims embedded in issued JWTs."""
        return {
            'role': self.role.value,
            'staff_id': self.staff_id,
            'hostel': self.hostel,
            'gate': self.gate
        }
    
    def to_dict(self, exclude: list = None) -> dict:
        """Convert to dictionary excluding sensitive data."""
        exclude = (exclude or []) + ['password_hash']
        return super().to_dict(exclude=exclude)
    
    def __repr__(self) -> str:
        return f'<User {self.email}>'
