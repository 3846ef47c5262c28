"""Student profile management service."""
import logging
import secrets
from typing import Any, Dict, List, Optional
import pandas as pd
from hostel_outpass import db
from hostel_outpass.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, OutpassError, ValidationError
)
from hostel_outpass.models.user import User, UserRole
from hostel_outpass.models.student import Student
from hostel_outpass.repositories import StudentRepository
from hostel_outpass.services.messages import format_indian_phone_number
from hostel_outpass.utils.helpers import utcnow
from hostel_outpass.utils.validators import (
    require_fields, validate_email, validate_password, validate_phone_number, validate_roll_no
)

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('roll_no', 'room_no', 'hostel', 'contact', 'parent_contact')
LOCKED_FIELDS = ('roll_no', 'hostel')
IMPORT_COLUMNS = ('name', 'email', 'roll_no', 'room_no', 'hostel', 'contact', 'parent_contact')

students = StudentRepository()

def normalize_phone(value: str, field: str) -> str:
    """Validate and store as +91XXXXXXXXXX."""
    return format_indian_phone_number(validate_phone_number(value, field))

class StudentService:
    """Service for managing student profiles."""

    @staticmethod
    def get_profile(user: User) -> Student:
        student = students.find_by_user_id(user.id)
        if not student:
            raise NotFoundError("Student profile not found")
        return student

    @staticmethod
    def complete_profile(user: User, data: Dict[str, Any]) -> Student:
        """First-time profile completion; required before requesting an outpass."""
        require_fields(data, PROFILE_FIELDS)
        student = StudentService.get_profile(user)

        if student.profile_completed:
            return StudentService.update_profile(user, data)

        roll_no = validate_roll_no(data['roll_no'])
        existing = students.find_by_roll_no(roll_no)
        if existing and existing.id != student.id:
            raise ConflictError(f"Roll number {roll_no} is already registered")

        student.roll_no = roll_no
        student.room_no = str(data['room_no']).strip()
        student.hostel = str(data['hostel']).strip()
        student.contact = normalize_phone(data['contact'], 'contact')
        student.parent_contact = normalize_phone(data['parent_contact'], 'parent_contact')
        student.profile_completed = True
        student.profile_completed_at = utcnow()
        students.save(student)

        logger.info("Profile completed for %s (%s)", roll_no, student.hostel)
        return student

    @staticmethod
    def update_profile(user: User, data: Dict[str, Any]) -> Student:
        """Edit room and contacts. Roll number and hostel stay as first completed.

        Outpasses keep the snapshot taken at request time.
        """
        student = StudentService.get_profile(user)
        if not student.profile_completed:
            return StudentService.complete_profile(user, data)

        for field in LOCKED_FIELDS:
            if field in data and data[field] is not None:
                value = str(data[field]).strip()
                current = getattr(student, field)
                if field == 'roll_no':
                    value = value.upper()
                if value != current:
                    raise ValidationError(f"{field} cannot be changed once the profile is complete")

        if data.get('room_no'):
            student.room_no = str(data['room_no']).strip()
        if data.get('contact'):
            student.contact = normalize_phone(data['contact'], 'contact')
        if data.get('parent_contact'):
            student.parent_contact = normalize_phone(data['parent_contact'], 'parent_contact')

        return students.save(student)

    @staticmethod
    def list_students(admin: User, hostel: str = None, roll_no: str = None, email: str = None) -> List[Student]:
        """Hostel admins only ever see their own hostel."""
        if admin.role == UserRole.HOSTEL_ADMIN:
            if hostel and hostel != admin.hostel:
                raise AuthorizationError("You can only view students of your own hostel")
            hostel = admin.hostel
        return students.list_by_filter(
            hostel=hostel,
            roll_no=roll_no.strip().upper() if roll_no else None,
            email=email
        )

    @staticmethod
    def create_student(
        name: str,
        email: str,
        roll_no: str,
        room_no: str,
        hostel: str,
        contact: str,
        parent_contact: str,
        password: Optional[str] = None
    ) -> Dict[str, Any]:
        """Account plus completed profile in one step."""
        email = validate_email(email)
        roll_no = validate_roll_no(roll_no)
        contact = normalize_phone(contact, 'contact')
        parent_contact = normalize_phone(parent_contact, 'parent_contact')
        password = password or secrets.token_urlsafe(8)
        validate_password(password)

        if User.query.filter_by(email=email).first():
            raise ConflictError(f"Email {email} already exists")
        if students.find_by_roll_no(roll_no):
            raise ConflictError(f"Roll number {roll_no} is already registered")

        user = User(email=email, name=str(name).strip(), role=UserRole.STUDENT)
        user.set_password(password)
        db.session.add(user)
        db.session.flush()

        student = Student(
            user_id=user.id,
            roll_no=roll_no,
            room_no=str(room_no).strip(),
            hostel=str(hostel).strip(),
            contact=contact,
            parent_contact=parent_contact,
            profile_completed=True,
            profile_completed_at=utcnow()
        )
        db.session.add(student)
        db.session.commit()

        return {
            'student': student.to_dict(),
            'credentials': {'email': email, 'password': password}
        }

    @staticmethod
    def read_import_file(file_storage) -> pd.DataFrame:
        """Load an uploaded CSV or Excel sheet."""
        filename = (file_storage.filename or '').lower()
        if filename.endswith('.csv'):
            df = pd.read_csv(file_storage.stream, dtype=str)
        elif filename.endswith(('.xlsx', '.xls')):
            df = pd.read_excel(file_storage.stream, dtype=str)
        else:
            raise ValidationError("Upload a .csv or .xlsx file")

        df.columns = [str(column).strip().lower() for column in df.columns]
        missing = [column for column in IMPORT_COLUMNS if column not in df.columns]
        if missing:
            raise ValidationError(f"Missing columns: {', '.join(missing)}")
        return df.fillna('')

    @staticmethod
    def create_students_bulk(df: pd.DataFrame) -> List[Dict]:
        """Create one student per row and report each row's outcome."""
        results = []

        for index, row in df.iterrows():
            excel_row = index + 2
            try:
                result = StudentService.create_student(
                    name=row['name'],
                    email=row['email'],
                    roll_no=row['roll_no'],
                    room_no=row['room_no'],
                    hostel=row['hostel'],
                    contact=row['contact'],
                    parent_contact=row['parent_contact'],
                    password=row.get('password') or None
                )
                results.append({
                    'row': excel_row,
                    'name': row['name'],
                    'success': True,
                    'roll_no': result['student']['roll_no'],
                    'password': result['credentials']['password']
                })
            except OutpassError as e:
                results.append({
                    'row': excel_row,
                    'name': row.get('name') or 'Unknown',
                    'success': False,
                    'error': e.message
                })

        created = sum(1 for result in results if result['success'])
        logger.info("Bulk import: %d of %d rows created", created, len(results))
        return results
