"""Database seeding service for demo data."""
import logging
from datetime import date, datetime
from hostel_outpass import db
from hostel_outpass.models.user import User, UserRole
from hostel_outpass.models.student import Student
from hostel_outpass.models.outpass import Outpass, OutpassStatus, OutpassType, outpass_code
from hostel_outpass.services.student_service import normalize_phone
from hostel_outpass.utils.helpers import utcnow

logger = logging.getLogger(__name__)

DEMO_PASSWORD = 'password'

STAFF = [
    {'staff_id': 'AD-001', 'username': 'admin', 'name': 'Admin User',
     'role': UserRole.HOSTEL_ADMIN, 'hostel': 'A Block'},
    {'staff_id': 'AD-002', 'username': 'bblock', 'name': 'B Block Admin',
     'role': UserRole.HOSTEL_ADMIN, 'hostel': 'B Block'},
    {'staff_id': 'AD-000', 'username': 'warden', 'name': 'Chief Warden',
     'role': UserRole.SUPER_ADMIN, 'hostel': None},
    {'staff_id': 'SEC-001', 'username': 'security', 'name': 'Security Officer',
     'role': UserRole.SECURITY, 'gate': 'Main Gate'},
]

STUDENTS = [
    ('John Doe', 'CS12345', 'A-101', 'A Block', '9876543210', '9876543211'),
    ('Alice Johnson', 'CS12346', 'A-102', 'A Block', '+91 9876543212', '+91 9876543213'),
    ('Bob Smith', 'CS12347', 'A-103', 'A Block', '+91 9876543214', '+91 9876543215'),
    ('Charlie Davis', 'CS12348', 'B-101', 'B Block', '+91 9876543216', '+91 9876543217'),
    ('Diana Evans', 'CS12349', 'B-102', 'B Block', '+91 9876543218', '+91 9876543219'),
]

OUTPASSES = [
    {'roll_no': 'CS12345', 'type': OutpassType.MARKET, 'purpose': 'Shopping', 'place': 'City Market',
     'date': date(2023, 4, 10), 'expected_return_time': '18:00', 'status': OutpassStatus.APPROVED,
     'approved_by': 'AD-001', 'approved_at': datetime(2023, 4, 9, 14, 20),
     'barcode_token': 'OP-CS12345-1681047600000', 'notification_sent': False},
    {'roll_no': 'CS12346', 'type': OutpassType.HOME, 'purpose': 'Family function', 'place': 'Hometown',
     'date': date(2023, 4, 15), 'expected_return_time': '20:00', 'status': OutpassStatus.PENDING},
    {'roll_no': 'CS12347', 'type': OutpassType.MARKET, 'purpose': 'Groceries', 'place': 'Local Market',
     'date': date(2023, 4, 5), 'expected_return_time': '19:30', 'status': OutpassStatus.REJECTED,
     'approved_by': 'AD-001', 'approved_at': datetime(2023, 4, 4, 10, 0),
     'reject_reason': 'Past curfew time', 'notification_sent': True},
    {'roll_no': 'CS12348', 'type': OutpassType.MARKET, 'purpose': 'Stationary', 'place': 'Book Store',
     'date': date(2023, 4, 2), 'expected_return_time': '17:00', 'status': OutpassStatus.RETURNED,
     'approved_by': 'AD-002', 'approved_at': datetime(2023, 4, 1, 15, 30),
     'exit_time': datetime(2023, 4, 2, 14, 0), 'exit_gate': 'Main Gate',
     'actual_return_at': datetime(2023, 4, 2, 16, 45), 'return_gate': 'Main Gate',
     'notification_sent': True},
    {'roll_no': 'CS12349', 'type': OutpassType.HOME, 'purpose': 'Wedding', 'place': 'Home Town',
     'date': date(2023, 4, 20), 'expected_return_time': '21:00', 'status': OutpassStatus.PENDING},
]

class SeedService:
    """Service to seed the database with demo hostels, staff and outpasses."""

    @staticmethod
    def seed_all() -> dict:
        """Seed everything; rows that already exist are left alone."""
        summary = {
            'staff': SeedService.seed_staff(),
            'students': SeedService.seed_students(),
            'outpasses': SeedService.seed_outpasses()
        }
        logger.info("Seeded demo data: %s", summary)
        return summary

    @staticmethod
    def seed_staff() -> int:
        created = 0
        for entry in STAFF:
            if User.query.filter_by(staff_id=entry['staff_id']).first():
                continue
            user = User(
                username=entry['username'],
                email=f"{entry['username']}@hostel.example.edu",
                name=entry['name'],
                role=entry['role'],
                staff_id=entry['staff_id'],
                hostel=entry.get('hostel'),
                gate=entry.get('gate')
            )
            user.set_password(DEMO_PASSWORD)
            db.session.add(user)
            created += 1

        db.session.commit()
        return created

    @staticmethod
    def seed_students() -> int:
        created = 0
        for name, roll_no, room_no, hostel, contact, parent_contact in STUDENTS:
            if Student.query.filter_by(roll_no=roll_no).first():
                continue
            user = User(email=f"{roll_no.lower()}@student.example.edu", name=name, role=UserRole.STUDENT)
            user.set_password(DEMO_PASSWORD)
            db.session.add(user)
            db.session.flush()

            db.session.add(Student(
                user_id=user.id,
                roll_no=roll_no,
                room_no=room_no,
                hostel=hostel,
                contact=normalize_phone(contact, 'contact'),
                parent_contact=normalize_phone(parent_contact, 'parent_contact'),
                profile_completed=True,
                profile_completed_at=utcnow()
            ))
            created += 1

        db.session.commit()
        return created

    @staticmethod
    def seed_outpasses() -> int:
        """Demo outpasses inserted as-is, outside the transition engine."""
        created = 0
        for entry in OUTPASSES:
            values = dict(entry)
            roll_no = values.pop('roll_no')
            student = Student.query.filter_by(roll_no=roll_no).first()
            if not student or Outpass.query.filter_by(roll_no=roll_no).first():
                continue

            db.session.add(Outpass(
                code=outpass_code(roll_no),
                student_id=student.id,
                roll_no=roll_no,
                hostel=student.hostel,
                student_snapshot=student.snapshot(),
                **values
            ))
            created += 1

        db.session.commit()
        return created
