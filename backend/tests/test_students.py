"""Student listing, seeding and the remaining CLI commands."""
import pytest

from hostel_outpass.exceptions import AuthorizationError, ConflictError
from hostel_outpass.models import Outpass, OutpassStatus, Student, User, UserRole
from hostel_outpass.services.seed_service import SeedService
from hostel_outpass.services.student_service import StudentService


def test_hostel_admin_lists_own_hostel(app, make_student, admin):
    make_student()
    make_student(roll_no='CS22222', name='Other', hostel='B Block')

    students = StudentService.list_students(admin)

    assert [s.roll_no for s in students] == ['CS12345']
    with pytest.raises(AuthorizationError):
        StudentService.list_students(admin, hostel='B Block')


def test_super_admin_filters_by_email(app, make_student, make_staff):
    make_student()
    make_student(roll_no='CS22222', name='Other', hostel='B Block')
    warden = make_staff('warden', UserRole.SUPER_ADMIN, 'AD-000')

    students = StudentService.list_students(warden, email='CS22222@student.example.edu')

    assert [s.roll_no for s in students] == ['CS22222']


def test_roll_number_must_be_unique(app, make_student):
    make_student()
    newcomer = make_student(roll_no='CS55555', completed=False)

    with pytest.raises(ConflictError):
        StudentService.complete_profile(newcomer.user, {
            'roll_no': 'cs12345', 'room_no': 'A-2', 'hostel': 'A Block',
            'contact': '9876543210', 'parent_contact': '9876543211'
        })


def test_seed_is_repeatable(app):
    first = SeedService.seed_all()
    second = SeedService.seed_all()

    assert first == {'staff': 4, 'students': 5, 'outpasses': 5}
    assert second == {'staff': 0, 'students': 0, 'outpasses': 0}
    assert Student.query.filter_by(roll_no='CS12346').first().contact == '+919876543212'
    assert Outpass.query.filter_by(code='OP-CS12347').first().status == OutpassStatus.REJECTED
    assert User.query.filter_by(staff_id='SEC-001').first().gate == 'Main Gate'


def test_seed_and_reminder_commands(app, services):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['seed-db'])
    assert 'Database seeded' in result.output

    result = runner.invoke(args=['send-daily-reminders'])
    assert 'Sent 0 daily reminders' in result.output
