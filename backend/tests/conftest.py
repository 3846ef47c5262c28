"""Shared fixtures: app, client, fake dispatchers, users and outpasses."""
import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from hostel_outpass import create_app, db
from hostel_outpass.exceptions import DispatchError
from hostel_outpass.models import Outpass, OutpassStatus, OutpassType, Student, User, UserRole, outpass_code
from hostel_outpass.services import init_services
from hostel_outpass.services.notification_service import DispatchResult, NotificationDispatcher
from hostel_outpass.services.messages import format_indian_phone_number

# 13:00 IST on the day the test outpasses are dated
NOW = datetime(2024, 5, 10, 7, 30, tzinfo=timezone.utc)
OUTPASS_DATE = date(2024, 5, 10)


class FixedClock:
    """Clock the tests move by hand."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingDispatcher(NotificationDispatcher):
    """Succeeds on every channel and remembers what it was asked to send."""

    def __init__(self):
        self.sent = []

    async def dispatch(self, channel, recipient_address, message, subject=None):
        self.sent.append({
            'channel': getattr(channel, 'value', channel),
            'address': recipient_address,
            'message': message,
            'subject': subject
        })
        return DispatchResult(True, f"test_{len(self.sent)}", getattr(channel, 'value', channel))

    def messages(self, channel: str = None):
        return [entry for entry in self.sent if channel is None or entry['channel'] == channel]


class FailingDispatcher(NotificationDispatcher):
    """Every channel is down."""

    def __init__(self):
        self.attempts = 0

    async def dispatch(self, channel, recipient_address, message, subject=None):
        self.attempts += 1
        raise DispatchError("Provider unavailable", channel=getattr(channel, 'value', channel))


class SlowDispatcher(NotificationDispatcher):
    """Never answers within the notification timeout."""

    async def dispatch(self, channel, recipient_address, message, subject=None):
        await asyncio.sleep(10)
        return DispatchResult(True, 'too_late', getattr(channel, 'value', channel))


@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def services(app, dispatcher, clock):
    """Registry wired to the recording dispatcher and the fixed clock."""
    return init_services(app, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def make_student(app):
    """Create a student user with a completed profile."""
    def _make(roll_no='CS12345', name='John Doe', hostel='A Block', parent_contact='9876543211',
              contact='9876543210', password='password123', completed=True):
        user = User(email=f"{roll_no.lower()}@student.example.edu", name=name, role=UserRole.STUDENT)
        user.set_password(password)
        db.session.add(user)
        db.session.flush()

        student = Student(
            user_id=user.id,
            roll_no=roll_no if completed else None,
            room_no='A-101' if completed else None,
            hostel=hostel if completed else None,
            contact=format_indian_phone_number(contact) if completed and contact else None,
            parent_contact=format_indian_phone_number(parent_contact) if completed and parent_contact else None,
            profile_completed=completed
        )
        db.session.add(student)
        db.session.commit()
        return student
    return _make


@pytest.fixture
def student(make_student):
    return make_student()


@pytest.fixture
def make_staff(app):
    def _make(username, role, staff_id, hostel=None, gate=None, password='password123'):
        user = User(
            username=username,
            email=f"{username}@hostel.example.edu",
            name=username.title(),
            role=role,
            staff_id=staff_id,
            hostel=hostel,
            gate=gate
        )
        user.set_password(password)
        return user.save()
    return _make


@pytest.fixture
def admin(make_staff):
    return make_staff('admin', UserRole.HOSTEL_ADMIN, 'AD-001', hostel='A Block')


@pytest.fixture
def guard(make_staff):
    return make_staff('security', UserRole.SECURITY, 'SEC-001', gate='Gate 1')


@pytest.fixture
def make_outpass(app):
    """Insert an outpass in any status without going through the workflow."""
    def _make(student, status=OutpassStatus.PENDING, on_date=OUTPASS_DATE, expected_return_time='18:00',
              created_at=None, **fields):
        outpass = Outpass(
            code=outpass_code(student.roll_no),
            student_id=student.id,
            roll_no=student.roll_no,
            hostel=student.hostel,
            type=OutpassType.MARKET,
            purpose='Shopping',
            place='City Market',
            date=on_date,
            expected_return_time=expected_return_time,
            status=status,
            notification_sent=True,
            student_snapshot=student.snapshot(),
            **fields
        )
        if created_at:
            outpass.created_at = created_at
        return outpass.save()
    return _make


@pytest.fixture
def outpass_request():
    return {
        'type': 'Market',
        'purpose': 'Shopping',
        'place': 'City Market',
        'date': OUTPASS_DATE.isoformat(),
        'expected_return_time': '18:00'
    }


def login(client, path, **credentials):
    response = client.post(path, json=credentials)
    assert response.status_code == 200, response.get_json()
    return {'Authorization': f"Bearer {response.get_json()['data']['access_token']}"}


@pytest.fixture
def student_headers(client, student):
    return login(client, '/api/auth/student/login', email=student.email, password='password123')


@pytest.fixture
def admin_headers(client, admin):
    return login(client, '/api/auth/admin/login', username='admin', password='password123')


@pytest.fixture
def guard_headers(client, guard):
    return login(client, '/api/auth/gate/login', username='security', password='password123', gate='Gate 1')
