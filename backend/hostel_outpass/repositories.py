"""Storage access for the outpass workflow.

Services receive these repositories instead of querying models directly,
so the workflow can be exercised against any session (tests use an
in-memory SQLite database).
"""
from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy import func, or_

from hostel_outpass import db
from hostel_outpass.models import (
    Feedback, GateAction, GateLog, Notification, NotificationCategory,
    Outpass, OutpassStatus, RecipientType, Student, TERMINAL_STATUSES, User,
    UserRole, outpass_code
)


class BaseRepository:
    """Shared persistence helpers."""

    model = None

    def get(self, record_id: int):
        return db.session.get(self.model, record_id)

    def save(self, entity):
        return entity.save()

    def add_all(self, entities: Iterable) -> list:
        entities = list(entities)
        db.session.add_all(entities)
        db.session.commit()
        return entities

    def refresh(self, entity):
        db.session.refresh(entity)
        return entity


class OutpassRepository(BaseRepository):
    model = Outpass

    def find_by_id(self, outpass_id: str) -> Optional[Outpass]:
        """Most recent outpass carrying ``outpass_id``."""
        return (Outpass.query
                .filter(Outpass.code == outpass_id)
                .order_by(Outpass.created_at.desc(), Outpass.id.desc())
                .first())

    def find_active_for_roll(self, roll_no: str) -> Optional[Outpass]:
        return (Outpass.query
                .filter(or_(Outpass.roll_no == roll_no, Outpass.code == outpass_code(roll_no)))
                .filter(Outpass.status.notin_(list(TERMINAL_STATUSES)))
                .order_by(Outpass.created_at.desc(), Outpass.id.desc())
                .first())

    def find_by_token(self, token: str) -> List[Outpass]:
        return Outpass.query.filter(Outpass.barcode_token == token).all()

    def find_by_roll(self, roll_no: str) -> List[Outpass]:
        return (Outpass.query
                .filter(or_(Outpass.roll_no == roll_no, Outpass.code == outpass_code(roll_no)))
                .all())

    def search(self, text: str) -> List[Outpass]:
        """Case-insensitive substring match over roll number and id.

        ``%`` and ``_`` in ``text`` are matched literally.
        """
        needle = text.strip().lower()
        return (Outpass.query
                .filter(or_(
                    func.lower(Outpass.roll_no).contains(needle, autoescape=True),
                    func.lower(Outpass.code).contains(needle, autoescape=True)
                ))
                .all())

    def list_by_status(self, status: OutpassStatus) -> List[Outpass]:
        return Outpass.query.filter(Outpass.status == status).order_by(Outpass.id).all()

    def list_by_filter(
        self,
        status: OutpassStatus = None,
        hostel: str = None,
        on_date: date = None,
        student_id: int = None,
        roll_no: str = None
    ) -> List[Outpass]:
        query = Outpass.query
        if status:
            query = query.filter(Outpass.status == status)
        if hostel:
            query = query.filter(Outpass.hostel == hostel)
        if on_date:
            query = query.filter(Outpass.date == on_date)
        if student_id:
            query = query.filter(Outpass.student_id == student_id)
        if roll_no:
            query = query.filter(Outpass.roll_no == roll_no)
        return query.order_by(Outpass.created_at.desc(), Outpass.id.desc()).all()


class StudentRepository(BaseRepository):
    model = Student

    def find_by_id(self, student_id: int) -> Optional[Student]:
        return self.get(student_id)

    def find_by_user_id(self, user_id: int) -> Optional[Student]:
        return Student.query.filter_by(user_id=user_id).first()

    def find_by_roll_no(self, roll_no: str) -> Optional[Student]:
        return Student.query.filter_by(roll_no=roll_no).first()

    def list_by_filter(self, hostel: str = None, roll_no: str = None, email: str = None) -> List[Student]:
        query = Student.query.join(User)
        if hostel:
            query = query.filter(Student.hostel == hostel)
        if roll_no:
            query = query.filter(Student.roll_no == roll_no)
        if email:
            query = query.filter(User.email == email.lower())
        return query.order_by(Student.roll_no).all()


class UserRepository(BaseRepository):
    model = User

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.get(user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        return User.query.filter_by(email=email.strip().lower()).first()

    def find_by_username(self, username: str) -> Optional[User]:
        return User.query.filter_by(username=username.strip()).first()

    def find_by_staff_id(self, staff_id: str) -> Optional[User]:
        return User.query.filter_by(staff_id=staff_id).first()

    def find_hostel_admin(self, hostel: str) -> Optional[User]:
        return (User.query
                .filter_by(role=UserRole.HOSTEL_ADMIN, hostel=hostel, is_active=True)
                .order_by(User.id)
                .first())


class NotificationRepository(BaseRepository):
    model = Notification

    def list_by_filter(
        self,
        recipient_id: str = None,
        recipient_type: RecipientType = None,
        recipient_types: List[RecipientType] = None,
        outpass_id: str = None,
        outpass_record_id: int = None,
        hostel: str = None,
        limit: int = None
    ) -> List[Notification]:
        query = Notification.query
        if hostel:
            query = (query.join(Outpass, Notification.outpass_record_id == Outpass.id)
                     .filter(Outpass.hostel == hostel))
        if recipient_id:
            query = query.filter(Notification.recipient_id == recipient_id)
        if recipient_type:
            query = query.filter(Notification.type == recipient_type)
        if recipient_types:
            query = query.filter(Notification.type.in_(recipient_types))
        if outpass_id:
            query = query.filter(Notification.outpass_id == outpass_id)
        if outpass_record_id:
            query = query.filter(Notification.outpass_record_id == outpass_record_id)
        query = query.order_by(Notification.sent_at.desc(), Notification.id.desc())
        if limit and limit > 0:
            query = query.limit(limit)
        return query.all()

    def exists_for(self, outpass_record_id: int, category: NotificationCategory, since: datetime) -> bool:
        return db.session.query(
            Notification.query
            .filter(Notification.outpass_record_id == outpass_record_id)
            .filter(Notification.category == category)
            .filter(Notification.sent_at >= since)
            .exists()
        ).scalar()


class GateLogRepository(BaseRepository):
    model = GateLog

    def add(self, log: GateLog) -> GateLog:
        return self.save(log)

    def list_by_filter(
        self,
        outpass_id: str = None,
        student_id: int = None,
        action: GateAction = None,
        gate: str = None
    ) -> List[GateLog]:
        query = GateLog.query
        if outpass_id:
            query = query.filter(GateLog.outpass_id == outpass_id)
        if student_id:
            query = query.filter(GateLog.student_id == student_id)
        if action:
            query = query.filter(GateLog.action == action)
        if gate:
            query = query.filter(GateLog.gate == gate)
        return query.order_by(GateLog.timestamp.desc(), GateLog.id.desc()).all()


class FeedbackRepository(BaseRepository):
    model = Feedback

    def add(self, feedback: Feedback) -> Feedback:
        return self.save(feedback)

    def list_by_filter(self, outpass_id: str = None, student_id: int = None) -> List[Feedback]:
        query = Feedback.query
        if outpass_id:
            query = query.filter(Feedback.outpass_id == outpass_id)
        if student_id:
            query = query.filter(Feedback.student_id == student_id)
        return query.order_by(Feedback.created_at.desc(), Feedback.id.desc()).all()
