"""Outpass lifecycle: creation, status transitions and notification fan-out.

State machine::

    Pending  -> Approved | Rejected | Cancelled
    Approved -> Exited | Cancelled
    Exited   -> Returned | Late
    Late     -> Returned

``Rejected``, ``Cancelled`` and ``Returned`` are terminal. Requesting the
status an outpass already has is a no-op and never re-sends notifications.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from hostel_outpass.exceptions import (
    AuthorizationError, ConflictError, InvalidStateError, NotFoundError, ValidationError
)
from hostel_outpass.models import (
    NotificationCategory, NotificationChannel, NotificationPriority, Outpass,
    OutpassStatus, OutpassType, RecipientType, Student, User, outpass_code
)
from hostel_outpass.repositories import OutpassRepository, UserRepository
from hostel_outpass.services.messages import (
    format_admin_subject, format_indian_phone_number, format_new_request_message,
    format_new_request_subject, format_status_change_message, format_student_message
)
from hostel_outpass.services.notification_service import NotificationPlan, NotificationService
from hostel_outpass.utils.helpers import as_naive_utc
from hostel_outpass.utils.validators import (
    parse_date, parse_hhmm, parse_timestamp, require_fields
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    OutpassStatus.PENDING: frozenset({
        OutpassStatus.APPROVED, OutpassStatus.REJECTED, OutpassStatus.CANCELLED
    }),
    OutpassStatus.APPROVED: frozenset({OutpassStatus.EXITED, OutpassStatus.CANCELLED}),
    OutpassStatus.EXITED: frozenset({OutpassStatus.RETURNED, OutpassStatus.LATE}),
    OutpassStatus.LATE: frozenset({OutpassStatus.RETURNED}),
}

REQUIRED_FIELDS = {
    OutpassStatus.REJECTED: ('reject_reason',),
    OutpassStatus.EXITED: ('exit_time', 'exit_gate'),
    OutpassStatus.RETURNED: ('actual_return_at', 'return_gate'),
}

TRANSITION_FIELDS = frozenset({
    'approved_by', 'reject_reason', 'exit_time', 'exit_gate', 'actual_return_at', 'return_gate'
})
TIMESTAMP_FIELDS = frozenset({'exit_time', 'actual_return_at'})
FIELD_ALIASES = {'return_time': 'actual_return_at'}

ACTIVE_OUTPASS_MESSAGE = ("Student already has an active outpass. Please cancel or complete "
                          "the existing outpass before creating a new one.")


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


class KeyedLock:
    """One lock per key, dropped once no caller holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, holders and waiters]
        self._locks: Dict[str, list] = {}

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if not entry[1]:
                    del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class OutpassService:
    """Transition engine for outpasses."""

    def __init__(
        self,
        outpasses: OutpassRepository,
        users: UserRepository,
        notifications: NotificationService,
        clock: Callable[[], datetime] = system_clock,
        timezone_name: str = 'Asia/Kolkata',
        default_admin_id: str = 'AD-001',
        admin_fallback_email: Optional[str] = None
    ):
        self.outpasses = outpasses
        self.users = users
        self.notifications = notifications
        self.clock = clock
        self.timezone_name = timezone_name
        self.default_admin_id = default_admin_id
        self.admin_fallback_email = admin_fallback_email
        self._locks = KeyedLock()

    # ------------------------------------------------------------------ queries

    def get_outpass(self, outpass_id: str) -> Outpass:
        outpass = self.outpasses.find_by_id(outpass_id)
        if not outpass:
            raise NotFoundError(f"Outpass {outpass_id} not found")
        return outpass

    def list_outpasses(self, **filters) -> List[Outpass]:
        if filters.get('status'):
            filters['status'] = OutpassStatus.parse(filters['status'])
        if filters.get('on_date'):
            filters['on_date'] = parse_date(filters['on_date'])
        return self.outpasses.list_by_filter(**filters)

    # ----------------------------------------------------------------- creation

    def create_outpass(self, student: Student, request: Dict[str, Any]) -> Outpass:
        """Open a Pending outpass; at most one active outpass per student."""
        if not student or not student.profile_completed or not student.roll_no:
            raise ValidationError("Complete your profile before requesting an outpass")

        require_fields(request, ('type', 'purpose', 'place', 'date', 'expected_return_time'))
        outpass_type = OutpassType.parse(request['type'])
        on_date = parse_date(request['date'])
        expected_return_time = parse_hhmm(request['expected_return_time'])

        code = outpass_code(student.roll_no)
        with self._locks.hold(code):
            if self.outpasses.find_active_for_roll(student.roll_no):
                raise ConflictError(ACTIVE_OUTPASS_MESSAGE)

            outpass = Outpass(
                code=code,
                student_id=student.id,
                roll_no=student.roll_no,
                hostel=student.hostel,
                type=outpass_type,
                purpose=request['purpose'].strip(),
                place=request['place'].strip(),
                date=on_date,
                expected_return_time=expected_return_time,
                status=OutpassStatus.PENDING,
                notification_sent=False,
                student_snapshot=student.snapshot()
            )
            self.outpasses.save(outpass)

        logger.info("Outpass %s created for %s (%s on %s)",
                    code, student.roll_no, outpass_type.value, on_date.isoformat())

        admin_id, admin_email = self.admin_recipient(outpass)
        self.notifications.notify(outpass, [NotificationPlan(
            recipient_type=RecipientType.ADMIN,
            recipient_id=admin_id,
            channel=NotificationChannel.EMAIL,
            address=admin_email,
            subject=format_new_request_subject(outpass.student_name),
            message=format_new_request_message(
                outpass.student_name, outpass.roll_no, outpass_type.value, on_date.isoformat()
            )
        )], NotificationCategory.NEW_REQUEST)

        return outpass

    # -------------------------------------------------------------- transitions

    def update_outpass_status(
        self,
        outpass_id: str,
        target_status: Any,
        fields: Optional[Dict[str, Any]] = None
    ) -> Outpass:
        """Move ``outpass_id`` to ``target_status`` and notify the affected people."""
        target = OutpassStatus.parse(target_status)
        values = self._clean_fields(fields or {})

        with self._locks.hold(outpass_id):
            outpass = self.get_outpass(outpass_id)
            return self._apply_transition(outpass, target, values)

    def transition(
        self,
        outpass: Outpass,
        target_status: Any,
        fields: Optional[Dict[str, Any]] = None,
        expected_from: Optional[frozenset] = None,
        action_label: Optional[str] = None
    ) -> Outpass:
        """Same as ``update_outpass_status`` for an already-loaded record.

        With ``expected_from`` the current status is checked under the lock
        and anything else raises ``InvalidStateError`` instead of a no-op.
        """
        target = OutpassStatus.parse(target_status)
        values = self._clean_fields(fields or {})

        with self._locks.hold(outpass.code):
            if expected_from is not None:
                self.outpasses.refresh(outpass)
                if outpass.status not in expected_from:
                    allowed = ' or '.join(sorted(s.value for s in expected_from))
                    raise InvalidStateError(
                        f"Outpass {outpass.code} is in {outpass.status.value} state. "
                        f"Only {allowed} outpasses can be processed for {action_label or target.value}.",
                        current_status=outpass.status
                    )
            return self._apply_transition(outpass, target, values)

    def review(
        self,
        outpass_id: str,
        target_status: Any,
        admin: User,
        reject_reason: Optional[str] = None
    ) -> Outpass:
        """Approve or reject on behalf of ``admin``."""
        target = OutpassStatus.parse(target_status)
        if target not in (OutpassStatus.APPROVED, OutpassStatus.REJECTED):
            raise ValidationError("Review decisions are Approved or Rejected")

        outpass = self.get_outpass(outpass_id)
        if not admin.can_manage_hostel(outpass.hostel):
            raise AuthorizationError("You can only review outpasses from your own hostel")

        fields = {'approved_by': admin.staff_id or str(admin.id)}
        if target == OutpassStatus.REJECTED:
            fields['reject_reason'] = reject_reason
        return self.update_outpass_status(outpass_id, target, fields)

    def cancel_outpass(self, outpass_id: str, student: Student) -> Outpass:
        """Student withdraws their own outpass."""
        outpass = self.get_outpass(outpass_id)
        if outpass.student_id != student.id:
            raise AuthorizationError("You can only cancel your own outpass")
        return self.update_outpass_status(outpass_id, OutpassStatus.CANCELLED)

    def _apply_transition(self, outpass: Outpass, target: OutpassStatus, values: Dict[str, Any]) -> Outpass:
        self.outpasses.refresh(outpass)
        previous = outpass.status

        if target == previous:
            logger.debug("Outpass %s already %s; nothing to do", outpass.code, target.value)
            return outpass

        if target not in ALLOWED_TRANSITIONS.get(previous, ()):
            raise InvalidStateError(
                f"Outpass {outpass.code} is {previous.value} and cannot be moved to {target.value}",
                current_status=previous
            )

        for field in REQUIRED_FIELDS.get(target, ()):
            if values.get(field) in (None, ''):
                raise ValidationError(f"{field} is required to mark an outpass {target.value}")

        now = as_naive_utc(self.clock())
        self._apply_side_effects(outpass, target, values, now)

        outpass.status = target
        outpass.notification_sent = False
        self.outpasses.save(outpass)
        logger.info("Outpass %s: %s -> %s", outpass.code, previous.value, target.value)

        self.notifications.notify(
            outpass,
            self._plan_status_notifications(outpass, target),
            NotificationCategory.STATUS_CHANGE,
            outpass_status=target.value
        )

        outpass.notification_sent = True
        self.outpasses.save(outpass)
        return outpass

    @staticmethod
    def _apply_side_effects(outpass: Outpass, target: OutpassStatus, values: Dict[str, Any], now: datetime) -> None:
        if values.get('approved_by'):
            outpass.approved_by = values['approved_by']

        if target == OutpassStatus.APPROVED:
            outpass.barcode_token = outpass.roll_no
            outpass.approved_at = now
        elif target == OutpassStatus.REJECTED:
            outpass.reject_reason = values['reject_reason']
        elif target == OutpassStatus.EXITED:
            outpass.exit_time = values['exit_time']
            outpass.exit_gate = values['exit_gate']
        elif target == OutpassStatus.RETURNED:
            outpass.actual_return_at = values['actual_return_at']
            outpass.return_gate = values['return_gate']
            outpass.barcode_token = None
        elif target == OutpassStatus.CANCELLED:
            outpass.cancelled_at = now
            outpass.barcode_token = None

    @staticmethod
    def _clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
        values = {}
        for key, value in fields.items():
            key = FIELD_ALIASES.get(key, key)
            if key not in TRANSITION_FIELDS:
                raise ValidationError(f"Unsupported field: {key}")
            if isinstance(value, str):
                value = value.strip()
            if key in TIMESTAMP_FIELDS and value not in (None, ''):
                value = parse_timestamp(value, key)
            values[key] = value
        return values

    # ------------------------------------------------------------ notifications

    def _plan_status_notifications(self, outpass: Outpass, status: OutpassStatus) -> List[NotificationPlan]:
        message = format_status_change_message(
            status,
            outpass.student_name,
            outpass.roll_no,
            outpass.code,
            details={
                'exit_time': outpass.exit_time,
                'actual_return_at': outpass.actual_return_at,
                'reject_reason': outpass.reject_reason
            },
            tz_name=self.timezone_name,
            now=self.clock()
        )

        if status == OutpassStatus.APPROVED:
            return self._parent_sms(outpass, message) + [self._student_app(outpass, status)]

        if status == OutpassStatus.REJECTED:
            return self._parent_sms(outpass, message) + [
                self._student_app(outpass, status, NotificationPriority.HIGH)
            ]

        if status in (OutpassStatus.EXITED, OutpassStatus.RETURNED):
            return [self._admin_email(outpass, status, message)] + self._parent_sms(outpass, message)

        if status == OutpassStatus.LATE:
            return self._parent_sms(outpass, message, NotificationPriority.HIGH) + [
                self._admin_email(outpass, status, message, NotificationPriority.HIGH)
            ]

        return []

    def _parent_sms(
        self,
        outpass: Outpass,
        message: str,
        priority: NotificationPriority = NotificationPriority.NORMAL
    ) -> List[NotificationPlan]:
        if not outpass.parent_contact:
            logger.warning("Outpass %s has no parent contact; skipping parent SMS", outpass.code)
            return []
        return [NotificationPlan(
            recipient_type=RecipientType.PARENT,
            recipient_id=outpass.roll_no,
            channel=NotificationChannel.SMS,
            address=format_indian_phone_number(outpass.parent_contact),
            message=message,
            priority=priority
        )]

    @staticmethod
    def _student_app(
        outpass: Outpass,
        status: OutpassStatus,
        priority: NotificationPriority = NotificationPriority.NORMAL
    ) -> NotificationPlan:
        return NotificationPlan(
            recipient_type=RecipientType.STUDENT,
            recipient_id=outpass.roll_no,
            channel=NotificationChannel.APP,
            message=format_student_message(status, outpass.code, outpass.reject_reason),
            priority=priority
        )

    def _admin_email(
        self,
        outpass: Outpass,
        status: OutpassStatus,
        message: str,
        priority: NotificationPriority = NotificationPriority.NORMAL
    ) -> NotificationPlan:
        admin_id, admin_email = self.admin_recipient(outpass)
        return NotificationPlan(
            recipient_type=RecipientType.ADMIN,
            recipient_id=admin_id,
            channel=NotificationChannel.EMAIL,
            address=admin_email,
            subject=format_admin_subject(status, outpass.student_name, outpass.roll_no),
            message=message,
            priority=priority
        )

    def admin_recipient(self, outpass: Outpass):
        """Reviewing admin, else the hostel's admin, else the default admin."""
        admin = None
        if outpass.approved_by:
            admin = self.users.find_by_staff_id(outpass.approved_by)
        if admin is None and outpass.hostel:
            admin = self.users.find_hostel_admin(outpass.hostel)

        if admin is not None:
            return admin.staff_id or str(admin.id), admin.email
        return outpass.approved_by or self.default_admin_id, self.admin_fallback_email
