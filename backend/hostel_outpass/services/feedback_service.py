"""Student feedback on rejected outpasses."""
import logging
from typing import List

from hostel_outpass.exceptions import AuthorizationError, InvalidStateError, ValidationError
from hostel_outpass.models import (
    Feedback, NotificationCategory, NotificationChannel, OutpassStatus, RecipientType, Student
)
from hostel_outpass.repositories import FeedbackRepository
from hostel_outpass.services.messages import format_feedback_message
from hostel_outpass.services.notification_service import NotificationPlan, NotificationService
from hostel_outpass.services.outpass_service import OutpassService

logger = logging.getLogger(__name__)


class FeedbackService:

    def __init__(
        self,
        outpass_service: OutpassService,
        repository: FeedbackRepository,
        notifications: NotificationService
    ):
        self.outpass_service = outpass_service
        self.repository = repository
        self.notifications = notifications

    def submit_feedback(self, outpass_id: str, student: Student, text: str) -> Feedback:
        if not outpass_id:
            raise ValidationError("Missing required field: outpass_id")
        text = (text or '').strip()
        if not text:
            raise ValidationError("Feedback text is required")

        outpass = self.outpass_service.get_outpass(outpass_id)
        if outpass.student_id != student.id:
            raise AuthorizationError("You can only give feedback on your own outpass")
        if outpass.status != OutpassStatus.REJECTED:
            raise InvalidStateError(
                f"Feedback can only be submitted for rejected outpasses. "
                f"Outpass {outpass.code} is {outpass.status.value}.",
                current_status=outpass.status
            )

        feedback = self.repository.add(Feedback(
            outpass_id=outpass.code,
            outpass_record_id=outpass.id,
            student_id=student.id,
            feedback_text=text,
            status='pending'
        ))
        logger.info("Feedback %s recorded for outpass %s", feedback.id, outpass.code)

        admin_id, _ = self.outpass_service.admin_recipient(outpass)
        self.notifications.notify(outpass, [NotificationPlan(
            recipient_type=RecipientType.ADMIN,
            recipient_id=admin_id,
            channel=NotificationChannel.SYSTEM,
            message=format_feedback_message(outpass.code)
        )], NotificationCategory.FEEDBACK)

        return feedback

    def list_feedback(self, outpass_id: str = None, student_id: int = None) -> List[Feedback]:
        return self.repository.list_by_filter(outpass_id=outpass_id, student_id=student_id)
