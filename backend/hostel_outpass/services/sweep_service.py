"""Time-based jobs: late-return sweep and daily reminders.

Each job exposes ``tick()`` and reads time from an injected clock, so a
test can drive one cycle without waiting. ``OutpassScheduler`` runs the
ticks on APScheduler inside the Flask application context.
"""
import logging
from datetime import datetime, time, timedelta
from typing import Callable, Dict
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from hostel_outpass.exceptions import OutpassError, ValidationError
from hostel_outpass.models import (
    NotificationCategory, NotificationChannel, OutpassStatus, RecipientType
)
from hostel_outpass.repositories import NotificationRepository, OutpassRepository
from hostel_outpass.services.messages import (
    format_admin_reminder, format_indian_phone_number, format_parent_reminder,
    format_student_reminder
)
from hostel_outpass.services.notification_service import NotificationPlan, NotificationService
from hostel_outpass.services.outpass_service import OutpassService, system_clock
from hostel_outpass.utils.helpers import as_naive_utc

logger = logging.getLogger(__name__)


class LateReturnSweeper:
    """Promote overdue Exited outpasses to Late."""

    def __init__(
        self,
        outpass_service: OutpassService,
        outpasses: OutpassRepository,
        clock: Callable[[], datetime] = system_clock,
        timezone_name: str = 'Asia/Kolkata'
    ):
        self.outpass_service = outpass_service
        self.outpasses = outpasses
        self.clock = clock
        self.timezone_name = timezone_name

    def tick(self) -> Dict[str, int]:
        now = self.clock()
        exited = self.outpasses.list_by_status(OutpassStatus.EXITED)
        late = 0

        for outpass in exited:
            try:
                overdue = now > outpass.expected_return_at(self.timezone_name)
            except ValidationError as e:
                logger.warning("Skipping late check: %s", e.message)
                continue

            if not overdue:
                continue

            try:
                self.outpass_service.transition(
                    outpass, OutpassStatus.LATE,
                    expected_from=frozenset({OutpassStatus.EXITED}), action_label='late marking'
                )
            except OutpassError as e:
                # Returned between the listing and the lock
                logger.info("Outpass %s not marked late: %s", outpass.code, e.message)
                continue
            late += 1

        logger.info("Late-return sweep: checked %d exited outpasses, marked %d late", len(exited), late)
        return {
            'checked': len(exited),
            'late_returns': late,
            'notifications_sent': late
        }


class DailyReminderJob:
    """Remind parents, students and the hostel office about today's approved outpasses."""

    def __init__(
        self,
        outpass_service: OutpassService,
        outpasses: OutpassRepository,
        notifications: NotificationService,
        notification_records: NotificationRepository,
        clock: Callable[[], datetime] = system_clock,
        timezone_name: str = 'Asia/Kolkata'
    ):
        self.outpass_service = outpass_service
        self.outpasses = outpasses
        self.notifications = notifications
        self.notification_records = notification_records
        self.clock = clock
        self.timezone_name = timezone_name

    def tick(self) -> Dict[str, int]:
        zone = ZoneInfo(self.timezone_name)
        local_now = self.clock().astimezone(zone)
        today = local_now.date()
        start_of_day = as_naive_utc(datetime.combine(today, time.min, tzinfo=zone))

        approved = self.outpasses.list_by_filter(status=OutpassStatus.APPROVED, on_date=today)
        sent = 0

        for outpass in approved:
            if self.notification_records.exists_for(outpass.id, NotificationCategory.REMINDER, start_of_day):
                continue
            self.notifications.notify(outpass, self._plans(outpass), NotificationCategory.REMINDER)
            sent += 1

        logger.info("Daily reminders: %d approved outpasses today, %d reminded", len(approved), sent)
        return {'approved_today': len(approved), 'reminders_sent': sent}

    def _plans(self, outpass):
        outpass_type = outpass.type.value
        plans = []

        if outpass.parent_contact:
            plans.append(NotificationPlan(
                recipient_type=RecipientType.PARENT,
                recipient_id=outpass.roll_no,
                channel=NotificationChannel.SMS,
                address=format_indian_phone_number(outpass.parent_contact),
                message=format_parent_reminder(
                    outpass.student_name, outpass.roll_no, outpass_type, outpass.expected_return_time
                )
            ))

        if outpass.student_contact:
            plans.append(NotificationPlan(
                recipient_type=RecipientType.STUDENT,
                recipient_id=outpass.roll_no,
                channel=NotificationChannel.SMS,
                address=format_indian_phone_number(outpass.student_contact),
                message=format_student_reminder(outpass_type, outpass.expected_return_time)
            ))

        admin_id, admin_email = self.outpass_service.admin_recipient(outpass)
        plans.append(NotificationPlan(
            recipient_type=RecipientType.ADMIN,
            recipient_id=admin_id,
            channel=NotificationChannel.EMAIL,
            address=admin_email,
            subject="Daily Outpass Reminder",
            message=format_admin_reminder(
                outpass.student_name, outpass.roll_no, outpass_type, outpass.expected_return_time
            )
        ))
        return plans


class OutpassScheduler:
    """Runs the sweep and the reminders in a background thread."""

    def __init__(self, app, sweeper: LateReturnSweeper, reminders: DailyReminderJob):
        self.app = app
        self.sweeper = sweeper
        self.reminders = reminders
        self.scheduler = BackgroundScheduler(timezone=app.config.get('CAMPUS_TIMEZONE', 'Asia/Kolkata'))

    def start(self) -> None:
        interval = self.app.config.get('LATE_SWEEP_INTERVAL_MINUTES', 5)
        reminder_hour = self.app.config.get('DAILY_REMINDER_HOUR', 7)

        self.scheduler.add_job(
            self._run, IntervalTrigger(minutes=interval),
            args=[self.sweeper.tick],
            id='check_late_returns',
            name='Check for late returns',
            next_run_time=datetime.now(self.scheduler.timezone) + timedelta(seconds=5),
            replace_existing=True,
            max_instances=1
        )
        self.scheduler.add_job(
            self._run, CronTrigger(hour=reminder_hour, minute=0),
            args=[self.reminders.tick],
            id='daily_reminders',
            name='Send daily outpass reminders',
            replace_existing=True,
            max_instances=1
        )
        self.scheduler.start()
        logger.info("Outpass scheduler started: late sweep every %d min, reminders at %02d:00",
                    interval, reminder_hour)

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Outpass scheduler stopped")

    def _run(self, job) -> None:
        with self.app.app_context():
            try:
                job()
            except Exception:
                logger.exception("Scheduled job failed")
