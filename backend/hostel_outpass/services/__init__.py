"""Service wiring.

``init_services`` builds the repositories and workflow services once per
application and keeps them in ``app.extensions['outpass']``; the
accessors below fetch them for the current application.
"""
from flask import current_app

from hostel_outpass.repositories import (
    FeedbackRepository, GateLogRepository, NotificationRepository,
    OutpassRepository, StudentRepository, UserRepository
)
from hostel_outpass.services.feedback_service import FeedbackService
from hostel_outpass.services.gate_service import GateService
from hostel_outpass.services.notification_service import ChannelDispatcher, NotificationService
from hostel_outpass.services.outpass_service import OutpassService, system_clock
from hostel_outpass.services.scan_service import GateScanMatcher
from hostel_outpass.services.sweep_service import DailyReminderJob, LateReturnSweeper, OutpassScheduler

EXTENSION_KEY = 'outpass'


class ServiceRegistry:
    """Everything one application needs to run the outpass workflow."""

    def __init__(self, config, dispatcher=None, clock=None):
        self.clock = clock or system_clock
        timezone_name = config.get('CAMPUS_TIMEZONE', 'Asia/Kolkata')

        self.outpasses = OutpassRepository()
        self.students = StudentRepository()
        self.users = UserRepository()
        self.notification_records = NotificationRepository()
        self.gate_logs = GateLogRepository()
        self.feedback = FeedbackRepository()

        self.dispatcher = dispatcher or ChannelDispatcher.from_config(config)
        self.notifications = NotificationService(
            self.dispatcher,
            self.notification_records,
            timeout_seconds=config.get('NOTIFICATION_TIMEOUT_SECONDS', 10)
        )
        self.outpass_service = OutpassService(
            self.outpasses,
            self.users,
            self.notifications,
            clock=self.clock,
            timezone_name=timezone_name,
            default_admin_id=config.get('DEFAULT_ADMIN_ID', 'AD-001'),
            admin_fallback_email=config.get('ADMIN_NOTIFICATION_EMAIL')
        )
        self.matcher = GateScanMatcher(self.outpasses)
        self.gate_service = GateService(self.outpass_service, self.gate_logs, self.matcher, clock=self.clock)
        self.feedback_service = FeedbackService(
            self.outpass_service, self.feedback, self.notifications
        )
        self.late_return_sweeper = LateReturnSweeper(
            self.outpass_service, self.outpasses, clock=self.clock, timezone_name=timezone_name
        )
        self.daily_reminder_job = DailyReminderJob(
            self.outpass_service,
            self.outpasses,
            self.notifications,
            self.notification_records,
            clock=self.clock,
            timezone_name=timezone_name
        )


def init_services(app, dispatcher=None, clock=None) -> ServiceRegistry:
    """(Re)build the registry; tests pass a fake dispatcher and a fixed clock."""
    registry = ServiceRegistry(app.config, dispatcher=dispatcher, clock=clock)
    app.extensions[EXTENSION_KEY] = registry
    return registry


def get_services() -> ServiceRegistry:
    return current_app.extensions[EXTENSION_KEY]


def get_outpass_service() -> OutpassService:
    return get_services().outpass_service


def get_gate_service() -> GateService:
    return get_services().gate_service


def get_feedback_service() -> FeedbackService:
    return get_services().feedback_service


def get_notification_repository() -> NotificationRepository:
    return get_services().notification_records


def get_late_return_sweeper() -> LateReturnSweeper:
    return get_services().late_return_sweeper


def get_daily_reminder_job() -> DailyReminderJob:
    return get_services().daily_reminder_job


def start_scheduler(app) -> OutpassScheduler:
    registry = app.extensions[EXTENSION_KEY]
    scheduler = OutpassScheduler(app, registry.late_return_sweeper, registry.daily_reminder_job)
    scheduler.start()
    return scheduler
