"""Late-return sweep, daily reminders and the scheduler wiring."""
from datetime import date

from flask import current_app

from hostel_outpass.models import (
    Notification, NotificationCategory, NotificationChannel, NotificationPriority,
    OutpassStatus, RecipientType
)
from hostel_outpass.services.sweep_service import OutpassScheduler


def late_notifications():
    return Notification.query.filter_by(outpass_status='Late').order_by(Notification.id).all()


class TestLateReturnSweeper:

    def test_nothing_is_late_before_the_return_time(self, services, student, make_outpass):
        make_outpass(student, status=OutpassStatus.EXITED)

        result = services.late_return_sweeper.tick()

        assert result == {'checked': 1, 'late_returns': 0, 'notifications_sent': 0}

    def test_overdue_outpass_becomes_late_once(self, services, clock, dispatcher, student, make_outpass):
        outpass = make_outpass(student, status=OutpassStatus.EXITED)
        # 18:00 IST is 12:30 UTC
        clock.advance(hours=5, minutes=1)

        first = services.late_return_sweeper.tick()
        second = services.late_return_sweeper.tick()

        assert first['late_returns'] == 1
        assert second == {'checked': 0, 'late_returns': 0, 'notifications_sent': 0}
        assert outpass.status == OutpassStatus.LATE

        records = late_notifications()
        assert [(r.type, r.channel) for r in records] == [
            (RecipientType.PARENT, NotificationChannel.SMS),
            (RecipientType.ADMIN, NotificationChannel.EMAIL)
        ]
        assert all(r.priority == NotificationPriority.HIGH for r in records)
        assert records[1].subject == 'URGENT: Student Late Return - John Doe (CS12345)'
        assert len(dispatcher.sent) == 2

    def test_exactly_on_time_is_not_late(self, services, clock, student, make_outpass):
        make_outpass(student, status=OutpassStatus.EXITED)
        clock.advance(hours=5)

        assert services.late_return_sweeper.tick()['late_returns'] == 0

    def test_only_exited_outpasses_are_checked(self, services, clock, student, make_student, make_outpass):
        make_outpass(student, status=OutpassStatus.APPROVED, on_date=date(2024, 5, 1))
        other = make_student(roll_no='CS22222', name='Other')
        make_outpass(other, status=OutpassStatus.LATE, on_date=date(2024, 5, 1))

        result = services.late_return_sweeper.tick()

        assert result['checked'] == 0
        assert late_notifications() == []

    def test_malformed_return_time_is_skipped(self, services, student, make_student, make_outpass):
        make_outpass(student, status=OutpassStatus.EXITED, expected_return_time='late')
        other = make_student(roll_no='CS22222', name='Other')
        make_outpass(other, status=OutpassStatus.EXITED, on_date=date(2024, 5, 9))

        result = services.late_return_sweeper.tick()

        assert result == {'checked': 2, 'late_returns': 1, 'notifications_sent': 1}

    def test_cli_command_runs_one_sweep(self, app, services, clock, student, make_outpass):
        make_outpass(student, status=OutpassStatus.EXITED, on_date=date(2024, 5, 9))

        result = app.test_cli_runner().invoke(args=['check-late-returns'])

        assert 'Checked 1 exited outpasses, marked 1 late' in result.output


class TestDailyReminderJob:

    def test_reminds_everyone_once_per_day(self, services, dispatcher, student, admin, make_outpass):
        make_outpass(student, status=OutpassStatus.APPROVED)

        first = services.daily_reminder_job.tick()
        second = services.daily_reminder_job.tick()

        assert first == {'approved_today': 1, 'reminders_sent': 1}
        assert second == {'approved_today': 1, 'reminders_sent': 0}

        reminders = (Notification.query
                     .filter_by(category=NotificationCategory.REMINDER)
                     .order_by(Notification.id)
                     .all())
        assert [(r.type, r.channel) for r in reminders] == [
            (RecipientType.PARENT, NotificationChannel.SMS),
            (RecipientType.STUDENT, NotificationChannel.SMS),
            (RecipientType.ADMIN, NotificationChannel.EMAIL)
        ]
        assert reminders[1].message == \
            'HOSTEL OUTPASS REMINDER: You have an approved Market outpass for today. Return time: 18:00.'
        assert reminders[2].address == admin.email
        assert len(dispatcher.sent) == 3

    def test_other_days_and_statuses_are_ignored(self, services, dispatcher, student, make_student, make_outpass):
        make_outpass(student, status=OutpassStatus.APPROVED, on_date=date(2024, 5, 11))
        other = make_student(roll_no='CS22222', name='Other')
        make_outpass(other, status=OutpassStatus.PENDING)

        assert services.daily_reminder_job.tick()['reminders_sent'] == 0
        assert dispatcher.sent == []


class TestOutpassScheduler:

    def test_registers_both_jobs(self, app, services):
        scheduler = OutpassScheduler(app, services.late_return_sweeper, services.daily_reminder_job)
        scheduler.start()
        try:
            assert scheduler.scheduler.get_job('check_late_returns') is not None
            assert scheduler.scheduler.get_job('daily_reminders') is not None
        finally:
            scheduler.shutdown()

        assert not scheduler.scheduler.running

    def test_jobs_run_inside_the_app_context(self, app, services):
        seen = []
        scheduler = OutpassScheduler(app, services.late_return_sweeper, services.daily_reminder_job)

        scheduler._run(lambda: seen.append(current_app.name))

        assert seen == [app.name]

    def test_failing_job_is_logged_not_raised(self, app, services, caplog):
        scheduler = OutpassScheduler(app, services.late_return_sweeper, services.daily_reminder_job)

        def boom():
            raise RuntimeError('database away')

        scheduler._run(boom)

        assert 'Scheduled job failed' in caplog.text
