"""Message formatting and phone number normalisation."""
from datetime import datetime, timezone

import pytest

from hostel_outpass.models import OutpassStatus
from hostel_outpass.services.messages import (
    format_admin_subject, format_clock_time, format_indian_phone_number,
    format_new_request_message, format_status_change_message, format_student_message,
    format_student_reminder
)

EXIT_AT = datetime(2024, 5, 10, 9, 0, tzinfo=timezone.utc)  # 14:30 IST


@pytest.mark.parametrize('raw', ['9876543210', '98765 43210', '98765-43210'])
def test_bare_number_gets_country_code(raw):
    assert format_indian_phone_number(raw) == '+919876543210'


def test_formatting_is_idempotent():
    once = format_indian_phone_number('9876543210')
    assert format_indian_phone_number(once) == once == '+919876543210'


def test_spaced_international_number_is_left_alone():
    assert format_indian_phone_number('+91 9876543212') == '+91 9876543212'


def test_clock_time_uses_campus_zone():
    assert format_clock_time(EXIT_AT, 'Asia/Kolkata') == '02:30 pm'


def test_clock_time_defaults_to_now():
    now = datetime(2024, 5, 10, 1, 15, tzinfo=timezone.utc)
    assert format_clock_time(None, 'Asia/Kolkata', now=now) == '06:45 am'


def test_naive_timestamps_are_read_as_utc():
    assert format_clock_time(EXIT_AT.replace(tzinfo=None), 'Asia/Kolkata') == '02:30 pm'


def test_approved_message():
    message = format_status_change_message(OutpassStatus.APPROVED, 'John Doe', 'CS12345', 'OP-CS12345')
    assert message == ("HOSTEL OUTPASS: Your ward John Doe (CS12345) has been APPROVED for outpass "
                       "#OP-CS12345. They are permitted to leave campus as per the requested time.")


def test_exited_message_includes_exit_time():
    message = format_status_change_message(
        OutpassStatus.EXITED, 'John Doe', 'CS12345', 'OP-CS12345', details={'exit_time': EXIT_AT}
    )
    assert message == ("HOSTEL OUTPASS: Your ward John Doe (CS12345) has EXITED the campus at "
                       "02:30 pm using outpass #OP-CS12345.")


def test_returned_message_includes_return_time():
    returned_at = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)
    message = format_status_change_message(
        'Returned', 'John Doe', 'CS12345', 'OP-CS12345', details={'actual_return_at': returned_at}
    )
    assert 'safely RETURNED to campus at 05:30 pm with outpass #OP-CS12345' in message


def test_rejected_message_appends_reason():
    message = format_status_change_message(
        OutpassStatus.REJECTED, 'John Doe', 'CS12345', 'OP-CS12345',
        details={'reject_reason': 'Past curfew'}
    )
    assert message == ("HOSTEL OUTPASS: Your ward John Doe (CS12345)'s outpass #OP-CS12345 "
                       "has been REJECTED. Reason: Past curfew")


def test_rejected_message_without_reason():
    message = format_status_change_message(OutpassStatus.REJECTED, 'John Doe', 'CS12345', 'OP-CS12345')
    assert message.endswith('has been REJECTED.')


def test_late_message_is_urgent():
    message = format_status_change_message(OutpassStatus.LATE, 'John Doe', 'CS12345', 'OP-CS12345')
    assert message.startswith('URGENT - HOSTEL OUTPASS:')
    assert 'return time has passed' in message


def test_unknown_status_falls_back_to_generic_update():
    message = format_status_change_message('Cancelled', 'John Doe', 'CS12345', 'OP-CS12345')
    assert message == "HOSTEL OUTPASS: Update on Your ward John Doe (CS12345)'s outpass #OP-CS12345 status: Cancelled."


def test_student_and_admin_texts():
    assert format_student_message(OutpassStatus.REJECTED, 'OP-CS12345', 'Exams') == \
        "Your outpass request #OP-CS12345 has been rejected. Reason: Exams."
    assert format_admin_subject(OutpassStatus.LATE, 'John Doe', 'CS12345') == \
        "URGENT: Student Late Return - John Doe (CS12345)"
    assert format_new_request_message('John Doe', 'CS12345', 'Market', '2024-05-10') == \
        "New outpass request from John Doe (CS12345) for Market outpass on 2024-05-10."
    assert format_student_reminder('Home', '20:00') == \
        "HOSTEL OUTPASS REMINDER: You have an approved Home outpass for today. Return time: 20:00."
