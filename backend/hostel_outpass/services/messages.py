"""Notification wording for outpass events.

Everything here is a pure function of its arguments. Parents receive the
``HOSTEL OUTPASS:`` texts, students get short in-app messages and the hostel
office receives email subjects naming the student.
"""
import re
from datetime import datetime, timezone
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = 'Asia/Kolkata'


def format_indian_phone_number(phone_number: str) -> str:
    """Prefix a phone number with the Indian country code.

    A bare 10-digit number gains ``+91``; anything already carrying ``+91``
    is returned unchanged, so formatting is idempotent.
    """
    digits_only = re.sub(r'\D', '', phone_number or '')

    if len(digits_only) == 10:
        return f"+91{digits_only}"

    if '+91' in (phone_number or ''):
        return phone_number

    return f"+91{digits_only}"


def format_clock_time(
    value: Optional[datetime] = None,
    tz_name: str = DEFAULT_TIMEZONE,
    now: Optional[datetime] = None
) -> str:
    """12-hour clock in the campus zone, e.g. ``02:30 pm``.

    Naive timestamps are read as UTC. Without a value the current time
    (``now`` or the wall clock) is used.
    """
    moment = value or now or datetime.now(timezone.utc)
    if isinstance(moment, str):
        moment = datetime.fromisoformat(moment.replace('Z', '+00:00'))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone(ZoneInfo(tz_name))
    return local.strftime('%I:%M %p').lower()


def _status_key(status: Any) -> str:
    return str(getattr(status, 'value', status)).strip().lower()


def format_status_change_message(
    status: Any,
    student_name: str,
    roll_no: str,
    outpass_id: str,
    details: Optional[Mapping[str, Any]] = None,
    tz_name: str = DEFAULT_TIMEZONE,
    now: Optional[datetime] = None
) -> str:
    """Parent-facing text for an outpass that moved to ``status``."""
    details = details or {}
    ward = f"Your ward {student_name} ({roll_no})"
    key = _status_key(status)

    if key == 'approved':
        return (f"HOSTEL OUTPASS: {ward} has been APPROVED for outpass #{outpass_id}. "
                f"They are permitted to leave campus as per the requested time.")

    if key == 'exited':
        exit_time = format_clock_time(details.get('exit_time'), tz_name, now)
        return (f"HOSTEL OUTPASS: {ward} has EXITED the campus at {exit_time} "
                f"using outpass #{outpass_id}.")

    if key == 'returned':
        return_time = format_clock_time(details.get('actual_return_at'), tz_name, now)
        return (f"HOSTEL OUTPASS: {ward} has safely RETURNED to campus at {return_time} "
                f"with outpass #{outpass_id}.")

    if key == 'rejected':
        reason = f" Reason: {details['reject_reason']}" if details.get('reject_reason') else ''
        return f"HOSTEL OUTPASS: {ward}'s outpass #{outpass_id} has been REJECTED.{reason}"

    if key == 'late':
        return (f"URGENT - HOSTEL OUTPASS: {ward} is LATE to return to campus. "
                f"Their outpass #{outpass_id} return time has passed. "
                f"Please contact them immediately.")

    label = getattr(status, 'value', status)
    return f"HOSTEL OUTPASS: Update on {ward}'s outpass #{outpass_id} status: {label}."


def format_student_message(status: Any, outpass_id: str, reject_reason: Optional[str] = None) -> str:
    """In-app message shown to the student."""
    key = _status_key(status)
    if key == 'approved':
        return (f"Your outpass request #{outpass_id} has been approved. "
                f"You can now exit the campus using this outpass.")
    if key == 'rejected':
        return (f"Your outpass request #{outpass_id} has been rejected. "
                f"Reason: {reject_reason or 'No reason provided'}.")
    label = getattr(status, 'value', status)
    return f"Your outpass request #{outpass_id} is now {label}."


def format_admin_subject(status: Any, student_name: str, roll_no: str) -> str:
    key = _status_key(status)
    if key == 'exited':
        return f"Student Exit: {student_name} ({roll_no})"
    if key == 'returned':
        return f"Student Return: {student_name} ({roll_no})"
    if key == 'late':
        return f"URGENT: Student Late Return - {student_name} ({roll_no})"
    return f"Outpass Update: {student_name} ({roll_no})"


def format_new_request_message(student_name: str, roll_no: str, outpass_type: str, on_date: str) -> str:
    return (f"New outpass request from {student_name} ({roll_no}) "
            f"for {outpass_type} outpass on {on_date}.")


def format_new_request_subject(student_name: str) -> str:
    return f"New Outpass Request: {student_name}"


def format_parent_reminder(student_name: str, roll_no: str, outpass_type: str, return_time: str) -> str:
    return (f"HOSTEL OUTPASS REMINDER: Your ward {student_name} ({roll_no}) has an approved "
            f"{outpass_type} outpass for today. Expected return time: {return_time}.")


def format_student_reminder(outpass_type: str, return_time: str) -> str:
    return (f"HOSTEL OUTPASS REMINDER: You have an approved {outpass_type} outpass for today. "
            f"Return time: {return_time}.")


def format_admin_reminder(student_name: str, roll_no: str, outpass_type: str, return_time: str) -> str:
    return (f"{student_name} ({roll_no}) has an approved {outpass_type} outpass for today. "
            f"Return time: {return_time}.")


def format_feedback_message(outpass_id: str) -> str:
    return f"Student has submitted feedback regarding rejected outpass {outpass_id}."
