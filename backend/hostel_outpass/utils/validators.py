"""Input validation utilities."""
import re
from datetime import date, datetime
from typing import Any, Dict, Iterable
from hostel_outpass.exceptions import ValidationError
from hostel_outpass.utils.helpers import as_naive_utc

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)$')
ROLL_NO_PATTERN = re.compile(r'^[A-Z0-9]{3,30}$')

def require_fields(data: Dict[str, Any], fields: Iterable[str]) -> None:
    """Raise for the first missing or blank field."""
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"Missing required field: {field}")

def validate_email(email: str) -> str:
    email = (email or '').strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format")
    return email

def validate_password(password: str) -> str:
    if not password or len(password) < 6:
        raise ValidationError("Password must be at least 6 characters long")
    return password

def validate_roll_no(roll_no: str) -> str:
    roll_no = (roll_no or '').strip().upper()
    if not ROLL_NO_PATTERN.match(roll_no):
        raise ValidationError("Roll number must be 3-30 letters or digits")
    return roll_no

def validate_phone_number(phone: str, field: str = 'contact') -> str:
    """Accept 10 digits, optionally prefixed by 91 or +91."""
    digits = re.sub(r'\D', '', phone or '')
    if len(digits) == 12 and digits.startswith('91'):
        digits = digits[2:]
    if len(digits) != 10:
        raise ValidationError(f"Invalid phone number for {field}: {phone}")
    return digits

def parse_date(value: Any, field: str = 'date') -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value}. Use YYYY-MM-DD")

def parse_hhmm(value: Any, field: str = 'expected_return_time') -> str:
    text = str(value or '').strip()
    if not TIME_PATTERN.match(text):
        raise ValidationError(f"Invalid {field}: {value}. Use HH:MM")
    return text

def parse_timestamp(value: Any, field: str) -> datetime:
    """ISO timestamp or datetime, normalised to naive UTC."""
    if isinstance(value, datetime):
        return as_naive_utc(value)
    text = str(value or '').strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return as_naive_utc(datetime.fromisoformat(text))
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value}. Use an ISO 8601 timestamp")
