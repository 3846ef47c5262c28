"""Settings shared by every environment."""
import os
from datetime import timedelta


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class BaseConfig:
    """Base configuration."""
    
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False
    
    # JWT Configuration
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    
    # CORS
    CORS_ORIGINS = ["http://localhost:*", "http://127.0.0.1:*"]
    
    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "200 per day;50 per hour"
    RATELIMIT_ENABLED = True
    
    # Campus
    CAMPUS_TIMEZONE = os.getenv('CAMPUS_TIMEZONE', 'Asia/Kolkata')
    DEFAULT_ADMIN_ID = os.getenv('DEFAULT_ADMIN_ID', 'AD-001')
    ADMIN_NOTIFICATION_EMAIL = os.getenv('ADMIN_NOTIFICATION_EMAIL', 'hostel.office@example.edu')
    
    # SMS (Twilio)
    MOCK_SMS = _env_flag('MOCK_SMS', True)
    TWILIO_ACCOUNT_SID = os.getenv('TWILIO_ACCOUNT_SID')
    TWILIO_AUTH_TOKEN = os.getenv('TWILIO_AUTH_TOKEN')
    TWILIO_PHONE_NUMBER = os.getenv('TWILIO_PHONE_NUMBER')
    TWILIO_MESSAGING_SERVICE_SID = os.getenv('TWILIO_MESSAGING_SERVICE_SID')
    
    # Email (SMTP)
    MOCK_EMAIL = _env_flag('MOCK_EMAIL', True)
    SMTP_HOST = os.getenv('SMTP_HOST', 'smtp.gmail.com')
    SMTP_PORT = int(os.getenv('SMTP_PORT', '465'))
    SMTP_USERNAME = os.getenv('SMTP_USERNAME')
    SMTP_PASSWORD = os.getenv('SMTP_PASSWORD')
    MAIL_SENDER = os.getenv('MAIL_SENDER', 'Hostel Outpass <no-reply@example.edu>')
    
    NOTIFICATION_TIMEOUT_SECONDS = float(os.getenv('NOTIFICATION_TIMEOUT_SECONDS', '10'))
    
    # Background jobs
    SCHEDULER_ENABLED = _env_flag('SCHEDULER_ENABLED', False)
    LATE_SWEEP_INTERVAL_MINUTES = int(os.getenv('LATE_SWEEP_INTERVAL_MINUTES', '5'))
    DAILY_REMINDER_HOUR = int(os.getenv('DAILY_REMINDER_HOUR', '7'))
    
    # File Upload
    MAX_CONTENT_LENGTH = 4 * 1024 * 1024  # 4MB
    ALLOWED_EXTENSIONS = {'csv', 'xlsx', 'xls'}
    
    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'logs/app.log')
