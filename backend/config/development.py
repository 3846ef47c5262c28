"""Development configuration."""
import os

from .base import BaseConfig

class DevelopmentConfig(BaseConfig):
    """Development configuration class."""
    
    DEBUG = True
    TESTING = False
    
    SQLALCHEMY_DATABASE_URI = os.getenv('DEV_DATABASE_URL') or \
        'sqlite:///hostel_outpass_dev.db'
    SQLALCHEMY_ECHO = False
    
    CORS_ORIGINS = ["*"]
    
    LOG_LEVEL = 'DEBUG'
