"""WSGI configuration for production deployment."""
import os
from dotenv import load_dotenv
from hostel_outpass import create_app
from hostel_outpass.services import start_scheduler

load_dotenv()

# Create Flask application instance
app = create_app(os.getenv('FLASK_ENV', 'production'))

if app.config.get('SCHEDULER_ENABLED'):
    start_scheduler(app)

if __name__ == "__main__":
    app.run()
