"""Hostel Outpass System - Application Factory."""
import logging
import os
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

__version__ = '1.0.0'

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)

def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)
    
    # Load configuration
    from config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    
    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)
    
    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))
    
    # Setup logging
    setup_logging(app)
    
    # Wire repositories and workflow services
    from hostel_outpass.services import init_services
    init_services(app)
    
    # Register blueprints
    register_blueprints(app)
    
    # Register error handlers
    register_error_handlers(app)
    
    # Setup database
    setup_database(app)
    
    # Add CLI commands
    register_commands(app)
    
    # Add health check
    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'Hostel Outpass System',
            'version': __version__
        })
    
    return app

def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from hostel_outpass.api.auth import auth_bp
    from hostel_outpass.api.students import students_bp
    from hostel_outpass.api.outpasses import outpasses_bp
    from hostel_outpass.api.gate import gate_bp
    from hostel_outpass.api.notifications import notifications_bp
    from hostel_outpass.api.feedback import feedback_bp
    from hostel_outpass.utils.swagger import SWAGGER_URL, API_URL, generate_swagger_spec, get_swagger_blueprint
    
    # Auth
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    
    # Students
    app.register_blueprint(students_bp, url_prefix='/api/students')
    
    # Core Features
    app.register_blueprint(outpasses_bp, url_prefix='/api/outpasses')
    app.register_blueprint(gate_bp, url_prefix='/api/gate')
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')
    app.register_blueprint(feedback_bp, url_prefix='/api/feedback')
    
    # Swagger UI
    @app.route(API_URL)
    def swagger_spec():
        """Serve Swagger/OpenAPI specification."""
        return jsonify(generate_swagger_spec())
    
    app.register_blueprint(get_swagger_blueprint(), url_prefix=SWAGGER_URL)

def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from hostel_outpass.exceptions import OutpassError
    from hostel_outpass.utils.helpers import handle_error
    from werkzeug.exceptions import HTTPException
    
    @app.errorhandler(OutpassError)
    def workflow_error(error):
        return jsonify(error.to_dict()), error.status_code
    
    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.exception('Unhandled error: %s', error)
        return handle_error('Internal server error', 500)
    
    @app.errorhandler(HTTPException)
    def handle_exception(e):
        return handle_error(e.description, e.code)
    
    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return handle_error('Token has expired', 401)
    
    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return handle_error('Invalid token', 401)
    
    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return handle_error('Authorization token required', 401)

def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.getLogger('hostel_outpass').setLevel(level)
    
    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)
        
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)
        logging.getLogger('hostel_outpass').addHandler(file_handler)
        
        app.logger.setLevel(level)
        app.logger.info('Hostel Outpass System startup')

def setup_database(app: Flask) -> None:
    """Import models so metadata knows every table."""
    with app.app_context():
        from hostel_outpass.models import (  # noqa: F401
            User, UserRole, Student, Outpass, OutpassStatus,
            Notification, GateLog, Feedback
        )

def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click
    
    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')
        
        db.create_all()
        click.echo('Created all tables.')
    
    @app.cli.command('seed-db')
    def seed_db():
        """Seed database with demo hostels, staff and outpasses."""
        from hostel_outpass.services.seed_service import SeedService
        
        summary = SeedService.seed_all()
        click.echo(f"Database seeded: {summary}")
    
    @app.cli.command('create-admin')
    def create_admin():
        """Create a hostel admin account."""
        from hostel_outpass.services.auth_service import AuthService
        
        username = click.prompt('Admin username')
        email = click.prompt('Admin email')
        name = click.prompt('Admin name')
        staff_id = click.prompt('Staff ID', default='AD-001')
        hostel = click.prompt('Hostel (blank for super admin)', default='', show_default=False)
        password = click.prompt('Password', hide_input=True, confirmation_prompt=True)
        
        user = AuthService.create_staff(
            username=username,
            email=email,
            name=name,
            password=password,
            role='super_admin' if not hostel else 'hostel_admin',
            staff_id=staff_id,
            hostel=hostel or None
        )
        click.echo(f'Admin user created: {user.username} ({user.staff_id})')
    
    @app.cli.command('check-late-returns')
    def check_late_returns():
        """Run one late-return sweep."""
        from hostel_outpass.services import get_late_return_sweeper
        
        result = get_late_return_sweeper().tick()
        click.echo(f"Checked {result['checked']} exited outpasses, "
                   f"marked {result['late_returns']} late")
    
    @app.cli.command('send-daily-reminders')
    def send_daily_reminders():
        """Send today's reminders for approved outpasses."""
        from hostel_outpass.services import get_daily_reminder_job
        
        result = get_daily_reminder_job().tick()
        click.echo(f"Sent {result['reminders_sent']} daily reminders")
