"""Application entry point."""
import os
import click
from flask.cli import with_appcontext
from dotenv import load_dotenv
from hostel_outpass import create_app, db

# Load environment variables
load_dotenv()

# Create Flask app
app = create_app(os.getenv('FLASK_ENV', 'development'))

@app.cli.command()
@with_appcontext
def reset_db():
    """Reset database completely."""
    if click.confirm('This will delete all data and recreate tables. Continue?'):
        db.drop_all()
        db.create_all()
        click.echo('Database reset complete!')

        if click.confirm('Seed demo hostels, staff and outpasses?'):
            from hostel_outpass.services.seed_service import SeedService
            click.echo(f"Database seeded: {SeedService.seed_all()}")

if __name__ == '__main__':
    # Development server
    port = int(os.environ.get('PORT', 5000))
    host = os.environ.get('HOST', '127.0.0.1')
    debug = os.environ.get('FLASK_ENV') == 'development'

    if app.config.get('SCHEDULER_ENABLED'):
        from hostel_outpass.services import start_scheduler
        # The reloader would start a second scheduler in the parent process
        if not debug or os.environ.get('WERKZEUG_RUN_MAIN') == 'true':
            start_scheduler(app)

    app.run(host=host, port=port, debug=debug)
