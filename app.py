import logging

import click
from flask import Flask, jsonify
from flask_login import LoginManager
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from models import db, User
from routes import register_blueprints


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    app.logger.setLevel(level)
    logging.getLogger('services').setLevel(level)


def register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'success': False, 'error': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        app.logger.exception(f"Unhandled error: {e}")
        db.session.rollback()
        return jsonify({'success': False, 'error': 'Internal server error'}), 500


def register_commands(app):
    @app.cli.command('init-db')
    def init_db_command():
        """Create all database tables."""
        db.create_all()
        click.echo(f"Database tables created: {app.config['SQLALCHEMY_DATABASE_URI']}")

    @app.cli.command('approve-user')
    @click.argument('email')
    @click.option('--admin', is_flag=True, help='Also grant admin rights.')
    def approve_user_command(email, admin):
        """Approve a registered account so it can log in."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            raise click.ClickException(f"No user with email {email}")
        user.verify_account = True
        user.is_held = False
        if admin:
            user.admin = True
        db.session.commit()
        click.echo(f"Approved {user.email}{' (admin)' if admin else ''}")


def create_app(config_class='config.Config'):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    Migrate(app, db)

    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.request_loader
    def load_user_from_request(request):
        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return None
        user = User.verify_auth_token(auth_header[len('Bearer '):].strip())
        if user is None or user.is_held:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'error': 'Authentication required'}), 401

    register_blueprints(app)
    register_error_handlers(app)
    register_commands(app)

    return app


if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        db.create_all()
    app.run(host='0.0.0.0', port=5005, debug=True)
