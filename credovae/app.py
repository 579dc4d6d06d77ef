"""
Credovae Bank: Flask application
User banking (dashboard, OTP-gated transfers, messages) and the admin console
(approvals, user management) in one service.
"""

import atexit
import logging
import os
import click
from datetime import datetime, timezone
from dotenv import load_dotenv
from flask import Flask, jsonify
from flasgger import Swagger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from credovae.extensions import db, jwt, BLOCKLIST
from credovae.errors import BankingError
from credovae import models  # noqa: F401  (register models)
from credovae.services.email_client import build_email_sender
from credovae.services.notifications import NoticeBoard
from credovae.services.session_state import SessionRegistry

logger = logging.getLogger(__name__)

load_dotenv()


def _database_url():
    if os.environ.get('DATABASE_URL'):
        return os.environ['DATABASE_URL']
    db_user = os.environ.get('DB_USER', 'bank_svc_user')
    db_pass = os.environ.get('DB_PASS', 'password')
    db_host = os.environ.get('DB_HOST', 'bank-db')
    db_name = os.environ.get('DB_NAME', 'bank_db')
    return f"postgresql://{db_user}:{db_pass}@{db_host}/{db_name}"


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def create_app(test_config=None):
    app = Flask(__name__)

    # Configuration
    app.config['SQLALCHEMY_DATABASE_URI'] = _database_url()
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['JWT_SECRET_KEY'] = os.environ.get('JWT_SECRET', 'dev-secret-change-me')
    app.config['ACCESS_TOKEN_MINUTES'] = int(os.environ.get('ACCESS_TOKEN_MINUTES', '15'))

    app.config['OTP_LENGTH'] = int(os.environ.get('OTP_LENGTH', '6'))
    app.config['OTP_EXPIRY_MINUTES'] = int(os.environ.get('OTP_EXPIRY_MINUTES', '5'))
    app.config['OTP_MAX_ATTEMPTS'] = int(os.environ.get('OTP_MAX_ATTEMPTS', '3'))

    app.config['EMAIL_BACKEND'] = os.environ.get('EMAIL_BACKEND', 'console')
    app.config['RESEND_API_KEY'] = os.environ.get('RESEND_API_KEY', '')
    app.config['RESEND_FROM_EMAIL'] = os.environ.get('RESEND_FROM_EMAIL', 'Credovae Bank <noreply@credovae.example>')
    app.config['EMAIL_TIMEOUT'] = float(os.environ.get('EMAIL_TIMEOUT', '5'))

    app.config['BALANCE_POLL_SECONDS'] = float(os.environ.get('BALANCE_POLL_SECONDS', '10'))
    app.config['BALANCE_POLL_ENABLED'] = _env_bool('BALANCE_POLL_ENABLED', True)
    app.config['DEFAULT_OPENING_BALANCE'] = os.environ.get('DEFAULT_OPENING_BALANCE', '5000.00')
    app.config['AUTO_CREATE_TABLES'] = _env_bool('AUTO_CREATE_TABLES', False)
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')

    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    # Initialize Extensions
    db.init_app(app)
    jwt.init_app(app)

    @jwt.token_in_blocklist_loader
    def check_if_token_in_blocklist(jwt_header, jwt_payload):
        return jwt_payload['jti'] in BLOCKLIST

    app.extensions['email_sender'] = app.config.get('EMAIL_SENDER') or build_email_sender(app.config)
    app.extensions['notice_board'] = NoticeBoard()
    sessions = SessionRegistry(app)
    app.extensions['sessions'] = sessions
    atexit.register(sessions.close_all)

    Swagger(app, template={
        "info": {"title": "Credovae Bank API", "version": "1.0.0"},
        "securityDefinitions": {
            "Bearer": {"type": "apiKey", "name": "Authorization", "in": "header"}
        },
    })

    # Error envelope
    @app.errorhandler(BankingError)
    def handle_banking_error(e):
        if e.status_code >= 500:
            logger.error("%s: %s", e.error_code, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(e):
        db.session.rollback()
        logger.exception("Unhandled database error")
        return jsonify({"success": False, "error_code": "BACKEND_ERROR", "message": "Database error"}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({
            "success": False,
            "error_code": e.name.upper().replace(' ', '_'),
            "message": e.description,
        }), e.code

    # Register Blueprints
    from credovae.routes.auth import auth_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    from credovae.routes.accounts import accounts_bp
    app.register_blueprint(accounts_bp, url_prefix='/accounts')

    from credovae.routes.transfers import transfers_bp
    app.register_blueprint(transfers_bp, url_prefix='/transfers')

    from credovae.routes.messages import messages_bp
    app.register_blueprint(messages_bp, url_prefix='/messages')

    from credovae.routes.admin_transactions import admin_transactions_bp
    app.register_blueprint(admin_transactions_bp, url_prefix='/admin/transactions')

    from credovae.routes.admin_users import admin_users_bp
    app.register_blueprint(admin_users_bp, url_prefix='/admin')

    @app.route('/health')
    def health():
        try:
            db.session.execute(text('SELECT 1'))
            return jsonify({
                "service": "credovae-bank",
                "status": "healthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }), 200
        except SQLAlchemyError as e:
            return jsonify({"service": "credovae-bank", "status": "unhealthy", "error": str(e)}), 503

    _register_commands(app)

    if app.config['AUTO_CREATE_TABLES']:
        with app.app_context():
            db.create_all()

    logger.debug(app.url_map)
    return app


def _register_commands(app):
    @app.cli.command('init-db')
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo('Tables created')

    @app.cli.command('create-admin')
    @click.option('--email', required=True)
    @click.option('--password', required=True)
    @click.option('--name', default=None)
    @click.option('--role', type=click.Choice(['admin', 'master_admin']), default='master_admin')
    def create_admin(email, password, name, role):
        """Create an admin or master admin login."""
        from credovae.models.user import User

        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            raise click.ClickException(f'{email} already exists')
        user = User(email=email, name=name, role=role, is_active=True)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        click.echo(f'Created {role} {email}')


if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=5000)
