"""
HopeConnect: public website and admin dashboard for a cancer-care nonprofit.

``create_app`` is the application factory; ``wsgi.py`` at the repository root
exposes the production instance.
"""

import logging
import logging.handlers
import os
from datetime import datetime

from flask import Flask, jsonify, render_template, request
from flask_cors import CORS
from flask_login import current_user
from flask_wtf.csrf import CSRFProtect
from werkzeug.exceptions import HTTPException

from hopeconnect.admin import admin_bp
from hopeconnect.auth import auth_bp, login_manager
from hopeconnect.cli import register_commands
from hopeconnect.config import CONFIGS
from hopeconnect.database import db
from hopeconnect.models import has_role
from hopeconnect.notifications import api_bp
from hopeconnect.public import public_bp
from hopeconnect.storage import storage_bp

csrf = CSRFProtect()


def configure_logging(app):
    """Stream logs to stderr, plus a rotating file when ``LOG_FILE`` is set."""
    formatter = logging.Formatter(
        fmt='%(asctime)s %(name)-22s %(levelname)-8s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)

    package_logger = logging.getLogger('hopeconnect')
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    package_logger.addHandler(stream_handler)

    if app.config.get('LOG_FILE'):
        file_handler = logging.handlers.RotatingFileHandler(
            app.config['LOG_FILE'],
            maxBytes=10 * 1024 * 1024,
            backupCount=5
        )
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    if not app.debug:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)


def wants_json():
    return request.path.startswith('/api/') or request.accept_mimetypes.best == 'application/json'


def configure_error_handlers(app):
    def render_error(status, title, message):
        if wants_json():
            return jsonify({'error': title, 'message': message, 'status_code': status}), status
        return render_template('errors/error.html', status=status, title=title, message=message), status

    @app.errorhandler(403)
    def forbidden(error):
        app.logger.warning(f"Forbidden access attempt from {request.remote_addr} to {request.path}")
        return render_error(403, 'Access Denied',
                            'You do not have permission to access the admin dashboard.')

    @app.errorhandler(404)
    def not_found(error):
        return render_error(404, 'Page Not Found', 'The page you are looking for does not exist.')

    @app.errorhandler(413)
    def too_large(error):
        return render_error(413, 'File Too Large', 'The uploaded file is too large.')

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f"Internal server error: {error}", exc_info=True)
        return render_error(500, 'Something Went Wrong', 'An unexpected error occurred.')

    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            if wants_json():
                return render_error(e.code, e.name, e.description)
            return e
        db.session.rollback()
        app.logger.error(f"Unhandled exception: {e}", exc_info=True)
        return render_error(500, 'Something Went Wrong', 'An unexpected error occurred.')


def configure_template_helpers(app):
    @app.template_filter('label')
    def label(value):
        """'survivor-stories' -> 'Survivor Stories'."""
        return str(value or '').replace('-', ' ').replace('_', ' ').title()

    @app.template_filter('longdate')
    def longdate(value):
        if not value:
            return ''
        return f'{value:%A, %B} {value.day}, {value.year}'

    @app.template_filter('shortdate')
    def shortdate(value):
        return value.strftime('%Y-%m-%d') if value else ''

    @app.context_processor
    def inject_globals():
        return {
            'year': datetime.now().year,
            'organization': app.config['ORGANIZATION_NAME'],
            'is_admin': has_role(current_user, 'admin'),
        }


def create_app(config=None):
    """
    Application factory.

    Args:
        config: a name from ``CONFIGS`` ('development', 'testing', 'production'),
            a config object, or None to read ``HOPECONNECT_ENV``.
    """
    app = Flask(__name__)

    config = config or os.environ.get('HOPECONNECT_ENV', 'production')
    if isinstance(config, str):
        config = CONFIGS[config]
    app.config.from_object(config)

    configure_logging(app)

    db.init_app(app)
    login_manager.init_app(app)
    csrf.init_app(app)
    csrf.exempt(api_bp)

    CORS(app,
         resources={r'/api/*': {'origins': app.config['CORS_ORIGINS']}},
         allow_headers=app.config['CORS_ALLOW_HEADERS'])

    app.register_blueprint(public_bp)
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(storage_bp)

    configure_error_handlers(app)
    configure_template_helpers(app)
    register_commands(app)

    @app.route('/health')
    def health_check():
        return jsonify({'status': 'healthy', 'timestamp': datetime.utcnow().isoformat()})

    app.logger.info(f"HopeConnect configured with {getattr(config, '__name__', type(config).__name__)}")
    return app
