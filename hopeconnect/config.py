"""
Environment-driven configuration for the HopeConnect site.

Every setting can be overridden with an environment variable carrying the
``HOPECONNECT_`` prefix, e.g. ``HOPECONNECT_DATABASE_URL``.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env(name, default=None):
    return os.environ.get(f'HOPECONNECT_{name}', default)


def env_flag(name, default='0'):
    return env(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = env('SECRET_KEY', 'dev-secret-key-change-me')
    SQLALCHEMY_DATABASE_URI = env('DATABASE_URL', f"sqlite:///{BASE_DIR / 'hopeconnect.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = env_flag('COOKIE_SECURE')

    UPLOAD_FOLDER = env('UPLOAD_FOLDER', str(BASE_DIR / 'uploads'))
    MAX_IMAGE_SIZE = int(env('MAX_IMAGE_SIZE', 5 * 1024 * 1024))
    MAX_DOCUMENT_SIZE = int(env('MAX_DOCUMENT_SIZE', 50 * 1024 * 1024))
    MAX_CONTENT_LENGTH = MAX_DOCUMENT_SIZE + 1024 * 1024

    # Resend's SMTP relay; the API key doubles as the password
    MAIL_SERVER = env('MAIL_SERVER', 'smtp.resend.com')
    MAIL_PORT = int(env('MAIL_PORT', 465))
    MAIL_USE_SSL = env_flag('MAIL_USE_SSL', '1')
    MAIL_USERNAME = env('MAIL_USERNAME', 'resend')
    MAIL_PASSWORD = env('MAIL_PASSWORD', os.environ.get('RESEND_API_KEY', ''))
    MAIL_DEFAULT_SENDER = env('MAIL_DEFAULT_SENDER', 'Events <onboarding@resend.dev>')
    MAIL_TIMEOUT = int(env('MAIL_TIMEOUT', 10))
    MAIL_SUPPRESS_SEND = env_flag('MAIL_SUPPRESS_SEND')

    # browsers calling /api/ from other origins
    CORS_ORIGINS = env('CORS_ORIGINS', '*')
    CORS_ALLOW_HEADERS = ['authorization', 'x-client-info', 'apikey', 'content-type']

    LOG_LEVEL = env('LOG_LEVEL', 'INFO')
    LOG_FILE = env('LOG_FILE', '')

    ORGANIZATION_NAME = env('ORGANIZATION_NAME', 'HopeConnect Foundation')
    CONTACT_EMAIL = env('CONTACT_EMAIL', 'hello@hopeconnect.org')
    CURRENCY_SYMBOL = env('CURRENCY_SYMBOL', '₹')


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = env('LOG_LEVEL', 'DEBUG')
    MAIL_SUPPRESS_SEND = env_flag('MAIL_SUPPRESS_SEND', '1')


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    MAIL_SUPPRESS_SEND = True
    LOG_FILE = ''


class ProductionConfig(Config):
    SESSION_COOKIE_SECURE = env_flag('COOKIE_SECURE', '1')


CONFIGS = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
