import os
from pathlib import Path

class Config:
    """Base configuration - shared across all environments"""

    # Security
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECURITY_PASSWORD_SALT = os.environ.get('SECURITY_PASSWORD_SALT', 'dev-salt')

    # Flask-Security settings
    SECURITY_REGISTERABLE = False
    SECURITY_PASSWORD_HASH = 'pbkdf2_sha512'
    SECURITY_TOKEN_AUTHENTICATION_HEADER = 'Authentication-Token'
    SECURITY_TOKEN_AUTHENTICATION_KEY = 'auth_token'
    SECURITY_TRACKABLE = True
    SECURITY_API_ENABLED = True
    SECURITY_URL_PREFIX = "/api/auth"
    WTF_CSRF_ENABLED = False
    SECURITY_CSRF_PROTECT_MECHANISMS = []
    SECURITY_CSRF_IGNORE_UNAUTH_ENDPOINTS = True
    SESSION_COOKIE_HTTPONLY = True

    # JSON API configurations
    SECURITY_RENDER_AS_JSON = True
    SECURITY_JSON = True

    # Weekly import uploads
    MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
    MAX_ROWS_PER_FILE = 5000
    ALLOWED_FILE_EXTENSIONS = {'.xlsx', '.xls', '.csv'}

    # Business settings
    DISPLAY_TIMEZONE = os.environ.get('DISPLAY_TIMEZONE', 'Europe/Lisbon')
    VAT_RATE = float(os.environ.get('VAT_RATE', '0.06'))
    INVITE_EXPIRY_DAYS = 30

    BASE_DIR = os.path.dirname(os.path.abspath(__file__))
    CORS_ORIGINS = os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:3000,http://127.0.0.1:3000,https://conduz.pt'
    ).split(',')

class DevConfig(Config):
    """Development configuration"""
    DEBUG = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = False
    FLASK_HOST = '0.0.0.0'
    FLASK_PORT = 5000

    STORAGE_PATH = str(Path(__file__).resolve().parents[1] / "frota360-storage" / "database")
    DB_PATH = os.path.join(STORAGE_PATH, 'frota360.db')
    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI', f"sqlite:///{DB_PATH}")

class StagingConfig(Config):
    """Staging configuration"""
    DEBUG = False
    SESSION_COOKIE_SAMESITE = 'None'
    SESSION_COOKIE_SECURE = True
    FLASK_HOST = '::'
    FLASK_PORT = 5000

    STORAGE_PATH = str(Path(__file__).resolve().parents[1] / "frota360-storage" / "database")
    DB_PATH = os.path.join(STORAGE_PATH, 'frota360.db')
    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI', f"sqlite:///{DB_PATH}")

class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    SESSION_COOKIE_SAMESITE = 'None'
    SESSION_COOKIE_SECURE = True
    FLASK_HOST = '::'
    FLASK_PORT = 5000

    # Production database - MUST be set via environment
    SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI')

class TestConfig(Config):
    """In-memory database, no rate limits"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    RATELIMIT_ENABLED = False
    SECURITY_PASSWORD_HASH = 'pbkdf2_sha512'

CONFIG_BY_NAME = {
    'development': DevConfig,
    'staging': StagingConfig,
    'production': ProductionConfig,
    'testing': TestConfig,
}
