"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv
from sqlalchemy.pool import StaticPool

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    JSON_SORT_KEYS = False

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'deepstaq')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'deepstaq')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'deepstaq')

        DATABASE_URL = (
            f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,  # Enable connection health checks
        'pool_size': int(os.getenv('DB_POOL_SIZE', '10')),
        'max_overflow': int(os.getenv('DB_MAX_OVERFLOW', '20')),
    }

    # Identity provider tokens (Bearer). The provider issues them, we only verify.
    AUTH_JWT_SECRET = os.getenv('AUTH_JWT_SECRET', SECRET_KEY)
    AUTH_JWT_ALGORITHMS = [
        alg.strip() for alg in os.getenv('AUTH_JWT_ALGORITHMS', 'HS256').split(',') if alg.strip()
    ]
    AUTH_JWT_AUDIENCE = os.getenv('AUTH_JWT_AUDIENCE') or None
    AUTH_JWT_ISSUER = os.getenv('AUTH_JWT_ISSUER') or None

    # Admin portal (HTTP Basic)
    ADMIN_EMAIL = os.getenv('ADMIN_EMAIL')
    ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD')

    # Stock alert defaults, used when a godown has no alert settings saved
    DEFAULT_EMPTY_THRESHOLD = os.getenv('DEFAULT_EMPTY_THRESHOLD', '0')
    DEFAULT_LOW_THRESHOLD = os.getenv('DEFAULT_LOW_THRESHOLD', '3')


class TestConfig(Config):
    """Configuration for the pytest suite (in-memory SQLite)."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False},
        'poolclass': StaticPool,
    }
    AUTH_JWT_SECRET = 'test-jwt-secret-with-enough-length-for-hs256'
    AUTH_JWT_ALGORITHMS = ['HS256']
    AUTH_JWT_AUDIENCE = None
    AUTH_JWT_ISSUER = None
    ADMIN_EMAIL = 'admin@deepstaq.test'
    ADMIN_PASSWORD = 'admin-pass'
