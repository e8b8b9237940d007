"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')

    # Session Configuration (Production-safe defaults)
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')
    PERMANENT_SESSION_LIFETIME = 43200  # 12 hours, one shift

    # Identity provider writes the staff user id under this session key
    SESSION_USER_KEY = os.getenv('SESSION_USER_KEY', 'user_id')

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'pos')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'pos')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'pos')

        DATABASE_URL = (
            f"postgresql://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # Order commit
    ORDER_COMMIT_TIMEOUT = float(os.getenv('ORDER_COMMIT_TIMEOUT', '10'))  # seconds
    # When true, sales may drive tracked stock below zero
    ALLOW_NEGATIVE_STOCK = os.getenv('ALLOW_NEGATIVE_STOCK', 'false').lower() == 'true'
    ENFORCE_PAYMENT_TOTAL = os.getenv('ENFORCE_PAYMENT_TOTAL', 'false').lower() == 'true'

    # Stock
    LOW_STOCK_ALERT_LIMIT = int(os.getenv('LOW_STOCK_ALERT_LIMIT', '5'))  # rows on the alerts card

    # Real-time notifications (Redis Pub/Sub)
    REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    NOTIFICATIONS_ENABLED = os.getenv('NOTIFICATIONS_ENABLED', 'true').lower() == 'true'
    NOTIFICATIONS_CHANNEL_PREFIX = os.getenv('NOTIFICATIONS_CHANNEL_PREFIX', 'pos')

    # Error tracking
    SENTRY_DSN = os.getenv('SENTRY_DSN')
