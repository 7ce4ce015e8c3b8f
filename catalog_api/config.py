import os

from dotenv import load_dotenv

load_dotenv()


def _as_bool(value, default=False):
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'dev_jwt_secret_key')  # key for signing and verifying JWT tokens
    JWT_ALGORITHM = os.getenv('JWT_ALGORITHM', 'HS256')
    JWT_EXPIRES_MINUTES = int(os.getenv('JWT_EXPIRES_MINUTES', '30'))  # tokens expire 30 min after login

    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///./users.db')  # basic users service

    RATE_LIMIT_WINDOW_SECONDS = int(os.getenv('RATE_LIMIT_WINDOW_SECONDS', str(15 * 60)))
    API_RATE_LIMIT = int(os.getenv('API_RATE_LIMIT', '100'))
    AUTH_RATE_LIMIT = int(os.getenv('AUTH_RATE_LIMIT', '5'))

    SEED_DATA = _as_bool(os.getenv('SEED_DATA'), default=True)
    ENVIRONMENT = os.getenv('ENVIRONMENT', 'development')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    VERSION = '1.0.0'
