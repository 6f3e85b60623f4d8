import os
from dotenv import load_dotenv

load_dotenv()


def _csv(value):
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    # Secret key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    # Session cookie shared with the auth service that sets user_id
    SESSION_COOKIE_NAME = "settleup_session"
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    CORS_ORIGINS = _csv(os.environ.get("CORS_ORIGINS", "*"))

    # Database config (defaults allow local run without crashing)
    DB_HOST = os.environ.get("DB_HOST", "localhost")
    DB_PORT = int(os.environ.get("DB_PORT", 3306))
    DB_USER = os.environ.get("DB_USER", "root")
    DB_PASSWORD = os.environ.get("DB_PASSWORD", "")
    DB_NAME = os.environ.get("DB_NAME", "settleup")
    DB_POOL_SIZE = int(os.environ.get("DB_POOL_SIZE", 10))

    # Every computation runs in a single currency
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "USD").upper()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")

config = Config()
