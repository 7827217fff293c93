import os
from pathlib import Path
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent
load_dotenv(BASE_DIR / ".env")

def _database_url():
    url = os.environ.get("DATABASE_URL")
    if url and url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url or f"sqlite:///{(BASE_DIR / 'academy.db').as_posix()}"

class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://localhost:8080").split(",")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FILE = os.environ.get("LOG_FILE")
    DEFAULT_PASSWORD = os.environ.get("DEFAULT_PASSWORD", "123456")
    OWNER_USERNAME = os.environ.get("OWNER_USERNAME", "owner")
    OWNER_PASSWORD = os.environ.get("OWNER_PASSWORD", "owner123")
    EXAM_GRACE_SECONDS = int(os.environ.get("EXAM_GRACE_SECONDS", "30"))
    TAB_SWITCH_REPORT_THRESHOLD = int(os.environ.get("TAB_SWITCH_REPORT_THRESHOLD", "3"))
    SEAT_ROWS = int(os.environ.get("SEAT_ROWS", "5"))
    SEATS_PER_ROW = int(os.environ.get("SEATS_PER_ROW", "6"))

class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "WARNING"
    LOG_FILE = None
    DEFAULT_PASSWORD = "123456"
    OWNER_USERNAME = "owner"
    OWNER_PASSWORD = "owner123"
    EXAM_GRACE_SECONDS = 30
    TAB_SWITCH_REPORT_THRESHOLD = 3
    SEAT_ROWS = 2
    SEATS_PER_ROW = 3
