"""
Runtime configuration for the Smlekha backend.
Values come from the environment (optionally a .env file).
"""
import os
import logging
from logging.handlers import RotatingFileHandler
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()


def _int_env(name, default):
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


# --- DATABASE ---
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./smlekha.db")

# --- API ---
API_PREFIX = "/smlekha"
API_TOKEN = os.getenv("API_TOKEN") or None

# --- AUTH (JWT for the admin dashboard) ---
JWT_SECRET = os.getenv("JWT_SECRET") or None
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = _int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 1440)  # 24 hours
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD") or None
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]

# --- LEDGER DEFAULTS ---
DEFAULT_MONTHLY_RENT = Decimal(os.getenv("DEFAULT_MONTHLY_RENT", "1600"))
PAYMENT_DUE_DAYS = _int_env("PAYMENT_DUE_DAYS", 30)

# --- PAGINATION ---
DEFAULT_PAGE_SIZE = _int_env("DEFAULT_PAGE_SIZE", 10)
MAX_PAGE_SIZE = _int_env("MAX_PAGE_SIZE", 100)

# --- LOGGING ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "[%(asctime)s] %(levelname)s in %(module)s: %(message)s")
LOG_FILE = os.getenv("LOG_FILE") or None


def configure_logging():
    """
    Attach a stream handler (and a rotating file handler when LOG_FILE is set)
    to the root logger. Safe to call more than once.
    """
    level = getattr(logging, LOG_LEVEL, logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)
    # Prevent duplicate log entries on reload
    root.handlers.clear()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if LOG_FILE:
        file_handler = RotatingFileHandler(LOG_FILE, maxBytes=1_000_000, backupCount=5)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
