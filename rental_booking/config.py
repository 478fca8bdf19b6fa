import os

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = LOG_LEVEL == "DEBUG"

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise ValueError("DATABASE_URL must be set in the environment")

# Postgres schema for all tables; leave unset for SQLite
SCHEMA = os.getenv("DB_SCHEMA") or None

ALLOWED_ORIGINS: list[str] = [
    origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",") if origin.strip()
]

BOOKING_LOCK_TIMEOUT_SECONDS = float(os.getenv("BOOKING_LOCK_TIMEOUT_SECONDS", "5.0"))

PAYMENT_WEBHOOK_USERNAME = os.getenv("PAYMENT_WEBHOOK_USERNAME")
PAYMENT_WEBHOOK_PASSWORD = os.getenv("PAYMENT_WEBHOOK_PASSWORD")

# Basic auth for the listings service that pushes item owner and daily price
CATALOG_SYNC_USERNAME = os.getenv("CATALOG_SYNC_USERNAME")
CATALOG_SYNC_PASSWORD = os.getenv("CATALOG_SYNC_PASSWORD")

CALENDAR_MAX_WINDOW_DAYS = int(os.getenv("CALENDAR_MAX_WINDOW_DAYS", "366"))


def table_name(name: str) -> str:
    """Return a table reference qualified with SCHEMA when one is configured."""
    return f"{SCHEMA}.{name}" if SCHEMA else name
