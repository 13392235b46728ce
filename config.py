# config.py
# Role: Central configuration for the budget tracker.
#       Reads environment variables (a local .env file is loaded first)
#       and exposes plain module-level settings.

"""
Configuration values with environment variable overrides.

- DATABASE_URL         SQLAlchemy URL (default: SQLite under <root>/database)
- SESSION_SECRET       key used to sign the session cookie
- BUDGET_ADVISOR_MODEL model name for the AI budget advisor
- DEFAULT_CURRENCY     currency code for new users
- LOG_LEVEL            root log level
- MAX_AVATAR_BYTES     upper bound for profile pictures
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Base directory of the project (where this module lives)
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Folder for the default SQLite DB
DB_DIR = os.path.join(BASE_DIR, "database")

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(DB_DIR, 'finance.db')}")

SESSION_SECRET = os.getenv("SESSION_SECRET", "change-me-in-production")

BUDGET_ADVISOR_MODEL = os.getenv("BUDGET_ADVISOR_MODEL", "gpt-4.1-mini")

DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD").strip().upper() or "USD"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

MAX_AVATAR_BYTES = int(os.getenv("MAX_AVATAR_BYTES", str(100 * 1024)))

# Templates and static assets live inside the app package
TEMPLATES_DIR = os.path.join(BASE_DIR, "app", "templates")
STATIC_DIR = os.path.join(BASE_DIR, "app", "static")


def is_sqlite(url: str = DATABASE_URL) -> bool:
    return url.startswith("sqlite")
