"""
Runtime configuration for the maintenance validation service.

Values are read from the environment.  A ``.env`` file in the working
directory is loaded first so local development does not need exported
variables.
"""
import os

from dotenv import load_dotenv

load_dotenv()

DB_PATH = os.getenv("MAINTENANCE_DB_PATH", "maintenance.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOCALE = os.getenv("MAINTENANCE_LOCALE", "es").lower()

# Rule limits
FUTURE_TOLERANCE_MINUTES = int(os.getenv("FUTURE_TOLERANCE_MINUTES", "1"))
BACKFILL_WINDOW_DAYS = int(os.getenv("BACKFILL_WINDOW_DAYS", "30"))
SEQUENCE_WARNING_DAYS = int(os.getenv("SEQUENCE_WARNING_DAYS", "7"))
DESCRIPTION_MIN_LENGTH = int(os.getenv("DESCRIPTION_MIN_LENGTH", "10"))
DESCRIPTION_MAX_LENGTH = int(os.getenv("DESCRIPTION_MAX_LENGTH", "2000"))
