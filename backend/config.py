"""Runtime settings, read from the environment (and a local .env file)."""
import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_PATH = os.getenv("TASKPULSE_DB_PATH", "taskpulse.db")
# Busy timeout handed to sqlite3.connect; the store owns query timeouts
DATABASE_TIMEOUT = float(os.getenv("TASKPULSE_DB_TIMEOUT", "5.0"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("TASKPULSE_CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("TASKPULSE_LOG_LEVEL", "INFO").upper()

DEFAULT_TREND_DAYS = int(os.getenv("TASKPULSE_TREND_DAYS", "30"))
DEFAULT_TREND_WEEKS = int(os.getenv("TASKPULSE_TREND_WEEKS", "12"))
DEFAULT_TREND_MONTHS = int(os.getenv("TASKPULSE_TREND_MONTHS", "12"))

# Largest window a caller may ask for
MAX_TREND_DAYS = int(os.getenv("TASKPULSE_MAX_TREND_DAYS", "3650"))
MAX_TREND_WEEKS = int(os.getenv("TASKPULSE_MAX_TREND_WEEKS", "520"))
MAX_TREND_MONTHS = int(os.getenv("TASKPULSE_MAX_TREND_MONTHS", "120"))
