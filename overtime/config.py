import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

DB_PATH = os.getenv("OVERTIME_DB_PATH", str(BASE_DIR / "data" / "overtime.db"))
TARGET_MINUTES = int(os.getenv("OVERTIME_TARGET_MINUTES", "480"))
BREAK_MINUTES = int(os.getenv("OVERTIME_BREAK_MINUTES", "60"))
BREAK_THRESHOLD_MINUTES = int(os.getenv("OVERTIME_BREAK_THRESHOLD_MINUTES", "360"))
MANDATORY_BREAK_MINUTES = int(os.getenv("OVERTIME_MANDATORY_BREAK_MINUTES", "30"))
TICK_SECONDS = float(os.getenv("OVERTIME_TICK_SECONDS", "1"))
LOCALE = os.getenv("OVERTIME_LOCALE", "de-DE")
LOG_LEVEL = os.getenv("OVERTIME_LOG_LEVEL", "INFO")
HOST = os.getenv("OVERTIME_HOST", "127.0.0.1")
PORT = int(os.getenv("OVERTIME_PORT", "8000"))

# Storage keys of the three persisted records
SETTINGS_KEY = "settings"
ENTRIES_KEY = "entries"
TIMER_STATE_KEY = "timerState"
STORAGE_KEYS = (SETTINGS_KEY, ENTRIES_KEY, TIMER_STATE_KEY)
