import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./portal.db")

# Auth
FIREBASE_CREDENTIALS_PATH = os.getenv(
    "FIREBASE_CREDENTIALS_PATH",
    os.path.join(BASE_DIR, "firebase-service-account.json")
)
DEVELOPMENT_MODE = os.getenv("DEVELOPMENT_MODE", "false").lower() in ("1", "true", "yes")

# School wall clock used for timeline status
SCHOOL_TIMEZONE = os.getenv("SCHOOL_TIMEZONE", "America/Sao_Paulo")

# Timeline
TIMELINE_CACHE_TTL_SECONDS = int(os.getenv("TIMELINE_CACHE_TTL_SECONDS", "0"))
TIMELINE_REFRESH_SECONDS = int(os.getenv("TIMELINE_REFRESH_SECONDS", "60"))
TIMELINE_DISPLAY_SETTING_KEY = "daily_timeline_display_mode"
DEFAULT_DISPLAY_MODE = "graph"
DISPLAY_MODES = ("graph", "card", "disabled")

# Token "role" claims allowed to use the staff editor
STAFF_ROLES = ("staff", "admin")

# Schools whose editors (and unsaved drafts) stay in memory
EDITOR_CACHE_SIZE = int(os.getenv("EDITOR_CACHE_SIZE", "64"))

# Lesson plans switch to the next school day from this hour on
NEXT_DAY_CUTOFF_HOUR = int(os.getenv("NEXT_DAY_CUTOFF_HOUR", "13"))
