import os
from pathlib import Path

ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

_default_migrations = Path(__file__).resolve().parents[1] / "migrations"
MIGRATIONS_DIR = Path(os.getenv("MIGRATIONS_DIR", str(_default_migrations)))

# Option keys look like "opt_red_1a2b3c4d"; changing any of these re-keys
# every simple-array question created afterwards.
OPTION_KEY_PREFIX = os.getenv("OPTION_KEY_PREFIX", "opt")
OPTION_KEY_SLUG_MAX_LENGTH = int(os.getenv("OPTION_KEY_SLUG_MAX_LENGTH", "30"))
OPTION_KEY_HASH_LENGTH = int(os.getenv("OPTION_KEY_HASH_LENGTH", "8"))
OPTION_KEY_MAX_LENGTH = int(os.getenv("OPTION_KEY_MAX_LENGTH", "100"))

QUESTION_TEXT_MAX_LENGTH = int(os.getenv("QUESTION_TEXT_MAX_LENGTH", "5000"))
FORM_TITLE_MAX_LENGTH = int(os.getenv("FORM_TITLE_MAX_LENGTH", "255"))
STATS_PAGE_SIZE = int(os.getenv("STATS_PAGE_SIZE", "1000"))

DB_WAIT_ATTEMPTS = int(os.getenv("DB_WAIT_ATTEMPTS", "20"))
DB_WAIT_DELAY_SECONDS = float(os.getenv("DB_WAIT_DELAY_SECONDS", "1.5"))
