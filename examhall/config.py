"""Application configuration and constants."""
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'examhall.db'}"
)

# Authentication (tokens are issued elsewhere, we only verify them)
SECRET_KEY = os.environ.get(
    "SECRET_KEY",
    "CHANGE_ME_IN_PRODUCTION_USE_openssl_rand_hex_32"
)
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = _parse_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 240)

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Global window defaults (used when the settings row is first created)
DEFAULT_DURATION_MINUTES = _parse_int_env("DEFAULT_DURATION_MINUTES", 45)
DEFAULT_QUESTIONS_PER_SESSION = _parse_int_env("DEFAULT_QUESTIONS_PER_SESSION", 30)
DEFAULT_PASSING_PERCENTAGE = _parse_int_env("DEFAULT_PASSING_PERCENTAGE", 50)
DEFAULT_INSTRUCTIONS = (
    "Read each question carefully and choose one answer. "
    "Questions are answered in order and you have a single attempt."
)
DEFAULT_WELCOME_MESSAGE = "Welcome to the examination."

# Bounds
MIN_DURATION_MINUTES = 1
MAX_DURATION_MINUTES = 300
MIN_QUESTIONS_PER_SESSION = 1
MAX_QUESTIONS_PER_SESSION = 100
MAX_INSTRUCTIONS_LENGTH = 2000
MAX_WELCOME_MESSAGE_LENGTH = 500

MIN_OPTIONS = 2
MAX_OPTIONS = 6
QUESTION_FIELD_LIMITS = {
    "title": 200,
    "description": 2000,
    "topic": 100,
    "explanation": 1000,
}

# Stratified sampling shares, hard takes the remainder
EASY_SHARE_PERCENT = 40
MEDIUM_SHARE_PERCENT = 40
