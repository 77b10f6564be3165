import os
from datetime import datetime

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
MODEL = os.getenv("LIFEOS_MODEL", "claude-sonnet-4-5")
# Vision boards are drawn as SVG by a text model
IMAGE_MODEL = os.getenv("LIFEOS_IMAGE_MODEL", MODEL)
WEB_SEARCH_ENABLED = _env_bool("LIFEOS_WEB_SEARCH", True)

DATABASE_PATH = os.getenv("LIFEOS_DATABASE_PATH", "lifeos.db")
REMINDER_INTERVAL_SECONDS = _env_int("LIFEOS_REMINDER_INTERVAL_SECONDS", 60)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("LIFEOS_CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]
HOST = os.getenv("LIFEOS_HOST", "0.0.0.0")
PORT = _env_int("LIFEOS_PORT", 8000)
LOG_LEVEL = os.getenv("LIFEOS_LOG_LEVEL", "INFO").upper()


def api_key_configured() -> bool:
    return bool(ANTHROPIC_API_KEY) and ANTHROPIC_API_KEY != "your-api-key-here"


def today_iso() -> str:
    """Today's local date as YYYY-MM-DD."""
    return datetime.now().strftime("%Y-%m-%d")
