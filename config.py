import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = Path(os.getenv("ENV_PATH", BASE_DIR / ".env"))
load_dotenv(ENV_PATH, override=True)


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def _parse_float(value: Optional[str], default: float) -> float:
    try:
        return float(str(value).strip().replace(",", "."))
    except (TypeError, ValueError):
        return default


def _resolve_path(raw: Optional[str], default: Path) -> Path:
    if not raw:
        return default
    path = Path(raw)
    if path.is_absolute() or (len(raw) >= 2 and raw[1] == ":"):
        return path
    return BASE_DIR / path


BOT_TOKEN = os.getenv("BOT_TOKEN", "").strip()
DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
REDIS_URL = os.getenv("REDIS_URL", "").strip()
BOT_MODE = os.getenv("BOT_MODE", "polling").strip().lower()
WEBHOOK_URL = os.getenv("WEBHOOK_URL", "").strip()
WEBHOOK_PATH = os.getenv("WEBHOOK_PATH", "/telegram").strip()
WEBHOOK_SECRET_TOKEN = os.getenv("WEBHOOK_SECRET_TOKEN", "").strip()
WEBHOOK_LISTEN = os.getenv("WEBHOOK_LISTEN", "0.0.0.0").strip()
WEBHOOK_PORT = _parse_int(os.getenv("WEBHOOK_PORT"), 8080)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip()
LOG_DIR = _resolve_path(os.getenv("LOG_DIR"), BASE_DIR / "logs")
LOG_RUNTIME_FILE = _resolve_path(os.getenv("LOG_RUNTIME_FILE"), LOG_DIR / "runtime.log")
LOG_MENU_FILE = _resolve_path(os.getenv("LOG_MENU_FILE"), LOG_DIR / "menu.log")

# Key-value retention windows, seconds.
CALLBACK_DATA_TTL_SEC = max(1, _parse_int(os.getenv("CALLBACK_DATA_TTL_SEC"), 3600))
PRIVATE_CHAT_CACHE_TTL_SEC = max(
    1, _parse_int(os.getenv("PRIVATE_CHAT_CACHE_TTL_SEC"), 86400)
)

ID_WORKER_ID = _parse_int(os.getenv("ID_WORKER_ID"), 1)

DEFAULT_GAMEPLAY_TYPE = os.getenv("DEFAULT_GAMEPLAY_TYPE", "quick_there").strip()
DEFAULT_GAME_DRAW_CYCLE = max(1, _parse_int(os.getenv("DEFAULT_GAME_DRAW_CYCLE"), 1))
MAX_GAME_DRAW_CYCLE = max(1, _parse_int(os.getenv("MAX_GAME_DRAW_CYCLE"), 1440))
DEFAULT_SIMPLE_ODDS = _parse_float(os.getenv("DEFAULT_SIMPLE_ODDS"), 1.95)
DEFAULT_TRIPLET_ODDS = _parse_float(os.getenv("DEFAULT_TRIPLET_ODDS"), 30.0)

SEND_MAX_RETRIES = max(0, _parse_int(os.getenv("SEND_MAX_RETRIES"), 3))
