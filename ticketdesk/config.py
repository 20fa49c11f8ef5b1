# Role: Central configuration module. Loads .env into environment variables and computes runtime settings
# (DEBUG, backend URL/token, timeouts). Importers read ticketdesk.config.X so load_env() can run after import.

from __future__ import annotations

import logging
import os
from dotenv import load_dotenv

DEBUG: bool = False
BACKEND_BASE_URL: str = "http://127.0.0.1:4000"
BACKEND_TOKEN: str = ""
HTTP_TIMEOUT_SECONDS: float = 15.0
CURRENCY_SYMBOL: str = "£"
MAX_HISTORY_MESSAGES: int = 200

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def setup_logging(level: int | None = None) -> None:
    """
    Configure the root "ticketdesk" logger with a single console handler.
    Safe to call more than once (handlers are replaced, not duplicated).
    """
    if level is None:
        override = os.getenv("LOG_LEVEL", "").upper()
        level = getattr(logging, override, None) if override else None
        if not isinstance(level, int):
            level = logging.DEBUG if DEBUG else logging.INFO

    logger = logging.getLogger("ticketdesk")
    logger.setLevel(level)
    logger.handlers = []

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False


def load_env() -> None:
    """
    Load .env into os.environ, then recompute every setting.
    This keeps settings correct even if load_env() is called after import.
    """
    global DEBUG, BACKEND_BASE_URL, BACKEND_TOKEN, HTTP_TIMEOUT_SECONDS, CURRENCY_SYMBOL, MAX_HISTORY_MESSAGES
    load_dotenv()
    # Key line: accept common truthy values.
    DEBUG = os.getenv("DEBUG", "0").lower() in {"1", "true", "yes"}
    BACKEND_BASE_URL = os.getenv("BACKEND_BASE_URL", BACKEND_BASE_URL).rstrip("/")
    BACKEND_TOKEN = os.getenv("BACKEND_TOKEN", "")
    HTTP_TIMEOUT_SECONDS = _env_float("HTTP_TIMEOUT_SECONDS", 15.0)
    CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "£")
    MAX_HISTORY_MESSAGES = int(_env_float("MAX_HISTORY_MESSAGES", 200))
    setup_logging()
