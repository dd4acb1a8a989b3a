# axiss_nav/config.py

import os
import logging
import secrets

# ------------------------------------------------------------------------------
# App
# ------------------------------------------------------------------------------
APP_TITLE = os.getenv("APP_TITLE", "Axiss Nav")
SECRET_KEY = os.getenv("SECRET_KEY", secrets.token_hex(32))
BASE_URL = os.getenv("BASE_URL", "http://localhost:8000")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DB_URL = os.getenv("DATABASE_URL") or os.getenv("DB_URL") or "sqlite:///./axiss_nav.db"
IS_SQLITE = DB_URL.startswith("sqlite:")

# ------------------------------------------------------------------------------
# Scraping
# ------------------------------------------------------------------------------
FETCH_TIMEOUT_SEC = float(os.getenv("FETCH_TIMEOUT_SEC", "10.0"))
ALLOW_PRIVATE_FETCH = os.getenv("ALLOW_PRIVATE_FETCH", "").lower() in ("1", "true", "yes")
ANALYSIS_CACHE_TTL_SEC = float(os.getenv("ANALYSIS_CACHE_TTL_SEC", "300"))
CACHE_CLEANUP_INTERVAL_SEC = float(os.getenv("CACHE_CLEANUP_INTERVAL_SEC", "60"))

# ------------------------------------------------------------------------------
# AI providers (first one with a key wins)
# ------------------------------------------------------------------------------
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()
DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY", "").strip()
DEEPSEEK_MODEL = os.getenv("DEEPSEEK_MODEL", "deepseek-chat").strip()
CLAUDE_API_KEY = os.getenv("CLAUDE_API_KEY", "").strip()
CLAUDE_MODEL = os.getenv("CLAUDE_MODEL", "claude-3-5-sonnet-latest").strip()
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "").strip()
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash").strip()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
