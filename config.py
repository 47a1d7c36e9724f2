"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


# ── Telegram ──────────────────────────────────────────────
TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

# ── Gemini AI ─────────────────────────────────────────────
GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "finance_navigator")
DB_USER: str = os.getenv("DB_USER", "navigator_user")
DB_PASS: str = os.getenv("DB_PASS", "")

DATABASE_URL: str = (
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
)

# Documents of every user live under artifacts/<APP_ID>/users/<user_id>
APP_ID: str = os.getenv("APP_ID", "finance-dashboard-v1")

# ── Security ──────────────────────────────────────────────
_raw_ids = os.getenv("ALLOWED_USER_IDS", "")
ALLOWED_USER_IDS: list[int] = (
    [int(uid.strip()) for uid in _raw_ids.split(",") if uid.strip()]
    if _raw_ids
    else []
)

# ── Rate Limiting ─────────────────────────────────────────
RATE_LIMIT_MESSAGES: int = int(os.getenv("RATE_LIMIT_MESSAGES", "30"))
RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

# ── Currency ──────────────────────────────────────────────
HOME_CURRENCY: str = "TWD"
FOREIGN_CURRENCY: str = "USD"
DEFAULT_USD_TWD_RATE: float = float(os.getenv("DEFAULT_USD_TWD_RATE", "32.8"))
FX_API_URL: str = os.getenv("FX_API_URL", "https://api.exchangerate-api.com/v4/latest/USD")
FX_CACHE_TTL_SECONDS: int = int(os.getenv("FX_CACHE_TTL_SECONDS", "3600"))
# After a failed fetch the API is not asked again until this many seconds pass
FX_RETRY_SECONDS: int = int(os.getenv("FX_RETRY_SECONDS", "300"))

# ── Recurring transactions ────────────────────────────────
RECURRING_MARKER: str = "(定額)"
REALTIME_POLL_SECONDS: int = int(os.getenv("REALTIME_POLL_SECONDS", "5"))

# ── GitHub mirror (optional) ──────────────────────────────
GITHUB_TOKEN: str = os.getenv("GITHUB_TOKEN", "")
GITHUB_MIRROR_REPO: str = os.getenv("GITHUB_MIRROR_REPO", "")
GITHUB_MIRROR_PATH: str = os.getenv("GITHUB_MIRROR_PATH", "data.json")
GITHUB_MIRROR_BRANCH: str = os.getenv("GITHUB_MIRROR_BRANCH", "main")
