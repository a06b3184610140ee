from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# DB SQLite su file nella root del progetto (accanto a streamlit_app.py)
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{PROJECT_ROOT / 'clinic.sqlite'}")
DB_ECHO = _get_bool(os.getenv("DB_ECHO"), default=False)

# In produzione: mettila in variabile d'ambiente
JWT_SECRET = os.getenv("JWT_SECRET", "CHANGE_ME_DEV_SECRET")
JWT_ALG = "HS256"
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "60"))

API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")

# "local": login verificato direttamente sul DB; "api": login via POST /api/auth/login
AUTH_BACKEND = os.getenv("AUTH_BACKEND", "local").strip().lower()

SEED_ON_STARTUP = _get_bool(os.getenv("SEED_ON_STARTUP"), default=True)

# ogni quanti secondi lo store rilegge il DB per le scritture di altri processi (0 = mai)
LIVE_POLL_SECONDS = float(os.getenv("LIVE_POLL_SECONDS", "2"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging() -> None:
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
