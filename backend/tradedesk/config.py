# backend/tradedesk/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/tradedesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///tradedesk.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # bcrypt cost factor; tests lower it to keep fixtures fast
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Order numbering: ORD-YYYYMM-0001
    ORDER_NUMBER_PREFIX = os.environ.get("ORDER_NUMBER_PREFIX", "ORD")
    ORDER_NUMBER_PAD = 4

    # Opt-in order lifecycle behaviour (both off = any status may follow any other)
    ORDER_STRICT_STATUS_TRANSITIONS = _env_flag("ORDER_STRICT_STATUS_TRANSITIONS")
    ORDER_CANCEL_RETURNS_STOCK = _env_flag("ORDER_CANCEL_RETURNS_STOCK")

    # BATCHES: sum of Stock.quantity_available
    # LEDGER: batches plus every stock transaction not tied to a batch (sales, returns)
    STOCK_AVAILABILITY_MODE = os.environ.get("STOCK_AVAILABILITY_MODE", "BATCHES").upper()

    DB_RETRY_ATTEMPTS = int(os.environ.get("DB_RETRY_ATTEMPTS", "3"))
    DB_RETRY_BACKOFF = float(os.environ.get("DB_RETRY_BACKOFF", "0.1"))

    # Browser origins allowed to call the API (comma separated)
    CORS_ORIGINS = [
        o.strip()
        for o in os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
        if o.strip()
    ]
