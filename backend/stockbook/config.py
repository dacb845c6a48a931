# backend/stockbook/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockbook.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockbook.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Off by default: sales may oversell. When on, sales run the same
    # in-transaction floor check as unpaid invoices.
    ENFORCE_SALE_STOCK_FLOOR = _env_flag("ENFORCE_SALE_STOCK_FLOOR", False)

    # Optimistic concurrency retry for atomic units
    TRANSACTION_RETRY_ATTEMPTS = int(os.environ.get("TRANSACTION_RETRY_ATTEMPTS", "3"))
    TRANSACTION_RETRY_BACKOFF = float(os.environ.get("TRANSACTION_RETRY_BACKOFF", "0.1"))

    # Upper bound for long-poll change feed requests
    FEED_MAX_WAIT_SECONDS = float(os.environ.get("FEED_MAX_WAIT_SECONDS", "25"))
    FEED_POLL_INTERVAL_SECONDS = 0.5

    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    )

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    ENFORCE_SALE_STOCK_FLOOR = False
    TRANSACTION_RETRY_BACKOFF = 0.0
    FEED_MAX_WAIT_SECONDS = 0.0
    FEED_POLL_INTERVAL_SECONDS = 0.0
