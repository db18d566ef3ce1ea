# backend/duka/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/duka.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///duka.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # The upstream auth gateway forwards the authenticated user id in this header
    AUTH_USER_HEADER = os.environ.get("AUTH_USER_HEADER", "X-User-Id")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Concurrency retry policy for lock/version conflicts
    RETRY_ATTEMPTS = int(os.environ.get("RETRY_ATTEMPTS", "3"))
    RETRY_BACKOFF_BASE = float(os.environ.get("RETRY_BACKOFF_BASE", "0.1"))

    # Restock report buckets (pairs)
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))
    HIGH_STOCK_THRESHOLD = int(os.environ.get("HIGH_STOCK_THRESHOLD", "50"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    RETRY_BACKOFF_BASE = 0.0
