# backend/stockroom/config.py
from __future__ import annotations
import os
from datetime import timedelta


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockroom.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockroom.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie carries the signed-in user and the cart.
    # Idle sessions expire after 30 minutes and drop their cart with them.
    SESSION_COOKIE_NAME = "stockroom_session"
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    PERMANENT_SESSION_LIFETIME = timedelta(
        minutes=int(os.environ.get("SESSION_IDLE_MINUTES", "30"))
    )

    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "5"))
    STOCK_PAGE_SIZE = 10
    ACTIVITY_PAGE_SIZE = 20

    # Bounded retries for write conflicts on stock rows
    WRITE_RETRY_ATTEMPTS = int(os.environ.get("WRITE_RETRY_ATTEMPTS", "3"))
