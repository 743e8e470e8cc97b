# backend/bizledger/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/bizledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///bizledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_JSON = _env_flag("LOG_JSON", False)

    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = int(os.environ.get("SESSION_IDLE_TIMEOUT_HOURS", "2"))

    # Partners sign themselves up from the login screen
    ALLOW_SELF_REGISTRATION = _env_flag("ALLOW_SELF_REGISTRATION", True)

    # Undoing a sale whose product was deleted recreates a stub product
    RESTORE_DELETED_PRODUCT_ON_UNDO = _env_flag("RESTORE_DELETED_PRODUCT_ON_UNDO", True)

    RECENT_SALES_DAYS = int(os.environ.get("RECENT_SALES_DAYS", "7"))

    DEFAULT_ADMIN_PASSWORD = os.environ.get("DEFAULT_ADMIN_PASSWORD", "Password123!")

    # Bcrypt cost factor (tests lower it)
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    APP_VERSION = "1.0.0"
