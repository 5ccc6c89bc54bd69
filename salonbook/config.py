"""Configuration objects loaded by ``create_app``."""
from __future__ import annotations

import os


def _env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default) in {"1", "true", "True"}


class Config:
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///salonbook.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # All scheduled dates and times are wall-clock values in this zone.
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE", "America/Sao_Paulo")

    MAIL_SERVER = os.environ.get("MAIL_SERVER")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", 587))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_USE_TLS = _env_flag("MAIL_USE_TLS", "1")
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER", "no-reply@saloes.app")
    MAIL_TIMEOUT_SECONDS = 10

    REMINDER_DEDUPE_ENABLED = _env_flag("REMINDER_DEDUPE_ENABLED", "1")
    REMINDER_RETRY_ATTEMPTS = int(os.environ.get("REMINDER_RETRY_ATTEMPTS", 3))
    REMINDER_RETRY_BACKOFF_SECONDS = float(os.environ.get("REMINDER_RETRY_BACKOFF_SECONDS", 1.0))
    REMINDER_SWEEP_TIMEOUT_SECONDS = float(os.environ.get("REMINDER_SWEEP_TIMEOUT_SECONDS", 300))
    REMINDER_LEASE_SECONDS = int(os.environ.get("REMINDER_LEASE_SECONDS", 900))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    MAIL_SERVER = None
    REMINDER_RETRY_BACKOFF_SECONDS = 0.0
