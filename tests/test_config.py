import logging

from backend.config import INSECURE_JWT_SECRET, Settings
from backend.core.security import log_security_warnings


def test_settings_defaults(monkeypatch):
    for key in ("DATABASE_URL", "JWT_SECRET", "ENFORCE_STATUS_TRANSITIONS", "POLL_INTERVAL_SECONDS"):
        monkeypatch.delenv(key, raising=False)

    settings = Settings(_env_file=None)

    assert settings.database_url.startswith("sqlite:///")
    assert settings.jwt_algorithm == "HS256"
    assert settings.access_token_expire_minutes == 1440
    assert settings.enforce_status_transitions is False
    assert settings.poll_interval_seconds == 30


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("ENFORCE_STATUS_TRANSITIONS", "true")
    monkeypatch.setenv("JWT_SECRET", "s3cr3t")
    monkeypatch.setenv("CORS_ORIGINS", '["https://gate.example.com"]')

    settings = Settings(_env_file=None)

    assert settings.enforce_status_transitions is True
    assert settings.jwt_secret == "s3cr3t"
    assert settings.cors_origins == ["https://gate.example.com"]


def test_security_warnings(caplog):
    with caplog.at_level(logging.WARNING, logger="backend.core.security"):
        log_security_warnings(INSECURE_JWT_SECRET, "sqlite:///backend/vpms_dev.db")
    assert len(caplog.records) == 2

    caplog.clear()
    with caplog.at_level(logging.WARNING, logger="backend.core.security"):
        log_security_warnings("strong-secret", "postgresql://db/vpms")
    assert caplog.records == []
