"""Unit tests for the core configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings
from schemas.requests import AuditOptions


def test_settings_defaults(monkeypatch):
    """Test that Settings initializes with expected defaults."""
    for name in ("CPU_SLOWDOWN_MULTIPLIER", "DEFAULT_INTERVAL_DAYS", "DEFAULT_LIFETIME_DAYS"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)

    assert settings.lighthouse_path == "lighthouse"
    assert settings.cpu_slowdown_multiplier == 4.0
    assert settings.default_interval_days == 30
    assert settings.default_lifetime_days == 90
    assert settings.chrome_flags == "--headless --no-sandbox"


def test_settings_with_env_vars(monkeypatch):
    """Test that Settings properly loads values from environment variables."""
    monkeypatch.setenv("DATABASE_PATH", "/var/lib/lh/audits.sqlite")
    monkeypatch.setenv("CPU_SLOWDOWN_MULTIPLIER", "2")
    monkeypatch.setenv("DEFAULT_INTERVAL_DAYS", "7")

    settings = Settings()

    assert settings.database_path == "/var/lib/lh/audits.sqlite"
    assert settings.cpu_slowdown_multiplier == 2.0
    assert settings.default_interval_days == 7


def test_settings_validation(monkeypatch):
    """Out-of-range values are rejected at load time."""
    monkeypatch.setenv("DEFAULT_LIFETIME_DAYS", "0")

    with pytest.raises(ValidationError):
        Settings()


def test_audit_options_from_settings(monkeypatch):
    monkeypatch.setenv("CHROME_FLAGS", "--headless=new --disable-gpu")
    monkeypatch.setenv("AUDIT_TIMEOUT", "120")

    options = AuditOptions.from_settings(Settings(), budget_path="input/budget.json")

    assert options.chrome_flags == ["--headless=new", "--disable-gpu"]
    assert options.audit_timeout == 120.0
    assert options.budget_path == "input/budget.json"


def test_get_settings_singleton():
    """Test that get_settings returns the same instance each time."""
    settings1 = get_settings()
    settings2 = get_settings()

    assert settings1 is settings2
    assert isinstance(settings1, Settings)


def test_settings_extra_field_handling():
    """Test that settings ignores extra fields."""
    with patch.dict(os.environ, {"UNKNOWN_FIELD": "value"}):
        settings = Settings()
    assert not hasattr(settings, "unknown_field")
