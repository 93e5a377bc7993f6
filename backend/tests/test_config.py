import pytest
from pydantic import ValidationError

from config import Settings


def test_cors_origins_accept_a_comma_separated_string():
    settings = Settings(BACKEND_CORS_ORIGINS="http://localhost:3000, http://192.168.1.20:3000")
    assert settings.BACKEND_CORS_ORIGINS == ["http://localhost:3000", "http://192.168.1.20:3000"]


def test_timezone_must_be_known():
    with pytest.raises(ValidationError):
        Settings(TIMEZONE="Mars/Olympus_Mons")


def test_timezone_is_exposed_as_zoneinfo():
    settings = Settings(TIMEZONE="Europe/Copenhagen")
    assert settings.tz.key == "Europe/Copenhagen"


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///nap-test.db")
    monkeypatch.setenv("RECENT_SESSIONS_LIMIT", "5")
    settings = Settings()
    assert settings.DATABASE_URL == "sqlite:///nap-test.db"
    assert settings.RECENT_SESSIONS_LIMIT == 5
