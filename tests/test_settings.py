import pytest

from settings import load_settings


def test_defaults_with_empty_environment():
    s = load_settings({})
    assert s.port == 3000
    assert s.app_env == "development"
    assert s.cors_origins == []
    assert s.jwt_access_ttl == "15m"
    assert s.jwt_refresh_ttl == "7d"
    assert s.jwt_secret is None
    assert not s.auth_enabled


def test_parses_port_from_string():
    assert load_settings({"PORT": "4000"}).port == 4000


def test_parses_cors_origins():
    s = load_settings({"CORS_ORIGINS": "http://a.com, http://b.com"})
    assert s.cors_origins == ["http://a.com", "http://b.com"]


@pytest.mark.parametrize("port", ["99999", "0", "abc"])
def test_rejects_invalid_port(port):
    with pytest.raises(RuntimeError, match="Invalid environment variables"):
        load_settings({"PORT": port})


@pytest.mark.parametrize("ttl", ["30days", "1 week", "invalid"])
def test_rejects_invalid_ttl(ttl):
    with pytest.raises(RuntimeError):
        load_settings({"JWT_REFRESH_TTL": ttl})
    with pytest.raises(RuntimeError):
        load_settings({"JWT_ACCESS_TTL": ttl})


def test_rejects_ttl_too_large_for_a_timestamp():
    with pytest.raises(RuntimeError, match="Invalid environment variables"):
        load_settings({"JWT_REFRESH_TTL": "3000000d"})
    with pytest.raises(RuntimeError):
        load_settings({"JWT_ACCESS_TTL": "3000000d"})


def test_rejects_short_secret():
    with pytest.raises(RuntimeError):
        load_settings({"JWT_SECRET": "too-short"})


def test_auth_enabled_needs_secret_and_database():
    s = load_settings({"DATABASE_URL": "sqlite+aiosqlite:///./x.db", "JWT_SECRET": "a" * 32})
    assert s.database_url == "sqlite+aiosqlite:///./x.db"
    assert s.jwt_secret == "a" * 32
    assert s.auth_enabled

    assert not load_settings({"JWT_SECRET": "a" * 32}).auth_enabled
    assert not load_settings({"DATABASE_URL": "sqlite+aiosqlite:///./x.db", "JWT_SECRET": " "}).auth_enabled
