import os

import pytest

from storefront.config import settings


def _env_only(secret_name, env_var=None):
    return os.environ.get(env_var) if env_var else None


@pytest.fixture()
def clean_env(monkeypatch):
    for name in (
        "DEV_MODE", "DEV_AUTH_ENABLED", "FLASK_SECRET_KEY", "DATABASE_URL", "SESSION_BACKEND",
        "SESSION_COOKIE_SECURE", "CORS_ORIGINS", "KEYCLOAK_URL", "KEYCLOAK_REALM",
        "KEYCLOAK_ISSUER", "KEYCLOAK_AUDIENCE", "IDENTITY_CLIENT_ID", "IDENTITY_CLIENT_SECRET",
    ):
        monkeypatch.delenv(name, raising=False)
    # Keep any real /run/secrets mount out of the picture
    monkeypatch.setattr(settings, "_load_secret_from_file", _env_only)
    return monkeypatch


def test_missing_database_url_is_fatal(clean_env):
    clean_env.setenv("DEV_MODE", "true")
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        settings.load_settings()


def test_dev_mode_defaults(clean_env):
    clean_env.setenv("DEV_MODE", "true")
    clean_env.setenv("DATABASE_URL", "sqlite://")
    cfg = settings.load_settings()
    assert cfg.dev_mode is True
    assert cfg.dev_auth_enabled is True
    assert cfg.secret_key
    assert cfg.session_cookie_secure is False
    assert cfg.identity_provider_enabled is False


def test_dev_auth_forced_off_outside_dev_mode(clean_env):
    clean_env.setenv("DEV_MODE", "false")
    clean_env.setenv("DEV_AUTH_ENABLED", "true")
    clean_env.setenv("DATABASE_URL", "sqlite://")
    clean_env.setenv("FLASK_SECRET_KEY", "prod-secret")
    cfg = settings.load_settings()
    assert cfg.dev_auth_enabled is False
    assert cfg.session_cookie_secure is True


def test_dev_auth_can_be_disabled_in_dev_mode(clean_env):
    clean_env.setenv("DEV_MODE", "true")
    clean_env.setenv("DEV_AUTH_ENABLED", "false")
    clean_env.setenv("DATABASE_URL", "sqlite://")
    assert settings.load_settings().dev_auth_enabled is False


def test_production_requires_secret_key(clean_env):
    clean_env.setenv("DATABASE_URL", "sqlite://")
    with pytest.raises(RuntimeError, match="FLASK_SECRET_KEY"):
        settings.load_settings()


def test_legacy_postgres_scheme_is_rewritten(clean_env):
    clean_env.setenv("DEV_MODE", "true")
    clean_env.setenv("DATABASE_URL", "postgres://u:p@db:5432/shop")
    assert settings.load_settings().database_url == "postgresql://u:p@db:5432/shop"


def test_identity_provider_settings(clean_env):
    clean_env.setenv("DATABASE_URL", "sqlite://")
    clean_env.setenv("FLASK_SECRET_KEY", "prod-secret")
    clean_env.setenv("KEYCLOAK_URL", "https://sso.example.com/")
    clean_env.setenv("KEYCLOAK_REALM", "shop")
    clean_env.setenv("IDENTITY_CLIENT_SECRET", "svc-secret")
    cfg = settings.load_settings()
    assert cfg.identity_provider_enabled is True
    assert cfg.keycloak_issuer == "https://sso.example.com/realms/shop"
    assert cfg.jwks_url == "https://sso.example.com/realms/shop/protocol/openid-connect/certs"


def test_identity_secret_required_in_production(clean_env):
    clean_env.setenv("DATABASE_URL", "sqlite://")
    clean_env.setenv("FLASK_SECRET_KEY", "prod-secret")
    clean_env.setenv("KEYCLOAK_URL", "https://sso.example.com")
    with pytest.raises(RuntimeError, match="IDENTITY_CLIENT_SECRET"):
        settings.load_settings()


def test_unknown_session_backend_rejected(clean_env):
    clean_env.setenv("DEV_MODE", "true")
    clean_env.setenv("DATABASE_URL", "sqlite://")
    clean_env.setenv("SESSION_BACKEND", "redis")
    with pytest.raises(RuntimeError, match="SESSION_BACKEND"):
        settings.load_settings()


def test_load_secret_from_file_prefers_run_secrets(monkeypatch, tmp_path):
    (tmp_path / "flask_secret_key").write_text("from-file\n")
    real_path = settings.Path

    def fake_path(target):
        if str(target) == "/run/secrets":
            return tmp_path
        return real_path(target)

    monkeypatch.setattr(settings, "Path", fake_path)
    monkeypatch.setenv("FLASK_SECRET_KEY", "from-env")
    assert settings._load_secret_from_file("flask_secret_key", "FLASK_SECRET_KEY") == "from-file"
