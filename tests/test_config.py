import pytest

from config import Settings

ENV_VARS = (
    "APP_ENV",
    "DATABASE_URL",
    "DATABASE_NAME",
    "JWT_SECRET",
    "JWT_EXPIRES_MINUTES",
    "COOKIE_NAME",
    "COOKIE_SAMESITE",
    "COOKIE_SECURE",
    "CORS_ORIGIN",
    "SAP_API_URL",
    "SAP_AUTH_TYPE",
    "SAP_TLS_REJECT_UNAUTHORIZED",
    "LOG_LEVEL",
    "PORT",
)


@pytest.fixture
def env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(env):
    settings = Settings.from_env()
    assert settings.environment == "development"
    assert settings.database_url is None
    assert settings.cookie_samesite == "lax"
    assert settings.cookie_secure is False
    assert settings.sap_tls_verify is True
    assert settings.sap_auth_type == "none"
    assert settings.cors_origins == ["http://localhost:5173", "http://localhost:3000"]
    assert settings.token_max_age == 7 * 24 * 60 * 60


def test_values_from_environment(env):
    env.setenv("DATABASE_URL", "mongodb://db:27017")
    env.setenv("DATABASE_NAME", "shop")
    env.setenv("JWT_SECRET", "a-long-enough-secret")
    env.setenv("JWT_EXPIRES_MINUTES", "30")
    env.setenv("CORS_ORIGIN", "https://shop.mail.com, https://admin.mail.com,")
    env.setenv("SAP_API_URL", "https://sap.mail.com/materials")
    env.setenv("SAP_AUTH_TYPE", " Basic ")
    env.setenv("SAP_TLS_REJECT_UNAUTHORIZED", "false")
    env.setenv("LOG_LEVEL", "debug")
    env.setenv("PORT", "9000")

    settings = Settings.from_env()
    assert settings.database_url == "mongodb://db:27017"
    assert settings.database_name == "shop"
    assert settings.jwt_secret == "a-long-enough-secret"
    assert settings.token_max_age == 30 * 60
    assert settings.cors_origins == ["https://shop.mail.com", "https://admin.mail.com"]
    assert settings.sap_api_url == "https://sap.mail.com/materials"
    assert settings.sap_auth_type == "basic"
    assert settings.sap_tls_verify is False
    assert settings.log_level == "DEBUG"
    assert settings.port == 9000


def test_samesite_none_forces_secure_cookie(env):
    env.setenv("COOKIE_SAMESITE", "None")
    settings = Settings.from_env()
    assert settings.cookie_samesite == "none"
    assert settings.cookie_secure is True


def test_production_defaults_to_secure_cookie(env):
    env.setenv("APP_ENV", "production")
    assert Settings.from_env().cookie_secure is True


def test_explicit_cookie_secure_wins(env):
    env.setenv("APP_ENV", "production")
    env.setenv("COOKIE_SECURE", "false")
    assert Settings.from_env().cookie_secure is False


def test_bad_values_refused(env):
    env.setenv("JWT_SECRET", "short")
    with pytest.raises(ValueError):
        Settings.from_env()

    env.setenv("JWT_SECRET", "a-long-enough-secret")
    env.setenv("SAP_AUTH_TYPE", "oauth")
    with pytest.raises(ValueError):
        Settings.from_env()
