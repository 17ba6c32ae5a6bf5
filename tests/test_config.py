import pytest
from pydantic import ValidationError

from app.core.config import Settings, validate_settings


def make_settings(**overrides):
    return Settings(_env_file=None, **overrides)


def test_defaults():
    config = make_settings()

    assert config.MONGODB_DB_NAME == "defenders"
    assert config.SESSION_TIMEOUT_MINUTES == 30
    assert config.TELEGRAM_MODE == "webhook"
    assert config.is_development


def test_production_requires_bot_token():
    with pytest.raises(ValidationError):
        make_settings(ENVIRONMENT="production")


def test_limits_must_be_positive():
    with pytest.raises(ValidationError):
        make_settings(MAX_FIELD_LENGTH=0)


def test_validate_settings_requires_token():
    with pytest.raises(ValueError, match="TELEGRAM_BOT_TOKEN"):
        validate_settings(make_settings())


def test_validate_settings_production_requirements():
    config = make_settings(ENVIRONMENT="production", TELEGRAM_BOT_TOKEN="123:abc")

    with pytest.raises(ValueError) as excinfo:
        validate_settings(config)

    assert "ADMIN_CHAT_ID" in str(excinfo.value)
    assert "TELEGRAM_WEBHOOK_SECRET" in str(excinfo.value)

    validate_settings(make_settings(
        ENVIRONMENT="production",
        TELEGRAM_BOT_TOKEN="123:abc",
        ADMIN_CHAT_ID=1,
        TELEGRAM_WEBHOOK_SECRET="s3cret",
    ))
