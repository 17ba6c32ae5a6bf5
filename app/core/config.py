"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, bot token, admin identifier, etc.)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="defenders",
        description="MongoDB database name"
    )

    # Telegram
    TELEGRAM_BOT_TOKEN: Optional[str] = Field(
        default=None,
        validate_default=True,
        description="Bot API token issued by @BotFather"
    )
    TELEGRAM_API_URL: str = Field(
        default="https://api.telegram.org",
        description="Telegram Bot API base URL"
    )
    TELEGRAM_WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="Secret token Telegram echoes in X-Telegram-Bot-Api-Secret-Token"
    )
    TELEGRAM_MODE: Literal["webhook", "polling"] = Field(
        default="webhook",
        description="How updates are received"
    )
    TELEGRAM_TIMEOUT: float = Field(
        default=10.0,
        description="Bot API request timeout in seconds"
    )

    # Administrator
    ADMIN_CHAT_ID: int = Field(
        default=0,
        description="Telegram user id of the administrator"
    )
    ADMIN_HANDLE: Optional[str] = Field(
        default=None,
        description="Administrator @handle shown to applicants"
    )

    # Dialogs
    SESSION_TIMEOUT_MINUTES: int = Field(
        default=30,
        description="Idle minutes after which an unfinished dialog is dropped"
    )
    MAX_FIELD_LENGTH: int = Field(
        default=1000,
        description="Maximum characters accepted for a single dialog answer"
    )

    # Application
    BOT_VERSION: str = Field(
        default="5.0.1",
        description="Version shown in the start message"
    )
    PORT: int = Field(
        default=8000,
        description="HTTP listen port"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/v1",
        description="API route prefix"
    )

    @field_validator("TELEGRAM_BOT_TOKEN")
    @classmethod
    def validate_bot_token(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Ensure the bot token is set in production."""
        if info.data.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("TELEGRAM_BOT_TOKEN is required in production environment")
        return v

    @field_validator("SESSION_TIMEOUT_MINUTES", "MAX_FIELD_LENGTH")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


# Global settings instance
settings = Settings()


def validate_settings(config: Optional[Settings] = None):
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    config = config or settings
    errors = []

    if not config.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not config.TELEGRAM_BOT_TOKEN:
        errors.append("TELEGRAM_BOT_TOKEN is required")

    # Production-specific validations
    if config.is_production:
        if not config.ADMIN_CHAT_ID:
            errors.append("ADMIN_CHAT_ID is required in production")
        if config.TELEGRAM_MODE == "webhook" and not config.TELEGRAM_WEBHOOK_SECRET:
            errors.append("TELEGRAM_WEBHOOK_SECRET is required for webhooks in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
