from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chatrelay.core.exceptions import ConfigurationMissingError

LOCAL_ENVIRONMENTS = frozenset({"development", "dev", "local", "test"})
DEFAULT_GEMINI_CONFIG_PATH = Path(__file__).resolve().parents[1] / "resources" / "gemini_config.json"
_ALLOWED_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


class Settings(BaseSettings):
    """Relay settings loaded from the environment, overlaid by a local ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    app_name: str = Field(default="chatrelay", validation_alias="APP_NAME")
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str = Field(default="logs/app.log", validation_alias="LOG_FILE")
    log_file_level: str = Field(default="DEBUG", validation_alias="LOG_FILE_LEVEL")
    operator_alert_level: str = Field(default="ERROR", validation_alias="OPERATOR_ALERT_LEVEL")

    telegram_bot_token: SecretStr | None = Field(default=None, validation_alias="TELEGRAM_BOT_TOKEN")
    telegram_error_chat_id: str | None = Field(default=None, validation_alias="TELEGRAM_ERROR_CHAT_ID")
    telegram_parse_mode: str = Field(default="Markdown", validation_alias="TELEGRAM_PARSE_MODE")
    telegram_timeout_seconds: float = Field(
        default=20.0,
        validation_alias="TELEGRAM_TIMEOUT_SECONDS",
        gt=0,
    )

    gemini_api_key: SecretStr | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash-lite", validation_alias="GEMINI_MODEL")
    gemini_config_path: str = Field(
        default=str(DEFAULT_GEMINI_CONFIG_PATH),
        validation_alias="GEMINI_CONFIG_PATH",
    )
    gemini_timeout_seconds: float = Field(
        default=60.0,
        validation_alias="GEMINI_TIMEOUT_SECONDS",
        gt=0,
    )

    @field_validator("log_level", "log_file_level", "operator_alert_level", mode="before")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        """Normalize log level names so they can be handed to ``logging`` directly."""
        normalized = str(value).strip().upper()
        if normalized not in _ALLOWED_LEVELS:
            allowed = ", ".join(sorted(_ALLOWED_LEVELS))
            raise ValueError(f"Invalid log level '{value}'. Expected one of: {allowed}")
        return normalized

    @field_validator("telegram_error_chat_id", mode="before")
    @classmethod
    def blank_chat_id_is_unset(cls, value: object) -> object:
        """Treat an empty chat id the same as an absent one."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def require(self, field_name: str) -> str:
        """Return a required setting as a string, failing when it is unset.

        Secrets are unwrapped. The raised error names the environment key so the
        operator knows what to provide.
        """
        value = getattr(self, field_name)
        if isinstance(value, SecretStr):
            value = value.get_secret_value()
        if value is None or (isinstance(value, str) and not value.strip()):
            field = type(self).model_fields[field_name]
            key = field.validation_alias if isinstance(field.validation_alias, str) else field_name
            raise ConfigurationMissingError(key.upper())
        return str(value).strip()


@lru_cache
def get_settings() -> Settings:
    """Build settings from environment variables."""
    return Settings()
