import pytest
from pydantic import ValidationError

from chatrelay.core.config import DEFAULT_GEMINI_CONFIG_PATH, Settings, get_settings
from chatrelay.core.exceptions import ConfigurationMissingError


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "env-token")
    monkeypatch.setenv("GEMINI_MODEL", "gemini-test-model")

    settings = get_settings()

    assert settings.require("telegram_bot_token") == "env-token"
    assert settings.gemini_model == "gemini-test-model"


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_missing_required_key_fails_at_use_not_at_load(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    settings = Settings()

    assert settings.gemini_api_key is None
    with pytest.raises(ConfigurationMissingError) as excinfo:
        settings.require("gemini_api_key")
    assert excinfo.value.key == "GEMINI_API_KEY"
    assert "GEMINI_API_KEY" in str(excinfo.value)


def test_blank_values_count_as_missing(make_settings):
    settings = make_settings(telegram_bot_token="   ", telegram_error_chat_id="  ")

    assert settings.telegram_error_chat_id is None
    with pytest.raises(ConfigurationMissingError):
        settings.require("telegram_bot_token")
    with pytest.raises(ConfigurationMissingError) as excinfo:
        settings.require("telegram_error_chat_id")
    assert excinfo.value.key == "TELEGRAM_ERROR_CHAT_ID"


def test_secrets_are_not_rendered(make_settings):
    settings = make_settings(gemini_api_key="very-secret")

    assert "very-secret" not in repr(settings)
    assert settings.require("gemini_api_key") == "very-secret"


def test_defaults(make_settings):
    settings = make_settings()

    assert settings.gemini_config_path == str(DEFAULT_GEMINI_CONFIG_PATH)
    assert settings.gemini_timeout_seconds == 60.0
    assert settings.telegram_parse_mode == "Markdown"
    assert settings.operator_alert_level == "ERROR"
    assert settings.log_file_level == "DEBUG"


def test_log_levels_are_normalized_and_validated(make_settings):
    assert make_settings(log_level="debug").log_level == "DEBUG"

    with pytest.raises(ValidationError):
        make_settings(operator_alert_level="loud")


def test_settings_are_read_only(make_settings):
    settings = make_settings()

    with pytest.raises(ValidationError):
        settings.gemini_model = "other"


def test_env_file_overlay(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GEMINI_MODEL", raising=False)
    (tmp_path / ".env").write_text("GEMINI_MODEL=from-dotenv\n", encoding="utf-8")

    assert Settings().gemini_model == "from-dotenv"


def test_required_values_are_stripped(make_settings):
    settings = make_settings(telegram_bot_token="123:abc\n", gemini_api_key="  key  ")

    assert settings.require("telegram_bot_token") == "123:abc"
    assert settings.require("gemini_api_key") == "key"
