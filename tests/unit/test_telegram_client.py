import httpx

from chatrelay.clients.telegram import DeliveryResult, TelegramClient
from tests.conftest import TELEGRAM_SEND_URL, telegram_ok


def test_send_message_posts_expected_body(make_settings, fake_http):
    fake_http.add(TELEGRAM_SEND_URL, json=telegram_ok(message_id=99))
    client = TelegramClient(make_settings())

    result = client.send_message("123", "hello there")

    assert result.ok is True
    assert result.message_id == 99
    assert result.response == telegram_ok(message_id=99)
    [call] = fake_http.calls
    assert call["url"] == "https://api.telegram.org/bottest-bot-token/sendMessage"
    assert call["json"] == {
        "chat_id": "123",
        "text": "hello there",
        "parse_mode": "Markdown",
        "disable_notification": False,
    }
    assert call["timeout"] == 20.0


def test_parse_mode_and_notification_overrides(make_settings, fake_http):
    fake_http.add(TELEGRAM_SEND_URL, json=telegram_ok())
    client = TelegramClient(make_settings())

    client.send_message(-100, "<b>alert</b>", parse_mode="HTML", disable_notification=True)

    assert fake_http.calls[0]["json"]["parse_mode"] == "HTML"
    assert fake_http.calls[0]["json"]["disable_notification"] is True


def test_missing_token_fails_locally(make_settings, fake_http):
    client = TelegramClient(make_settings(telegram_bot_token=None))

    result = client.send_message("123", "hello")

    assert client.enabled is False
    assert result == DeliveryResult(ok=False, detail="Telegram bot token is not configured")
    assert fake_http.calls == []


def test_transport_error_is_failure_result(make_settings, fake_http):
    fake_http.add(TELEGRAM_SEND_URL, exc=httpx.ConnectError("refused"))

    result = TelegramClient(make_settings()).send_message("123", "hello")

    assert result.ok is False
    assert result.status_code is None
    assert "ConnectError" in result.detail


def test_non_200_is_failure_result(make_settings, fake_http):
    fake_http.add(
        TELEGRAM_SEND_URL,
        status_code=400,
        json={"ok": False, "error_code": 400, "description": "Bad Request: chat not found"},
    )

    result = TelegramClient(make_settings()).send_message("404", "hello")

    assert result.ok is False
    assert result.status_code == 400
    assert result.detail == "Bad Request: chat not found"
    assert result.response["error_code"] == 400


def test_body_without_ok_flag_is_failure_result(make_settings, fake_http):
    fake_http.add(TELEGRAM_SEND_URL, json={"result": {"message_id": 1}})

    result = TelegramClient(make_settings()).send_message("1", "hello")

    assert result.ok is False
    assert result.detail == "HTTP Code: 200"


def test_undecodable_body_is_failure_result(make_settings, fake_http):
    fake_http.add(TELEGRAM_SEND_URL, status_code=502, text="Bad Gateway")

    result = TelegramClient(make_settings()).send_message("1", "hello")

    assert result.ok is False
    assert result.response is None
    assert result.status_code == 502


def test_token_read_from_a_file_drops_trailing_newline(make_settings, fake_http):
    fake_http.add(TELEGRAM_SEND_URL, json=telegram_ok())

    result = TelegramClient(make_settings(telegram_bot_token="test-bot-token\n")).send_message("1", "hi")

    assert result.ok is True
    assert fake_http.calls[0]["url"] == "https://api.telegram.org/bottest-bot-token/sendMessage"


def test_unusable_url_is_failure_result(make_settings, fake_http):
    fake_http.add(TELEGRAM_SEND_URL, exc=httpx.InvalidURL("Invalid non-printable ASCII character in URL"))

    result = TelegramClient(make_settings()).send_message("123", "hello")

    assert result.ok is False
    assert "InvalidURL" in result.detail
