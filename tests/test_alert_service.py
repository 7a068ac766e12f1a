from unittest.mock import MagicMock, Mock, patch

import httpx

from sabores_bot.services.alert_service import (
    alert_critical,
    alert_error,
    format_alert,
    send_alert,
)

CONFIGURED = ("test-token", "test-chat")


def _telegram(mock_client_class, status_code=200):
    mock_client = MagicMock()
    mock_client_class.return_value.__enter__.return_value = mock_client
    mock_response = Mock()
    mock_response.status_code = status_code
    mock_client.post.return_value = mock_response
    return mock_client


class TestSendAlert:
    @patch("sabores_bot.services.alert_service._get_alert_credentials", return_value=(None, None))
    @patch("sabores_bot.services.alert_service.httpx.Client")
    def test_returns_false_when_not_configured(self, mock_client_class, _creds):
        result = send_alert("ERROR", "Test message")

        assert result is False
        mock_client_class.assert_not_called()

    @patch("sabores_bot.services.alert_service._get_alert_credentials", return_value=CONFIGURED)
    @patch("sabores_bot.services.alert_service.httpx.Client")
    def test_sends_alert_to_telegram(self, mock_client_class, _creds):
        mock_client = _telegram(mock_client_class)

        result = send_alert("ERROR", "Test error message")

        assert result is True
        mock_client.post.assert_called_once()
        call_args = mock_client.post.call_args
        assert call_args[0][0] == "https://api.telegram.org/bottest-token/sendMessage"
        json_data = call_args[1]["json"]
        assert json_data["chat_id"] == "test-chat"
        assert "ERROR" in json_data["text"]

    @patch("sabores_bot.services.alert_service._get_alert_credentials", return_value=CONFIGURED)
    @patch("sabores_bot.services.alert_service.httpx.Client")
    def test_includes_context_in_message(self, mock_client_class, _creds):
        mock_client = _telegram(mock_client_class)

        send_alert("ERROR", "Test message", {"sender": "5511988887777@s.whatsapp.net"})

        text = mock_client.post.call_args[1]["json"]["text"]
        assert "sender" in text
        assert "5511988887777" in text

    @patch("sabores_bot.services.alert_service._get_alert_credentials", return_value=CONFIGURED)
    @patch("sabores_bot.services.alert_service.httpx.Client")
    def test_returns_false_on_telegram_error(self, mock_client_class, _creds):
        _telegram(mock_client_class, status_code=400)

        assert send_alert("ERROR", "Test message") is False

    @patch("sabores_bot.services.alert_service._get_alert_credentials", return_value=CONFIGURED)
    @patch("sabores_bot.services.alert_service.httpx.Client")
    def test_returns_false_on_network_error(self, mock_client_class, _creds):
        mock_client_class.return_value.__enter__.side_effect = httpx.ConnectError("Network error")

        assert send_alert("ERROR", "Test message") is False

    def test_reads_credentials_from_settings(self, monkeypatch):
        from sabores_bot.config import get_settings
        from sabores_bot.services.alert_service import _get_alert_credentials

        monkeypatch.setenv("ALERT_BOT_TOKEN", "tok")
        monkeypatch.setenv("ALERT_CHAT_ID", "42")
        get_settings.cache_clear()

        assert _get_alert_credentials() == ("tok", "42")


class TestAlertShortcuts:
    @patch("sabores_bot.services.alert_service.send_alert")
    def test_alert_error_calls_send_alert_with_error_level(self, mock_send):
        mock_send.return_value = True

        result = alert_error("Test error", {"key": "value"})

        mock_send.assert_called_once_with("ERROR", "Test error", {"key": "value"})
        assert result is True

    @patch("sabores_bot.services.alert_service.send_alert")
    def test_alert_critical_calls_send_alert_with_critical_level(self, mock_send):
        mock_send.return_value = True

        result = alert_critical("Critical issue")

        mock_send.assert_called_once_with("CRITICAL", "Critical issue", None)
        assert result is True


class TestFormatAlert:
    def test_error_has_correct_emoji(self):
        assert "❌" in format_alert("ERROR", "Test")

    def test_critical_has_correct_emoji(self):
        assert "🔥" in format_alert("CRITICAL", "Test")

    def test_unknown_level(self):
        assert format_alert("DEBUG", "Test").startswith("📢")

    def test_no_context_block_without_context(self):
        assert "```" not in format_alert("ERROR", "Test")
