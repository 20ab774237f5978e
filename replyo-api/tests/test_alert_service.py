from unittest.mock import MagicMock, Mock, patch

import httpx
import pytest

from replyo.services import alert_service
from replyo.services.alert_service import alert_critical, alert_error, alert_warning, format_alert, send_alert


@pytest.fixture(autouse=True)
def _reset_cooldowns():
    alert_service.reset_cooldowns()
    yield
    alert_service.reset_cooldowns()


def _telegram(status_code=200):
    client = MagicMock()
    client.post.return_value = Mock(status_code=status_code)
    return client


class TestFormatAlert:
    def test_includes_level_environment_and_context(self):
        text = format_alert("ERROR", "Stripe webhook failed", {"event_type": "invoice.paid"})
        assert text.startswith("❌ *ERROR*")
        assert "replyo/" in text
        assert "event_type: invoice.paid" in text

    def test_long_alerts_are_truncated(self):
        text = format_alert("INFO", "x" * 5000)
        assert len(text) == alert_service.TELEGRAM_MAX_LENGTH
        assert text.endswith("...")


class TestSendAlert:
    @patch("replyo.services.alert_service.ALERT_BOT_TOKEN", None)
    @patch("replyo.services.alert_service.ALERT_CHAT_ID", None)
    def test_returns_false_when_not_configured(self):
        assert send_alert("ERROR", "Test message") is False

    @patch("replyo.services.alert_service.ALERT_BOT_TOKEN", "test-token")
    @patch("replyo.services.alert_service.ALERT_CHAT_ID", "test-chat")
    @patch("replyo.services.alert_service.httpx.Client")
    def test_sends_alert_to_telegram(self, mock_client_class):
        mock_client = _telegram()
        mock_client_class.return_value.__enter__.return_value = mock_client

        assert send_alert("WARNING", "Payment failed", {"stripe_customer_id": "cus_1"}) is True

        url = mock_client.post.call_args.args[0]
        payload = mock_client.post.call_args.kwargs["json"]
        assert url == "https://api.telegram.org/bottest-token/sendMessage"
        assert payload["chat_id"] == "test-chat"
        assert "cus_1" in payload["text"]

    @patch("replyo.services.alert_service.ALERT_BOT_TOKEN", "test-token")
    @patch("replyo.services.alert_service.ALERT_CHAT_ID", "test-chat")
    @patch("replyo.services.alert_service.httpx.Client")
    def test_returns_false_on_telegram_error(self, mock_client_class):
        mock_client_class.return_value.__enter__.return_value = _telegram(400)
        assert send_alert("ERROR", "Test") is False

    @patch("replyo.services.alert_service.ALERT_BOT_TOKEN", "test-token")
    @patch("replyo.services.alert_service.ALERT_CHAT_ID", "test-chat")
    @patch("replyo.services.alert_service.httpx.Client")
    def test_returns_false_on_network_error(self, mock_client_class):
        mock_client_class.return_value.__enter__.return_value.post.side_effect = httpx.ConnectError("down")
        assert send_alert("ERROR", "Test") is False

    @patch("replyo.services.alert_service.ALERT_BOT_TOKEN", "test-token")
    @patch("replyo.services.alert_service.ALERT_CHAT_ID", "test-chat")
    @patch("replyo.services.alert_service.httpx.Client")
    def test_duplicate_alerts_are_suppressed(self, mock_client_class):
        mock_client = _telegram()
        mock_client_class.return_value.__enter__.return_value = mock_client

        assert send_alert("ERROR", "Worker tick failed") is True
        assert send_alert("ERROR", "Worker tick failed") is False
        assert send_alert("ERROR", "Another failure") is True
        assert mock_client.post.call_count == 2


class TestShortcuts:
    @pytest.mark.parametrize(
        "shortcut,level",
        [(alert_warning, "WARNING"), (alert_error, "ERROR"), (alert_critical, "CRITICAL")],
    )
    @patch("replyo.services.alert_service.send_alert")
    def test_levels(self, mock_send, shortcut, level):
        shortcut("msg", {"a": 1})
        mock_send.assert_called_once_with(level, "msg", {"a": 1})
