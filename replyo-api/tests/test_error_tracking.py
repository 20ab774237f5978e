from unittest.mock import patch

import pytest

from replyo.config import settings
from replyo.services import error_tracking


@pytest.fixture
def sentry_dsn(monkeypatch):
    monkeypatch.setattr(settings, "sentry_dsn", "https://public@o0.ingest.sentry.io/0")


class TestInitSentry:
    @patch("replyo.services.error_tracking.sentry_sdk")
    def test_disabled_without_dsn(self, mock_sdk, monkeypatch):
        monkeypatch.setattr(settings, "sentry_dsn", None)
        assert error_tracking.init_sentry("api") is False
        mock_sdk.init.assert_not_called()

    @patch("replyo.services.error_tracking.sentry_sdk")
    def test_init_with_scrubbing(self, mock_sdk, sentry_dsn):
        assert error_tracking.init_sentry("workers") is True
        kwargs = mock_sdk.init.call_args.kwargs
        assert kwargs["dsn"] == settings.sentry_dsn
        assert kwargs["environment"] == settings.environment
        assert kwargs["send_default_pii"] is False
        assert kwargs["before_send"] is error_tracking.scrub_event
        mock_sdk.set_tag.assert_called_once_with("component", "workers")


class TestScrubEvent:
    def test_request_data_and_headers(self):
        event = {
            "request": {
                "data": {"email": "owner@glow.example.com", "Phone": "+44", "ig_username": "glowstudio"},
                "headers": {"X-Admin-Token": "admin-secret", "Content-Type": "application/json"},
            },
            "extra": {"access_token": "EAAB", "business_id": "biz-1"},
        }

        scrubbed = error_tracking.scrub_event(event, {})

        assert scrubbed["request"]["data"] == {
            "email": "[Filtered]",
            "Phone": "[Filtered]",
            "ig_username": "glowstudio",
        }
        assert scrubbed["request"]["headers"]["X-Admin-Token"] == "[Filtered]"
        assert scrubbed["request"]["headers"]["Content-Type"] == "application/json"
        assert scrubbed["extra"] == {"access_token": "[Filtered]", "business_id": "biz-1"}

    def test_event_without_request(self):
        event = {"message": "boom"}
        assert error_tracking.scrub_event(event) == {"message": "boom"}

    def test_raw_body_is_left_alone(self):
        event = {"request": {"data": "raw body"}}
        assert error_tracking.scrub_event(event)["request"]["data"] == "raw body"


class TestCaptureException:
    @patch("replyo.services.error_tracking.sentry_sdk")
    def test_noop_without_dsn(self, mock_sdk, monkeypatch):
        monkeypatch.setattr(settings, "sentry_dsn", None)
        error_tracking.capture_exception(RuntimeError("boom"), {"worker": "jobs"})
        mock_sdk.new_scope.assert_not_called()

    @patch("replyo.services.error_tracking.sentry_sdk")
    def test_captures_with_context(self, mock_sdk, sentry_dsn):
        exc = RuntimeError("boom")
        error_tracking.capture_exception(exc, {"worker": "jobs"})

        scope = mock_sdk.new_scope.return_value.__enter__.return_value
        scope.set_context.assert_called_once_with("replyo", {"worker": "jobs"})
        scope.capture_exception.assert_called_once_with(exc)
