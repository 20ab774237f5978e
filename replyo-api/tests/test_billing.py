import hashlib
import hmac
import json
import time
from unittest.mock import patch

import pytest
from factories import make_business, make_installation, make_subscription

from replyo.config import settings
from replyo.models import SubscriptionStatus
from replyo.services import billing_service

WEBHOOK_SECRET = "whsec_test_secret"


def _signed(payload: dict, secret: str = WEBHOOK_SECRET) -> tuple[str, str]:
    body = json.dumps(payload)
    timestamp = int(time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.{body}".encode(), hashlib.sha256).hexdigest()
    return body, f"t={timestamp},v1={signature}"


def _event(event_type: str, obj: dict) -> dict:
    return {"id": "evt_1", "object": "event", "type": event_type, "data": {"object": obj}}


class TestMapStripeStatus:
    @pytest.mark.parametrize(
        "stripe_status,expected",
        [
            ("active", SubscriptionStatus.ACTIVE),
            ("past_due", SubscriptionStatus.PAST_DUE),
            ("canceled", SubscriptionStatus.CANCELLED),
            ("cancelled", SubscriptionStatus.CANCELLED),
            ("incomplete", SubscriptionStatus.PENDING),
            (None, SubscriptionStatus.PENDING),
        ],
    )
    def test_mapping(self, stripe_status, expected):
        assert billing_service.map_stripe_status(stripe_status) == expected


class TestHandleStripeEvent:
    @patch("replyo.services.billing_service.subscription_service.create_subscription")
    def test_subscription_created(self, mock_create, db_session):
        event = _event(
            "customer.subscription.created",
            {
                "id": "sub_1",
                "customer": "cus_1",
                "status": "active",
                "items": {"data": [{"price": {"nickname": "growth"}}]},
            },
        )
        assert billing_service.handle_stripe_event(db_session, event) == "subscription_created"
        kwargs = mock_create.call_args.kwargs
        assert kwargs["stripe_customer_id"] == "cus_1"
        assert kwargs["plan"] == "growth"
        assert kwargs["status"] == SubscriptionStatus.ACTIVE

    @patch("replyo.services.billing_service.set_installations_disabled")
    @patch("replyo.services.billing_service.subscription_service.update_subscription_status")
    def test_past_due_disables_installations(self, mock_update, mock_disable, db_session):
        subscription = make_subscription(status="PAST_DUE")
        mock_update.return_value = subscription
        event = _event("customer.subscription.updated", {"id": "sub_123", "status": "past_due"})

        assert billing_service.handle_stripe_event(db_session, event) == "subscription_updated"
        mock_disable.assert_called_once_with(db_session, subscription, True, billing_service.KILL_SWITCH_REASON)

    @patch("replyo.services.billing_service.alert_warning")
    @patch("replyo.services.billing_service.set_installations_disabled", return_value=1)
    @patch("replyo.services.billing_service.subscription_service.update_subscription_status")
    def test_deleted_cancels_and_alerts(self, mock_update, mock_disable, mock_alert, db_session):
        mock_update.return_value = make_subscription()
        event = _event("customer.subscription.deleted", {"id": "sub_123"})

        assert billing_service.handle_stripe_event(db_session, event) == "subscription_cancelled"
        mock_update.assert_called_once_with(db_session, "sub_123", SubscriptionStatus.CANCELLED)
        mock_alert.assert_called_once()

    @patch("replyo.services.billing_service.alert_warning")
    @patch("replyo.services.billing_service.subscription_service.find_by_subscription_id")
    def test_payment_failed_marks_past_due(self, mock_find, mock_alert, db_session):
        subscription = make_subscription()
        mock_find.return_value = subscription
        event = _event("invoice.payment_failed", {"id": "in_1", "subscription": "sub_123", "customer": "cus_123"})

        assert billing_service.handle_stripe_event(db_session, event) == "subscription_past_due"
        assert subscription.status == "PAST_DUE"

    @patch("replyo.services.billing_service.set_installations_disabled")
    @patch("replyo.services.billing_service.subscription_service.find_by_customer_id")
    @patch("replyo.services.billing_service.subscription_service.find_by_subscription_id", return_value=None)
    def test_invoice_paid_falls_back_to_customer(self, mock_find_sub, mock_find_customer, mock_enable, db_session):
        subscription = make_subscription(status="PAST_DUE")
        mock_find_customer.return_value = subscription
        event = _event(
            "invoice.paid",
            {"id": "in_2", "customer": "cus_123", "parent": {"subscription_details": {"subscription": "sub_x"}}},
        )

        assert billing_service.handle_stripe_event(db_session, event) == "subscription_activated"
        mock_find_sub.assert_called_once_with(db_session, "sub_x")
        assert subscription.status == "ACTIVE"
        mock_enable.assert_called_once_with(db_session, subscription, False)

    def test_unknown_event_is_ignored(self, db_session):
        assert billing_service.handle_stripe_event(db_session, _event("charge.refunded", {})) == "ignored"


class TestSetInstallationsDisabled:
    def test_reenable_skips_manually_disabled(self, db_session):
        subscription = make_subscription()
        auto = make_installation("b1", disabled=True, disabled_reason=billing_service.KILL_SWITCH_REASON)
        manual = make_installation("b2", disabled=True, disabled_reason="abuse")
        db_session.query.return_value.join.return_value.filter.return_value.all.return_value = [auto, manual]

        assert billing_service.set_installations_disabled(db_session, subscription, False) == 1
        assert auto.disabled is False
        assert auto.disabled_reason is None
        assert manual.disabled is True


class TestCheckAccess:
    def _access(self, db_session, subscription_status, installation):
        business = make_business()
        business.subscription = make_subscription(status=subscription_status) if subscription_status else None
        db_session.query.return_value.filter.return_value.order_by.return_value.first.return_value = installation
        return billing_service.check_access_for_business(db_session, business)

    def test_active_and_installed(self, db_session):
        access = self._access(db_session, "ACTIVE", make_installation("b"))
        assert access["allowed"] is True
        assert access["limits"] == {
            "can_process_messages": True,
            "can_send_follow_ups": True,
            "can_access_analytics": True,
        }

    def test_disabled_installation_keeps_analytics(self, db_session):
        access = self._access(db_session, "ACTIVE", make_installation("b", disabled=True))
        assert access["allowed"] is False
        assert access["limits"]["can_access_analytics"] is True

    def test_no_subscription(self, db_session):
        access = self._access(db_session, None, None)
        assert access["allowed"] is False
        assert access["subscription"] is None
        assert access["limits"]["can_access_analytics"] is False


class TestKillSwitch:
    @patch("replyo.services.billing_service.alert_warning")
    @patch("replyo.services.billing_service.set_installations_disabled")
    @patch("replyo.services.billing_service.subscription_service.get_subscriptions_by_status")
    def test_counts(self, mock_subs, mock_disable, mock_alert, db_session):
        mock_subs.return_value = [make_subscription(status="PAST_DUE"), make_subscription(status="CANCELLED")]
        mock_disable.side_effect = [2, 0]

        assert billing_service.run_kill_switch(db_session) == {"checked": 2, "disabled": 2, "errors": 0}
        mock_alert.assert_called_once()


class TestStripeWebhookEndpoint:
    @pytest.fixture(autouse=True)
    def _secret(self, monkeypatch):
        monkeypatch.setattr(settings, "stripe_webhook_secret", WEBHOOK_SECRET)

    def test_missing_signature_returns_400(self, client):
        response = client.post("/api/webhooks/stripe", content=b"{}")
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Missing Stripe signature"}

    def test_bad_signature_returns_400(self, client):
        body, _ = _signed(_event("invoice.paid", {}))
        response = client.post("/api/webhooks/stripe", content=body, headers={"Stripe-Signature": "t=1,v1=bad"})
        assert response.status_code == 400

    @patch("replyo.services.billing_service.handle_stripe_event", return_value="subscription_updated")
    def test_valid_event_is_processed(self, mock_handle, client, db_session):
        body, signature = _signed(_event("customer.subscription.updated", {"id": "sub_1", "status": "active"}))

        response = client.post("/api/billing/webhook", content=body, headers={"Stripe-Signature": signature})

        assert response.status_code == 200
        assert response.json() == {"received": True, "result": "subscription_updated"}
        assert mock_handle.call_args.args[1]["type"] == "customer.subscription.updated"
        db_session.commit.assert_called_once()

    @patch("replyo.routers.billing.alert_error")
    @patch("replyo.services.billing_service.handle_stripe_event", side_effect=RuntimeError("boom"))
    def test_processing_failure_returns_500(self, mock_handle, mock_alert, client, db_session):
        body, signature = _signed(_event("invoice.paid", {}))

        response = client.post("/api/webhooks/stripe", content=body, headers={"Stripe-Signature": signature})

        assert response.status_code == 500
        db_session.rollback.assert_called_once()
        mock_alert.assert_called_once()


class TestCheckAccessEndpoint:
    @patch("replyo.services.billing_service.check_access_for_username", return_value=None)
    def test_unknown_business(self, mock_access, client):
        response = client.get("/api/check-access/nobody")
        assert response.status_code == 404

    @patch("replyo.services.billing_service.check_access_for_username")
    def test_known_business(self, mock_access, client):
        mock_access.return_value = {"allowed": True, "limits": {}}
        response = client.get("/api/check-access/glowstudio")
        assert response.json() == {"success": True, "data": {"allowed": True, "limits": {}}}
