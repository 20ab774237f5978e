import uuid
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from factories import make_business, make_conversation

from replyo.models import InstagramPage, ScheduledJob

HEADERS = {"X-Admin-Token": "admin-secret"}


class TestAdminAuth:
    def test_token_not_configured(self, client, monkeypatch):
        monkeypatch.delenv("ADMIN_TOKEN", raising=False)
        response = client.post("/api/admin/kill-switch/run", headers=HEADERS)
        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "ADMIN_TOKEN not configured"}

    @pytest.mark.parametrize("headers", [{}, {"X-Admin-Token": "wrong"}])
    def test_invalid_token(self, client, admin_token, headers):
        response = client.post("/api/admin/kill-switch/run", headers=headers)
        assert response.status_code == 401


class TestAdminOperations:
    @patch("replyo.services.billing_service.run_kill_switch")
    def test_kill_switch(self, mock_kill, client, admin_token, db_session):
        mock_kill.return_value = {"checked": 1, "disabled": 1, "errors": 0}
        response = client.post("/api/admin/kill-switch/run", headers=HEADERS)
        assert response.json() == {"success": True, "data": {"checked": 1, "disabled": 1, "errors": 0}}
        db_session.commit.assert_called_once()

    @patch("replyo.services.follow_up_service.process_pending_follow_ups")
    def test_run_follow_ups(self, mock_process, client, admin_token):
        mock_process.return_value = {"checked": 0, "sent": 0, "skipped": 0, "errors": 0}
        assert client.post("/api/admin/follow-ups/run", headers=HEADERS).json()["data"]["checked"] == 0

    @patch("replyo.services.job_queue.schedule_follow_up")
    @patch("replyo.services.conversation_persistence.get_conversation")
    def test_schedule_follow_up(self, mock_get, mock_schedule, client, admin_token):
        conversation_id = uuid.uuid4()
        mock_get.return_value = make_conversation(id=conversation_id)
        mock_schedule.return_value = ScheduledJob(
            id=uuid.uuid4(), run_at=datetime(2026, 3, 1, 22, 0, tzinfo=timezone.utc)
        )

        response = client.post(
            f"/api/admin/follow-ups/{conversation_id}/schedule",
            json={"follow_up_type": "second", "delay_hours": 48},
            headers=HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["data"]["run_at"] == "2026-03-01T22:00:00+00:00"
        assert mock_schedule.call_args.kwargs == {"follow_up_type": "second", "delay_hours": 48}

    @patch("replyo.services.conversation_persistence.get_conversation", return_value=None)
    def test_schedule_unknown_conversation(self, mock_get, client, admin_token):
        response = client.post(f"/api/admin/follow-ups/{uuid.uuid4()}/schedule", headers=HEADERS)
        assert response.status_code == 404

    @patch("replyo.services.job_queue.schedule_stats_aggregation")
    def test_aggregate_without_period_queues_job(self, mock_schedule, client, admin_token):
        mock_schedule.return_value = ScheduledJob(id=uuid.uuid4())
        response = client.post("/api/admin/stats/aggregate", headers=HEADERS)
        assert response.status_code == 200
        mock_schedule.assert_called_once()

    @patch("replyo.services.revenue_estimator.aggregate_stats_for_period")
    def test_aggregate_period_for_one_business(self, mock_aggregate, client, admin_token):
        business_id = uuid.uuid4()
        response = client.post(
            "/api/admin/stats/aggregate",
            json={
                "business_id": str(business_id),
                "period_start": "2026-03-01T09:00:00Z",
                "period_end": "2026-03-01T10:00:00Z",
            },
            headers=HEADERS,
        )
        assert response.json() == {"success": True, "data": {"aggregated": 1}}
        assert mock_aggregate.call_args.args[1] == business_id

    def test_aggregate_rejects_half_period(self, client, admin_token):
        response = client.post(
            "/api/admin/stats/aggregate",
            json={"period_start": "2026-03-01T09:00:00Z"},
            headers=HEADERS,
        )
        assert response.status_code == 400

    @patch("replyo.services.job_queue.get_queue_lengths", return_value={"follow_up": 2})
    @patch("replyo.services.job_queue.run_due_jobs")
    def test_run_jobs(self, mock_run, mock_lengths, client, admin_token):
        mock_run.return_value = {"claimed": 1, "done": 1, "retried": 0, "failed": 0}
        response = client.post("/api/admin/jobs/run", json={"limit": 5}, headers=HEADERS)
        assert response.json()["data"] == {"claimed": 1, "done": 1, "retried": 0, "failed": 0, "queue": {"follow_up": 2}}
        assert mock_run.call_args.kwargs == {"limit": 5}

    @patch("replyo.routers.admin.send_alert", return_value=False)
    def test_alerts_test(self, mock_alert, client, admin_token):
        response = client.post("/api/admin/alerts/test", headers=HEADERS)
        assert response.json()["success"] is False

    @patch("replyo.services.follow_up_service.test_follow_up", return_value="Follow-up sent successfully")
    def test_send_follow_up_now(self, mock_test, client, admin_token):
        conversation_id = uuid.uuid4()
        response = client.post(f"/api/admin/follow-ups/{conversation_id}/test", headers=HEADERS)
        assert response.json() == {"success": True, "message": "Follow-up sent successfully"}
        assert mock_test.call_args.args[1] == conversation_id

    @patch(
        "replyo.services.follow_up_service.test_follow_up",
        return_value="Conversation not found or not eligible for follow-up",
    )
    def test_send_follow_up_now_not_eligible(self, mock_test, client, admin_token):
        response = client.post(f"/api/admin/follow-ups/{uuid.uuid4()}/test", headers=HEADERS)
        assert response.json()["success"] is False


class TestAdminBusinesses:
    @patch("replyo.services.stats_service.get_multi_business_stats")
    @patch("replyo.services.business_profile_service.get_all_business_profiles")
    def test_multi_business_stats(self, mock_profiles, mock_stats, client, admin_token):
        business = make_business()
        mock_profiles.return_value = [business]
        mock_stats.return_value = [{"business_id": str(business.id), "conversations": 3}]

        response = client.get("/api/admin/stats?days=7", headers=HEADERS)

        assert response.json()["data"][0]["conversations"] == 3
        assert mock_stats.call_args.args[1:] == ([business.id], 7)

    @patch("replyo.services.business_profile_service.get_all_business_usernames", return_value=["glowstudio"])
    def test_list_businesses(self, mock_usernames, client, admin_token):
        assert client.get("/api/admin/businesses", headers=HEADERS).json() == {"success": True, "data": ["glowstudio"]}

    @patch("replyo.services.business_profile_service.get_business_profile")
    def test_get_business(self, mock_get, client, admin_token):
        mock_get.return_value = make_business()
        response = client.get("/api/admin/businesses/glowstudio", headers=HEADERS)
        assert response.json()["data"]["business_name"] == "Glow Studio"

    @patch("replyo.services.business_profile_service.get_business_profile", return_value=None)
    def test_get_unknown_business(self, mock_get, client, admin_token):
        response = client.get("/api/admin/businesses/nobody", headers=HEADERS)
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Business profile not found"}

    @patch("replyo.services.business_profile_service.update_business_data", return_value=True)
    def test_update_business(self, mock_update, client, admin_token, db_session):
        response = client.patch(
            "/api/admin/businesses/glowstudio",
            json={"hours": "Mon-Sun 8-8", "avg_order_value": 65},
            headers=HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["data"] == ["avg_order_value", "hours"]
        assert mock_update.call_args.args[2] == {"hours": "Mon-Sun 8-8", "avg_order_value": 65.0}
        db_session.commit.assert_called_once()

    @patch("replyo.services.business_profile_service.update_business_data", return_value=False)
    def test_update_unknown_business(self, mock_update, client, admin_token, db_session):
        response = client.patch("/api/admin/businesses/nobody", json={"hours": "9-5"}, headers=HEADERS)
        assert response.status_code == 404
        db_session.commit.assert_not_called()

    def test_update_rejects_bad_multiplier(self, client, admin_token):
        response = client.patch(
            "/api/admin/businesses/glowstudio",
            json={"conversion_multiplier": 3},
            headers=HEADERS,
        )
        assert response.status_code == 400

    @patch("replyo.services.conversation_persistence.get_business_analytics")
    @patch("replyo.services.business_profile_service.get_business_profile")
    def test_business_analytics(self, mock_get, mock_analytics, client, admin_token):
        business = make_business()
        mock_get.return_value = business
        mock_analytics.return_value = {"period_days": 14, "conversations": 5}

        response = client.get("/api/admin/businesses/glowstudio/analytics?days=14", headers=HEADERS)

        assert response.json()["data"]["conversations"] == 5
        assert mock_analytics.call_args.args[1:] == (business.id, 14)

    @patch("replyo.services.instagram_service.get_instagram_pages_by_subscription")
    def test_subscription_pages(self, mock_pages, client, admin_token):
        subscription_id = uuid.uuid4()
        mock_pages.return_value = [
            InstagramPage(id=uuid.uuid4(), page_id="1789", page_name="Glow", subscription_id=subscription_id)
        ]

        response = client.get(f"/api/admin/subscriptions/{subscription_id}/pages", headers=HEADERS)

        page = response.json()["data"][0]
        assert page["page_id"] == "1789"
        assert page["subscription_id"] == str(subscription_id)
        assert page["connected_at"] is None
