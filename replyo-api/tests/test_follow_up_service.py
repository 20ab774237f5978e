from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

from factories import make_business, make_conversation, row

from replyo.services import follow_up_service

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _access(allowed):
    return {"limits": {"can_process_messages": allowed, "can_send_follow_ups": allowed}}


class TestSendFollowUpMessage:
    @patch("replyo.services.conversation_persistence.save_message")
    def test_first_follow_up_is_delivered_and_rescheduled(self, mock_save, db_session):
        business = make_business(instagram_access_token="page-token")
        conversation = make_conversation(business, state="BOOK", lead_service="Nails")
        client = Mock()
        client.send_message.return_value = {"recipient_id": "ig-user-1", "message_id": "m1"}

        outcome = follow_up_service.send_follow_up_message(db_session, conversation, client=client, now=NOW)

        assert outcome == {"conversation_id": str(conversation.id), "follow_up_count": 1, "delivered": True}
        assert conversation.state == "FOLLOW_UP"
        assert conversation.follow_up_count == 1
        assert conversation.next_follow_up_at == NOW + timedelta(hours=48)
        token, recipient, text, replies = client.send_message.call_args.args
        assert (token, recipient) == ("page-token", "ig-user-1")
        assert text.startswith("Hi again!")
        assert replies
        mock_save.assert_called_once()

    @patch("replyo.services.conversation_persistence.save_message")
    def test_last_follow_up_stops_scheduling(self, mock_save, db_session):
        business = make_business(instagram_access_token="page-token")
        conversation = make_conversation(business, state="FOLLOW_UP", follow_up_count=1)
        client = Mock()
        client.send_message.return_value = {"message_id": "m2"}

        outcome = follow_up_service.send_follow_up_message(db_session, conversation, client=client, now=NOW)

        assert outcome["follow_up_count"] == 2
        assert conversation.next_follow_up_at is None
        assert client.send_message.call_args.args[2].startswith("Last chance!")

    @patch("replyo.services.conversation_persistence.save_message")
    def test_without_token_nothing_is_delivered(self, mock_save, db_session):
        conversation = make_conversation(make_business())
        outcome = follow_up_service.send_follow_up_message(db_session, conversation, now=NOW)
        assert outcome["delivered"] is False

    @patch("replyo.services.conversation_persistence.save_message")
    def test_graph_error_is_reported(self, mock_save, db_session):
        conversation = make_conversation(make_business(instagram_access_token="t"))
        client = Mock()
        client.send_message.return_value = {"error": {"message": "expired"}}
        outcome = follow_up_service.send_follow_up_message(db_session, conversation, client=client, now=NOW)
        assert outcome["delivered"] is False


class TestProcessPendingFollowUps:
    @patch("replyo.services.follow_up_service.billing_service.check_access_for_business")
    @patch("replyo.services.conversation_persistence.get_conversations_for_follow_up")
    def test_no_access_clears_schedule(self, mock_due, mock_access, db_session):
        conversation = make_conversation(make_business(), next_follow_up_at=NOW)
        mock_due.return_value = [conversation]
        mock_access.return_value = _access(False)

        summary = follow_up_service.process_pending_follow_ups(db_session, now=NOW)

        assert summary == {"checked": 1, "sent": 0, "skipped": 1, "errors": 0}
        assert conversation.next_follow_up_at is None
        db_session.commit.assert_called_once()

    @patch("replyo.services.follow_up_service.send_follow_up_message")
    @patch("replyo.services.follow_up_service.billing_service.check_access_for_business")
    @patch("replyo.services.conversation_persistence.get_conversations_for_follow_up")
    def test_one_failure_does_not_stop_the_batch(self, mock_due, mock_access, mock_send, db_session):
        business = make_business()
        mock_due.return_value = [make_conversation(business), make_conversation(business)]
        mock_access.return_value = _access(True)
        mock_send.side_effect = [RuntimeError("graph down"), {"delivered": True}]

        summary = follow_up_service.process_pending_follow_ups(db_session, now=NOW)

        assert summary == {"checked": 2, "sent": 1, "skipped": 0, "errors": 1}
        db_session.rollback.assert_called_once()


class TestSummarizeFollowUpEffect:
    def test_response_rate_and_delay(self):
        messages = [
            row(conversation_id="a", from_business=True, state="FOLLOW_UP", created_at=NOW),
            row(conversation_id="a", from_business=False, state="FOLLOW_UP", created_at=NOW + timedelta(minutes=30)),
            row(conversation_id="b", from_business=True, state="FOLLOW_UP", created_at=NOW),
            row(conversation_id="c", from_business=False, state="START", created_at=NOW),
            row(conversation_id="c", from_business=True, state="FOLLOW_UP", created_at=NOW),
        ]

        summary = follow_up_service.summarize_follow_up_effect(messages, {"a"})

        assert summary == {
            "total_follow_ups_sent": 3,
            "follow_up_response_rate": 33.33,
            "follow_up_conversions": 1,
            "avg_time_to_response_minutes": 30.0,
        }

    def test_nothing_sent(self):
        summary = follow_up_service.summarize_follow_up_effect([], set())
        assert summary["follow_up_response_rate"] == 0.0


class TestManualFollowUp:
    @patch("replyo.services.conversation_persistence.get_conversations_for_follow_up")
    def test_not_eligible(self, mock_due, db_session):
        mock_due.return_value = []
        assert (
            follow_up_service.test_follow_up(db_session, "missing")
            == "Conversation not found or not eligible for follow-up"
        )

    @patch("replyo.services.follow_up_service.send_follow_up_message")
    @patch("replyo.services.conversation_persistence.get_conversations_for_follow_up")
    def test_sends_due_conversation(self, mock_due, mock_send, db_session):
        conversation = make_conversation(make_business())
        mock_due.return_value = [conversation]
        assert follow_up_service.test_follow_up(db_session, str(conversation.id)) == "Follow-up sent successfully"
        mock_send.assert_called_once_with(db_session, conversation)
        db_session.commit.assert_called_once()

    def test_cancel(self, db_session):
        conversation = make_conversation(next_follow_up_at=NOW)
        with patch("replyo.services.conversation_persistence.get_conversation", return_value=conversation):
            assert follow_up_service.cancel_follow_ups(db_session, conversation.id) is True
        assert conversation.next_follow_up_at is None
