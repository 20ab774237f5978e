from datetime import date, timedelta
from unittest.mock import patch

from factories import make_conversation, row

from replyo.services import stats_service


def _daily(day_offset, conversations, bookings, service=None):
    return row(
        date=date(2026, 3, 31) - timedelta(days=day_offset),
        total_conversations=conversations,
        qualified_leads=conversations // 2,
        booking_clicks=bookings,
        most_requested_service=service,
        response_rate=0.5,
        conversion_rate=bookings / conversations if conversations else 0.0,
    )


class TestComputeDailyStats:
    def test_counts(self):
        conversations = [
            make_conversation(state="BOOK", is_qualified=True, has_booked=True, lead_service="Nails"),
            make_conversation(state="QUALIFY_TIMING", is_qualified=True, lead_service="Nails"),
            make_conversation(state="START"),
            make_conversation(state="PRICES", lead_service="Lashes"),
        ]
        stats = stats_service.compute_daily_stats(conversations)
        assert stats["total_conversations"] == 4
        assert stats["qualified_leads"] == 2
        assert stats["booking_clicks"] == 1
        assert stats["most_requested_service"] == "Nails"
        assert stats["response_rate"] == 0.75
        assert stats["conversion_rate"] == 0.25

    def test_empty_day(self):
        stats = stats_service.compute_daily_stats([])
        assert stats["total_conversations"] == 0
        assert stats["response_rate"] == 0.0


class TestSummarizeDailyStats:
    def test_trend_compares_last_week_with_the_week_before(self):
        rows = [_daily(i, 10, 2, "Nails") for i in range(7)] + [_daily(i, 5, 2) for i in range(7, 14)]
        summary = stats_service.summarize_daily_stats(rows)
        assert summary["conversations"] == 105
        assert summary["booking_clicks"] == 28
        assert summary["top_service"] == "Nails"
        assert summary["trend"] == {"conversations": 100.0, "bookings": 0.0}
        assert summary["daily_stats"][0]["date"] == "2026-03-31"

    def test_no_previous_week_means_flat_trend(self):
        summary = stats_service.summarize_daily_stats([_daily(0, 4, 1)])
        assert summary["trend"] == {"conversations": 0.0, "bookings": 0.0}

    def test_no_rows(self):
        summary = stats_service.summarize_daily_stats([])
        assert summary["conversations"] == 0
        assert summary["daily_stats"] == []


class TestRecordConversationEvent:
    def test_known_event_updates_today(self, db_session):
        with patch("replyo.services.stats_service.update_daily_stats") as update:
            stats_service.record_conversation_event(db_session, "biz-1", "book")
        update.assert_called_once_with(db_session, "biz-1")

    def test_unknown_event_is_ignored(self, db_session):
        with patch("replyo.services.stats_service.update_daily_stats") as update:
            stats_service.record_conversation_event(db_session, "biz-1", "refund")
        update.assert_not_called()


class TestMultiBusinessStats:
    def test_no_businesses_skips_query(self, db_session):
        assert stats_service.get_multi_business_stats(db_session, []) == []
        db_session.query.assert_not_called()

    def test_rows_are_converted(self, db_session):
        query = db_session.query.return_value
        query.filter.return_value.group_by.return_value.all.return_value = [
            ("biz-1", 12, 6, 3, 0.5, 0.25),
            ("biz-2", None, None, None, None, None),
        ]

        stats = stats_service.get_multi_business_stats(db_session, ["biz-1", "biz-2"], days=7)

        assert stats == [
            {
                "business_id": "biz-1",
                "conversations": 12,
                "qualified_leads": 6,
                "booking_clicks": 3,
                "response_rate": 0.5,
                "conversion_rate": 0.25,
            },
            {
                "business_id": "biz-2",
                "conversations": 0,
                "qualified_leads": 0,
                "booking_clicks": 0,
                "response_rate": 0.0,
                "conversion_rate": 0.0,
            },
        ]
