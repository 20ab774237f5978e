from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from replyo.services import revenue_estimator
from replyo.services.revenue_estimator import RevenueCalculation


class TestCalculateRevenue:
    def test_business_values_give_high_confidence(self):
        revenue = revenue_estimator.calculate_revenue(10, industry="beauty", avg_order_value=80, conversion_multiplier=0.5)
        assert revenue.estimated_revenue == 400.0
        assert revenue.confidence == "high"

    def test_industry_default(self):
        revenue = revenue_estimator.calculate_revenue(3, industry="Plumbing")
        assert revenue.avg_order_value == 300.0
        assert revenue.conversion_multiplier == 0.65
        assert revenue.estimated_revenue == 585.0
        assert revenue.confidence == "medium"

    def test_no_information_is_low_confidence(self):
        revenue = revenue_estimator.calculate_revenue(1)
        assert revenue.avg_order_value == 150.0
        assert revenue.estimated_revenue == 97.5
        assert revenue.confidence == "low"

    def test_unknown_industry_uses_global_default(self):
        revenue = revenue_estimator.calculate_revenue(2, industry="bakery")
        assert revenue.avg_order_value == 150.0

    def test_rounds_to_pennies(self):
        revenue = revenue_estimator.calculate_revenue(1, avg_order_value=10, conversion_multiplier=0.333)
        assert revenue.estimated_revenue == 3.33


class TestHelpers:
    def test_average_response_minutes(self):
        start = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
        pairs = [(start, start + timedelta(minutes=1)), (start, start + timedelta(minutes=2)), (start, None)]
        assert revenue_estimator.average_response_minutes(pairs) == 1.5

    def test_average_response_minutes_without_replies(self):
        assert revenue_estimator.average_response_minutes([]) is None

    @pytest.mark.parametrize(
        "current,previous,expected",
        [(150.0, 100.0, 50.0), (50.0, 100.0, -50.0), (100.0, 0.0, None), (0.0, 0.0, None)],
    )
    def test_growth_percent(self, current, previous, expected):
        assert revenue_estimator.growth_percent(current, previous) == expected


class TestRevenueGrowth:
    def _stats(self, amount):
        stats = revenue_estimator.PeriodStats(
            business_id="b",
            period_start=datetime(2026, 3, 1, tzinfo=timezone.utc),
            period_end=datetime(2026, 3, 31, tzinfo=timezone.utc),
            total_conversations=0,
            qualified_leads=0,
            booking_clicks=0,
            top_service=None,
            avg_response_time_minutes=None,
            conversion_rate=0.0,
            revenue=RevenueCalculation(0, 150.0, 0.65, amount, "low"),
        )
        return stats

    @patch("replyo.services.revenue_estimator.get_business_stats")
    def test_compares_with_previous_period(self, mock_stats, db_session):
        mock_stats.side_effect = [self._stats(300.0), self._stats(200.0)]
        end = datetime(2026, 3, 31, tzinfo=timezone.utc)
        start = end - timedelta(days=30)

        growth = revenue_estimator.get_revenue_growth(db_session, "b", start, end)

        assert growth == {"current_revenue": 300.0, "previous_revenue": 200.0, "growth_percent": 50.0}
        previous_call = mock_stats.call_args_list[1]
        assert previous_call.args[2:] == (start - timedelta(days=30), start)

    def test_period_stats_serializes_dates(self):
        data = self._stats(10.0).to_dict()
        assert data["period_start"] == "2026-03-01T00:00:00+00:00"
        assert data["revenue"]["estimated_revenue"] == 10.0


class TestAggregateStatsForPeriod:
    def test_existing_row_is_kept_without_force(self, db_session):
        existing = object()
        db_session.query.return_value.filter.return_value.first.return_value = existing
        start = datetime(2026, 3, 1, 10, tzinfo=timezone.utc)
        with patch("replyo.services.revenue_estimator.get_business_stats") as mock_stats:
            assert revenue_estimator.aggregate_stats_for_period(db_session, "b", start, start + timedelta(hours=1)) is existing
        mock_stats.assert_not_called()

    @patch("replyo.services.revenue_estimator.get_business_stats")
    def test_new_row_is_added(self, mock_stats, db_session):
        db_session.query.return_value.filter.return_value.first.return_value = None
        stats = TestRevenueGrowth()._stats(65.0)
        stats.booking_clicks = 1
        mock_stats.return_value = stats
        start = datetime(2026, 3, 1, 10, tzinfo=timezone.utc)

        row = revenue_estimator.aggregate_stats_for_period(db_session, "b", start, start + timedelta(hours=1))

        assert row.booking_clicks == 1
        assert row.estimated_revenue == 65.0
        assert row.revenue_confidence == "low"
        db_session.add.assert_called_once_with(row)
