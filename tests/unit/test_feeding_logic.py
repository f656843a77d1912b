# =============================================================================
# tests/unit/test_feeding_logic.py
# Unit Tests for Feeding Schedule Helpers
# =============================================================================

import pytest
from datetime import date, datetime, timedelta, timezone

from babycare_core.analysis.feeding_logic import (
    age_in_months,
    daily_guideline,
    daily_volume_totals,
    feedings_frame,
    predict_next_feeding,
    total_volume_today,
)
from babycare_core.data.records import FeedingRecord, PumpingRecord


def _feeding(record_id, when, quantity=100):
    return FeedingRecord(record_id, when, "formula", quantity)


class TestAgeInMonths:
    """Test whole-month age"""

    def test_before_month_day(self):
        assert age_in_months("2024-01-15", today=date(2024, 3, 14)) == 1

    def test_on_month_day(self):
        assert age_in_months("2024-01-15", today=date(2024, 3, 15)) == 2

    def test_newborn(self):
        assert age_in_months(date(2024, 6, 1), today=date(2024, 6, 20)) == 0


class TestPredictNextFeeding:
    """Test interval by age bracket"""

    @pytest.mark.parametrize("age,hours", [(0, 2.5), (1, 3.5), (3, 3.5), (4, 4), (9, 4)])
    def test_interval(self, age, hours):
        last = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)
        feedings = [_feeding("a", last - timedelta(hours=3)), _feeding("b", last)]

        assert predict_next_feeding(feedings, age) == last + timedelta(hours=hours)

    def test_no_feedings(self):
        assert predict_next_feeding([], 2) is None


class TestDailyGuideline:
    """Test guideline brackets"""

    def test_brackets(self):
        assert daily_guideline(0).quantity == "60-90 ml"
        assert daily_guideline(1).quantity == "90-120 ml"
        assert daily_guideline(3).total == "960-1440 ml"
        assert daily_guideline(5).frequency == "every 4-5 hours"
        assert daily_guideline(12).quantity == "240 ml"


class TestVolumes:
    """Test daily totals"""

    def test_total_volume_today(self):
        now = datetime(2024, 6, 1, 18, 0, tzinfo=timezone.utc)
        feedings = [
            _feeding("a", datetime(2024, 6, 1, 1, 0, tzinfo=timezone.utc), 90),
            _feeding("b", datetime(2024, 6, 1, 15, 0, tzinfo=timezone.utc), 120),
            _feeding("c", datetime(2024, 5, 31, 23, 0, tzinfo=timezone.utc), 60),
        ]

        assert total_volume_today(feedings, now=now) == 210

    def test_daily_volume_totals(self):
        records = [
            PumpingRecord("p1", datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc), 80),
            PumpingRecord("p2", datetime(2024, 6, 1, 20, 0, tzinfo=timezone.utc), 70),
            PumpingRecord("p3", datetime(2024, 6, 2, 8, 0, tzinfo=timezone.utc), 100),
        ]

        totals = daily_volume_totals(records, tz="UTC")

        assert list(totals["total_ml"]) == [150, 100]
        assert list(totals["count"]) == [2, 1]
        assert totals["date"].iloc[0] == date(2024, 6, 1)

    def test_daily_volume_totals_empty(self):
        assert daily_volume_totals([]).empty

    def test_feedings_frame(self):
        frame = feedings_frame([
            _feeding("a", datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)),
            _feeding("b", datetime(2024, 6, 1, 11, 0, tzinfo=timezone.utc)),
        ])

        assert list(frame["id"]) == ["b", "a"]
        assert list(frame.columns) == ["id", "time", "type", "quantity"]
