"""Unit tests for achievement signals and unlock conditions."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from vibe.achievements.catalog import ACHIEVEMENT_DEFINITIONS
from vibe.achievements.evaluator import (
    CONDITIONS,
    UserActivity,
    build_signals,
    count_days_in_window,
    evaluate_conditions,
    has_consecutive_days,
    is_comeback,
    to_activity_dates,
)

TODAY = date(2026, 3, 1)


def _days_ago(*offsets: int) -> frozenset[date]:
    return frozenset(TODAY - timedelta(days=o) for o in offsets)


def _evaluate(**fields) -> dict[str, bool]:
    activity = UserActivity(user_id="u1", **fields)
    return evaluate_conditions(build_signals(activity, TODAY))


class TestCatalog:
    def test_fourteen_unique_codes(self):
        codes = [d.code for d in ACHIEVEMENT_DEFINITIONS]
        assert len(codes) == 14
        assert len(set(codes)) == 14

    def test_every_code_has_condition(self):
        assert {d.code for d in ACHIEVEMENT_DEFINITIONS} == set(CONDITIONS)

    def test_categories_and_tiers(self):
        for d in ACHIEVEMENT_DEFINITIONS:
            assert d.category in {"creation", "impact", "community", "consistency"}
            assert d.tier in {"bronze", "silver", "gold", "elite"}
            assert d.is_secret is False


class TestSevenDayStreak:
    def test_contiguous_week_unlocks(self):
        """Activity on d0..d6 -> SEVEN_DAY_VIBER."""
        results = _evaluate(activity_dates=_days_ago(0, 1, 2, 3, 4, 5, 6))
        assert results["SEVEN_DAY_VIBER"] is True

    def test_one_gap_day_does_not_unlock(self):
        results = _evaluate(activity_dates=_days_ago(0, 1, 2, 4, 5, 6, 7))
        assert results["SEVEN_DAY_VIBER"] is False

    def test_old_streak_still_counts(self):
        dates = [date(2025, 1, 1) + timedelta(days=i) for i in range(7)]
        assert has_consecutive_days(dates, 7) is True

    def test_six_days_not_enough(self):
        assert has_consecutive_days(_days_ago(0, 1, 2, 3, 4, 5), 7) is False


class TestMonthlyCreator:
    def test_ten_days_in_window(self):
        results = _evaluate(activity_dates=_days_ago(*range(0, 30, 3)))
        assert results["MONTHLY_CREATOR"] is True

    def test_nine_days_in_window(self):
        results = _evaluate(activity_dates=_days_ago(*range(0, 27, 3)))
        assert results["MONTHLY_CREATOR"] is False

    def test_window_boundary_inclusive(self):
        assert count_days_in_window(_days_ago(30, 31), TODAY, 30) == 1


class TestComeback:
    def test_long_gap_then_recent_activity(self):
        assert is_comeback(_days_ago(40, 2), TODAY, 30, 7) is True

    def test_gap_but_not_recent(self):
        assert is_comeback(_days_ago(45, 10), TODAY, 30, 7) is False

    def test_only_last_gap_matters(self):
        assert is_comeback(_days_ago(80, 40, 10, 1), TODAY, 30, 7) is False

    def test_latest_gap_after_earlier_gap(self):
        assert is_comeback(_days_ago(80, 40, 35, 1), TODAY, 30, 7) is True

    def test_short_gap(self):
        assert is_comeback(_days_ago(20, 1), TODAY, 30, 7) is False

    def test_single_date(self):
        assert is_comeback(_days_ago(1), TODAY, 30, 7) is False


class TestActivityDates:
    def test_converted_to_utc_dates(self):
        plus_five = timezone(timedelta(hours=5))
        dates = to_activity_dates([
            datetime(2026, 3, 1, 1, 0, tzinfo=plus_five),
            datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
            datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc),
        ])
        assert dates == frozenset({date(2026, 2, 28), date(2026, 3, 1)})


class TestThresholdConditions:
    @pytest.mark.parametrize(
        ("fields", "code"),
        [
            ({"public_list_count": 1}, "FIRST_VIBE"),
            ({"public_list_count": 5}, "FIVE_LISTS"),
            ({"public_list_count": 20}, "TWENTY_LISTS"),
            ({"public_list_count": 50, "avg_saves_per_list": 3}, "MASTER_CURATOR"),
            ({"viral_lists": 1}, "VIRAL_SPARK"),
            ({"viral_lists": 3}, "TREND_MAKER"),
            ({"max_list_saves": 100}, "SAVES_100"),
            ({"max_list_saves": 500}, "SAVES_500"),
            ({"helpful_votes": 10}, "HELPFUL_VOICE"),
            ({"approved_suggestions": 5}, "INSIGHTFUL_CURATOR"),
            ({"total_likes": 100}, "COMMUNITY_FAVORITE"),
        ],
    )
    def test_unlocks_at_threshold(self, fields, code):
        assert _evaluate(**fields)[code] is True

    def test_master_curator_needs_engagement(self):
        results = _evaluate(public_list_count=60, avg_saves_per_list=2.9)
        assert results["MASTER_CURATOR"] is False
        assert results["TWENTY_LISTS"] is True

    def test_below_thresholds(self):
        results = _evaluate(
            public_list_count=4,
            viral_lists=2,
            max_list_saves=99,
            helpful_votes=9,
            approved_suggestions=4,
            total_likes=99,
        )
        assert results["FIRST_VIBE"] is True
        for code in ("FIVE_LISTS", "TREND_MAKER", "SAVES_100", "HELPFUL_VOICE",
                     "INSIGHTFUL_CURATOR", "COMMUNITY_FAVORITE"):
            assert results[code] is False

    def test_new_user_unlocks_nothing(self):
        assert not any(_evaluate().values())
