"""Unit tests for homepage category rotation."""

from datetime import datetime, timedelta, timezone

import pytest

from vibe.config import FeaturedConfig
from vibe.featured.rotation import (
    FeaturedHistoryEntry,
    compute_rotation_insight,
    rotation_modifier,
)
from vibe.protocols import CategoryRef

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

MOVIES = CategoryRef(id="c-movies", slug="movies", name="Movies")
BOOKS = CategoryRef(id="c-books", slug="books", name="Books")
MUSIC = CategoryRef(id="c-music", slug="music", name="Music")


def _slot(category: CategoryRef | None, days_ago: float, list_id: str = "l1") -> FeaturedHistoryEntry:
    return FeaturedHistoryEntry(
        list_id=list_id,
        start_at=NOW - timedelta(days=days_ago),
        category_id=category.id if category else None,
        category_name=category.name if category else None,
    )


class TestRotationModifier:
    @pytest.mark.parametrize(
        ("count", "in_last", "expected"),
        [
            (0, False, 0.3),
            (0, True, 0.1),
            (1, False, 0.0),
            (1, True, -0.2),
            (2, False, -0.3),
            (3, True, -0.3),
        ],
    )
    def test_rules_and_bound(self, count, in_last, expected):
        assert rotation_modifier(count, in_last) == pytest.approx(expected)

    def test_custom_bound(self):
        config = FeaturedConfig(rotation_bound=0.1)
        assert rotation_modifier(0, False, config) == pytest.approx(0.1)
        assert rotation_modifier(5, True, config) == pytest.approx(-0.1)


class TestComputeRotationInsight:
    def test_empty_history(self):
        insight = compute_rotation_insight([], [MOVIES, BOOKS], NOW)
        assert insight.category_stats == []
        assert insight.suggested_category is None
        assert insight.reasoning == "No featured slots recorded yet."

    def test_overexposed_and_fresh_categories(self):
        history = [_slot(MOVIES, 1), _slot(MOVIES, 10), _slot(BOOKS, 20)]
        insight = compute_rotation_insight(history, [MOVIES, BOOKS, MUSIC], NOW)
        stats = {s.category_id: s for s in insight.category_stats}

        assert stats[MOVIES.id].count_last_4_weeks == 2
        assert stats[MOVIES.id].in_last_slot is True
        assert stats[MOVIES.id].rotation_modifier == pytest.approx(-0.3)
        assert stats[BOOKS.id].rotation_modifier == 0.0
        assert stats[MUSIC.id].rotation_modifier == pytest.approx(0.3)

        assert insight.suggested_category == "Music"
        assert insight.suggested_category_id == MUSIC.id
        assert insight.reasoning == (
            "In the last 4 weeks Movies (2 times) were featured. "
            "Consider featuring Music this week."
        )

    def test_modifiers_stay_within_bound(self):
        history = [_slot(MOVIES, d) for d in range(0, 28, 2)]
        insight = compute_rotation_insight(history, [MOVIES, BOOKS], NOW)
        for stat in insight.category_stats:
            assert -0.3 <= stat.rotation_modifier <= 0.3

    def test_slots_outside_window_ignored(self):
        history = [_slot(MOVIES, 40), _slot(BOOKS, 3)]
        insight = compute_rotation_insight(history, [MOVIES, BOOKS], NOW)
        stats = {s.category_id: s for s in insight.category_stats}
        assert stats[MOVIES.id].count_last_4_weeks == 0

    def test_future_slots_ignored(self):
        history = [_slot(MOVIES, -2), _slot(BOOKS, 3)]
        insight = compute_rotation_insight(history, [MOVIES, BOOKS], NOW)
        stats = {s.category_id: s for s in insight.category_stats}
        assert stats[MOVIES.id].count_last_4_weeks == 0
        assert stats[BOOKS.id].in_last_slot is True

    def test_inactive_and_uncategorized_history_reported(self):
        retired = CategoryRef(id="c-retired", slug="retired", name="Retired")
        history = [_slot(retired, 5), _slot(None, 2)]
        insight = compute_rotation_insight(history, [MOVIES], NOW)
        stats = {s.category_id: s for s in insight.category_stats}

        assert stats["c-retired"].name == "Retired"
        assert stats["c-retired"].count_last_4_weeks == 1
        assert stats["unknown"].name == "Uncategorized"
        assert stats["unknown"].in_last_slot is True

    def test_single_due_category_suggested(self):
        insight = compute_rotation_insight([_slot(MOVIES, 1)], [MOVIES], NOW)
        assert insight.suggested_category == "Movies"
        assert insight.reasoning == 'Suggested: feature the "Movies" category this week.'

    def test_balanced_history(self):
        insight = compute_rotation_insight([_slot(MOVIES, 1), _slot(MOVIES, 8)], [MOVIES], NOW)
        assert insight.suggested_category is None
        assert insight.reasoning == "Recent featured history is already well balanced across categories."

    def test_modifiers_by_category(self):
        insight = compute_rotation_insight([_slot(MOVIES, 1)], [MOVIES, BOOKS], NOW)
        assert insight.modifiers_by_category == pytest.approx({MOVIES.id: -0.2, BOOKS.id: 0.3})
