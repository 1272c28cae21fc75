"""Service tests for homepage featured suggestions."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fakes import FakeFeaturedStore, FakeMetricsProvider

from vibe.config import FeaturedConfig
from vibe.featured.rotation import FeaturedHistoryEntry
from vibe.featured.suggestions import FeaturedBalancer, FeaturedCandidate
from vibe.protocols import CategoryRef
from vibe.trending.score import ListMetrics7d

pytestmark = pytest.mark.asyncio

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

MOVIES = CategoryRef(id="c-movies", slug="movies", name="Movies")
BOOKS = CategoryRef(id="c-books", slug="books", name="Books")


def _candidate(list_id: str, category: CategoryRef | None = None) -> FeaturedCandidate:
    return FeaturedCandidate(
        list_id=list_id,
        title=f"List {list_id}",
        slug=list_id,
        category_id=category.id if category else None,
        category_name=category.name if category else None,
    )


# trending = (10*4 + 5*5) / 1 = 65, base = 0.4*13 + 0.2*5 + 0.2*20 = 10.2
STEADY = ListMetrics7d(s7=10, save_velocity=5)

CANDIDATES = [
    _candidate("l1", MOVIES),
    _candidate("l2", BOOKS),
    _candidate("l3"),
    _candidate("l4", MOVIES),
    _candidate("l5", BOOKS),
]

# l4 was on the homepage last week: movies holds the last slot.
HISTORY = [
    FeaturedHistoryEntry(
        list_id="l4",
        start_at=NOW - timedelta(days=5),
        end_at=NOW - timedelta(days=2),
        category_id=MOVIES.id,
        category_name=MOVIES.name,
    ),
]


def _balancer(config: FeaturedConfig | None = None, metrics: dict | None = None):
    store = FakeFeaturedStore(CANDIDATES, HISTORY, categories=[MOVIES, BOOKS])
    provider = FakeMetricsProvider(metrics or {"l1": STEADY, "l2": STEADY, "l3": STEADY, "l4": STEADY})
    return FeaturedBalancer(store, provider, config or FeaturedConfig()), provider


class TestFeaturedSuggestions:
    async def test_rotation_reorders_equal_lists(self):
        balancer, _ = _balancer()
        result = await balancer.get_featured_suggestions(NOW)

        assert [s.list_id for s in result.suggestions] == ["l2", "l3", "l1"]
        by_id = {s.list_id: s for s in result.suggestions}
        assert by_id["l2"].suggestion_score == pytest.approx(13.3)
        assert by_id["l3"].suggestion_score == pytest.approx(10.2)
        assert by_id["l1"].suggestion_score == pytest.approx(8.2)
        assert by_id["l2"].rotation_modifier == pytest.approx(0.3)
        assert by_id["l1"].rotation_modifier == pytest.approx(-0.2)
        assert by_id["l3"].rotation_modifier == 0.0

    async def test_recently_featured_list_never_requested(self):
        balancer, provider = _balancer()
        await balancer.get_featured_suggestions(NOW)
        assert "l4" not in provider.requested
        assert "l5" in provider.requested

    async def test_list_without_metrics_skipped(self):
        balancer, _ = _balancer()
        result = await balancer.get_featured_suggestions(NOW)
        assert "l5" not in {s.list_id for s in result.suggestions}

    async def test_reasons_and_rounding(self):
        balancer, _ = _balancer()
        result = await balancer.get_featured_suggestions(NOW)
        l2 = next(s for s in result.suggestions if s.list_id == "l2")

        assert l2.trending_score == 65.0
        assert l2.save_velocity == 5.0
        assert l2.s7 == 10
        assert l2.reasons == [
            "Not featured recently",
            "This category has not been featured in recent weeks",
        ]

    async def test_metrics_read_at_requested_time(self):
        balancer, provider = _balancer()
        await balancer.get_featured_suggestions(NOW)
        assert provider.requested_at == NOW

    async def test_trending_badge_with_fast_rising_bonus(self):
        # (60*4 + 10*5) / 1 = 290, +20 for a busy last day
        rising = ListMetrics7d(s7=60, save_velocity=10, s1=20)
        balancer, _ = _balancer(metrics={"l1": rising, "l2": STEADY})
        result = await balancer.get_featured_suggestions(NOW)

        by_id = {s.list_id: s for s in result.suggestions}
        assert by_id["l1"].trending_score == 310.0
        assert by_id["l1"].trending_badge == "hot"
        assert by_id["l2"].trending_badge == "none"

    async def test_top_n(self):
        balancer, _ = _balancer(FeaturedConfig(top_n=2))
        result = await balancer.get_featured_suggestions(NOW)
        assert [s.list_id for s in result.suggestions] == ["l2", "l3"]

    async def test_candidate_limit_keeps_highest_trending(self):
        hot = ListMetrics7d(s7=50, save_velocity=5)
        balancer, _ = _balancer(
            FeaturedConfig(candidate_limit=1),
            metrics={"l1": hot, "l2": STEADY, "l3": STEADY},
        )
        result = await balancer.get_featured_suggestions(NOW)
        assert [s.list_id for s in result.suggestions] == ["l1"]

    async def test_rotation_report_included(self):
        balancer, _ = _balancer()
        result = await balancer.get_featured_suggestions(NOW)
        assert result.rotation.suggested_category == "Books"
        stats = {s.category_id: s for s in result.rotation.category_stats}
        assert stats[MOVIES.id].in_last_slot is True

    async def test_nothing_eligible(self):
        store = FakeFeaturedStore([_candidate("l4", MOVIES)], HISTORY, categories=[MOVIES])
        balancer = FeaturedBalancer(store, FakeMetricsProvider({"l4": STEADY}))
        result = await balancer.get_featured_suggestions(NOW)
        assert result.suggestions == []
        assert result.rotation is not None


class TestRotationInsight:
    async def test_reads_history_window(self):
        balancer, _ = _balancer()
        insight = await balancer.get_rotation_insight(NOW)
        assert insight.modifiers_by_category == pytest.approx({MOVIES.id: -0.2, BOOKS.id: 0.3})
        assert insight.suggested_category_id == BOOKS.id
