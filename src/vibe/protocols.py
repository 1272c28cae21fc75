"""Storage and metrics contracts consumed by the engine.

The engine only talks to these protocols. The SQLAlchemy repositories in each
package implement them for production; tests use in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from vibe.achievements.catalog import AchievementDefinition
    from vibe.achievements.evaluator import UserActivity
    from vibe.featured.rotation import FeaturedHistoryEntry
    from vibe.featured.suggestions import FeaturedCandidate
    from vibe.ranking.engine import CreatorRankingRow
    from vibe.ranking.scores import CreatorAggregates
    from vibe.spotlight.selector import (
        CreatorProfile,
        SpotlightCandidate,
        SpotlightList,
        SpotlightRow,
    )
    from vibe.trending.score import ListMetrics7d, TrendingBadge


@dataclass(frozen=True)
class CategoryRef:
    """An active category as seen by the engine."""

    id: str
    slug: str
    name: str


class RankingStore(Protocol):
    async def list_creator_ids(self) -> list[str]:
        """Users with at least one public, active list."""
        ...

    async def get_creator_aggregates(self, user_id: str, now: datetime) -> CreatorAggregates | None:
        """Raw aggregates for one creator, or None if the user vanished."""
        ...

    async def get_previous_global_ranks(self, user_ids: Sequence[str]) -> dict[str, int]: ...

    async def list_active_categories(self) -> list[CategoryRef]: ...

    async def list_creators_with_public_lists_in_category(self, category_id: str) -> set[str]: ...

    async def persist_ranking(self, row: CreatorRankingRow) -> None: ...


class MetricsProvider(Protocol):
    async def get_list_metrics_7d(self, list_ids: Sequence[str], now: datetime) -> dict[str, ListMetrics7d]: ...

    def calculate_trending_score(self, metrics: ListMetrics7d) -> float: ...

    def get_trending_badge(self, score: float) -> TrendingBadge: ...


class AchievementStore(Protocol):
    async def get_catalog_ids(self) -> dict[str, int]:
        """Achievement code -> row id for every catalog row."""
        ...

    async def upsert_achievement_catalog_row(self, definition: AchievementDefinition) -> None: ...

    async def get_unlocked_achievement_ids(self, user_id: str) -> set[int]: ...

    async def insert_unlock(self, user_id: str, achievement_id: int, unlocked_at: datetime) -> bool:
        """Insert an unlock row. False if the (user, achievement) pair already exists."""
        ...

    async def get_user_activity(self, user_id: str) -> UserActivity: ...


class SpotlightStore(Protocol):
    async def get_active_spotlight(self, now: datetime) -> SpotlightRow | None: ...

    async def get_active_spotlight_for_user(self, user_id: str, now: datetime) -> SpotlightRow | None: ...

    async def count_recent_spotlights(self, user_id: str, since: datetime) -> int:
        """Spotlights for the user whose end_date is on or after ``since``."""
        ...

    async def create_spotlight(
        self,
        user_id: str,
        spotlight_type: str,
        start: datetime,
        end: datetime,
        category_slug: str | None = None,
    ) -> SpotlightRow: ...

    async def list_creator_ids(self) -> list[str]: ...

    async def has_recent_activity(self, user_id: str, since: datetime) -> bool:
        """A public list update or a comment on or after ``since``."""
        ...

    async def get_spotlight_inputs(self, user_ids: Sequence[str]) -> list[SpotlightCandidate]: ...

    async def get_creator_profile(self, user_id: str) -> CreatorProfile | None: ...

    async def get_top_lists(self, user_id: str, limit: int) -> list[SpotlightList]: ...


class FeaturedStore(Protocol):
    async def list_eligible_featured_candidates(self) -> list[FeaturedCandidate]:
        """Non-deleted, active, public lists."""
        ...

    async def get_featured_history(self, since: datetime) -> list[FeaturedHistoryEntry]:
        """Slots still relevant after ``since``: started or ended after it, or open-ended."""
        ...

    async def get_category_impact_scores(self, window_days: int, now: datetime) -> dict[str, float]: ...

    async def list_active_categories(self) -> list[CategoryRef]: ...
