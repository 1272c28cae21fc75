"""SQL-backed metrics provider: 7-day engagement bundles per list."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vibe.config import TrendingConfig
from vibe.db.models import Bookmark, CuratedList, ListComment, ListLike
from vibe.trending.score import (
    DEFAULT_TRENDING,
    ListMetrics7d,
    TrendingBadge,
    apply_fast_rising_boost,
    calculate_save_velocity,
    calculate_trending_score,
    get_trending_badge,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class SqlMetricsProvider:
    """Builds ListMetrics7d bundles from bookmarks, likes and comments."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: TrendingConfig = DEFAULT_TRENDING,
    ) -> None:
        self._session_factory = session_factory
        self.config = config

    def calculate_trending_score(self, metrics: ListMetrics7d) -> float:
        """Trending score plus the fast-rising bonus for a busy last 24h."""
        score = calculate_trending_score(metrics, self.config)
        return apply_fast_rising_boost(score, metrics.s1, self.config)

    def get_trending_badge(self, score: float) -> TrendingBadge:
        return get_trending_badge(score, self.config)

    async def get_list_metrics_7d(
        self,
        list_ids: Sequence[str],
        now: datetime | None = None,
    ) -> dict[str, ListMetrics7d]:
        """Metrics for every requested list that still exists.

        Lists missing from the lists table are omitted so callers can skip them.
        """
        if not list_ids:
            return {}
        if now is None:
            now = datetime.now(timezone.utc)
        days = self.config.window_days
        cutoff = now - timedelta(days=days)
        day_cutoff = now - timedelta(days=1)
        ids = list(list_ids)

        async with self._session_factory() as db:
            saves = await db.execute(
                select(
                    Bookmark.list_id,
                    func.count(Bookmark.id).label("cnt"),
                    func.count(Bookmark.id).filter(Bookmark.created_at >= day_cutoff).label("cnt_1d"),
                    func.max(Bookmark.created_at).label("last_save"),
                )
                .where(Bookmark.list_id.in_(ids), Bookmark.created_at >= cutoff)
                .group_by(Bookmark.list_id)
            )
            save_rows = {row.list_id: row for row in saves}

            likes = await db.execute(
                select(ListLike.list_id, func.count(ListLike.id).label("cnt"))
                .where(ListLike.list_id.in_(ids), ListLike.created_at >= cutoff)
                .group_by(ListLike.list_id)
            )
            like_counts = {row.list_id: row.cnt for row in likes}

            comments = await db.execute(
                select(ListComment.list_id, func.count(ListComment.id).label("cnt"))
                .where(
                    ListComment.list_id.in_(ids),
                    ListComment.created_at >= cutoff,
                    ListComment.status == "active",
                    ListComment.is_approved.is_(True),
                )
                .group_by(ListComment.list_id)
            )
            comment_counts = {row.list_id: row.cnt for row in comments}

            created = await db.execute(
                select(CuratedList.id, CuratedList.created_at).where(CuratedList.id.in_(ids))
            )
            created_at = {row.id: row.created_at for row in created}

        result: dict[str, ListMetrics7d] = {}
        for list_id in ids:
            if list_id not in created_at:
                logger.debug("List %s vanished before metrics were built", list_id)
                continue
            save_row = save_rows.get(list_id)
            s7 = int(save_row.cnt) if save_row else 0
            s1 = int(save_row.cnt_1d) if save_row else 0
            if save_row and save_row.last_save:
                days_since_last_save = (now - save_row.last_save).total_seconds() / SECONDS_PER_DAY
            else:
                days_since_last_save = days + 1
            age_days = (now - created_at[list_id]).total_seconds() / SECONDS_PER_DAY

            result[list_id] = ListMetrics7d(
                s7=s7,
                l7=int(like_counts.get(list_id, 0)),
                c7=int(comment_counts.get(list_id, 0)),
                v7=0,
                age_days=max(0.0, age_days),
                save_velocity=calculate_save_velocity(s7, days_since_last_save, self.config),
                s1=s1,
            )
        return result
