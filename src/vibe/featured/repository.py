"""SQLAlchemy implementation of FeaturedStore."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vibe.config import FeaturedConfig
from vibe.db.models import Category, CuratedList, HomeFeaturedSlot
from vibe.featured.impact import SlotPerformance, category_impact_scores
from vibe.featured.rotation import DEFAULT_FEATURED, FeaturedHistoryEntry
from vibe.featured.suggestions import FeaturedCandidate, start_of_day
from vibe.protocols import CategoryRef

logger = logging.getLogger(__name__)


class SqlFeaturedStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: FeaturedConfig = DEFAULT_FEATURED,
    ) -> None:
        self._session_factory = session_factory
        self.config = config

    async def list_eligible_featured_candidates(self) -> list[FeaturedCandidate]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(
                    CuratedList.id,
                    CuratedList.title,
                    CuratedList.slug,
                    CuratedList.cover_image,
                    CuratedList.category_id,
                    Category.name.label("category_name"),
                )
                .outerjoin(Category, Category.id == CuratedList.category_id)
                .where(
                    CuratedList.deleted_at.is_(None),
                    CuratedList.is_active.is_(True),
                    CuratedList.is_public.is_(True),
                )
                .order_by(CuratedList.save_count.desc())
                .limit(self.config.eligible_pool_limit)
            )
            return [
                FeaturedCandidate(
                    list_id=row.id,
                    title=row.title,
                    slug=row.slug,
                    cover_image=row.cover_image,
                    category_id=row.category_id,
                    category_name=row.category_name,
                )
                for row in result
            ]

    async def get_featured_history(self, since: datetime) -> list[FeaturedHistoryEntry]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(
                    HomeFeaturedSlot.list_id,
                    HomeFeaturedSlot.start_at,
                    HomeFeaturedSlot.end_at,
                    CuratedList.category_id,
                    Category.name.label("category_name"),
                )
                .join(CuratedList, CuratedList.id == HomeFeaturedSlot.list_id)
                .outerjoin(Category, Category.id == CuratedList.category_id)
                .where(or_(
                    HomeFeaturedSlot.start_at >= since,
                    HomeFeaturedSlot.end_at >= since,
                    HomeFeaturedSlot.end_at.is_(None),
                ))
                .order_by(HomeFeaturedSlot.start_at.desc())
            )
            return [
                FeaturedHistoryEntry(
                    list_id=row.list_id,
                    start_at=row.start_at,
                    end_at=row.end_at,
                    category_id=row.category_id,
                    category_name=row.category_name,
                )
                for row in result
            ]

    async def get_category_impact_scores(self, window_days: int, now: datetime) -> dict[str, float]:
        start = start_of_day(now - timedelta(days=window_days))
        async with self._session_factory() as db:
            result = await db.execute(
                select(
                    CuratedList.category_id,
                    HomeFeaturedSlot.impressions,
                    HomeFeaturedSlot.clicks,
                    HomeFeaturedSlot.baseline_saves,
                    HomeFeaturedSlot.saves_during,
                )
                .join(CuratedList, CuratedList.id == HomeFeaturedSlot.list_id)
                .where(HomeFeaturedSlot.start_at >= start)
            )
            slots = [
                SlotPerformance(
                    category_id=row.category_id,
                    impressions=row.impressions,
                    clicks=row.clicks,
                    baseline_saves=row.baseline_saves,
                    saves_during=row.saves_during,
                )
                for row in result
            ]
        return category_impact_scores(slots)

    async def list_active_categories(self) -> list[CategoryRef]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(Category.id, Category.slug, Category.name)
                .where(Category.is_active.is_(True), Category.deleted_at.is_(None))
                .order_by(Category.name)
            )
            return [CategoryRef(id=row.id, slug=row.slug, name=row.name) for row in result]
