"""SQLAlchemy implementation of SpotlightStore."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vibe.config import SpotlightConfig
from vibe.db.models import (
    CreatorRanking,
    CreatorSpotlight,
    CuratedList,
    ListComment,
    User,
)
from vibe.spotlight.selector import (
    DEFAULT_SPOTLIGHT,
    SPOTLIGHT_TYPES,
    CreatorProfile,
    SpotlightCandidate,
    SpotlightList,
    SpotlightRow,
)

logger = logging.getLogger(__name__)


def _to_row(spotlight: CreatorSpotlight) -> SpotlightRow:
    return SpotlightRow(
        id=spotlight.id,
        user_id=spotlight.user_id,
        type=spotlight.type,
        category_slug=spotlight.category_slug,
        start_date=spotlight.start_date,
        end_date=spotlight.end_date,
    )


class SqlSpotlightStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: SpotlightConfig = DEFAULT_SPOTLIGHT,
    ) -> None:
        self._session_factory = session_factory
        self.config = config

    async def get_active_spotlight(self, now: datetime) -> SpotlightRow | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(CreatorSpotlight)
                .where(CreatorSpotlight.start_date <= now, CreatorSpotlight.end_date >= now)
                .order_by(CreatorSpotlight.start_date.desc())
                .limit(1)
            )
            spotlight = result.scalar_one_or_none()
            return _to_row(spotlight) if spotlight else None

    async def get_active_spotlight_for_user(self, user_id: str, now: datetime) -> SpotlightRow | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(CreatorSpotlight)
                .where(
                    CreatorSpotlight.user_id == user_id,
                    CreatorSpotlight.start_date <= now,
                    CreatorSpotlight.end_date >= now,
                )
                .order_by(CreatorSpotlight.start_date.desc())
                .limit(1)
            )
            spotlight = result.scalar_one_or_none()
            return _to_row(spotlight) if spotlight else None

    async def count_recent_spotlights(self, user_id: str, since: datetime) -> int:
        async with self._session_factory() as db:
            count = await db.scalar(
                select(func.count(CreatorSpotlight.id)).where(
                    CreatorSpotlight.user_id == user_id, CreatorSpotlight.end_date >= since,
                )
            )
            return int(count or 0)

    async def create_spotlight(
        self,
        user_id: str,
        spotlight_type: str,
        start: datetime,
        end: datetime,
        category_slug: str | None = None,
    ) -> SpotlightRow:
        """Insert a spotlight. Overlapping windows fail on the exclusion constraint."""
        if spotlight_type not in SPOTLIGHT_TYPES:
            raise ValueError(f"Unknown spotlight type: {spotlight_type}")
        spotlight = CreatorSpotlight(
            user_id=user_id,
            type=spotlight_type,
            category_slug=category_slug,
            start_date=start,
            end_date=end,
        )
        async with self._session_factory() as db:
            db.add(spotlight)
            await db.commit()
            await db.refresh(spotlight)
            return _to_row(spotlight)

    async def list_creator_ids(self) -> list[str]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(distinct(CuratedList.user_id))
                .where(CuratedList.is_public.is_(True), CuratedList.is_active.is_(True))
                .order_by(CuratedList.user_id)
            )
            return [row[0] for row in result]

    async def has_recent_activity(self, user_id: str, since: datetime) -> bool:
        async with self._session_factory() as db:
            list_hit = await db.scalar(
                select(CuratedList.id).where(
                    CuratedList.user_id == user_id,
                    CuratedList.is_public.is_(True),
                    CuratedList.updated_at >= since,
                ).limit(1)
            )
            if list_hit is not None:
                return True
            comment_hit = await db.scalar(
                select(ListComment.id).where(
                    ListComment.user_id == user_id, ListComment.created_at >= since,
                ).limit(1)
            )
            return comment_hit is not None

    async def get_spotlight_inputs(self, user_ids: Sequence[str]) -> list[SpotlightCandidate]:
        if not user_ids:
            return []
        ids = list(user_ids)
        async with self._session_factory() as db:
            rankings = await db.execute(
                select(CreatorRanking.user_id, CreatorRanking.ranking_score, CreatorRanking.momentum_score)
                .where(CreatorRanking.user_id.in_(ids))
            )
            ranking_rows = rankings.all()

            stats = await db.execute(
                select(
                    CuratedList.user_id,
                    func.coalesce(func.sum(CuratedList.like_count), 0).label("likes"),
                    func.coalesce(func.sum(CuratedList.save_count), 0).label("saves"),
                    func.count(CuratedList.id).label("cnt"),
                )
                .where(
                    CuratedList.user_id.in_(ids),
                    CuratedList.is_public.is_(True),
                    CuratedList.is_active.is_(True),
                )
                .group_by(CuratedList.user_id)
            )
            stats_by_user = {row.user_id: row for row in stats}

        candidates = []
        for row in ranking_rows:
            st = stats_by_user.get(row.user_id)
            candidates.append(SpotlightCandidate(
                user_id=row.user_id,
                ranking_score=float(row.ranking_score),
                momentum_score=float(row.momentum_score),
                total_likes=int(st.likes) if st else 0,
                total_saves=int(st.saves) if st else 0,
                list_count=int(st.cnt) if st else 0,
            ))
        return candidates

    async def get_creator_profile(self, user_id: str) -> CreatorProfile | None:
        async with self._session_factory() as db:
            user = await db.get(User, user_id)
            if user is None:
                return None
            curator_score = await db.scalar(
                select(CreatorRanking.curator_score).where(CreatorRanking.user_id == user_id)
            )
            stats = (await db.execute(
                select(
                    func.count(CuratedList.id)
                    .filter(CuratedList.is_active.is_(True))
                    .label("active_lists"),
                    func.count(CuratedList.id)
                    .filter(CuratedList.like_count >= self.config.viral_like_threshold)
                    .label("viral"),
                    func.coalesce(func.sum(CuratedList.like_count), 0).label("likes"),
                ).where(CuratedList.user_id == user_id, CuratedList.is_public.is_(True))
            )).one()

        return CreatorProfile(
            user_id=user.id,
            name=user.name,
            username=user.username,
            image=user.image,
            bio=user.bio,
            avatar_type=user.avatar_type,
            avatar_id=user.avatar_id,
            curator_level=user.curator_level,
            curator_score=float(curator_score) if curator_score is not None else None,
            viral_count=int(stats.viral),
            total_likes=int(stats.likes),
            list_count=int(stats.active_lists),
        )

    async def get_top_lists(self, user_id: str, limit: int) -> list[SpotlightList]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(CuratedList)
                .where(
                    CuratedList.user_id == user_id,
                    CuratedList.is_public.is_(True),
                    CuratedList.is_active.is_(True),
                )
                .order_by(CuratedList.like_count.desc(), CuratedList.save_count.desc())
                .limit(limit)
            )
            return [
                SpotlightList(
                    id=lst.id,
                    title=lst.title,
                    slug=lst.slug,
                    cover_image=lst.cover_image,
                    like_count=lst.like_count or 0,
                    save_count=lst.save_count or 0,
                    item_count=lst.item_count or 0,
                    category_name=lst.category.name if lst.category else None,
                    category_icon=lst.category.icon if lst.category else None,
                )
                for lst in result.unique().scalars()
            ]
