"""SQLAlchemy implementation of RankingStore."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from sqlalchemy import distinct, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vibe.config import RankingConfig
from vibe.db.models import (
    Bookmark,
    Category,
    CreatorRanking,
    CuratedList,
    Follow,
    ListComment,
    SuggestedItem,
    User,
)
from vibe.protocols import CategoryRef
from vibe.ranking.engine import CreatorRankingRow
from vibe.ranking.scores import DEFAULT_RANKING, CreatorAggregates

logger = logging.getLogger(__name__)


def public_list_filter() -> tuple:
    return (
        CuratedList.is_public.is_(True),
        CuratedList.is_active.is_(True),
        CuratedList.deleted_at.is_(None),
    )


class SqlRankingStore:
    """Each call opens its own short session so aggregation can run concurrently."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: RankingConfig = DEFAULT_RANKING,
    ) -> None:
        self._session_factory = session_factory
        self.config = config

    async def list_creator_ids(self) -> list[str]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(distinct(CuratedList.user_id))
                .where(*public_list_filter())
                .order_by(CuratedList.user_id)
            )
            return [row[0] for row in result]

    async def get_creator_aggregates(self, user_id: str, now: datetime) -> CreatorAggregates | None:
        since = now - timedelta(days=self.config.momentum_window_days)
        viral = self.config.viral_like_threshold

        async with self._session_factory() as db:
            exists = await db.execute(select(User.id).where(User.id == user_id))
            if exists.scalar_one_or_none() is None:
                return None

            lists = (await db.execute(
                select(
                    func.count(CuratedList.id).label("cnt"),
                    func.coalesce(func.sum(CuratedList.like_count), 0).label("likes"),
                    func.coalesce(func.sum(CuratedList.save_count), 0).label("saves"),
                    func.count(CuratedList.id).filter(CuratedList.like_count >= viral).label("viral"),
                    func.count(CuratedList.id)
                    .filter(CuratedList.like_count >= viral, CuratedList.updated_at >= since)
                    .label("viral_recent"),
                    func.max(CuratedList.updated_at).label("last_update"),
                ).where(CuratedList.user_id == user_id, *public_list_filter())
            )).one()

            approved = await db.scalar(
                select(func.count(SuggestedItem.id)).where(
                    SuggestedItem.user_id == user_id, SuggestedItem.status == "approved",
                )
            )

            saves = (await db.execute(
                select(
                    func.count(Bookmark.id).label("external"),
                    func.count(Bookmark.id).filter(Bookmark.created_at >= since).label("recent"),
                )
                .join(CuratedList, CuratedList.id == Bookmark.list_id)
                .where(CuratedList.user_id == user_id, Bookmark.user_id != user_id, *public_list_filter())
            )).one()

            last_save = await db.scalar(
                select(func.max(Bookmark.created_at))
                .join(CuratedList, CuratedList.id == Bookmark.list_id)
                .where(CuratedList.user_id == user_id)
            )

            followers = (await db.execute(
                select(
                    func.count(Follow.id).label("total"),
                    func.count(Follow.id).filter(Follow.created_at >= since).label("recent"),
                ).where(Follow.following_id == user_id)
            )).one()

            comments = (await db.execute(
                select(
                    func.coalesce(func.sum(ListComment.helpful_up), 0).label("helpful"),
                    func.max(ListComment.created_at).label("last_comment"),
                ).where(ListComment.user_id == user_id, ListComment.deleted_at.is_(None))
            )).one()

        list_count = int(lists.cnt)
        activity = [d for d in (lists.last_update, last_save, comments.last_comment) if d is not None]
        return CreatorAggregates(
            user_id=user_id,
            public_list_count=list_count,
            avg_likes_per_list=int(lists.likes) / list_count if list_count else 0.0,
            approved_suggestions=int(approved or 0),
            total_saves=int(lists.saves),
            viral_lists=int(lists.viral),
            unique_external_saves=int(saves.external),
            follower_count=int(followers.total),
            helpful_comment_votes=int(comments.helpful),
            new_followers_30d=int(followers.recent),
            new_saves_30d=int(saves.recent),
            viral_lists_touched_30d=int(lists.viral_recent),
            last_activity_at=max(activity) if activity else None,
        )

    async def get_previous_global_ranks(self, user_ids: Sequence[str]) -> dict[str, int]:
        if not user_ids:
            return {}
        async with self._session_factory() as db:
            result = await db.execute(
                select(CreatorRanking.user_id, CreatorRanking.global_rank)
                .where(CreatorRanking.user_id.in_(list(user_ids)))
            )
            return {row.user_id: row.global_rank for row in result}

    async def list_active_categories(self) -> list[CategoryRef]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(Category.id, Category.slug, Category.name)
                .where(Category.is_active.is_(True), Category.deleted_at.is_(None))
                .order_by(Category.slug)
            )
            return [CategoryRef(id=row.id, slug=row.slug, name=row.name) for row in result]

    async def list_creators_with_public_lists_in_category(self, category_id: str) -> set[str]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(distinct(CuratedList.user_id))
                .where(CuratedList.category_id == category_id, *public_list_filter())
            )
            return {row[0] for row in result}

    async def persist_ranking(self, row: CreatorRankingRow) -> None:
        """Upsert one creator's row, replacing every column."""
        values = {
            "curator_score": row.curator_score,
            "influence_score": row.influence_score,
            "momentum_score": row.momentum_score,
            "ranking_score": row.ranking_score,
            "global_rank": row.global_rank,
            "previous_global_rank": row.previous_global_rank,
            "monthly_rank": row.monthly_rank,
            "month_year": row.month_year,
            "category_rank": row.category_rank.to_dict(),
            "last_activity_at": row.last_activity_at,
            "updated_at": datetime.now(timezone.utc),
        }
        stmt = insert(CreatorRanking).values(user_id=row.user_id, **values).on_conflict_do_update(
            index_elements=[CreatorRanking.user_id],
            set_=values,
        )
        async with self._session_factory() as db:
            await db.execute(stmt)
            await db.commit()
