"""SQLAlchemy implementation of AchievementStore."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vibe.achievements.catalog import AchievementDefinition
from vibe.achievements.evaluator import DEFAULT_THRESHOLDS, UserActivity, to_activity_dates
from vibe.config import AchievementThresholds
from vibe.db.models import (
    Achievement,
    Bookmark,
    CuratedList,
    ListComment,
    SuggestedItem,
    UserAchievement,
)

logger = logging.getLogger(__name__)


class SqlAchievementStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        thresholds: AchievementThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self._session_factory = session_factory
        self.thresholds = thresholds

    async def get_catalog_ids(self) -> dict[str, int]:
        async with self._session_factory() as db:
            result = await db.execute(select(Achievement.code, Achievement.id))
            return {row.code: row.id for row in result}

    async def upsert_achievement_catalog_row(self, definition: AchievementDefinition) -> None:
        stmt = pg_insert(Achievement).values(
            code=definition.code,
            title=definition.title,
            description=definition.description,
            category=definition.category,
            tier=definition.tier,
            icon=definition.icon,
            is_secret=definition.is_secret,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["code"],
            set_={
                "title": stmt.excluded.title,
                "description": stmt.excluded.description,
                "category": stmt.excluded.category,
                "tier": stmt.excluded.tier,
                "icon": stmt.excluded.icon,
                "is_secret": stmt.excluded.is_secret,
            },
        )
        async with self._session_factory() as db:
            await db.execute(stmt)
            await db.commit()

    async def get_unlocked_achievement_ids(self, user_id: str) -> set[int]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
            )
            return {row[0] for row in result}

    async def insert_unlock(self, user_id: str, achievement_id: int, unlocked_at: datetime) -> bool:
        async with self._session_factory() as db:
            db.add(UserAchievement(user_id=user_id, achievement_id=achievement_id, unlocked_at=unlocked_at))
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                return False  # Race condition: already unlocked
        return True

    async def get_user_activity(self, user_id: str) -> UserActivity:
        public = (
            CuratedList.user_id == user_id,
            CuratedList.is_public.is_(True),
            CuratedList.is_active.is_(True),
            CuratedList.deleted_at.is_(None),
        )
        async with self._session_factory() as db:
            lists = (await db.execute(
                select(
                    func.count(CuratedList.id).label("cnt"),
                    func.avg(CuratedList.save_count).label("avg_saves"),
                    func.max(CuratedList.save_count).label("max_saves"),
                    func.coalesce(func.sum(CuratedList.like_count), 0).label("likes"),
                    func.count(CuratedList.id)
                    .filter(CuratedList.like_count >= self.thresholds.viral_like_threshold)
                    .label("viral"),
                ).where(*public)
            )).one()

            helpful = await db.scalar(
                select(func.coalesce(func.sum(ListComment.helpful_up), 0))
                .where(ListComment.user_id == user_id, ListComment.deleted_at.is_(None))
            )
            approved = await db.scalar(
                select(func.count(SuggestedItem.id))
                .where(SuggestedItem.user_id == user_id, SuggestedItem.status == "approved")
            )

            timestamps: list[datetime] = []
            for column, where in (
                (CuratedList.created_at, public),
                (Bookmark.created_at, (Bookmark.user_id == user_id,)),
                (ListComment.created_at, (ListComment.user_id == user_id, ListComment.deleted_at.is_(None))),
                (SuggestedItem.created_at, (SuggestedItem.user_id == user_id,)),
            ):
                result = await db.execute(select(column).where(*where))
                timestamps.extend(row[0] for row in result)

        return UserActivity(
            user_id=user_id,
            public_list_count=int(lists.cnt),
            avg_saves_per_list=float(lists.avg_saves or 0),
            viral_lists=int(lists.viral),
            max_list_saves=int(lists.max_saves or 0),
            helpful_votes=int(helpful or 0),
            approved_suggestions=int(approved or 0),
            total_likes=int(lists.likes),
            activity_dates=to_activity_dates(timestamps),
        )
