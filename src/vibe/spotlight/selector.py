"""Creator spotlight selection.

One creator is featured per rolling 7-day window. A creator is eligible when
they have a public list, were not spotlighted (end_date) in the last 60 days
and were active (list update or comment) in the last 7 days. Eligible
creators are scored as

    0.6 * ranking / max_ranking + 0.3 * momentum / max_momentum + 0.1 * quality / max_quality

with quality = (likes + saves) / list_count and every max floored at 1.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from vibe.config import SpotlightConfig
from vibe.protocols import SpotlightStore
from vibe.ranking.scores import curator_level
from vibe.spotlight.schemas import (
    ActiveSpotlightBadge,
    CurrentSpotlight,
    SpotlightCreator,
    SpotlightListResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_SPOTLIGHT = SpotlightConfig()

SPOTLIGHT_TYPES = ("weekly", "rising", "category", "editor")


@dataclass(frozen=True)
class SpotlightRow:
    id: int
    user_id: str
    type: str
    category_slug: str | None
    start_date: datetime
    end_date: datetime


@dataclass(frozen=True)
class SpotlightCandidate:
    """Ranking snapshot plus list totals for one eligible creator."""

    user_id: str
    ranking_score: float
    momentum_score: float
    total_likes: int = 0
    total_saves: int = 0
    list_count: int = 0

    @property
    def quality(self) -> float:
        if self.list_count <= 0:
            return 0.0
        return (self.total_likes + self.total_saves) / self.list_count


@dataclass(frozen=True)
class CreatorProfile:
    user_id: str
    name: str | None = None
    username: str | None = None
    image: str | None = None
    bio: str | None = None
    avatar_type: str | None = None
    avatar_id: str | None = None
    curator_level: str | None = None
    curator_score: float | None = None
    viral_count: int = 0
    total_likes: int = 0
    list_count: int = 0


@dataclass(frozen=True)
class SpotlightList:
    id: str
    title: str
    slug: str
    cover_image: str | None = None
    like_count: int = 0
    save_count: int = 0
    item_count: int = 0
    category_name: str | None = None
    category_icon: str | None = None


def score_candidates(
    candidates: Sequence[SpotlightCandidate],
    config: SpotlightConfig = DEFAULT_SPOTLIGHT,
) -> list[tuple[str, float]]:
    """Spotlight scores, best first. Ties keep candidate order."""
    if not candidates:
        return []
    max_rank = max(1.0, *(c.ranking_score for c in candidates))
    max_momentum = max(1.0, *(c.momentum_score for c in candidates))
    max_quality = max(1.0, *(c.quality for c in candidates))

    scored = [
        (
            c.user_id,
            config.ranking_weight * (c.ranking_score / max_rank)
            + config.momentum_weight * (c.momentum_score / max_momentum)
            + config.quality_weight * (c.quality / max_quality),
        )
        for c in candidates
    ]
    return sorted(scored, key=lambda item: -item[1])


class SpotlightSelector:
    def __init__(self, store: SpotlightStore, config: SpotlightConfig = DEFAULT_SPOTLIGHT) -> None:
        self.store = store
        self.config = config

    async def get_active_spotlight(self, now: datetime | None = None) -> SpotlightRow | None:
        return await self.store.get_active_spotlight(now or datetime.now(timezone.utc))

    async def eligible_creators(self, now: datetime) -> list[str]:
        """Creators past their cooldown and active recently, in store order."""
        cooldown_since = now - timedelta(days=self.config.cooldown_days)
        activity_since = now - timedelta(days=self.config.min_activity_days)
        eligible = []
        for user_id in await self.store.list_creator_ids():
            if await self.store.count_recent_spotlights(user_id, cooldown_since) > 0:
                continue
            if not await self.store.has_recent_activity(user_id, activity_since):
                continue
            eligible.append(user_id)
        return eligible

    async def select_and_create_weekly_spotlight(self, now: datetime | None = None) -> SpotlightRow | None:
        """Pick the best eligible creator and open a 7-day weekly spotlight.

        Returns None, without error, when a spotlight is already active or
        nobody is eligible.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        if await self.store.get_active_spotlight(now) is not None:
            logger.debug("Spotlight already active, not creating another")
            return None

        eligible = await self.eligible_creators(now)
        if not eligible:
            logger.info("No creator eligible for a weekly spotlight")
            return None

        candidates = await self.store.get_spotlight_inputs(eligible)
        known = {c.user_id for c in candidates}
        for user_id in eligible:
            if user_id not in known:
                logger.info("Creator %s has no ranking snapshot yet, skipping spotlight", user_id)
        # Keep pool order for stable tie-breaking.
        by_id = {c.user_id: c for c in candidates}
        ordered = [by_id[uid] for uid in eligible if uid in by_id]

        scored = score_candidates(ordered, self.config)
        if not scored:
            return None
        chosen, score = scored[0]

        row = await self.store.create_spotlight(
            user_id=chosen,
            spotlight_type="weekly",
            start=now,
            end=now + timedelta(days=self.config.spotlight_days),
        )
        logger.info("Weekly spotlight created for %s (score %.4f) until %s", chosen, score, row.end_date.isoformat())
        return row

    async def get_current_spotlight_with_details(self, now: datetime | None = None) -> CurrentSpotlight | None:
        """The active spotlight with creator profile and top lists, creating one if none is active."""
        if now is None:
            now = datetime.now(timezone.utc)
        row = await self.store.get_active_spotlight(now)
        if row is None:
            row = await self.select_and_create_weekly_spotlight(now)
        if row is None:
            return None

        profile = await self.store.get_creator_profile(row.user_id)
        if profile is None:
            logger.warning("Spotlighted creator %s no longer exists", row.user_id)
            return None
        lists = await self.store.get_top_lists(row.user_id, self.config.top_lists)

        if profile.curator_level:
            level = profile.curator_level
        else:
            level = curator_level(profile.curator_score or 0).key

        return CurrentSpotlight(
            id=row.id,
            user_id=row.user_id,
            type=row.type,
            category_slug=row.category_slug,
            start_date=row.start_date,
            end_date=row.end_date,
            creator=SpotlightCreator(
                user_id=profile.user_id,
                name=profile.name,
                username=profile.username,
                image=profile.image,
                bio=profile.bio,
                avatar_type=profile.avatar_type,
                avatar_id=profile.avatar_id,
                curator_level=level,
                viral_count=profile.viral_count,
                total_likes=profile.total_likes,
                list_count=profile.list_count,
            ),
            lists=[
                SpotlightListResponse(
                    id=lst.id,
                    title=lst.title,
                    slug=lst.slug,
                    cover_image=lst.cover_image,
                    like_count=lst.like_count,
                    save_count=lst.save_count,
                    item_count=lst.item_count,
                    category_name=lst.category_name,
                    category_icon=lst.category_icon,
                )
                for lst in lists
            ],
        )

    async def get_active_spotlight_for_user(
        self,
        user_id: str,
        now: datetime | None = None,
    ) -> ActiveSpotlightBadge | None:
        """Profile badge data if the user is spotlighted right now."""
        row = await self.store.get_active_spotlight_for_user(user_id, now or datetime.now(timezone.utc))
        if row is None:
            return None
        return ActiveSpotlightBadge(type=row.type, end_date=row.end_date)
