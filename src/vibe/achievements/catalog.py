"""Achievement catalog: 14 static definitions keyed by code."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vibe.protocols import AchievementStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AchievementDefinition:
    code: str
    title: str
    description: str
    category: str  # creation | impact | community | consistency
    tier: str  # bronze | silver | gold | elite
    icon: str
    is_secret: bool = False


ACHIEVEMENT_DEFINITIONS: tuple[AchievementDefinition, ...] = (
    # Creation
    AchievementDefinition(
        code="FIRST_VIBE",
        title="First Vibe",
        description="Publish your first public list",
        category="creation",
        tier="bronze",
        icon="\U0001f949",
    ),
    AchievementDefinition(
        code="FIVE_LISTS",
        title="Five Lists",
        description="Publish 5 lists",
        category="creation",
        tier="bronze",
        icon="\U0001f948",
    ),
    AchievementDefinition(
        code="TWENTY_LISTS",
        title="Twenty Lists",
        description="Keep 20 lists active",
        category="creation",
        tier="silver",
        icon="\U0001f947",
    ),
    AchievementDefinition(
        code="MASTER_CURATOR",
        title="Master Curator",
        description="50 lists with strong engagement",
        category="creation",
        tier="elite",
        icon="\U0001f3c6",
    ),
    # Impact
    AchievementDefinition(
        code="VIRAL_SPARK",
        title="Viral Spark",
        description="One of your lists went viral",
        category="impact",
        tier="silver",
        icon="\U0001f525",
    ),
    AchievementDefinition(
        code="TREND_MAKER",
        title="Trend Maker",
        description="Three viral lists",
        category="impact",
        tier="gold",
        icon="\U0001f525",
    ),
    AchievementDefinition(
        code="SAVES_100",
        title="100 Saves",
        description="A single list with 100+ saves",
        category="impact",
        tier="silver",
        icon="⭐",
    ),
    AchievementDefinition(
        code="SAVES_500",
        title="500 Saves",
        description="A single list with 500+ saves",
        category="impact",
        tier="gold",
        icon="\U0001f48e",
    ),
    # Community
    AchievementDefinition(
        code="HELPFUL_VOICE",
        title="Helpful Voice",
        description="10 helpful votes on your comments",
        category="community",
        tier="bronze",
        icon="\U0001f91d",
    ),
    AchievementDefinition(
        code="INSIGHTFUL_CURATOR",
        title="Insightful Curator",
        description="5 of your item suggestions were approved",
        category="community",
        tier="silver",
        icon="\U0001f9e0",
    ),
    AchievementDefinition(
        code="COMMUNITY_FAVORITE",
        title="Community Favorite",
        description="100 likes across your lists",
        category="community",
        tier="silver",
        icon="\U0001f31f",
    ),
    # Consistency
    AchievementDefinition(
        code="SEVEN_DAY_VIBER",
        title="Seven Day Viber",
        description="Active 7 days in a row",
        category="consistency",
        tier="bronze",
        icon="\U0001f4c5",
    ),
    AchievementDefinition(
        code="MONTHLY_CREATOR",
        title="Monthly Creator",
        description="Active on 10 days within a month",
        category="consistency",
        tier="silver",
        icon="\U0001f4c6",
    ),
    AchievementDefinition(
        code="COMEBACK_CURATOR",
        title="Comeback Curator",
        description="Back in action after 30 quiet days",
        category="consistency",
        tier="bronze",
        icon="\U0001f504",
    ),
)


async def seed_achievements(store: AchievementStore) -> int:
    """Upsert all 14 catalog rows. Returns number of achievements seeded."""
    seeded = 0
    for definition in ACHIEVEMENT_DEFINITIONS:
        await store.upsert_achievement_catalog_row(definition)
        seeded += 1
    logger.info("Seeded %d achievement definitions", seeded)
    return seeded
