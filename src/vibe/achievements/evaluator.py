"""Achievement evaluator: declarative unlock conditions, exactly-once unlocks.

Every achievement is a predicate over AchievementSignals. Adding one means
adding a catalog row and a CONDITIONS entry; check_achievements never changes.

Unlocks are terminal. A pair already in the pre-fetched unlocked set is
skipped, and a duplicate insert that loses a race against another worker is
reported by the store as "not inserted" (unique constraint), never as new.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from vibe.achievements.catalog import ACHIEVEMENT_DEFINITIONS, seed_achievements
from vibe.achievements.schemas import UnlockedAchievement
from vibe.config import AchievementThresholds
from vibe.errors import CatalogError
from vibe.protocols import AchievementStore

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLDS = AchievementThresholds()


@dataclass(frozen=True)
class UserActivity:
    """Everything the conditions need about one user, read in one store call."""

    user_id: str
    public_list_count: int = 0
    avg_saves_per_list: float = 0.0
    viral_lists: int = 0
    max_list_saves: int = 0
    helpful_votes: int = 0
    approved_suggestions: int = 0
    total_likes: int = 0
    activity_dates: frozenset[date] = field(default_factory=frozenset)


@dataclass(frozen=True)
class AchievementSignals:
    public_list_count: int
    avg_saves_per_list: float
    viral_lists: int
    max_list_saves: int
    helpful_votes: int
    approved_suggestions: int
    total_likes: int
    has_streak: bool
    active_days_in_window: int
    is_comeback: bool


def to_activity_dates(timestamps: Iterable[datetime]) -> frozenset[date]:
    """Collapse timestamps into the set of UTC calendar dates they fall on."""
    dates = set()
    for ts in timestamps:
        if ts.tzinfo is not None:
            ts = ts.astimezone(timezone.utc)
        dates.add(ts.date())
    return frozenset(dates)


def has_consecutive_days(dates: Iterable[date], length: int) -> bool:
    """True if ``dates`` contains ``length`` consecutive calendar dates."""
    run = 0
    previous: date | None = None
    for d in sorted(set(dates)):
        run = run + 1 if previous is not None and d - previous == timedelta(days=1) else 1
        if run >= length:
            return True
        previous = d
    return False


def count_days_in_window(dates: Iterable[date], today: date, window_days: int) -> int:
    """Distinct activity dates on or after ``today - window_days``."""
    start = today - timedelta(days=window_days)
    return sum(1 for d in set(dates) if d >= start)


def is_comeback(dates: Iterable[date], today: date, gap_days: int, recent_days: int) -> bool:
    """A gap of ``gap_days`` before the latest activity, and activity within ``recent_days``."""
    ordered = sorted(set(dates))
    if len(ordered) < 2:
        return False
    if (ordered[-1] - ordered[-2]).days < gap_days:
        return False
    return count_days_in_window(ordered, today, recent_days) > 0


def build_signals(
    activity: UserActivity,
    today: date,
    thresholds: AchievementThresholds = DEFAULT_THRESHOLDS,
) -> AchievementSignals:
    dates = activity.activity_dates
    return AchievementSignals(
        public_list_count=activity.public_list_count,
        avg_saves_per_list=activity.avg_saves_per_list,
        viral_lists=activity.viral_lists,
        max_list_saves=activity.max_list_saves,
        helpful_votes=activity.helpful_votes,
        approved_suggestions=activity.approved_suggestions,
        total_likes=activity.total_likes,
        has_streak=has_consecutive_days(dates, thresholds.streak_days),
        active_days_in_window=count_days_in_window(dates, today, thresholds.monthly_window_days),
        is_comeback=is_comeback(dates, today, thresholds.comeback_gap_days, thresholds.comeback_recent_days),
    )


Condition = Callable[[AchievementSignals, AchievementThresholds], bool]

CONDITIONS: dict[str, Condition] = {
    "FIRST_VIBE": lambda s, t: s.public_list_count >= 1,
    "FIVE_LISTS": lambda s, t: s.public_list_count >= t.five_lists,
    "TWENTY_LISTS": lambda s, t: s.public_list_count >= t.twenty_lists,
    "MASTER_CURATOR": lambda s, t: (
        s.public_list_count >= t.master_curator_lists
        and s.avg_saves_per_list >= t.master_curator_avg_saves
    ),
    "VIRAL_SPARK": lambda s, t: s.viral_lists >= 1,
    "TREND_MAKER": lambda s, t: s.viral_lists >= t.trend_maker_viral,
    "SAVES_100": lambda s, t: s.max_list_saves >= t.saves_100,
    "SAVES_500": lambda s, t: s.max_list_saves >= t.saves_500,
    "HELPFUL_VOICE": lambda s, t: s.helpful_votes >= t.helpful_voice_votes,
    "INSIGHTFUL_CURATOR": lambda s, t: s.approved_suggestions >= t.insightful_approved,
    "COMMUNITY_FAVORITE": lambda s, t: s.total_likes >= t.community_favorite_likes,
    "SEVEN_DAY_VIBER": lambda s, t: s.has_streak,
    "MONTHLY_CREATOR": lambda s, t: s.active_days_in_window >= t.monthly_min_active_days,
    "COMEBACK_CURATOR": lambda s, t: s.is_comeback,
}


def evaluate_conditions(
    signals: AchievementSignals,
    thresholds: AchievementThresholds = DEFAULT_THRESHOLDS,
) -> dict[str, bool]:
    """Evaluate every catalog condition. Raises CatalogError for a code without one."""
    results = {}
    for definition in ACHIEVEMENT_DEFINITIONS:
        condition = CONDITIONS.get(definition.code)
        if condition is None:
            raise CatalogError(f"No unlock condition for achievement {definition.code}")
        results[definition.code] = condition(signals, thresholds)
    return results


class AchievementEvaluator:
    def __init__(
        self,
        store: AchievementStore,
        thresholds: AchievementThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self.store = store
        self.thresholds = thresholds

    async def _catalog_ids(self) -> dict[str, int]:
        catalog_ids = await self.store.get_catalog_ids()
        if all(d.code in catalog_ids for d in ACHIEVEMENT_DEFINITIONS):
            return catalog_ids
        await seed_achievements(self.store)
        catalog_ids = await self.store.get_catalog_ids()
        missing = [d.code for d in ACHIEVEMENT_DEFINITIONS if d.code not in catalog_ids]
        if missing:
            raise CatalogError(f"Achievement catalog rows missing after seeding: {', '.join(missing)}")
        return catalog_ids

    async def check_achievements(
        self,
        user_id: str,
        now: datetime | None = None,
    ) -> list[UnlockedAchievement]:
        """Unlock every newly satisfied achievement for a user.

        Returns only the achievements unlocked by this call; calling it again
        with unchanged data returns an empty list.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        catalog_ids = await self._catalog_ids()
        unlocked_ids = await self.store.get_unlocked_achievement_ids(user_id)
        activity = await self.store.get_user_activity(user_id)
        results = evaluate_conditions(build_signals(activity, now.date(), self.thresholds), self.thresholds)

        newly_unlocked: list[UnlockedAchievement] = []
        for definition in ACHIEVEMENT_DEFINITIONS:
            achievement_id = catalog_ids[definition.code]
            if achievement_id in unlocked_ids or not results[definition.code]:
                continue
            if not await self.store.insert_unlock(user_id, achievement_id, now):
                logger.info("Achievement %s already unlocked for %s", definition.code, user_id)
                unlocked_ids.add(achievement_id)
                continue
            unlocked_ids.add(achievement_id)
            newly_unlocked.append(UnlockedAchievement(
                code=definition.code,
                title=definition.title,
                icon=definition.icon,
                tier=definition.tier,
                unlocked_at=now,
            ))

        if newly_unlocked:
            logger.info(
                "User %s unlocked %d achievements: %s",
                user_id, len(newly_unlocked), ", ".join(a.code for a in newly_unlocked),
            )
        return newly_unlocked
