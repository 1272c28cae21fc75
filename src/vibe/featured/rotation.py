"""Category rotation insight for homepage featuring.

Over the last 4 weeks of feature slots, per category:

- featured 2+ times: -0.3
- never featured:    +0.3
- holds the most recent slot: -0.2

The summed modifier is clamped to [-0.3, +0.3] and multiplies candidate
scores as ``score * (1 + modifier)``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from vibe.config import FeaturedConfig
from vibe.featured.impact import UNCATEGORIZED
from vibe.protocols import CategoryRef

DEFAULT_FEATURED = FeaturedConfig()

UNCATEGORIZED_NAME = "Uncategorized"


@dataclass(frozen=True)
class FeaturedHistoryEntry:
    """One homepage feature slot with its list's category."""

    list_id: str
    start_at: datetime
    end_at: datetime | None = None
    category_id: str | None = None
    category_name: str | None = None

    @property
    def last_featured_at(self) -> datetime:
        return self.end_at or self.start_at


@dataclass(frozen=True)
class CategoryRotationStat:
    category_id: str
    name: str
    count_last_4_weeks: int
    in_last_slot: bool
    rotation_modifier: float


@dataclass(frozen=True)
class RotationInsight:
    category_stats: list[CategoryRotationStat] = field(default_factory=list)
    suggested_category_id: str | None = None
    suggested_category: str | None = None
    reasoning: str = ""

    @property
    def modifiers_by_category(self) -> dict[str, float]:
        return {s.category_id: s.rotation_modifier for s in self.category_stats}


def rotation_modifier(count: int, in_last_slot: bool, config: FeaturedConfig = DEFAULT_FEATURED) -> float:
    modifier = 0.0
    if count >= config.overexposed_count:
        modifier += config.penalty_overexposed
    if count == 0:
        modifier += config.boost_not_featured
    if in_last_slot:
        modifier += config.penalty_last_slot
    bound = config.rotation_bound
    return max(-bound, min(bound, modifier))


def _reasoning(stats: Sequence[CategoryRotationStat], suggested: str | None, config: FeaturedConfig) -> str:
    overexposed = [s for s in stats if s.count_last_4_weeks >= config.overexposed_count]
    not_featured = [s for s in stats if s.count_last_4_weeks == 0]
    if overexposed and not_featured:
        over_names = ", ".join(f"{s.name} ({s.count_last_4_weeks} times)" for s in overexposed)
        fresh_names = ", ".join(s.name for s in not_featured)
        return (
            f"In the last 4 weeks {over_names} were featured. "
            f"Consider featuring {fresh_names} this week."
        )
    if suggested:
        return f'Suggested: feature the "{suggested}" category this week.'
    return "Recent featured history is already well balanced across categories."


def compute_rotation_insight(
    history: Sequence[FeaturedHistoryEntry],
    active_categories: Sequence[CategoryRef],
    now: datetime,
    config: FeaturedConfig = DEFAULT_FEATURED,
) -> RotationInsight:
    """Rotation stats for active categories plus any inactive ones still in recent history."""
    since = now - timedelta(days=config.rotation_window_days)
    window = sorted(
        (e for e in history if since <= e.start_at <= now),
        key=lambda e: e.start_at,
        reverse=True,
    )
    if not window:
        return RotationInsight(reasoning="No featured slots recorded yet.")

    most_recent = window[0]
    counts: dict[str, int] = {}
    names: dict[str, str] = {}
    for entry in window:
        key = entry.category_id or UNCATEGORIZED
        counts[key] = counts.get(key, 0) + 1
        names.setdefault(key, entry.category_name or UNCATEGORIZED_NAME)
    last_key = most_recent.category_id or UNCATEGORIZED

    stats: list[CategoryRotationStat] = []
    reported: set[str] = set()
    for category in active_categories:
        count = counts.get(category.id, 0)
        in_last = category.id == last_key
        stats.append(CategoryRotationStat(
            category_id=category.id,
            name=category.name,
            count_last_4_weeks=count,
            in_last_slot=in_last,
            rotation_modifier=rotation_modifier(count, in_last, config),
        ))
        reported.add(category.id)
    # Categories deleted or deactivated since they were featured.
    for key, count in counts.items():
        if key in reported:
            continue
        in_last = key == last_key
        stats.append(CategoryRotationStat(
            category_id=key,
            name=names[key],
            count_last_4_weeks=count,
            in_last_slot=in_last,
            rotation_modifier=rotation_modifier(count, in_last, config),
        ))

    due = sorted((s for s in stats if s.count_last_4_weeks <= 1), key=lambda s: -s.rotation_modifier)
    best = due[0] if due else None
    suggested = best.name if best else None
    return RotationInsight(
        category_stats=stats,
        suggested_category_id=best.category_id if best else None,
        suggested_category=suggested,
        reasoning=_reasoning(stats, suggested, config),
    )
