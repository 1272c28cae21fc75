"""Per-category impact of past homepage features.

    impact = avg_save_lift * 0.6 + avg_ctr * 100 * 0.4

save lift is saves during the feature as a percentage of baseline saves;
slots without a positive baseline do not contribute to the save-lift average.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

UNCATEGORIZED = "unknown"

SAVE_LIFT_WEIGHT = 0.6
CTR_WEIGHT = 0.4


@dataclass(frozen=True)
class SlotPerformance:
    category_id: str | None
    impressions: int | None = None
    clicks: int | None = None
    baseline_saves: int | None = None
    saves_during: int | None = None

    @property
    def ctr(self) -> float:
        impressions = self.impressions or 0
        return (self.clicks or 0) / impressions if impressions > 0 else 0.0

    @property
    def save_lift_percent(self) -> float | None:
        if self.baseline_saves is None or self.baseline_saves <= 0:
            return None
        return (self.saves_during or 0) / self.baseline_saves * 100


def category_impact_scores(slots: Iterable[SlotPerformance]) -> dict[str, float]:
    """category_id -> impact score. Slots without a category group under "unknown"."""
    ctr_sums: dict[str, float] = {}
    counts: dict[str, int] = {}
    lift_sums: dict[str, float] = {}
    lift_counts: dict[str, int] = {}

    for slot in slots:
        key = slot.category_id or UNCATEGORIZED
        ctr_sums[key] = ctr_sums.get(key, 0.0) + slot.ctr
        counts[key] = counts.get(key, 0) + 1
        lift = slot.save_lift_percent
        if lift is not None:
            lift_sums[key] = lift_sums.get(key, 0.0) + lift
            lift_counts[key] = lift_counts.get(key, 0) + 1

    scores = {}
    for key, count in counts.items():
        avg_ctr = ctr_sums[key] / count
        avg_lift = lift_sums[key] / lift_counts[key] if lift_counts.get(key) else 0.0
        scores[key] = avg_lift * SAVE_LIFT_WEIGHT + avg_ctr * 100 * CTR_WEIGHT
    return scores
