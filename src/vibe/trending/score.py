"""Trending score for a single list, from its 7-day engagement bundle.

TrendingScore = (S7*4 + C7*3 + L7*2 + V7*0.5 + SaveVelocity*5) / (1 + AgeDays*0.1)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Literal

from vibe.config import TrendingConfig

TrendingBadge = Literal["none", "hot", "viral"]

DEFAULT_TRENDING = TrendingConfig()


@dataclass(frozen=True)
class ListMetrics7d:
    """Engagement over the trailing window for one list."""

    s7: int = 0  # saves
    l7: int = 0  # likes
    c7: int = 0  # approved comments
    v7: int = 0  # views
    age_days: float = 0.0
    save_velocity: float = 0.0
    s1: int = 0  # saves in the last 24h


@dataclass
class TrendingDebug:
    score: float
    numerator: float
    denominator: float
    weighted: dict[str, float]
    warnings: list[str] = field(default_factory=list)


def calculate_trending_score_with_debug(
    metrics: ListMetrics7d,
    config: TrendingConfig = DEFAULT_TRENDING,
    raw_velocity: float | None = None,
) -> TrendingDebug:
    """Same formula as calculate_trending_score, with a breakdown.

    Warnings are informational only and never change the score.
    """
    weighted = {
        "s7": metrics.s7 * config.saves_weight,
        "c7": metrics.c7 * config.comments_weight,
        "l7": metrics.l7 * config.likes_weight,
        "v7": metrics.v7 * config.views_weight,
        "save_velocity": metrics.save_velocity * config.velocity_weight,
    }
    numerator = sum(weighted.values())
    denominator = 1 + metrics.age_days * config.age_decay
    score = max(0.0, numerator / denominator)

    warnings: list[str] = []
    if raw_velocity is not None and raw_velocity > 50:
        warnings.append("Velocity spike detected")
    if metrics.s7 < 3 and weighted["save_velocity"] > 25:
        warnings.append("Low save count but high velocity")
    if metrics.s7 > 0 and metrics.l7 > metrics.s7 * 5:
        warnings.append("Like/save ratio suspicious")
    if metrics.s7 > 0 and metrics.c7 > metrics.s7 * 3:
        warnings.append("Comment/save ratio suspicious")

    return TrendingDebug(
        score=score,
        numerator=numerator,
        denominator=denominator,
        weighted=weighted,
        warnings=warnings,
    )


def calculate_trending_score(metrics: ListMetrics7d, config: TrendingConfig = DEFAULT_TRENDING) -> float:
    """Trending score of a list (>= 0, unbounded)."""
    return calculate_trending_score_with_debug(metrics, config).score


def get_trending_badge(score: float, config: TrendingConfig = DEFAULT_TRENDING) -> TrendingBadge:
    """Classify a score into its trending zone."""
    if score >= config.viral:
        return "viral"
    if score >= config.hot:
        return "hot"
    return "none"


def calculate_save_velocity(
    s7: int,
    days_since_last_save: float,
    config: TrendingConfig = DEFAULT_TRENDING,
) -> float:
    """Saves per day since the last save, spike-guarded.

    The divisor is at least one day so a single fresh save cannot explode
    the score, and the result is capped at save_velocity_max.
    """
    if s7 == 0:
        return 0.0
    days_clamped = max(1.0, days_since_last_save)
    divisor = max(1.0, math.ceil(days_clamped * 10) / 10)
    return min(s7 / divisor, config.save_velocity_max)


def apply_fast_rising_boost(score: float, s1: int, config: TrendingConfig = DEFAULT_TRENDING) -> float:
    """Add the fast-rising bonus when the last 24h saw enough saves."""
    if s1 >= config.fast_rising_saves_1d:
        return score + config.fast_rising_bonus
    return score
