"""Creator score calculator.

Pure functions over a creator's raw aggregates:

    CuratorScore   = lists*10 + round(avg_likes)*5 + approved*3 + total_saves*2 + viral*30
    InfluenceScore = external_saves*3 + followers*2 + helpful_votes*5
    MomentumScore  = new_followers*2 + new_saves*3 + viral_touched*10   (30-day window)

Every score is clamped to >= 0 with no upper bound.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from vibe.config import RankingConfig

DEFAULT_RANKING = RankingConfig()


@dataclass(frozen=True)
class CreatorAggregates:
    """Raw counters for one creator, read in a single store call."""

    user_id: str
    public_list_count: int = 0
    avg_likes_per_list: float = 0.0
    approved_suggestions: int = 0
    total_saves: int = 0
    viral_lists: int = 0
    unique_external_saves: int = 0
    follower_count: int = 0
    helpful_comment_votes: int = 0
    new_followers_30d: int = 0
    new_saves_30d: int = 0
    viral_lists_touched_30d: int = 0
    last_activity_at: datetime | None = None


@dataclass(frozen=True)
class CuratorLevel:
    key: str
    min_score: int
    next_key: str | None
    points_to_next: int


# (key, minimum curator score), ascending
CURATOR_LEVELS: tuple[tuple[str, int], ...] = (
    ("EXPLORER", 0),
    ("NEW_CURATOR", 50),
    ("ACTIVE_CURATOR", 150),
    ("TRUSTED_CURATOR", 300),
    ("INFLUENTIAL_CURATOR", 500),
    ("ELITE_CURATOR", 800),
    ("VIBE_LEGEND", 1200),
)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def calculate_curator_score(agg: CreatorAggregates, config: RankingConfig = DEFAULT_RANKING) -> float:
    """Quality and volume of a creator's own lists."""
    score = (
        agg.public_list_count * config.curator_list_weight
        + round_half_up(agg.avg_likes_per_list) * config.curator_avg_likes_weight
        + agg.approved_suggestions * config.curator_approved_weight
        + agg.total_saves * config.curator_saves_weight
        + agg.viral_lists * config.curator_viral_weight
    )
    return max(0.0, score)


def calculate_influence_score(agg: CreatorAggregates, config: RankingConfig = DEFAULT_RANKING) -> float:
    """Reach beyond the creator's own activity."""
    score = (
        agg.unique_external_saves * config.influence_saves_weight
        + agg.follower_count * config.influence_followers_weight
        + agg.helpful_comment_votes * config.influence_helpful_weight
    )
    return max(0.0, score)


def calculate_momentum_score(agg: CreatorAggregates, config: RankingConfig = DEFAULT_RANKING) -> float:
    """Recent growth over the momentum window."""
    score = (
        agg.new_followers_30d * config.momentum_followers_weight
        + agg.new_saves_30d * config.momentum_saves_weight
        + agg.viral_lists_touched_30d * config.momentum_viral_weight
    )
    return max(0.0, score)


def curator_level(curator_score: float) -> CuratorLevel:
    """Map a CuratorScore onto its level and the points left to the next one."""
    index = 0
    for i, (_key, min_score) in enumerate(CURATOR_LEVELS):
        if curator_score >= min_score:
            index = i
    key, min_score = CURATOR_LEVELS[index]
    if index + 1 < len(CURATOR_LEVELS):
        next_key, next_min = CURATOR_LEVELS[index + 1]
        points_to_next = max(0, math.ceil(next_min - curator_score))
    else:
        next_key, points_to_next = None, 0
    return CuratorLevel(key=key, min_score=min_score, next_key=next_key, points_to_next=points_to_next)
