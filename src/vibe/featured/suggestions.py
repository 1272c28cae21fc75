"""Featured-content suggestions for the homepage.

Rule based and explainable. Each candidate gets

    base  = 0.4*min(trending/5, 100) + 0.2*min(velocity, 100)
          + 0.2*min(category_impact, 100) + 0.2*min(S7*2, 100)
    final = max(0, base * (1 + rotation_modifier))

and a list of human-readable reasons.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from vibe.config import FeaturedConfig
from vibe.featured.rotation import (
    DEFAULT_FEATURED,
    FeaturedHistoryEntry,
    RotationInsight,
    compute_rotation_insight,
)
from vibe.featured.schemas import (
    CategoryRotationStatResponse,
    FeaturedSuggestion,
    FeaturedSuggestionsResult,
    RotationReport,
)
from vibe.protocols import FeaturedStore, MetricsProvider

logger = logging.getLogger(__name__)

SCORE_CAP = 100.0


@dataclass(frozen=True)
class FeaturedCandidate:
    list_id: str
    title: str
    slug: str
    cover_image: str | None = None
    category_id: str | None = None
    category_name: str | None = None


def start_of_day(ts: datetime) -> datetime:
    return ts.replace(hour=0, minute=0, second=0, microsecond=0)


def is_scheduled(entry: FeaturedHistoryEntry, now: datetime) -> bool:
    """Running now (open-ended or not yet ended) or starting in the future."""
    if entry.start_at > now:
        return True
    return entry.end_at is None or entry.end_at >= now


def filter_eligible(
    candidates: Sequence[FeaturedCandidate],
    history: Sequence[FeaturedHistoryEntry],
    now: datetime,
    config: FeaturedConfig = DEFAULT_FEATURED,
) -> list[FeaturedCandidate]:
    """Drop lists scheduled now or later, and lists featured since the recency cutoff."""
    cutoff = start_of_day(now - timedelta(days=config.recent_featured_days))
    excluded: set[str] = set()
    for entry in history:
        if is_scheduled(entry, now) or entry.last_featured_at >= cutoff:
            excluded.add(entry.list_id)
    return [c for c in candidates if c.list_id not in excluded]


def base_suggestion_score(
    trending_score: float,
    save_velocity: float,
    category_impact: float,
    s7: int,
    config: FeaturedConfig = DEFAULT_FEATURED,
) -> float:
    return (
        min(trending_score / 5, SCORE_CAP) * config.trending_weight
        + min(save_velocity, SCORE_CAP) * config.velocity_weight
        + min(category_impact, SCORE_CAP) * config.category_weight
        + min(s7 * 2, SCORE_CAP) * config.growth_weight
    )


def final_suggestion_score(base: float, rotation_modifier: float) -> float:
    return max(0.0, base * (1 + rotation_modifier))


def suggestion_reasons(
    trending_score: float,
    save_velocity: float,
    s7: int,
    category_impact: float,
    rotation_modifier: float,
    config: FeaturedConfig = DEFAULT_FEATURED,
) -> list[str]:
    reasons = []
    if trending_score >= config.high_trending:
        reasons.append("High trending score")
    elif trending_score >= config.good_trending:
        reasons.append("Good trending score")
    if save_velocity >= config.fast_velocity:
        reasons.append("Fast save growth over the last 7 days")
    if s7 >= config.strong_growth_saves:
        reasons.append(f"Strong 7-day growth (+{s7} saves)")
    if category_impact >= config.strong_category_impact:
        reasons.append("This category performs well when featured")
    # Only lists outside the recency window reach this point.
    reasons.append("Not featured recently")
    if rotation_modifier > 0:
        reasons.append("This category has not been featured in recent weeks")
    elif rotation_modifier < 0:
        reasons.append("This category has been featured several times recently")
    return reasons


def _rotation_report(insight: RotationInsight) -> RotationReport:
    return RotationReport(
        category_stats=[
            CategoryRotationStatResponse(
                category_id=s.category_id,
                name=s.name,
                count_last_4_weeks=s.count_last_4_weeks,
                in_last_slot=s.in_last_slot,
                rotation_modifier=s.rotation_modifier,
            )
            for s in insight.category_stats
        ],
        suggested_category_id=insight.suggested_category_id,
        suggested_category=insight.suggested_category,
        reasoning=insight.reasoning,
    )


class FeaturedBalancer:
    """Ranks lists for homepage featuring and reports category rotation."""

    def __init__(
        self,
        store: FeaturedStore,
        metrics: MetricsProvider,
        config: FeaturedConfig = DEFAULT_FEATURED,
    ) -> None:
        self.store = store
        self.metrics = metrics
        self.config = config

    async def get_rotation_insight(self, now: datetime | None = None) -> RotationInsight:
        if now is None:
            now = datetime.now(timezone.utc)
        since = now - timedelta(days=self.config.rotation_window_days)
        history = await self.store.get_featured_history(since)
        categories = await self.store.list_active_categories()
        return compute_rotation_insight(history, categories, now, self.config)

    async def get_featured_suggestions(self, now: datetime | None = None) -> FeaturedSuggestionsResult:
        """Top suggestions with score and reasons, plus the rotation report."""
        if now is None:
            now = datetime.now(timezone.utc)
        config = self.config

        # One history read covers rotation (4 weeks) and recency exclusion (14 days).
        since = min(
            now - timedelta(days=config.rotation_window_days),
            start_of_day(now - timedelta(days=config.recent_featured_days)),
        )
        history = await self.store.get_featured_history(since)
        categories = await self.store.list_active_categories()
        insight = compute_rotation_insight(history, categories, now, config)
        modifiers = insight.modifiers_by_category
        impact = await self.store.get_category_impact_scores(config.impact_window_days, now)

        eligible = filter_eligible(await self.store.list_eligible_featured_candidates(), history, now, config)
        if not eligible:
            return FeaturedSuggestionsResult(suggestions=[], rotation=_rotation_report(insight))

        metrics_by_list = await self.metrics.get_list_metrics_7d([c.list_id for c in eligible], now)
        with_trending = []
        for candidate in eligible:
            metrics = metrics_by_list.get(candidate.list_id)
            if metrics is None:
                logger.info("No metrics for list %s, skipping featured candidate", candidate.list_id)
                continue
            with_trending.append((candidate, metrics, self.metrics.calculate_trending_score(metrics)))
        with_trending.sort(key=lambda item: -item[2])

        scored = []
        for candidate, metrics, trending in with_trending[:config.candidate_limit]:
            category_impact = impact.get(candidate.category_id, 0.0) if candidate.category_id else 0.0
            modifier = modifiers.get(candidate.category_id, 0.0) if candidate.category_id else 0.0
            base = base_suggestion_score(trending, metrics.save_velocity, category_impact, metrics.s7, config)
            score = final_suggestion_score(base, modifier)
            scored.append((score, FeaturedSuggestion(
                list_id=candidate.list_id,
                title=candidate.title,
                slug=candidate.slug,
                cover_image=candidate.cover_image,
                category_id=candidate.category_id,
                category_name=candidate.category_name,
                suggestion_score=round(score, 1),
                trending_score=round(trending, 1),
                trending_badge=self.metrics.get_trending_badge(trending),
                save_velocity=round(metrics.save_velocity, 1),
                s7=metrics.s7,
                category_impact_score=round(category_impact, 1),
                rotation_modifier=modifier,
                reasons=suggestion_reasons(
                    trending, metrics.save_velocity, metrics.s7, category_impact, modifier, config,
                ),
            )))
        scored.sort(key=lambda item: -item[0])

        top = [suggestion for _score, suggestion in scored[:config.top_n]]
        logger.info("Featured suggestions built: %d eligible, %d returned", len(eligible), len(top))
        return FeaturedSuggestionsResult(suggestions=top, rotation=_rotation_report(insight))
