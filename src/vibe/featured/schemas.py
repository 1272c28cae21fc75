"""Pydantic models for featured suggestion results."""

from __future__ import annotations

from pydantic import BaseModel

from vibe.trending.score import TrendingBadge


class FeaturedSuggestion(BaseModel):
    list_id: str
    title: str
    slug: str
    cover_image: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    suggestion_score: float
    trending_score: float
    trending_badge: TrendingBadge = "none"
    save_velocity: float
    s7: int
    category_impact_score: float
    rotation_modifier: float
    reasons: list[str]


class CategoryRotationStatResponse(BaseModel):
    category_id: str
    name: str
    count_last_4_weeks: int
    in_last_slot: bool
    rotation_modifier: float


class RotationReport(BaseModel):
    category_stats: list[CategoryRotationStatResponse]
    suggested_category_id: str | None = None
    suggested_category: str | None = None
    reasoning: str


class FeaturedSuggestionsResult(BaseModel):
    suggestions: list[FeaturedSuggestion]
    rotation: RotationReport | None = None
