"""Pydantic models for leaderboard reads."""

from __future__ import annotations

from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    ranking_score: float
    rank_change: int


class LeaderboardPage(BaseModel):
    period: str
    entries: list[LeaderboardEntry]
    total: int
    page: int
    per_page: int


class UserRank(BaseModel):
    period: str
    rank: int
    score: float
    total: int
    percentile: float
