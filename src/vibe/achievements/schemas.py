"""Pydantic models for achievement results."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class UnlockedAchievement(BaseModel):
    code: str
    title: str
    icon: str
    tier: str
    unlocked_at: datetime
