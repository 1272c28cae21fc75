"""Pydantic models for spotlight reads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class SpotlightCreator(BaseModel):
    user_id: str
    name: str | None = None
    username: str | None = None
    image: str | None = None
    bio: str | None = None
    avatar_type: str | None = None
    avatar_id: str | None = None
    curator_level: str
    viral_count: int
    total_likes: int
    list_count: int


class SpotlightListResponse(BaseModel):
    id: str
    title: str
    slug: str
    cover_image: str | None = None
    like_count: int
    save_count: int
    item_count: int
    category_name: str | None = None
    category_icon: str | None = None


class CurrentSpotlight(BaseModel):
    id: int
    user_id: str
    type: str
    category_slug: str | None = None
    start_date: datetime
    end_date: datetime
    creator: SpotlightCreator
    lists: list[SpotlightListResponse]


class ActiveSpotlightBadge(BaseModel):
    type: str
    end_date: datetime
