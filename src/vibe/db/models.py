"""ORM models.

Platform tables (users, lists, bookmarks, ...) are owned by the main
application and only read here; they use extend_existing=True since the
tables exist before this engine's migrations run. Engine-owned tables are
created by alembic revision 001.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vibe.db.base import Base


# ---------------------------------------------------------------------------
# Platform tables (read-only)
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(String(280), nullable=True)
    avatar_type: Mapped[str | None] = mapped_column("avatarType", String(16), nullable=True)
    avatar_id: Mapped[str | None] = mapped_column("avatarId", String(64), nullable=True)
    curator_level: Mapped[str | None] = mapped_column("curatorLevel", String(32), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column("createdAt", DateTime(timezone=True), nullable=True)


class Category(Base):
    """Maps to the 'categories' table."""

    __tablename__ = "categories"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    icon: Mapped[str | None] = mapped_column(String(16), nullable=True)
    is_active: Mapped[bool] = mapped_column("isActive", Boolean, default=True)
    deleted_at: Mapped[datetime | None] = mapped_column("deletedAt", DateTime(timezone=True), nullable=True)


class CuratedList(Base):
    """Maps to the 'lists' table, a creator's curated list."""

    __tablename__ = "lists"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column("userId", String(36), ForeignKey("users.id"), nullable=False)
    category_id: Mapped[str | None] = mapped_column(
        "categoryId", String(36), ForeignKey("categories.id"), nullable=True,
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    slug: Mapped[str] = mapped_column(String(256), nullable=False)
    cover_image: Mapped[str | None] = mapped_column("coverImage", Text, nullable=True)
    like_count: Mapped[int] = mapped_column("likeCount", Integer, default=0)
    save_count: Mapped[int] = mapped_column("saveCount", Integer, default=0)
    item_count: Mapped[int] = mapped_column("itemCount", Integer, default=0)
    is_public: Mapped[bool] = mapped_column("isPublic", Boolean, default=True)
    is_active: Mapped[bool] = mapped_column("isActive", Boolean, default=True)
    deleted_at: Mapped[datetime | None] = mapped_column("deletedAt", DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column("updatedAt", DateTime(timezone=True), nullable=False)

    category: Mapped[Category | None] = relationship("Category", lazy="joined")


class Bookmark(Base):
    """A save of a list by a user."""

    __tablename__ = "bookmarks"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column("userId", String(36), nullable=False)
    list_id: Mapped[str] = mapped_column("listId", String(36), ForeignKey("lists.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), nullable=False)


class ListLike(Base):
    __tablename__ = "list_likes"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column("userId", String(36), nullable=False)
    list_id: Mapped[str] = mapped_column("listId", String(36), ForeignKey("lists.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), nullable=False)


class Follow(Base):
    __tablename__ = "follows"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    follower_id: Mapped[str] = mapped_column("followerId", String(36), nullable=False)
    following_id: Mapped[str] = mapped_column("followingId", String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), nullable=False)


class ListComment(Base):
    __tablename__ = "list_comments"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column("userId", String(36), nullable=False)
    list_id: Mapped[str] = mapped_column("listId", String(36), ForeignKey("lists.id"), nullable=False)
    helpful_up: Mapped[int] = mapped_column("helpfulUp", Integer, default=0)
    status: Mapped[str] = mapped_column(String(16), default="active")
    is_approved: Mapped[bool] = mapped_column("isApproved", Boolean, default=True)
    deleted_at: Mapped[datetime | None] = mapped_column("deletedAt", DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), nullable=False)


class SuggestedItem(Base):
    """An item suggested by a user for someone else's list."""

    __tablename__ = "suggested_items"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column("userId", String(36), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), nullable=False)


class HomeFeaturedSlot(Base):
    """A scheduled or historical homepage feature window for a list."""

    __tablename__ = "home_featured_slot"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    list_id: Mapped[str] = mapped_column("listId", String(36), ForeignKey("lists.id"), nullable=False)
    start_at: Mapped[datetime] = mapped_column("startAt", DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime | None] = mapped_column("endAt", DateTime(timezone=True), nullable=True)
    impressions: Mapped[int | None] = mapped_column(Integer, nullable=True)
    clicks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    baseline_saves: Mapped[int | None] = mapped_column("baselineSaves", Integer, nullable=True)
    saves_during: Mapped[int | None] = mapped_column("savesDuring", Integer, nullable=True)


# ---------------------------------------------------------------------------
# Engine-owned tables
# ---------------------------------------------------------------------------


class CreatorRanking(Base):
    """One row per creator, overwritten wholesale by every ranking run."""

    __tablename__ = "creator_rankings"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    curator_score: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    influence_score: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    momentum_score: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    ranking_score: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    global_rank: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_global_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    monthly_rank: Mapped[int] = mapped_column(Integer, nullable=False)
    month_year: Mapped[str] = mapped_column(String(7), nullable=False)
    category_rank: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, server_default="{}")
    last_activity_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Achievement(Base):
    """Achievement catalog: 14 rows seeded on startup, never deleted."""

    __tablename__ = "achievements"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    tier: Mapped[str] = mapped_column(String(16), nullable=False)
    icon: Mapped[str] = mapped_column(String(16), nullable=False)
    is_secret: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")


class UserAchievement(Base):
    """Unlocked achievements. UNIQUE(user_id, achievement_id) prevents duplicates."""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="user_achievements_user_achievement_key"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    achievement_id: Mapped[int] = mapped_column(Integer, ForeignKey("achievements.id"), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class CreatorSpotlight(Base):
    """Time-boxed creator feature. Overlapping windows are rejected by an exclusion constraint."""

    __tablename__ = "creator_spotlights"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    category_slug: Mapped[str | None] = mapped_column(String(64), nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
