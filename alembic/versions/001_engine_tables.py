"""Engine-owned tables.

Creates creator_rankings, achievements, user_achievements and
creator_spotlights. Platform tables (users, lists, bookmarks, ...) already
exist and are not touched.

Revision ID: 001_engine_tables
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_engine_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Creator Rankings ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS creator_rankings (
            user_id VARCHAR(36) PRIMARY KEY,
            curator_score DOUBLE PRECISION NOT NULL DEFAULT 0 CHECK (curator_score >= 0),
            influence_score DOUBLE PRECISION NOT NULL DEFAULT 0 CHECK (influence_score >= 0),
            momentum_score DOUBLE PRECISION NOT NULL DEFAULT 0 CHECK (momentum_score >= 0),
            ranking_score DOUBLE PRECISION NOT NULL DEFAULT 0 CHECK (ranking_score >= 0),
            global_rank INTEGER NOT NULL CHECK (global_rank >= 1),
            previous_global_rank INTEGER CHECK (previous_global_rank >= 1),
            monthly_rank INTEGER NOT NULL CHECK (monthly_rank >= 1),
            month_year VARCHAR(7) NOT NULL,
            category_rank JSONB NOT NULL DEFAULT '{}',
            last_activity_at TIMESTAMPTZ,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_creator_rankings_global
        ON creator_rankings(global_rank)
    """)

    # --- Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id SERIAL PRIMARY KEY,
            code VARCHAR(64) UNIQUE NOT NULL,
            title VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            category VARCHAR(32) NOT NULL,
            tier VARCHAR(16) NOT NULL,
            icon VARCHAR(16) NOT NULL,
            is_secret BOOLEAN NOT NULL DEFAULT false
        )
    """)

    # --- User Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_achievements (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL,
            achievement_id INTEGER NOT NULL REFERENCES achievements(id),
            unlocked_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT user_achievements_user_achievement_key UNIQUE (user_id, achievement_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_achievements_user
        ON user_achievements(user_id)
    """)

    # --- Creator Spotlights ---
    # At most one spotlight window may cover any instant.
    op.execute("""
        CREATE TABLE IF NOT EXISTS creator_spotlights (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL,
            type VARCHAR(16) NOT NULL
                CHECK (type IN ('weekly', 'rising', 'category', 'editor')),
            category_slug VARCHAR(64),
            start_date TIMESTAMPTZ NOT NULL,
            end_date TIMESTAMPTZ NOT NULL,
            CHECK (end_date > start_date),
            CONSTRAINT creator_spotlights_no_overlap
                EXCLUDE USING gist (tstzrange(start_date, end_date, '[]') WITH &&)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_creator_spotlights_user_end
        ON creator_spotlights(user_id, end_date DESC)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS creator_spotlights CASCADE")
    op.execute("DROP TABLE IF EXISTS user_achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS creator_rankings CASCADE")
