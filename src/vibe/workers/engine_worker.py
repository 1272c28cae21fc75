"""Engine arq worker: scheduled ranking and spotlight passes, on-demand jobs.

Schedule:
- Creator rankings + leaderboard mirror: hourly
- Weekly spotlight check: every 15 minutes

On demand:
- check_user_achievements(user_id): enqueue after content mutations
- build_featured_suggestions(): enqueue from the admin tooling
"""

from __future__ import annotations

import logging
from typing import Any

import redis.asyncio as aioredis
from arq import cron
from arq.connections import RedisSettings
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError

from vibe.achievements.catalog import seed_achievements
from vibe.achievements.evaluator import AchievementEvaluator
from vibe.achievements.repository import SqlAchievementStore
from vibe.config import Settings, get_settings
from vibe.database import close_db, get_session_factory, init_db
from vibe.errors import RankInvariantError
from vibe.featured.repository import SqlFeaturedStore
from vibe.featured.suggestions import FeaturedBalancer
from vibe.logging import bind_run, bind_stage, setup_logging
from vibe.ranking.engine import RankingEngine
from vibe.ranking.leaderboard import publish_rankings
from vibe.ranking.repository import SqlRankingStore
from vibe.spotlight.repository import SqlSpotlightStore
from vibe.spotlight.selector import SpotlightSelector
from vibe.trending.service import SqlMetricsProvider

logger = logging.getLogger(__name__)


async def engine_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize logging, DB and the leaderboard Redis client; seed the achievement catalog."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url, pool_size=max(10, settings.ranking.concurrency))

    ctx["settings"] = settings
    ctx["leaderboard_redis"] = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )

    await seed_achievements(SqlAchievementStore(get_session_factory(), settings.achievements))
    logger.info("Engine worker started")


async def engine_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    redis_client: aioredis.Redis | None = ctx.get("leaderboard_redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Engine worker shut down")


async def refresh_creator_rankings(ctx: dict) -> int:  # type: ignore[type-arg]
    """Full ranking pass, then mirror the rows into Redis. Returns rows persisted."""
    settings: Settings = ctx["settings"]
    run_id = bind_run("refresh_creator_rankings")
    engine = RankingEngine(SqlRankingStore(get_session_factory(), settings.ranking), settings.ranking)

    try:
        result = await engine.run()
    except RankInvariantError:
        logger.exception("Ranking run %s aborted, nothing persisted", run_id)
        raise

    bind_stage("leaderboard")
    try:
        await publish_rankings(ctx["leaderboard_redis"], result.rows, settings.leaderboard_ttl_days)
    except RedisError:
        logger.exception("Failed to refresh leaderboard mirror for run %s", run_id)

    return result.persisted


async def ensure_weekly_spotlight(ctx: dict) -> str | None:  # type: ignore[type-arg]
    """Open a weekly spotlight if none is active. Returns the spotlighted user id."""
    settings: Settings = ctx["settings"]
    bind_run("ensure_weekly_spotlight")
    bind_stage("select")
    selector = SpotlightSelector(SqlSpotlightStore(get_session_factory(), settings.spotlight), settings.spotlight)

    try:
        row = await selector.select_and_create_weekly_spotlight()
    except IntegrityError:
        # Another worker opened an overlapping spotlight first.
        logger.info("Spotlight window already taken, skipping")
        return None
    return row.user_id if row else None


async def check_user_achievements(ctx: dict, user_id: str) -> list[str]:  # type: ignore[type-arg]
    """Evaluate and unlock achievements for one user. Returns newly unlocked codes."""
    settings: Settings = ctx["settings"]
    bind_run("check_user_achievements")
    bind_stage("evaluate")
    evaluator = AchievementEvaluator(
        SqlAchievementStore(get_session_factory(), settings.achievements), settings.achievements,
    )
    unlocked = await evaluator.check_achievements(user_id)
    return [a.code for a in unlocked]


async def build_featured_suggestions(ctx: dict) -> dict[str, Any]:  # type: ignore[type-arg]
    """Homepage featured suggestions with the rotation report, as JSON-ready data."""
    settings: Settings = ctx["settings"]
    bind_run("build_featured_suggestions")
    bind_stage("suggest")
    factory = get_session_factory()
    balancer = FeaturedBalancer(
        SqlFeaturedStore(factory, settings.featured),
        SqlMetricsProvider(factory, settings.trending),
        settings.featured,
    )
    result = await balancer.get_featured_suggestions()
    return result.model_dump(mode="json")


class EngineWorkerSettings:
    """arq worker settings for the scoring engine."""

    functions = [
        refresh_creator_rankings,
        ensure_weekly_spotlight,
        check_user_achievements,
        build_featured_suggestions,
    ]
    cron_jobs = [
        cron(refresh_creator_rankings, minute=0),
        cron(ensure_weekly_spotlight, minute={0, 15, 30, 45}),
    ]
    on_startup = engine_startup
    on_shutdown = engine_shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 4
    job_timeout = 1800  # full ranking pass over every creator
    allow_abort_jobs = True
