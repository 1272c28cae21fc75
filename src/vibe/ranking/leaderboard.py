"""Leaderboard mirror: Redis sorted sets rebuilt from each ranking run.

creator_rankings in PostgreSQL stays authoritative. Each sorted set stores
``-rank`` as the member score, so Redis order is exactly the persisted rank
order, ties included. Ranking scores and rank changes ride along in two
hashes next to each set.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from redis.asyncio import Redis

from vibe.ranking.engine import CreatorRankingRow
from vibe.ranking.schemas import LeaderboardEntry, LeaderboardPage, UserRank

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

# Slugs of every category set published by the last run.
CATEGORY_INDEX_KEY = "leaderboard:categories"


def build_leaderboard_key(
    period: str,
    month_year: str | None = None,
    category_slug: str | None = None,
) -> str:
    """Build Redis sorted set key for a leaderboard period."""
    if period == "global":
        return "leaderboard:global"
    elif period == "monthly":
        suffix = month_year or datetime.now(timezone.utc).strftime("%Y-%m")
        return f"leaderboard:monthly:{suffix}"
    elif period == "category":
        if not category_slug:
            raise ValueError("Category leaderboard needs a category slug")
        return f"leaderboard:category:{category_slug}"
    raise ValueError(f"Unknown period: {period}")


def _scores_key(key: str) -> str:
    return key.replace("leaderboard:", "leaderboard:scores:", 1)


def _changes_key(key: str) -> str:
    return key.replace("leaderboard:", "leaderboard:changes:", 1)


def rank_change(row: CreatorRankingRow) -> int:
    """Positive = moved up since the previous run. New creators report 0."""
    if row.previous_global_rank is None:
        return 0
    return row.previous_global_rank - row.global_rank


def _rebuild(pipe, key: str, ranked: Sequence[tuple[CreatorRankingRow, int]], ttl_seconds: int) -> None:
    scores_key = _scores_key(key)
    changes_key = _changes_key(key)
    pipe.delete(key)
    pipe.delete(scores_key)
    pipe.delete(changes_key)
    if not ranked:
        return
    pipe.zadd(key, {row.user_id: -rank for row, rank in ranked})
    pipe.hset(scores_key, mapping={row.user_id: row.ranking_score for row, _ in ranked})
    pipe.hset(changes_key, mapping={row.user_id: rank_change(row) for row, _ in ranked})
    for k in (key, scores_key, changes_key):
        pipe.expire(k, ttl_seconds)


def _drop(pipe, key: str) -> None:
    pipe.delete(key)
    pipe.delete(_scores_key(key))
    pipe.delete(_changes_key(key))


async def publish_rankings(
    redis: Redis,
    rows: Sequence[CreatorRankingRow],
    ttl_days: int = 31,
) -> int:
    """Mirror a ranking run into the global, monthly and category sorted sets.

    Category sets published by the previous run whose category has no
    ranked creators now are deleted. Returns the number of sorted sets rebuilt.
    """
    if not rows:
        return 0
    ttl = SECONDS_PER_DAY * ttl_days

    by_category: dict[str, list[tuple[CreatorRankingRow, int]]] = {}
    for row in rows:
        for slug, rank in row.category_rank.items():
            by_category.setdefault(slug, []).append((row, rank))

    previous_slugs = await redis.smembers(CATEGORY_INDEX_KEY)
    stale = sorted(set(previous_slugs) - set(by_category))

    pipe = redis.pipeline()
    _rebuild(pipe, build_leaderboard_key("global"), [(row, row.global_rank) for row in rows], ttl)
    _rebuild(
        pipe,
        build_leaderboard_key("monthly", rows[0].month_year),
        [(row, row.monthly_rank) for row in rows],
        ttl,
    )
    for slug, ranked in by_category.items():
        _rebuild(pipe, build_leaderboard_key("category", category_slug=slug), ranked, ttl)
    for slug in stale:
        _drop(pipe, build_leaderboard_key("category", category_slug=slug))

    pipe.delete(CATEGORY_INDEX_KEY)
    if by_category:
        pipe.sadd(CATEGORY_INDEX_KEY, *by_category)
        pipe.expire(CATEGORY_INDEX_KEY, ttl)
    await pipe.execute()

    rebuilt = 2 + len(by_category)
    logger.info(
        "Leaderboard mirror refreshed: %d creators, %d sets, %d stale category sets dropped",
        len(rows), rebuilt, len(stale),
    )
    return rebuilt


async def get_leaderboard(
    redis: Redis,
    period: str,
    page: int = 1,
    per_page: int = 50,
    month_year: str | None = None,
    category_slug: str | None = None,
) -> LeaderboardPage:
    """Get one page of a leaderboard from its Redis sorted set."""
    key = build_leaderboard_key(period, month_year, category_slug)
    start = (page - 1) * per_page
    end = start + per_page - 1

    entries = await redis.zrevrange(key, start, end, withscores=True)
    total = await redis.zcard(key)

    if not entries:
        return LeaderboardPage(period=period, entries=[], total=total, page=page, per_page=per_page)

    user_ids = [user_id for user_id, _ in entries]
    scores = await redis.hmget(_scores_key(key), user_ids)
    changes = await redis.hmget(_changes_key(key), user_ids)

    results = []
    for (user_id, neg_rank), score, change in zip(entries, scores, changes):
        results.append(LeaderboardEntry(
            rank=int(-neg_rank),
            user_id=user_id,
            ranking_score=float(score or 0),
            rank_change=int(change or 0),  # Positive = moved up
        ))

    return LeaderboardPage(period=period, entries=results, total=total, page=page, per_page=per_page)


async def get_user_rank(
    redis: Redis,
    period: str,
    user_id: str,
    month_year: str | None = None,
    category_slug: str | None = None,
) -> UserRank:
    """Get a specific creator's rank and score from the leaderboard."""
    key = build_leaderboard_key(period, month_year, category_slug)
    neg_rank = await redis.zscore(key, user_id)
    total = await redis.zcard(key)

    if neg_rank is None:
        return UserRank(period=period, rank=0, score=0, total=total, percentile=0)

    rank = int(-neg_rank)
    score = await redis.hget(_scores_key(key), user_id)
    return UserRank(
        period=period,
        rank=rank,
        score=float(score or 0),
        total=total,
        percentile=round(100 - (rank / total * 100), 2) if total > 0 else 0,
    )
