"""Ranking engine: blended creator score, inactivity decay and rank assignment.

A run is a single batch pass:

1. aggregate and score every creator in a task group (bounded by a semaphore;
   one failed read cancels the rest),
2. barrier: sort once, assign global, monthly and per-category ranks,
3. verify every rank-set is a dense 1..N permutation,
4. upsert one row per creator.

Ties keep input order (Python's sort is stable), so identical inputs always
produce identical ranks. Step 3 runs before anything is written; a broken
rank-set aborts the pass with RankInvariantError.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Union

from vibe.config import RankingConfig
from vibe.errors import RankInvariantError
from vibe.logging import bind_stage
from vibe.protocols import CategoryRef, RankingStore
from vibe.ranking.scores import (
    DEFAULT_RANKING,
    CreatorAggregates,
    calculate_curator_score,
    calculate_influence_score,
    calculate_momentum_score,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class CategoryRanks(Mapping[str, int]):
    """Read-only ``{category_slug: rank}`` map with validated entries."""

    __slots__ = ("_ranks",)

    def __init__(self, ranks: Mapping[str, int] | None = None) -> None:
        checked: dict[str, int] = {}
        for slug, rank in (ranks or {}).items():
            if not isinstance(slug, str) or not slug:
                raise RankInvariantError("category_rank", f"invalid category slug {slug!r}")
            if isinstance(rank, bool) or not isinstance(rank, int) or rank < 1:
                raise RankInvariantError("category_rank", f"invalid rank {rank!r} for {slug}")
            checked[slug] = rank
        self._ranks = checked

    def __getitem__(self, slug: str) -> int:
        return self._ranks[slug]

    def __iter__(self) -> Iterator[str]:
        return iter(self._ranks)

    def __len__(self) -> int:
        return len(self._ranks)

    def __repr__(self) -> str:
        return f"CategoryRanks({self._ranks!r})"

    def to_dict(self) -> dict[str, int]:
        return dict(self._ranks)


@dataclass(frozen=True)
class Qualified:
    aggregates: CreatorAggregates


@dataclass(frozen=True)
class NotQualified:
    user_id: str
    reason: str


Qualification = Union[Qualified, NotQualified]


def qualify(aggregates: CreatorAggregates) -> Qualification:
    """Only creators with at least one public, active list take part in a run."""
    if aggregates.public_list_count < 1:
        return NotQualified(aggregates.user_id, "no public lists")
    return Qualified(aggregates)


@dataclass(frozen=True)
class ScoredCreator:
    user_id: str
    curator_score: float
    influence_score: float
    momentum_score: float
    raw_score: float
    ranking_score: float
    last_activity_at: datetime | None


@dataclass(frozen=True)
class CreatorRankingRow:
    """Exactly what gets upserted into creator_rankings for one creator."""

    user_id: str
    curator_score: float
    influence_score: float
    momentum_score: float
    ranking_score: float
    global_rank: int
    previous_global_rank: int | None
    monthly_rank: int
    month_year: str
    category_rank: CategoryRanks
    last_activity_at: datetime | None


@dataclass
class RankingRunResult:
    rows: list[CreatorRankingRow] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    not_qualified: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def persisted(self) -> int:
        return len(self.rows) - len(self.failed)


def combine_ranking_score(
    curator: float,
    influence: float,
    momentum: float,
    config: RankingConfig = DEFAULT_RANKING,
) -> float:
    return (
        curator * config.curator_share
        + influence * config.influence_share
        + momentum * config.momentum_share
    )


def apply_decay(
    raw_score: float,
    last_activity_at: datetime | None,
    now: datetime,
    config: RankingConfig = DEFAULT_RANKING,
) -> float:
    """Decay a raw score by 15% per full 30-day period past a 60-day grace window.

    No decay for creators without any recorded activity or with a
    non-positive raw score.
    """
    if last_activity_at is None or raw_score <= 0:
        return raw_score
    inactive_days = (now - last_activity_at).total_seconds() / SECONDS_PER_DAY
    if inactive_days <= config.decay_grace_days:
        return raw_score
    periods = math.floor((inactive_days - config.decay_grace_days) / config.decay_period_days)
    return max(0.0, raw_score * config.decay_factor ** periods)


def score_creator(
    aggregates: CreatorAggregates,
    now: datetime,
    config: RankingConfig = DEFAULT_RANKING,
) -> ScoredCreator:
    curator = calculate_curator_score(aggregates, config)
    influence = calculate_influence_score(aggregates, config)
    momentum = calculate_momentum_score(aggregates, config)
    raw = combine_ranking_score(curator, influence, momentum, config)
    final = apply_decay(raw, aggregates.last_activity_at, now, config)
    return ScoredCreator(
        user_id=aggregates.user_id,
        curator_score=curator,
        influence_score=influence,
        momentum_score=momentum,
        raw_score=raw,
        ranking_score=round(final, 2),
        last_activity_at=aggregates.last_activity_at,
    )


def assign_ranks(scored: Sequence[ScoredCreator]) -> dict[str, int]:
    """1-based positions by ranking_score DESC; ties keep input order."""
    ordered = sorted(scored, key=lambda s: -s.ranking_score)
    return {s.user_id: idx + 1 for idx, s in enumerate(ordered)}


def verify_dense_ranks(rank_set: str, ranks: Mapping[str, int], expected: int) -> None:
    """Raise RankInvariantError unless ``ranks`` is exactly a permutation of 1..expected."""
    if len(ranks) != expected:
        raise RankInvariantError(rank_set, f"{expected} creators but {len(ranks)} ranks (duplicate creator?)")
    if sorted(ranks.values()) != list(range(1, expected + 1)):
        raise RankInvariantError(rank_set, "ranks are not a dense 1..N sequence")


def build_ranking_rows(
    scored: Sequence[ScoredCreator],
    categories: Sequence[tuple[CategoryRef, set[str]]],
    previous_ranks: Mapping[str, int],
    month_year: str,
) -> list[CreatorRankingRow]:
    """Barrier step: every rank-set for one run, verified before it is returned."""
    global_ranks = assign_ranks(scored)
    verify_dense_ranks("global", global_ranks, len(scored))
    # Monthly ordering is the global ordering tagged with the month.
    monthly_ranks = dict(global_ranks)

    per_creator: dict[str, dict[str, int]] = {s.user_id: {} for s in scored}
    seen_slugs: set[str] = set()
    for category, member_ids in categories:
        if category.slug in seen_slugs:
            raise RankInvariantError("category_rank", f"duplicate category slug {category.slug}")
        seen_slugs.add(category.slug)
        members = [s for s in scored if s.user_id in member_ids]
        if not members:
            continue
        ranks = assign_ranks(members)
        verify_dense_ranks(f"category:{category.slug}", ranks, len(members))
        for user_id, rank in ranks.items():
            per_creator[user_id][category.slug] = rank

    return [
        CreatorRankingRow(
            user_id=s.user_id,
            curator_score=s.curator_score,
            influence_score=s.influence_score,
            momentum_score=s.momentum_score,
            ranking_score=s.ranking_score,
            global_rank=global_ranks[s.user_id],
            previous_global_rank=previous_ranks.get(s.user_id),
            monthly_rank=monthly_ranks[s.user_id],
            month_year=month_year,
            category_rank=CategoryRanks(per_creator[s.user_id]),
            last_activity_at=s.last_activity_at,
        )
        for s in scored
    ]


class RankingEngine:
    """Runs one full ranking pass against a RankingStore."""

    def __init__(self, store: RankingStore, config: RankingConfig = DEFAULT_RANKING) -> None:
        self.store = store
        self.config = config

    async def _score_one(
        self,
        user_id: str,
        now: datetime,
        semaphore: asyncio.Semaphore,
    ) -> Qualification | None:
        async with semaphore:
            aggregates = await self.store.get_creator_aggregates(user_id, now)
        if aggregates is None:
            return None
        return qualify(aggregates)

    async def run(self, now: datetime | None = None) -> RankingRunResult:
        """Score, rank and persist every creator. Returns a run summary."""
        if now is None:
            now = datetime.now(timezone.utc)
        result = RankingRunResult()

        bind_stage("score")
        creator_ids = await self.store.list_creator_ids()
        semaphore = asyncio.Semaphore(self.config.concurrency)
        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [tg.create_task(self._score_one(uid, now, semaphore)) for uid in creator_ids]
        except ExceptionGroup as group:
            # Sibling reads are cancelled by now; surface the first failure.
            raise group.exceptions[0]
        outcomes = [task.result() for task in tasks]

        scored: list[ScoredCreator] = []
        for user_id, outcome in zip(creator_ids, outcomes):
            if outcome is None:
                logger.info("Creator %s disappeared during aggregation, skipping", user_id)
                result.skipped.append(user_id)
            elif isinstance(outcome, NotQualified):
                logger.debug("Creator %s not qualified: %s", user_id, outcome.reason)
                result.not_qualified.append(user_id)
            else:
                scored.append(score_creator(outcome.aggregates, now, self.config))

        bind_stage("rank")
        categories = await self.store.list_active_categories()
        category_members = [
            (category, await self.store.list_creators_with_public_lists_in_category(category.id))
            for category in categories
        ]
        previous_ranks = await self.store.get_previous_global_ranks([s.user_id for s in scored])
        result.rows = build_ranking_rows(scored, category_members, previous_ranks, now.strftime("%Y-%m"))

        bind_stage("persist")
        for row in result.rows:
            try:
                await self.store.persist_ranking(row)
            except Exception:
                logger.exception("Failed to persist ranking for creator %s", row.user_id)
                result.failed.append(row.user_id)

        logger.info(
            "Ranking run complete: %d ranked, %d not qualified, %d skipped, %d failed",
            len(result.rows), len(result.not_qualified), len(result.skipped), len(result.failed),
        )
        return result
