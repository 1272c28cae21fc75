"""Tests for the engine arq jobs with stores and engines patched out."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import IntegrityError

from vibe.config import Settings
from vibe.errors import RankInvariantError
from vibe.ranking.engine import RankingRunResult
from vibe.workers import engine_worker
from vibe.workers.settings import WorkerSettings


@pytest.fixture
def ctx(monkeypatch: pytest.MonkeyPatch) -> dict:
    monkeypatch.setattr(engine_worker, "get_session_factory", MagicMock())
    for store in ("SqlRankingStore", "SqlSpotlightStore", "SqlAchievementStore"):
        monkeypatch.setattr(engine_worker, store, MagicMock())
    return {"settings": Settings(), "leaderboard_redis": MagicMock()}


def _patch_engine(monkeypatch: pytest.MonkeyPatch, run: AsyncMock) -> None:
    engine = MagicMock()
    engine.run = run
    monkeypatch.setattr(engine_worker, "RankingEngine", MagicMock(return_value=engine))


@pytest.mark.asyncio
class TestRefreshCreatorRankings:
    async def test_returns_persisted_and_publishes(self, ctx, monkeypatch):
        result = RankingRunResult(rows=[MagicMock(), MagicMock(), MagicMock()], failed=["x"])
        _patch_engine(monkeypatch, AsyncMock(return_value=result))
        publish = AsyncMock(return_value=2)
        monkeypatch.setattr(engine_worker, "publish_rankings", publish)

        assert await engine_worker.refresh_creator_rankings(ctx) == 2
        publish.assert_awaited_once_with(ctx["leaderboard_redis"], result.rows, ctx["settings"].leaderboard_ttl_days)

    async def test_redis_failure_does_not_fail_job(self, ctx, monkeypatch):
        _patch_engine(monkeypatch, AsyncMock(return_value=RankingRunResult(rows=[MagicMock()])))
        monkeypatch.setattr(
            engine_worker, "publish_rankings", AsyncMock(side_effect=RedisConnectionError("down")),
        )
        assert await engine_worker.refresh_creator_rankings(ctx) == 1

    async def test_rank_invariant_error_propagates(self, ctx, monkeypatch):
        _patch_engine(monkeypatch, AsyncMock(side_effect=RankInvariantError("global", "gap")))
        publish = AsyncMock()
        monkeypatch.setattr(engine_worker, "publish_rankings", publish)

        with pytest.raises(RankInvariantError):
            await engine_worker.refresh_creator_rankings(ctx)
        publish.assert_not_awaited()


@pytest.mark.asyncio
class TestEnsureWeeklySpotlight:
    def _patch_selector(self, monkeypatch, select: AsyncMock) -> None:
        selector = MagicMock()
        selector.select_and_create_weekly_spotlight = select
        monkeypatch.setattr(engine_worker, "SpotlightSelector", MagicMock(return_value=selector))

    async def test_returns_spotlighted_user(self, ctx, monkeypatch):
        row = MagicMock()
        row.user_id = "u1"
        self._patch_selector(monkeypatch, AsyncMock(return_value=row))
        assert await engine_worker.ensure_weekly_spotlight(ctx) == "u1"

    async def test_nothing_created(self, ctx, monkeypatch):
        self._patch_selector(monkeypatch, AsyncMock(return_value=None))
        assert await engine_worker.ensure_weekly_spotlight(ctx) is None

    async def test_overlapping_window_swallowed(self, ctx, monkeypatch):
        error = IntegrityError("INSERT INTO creator_spotlights", {}, Exception("creator_spotlights_no_overlap"))
        self._patch_selector(monkeypatch, AsyncMock(side_effect=error))
        assert await engine_worker.ensure_weekly_spotlight(ctx) is None


@pytest.mark.asyncio
class TestCheckUserAchievements:
    async def test_returns_codes(self, ctx, monkeypatch):
        evaluator = MagicMock()
        evaluator.check_achievements = AsyncMock(return_value=[MagicMock(code="FIRST_VIBE")])
        monkeypatch.setattr(engine_worker, "AchievementEvaluator", MagicMock(return_value=evaluator))

        assert await engine_worker.check_user_achievements(ctx, "u1") == ["FIRST_VIBE"]
        evaluator.check_achievements.assert_awaited_once_with("u1")


class TestWorkerSettings:
    def test_exported_for_arq_cli(self):
        assert WorkerSettings is engine_worker.EngineWorkerSettings

    def test_cron_schedule(self):
        names = [job.name for job in WorkerSettings.cron_jobs]
        assert names == ["cron:refresh_creator_rankings", "cron:ensure_weekly_spotlight"]

    def test_all_jobs_registered(self):
        registered = {f.__name__ for f in WorkerSettings.functions}
        assert registered == {
            "refresh_creator_rankings",
            "ensure_weekly_spotlight",
            "check_user_achievements",
            "build_featured_suggestions",
        }
