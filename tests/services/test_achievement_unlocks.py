"""Service tests for achievement unlocking."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fakes import FakeAchievementStore

from vibe.achievements.catalog import seed_achievements
from vibe.achievements.evaluator import AchievementEvaluator, UserActivity
from vibe.errors import CatalogError

pytestmark = pytest.mark.asyncio

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _store(**fields) -> FakeAchievementStore:
    return FakeAchievementStore({"u1": UserActivity(user_id="u1", **fields)})


class TestCheckAchievements:
    async def test_unlocks_satisfied_achievements(self):
        store = _store(public_list_count=5)
        unlocked = await AchievementEvaluator(store).check_achievements("u1", NOW)

        assert [a.code for a in unlocked] == ["FIRST_VIBE", "FIVE_LISTS"]
        assert all(a.unlocked_at == NOW for a in unlocked)
        assert unlocked[0].tier == "bronze"
        assert len(store.unlocks) == 2

    async def test_second_call_returns_nothing(self):
        store = _store(public_list_count=5)
        evaluator = AchievementEvaluator(store)
        await evaluator.check_achievements("u1", NOW)

        assert await evaluator.check_achievements("u1", NOW) == []
        assert len(store.unlocks) == 2
        assert store.insert_attempts == 2

    async def test_unlocks_survive_lost_activity(self):
        """Deleting lists never revokes an achievement."""
        store = _store(public_list_count=5)
        evaluator = AchievementEvaluator(store)
        await evaluator.check_achievements("u1", NOW)

        store.activity["u1"] = UserActivity(user_id="u1")
        assert await evaluator.check_achievements("u1", NOW) == []
        assert len(store.unlocks) == 2

    async def test_lost_insert_race_not_reported(self):
        store = _store(public_list_count=5)
        store.race_losers.add(("u1", store.ids["FIRST_VIBE"]))
        unlocked = await AchievementEvaluator(store).check_achievements("u1", NOW)

        assert [a.code for a in unlocked] == ["FIVE_LISTS"]
        assert ("u1", store.ids["FIRST_VIBE"]) in store.unlocks

    async def test_users_are_independent(self):
        store = FakeAchievementStore({
            "u1": UserActivity(user_id="u1", public_list_count=1),
            "u2": UserActivity(user_id="u2", public_list_count=1),
        })
        evaluator = AchievementEvaluator(store)
        assert len(await evaluator.check_achievements("u1", NOW)) == 1
        assert len(await evaluator.check_achievements("u2", NOW)) == 1

    async def test_new_user_unlocks_nothing(self):
        store = FakeAchievementStore()
        assert await AchievementEvaluator(store).check_achievements("nobody", NOW) == []
        assert store.insert_attempts == 0


class TestCatalogSeeding:
    async def test_seeds_empty_catalog_on_demand(self):
        store = FakeAchievementStore({"u1": UserActivity(user_id="u1", public_list_count=1)}, seeded=False)
        unlocked = await AchievementEvaluator(store).check_achievements("u1", NOW)

        assert len(store.catalog) == 14
        assert [a.code for a in unlocked] == ["FIRST_VIBE"]

    async def test_seeding_is_idempotent(self):
        store = FakeAchievementStore(seeded=False)
        assert await seed_achievements(store) == 14
        ids = dict(store.ids)
        await seed_achievements(store)
        assert store.ids == ids

    async def test_missing_rows_after_seeding_raise(self):
        class ReadOnlyCatalogStore(FakeAchievementStore):
            async def upsert_achievement_catalog_row(self, definition):
                return None

        store = ReadOnlyCatalogStore(seeded=False)
        with pytest.raises(CatalogError):
            await AchievementEvaluator(store).check_achievements("u1", NOW)
