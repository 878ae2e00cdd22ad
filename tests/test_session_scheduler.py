import asyncio
import random
import unittest

from rankroller.models.player import PlayerState
from rankroller.repositories import InMemorySaveRepository
from rankroller.services.save_codec import SaveImportError, decode, encode
from rankroller.services.scheduler import RANK, RUNE
from rankroller.services.session import GameSession, SessionManager


class FakeSleep:
    """Records requested delays and yields to the loop without waiting."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)
        await asyncio.sleep(0)


def make_session(state=None, sleep=None):
    repository = InMemorySaveRepository()
    session = GameSession(
        "test",
        repository,
        state,
        rng=random.Random(42),
        scheduler_options={"sleep": sleep or FakeSleep()},
    )
    return session, repository


class SchedulerTests(unittest.IsolatedAsyncioTestCase):
    async def test_animated_rank_roll(self):
        sleep = FakeSleep()
        session, repository = make_session(sleep=sleep)

        result = await session.roll()

        self.assertEqual(sleep.calls, [0.05] * 10)
        self.assertEqual(session.state.roll_count, 1)
        self.assertEqual(session.current_rank, result.displayed)
        self.assertFalse(session.rank_roll_in_flight)
        stored = await repository.read("test")
        self.assertEqual(decode(stored).roll_count, 1)

    async def test_fast_speed_skips_animation(self):
        sleep = FakeSleep()
        session, _ = make_session(PlayerState(speed_level=30), sleep=sleep)

        await session.roll()

        self.assertEqual(sleep.calls, [])
        self.assertFalse(session.scheduler.latest.rank_animated)
        self.assertEqual(session.state.roll_count, 1)

    async def test_rank_rolls_never_overlap(self):
        session, _ = make_session()

        first = asyncio.create_task(session.roll())
        await asyncio.sleep(0)
        self.assertTrue(session.rank_roll_in_flight)
        self.assertIsNone(await session.roll())

        result = await first
        self.assertIsNotNone(result)
        self.assertEqual(session.state.roll_count, 1)

    async def test_rune_roll_paid_before_animation(self):
        sleep = FakeSleep()
        session, _ = make_session(PlayerState(total_points=2500, collected_ranks={20}), sleep=sleep)

        task = asyncio.create_task(session.roll_runes())
        await asyncio.sleep(0)
        self.assertTrue(session.rune_roll_in_flight)
        self.assertEqual(session.state.total_points, 1500)
        self.assertIsNone(await session.roll_runes())

        result = await task
        self.assertEqual(result.cost, 1000)
        self.assertEqual(session.state.total_points, 1500)
        self.assertEqual(session.state.rune_roll_count, 1)
        self.assertEqual(len(sleep.calls), 50)

    async def test_blocked_rune_roll(self):
        session, repository = make_session(PlayerState(total_points=10, collected_ranks={20}))
        self.assertIsNone(await session.roll_runes())
        self.assertFalse(session.rune_roll_in_flight)
        self.assertIsNone(await repository.read("test"))

    async def test_auto_roll_requires_unlock(self):
        session, _ = make_session()
        self.assertFalse(session.scheduler.start(RANK))
        self.assertFalse(session.scheduler.start(RUNE))
        self.assertFalse(session.scheduler.is_running(RANK))

    async def test_auto_roll_runs_until_stopped(self):
        sleep = FakeSleep()
        state = PlayerState(roll_count=100, claimed_milestones={"rolls_100"})
        session, _ = make_session(state, sleep=sleep)
        scheduler = session.scheduler

        self.assertTrue(scheduler.start(RANK))
        self.assertTrue(scheduler.is_running(RANK))
        for _ in range(60):
            await asyncio.sleep(0)
        scheduler.stop(RANK)
        await scheduler.wait_idle()

        self.assertFalse(scheduler.is_running(RANK))
        self.assertGreater(session.state.roll_count, 100)
        self.assertIn(5.0, sleep.calls)

    async def test_auto_interval_uses_fast_unlock(self):
        state = PlayerState(claimed_milestones={"rolls_100", "rolls_5000"})
        session, _ = make_session(state)
        timing = session.scheduler.refresh()
        self.assertEqual(timing.rank_auto_interval_ms, 2500)
        self.assertIsNone(timing.rune_auto_interval_ms)

    async def test_auto_interval_reread_after_each_wait(self):
        sleep = FakeSleep()
        session, _ = make_session(PlayerState(claimed_milestones={"rolls_100"}), sleep=sleep)
        scheduler = session.scheduler

        self.assertTrue(scheduler.start(RANK))
        await asyncio.sleep(0)
        self.assertEqual(sleep.calls, [5.0])

        session.state.claimed_milestones = session.state.claimed_milestones | {"rolls_5000"}
        for _ in range(10):
            await asyncio.sleep(0)
        scheduler.stop(RANK)
        await scheduler.wait_idle()

        waits = [seconds for seconds in sleep.calls if seconds >= 1]
        self.assertEqual(waits[:2], [5.0, 2.5])

    async def test_auto_rune_roll_skipped_when_unaffordable_at_fire(self):
        sleep = FakeSleep()
        state = PlayerState(total_points=1000, collected_ranks={20}, claimed_milestones={"rune_rolls_500"})
        session, _ = make_session(state, sleep=sleep)
        scheduler = session.scheduler

        self.assertTrue(scheduler.start(RUNE))
        await asyncio.sleep(0)
        self.assertEqual(sleep.calls, [25.0])

        session.state.total_points = 10
        for _ in range(10):
            await asyncio.sleep(0)
        scheduler.stop(RUNE)
        await scheduler.wait_idle()

        self.assertEqual(session.state.total_points, 10)
        self.assertEqual(session.state.rune_roll_count, 0)
        self.assertNotIn(0.1, sleep.calls)
        self.assertEqual(set(sleep.calls), {25.0})

    async def test_reset_discards_rune_roll_in_flight(self):
        session, repository = make_session(PlayerState(total_points=1000, collected_ranks={20}))

        task = asyncio.create_task(session.roll_runes())
        await asyncio.sleep(0)
        self.assertTrue(session.rune_roll_in_flight)
        await session.reset()

        self.assertIsNone(await task)
        self.assertFalse(session.rune_roll_in_flight)
        self.assertEqual(session.state, PlayerState())
        self.assertEqual(session.state.rune_roll_count, 0)
        self.assertEqual(session.state.collected_runes, set())
        self.assertIsNone(session.current_rune)
        self.assertEqual(decode(await repository.read("test")), PlayerState())

    async def test_import_discards_rank_roll_in_flight(self):
        session, repository = make_session()

        task = asyncio.create_task(session.roll())
        await asyncio.sleep(0)
        self.assertTrue(session.rank_roll_in_flight)
        await session.import_save(encode(PlayerState(roll_count=7)))

        self.assertIsNone(await task)
        self.assertEqual(session.state.roll_count, 7)
        self.assertEqual(session.state.rank_roll_counts, {})
        self.assertIsNone(session.current_rank)
        self.assertEqual(decode(await repository.read("test")).roll_count, 7)

    async def test_rank_roll_after_reset_still_lands(self):
        session, _ = make_session()
        await session.reset()

        result = await session.roll()

        self.assertIsNotNone(result)
        self.assertEqual(session.state.roll_count, 1)


class SessionTests(unittest.IsolatedAsyncioTestCase):
    async def test_purchase_persists(self):
        session, repository = make_session(PlayerState(total_points=150))
        self.assertTrue(await session.purchase("points"))
        self.assertFalse(await session.purchase("points"))
        stored = decode(await repository.read("test"))
        self.assertEqual(stored.points_multi_level, 1)
        self.assertEqual(stored.total_points, 50)

    async def test_export_then_import_replaces_save(self):
        session, repository = make_session(PlayerState(total_points=5))
        exported = await session.export_save()
        self.assertEqual(await repository.read("test"), exported)

        replacement = encode(PlayerState(total_points=777, roll_count=3))
        await session.import_save(replacement)
        self.assertEqual(session.state.total_points, 777)
        self.assertEqual(await repository.read("test"), replacement)

    async def test_import_without_tag_rejected(self):
        session, repository = make_session(PlayerState(total_points=5))
        await session.save()
        before = await repository.read("test")
        with self.assertRaises(SaveImportError):
            await session.import_save('{"totalPoints": 1e9}')
        self.assertEqual(await repository.read("test"), before)
        self.assertEqual(session.state.total_points, 5)

    async def test_reset(self):
        session, repository = make_session(PlayerState(total_points=5, roll_count=8))
        await session.reset()
        self.assertEqual(session.state, PlayerState())
        self.assertEqual(decode(await repository.read("test")), PlayerState())

    async def test_manager_reuses_sessions_and_loads_saves(self):
        repository = InMemorySaveRepository({"alpha": encode(PlayerState(roll_count=42))})
        manager = SessionManager(repository)

        alpha = await manager.get("alpha")
        self.assertIs(await manager.get("alpha"), alpha)
        self.assertEqual(alpha.state.roll_count, 42)
        beta = await manager.get("beta")
        self.assertEqual(beta.state.roll_count, 0)
        await manager.close()


if __name__ == "__main__":
    unittest.main()
