import asyncio
import unittest
from unittest import mock

from fastapi.testclient import TestClient

from rankroller.config import settings
from rankroller.main import app
from rankroller.models.player import PlayerState
from rankroller.repositories import InMemorySaveRepository
from rankroller.services.save_codec import decode, encode
from rankroller.services.session import SessionManager
from rankroller.state import set_session_manager_provider


async def no_sleep(seconds):
    await asyncio.sleep(0)


class GameApiTests(unittest.TestCase):
    def setUp(self):
        self.repository = InMemorySaveRepository(
            {"rich": encode(PlayerState(total_points=50_000, collected_ranks={20}, roll_count=150))}
        )
        manager = SessionManager(self.repository, scheduler_options={"sleep": no_sleep})
        set_session_manager_provider(lambda: manager)
        # Lifespan is not entered, so no MongoDB connection is attempted.
        self.client = TestClient(app)

    def test_healthcheck(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_fresh_game_view(self):
        response = self.client.get("/api/game/new")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["slot"], "new")
        self.assertEqual(body["bonuses"]["bulk_count"], 1)
        self.assertFalse(body["rune_altar_open"])
        self.assertEqual(body["auto_rolling"], {"rank": False, "rune": False})
        luck = next(item for item in body["upgrades"] if item["key"] == "luck")
        self.assertEqual(luck["cost"], 100)
        self.assertFalse(luck["affordable"])

    def test_roll(self):
        response = self.client.post("/api/game/new/roll")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["samples"], 1)
        self.assertTrue(body["new_highest"])
        self.assertEqual(body["total_points"], body["points_gained"])

        state = decode(self.repository._store["new"])
        self.assertEqual(state.roll_count, 1)

    def test_rune_roll_blocked_on_fresh_game(self):
        response = self.client.post("/api/game/new/runes/roll")
        self.assertEqual(response.status_code, 400)
        self.assertIn("altar", response.json()["detail"])

    def test_rune_roll(self):
        response = self.client.post("/api/game/rich/runes/roll")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["cost"], 1000)
        self.assertEqual(response.json()["total_points"], 49_000)

    def test_upgrades(self):
        self.assertEqual(self.client.post("/api/game/rich/upgrades/teleport").status_code, 404)
        self.assertEqual(self.client.post("/api/game/new/upgrades/luck").status_code, 400)

        response = self.client.post("/api/game/rich/upgrades/luck")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["state"]["luck_level"], 1)

    def test_milestones(self):
        listing = self.client.get("/api/game/rich/milestones").json()
        rolls_100 = next(item for item in listing if item["id"] == "rolls_100")
        self.assertTrue(rolls_100["met"])
        self.assertFalse(rolls_100["claimed"])

        response = self.client.post("/api/game/rich/milestones/rolls_100/claim")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total_points"], 50_100)
        again = self.client.post("/api/game/rich/milestones/rolls_100/claim")
        self.assertEqual(again.status_code, 400)
        missing = self.client.post("/api/game/rich/milestones/nope/claim")
        self.assertEqual(missing.status_code, 404)

        batch = self.client.post("/api/game/rich/milestones/claim")
        self.assertEqual(batch.status_code, 200)
        self.assertNotIn("rolls_100", batch.json()["claimed"])

    def test_ascend(self):
        self.assertEqual(self.client.post("/api/game/new/ranks/4/ascend").status_code, 400)
        self.assertEqual(self.client.post("/api/game/new/ranks/100/ascend").status_code, 404)
        response = self.client.post("/api/game/new/ranks/ascend")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["tiers_gained"], 0)

    def test_prestige_unavailable(self):
        self.assertEqual(self.client.post("/api/game/new/prestige/roller").status_code, 400)
        self.assertEqual(self.client.post("/api/game/new/prestige/rune").status_code, 400)

    def test_auto_roll_locked(self):
        response = self.client.post("/api/game/new/auto-roll", json={"catalog": "rank", "enabled": True})
        self.assertEqual(response.status_code, 400)
        response = self.client.post("/api/game/new/auto-roll", json={"catalog": "rank", "enabled": False})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["running"])

    def test_export_import(self):
        exported = self.client.get("/api/game/rich/export").json()["save"]
        self.assertTrue(exported.startswith("RRSAVE2:"))

        rejected = self.client.post("/api/game/new/import", json={"save": "hello"})
        self.assertEqual(rejected.status_code, 400)

        response = self.client.post("/api/game/new/import", json={"save": exported})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["state"]["total_points"], 50_000)

    def test_reset_requires_confirmation(self):
        self.assertEqual(self.client.post("/api/game/rich/reset", json={"confirm": "yes"}).status_code, 400)
        response = self.client.post("/api/game/rich/reset", json={"confirm": "RESET"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["state"]["total_points"], 0)

    def test_cheats_hidden_unless_enabled(self):
        payload = {"total_points": 123}
        self.assertEqual(self.client.post("/api/game/new/cheats", json=payload).status_code, 404)
        with mock.patch.object(settings, "enable_cheats", True):
            response = self.client.post("/api/game/new/cheats", json=payload)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["state"]["total_points"], 123)


class CatalogApiTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(app)

    def test_ranks_with_luck(self):
        ranks = self.client.get("/api/catalog/ranks", params={"luck": 10}).json()
        self.assertEqual(len(ranks), 100)
        self.assertGreater(ranks[99]["effective_probability"], ranks[99]["probability"])

    def test_runes_unlocked_by_collection(self):
        runes = self.client.get("/api/catalog/runes", params={"collected": [50]}).json()
        unlocked = [rune["index"] for rune in runes if rune["unlocked"]]
        self.assertEqual(unlocked, [0, 1, 2, 5])


if __name__ == "__main__":
    unittest.main()
