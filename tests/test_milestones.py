import unittest

from rankroller.models.player import PlayerState
from rankroller.services import milestones
from rankroller.services.cheats import CheatEdits, apply_cheats


def make_state() -> PlayerState:
    return PlayerState(
        total_points=10,
        roll_count=1200,
        collected_ranks=set(range(10)) | {14, 31},
        ascended_ranks={2: 1},
        collected_runes={0},
        legitimate_rune_roll_counts={0: 12},
        rune_roll_counts={0: 12},
    )


class MilestoneTests(unittest.TestCase):
    def test_catalogue_ids_are_unique(self):
        ids = [milestone.id for milestone in milestones.MILESTONES]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertIn("complete_cosmic", ids)
        self.assertIn("rune_rolls_5000", ids)

    def test_evaluate(self):
        met = milestones.evaluate(make_state())
        self.assertTrue(met["rolls_1000"])
        self.assertFalse(met["rolls_2500"])
        self.assertTrue(met["complete_common"])
        self.assertFalse(met["complete_uncommon"])
        self.assertTrue(met["first_epic"])
        self.assertTrue(met["first_ascension"])
        self.assertTrue(met["ten_rune_0"])
        self.assertFalse(met["ten_rune_1"])

    def test_claim_is_idempotent(self):
        state = make_state()
        self.assertTrue(milestones.claim(state, "rolls_100"))
        self.assertEqual(state.total_points, 110)
        self.assertFalse(milestones.claim(state, "rolls_100"))
        self.assertEqual(state.total_points, 110)

    def test_unmet_or_unknown_claim_rejected(self):
        state = make_state()
        self.assertFalse(milestones.claim(state, "rolls_25000"))
        self.assertFalse(milestones.claim(state, "no_such_milestone"))
        self.assertEqual(state.claimed_milestones, set())

    def test_claim_all_matches_individual_claims(self):
        batch = make_state()
        single = make_state()

        claimed = milestones.claim_all(batch)
        for milestone_id in reversed(claimed):
            self.assertTrue(milestones.claim(single, milestone_id))

        self.assertEqual(batch.claimed_milestones, single.claimed_milestones)
        self.assertEqual(batch.total_points, single.total_points)
        self.assertEqual(milestones.claim_all(batch), [])

    def test_bonus_product(self):
        claimed = {"first_common", "first_uncommon", "complete_common"}
        self.assertAlmostEqual(milestones.milestone_bonus(claimed, "points"), 1.1 * 1.1 * 1.1)
        self.assertEqual(milestones.milestone_bonus(claimed, "luck"), 1.0)
        with self.assertRaises(ValueError):
            milestones.milestone_bonus(claimed, "charisma")

    def test_unlocks_follow_claims(self):
        state = PlayerState(roll_count=150)
        self.assertFalse(milestones.has_unlock(state, milestones.SLOW_AUTO_ROLL))
        milestones.claim(state, "rolls_100")
        self.assertTrue(milestones.has_unlock(state, milestones.SLOW_AUTO_ROLL))
        self.assertFalse(milestones.has_unlock(state, milestones.FAST_AUTO_ROLL))


class CheatTests(unittest.TestCase):
    def test_cheated_runes_do_not_satisfy_rune_milestones(self):
        state = PlayerState()
        apply_cheats(state, CheatEdits(rune_roll_counts={3: 600}, rune_roll_count=600))

        self.assertEqual(state.rune_count(3), 600)
        self.assertEqual(state.legitimate_rune_count(3), 0)
        met = milestones.evaluate(state)
        self.assertFalse(met["ten_rune_3"])
        self.assertFalse(met["rune_rolls_500"])

    def test_cheats_set_plain_fields(self):
        state = PlayerState(luck_level=1)
        apply_cheats(state, CheatEdits(total_points=5e6, speed_level=4))
        self.assertEqual(state.total_points, 5e6)
        self.assertEqual(state.speed_level, 4)
        self.assertEqual(state.luck_level, 1)

    def test_bad_rune_index_changes_nothing(self):
        state = PlayerState()
        with self.assertRaises(ValueError):
            apply_cheats(state, CheatEdits(total_points=50, rune_roll_counts={12: 1}))
        self.assertEqual(state.total_points, 0)


if __name__ == "__main__":
    unittest.main()
