import random
import unittest

from game.board import Board, Stone
from game.errors import NotInitializedError, OutOfBoundsError
from game.score_estimator import ScoreEstimator, iter_removal_closure
from game.scoring import ScoringRules


COUSINS = [
    "X.X..",
    ".....",
    "..X..",
    ".....",
    "O....",
]

WALLED = [
    "X.O..",
    "..O..",
    "OOO..",
    ".....",
    "..X..",
]

MIXED = [
    "X.X.O..",
    "XX..O.X",
    "...OO..",
    ".X.....",
    "OO..X.O",
    "..O....",
    "X...XX.",
]


class StubEstimator:
    """Estimator returning fixed grids."""

    def __init__(self, grid, is_ready=True):
        self.grid = grid
        self.is_ready = is_ready
        self.calls = []

    def ready(self):
        return self.is_ready

    def estimate(self, board, color_to_move, trials, tolerance):
        self.calls.append((board, color_to_move, trials, tolerance))
        return self.grid


def make_session(rows, **kwargs):
    session = ScoreEstimator(**kwargs)
    session.init(Board.from_rows(rows))
    return session


def mask(session):
    return [row[:] for row in session.board.removed]


class TestToggleGroupRemoval(unittest.TestCase):
    def test_given_empty_point_when_clicked_then_only_its_region_toggles(self):
        session = make_session(COUSINS)
        flipped = session.toggle_group_removal(1, 1)
        self.assertEqual(len(flipped), 1)
        self.assertTrue(flipped[0].is_empty)
        for x, y in session.board.positions():
            is_stone = session.board.get_stone(x, y) != Stone.EMPTY
            self.assertEqual(session.board.is_removed(x, y), not is_stone)
        for group in session.groups.stone_groups():
            self.assertFalse(group.removed)

    def test_given_stone_group_when_clicked_then_same_color_cousins_flip_and_enemy_untouched(self):
        session = make_session(COUSINS)
        session.toggle_group_removal(0, 0)
        self.assertEqual(session.get_stone_removal_string(), "aacacc")
        self.assertFalse(session.board.is_removed(0, 4))
        self.assertFalse(session.groups.group_at(0, 4).removed)
        self.assertFalse(session.groups.group_at(1, 1).removed)

    def test_given_enemy_wall_when_clicked_then_traversal_stops_at_other_color(self):
        session = make_session(WALLED)
        flipped = session.toggle_group_removal(0, 0)
        self.assertEqual([g.points for g in flipped], [[(0, 0)]])
        self.assertTrue(session.board.is_removed(0, 0))
        self.assertFalse(session.board.is_removed(2, 4))
        self.assertFalse(session.board.is_removed(2, 0))

    def test_given_any_seed_when_toggled_twice_then_mask_restored(self):
        for x, y in [(0, 0), (1, 0), (4, 0), (1, 3), (3, 2)]:
            session = make_session(MIXED)
            before = mask(session)
            session.toggle_group_removal(x, y)
            self.assertNotEqual(mask(session), before)
            session.toggle_group_removal(x, y)
            self.assertEqual(mask(session), before)
            self.assertFalse(any(g.removed for g in session.groups))

    def test_given_shuffled_pending_order_when_toggled_then_same_result(self):
        for seed_point in [(0, 0), (4, 0), (1, 3), (2, 5)]:
            reference = make_session(MIXED)
            expected_groups = reference.toggle_group_removal(*seed_point)
            expected = mask(reference)
            for seed in range(20):
                rng = random.Random(seed)
                session = make_session(MIXED)
                flipped = session.toggle_group_removal(
                    *seed_point, choose=lambda pending: rng.randrange(len(pending)))
                self.assertEqual(mask(session), expected)
                self.assertEqual({g.id for g in flipped}, {g.id for g in expected_groups})

    def test_given_mixed_board_when_corner_group_clicked_then_cousin_through_single_point_flips(self):
        session = make_session(MIXED)
        flipped = session.toggle_group_removal(0, 0)
        self.assertGreaterEqual(len(flipped), 2)
        self.assertTrue(session.board.is_removed(2, 0))
        for group in flipped:
            self.assertEqual(group.color, Stone.BLACK)

    def test_closure_yields_seed_first(self):
        session = make_session(COUSINS)
        seed = session.groups.group_at(2, 2)
        order = list(iter_removal_closure(session.groups, seed))
        self.assertIs(order[0], seed)
        self.assertEqual(len(order), 3)

    def test_given_out_of_bounds_seed_when_toggled_then_rejected_without_mutation(self):
        session = make_session(COUSINS)
        before = mask(session)
        for x, y in [(5, 0), (0, 5), (-1, 0), (0, -1)]:
            with self.assertRaises(OutOfBoundsError):
                session.toggle_group_removal(x, y)
            with self.assertRaises(OutOfBoundsError):
                session.set_removed(x, y, True)
        self.assertEqual(mask(session), before)

    def test_given_failure_during_traversal_when_toggled_then_earlier_flips_kept(self):
        session = make_session(COUSINS)

        def explode(pending):
            raise RuntimeError("boom")

        with self.assertLogs('game.score_estimator', level='ERROR'):
            flipped = session.toggle_group_removal(0, 0, choose=explode)
        self.assertEqual(len(flipped), 1)
        self.assertTrue(session.board.is_removed(0, 0))
        self.assertFalse(session.board.is_removed(2, 0))

    def test_given_removal_callback_when_toggled_then_called_per_point(self):
        session = make_session(COUSINS)
        calls = []
        session.set_removal_callback(lambda x, y, removed: calls.append((x, y, removed)))
        session.toggle_group_removal(2, 2)
        self.assertEqual(sorted(calls), [(0, 0, True), (2, 0, True), (2, 2, True)])

    def test_given_session_without_board_when_used_then_not_initialized(self):
        session = ScoreEstimator()
        with self.assertRaises(NotInitializedError):
            session.toggle_group_removal(0, 0)
        with self.assertRaises(NotInitializedError):
            session.score()


class TestSinglePointRemoval(unittest.TestCase):
    def test_given_single_point_when_removed_then_mask_and_group_flag_follow(self):
        session = make_session(["XX...", ".....", "....."])
        session.set_removed(0, 0, True)
        group = session.groups.group_at(0, 0)
        self.assertTrue(session.board.is_removed(0, 0))
        self.assertFalse(group.removed)
        session.set_removed(1, 0, True)
        self.assertTrue(group.removed)

    def test_given_partially_removed_group_when_toggled_then_whole_group_removed(self):
        session = make_session(["XX...", ".....", "....."])
        session.set_removed(0, 0, True)
        session.toggle_group_removal(1, 0)
        self.assertTrue(session.board.is_removed(0, 0))
        self.assertTrue(session.board.is_removed(1, 0))

    def test_given_partially_removed_group_when_removed_point_clicked_then_group_revived(self):
        session = make_session(["XX...", ".....", "....."])
        session.set_removed(0, 0, True)
        session.toggle_group_removal(0, 0)
        self.assertEqual(session.get_stone_removal_string(), "")
        self.assertFalse(session.groups.group_at(1, 0).removed)

    def test_given_removed_stone_in_open_region_when_clicked_then_stone_restored(self):
        session = make_session([".x.", "...", "..O"])
        session.toggle_group_removal(1, 0)
        self.assertEqual(session.get_stone_removal_string(), "")
        self.assertEqual(session.board.get_stone(1, 0), Stone.BLACK)

    def test_given_open_region_with_removed_stone_when_empty_point_clicked_then_region_removed(self):
        session = make_session([".x.", "...", "..O"])
        session.toggle_group_removal(0, 2)
        self.assertTrue(session.board.is_removed(0, 2))
        self.assertTrue(session.board.is_removed(1, 0))

    def test_given_removed_points_when_cleared_then_callback_per_changed_point(self):
        session = make_session(COUSINS)
        session.toggle_group_removal(0, 0)
        calls = []
        session.set_removal_callback(lambda x, y, removed: calls.append((x, y, removed)))
        session.clear_removed()
        self.assertEqual(sorted(calls), [(0, 0, False), (2, 0, False), (2, 2, False)])
        self.assertEqual(session.get_stone_removal_string(), "")
        self.assertFalse(any(g.removed for g in session.groups))

    def test_given_modkey_click_when_handled_then_only_that_point_toggles(self):
        session = make_session(COUSINS)
        session.handle_click(2, 2, modkey=True)
        self.assertEqual(session.get_stone_removal_string(), "cc")
        session.handle_click(2, 2, modkey=True)
        self.assertEqual(session.get_stone_removal_string(), "")


class TestResetGroups(unittest.TestCase):
    def test_given_changed_mask_when_reset_then_segmentation_uses_current_mask(self):
        session = make_session(["X.O", "...", "..."])
        session.set_removed(0, 0, True)
        session.reset_groups()
        self.assertTrue(session.groups.group_at(0, 0).removed)
        self.assertTrue(session.board.is_removed(0, 0))

    def test_given_board_with_new_dimensions_when_reset_then_session_reinitialized(self):
        session = make_session(["X.O", "...", "..."])
        session.toggle_group_removal(0, 0)
        with self.assertLogs('game.score_estimator', level='WARNING'):
            session.reset_groups(Board(5))
        self.assertEqual((session.width, session.height), (5, 5))
        self.assertEqual(len(session.groups), 1)
        self.assertEqual(len(session.heat), 5)

    def test_given_board_with_same_dimensions_when_reset_then_board_replaced(self):
        session = make_session(["X.O", "...", "..."])
        session.reset_groups(Board.from_rows(["...", ".X.", "..."]))
        self.assertEqual(session.groups.group_at(1, 1).liberties, 4)


class TestEstimation(unittest.TestCase):
    def grid(self):
        # Left three columns black, right two white
        return [[1, 1, 1, -1, -1] for _ in range(5)]

    def test_given_estimator_not_ready_when_estimating_then_error_and_state_untouched(self):
        estimator = StubEstimator(self.grid(), is_ready=False)
        session = make_session(COUSINS, estimator=estimator)
        session.toggle_group_removal(0, 0)
        before = mask(session)
        with self.assertRaises(NotInitializedError):
            session.estimate_score()
        self.assertEqual(mask(session), before)
        self.assertEqual(estimator.calls, [])

    def test_given_ready_estimator_when_estimating_then_heat_area_and_score_applied(self):
        estimator = StubEstimator(self.grid())
        session = make_session(COUSINS, estimator=estimator, rules=ScoringRules(komi=7.5))
        updates = []
        session.set_estimation_callback(lambda: updates.append(True))
        session.estimate_score()
        self.assertEqual(updates, [True])
        self.assertEqual(session.heat[0][0], 1)
        self.assertEqual(session.area[0][4], Stone.WHITE)
        self.assertAlmostEqual(session.estimated_score, 5 - 7.5)
        self.assertEqual(session.winner, Stone.WHITE)
        self.assertAlmostEqual(session.amount, 2.5)

    def test_given_zero_trials_when_estimating_then_defaults_used(self):
        estimator = StubEstimator(self.grid())
        session = make_session(COUSINS, estimator=estimator, trials=0, tolerance=0)
        session.estimate_score()
        _, color, trials, tolerance = estimator.calls[0]
        self.assertEqual(color, Stone.BLACK)
        self.assertEqual(trials, 1000)
        self.assertEqual(tolerance, 0.25)

    def test_given_estimator_when_clicked_then_estimate_refreshed(self):
        estimator = StubEstimator(self.grid())
        session = make_session(COUSINS, estimator=estimator)
        session.handle_click(0, 0)
        self.assertEqual(len(estimator.calls), 1)
        snapshot = estimator.calls[0][0]
        self.assertTrue(snapshot.is_removed(0, 0))

    def test_given_unready_estimator_when_clicked_then_toggle_still_applies(self):
        estimator = StubEstimator(self.grid(), is_ready=False)
        session = make_session(COUSINS, estimator=estimator)
        with self.assertLogs('game.score_estimator', level='WARNING'):
            session.handle_click(0, 0)
        self.assertTrue(session.board.is_removed(0, 0))
        self.assertEqual(estimator.calls, [])

    def test_given_mismatched_grid_when_applied_then_rejected(self):
        session = make_session(COUSINS)
        with self.assertRaises(ValueError):
            session.apply_estimate([[0, 0, 0]])

    def test_given_estimate_when_listing_probably_dead_then_neutral_and_captured_points_sorted(self):
        session = make_session(["X.O", "...", "..."])
        session.apply_estimate([
            [-1, 0, -1],
            [-1, -1, -1],
            [-1, -1, -1],
        ])
        self.assertEqual(session.get_probably_dead(), "aaba")


if __name__ == '__main__':
    unittest.main()
