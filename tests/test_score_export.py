import json
import os
import tempfile
import unittest

from game.board import Board
from game.score_estimator import ScoreEstimator
from game.scoring import ScoringRules
from utils.score_export import export_score_to_json, import_removal_from_json, serialize_score


class TestScoreExport(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.session = ScoreEstimator(rules=ScoringRules(komi=0.5))
        self.session.init(Board.from_rows([
            ".X.O.",
            ".X.O.",
            ".XxO.",
        ]))

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_given_result_when_serialized_then_winner_and_margin(self):
        data = serialize_score(self.session.score())
        self.assertEqual(data["winner"], "white")
        self.assertEqual(data["margin"], 0.5)
        self.assertEqual(data["black"]["stones"], 3)

    def test_given_result_when_exported_then_json_round_trips_removal(self):
        path = os.path.join(self.tmpdir.name, "score.json")
        result = self.session.score()
        removal = self.session.get_stone_removal_string()
        self.assertTrue(export_score_to_json(result, self.session.board, self.session.rules,
                                             removal, path, probably_dead="aa"))
        with open(path) as f:
            data = json.load(f)
        self.assertEqual(data["game_info"]["width"], 5)
        self.assertEqual(data["removed"], "cc")
        self.assertEqual(data["probably_dead"], "aa")
        self.assertEqual(import_removal_from_json(path), "cc")

    def test_given_unwritable_path_when_exported_then_false(self):
        path = os.path.join(self.tmpdir.name, "missing", "score.json")
        with self.assertLogs('utils.score_export', level='ERROR'):
            ok = export_score_to_json(self.session.score(), self.session.board,
                                      self.session.rules, "", path)
        self.assertFalse(ok)

    def test_given_missing_file_when_imported_then_none(self):
        with self.assertLogs('utils.score_export', level='ERROR'):
            self.assertIsNone(import_removal_from_json(os.path.join(self.tmpdir.name, "nope.json")))


if __name__ == '__main__':
    unittest.main()
