#!/usr/bin/env python3
"""Go Score Estimator - Main Entry Point."""

import argparse
import logging
import sys
import traceback
from typing import List, Optional

from game.board import Board, Stone
from game.score_estimator import ScoreEstimator
from game.scoring import ScoreResult, ScoringRules
from katago.engine import KataGoEngine
from katago.estimator import KataGoOwnershipEstimator
from sgf.coords import decode_moves
from utils.config import Config
from utils.score_export import export_score_to_json, import_removal_from_json


def _edit(kind: str):
    """Argument type tagging a point with the edit to apply to it."""
    def parse(point: str):
        return kind, point
    parse.__name__ = kind
    return parse


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Mark dead stones on a finished Go position and score it.")
    parser.add_argument("board_file",
                        help="ASCII board: X/O stones, x/o removed stones, '.' empty")
    parser.add_argument("--config", default="config.json", help="Path to config file")
    parser.add_argument("--ruleset", choices=["chinese", "japanese"],
                        help="Scoring ruleset (overrides the config's scoring section)")
    parser.add_argument("--komi", type=float, help="Komi")
    parser.add_argument("--handicap", type=int, help="Handicap stones")
    parser.add_argument("--to-move", choices=["B", "W"], default="B", help="Player to move")
    parser.add_argument("--toggle", dest="edits", action="append", type=_edit("toggle"), metavar="POINT",
                        help="Toggle the group at a point and its same-colored neighbors (e.g. 'cd')")
    parser.add_argument("--remove", dest="edits", action="append", type=_edit("remove"), metavar="POINT",
                        help="Toggle a single point (e.g. 'cd')")
    parser.add_argument("--resume", metavar="JSON",
                        help="Reapply the removed points from a previous export")
    parser.add_argument("--estimate", action="store_true",
                        help="Run the KataGo ownership estimate")
    parser.add_argument("--json", metavar="PATH", help="Export the result to JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.set_defaults(edits=[])
    return parser.parse_args(argv)


def load_board(path: str) -> Board:
    """Read an ASCII board diagram from a file."""
    with open(path, 'r', encoding='utf-8') as f:
        return Board.from_rows(f.read().splitlines())


def build_rules(args: argparse.Namespace, config: Config) -> ScoringRules:
    if args.ruleset:
        rules = ScoringRules.for_ruleset(args.ruleset)
    else:
        rules = config.get_scoring_rules()
    if args.komi is not None:
        rules.komi = args.komi
    if args.handicap is not None:
        rules.handicap = args.handicap
    return rules


def run_estimate(session: ScoreEstimator, config: Config) -> bool:
    """Start KataGo, estimate ownership for the session and stop it again.

    Returns:
        True if an estimate was applied
    """
    if not config.is_katago_configured():
        print("KataGo is not configured; set its paths in the config file", file=sys.stderr)
        return False

    engine = KataGoEngine(
        config.get_katago_executable(),
        config.get_katago_config(),
        config.get_katago_model(),
        config.get_analysis_timeout()
    )
    if not engine.start():
        print("Failed to start KataGo", file=sys.stderr)
        return False

    try:
        if not engine.wait_until_ready():
            print("KataGo did not become ready", file=sys.stderr)
            return False
        session.estimator = KataGoOwnershipEstimator(
            engine, komi=session.rules.komi, rules=config.get_katago_rules())
        session.estimate_score()
        return True
    finally:
        engine.stop()


def print_score(result: ScoreResult) -> None:
    for name, player in (("Black", result.black), ("White", result.white)):
        print(f"{name}: {player.total:.1f} (stones {player.stones}, territory {player.territory}, "
              f"prisoners {player.prisoners}, komi {player.komi}, handicap {player.handicap})")
    if result.winner == Stone.EMPTY:
        print("Result: jigo")
    else:
        winner = "B" if result.winner == Stone.BLACK else "W"
        print(f"Result: {winner}+{result.margin:.1f}")


def run(args: argparse.Namespace) -> int:
    config = Config(args.config)
    rules = build_rules(args, config)

    session = ScoreEstimator(rules=rules, trials=config.get_trials(), tolerance=config.get_tolerance())
    color_to_move = Stone.WHITE if args.to_move == "W" else Stone.BLACK
    session.init(load_board(args.board_file), color_to_move)

    if args.resume:
        removal = import_removal_from_json(args.resume)
        if removal is None:
            return 1
        for x, y in decode_moves(removal):
            session.set_removed(x, y, True)
        session.reset_groups()

    for kind, token in args.edits:
        for x, y in decode_moves(token):
            if kind == "toggle":
                session.toggle_group_removal(x, y)
            else:
                session.set_removed(x, y, not session.board.is_removed(x, y))

    probably_dead = None
    if args.estimate and run_estimate(session, config):
        probably_dead = session.get_probably_dead()
        winner = "B" if session.winner == Stone.BLACK else "W"
        print(f"Estimate: {winner}+{session.amount:.1f}")
        print(f"Probably dead: {probably_dead}")

    result = session.score()
    print(session.board)
    print(f"Removed: {session.get_stone_removal_string()}")
    print_score(result)

    if args.json:
        if not export_score_to_json(result, session.board, rules,
                                    session.get_stone_removal_string(), args.json, probably_dead):
            return 1
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Run the Go Score Estimator."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    try:
        sys.exit(run(args))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(0)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
