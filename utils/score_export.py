"""Export utilities for saving scoring results."""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from game.board import Board, Stone
from game.scoring import PlayerScore, ScoreResult, ScoringRules

logger = logging.getLogger(__name__)


def serialize_player_score(player: PlayerScore) -> Dict[str, Any]:
    """Convert PlayerScore to JSON-serializable dict.

    Args:
        player: PlayerScore object

    Returns:
        Dictionary representation
    """
    data = player.to_dict()
    data["total"] = round(player.total, 1)
    return data


def serialize_score(result: ScoreResult) -> Dict[str, Any]:
    winner = {Stone.BLACK: "black", Stone.WHITE: "white"}.get(result.winner, "jigo")
    return {
        "black": serialize_player_score(result.black),
        "white": serialize_player_score(result.white),
        "winner": winner,
        "margin": round(result.margin, 1)
    }


def export_score_to_json(
    result: ScoreResult,
    board: Board,
    rules: ScoringRules,
    removal_string: str,
    output_path: str,
    probably_dead: Optional[str] = None
) -> bool:
    """Export a scoring result to a JSON file.

    Args:
        result: ScoreResult to save
        board: Scored board
        rules: Rules used for scoring
        removal_string: Encoded removed points
        output_path: Path to save JSON file
        probably_dead: Encoded points the estimator flagged, if any

    Returns:
        True if successful
    """
    data = {
        "game_info": {
            "width": board.width,
            "height": board.height,
            "komi": rules.komi,
            "handicap": rules.handicap,
            "scoring_date": datetime.now().isoformat()
        },
        "rules": {
            "score_stones": rules.score_stones,
            "score_prisoners": rules.score_prisoners,
            "score_territory": rules.score_territory,
            "score_territory_in_seki": rules.score_territory_in_seki
        },
        "removed": removal_string,
        "score": serialize_score(result)
    }
    if probably_dead is not None:
        data["probably_dead"] = probably_dead

    try:
        with open(output_path, 'w') as f:
            json.dump(data, f, indent=2)
        return True
    except OSError as e:
        logger.error("Error saving score: %s", e)
        return False


def import_removal_from_json(json_path: str) -> Optional[str]:
    """Read the encoded removal string back from an exported score.

    Args:
        json_path: Path to JSON file

    Returns:
        Removal string or None if failed
    """
    try:
        with open(json_path, 'r') as f:
            data = json.load(f)
        return data.get("removed", "")
    except (OSError, ValueError) as e:
        logger.error("Error loading score from JSON: %s", e)
        return None
