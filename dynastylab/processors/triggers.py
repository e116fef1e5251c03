"""
Content triggers - decides which editorial content an approved screenshot
warrants.

Evaluation only reads the extracted data. Producing the content is someone
else's job; this module only names the kinds that should be produced.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from dynastylab.schemas.common import ScreenType

logger = logging.getLogger(__name__)

BLOWOUT_MARGIN = 20
TOP_RANKING = 10
SPOTLIGHT_TOUCHDOWNS = 20
SPOTLIGHT_PASSING_YARDS = 3000
SPOTLIGHT_RUSHING_YARDS = 1000


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    return None


def game_margin(data: dict) -> Optional[float]:
    """Margin of victory, from the explicit field or the final score."""
    margin = _number(data.get("marginOfVictory"))
    if margin is not None:
        return margin
    score = data.get("score")
    if isinstance(score, dict):
        scored, allowed = _number(score.get("for")), _number(score.get("against"))
        if scored is not None and allowed is not None:
            return scored - allowed
    return None


class TriggerEvaluator:
    """Evaluates content triggers for one screen type's data."""

    def __init__(self):
        self._rules: dict[ScreenType, Callable[[Any], Optional[str]]] = {
            ScreenType.GAME_RESULT: self._game_recap,
            ScreenType.SEASON_STANDINGS: self._ranking_analysis,
            ScreenType.RECRUITING_BOARD: self._recruiting_update,
            ScreenType.COACH_INFO: self._hot_seat,
            ScreenType.PLAYER_STATS: self._player_spotlight,
            ScreenType.TROPHY_CASE: self._championship,
        }

    def evaluate(self, screen_type: ScreenType | str, data: Any) -> list[str]:
        """
        Content kinds triggered by ``data``.

        Args:
            screen_type: Screen the data came from
            data: Approved extraction, as plain JSON

        Returns:
            Content kinds, empty when nothing fired
        """
        rule = self._rules.get(ScreenType(screen_type))
        if rule is None or not isinstance(data, dict):
            return []

        kind = rule(data)
        if kind is None:
            return []
        logger.info(f"Content trigger fired: {kind}")
        return [kind]

    def _game_recap(self, data: dict) -> Optional[str]:
        margin = game_margin(data)
        if (margin is not None and margin > BLOWOUT_MARGIN) or data.get("upsetVictory") is True:
            return "game-recap"
        return None

    def _ranking_analysis(self, data: dict) -> Optional[str]:
        ranking = _number(data.get("ranking"))
        if ranking is not None and ranking <= TOP_RANKING:
            return "ranking-analysis"
        return None

    def _recruiting_update(self, data: dict) -> Optional[str]:
        commits = data.get("commits") or []
        five_star = data.get("fiveStarCommit") is True or any(
            isinstance(c, dict) and c.get("stars") == 5 for c in commits
        )
        return "recruiting-update" if five_star else None

    def _hot_seat(self, data: dict) -> Optional[str]:
        return "hot-seat-analysis" if data.get("hotSeat") is True else None

    def _player_spotlight(self, data: dict) -> Optional[str]:
        stats = data.get("seasonStats") or {}
        touchdowns = _number(stats.get("touchdowns")) or 0
        passing = _number(stats.get("passingYards")) or 0
        rushing = _number(stats.get("rushingYards")) or 0
        if (
            touchdowns > SPOTLIGHT_TOUCHDOWNS
            or passing > SPOTLIGHT_PASSING_YARDS
            or rushing > SPOTLIGHT_RUSHING_YARDS
        ):
            return "player-spotlight"
        return None

    def _championship(self, data: dict) -> Optional[str]:
        if data.get("championships") or data.get("bowlVictories"):
            return "championship-celebration"
        return None
