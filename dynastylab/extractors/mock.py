"""
Deterministic stand-in data for offline mode and failed extractions.

Every payload here fits the schema registered for its screen type, so the rest
of the pipeline (review, routing, triggers) behaves the same with or without a
reachable vision model.
"""
from __future__ import annotations

import copy
from typing import Any

from dynastylab.schemas.common import ClassificationResult, ScreenType

MOCK_CLASSIFICATION = ClassificationResult(
    screen_type=ScreenType.ROSTER_OVERVIEW,
    confidence=0.92,
    detected_team="Washington",
)

# Used when a live classification cannot be read
FALLBACK_CLASSIFICATION = ClassificationResult(
    screen_type=ScreenType.UNKNOWN,
    confidence=0.5,
    detected_team=None,
)

MOCK_EXTRACTIONS: dict[ScreenType, Any] = {
    ScreenType.SEASON_STANDINGS: {
        "teamName": "Miami",
        "conference": "ACC",
        "overallRecord": {"wins": 8, "losses": 2},
        "conferenceRecord": {"wins": 5, "losses": 1},
        "ranking": 12,
        "divisionPosition": 1,
    },
    ScreenType.TEAM_STATS: {
        "pointsPerGame": 34.2,
        "totalYardsPerGame": 452.8,
        "passingYardsPerGame": 281.5,
        "rushingYardsPerGame": 171.3,
        "pointsAllowedPerGame": 19.7,
        "turnoverMargin": 6,
        "thirdDownPercentage": 46.1,
    },
    ScreenType.GAME_RESULT: {
        "gameId": "game-mock-0001",
        "teamId": "miami",
        "opponent": "Florida State",
        "location": "Home",
        "score": {"for": 31, "against": 24},
        "result": "W",
        "marginOfVictory": 7,
        "stats": {"passingYards": 285, "rushingYards": 156, "turnovers": 1},
    },
    ScreenType.SCHEDULE: [
        {
            "gameId": "game-mock-0101",
            "week": 1,
            "opponent": "Boise State",
            "location": "Home",
            "score": {"for": 38, "against": 17},
            "result": "W",
        },
        {
            "gameId": "game-mock-0102",
            "week": 2,
            "opponent": "Michigan",
            "location": "Away",
            "score": {"for": 21, "against": 27},
            "result": "L",
        },
    ],
    ScreenType.ROSTER_OVERVIEW: [
        {
            "id": "player-mock-1",
            "name": "T.Vaasver",
            "position": "WR",
            "jerseyNumber": 3,
            "class": "SR",
            "overall": 89,
            "receptions": 255,
            "receivingYards": 4536,
        },
        {
            "id": "player-mock-2",
            "name": "J.Washington",
            "position": "HB",
            "jerseyNumber": 7,
            "class": "JR",
            "overall": 85,
            "rushingYards": 851,
        },
        {
            "id": "player-mock-3",
            "name": "R.Dillon",
            "position": "TE",
            "jerseyNumber": 38,
            "class": "SR",
            "overall": 82,
            "receptions": 369,
        },
        {
            "id": "player-mock-4",
            "name": "A.Williams",
            "position": "WR",
            "jerseyNumber": 1,
            "class": "SO",
            "overall": 78,
            "receptions": 347,
        },
    ],
    ScreenType.DEPTH_CHART: [
        {"name": "D.Mills", "position": "QB", "depthPosition": "QB1", "overall": 88},
        {"name": "K.Brooks", "position": "QB", "depthPosition": "QB2", "overall": 74},
        {"name": "J.Washington", "position": "HB", "depthPosition": "HB1", "overall": 85},
    ],
    ScreenType.RECRUITING_BOARD: {
        "commits": [
            {
                "id": "recruit-mock-1",
                "name": "Marcus Thompson",
                "position": "WR",
                "stars": 4,
                "hometown": "Orlando",
                "state": "FL",
                "status": "Committed",
            }
        ],
        "classRanking": 15,
    },
    ScreenType.COACH_INFO: {
        "coachId": "coach-1",
        "name": "Mario Cristobal",
        "wins": 24,
        "losses": 12,
        "yearsAtSchool": 3,
        "hotSeat": False,
    },
    ScreenType.TROPHY_CASE: {
        "championships": [],
        "bowlVictories": [],
        "conferenceTitles": [],
        "individualAwards": [],
    },
    ScreenType.TOP25_RANKINGS: [
        {"rank": 1, "team": "Georgia", "record": "10-0", "points": 1500},
        {"rank": 2, "team": "Michigan", "record": "10-0", "points": 1445},
        {"rank": 3, "team": "Washington", "record": "9-1", "points": 1388},
    ],
    ScreenType.PLAYER_STATS: {
        "name": "Michael Penix Jr.",
        "position": "QB",
        "jerseyNumber": 9,
        "seasonStats": {
            "passingYards": 3899,
            "touchdowns": 32,
            "completions": 276,
            "attempts": 421,
            "completionPercentage": 65.6,
            "qbRating": 158.7,
        },
        "careerStats": {"passingYards": 12000, "touchdowns": 95, "gamesPlayed": 35},
    },
    ScreenType.UNKNOWN: {},
}


def mock_extraction(screen_type: ScreenType) -> Any:
    """A fresh copy of the canned payload for ``screen_type``."""
    return copy.deepcopy(MOCK_EXTRACTIONS.get(screen_type, {}))
