"""
Claude Vision-based screenshot extractor.

This is the primary extraction engine. It asks Claude to recognise which game
screen a screenshot shows, then to read that screen's data as JSON.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Optional

import anthropic
from pydantic import ValidationError

from dynastylab.config import Settings, has_real_api_key
from dynastylab.extractors.base import BaseScreenExtractor
from dynastylab.extractors.images import ImageInput, ImageSource, load_image
from dynastylab.extractors.mock import FALLBACK_CLASSIFICATION, MOCK_CLASSIFICATION, mock_extraction
from dynastylab.extractors.parsing import parse_model_json
from dynastylab.schemas.common import ClassificationResult, ScreenType
from dynastylab.schemas.screens import ExtractedPayload, normalize_extraction

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


# =============================================================================
# PROMPTS
# =============================================================================

CLASSIFICATION_PROMPT = """Analyze this college football dynasty screenshot and identify:
1. What type of screen this is
2. What team is shown (if visible)

Possible screen types:
- season-standings: Conference standings with W-L records
- team-stats: Team statistics page
- game-result: Post-game summary screen
- schedule: Season schedule with game results
- roster-overview: Team roster listing with player stats
- depth-chart: Position depth chart
- recruiting-board: Recruiting targets and commits
- coach-info: Coaching staff information
- trophy-case: Awards and championships
- top25-rankings: National top 25 rankings (NOT team specific)
- player-stats: Individual player statistics page
- unknown: Cannot identify

Look for team indicators:
- Team name in headers or titles
- Team colors in UI
- Team logos
- Jersey numbers with team affiliation

Respond with JSON only:
{
  "screenType": "type",
  "confidence": 0.0-1.0,
  "detectedTeam": "Team Name" or null if not team-specific
}
"""

SEASON_STANDINGS_PROMPT = """Extract from this conference standings screen:
- Team name and conference
- Overall record
- Conference record
- Current ranking if visible
- Division/conference position

Return a JSON object with this structure:
{
  "teamName": "Miami",
  "conference": "ACC",
  "overallRecord": {"wins": 8, "losses": 2},
  "conferenceRecord": {"wins": 5, "losses": 1},
  "ranking": 12 or null if unranked,
  "divisionPosition": 1
}

Return ONLY valid JSON, no markdown formatting.
"""

TEAM_STATS_PROMPT = """Extract team statistics from this screen.

Return a JSON object with this structure:
{
  "pointsPerGame": 34.2,
  "totalYardsPerGame": 452.8,
  "passingYardsPerGame": 281.5,
  "rushingYardsPerGame": 171.3,
  "pointsAllowedPerGame": 19.7,
  "turnoverMargin": 6,
  "thirdDownPercentage": 46.1
}

If a stat is not shown, use null.
Return ONLY valid JSON, no markdown formatting.
"""

GAME_RESULT_PROMPT = """Extract the game result from this post-game screen.

Return a JSON object with this structure:
{
  "opponent": "Florida State",
  "location": "Home" | "Away" | "Neutral",
  "score": {"for": 31, "against": 24},
  "result": "W" or "L",
  "marginOfVictory": 7,
  "upsetVictory": true if the screen calls this an upset, otherwise false,
  "quarterScores": {"for": [7, 10, 7, 7], "against": [3, 7, 7, 7]},
  "stats": {"passingYards": 285, "rushingYards": 156, "turnovers": 1, "timeOfPossession": "31:12"}
}

"for" is always the named team's score, "against" the opponent's.
marginOfVictory is for minus against (negative for a loss).
Return ONLY valid JSON, no markdown formatting.
"""

SCHEDULE_PROMPT = """Extract schedule information from this screen.

Return a JSON array with one object per game:
[
  {
    "week": 1,
    "opponent": "Boise State",
    "location": "Home" | "Away" | "Neutral",
    "result": "W" | "L" | null if not played yet,
    "score": {"for": 38, "against": 17} or null if not played yet
  }
]

Return ONLY valid JSON, no markdown formatting.
"""

ROSTER_OVERVIEW_PROMPT = """Extract player information from this roster screen.

For the featured/highlighted player (if one is prominently shown) capture name,
jersey number, position, overall rating and the statistics shown. For the other
visible players capture name, position, jersey number and rating.

Return a JSON array with one object per player:
[
  {
    "name": "T.Vaasver",
    "position": "WR",
    "jerseyNumber": 3,
    "class": "FR" | "SO" | "JR" | "SR" | "RS",
    "overall": 89,
    "stats": {"receptions": 255, "receivingYards": 4536}
  }
]

IMPORTANT: Extract actual names and stats visible on screen. Names EXACTLY as displayed.
Return ONLY valid JSON, no markdown formatting.
"""

DEPTH_CHART_PROMPT = """Extract the depth chart from this screen.

Return a JSON array with one object per listed player, starters first:
[
  {"name": "D.Mills", "position": "QB", "depthPosition": "QB1", "overall": 88},
  {"name": "K.Brooks", "position": "QB", "depthPosition": "QB2", "overall": 74}
]

Return ONLY valid JSON, no markdown formatting.
"""

RECRUITING_BOARD_PROMPT = """Extract recruiting data from this screen.

Return a JSON object with this structure:
{
  "commits": [
    {"name": "Marcus Thompson", "position": "WR", "stars": 4, "hometown": "Orlando", "state": "FL", "status": "Committed"}
  ],
  "topTargets": [
    {"name": "Recruit Name", "position": "CB", "stars": 5, "state": "GA", "status": "Interested"}
  ],
  "classRanking": 15 or null if not shown
}

stars is an integer from 1 to 5.
Return ONLY valid JSON, no markdown formatting.
"""

COACH_INFO_PROMPT = """Extract coaching information from this screen.

Return a JSON object with this structure:
{
  "name": "Head Coach Name",
  "wins": 24,
  "losses": 12,
  "yearsAtSchool": 3,
  "contract": {"yearsRemaining": 2, "salary": "4.5M"} or null if not visible,
  "hotSeat": true if the screen shows job security as low / hot seat, otherwise false
}

Return ONLY valid JSON, no markdown formatting.
"""

TROPHY_CASE_PROMPT = """Extract achievements from this trophy case screen.

Return a JSON object with this structure:
{
  "championships": ["2023 National Championship"],
  "bowlVictories": ["2022 Orange Bowl"],
  "conferenceTitles": ["2023 ACC Championship"],
  "individualAwards": ["2023 Heisman Trophy - Player Name"]
}

Use empty arrays for categories with nothing listed.
Return ONLY valid JSON, no markdown formatting.
"""

TOP25_RANKINGS_PROMPT = """Extract the top 25 rankings from this screen.

Return a JSON array with one object per ranked team:
[
  {"rank": 1, "team": "Georgia", "record": "10-0", "points": 1500}
]

Return ONLY valid JSON, no markdown formatting.
"""

PLAYER_STATS_PROMPT = """Extract the featured player's information from this screen.

Return a JSON object with this structure:
{
  "name": "Player Name",
  "jerseyNumber": 9,
  "position": "QB",
  "overall": 91,
  "archetype": "Field General" or null,
  "seasonStats": {"passingYards": 3899, "touchdowns": 32, "rushingYards": 120},
  "careerStats": {"passingYards": 12000, "touchdowns": 95, "gamesPlayed": 35}
}

IMPORTANT: Extract the actual data visible on screen, not example data.
Return ONLY valid JSON, no markdown formatting.
"""

UNKNOWN_PROMPT = "Unable to determine extraction requirements."

# Map screen types to prompts
EXTRACTION_PROMPTS = {
    ScreenType.SEASON_STANDINGS: SEASON_STANDINGS_PROMPT,
    ScreenType.TEAM_STATS: TEAM_STATS_PROMPT,
    ScreenType.GAME_RESULT: GAME_RESULT_PROMPT,
    ScreenType.SCHEDULE: SCHEDULE_PROMPT,
    ScreenType.ROSTER_OVERVIEW: ROSTER_OVERVIEW_PROMPT,
    ScreenType.DEPTH_CHART: DEPTH_CHART_PROMPT,
    ScreenType.RECRUITING_BOARD: RECRUITING_BOARD_PROMPT,
    ScreenType.COACH_INFO: COACH_INFO_PROMPT,
    ScreenType.TROPHY_CASE: TROPHY_CASE_PROMPT,
    ScreenType.TOP25_RANKINGS: TOP25_RANKINGS_PROMPT,
    ScreenType.PLAYER_STATS: PLAYER_STATS_PROMPT,
    ScreenType.UNKNOWN: UNKNOWN_PROMPT,
}

# Screens whose data may come back as a bare JSON array
LIST_SCREENS = frozenset({
    ScreenType.SCHEDULE,
    ScreenType.ROSTER_OVERVIEW,
    ScreenType.DEPTH_CHART,
    ScreenType.TOP25_RANKINGS,
})


def build_extraction_prompt(screen_type: ScreenType, detected_team: Optional[str] = None) -> str:
    """Extraction instruction for a screen type, scoped to a team when one is known."""
    prompt = EXTRACTION_PROMPTS[screen_type]
    if detected_team:
        return f'For the team "{detected_team}", {prompt[0].lower()}{prompt[1:]}'
    return prompt


# =============================================================================
# VISION EXTRACTOR
# =============================================================================

class VisionExtractor(BaseScreenExtractor):
    """
    Claude Vision-based screenshot extractor.

    Without a usable API key the extractor runs offline: classification and
    extraction return deterministic mock data and the model is never called.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        client: Any = None,
        classify_max_tokens: int = 300,
        extract_max_tokens: int = 1000,
    ):
        """
        Initialize the Vision extractor.

        Args:
            api_key: Anthropic API key; missing or placeholder keys mean offline mode
            model: Model to use for classification and extraction
            client: Pre-built async messages client (overrides api_key)
            classify_max_tokens: Reply budget for classification
            extract_max_tokens: Reply budget for extraction
        """
        if client is not None:
            self.client = client
        elif has_real_api_key(api_key):
            if not api_key.startswith("sk-ant-"):
                logger.warning(
                    f"API key doesn't look right (should start with 'sk-ant-'). "
                    f"Got: {api_key[:10]}..."
                )
            self.client = anthropic.AsyncAnthropic(api_key=api_key)
        else:
            self.client = None
            logger.warning("No vision API key configured - running in offline mode with mock data")

        self.model = model
        self.classify_max_tokens = classify_max_tokens
        self.extract_max_tokens = extract_max_tokens
        logger.info(f"VisionExtractor initialized with model: {model} (offline={self.offline})")

    @classmethod
    def from_settings(cls, settings: Settings) -> VisionExtractor:
        return cls(
            api_key=settings.ANTHROPIC_API_KEY,
            model=settings.VISION_MODEL,
            classify_max_tokens=settings.CLASSIFY_MAX_TOKENS,
            extract_max_tokens=settings.EXTRACT_MAX_TOKENS,
        )

    @property
    def offline(self) -> bool:
        return self.client is None

    async def prepare_image(self, image: ImageInput) -> ImageInput:
        if self.offline:
            return image
        return await load_image(image)

    async def _ask(self, source: ImageSource, prompt: str, max_tokens: int) -> str:
        """Send one image plus instruction, return the reply text."""
        start = time.monotonic()
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{
                "role": "user",
                "content": [source.to_content_block(), {"type": "text", "text": prompt}],
            }],
        )
        elapsed_ms = (time.monotonic() - start) * 1000

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.info(
                f"Vision reply in {elapsed_ms:.0f}ms "
                f"({usage.input_tokens + usage.output_tokens} tokens)"
            )

        # concat text blocks only
        parts = []
        for block in getattr(response, "content", []) or []:
            if getattr(block, "type", "") == "text":
                parts.append(block.text)
        return "".join(parts).strip()

    async def classify(self, image: ImageInput) -> ClassificationResult:
        """Classify screen type using vision."""
        if self.offline:
            logger.info("Offline mode, using mock classification")
            return MOCK_CLASSIFICATION.model_copy()

        try:
            source = await load_image(image)
            reply = await self._ask(source, CLASSIFICATION_PROMPT, self.classify_max_tokens)
        except Exception as e:
            logger.error(f"Classification error: {e}")
            return FALLBACK_CLASSIFICATION.model_copy()

        logger.debug(f"Raw classification reply: {reply}")
        parsed = parse_model_json(reply)
        if parsed is None:
            logger.warning("Unparseable classification reply, using fallback")
            return FALLBACK_CLASSIFICATION.model_copy()

        try:
            confidence = parsed.get("confidence")
            confidence = 0.5 if confidence is None else min(max(float(confidence), 0.0), 1.0)
            return ClassificationResult(
                screen_type=parsed.get("screenType") or ScreenType.UNKNOWN,
                confidence=confidence,
                detected_team=parsed.get("detectedTeam"),
            )
        except (TypeError, ValueError) as e:
            logger.warning(f"Classification reply did not match schema: {e}")
            return FALLBACK_CLASSIFICATION.model_copy()

    async def extract(
        self,
        image: ImageInput,
        screen_type: ScreenType,
        detected_team: Optional[str] = None,
    ) -> ExtractedPayload:
        """Extract structured data for a classified screenshot."""
        screen_type = ScreenType(screen_type)

        if screen_type == ScreenType.UNKNOWN:
            logger.info("Unknown screen type, returning empty data")
            return normalize_extraction(ScreenType.UNKNOWN, {})

        if self.offline:
            logger.info(f"Offline mode, using mock data for {screen_type.value}")
            return self._mock(screen_type)

        prompt = build_extraction_prompt(screen_type, detected_team)
        logger.info(f"Extracting {screen_type.value} (team: {detected_team or 'No team context'})")

        try:
            source = await load_image(image)
            reply = await self._ask(source, prompt, self.extract_max_tokens)
        except Exception as e:
            logger.error(f"Extraction error: {e}")
            return self._mock(screen_type)

        logger.debug(f"Raw extraction reply: {reply[:200]}...")
        parsed = parse_model_json(reply, allow_array=screen_type in LIST_SCREENS)
        if parsed is None:
            logger.warning(f"Falling back to mock data for {screen_type.value}: unparseable reply")
            return self._mock(screen_type)

        try:
            return normalize_extraction(screen_type, parsed)
        except ValidationError as e:
            logger.warning(
                f"Falling back to mock data for {screen_type.value}: "
                f"reply did not match schema ({e.error_count()} errors)"
            )
            return self._mock(screen_type)
        except (TypeError, ValueError) as e:
            logger.warning(f"Falling back to mock data for {screen_type.value}: {e}")
            return self._mock(screen_type)

    def _mock(self, screen_type: ScreenType) -> ExtractedPayload:
        return normalize_extraction(screen_type, mock_extraction(screen_type))
