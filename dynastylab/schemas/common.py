"""
Common schema models shared across the ingestion pipeline.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ScreenType(str, Enum):
    """In-game screens the pipeline can recognise."""
    SEASON_STANDINGS = "season-standings"
    TEAM_STATS = "team-stats"
    GAME_RESULT = "game-result"
    SCHEDULE = "schedule"
    ROSTER_OVERVIEW = "roster-overview"
    DEPTH_CHART = "depth-chart"
    RECRUITING_BOARD = "recruiting-board"
    COACH_INFO = "coach-info"
    TROPHY_CASE = "trophy-case"
    TOP25_RANKINGS = "top25-rankings"
    PLAYER_STATS = "player-stats"
    UNKNOWN = "unknown"


# Screens that never belong to a single team
NON_TEAM_SCREENS = {ScreenType.TOP25_RANKINGS, ScreenType.UNKNOWN}


class EventType(str, Enum):
    """Kinds of orchestrator events."""
    SCREEN_IDENTIFIED = "screen-identified"
    DATA_EXTRACTED = "data-extracted"
    DATA_ROUTED = "data-routed"
    CONTENT_TRIGGERED = "content-triggered"
    ERROR = "error"


class PipelineStage(str, Enum):
    """States of one screenshot's trip through the orchestrator."""
    IDLE = "idle"
    CLASSIFYING = "classifying"
    EXTRACTING = "extracting"
    AWAITING_REVIEW = "awaiting-review"
    ROUTING = "routing"
    TRIGGER_EVALUATION = "trigger-evaluation"
    DONE = "done"
    ERROR = "error"


class ClassificationResult(BaseModel):
    """What the classifier thinks a screenshot shows."""
    screen_type: ScreenType
    confidence: float = Field(ge=0.0, le=1.0, description="Advisory only, never gates extraction")
    detected_team: Optional[str] = None

    @field_validator("detected_team")
    @classmethod
    def _blank_team_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value or value.lower() in ("null", "none", "n/a", "unknown"):
            return None
        return value

    @model_validator(mode="after")
    def _drop_team_for_league_screens(self) -> ClassificationResult:
        if self.screen_type in NON_TEAM_SCREENS:
            self.detected_team = None
        return self

    @property
    def label(self) -> str:
        return confidence_label(self.confidence)


def confidence_label(confidence: float) -> str:
    """Reviewer-facing wording for a classification confidence."""
    if confidence >= 0.9:
        return "High Confidence"
    if confidence >= 0.7:
        return "Medium Confidence"
    return "Low Confidence"


class OrchestratorEvent(BaseModel):
    """Progress notification emitted while a screenshot is processed."""
    type: EventType
    message: str
    screen_type: Optional[ScreenType] = None
    data: Any = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ScreenshotAnalysisResult(BaseModel):
    """
    The orchestrator's output for one screenshot.

    This is what a reviewer approves or rejects. It is frozen; committing it
    routes a copy of ``extracted_data``. ``stage`` is where processing of this
    screenshot stopped: awaiting review, or done once routed.
    """
    model_config = ConfigDict(frozen=True)

    screen_type: ScreenType
    confidence: float = Field(ge=0.0, le=1.0)
    extracted_data: Any = Field(default_factory=dict)
    detected_team: Optional[str] = None
    suggested_actions: list[str] = Field(default_factory=list)
    related_screens: list[ScreenType] = Field(default_factory=list)
    triggered_content: list[str] = Field(default_factory=list)
    stage: PipelineStage = PipelineStage.DONE

    @property
    def confidence_label(self) -> str:
        return confidence_label(self.confidence)
