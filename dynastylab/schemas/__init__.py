"""
Schemas for classification results, orchestrator events and per-screen
extracted data.
"""
from dynastylab.schemas.common import (
    ScreenType,
    EventType,
    PipelineStage,
    ClassificationResult,
    OrchestratorEvent,
    ScreenshotAnalysisResult,
    confidence_label,
)
from dynastylab.schemas.screens import (
    SCREEN_SCHEMAS,
    ExtractedPayload,
    normalize_extraction,
)

__all__ = [
    "ScreenType",
    "EventType",
    "PipelineStage",
    "ClassificationResult",
    "OrchestratorEvent",
    "ScreenshotAnalysisResult",
    "confidence_label",
    "SCREEN_SCHEMAS",
    "ExtractedPayload",
    "normalize_extraction",
]
