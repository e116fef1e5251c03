"""
Screenshot orchestrator.

Drives one screenshot through classification, extraction and (unless the
caller wants to review first) routing and content-trigger evaluation, telling
subscribers about each step as it happens.
"""
from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Callable, Optional

from dynastylab.extractors.base import BaseScreenExtractor
from dynastylab.extractors.images import ImageInput
from dynastylab.processors.router import DataRouter
from dynastylab.processors.triggers import TriggerEvaluator
from dynastylab.schemas.common import (
    EventType,
    OrchestratorEvent,
    PipelineStage,
    ScreenshotAnalysisResult,
    ScreenType,
)
from dynastylab.schemas.screens import ExtractedPayload
from dynastylab.stores import DynastyStores

logger = logging.getLogger(__name__)

EventCallback = Callable[[OrchestratorEvent], None]

SUGGESTED_ACTIONS: dict[ScreenType, list[str]] = {
    ScreenType.SEASON_STANDINGS: [
        "Upload team stats for complete season overview",
        "Add recent game results for trend analysis",
    ],
    ScreenType.GAME_RESULT: [
        "Upload season schedule to track all games",
        "Add player stats for MVP analysis",
    ],
    ScreenType.ROSTER_OVERVIEW: [
        "Upload depth chart for position analysis",
        "Add recruiting board to track pipeline",
    ],
    ScreenType.RECRUITING_BOARD: [
        "Upload team needs analysis",
        "Add current roster for position gaps",
    ],
    ScreenType.COACH_INFO: [
        "Upload season record for contract evaluation",
        "Add historical records for legacy tracking",
    ],
    ScreenType.SCHEDULE: [
        "Upload individual game results for details",
        "Add team stats for performance trends",
    ],
    ScreenType.DEPTH_CHART: [
        "Upload roster overview for ratings",
        "Add recruiting targets for future depth",
    ],
    ScreenType.TEAM_STATS: [
        "Upload game results to match stats",
        "Add opponent stats for comparisons",
    ],
    ScreenType.TROPHY_CASE: [
        "Upload season standings for context",
        "Add historical records for legacy",
    ],
    ScreenType.UNKNOWN: [
        "Try a clearer screenshot",
        "Ensure UI elements are visible",
    ],
}

RELATED_SCREENS: dict[ScreenType, list[ScreenType]] = {
    ScreenType.SEASON_STANDINGS: [ScreenType.TEAM_STATS, ScreenType.SCHEDULE, ScreenType.TROPHY_CASE],
    ScreenType.GAME_RESULT: [ScreenType.SCHEDULE, ScreenType.TEAM_STATS, ScreenType.ROSTER_OVERVIEW],
    ScreenType.ROSTER_OVERVIEW: [ScreenType.DEPTH_CHART, ScreenType.RECRUITING_BOARD],
    ScreenType.RECRUITING_BOARD: [ScreenType.ROSTER_OVERVIEW, ScreenType.DEPTH_CHART],
    ScreenType.COACH_INFO: [ScreenType.SEASON_STANDINGS, ScreenType.TROPHY_CASE],
    ScreenType.SCHEDULE: [ScreenType.GAME_RESULT, ScreenType.SEASON_STANDINGS],
    ScreenType.DEPTH_CHART: [ScreenType.ROSTER_OVERVIEW, ScreenType.RECRUITING_BOARD],
    ScreenType.TEAM_STATS: [ScreenType.SEASON_STANDINGS, ScreenType.GAME_RESULT],
    ScreenType.TROPHY_CASE: [ScreenType.SEASON_STANDINGS, ScreenType.COACH_INFO],
    ScreenType.UNKNOWN: [],
}


def suggested_actions(screen_type: ScreenType) -> list[str]:
    return list(SUGGESTED_ACTIONS.get(ScreenType(screen_type), []))


def related_screens(screen_type: ScreenType) -> list[ScreenType]:
    return list(RELATED_SCREENS.get(ScreenType(screen_type), []))


class EventStream:
    """
    Queue-backed subscription to orchestrator events.

    Subscribes on construction, so nothing emitted after ``events()`` returns
    is missed. When the consumer falls ``maxsize`` events behind, the oldest
    undelivered event is dropped.
    """

    _CLOSED = object()

    def __init__(self, orchestrator: ScreenshotOrchestrator, maxsize: int = 100):
        # Unbounded so the end-of-stream marker never evicts an event
        self._queue: asyncio.Queue = asyncio.Queue()
        self._maxsize = maxsize
        self._closed = False
        self._unsubscribe = orchestrator.subscribe(self._put)

    def _put(self, item: Any):
        if self._queue.qsize() >= self._maxsize:
            dropped = self._queue.get_nowait()
            logger.warning(f"Event stream full, dropping {getattr(dropped, 'type', dropped)}")
        self._queue.put_nowait(item)

    def close(self):
        """Stop receiving events; already-queued events can still be drained."""
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        self._queue.put_nowait(self._CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> OrchestratorEvent:
        item = await self._queue.get()
        if item is self._CLOSED:
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> EventStream:
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()


class ScreenshotOrchestrator:
    """
    Coordinates the screenshot ingestion pipeline.

    Subscribers are called synchronously, in subscription order, as each event
    is emitted. Late subscribers get no replay.

    ``stage`` follows the most recent transition of whichever call moved it
    last, so it only describes a single screenshot when calls are not run
    concurrently. Each result carries its own final ``stage``.
    """

    def __init__(
        self,
        extractor: BaseScreenExtractor,
        stores: DynastyStores,
        *,
        router: Optional[DataRouter] = None,
        triggers: Optional[TriggerEvaluator] = None,
    ):
        self.extractor = extractor
        self.stores = stores
        self.router = router or DataRouter(stores)
        self.triggers = triggers or TriggerEvaluator()
        self.stage = PipelineStage.IDLE
        self._subscribers: list[EventCallback] = []

    # =========================================================================
    # EVENTS
    # =========================================================================

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Register ``callback`` for future events; returns its unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def events(self, maxsize: int = 100) -> EventStream:
        """Async-iterable subscription; close it (or leave its ``async with``) to stop."""
        return EventStream(self, maxsize=maxsize)

    def _emit(
        self,
        event_type: EventType,
        message: str,
        screen_type: Optional[ScreenType] = None,
        data: Any = None,
    ):
        event = OrchestratorEvent(type=event_type, message=message, screen_type=screen_type, data=data)
        # Copy so a callback that unsubscribes does not skip its neighbour
        for callback in list(self._subscribers):
            callback(event)

    def _set_stage(self, stage: PipelineStage):
        self.stage = stage
        logger.debug(f"Pipeline stage: {stage.value}")

    # =========================================================================
    # PIPELINE
    # =========================================================================

    async def process_screenshot(
        self,
        image: ImageInput,
        skip_routing: bool = False,
    ) -> ScreenshotAnalysisResult:
        """
        Classify and extract a screenshot, then route it unless ``skip_routing``.

        Args:
            image: Screenshot reference (bytes, path, data URI or upload)
            skip_routing: Stop after extraction so a reviewer can approve first

        Returns:
            ScreenshotAnalysisResult for review or display

        Raises:
            Whatever a stage raised, after an ``error`` event has been emitted
        """
        logger.info(f"Starting screenshot processing (skip_routing={skip_routing})")

        try:
            image = await self.extractor.prepare_image(image)

            self._set_stage(PipelineStage.CLASSIFYING)
            classification = await self.extractor.classify(image)
            screen_type = classification.screen_type
            logger.info(
                f"Screen identified: {screen_type.value} "
                f"({classification.confidence * 100:.1f}%, team: {classification.detected_team or 'Not detected'})"
            )
            self._emit(
                EventType.SCREEN_IDENTIFIED,
                f"Identified as {screen_type.value} screen",
                screen_type=screen_type,
            )

            self._set_stage(PipelineStage.EXTRACTING)
            payload = await self.extractor.extract(image, screen_type, classification.detected_team)
            extracted = payload.to_data()
            team_note = f" for {classification.detected_team}" if classification.detected_team else ""
            self._emit(
                EventType.DATA_EXTRACTED,
                f"Extracted data from {screen_type.value}{team_note}",
                screen_type=screen_type,
                data=copy.deepcopy(extracted),
            )

            triggered: list[str] = []
            if skip_routing:
                logger.info("Skipping data routing (review mode)")
                final_stage = PipelineStage.AWAITING_REVIEW
            else:
                triggered = await self._route_and_trigger(screen_type, payload)
                final_stage = PipelineStage.DONE
            self._set_stage(final_stage)

            result = ScreenshotAnalysisResult(
                screen_type=screen_type,
                confidence=classification.confidence,
                extracted_data=extracted,
                detected_team=classification.detected_team,
                suggested_actions=suggested_actions(screen_type),
                related_screens=related_screens(screen_type),
                triggered_content=triggered,
                stage=final_stage,
            )
            logger.info(f"Processing complete: {screen_type.value} ({result.confidence_label})")
            return result

        except Exception as e:
            logger.error(f"Error processing screenshot: {e}")
            self._set_stage(PipelineStage.ERROR)
            self._emit(EventType.ERROR, f"Error processing screenshot: {e}")
            raise

    async def route_extracted_data(self, screen_type: ScreenType | str, data: Any) -> list[str]:
        """
        Commit approved data: route it to the stores, then evaluate triggers.

        Returns:
            Content kinds triggered by the data

        Raises:
            RoutingError: If the data does not fit the screen type's schema
        """
        screen_type = ScreenType(screen_type)
        try:
            payload = self.router.normalize(screen_type, data)
            triggered = await self._route_and_trigger(screen_type, payload)
        except Exception as e:
            logger.error(f"Error routing {screen_type.value} data: {e}")
            self._set_stage(PipelineStage.ERROR)
            self._emit(EventType.ERROR, f"Error routing data: {e}", screen_type=screen_type)
            raise
        self._set_stage(PipelineStage.DONE)
        return triggered

    async def _route_and_trigger(self, screen_type: ScreenType, payload: ExtractedPayload) -> list[str]:
        self._set_stage(PipelineStage.ROUTING)
        summary = await self.router.route(screen_type, payload)
        self._emit(
            EventType.DATA_ROUTED,
            "Data routed to appropriate stores",
            screen_type=screen_type,
            data={"inserted": summary.inserted, "updated": summary.updated},
        )

        self._set_stage(PipelineStage.TRIGGER_EVALUATION)
        triggered = self.triggers.evaluate(screen_type, payload.to_data())
        if triggered:
            logger.info(f"Content generation queued: {triggered}")
            self._emit(
                EventType.CONTENT_TRIGGERED,
                f"Content generation triggered: {', '.join(triggered)}",
                screen_type=screen_type,
                data=list(triggered),
            )
        return triggered
