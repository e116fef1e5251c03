"""
Batch upload processing.

Screenshots in a batch are processed one at a time. With auto-approve on, each
one is routed as part of processing; otherwise the batch stops at review and
the approved results are committed later with ``commit_batch``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional

from dynastylab.extractors.images import ImageInput
from dynastylab.orchestrator import ScreenshotOrchestrator
from dynastylab.schemas.common import OrchestratorEvent, ScreenshotAnalysisResult

logger = logging.getLogger(__name__)

AUTO_APPROVE_KEY = "auto_approve"


class ItemStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class BatchItem:
    """One uploaded screenshot and what happened to it."""
    name: str
    image: ImageInput
    status: ItemStatus = ItemStatus.PENDING
    events: List[OrchestratorEvent] = field(default_factory=list)
    result: Optional[ScreenshotAnalysisResult] = None
    error: Optional[str] = None


@dataclass
class BatchReport:
    items: List[BatchItem]
    auto_approve: bool

    @property
    def completed(self) -> List[BatchItem]:
        return [i for i in self.items if i.status == ItemStatus.COMPLETED]

    @property
    def failed(self) -> List[BatchItem]:
        return [i for i in self.items if i.status == ItemStatus.ERROR]

    @property
    def results(self) -> List[ScreenshotAnalysisResult]:
        return [i.result for i in self.completed]

    @property
    def awaiting_review(self) -> bool:
        return not self.auto_approve and bool(self.completed)


async def process_batch(
    orchestrator: ScreenshotOrchestrator,
    items: Iterable[BatchItem],
    *,
    auto_approve: bool,
) -> BatchReport:
    """
    Process pending items in order.

    A failing item is marked ``error`` and the batch moves on. Items that are
    not pending (already processed in an earlier run) are left alone.
    """
    items = list(items)
    logger.info(f"Starting screenshot batch ({len(items)} files, auto_approve={auto_approve})")

    for position, item in enumerate(items, start=1):
        if item.status != ItemStatus.PENDING:
            continue

        logger.info(f"Processing screenshot {position}/{len(items)}: {item.name}")
        item.status = ItemStatus.PROCESSING
        item.events = []
        unsubscribe = orchestrator.subscribe(item.events.append)
        try:
            item.result = await orchestrator.process_screenshot(item.image, skip_routing=not auto_approve)
            item.status = ItemStatus.COMPLETED
        except Exception as e:
            logger.error(f"Error processing screenshot {item.name}: {e}")
            item.status = ItemStatus.ERROR
            item.error = str(e)
        finally:
            unsubscribe()

    report = BatchReport(items=items, auto_approve=auto_approve)
    logger.info(f"Batch processing complete. Processed {len(report.completed)} screenshots")
    return report


async def commit_batch(
    orchestrator: ScreenshotOrchestrator,
    results: Iterable[ScreenshotAnalysisResult | dict[str, Any]],
) -> List[List[str]]:
    """
    Route reviewed results, in order.

    Results go through their serialized form, the same shape a client sends
    back after review. Returns the content triggered by each result.

    Raises:
        RoutingError: On the first result that cannot be routed; earlier
            results stay committed
    """
    triggered = []
    for result in results:
        if isinstance(result, ScreenshotAnalysisResult):
            result = result.model_dump(mode="json")
        triggered.append(
            await orchestrator.route_extracted_data(result["screen_type"], result["extracted_data"])
        )
    logger.info(f"Committed {len(triggered)} reviewed screenshots")
    return triggered
