"""
DynastyLab API

FastAPI application for screenshot ingestion and dynasty record access.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, List, Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from dynastylab import __version__
from dynastylab.batch import AUTO_APPROVE_KEY, BatchItem, commit_batch, process_batch
from dynastylab.config import get_settings
from dynastylab.db.database import Database
from dynastylab.extractors.vision import VisionExtractor
from dynastylab.orchestrator import ScreenshotOrchestrator
from dynastylab.processors.router import RoutingError
from dynastylab.schemas.common import (
    ClassificationResult,
    OrchestratorEvent,
    ScreenshotAnalysisResult,
    ScreenType,
)
from dynastylab.stores import DynastyStores

# Configure logging
logging.basicConfig(
    level=get_settings().LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting DynastyLab API...")
    settings = get_settings()

    if settings.offline:
        logger.warning("=" * 60)
        logger.warning("ANTHROPIC_API_KEY not set - screenshots will get mock data.")
        logger.warning("  Linux/Mac:    export ANTHROPIC_API_KEY=sk-ant-api03-...")
        logger.warning("=" * 60)

    logger.info(f"Initializing database at: {settings.DATABASE_PATH}")
    app.state.db = Database(settings.DATABASE_PATH)
    await app.state.db.initialize()

    app.state.stores = DynastyStores.from_database(app.state.db)
    app.state.extractor = VisionExtractor.from_settings(settings)
    app.state.orchestrator = ScreenshotOrchestrator(app.state.extractor, app.state.stores)
    logger.info("DynastyLab API started successfully")

    yield

    # Shutdown
    logger.info("Shutting down DynastyLab API...")
    await app.state.db.close()


# =============================================================================
# FASTAPI APP
# =============================================================================

app = FastAPI(
    title="DynastyLab API",
    description="Screenshot ingestion for college football dynasty tracking",
    version=__version__,
    lifespan=lifespan,
)

allowed_origins = get_settings().ALLOWED_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class ClassifyResponse(BaseModel):
    classification: ClassificationResult
    confidence_label: str
    filename: str


class AnalyzeResponse(BaseModel):
    """Result for one screenshot plus the events emitted while processing it."""
    filename: str
    routed: bool
    result: ScreenshotAnalysisResult
    confidence_label: str
    events: list[OrchestratorEvent]


class CommitRequest(BaseModel):
    """A reviewed result sent back for committing."""
    screen_type: ScreenType
    extracted_data: Any = None


class CommitResponse(BaseModel):
    screen_type: ScreenType
    triggered_content: list[str]


class BatchItemResponse(BaseModel):
    name: str
    status: str
    result: Optional[ScreenshotAnalysisResult] = None
    error: Optional[str] = None
    events: list[OrchestratorEvent]


class BatchResponse(BaseModel):
    auto_approve: bool
    awaiting_review: bool
    completed: int
    failed: int
    items: list[BatchItemResponse]


class AutoApprovePreference(BaseModel):
    auto_approve: bool


async def _auto_approve() -> bool:
    return bool(await app.state.db.get_setting(AUTO_APPROVE_KEY, False))


def _store_or_404(collection: str):
    store = app.state.stores.by_collection(collection)
    if store is None:
        raise HTTPException(status_code=404, detail=f"Unknown collection: {collection}")
    return store


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "offline": app.state.extractor.offline}


@app.post("/screenshots/classify", response_model=ClassifyResponse)
async def classify_screenshot(file: UploadFile = File(...)):
    """
    Classify a screenshot without extracting it.

    Returns the detected screen type, confidence and team.
    """
    content = await file.read()
    filename = file.filename or "screenshot.png"
    logger.info(f"Classifying screenshot: {filename} ({len(content)} bytes)")

    extractor: VisionExtractor = app.state.extractor
    try:
        image = await extractor.prepare_image(content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    classification = await extractor.classify(image)
    return ClassifyResponse(
        classification=classification,
        confidence_label=classification.label,
        filename=filename,
    )


@app.post("/screenshots/analyze", response_model=AnalyzeResponse)
async def analyze_screenshot(
    file: UploadFile = File(...),
    skip_routing: Optional[bool] = Form(None),
):
    """
    Run one screenshot through the pipeline.

    - **file**: Screenshot image (PNG, JPEG, GIF or WebP)
    - **skip_routing**: Stop for review before anything is stored
      (default: the opposite of the auto-approve preference)
    """
    content = await file.read()
    filename = file.filename or "screenshot.png"
    if skip_routing is None:
        skip_routing = not await _auto_approve()

    logger.info(f"Processing screenshot: {filename} ({len(content)} bytes)")

    orchestrator: ScreenshotOrchestrator = app.state.orchestrator
    events: list[OrchestratorEvent] = []
    unsubscribe = orchestrator.subscribe(events.append)
    try:
        result = await orchestrator.process_screenshot(content, skip_routing=skip_routing)
    except RoutingError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ValueError as e:
        logger.error(f"Unreadable screenshot {filename}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    finally:
        unsubscribe()

    return AnalyzeResponse(
        filename=filename,
        routed=not skip_routing,
        result=result,
        confidence_label=result.confidence_label,
        events=events,
    )


@app.post("/screenshots/batch", response_model=BatchResponse)
async def analyze_batch(
    files: List[UploadFile] = File(...),
    auto_approve: Optional[bool] = Form(None),
):
    """
    Process several screenshots in upload order.

    A screenshot that fails is reported with status ``error``; the rest of
    the batch still runs.
    """
    if auto_approve is None:
        auto_approve = await _auto_approve()

    items = [
        BatchItem(name=f.filename or f"screenshot-{i}.png", image=await f.read())
        for i, f in enumerate(files, start=1)
    ]
    report = await process_batch(app.state.orchestrator, items, auto_approve=auto_approve)

    return BatchResponse(
        auto_approve=report.auto_approve,
        awaiting_review=report.awaiting_review,
        completed=len(report.completed),
        failed=len(report.failed),
        items=[
            BatchItemResponse(
                name=item.name,
                status=item.status.value,
                result=item.result,
                error=item.error,
                events=item.events,
            )
            for item in report.items
        ],
    )


@app.post("/screenshots/commit", response_model=list[CommitResponse])
async def commit_screenshots(results: list[CommitRequest]):
    """
    Commit reviewed results to the dynasty records.

    Results are routed in order; a result that does not fit its screen
    type's schema stops the commit with a 422.
    """
    try:
        triggered = await commit_batch(app.state.orchestrator, [r.model_dump() for r in results])
    except RoutingError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return [
        CommitResponse(screen_type=r.screen_type, triggered_content=content)
        for r, content in zip(results, triggered)
    ]


# =============================================================================
# PREFERENCES
# =============================================================================

@app.get("/api/preferences/auto-approve", response_model=AutoApprovePreference)
async def get_auto_approve():
    return AutoApprovePreference(auto_approve=await _auto_approve())


@app.put("/api/preferences/auto-approve", response_model=AutoApprovePreference)
async def set_auto_approve(preference: AutoApprovePreference):
    await app.state.db.set_setting(AUTO_APPROVE_KEY, preference.auto_approve)
    logger.info(f"Auto-approve set to {preference.auto_approve}")
    return preference


# =============================================================================
# RECORDS
# =============================================================================

@app.get("/api/seasons/current")
async def get_current_season():
    season = await app.state.stores.seasons.get_current()
    if season is None:
        raise HTTPException(status_code=404, detail="No current season")
    return season


@app.get("/api/{collection}")
async def list_records(collection: str):
    store = _store_or_404(collection)
    return await store.list()


@app.get("/api/{collection}/{record_id}")
async def get_record(collection: str, record_id: str):
    store = _store_or_404(collection)
    record = await store.get_by_id(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"{collection} record not found: {record_id}")
    return record


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc)},
    )


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
