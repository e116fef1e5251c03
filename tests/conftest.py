import asyncio
from io import BytesIO
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from PIL import Image

from dynastylab.config import get_settings
from dynastylab.db.database import Database
from dynastylab.extractors.base import BaseScreenExtractor
from dynastylab.schemas.common import ClassificationResult, ScreenType
from dynastylab.schemas.screens import normalize_extraction
from dynastylab.stores import DynastyStores


class FakeMessages:
    """Stand-in for ``AsyncAnthropic().messages``: records calls, replays scripted text."""

    def __init__(self, replies: List[Any]) -> None:
        self.replies = list(replies)
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if not self.replies:
            raise AssertionError("Vision model called more often than scripted")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(
            content=[SimpleNamespace(type="text", text=reply)],
            usage=SimpleNamespace(input_tokens=100, output_tokens=20),
        )


class FakeVisionClient:
    def __init__(self, *replies: Any) -> None:
        self.messages = FakeMessages(list(replies))

    @property
    def calls(self) -> List[Dict[str, Any]]:
        return self.messages.calls

    def prompt(self, index: int = 0) -> str:
        return self.calls[index]["messages"][0]["content"][1]["text"]


class ScriptedExtractor(BaseScreenExtractor):
    """Extractor that answers from a table keyed by image, no model involved."""

    def __init__(self, screens: Dict[Any, Any], detected_team: Optional[str] = "Miami") -> None:
        self.screens = screens
        self.detected_team = detected_team
        self.calls: List[str] = []

    def _lookup(self, image: Any):
        entry = self.screens[image]
        if isinstance(entry, Exception):
            raise entry
        return entry

    async def classify(self, image):
        self.calls.append("classify")
        screen_type, _ = self._lookup(image)
        return ClassificationResult(
            screen_type=screen_type,
            confidence=0.95,
            detected_team=self.detected_team,
        )

    async def extract(self, image, screen_type, detected_team=None):
        self.calls.append("extract")
        _, raw = self._lookup(image)
        return normalize_extraction(screen_type, raw)


@pytest.fixture
def fake_client():
    return FakeVisionClient


@pytest.fixture
def scripted_extractor():
    return ScriptedExtractor


@pytest.fixture
def png_bytes() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (8, 8), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "dynasty.db")


@pytest.fixture
def with_stores(db_path):
    """
    Run an async scenario against a fresh set of stores.

    Each call opens the database in its own event loop and closes it after,
    so calling twice also checks that records survive a reopen.
    """

    def run(scenario):
        async def main():
            db = Database(db_path)
            await db.initialize()
            try:
                return await scenario(DynastyStores.from_database(db))
            finally:
                await db.close()

        return asyncio.run(main())

    return run


@pytest.fixture
def offline_env(monkeypatch, db_path):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.setenv("DATABASE_PATH", db_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
