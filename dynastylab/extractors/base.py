"""
Base extractor interface.

The orchestrator talks to the vision stages only through this interface, so a
scripted extractor can stand in for the model in tests.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from dynastylab.extractors.images import ImageInput
from dynastylab.schemas.common import ClassificationResult, ScreenType
from dynastylab.schemas.screens import ExtractedPayload


class BaseScreenExtractor(ABC):
    """Abstract base class for screenshot classifiers/extractors."""

    async def prepare_image(self, image: ImageInput) -> ImageInput:
        """
        Resolve an image reference once, before classification.

        Uploads are read streams, so they must be turned into bytes before
        both stages look at them. The default passes the reference through.
        """
        return image

    @abstractmethod
    async def classify(self, image: ImageInput) -> ClassificationResult:
        """
        Work out which screen a screenshot shows.

        Args:
            image: Screenshot reference

        Returns:
            ClassificationResult; never raises for unreadable model output
        """
        pass

    @abstractmethod
    async def extract(
        self,
        image: ImageInput,
        screen_type: ScreenType,
        detected_team: Optional[str] = None,
    ) -> ExtractedPayload:
        """
        Extract the data for a known screen type.

        Args:
            image: Screenshot reference
            screen_type: Classification to extract for
            detected_team: Team to scope extraction to, if known

        Returns:
            Payload validated against the screen type's schema
        """
        pass
