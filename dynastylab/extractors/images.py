"""
Image inputs for the vision model.

Screenshots arrive either as data URIs the frontend already encoded, or as raw
uploads (bytes, paths, file-like objects) that still need encoding.
"""
from __future__ import annotations

import base64
import inspect
import logging
import re
from io import BytesIO
from pathlib import Path
from typing import Any, Union

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

ImageInput = Union[str, bytes, bytearray, Path, Any]

DATA_URI_PATTERN = re.compile(r"^data:(?P<media_type>image/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)
SUPPORTED_MEDIA_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
MAX_DIMENSION = 2048


class ImageSource:
    """A base64-encoded image ready to embed in a model request."""

    def __init__(self, media_type: str, data: str):
        self.media_type = media_type
        self.data = data

    def to_content_block(self) -> dict:
        """Anthropic messages API image block."""
        return {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": self.media_type,
                "data": self.data,
            },
        }


def _image_to_base64(image: Image.Image, format: str = "PNG") -> str:
    """Convert PIL Image to base64 string."""
    buffer = BytesIO()
    image.save(buffer, format=format)
    return base64.standard_b64encode(buffer.getvalue()).decode("utf-8")


def encode_image_bytes(image_bytes: bytes) -> ImageSource:
    """Decode, normalise to RGB and downscale oversized screenshots, then PNG-encode."""
    try:
        img = Image.open(BytesIO(image_bytes))
    except UnidentifiedImageError as e:
        raise ValueError("Unreadable screenshot image") from e
    if img.mode != "RGB":
        img = img.convert("RGB")

    if img.width > MAX_DIMENSION or img.height > MAX_DIMENSION:
        ratio = min(MAX_DIMENSION / img.width, MAX_DIMENSION / img.height)
        new_size = (int(img.width * ratio), int(img.height * ratio))
        logger.debug(f"Resizing screenshot from {img.size} to {new_size}")
        img = img.resize(new_size, Image.Resampling.LANCZOS)

    return ImageSource("image/png", _image_to_base64(img))


def parse_data_uri(uri: str) -> ImageSource:
    match = DATA_URI_PATTERN.match(uri.strip())
    if not match:
        raise ValueError("Not a base64 image data URI")
    media_type = match.group("media_type")
    if media_type not in SUPPORTED_MEDIA_TYPES:
        # Re-encode anything the model API does not accept directly
        return encode_image_bytes(base64.b64decode(match.group("data")))
    return ImageSource(media_type, match.group("data"))


async def load_image(image: ImageInput) -> ImageSource:
    """
    Turn any supported screenshot reference into an ImageSource.

    Accepts a data URI, raw bytes, a filesystem path, or an object with a
    ``read()`` method (sync or async, e.g. FastAPI's UploadFile).
    """
    if isinstance(image, ImageSource):
        return image

    if isinstance(image, str) and image.startswith("data:"):
        return parse_data_uri(image)

    if isinstance(image, (bytes, bytearray)):
        return encode_image_bytes(bytes(image))

    if isinstance(image, (str, Path)):
        path = Path(image)
        if not path.is_file():
            raise FileNotFoundError(f"Screenshot not found: {path}")
        return encode_image_bytes(path.read_bytes())

    read = getattr(image, "read", None)
    if read is not None:
        content = read()
        if inspect.isawaitable(content):
            content = await content
        size_kb = len(content) / 1024
        logger.debug(f"Converted upload to bytes ({size_kb:.1f}KB)")
        return encode_image_bytes(content)

    raise TypeError(f"Unsupported image input: {type(image).__name__}")
