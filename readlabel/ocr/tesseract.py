"""Tesseract OCR adapter for ingredient labels."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

import numpy as np

from ..errors import ExtractionError
from ..models import ExtractedText
from .preprocessing import preprocess

logger = logging.getLogger(__name__)

# Characters expected on ingredient labels
WHITELIST = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789.,()%/-: "

MIN_TEXT_LENGTH = 5

_KEPT_SINGLE_CHARS = {"(", ")", ",", "."}

UNREADABLE_MESSAGE = (
    "Could not extract readable text from the image. "
    "Please ensure the label is clearly visible and well-lit."
)


def clean_text(raw: str) -> str:
    """Normalize OCR output to the characters that matter for ingredients."""
    if not raw or not isinstance(raw, str):
        return ""
    text = re.sub(r"\s+", " ", raw)
    text = re.sub(r"[^\w\s.,()%\-:]", "", text, flags=re.ASCII)
    # Single characters are mostly OCR noise
    words = [w for w in text.split() if len(w) > 1 or w in _KEPT_SINGLE_CHARS]
    return " ".join(words)


def decode_image(data: bytes) -> np.ndarray:
    """Decode JPEG/PNG bytes into an RGB array."""
    try:
        import cv2
    except ImportError:
        raise ExtractionError(
            "opencv-python is required: pip install opencv-python"
        ) from None

    if not data:
        raise ExtractionError("No image data was provided.")
    image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    if image is None:
        raise ExtractionError("Failed to load image for preprocessing.")
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


class TextExtractor:
    """Extract cleaned label text from image bytes.

    The Tesseract engine is located once, on first use, and reused for every
    later scan. There is no secondary OCR path: if the engine cannot start,
    extraction fails with :class:`ExtractionError`.
    """

    def __init__(
        self,
        language: str = "eng",
        timeout: float = 30.0,
        tesseract_cmd: str = "",
    ) -> None:
        self._language = language
        self._timeout = timeout
        self._tesseract_cmd = tesseract_cmd
        self._engine: Any = None
        self._init_lock = asyncio.Lock()
        self._config = f'--oem 3 --psm 3 -c tessedit_char_whitelist="{WHITELIST}"'

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    async def initialize(self) -> Any:
        """Start the OCR engine if needed. Safe to call repeatedly."""
        if self._engine is not None:
            return self._engine
        async with self._init_lock:
            if self._engine is None:
                self._engine = await asyncio.to_thread(self._start_engine)
        return self._engine

    def _start_engine(self) -> Any:
        logger.info("Initializing Tesseract OCR engine...")
        try:
            import pytesseract
        except ImportError:
            raise ExtractionError(
                "OCR initialization failed: pytesseract is required "
                "(pip install pytesseract)"
            ) from None

        if self._tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd
        try:
            version = pytesseract.get_tesseract_version()
        except Exception as e:
            logger.error("Failed to start Tesseract: %s", e)
            raise ExtractionError(
                "OCR initialization failed. Please check that Tesseract is installed."
            ) from e

        logger.info("Tesseract OCR engine %s ready", version)
        return pytesseract

    def _prepare(self, image_bytes: bytes) -> np.ndarray:
        return preprocess(decode_image(image_bytes))

    async def extract(self, image_bytes: bytes) -> ExtractedText:
        """Run OCR on an image and return raw and cleaned text.

        Raises:
            ExtractionError: If the engine cannot start, the image cannot be
                decoded, recognition fails, or fewer than five characters of
                usable text remain after cleaning.
        """
        engine = await self.initialize()
        processed = await asyncio.to_thread(self._prepare, image_bytes)

        logger.info("Starting OCR text extraction...")
        try:
            raw = await asyncio.to_thread(
                engine.image_to_string,
                processed,
                lang=self._language,
                config=self._config,
                timeout=self._timeout,
            )
        except Exception as e:
            logger.error("OCR recognition failed: %s", e)
            raise ExtractionError(UNREADABLE_MESSAGE) from e

        clean = clean_text(raw)
        if len(clean) < MIN_TEXT_LENGTH:
            raise ExtractionError(UNREADABLE_MESSAGE)

        logger.debug("OCR extraction completed: %s...", clean[:100])
        return ExtractedText(raw=raw, clean=clean)
