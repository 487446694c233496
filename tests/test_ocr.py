"""Tests for OCR preprocessing and the Tesseract adapter (mocked engine)."""

import asyncio
import sys
import time
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from readlabel.errors import ExtractionError
from readlabel.ocr import (
    TextExtractor,
    clean_text,
    enhance_contrast,
    preprocess,
    reduce_noise,
)


class TestCleanText:
    def test_collapses_whitespace(self):
        assert clean_text("Water,\n\n  Sugar,\tSalt") == "Water, Sugar, Salt"

    def test_removes_disallowed_characters(self):
        assert clean_text("Ingredients: Water, Sugar™ & Salt x") == "Ingredients: Water, Sugar Salt"

    def test_keeps_label_punctuation(self):
        assert clean_text("Cocoa (12%), E-471: emulsifier.") == "Cocoa (12%), E-471: emulsifier."

    def test_keeps_single_punctuation_tokens(self):
        assert clean_text("Milk , Soy ( Lecithin ) a") == "Milk , Soy ( Lecithin )"

    @pytest.mark.parametrize("value", ["", None, 5])
    def test_empty_or_invalid(self, value):
        assert clean_text(value) == ""


class TestPreprocessing:
    def test_contrast_stretch(self):
        img = np.array([[0, 128, 228, 250]], dtype=np.uint8)
        out = enhance_contrast(img)
        assert out.tolist() == pytest.approx([[0, 128, 248, 255]])

    def test_smoothing_blends_small_differences(self):
        img = np.full((3, 3), 110, dtype=np.float32)
        img[1, 1] = 100
        out = reduce_noise(img)
        mean = (8 * 110 + 100) / 9
        assert out[1, 1] == pytest.approx(100 * 0.7 + mean * 0.3)
        assert out[0, 0] == 110

    def test_smoothing_keeps_edges(self):
        img = np.full((3, 3), 200, dtype=np.float32)
        img[1, 1] = 0
        assert reduce_noise(img)[1, 1] == 0

    def test_uniform_image_unchanged(self):
        img = np.full((20, 30, 3), 90, dtype=np.uint8)
        out = preprocess(img)
        assert out.dtype == np.uint8
        assert out.shape == img.shape
        assert np.all(out == enhance_contrast(img).round().astype(np.uint8))

    def test_tiny_image(self):
        img = np.zeros((2, 2), dtype=np.uint8)
        assert preprocess(img).shape == (2, 2)


@pytest.fixture
def mock_engine():
    """Inject mock pytesseract and cv2 modules into sys.modules."""
    tess = MagicMock()
    tess.get_tesseract_version.return_value = "5.3.0"
    tess.image_to_string.return_value = "INGREDIENTS: Water, Sugar,\nTrans Fat, Salt"

    cv2 = MagicMock()
    cv2.imdecode.return_value = np.full((8, 8, 3), 200, dtype=np.uint8)
    cv2.cvtColor.side_effect = lambda img, code: img

    with patch.dict(sys.modules, {"pytesseract": tess, "cv2": cv2}):
        yield tess, cv2


class TestTextExtractor:
    @pytest.mark.asyncio
    async def test_extract(self, mock_engine):
        tess, _ = mock_engine
        extractor = TextExtractor()
        result = await extractor.extract(b"\xff\xd8\xff\xe0fake-jpeg")

        assert result.clean == "INGREDIENTS: Water, Sugar, Trans Fat, Salt"
        assert "\n" in result.raw
        _, kwargs = tess.image_to_string.call_args
        assert kwargs["lang"] == "eng"
        assert "tessedit_char_whitelist" in kwargs["config"]

    @pytest.mark.asyncio
    async def test_engine_initialized_once(self, mock_engine):
        tess, _ = mock_engine
        extractor = TextExtractor()
        assert not extractor.initialized
        await extractor.extract(b"img1")
        await extractor.extract(b"img2")
        assert extractor.initialized
        assert tess.get_tesseract_version.call_count == 1
        assert tess.image_to_string.call_count == 2

    @pytest.mark.asyncio
    async def test_custom_tesseract_cmd(self, mock_engine):
        tess, _ = mock_engine
        await TextExtractor(tesseract_cmd="/opt/tesseract").initialize()
        assert tess.pytesseract.tesseract_cmd == "/opt/tesseract"

    @pytest.mark.asyncio
    async def test_engine_start_failure_is_fatal(self, mock_engine):
        tess, _ = mock_engine
        tess.get_tesseract_version.side_effect = OSError("tesseract not found")
        with pytest.raises(ExtractionError, match="OCR initialization failed"):
            await TextExtractor().extract(b"img")

    @pytest.mark.asyncio
    async def test_short_text_rejected(self, mock_engine):
        tess, _ = mock_engine
        tess.image_to_string.return_value = "a ~ b"
        with pytest.raises(ExtractionError, match="readable text"):
            await TextExtractor().extract(b"img")

    @pytest.mark.asyncio
    async def test_recognition_failure(self, mock_engine):
        tess, _ = mock_engine
        tess.image_to_string.side_effect = RuntimeError("Tesseract process timeout")
        with pytest.raises(ExtractionError):
            await TextExtractor().extract(b"img")

    @pytest.mark.asyncio
    async def test_undecodable_image(self, mock_engine):
        _, cv2 = mock_engine
        cv2.imdecode.return_value = None
        with pytest.raises(ExtractionError, match="Failed to load image"):
            await TextExtractor().extract(b"not an image")

    @pytest.mark.asyncio
    async def test_empty_image(self, mock_engine):
        with pytest.raises(ExtractionError, match="No image"):
            await TextExtractor().extract(b"")

    @pytest.mark.asyncio
    async def test_preprocessing_runs_off_event_loop(self, mock_engine, monkeypatch):
        def slow_preprocess(image):
            time.sleep(0.3)
            return image

        monkeypatch.setattr("readlabel.ocr.tesseract.preprocess", slow_preprocess)
        extractor = TextExtractor()
        await extractor.initialize()

        gaps = []

        async def ticker():
            loop = asyncio.get_running_loop()
            last = loop.time()
            while True:
                await asyncio.sleep(0.01)
                now = loop.time()
                gaps.append(now - last)
                last = now

        task = asyncio.create_task(ticker())
        await asyncio.sleep(0)
        try:
            await extractor.extract(b"img")
        finally:
            task.cancel()

        assert gaps
        assert max(gaps) < 0.2
