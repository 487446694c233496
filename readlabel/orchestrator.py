"""Scan orchestration: text extraction followed by analysis."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .ai.client import AIAnalysisClient
from .errors import ExtractionError
from .models import AnalysisReport, ExtractedText
from .ocr import TextExtractor

logger = logging.getLogger(__name__)

GENERIC_ERROR = "An unexpected error occurred. Please try again."
NO_IMAGE_ERROR = "No image was captured. Please take a photo of the ingredient label."


class ScanStage(str, Enum):
    CAPTURING = "capturing"
    EXTRACTING = "extracting"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class ScanResult:
    stage: ScanStage
    progress: int
    report: AnalysisReport | None = None
    text: ExtractedText | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.stage is ScanStage.COMPLETE


ProgressCallback = Callable[[ScanStage, int], None]


class AnalysisOrchestrator:
    """Runs one scan at a time through extraction and analysis.

    Progress is reported through ``on_progress(stage, percent)``. A caller
    that moves on calls :meth:`abandon`; work already in flight is allowed to
    finish but its result is discarded and :meth:`run` returns None.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        analyzer: AIAnalysisClient,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._extractor = extractor
        self._analyzer = analyzer
        self._on_progress = on_progress
        self._stage = ScanStage.CAPTURING
        self._progress = 0
        self._active = False
        self._abandoned = False

    @property
    def stage(self) -> ScanStage:
        return self._stage

    @property
    def progress(self) -> int:
        return self._progress

    @property
    def active(self) -> bool:
        return self._active

    def abandon(self) -> None:
        """Discard the result of the scan in progress."""
        if self._active:
            logger.info("Scan abandoned at stage %s", self._stage.value)
        self._abandoned = True

    def _advance(self, stage: ScanStage, progress: int) -> None:
        self._stage = stage
        self._progress = progress
        if self._on_progress is not None:
            self._on_progress(stage, progress)

    def _fail(self, message: str, text: ExtractedText | None = None) -> ScanResult:
        self._advance(ScanStage.FAILED, self._progress)
        return ScanResult(
            stage=ScanStage.FAILED, progress=self._progress, text=text, error=message
        )

    async def run(self, image_bytes: bytes | None) -> ScanResult | None:
        """Extract and analyze one label image.

        Returns the final scan state, or None if the scan was abandoned.

        Raises:
            RuntimeError: If another scan is still running on this instance.
        """
        if self._active:
            raise RuntimeError("A scan is already in progress")
        self._active = True
        self._abandoned = False
        self._progress = 0
        self._advance(ScanStage.CAPTURING, 0)
        try:
            return await self._run(image_bytes)
        finally:
            self._active = False

    async def _run(self, image_bytes: bytes | None) -> ScanResult | None:
        if not image_bytes:
            return self._fail(NO_IMAGE_ERROR)

        self._advance(ScanStage.EXTRACTING, 10)
        try:
            extracted = await self._extractor.extract(image_bytes)
        except ExtractionError as e:
            if self._abandoned:
                return None
            logger.warning("Text extraction failed: %s", e)
            return self._fail(str(e))
        except Exception:
            logger.exception("Unexpected failure during text extraction")
            if self._abandoned:
                return None
            return self._fail(GENERIC_ERROR)

        if self._abandoned:
            logger.info("Discarding extraction result of abandoned scan")
            return None
        self._advance(ScanStage.EXTRACTING, 50)

        self._advance(ScanStage.ANALYZING, 60)
        try:
            report = await self._analyzer.analyze(extracted.clean)
        except Exception:
            logger.exception("Unexpected failure during analysis")
            if self._abandoned:
                return None
            return self._fail(GENERIC_ERROR, extracted)

        if self._abandoned:
            logger.info("Discarding analysis result of abandoned scan")
            return None
        self._advance(ScanStage.ANALYZING, 90)

        self._advance(ScanStage.COMPLETE, 100)
        return ScanResult(
            stage=ScanStage.COMPLETE, progress=100, report=report, text=extracted
        )
