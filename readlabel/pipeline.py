"""Construction of the analysis pipeline from configuration."""

from __future__ import annotations

from dataclasses import dataclass

from .ai import create_backend
from .ai.client import AIAnalysisClient
from .config import ReadLabelConfig
from .db import KeyValueStore, SQLiteKeyValueStore
from .ingredients import IngredientDatabase
from .ocr import TextExtractor
from .orchestrator import AnalysisOrchestrator, ProgressCallback
from .quota import QuotaTracker
from .scoring import OfflineRiskScorer


@dataclass
class Pipeline:
    """Components shared by every scan, owned by the entry point."""

    store: KeyValueStore
    db: IngredientDatabase
    quota: QuotaTracker
    extractor: TextExtractor
    analyzer: AIAnalysisClient

    def orchestrator(
        self, on_progress: ProgressCallback | None = None
    ) -> AnalysisOrchestrator:
        """Create an orchestrator for one scan session."""
        return AnalysisOrchestrator(self.extractor, self.analyzer, on_progress)

    def close(self) -> None:
        self.store.close()


def build_pipeline(
    config: ReadLabelConfig, store: KeyValueStore | None = None
) -> Pipeline:
    """Wire the pipeline components.

    Args:
        config: Loaded configuration.
        store: Storage for quota counters; defaults to the SQLite database
            named in the config.

    Raises:
        ValueError: If the configured AI backend name is unknown.
    """
    backend = create_backend(config)
    if store is None:
        store = SQLiteKeyValueStore(config.database.path)
    db = IngredientDatabase(config.database.ingredients_path or None)
    quota = QuotaTracker(
        store,
        daily_limit=config.quota.daily_limit,
        burst_limit=config.quota.burst_limit,
        burst_window=config.quota.burst_window,
        retention=config.quota.retention,
    )
    analyzer = AIAnalysisClient(
        backend,
        quota,
        OfflineRiskScorer(db),
        db,
        min_request_interval=config.ai.min_request_interval,
        timeout=config.ai.timeout,
    )
    extractor = TextExtractor(
        language=config.ocr.language,
        timeout=config.ocr.timeout,
        tesseract_cmd=config.ocr.tesseract_cmd,
    )
    return Pipeline(
        store=store, db=db, quota=quota, extractor=extractor, analyzer=analyzer
    )
