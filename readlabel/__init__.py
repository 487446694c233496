"""ReadLabel: food ingredient label analysis."""

from .ai import CompletionBackend, create_backend
from .ai.client import AIAnalysisClient
from .config import (
    AIConfig,
    DatabaseConfig,
    OCRConfig,
    QuotaConfig,
    ReadLabelConfig,
    load_config,
)
from .db import KeyValueStore, MemoryKeyValueStore, SQLiteKeyValueStore
from .errors import (
    AnalysisUnavailable,
    ConfigurationError,
    ExtractionError,
    MalformedResponse,
    NetworkError,
    QuotaExceeded,
    ReadLabelError,
)
from .ingredients import IngredientDatabase
from .models import (
    AnalysisReport,
    ExtractedText,
    IngredientDetail,
    IngredientRecord,
    RiskCategories,
    RiskCategory,
)
from .ocr import TextExtractor
from .orchestrator import AnalysisOrchestrator, ScanResult, ScanStage
from .pipeline import Pipeline, build_pipeline
from .quota import QuotaTracker
from .scoring import OfflineRiskScorer

__all__ = [
    "AIAnalysisClient",
    "AIConfig",
    "AnalysisOrchestrator",
    "AnalysisReport",
    "AnalysisUnavailable",
    "CompletionBackend",
    "ConfigurationError",
    "DatabaseConfig",
    "ExtractedText",
    "ExtractionError",
    "IngredientDatabase",
    "IngredientDetail",
    "IngredientRecord",
    "KeyValueStore",
    "MalformedResponse",
    "MemoryKeyValueStore",
    "NetworkError",
    "OCRConfig",
    "OfflineRiskScorer",
    "Pipeline",
    "QuotaConfig",
    "QuotaExceeded",
    "QuotaTracker",
    "ReadLabelConfig",
    "ReadLabelError",
    "RiskCategories",
    "RiskCategory",
    "SQLiteKeyValueStore",
    "ScanResult",
    "ScanStage",
    "TextExtractor",
    "build_pipeline",
    "create_backend",
    "load_config",
]
