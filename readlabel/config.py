"""TOML configuration loader."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class GeminiConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"


@dataclass
class ClaudeConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class AIConfig:
    backend: str = "gemini"
    min_request_interval: float = 2.0
    timeout: float = 30.0
    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)


@dataclass
class QuotaConfig:
    daily_limit: int = 1500
    burst_limit: int = 10
    burst_window: float = 60.0
    retention: float = 3600.0


@dataclass
class OCRConfig:
    language: str = "eng"
    timeout: float = 30.0
    tesseract_cmd: str = ""


@dataclass
class DatabaseConfig:
    path: str = "~/.config/readlabel/readlabel.db"
    ingredients_path: str = ""


@dataclass
class ReadLabelConfig:
    ai: AIConfig = field(default_factory=AIConfig)
    quota: QuotaConfig = field(default_factory=QuotaConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def load_config(path: str | Path | None = None) -> ReadLabelConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys and the daily request limit can be overridden via environment
    variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    ai = raw.get("ai", {})
    qta = raw.get("quota", {})
    ocr = raw.get("ocr", {})
    dbs = raw.get("database", {})

    gemini_cfg = ai.get("gemini", {})
    claude_cfg = ai.get("claude", {})

    # Resolve API keys: config file → environment variable
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )

    daily_limit = qta.get("daily_limit", 1500)
    env_limit = os.environ.get("READLABEL_MAX_DAILY_REQUESTS", "")
    if env_limit.strip().isdigit():
        daily_limit = int(env_limit)

    return ReadLabelConfig(
        ai=AIConfig(
            backend=ai.get("backend", "gemini"),
            min_request_interval=ai.get("min_request_interval", 2.0),
            timeout=ai.get("timeout", 30.0),
            gemini=GeminiConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.0-flash"),
            ),
            claude=ClaudeConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
        ),
        quota=QuotaConfig(
            daily_limit=daily_limit,
            burst_limit=qta.get("burst_limit", 10),
            burst_window=qta.get("burst_window", 60.0),
            retention=qta.get("retention", 3600.0),
        ),
        ocr=OCRConfig(
            language=ocr.get("language", "eng"),
            timeout=ocr.get("timeout", 30.0),
            tesseract_cmd=ocr.get("tesseract_cmd", ""),
        ),
        database=DatabaseConfig(
            path=dbs.get("path", "~/.config/readlabel/readlabel.db"),
            ingredients_path=dbs.get("ingredients_path", ""),
        ),
    )
