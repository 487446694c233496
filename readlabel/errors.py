"""Error taxonomy for the label analysis pipeline."""

from __future__ import annotations


class ReadLabelError(Exception):
    """Base class for all pipeline errors."""


class ExtractionError(ReadLabelError):
    """OCR could not produce usable text. Fatal for the scan."""


class AnalysisUnavailable(ReadLabelError):
    """The AI path cannot produce a result; the offline scorer takes over."""

    reason = "unavailable"


class QuotaExceeded(AnalysisUnavailable):
    reason = "quota_exceeded"


class MalformedResponse(AnalysisUnavailable):
    reason = "malformed_response"


class ConfigurationError(AnalysisUnavailable):
    reason = "configuration"


class NetworkError(AnalysisUnavailable):
    reason = "network"


_QUOTA_HINTS = ("quota", "limit", "429", "resource exhausted", "resource_exhausted")
_AUTH_HINTS = ("api key", "api_key", "auth", "permission", "401", "403")


def classify_api_error(exc: BaseException) -> AnalysisUnavailable:
    """Map an SDK exception onto the soft error taxonomy by its message."""
    message = str(exc).lower()
    if any(hint in message for hint in _QUOTA_HINTS):
        return QuotaExceeded(f"AI service rejected the request: {exc}")
    if any(hint in message for hint in _AUTH_HINTS):
        return ConfigurationError(f"AI service refused credentials: {exc}")
    return NetworkError(f"AI service request failed: {exc}")
