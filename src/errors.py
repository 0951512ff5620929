"""Error taxonomy for the tax engine.

Every error carries a ``kind`` and the offending ``value`` so the transport
layer can map it to a status code without knowing engine internals.
"""

from typing import Any


class TaxEngineError(Exception):
    """Base class for all engine errors."""

    kind = "tax_engine"

    def __init__(self, message: str, value: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        """Structured form used in API error bodies."""
        value = self.value
        if value is not None and not isinstance(value, (str, int, float, bool, list)):
            value = str(value)
        return {"error": self.kind, "message": self.message, "value": value}


class ValidationError(TaxEngineError):
    """Caller input is malformed or out of range. Never retried."""

    kind = "validation"


class NotFoundError(TaxEngineError):
    """Unknown financial year."""

    kind = "not_found"


class ConfigurationError(TaxEngineError):
    """Reference data is malformed (bracket gaps, overlaps, bad rows)."""

    kind = "configuration"


class DataUnavailableError(TaxEngineError):
    """The reference data store failed or timed out."""

    kind = "data_unavailable"


class InsufficientDataError(TaxEngineError):
    """Fewer known financial years than a history request needs."""

    kind = "insufficient_data"

    def __init__(self, message: str, requested: int, available: int) -> None:
        super().__init__(message, value=requested)
        self.requested = requested
        self.available = available

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["available"] = self.available
        return body
