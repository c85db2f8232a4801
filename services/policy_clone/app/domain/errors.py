"""Engine error types."""
from __future__ import annotations

from typing import Any


class PolicyDocumentError(ValueError):
    """Raised when a policy document cannot be decoded.

    Seen on malformed caller input and, fatally, when a document no longer
    decodes after identifier remapping.
    """

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


__all__ = ["PolicyDocumentError"]
