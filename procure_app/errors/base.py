"""Root of the procurement exception hierarchy."""

from typing import Any, Dict, Optional


class ProcurementError(Exception):
    """Base class for every error raised by the procurement engine."""

    recoverable = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    @property
    def kind(self) -> str:
        """Short error name used in reports, e.g. ``PriceOutOfBand``."""
        name = type(self).__name__
        return name[:-5] if name.endswith("Error") else name

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for inclusion in a procurement report."""
        return {
            "type": self.kind,
            "message": self.message,
            "recoverable": self.recoverable,
            "context": dict(self.context),
        }
