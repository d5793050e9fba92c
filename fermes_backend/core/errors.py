from __future__ import annotations


class ValidationError(Exception):
    """Raised when input is rejected before any write."""


class InvalidStateError(Exception):
    """Raised when a workflow record is not in the state an operation requires."""


class PermissionDeniedError(Exception):
    """Raised when the acting user may not touch the targeted sector."""


class InsufficientStockError(Exception):
    """Raised when the sending sector does not hold enough of an item."""

    def __init__(self, item: str, requested: int, available: int, unit: str | None = None) -> None:
        self.item = item
        self.requested = requested
        self.available = available
        self.unit = unit
        suffix = f" {unit}" if unit else ""
        super().__init__(f"Stock disponible: {available}{suffix} (demandé: {requested})")


class StoreError(Exception):
    """Raised when the document store itself fails."""


class NotFoundError(StoreError):
    """Raised when a document does not exist."""
