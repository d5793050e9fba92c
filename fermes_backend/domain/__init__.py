"""Domain layer definitions."""

from .entities import (
    GENDER_LABELS,
    Actor,
    Ferme,
    Role,
    Room,
    RoomKey,
    StockAddition,
    StockItem,
    StockTransfer,
    Worker,
    WorkflowStatus,
    gender_label,
)

__all__ = [
    "GENDER_LABELS",
    "Actor",
    "Ferme",
    "Role",
    "Room",
    "RoomKey",
    "StockAddition",
    "StockItem",
    "StockTransfer",
    "Worker",
    "WorkflowStatus",
    "gender_label",
]
