"""Application services."""

from fermes_backend.core.settings import load_settings
from fermes_backend.infrastructure import DocumentStore, InMemoryDocumentStore

from .fermes import FermeService, WorkerService
from .ledger import StockLedger
from .occupancy import OccupancyService, SyncReport

_store = InMemoryDocumentStore()
_ferme_service = FermeService(_store)
_worker_service = WorkerService(_store)
_ledger = StockLedger(_store)
_occupancy_service = OccupancyService(_store, load_settings().thresholds)


def get_store() -> DocumentStore:
    """Return the document store shared by the process."""

    return _store


def get_ferme_service() -> FermeService:
    return _ferme_service


def get_worker_service() -> WorkerService:
    return _worker_service


def get_stock_ledger() -> StockLedger:
    return _ledger


def get_occupancy_service() -> OccupancyService:
    return _occupancy_service


def reset_state() -> None:
    """Reset the in-memory store (used in tests)."""

    _store.reset()


__all__ = [
    "FermeService",
    "OccupancyService",
    "StockLedger",
    "SyncReport",
    "WorkerService",
    "get_ferme_service",
    "get_occupancy_service",
    "get_stock_ledger",
    "get_store",
    "get_worker_service",
    "reset_state",
]
