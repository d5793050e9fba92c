"""Application service for room occupancy."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from fermes_backend.core.errors import StoreError
from fermes_backend.core.occupancy import (
    ReconciliationResult,
    RoomCorrection,
    SectorStats,
    compute_sector_stats,
    reconcile,
)
from fermes_backend.core.settings import OccupancyThresholds
from fermes_backend.domain import Room, Worker
from fermes_backend.infrastructure import DocumentStore, utcnow_iso

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SyncReport:
    result: ReconciliationResult
    applied: list[RoomCorrection] = field(default_factory=list)
    failed: list[RoomCorrection] = field(default_factory=list)


class OccupancyService:
    """Reads worker/room snapshots and keeps cached room occupancy honest."""

    def __init__(self, store: DocumentStore, thresholds: OccupancyThresholds | None = None) -> None:
        self._store = store
        self.thresholds = thresholds or OccupancyThresholds()

    def load_workers(self, ferme_id: str | None = None) -> list[Worker]:
        filters = {"fermeId": ferme_id} if ferme_id else None
        return [Worker.from_document(doc) for doc in self._store.query("workers", filters)]

    def load_rooms(self, ferme_id: str | None = None) -> list[Room]:
        filters = {"fermeId": ferme_id} if ferme_id else None
        return [Room.from_document(doc) for doc in self._store.query("rooms", filters)]

    def reconcile(self, ferme_id: str | None = None) -> ReconciliationResult:
        return reconcile(self.load_workers(ferme_id), self.load_rooms(ferme_id), self.thresholds)

    def apply_corrections(self, corrections: list[RoomCorrection]) -> tuple[list[RoomCorrection], list[RoomCorrection]]:
        """Persist each correction independently; failures are logged and skipped."""

        applied: list[RoomCorrection] = []
        failed: list[RoomCorrection] = []
        for correction in corrections:
            update = correction.to_update()
            update["updatedAt"] = utcnow_iso()
            try:
                self._store.update_document("rooms", correction.room_id, update)
            except StoreError as exc:
                logger.error("Failed to update room %s: %s", correction.key.numero, exc)
                failed.append(correction)
                continue
            logger.info(
                "Updated room %s occupancy: %s -> %s",
                correction.key.numero,
                correction.previous_count,
                correction.occupants_actuels,
            )
            applied.append(correction)
        return applied, failed

    def sync(self, ferme_id: str | None = None) -> SyncReport:
        result = self.reconcile(ferme_id)
        if not result.corrections:
            logger.debug("Room occupancy already in sync")
            return SyncReport(result=result)
        applied, failed = self.apply_corrections(result.corrections)
        logger.info("Room occupancy sync: %d applied, %d failed", len(applied), len(failed))
        return SyncReport(result=result, applied=applied, failed=failed)

    def sector_stats(self, ferme_id: str) -> SectorStats:
        return compute_sector_stats(
            self.load_workers(ferme_id),
            self.load_rooms(ferme_id),
            thresholds=self.thresholds,
        )
