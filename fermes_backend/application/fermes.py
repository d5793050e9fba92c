"""Sector, room and worker management."""
from __future__ import annotations

import logging
from typing import Any

from fermes_backend.core.errors import NotFoundError, ValidationError
from fermes_backend.core.schema import (
    WORKER_FIELD_ALIASES,
    ChamberConfig,
    FermeIn,
    FermeUpdate,
    WorkerIn,
    WorkerUpdate,
)
from fermes_backend.domain import Ferme, Room, Worker
from fermes_backend.infrastructure import DocumentStore

logger = logging.getLogger(__name__)


def plan_chambers(ferme_id: str, config: ChamberConfig) -> list[dict[str, Any]]:
    """Room documents to create for a new sector."""

    if config.chambres_hommes + config.chambres_femmes == 0:
        raise ValidationError("Veuillez spécifier au moins une chambre (hommes ou femmes).")
    if config.chambres_hommes > 0 and config.capacite_hommes <= 0:
        raise ValidationError("Veuillez spécifier une capacité valide pour les chambres hommes.")
    if config.chambres_femmes > 0 and config.capacite_femmes <= 0:
        raise ValidationError("Veuillez spécifier une capacité valide pour les chambres femmes.")

    plan: list[dict[str, Any]] = []
    for genre, count, start, capacity in (
        ("hommes", config.chambres_hommes, config.start_number_hommes, config.capacite_hommes),
        ("femmes", config.chambres_femmes, config.start_number_femmes, config.capacite_femmes),
    ):
        for offset in range(count):
            plan.append(
                {
                    "numero": str(start + offset),
                    "fermeId": ferme_id,
                    "genre": genre,
                    "capaciteTotale": capacity,
                    "occupantsActuels": 0,
                    "listeOccupants": [],
                }
            )
    return plan


class FermeService:
    """Coordinates sector use cases."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def list_fermes(self) -> list[Ferme]:
        fermes = [Ferme.from_document(doc) for doc in self._store.query("fermes")]
        return sorted(fermes, key=lambda ferme: ferme.nom.lower())

    def get_ferme(self, ferme_id: str) -> Ferme:
        doc = self._store.get_document("fermes", ferme_id)
        if doc is None:
            raise NotFoundError(f"ferme not found: {ferme_id}")
        return Ferme.from_document(doc)

    def search(self, term: str) -> list[Ferme]:
        keyword = term.strip().lower()
        return [ferme for ferme in self.list_fermes() if keyword in ferme.nom.lower()]

    def create_ferme(self, payload: FermeIn) -> tuple[Ferme, list[Room]]:
        config = payload.chambers or ChamberConfig()
        if config.create_chambers:
            # validate before the sector exists so a bad config leaves nothing behind
            plan_chambers("", config)
            total_chambres = config.chambres_hommes + config.chambres_femmes
            total_ouvriers = (
                config.chambres_hommes * config.capacite_hommes
                + config.chambres_femmes * config.capacite_femmes
            )
        else:
            total_chambres = payload.total_chambres
            total_ouvriers = payload.total_ouvriers

        with self._store.transaction():
            ferme_id = self._store.create_document(
                "fermes",
                {
                    "nom": payload.nom,
                    "totalChambres": total_chambres,
                    "totalOuvriers": total_ouvriers,
                    "admins": list(payload.admins),
                },
            )
            room_ids = []
            if config.create_chambers:
                room_ids = [self._store.create_document("rooms", room) for room in plan_chambers(ferme_id, config)]

        logger.info("Created ferme %s (%s) with %d rooms", payload.nom, ferme_id, len(room_ids))
        rooms = [Room.from_document(self._store.get_document("rooms", room_id) or {}) for room_id in room_ids]
        return self.get_ferme(ferme_id), rooms

    def update_ferme(self, ferme_id: str, payload: FermeUpdate) -> Ferme:
        self.get_ferme(ferme_id)
        mapping = {
            "nom": "nom",
            "total_chambres": "totalChambres",
            "total_ouvriers": "totalOuvriers",
            "admins": "admins",
        }
        updates = {mapping[key]: value for key, value in payload.model_dump(exclude_none=True).items()}
        if not updates:
            raise ValidationError("no valid updates provided")
        self._store.update_document("fermes", ferme_id, updates)
        return self.get_ferme(ferme_id)

    def delete_ferme(self, ferme_id: str) -> int:
        """Delete a sector and every room it owns; return the number of rooms removed."""

        ferme = self.get_ferme(ferme_id)
        rooms = self._store.query("rooms", {"fermeId": ferme_id})
        logger.info("Starting cascading delete for ferme %s (%s): %d rooms", ferme.nom, ferme_id, len(rooms))
        with self._store.transaction():
            for room in rooms:
                self._store.delete_document("rooms", room["id"])
            self._store.delete_document("fermes", ferme_id)
        logger.info("Deleted ferme %s and %d rooms", ferme.nom, len(rooms))
        return len(rooms)

    def list_rooms(self, ferme_id: str | None = None, genre: str | None = None) -> list[Room]:
        filters: dict[str, Any] = {}
        if ferme_id:
            filters["fermeId"] = ferme_id
        if genre:
            filters["genre"] = genre
        rooms = [Room.from_document(doc) for doc in self._store.query("rooms", filters)]
        return sorted(rooms, key=lambda room: (room.ferme_id, room.genre, room.numero))


class WorkerService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def list_workers(self, ferme_id: str | None = None, statut: str | None = None) -> list[dict[str, Any]]:
        filters: dict[str, Any] = {}
        if ferme_id:
            filters["fermeId"] = ferme_id
        if statut:
            filters["statut"] = statut
        return self._store.query("workers", filters)

    def get_worker(self, worker_id: str) -> dict[str, Any]:
        doc = self._store.get_document("workers", worker_id)
        if doc is None:
            raise NotFoundError(f"worker not found: {worker_id}")
        return doc

    def create_worker(self, payload: WorkerIn) -> dict[str, Any]:
        if self._store.get_document("fermes", payload.ferme_id) is None:
            raise ValidationError(f"unknown ferme: {payload.ferme_id}")
        data = {
            WORKER_FIELD_ALIASES.get(key, key): value
            for key, value in payload.model_dump(exclude_none=True).items()
        }
        data["chambre"] = str(data.get("chambre") or "").strip()
        self._check_room(payload.ferme_id, data["chambre"], payload.sexe)
        worker_id = self._store.create_document("workers", data)
        return self.get_worker(worker_id)

    def update_worker(self, worker_id: str, payload: WorkerUpdate) -> dict[str, Any]:
        current = Worker.from_document(self.get_worker(worker_id))
        updates = {
            WORKER_FIELD_ALIASES.get(key, key): value
            for key, value in payload.model_dump(exclude_none=True).items()
        }
        if not updates:
            raise ValidationError("no valid updates provided")
        if "chambre" in updates:
            updates["chambre"] = str(updates["chambre"]).strip()
        self._check_room(current.ferme_id, updates.get("chambre", current.chambre), updates.get("sexe", current.sexe))
        self._store.update_document("workers", worker_id, updates)
        return self.get_worker(worker_id)

    def _check_room(self, ferme_id: str, chambre: str, sexe: str) -> None:
        if not chambre:
            return
        genre = "hommes" if sexe == "homme" else "femmes"
        if not self._store.query("rooms", {"fermeId": ferme_id, "numero": chambre, "genre": genre}):
            raise ValidationError(f"room {chambre} ({genre}) does not exist in this ferme")
