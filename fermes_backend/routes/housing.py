from __future__ import annotations

from fastapi import APIRouter, Query

from fermes_backend.application import get_ferme_service, get_worker_service
from fermes_backend.core.errors import StoreError, ValidationError
from fermes_backend.core.schema import WorkerIn, WorkerUpdate
from fermes_backend.routes.common import to_http_error

router = APIRouter(tags=["housing"])


@router.get("/workers")
async def list_workers(
    ferme_id: str | None = Query(default=None, alias="fermeId"),
    statut: str | None = Query(default=None),
) -> dict:
    return {"items": get_worker_service().list_workers(ferme_id, statut)}


@router.post("/workers")
async def create_worker(payload: WorkerIn) -> dict:
    try:
        return get_worker_service().create_worker(payload)
    except (ValidationError, StoreError) as exc:
        raise to_http_error(exc) from exc


@router.put("/workers/{worker_id}")
async def update_worker(worker_id: str, payload: WorkerUpdate) -> dict:
    try:
        return get_worker_service().update_worker(worker_id, payload)
    except (ValidationError, StoreError) as exc:
        raise to_http_error(exc) from exc


@router.get("/rooms")
async def list_rooms(
    ferme_id: str | None = Query(default=None, alias="fermeId"),
    genre: str | None = Query(default=None),
) -> dict:
    rooms = get_ferme_service().list_rooms(ferme_id, genre)
    return {"items": [room.to_document() for room in rooms]}
