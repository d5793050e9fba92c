from __future__ import annotations

import io

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from fermes_backend.application import get_ferme_service, get_occupancy_service
from fermes_backend.core.errors import NotFoundError, StoreError, ValidationError
from fermes_backend.core.schema import FermeIn, FermeUpdate
from fermes_backend.exporters.occupancy_csv import export_occupancy_csv
from fermes_backend.routes.common import to_http_error

router = APIRouter(prefix="/fermes", tags=["fermes"])


@router.get("")
async def list_fermes(search: str | None = Query(default=None)) -> dict:
    service = get_ferme_service()
    occupancy = get_occupancy_service()
    fermes = service.search(search) if search else service.list_fermes()
    items = []
    for ferme in fermes:
        entry = ferme.to_document()
        entry["stats"] = occupancy.sector_stats(ferme.id).summary()
        items.append(entry)
    return {"items": items}


@router.post("")
async def create_ferme(payload: FermeIn) -> dict:
    service = get_ferme_service()
    try:
        ferme, rooms = service.create_ferme(payload)
    except (ValidationError, StoreError) as exc:
        raise to_http_error(exc) from exc
    return {"ferme": ferme.to_document(), "rooms": [room.to_document() for room in rooms]}


@router.put("/{ferme_id}")
async def update_ferme(ferme_id: str, payload: FermeUpdate) -> dict:
    service = get_ferme_service()
    try:
        ferme = service.update_ferme(ferme_id, payload)
    except (ValidationError, StoreError) as exc:
        raise to_http_error(exc) from exc
    return ferme.to_document()


@router.delete("/{ferme_id}")
async def delete_ferme(ferme_id: str) -> dict:
    service = get_ferme_service()
    try:
        deleted_rooms = service.delete_ferme(ferme_id)
    except StoreError as exc:
        raise to_http_error(exc) from exc
    return {"id": ferme_id, "deleted_rooms": deleted_rooms}


@router.get("/{ferme_id}/stats")
async def get_ferme_stats(ferme_id: str) -> dict:
    try:
        get_ferme_service().get_ferme(ferme_id)
    except NotFoundError as exc:
        raise to_http_error(exc) from exc
    stats = get_occupancy_service().sector_stats(ferme_id)
    rooms = [
        {
            **stat.room.to_document(),
            "workersCount": stat.workers_count,
            "capacityUsed": stat.capacity_used,
            "occupancyRate": stat.occupancy_rate,
            "isOccupied": stat.is_occupied,
            "isOvercapacity": stat.is_overcapacity,
        }
        for stat in stats.room_stats
    ]
    return {"fermeId": ferme_id, "stats": stats.summary(), "rooms": rooms}


@router.post("/sync-occupancy")
async def sync_occupancy(ferme_id: str | None = Query(default=None)) -> dict:
    report = get_occupancy_service().sync(ferme_id)
    return {
        "corrections": len(report.result.corrections),
        "applied": [c.room_id for c in report.applied],
        "failed": [c.room_id for c in report.failed],
        "stats": report.result.stats.summary(),
    }


@router.get("/occupancy.csv")
async def download_occupancy_csv() -> StreamingResponse:
    result = get_occupancy_service().reconcile()
    buffer = io.StringIO()
    export_occupancy_csv(buffer, result)
    return StreamingResponse(
        iter([buffer.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="occupation_chambres.csv"'},
    )
