from __future__ import annotations

import io

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from fermes_backend.application import get_ferme_service, get_stock_ledger
from fermes_backend.core.schema import StockAddIn, TransferIn
from fermes_backend.core.stock_views import (
    TRANSFER_STATUS_FILTERS,
    available_items,
    filter_transfers,
    pending_additions,
    pending_count,
    pending_incoming_transfers,
    total_stock_summary,
)
from fermes_backend.domain import Actor, StockItem
from fermes_backend.exporters.stock_excel import export_stock_workbook, report_filename
from fermes_backend.exporters.stock_pdf import export_stock_pdf
from fermes_backend.routes.common import DOMAIN_ERRORS, current_actor, to_http_error

router = APIRouter(prefix="/stock", tags=["stock"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("")
async def list_stock(
    secteur_id: str | None = Query(default=None, alias="secteurId"),
    article: str | None = Query(default=None),
    actor: Actor = Depends(current_actor),
) -> dict:
    stocks = get_stock_ledger().list_stocks(actor, secteur_id)
    if article and article != "all":
        stocks = [stock for stock in stocks if stock.item == article]
    return {
        "items": [stock.to_document() for stock in stocks],
        "articles": sorted({stock.item for stock in stocks}),
    }


@router.get("/summary")
async def stock_summary(actor: Actor = Depends(current_actor)) -> dict:
    ledger = get_stock_ledger()
    stocks = ledger.list_stocks(actor)
    summary = total_stock_summary(stocks) if actor.is_elevated else []
    return {
        "items": [
            {"item": e.item, "unit": e.unit, "totalQuantity": e.total_quantity, "secteurs": e.secteurs}
            for e in summary
        ]
    }


@router.get("/available")
async def list_available_items(
    secteur_id: str | None = Query(default=None, alias="secteurId"),
    actor: Actor = Depends(current_actor),
) -> dict:
    source = secteur_id if actor.is_elevated else actor.ferme_id
    stocks = get_stock_ledger().list_stocks(actor, source)
    return {"items": available_items(stocks, source or "")}


@router.post("/add")
async def add_stock(payload: StockAddIn, actor: Actor = Depends(current_actor)) -> dict:
    try:
        result = get_stock_ledger().add_stock(actor, payload.secteur_id or "", payload.item, payload.quantity, payload.unit)
    except DOMAIN_ERRORS as exc:
        raise to_http_error(exc) from exc
    kind = "stock" if isinstance(result, StockItem) else "addition"
    return {"kind": kind, "item": result.to_document()}


@router.get("/transfers")
async def list_transfers(
    article: str | None = Query(default=None),
    status: str = Query(default="all"),
    date_from: str | None = Query(default=None, alias="dateFrom"),
    date_to: str | None = Query(default=None, alias="dateTo"),
    actor: Actor = Depends(current_actor),
) -> dict:
    if status not in TRANSFER_STATUS_FILTERS:
        raise HTTPException(status_code=400, detail=f"status must be one of {sorted(TRANSFER_STATUS_FILTERS)}")
    transfers = get_stock_ledger().list_transfers(actor)
    selected = filter_transfers(transfers, article, status, date_from, date_to)
    return {"items": [transfer.to_document() for transfer in selected]}


@router.post("/transfers")
async def create_transfer(payload: TransferIn, actor: Actor = Depends(current_actor)) -> dict:
    try:
        transfer = get_stock_ledger().create_transfer(
            actor,
            payload.from_secteur_id,
            payload.to_secteur_id,
            payload.item,
            payload.quantity,
            payload.unit,
        )
    except DOMAIN_ERRORS as exc:
        raise to_http_error(exc) from exc
    return transfer.to_document()


@router.post("/transfers/{transfer_id}/confirm")
async def confirm_transfer(transfer_id: str, actor: Actor = Depends(current_actor)) -> dict:
    try:
        transfer = get_stock_ledger().confirm_transfer(transfer_id, actor)
    except DOMAIN_ERRORS as exc:
        raise to_http_error(exc) from exc
    return transfer.to_document()


@router.get("/additions")
async def list_additions(actor: Actor = Depends(current_actor)) -> dict:
    additions = get_stock_ledger().list_additions(actor)
    return {"items": [addition.to_document() for addition in additions]}


@router.post("/additions/{addition_id}/confirm")
async def confirm_addition(addition_id: str, actor: Actor = Depends(current_actor)) -> dict:
    try:
        addition = get_stock_ledger().confirm_addition(addition_id, actor)
    except DOMAIN_ERRORS as exc:
        raise to_http_error(exc) from exc
    return addition.to_document()


@router.get("/pending")
async def pending_items(actor: Actor = Depends(current_actor)) -> dict:
    ledger = get_stock_ledger()
    transfers = ledger.list_transfers(actor)
    additions = ledger.list_additions(actor)
    return {
        "incomingTransfers": [t.to_document() for t in pending_incoming_transfers(transfers, actor.ferme_id)],
        "additions": [] if actor.is_elevated else [a.to_document() for a in pending_additions(additions)],
        "total": pending_count(actor, transfers, additions),
    }


@router.get("/report.xlsx")
async def download_stock_workbook(actor: Actor = Depends(current_actor)) -> StreamingResponse:
    fermes = get_ferme_service().list_fermes()
    stocks = get_stock_ledger().list_stocks(actor)
    buffer = io.BytesIO()
    export_stock_workbook(buffer, actor, stocks, fermes)
    filename = report_filename(actor, fermes)
    return StreamingResponse(
        iter([buffer.getvalue()]),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/report.pdf")
async def download_stock_pdf(actor: Actor = Depends(current_actor)) -> StreamingResponse:
    ledger = get_stock_ledger()
    buffer = io.BytesIO()
    export_stock_pdf(
        buffer,
        actor,
        ledger.list_stocks(actor),
        ledger.list_transfers(actor),
        ledger.list_additions(actor),
        get_ferme_service().list_fermes(),
    )
    return StreamingResponse(
        iter([buffer.getvalue()]),
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="rapport_stock.pdf"'},
    )
