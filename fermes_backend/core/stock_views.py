from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Iterable

from fermes_backend.domain import Actor, StockAddition, StockItem, StockTransfer, WorkflowStatus

TRANSFER_STATUS_FILTERS = {"all", WorkflowStatus.PENDING.value, WorkflowStatus.CONFIRMED.value}


@dataclass(slots=True)
class ItemTotal:
    item: str
    unit: str
    total_quantity: int
    secteurs: list[str]


def total_stock_summary(stocks: Iterable[StockItem]) -> list[ItemTotal]:
    """Total quantity per (item, unit) across sectors."""

    totals: dict[tuple[str, str], ItemTotal] = {}
    for stock in stocks:
        key = (stock.item, stock.unit)
        entry = totals.get(key)
        if entry is None:
            entry = totals[key] = ItemTotal(item=stock.item, unit=stock.unit, total_quantity=0, secteurs=[])
        entry.total_quantity += stock.quantity
        if stock.secteur_id not in entry.secteurs:
            entry.secteurs.append(stock.secteur_id)
    return list(totals.values())


def available_items(stocks: Iterable[StockItem], secteur_id: str) -> list[dict[str, Any]]:
    return [
        {"item": stock.item, "unit": stock.unit, "available": stock.quantity}
        for stock in stocks
        if stock.secteur_id == secteur_id and stock.quantity > 0
    ]


def _as_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def filter_transfers(
    transfers: Iterable[StockTransfer],
    article: str | None = None,
    status: str = "all",
    date_from: date | str | None = None,
    date_to: date | str | None = None,
) -> list[StockTransfer]:
    """Filter by item substring, status and an inclusive creation-date range."""

    keyword = (article or "").strip().lower()
    start = _as_datetime(date_from)
    end = _as_datetime(date_to)
    if end is not None:
        end = end.replace(hour=23, minute=59, second=59, microsecond=999999)

    selected: list[StockTransfer] = []
    for transfer in transfers:
        if keyword and keyword not in transfer.item.lower():
            continue
        if status and status != "all" and transfer.status.value != status:
            continue
        created = _as_datetime(transfer.created_at)
        if created is not None:
            if start is not None and created < start:
                continue
            if end is not None and created > end:
                continue
        selected.append(transfer)
    return selected


def pending_incoming_transfers(transfers: Iterable[StockTransfer], ferme_id: str | None) -> list[StockTransfer]:
    return [t for t in transfers if t.status == WorkflowStatus.PENDING and ferme_id and t.to_secteur_id == ferme_id]


def pending_additions(additions: Iterable[StockAddition]) -> list[StockAddition]:
    return [a for a in additions if a.status == WorkflowStatus.PENDING]


def pending_count(actor: Actor, transfers: Iterable[StockTransfer], additions: Iterable[StockAddition]) -> int:
    incoming = len(pending_incoming_transfers(transfers, actor.ferme_id))
    if actor.is_elevated:
        return incoming
    return incoming + len(pending_additions(additions))
