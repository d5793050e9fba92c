"""Stock ledger: sector balances plus the pending/confirmed workflows."""
from __future__ import annotations

import logging
from typing import Any

from fermes_backend.core.errors import (
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    ValidationError,
)
from fermes_backend.domain import (
    Actor,
    StockAddition,
    StockItem,
    StockTransfer,
    WorkflowStatus,
)
from fermes_backend.infrastructure import SERVER_TIMESTAMP, DocumentStore, Increment, utcnow_iso

logger = logging.getLogger(__name__)


def _clean_text(value: Any, field_name: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValidationError(f"{field_name} is required")
    return text


def _positive_quantity(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError("quantity must be an integer")
    try:
        quantity = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("quantity must be an integer") from exc
    if quantity != value and not isinstance(value, str):
        raise ValidationError("quantity must be an integer")
    if quantity <= 0:
        raise ValidationError("La quantité doit être supérieure à 0")
    return quantity


def _parse_rows(entity, rows: list[dict[str, Any]]) -> list:
    parsed = []
    for row in rows:
        try:
            parsed.append(entity.from_document(row))
        except ValueError:
            logger.warning("Skipping %s %s with unknown status %r", entity.__name__, row.get("id"), row.get("status"))
    return parsed


class StockLedger:
    """Coordinates stock balances, transfers and additions."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # balances
    # ------------------------------------------------------------------
    def get_stock(self, secteur_id: str, item: str) -> StockItem | None:
        rows = self._store.query("stocks", {"secteurId": secteur_id, "item": item})
        if not rows:
            return None
        if len(rows) > 1:
            logger.warning("Duplicate stock rows for %s/%s, using %s", secteur_id, item, rows[0]["id"])
        return StockItem.from_document(rows[0])

    def available(self, secteur_id: str, item: str) -> int:
        stock = self.get_stock(secteur_id, item)
        return stock.quantity if stock else 0

    def _credit(self, secteur_id: str, item: str, quantity: int, unit: str) -> str:
        """Create the sector's row for ``item`` or increment the existing one."""

        existing = self.get_stock(secteur_id, item)
        if existing is None:
            return self._store.create_document(
                "stocks",
                {
                    "secteurId": secteur_id,
                    "item": item,
                    "quantity": quantity,
                    "unit": unit,
                    "lastUpdated": utcnow_iso(),
                },
            )
        self._store.update_document(
            "stocks",
            existing.id,
            {"quantity": Increment(quantity), "lastUpdated": utcnow_iso()},
        )
        return existing.id

    # ------------------------------------------------------------------
    # additions
    # ------------------------------------------------------------------
    def add_stock(self, actor: Actor, secteur_id: str, item: str, quantity: Any, unit: str = "piece") -> StockAddition | StockItem:
        """Add stock directly (sector admin) or propose it for approval (superadmin)."""

        item = _clean_text(item, "item")
        unit = _clean_text(unit, "unit")
        qty = _positive_quantity(quantity)

        if actor.is_elevated:
            secteur_id = _clean_text(secteur_id, "secteurId")
            addition_id = self._store.create_document(
                "stock_additions",
                {
                    "secteurId": secteur_id,
                    "item": item,
                    "quantity": qty,
                    "unit": unit,
                    "status": WorkflowStatus.PENDING.value,
                    "addedBy": actor.uid,
                    "createdAt": SERVER_TIMESTAMP,
                    "confirmedAt": None,
                },
            )
            logger.info("Pending addition %s created for %s: %s x %s", addition_id, secteur_id, qty, item)
            return self.get_addition(addition_id)

        secteur_id = secteur_id or actor.ferme_id or ""
        if not actor.administers(secteur_id):
            raise PermissionDeniedError("stock can only be added to your own sector")
        stock_id = self._credit(secteur_id, item, qty, unit)
        logger.info("Added %s x %s to %s", qty, item, secteur_id)
        return StockItem.from_document(self._store.get_document("stocks", stock_id) or {})

    def get_addition(self, addition_id: str) -> StockAddition:
        doc = self._store.get_document("stock_additions", addition_id)
        if doc is None:
            raise NotFoundError(f"addition not found: {addition_id}")
        try:
            return StockAddition.from_document(doc)
        except ValueError as exc:
            raise InvalidStateError(f"addition {addition_id} has an unknown status: {doc.get('status')}") from exc

    def confirm_addition(self, addition: StockAddition | str, actor: Actor | None = None) -> StockAddition:
        addition_id = addition if isinstance(addition, str) else addition.id
        current = self.get_addition(addition_id)
        if not current.status.can_transition_to(WorkflowStatus.CONFIRMED):
            raise InvalidStateError(f"addition {addition_id} is already {current.status.value}")
        if actor is not None and not actor.administers(current.secteur_id):
            raise PermissionDeniedError("only the receiving sector can confirm this addition")

        try:
            with self._store.transaction():
                self._store.update_document(
                    "stock_additions",
                    addition_id,
                    {"status": WorkflowStatus.CONFIRMED.value, "confirmedAt": SERVER_TIMESTAMP},
                )
                self._credit(current.secteur_id, current.item, current.quantity, current.unit)
        except StoreError:
            logger.exception("Error confirming addition %s", addition_id)
            raise
        logger.info("Addition %s confirmed: %s x %s to %s", addition_id, current.quantity, current.item, current.secteur_id)
        return self.get_addition(addition_id)

    # ------------------------------------------------------------------
    # transfers
    # ------------------------------------------------------------------
    def create_transfer(
        self,
        actor: Actor,
        from_secteur_id: str | None,
        to_secteur_id: str,
        item: str,
        quantity: Any,
        unit: str = "piece",
    ) -> StockTransfer:
        item = _clean_text(item, "item")
        unit = _clean_text(unit, "unit")
        to_secteur_id = _clean_text(to_secteur_id, "toSecteurId")
        if actor.is_elevated:
            sender = _clean_text(from_secteur_id, "fromSecteurId")
        else:
            sender = _clean_text(actor.ferme_id, "fromSecteurId")
            if from_secteur_id and from_secteur_id != sender:
                raise PermissionDeniedError("transfers can only be sent from your own sector")

        if sender == to_secteur_id:
            raise ValidationError("Vous ne pouvez pas transférer vers le même secteur")
        qty = _positive_quantity(quantity)

        available = self.available(sender, item)
        if available < qty:
            raise InsufficientStockError(item, qty, available, unit)

        transfer_id = self._store.create_document(
            "stock_transfers",
            {
                "fromSecteurId": sender,
                "toSecteurId": to_secteur_id,
                "item": item,
                "quantity": qty,
                "unit": unit,
                "status": WorkflowStatus.PENDING.value,
                "createdAt": SERVER_TIMESTAMP,
                "confirmedAt": None,
            },
        )
        logger.info("Transfer %s created: %s x %s from %s to %s", transfer_id, qty, item, sender, to_secteur_id)
        return self.get_transfer(transfer_id)

    def get_transfer(self, transfer_id: str) -> StockTransfer:
        doc = self._store.get_document("stock_transfers", transfer_id)
        if doc is None:
            raise NotFoundError(f"transfer not found: {transfer_id}")
        try:
            return StockTransfer.from_document(doc)
        except ValueError as exc:
            raise InvalidStateError(f"transfer {transfer_id} has an unknown status: {doc.get('status')}") from exc

    def confirm_transfer(self, transfer: StockTransfer | str, actor: Actor | None = None) -> StockTransfer:
        """Debit the sender and credit the receiver of a pending transfer."""

        transfer_id = transfer if isinstance(transfer, str) else transfer.id
        current = self.get_transfer(transfer_id)
        if not current.status.can_transition_to(WorkflowStatus.CONFIRMED):
            raise InvalidStateError(f"transfer {transfer_id} is already {current.status.value}")
        if actor is not None and not actor.administers(current.to_secteur_id):
            raise PermissionDeniedError("only the receiving sector can confirm this transfer")

        stage = "status"
        try:
            with self._store.transaction():
                self._store.update_document(
                    "stock_transfers",
                    transfer_id,
                    {"status": WorkflowStatus.CONFIRMED.value, "confirmedAt": SERVER_TIMESTAMP},
                )

                stage = "debit"
                sender = self.get_stock(current.from_secteur_id, current.item)
                if sender is None:
                    logger.warning(
                        "Sender stock row missing for %s/%s, transfer %s confirmed without debit",
                        current.from_secteur_id,
                        current.item,
                        transfer_id,
                    )
                else:
                    if sender.quantity < current.quantity:
                        logger.warning(
                            "Transfer %s drives %s/%s negative (%s - %s)",
                            transfer_id,
                            current.from_secteur_id,
                            current.item,
                            sender.quantity,
                            current.quantity,
                        )
                    self._store.update_document(
                        "stocks",
                        sender.id,
                        {"quantity": Increment(-current.quantity), "lastUpdated": utcnow_iso()},
                    )

                stage = "credit"
                self._credit(current.to_secteur_id, current.item, current.quantity, current.unit)
        except StoreError:
            logger.exception("Error confirming transfer %s at stage %s, changes rolled back", transfer_id, stage)
            raise

        logger.info(
            "Transfer %s confirmed: %s x %s from %s to %s",
            transfer_id,
            current.quantity,
            current.item,
            current.from_secteur_id,
            current.to_secteur_id,
        )
        return self.get_transfer(transfer_id)

    # ------------------------------------------------------------------
    # scoped listings
    # ------------------------------------------------------------------
    def list_stocks(self, actor: Actor, secteur_id: str | None = None) -> list[StockItem]:
        if actor.is_elevated:
            filters = {"secteurId": secteur_id} if secteur_id else None
        else:
            filters = {"secteurId": actor.ferme_id or ""}
        rows = self._store.query("stocks", filters)
        return sorted((StockItem.from_document(row) for row in rows), key=lambda s: (s.secteur_id, s.item))

    def list_transfers(self, actor: Actor) -> list[StockTransfer]:
        if actor.is_elevated:
            rows = self._store.query("stock_transfers")
        else:
            ferme_id = actor.ferme_id or ""
            incoming = self._store.query("stock_transfers", {"toSecteurId": ferme_id})
            outgoing = self._store.query("stock_transfers", {"fromSecteurId": ferme_id})
            rows = list({row["id"]: row for row in incoming + outgoing}.values())
        transfers = _parse_rows(StockTransfer, rows)
        transfers.sort(key=lambda t: str(t.created_at or ""), reverse=True)
        return transfers

    def list_additions(self, actor: Actor) -> list[StockAddition]:
        if actor.is_elevated:
            rows = self._store.query("stock_additions", {"addedBy": actor.uid})
        else:
            rows = self._store.query(
                "stock_additions",
                {"secteurId": actor.ferme_id or "", "status": WorkflowStatus.PENDING.value},
            )
        additions = _parse_rows(StockAddition, rows)
        additions.sort(key=lambda a: str(a.created_at or ""), reverse=True)
        return additions
