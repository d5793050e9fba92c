"""Domain entities for sectors, housing and stock."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple


class WorkflowStatus(str, Enum):
    """Two-phase state of stock transfers and additions."""

    PENDING = "pending"
    CONFIRMED = "confirmed"

    def can_transition_to(self, target: "WorkflowStatus") -> bool:
        return (self, target) in _ALLOWED_TRANSITIONS


_ALLOWED_TRANSITIONS = {(WorkflowStatus.PENDING, WorkflowStatus.CONFIRMED)}


class Role(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    USER = "user"


GENDER_LABELS: dict[str, str] = {
    "homme": "hommes",
    "femme": "femmes",
}


def gender_label(sexe: str | None) -> str | None:
    """Map a worker's ``sexe`` onto the matching room ``genre``."""

    if not sexe:
        return None
    return GENDER_LABELS.get(str(sexe).strip().lower())


def _as_int(value: Any) -> int:
    """Lenient integer read of a stored counter; unreadable values count as 0."""

    if isinstance(value, bool) or value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


class RoomKey(NamedTuple):
    """Composite identity used to match workers to rooms."""

    ferme_id: str
    numero: str
    genre: str


@dataclass(slots=True, frozen=True)
class Actor:
    """The user performing an operation."""

    uid: str
    role: Role = Role.ADMIN
    ferme_id: str | None = None
    nom: str | None = None

    @property
    def is_elevated(self) -> bool:
        return self.role == Role.SUPERADMIN

    def administers(self, secteur_id: str | None) -> bool:
        return bool(secteur_id) and self.role == Role.ADMIN and self.ferme_id == secteur_id


@dataclass(slots=True)
class Ferme:
    id: str
    nom: str
    total_chambres: int = 0
    total_ouvriers: int = 0
    admins: list[str] = field(default_factory=list)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Ferme":
        return cls(
            id=str(doc.get("id") or ""),
            nom=str(doc.get("nom") or ""),
            total_chambres=_as_int(doc.get("totalChambres")),
            total_ouvriers=_as_int(doc.get("totalOuvriers")),
            admins=_as_list(doc.get("admins")),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "nom": self.nom,
            "totalChambres": self.total_chambres,
            "totalOuvriers": self.total_ouvriers,
            "admins": list(self.admins),
        }


@dataclass(slots=True)
class Worker:
    id: str
    ferme_id: str
    sexe: str
    chambre: str = ""
    statut: str = "actif"
    nom: str = ""

    @property
    def is_active(self) -> bool:
        return self.statut == "actif"

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Worker":
        return cls(
            id=str(doc.get("id") or ""),
            ferme_id=str(doc.get("fermeId") or ""),
            sexe=str(doc.get("sexe") or ""),
            chambre=str(doc.get("chambre") or "").strip(),
            statut=str(doc.get("statut") or ""),
            nom=str(doc.get("nom") or ""),
        )


@dataclass(slots=True)
class Room:
    id: str
    ferme_id: str
    numero: str
    genre: str
    capacite_totale: int
    occupants_actuels: int = 0
    liste_occupants: list[str] = field(default_factory=list)

    @property
    def key(self) -> RoomKey:
        return RoomKey(self.ferme_id, self.numero, self.genre)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Room":
        return cls(
            id=str(doc.get("id") or ""),
            ferme_id=str(doc.get("fermeId") or ""),
            numero=str(doc.get("numero") or "").strip(),
            genre=str(doc.get("genre") or ""),
            capacite_totale=_as_int(doc.get("capaciteTotale")),
            occupants_actuels=_as_int(doc.get("occupantsActuels")),
            liste_occupants=_as_list(doc.get("listeOccupants")),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fermeId": self.ferme_id,
            "numero": self.numero,
            "genre": self.genre,
            "capaciteTotale": self.capacite_totale,
            "occupantsActuels": self.occupants_actuels,
            "listeOccupants": list(self.liste_occupants),
        }


@dataclass(slots=True)
class StockItem:
    id: str
    secteur_id: str
    item: str
    quantity: int
    unit: str = "piece"
    last_updated: str | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "StockItem":
        return cls(
            id=str(doc.get("id") or ""),
            secteur_id=str(doc.get("secteurId") or ""),
            item=str(doc.get("item") or ""),
            quantity=_as_int(doc.get("quantity")),
            unit=str(doc.get("unit") or "piece"),
            last_updated=doc.get("lastUpdated"),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "secteurId": self.secteur_id,
            "item": self.item,
            "quantity": self.quantity,
            "unit": self.unit,
            "lastUpdated": self.last_updated,
        }


@dataclass(slots=True)
class StockTransfer:
    id: str
    from_secteur_id: str
    to_secteur_id: str
    item: str
    quantity: int
    unit: str = "piece"
    status: WorkflowStatus = WorkflowStatus.PENDING
    created_at: Any = None
    confirmed_at: Any = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "StockTransfer":
        return cls(
            id=str(doc.get("id") or ""),
            from_secteur_id=str(doc.get("fromSecteurId") or ""),
            to_secteur_id=str(doc.get("toSecteurId") or ""),
            item=str(doc.get("item") or ""),
            quantity=_as_int(doc.get("quantity")),
            unit=str(doc.get("unit") or "piece"),
            status=WorkflowStatus(doc.get("status") or WorkflowStatus.PENDING.value),
            created_at=doc.get("createdAt"),
            confirmed_at=doc.get("confirmedAt"),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fromSecteurId": self.from_secteur_id,
            "toSecteurId": self.to_secteur_id,
            "item": self.item,
            "quantity": self.quantity,
            "unit": self.unit,
            "status": self.status.value,
            "createdAt": self.created_at,
            "confirmedAt": self.confirmed_at,
        }


@dataclass(slots=True)
class StockAddition:
    id: str
    secteur_id: str
    item: str
    quantity: int
    unit: str = "piece"
    status: WorkflowStatus = WorkflowStatus.PENDING
    added_by: str | None = None
    created_at: Any = None
    confirmed_at: Any = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "StockAddition":
        return cls(
            id=str(doc.get("id") or ""),
            secteur_id=str(doc.get("secteurId") or ""),
            item=str(doc.get("item") or ""),
            quantity=_as_int(doc.get("quantity")),
            unit=str(doc.get("unit") or "piece"),
            status=WorkflowStatus(doc.get("status") or WorkflowStatus.PENDING.value),
            added_by=doc.get("addedBy"),
            created_at=doc.get("createdAt"),
            confirmed_at=doc.get("confirmedAt"),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "secteurId": self.secteur_id,
            "item": self.item,
            "quantity": self.quantity,
            "unit": self.unit,
            "status": self.status.value,
            "addedBy": self.added_by,
            "createdAt": self.created_at,
            "confirmedAt": self.confirmed_at,
        }
