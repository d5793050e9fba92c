from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, constr


class ChamberConfig(BaseModel):
    create_chambers: bool = True
    chambres_hommes: int = Field(default=10, ge=0)
    chambres_femmes: int = Field(default=10, ge=0)
    capacite_hommes: int = 4
    capacite_femmes: int = 4
    start_number_hommes: int = 101
    start_number_femmes: int = 201


class FermeIn(BaseModel):
    nom: constr(strip_whitespace=True, min_length=1)
    total_chambres: int = Field(default=0, ge=0)
    total_ouvriers: int = Field(default=0, ge=0)
    admins: list[str] = Field(default_factory=list)
    chambers: ChamberConfig | None = None


class FermeUpdate(BaseModel):
    nom: constr(strip_whitespace=True, min_length=1) | None = None
    total_chambres: int | None = Field(default=None, ge=0)
    total_ouvriers: int | None = Field(default=None, ge=0)
    admins: list[str] | None = None


class WorkerIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    nom: constr(strip_whitespace=True, min_length=1)
    ferme_id: constr(strip_whitespace=True, min_length=1) = Field(alias="fermeId")
    sexe: Literal["homme", "femme"]
    chambre: str = ""
    statut: Literal["actif", "inactif"] = "actif"
    cin: str | None = None
    telephone: str | None = None
    age: int | None = Field(default=None, ge=0)
    date_entree: str | None = Field(default=None, alias="dateEntree")
    date_sortie: str | None = Field(default=None, alias="dateSortie")
    motif: str | None = None


class WorkerUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    nom: str | None = None
    sexe: Literal["homme", "femme"] | None = None
    chambre: str | None = None
    statut: Literal["actif", "inactif"] | None = None
    telephone: str | None = None
    date_sortie: str | None = Field(default=None, alias="dateSortie")
    motif: str | None = None


class StockAddIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item: str
    quantity: int
    unit: str = "piece"
    secteur_id: str | None = Field(default=None, alias="secteurId")


class TransferIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item: str
    quantity: int
    unit: str = "piece"
    to_secteur_id: str = Field(alias="toSecteurId")
    from_secteur_id: str | None = Field(default=None, alias="fromSecteurId")


WORKER_FIELD_ALIASES: dict[str, str] = {
    "ferme_id": "fermeId",
    "date_entree": "dateEntree",
    "date_sortie": "dateSortie",
}
