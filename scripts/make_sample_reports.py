#!/usr/bin/env python
from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fermes_backend.application import FermeService, OccupancyService, StockLedger
from fermes_backend.core.schema import ChamberConfig, FermeIn
from fermes_backend.domain import Actor, Role
from fermes_backend.exporters.occupancy_csv import export_occupancy_csv
from fermes_backend.exporters.stock_excel import export_stock_workbook
from fermes_backend.exporters.stock_pdf import export_stock_pdf
from fermes_backend.infrastructure import InMemoryDocumentStore


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate sample stock and occupancy reports")
    parser.add_argument("--output", required=True, help="output directory")
    parser.add_argument("--ferme", action="append", default=None, help="sector name (repeatable)")
    args = parser.parse_args()

    output = Path(args.output)
    output.mkdir(parents=True, exist_ok=True)
    names = args.ferme or ["Ferme Nord", "Ferme Sud"]

    store = InMemoryDocumentStore()
    fermes = FermeService(store)
    ledger = StockLedger(store)

    ids = []
    for name in names:
        ferme, _rooms = fermes.create_ferme(
            FermeIn(nom=name, chambers=ChamberConfig(chambres_hommes=3, chambres_femmes=2))
        )
        ids.append(ferme.id)

    for index, ferme_id in enumerate(ids):
        admin = Actor(uid=f"admin-{index}", role=Role.ADMIN, ferme_id=ferme_id)
        ledger.add_stock(admin, ferme_id, "ciment", 10 * (index + 1), "sac")
        ledger.add_stock(admin, ferme_id, "engrais", 5, "kg")
        store.create_document(
            "workers",
            {"nom": f"Ouvrier {index}", "fermeId": ferme_id, "sexe": "homme", "chambre": "101", "statut": "actif"},
        )

    superadmin = Actor(uid="root", role=Role.SUPERADMIN, nom="Demo")
    if len(ids) > 1:
        transfer = ledger.create_transfer(superadmin, ids[0], ids[1], "ciment", 4, "sac")
        ledger.confirm_transfer(transfer)
        ledger.add_stock(superadmin, ids[1], "semences", 20, "kg")

    stocks = ledger.list_stocks(superadmin)
    ferme_list = fermes.list_fermes()
    export_stock_workbook(output / "inventaire.xlsx", superadmin, stocks, ferme_list)
    with (output / "rapport_stock.pdf").open("wb") as fp:
        export_stock_pdf(
            fp,
            superadmin,
            stocks,
            ledger.list_transfers(superadmin),
            ledger.list_additions(superadmin),
            ferme_list,
        )
    export_occupancy_csv(output / "occupation.csv", OccupancyService(store).sync().result)

    print(f"Sample reports written to {output}")


if __name__ == "__main__":
    main()
