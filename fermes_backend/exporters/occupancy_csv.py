from __future__ import annotations

from pathlib import Path
from typing import IO

import pandas as pd

from fermes_backend.core.occupancy import ReconciliationResult

COLUMNS = [
    "fermeId",
    "numero",
    "genre",
    "capaciteTotale",
    "occupants",
    "capaciteUtilisee",
    "tauxOccupation",
    "surcapacite",
]


def occupancy_frame(result: ReconciliationResult) -> pd.DataFrame:
    records = []
    for stats in result.sectors.values():
        for room_stat in stats.room_stats:
            room = room_stat.room
            records.append(
                {
                    "fermeId": room.ferme_id,
                    "numero": room.numero,
                    "genre": room.genre,
                    "capaciteTotale": room.capacite_totale,
                    "occupants": room_stat.workers_count,
                    "capaciteUtilisee": room_stat.capacity_used,
                    "tauxOccupation": room_stat.occupancy_rate,
                    "surcapacite": room_stat.is_overcapacity,
                }
            )
    return pd.DataFrame(records, columns=COLUMNS)


def export_occupancy_csv(target: Path | IO[str], result: ReconciliationResult) -> Path | IO[str]:
    df = occupancy_frame(result)
    if isinstance(target, Path):
        target.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(target, index=False)
    return target
