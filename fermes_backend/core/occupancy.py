"""Room occupancy reconciliation and sector statistics."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from fermes_backend.core.settings import OccupancyThresholds
from fermes_backend.domain import Room, RoomKey, Worker, gender_label


@dataclass(slots=True)
class RoomCorrection:
    """Occupancy values a room must be overwritten with."""

    room_id: str
    key: RoomKey
    previous_count: int
    occupants_actuels: int
    liste_occupants: list[str]

    def to_update(self) -> dict[str, object]:
        return {
            "occupantsActuels": self.occupants_actuels,
            "listeOccupants": list(self.liste_occupants),
        }


@dataclass(slots=True)
class RoomStats:
    room: Room
    workers_count: int
    capacity_used: int
    occupancy_rate: int

    @property
    def is_occupied(self) -> bool:
        return self.workers_count > 0

    @property
    def is_overcapacity(self) -> bool:
        return self.workers_count > self.room.capacite_totale


@dataclass(slots=True)
class SectorStats:
    total_ouvriers: int = 0
    total_chambres: int = 0
    chambres_occupees: int = 0
    chambres_vides: int = 0
    total_capacity: int = 0
    total_occupied: int = 0
    places_disponibles: int = 0
    taux_occupation: int = 0
    male_workers: int = 0
    female_workers: int = 0
    male_rooms: int = 0
    female_rooms: int = 0
    workers_without_rooms: int = 0
    overcapacity_rooms: int = 0
    has_issues: bool = False
    needs_attention: bool = False
    is_well_utilized: bool = False
    efficiency_score: int = 0
    room_stats: list[RoomStats] = field(default_factory=list)

    def summary(self) -> dict[str, object]:
        return {
            "totalOuvriers": self.total_ouvriers,
            "totalChambres": self.total_chambres,
            "chambresOccupees": self.chambres_occupees,
            "chambresVides": self.chambres_vides,
            "totalCapacity": self.total_capacity,
            "totalOccupied": self.total_occupied,
            "placesDisponibles": self.places_disponibles,
            "tauxOccupation": self.taux_occupation,
            "maleWorkers": self.male_workers,
            "femaleWorkers": self.female_workers,
            "maleRooms": self.male_rooms,
            "femaleRooms": self.female_rooms,
            "workersWithoutRooms": self.workers_without_rooms,
            "overcapacityRooms": self.overcapacity_rooms,
            "hasIssues": self.has_issues,
            "needsAttention": self.needs_attention,
            "isWellUtilized": self.is_well_utilized,
            "efficiencyScore": self.efficiency_score,
        }


@dataclass(slots=True)
class ReconciliationResult:
    corrections: list[RoomCorrection]
    stats: SectorStats
    sectors: dict[str, SectorStats] = field(default_factory=dict)


def percent(part: float, whole: float) -> int:
    """Return ``part / whole`` as a percentage rounded half-up, 0 when ``whole`` is 0."""

    if whole <= 0:
        return 0
    value = Decimal(str(part)) / Decimal(str(whole)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def worker_room_key(worker: Worker) -> RoomKey | None:
    if not worker.is_active or not worker.chambre or not worker.ferme_id:
        return None
    genre = gender_label(worker.sexe)
    if genre is None:
        return None
    return RoomKey(worker.ferme_id, worker.chambre, genre)


def group_workers_by_room(workers: Iterable[Worker]) -> dict[RoomKey, list[Worker]]:
    groups: dict[RoomKey, list[Worker]] = defaultdict(list)
    for worker in workers:
        key = worker_room_key(worker)
        if key is not None:
            groups[key].append(worker)
    return dict(groups)


def room_stats_for(room: Room, occupants: int) -> RoomStats:
    capacity = max(room.capacite_totale, 0)
    used = min(occupants, capacity)
    return RoomStats(
        room=room,
        workers_count=occupants,
        capacity_used=used,
        occupancy_rate=percent(used, capacity),
    )


def compute_sector_stats(
    workers: Iterable[Worker],
    rooms: Iterable[Room],
    groups: dict[RoomKey, list[Worker]] | None = None,
    thresholds: OccupancyThresholds | None = None,
) -> SectorStats:
    thresholds = thresholds or OccupancyThresholds()
    active = [worker for worker in workers if worker.is_active]
    room_list = list(rooms)
    if groups is None:
        groups = group_workers_by_room(active)

    room_stats = [room_stats_for(room, len(groups.get(room.key, []))) for room in room_list]

    total_capacity = sum(max(room.capacite_totale, 0) for room in room_list)
    total_occupied = sum(stat.capacity_used for stat in room_stats)
    occupied_rooms = sum(1 for stat in room_stats if stat.is_occupied)
    overcapacity = sum(1 for stat in room_stats if stat.is_overcapacity)
    without_rooms = sum(1 for worker in active if not worker.chambre)

    utilization = (total_occupied / total_capacity * 100) if total_capacity > 0 else 0.0
    room_ratio = (occupied_rooms / len(room_list) * 100) if room_list else 0.0

    return SectorStats(
        total_ouvriers=len(active),
        total_chambres=len(room_list),
        chambres_occupees=occupied_rooms,
        chambres_vides=len(room_list) - occupied_rooms,
        total_capacity=total_capacity,
        total_occupied=total_occupied,
        places_disponibles=total_capacity - total_occupied,
        taux_occupation=percent(total_occupied, total_capacity),
        male_workers=sum(1 for worker in active if worker.sexe == "homme"),
        female_workers=sum(1 for worker in active if worker.sexe == "femme"),
        male_rooms=sum(1 for room in room_list if room.genre == "hommes"),
        female_rooms=sum(1 for room in room_list if room.genre == "femmes"),
        workers_without_rooms=without_rooms,
        overcapacity_rooms=overcapacity,
        has_issues=without_rooms > 0 or overcapacity > 0,
        needs_attention=without_rooms > 0 or overcapacity > 0 or utilization > thresholds.attention_rate,
        is_well_utilized=thresholds.well_utilized_min <= utilization <= thresholds.well_utilized_max,
        efficiency_score=percent(utilization + room_ratio, 200) if room_list else 0,
        room_stats=room_stats,
    )


def reconcile(
    workers: Iterable[Worker],
    rooms: Iterable[Room],
    thresholds: OccupancyThresholds | None = None,
) -> ReconciliationResult:
    """Compare cached room occupancy with the live worker assignments.

    Only the occupant count triggers a correction; a room whose count is right
    but whose occupant list drifted is left alone.
    """

    worker_list = list(workers)
    room_list = list(rooms)
    groups = group_workers_by_room(worker_list)

    corrections: list[RoomCorrection] = []
    for room in room_list:
        occupants = groups.get(room.key, [])
        if room.occupants_actuels != len(occupants):
            corrections.append(
                RoomCorrection(
                    room_id=room.id,
                    key=room.key,
                    previous_count=room.occupants_actuels,
                    occupants_actuels=len(occupants),
                    liste_occupants=[worker.id for worker in occupants],
                )
            )

    sector_ids = sorted(
        {worker.ferme_id for worker in worker_list if worker.ferme_id}
        | {room.ferme_id for room in room_list if room.ferme_id}
    )
    sectors = {
        ferme_id: compute_sector_stats(
            [worker for worker in worker_list if worker.ferme_id == ferme_id],
            [room for room in room_list if room.ferme_id == ferme_id],
            groups,
            thresholds,
        )
        for ferme_id in sector_ids
    }

    return ReconciliationResult(
        corrections=corrections,
        stats=compute_sector_stats(worker_list, room_list, groups, thresholds),
        sectors=sectors,
    )
