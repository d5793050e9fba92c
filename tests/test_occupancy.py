import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fermes_backend.application import OccupancyService
from fermes_backend.core.errors import StoreError
from fermes_backend.core.occupancy import compute_sector_stats, percent, reconcile, room_stats_for
from fermes_backend.domain import Room, RoomKey, Worker
from fermes_backend.infrastructure import InMemoryDocumentStore


def _worker(worker_id: str, chambre: str, sexe: str = "homme", ferme_id: str = "f1", statut: str = "actif") -> Worker:
    return Worker(id=worker_id, ferme_id=ferme_id, sexe=sexe, chambre=chambre, statut=statut)


def _room(room_id: str, numero: str, genre: str = "hommes", capacity: int = 4, occupants: int = 0, ferme_id: str = "f1") -> Room:
    return Room(
        id=room_id,
        ferme_id=ferme_id,
        numero=numero,
        genre=genre,
        capacite_totale=capacity,
        occupants_actuels=occupants,
    )


def test_count_drift_emits_single_correction():
    rooms = [_room("r1", "101", capacity=4, occupants=1)]
    workers = [_worker("w1", "101"), _worker("w2", "101")]

    result = reconcile(workers, rooms)

    assert len(result.corrections) == 1
    correction = result.corrections[0]
    assert correction.room_id == "r1"
    assert correction.previous_count == 1
    assert correction.occupants_actuels == 2
    assert sorted(correction.liste_occupants) == ["w1", "w2"]
    assert correction.key == RoomKey("f1", "101", "hommes")


def test_gender_and_sector_are_part_of_the_room_key():
    rooms = [
        _room("r-h", "101", genre="hommes"),
        _room("r-f", "101", genre="femmes"),
        _room("r-other", "101", genre="hommes", ferme_id="f2"),
    ]
    workers = [
        _worker("w1", "101", sexe="homme"),
        _worker("w2", "101", sexe="femme"),
        _worker("w3", "101", sexe="femme"),
    ]

    result = reconcile(workers, rooms)
    counts = {c.room_id: c.occupants_actuels for c in result.corrections}

    assert counts == {"r-h": 1, "r-f": 2}


def test_inactive_unassigned_and_malformed_rows_are_ignored():
    rooms = [_room("r1", "101", occupants=0), _room("r2", "", genre="")]
    workers = [
        _worker("w1", "101", statut="inactif"),
        _worker("w2", ""),
        _worker("w3", "101", sexe=""),
        _worker("w4", "101", ferme_id=""),
    ]

    result = reconcile(workers, rooms)

    assert result.corrections == []
    assert result.stats.workers_without_rooms == 1
    assert result.stats.total_ouvriers == 3


def test_membership_change_with_same_count_is_not_corrected():
    room = _room("r1", "101", occupants=1)
    room.liste_occupants = ["old-worker"]

    result = reconcile([_worker("new-worker", "101")], [room])

    assert result.corrections == []


def test_room_occupancy_rate_is_capped_and_rounded():
    assert room_stats_for(_room("r1", "101", capacity=3), 1).occupancy_rate == 33
    assert room_stats_for(_room("r1", "101", capacity=3), 2).occupancy_rate == 67
    assert room_stats_for(_room("r1", "101", capacity=2), 5).occupancy_rate == 100
    assert room_stats_for(_room("r1", "101", capacity=0), 2).occupancy_rate == 0
    assert percent(1, 8) == 13


def test_sector_stats_aggregate_capacity_and_flags():
    rooms = [
        _room("r1", "101", capacity=2),
        _room("r2", "102", capacity=4),
        _room("r3", "201", genre="femmes", capacity=4),
    ]
    workers = [
        _worker("w1", "101"),
        _worker("w2", "101"),
        _worker("w3", "101"),
        _worker("w4", "102"),
        _worker("w5", "", sexe="femme"),
    ]

    stats = compute_sector_stats(workers, rooms)

    assert stats.total_ouvriers == 5
    assert stats.total_chambres == 3
    assert stats.chambres_occupees == 2
    assert stats.chambres_vides == 1
    assert stats.total_capacity == 10
    assert stats.total_occupied == 3
    assert stats.places_disponibles == 7
    assert stats.taux_occupation == 30
    assert stats.male_workers == 4
    assert stats.female_workers == 1
    assert stats.male_rooms == 2
    assert stats.female_rooms == 1
    assert stats.workers_without_rooms == 1
    assert stats.overcapacity_rooms == 1
    assert stats.has_issues is True
    assert stats.needs_attention is True
    assert stats.is_well_utilized is False
    assert stats.efficiency_score == 48


def test_well_utilized_sector_without_issues():
    rooms = [_room("r1", "101", capacity=4)]
    workers = [_worker(f"w{i}", "101") for i in range(3)]

    stats = compute_sector_stats(workers, rooms)

    assert stats.taux_occupation == 75
    assert stats.is_well_utilized is True
    assert stats.needs_attention is False


def test_empty_sector_has_zero_rates():
    stats = compute_sector_stats([], [])

    assert stats.taux_occupation == 0
    assert stats.efficiency_score == 0
    assert stats.needs_attention is False


def test_result_breaks_stats_down_by_sector():
    rooms = [_room("r1", "101", ferme_id="f1"), _room("r2", "101", ferme_id="f2", capacity=2)]
    workers = [_worker("w1", "101", ferme_id="f1"), _worker("w2", "101", ferme_id="f2")]

    result = reconcile(workers, rooms)

    assert set(result.sectors) == {"f1", "f2"}
    assert result.sectors["f2"].taux_occupation == 50
    assert result.stats.total_capacity == 6


@pytest.fixture()
def store():
    return InMemoryDocumentStore()


def _seed(store: InMemoryDocumentStore) -> None:
    store.create_document(
        "rooms",
        {"id": "r1", "fermeId": "f1", "numero": "101", "genre": "hommes", "capaciteTotale": 4, "occupantsActuels": 1, "listeOccupants": []},
    )
    store.create_document(
        "rooms",
        {"id": "r2", "fermeId": "f1", "numero": "201", "genre": "femmes", "capaciteTotale": 2, "occupantsActuels": 3, "listeOccupants": []},
    )
    for worker_id in ("w1", "w2"):
        store.create_document(
            "workers",
            {"id": worker_id, "fermeId": "f1", "sexe": "homme", "chambre": "101", "statut": "actif"},
        )


def test_sync_persists_corrections_and_is_idempotent(store):
    _seed(store)
    service = OccupancyService(store)

    first = service.sync()
    assert {c.room_id for c in first.applied} == {"r1", "r2"}

    room = store.get_document("rooms", "r1")
    assert room["occupantsActuels"] == 2
    assert sorted(room["listeOccupants"]) == ["w1", "w2"]
    assert "updatedAt" in room
    assert room["capaciteTotale"] == 4
    assert store.get_document("rooms", "r2")["occupantsActuels"] == 0

    second = service.sync()
    assert second.result.corrections == []
    assert second.applied == []


def test_failed_correction_is_skipped_and_others_still_apply(store, monkeypatch):
    _seed(store)
    service = OccupancyService(store)
    original = store.update_document

    def flaky_update(collection, doc_id, data):
        if doc_id == "r1":
            raise StoreError("permission denied")
        return original(collection, doc_id, data)

    monkeypatch.setattr(store, "update_document", flaky_update)

    report = service.sync()

    assert [c.room_id for c in report.failed] == ["r1"]
    assert [c.room_id for c in report.applied] == ["r2"]
    assert store.get_document("rooms", "r1")["occupantsActuels"] == 1
    assert store.get_document("rooms", "r2")["occupantsActuels"] == 0


def test_sector_stats_reads_only_the_requested_sector(store):
    _seed(store)
    store.create_document(
        "rooms",
        {"id": "r9", "fermeId": "f2", "numero": "101", "genre": "hommes", "capaciteTotale": 10, "occupantsActuels": 0},
    )

    stats = OccupancyService(store).sector_stats("f1")

    assert stats.total_chambres == 2
    assert stats.total_capacity == 6
    assert stats.total_occupied == 2


def test_junk_room_counters_do_not_block_other_corrections(store):
    _seed(store)
    store.create_document(
        "rooms",
        {"id": "r3", "fermeId": "f1", "numero": "102", "genre": "hommes", "capaciteTotale": "quatre", "occupantsActuels": "n/a", "listeOccupants": "w9"},
    )

    report = OccupancyService(store).sync()

    assert {c.room_id for c in report.applied} == {"r1", "r2"}
    assert store.get_document("rooms", "r1")["occupantsActuels"] == 2
    junk = Room.from_document(store.get_document("rooms", "r3"))
    assert junk.capacite_totale == 0
    assert junk.occupants_actuels == 0
    assert junk.liste_occupants == []
    assert OccupancyService(store).sector_stats("f1").total_chambres == 3
