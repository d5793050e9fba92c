import asyncio
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fermes_backend.application import OccupancyService
from fermes_backend.infrastructure import InMemoryDocumentStore
from fermes_backend.workers.reconcile import ReconcileScheduler


def _seed_room(store: InMemoryDocumentStore) -> None:
    store.create_document(
        "rooms",
        {"id": "r1", "fermeId": "f1", "numero": "101", "genre": "hommes", "capaciteTotale": 4, "occupantsActuels": 0},
    )


def test_burst_of_changes_triggers_one_pass():
    store = InMemoryDocumentStore()
    _seed_room(store)

    async def scenario() -> ReconcileScheduler:
        scheduler = ReconcileScheduler(OccupancyService(store), store, delay=0.05)
        scheduler.start()
        for index in range(5):
            store.create_document(
                "workers",
                {"id": f"w{index}", "fermeId": "f1", "sexe": "homme", "chambre": "101", "statut": "actif"},
            )
        await asyncio.sleep(0.3)
        scheduler.stop()
        return scheduler

    scheduler = asyncio.run(scenario())

    assert scheduler.runs == 1
    assert not scheduler.pending
    room = store.get_document("rooms", "r1")
    assert room["occupantsActuels"] == 5
    assert len(room["listeOccupants"]) == 5


def test_stop_cancels_pending_pass():
    store = InMemoryDocumentStore()
    _seed_room(store)

    async def scenario() -> ReconcileScheduler:
        scheduler = ReconcileScheduler(OccupancyService(store), store, delay=0.2)
        scheduler.start()
        scheduler.schedule()
        assert scheduler.pending
        scheduler.stop()
        await asyncio.sleep(0.3)
        return scheduler

    scheduler = asyncio.run(scenario())

    assert scheduler.runs == 0
    assert not scheduler.pending


def test_outside_room_edit_triggers_a_pass():
    store = InMemoryDocumentStore()
    _seed_room(store)
    store.create_document(
        "workers",
        {"id": "w1", "fermeId": "f1", "sexe": "homme", "chambre": "101", "statut": "actif"},
    )

    async def scenario() -> ReconcileScheduler:
        scheduler = ReconcileScheduler(OccupancyService(store), store, delay=0.05)
        scheduler.start()
        store.update_document("rooms", "r1", {"occupantsActuels": 3})
        await asyncio.sleep(0.3)
        scheduler.stop()
        return scheduler

    scheduler = asyncio.run(scenario())

    assert scheduler.runs == 1
    assert store.get_document("rooms", "r1")["occupantsActuels"] == 1
