from __future__ import annotations

import asyncio
import logging
from typing import Callable

from fermes_backend.application.occupancy import OccupancyService
from fermes_backend.infrastructure import DocumentStore

logger = logging.getLogger(__name__)


class ReconcileScheduler:
    """Coalesces bursts of worker/room changes into one reconciliation pass."""

    def __init__(
        self,
        service: OccupancyService,
        store: DocumentStore,
        delay: float = 1.0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._service = service
        self._store = store
        self.delay = delay
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task | None = None
        self._syncing = False
        self._unsubscribers: list[Callable[[], None]] = []
        self.runs = 0

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or self._loop or asyncio.get_running_loop()
        self._unsubscribers.append(self._store.subscribe("workers", None, self._on_change))
        self._unsubscribers.append(self._store.subscribe("rooms", None, self._on_room_change))

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._task is not None:
            self._task.cancel()
            self._task = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def _on_change(self, _snapshot: list[dict]) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self.schedule)

    def _on_room_change(self, snapshot: list[dict]) -> None:
        # corrections written by our own pass
        if self._syncing:
            return
        self._on_change(snapshot)

    def schedule(self) -> None:
        if self._loop is None:
            raise RuntimeError("scheduler has not been started")
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self._loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        self._task = self._loop.create_task(self._run())

    async def _run(self) -> None:
        self.runs += 1
        self._syncing = True
        try:
            await asyncio.to_thread(self._service.sync)
        except Exception:  # noqa: BLE001
            logger.exception("Error syncing room occupancy")
        finally:
            self._syncing = False
