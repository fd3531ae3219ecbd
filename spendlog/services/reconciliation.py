"""Real-time reconciliation listeners.

One listener per session, picked once from the backend strategy:

Local-Mock (idle -> loaded)
    One-shot fetch on start; no push updates. ``refetch()`` re-reads and
    overwrites the snapshot.

Cloud-Authoritative (subscribing -> synced | error)
    A standing subscription feeds a channel (asyncio.Queue) of snapshot or
    error events that a single consumer task drains serially. Each snapshot
    wholesale-replaces the store's ledger. A missing document is bootstrapped
    by writing the default ledger and waiting for the echoed snapshot, so the
    observed state always equals what was durably stored. A subscription
    error degrades to the hollow default ledger, read-only until a snapshot
    or ``refetch()`` succeeds; there is no automatic retry.

An optimistic mutation whose save has not round-tripped yet can be
overwritten by a snapshot reflecting older server state. That is accepted:
the latest event wins.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from dataclasses import dataclass
from typing import Optional, Union

from spendlog.core.errors import PersistenceError
from spendlog.db.backend import LedgerBackend, SubscribableBackend, Unsubscribe
from spendlog.db.selection import BackendMode
from spendlog.models.ledger import Ledger
from spendlog.services.ledger_store import LedgerStore
from spendlog.services.notifications import Notifier

logger = logging.getLogger("spendlog.sync")


class ListenerState(str, enum.Enum):
    IDLE = "idle"
    LOADED = "loaded"
    SUBSCRIBING = "subscribing"
    SYNCED = "synced"
    ERROR = "error"
    CLOSED = "closed"


@dataclass(frozen=True)
class SnapshotEvent:
    ledger: Optional[Ledger]


@dataclass(frozen=True)
class ErrorEvent:
    error: BaseException


_CLOSE = object()


class LocalMockListener:
    mode = BackendMode.LOCAL_MOCK

    def __init__(self, store: LedgerStore, backend: LedgerBackend, notifier: Notifier):
        self.store = store
        self._backend = backend
        self._notifier = notifier
        self.state = ListenerState.IDLE
        self.ready = asyncio.Event()

    async def start(self) -> None:
        try:
            ledger = await self._backend.fetch(self.store.user_id)
        except PersistenceError as e:
            logger.error("failed to load mock data: %s", e)
            self._notifier.notify("Impossibile caricare i dati di prova.", "error")
            ledger = None
        self.store.replace(ledger)
        self.state = ListenerState.LOADED
        self.ready.set()

    async def refetch(self) -> bool:
        return await self.store.refetch()

    async def close(self) -> None:
        self.state = ListenerState.CLOSED


class CloudListener:
    mode = BackendMode.CLOUD

    def __init__(self, store: LedgerStore, backend: SubscribableBackend, notifier: Notifier):
        self.store = store
        self._backend = backend
        self._notifier = notifier
        self.state = ListenerState.IDLE
        self.ready = asyncio.Event()
        self.last_error: Optional[BaseException] = None
        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._consumer: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self._closed = False

    # Channel ----------------------------------------------------------
    def _offer(self, event: Union[SnapshotEvent, ErrorEvent, object]) -> None:
        loop = self._loop
        if self._closed or loop is None or loop.is_closed() or self._queue is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._queue.put_nowait(event)
        else:
            loop.call_soon_threadsafe(self._queue.put_nowait, event)

    def _on_snapshot(self, ledger: Optional[Ledger]) -> None:
        self._offer(SnapshotEvent(ledger))

    def _on_error(self, error: BaseException) -> None:
        self._offer(ErrorEvent(error))

    # Lifecycle --------------------------------------------------------
    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self.state = ListenerState.SUBSCRIBING
        self._consumer = self._loop.create_task(self._consume())
        logger.info("opening ledger subscription for %s", self.store.user_id)
        self._unsubscribe = self._backend.subscribe(
            self.store.user_id, self._on_snapshot, self._on_error
        )

    async def _consume(self) -> None:
        assert self._queue is not None
        while True:
            event = await self._queue.get()
            if event is _CLOSE:
                return
            if isinstance(event, ErrorEvent):
                self._handle_error(event.error)
            elif isinstance(event, SnapshotEvent):
                await self._handle_snapshot(event.ledger)

    async def _handle_snapshot(self, ledger: Optional[Ledger]) -> None:
        if ledger is not None:
            self.store.replace(ledger)
            self.store.set_read_only(False)
            self.state = ListenerState.SYNCED
            self.ready.set()
            return
        # New user: create the document and wait for its snapshot
        logger.info("ledger document missing for %s, creating default", self.store.user_id)
        self.state = ListenerState.SUBSCRIBING
        try:
            await self._backend.save(self.store.user_id, Ledger())
        except PersistenceError as e:
            logger.error("failed to create ledger document: %s", e)
            self._notifier.notify(
                "Impossibile creare il profilo. Le modifiche non verranno salvate.", "error"
            )
            self.last_error = e
            self.store.replace(None)
            self.store.set_read_only(True)
            self.state = ListenerState.ERROR
            self.ready.set()

    def _handle_error(self, error: BaseException) -> None:
        logger.error("ledger subscription error: %s", error)
        self.last_error = error
        self._notifier.notify(
            "Impossibile sincronizzare i dati in tempo reale. Controlla la connessione.", "error"
        )
        self.store.replace(None)
        self.store.set_read_only(True)
        self.state = ListenerState.ERROR
        self.ready.set()

    async def refetch(self) -> bool:
        ok = await self.store.refetch()
        if ok and self.state == ListenerState.ERROR:
            self.state = ListenerState.SYNCED
        return ok

    async def close(self) -> None:
        if self._closed:
            return
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._queue is not None:
            self._queue.put_nowait(_CLOSE)
        self._closed = True
        if self._consumer is not None:
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
            self._consumer = None
        self.state = ListenerState.CLOSED
        logger.info("ledger subscription closed for %s", self.store.user_id)


ReconciliationListener = Union[LocalMockListener, CloudListener]


def make_listener(
    mode: BackendMode,
    store: LedgerStore,
    backend: Union[LedgerBackend, SubscribableBackend],
    notifier: Notifier,
) -> ReconciliationListener:
    if mode is BackendMode.CLOUD:
        if not isinstance(backend, SubscribableBackend):
            raise TypeError("cloud mode requires a subscribable backend")
        return CloudListener(store, backend, notifier)
    return LocalMockListener(store, backend, notifier)
