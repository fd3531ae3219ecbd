"""In-process subscribable backend.

Behaves like the remote store (every successful save is echoed back to
subscribers as a snapshot) and lets callers inject remote pushes, errors
and save failures.
"""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Tuple

from spendlog.core.errors import PersistenceError
from spendlog.models.ledger import Ledger

from .backend import ErrorCallback, SnapshotCallback, Unsubscribe


class InMemoryBackend:
    def __init__(self, documents: Optional[Dict[str, Ledger]] = None, save_delay: float = 0.0):
        self.documents: Dict[str, Ledger] = dict(documents or {})
        self.save_delay = save_delay
        self.fail_saves = 0
        self.fail_fetches = 0
        self.save_calls = 0
        self._subscribers: Dict[str, List[Tuple[SnapshotCallback, ErrorCallback]]] = {}

    def fail_next_save(self, count: int = 1) -> None:
        self.fail_saves += count

    async def fetch(self, user_id: str) -> Optional[Ledger]:
        if self.fail_fetches:
            self.fail_fetches -= 1
            raise PersistenceError("fetch rejected")
        return self.documents.get(user_id)

    async def save(self, user_id: str, ledger: Ledger) -> None:
        self.save_calls += 1
        if self.save_delay:
            await asyncio.sleep(self.save_delay)
        if self.fail_saves:
            self.fail_saves -= 1
            raise PersistenceError("save rejected")
        self.documents[user_id] = ledger
        self._emit(user_id, ledger)

    def push(self, user_id: str, ledger: Optional[Ledger]) -> None:
        """Simulate a write made elsewhere (another device)."""
        if ledger is None:
            self.documents.pop(user_id, None)
        else:
            self.documents[user_id] = ledger
        self._emit(user_id, ledger)

    def emit_error(self, user_id: str, error: BaseException) -> None:
        for _, on_error in list(self._subscribers.get(user_id, ())):
            on_error(error)

    def subscriber_count(self, user_id: str) -> int:
        return len(self._subscribers.get(user_id, ()))

    def _emit(self, user_id: str, ledger: Optional[Ledger]) -> None:
        for on_snapshot, _ in list(self._subscribers.get(user_id, ())):
            on_snapshot(ledger)

    def subscribe(
        self, user_id: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback
    ) -> Unsubscribe:
        entry = (on_snapshot, on_error)
        self._subscribers.setdefault(user_id, []).append(entry)
        # Initial snapshot, as the remote store delivers on attach
        on_snapshot(self.documents.get(user_id))

        def unsubscribe() -> None:
            subs = self._subscribers.get(user_id, [])
            if entry in subs:
                subs.remove(entry)

        return unsubscribe
