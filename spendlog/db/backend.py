"""Persistence backend contracts.

Two interchangeable providers implement these: a one-shot local store and a
subscription-capable remote store. Both persist one whole Ledger document per
user identity.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol, runtime_checkable

from spendlog.models.ledger import Ledger

SnapshotCallback = Callable[[Optional[Ledger]], None]
ErrorCallback = Callable[[BaseException], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class LedgerBackend(Protocol):
    async def fetch(self, user_id: str) -> Optional[Ledger]:
        """Return the stored ledger, or None when no document exists."""
        ...

    async def save(self, user_id: str, ledger: Ledger) -> None:
        """Replace the stored document; raise PersistenceError on failure."""
        ...


@runtime_checkable
class SubscribableBackend(LedgerBackend, Protocol):
    def subscribe(
        self, user_id: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback
    ) -> Unsubscribe:
        """Open a standing subscription.

        ``on_snapshot`` receives None when the document does not exist. The
        callbacks may be invoked from a foreign thread.
        """
        ...
