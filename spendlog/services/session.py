"""Session composition: one store + one listener per logged-in user.

``start()`` on login, ``close()`` on logout. Closing cancels the standing
subscription, any in-flight rate refresh and pending persistence.
"""

from __future__ import annotations

import logging
from typing import Optional

from spendlog.core.config import Settings
from spendlog.core.logging import bind_session
from spendlog.db.backend import SubscribableBackend
from spendlog.db.selection import BackendStrategy, select_backend_strategy
from spendlog.services.id_generator import IdGenerator
from spendlog.services.ledger_store import LedgerStore
from spendlog.services.notifications import Notifier, RecordingNotifier
from spendlog.services.rates.base import RateSource
from spendlog.services.rates.engine import CurrencyEngine
from spendlog.services.rates.providers import make_rate_source
from spendlog.services.reconciliation import make_listener

logger = logging.getLogger("spendlog.session")


class LedgerSession:
    def __init__(
        self,
        user_id: str,
        strategy: BackendStrategy,
        engine: CurrencyEngine,
        notifier: Notifier,
        id_generator: Optional[IdGenerator] = None,
    ):
        self.user_id = user_id
        self.strategy = strategy
        self.engine = engine
        self.notifier = notifier
        self.store = LedgerStore(user_id, strategy.backend, notifier, id_generator=id_generator)
        self.listener = make_listener(strategy.mode, self.store, strategy.backend, notifier)

    @property
    def mode(self):
        return self.strategy.mode

    async def start(self) -> None:
        bind_session(self.user_id, self.mode.value)
        logger.info("starting ledger session (%s)", self.mode.value)
        await self.listener.start()

    async def refetch(self) -> bool:
        return await self.listener.refetch()

    async def close(self) -> None:
        await self.listener.close()
        self.store.close()
        self.engine.close()
        logger.info("ledger session closed")


def build_session(
    settings: Settings,
    *,
    notifier: Optional[Notifier] = None,
    remote: Optional[SubscribableBackend] = None,
    rate_source: Optional[RateSource] = None,
) -> LedgerSession:
    notifier = notifier or RecordingNotifier()
    strategy = select_backend_strategy(settings, remote=remote)
    engine = CurrencyEngine(
        rate_source or make_rate_source(settings.exchange_rate_provider, settings),
        base_currency=settings.rate_base_currency,
        notifier=notifier,
    )
    return LedgerSession(settings.user_id, strategy, engine, notifier)
