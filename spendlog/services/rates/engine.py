"""Currency conversion engine.

Holds exactly one RateTable. Conversions never wait on a refresh: they read
whatever table is current, and staleness is visible through
``last_refreshed``.

Refresh semantics:
    - At most one refresh is in flight; overlapping callers await the same task.
    - Success swaps in a complete new table atomically.
    - Failure leaves the previous table and timestamp untouched, notifies, and
      raises ExternalCollaboratorError to the callers that awaited it.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import ValidationError

from spendlog.core.errors import ExternalCollaboratorError, UnsupportedCurrencyError
from spendlog.models.rates import RateTable
from spendlog.services.http_client import HttpError
from spendlog.services.notifications import Notifier

from .base import RateSource
from .providers import static_rates_for

logger = logging.getLogger("spendlog.rates")


class CurrencyEngine:
    def __init__(
        self,
        source: RateSource,
        base_currency: str = "EUR",
        notifier: Optional[Notifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._source = source
        self._notifier = notifier
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._table = RateTable(
            base_currency=base_currency, rates=static_rates_for(base_currency)
        )
        self._inflight: Optional[asyncio.Future] = None

    # Read side ------------------------------------------------
    @property
    def table(self) -> RateTable:
        return self._table

    @property
    def last_refreshed(self) -> Optional[datetime]:
        return self._table.refreshed_at

    @property
    def is_refreshing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def supports(self, currency: str) -> bool:
        return currency.upper() in self._table.rates

    def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        if from_currency.upper() == to_currency.upper():
            return amount
        # Read both rates from one table reference so a concurrent swap can't mix them
        table = self._table
        try:
            src = table.rates[from_currency.upper()]
            dst = table.rates[to_currency.upper()]
        except KeyError as e:
            raise UnsupportedCurrencyError(str(e.args[0])) from None
        return amount * (dst / src)

    # Refresh --------------------------------------------------
    async def refresh(self) -> RateTable:
        if self._inflight is None:
            task = asyncio.ensure_future(self._do_refresh())
            task.add_done_callback(self._clear_inflight)
            self._inflight = task
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, task: asyncio.Future) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled() and task.exception() is not None:
            # Retrieved here so an unawaited failure doesn't warn at GC time
            logger.debug("rate refresh task ended with %r", task.exception())

    async def _do_refresh(self) -> RateTable:
        base = self._table.base_currency
        try:
            rates = await self._source.fetch_rates(base)
            table = RateTable(base_currency=base, rates=rates, refreshed_at=self._clock())
        except (ExternalCollaboratorError, HttpError, ValidationError, ValueError, KeyError, OSError) as e:
            logger.warning("rate refresh failed, keeping table from %s: %s", self.last_refreshed, e)
            if self._notifier is not None:
                self._notifier.notify("Impossibile aggiornare i tassi di cambio.", "error")
            if isinstance(e, ExternalCollaboratorError):
                raise
            raise ExternalCollaboratorError(f"rate refresh failed: {e}") from e
        self._table = table
        logger.info("rate table refreshed: %d currencies (base %s)", len(table.rates), base)
        return table

    def close(self) -> None:
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = None
