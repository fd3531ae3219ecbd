from __future__ import annotations

"""Concrete rate sources and factory.

'static' returns the built-in fallback table; 'external-http' asks an
exchangerate-api compatible endpoint for ``<base_url>/<BASE>``.
"""
import asyncio
import logging
from typing import Dict

from spendlog.core.config import Settings
from spendlog.core.errors import ExternalCollaboratorError
from spendlog.services.http_client import HttpError, get_json

from .base import RateSource

logger = logging.getLogger("spendlog.rates")

# Fallback multipliers relative to EUR
STATIC_RATES: Dict[str, float] = {
    "EUR": 1.0,
    "USD": 1.08,
    "GBP": 0.85,
    "THB": 39.50,
    "VND": 27500.0,
    "KHR": 4400.0,
    "LAK": 23500.0,
    "MYR": 5.10,
    "SGD": 1.46,
    "IDR": 17500.0,
    "PHP": 63.50,
    "JPY": 168.0,
    "KRW": 1480.0,
    "CNY": 7.80,
}
STATIC_BASE = "EUR"


def static_rates_for(base_currency: str) -> Dict[str, float]:
    pivot = STATIC_RATES[base_currency.upper()]
    return {code: rate / pivot for code, rate in STATIC_RATES.items()}


class StaticRateSource(RateSource):
    async def fetch_rates(self, base_currency: str) -> Dict[str, float]:  # type: ignore[override]
        return static_rates_for(base_currency)


class ExternalHTTPRateSource(RateSource):
    def __init__(self, base_url: str, *, timeout: float = 5.0, retries: int = 2):
        self._base_url = str(base_url).rstrip("/")
        self._timeout = timeout
        self._retries = retries

    async def fetch_rates(self, base_currency: str) -> Dict[str, float]:  # type: ignore[override]
        url = f"{self._base_url}/{base_currency.upper()}"
        try:
            data = await asyncio.to_thread(
                get_json, url, timeout=self._timeout, retries=self._retries
            )
        except HttpError as e:
            raise ExternalCollaboratorError(str(e)) from e
        rates = data.get("rates") or {}
        if not isinstance(rates, dict) or not rates:
            raise ExternalCollaboratorError(f"no rates in response from {url}")
        logger.debug("fetched %d rates from %s", len(rates), url)
        return {str(k).upper(): float(v) for k, v in rates.items() if v}


_PROVIDER_REGISTRY = {
    "static": lambda settings: StaticRateSource(),
    "external-http": lambda settings: ExternalHTTPRateSource(
        settings.exchange_api_base_url,
        timeout=settings.http_timeout_seconds,
        retries=settings.http_retries,
    ),
}


def make_rate_source(kind: str, settings: Settings) -> RateSource:
    factory = _PROVIDER_REGISTRY.get(kind)
    if not factory:
        raise ValueError(f"Unknown rate provider kind '{kind}'")
    return factory(settings)
