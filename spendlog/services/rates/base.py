from __future__ import annotations

"""Rate source abstraction.

A source returns a complete table of multipliers relative to a base currency;
the engine decides when to ask and what to keep.
"""
from abc import ABC, abstractmethod
from typing import Dict, Protocol


class RateSource(ABC):
    @abstractmethod
    async def fetch_rates(self, base_currency: str) -> Dict[str, float]:
        """Return units of each currency per 1 unit of base_currency."""
        raise NotImplementedError


class SupportsConvert(Protocol):
    def convert(self, amount: float, from_currency: str, to_currency: str) -> float: ...
