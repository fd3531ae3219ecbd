from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class RateTable(BaseModel):
    """Currency -> multiplier relative to ``base_currency``.

    Replaced wholesale on refresh, never patched. ``refreshed_at`` is None
    while the static fallback seed is in effect.
    """

    model_config = ConfigDict(frozen=True)

    base_currency: str
    rates: Dict[str, float]
    refreshed_at: Optional[datetime] = None

    @field_validator("base_currency")
    def _upper_base(cls, v: str) -> str:
        return v.upper()

    @field_validator("rates")
    def _positive_rates(cls, v: Dict[str, float]) -> Dict[str, float]:
        out: Dict[str, float] = {}
        for code, rate in v.items():
            if rate is None or rate <= 0:
                raise ValueError(f"rate for {code} must be positive")
            out[code.upper()] = float(rate)
        return out

    @model_validator(mode="after")
    def _base_present(self) -> "RateTable":
        if self.base_currency not in self.rates:
            raise ValueError(f"base currency {self.base_currency} missing from rates")
        return self

    def rebased(self, base_currency: str) -> "RateTable":
        base_currency = base_currency.upper()
        pivot = self.rates[base_currency]
        return RateTable(
            base_currency=base_currency,
            rates={c: r / pivot for c, r in self.rates.items()},
            refreshed_at=self.refreshed_at,
        )
