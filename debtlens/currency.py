"""
Currency normalization (nominal / real / usd)
=============================================

Amounts in the registry are nominal thousands of local currency. Before
aggregation each record can be rescaled:

- nominal: unchanged (the very same record object is returned)
- real:    amount * latest_index / index_at_record_date
           (no index value at that month -> amount left unchanged)
- usd:     amount * 1000 / fx_rate_at_record_date
           (no usable rate at that month -> explicit 0)

The two fallbacks are intentionally different: a missing inflation value keeps
the nominal figure, while a missing exchange rate means no dollar value can be
stated at all.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional
from .config import NOMINAL, REAL, USD, VALUATION_MODES
from .models import Amount, DebtRecord


def check_mode(mode: str) -> str:
    m = (mode or "").strip().lower()
    if m not in VALUATION_MODES:
        raise ValueError(f"mode must be one of: {', '.join(VALUATION_MODES)} (got {mode!r})")
    return m


def latest_index_value(table: Mapping[str, float]) -> Optional[float]:
    """Value at the chronologically last month of the table (None if empty)."""
    if not table:
        return None
    return table[max(table)]


@dataclass(frozen=True)
class CurrencyNormalizer:
    """Rescales DebtRecord amounts for one valuation mode."""
    mode: str = NOMINAL
    inflation_index: Mapping[str, float] = field(default_factory=dict)
    fx_index: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", check_mode(self.mode))

    @property
    def effective_mode(self) -> str:
        """`real` without a usable inflation table behaves as `nominal`."""
        if self.mode == REAL and not latest_index_value(self.inflation_index):
            return NOMINAL
        return self.mode

    def amount(self, amount: Amount, date: str) -> Amount:
        mode = self.effective_mode
        if mode == REAL:
            latest = latest_index_value(self.inflation_index)
            base = self.inflation_index.get(date)
            if base is None or base <= 0 or base == latest:
                return amount
            return amount * latest / base
        if mode == USD:
            rate = self.fx_index.get(date)
            if rate is None or rate <= 0:
                return 0
            return amount * 1000 / rate
        return amount

    def record(self, rec: DebtRecord) -> DebtRecord:
        if self.effective_mode == NOMINAL:
            return rec
        return replace(rec, amount=self.amount(rec.amount, rec.date))


def normalize_record(
    rec: DebtRecord,
    mode: str,
    inflation_index: Optional[Mapping[str, float]] = None,
    fx_index: Optional[Mapping[str, float]] = None,
) -> DebtRecord:
    """One-off helper around CurrencyNormalizer."""
    return CurrencyNormalizer(mode, inflation_index or {}, fx_index or {}).record(rec)
