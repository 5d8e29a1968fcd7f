"""
Time-series aggregation
=======================

Groups the raw monthly debt records of the selected entities into one table
with a row per month:

    SeriesRow(date="2024-01",
              totals={"X": 150},
              details={"X": (DebtRecord(... 100 ...), DebtRecord(... 50 ...))})

Records from several institutions in the same month are summed. An entity with
no record in a month has no key in that row: "no data" is not the same as an
explicit zero.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
import pandas as pd
from .currency import CurrencyNormalizer
from .models import Amount, DebtRecord, Entity


@dataclass(frozen=True)
class SeriesRow:
    date: str
    totals: Mapping[str, Amount] = field(default_factory=dict)
    details: Mapping[str, Tuple[DebtRecord, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # rows are shared by cached results; keep their maps read-only
        object.__setattr__(self, "totals", MappingProxyType(dict(self.totals)))
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    def worst_category(self, entity_id: str) -> Optional[int]:
        """Highest risk category among the entity's records this month."""
        cats = [r.risk_category for r in self.details.get(entity_id, ()) if r.risk_category is not None]
        return max(cats) if cats else None


def aggregate(
    entities: Sequence[Entity],
    normalizer: Optional[CurrencyNormalizer] = None,
) -> List[SeriesRow]:
    """Build the per-month overlay table for the given (ordered) entities.

    Each record is normalized first, so totals and details always agree.
    """
    normalizer = normalizer or CurrencyNormalizer()
    totals: Dict[str, Dict[str, Amount]] = {}
    details: Dict[str, Dict[str, List[DebtRecord]]] = {}

    for e in entities:
        for raw in e.debt_history:
            rec = normalizer.record(raw)
            month_totals = totals.setdefault(rec.date, {})
            month_totals[e.id] = month_totals.get(e.id, 0) + rec.amount
            details.setdefault(rec.date, {}).setdefault(e.id, []).append(rec)

    # zero-padded YYYY-MM: lexical order is chronological
    return [
        SeriesRow(
            date=d,
            totals=totals[d],
            details={eid: tuple(recs) for eid, recs in details[d].items()},
        )
        for d in sorted(totals)
    ]


def to_frame(rows: Sequence[SeriesRow], entity_ids: Sequence[str]) -> pd.DataFrame:
    """Wide table: index=date, one column per entity id, NaN where there is no data."""
    frame = pd.DataFrame(
        [[row.totals.get(eid) for eid in entity_ids] for row in rows],
        index=pd.Index([row.date for row in rows], name="date"),
        columns=list(entity_ids),
        dtype="float64",
    )
    return frame
