"""
Data model
==========

Every record loaded from the registry documents is converted into one of the
immutable (`frozen=True`) objects below, so that:
- records cannot be accidentally modified after loading, and
- every derivation (series, overlay, selection) builds new values instead of
  editing the dataset.

Dates are kept as zero-padded "YYYY-MM" strings; lexical order equals
chronological order for them.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

GLOBAL = "global"
VOTE = "vote"
POLITICAL = "political"
OFFICE_TITLE = "office-title"
PERSONAL = "personal"

# Milestone kinds that apply to every entity regardless of office history
GLOBAL_KINDS = frozenset({GLOBAL, VOTE, POLITICAL})

Amount = Union[int, float]


@dataclass(frozen=True)
class DebtRecord:
    """One month of debt with one institution."""
    entity_ref: str
    date: str
    # thousands of currency units
    amount: Amount
    source_institution: str = ""
    risk_category: Optional[int] = None


@dataclass(frozen=True)
class Milestone:
    """A dated annotation on the time series.

    `title` is only set for office-title milestones and names the office
    position the milestone is gated on.
    """
    date: str
    text: str
    color: str = ""
    kind: str = GLOBAL
    title: Optional[str] = None

    @property
    def is_personal(self) -> bool:
        return self.kind == PERSONAL

    @property
    def is_global_class(self) -> bool:
        return self.kind in GLOBAL_KINDS


@dataclass(frozen=True)
class OfficePeriod:
    title: str
    start: str
    # None means the office is still held
    end: Optional[str] = None

    def contains(self, date: str) -> bool:
        """Open interval test: the boundary months are not inside."""
        if not date > self.start:
            return False
        return self.end is None or date < self.end


@dataclass(frozen=True)
class Entity:
    """A tracked public official or legislator."""
    id: str
    display_name: str
    office_periods: Tuple[OfficePeriod, ...] = ()
    personal_milestones: Tuple[Milestone, ...] = ()
    debt_history: Tuple[DebtRecord, ...] = ()
    affiliation: Optional[str] = None
    district: Optional[str] = None
    unit: Optional[str] = None
    office: Optional[str] = None
    source_files: Tuple[str, ...] = ()
    extra: Mapping[str, Any] = field(default_factory=dict)
    # assigned by the identity resolver
    slug: str = ""


@dataclass(frozen=True)
class SelectionEntry:
    entity_id: str
    color: str


@dataclass(frozen=True)
class DatasetMeta:
    """The `meta` block of a registry document (only the fields the engine reads)."""
    generated_at: Optional[str] = None
    global_milestones: Tuple[Milestone, ...] = ()
    inflation_index: Dict[str, float] = field(default_factory=dict)
    fx_index: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class DatasetDocument:
    """One parsed registry document: meta + its entity collection."""
    meta: DatasetMeta
    entities: Tuple[Entity, ...]
