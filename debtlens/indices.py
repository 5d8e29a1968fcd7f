"""
Indices (entity directory lookup tables)
========================================

We build simple indices (maps from value -> sorted list of entity positions)
for the facets the entity list can be narrowed by:

- `by_office["diputado"]` gives the positions of every deputy
- `by_district["Córdoba"]` gives the positions of every entity from Córdoba
- `by_affiliation[...]` gives the positions of every member of a bloc

Entities with a blank attribute are simply not indexed under that facet.
Sorted lists let several facets be combined with a two-pointer intersection.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
import unicodedata
from .models import Entity

FACETS = ("office", "district", "affiliation")


@dataclass
class Indices:
    """Container of precomputed facet indices."""
    by_office: Dict[str, List[int]]
    by_district: Dict[str, List[int]]
    by_affiliation: Dict[str, List[int]]

    def facet(self, name: str) -> Dict[str, List[int]]:
        if name == "office":
            return self.by_office
        if name == "district":
            return self.by_district
        if name in ("affiliation", "party"):
            return self.by_affiliation
        raise ValueError("facet must be: office, district, affiliation")


def build_indices(entities: Sequence[Entity]) -> Indices:
    by_office: Dict[str, List[int]] = {}
    by_district: Dict[str, List[int]] = {}
    by_affiliation: Dict[str, List[int]] = {}

    for pos, e in enumerate(entities):
        if e.office and e.office.strip():
            by_office.setdefault(e.office.strip().lower(), []).append(pos)
        if e.district and e.district.strip():
            by_district.setdefault(e.district.strip(), []).append(pos)
        if e.affiliation and e.affiliation.strip():
            by_affiliation.setdefault(e.affiliation.strip(), []).append(pos)

    # positions are appended in order, so every list is already sorted
    return Indices(by_office=by_office, by_district=by_district, by_affiliation=by_affiliation)


def facet_values(idx: Indices, facet: str) -> List[str]:
    return sorted(idx.facet(facet).keys(), key=name_key)


def name_key(name: str) -> str:
    """Accent- and case-insensitive sort key."""
    s = unicodedata.normalize("NFKD", name or "")
    return "".join(c for c in s if not unicodedata.combining(c)).casefold()


def _intersect_sorted(a: List[int], b: List[int]) -> List[int]:
    # i and j are pointers into each sorted list
    i = j = 0
    out: List[int] = []
    while i < len(a) and j < len(b):
        if a[i] == b[j]:
            out.append(a[i]); i += 1; j += 1
        elif a[i] < b[j]:
            i += 1
        else:
            j += 1
    return out


def filter_entities(
    entities: Sequence[Entity],
    idx: Indices,
    search: str = "",
    office: Optional[str] = None,
    district: Optional[str] = None,
    affiliation: Optional[str] = None,
) -> List[Entity]:
    """Entities matching every given facet and the name search, sorted by name."""
    positions = list(range(len(entities)))
    if office:
        positions = _intersect_sorted(positions, idx.by_office.get(office.strip().lower(), []))
    if district:
        positions = _intersect_sorted(positions, idx.by_district.get(district.strip(), []))
    if affiliation:
        positions = _intersect_sorted(positions, idx.by_affiliation.get(affiliation.strip(), []))

    term = name_key(search.strip())
    out = [entities[p] for p in positions if not term or term in name_key(entities[p].display_name)]
    out.sort(key=lambda e: name_key(e.display_name))
    return out
