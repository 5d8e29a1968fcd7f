"""
Selection (bounded, ordered, colored multi-select)
==================================================

The selection is a tuple of SelectionEntry(entity_id, color), at most
`max_selection` long and without repeated ids. It only changes through:

- toggle(entity): remove it if selected, else append it (rejected when full)
- clear()

Colors come from a fixed palette: a new entry takes the first palette color not
used by the other entries, so removing an entry never recolors the rest.

The selection is shared through a URL query parameter holding the comma-joined
slugs. Two parameter names are accepted for old links; the newest one wins.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import parse_qs, urlencode
from .config import DEFAULT_PALETTE
from .models import Entity, SelectionEntry

Selection = Tuple[SelectionEntry, ...]


@dataclass(frozen=True)
class ToggleResult:
    selection: Selection
    # True when the toggle was rejected because the selection is full
    limit_reached: bool = False

    @property
    def changed(self) -> bool:
        return not self.limit_reached


def pick_color(used: Iterable[str], index: int, palette: Sequence[str] = DEFAULT_PALETTE) -> str:
    """First palette color not in `used`; palette[index % len] once exhausted."""
    taken = set(used)
    for color in palette:
        if color not in taken:
            return color
    return palette[index % len(palette)]


def toggle(
    selection: Selection,
    entity_id: str,
    max_selection: int = 4,
    palette: Sequence[str] = DEFAULT_PALETTE,
) -> ToggleResult:
    if any(s.entity_id == entity_id for s in selection):
        return ToggleResult(tuple(s for s in selection if s.entity_id != entity_id))
    if len(selection) >= max_selection:
        return ToggleResult(selection, limit_reached=True)
    color = pick_color((s.color for s in selection), len(selection), palette)
    return ToggleResult(selection + (SelectionEntry(entity_id, color),))


def clear() -> Selection:
    return ()


def colors_by_entity(selection: Selection) -> Dict[str, str]:
    return {s.entity_id: s.color for s in selection}


# ---------------- Slug encoding ----------------
def serialize(selection: Selection, entities: Sequence[Entity]) -> Optional[str]:
    """Comma-joined slugs, or None for an empty selection (parameter removed)."""
    slug_by_id = {e.id: e.slug for e in entities}
    slugs = [slug_by_id[s.entity_id] for s in selection if s.entity_id in slug_by_id]
    return ",".join(slugs) if slugs else None


def deserialize(
    text: Optional[str],
    entities: Sequence[Entity],
    max_selection: int = 4,
    palette: Sequence[str] = DEFAULT_PALETTE,
) -> Selection:
    """Slug list -> selection. Unknown and repeated slugs are dropped silently."""
    if not text:
        return ()
    by_slug = {e.slug: e for e in entities}
    ids: List[str] = []
    for part in text.split(","):
        e = by_slug.get(part.strip())
        if e is not None and e.id not in ids:
            ids.append(e.id)
    selection: Selection = ()
    for entity_id in ids[:max_selection]:
        color = pick_color((s.color for s in selection), len(selection), palette)
        selection = selection + (SelectionEntry(entity_id, color),)
    return selection


# ---------------- Query strings ----------------
QueryInput = Union[str, Mapping[str, Union[str, Sequence[str]]], None]


def _query_dict(query: QueryInput) -> Dict[str, List[str]]:
    if query is None:
        return {}
    if isinstance(query, str):
        return parse_qs(query.lstrip("?"), keep_blank_values=True)
    out: Dict[str, List[str]] = {}
    for k, v in query.items():
        out[k] = [v] if isinstance(v, str) else list(v)
    return out


def selection_param(query: QueryInput, param_names: Sequence[str]) -> Optional[str]:
    """Value of the first present parameter in `param_names` (newest name first)."""
    params = _query_dict(query)
    for name in param_names:
        values = params.get(name)
        if values:
            return values[-1]
    return None


def from_query(
    query: QueryInput,
    entities: Sequence[Entity],
    param_names: Sequence[str] = ("compare", "legisladores"),
    max_selection: int = 4,
    palette: Sequence[str] = DEFAULT_PALETTE,
) -> Selection:
    return deserialize(selection_param(query, param_names), entities, max_selection, palette)


def to_query(
    query: QueryInput,
    selection: Selection,
    entities: Sequence[Entity],
    param_names: Sequence[str] = ("compare", "legisladores"),
) -> str:
    """Rewrite a query string for `selection`, keeping unrelated parameters.

    The selection is always written under the newest name; legacy names are removed.
    """
    params = {k: v for k, v in _query_dict(query).items() if k not in param_names}
    encoded = serialize(selection, entities)
    if encoded is not None:
        params[param_names[0]] = [encoded]
    return urlencode(params, doseq=True, safe=",")
