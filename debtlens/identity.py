"""
Identity resolution (two collections -> one addressable entity list)
====================================================================

The registry ships two independently-built collections:
- A: "legislators"
- B: "officials"

The same person may appear in both under the same identifier. We merge them
into one ordered collection (A's order first, then B-only entities in B's
order) and give every entity a URL-safe slug derived from its name.

Slugs are stable for one merge run only: renaming or reordering entities in a
later dataset revision can change which entity gets a numeric suffix.
"""

from __future__ import annotations
from dataclasses import fields, replace
from typing import Any, Dict, Iterable, List, Sequence, Set
import logging
import re
import unicodedata
from .models import Entity

logger = logging.getLogger(__name__)

_NON_WORD_RE = re.compile(r"[^a-z0-9_]+")

# Fields that identify the entity or are derived; never taken from B
_IDENTITY_FIELDS = frozenset({"id", "slug", "extra"})


def _is_absent(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (tuple, list, dict, set, frozenset)):
        return len(value) == 0
    return False


def merge_entity(a: Entity, b: Entity) -> Entity:
    """Layer B under A: B only fills fields that A leaves empty."""
    updates: Dict[str, Any] = {}
    for f in fields(Entity):
        if f.name in _IDENTITY_FIELDS:
            continue
        if _is_absent(getattr(a, f.name)) and not _is_absent(getattr(b, f.name)):
            updates[f.name] = getattr(b, f.name)
    extra = dict(a.extra)
    for k, v in b.extra.items():
        if _is_absent(extra.get(k)):
            extra[k] = v
    updates["extra"] = extra
    return replace(a, **updates)


def merge_collections(a: Sequence[Entity], b: Sequence[Entity]) -> List[Entity]:
    """Merge collection B into collection A by entity id."""
    b_by_id = {e.id: e for e in b}
    out: List[Entity] = []
    matched: Set[str] = set()
    for e in a:
        other = b_by_id.get(e.id)
        if other is not None:
            out.append(merge_entity(e, other))
            matched.add(e.id)
        else:
            out.append(e)
    # B-only entities go last, in B's order
    b_only = [e for e in b if e.id not in matched]
    out.extend(b_only)
    logger.debug("Merged collections: %d from A (%d matched in B), %d B-only",
                 len(a), len(matched), len(b_only))
    return out


def slugify(text: str) -> str:
    """'Juan Pérez' -> 'juan-perez' (lowercase, accents stripped, non-word runs -> '-')."""
    s = unicodedata.normalize("NFKD", text or "")
    s = s.encode("ascii", "ignore").decode("ascii").lower()
    return _NON_WORD_RE.sub("-", s).strip("-")


def assign_slugs(entities: Iterable[Entity]) -> List[Entity]:
    """Give every entity a unique slug; collisions get -2, -3, ... in encounter order."""
    used: Set[str] = set()
    out: List[Entity] = []
    for e in entities:
        base = slugify(e.display_name) or slugify(e.id) or "entity"
        slug = base
        n = 2
        while slug in used:
            slug = f"{base}-{n}"
            n += 1
        used.add(slug)
        out.append(replace(e, slug=slug))
    return out


def resolve_entities(a: Sequence[Entity], b: Sequence[Entity] = ()) -> List[Entity]:
    """Merge both collections and assign slugs (the addressable entity list)."""
    return assign_slugs(merge_collections(a, b))
