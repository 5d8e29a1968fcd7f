"""
Milestone reconciliation
========================

Builds the annotation overlay for the current selection: one marker per date,
merging every milestone that falls on that month.

Which milestones take part:
- global / vote / political milestones: relevant to every selected entity
- office-title milestones: relevant to an entity only if it held an office with
  that title (case-insensitive) strictly inside the period (boundary months
  excluded)
- personal milestones of each selected entity

Marker color, first rule that applies:
1) only personal milestones, all of the same entity -> that entity's selection color
2) only global-class milestones and a single entity selected -> the milestone's own color
3) anything else -> neutral gray
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
from .config import NEUTRAL_COLOR
from .models import Entity, Milestone


@dataclass(frozen=True)
class OverlayMarker:
    date: str
    text: str
    color: str
    kind: str


def is_relevant(milestone: Milestone, entity: Entity) -> bool:
    """Is a dataset-wide milestone relevant to this entity?"""
    if milestone.is_global_class:
        return True
    title = (milestone.title or "").strip().casefold()
    if not title:
        return False
    for period in entity.office_periods:
        if period.title.strip().casefold() == title and period.contains(milestone.date):
            return True
    return False


def _marker_color(
    members: Sequence[Tuple[Milestone, Optional[str]]],
    colors: Mapping[str, str],
    selected_count: int,
    neutral_color: str,
) -> str:
    owners = {owner for _, owner in members}
    if all(m.is_personal for m, _ in members) and len(owners) == 1:
        owner = next(iter(owners))
        if owner in colors:
            return colors[owner]
    if not any(m.is_personal for m, _ in members) and selected_count == 1:
        return members[0][0].color or neutral_color
    return neutral_color


def reconcile(
    global_milestones: Sequence[Milestone],
    selected: Sequence[Entity],
    colors: Mapping[str, str],
    neutral_color: str = NEUTRAL_COLOR,
) -> List[OverlayMarker]:
    """Merge global + personal milestones of the selected entities into date markers.

    `colors` maps entity id -> selection color.
    """
    if not selected:
        return []

    members: List[Tuple[Milestone, Optional[str]]] = []
    # dataset-wide milestones appear once even if relevant to several entities
    for m in global_milestones:
        if any(is_relevant(m, e) for e in selected):
            members.append((m, None))
    for e in selected:
        for m in e.personal_milestones:
            members.append((m, e.id))

    groups: Dict[str, List[Tuple[Milestone, Optional[str]]]] = {}
    for m, owner in members:
        groups.setdefault(m.date, []).append((m, owner))

    out: List[OverlayMarker] = []
    for date in sorted(groups):
        group = groups[date]
        out.append(OverlayMarker(
            date=date,
            text=", ".join(m.text for m, _ in group),
            color=_marker_color(group, colors, len(selected), neutral_color),
            kind=group[0][0].kind,
        ))
    return out
