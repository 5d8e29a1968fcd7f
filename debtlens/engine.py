"""
Core engine (DebtLens)
======================

This is the heart of the project. DebtLens works like a tiny offline
"comparison engine":

1) Load both registry documents -> merged, slugged Entity list (immutable)
2) Build indices -> fast facet lookups for the entity directory
3) Maintain a *current state*: the selection (<= 4 colored entities) and the
   valuation mode (SelectionState)
4) Toggle entities / switch mode to update the state
5) Derive the chart outputs from the current state:
   - series():  per-month totals per selected entity (currency-adjusted)
   - overlay(): reconciled milestone markers per month

Derived outputs are never patched in place. They are recomputed from the state
and cached by (selection, mode, dataset version); only the latest inputs are
kept, and callers get their own list of immutable rows.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
import json
import logging
import pandas as pd
from .config import EngineConfig
from .currency import CurrencyNormalizer, check_mode
from .indices import Indices, build_indices
from .milestones import OverlayMarker, reconcile
from .models import DatasetMeta, Entity
from . import selection as sel
from .series import SeriesRow, aggregate, to_frame

logger = logging.getLogger(__name__)


@dataclass
class SelectionState:
    """Holds the current selection and valuation mode."""
    entries: sel.Selection = ()
    mode: str = "nominal"
    # set when the last toggle was rejected; the UI decides how long to show it
    limit_reached: bool = False


@dataclass
class DebtLens:
    """Debt exposure comparison engine.

    The engine stores:
    - entities: the resolved (merged + slugged) entity list
    - meta: global milestones and the inflation / FX tables
    - idx: facet indices for the entity directory
    - state: current selection and valuation mode
    """
    entities: List[Entity]
    meta: DatasetMeta = field(default_factory=DatasetMeta)
    config: EngineConfig = field(default_factory=EngineConfig)
    # called once per rejected toggle
    on_selection_limit: Optional[Callable[[str], None]] = None
    idx: Indices = field(init=False)
    state: SelectionState = field(init=False)
    dataset_version: int = field(default=0, init=False)

    _by_id: Dict[str, Entity] = field(default_factory=dict, init=False, repr=False)
    _by_slug: Dict[str, Entity] = field(default_factory=dict, init=False, repr=False)
    # one slot per output name: (key, value) for the latest inputs only
    _cache: Dict[str, Tuple[Tuple[Any, ...], Any]] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.state = SelectionState(mode=check_mode(self.config.default_mode))
        self._index()

    def _index(self) -> None:
        self.idx = build_indices(self.entities)
        self._by_id = {e.id: e for e in self.entities}
        self._by_slug = {e.slug: e for e in self.entities}
        self._cache.clear()

    # ---------------- Dataset ----------------
    def replace_dataset(self, entities: List[Entity], meta: Optional[DatasetMeta] = None) -> None:
        """Swap in a new dataset snapshot; selected entities that vanished are dropped."""
        self.entities = entities
        if meta is not None:
            self.meta = meta
        self.dataset_version += 1
        self._index()
        kept = tuple(s for s in self.state.entries if s.entity_id in self._by_id)
        self.state = SelectionState(entries=kept, mode=self.state.mode)
        logger.info("Dataset replaced (version %d, %d entities)", self.dataset_version, len(entities))

    def entity(self, ref: str) -> Entity:
        """Look up an entity by slug or id (slugs win: they are what users type)."""
        e = self._by_slug.get(ref) or self._by_id.get(ref)
        if e is None:
            raise ValueError(f"Unknown entity: {ref}")
        return e

    # ---------------- Selection ----------------
    def toggle(self, ref: str) -> bool:
        """Select / deselect an entity. Returns False when rejected by the cap."""
        e = self.entity(ref)
        res = sel.toggle(self.state.entries, e.id, self.config.max_selection, self.config.palette)
        self.state = SelectionState(entries=res.selection, mode=self.state.mode, limit_reached=res.limit_reached)
        if res.limit_reached:
            logger.info("Selection limit (%d) reached; %s not added", self.config.max_selection, e.slug)
            if self.on_selection_limit is not None:
                self.on_selection_limit(e.id)
        return res.changed

    def clear(self) -> None:
        self.state = SelectionState(entries=sel.clear(), mode=self.state.mode)

    def selected_entities(self) -> List[Entity]:
        return [self._by_id[s.entity_id] for s in self.state.entries]

    def restore(self, query: sel.QueryInput) -> None:
        """Initialize the selection from a URL query string (or parsed mapping)."""
        entries = sel.from_query(query, self.entities, self.config.query_params,
                                 self.config.max_selection, self.config.palette)
        self.state = SelectionState(entries=entries, mode=self.state.mode)
        logger.debug("Restored selection: %s", [s.entity_id for s in entries])

    def query_string(self, base_query: sel.QueryInput = None) -> str:
        return sel.to_query(base_query, self.state.entries, self.entities, self.config.query_params)

    # ---------------- Valuation ----------------
    def set_mode(self, mode: str) -> None:
        m = check_mode(mode)
        if m != self.state.mode:
            logger.debug("Valuation mode %s -> %s", self.state.mode, m)
        self.state = SelectionState(entries=self.state.entries, mode=m, limit_reached=self.state.limit_reached)

    def normalizer(self) -> CurrencyNormalizer:
        return CurrencyNormalizer(self.state.mode, self.meta.inflation_index, self.meta.fx_index)

    # ---------------- Derived outputs ----------------
    def _key(self) -> Tuple[Any, ...]:
        return (self.state.entries, self.state.mode, self.dataset_version)

    def _memo(self, name: str, build: Callable[[], Any]) -> Any:
        key = self._key()
        hit = self._cache.get(name)
        if hit is None or hit[0] != key:
            hit = (key, build())
            self._cache[name] = hit
        return hit[1]

    def series(self) -> List[SeriesRow]:
        return list(self._memo("series", lambda: aggregate(self.selected_entities(), self.normalizer())))

    def frame(self) -> pd.DataFrame:
        ids = [s.entity_id for s in self.state.entries]
        return self._memo("frame", lambda: to_frame(self.series(), ids)).copy()

    def overlay(self) -> List[OverlayMarker]:
        return list(self._memo("overlay", lambda: reconcile(
            self.meta.global_milestones,
            self.selected_entities(),
            sel.colors_by_entity(self.state.entries),
            self.config.neutral_color,
        )))

    # ---------------- Export ----------------
    def export_csv(self, path: str) -> None:
        """Wide CSV: one column per selected entity (by slug), blank where no data."""
        frame = self.frame()
        frame.columns = [self._by_id[c].slug for c in frame.columns]
        frame.to_csv(path, encoding="utf-8")

    def export_json(self, path: str) -> None:
        """Export the current series and overlay to a JSON file.

        CSV is great for spreadsheets; JSON keeps the per-institution detail.
        """
        payload = {
            "mode": self.state.mode,
            "selection": [
                {"id": s.entity_id, "slug": self._by_id[s.entity_id].slug, "color": s.color}
                for s in self.state.entries
            ],
            "series": [
                {
                    "date": row.date,
                    "totals": dict(row.totals),
                    "details": {
                        eid: [
                            {"institution": r.source_institution, "amount": r.amount, "risk_category": r.risk_category}
                            for r in recs
                        ]
                        for eid, recs in row.details.items()
                    },
                }
                for row in self.series()
            ],
            "milestones": [
                {"date": m.date, "text": m.text, "color": m.color, "kind": m.kind}
                for m in self.overlay()
            ],
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
