"""
Dataset loader (JSON documents / index tables -> immutable records)
==================================================================

This module reads the registry JSON documents ("legislators" and "officials")
and the optional inflation / FX index tables, and converts them into the
immutable objects in `models.py`.

Key ideas:
- We try multiple possible key names because the registry exports use Spanish
  keys (cuit, nombre, historial, ...) while hand-written fixtures use English.
- We keep conversion helpers (_to_int/_to_float/_to_str) to safely handle blanks.
- A document that is structurally invalid (no `data` list, an entity without
  its identifier, a repeated identifier) aborts the load with DatasetError.
  Anything else that is malformed is dropped or treated as absent.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import json
import logging
import os
import re
import pandas as pd
from .models import (
    DatasetDocument, DatasetMeta, DebtRecord, Entity, Milestone, OfficePeriod,
    GLOBAL, VOTE, POLITICAL, OFFICE_TITLE, PERSONAL,
)
from .identity import resolve_entities

logger = logging.getLogger(__name__)


class DatasetError(ValueError):
    """Structurally invalid input; the dataset must not be used."""


# Raw key aliases, first match wins
ID_KEYS = ("cuit", "id")
NAME_KEYS = ("nombre", "display_name", "name")
AFFILIATION_KEYS = ("partido", "bloque", "affiliation", "party")
DISTRICT_KEYS = ("distrito", "provincia", "district")
UNIT_KEYS = ("organismo", "unidad", "unit")
OFFICE_KEYS = ("cargo", "office", "position")
PERIOD_KEYS = ("cargos", "periodos", "office_periods")
PERSONAL_KEYS = ("hitos_personales", "personal_milestones")
HISTORY_KEYS = ("historial", "debt_history")
FILES_KEYS = ("pdf_paths", "source_files")
_KNOWN_ENTITY_KEYS = frozenset(
    ID_KEYS + NAME_KEYS + AFFILIATION_KEYS + DISTRICT_KEYS + UNIT_KEYS + OFFICE_KEYS
    + PERIOD_KEYS + PERSONAL_KEYS + HISTORY_KEYS + FILES_KEYS
)

_KIND_ALIASES = {
    "global": GLOBAL,
    "voto": VOTE,
    "vote": VOTE,
    "politico": POLITICAL,
    "político": POLITICAL,
    "political": POLITICAL,
    "personal": PERSONAL,
}

_MONTH_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})(?:-\d{1,2})?(?:$|[T\s])")

DATE_COLUMNS = ("date", "fecha", "month", "mes", "period")
VALUE_COLUMNS = ("value", "valor", "index", "indice", "rate", "tipo_cambio")


# ---------------- Cell converters ----------------
def _to_int(x) -> Optional[int]:
    """Convert a value to int, returning None if missing/invalid."""
    if x is None or isinstance(x, (list, tuple, dict)): return None
    if pd.isna(x): return None
    try: return int(float(x))
    except Exception: return None

def _to_float(x) -> Optional[float]:
    """Convert a value to float, returning None if missing/invalid."""
    if x is None or isinstance(x, (list, tuple, dict)): return None
    if pd.isna(x): return None
    try: return float(x)
    except Exception: return None

def _to_str(x) -> str:
    if x is None or isinstance(x, (list, tuple, dict)): return ""
    if pd.isna(x): return ""
    return str(x).strip()

def _to_amount(x):
    """Keep integral amounts as int so nominal values stay exact."""
    f = _to_float(x)
    if f is None:
        return None
    return int(f) if f.is_integer() else f

def to_month(x) -> Optional[str]:
    """Normalize a date-ish value to 'YYYY-MM' (None if it cannot be read)."""
    if isinstance(x, pd.Timestamp):
        return f"{x.year:04d}-{x.month:02d}"
    s = _to_str(x)
    m = _MONTH_RE.match(s)
    if not m:
        return None
    month = int(m.group(2))
    if not 1 <= month <= 12:
        return None
    return f"{m.group(1)}-{month:02d}"

def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())

def _get(raw: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for k in keys:
        if k in raw:
            return raw[k]
    return None

def _col(df: pd.DataFrame, *names: str) -> str:
    cols = list(df.columns)
    for n in names:
        if n in cols:
            return n
    norm_map = {_norm(c): c for c in cols}
    for n in names:
        nn = _norm(n)
        if nn in norm_map:
            return norm_map[nn]
    raise DatasetError(f"Missing required column. Tried={names}. Available={cols}")


# ---------------- Record parsers ----------------
def parse_milestone(raw: Mapping[str, Any], default_kind: str = GLOBAL) -> Optional[Milestone]:
    date = to_month(_get(raw, ("fecha", "date")))
    if date is None:
        logger.warning("Dropping milestone without a valid date: %r", raw)
        return None
    raw_kind = _to_str(_get(raw, ("tipo", "kind")))
    title = _to_str(_get(raw, ("cargo", "title"))) or None
    if title:
        kind = OFFICE_TITLE
    elif not raw_kind:
        kind = default_kind
    elif raw_kind.lower() in _KIND_ALIASES:
        kind = _KIND_ALIASES[raw_kind.lower()]
    elif raw_kind.lower() == OFFICE_TITLE:
        kind = OFFICE_TITLE
    else:
        # any other tipo names the office the milestone is gated on
        kind, title = OFFICE_TITLE, raw_kind
    return Milestone(
        date=date,
        text=_to_str(_get(raw, ("texto", "text"))),
        color=_to_str(raw.get("color")),
        kind=kind,
        title=title,
    )

def parse_debt_record(raw: Mapping[str, Any], entity_ref: str) -> Optional[DebtRecord]:
    date = to_month(_get(raw, ("fecha", "date")))
    amount = _to_amount(_get(raw, ("monto", "amount")))
    if date is None or amount is None:
        logger.warning("Dropping debt record of %s (date=%r, amount=%r)", entity_ref, date, amount)
        return None
    risk = _to_int(_get(raw, ("situacion", "risk_category")))
    if risk is not None and not 1 <= risk <= 5:
        risk = None
    return DebtRecord(
        entity_ref=entity_ref,
        date=date,
        amount=amount,
        source_institution=_to_str(_get(raw, ("entidad", "source_institution", "institution"))),
        risk_category=risk,
    )

def parse_office_period(raw: Mapping[str, Any]) -> Optional[OfficePeriod]:
    title = _to_str(_get(raw, ("cargo", "title")))
    start = to_month(_get(raw, ("inicio", "desde", "start")))
    if not title or start is None:
        return None
    return OfficePeriod(title=title, start=start, end=to_month(_get(raw, ("fin", "hasta", "end"))))

def _as_list(x) -> List[Any]:
    return list(x) if isinstance(x, (list, tuple)) else []

def parse_entity(raw: Mapping[str, Any]) -> Entity:
    if not isinstance(raw, Mapping):
        raise DatasetError(f"Entity record must be an object, got {type(raw).__name__}")
    entity_id = _to_str(_get(raw, ID_KEYS))
    if not entity_id:
        raise DatasetError(f"Entity record without identifier: {dict(raw)!r:.120}")

    history = []
    for r in _as_list(_get(raw, HISTORY_KEYS)):
        if isinstance(r, Mapping):
            rec = parse_debt_record(r, entity_id)
            if rec is not None:
                history.append(rec)

    personal = []
    for r in _as_list(_get(raw, PERSONAL_KEYS)):
        if isinstance(r, Mapping):
            m = parse_milestone(r, default_kind=PERSONAL)
            if m is not None:
                # personal milestones are personal regardless of their tipo
                personal.append(Milestone(date=m.date, text=m.text, color=m.color, kind=PERSONAL))

    periods = []
    for r in _as_list(_get(raw, PERIOD_KEYS)):
        p = parse_office_period(r) if isinstance(r, Mapping) else None
        if p is not None:
            periods.append(p)

    return Entity(
        id=entity_id,
        display_name=_to_str(_get(raw, NAME_KEYS)),
        office_periods=tuple(periods),
        personal_milestones=tuple(personal),
        debt_history=tuple(history),
        affiliation=_to_str(_get(raw, AFFILIATION_KEYS)) or None,
        district=_to_str(_get(raw, DISTRICT_KEYS)) or None,
        unit=_to_str(_get(raw, UNIT_KEYS)) or None,
        office=_to_str(_get(raw, OFFICE_KEYS)) or None,
        source_files=tuple(_to_str(p) for p in _as_list(_get(raw, FILES_KEYS)) if _to_str(p)),
        extra={k: v for k, v in raw.items() if k not in _KNOWN_ENTITY_KEYS},
    )

def parse_index_table(raw: Any) -> Dict[str, float]:
    """Mapping or list of {date, value} rows -> {YYYY-MM: positive float}."""
    if isinstance(raw, Mapping):
        items = list(raw.items())
    elif isinstance(raw, list):
        items = [(_get(r, DATE_COLUMNS), _get(r, VALUE_COLUMNS)) for r in raw if isinstance(r, Mapping)]
    else:
        return {}
    table: Dict[str, float] = {}
    for k, v in items:
        month = to_month(k)
        value = _to_float(v)
        if month is None or value is None or value <= 0:
            continue
        table[month] = value
    return table


# ---------------- Documents ----------------
def parse_document(payload: Any) -> DatasetDocument:
    """Convert one decoded JSON document into a DatasetDocument."""
    if not isinstance(payload, Mapping) or not isinstance(payload.get("data"), list):
        raise DatasetError("Dataset document must be an object with a 'data' list")
    meta_raw = payload.get("meta") or {}
    globals_raw = _get(meta_raw, ("global_milestones", "hitos_globales")) or []
    milestones = [parse_milestone(m) for m in _as_list(globals_raw) if isinstance(m, Mapping)]
    meta = DatasetMeta(
        generated_at=_to_str(meta_raw.get("generated_at")) or None,
        global_milestones=tuple(m for m in milestones if m is not None),
        inflation_index=parse_index_table(_get(meta_raw, ("inflation_index", "indice_inflacion"))),
        fx_index=parse_index_table(_get(meta_raw, ("fx_index", "tipo_cambio"))),
    )

    entities: List[Entity] = []
    seen = set()
    for raw in payload["data"]:
        e = parse_entity(raw)
        if e.id in seen:
            raise DatasetError(f"Duplicate entity identifier in collection: {e.id}")
        seen.add(e.id)
        entities.append(e)
    return DatasetDocument(meta=meta, entities=tuple(entities))

def load_document(path: str) -> DatasetDocument:
    with open(path, "r", encoding="utf-8") as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as e:
            raise DatasetError(f"{path}: invalid JSON ({e})") from e
    doc = parse_document(payload)
    logger.info("Loaded %d entities from %s", len(doc.entities), path)
    return doc

def merge_meta(a: DatasetMeta, b: Optional[DatasetMeta]) -> DatasetMeta:
    """Combine both documents' meta blocks; A wins, B fills gaps."""
    if b is None:
        return a
    milestones = list(a.global_milestones)
    seen = {(m.date, m.text, m.kind) for m in milestones}
    for m in b.global_milestones:
        if (m.date, m.text, m.kind) not in seen:
            seen.add((m.date, m.text, m.kind))
            milestones.append(m)
    return DatasetMeta(
        generated_at=a.generated_at or b.generated_at,
        global_milestones=tuple(milestones),
        inflation_index={**b.inflation_index, **a.inflation_index},
        fx_index={**b.fx_index, **a.fx_index},
    )


# ---------------- External index tables ----------------
def load_index_table(path: str) -> Dict[str, float]:
    """Load an inflation or FX table from .json, .csv or .xlsx.

    Spreadsheet columns are detected by name (date/fecha/month..., value/valor/rate...).
    """
    ext = os.path.splitext(path)[1].lower()
    if ext == ".json":
        with open(path, "r", encoding="utf-8") as f:
            return parse_index_table(json.load(f))
    if ext in (".xlsx", ".xlsm"):
        df = pd.read_excel(path, engine="openpyxl")
    elif ext == ".csv":
        df = pd.read_csv(path)
    else:
        raise DatasetError(f"Unsupported index table format: {path}")
    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)

    date_col = _col(df, *DATE_COLUMNS)
    value_col = _col(df, *VALUE_COLUMNS)
    table = parse_index_table(dict(zip(df[date_col], df[value_col])))
    logger.info("Loaded %d index values from %s", len(table), path)
    return table


def load_dataset(
    legislators_path: str,
    officials_path: Optional[str] = None,
    inflation_path: Optional[str] = None,
    fx_path: Optional[str] = None,
) -> Tuple[DatasetMeta, List[Entity]]:
    """Load both collections, merge them and assign slugs.

    Returns the combined meta block and the resolved (ordered, slugged) entities.
    """
    doc_a = load_document(legislators_path)
    doc_b = load_document(officials_path) if officials_path else None
    meta = merge_meta(doc_a.meta, doc_b.meta if doc_b else None)
    entities = resolve_entities(doc_a.entities, doc_b.entities if doc_b else ())

    if inflation_path or fx_path:
        meta = DatasetMeta(
            generated_at=meta.generated_at,
            global_milestones=meta.global_milestones,
            inflation_index={**meta.inflation_index, **(load_index_table(inflation_path) if inflation_path else {})},
            fx_index={**meta.fx_index, **(load_index_table(fx_path) if fx_path else {})},
        )
    return meta, entities
