"""
DebtLens Command Line Interface (CLI)
=====================================

This file provides the interactive terminal program you run like:

    python -m debtlens.cli --legislators legisladores.json --officials funcionarios.json

It demonstrates:
- Argument parsing (argparse)
- A REPL loop (Read-Eval-Print Loop) for commands
- Mapping user commands to engine methods (search, toggle, mode, series, milestones)

The CLI DOES NOT modify the dataset files. It only loads them once and works on
an in-memory selection of entities.
"""

from __future__ import annotations
import argparse, shlex
import logging
from typing import List, Optional
from .config import EngineConfig, VALUATION_MODES
from .engine import DebtLens
from .indices import facet_values, filter_entities
from .loader import DatasetError, load_dataset
from .models import Entity

logger = logging.getLogger(__name__)

HELP = """
Commands:
  help
  stats
  list [n]

  search "<name>"
  filter office|district|party "<value>"
  values office|district|party
  reset                            (clear search and filters)

  toggle <slug>                    (select / deselect, up to the selection limit)
  clear
  selected

  mode nominal|real|usd
  series [n]
  milestones
  url

  export csv "<path.csv>"
  export json "<path.json>"
  quit
"""


class Session:
    """Directory filters for the REPL (search term + facets)."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.search = ""
        self.facets = {"office": None, "district": None, "affiliation": None}

    def visible(self, engine: DebtLens) -> List[Entity]:
        return filter_entities(engine.entities, engine.idx, search=self.search, **self.facets)


def build_engine(args: argparse.Namespace) -> DebtLens:
    meta, entities = load_dataset(args.legislators, args.officials, args.inflation, args.fx)
    config = EngineConfig.from_env()
    engine = DebtLens(entities=entities, meta=meta, config=config,
                      on_selection_limit=lambda _id: print(
                          f"Selection limit reached ({config.max_selection}). Remove an entity first."))
    if args.query:
        engine.restore(args.query)
    if args.mode:
        engine.set_mode(args.mode)
    return engine


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the DebtLens CLI.

    1) Load + merge both documents
    2) Restore the selection from a query string (optional)
    3) Start an interactive REPL
    """
    ap = argparse.ArgumentParser(prog="debtlens")
    ap.add_argument("--legislators", required=True, help="Path to the legislators JSON document")
    ap.add_argument("--officials", help="Path to the officials JSON document")
    ap.add_argument("--inflation", help="Inflation index table (.json, .csv or .xlsx)")
    ap.add_argument("--fx", help="Exchange-rate table (.json, .csv or .xlsx)")
    ap.add_argument("--query", help='Shared-link query string, e.g. "compare=juan-perez,ana-gomez"')
    ap.add_argument("--mode", choices=VALUATION_MODES, help="Initial valuation mode")
    ap.add_argument("--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    print("Loading dataset...")
    try:
        engine = build_engine(args)
    except (OSError, DatasetError) as e:
        print(f"Could not load dataset: {e}")
        return 1
    session = Session()

    print(f"Loaded {len(engine.entities)} entities. Type 'help' for commands.")
    while True:
        try:
            line = input("debtlens> ")
        except EOFError:
            break
        if not line.strip():
            continue
        if line.strip().lower() in ("quit", "exit"):
            break
        try:
            handle(engine, session, line)
        except Exception as e:
            logger.debug("Command failed: %s", line, exc_info=True)
            print(f"Error: {e}")
    return 0


def handle(engine: DebtLens, session: Session, line: str) -> None:
    """Handle one CLI command line.

    This parses the command and calls the appropriate engine method.
    """
    parts = shlex.split(line)
    cmd = parts[0].lower()

    if cmd == "help":
        print(HELP)
        return

    if cmd == "stats":
        print(f"Entities: {len(engine.entities)} | Visible: {len(session.visible(engine))}")
        print(f"Offices: {len(engine.idx.by_office)} | Districts: {len(engine.idx.by_district)} | Blocs: {len(engine.idx.by_affiliation)}")
        print(f"Global milestones: {len(engine.meta.global_milestones)} | "
              f"Inflation months: {len(engine.meta.inflation_index)} | FX months: {len(engine.meta.fx_index)}")
        print(f"Selected: {len(engine.state.entries)}/{engine.config.max_selection} | Mode: {engine.state.mode}")
        return

    if cmd == "list":
        n = int(parts[1]) if len(parts) >= 2 else 20
        rows = session.visible(engine)
        _print_entities(engine, rows[:n])
        if len(rows) > n:
            print(f"... ({len(rows)} total, showing {n})")
        return

    if cmd == "search":
        session.search = parts[1] if len(parts) >= 2 else ""
        print(f"Search={session.search!r}. Visible={len(session.visible(engine))}")
        return

    if cmd == "filter":
        if len(parts) < 3:
            raise ValueError('usage: filter office|district|party "<value>"')
        facet = _facet(parts[1])
        session.facets[facet] = parts[2]
        print(f"Filtered {facet}={parts[2]}. Visible={len(session.visible(engine))}")
        return

    if cmd == "values":
        if len(parts) < 2:
            raise ValueError("usage: values office|district|party")
        vals = facet_values(engine.idx, _facet(parts[1]))
        for v in vals[:50]:
            print(v)
        if len(vals) > 50:
            print(f"... ({len(vals)} total, showing 50)")
        return

    if cmd == "reset":
        session.reset()
        print("Search and filters cleared.")
        return

    if cmd == "toggle":
        if len(parts) < 2:
            raise ValueError("usage: toggle <slug>")
        e = engine.entity(parts[1])
        was_selected = any(s.entity_id == e.id for s in engine.state.entries)
        if engine.toggle(e.slug):
            print(f"{'Removed' if was_selected else 'Added'} {e.display_name}.")
        return

    if cmd == "clear":
        engine.clear()
        print("Selection cleared.")
        return

    if cmd == "selected":
        if not engine.state.entries:
            print("Nothing selected.")
        for s, e in zip(engine.state.entries, engine.selected_entities()):
            print(f"{s.color}  {e.slug}  {e.display_name}")
        return

    if cmd == "mode":
        if len(parts) < 2:
            print(f"Mode: {engine.state.mode}")
            return
        engine.set_mode(parts[1])
        print(f"Mode set to {engine.state.mode}.")
        return

    if cmd == "series":
        n = int(parts[1]) if len(parts) >= 2 else 24
        rows = engine.series()
        if not rows:
            print("No data (select at least one entity with debt records).")
            return
        print(f"{len(rows)} months. Showing last {min(n, len(rows))}:")
        for row in rows[-n:]:
            cells = []
            for e in engine.selected_entities():
                v = row.totals.get(e.id)
                cells.append(f"{e.slug}=" + ("-" if v is None else _money(v)))
            print(f"{row.date} | " + " | ".join(cells))
        return

    if cmd == "milestones":
        markers = engine.overlay()
        if not markers:
            print("No milestones for the current selection.")
        for m in markers:
            print(f"{m.date} [{m.kind}] {m.color} {m.text}")
        return

    if cmd == "url":
        q = engine.query_string()
        print(f"?{q}" if q else "(empty selection: no query parameter)")
        return

    if cmd == "export":
        # export <csv|json> "<path>"
        if len(parts) < 3:
            print('Usage: export csv "out.csv"  OR  export json "out.json"')
            return
        fmt = parts[1].lower()
        out_path = parts[2]
        if not engine.state.entries:
            print("Nothing to export: current selection is empty.")
            return
        if fmt == "csv":
            engine.export_csv(out_path)
            print(f"Exported CSV to {out_path}")
            return
        if fmt == "json":
            engine.export_json(out_path)
            print(f"Exported JSON to {out_path}")
            return
        print("Unknown export format. Use: csv or json")
        return

    print("Unknown command. Type 'help'.")


def _facet(name: str) -> str:
    n = name.lower()
    if n in ("party", "bloc", "affiliation"):
        return "affiliation"
    if n in ("office", "district"):
        return n
    raise ValueError("facet must be: office, district, party")


def _money(v) -> str:
    return f"${v:,.0f}k"


def _print_entities(engine: DebtLens, rows: List[Entity]) -> None:
    selected = {s.entity_id for s in engine.state.entries}
    for e in rows:
        mark = "*" if e.id in selected else " "
        details = " | ".join(x for x in (e.office, e.district, e.affiliation, e.unit) if x)
        print(f"{mark} {e.slug:<30} {e.display_name}" + (f" ({details})" if details else ""))


if __name__ == "__main__":
    raise SystemExit(main())
