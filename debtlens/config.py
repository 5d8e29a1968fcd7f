"""Engine configuration (defaults overridable from DEBTLENS_* environment variables)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Tuple

NOMINAL = "nominal"
REAL = "real"
USD = "usd"
VALUATION_MODES = (NOMINAL, REAL, USD)

DEFAULT_PALETTE: Tuple[str, ...] = (
    "#2563eb",  # blue
    "#dc2626",  # red
    "#16a34a",  # green
    "#9333ea",  # purple
    "#ea580c",  # orange
    "#0891b2",  # cyan
)
NEUTRAL_COLOR = "#9ca3af"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    items = tuple(p.strip() for p in raw.split(",") if p.strip())
    return items or default


@dataclass(frozen=True)
class EngineConfig:
    """Knobs for selection size, colors, URL parameters and default valuation."""
    palette: Tuple[str, ...] = DEFAULT_PALETTE
    max_selection: int = 4
    neutral_color: str = NEUTRAL_COLOR
    # newest name first; earlier names win when several are present
    query_params: Tuple[str, ...] = ("compare", "legisladores")
    default_mode: str = NOMINAL

    @classmethod
    def from_env(cls) -> "EngineConfig":
        base = cls()
        mode = os.getenv("DEBTLENS_DEFAULT_MODE", base.default_mode).strip().lower()
        if mode not in VALUATION_MODES:
            mode = base.default_mode
        return cls(
            palette=_env_list("DEBTLENS_PALETTE", base.palette),
            max_selection=max(1, _env_int("DEBTLENS_MAX_SELECTION", base.max_selection)),
            neutral_color=os.getenv("DEBTLENS_NEUTRAL_COLOR", base.neutral_color),
            query_params=_env_list("DEBTLENS_QUERY_PARAMS", base.query_params),
            default_mode=mode,
        )
