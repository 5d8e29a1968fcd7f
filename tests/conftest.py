"""
Shared pytest fixtures for DebtLens tests.

Provides:
- raw registry documents in the exported (Spanish-key) shape
- helpers to build entities without going through files
- the same documents written to a temporary directory
"""

import json
from pathlib import Path
from typing import Any, Dict

import pytest

from debtlens.loader import parse_entity
from debtlens.models import Milestone


def make_entity(entity_id: str, name: str, history=(), **extra: Any):
    """Build a parsed Entity from raw-ish keys (historial is a list of (fecha, monto, entidad))."""
    raw: Dict[str, Any] = {
        "cuit": entity_id,
        "nombre": name,
        "historial": [
            {"fecha": f, "monto": m, "entidad": inst, "situacion": 1} for f, m, inst in history
        ],
    }
    raw.update(extra)
    return parse_entity(raw)


@pytest.fixture
def legislators_doc() -> Dict[str, Any]:
    return {
        "meta": {
            "generated_at": "2024-07-01T00:00:00",
            "hitos_globales": [
                {"fecha": "2024-02", "texto": "Ley Bases", "color": "#ef4444", "tipo": "politico"},
                {"fecha": "2024-04", "texto": "Jura diputados", "color": "#0ea5e9", "tipo": "diputado"},
            ],
            "inflation_index": {"2024-01": 100.0, "2024-02": 110.0, "2024-03": 125.0},
            "fx_index": {"2024-01": 800.0, "2024-02": 840.0},
        },
        "data": [
            {
                "cuit": "20326896684",
                "nombre": "Juan Pérez",
                "partido": "Bloque A",
                "distrito": "Córdoba",
                "cargo": "diputado",
                "cargos": [{"cargo": "Diputado", "inicio": "2023-12", "fin": "2027-12"}],
                "pdf_paths": ["deudores_2024.pdf"],
                "hitos_personales": [
                    {"fecha": "2024-03", "texto": "Compra de auto", "color": "#22c55e"},
                ],
                "historial": [
                    {"entidad": "BANCO A", "fecha": "2024-01", "situacion": 1, "monto": 100},
                    {"entidad": "BANCO B", "fecha": "2024-01", "situacion": 2, "monto": 50},
                    {"entidad": "BANCO A", "fecha": "2024-02", "situacion": 1, "monto": 120},
                ],
            },
            {
                "cuit": "27111111115",
                "nombre": "Ana Gómez",
                "partido": "Bloque B",
                "distrito": "Buenos Aires",
                "cargo": "senador",
                "historial": [
                    {"entidad": "BANCO C", "fecha": "2024-02", "situacion": 3, "monto": 300},
                ],
            },
        ],
    }


@pytest.fixture
def officials_doc() -> Dict[str, Any]:
    return {
        "meta": {
            "generated_at": "2024-07-02T00:00:00",
            "hitos_globales": [
                {"fecha": "2024-02", "texto": "Ley Bases", "color": "#ef4444", "tipo": "politico"},
                {"fecha": "2024-05", "texto": "Decreto", "color": "#a855f7", "tipo": "global"},
            ],
            "fx_index": {"2024-02": 999.0, "2024-03": 860.0},
        },
        "data": [
            {"cuit": "20326896684", "nombre": "Juan Perez", "organismo": "Ministerio X"},
            {
                "cuit": "20999999990",
                "nombre": "Juan Perez",
                "organismo": "Ministerio Y",
                "historial": [{"entidad": "BANCO D", "fecha": "2023-11", "monto": 10}],
            },
        ],
    }


@pytest.fixture
def dataset_files(tmp_path: Path, legislators_doc, officials_doc):
    a = tmp_path / "legisladores.json"
    b = tmp_path / "funcionarios.json"
    a.write_text(json.dumps(legislators_doc, ensure_ascii=False), encoding="utf-8")
    b.write_text(json.dumps(officials_doc, ensure_ascii=False), encoding="utf-8")
    return a, b


@pytest.fixture
def political_milestone() -> Milestone:
    return Milestone(date="2024-02", text="Ley Bases", color="#ef4444", kind="political")
