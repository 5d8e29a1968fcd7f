"""Loader tests: key aliases, tolerant conversion and fatal structural errors."""

import json

import pandas as pd
import pytest

from debtlens.loader import (
    DatasetError,
    load_dataset,
    load_index_table,
    parse_document,
    parse_entity,
    parse_milestone,
    to_month,
)
from debtlens.models import OFFICE_TITLE, PERSONAL, POLITICAL, VOTE


class TestToMonth:

    def test_formats(self):
        assert to_month("2024-06") == "2024-06"
        assert to_month("2024-6") == "2024-06"
        assert to_month("2024-06-30") == "2024-06"
        assert to_month(pd.Timestamp("2023-05-01")) == "2023-05"

    def test_invalid(self):
        assert to_month("junio") is None
        assert to_month("2024-13") is None
        assert to_month(None) is None

    def test_trailing_digits_are_rejected(self):
        assert to_month("2024-123") is None
        assert to_month("2024-01x") is None
        assert to_month("2024-01-15T10:00:00") == "2024-01"
        assert to_month("2024-01-15 10:00:00") == "2024-01"


class TestParseEntity:

    def test_spanish_keys(self, legislators_doc):
        e = parse_entity(legislators_doc["data"][0])
        assert e.id == "20326896684"
        assert e.display_name == "Juan Pérez"
        assert e.affiliation == "Bloque A"
        assert e.district == "Córdoba"
        assert e.office == "diputado"
        assert e.unit is None
        assert e.source_files == ("deudores_2024.pdf",)
        assert len(e.debt_history) == 3
        assert e.debt_history[1].source_institution == "BANCO B"
        assert e.debt_history[1].risk_category == 2
        assert e.office_periods[0].title == "Diputado"
        assert e.personal_milestones[0].kind == PERSONAL

    def test_numeric_id_is_kept_as_string(self):
        assert parse_entity({"cuit": 20326896684, "nombre": "X"}).id == "20326896684"

    def test_missing_id_is_fatal(self):
        with pytest.raises(DatasetError):
            parse_entity({"nombre": "Sin CUIT"})

    def test_bad_records_are_dropped(self):
        e = parse_entity({
            "cuit": "1",
            "nombre": "X",
            "historial": [
                {"fecha": "2024-01", "monto": "abc"},
                {"fecha": "no-date", "monto": 1},
                {"fecha": "2024-02", "monto": 7, "situacion": 9},
            ],
            "cargos": [{"cargo": "", "inicio": "2020-01"}, {"cargo": "Senador"}],
        })
        assert [r.date for r in e.debt_history] == ["2024-02"]
        assert e.debt_history[0].risk_category is None
        assert e.office_periods == ()

    def test_missing_optional_fields_are_absent(self):
        e = parse_entity({"cuit": "1", "nombre": "X", "partido": "  ", "distrito": None})
        assert e.affiliation is None
        assert e.district is None
        assert e.office_periods == ()

    def test_unknown_keys_go_to_extra(self):
        e = parse_entity({"cuit": "1", "nombre": "X", "foto": "x.png"})
        assert e.extra == {"foto": "x.png"}


class TestParseMilestone:

    def test_kinds(self):
        assert parse_milestone({"fecha": "2024-01", "texto": "a", "tipo": "voto"}).kind == VOTE
        assert parse_milestone({"fecha": "2024-01", "texto": "a", "tipo": "político"}).kind == POLITICAL
        assert parse_milestone({"fecha": "2024-01", "texto": "a"}).kind == "global"

    def test_other_tipo_is_office_title(self):
        m = parse_milestone({"fecha": "2024-01", "texto": "a", "tipo": "Senador"})
        assert m.kind == OFFICE_TITLE
        assert m.title == "Senador"


class TestParseDocument:

    def test_requires_data_list(self):
        with pytest.raises(DatasetError):
            parse_document({"meta": {}})

    def test_duplicate_id_is_fatal(self):
        with pytest.raises(DatasetError):
            parse_document({"data": [{"cuit": "1", "nombre": "a"}, {"cuit": "1", "nombre": "b"}]})

    def test_meta(self, legislators_doc):
        doc = parse_document(legislators_doc)
        assert doc.meta.generated_at == "2024-07-01T00:00:00"
        assert [m.text for m in doc.meta.global_milestones] == ["Ley Bases", "Jura diputados"]
        assert doc.meta.global_milestones[1].title == "diputado"
        assert doc.meta.inflation_index["2024-03"] == 125.0


class TestLoadDataset:

    def test_merges_both_documents(self, dataset_files):
        a, b = dataset_files
        meta, entities = load_dataset(str(a), str(b))
        assert [e.id for e in entities] == ["20326896684", "27111111115", "20999999990"]
        assert entities[0].unit == "Ministerio X"
        assert [e.slug for e in entities] == ["juan-perez", "ana-gomez", "juan-perez-2"]
        # duplicate "Ley Bases" dropped, B's extra milestone appended
        assert [m.text for m in meta.global_milestones] == ["Ley Bases", "Jura diputados", "Decreto"]
        # A wins on overlapping months, B fills the rest
        assert meta.fx_index == {"2024-01": 800.0, "2024-02": 840.0, "2024-03": 860.0}

    def test_invalid_json(self, tmp_path):
        p = tmp_path / "broken.json"
        p.write_text("{not json", encoding="utf-8")
        with pytest.raises(DatasetError):
            load_dataset(str(p))

    def test_external_tables_override(self, dataset_files, tmp_path):
        a, _ = dataset_files
        fx = tmp_path / "fx.json"
        fx.write_text(json.dumps({"2024-01": 900}), encoding="utf-8")
        meta, _ = load_dataset(str(a), fx_path=str(fx))
        assert meta.fx_index["2024-01"] == 900.0
        assert meta.fx_index["2024-02"] == 840.0


class TestLoadIndexTable:

    def test_csv(self, tmp_path):
        p = tmp_path / "ipc.csv"
        p.write_text("Fecha,Valor\n2024-01,100\n2024-02,\n2024-03,-5\n2024-04,130.5\n", encoding="utf-8")
        assert load_index_table(str(p)) == {"2024-01": 100.0, "2024-04": 130.5}

    def test_xlsx(self, tmp_path):
        pytest.importorskip("openpyxl")
        p = tmp_path / "fx.xlsx"
        pd.DataFrame({"month": ["2024-01", "2024-02"], "rate": [800, 840]}).to_excel(p, index=False)
        assert load_index_table(str(p)) == {"2024-01": 800.0, "2024-02": 840.0}

    def test_missing_columns(self, tmp_path):
        p = tmp_path / "bad.csv"
        p.write_text("a,b\n1,2\n", encoding="utf-8")
        with pytest.raises(DatasetError):
            load_index_table(str(p))

    def test_unsupported_extension(self, tmp_path):
        with pytest.raises(DatasetError):
            load_index_table(str(tmp_path / "table.parquet"))
