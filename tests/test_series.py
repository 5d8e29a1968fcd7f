"""Monthly aggregation across institutions and selected entities."""

import math

import pytest

from debtlens.currency import CurrencyNormalizer
from debtlens.series import aggregate, to_frame

from conftest import make_entity


@pytest.fixture
def x():
    return make_entity("X", "Equis", history=[
        ("2024-01", 100, "Banco A"),
        ("2024-01", 50, "Banco B"),
        ("2024-03", 10, "Banco A"),
    ])


@pytest.fixture
def y():
    return make_entity("Y", "Ye", history=[("2024-02", 7, "Banco C"), ("2023-12", 1, "Banco C")])


class TestAggregate:

    def test_same_month_institutions_are_summed(self, x):
        rows = aggregate([x])
        assert rows[0].date == "2024-01"
        assert rows[0].totals == {"X": 150}
        assert [r.source_institution for r in rows[0].details["X"]] == ["Banco A", "Banco B"]

    def test_rows_sorted_by_date(self, x, y):
        rows = aggregate([x, y])
        assert [r.date for r in rows] == ["2023-12", "2024-01", "2024-02", "2024-03"]

    def test_absent_entity_has_no_key(self, x, y):
        rows = {r.date: r for r in aggregate([x, y])}
        assert "Y" not in rows["2024-01"].totals
        assert "X" not in rows["2024-02"].totals
        assert rows["2024-02"].totals == {"Y": 7}

    def test_explicit_zero_is_kept(self):
        z = make_entity("Z", "Zeta", history=[("2024-01", 0, "Banco A")])
        assert aggregate([z])[0].totals == {"Z": 0}

    def test_empty_selection(self):
        assert aggregate([]) == []

    def test_totals_match_normalized_details(self, x):
        n = CurrencyNormalizer("usd", fx_index={"2024-01": 800.0})
        for row in aggregate([x], n):
            for eid, recs in row.details.items():
                assert row.totals[eid] == sum(r.amount for r in recs)
        rows = aggregate([x], n)
        assert rows[0].totals["X"] == pytest.approx(187.5)
        # no FX for 2024-03
        assert rows[1].totals["X"] == 0

    def test_entity_without_history(self, x):
        rows = aggregate([make_entity("W", "W"), x])
        assert all("W" not in r.totals for r in rows)


class TestWorstCategory:

    def test_highest_situacion_wins(self):
        from debtlens.loader import parse_entity
        e = parse_entity({"cuit": "R", "nombre": "R", "historial": [
            {"fecha": "2024-01", "monto": 1, "entidad": "A", "situacion": 1},
            {"fecha": "2024-01", "monto": 1, "entidad": "B", "situacion": 4},
        ]})
        row = aggregate([e])[0]
        assert row.worst_category("R") == 4
        assert row.worst_category("other") is None


class TestFrame:

    def test_wide_frame_with_nan_for_missing(self, x, y):
        frame = to_frame(aggregate([x, y]), ["X", "Y"])
        assert list(frame.columns) == ["X", "Y"]
        assert frame.index.name == "date"
        assert frame.loc["2024-01", "X"] == 150
        assert math.isnan(frame.loc["2024-01", "Y"])

    def test_empty(self):
        frame = to_frame([], ["X"])
        assert frame.empty
        assert list(frame.columns) == ["X"]
