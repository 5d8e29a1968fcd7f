"""Valuation modes: nominal, inflation-adjusted (real) and dollar (usd)."""

import pytest

from debtlens.currency import CurrencyNormalizer, latest_index_value, normalize_record
from debtlens.models import DebtRecord

INFLATION = {"2024-01": 100.0, "2024-03": 150.0, "2024-02": 120.0}
FX = {"2024-01": 800.0, "2024-02": 0.0}


def rec(date="2024-01", amount=200):
    return DebtRecord(entity_ref="X", date=date, amount=amount, source_institution="BANCO A")


class TestNominal:

    def test_returns_same_record(self):
        r = rec()
        assert CurrencyNormalizer("nominal", INFLATION, FX).record(r) is r

    def test_round_trip_through_other_modes(self):
        r = rec(amount=123)
        for mode in ("real", "usd", "nominal"):
            out = normalize_record(r, mode, INFLATION, FX)
        assert out.amount == 123
        assert isinstance(out.amount, int)


class TestReal:

    def test_latest_is_last_month_not_last_inserted(self):
        assert latest_index_value(INFLATION) == 150.0
        assert latest_index_value({}) is None

    def test_rescales_to_latest(self):
        assert normalize_record(rec("2024-01", 200), "real", INFLATION).amount == pytest.approx(300.0)

    def test_latest_month_is_unchanged(self):
        out = normalize_record(rec("2024-03", 37), "real", INFLATION)
        assert out.amount == 37

    def test_missing_month_keeps_nominal(self):
        assert normalize_record(rec("2023-12", 200), "real", INFLATION).amount == 200

    def test_empty_table_behaves_as_nominal(self):
        n = CurrencyNormalizer("real", {}, FX)
        assert n.effective_mode == "nominal"
        r = rec()
        assert n.record(r) is r


class TestUsd:

    def test_converts_thousands(self):
        assert normalize_record(rec("2024-01", 200), "usd", fx_index=FX).amount == pytest.approx(250.0)

    def test_missing_rate_is_zero(self):
        assert normalize_record(rec("2023-05", 200), "usd", fx_index=FX).amount == 0

    def test_zero_rate_is_zero(self):
        assert normalize_record(rec("2024-02", 200), "usd", fx_index=FX).amount == 0

    def test_fallbacks_differ_from_real(self):
        r = rec("2023-05", 200)
        assert normalize_record(r, "real", INFLATION, FX).amount == 200
        assert normalize_record(r, "usd", INFLATION, FX).amount == 0


def test_unknown_mode():
    with pytest.raises(ValueError):
        CurrencyNormalizer("eur")


def test_mode_is_case_insensitive():
    assert CurrencyNormalizer(" USD ").mode == "usd"
