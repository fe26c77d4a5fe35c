from datetime import datetime

import numpy as np
import pandas as pd
import pytest

from conftest import exog_record
from gm_forecaster.features import (
    EnsoPhase, FeatureRow, classify_enso_phase, coerce_number, feature_matrix,
    parse_date, to_month_key, transform_row,
)


class TestParseDate:
    def test_serial_epoch(self):
        assert parse_date(25569) == pd.Timestamp("1970-01-01")

    def test_serial_late_2025(self):
        assert to_month_key(parse_date(45962)) == "2025-11"
        assert to_month_key(parse_date(45992)) == "2025-12"

    def test_fractional_serial(self):
        assert parse_date(45992.75).month == 12

    def test_month_key_text_with_day_appended(self):
        d = parse_date("2026-03" + "-01")
        assert (d.year, d.month) == (2026, 3)

    def test_native_dates(self):
        assert parse_date(datetime(2024, 5, 17)) == pd.Timestamp("2024-05-17")
        assert parse_date(pd.Timestamp("2024-05-01")) == pd.Timestamp("2024-05-01")

    @pytest.mark.parametrize("value", [None, "", "   ", "not a date", float("nan"), True, [2024]])
    def test_unparseable(self, value):
        assert parse_date(value) is None


class TestCoerceNumber:
    @pytest.mark.parametrize("value,expected", [
        (12.5, 12.5), (3, 3.0), ("45%", 45.0), (" 7.25 ", 7.25), (np.float64(2.0), 2.0),
    ])
    def test_numeric(self, value, expected):
        assert coerce_number(value) == expected

    @pytest.mark.parametrize("value", [None, "", "n/a", float("nan"), float("inf"), False, object()])
    def test_zero_fill(self, value):
        assert coerce_number(value) == 0.0


class TestEnsoPhase:
    @pytest.mark.parametrize("label,expected", [
        ("La Niña", EnsoPhase.LA_NINA),
        ("LA NIÑA moderada", EnsoPhase.LA_NINA),
        ("El Niño", EnsoPhase.EL_NINO),
        ("niño débil", EnsoPhase.EL_NINO),
        ("Neutral", EnsoPhase.NEUTRAL),
        ("Nina", EnsoPhase.NEUTRAL),
        (None, EnsoPhase.NEUTRAL),
        (float("nan"), EnsoPhase.NEUTRAL),
    ])
    def test_classification(self, label, expected):
        assert classify_enso_phase(label) is expected

    def test_nina_takes_precedence(self):
        assert classify_enso_phase("Transición Niño/Niña") is EnsoPhase.LA_NINA


class TestTransformRow:
    def test_canonical_row(self):
        rec = exog_record("2024-03-15", gas=2.0, thermal=30.0, reservoir="62%", phase="El Niño")
        row = transform_row(parse_date(rec["Fecha"]), 310.0, rec)
        assert row.date == pd.Timestamp("2024-03-01")
        assert row.month_key == "2024-03"
        assert row.thermal_times_gas == pytest.approx(60.0)
        assert row.reservoir_pct == 62.0
        assert row.enso_phase is EnsoPhase.EL_NINO
        assert row.actual_value == 310.0
        assert row.final_v3 is None

    def test_missing_fields_zero_filled(self):
        row = transform_row(pd.Timestamp("2024-01-01"), 0.0, {"Fecha": "2024-01-01"})
        assert row.feature_vector() == [0.0] * 6
        assert row.enso_phase is EnsoPhase.NEUTRAL

    def test_feature_matrix_shape(self):
        rows = [FeatureRow(date=pd.Timestamp("2024-01-01"), month_key="2024-01", gas_price=1.0),
                FeatureRow(date=pd.Timestamp("2024-02-01"), month_key="2024-02", fx_rate=2.0)]
        X = feature_matrix(rows)
        assert X.shape == (2, 6)
        assert X[0, 0] == 1.0 and X[1, 2] == 2.0
        assert feature_matrix([]).shape == (0, 6)
