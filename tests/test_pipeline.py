import math

import numpy as np
import pandas as pd
import pytest

from conftest import exog_record
from gm_forecaster.errors import ForecastError, InputShapeError
from gm_forecaster.features import EnsoPhase
from gm_forecaster.pipeline import run_forecast, summarize_forecast
from gm_forecaster.reporting import export_csv, forecast_table, plot_forecast


def test_constant_inputs_reproduce_constant(constant_inputs):
    result = run_forecast(*constant_inputs)
    assert len(result.history) == 12
    assert len(result.forecast) == 12
    for row in result.forecast:
        assert row.model_v2 == pytest.approx(300.0)
        assert row.consensus == pytest.approx(300.0)
        assert row.final_v3 == pytest.approx(300.0)
        # no historical dispersion and no disagreement: collapsed band
        assert row.p10 == pytest.approx(300.0)
        assert row.p90 == pytest.approx(300.0)
        assert row.p10 <= row.final_v3 <= row.p90
    assert result.metrics["diff_v3_vs_user_percent"] == pytest.approx(0.0, abs=1e-9)


def test_dispersed_history_gives_symmetric_band(constant_inputs):
    regional, exog_hist, exog_proj, prior = constant_inputs
    regional = [dict(r, Gm_Promedio=280.0 if i % 2 else 320.0) for i, r in enumerate(regional)]
    result = run_forecast(regional, exog_hist, exog_proj, prior)
    for row in result.forecast:
        assert row.final_v3 == pytest.approx(300.0)
        assert row.p10 < 300.0 < row.p90
        assert 300.0 - row.p10 == pytest.approx(row.p90 - 300.0)


def test_varied_run_invariants(varied_inputs):
    result = run_forecast(*varied_inputs)
    assert len(result.forecast) == 72
    assert set(result.models.phase_layers) == set(EnsoPhase)
    keys = [r.month_key for r in result.forecast]
    assert keys == sorted(keys)
    for row in result.forecast:
        assert 180.0 <= row.model_v2 <= 900.0
        assert row.p10 >= 150.0
        assert row.p90 <= 1500.0

    m = result.metrics
    v3 = np.mean([r.final_v3 for r in result.forecast])
    user = np.mean([r.user_forecast for r in result.forecast])
    assert m["v3_mean"] == pytest.approx(v3)
    assert m["user_mean"] == pytest.approx(user)
    assert m["diff_v3_vs_user_percent"] == pytest.approx((v3 - user) / user * 100)
    assert set(m) == {"v2_mean", "user_mean", "consensus_mean", "v3_mean",
                      "diff_v3_vs_user_percent"}


def test_small_phase_falls_back_to_general(constant_inputs):
    regional, exog_hist, exog_proj, prior = constant_inputs
    exog_hist = [dict(r, **{"Fase ENSO": "La Niña"}) if i < 10 else r
                 for i, r in enumerate(exog_hist)]
    result = run_forecast(regional, exog_hist, exog_proj, prior)
    assert result.models.phase_layers == {}


def test_missing_prior_forecast_defaults_to_zero(constant_inputs):
    regional, exog_hist, exog_proj, _ = constant_inputs
    result = run_forecast(regional, exog_hist, exog_proj, [])
    assert all(r.user_forecast == 0.0 for r in result.forecast)
    assert math.isnan(result.metrics["diff_v3_vs_user_percent"])


def test_no_projection_months_is_fatal(constant_inputs):
    regional, exog_hist, _, prior = constant_inputs
    with pytest.raises(InputShapeError):
        run_forecast(regional, exog_hist, [exog_record("2025-12-01")], prior)


def test_no_history_is_fatal(constant_inputs):
    _, exog_hist, exog_proj, prior = constant_inputs
    with pytest.raises(ForecastError, match="No overlapping historical data"):
        run_forecast([{"Fecha": "2030-01-01", "Gm_Promedio": 1.0}], exog_hist, exog_proj, prior)


def test_summarize_forecast(constant_inputs):
    result = run_forecast(*constant_inputs)
    assert summarize_forecast(result.forecast) == result.metrics


class TestReporting:
    def test_forecast_table_columns(self, varied_inputs):
        table = forecast_table(run_forecast(*varied_inputs))
        assert list(table.columns) == ["Fecha", "Gm V3 (P50)", "Gm P10", "Gm P90",
                                       "Gm User", "ENSO Phase"]
        assert table["Fecha"].iloc[0] == "2026-01"
        assert set(table["ENSO Phase"]) <= {"LaNina", "ElNino", "Neutral"}

    def test_export_and_plot(self, varied_inputs, tmp_path):
        result = run_forecast(*varied_inputs)
        paths = export_csv(result, str(tmp_path))
        for fp in paths.values():
            assert pd.read_csv(fp).shape[0] > 0
        coefs = pd.read_csv(paths["coefficients"], index_col=0)
        assert "General" in coefs.index
        assert plot_forecast(result, str(tmp_path)).endswith(".png")
        assert (tmp_path / "Gm_Forecast_V3.png").stat().st_size > 0
