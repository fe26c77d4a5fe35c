"""
pipeline.py
-----------
Top-level entry point of the forecasting engine.

run_forecast() is a pure function of the four input record sets:

    1. Historical alignment (regional target x historical exogenous)
    2. Projection alignment (projected exogenous x prior user forecast)
    3. Layer 1 / layer 2 ridge training
    4. Ensemble: V2 -> consensus -> V3
    5. P10 / P90 intervals
    6. Summary metrics

Any fatal condition surfaces as a ForecastError subclass; no partial
result is returned.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

import numpy as np

from gm_forecaster.config import SOURCE_COLUMNS
from gm_forecaster.data_loader import (
    Record, build_historical_set, build_prior_forecast_lookup, build_projection_set,
)
from gm_forecaster.ensemble import ensemble_forecast
from gm_forecaster.features import FeatureRow
from gm_forecaster.models import ModelBundle, train_models
from gm_forecaster.uncertainty import estimate_intervals

logger = logging.getLogger(__name__)


@dataclass
class ForecastResult:
    history: List[FeatureRow]
    forecast: List[FeatureRow]
    metrics: Dict[str, float]
    models: ModelBundle


def summarize_forecast(forecast: List[FeatureRow]) -> Dict[str, float]:
    """Means of user / V2 / consensus / V3 and the V3-vs-user gap in percent."""
    def _mean(field):
        return float(np.mean([getattr(r, field) for r in forecast]))

    user_mean = _mean("user_forecast")
    v3_mean = _mean("final_v3")
    if user_mean == 0:
        logger.warning("User forecast mean is 0: V3 vs user difference undefined.")
        diff = float("nan")
    else:
        diff = (v3_mean - user_mean) / user_mean * 100
    return {
        "v2_mean": _mean("model_v2"),
        "user_mean": user_mean,
        "consensus_mean": _mean("consensus"),
        "v3_mean": v3_mean,
        "diff_v3_vs_user_percent": diff,
    }


def run_forecast(
    regional: Iterable[Record],
    exog_historical: Iterable[Record],
    exog_projected: Iterable[Record],
    prior_forecast: Iterable[Record],
    columns: Mapping[str, str] = SOURCE_COLUMNS,
) -> ForecastResult:
    """
    Runs the full forecast on already-loaded row records.

    Raises
    ------
    InputShapeError
        No historical overlap, or no projection months.
    ModelTrainingError
        A ridge layer hit a singular normal equation.
    """
    history = build_historical_set(regional, exog_historical, columns=columns)
    lookup = build_prior_forecast_lookup(prior_forecast, columns=columns)
    projection = build_projection_set(exog_projected, lookup, columns=columns)

    bundle = train_models(history)
    forecast = estimate_intervals(ensemble_forecast(projection, bundle), history)
    metrics = summarize_forecast(forecast)

    logger.info(
        "Forecast complete: %d months | user=%.2f V2=%.2f consensus=%.2f "
        "V3=%.2f (%+.1f%% vs user)",
        len(forecast), metrics["user_mean"], metrics["v2_mean"],
        metrics["consensus_mean"], metrics["v3_mean"],
        metrics["diff_v3_vs_user_percent"],
    )
    return ForecastResult(history=history, forecast=forecast,
                          metrics=metrics, models=bundle)
