"""
ensemble.py
-----------
Forecast ensemble for the Gm Forecaster.

Stages, applied to the projection months in chronological order:

    V2         = clip(0.70 * layer1 + 0.30 * layer2, 180, 900)
    consensus  = 0.50 * user + 0.50 * V2
               -> mean reversion (2027-2030) -> centred MA(3)
    V3         = 0.70 * consensus + 0.30 * user
               -> centred MA(3)

ORDERING:
    Smoothing acts on whole sequences, so the order is fixed: mean
    reversion before the consensus moving average, and V3 is derived from
    the smoothed consensus before its own moving average. Every stage
    returns a new array.
"""

import logging
from dataclasses import replace
from typing import List

import numpy as np

from gm_forecaster.config import (
    CONSENSUS_MODEL_WEIGHT, CONSENSUS_USER_WEIGHT, GENERAL_LAYER_WEIGHT,
    MODEL_CLIP, PHASE_LAYER_WEIGHT, V3_CONSENSUS_WEIGHT, V3_USER_WEIGHT,
)
from gm_forecaster.features import FeatureRow, feature_matrix
from gm_forecaster.filters import moving_average, revert_to_mean
from gm_forecaster.models import ModelBundle, select_predictor

logger = logging.getLogger(__name__)


def model_forecast(rows: List[FeatureRow], bundle: ModelBundle) -> np.ndarray:
    """V2: phase/general blend per month, clipped to MODEL_CLIP."""
    if not rows:
        return np.zeros(0)
    X = feature_matrix(rows)
    pred_general = bundle.general.predict(X)

    pred_phase = np.empty(len(rows))
    n_fallback = 0
    for i, row in enumerate(rows):
        predictor = select_predictor(row.enso_phase, bundle)
        if predictor.fallback:
            n_fallback += 1
        pred_phase[i] = predictor.predict(X[i:i + 1])[0]
    if n_fallback:
        logger.debug("V2: %d/%d months used the general model for layer 1.",
                     n_fallback, len(rows))

    blend = PHASE_LAYER_WEIGHT * pred_phase + GENERAL_LAYER_WEIGHT * pred_general
    return np.clip(blend, *MODEL_CLIP)


def consensus_forecast(user: np.ndarray, v2: np.ndarray, years: np.ndarray) -> np.ndarray:
    base = CONSENSUS_USER_WEIGHT * user + CONSENSUS_MODEL_WEIGHT * v2
    return moving_average(revert_to_mean(base, years))


def final_forecast(consensus: np.ndarray, user: np.ndarray) -> np.ndarray:
    return moving_average(V3_CONSENSUS_WEIGHT * consensus + V3_USER_WEIGHT * user)


def ensemble_forecast(rows: List[FeatureRow], bundle: ModelBundle) -> List[FeatureRow]:
    """
    Returns copies of the projection rows with model_v2, consensus and
    final_v3 populated. `rows` must be in chronological order.
    """
    user = np.asarray([r.user_forecast or 0.0 for r in rows], dtype=float)
    years = np.asarray([r.date.year for r in rows])

    v2 = model_forecast(rows, bundle)
    consensus = consensus_forecast(user, v2, years)
    v3 = final_forecast(consensus, user)

    logger.info("Ensemble: %d months | mean V2=%.2f, consensus=%.2f, V3=%.2f",
                len(rows), v2.mean(), consensus.mean(), v3.mean())
    return [
        replace(row, model_v2=float(v2[i]), consensus=float(consensus[i]),
                final_v3=float(v3[i]))
        for i, row in enumerate(rows)
    ]
