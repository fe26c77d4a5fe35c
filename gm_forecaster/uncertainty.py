"""
uncertainty.py
--------------
P10/P90 bands around the V3 forecast.

Volatility per projection month i (horizon h = i + 1 months):

    disagreement = |user - consensus| / V3            (V3 = 0 -> divide by 1)
    vol_base     = V3 * (0.35 * vol_hist + 0.65 * disagreement) * 0.85
    vol          = vol_base * sqrt(h / 12)

    P10 = max(150,  V3 + z(0.10) * vol)
    P90 = min(1500, V3 + z(0.90) * vol)

vol_hist is the coefficient of variation of the historical target
(population std / mean). The square-root horizon factor is the usual
random-walk scaling of forecast error with lead time.

KNOWN LIMITATION:
    The floor and cap are applied independently of V3, so extreme inputs
    can produce P10 > V3 or P90 < V3. Such months are logged, not altered.
"""

import logging
import math
from dataclasses import replace
from typing import List, Tuple

import numpy as np

from gm_forecaster.config import (
    HORIZON_SCALE_MONTHS, LOWER_QUANTILE, P10_FLOOR, P90_CAP, UPPER_QUANTILE,
    VOL_DAMPING, VOL_DISAGREEMENT_WEIGHT, VOL_HIST_WEIGHT,
)
from gm_forecaster.features import FeatureRow
from gm_forecaster.utils import norm_inv

logger = logging.getLogger(__name__)


def historical_volatility(history: List[FeatureRow]) -> Tuple[float, float, float]:
    """Returns (mean, population std, std / mean) of the historical target."""
    y = np.asarray([r.actual_value for r in history], dtype=float)
    hist_mean = float(y.mean())
    hist_std = float(y.std())
    if hist_mean == 0:
        logger.warning("Historical mean is 0: historical volatility set to 0.")
        return hist_mean, hist_std, 0.0
    return hist_mean, hist_std, hist_std / hist_mean


def estimate_intervals(forecast: List[FeatureRow], history: List[FeatureRow]) -> List[FeatureRow]:
    """Returns copies of the ensemble rows with p10 / p90 populated."""
    hist_mean, hist_std, vol_hist = historical_volatility(history)
    z10 = norm_inv(LOWER_QUANTILE)
    z90 = norm_inv(UPPER_QUANTILE)
    logger.debug("Intervals: hist_mean=%.3f hist_std=%.3f vol_hist=%.4f z=(%.4f, %.4f)",
                 hist_mean, hist_std, vol_hist, z10, z90)

    out = []
    n_unbracketed = 0
    for i, row in enumerate(forecast):
        v3 = row.final_v3
        disagreement = abs(row.user_forecast - row.consensus) / (v3 or 1)
        vol_base = v3 * (VOL_HIST_WEIGHT * vol_hist
                         + VOL_DISAGREEMENT_WEIGHT * disagreement) * VOL_DAMPING
        vol = vol_base * math.sqrt((i + 1) / HORIZON_SCALE_MONTHS)

        p10 = max(P10_FLOOR, v3 + z10 * vol)
        p90 = min(P90_CAP, v3 + z90 * vol)
        if not p10 <= v3 <= p90:
            n_unbracketed += 1
        out.append(replace(row, p10=p10, p90=p90))

    if n_unbracketed:
        logger.warning("%d month(s) have P10/P90 bounds that do not bracket V3.",
                       n_unbracketed)
    return out
