"""
filters.py
----------
Temporal smoothing of the consensus and V3 series.

Each function takes an ordered sequence (chronological) and returns a
NEW array; inputs are never modified, so the passes compose by simple
chaining:

    revert_to_mean -> moving_average        (consensus)
    moving_average                          (V3)

KNOWN LIMITATION (centred window):
    The moving average is two-sided: month t is averaged with t-1 and t+1.
    That is acceptable here because it only smooths a forecast path that
    is fully known at publication time; nothing observed is smoothed.
"""

from typing import Sequence, Tuple

import numpy as np
import pandas as pd

from gm_forecaster.config import (
    MEAN_REVERSION_KEEP, MEAN_REVERSION_YEARS, SMOOTHING_WINDOW,
)


def moving_average(values: Sequence[float], window: int = SMOOTHING_WINDOW) -> np.ndarray:
    """
    Centred moving average. Edges use the truncated window (first and last
    months average 2 values for window=3); no padding or wrap-around.
    """
    series = pd.Series(np.asarray(values, dtype=float))
    return series.rolling(window, center=True, min_periods=1).mean().to_numpy()


def revert_to_mean(
    values: Sequence[float],
    years: Sequence[int],
    year_window: Tuple[int, int] = MEAN_REVERSION_YEARS,
    keep: float = MEAN_REVERSION_KEEP,
) -> np.ndarray:
    """
    Shrinks deviations from the window average for months whose calendar
    year lies in `year_window` (inclusive):

        v' = avg + keep * (v - avg)

    Months outside the window are returned unchanged.
    """
    out = np.asarray(values, dtype=float).copy()
    years = np.asarray(years)
    mask = (years >= year_window[0]) & (years <= year_window[1])
    if mask.any():
        avg = out[mask].mean()
        out[mask] = avg + keep * (out[mask] - avg)
    return out
