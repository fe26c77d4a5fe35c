"""
utils.py
--------
Statistical helpers for the Gm Forecaster.

Contains:
    - norm_inv: inverse standard-normal CDF, used for the P10/P90 z-scores.

norm_inv uses Acklam's rational approximation (relative error < 1.15e-9)
with three regions: lower tail p < 0.02425, central region, and the
mirrored upper tail. The coefficient set is reproduced exactly so the
interval widths match previously published forecasts.

References:
    - Acklam, P.J. (2003). An algorithm for computing the inverse normal
      cumulative distribution function.
"""

import math

_A = (-39.6968302866538, 220.946098424521, -275.928510446969,
      138.357751867269, -30.6647980661472, 2.50662827745924)
_B = (-54.4760987982241, 161.585836858041, -155.698979859887,
      66.8013118877197, -13.2806815528857)
_C = (-7.78489400243029e-03, -0.322396458041136, -2.40075827716184,
      -2.54973253934373, 4.37466414146497, 2.93816398269878)
_D = (7.78469570904146e-03, 0.32246712907004, 2.445134137143,
      3.75440866190742)

P_LOW = 0.02425
P_HIGH = 1 - P_LOW


def _tail(q: float) -> float:
    c1, c2, c3, c4, c5, c6 = _C
    d1, d2, d3, d4 = _D
    return ((((((c1 * q + c2) * q + c3) * q + c4) * q + c5) * q + c6)
            / ((((d1 * q + d2) * q + d3) * q + d4) * q + 1))


def norm_inv(p: float) -> float:
    """
    Inverse standard-normal CDF for p in (0, 1).

    Examples: norm_inv(0.5) = 0, norm_inv(0.1) = -1.2816, norm_inv(0.9) = 1.2816.
    """
    if p < P_LOW:
        return _tail(math.sqrt(-2 * math.log(p)))
    if p <= P_HIGH:
        a1, a2, a3, a4, a5, a6 = _A
        b1, b2, b3, b4, b5 = _B
        q = p - 0.5
        r = q * q
        return ((((((a1 * r + a2) * r + a3) * r + a4) * r + a5) * r + a6) * q
                / (((((b1 * r + b2) * r + b3) * r + b4) * r + b5) * r + 1))
    return -_tail(math.sqrt(-2 * math.log(1 - p)))
