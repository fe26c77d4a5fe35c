"""
config.py
---------
Central configuration for the Gm Forecaster.

Defines the calendar cutoffs, ridge penalties, blending weights and
uncertainty parameters of the forecast run, plus the spreadsheet column
layout expected from the four input workbooks.

References:
    - Hoerl, A. & Kennard, R. (1970). Ridge Regression: Biased Estimation
      for Nonorthogonal Problems. Technometrics, 12(1), 55-67.
    - Acklam, P.J. (2003). An algorithm for computing the inverse normal
      cumulative distribution function.
"""

import logging

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Calendar Cutoffs
# ---------------------------------------------------------------------------
# Historical months strictly before HISTORY_CUTOFF are used for training.
# Projection months start at PROJECTION_START; the prior user forecast is
# only read for month keys at or after PRIOR_FORECAST_MIN_KEY.
HISTORY_CUTOFF = "2025-11-01"
PROJECTION_START = "2026-01-01"
PRIOR_FORECAST_MIN_KEY = "2026-01"

# Spreadsheet serial dates count days from 1899-12-30 (serial 25569 is
# 1970-01-01).
SPREADSHEET_EPOCH = "1899-12-30"

# ---------------------------------------------------------------------------
# Features
# ---------------------------------------------------------------------------
# thermal_times_gas = thermal generation share x gas price.
FEATURE_COLUMNS = [
    "gas_price",
    "cpi_index",
    "fx_rate",
    "deficit_pct",
    "hydro_pct",
    "thermal_times_gas",
]

# ---------------------------------------------------------------------------
# Model Layers
# ---------------------------------------------------------------------------
# Layer 1: one ridge per ENSO phase, only when the phase has strictly more
# than PHASE_MIN_SAMPLES historical months.
# Layer 2: one general ridge over the whole history.
PHASE_MIN_SAMPLES = 10
PHASE_RIDGE_ALPHA = 5.0
GENERAL_RIDGE_ALPHA = 3.0

# ---------------------------------------------------------------------------
# Ensemble Weights
# ---------------------------------------------------------------------------
PHASE_LAYER_WEIGHT = 0.70
GENERAL_LAYER_WEIGHT = 0.30
MODEL_CLIP = (180.0, 900.0)

CONSENSUS_USER_WEIGHT = 0.50
CONSENSUS_MODEL_WEIGHT = 0.50

V3_CONSENSUS_WEIGHT = 0.70
V3_USER_WEIGHT = 0.30

# ---------------------------------------------------------------------------
# Temporal Smoothing
# ---------------------------------------------------------------------------
# Consensus deviations from the window average are shrunk by 15% for
# calendar years inside MEAN_REVERSION_YEARS (inclusive).
MEAN_REVERSION_YEARS = (2027, 2030)
MEAN_REVERSION_KEEP = 0.85
SMOOTHING_WINDOW = 3

# ---------------------------------------------------------------------------
# Uncertainty
# ---------------------------------------------------------------------------
VOL_HIST_WEIGHT = 0.35
VOL_DISAGREEMENT_WEIGHT = 0.65
VOL_DAMPING = 0.85
HORIZON_SCALE_MONTHS = 12

LOWER_QUANTILE = 0.10
UPPER_QUANTILE = 0.90
P10_FLOOR = 150.0
P90_CAP = 1500.0

# ---------------------------------------------------------------------------
# Source Column Layout
# ---------------------------------------------------------------------------
# Logical field -> spreadsheet header. The regional file and the previous
# forecast file share the "Gm_Promedio" header for their value column.
SOURCE_COLUMNS = {
    "date": "Fecha",
    "month_key": "Mes_Año",
    "target": "Gm_Promedio",
    "forecast": "Gm_Promedio",
    "gas_price": "Precio_$/m3",
    "cpi_index": "IPC Índice",
    "fx_rate": "TRM",
    "deficit_pct": "Deficit_%",
    "hydro_pct": "Hidráulica (%)",
    "thermal_pct": "Térmica (%)",
    "reservoir_pct": "Embalses SIN %",
    "enso_phase": "Fase ENSO",
}

# Column headers of the published "Forecast V3" table.
EXPORT_COLUMNS = {
    "month_key": "Fecha",
    "final_v3": "Gm V3 (P50)",
    "p10": "Gm P10",
    "p90": "Gm P90",
    "user_forecast": "Gm User",
    "enso_phase": "ENSO Phase",
}
