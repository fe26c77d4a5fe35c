"""
reporting.py
------------
Presentation adapters for a ForecastResult.

Implements:
    - Tabular views: history frame, full forecast frame, the published
      "Forecast V3" table, ridge coefficients per layer, summary metrics.
    - CSV export of all tables.
    - Forecast chart: historical Gm, user forecast, V2, V3 and the
      P10-P90 band.

Nothing here feeds back into the forecast; it only reads the result.
"""

import logging
import os
from dataclasses import asdict
from typing import Dict, List

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd

from gm_forecaster.config import EXPORT_COLUMNS
from gm_forecaster.features import FeatureRow
from gm_forecaster.pipeline import ForecastResult

logger = logging.getLogger(__name__)

COLORS = {
    "actual": "#334155",
    "user": "#94A3B8",
    "v2": "#F39C12",
    "v3": "#2563EB",
    "band": "#BFDBFE",
    "p10": "#22C55E",
    "p90": "#EF4444",
}


def _apply_style():
    plt.rcParams.update({
        "figure.facecolor": "white", "axes.facecolor": "#FAFAFA",
        "axes.edgecolor": "#CCCCCC", "axes.grid": True,
        "grid.color": "#E8E8E8", "grid.linewidth": 0.5,
        "font.size": 10, "axes.titlesize": 13, "axes.titleweight": "bold",
        "legend.fontsize": 9, "legend.framealpha": 0.95,
    })


# =========================================================================
# TABLES
# =========================================================================

def rows_to_frame(rows: List[FeatureRow]) -> pd.DataFrame:
    records = []
    for row in rows:
        rec = asdict(row)
        rec["enso_phase"] = row.enso_phase.value
        records.append(rec)
    return pd.DataFrame(records)


def forecast_table(result: ForecastResult) -> pd.DataFrame:
    """The published "Forecast V3" table, values rounded to 2 decimals."""
    df = rows_to_frame(result.forecast)[list(EXPORT_COLUMNS)]
    for col in ("final_v3", "p10", "p90", "user_forecast"):
        df[col] = df[col].round(2)
    return df.rename(columns=EXPORT_COLUMNS)


def coefficient_table(result: ForecastResult) -> pd.DataFrame:
    return pd.DataFrame(result.models.get_coefficients()).T


def metrics_table(metrics: Dict[str, float]) -> pd.DataFrame:
    return pd.DataFrame(list(metrics.items()), columns=["Metric", "Value"])


def export_csv(result: ForecastResult, out_dir: str) -> Dict[str, str]:
    """Writes all tables under `out_dir`; returns name -> path."""
    os.makedirs(out_dir, exist_ok=True)
    paths = {
        "forecast_v3": os.path.join(out_dir, "Gm_Forecast_V3.csv"),
        "forecast_full": os.path.join(out_dir, "Gm_Forecast_Full.csv"),
        "history": os.path.join(out_dir, "Gm_History.csv"),
        "coefficients": os.path.join(out_dir, "Gm_Ridge_Coefficients.csv"),
        "metrics": os.path.join(out_dir, "Gm_Summary_Metrics.csv"),
    }
    forecast_table(result).to_csv(paths["forecast_v3"], index=False)
    rows_to_frame(result.forecast).to_csv(paths["forecast_full"], index=False)
    rows_to_frame(result.history).to_csv(paths["history"], index=False)
    coefficient_table(result).to_csv(paths["coefficients"])
    metrics_table(result.metrics).to_csv(paths["metrics"], index=False)
    for name, fp in paths.items():
        logger.info("CSV saved (%s): %s", name, fp)
    return paths


# =========================================================================
# VISUALIZATION
# =========================================================================

def plot_forecast(result: ForecastResult, out_dir: str) -> str:
    _apply_style()
    hist = rows_to_frame(result.history)
    fc = rows_to_frame(result.forecast)

    fig, ax = plt.subplots(figsize=(15, 7))
    ax.plot(hist["date"], hist["actual_value"], color=COLORS["actual"],
            linewidth=2.2, label="Historical Gm")
    ax.fill_between(fc["date"], fc["p10"], fc["p90"], color=COLORS["band"],
                    alpha=0.5, label="P10-P90")
    ax.plot(fc["date"], fc["p90"], color=COLORS["p90"], linewidth=0.8, linestyle=":")
    ax.plot(fc["date"], fc["p10"], color=COLORS["p10"], linewidth=0.8, linestyle=":")
    ax.plot(fc["date"], fc["user_forecast"], color=COLORS["user"], linewidth=2,
            linestyle="--", label="User Forecast")
    ax.plot(fc["date"], fc["model_v2"], color=COLORS["v2"], linewidth=1.2,
            alpha=0.7, label="Model V2")
    ax.plot(fc["date"], fc["final_v3"], color=COLORS["v3"], linewidth=2.8,
            label="V3 (Recommended)")

    first, last = fc["month_key"].iloc[0], fc["month_key"].iloc[-1]
    ax.set_title(f"Gm Tariff Forecast ({first} to {last})")
    ax.set_ylabel("COP / kWh")
    ax.legend(loc="upper left", ncol=3)

    plt.tight_layout()
    os.makedirs(out_dir, exist_ok=True)
    fp = os.path.join(out_dir, "Gm_Forecast_V3.png")
    plt.savefig(fp, dpi=150, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    logger.info("Forecast chart saved: %s", fp)
    return fp
