"""
main.py
-------
Command-line runner for the Gm Forecaster.

Pipeline stages:
    1. Load the four input workbooks (CSV / Excel, first sheet)
    2. Align historical and projection months
    3. Train phase (layer 1) and general (layer 2) ridge models
    4. Ensemble V2 -> consensus -> V3 with temporal smoothing
    5. P10 / P90 intervals
    6. CSV export and forecast chart

Usage:
    python main.py --regional hist_gm.xlsx --exog-hist exog_hist.xlsx \
        --exog-proj exog_proj.xlsx --prior-forecast forecast_prev.xlsx \
        [--out-dir outputs] [--no-plot] [--verbose]
"""

import sys
import logging
import argparse
import warnings

warnings.filterwarnings("ignore", category=UserWarning, message=".*tight_layout.*")
warnings.filterwarnings("ignore", category=UserWarning, message=".*infer format.*")

logger = logging.getLogger("gm_forecaster")

from gm_forecaster.data_loader import read_records
from gm_forecaster.errors import ForecastError
from gm_forecaster.pipeline import run_forecast
from gm_forecaster.reporting import export_csv, plot_forecast


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Gm tariff forecaster (Ridge + Consensus)")
    parser.add_argument("--regional", required=True,
                        help="Historical regional Gm file (Fecha, Gm_Promedio)")
    parser.add_argument("--exog-hist", required=True,
                        help="Historical exogenous drivers file")
    parser.add_argument("--exog-proj", required=True,
                        help="Projected exogenous drivers file (from Jan 2026)")
    parser.add_argument("--prior-forecast", required=True,
                        help="Previous user forecast file (Mes_Año, Gm_Promedio)")
    parser.add_argument("--out-dir", default="outputs")
    parser.add_argument("--no-plot", action="store_true", default=False,
                        help="Skip the forecast chart")
    parser.add_argument("--verbose", action="store_true", default=False,
                        help="DEBUG logging (row drops, coefficients)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(name)-18s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M",
    )

    try:
        regional = read_records(args.regional, "Historical Regional")
        exog_hist = read_records(args.exog_hist, "Historical Exogenous")
        exog_proj = read_records(args.exog_proj, "Projected Exogenous")
        prior = read_records(args.prior_forecast, "Previous Forecast")
        result = run_forecast(regional, exog_hist, exog_proj, prior)
    except ForecastError as e:
        logger.error("Forecast failed: %s", e)
        return 1

    export_csv(result, args.out_dir)
    if not args.no_plot:
        plot_forecast(result, args.out_dir)

    m = result.metrics
    logger.info("=" * 70)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 70)
    logger.info("User Model Mean  : %8.1f COP/kWh", m["user_mean"])
    logger.info("ML Model (V2)    : %8.1f COP/kWh", m["v2_mean"])
    logger.info("Consensus Mean   : %8.1f COP/kWh", m["consensus_mean"])
    logger.info("V3 Final Mean    : %8.1f COP/kWh (%+.1f%% vs User)",
                m["v3_mean"], m["diff_v3_vs_user_percent"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
