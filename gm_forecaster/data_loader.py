"""
data_loader.py
--------------
Input ingestion and month alignment for the Gm Forecaster.

Two responsibilities:
    - Reading the four input workbooks (CSV or Excel, first sheet) into
      plain dict records.
    - Aligning those records by calendar month into the historical
      training set and the projection set.

Rows with unparseable dates or without a join partner are filtered out
silently (counted at DEBUG level); only an empty result is fatal.
"""

import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional
from zipfile import BadZipFile

import pandas as pd

from gm_forecaster.config import (
    HISTORY_CUTOFF, PRIOR_FORECAST_MIN_KEY, PROJECTION_START, SOURCE_COLUMNS,
)
from gm_forecaster.errors import InputFileError, InputShapeError
from gm_forecaster.features import (
    FeatureRow, coerce_number, month_start, parse_date, to_month_key, transform_row,
)

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]


# =========================================================================
# FILE READING
# =========================================================================

def read_records(path, label: str) -> List[Dict[str, Any]]:
    """
    Reads the first sheet of a CSV / .xlsx file into dict records.

    Empty cells come back as None. Any read failure, including a missing
    Excel engine, is reported as an InputFileError naming the file label
    (e.g. "Historical Regional"). Legacy .xls workbooks are rejected up
    front; re-save them as .xlsx.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in (".csv", ".xlsx"):
        raise InputFileError(
            f"File '{label}' has unsupported extension '{suffix}' "
            "(expected .csv or .xlsx)."
        )
    try:
        if suffix == ".csv":
            df = pd.read_csv(path)
        else:
            df = pd.read_excel(path, sheet_name=0, engine="openpyxl")
    except FileNotFoundError as e:
        raise InputFileError(f"Failed to read file '{label}': {e}") from e
    except ImportError as e:
        raise InputFileError(f"Cannot read '{label}', Excel engine unavailable: {e}") from e
    except (ValueError, OSError, BadZipFile, pd.errors.ParserError) as e:
        raise InputFileError(f"Failed to parse '{label}': {e}") from e

    if df.empty:
        raise InputFileError(f"File '{label}' sheet is empty or invalid.")

    df.columns = [str(c).strip() for c in df.columns]
    records = df.astype(object).where(pd.notna(df), None).to_dict("records")
    logger.info("Loaded %s: %d rows, %d columns (%s)",
                label, len(records), df.shape[1], path.name)
    return records


# =========================================================================
# MONTH ALIGNMENT
# =========================================================================

def _deduplicate_months(rows: List[FeatureRow], name: str) -> List[FeatureRow]:
    """
    Keeps the last row per month key and orders the set chronologically.
    Duplicates usually mean the same month was pasted twice into a workbook.
    """
    by_key: Dict[str, FeatureRow] = {}
    for row in rows:
        by_key[row.month_key] = row
    n_dupes = len(rows) - len(by_key)
    if n_dupes > 0:
        logger.warning(
            "%s: %d duplicate month key(s) detected, keeping last occurrence.",
            name, n_dupes,
        )
    return sorted(by_key.values(), key=lambda r: r.date)


def _target_value(raw: Any) -> Optional[float]:
    if raw is None or (isinstance(raw, float) and math.isnan(raw)):
        return None
    return coerce_number(raw)


def build_historical_set(
    regional: Iterable[Record],
    exogenous: Iterable[Record],
    cutoff: str = HISTORY_CUTOFF,
    columns: Mapping[str, str] = SOURCE_COLUMNS,
) -> List[FeatureRow]:
    """
    Inner-joins regional target rows with historical exogenous rows on
    month key, keeping months strictly before `cutoff`.

    Raises
    ------
    InputShapeError
        If no regional month finds an exogenous partner.
    """
    exog_by_month: Dict[str, Record] = {}
    for rec in exogenous:
        d = parse_date(rec.get(columns["date"]))
        if d is not None:
            exog_by_month[to_month_key(d)] = rec

    cutoff_ts = pd.Timestamp(cutoff)
    rows = []
    n_bad_date = n_after_cutoff = n_unmatched = 0
    for rec in regional:
        d = parse_date(rec.get(columns["date"]))
        if d is None:
            n_bad_date += 1
            continue
        if month_start(d) >= cutoff_ts:
            n_after_cutoff += 1
            continue
        exog = exog_by_month.get(to_month_key(d))
        target = _target_value(rec.get(columns["target"]))
        if exog is None or target is None:
            n_unmatched += 1
            continue
        rows.append(transform_row(d, target, exog, columns))

    logger.debug(
        "Historical alignment dropped: %d unparseable dates, %d on/after %s, "
        "%d without exogenous match or target.",
        n_bad_date, n_after_cutoff, cutoff, n_unmatched,
    )
    if not rows:
        raise InputShapeError(
            "No overlapping historical data found. Please check that 'Fecha' "
            "columns exist, contain valid dates, and overlap between the "
            "Regional and Exogenous files."
        )
    rows = _deduplicate_months(rows, "Historical set")
    logger.info("Historical set: %d months (%s to %s)",
                len(rows), rows[0].month_key, rows[-1].month_key)
    return rows


def _month_key_of(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw.strip() or None
    d = parse_date(raw)
    return to_month_key(d) if d is not None else None


def build_prior_forecast_lookup(
    records: Iterable[Record],
    min_key: str = PRIOR_FORECAST_MIN_KEY,
    columns: Mapping[str, str] = SOURCE_COLUMNS,
) -> Dict[str, float]:
    """
    month key ("YYYY-MM") -> prior user forecast, for keys >= `min_key`.
    Later records override earlier ones for the same month.
    """
    lookup = {}
    for rec in records:
        key = _month_key_of(rec.get(columns["month_key"]))
        if key is None or key < min_key:
            continue
        lookup[key] = coerce_number(rec.get(columns["forecast"]))
    logger.info("Prior forecast: %d months from %s onwards", len(lookup), min_key)
    return lookup


def _projection_date(rec: Record, columns: Mapping[str, str]) -> Optional[pd.Timestamp]:
    """
    Projection workbooks sometimes carry the month as "YYYY-MM" in a
    Mes_Año column instead of a Fecha date; that column wins when filled.
    """
    raw_key = rec.get(columns["month_key"])
    if raw_key is None or raw_key == "":
        return parse_date(rec.get(columns["date"]))
    if isinstance(raw_key, str):
        return parse_date(f"{raw_key.strip()}-01")
    return parse_date(raw_key)


def build_projection_set(
    exogenous: Iterable[Record],
    prior_forecast: Mapping[str, float],
    start: str = PROJECTION_START,
    columns: Mapping[str, str] = SOURCE_COLUMNS,
) -> List[FeatureRow]:
    """
    Builds the projection rows (months >= `start`) and attaches the prior
    user forecast by month key, defaulting to 0 when the month is absent.

    Raises
    ------
    InputShapeError
        If no projected exogenous row falls on or after `start`.
    """
    start_ts = pd.Timestamp(start)
    rows = []
    n_dropped = n_missing_prior = 0
    for rec in exogenous:
        d = _projection_date(rec, columns)
        if d is None or month_start(d) < start_ts:
            n_dropped += 1
            continue
        row = transform_row(d, 0.0, rec, columns)
        user = prior_forecast.get(row.month_key)
        if user is None:
            n_missing_prior += 1
            user = 0.0
        rows.append(replace(row, user_forecast=float(user)))

    logger.debug(
        "Projection alignment dropped %d rows; %d months without prior forecast "
        "(set to 0).", n_dropped, n_missing_prior,
    )
    if not rows:
        raise InputShapeError(
            "No projection data generated. Ensure 'Projected Exogenous' file "
            "has dates starting from Jan 2026."
        )
    rows = _deduplicate_months(rows, "Projection set")
    logger.info("Projection set: %d months (%s to %s)",
                len(rows), rows[0].month_key, rows[-1].month_key)
    return rows
