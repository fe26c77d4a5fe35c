"""
features.py
-----------
Row-level feature construction for the Gm Forecaster.

Turns one raw exogenous record (and the month it belongs to) into a
canonical FeatureRow:
    1. Date parsing: native dates, spreadsheet serials, or free text.
    2. Zero-filling: missing or non-numeric exogenous fields become 0.
    3. Interaction: thermal share x gas price.
    4. ENSO phase: La Nina / El Nino / Neutral from the raw phase label.

NOTE ON ZERO-FILLING:
    Missing numeric fields are replaced by 0 rather than rejected. Source
    workbooks routinely leave cells blank for months where a series was not
    yet published; dropping those months would shrink an already short
    monthly history. The ridge layers see a 0 as an ordinary (if extreme)
    observation.
"""

import logging
import math
import numbers
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

from gm_forecaster.config import FEATURE_COLUMNS, SOURCE_COLUMNS, SPREADSHEET_EPOCH

logger = logging.getLogger(__name__)


class EnsoPhase(str, Enum):
    LA_NINA = "LaNina"
    EL_NINO = "ElNino"
    NEUTRAL = "Neutral"


@dataclass(frozen=True)
class FeatureRow:
    """
    One calendar month of the modelling panel.

    Result fields (user_forecast ... p90) stay None until the ensemble and
    uncertainty stages return updated copies of the row.
    """
    date: pd.Timestamp
    month_key: str
    gas_price: float = 0.0
    cpi_index: float = 0.0
    fx_rate: float = 0.0
    deficit_pct: float = 0.0
    hydro_pct: float = 0.0
    thermal_times_gas: float = 0.0
    reservoir_pct: float = 0.0
    enso_phase: EnsoPhase = EnsoPhase.NEUTRAL
    actual_value: Optional[float] = None
    user_forecast: Optional[float] = None
    model_v2: Optional[float] = None
    consensus: Optional[float] = None
    final_v3: Optional[float] = None
    p10: Optional[float] = None
    p90: Optional[float] = None

    def feature_vector(self) -> List[float]:
        return [getattr(self, col) for col in FEATURE_COLUMNS]


# =========================================================================
# PARSING HELPERS
# =========================================================================

def parse_date(value: Any) -> Optional[pd.Timestamp]:
    """
    Parses a date cell. Returns None when the value cannot be read.

    Accepted forms:
        - datetime / date / pd.Timestamp: used as-is (timezone dropped).
        - int / float: spreadsheet serial, days since 1899-12-30.
        - str: anything pandas can parse ("2026-03-01", "Mar 2026", ...).
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (pd.Timestamp, datetime, date, np.datetime64)):
            ts = pd.Timestamp(value)
        elif isinstance(value, numbers.Real):
            if not math.isfinite(float(value)):
                return None
            ts = pd.to_datetime(float(value), unit="D", origin=SPREADSHEET_EPOCH)
        elif isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            ts = pd.to_datetime(text)
        else:
            return None
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def month_start(ts: pd.Timestamp) -> pd.Timestamp:
    return pd.Timestamp(year=ts.year, month=ts.month, day=1)


def to_month_key(ts: pd.Timestamp) -> str:
    return ts.strftime("%Y-%m")


def coerce_number(value: Any) -> float:
    """Numeric cell -> float, with 0.0 for anything missing or unreadable."""
    if isinstance(value, str):
        text = value.strip().replace("%", "")
        try:
            value = float(text)
        except ValueError:
            return 0.0
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return 0.0
    value = float(value)
    return value if math.isfinite(value) else 0.0


def classify_enso_phase(label: Any) -> EnsoPhase:
    """
    Maps a raw ENSO label to a phase by case-insensitive substring match.
    "niña" is checked first, so a label mentioning both resolves to La Nina.
    """
    if label is None or (isinstance(label, float) and math.isnan(label)):
        return EnsoPhase.NEUTRAL
    text = str(label).lower()
    if "niña" in text:
        return EnsoPhase.LA_NINA
    if "niño" in text:
        return EnsoPhase.EL_NINO
    return EnsoPhase.NEUTRAL


# =========================================================================
# ROW TRANSFORMER
# =========================================================================

def transform_row(
    when: pd.Timestamp,
    target: float,
    exog: Mapping[str, Any],
    columns: Mapping[str, str] = SOURCE_COLUMNS,
) -> FeatureRow:
    """
    Builds the canonical FeatureRow for one month.

    Parameters
    ----------
    when : pd.Timestamp
        Any instant inside the month; normalised to the first of the month.
    target : float
        Observed value for historical rows, 0 for projection rows.
    exog : Mapping
        Raw exogenous record keyed by spreadsheet header.
    columns : Mapping
        Logical field -> header map (see config.SOURCE_COLUMNS).
    """
    first = month_start(when)
    gas_price = coerce_number(exog.get(columns["gas_price"]))
    thermal = coerce_number(exog.get(columns["thermal_pct"]))
    return FeatureRow(
        date=first,
        month_key=to_month_key(first),
        gas_price=gas_price,
        cpi_index=coerce_number(exog.get(columns["cpi_index"])),
        fx_rate=coerce_number(exog.get(columns["fx_rate"])),
        deficit_pct=coerce_number(exog.get(columns["deficit_pct"])),
        hydro_pct=coerce_number(exog.get(columns["hydro_pct"])),
        thermal_times_gas=thermal * gas_price,
        reservoir_pct=coerce_number(exog.get(columns["reservoir_pct"])),
        enso_phase=classify_enso_phase(exog.get(columns["enso_phase"])),
        actual_value=float(target),
    )


def feature_matrix(rows: Iterable[FeatureRow]) -> np.ndarray:
    """(n_rows x n_features) matrix in FEATURE_COLUMNS order."""
    data = [row.feature_vector() for row in rows]
    if not data:
        return np.empty((0, len(FEATURE_COLUMNS)))
    return np.asarray(data, dtype=float)
