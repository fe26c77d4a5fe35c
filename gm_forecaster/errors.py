"""
errors.py
---------
Failure taxonomy of a forecast run.

Every fatal condition derives from ForecastError so callers of
run_forecast() can handle a single exception type. Per-row problems
(unparseable dates, missing join matches) are never raised; they are
filtered out by the dataset builders.
"""


class ForecastError(ValueError):
    """Base class for fatal forecast failures."""


class InputShapeError(ForecastError):
    """The inputs do not produce a usable historical or projection set."""


class ModelTrainingError(ForecastError):
    """A ridge layer could not be fitted (singular normal equation)."""


class InputFileError(ForecastError):
    """An input file could not be read into row records."""
