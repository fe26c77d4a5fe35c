"""
models.py
---------
Two-layer ridge model for the Gm Forecaster.

LAYER 1: ENSO phase models
    One ridge regression per ENSO phase (La Nina / El Nino / Neutral),
    fitted only on the historical months of that phase and only when the
    phase has more than PHASE_MIN_SAMPLES months. Hydrology drives
    generation costs very differently across phases, so a phase-local fit
    captures regime-specific sensitivities to gas, FX and hydro share.

LAYER 2: General model
    One ridge regression over the whole history. Used as the second
    ensemble component for every month and as the stand-in for phases
    without a layer-1 model.

ESTIMATION:
    Features are standardised per layer (FeatureScaler) and the ridge is
    solved in closed form from the regularised normal equation:

        beta = (X'X + alpha I)^-1 X'(y - ybar),   intercept = ybar

    Centering only the target is sufficient because standardised features
    have zero mean on the training sample. The penalty is fixed per layer;
    there is no alpha search.

    Ref: Hoerl, A. & Kennard, R. (1970). Ridge regression.
         Technometrics, 12(1), 55-67. DOI:10.1080/00401706.1970.10488634
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np
from sklearn.preprocessing import StandardScaler

from gm_forecaster.config import (
    FEATURE_COLUMNS, GENERAL_RIDGE_ALPHA, PHASE_MIN_SAMPLES, PHASE_RIDGE_ALPHA,
)
from gm_forecaster.errors import ModelTrainingError
from gm_forecaster.features import EnsoPhase, FeatureRow, feature_matrix

logger = logging.getLogger(__name__)


# =========================================================================
# 1. SCALER
# =========================================================================

class FeatureScaler:
    """
    Per-column z-score standardisation (population std, ddof=0).

    Zero-variance columns get scale 1, so they map to 0 instead of
    dividing by zero. A scaler that never saw data (empty training
    matrix) passes its input through unchanged.
    """

    def __init__(self):
        self._scaler = StandardScaler()
        self._fitted = False

    def fit(self, X):
        X = np.asarray(X, dtype=float)
        if X.ndim != 2 or X.shape[0] == 0 or X.shape[1] == 0:
            logger.debug("FeatureScaler: empty training matrix, left unfitted.")
            return self
        self._scaler.fit(X)
        self._fitted = True
        return self

    def transform(self, X) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        if not self._fitted:
            return X
        return self._scaler.transform(X)

    def fit_transform(self, X) -> np.ndarray:
        return self.fit(X).transform(X)

    @property
    def mean_(self) -> np.ndarray:
        return self._scaler.mean_ if self._fitted else np.zeros(0)

    @property
    def scale_(self) -> np.ndarray:
        return self._scaler.scale_ if self._fitted else np.zeros(0)


# =========================================================================
# 2. RIDGE ESTIMATOR
# =========================================================================

class RidgeEstimator:
    """
    Closed-form L2-regularised regression on pre-standardised features.

    fit() on an empty X or y is a no-op (prediction = intercept = 0).
    A singular X'X + alpha I is not patched with a pseudo-inverse: it
    raises ModelTrainingError, since it only happens with alpha = 0 and a
    degenerate design.
    """

    def __init__(self, alpha: float = 1.0):
        if alpha < 0:
            raise ValueError(f"Ridge alpha must be >= 0, got {alpha}.")
        self.alpha = float(alpha)
        self.coef_ = np.zeros(0)
        self.intercept_ = 0.0

    def fit(self, X, y):
        X = np.asarray(X, dtype=float)
        y = np.asarray(y, dtype=float).ravel()
        if X.size == 0 or y.size == 0:
            return self
        if X.ndim == 1:
            X = X.reshape(-1, 1)

        y_mean = float(y.mean())
        y_centered = y - y_mean
        # Solve (X'X + alpha I) beta = X'y_c
        gram = X.T @ X + self.alpha * np.eye(X.shape[1])
        try:
            beta = np.linalg.solve(gram, X.T @ y_centered)
        except np.linalg.LinAlgError as e:
            raise ModelTrainingError(
                f"Ridge fit failed: X'X + {self.alpha:g} I is singular "
                f"({X.shape[0]} samples x {X.shape[1]} features)."
            ) from e

        self.coef_ = beta
        self.intercept_ = y_mean
        return self

    def predict(self, X) -> np.ndarray:
        """
        intercept + X @ coef per row. Columns beyond the fitted coefficients
        contribute 0; a row with no columns predicts the intercept.
        """
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        if X.shape[0] == 0:
            return np.zeros(0)
        k = min(X.shape[1], self.coef_.shape[0])
        return self.intercept_ + X[:, :k] @ self.coef_[:k]


# =========================================================================
# 3. FITTED LAYERS AND PREDICTORS
# =========================================================================

@dataclass
class FittedLayer:
    """A scaler + ridge pair trained on one subset of the history."""
    name: str
    scaler: FeatureScaler
    estimator: RidgeEstimator
    n_samples: int

    def predict(self, X) -> np.ndarray:
        return self.estimator.predict(self.scaler.transform(X))

    def get_coefficients(self) -> dict:
        c = {
            col: round(float(v), 4)
            for col, v in zip(FEATURE_COLUMNS, self.estimator.coef_)
        }
        c["intercept"] = round(float(self.estimator.intercept_), 4)
        c["_alpha"] = self.estimator.alpha
        c["_n_samples"] = self.n_samples
        return c


def fit_layer(name: str, rows: List[FeatureRow], alpha: float) -> FittedLayer:
    X = feature_matrix(rows)
    y = np.asarray([r.actual_value for r in rows], dtype=float)
    scaler = FeatureScaler()
    Xs = scaler.fit_transform(X)
    estimator = RidgeEstimator(alpha).fit(Xs, y)
    logger.debug("%s: %d obs, alpha=%.1f, intercept=%.3f, coef=%s",
                 name, len(rows), alpha, estimator.intercept_,
                 np.round(estimator.coef_, 4).tolist())
    return FittedLayer(name=name, scaler=scaler, estimator=estimator,
                       n_samples=len(rows))


class LayerPredictor:
    """Layer-1 prediction for one ENSO phase, served by a fitted layer."""

    fallback = False

    def __init__(self, phase: EnsoPhase, layer: FittedLayer):
        self.phase = phase
        self.layer = layer

    def predict(self, X) -> np.ndarray:
        return self.layer.predict(X)


class PhaseSpecificPredictor(LayerPredictor):
    """The phase has its own model."""


class GeneralFallbackPredictor(LayerPredictor):
    """Stand-in for a phase without its own model: the general layer."""

    fallback = True


@dataclass
class ModelBundle:
    general: FittedLayer
    phase_layers: Dict[EnsoPhase, FittedLayer] = field(default_factory=dict)

    def get_coefficients(self) -> Dict[str, dict]:
        coefs = {layer.name: layer.get_coefficients()
                 for layer in self.phase_layers.values()}
        coefs[self.general.name] = self.general.get_coefficients()
        return coefs


def select_predictor(phase: EnsoPhase, bundle: ModelBundle) -> LayerPredictor:
    layer = bundle.phase_layers.get(phase)
    if layer is not None:
        return PhaseSpecificPredictor(phase, layer)
    return GeneralFallbackPredictor(phase, bundle.general)


# =========================================================================
# 4. TRAINER
# =========================================================================

def train_models(history: List[FeatureRow]) -> ModelBundle:
    """
    Fits layer 1 (per phase, > PHASE_MIN_SAMPLES months, alpha=5) and
    layer 2 (all months, alpha=3).

    Raises
    ------
    ModelTrainingError
        If any layer's normal equation is singular.
    """
    phase_layers = {}
    for phase in EnsoPhase:
        subset = [r for r in history if r.enso_phase == phase]
        if len(subset) > PHASE_MIN_SAMPLES:
            phase_layers[phase] = fit_layer(
                f"Phase_{phase.value}", subset, PHASE_RIDGE_ALPHA
            )
            logger.info("Layer 1 | %-8s trained on %d months.",
                        phase.value, len(subset))
        else:
            logger.info(
                "Layer 1 | %-8s %d months <= %d: general model used instead.",
                phase.value, len(subset), PHASE_MIN_SAMPLES,
            )

    general = fit_layer("General", history, GENERAL_RIDGE_ALPHA)
    logger.info("Layer 2 | General trained on %d months.", len(history))
    return ModelBundle(general=general, phase_layers=phase_layers)
