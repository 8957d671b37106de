from __future__ import annotations

import warnings
from dataclasses import dataclass

import numpy as np

from .._exceptions import DivisionRiskWarning

NAIVE         = "naive"
OUTCOME_MODEL = "outcome_model"
IPW           = "ipw"
DOUBLY_ROBUST = "doubly_robust"

ESTIMATOR_KINDS = (NAIVE, OUTCOME_MODEL, IPW, DOUBLY_ROBUST)

_SAFE_BAND = 1e-6


@dataclass(frozen=True)
class Estimate:
    """
    A point estimate of the average treatment effect, tagged with the
    estimator that produced it.

    Weighting estimators set ``division_risk`` when some propensity score
    fell outside the safe band. The value is kept either way; callers
    decide whether to discard flagged estimates.
    """

    kind: str
    """One of ``"naive"``, ``"outcome_model"``, ``"ipw"``, ``"doubly_robust"``."""

    value: float
    """The estimated average treatment effect."""

    division_risk: DivisionRiskWarning | None = None
    """Set when inverse weights may have blown up; ``None`` otherwise."""

    @property
    def flagged(self) -> bool:
        """``True`` if a division risk was recorded for this estimate."""
        return self.division_risk is not None

    def __float__(self) -> float:
        return self.value


def _division_risk(ps: np.ndarray, estimator: str) -> DivisionRiskWarning | None:
    """
    Check propensity scores against the safe band. If any fall outside,
    issue and return a ``DivisionRiskWarning``.
    """
    unsafe = (ps < _SAFE_BAND) | (ps > 1.0 - _SAFE_BAND) | ~np.isfinite(ps)
    if not unsafe.any():
        return None
    risk = DivisionRiskWarning(
        estimator,
        n_flagged=int(unsafe.sum()),
        min_propensity=float(np.nanmin(ps)),
        max_propensity=float(np.nanmax(ps)),
    )
    warnings.warn(risk, stacklevel=3)
    return risk
