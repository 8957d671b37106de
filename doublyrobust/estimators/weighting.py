from __future__ import annotations

import numpy as np
import pandas as pd

from .._data import TREATMENT, OUTCOME, _check_columns, _binary_treatment, _outcome_values
from .._exceptions import InvalidInput
from ..models import OutcomeModel, PropensityModel
from ._estimate import Estimate, IPW, DOUBLY_ROBUST, _division_risk


def _arrays(data: pd.DataFrame, propensity_model: PropensityModel, treatment: str, outcome: str):
    _check_columns(data, treatment=treatment, outcome=outcome)
    a  = _binary_treatment(data, treatment)
    y  = _outcome_values(data, outcome)
    ps = np.asarray(propensity_model.predict(data), dtype=float)
    if ps.shape != a.shape:
        raise InvalidInput(
            f"Propensity model returned {ps.shape[0] if ps.ndim else 1} scores "
            f"for {a.shape[0]} observations."
        )
    return a, y, ps


def estimate_ipw(
    data: pd.DataFrame,
    propensity_model: PropensityModel,
    treatment: str = TREATMENT,
    outcome: str = OUTCOME,
) -> Estimate:
    """
    Inverse probability weighted (Horvitz–Thompson) estimate of the ATE::

        mean(Y·A / π) − mean(Y·(1−A) / (1−π))

    Each unit is reweighted by the inverse of its estimated probability of
    receiving the treatment it actually received. Consistent only if the
    propensity model is correctly specified.

    If any ``π`` lies outside ``[1e-6, 1 − 1e-6]`` a ``DivisionRiskWarning``
    is issued and attached to the returned estimate.
    """
    a, y, ps = _arrays(data, propensity_model, treatment, outcome)
    risk = _division_risk(ps, IPW)

    with np.errstate(divide="ignore", invalid="ignore"):
        value = (y * a / ps).mean() - (y * (1 - a) / (1 - ps)).mean()
    return Estimate(IPW, float(value), risk)


def estimate_dr(
    data: pd.DataFrame,
    propensity_model: PropensityModel,
    outcome_model: OutcomeModel,
    treatment: str = TREATMENT,
    outcome: str = OUTCOME,
) -> Estimate:
    """
    Doubly robust (augmented IPW) estimate of the ATE::

        mean((Y·A − (A−π)·μ1) / π) − mean((Y·(1−A) + (A−π)·μ0) / (1−π))

    where ``μ1`` and ``μ0`` are the outcome model's predictions for each unit
    with treatment set to 1 and 0. The augmentation terms cancel the
    weighting error when the outcome model is right, and have mean zero when
    the propensity model is right, so the estimate is consistent if *either*
    model is correctly specified. When the outcome model fits exactly, the
    result equals the outcome-model estimate whatever the propensities.

    Division risk is flagged exactly as in ``estimate_ipw()``.
    """
    a, y, ps = _arrays(data, propensity_model, treatment, outcome)
    risk = _division_risk(ps, DOUBLY_ROBUST)

    mu1 = outcome_model.predict(data, treatment=1.0)
    mu0 = outcome_model.predict(data, treatment=0.0)

    with np.errstate(divide="ignore", invalid="ignore"):
        treated   = (y * a - (a - ps) * mu1) / ps
        untreated = (y * (1 - a) + (a - ps) * mu0) / (1 - ps)
        value = treated.mean() - untreated.mean()
    return Estimate(DOUBLY_ROBUST, float(value), risk)
