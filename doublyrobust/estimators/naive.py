from __future__ import annotations

import pandas as pd

from .._data import TREATMENT, OUTCOME, _check_columns, _binary_treatment, _outcome_values
from ..models import OutcomeModel
from ._estimate import Estimate, NAIVE, OUTCOME_MODEL


def estimate_naive(
    data: pd.DataFrame,
    treatment: str = TREATMENT,
    outcome: str = OUTCOME,
) -> Estimate:
    """
    Difference in mean outcomes between treated and untreated units.

    Computed as ``mean(Y·A)/mean(A) − mean(Y·(1−A))/mean(1−A)``, which equals
    ``mean(Y | A=1) − mean(Y | A=0)``. Biased whenever assignment is
    confounded.

    Raises
    ------
    ``InvalidInput``
        If columns are missing or every unit shares the same treatment value.
    """
    _check_columns(data, treatment=treatment, outcome=outcome)
    a = _binary_treatment(data, treatment)
    y = _outcome_values(data, outcome)

    value = (y * a).mean() / a.mean() - (y * (1 - a)).mean() / (1 - a).mean()
    return Estimate(NAIVE, float(value))


def estimate_outcome_model(model: OutcomeModel) -> Estimate:
    """The fitted treatment coefficient of an outcome regression."""
    return Estimate(OUTCOME_MODEL, model.treatment_coefficient)
