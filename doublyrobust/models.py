from __future__ import annotations

import logging
import warnings

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning,
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from ._data import (
    COVARIATES, TREATMENT, OUTCOME,
    _check_columns, _check_covariates, _binary_treatment, _outcome_values,
)
from ._exceptions import InvalidInput, ModelFitError

logger = logging.getLogger(__name__)


def _check_rank(model, what: str) -> None:
    """Raise ``ModelFitError`` if the design matrix of a statsmodels model is rank-deficient."""
    exog = np.asarray(model.exog)
    rank = np.linalg.matrix_rank(exog)
    if rank < exog.shape[1]:
        raise ModelFitError(
            f"{what} design matrix is rank-deficient (rank {rank} < {exog.shape[1]} "
            f"columns: {list(model.exog_names)}). A covariate may be constant or "
            f"collinear with the others."
        )


# ── Propensity models ──────────────────────────────────────────────────────────

class PropensityModel:
    """
    Maps covariates to an estimated probability of treatment,
    ``P(treatment = 1 | covariates)``.

    Subclasses implement ``predict()``. Weighting estimators only rely on this
    one method, so any object with a compatible ``predict`` can stand in.
    """

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        """Return one propensity score per row of data, as a 1-D float array."""
        raise NotImplementedError


class LogisticPropensityModel(PropensityModel):
    """
    A propensity model fitted by logistic regression of treatment on a
    covariate subset. Obtain via ``fit_propensity()``.
    """

    def __init__(self, result, treatment: str, covariates: list[str]) -> None:
        self._result = result
        self._treatment = treatment
        self._covariates = covariates

    @property
    def covariates(self) -> list[str]:
        """Covariates the model was fitted on."""
        return list(self._covariates)

    @property
    def params(self) -> pd.Series:
        """Fitted logistic coefficients, including the intercept."""
        return self._result.params.copy()

    @property
    def statsmodels_result(self):
        """The underlying statsmodels Logit result, for full diagnostics."""
        return self._result

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        return np.asarray(self._result.predict(data[self._covariates]), dtype=float)

    def __repr__(self) -> str:
        return f"LogisticPropensityModel({self._treatment} ~ {' + '.join(self._covariates)})"


class ConstantPropensityModel(PropensityModel):
    """
    Assigns the same propensity to every unit, as in a randomised experiment.

    With ``p`` equal to the treated share of a dataset, inverse probability
    weighting reduces exactly to the naive difference in means.
    """

    def __init__(self, p: float) -> None:
        p = float(p)
        if not 0.0 < p < 1.0:
            raise InvalidInput(f"Constant propensity must lie strictly between 0 and 1, got {p}.")
        self._p = p

    @classmethod
    def from_treatment_share(cls, data: pd.DataFrame, treatment: str = TREATMENT) -> ConstantPropensityModel:
        """Build the model with ``p`` set to the share of treated units in data."""
        _check_columns(data, treatment=treatment)
        return cls(_binary_treatment(data, treatment).mean())

    @property
    def p(self) -> float:
        return self._p

    def predict(self, data: pd.DataFrame) -> np.ndarray:
        return np.full(len(data), self._p)

    def __repr__(self) -> str:
        return f"ConstantPropensityModel(p={self._p:.4f})"


def fit_propensity(
    data: pd.DataFrame,
    covariates=COVARIATES,
    treatment: str = TREATMENT,
) -> LogisticPropensityModel:
    """
    Fit a logistic regression of treatment on the given covariates.

    Leaving a confounder out of ``covariates`` deliberately misspecifies the
    model, which is how the robustness demonstrations are produced.

    Parameters
    ----------
    data : pd.DataFrame
        Must contain a binary (0/1) treatment column and every covariate.
    covariates : iterable of str
        Non-empty subset of covariate column names.
    treatment : str
        Name of the treatment column.

    Raises
    ------
    ``InvalidInput``
        If the covariate set is empty, columns are missing, or treatment is
        not binary with both arms present.
    ``ModelFitError``
        If the design is rank-deficient, the classes are perfectly separated,
        or the optimiser does not converge.
    """
    _check_columns(data, treatment=treatment)
    controls = _check_covariates(data, covariates, {treatment})
    _binary_treatment(data, treatment)

    formula = f"{treatment} ~ {' + '.join(controls)}"
    model = smf.logit(formula, data=data)
    _check_rank(model, "Propensity model")

    with warnings.catch_warnings():
        warnings.simplefilter("error", PerfectSeparationWarning)
        warnings.simplefilter("error", ConvergenceWarning)
        try:
            result = model.fit(disp=0)
        except (PerfectSeparationError, PerfectSeparationWarning) as exc:
            raise ModelFitError(f"Propensity model '{formula}': perfect separation. {exc}") from exc
        except (ConvergenceWarning, np.linalg.LinAlgError) as exc:
            raise ModelFitError(f"Propensity model '{formula}' failed to fit: {exc}") from exc

    if not result.mle_retvals.get("converged", True):
        raise ModelFitError(f"Propensity model '{formula}' did not converge.")

    logger.debug("fitted propensity model %s", formula)
    return LogisticPropensityModel(result, treatment, controls)


# ── Outcome model ──────────────────────────────────────────────────────────────

class OutcomeModel:
    """
    A linear model of outcome on treatment and a covariate subset, fitted by
    OLS. Obtain via ``fit_outcome()``.

    The treatment coefficient is itself an estimate of the average treatment
    effect, unbiased only when the outcome equation is correctly specified.
    """

    def __init__(self, result, treatment: str, outcome: str, covariates: list[str]) -> None:
        self._result = result
        self._treatment = treatment
        self._outcome = outcome
        self._covariates = covariates

    @property
    def treatment_coefficient(self) -> float:
        """Fitted coefficient on treatment (δ̂)."""
        return float(self._result.params[self._treatment])

    @property
    def std_err(self) -> float:
        """Standard error of the treatment coefficient."""
        return float(self._result.bse[self._treatment])

    @property
    def conf_int(self) -> tuple[float, float]:
        """95% confidence interval for the treatment coefficient."""
        ci = self._result.conf_int()
        return (float(ci.loc[self._treatment, 0]), float(ci.loc[self._treatment, 1]))

    @property
    def covariates(self) -> list[str]:
        """Covariates the model was fitted on, excluding treatment."""
        return list(self._covariates)

    @property
    def statsmodels_result(self):
        """The underlying statsmodels OLS result, for full diagnostics."""
        return self._result

    def predict(self, data: pd.DataFrame, treatment=None) -> np.ndarray:
        """
        Predict outcomes for each row of data.

        Parameters
        ----------
        data : pd.DataFrame
            Must contain the covariates the model was fitted on.
        treatment : float or array-like, optional
            Treatment value(s) to predict under. By default each unit's
            observed treatment is used; pass ``1`` or ``0`` for the
            counterfactual prediction with everyone treated or untreated.
        """
        cols = self._covariates + [self._treatment]
        if treatment is None:
            frame = data[cols]
        else:
            frame = data[self._covariates].assign(**{self._treatment: treatment})
        return np.asarray(self._result.predict(frame), dtype=float)

    def __repr__(self) -> str:
        rhs = " + ".join([self._treatment] + self._covariates)
        return f"OutcomeModel({self._outcome} ~ {rhs}; δ̂ = {self.treatment_coefficient:.4f})"


def fit_outcome(
    data: pd.DataFrame,
    covariates=COVARIATES,
    treatment: str = TREATMENT,
    outcome: str = OUTCOME,
) -> OutcomeModel:
    """
    Fit an OLS regression of outcome on treatment plus the given covariates.

    Raises
    ------
    ``InvalidInput``
        If the covariate set is empty, columns are missing, or treatment is
        not binary with both arms present.
    ``ModelFitError``
        If the design is rank-deficient.
    """
    _check_columns(data, treatment=treatment, outcome=outcome)
    controls = _check_covariates(data, covariates, {treatment, outcome})
    _binary_treatment(data, treatment)
    _outcome_values(data, outcome)

    formula = f"{outcome} ~ {' + '.join([treatment] + controls)}"
    model = smf.ols(formula, data=data)
    _check_rank(model, "Outcome model")
    try:
        result = model.fit()
    except np.linalg.LinAlgError as exc:
        raise ModelFitError(f"Outcome model '{formula}' failed to fit: {exc}") from exc

    logger.debug("fitted outcome model %s", formula)
    return OutcomeModel(result, treatment, outcome, controls)
