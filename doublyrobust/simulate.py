from __future__ import annotations

from dataclasses import dataclass
from numbers import Integral

import numpy as np
import pandas as pd
from scipy.special import expit

from ._data import COVARIATES, TREATMENT, OUTCOME
from ._exceptions import InvalidInput


@dataclass(frozen=True)
class SimulationConfig:
    """
    Coefficients of the data-generating process used by ``generate()``.

    Both covariates confound the treatment–outcome relationship: they raise
    the probability of treatment through ``propensity_coefs`` and the outcome
    directly through ``outcome_coefs``. Setting either pair to zero removes
    that path and with it the confounding.

    Example::

        weak = SimulationConfig(propensity_coefs=(0.25, 0.25), outcome_coefs=(1.0, 1.0))
        df = generate(200, weak, seed=0)
    """

    propensity_coefs: tuple[float, float] = (1.0, 1.0)
    """Weights ``(w1, w2)`` of the covariates in the logistic treatment index."""

    outcome_intercept: float = 1.0
    """Constant term of the outcome equation."""

    outcome_coefs: tuple[float, float] = (2.0, 2.0)
    """Direct effects ``(b1, b2)`` of the covariates on the outcome."""

    treatment_effect: float = 10.0
    """The true average treatment effect. Never visible to the estimators."""

    noise_scale: float = 1.0
    """Standard deviation of the Gaussian outcome noise."""

    def __post_init__(self) -> None:
        for name in ("propensity_coefs", "outcome_coefs"):
            coefs = tuple(getattr(self, name))
            if len(coefs) != len(COVARIATES):
                raise InvalidInput(
                    f"{name} must have {len(COVARIATES)} entries, got {len(coefs)}."
                )
            object.__setattr__(self, name, tuple(float(c) for c in coefs))
        if not np.isfinite(self.noise_scale) or self.noise_scale < 0:
            raise InvalidInput(f"noise_scale must be finite and non-negative, got {self.noise_scale}.")


def _check_sample_size(n, label: str = "Sample size") -> int:
    if isinstance(n, bool) or not isinstance(n, Integral):
        raise InvalidInput(f"{label} must be an integer, got {n!r}.")
    if n < 1:
        raise InvalidInput(f"{label} must be at least 1, got {n}.")
    return int(n)


def generate(n: int, config: SimulationConfig | None = None, seed=None) -> pd.DataFrame:
    """
    Simulate one observational dataset with confounded treatment assignment.

    Each unit gets two independent standard-normal covariates. Treatment is a
    Bernoulli draw with probability ``expit(w1*x1 + w2*x2)``, so units with
    high covariate values are more likely to be treated. The outcome is
    ``intercept + b1*x1 + b2*x2 + effect*treatment + noise``.

    Parameters
    ----------
    n : int
        Number of observations. Must be at least 1.
    config : SimulationConfig, optional
        Generation coefficients. Defaults to ``SimulationConfig()``.
    seed : int, SeedSequence or Generator, optional
        Anything accepted by ``numpy.random.default_rng``. Passing the same
        seed returns the same dataframe.

    Returns
    -------
    pd.DataFrame
        Columns ``covariate_1``, ``covariate_2``, ``treatment`` (0.0/1.0)
        and ``outcome``.

    Raises
    ------
    ``InvalidInput``
        If ``n`` is not a positive integer.
    """
    n = _check_sample_size(n)
    config = config if config is not None else SimulationConfig()
    rng = np.random.default_rng(seed)

    x = rng.normal(size=(n, len(COVARIATES)))
    ps = expit(x @ np.asarray(config.propensity_coefs))
    treatment = rng.binomial(1, ps).astype(float)
    noise = rng.normal(scale=config.noise_scale, size=n)
    outcome = (
        config.outcome_intercept
        + x @ np.asarray(config.outcome_coefs)
        + config.treatment_effect * treatment
        + noise
    )

    return pd.DataFrame({
        COVARIATES[0]: x[:, 0],
        COVARIATES[1]: x[:, 1],
        TREATMENT: treatment,
        OUTCOME: outcome,
    })
