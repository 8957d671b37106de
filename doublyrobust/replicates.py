from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from ._data import COVARIATES
from ._exceptions import DivisionRiskWarning, InvalidInput, ModelFitError
from .estimators import (
    ESTIMATOR_KINDS,
    Estimate,
    estimate_dr,
    estimate_ipw,
    estimate_naive,
    estimate_outcome_model,
)
from .models import fit_outcome, fit_propensity
from .simulate import SimulationConfig, _check_sample_size, generate

logger = logging.getLogger(__name__)

_LABELS = {
    "naive":         "Naive difference",
    "outcome_model": "Outcome model",
    "ipw":           "IPW",
    "doubly_robust": "Doubly robust",
}


@dataclass(frozen=True, eq=False)
class ReplicateResult:
    """
    Estimates from one simulated dataset.

    If generation or fitting failed, ``error`` holds the exception and
    ``estimates`` is empty.
    """

    replicate_id: int
    estimates: dict[str, Estimate] = field(default_factory=dict)
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def flagged(self) -> bool:
        """``True`` if any estimate carries a division risk."""
        return any(e.flagged for e in self.estimates.values())


# ── Result ─────────────────────────────────────────────────────────────────────

class SimulationResult:
    """
    The outcome of ``run_replicates()``: per-replicate estimates in order,
    plus the settings they were produced under.

    ``summary_table()`` compares each estimator's mean against the true
    effect in ``config``, which is where bias and robustness show up.
    """

    def __init__(
        self,
        replicates: list[ReplicateResult],
        config: SimulationConfig,
        n: int,
        propensity_covariates: list[str],
        outcome_covariates: list[str],
    ) -> None:
        self._replicates = replicates
        self._config = config
        self._n = n
        self._propensity_covariates = propensity_covariates
        self._outcome_covariates = outcome_covariates

    @property
    def replicates(self) -> list[ReplicateResult]:
        """All replicate results, ordered by ``replicate_id``."""
        return list(self._replicates)

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def true_effect(self) -> float:
        return self._config.treatment_effect

    @property
    def failures(self) -> dict[int, Exception]:
        """Exceptions that aborted replicates, keyed by replicate id."""
        return {r.replicate_id: r.error for r in self._replicates if not r.ok}

    def estimates_frame(self, drop_flagged: bool = False) -> pd.DataFrame:
        """
        One row per replicate, one column per estimator kind.

        Failed replicates appear as rows of NaN. With ``drop_flagged`` set,
        estimates carrying a division risk are also replaced by NaN.
        """
        rows = []
        for r in self._replicates:
            rows.append({
                kind: est.value
                for kind, est in r.estimates.items()
                if not (drop_flagged and est.flagged)
            })
        index = pd.Index([r.replicate_id for r in self._replicates], name="replicate_id")
        return pd.DataFrame(rows, index=index, columns=list(ESTIMATOR_KINDS)).astype(float)

    def summary_table(self, drop_flagged: bool = False) -> pd.DataFrame:
        """
        Mean, spread, bias and RMSE of each estimator across replicates.

        Bias and RMSE are measured against ``config.treatment_effect``.
        ``n`` counts the estimates that entered the statistics and
        ``n_flagged`` counts estimates carrying a division risk.
        """
        frame = self.estimates_frame(drop_flagged)
        truth = self.true_effect
        n_flagged = pd.Series({
            kind: sum(1 for r in self._replicates if kind in r.estimates and r.estimates[kind].flagged)
            for kind in ESTIMATOR_KINDS
        })
        table = pd.DataFrame({
            "mean":      frame.mean(),
            "std":       frame.std(ddof=1),
            "bias":      frame.mean() - truth,
            "rmse":      np.sqrt(((frame - truth) ** 2).mean()),
            "n":         frame.count(),
            "n_flagged": n_flagged,
        })
        table.index.name = "estimator"
        return table

    def summary(self) -> str:
        """Formatted comparison of the four estimators against the true effect."""
        table = self.summary_table()
        lines = [
            "",
            f"Doubly Robust Simulation: {len(self._replicates)} replicates of n = {self._n}",
            "─" * 62,
            f"  True effect            : {self.true_effect:>10.4f}",
            f"  Propensity covariates  : {', '.join(self._propensity_covariates)}",
            f"  Outcome covariates     : {', '.join(self._outcome_covariates)}",
            "",
            f"  {'Estimator':<20}{'mean':>10}{'std':>10}{'bias':>11}{'rmse':>10}",
            "  " + "┄" * 60,
        ]
        for kind, row in table.iterrows():
            lines.append(
                f"  {_LABELS[kind]:<20}{row['mean']:>10.4f}{row['std']:>10.4f}"
                f"{row['bias']:>+11.4f}{row['rmse']:>10.4f}"
            )
        lines.append("")
        n_failed = len(self.failures)
        if n_failed:
            lines.append(f"  Failed replicates      : {n_failed}  (see .failures)")
        n_flagged = int(table["n_flagged"].sum())
        if n_flagged:
            lines.append(
                f"  Flagged estimates      : {n_flagged}  "
                f"(extreme propensities; see summary_table(drop_flagged=True))"
            )
        if n_failed or n_flagged:
            lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return self.summary()


# ── Driver ─────────────────────────────────────────────────────────────────────

def _run_one(
    replicate_id: int,
    n: int,
    config: SimulationConfig,
    seed: np.random.SeedSequence,
    propensity_covariates: list[str],
    outcome_covariates: list[str],
) -> ReplicateResult:
    try:
        data = generate(n, config, seed=seed)
        ps_model = fit_propensity(data, propensity_covariates)
        om_model = fit_outcome(data, outcome_covariates)
        # Flags are recorded on each Estimate; re-issuing them per replicate is noise.
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DivisionRiskWarning)
            estimates = [
                estimate_naive(data),
                estimate_outcome_model(om_model),
                estimate_ipw(data, ps_model),
                estimate_dr(data, ps_model, om_model),
            ]
    except (InvalidInput, ModelFitError) as exc:
        logger.warning("replicate %d failed: %s", replicate_id, exc)
        return ReplicateResult(replicate_id, error=exc)

    result = ReplicateResult(replicate_id, {e.kind: e for e in estimates})
    if result.flagged:
        logger.warning("replicate %d: estimates flagged for division risk", replicate_id)
    return result


def _replicate_covariates(covariates, label: str) -> list[str]:
    """Normalise a covariate choice and check it names simulated covariates only."""
    if covariates is None:
        return list(COVARIATES)
    covs = {covariates} if isinstance(covariates, str) else set(covariates)
    if not covs:
        raise InvalidInput(f"{label} covariate set is empty; supply at least one covariate.")
    unknown = covs - set(COVARIATES)
    if unknown:
        raise InvalidInput(
            f"{label} covariates {sorted(unknown)} are not simulated. "
            f"Known covariates: {list(COVARIATES)}"
        )
    return sorted(covs)


def run_replicates(
    R: int,
    n: int,
    config: SimulationConfig | None = None,
    *,
    seed=None,
    propensity_covariates=None,
    outcome_covariates=None,
) -> SimulationResult:
    """
    Simulate ``R`` independent datasets of size ``n`` and compute all four
    estimators on each.

    Each replicate draws from its own child of one ``SeedSequence``, so runs
    are reproducible given ``seed`` and no random state is shared between
    replicates.

    Parameters
    ----------
    R : int
        Number of replicates. Must be at least 1.
    n : int
        Observations per replicate. Must be at least 1.
    config : SimulationConfig, optional
        Data-generating coefficients, including the true effect.
    seed : int or SeedSequence, optional
        Root seed for the run.
    propensity_covariates, outcome_covariates : iterable of str, optional
        Covariates given to each model. Both default to all covariates;
        leaving one out misspecifies that model.

    Returns
    -------
    SimulationResult
        A replicate that fails with ``InvalidInput`` or ``ModelFitError`` is
        recorded in ``.failures`` rather than aborting the run.

    Raises
    ------
    ``InvalidInput``
        If ``R`` or ``n`` is not a positive integer, or a covariate set is
        empty or names a column the simulation does not produce.

    Example::

        result = run_replicates(100, 500, seed=0, propensity_covariates=["covariate_1"])
        print(result.summary())
    """
    R = _check_sample_size(R, "Replicate count")
    n = _check_sample_size(n)
    config = config if config is not None else SimulationConfig()

    ps_covs = _replicate_covariates(propensity_covariates, "Propensity")
    om_covs = _replicate_covariates(outcome_covariates, "Outcome")

    root = seed if isinstance(seed, np.random.SeedSequence) else np.random.SeedSequence(seed)
    logger.debug("running %d replicates of n = %d", R, n)
    replicates = [
        _run_one(i, n, config, child, ps_covs, om_covs)
        for i, child in enumerate(root.spawn(R))
    ]
    return SimulationResult(replicates, config, n, ps_covs, om_covs)
