class InvalidInput(ValueError):
    """
    Raised when a caller passes something the pipeline cannot work with:
    a non-positive sample size, an empty covariate set, a missing column,
    or a treatment column that is not binary with both arms present.
    """
    pass


class ModelFitError(Exception):
    """
    Raised when a propensity or outcome model cannot be fitted.

    Covers rank-deficient designs (e.g. a constant covariate), perfect
    separation and non-convergence. The underlying statsmodels or numpy
    exception, if any, is chained as ``__cause__``.
    """
    pass


class DivisionRiskWarning(UserWarning):
    """
    Issued when a propensity score used as a weight falls outside the safe
    band ``[1e-6, 1 - 1e-6]``.

    Weighting estimators attach the warning to the returned ``Estimate`` as
    well as issuing it, so the numeric result is never reported unflagged.
    """

    def __init__(self, estimator: str, n_flagged: int, min_propensity: float, max_propensity: float) -> None:
        self.estimator = estimator
        self.n_flagged = n_flagged
        self.min_propensity = min_propensity
        self.max_propensity = max_propensity
        super().__init__(
            f"{estimator}: {n_flagged} propensity score(s) outside the safe band "
            f"(min = {min_propensity:.3g}, max = {max_propensity:.3g}). "
            f"Inverse weights may be extreme or infinite."
        )
