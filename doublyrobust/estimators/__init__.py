from ._estimate import Estimate, ESTIMATOR_KINDS
from .naive import estimate_naive, estimate_outcome_model
from .weighting import estimate_ipw, estimate_dr

__all__ = [
    "Estimate", "ESTIMATOR_KINDS",
    "estimate_naive", "estimate_outcome_model",
    "estimate_ipw", "estimate_dr",
]
