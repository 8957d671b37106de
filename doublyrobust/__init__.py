from .simulate import SimulationConfig, generate
from .models import (
    PropensityModel, LogisticPropensityModel, ConstantPropensityModel, OutcomeModel,
    fit_propensity, fit_outcome,
)
from .estimators import Estimate, estimate_naive, estimate_outcome_model, estimate_ipw, estimate_dr
from .replicates import ReplicateResult, SimulationResult, run_replicates
from ._exceptions import InvalidInput, ModelFitError, DivisionRiskWarning

__all__ = [
    "SimulationConfig", "generate",
    "PropensityModel", "LogisticPropensityModel", "ConstantPropensityModel", "OutcomeModel",
    "fit_propensity", "fit_outcome",
    "Estimate", "estimate_naive", "estimate_outcome_model", "estimate_ipw", "estimate_dr",
    "ReplicateResult", "SimulationResult", "run_replicates",
    "InvalidInput", "ModelFitError", "DivisionRiskWarning",
]
