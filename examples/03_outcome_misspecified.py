"""
Doubly robust vs regression — misspecified outcome model
========================================================
The mirror image of example 02: covariate_2 is left out of the outcome
model instead. The regression coefficient on treatment is biased; the doubly
robust estimator is rescued by the correct propensity model.
"""

from doublyrobust import SimulationConfig, run_replicates

CONFIG = SimulationConfig(outcome_coefs=(3.0, 3.0), treatment_effect=10.0)

result = run_replicates(
    200, 500, CONFIG,
    seed=2,
    outcome_covariates=["covariate_1"],
)
print(result.summary())

# ── Both models wrong: nothing is left to rescue the estimate ─────────────────
both_wrong = run_replicates(
    200, 500, CONFIG,
    seed=2,
    propensity_covariates=["covariate_1"],
    outcome_covariates=["covariate_1"],
)
print(both_wrong.summary())
