"""
Doubly robust vs IPW — misspecified propensity model
====================================================
Repeats the simulation 200 times with covariate_2 left out of the propensity
model. IPW inherits the omitted-confounder bias; the doubly robust estimator
stays on target because the outcome model is still correct.
"""

from doublyrobust import SimulationConfig, run_replicates

CONFIG = SimulationConfig(outcome_coefs=(3.0, 3.0), treatment_effect=10.0)

result = run_replicates(
    200, 500, CONFIG,
    seed=1,
    propensity_covariates=["covariate_1"],
)
print(result.summary())
print(result.summary_table())
