"""
Doubly robust estimation — basic example
========================================
Simulates one confounded dataset, fits a propensity model and an outcome
model, and compares the four estimators against the true effect of 10.

covariate_1 and covariate_2 both raise the chance of treatment AND the
outcome directly, so the naive difference in means over-states the effect.
"""

from doublyrobust import (
    SimulationConfig,
    generate,
    fit_propensity,
    fit_outcome,
    estimate_naive,
    estimate_outcome_model,
    estimate_ipw,
    estimate_dr,
)

CONFIG = SimulationConfig(treatment_effect=10.0)
N = 500

# ── 1. Simulate one dataset ───────────────────────────────────────────────────
df = generate(N, CONFIG, seed=0)
print(df.head())
print()

# ── 2. Fit both nuisance models on the full covariate set ────────────────────
ps_model = fit_propensity(df, ["covariate_1", "covariate_2"])
om_model = fit_outcome(df, ["covariate_1", "covariate_2"])
print(ps_model)
print(om_model)
print()

# ── 3. Compare estimators ─────────────────────────────────────────────────────
for est in [
    estimate_naive(df),
    estimate_outcome_model(om_model),
    estimate_ipw(df, ps_model),
    estimate_dr(df, ps_model, om_model),
]:
    print(f"{est.kind:<15}: {est.value:>8.4f}  (bias: {est.value - CONFIG.treatment_effect:+.4f})")
