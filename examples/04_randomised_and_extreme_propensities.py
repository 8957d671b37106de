"""
Constant propensities and division risk
=======================================
1. Under a constant propensity equal to the treated share (a randomised
   experiment), IPW reduces exactly to the naive difference in means.
2. With near-zero propensities the weights explode; the estimate comes
   back flagged with a DivisionRiskWarning instead of a silent inf.
"""

import warnings

from doublyrobust import (
    ConstantPropensityModel,
    SimulationConfig,
    generate,
    estimate_naive,
    estimate_ipw,
)

df = generate(400, SimulationConfig(propensity_coefs=(0.0, 0.0)), seed=3)

# ── 1. Algebraic reduction ────────────────────────────────────────────────────
share = ConstantPropensityModel.from_treatment_share(df)
print(f"{share}")
print(f"Naive : {estimate_naive(df).value:.6f}")
print(f"IPW   : {estimate_ipw(df, share).value:.6f}")
print()

# ── 2. Division risk ──────────────────────────────────────────────────────────
with warnings.catch_warnings(record=True) as caught:
    warnings.simplefilter("always")
    est = estimate_ipw(df, ConstantPropensityModel(1e-9))

print(f"IPW with p = 1e-9 : {est.value:.4g}  flagged = {est.flagged}")
for w in caught:
    print(f"  {w.category.__name__}: {w.message}")
