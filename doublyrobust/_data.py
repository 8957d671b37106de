from __future__ import annotations

import numpy as np
import pandas as pd

from ._exceptions import InvalidInput

COVARIATES = ("covariate_1", "covariate_2")
TREATMENT  = "treatment"
OUTCOME    = "outcome"


def _check_columns(data: pd.DataFrame, **columns: str) -> None:
    """Raise ``InvalidInput`` naming the first labelled column absent from data."""
    if len(data) == 0:
        raise InvalidInput("Dataset is empty; at least one observation is required.")
    for label, var in columns.items():
        if var not in data.columns:
            raise InvalidInput(f"{label.capitalize()} column '{var}' not found in dataframe.")


def _check_covariates(data: pd.DataFrame, covariates, reserved: set[str]) -> list[str]:
    """Validate a covariate subset and return it sorted, for a stable formula."""
    covariates = {covariates} if isinstance(covariates, str) else set(covariates)
    if not covariates:
        raise InvalidInput("Covariate set is empty; supply at least one covariate.")
    clash = covariates & reserved
    if clash:
        raise InvalidInput(f"Covariates {sorted(clash)} are the treatment or outcome column.")
    missing = covariates - set(data.columns)
    if missing:
        raise InvalidInput(
            f"Covariates {sorted(missing)} not found in dataframe. "
            f"Available columns: {sorted(data.columns)}"
        )
    return sorted(covariates)


def _binary_treatment(data: pd.DataFrame, treatment: str) -> np.ndarray:
    """
    Return the treatment column as a float array, checking it is 0/1 with
    both arms present.
    """
    n_missing = int(data[treatment].isna().sum())
    if n_missing:
        raise InvalidInput(f"Treatment '{treatment}' has {n_missing} missing value(s).")
    t_vals = set(data[treatment].unique())
    if not t_vals <= {0, 1, 0.0, 1.0}:
        raise InvalidInput(
            f"Treatment '{treatment}' must be binary (0/1). "
            f"Found values: {sorted(t_vals)}"
        )
    if not ({0, 1} <= {int(v) for v in t_vals}):
        raise InvalidInput(
            f"Treatment '{treatment}' must contain both 0 and 1. "
            f"Found only: {t_vals}"
        )
    return data[treatment].to_numpy(dtype=float)


def _outcome_values(data: pd.DataFrame, outcome: str) -> np.ndarray:
    """Return the outcome column as a float array, rejecting missing values."""
    n_missing = int(data[outcome].isna().sum())
    if n_missing:
        raise InvalidInput(f"Outcome '{outcome}' has {n_missing} missing value(s).")
    return data[outcome].to_numpy(dtype=float)
