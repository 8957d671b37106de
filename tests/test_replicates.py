import warnings

import numpy as np
import pandas as pd
import pytest

import doublyrobust.replicates as replicates_module
from doublyrobust import (
    ConstantPropensityModel,
    DivisionRiskWarning,
    InvalidInput,
    ModelFitError,
    ReplicateResult,
    SimulationConfig,
    SimulationResult,
    run_replicates,
)


R = 100
N = 500
TRUE_EFFECT = 10.0
TOLERANCE = 1.0

# Larger direct effects of the covariates on the outcome make the bias of a
# misspecified model stand well clear of the tolerance.
STRONG = SimulationConfig(outcome_coefs=(3.0, 3.0), treatment_effect=TRUE_EFFECT)


class TestCorrectSpecification:
    """Both models correctly specified. Run once per class."""

    @classmethod
    def setup_class(cls):
        cls.result = run_replicates(R, N, seed=2024)
        cls.table  = cls.result.summary_table()

    def test_returns_simulation_result(self):
        assert isinstance(self.result, SimulationResult)
        assert len(self.result.replicates) == R
        assert all(isinstance(r, ReplicateResult) for r in self.result.replicates)

    def test_replicate_ids_sequential(self):
        assert [r.replicate_id for r in self.result.replicates] == list(range(R))

    def test_no_failures(self):
        assert self.result.failures == {}
        assert all(r.ok for r in self.result.replicates)

    def test_every_replicate_has_four_estimates(self):
        for r in self.result.replicates:
            assert set(r.estimates) == {"naive", "outcome_model", "ipw", "doubly_robust"}

    def test_dr_mean_close_to_true_effect(self):
        assert abs(self.table.loc["doubly_robust", "mean"] - TRUE_EFFECT) < TOLERANCE

    def test_outcome_model_and_ipw_close_to_true_effect(self):
        assert abs(self.table.loc["outcome_model", "mean"] - TRUE_EFFECT) < TOLERANCE
        assert abs(self.table.loc["ipw", "mean"] - TRUE_EFFECT) < TOLERANCE

    def test_naive_is_biased(self):
        assert abs(self.table.loc["naive", "bias"]) > TOLERANCE

    def test_summary_table_layout(self):
        assert list(self.table.index) == ["naive", "outcome_model", "ipw", "doubly_robust"]
        assert list(self.table.columns) == ["mean", "std", "bias", "rmse", "n", "n_flagged"]
        assert (self.table["n"] == R).all()
        assert (self.table["n_flagged"] == 0).all()
        assert (self.table["std"] > 0).all()

    def test_bias_is_mean_minus_truth(self):
        np.testing.assert_allclose(self.table["bias"], self.table["mean"] - TRUE_EFFECT)

    def test_estimates_frame(self):
        frame = self.result.estimates_frame()
        assert frame.shape == (R, 4)
        assert frame.index.name == "replicate_id"
        assert not frame.isna().any().any()

    def test_summary_contains_estimators(self):
        summary = self.result.summary()
        assert "Doubly robust" in summary
        assert "Naive difference" in summary
        assert "10.0000" in summary

    def test_repr_is_summary(self):
        assert repr(self.result) == self.result.summary()


class TestPropensityMisspecified:
    """Propensity model omits covariate_2, outcome model is correct."""

    @classmethod
    def setup_class(cls):
        cls.result = run_replicates(
            R, N, STRONG, seed=7, propensity_covariates=["covariate_1"],
        )
        cls.table = cls.result.summary_table()

    def test_ipw_is_biased(self):
        assert abs(self.table.loc["ipw", "mean"] - TRUE_EFFECT) > TOLERANCE

    def test_dr_remains_close_to_true_effect(self):
        assert abs(self.table.loc["doubly_robust", "mean"] - TRUE_EFFECT) < TOLERANCE

    def test_summary_lists_covariates(self):
        summary = self.result.summary()
        assert "Propensity covariates  : covariate_1\n" in summary
        assert "Outcome covariates     : covariate_1, covariate_2" in summary


class TestOutcomeMisspecified:
    """Outcome model omits covariate_2, propensity model is correct."""

    @classmethod
    def setup_class(cls):
        cls.result = run_replicates(
            R, N, STRONG, seed=11, outcome_covariates=["covariate_1"],
        )
        cls.table = cls.result.summary_table()

    def test_outcome_model_is_biased(self):
        assert abs(self.table.loc["outcome_model", "mean"] - TRUE_EFFECT) > TOLERANCE

    def test_dr_remains_close_to_true_effect(self):
        assert abs(self.table.loc["doubly_robust", "mean"] - TRUE_EFFECT) < TOLERANCE


class TestRunReplicatesBehaviour:
    def test_reproducible_given_seed(self):
        a = run_replicates(3, 100, seed=5).estimates_frame()
        b = run_replicates(3, 100, seed=5).estimates_frame()
        pd.testing.assert_frame_equal(a, b)

    def test_replicates_are_independent_draws(self):
        frame = run_replicates(3, 100, seed=5).estimates_frame()
        assert frame["naive"].nunique() == 3

    @pytest.mark.parametrize("R_, n_", [(0, 100), (5, 0), (-1, 100)])
    def test_non_positive_sizes_raise(self, R_, n_):
        with pytest.raises(InvalidInput):
            run_replicates(R_, n_)

    def test_empty_covariate_set_raises(self):
        with pytest.raises(InvalidInput, match="Propensity"):
            run_replicates(2, 100, propensity_covariates=[])

    def test_single_covariate_name_as_string(self):
        result = run_replicates(3, 200, seed=0, propensity_covariates="covariate_1")
        assert result.failures == {}
        assert "Propensity covariates  : covariate_1\n" in result.summary()

    def test_unknown_covariate_raises_before_running(self, monkeypatch):
        monkeypatch.setattr(
            replicates_module, "_run_one",
            lambda *args: pytest.fail("replicates should not run"),
        )
        with pytest.raises(InvalidInput, match="covariate_3"):
            run_replicates(3, 200, outcome_covariates=["covariate_1", "covariate_3"])

    def test_replicate_result_is_hashable(self):
        result = run_replicates(2, 200, seed=0)
        first, second = result.replicates
        assert len({first, second}) == 2
        assert first == first
        assert first != second

    def test_single_observation_replicates_fail_individually(self):
        result = run_replicates(3, 1, seed=0)
        assert len(result.replicates) == 3
        assert set(result.failures) == {0, 1, 2}
        assert all(isinstance(e, InvalidInput) for e in result.failures.values())
        assert result.estimates_frame().isna().all().all()
        assert (result.summary_table()["n"] == 0).all()
        assert "Failed replicates      : 3" in result.summary()

    def test_fit_error_recorded_against_replicate(self, monkeypatch):
        calls = []
        real_fit_outcome = replicates_module.fit_outcome

        def flaky_fit_outcome(data, covariates):
            calls.append(1)
            if len(calls) == 2:
                raise ModelFitError("design is rank-deficient")
            return real_fit_outcome(data, covariates)

        monkeypatch.setattr(replicates_module, "fit_outcome", flaky_fit_outcome)
        result = run_replicates(3, 200, seed=1)

        assert list(result.failures) == [1]
        assert isinstance(result.failures[1], ModelFitError)
        assert result.replicates[1].estimates == {}
        assert result.replicates[0].ok and result.replicates[2].ok
        assert (result.summary_table()["n"] == 2).all()

    def test_division_risk_recorded_not_reissued(self, monkeypatch):
        monkeypatch.setattr(
            replicates_module, "fit_propensity",
            lambda data, covariates: ConstantPropensityModel(1e-8),
        )
        with warnings.catch_warnings():
            warnings.simplefilter("error", DivisionRiskWarning)
            result = run_replicates(4, 200, seed=3)

        assert result.failures == {}
        assert all(r.flagged for r in result.replicates)
        table = result.summary_table()
        assert table.loc["ipw", "n_flagged"] == 4
        assert table.loc["doubly_robust", "n_flagged"] == 4
        assert table.loc["naive", "n_flagged"] == 0

        dropped = result.summary_table(drop_flagged=True)
        assert dropped.loc["ipw", "n"] == 0
        assert dropped.loc["naive", "n"] == 4
        assert "Flagged estimates" in result.summary()
