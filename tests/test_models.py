"""Tests for the model protocol and the statsmodels adapters."""

import math

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm
import statsmodels.formula.api as smf

from bootstrap_models.exceptions import ConfigError
from bootstrap_models.models import (
    BootstrapModel,
    MixedModel,
    StatsmodelsModel,
    as_bootstrap_model,
    residual_df_of,
)


@pytest.fixture
def linear_data():
    rng = np.random.default_rng(1)
    n = 80
    x = rng.standard_normal(n)
    return pd.DataFrame({"x": x, "y": 1.0 + 2.0 * x + rng.standard_normal(n)})


@pytest.fixture
def grouped_data():
    rng = np.random.default_rng(2)
    n_groups, per_group = 10, 8
    g = np.repeat(np.arange(n_groups), per_group)
    x = rng.standard_normal(n_groups * per_group)
    u = rng.standard_normal(n_groups)[g]
    y = 0.5 + 1.5 * x + u + rng.standard_normal(n_groups * per_group) * 0.5
    return pd.DataFrame({"x": x, "y": y, "g": g})


class TestStatsmodelsModel:
    def test_satisfies_protocol(self, linear_data):
        model = StatsmodelsModel(smf.ols("y ~ x", data=linear_data).fit())
        assert isinstance(model, BootstrapModel)
        assert model.formula() == "y ~ x"

    def test_summary_columns(self, linear_data):
        model = StatsmodelsModel(smf.ols("y ~ x", data=linear_data).fit())
        summary = model.coefficient_summary()
        assert list(summary.columns) == ["Estimate", "Std. Error", "t value", "Pr(>|t|)"]
        assert list(summary.index) == ["Intercept", "x"]

    def test_refit_on_new_data(self, linear_data):
        model = StatsmodelsModel(smf.ols("y ~ x", data=linear_data).fit())
        refitted = model.refit(linear_data.iloc[:40].reset_index(drop=True))
        assert refitted.results.nobs == 40
        assert isinstance(refitted, StatsmodelsModel)

    def test_ols_residual_df(self, linear_data):
        model = StatsmodelsModel(smf.ols("y ~ x", data=linear_data).fit())
        assert model.residual_df() == pytest.approx(78)
        assert residual_df_of(model) == pytest.approx(78)

    def test_glm_keeps_family_and_uses_z(self, linear_data):
        data = linear_data.assign(count=np.random.default_rng(3).poisson(3, len(linear_data)))
        fit = smf.glm("count ~ x", data=data, family=sm.families.Poisson()).fit()
        model = StatsmodelsModel(fit)
        refitted = model.refit(data)
        assert isinstance(refitted.results.model.family, sm.families.Poisson)
        assert "z value" in model.coefficient_summary().columns
        assert model.residual_df() is None
        assert residual_df_of(model) == math.inf

    def test_logit_refit_is_quiet(self, linear_data):
        data = linear_data.assign(b=(linear_data["y"] > 1).astype(int))
        model = StatsmodelsModel(smf.logit("b ~ x", data=data).fit(disp=0))
        refitted = model.refit(data)
        np.testing.assert_allclose(refitted.results.params, model.results.params)

    def test_model_data(self, linear_data):
        model = StatsmodelsModel(smf.ols("y ~ x", data=linear_data).fit())
        pd.testing.assert_frame_equal(model.model_data(), linear_data)

    def test_array_model_rejected(self, linear_data):
        fit = sm.OLS(linear_data["y"], sm.add_constant(linear_data["x"])).fit()
        with pytest.raises(ConfigError, match="formula"):
            StatsmodelsModel(fit)

    def test_mixedlm_results_rejected(self, grouped_data):
        fit = smf.mixedlm("y ~ x", grouped_data, groups="g").fit()
        with pytest.raises(ConfigError, match="MixedModel"):
            StatsmodelsModel(fit)


class TestMixedModel:
    def test_from_formula(self, grouped_data):
        model = MixedModel.from_formula("y ~ x + (1 | g)", grouped_data)
        assert isinstance(model, BootstrapModel)
        summary = model.coefficient_summary()
        assert list(summary.index) == ["Intercept", "x"]
        assert summary.loc["x", "Estimate"] == pytest.approx(1.5, abs=0.3)

    def test_refit(self, grouped_data):
        model = MixedModel.from_formula("y ~ x + (1 | g)", grouped_data)
        subset = grouped_data[grouped_data["g"] < 6].reset_index(drop=True)
        refitted = model.refit(subset)
        assert refitted.results.model.n_groups == 6
        assert refitted.model_data() is None

    def test_z_based(self, grouped_data):
        model = MixedModel.from_formula("y ~ x + (1 | g)", grouped_data)
        assert residual_df_of(model) == math.inf

    def test_second_grouping_nested_in_first(self, grouped_data):
        data = grouped_data.assign(item=np.tile(np.arange(4), 20))
        model = MixedModel.from_formula("y ~ x + (1 | g) + (1 | item)", data)
        fitted = model.results.model
        assert fitted.n_groups == 10
        assert list(fitted.exog_vc.names) == ["item"]

    def test_formula_without_bar_raises(self, grouped_data):
        with pytest.raises(ConfigError, match="no random-effect term"):
            MixedModel.from_formula("y ~ x", grouped_data)


class _OnlySummary:
    def coefficient_summary(self):
        return pd.DataFrame({"Estimate": [1.0], "Std. Error": [0.1]}, index=["a"])


class TestAsBootstrapModel:
    def test_protocol_object_unchanged(self, grouped_data):
        model = MixedModel.from_formula("y ~ x + (1 | g)", grouped_data)
        assert as_bootstrap_model(model) is model

    def test_statsmodels_results_wrapped(self, linear_data):
        fit = smf.ols("y ~ x", data=linear_data).fit()
        assert isinstance(as_bootstrap_model(fit), StatsmodelsModel)

    def test_unsupported_object_raises(self):
        with pytest.raises(ConfigError, match="Cannot bootstrap"):
            as_bootstrap_model(_OnlySummary())

    def test_residual_df_without_capability(self):
        assert residual_df_of(_OnlySummary()) == math.inf
