"""Tests for Polars DataFrame input compatibility."""

import numpy as np
import pandas as pd
import pytest
import statsmodels.formula.api as smf

from bootstrap_models import bootstrap_model
from bootstrap_models._data import _ensure_pandas_df

# Import polars; skip all tests in this module if not installed.
pl = pytest.importorskip("polars")


class TestEnsurePandasDf:
    def test_pandas_passthrough(self):
        df = pd.DataFrame({"a": [1, 2, 3]})
        assert _ensure_pandas_df(df) is df

    def test_polars_converted(self):
        result = _ensure_pandas_df(pl.DataFrame({"a": [1, 2, 3]}))
        assert isinstance(result, pd.DataFrame)
        assert result["a"].tolist() == [1, 2, 3]

    def test_polars_lazyframe_collected_and_converted(self):
        lf = pl.DataFrame({"a": [1, 2, 3]}).lazy()
        result = _ensure_pandas_df(lf)
        assert isinstance(result, pd.DataFrame)
        assert result["a"].tolist() == [1, 2, 3]


class TestPolarsEndToEnd:
    def test_bootstrap_accepts_polars(self):
        rng = np.random.default_rng(42)
        x = rng.standard_normal(60)
        df = pd.DataFrame({"x": x, "y": 2.0 * x + rng.standard_normal(60)})
        fit = smf.ols("y ~ x", data=df).fit()
        result = bootstrap_model(fit, pl.from_pandas(df), resamples=30, random_state=0)
        assert result.n_successful == 30
        assert list(result["cond"].index) == ["Intercept", "x"]
