"""Tests for entropy-based selection of the resampling unit."""

import numpy as np
import pandas as pd
import pytest

from bootstrap_models.blocks import calc_entropy, select_resample_blocks
from bootstrap_models.exceptions import ConfigError


@pytest.fixture
def grouped_data():
    rng = np.random.default_rng(0)
    n = 120
    return pd.DataFrame(
        {
            "y": rng.standard_normal(n),
            "site": np.repeat(["a", "b", "c"], n // 3),
            "subj": np.tile(np.arange(12), n // 12),
        }
    )


class TestCalcEntropy:
    def test_constant_is_zero(self):
        assert calc_entropy(["a"] * 5) == 0.0

    def test_empty_is_zero(self):
        assert calc_entropy([]) == 0.0

    def test_balanced_is_log_levels(self):
        assert calc_entropy(np.repeat([1, 2, 3, 4], 7)) == pytest.approx(np.log(4))

    def test_missing_values_form_a_level(self):
        assert calc_entropy(["a", None, "a", None]) == pytest.approx(np.log(2))

    def test_imbalance_lowers_entropy(self):
        balanced = calc_entropy(["a", "b"] * 10)
        skewed = calc_entropy(["a"] * 19 + ["b"])
        assert skewed < balanced


class TestSelectResampleBlocks:
    def test_no_grouping_means_case(self, grouped_data):
        assert select_resample_blocks([], grouped_data) == []

    def test_single_grouping_kept(self, grouped_data):
        assert select_resample_blocks(["site"], grouped_data) == ["site"]

    def test_higher_entropy_wins(self, grouped_data):
        assert select_resample_blocks(["site", "subj"], grouped_data) == ["subj"]

    def test_tie_goes_to_first(self):
        data = pd.DataFrame({"g1": [1, 1, 2, 2], "g2": ["x", "y", "x", "y"]})
        assert select_resample_blocks(["g1", "g2"], data) == ["g1"]
        assert select_resample_blocks(["g2", "g1"], data) == ["g2"]

    def test_many_levels_can_lose_to_balance(self):
        # g_many: 6 levels, one holding 95 of 100 rows; g_bal: 2 equal levels.
        data = pd.DataFrame(
            {
                "g_many": [0] * 95 + [1, 2, 3, 4, 5],
                "g_bal": [0, 1] * 50,
            }
        )
        assert select_resample_blocks(["g_many", "g_bal"], data) == ["g_bal"]

    def test_override_intersects_in_formula_order(self, grouped_data):
        selected = select_resample_blocks(
            ["site", "subj"], grouped_data, resample_blocks=["subj", "site", "other"]
        )
        assert selected == ["site", "subj"]

    def test_override_string(self, grouped_data):
        assert select_resample_blocks(["site", "subj"], grouped_data, "site") == ["site"]

    def test_override_without_overlap_raises(self, grouped_data):
        with pytest.raises(ConfigError, match="No random columns"):
            select_resample_blocks(["site", "subj"], grouped_data, ["other"])

    def test_override_ignored_without_grouping(self, grouped_data):
        assert select_resample_blocks([], grouped_data, ["site"]) == []

    def test_missing_column_raises(self, grouped_data):
        with pytest.raises(ConfigError, match="not columns"):
            select_resample_blocks(["school"], grouped_data)
