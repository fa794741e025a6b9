"""Tests for sampling plans and resample index generation."""

import numpy as np
import pandas as pd
import pytest

from bootstrap_models.exceptions import ConfigError, UnmetMinimumsError
from bootstrap_models.resampling import build_sampling_plan, generate_resample_indices


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def uneven_groups():
    # Group sizes 2, 1, 3 with rows interleaved.
    return pd.DataFrame(
        {
            "g": ["a", "c", "b", "c", "a", "c"],
            "y": np.arange(6, dtype=float),
        }
    )


class TestCaseResampling:
    def test_narrowness_avoid_draws_n_minus_one(self, rng):
        plan = build_sampling_plan(pd.DataFrame({"y": np.arange(50)}))
        idx = generate_resample_indices(plan, rng)
        assert idx.shape == (49,)
        assert idx.min() >= 0
        assert idx.max() <= 49

    def test_without_narrowness_avoid_draws_n(self, rng):
        plan = build_sampling_plan(pd.DataFrame({"y": np.arange(50)}), narrowness_avoid=False)
        assert generate_resample_indices(plan, rng).shape == (50,)

    def test_indices_are_uniform(self, rng):
        plan = build_sampling_plan(pd.DataFrame({"y": np.arange(10)}), narrowness_avoid=False)
        counts = np.bincount(
            np.concatenate([generate_resample_indices(plan, rng) for _ in range(2000)]),
            minlength=10,
        )
        # 20000 draws over 10 rows: each about 2000.
        assert np.all(np.abs(counts - 2000) < 200)

    def test_single_row_with_narrowness_avoid_raises(self):
        with pytest.raises(ConfigError, match="would draw no rows"):
            build_sampling_plan(pd.DataFrame({"y": [1.0]}))

    def test_minimums_ignored(self, rng):
        plan = build_sampling_plan(
            pd.DataFrame({"y": np.arange(5)}), unique_minimums={"g": 3}
        )
        assert not plan.is_block

    def test_same_seed_same_indices(self):
        plan = build_sampling_plan(pd.DataFrame({"y": np.arange(30)}))
        a = generate_resample_indices(plan, np.random.default_rng(7))
        b = generate_resample_indices(plan, np.random.default_rng(7))
        np.testing.assert_array_equal(a, b)


class TestBlockResampling:
    def test_plan_offsets(self, uneven_groups):
        plan = build_sampling_plan(uneven_groups, ["g"])
        assert plan.is_block
        assert plan.n_levels == 3
        assert plan.draw_size == 2
        np.testing.assert_array_equal(plan.level_offsets, [0, 2, 5, 6])

    def test_drawn_groups_are_whole(self, uneven_groups, rng):
        plan = build_sampling_plan(uneven_groups, ["g"], narrowness_avoid=False)
        rows_of = {
            label: set(np.flatnonzero(uneven_groups["g"].to_numpy() == label))
            for label in ("a", "b", "c")
        }
        for _ in range(50):
            idx = generate_resample_indices(plan, rng)
            labels = uneven_groups["g"].to_numpy()[idx]
            for label in set(labels):
                count = int(np.sum(labels == label))
                size = len(rows_of[label])
                assert count % size == 0
                assert set(idx[labels == label]) == rows_of[label]

    def test_row_count_matches_drawn_group_sizes(self, uneven_groups, rng):
        plan = build_sampling_plan(uneven_groups, ["g"], narrowness_avoid=False)
        sizes = uneven_groups["g"].value_counts()
        for _ in range(20):
            idx = generate_resample_indices(plan, rng)
            labels = uneven_groups["g"].to_numpy()[idx]
            n_draws = sum(int(np.sum(labels == g)) // sizes[g] for g in sizes.index)
            assert n_draws == 3
            assert len(idx) == sum(
                (int(np.sum(labels == g)) // sizes[g]) * sizes[g] for g in sizes.index
            )

    def test_combination_levels(self, rng):
        data = pd.DataFrame(
            {"a": [0, 0, 1, 1, 1], "b": ["x", "y", "x", "x", "y"], "y": np.ones(5)}
        )
        plan = build_sampling_plan(data, ["a", "b"])
        assert plan.n_levels == 4
        assert plan.draw_size == 3

    def test_missing_level_is_its_own_block(self):
        data = pd.DataFrame({"g": ["a", None, "a", None, "b"], "y": np.ones(5)})
        plan = build_sampling_plan(data, ["g"])
        assert plan.n_levels == 3

    def test_single_level_with_narrowness_avoid_raises(self):
        data = pd.DataFrame({"g": ["a"] * 4, "y": np.ones(4)})
        with pytest.raises(ConfigError, match="would draw no levels"):
            build_sampling_plan(data, ["g"])


class TestUniqueMinimums:
    @pytest.fixture
    def ten_groups(self):
        return pd.DataFrame(
            {"g": np.repeat(np.arange(10), 3), "y": np.arange(30, dtype=float)}
        )

    def test_every_draw_meets_minimum(self, ten_groups, rng):
        plan = build_sampling_plan(ten_groups, ["g"], unique_minimums={"g": 7})
        for _ in range(200):
            idx = generate_resample_indices(plan, rng)
            assert np.unique(ten_groups["g"].to_numpy()[idx]).size >= 7

    def test_minimum_above_levels_raises(self, ten_groups):
        with pytest.raises(ConfigError, match="only has 10 level"):
            build_sampling_plan(ten_groups, ["g"], unique_minimums={"g": 11})

    def test_minimum_above_draw_size_raises(self, ten_groups):
        with pytest.raises(ConfigError, match="only draws 9"):
            build_sampling_plan(ten_groups, ["g"], unique_minimums={"g": 10})

    def test_rare_minimum_hits_attempt_cap(self, ten_groups, rng):
        # Nine draws covering nine of ten levels is possible but rare.
        plan = build_sampling_plan(
            ten_groups, ["g"], unique_minimums={"g": 9}, max_draw_attempts=3
        )
        with pytest.raises(UnmetMinimumsError, match="in 3 attempts"):
            for _ in range(50):
                generate_resample_indices(plan, rng)

    def test_minimum_on_unselected_variable_ignored(self, ten_groups):
        data = ten_groups.assign(h=np.tile([0, 1, 2], 10))
        plan = build_sampling_plan(data, ["g"], unique_minimums={"h": 3})
        assert plan.minimum_checks == ()

    def test_minimum_within_combination_blocks(self, rng):
        data = pd.DataFrame(
            {
                "school": np.repeat(np.arange(4), 6),
                "cls": np.tile(np.repeat([0, 1], 3), 4),
                "y": np.ones(24),
            }
        )
        plan = build_sampling_plan(data, ["school", "cls"], unique_minimums={"school": 3})
        schools = data["school"].to_numpy()
        for _ in range(100):
            idx = generate_resample_indices(plan, rng)
            assert np.unique(schools[idx]).size >= 3
