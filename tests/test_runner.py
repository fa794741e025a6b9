"""Tests for the resample runner and its retry loop."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pandas as pd
import pytest

from bootstrap_models._context import BootstrapContext
from bootstrap_models._results import FitFailure, is_failure
from bootstrap_models.exceptions import ConfigError, ResampleFailureWarning
from bootstrap_models.runner import MAX_REDOS, run_resamples

BASE = {"cond": pd.DataFrame({"estimate": [1.0], "std_error": [0.1]}, index=["x"])}


def _record(value):
    return {"cond": pd.DataFrame({"estimate": [value], "std_error": [0.1]}, index=["x"])}


def draw_normal(seed):
    """Picklable resample function: one normal draw from the seed."""
    return _record(np.random.default_rng(seed).standard_normal())


class FailFirst:
    """Fails on its first *n* calls, then succeeds."""

    def __init__(self, n):
        self.n = n
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, seed):
        with self._lock:
            self.calls += 1
            failing = self.calls <= self.n
        if failing:
            raise np.linalg.LinAlgError("Singular matrix")
        return draw_normal(seed)


def always_fail(seed):
    raise RuntimeError("did not converge")


class TestRunResamples:
    def test_length_and_success(self):
        records = run_resamples(draw_normal, 25, base=BASE, random_state=0)
        assert len(records) == 25
        assert not any(is_failure(r) for r in records)

    def test_reproducible(self):
        a = run_resamples(draw_normal, 10, random_state=123)
        b = run_resamples(draw_normal, 10, random_state=123)
        for ra, rb in zip(a, b):
            pd.testing.assert_frame_equal(ra["cond"], rb["cond"])

    def test_different_seeds_differ(self):
        a = run_resamples(draw_normal, 5, random_state=1)
        b = run_resamples(draw_normal, 5, random_state=2)
        assert any(
            ra["cond"].iloc[0, 0] != rb["cond"].iloc[0, 0] for ra, rb in zip(a, b)
        )

    def test_one_retry_round_fixes_three_failures(self):
        ctx = BootstrapContext()
        fn = FailFirst(3)
        records = run_resamples(fn, 20, base=BASE, random_state=0, ctx=ctx)
        assert len(records) == 20
        assert not any(is_failure(r) for r in records)
        assert ctx.initial_failures == 3
        assert ctx.retry_rounds == [3]
        assert ctx.residual_failures == 0
        assert fn.calls == 23

    def test_retry_logs_redo_count(self, caplog):
        with caplog.at_level(logging.INFO, logger="bootstrap_models.runner"):
            run_resamples(FailFirst(3), 20, random_state=0)
        assert "3 error(s) to redo" in caplog.text

    def test_no_warning_below_quarter(self, recwarn):
        run_resamples(FailFirst(5), 20, random_state=0)
        assert not [w for w in recwarn if issubclass(w.category, ResampleFailureWarning)]

    def test_warning_above_quarter(self):
        with pytest.warns(ResampleFailureWarning, match="lot of errors"):
            run_resamples(FailFirst(6), 20, random_state=0)

    def test_always_failing_stops_after_bound(self):
        ctx = BootstrapContext()
        with pytest.warns(ResampleFailureWarning) as record:
            records = run_resamples(always_fail, 8, random_state=0, ctx=ctx)
        assert len(records) == 8
        assert all(is_failure(r) for r in records)
        assert ctx.retry_rounds == [8] * MAX_REDOS
        assert ctx.residual_failures == 8
        messages = [str(w.message) for w in record]
        assert any("lot of errors" in m for m in messages)
        assert any(f"in {MAX_REDOS} attempts" in m and "8 error(s)" in m for m in messages)

    def test_failure_reason_kept(self):
        with pytest.warns(ResampleFailureWarning):
            records = run_resamples(always_fail, 2, max_redos=0, random_state=0)
        assert records[0] == FitFailure("RuntimeError: did not converge")

    def test_returned_failures_are_retried(self):
        calls = []

        def fn(seed):
            calls.append(seed)
            return FitFailure("no fit") if len(calls) == 1 else draw_normal(seed)

        records = run_resamples(fn, 4, random_state=0)
        assert not any(is_failure(r) for r in records)
        assert len(calls) == 5

    def test_misaligned_record_is_failure(self):
        misaligned = {"cond": pd.DataFrame({"estimate": [1.0], "std_error": [0.1]}, index=["z"])}
        with pytest.warns(ResampleFailureWarning):
            records = run_resamples(lambda seed: misaligned, 3, base=BASE, max_redos=1)
        assert all(is_failure(r) for r in records)
        assert "ShapeError" in records[0].reason

    def test_non_mapping_record_is_failure(self):
        with pytest.warns(ResampleFailureWarning):
            records = run_resamples(lambda seed: 1.0, 2, max_redos=0)
        assert records[0].reason == "resample returned a float"

    def test_config_error_propagates(self):
        def fn(seed):
            raise ConfigError("bad minimum")

        with pytest.raises(ConfigError, match="bad minimum"):
            run_resamples(fn, 3)

    def test_zero_resamples_raises(self):
        with pytest.raises(ConfigError, match="at least 1"):
            run_resamples(draw_normal, 0)

    def test_unknown_parallelism_raises(self):
        with pytest.raises(ConfigError, match="Invalid parallelism"):
            run_resamples(draw_normal, 3, parallelism="threads")

    def test_context_records_strategy(self):
        ctx = BootstrapContext()
        run_resamples(draw_normal, 3, parallelism="none", random_state=9, ctx=ctx)
        assert ctx.parallelism == "none"
        assert ctx.n_resamples == 3
        assert ctx.random_state == 9
        assert ctx.retry_rounds == []


class TestFutureStrategy:
    def test_executor_matches_sequential(self):
        expected = run_resamples(draw_normal, 12, random_state=5)
        with ThreadPoolExecutor(max_workers=3) as pool:
            records = run_resamples(
                draw_normal, 12, parallelism="future", executor=pool, random_state=5
            )
        for a, b in zip(expected, records):
            pd.testing.assert_frame_equal(a["cond"], b["cond"])

    def test_executor_retries(self):
        ctx = BootstrapContext()
        with ThreadPoolExecutor(max_workers=2) as pool:
            records = run_resamples(
                FailFirst(2), 10, parallelism="future", executor=pool, ctx=ctx
            )
        assert not any(is_failure(r) for r in records)
        assert ctx.parallelism == "future"
        assert ctx.retry_rounds == [2]

    def test_fallback_without_executor(self):
        ctx = BootstrapContext()
        with pytest.warns(UserWarning, match="no executor is configured"):
            records = run_resamples(draw_normal, 4, parallelism="future", ctx=ctx)
        assert len(records) == 4
        assert ctx.parallelism == "none"


@pytest.mark.slow
class TestProcessPool:
    def test_parallel_matches_sequential(self):
        expected = run_resamples(draw_normal, 8, random_state=11)
        ctx = BootstrapContext()
        records = run_resamples(
            draw_normal, 8, parallelism="parallel", n_workers=2, random_state=11, ctx=ctx
        )
        assert ctx.parallelism == "parallel"
        assert ctx.n_workers == 2
        for a, b in zip(expected, records):
            pd.testing.assert_frame_equal(a["cond"], b["cond"])

    def test_parallel_failures_absorbed(self):
        with pytest.warns(ResampleFailureWarning):
            records = run_resamples(
                always_fail, 3, parallelism="parallel", n_workers=2, max_redos=1
            )
        assert all(is_failure(r) for r in records)

    def test_invalid_worker_count(self):
        with pytest.raises(ConfigError, match="num_cores"):
            run_resamples(draw_normal, 2, parallelism="parallel", n_workers=0)
