"""Running resamples with bounded retry of failed refits.

The runner knows nothing about models or data.  It receives a
``resample_once(seed)`` callable that draws one resample, refits and
extracts coefficients, and it is responsible for:

1. **Seeding** — one root ``numpy.random.SeedSequence(random_state)``
   spawns an independent child seed per call, including retries.  The
   same ``random_state`` and strategy therefore reproduce a run, and
   parallel workers never share generator state.
2. **Failure detection** — a call that raises, returns a
   :class:`~bootstrap_models._results.FitFailure`, returns something
   that is not a coefficient set, or returns one whose labels/terms do
   not line up with the base model is recorded as a ``FitFailure``.
3. **Retry** — failed positions are redrawn with fresh seeds and the
   new records spliced into those positions, for at most
   ``max_redos`` rounds.  Each round builds a new list; nothing is
   mutated in place.
4. **Reporting** — a warning when more than a quarter of the initial
   pass failed, and another when failures survive the retry bound.
   Unresolved failures stay in the output: its length always equals
   ``resamples``.

Retries use the same concurrency strategy as the initial pass.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Callable, Mapping
from concurrent.futures import Executor
from functools import partial
from typing import Any

import numpy as np
import pandas as pd

from ._config import get_parallelism
from ._context import BootstrapContext
from ._results import FitFailure, is_failure
from ._strategies import resolve_strategy
from .coefficients import check_alignment
from .exceptions import ConfigError, ResampleFailureWarning, ShapeError

logger = logging.getLogger(__name__)

MAX_REDOS = 10

FAILURE_WARN_FRACTION = 0.25


def _call_safely(resample_once: Callable[[np.random.SeedSequence], Any], seed: Any) -> Any:
    """Run one resample, turning any refit error into a FitFailure.

    ``ConfigError`` still propagates: it signals a setup problem that
    no amount of redrawing can fix.
    """
    try:
        return resample_once(seed)
    except ConfigError:
        raise
    except Exception as exc:
        return FitFailure(f"{type(exc).__name__}: {exc}")


def _validate(record: Any, base: Mapping[str, pd.DataFrame] | None) -> Any:
    if is_failure(record):
        return record
    if not isinstance(record, Mapping):
        return FitFailure(f"resample returned a {type(record).__name__}")
    if base is not None:
        try:
            check_alignment(base, record)
        except ShapeError as exc:
            return FitFailure(f"ShapeError: {exc}")
    return record


def _failed_positions(records: list[Any]) -> list[int]:
    return [i for i, record in enumerate(records) if is_failure(record)]


def _splice(records: list[Any], positions: list[int], replacements: list[Any]) -> list[Any]:
    """Return a copy of *records* with *positions* replaced, in order."""
    by_position = dict(zip(positions, replacements, strict=True))
    return [by_position.get(i, record) for i, record in enumerate(records)]


def run_resamples(
    resample_once: Callable[[np.random.SeedSequence], Any],
    resamples: int,
    *,
    base: Mapping[str, pd.DataFrame] | None = None,
    parallelism: str | None = None,
    n_workers: int | None = None,
    executor: Executor | None = None,
    random_state: int | None = None,
    max_redos: int = MAX_REDOS,
    ctx: BootstrapContext | None = None,
) -> list[Any]:
    """Run *resample_once* ``resamples`` times, retrying failures.

    Args:
        resample_once: Callable taking a ``SeedSequence`` and returning
            a coefficient set (or raising / returning ``FitFailure``).
            Must be picklable for ``parallelism="parallel"``.
        resamples: Number of records to produce.
        base: Base coefficient set that every record must align with.
        parallelism: ``"none"``, ``"parallel"`` or ``"future"``;
            ``None`` uses :func:`~bootstrap_models.get_parallelism`.
        n_workers: Pool size for ``"parallel"``.
        executor: Executor for ``"future"``.
        random_state: Root seed; ``None`` draws fresh OS entropy.
        max_redos: Maximum number of retry rounds.
        ctx: Context to record run metadata on.

    Returns:
        A list of exactly *resamples* records.  Unresolved failures are
        ``FitFailure`` entries.

    Raises:
        ConfigError: If *resamples* is not positive, *parallelism* is
            unknown, or a resample hits a configuration problem.
    """
    if resamples < 1:
        raise ConfigError(f"resamples must be at least 1, got {resamples}.")
    if ctx is None:
        ctx = BootstrapContext()

    strategy = resolve_strategy(
        parallelism if parallelism is not None else get_parallelism(),
        n_workers=n_workers,
        executor=executor,
    )
    ctx.parallelism = strategy.name
    ctx.n_workers = getattr(strategy, "n_workers", None)
    ctx.n_resamples = resamples
    ctx.random_state = random_state

    root_seed = np.random.SeedSequence(random_state)
    task = partial(_call_safely, resample_once)

    def _run(count: int) -> list[Any]:
        outputs = strategy.map(task, root_seed.spawn(count))
        return [_validate(record, base) for record in outputs]

    records = _run(resamples)
    failed = _failed_positions(records)
    ctx.initial_failures = len(failed)
    ctx.retry_rounds = []

    if len(failed) / resamples > FAILURE_WARN_FRACTION:
        warnings.warn(
            f"There are a lot of errors (approx "
            f"{100 * len(failed) / resamples:.1f}%) among the resamples.",
            ResampleFailureWarning,
            stacklevel=2,
        )

    redo_round = 0
    while failed and redo_round < max_redos:
        redo_round += 1
        logger.info("%d error(s) to redo", len(failed))
        for position in failed:
            logger.debug("Resample %d failed: %s", position, records[position].reason)
        ctx.retry_rounds.append(len(failed))
        records = _splice(records, failed, _run(len(failed)))
        failed = _failed_positions(records)

    ctx.residual_failures = len(failed)
    if failed:
        warnings.warn(
            f"Could not generate error-free resamples in {max_redos} attempts; "
            f"returning {len(failed)} error(s) out of {resamples} total.",
            ResampleFailureWarning,
            stacklevel=2,
        )

    return records


__all__ = ["FAILURE_WARN_FRACTION", "MAX_REDOS", "run_resamples"]
