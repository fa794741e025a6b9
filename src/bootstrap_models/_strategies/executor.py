"""Execution on a caller-configured ``concurrent.futures`` executor.

The caller owns the scheduler: a ``ProcessPoolExecutor``,
``ThreadPoolExecutor``, a ``dask.distributed`` client's executor, or
anything else implementing ``concurrent.futures.Executor``.  This
strategy only submits one task per resample and then waits for all of
them — a synchronisation barrier, with no streaming consumption of
partial results.

Without a configured executor the strategy degrades to sequential
execution with a warning.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Callable, Sequence
from concurrent.futures import Executor, wait
from typing import Any, TypeVar

from .._config import get_executor
from .sequential import SequentialStrategy

T = TypeVar("T")

logger = logging.getLogger(__name__)


def resolve_executor(executor: Executor | None) -> Executor | None:
    """Explicit *executor* first, then the one set via ``set_executor``."""
    return executor if executor is not None else get_executor()


class ExecutorStrategy:
    """Submit each resample as an independent future.

    Args:
        executor: The caller's executor.  Never shut down here.
    """

    name: str = "future"

    def __init__(self, executor: Executor) -> None:
        self.executor = executor

    @classmethod
    def or_fallback(cls, executor: Executor | None) -> ExecutorStrategy | SequentialStrategy:
        """Build the strategy, or a sequential one when *executor* is ``None``."""
        if executor is None:
            warnings.warn(
                "parallelism='future' requested but no executor is configured "
                "(pass executor= or call bootstrap_models.set_executor); "
                "running resamples sequentially.",
                UserWarning,
                stacklevel=4,
            )
            return SequentialStrategy()
        return cls(executor)

    def map(self, fn: Callable[[Any], T], items: Sequence[Any]) -> list[T]:
        futures = [self.executor.submit(fn, item) for item in items]
        wait(futures)
        logger.debug("All %d submitted resample(s) finished.", len(futures))
        return [future.result() for future in futures]
