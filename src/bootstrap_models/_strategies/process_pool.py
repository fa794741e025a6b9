"""Process-pool execution via joblib.

Model refits are dominated by Python-level work in statsmodels
(formula parsing through patsy, design-matrix construction, IRLS or
REML loops), so threads would serialise on the GIL.  Resamples are
therefore spread across worker *processes* with joblib's loky backend.

``batch_size=1`` dispatches one resample per task: there is no static
pre-partitioning, so a slow or failing refit holds up only its own
slot and idle workers keep pulling new tasks.

The resample callable and its captured state (base data, model,
sampling plan) are pickled to the workers once per task; loky caches
large NumPy arrays via memory-mapping automatically.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from joblib import Parallel, cpu_count, delayed

from ..exceptions import ConfigError

T = TypeVar("T")


def default_n_workers() -> int:
    """Available cores minus one, never below one."""
    return max(1, cpu_count() - 1)


class ProcessPoolStrategy:
    """Distribute resamples across a fixed pool of worker processes.

    Args:
        n_workers: Pool size; defaults to :func:`default_n_workers`.
    """

    name: str = "parallel"

    def __init__(self, n_workers: int | None = None) -> None:
        if n_workers is not None and n_workers < 1:
            raise ConfigError(f"num_cores must be at least 1, got {n_workers}.")
        self.n_workers: int = n_workers if n_workers is not None else default_n_workers()

    def map(self, fn: Callable[[Any], T], items: Sequence[Any]) -> list[T]:
        if not items:
            return []
        return list(
            Parallel(n_jobs=self.n_workers, backend="loky", batch_size=1)(
                delayed(fn)(item) for item in items
            )
        )
