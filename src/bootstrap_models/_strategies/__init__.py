"""Concurrency strategy registry and protocol.

Resamples are independent units of work, so they can run anywhere.
Each strategy encapsulates one way of running them and exposes a
uniform ``map()`` interface that
:func:`~bootstrap_models.runner.run_resamples` calls once for the
initial pass and once per retry round:

* ``"none"``     — :class:`SequentialStrategy`, the calling thread.
* ``"parallel"`` — :class:`ProcessPoolStrategy`, a joblib/loky worker
  pool with one task per resample.
* ``"future"``   — :class:`ExecutorStrategy`, a caller-configured
  ``concurrent.futures.Executor``.

No strategy offers cancellation or timeouts: a hung refit blocks its
slot until it returns.

Adding a new strategy
~~~~~~~~~~~~~~~~~~~~~
1. Create a module under ``_strategies/`` with a class that satisfies
   the :class:`ConcurrencyStrategy` protocol.
2. Register it in :func:`_ensure_registry` below and add its name to
   ``PARALLELISM_CHOICES`` in :mod:`.._config`.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import Executor
from typing import Any, Protocol, TypeVar, runtime_checkable

from .._config import PARALLELISM_CHOICES
from ..exceptions import ConfigError

T = TypeVar("T")

# ------------------------------------------------------------------ #
# Strategy protocol
# ------------------------------------------------------------------ #


@runtime_checkable
class ConcurrencyStrategy(Protocol):
    """Interface that every concurrency strategy must satisfy."""

    name: str
    """Short identifier, as accepted by ``parallelism=``."""

    def map(self, fn: Callable[[Any], T], items: Sequence[Any]) -> list[T]:
        """Apply *fn* to every item and return all results.

        Returns only once every call has finished.  Result order is not
        part of the contract.
        """
        ...


# ------------------------------------------------------------------ #
# Registry
# ------------------------------------------------------------------ #

_STRATEGY_REGISTRY: dict[str, type] = {}


def _ensure_registry() -> None:
    """Populate the registry on first access."""
    if _STRATEGY_REGISTRY:
        return

    from .executor import ExecutorStrategy
    from .process_pool import ProcessPoolStrategy
    from .sequential import SequentialStrategy

    _STRATEGY_REGISTRY.update(
        {
            "none": SequentialStrategy,
            "parallel": ProcessPoolStrategy,
            "future": ExecutorStrategy,
        }
    )


def resolve_strategy(
    parallelism: str,
    *,
    n_workers: int | None = None,
    executor: Executor | None = None,
) -> ConcurrencyStrategy:
    """Return a strategy instance for *parallelism*.

    Args:
        parallelism: One of ``"none"``, ``"parallel"``, ``"future"``.
        n_workers: Pool size for ``"parallel"``.
        executor: Executor for ``"future"``; falls back to the one
            registered with :func:`~bootstrap_models.set_executor`.

    Raises:
        ConfigError: If *parallelism* is not recognised.
    """
    _ensure_registry()
    name = parallelism.strip().lower()
    if name not in _STRATEGY_REGISTRY:
        raise ConfigError(
            f"Invalid parallelism '{parallelism}'. "
            f"Choose from: {', '.join(PARALLELISM_CHOICES)}."
        )

    if name == "parallel":
        return _STRATEGY_REGISTRY[name](n_workers=n_workers)
    if name == "future":
        from .executor import resolve_executor

        return _STRATEGY_REGISTRY[name].or_fallback(resolve_executor(executor))
    return _STRATEGY_REGISTRY[name]()


__all__ = [
    "ConcurrencyStrategy",
    "resolve_strategy",
]
