"""Parallelism configuration for the bootstrap_models package.

Controls which concurrency strategy runs the resamples when a call to
:func:`~bootstrap_models.bootstrap_model` does not name one, and holds
the caller-configured executor used by the ``"future"`` strategy.

Resolution order for the default parallelism (first match wins):
    1. Programmatic override via :func:`set_parallelism`.
    2. The ``BOOTSTRAP_MODELS_PARALLELISM`` environment variable.
    3. ``"none"`` (sequential).

Valid names are ``"none"``, ``"parallel"`` and ``"future"``
(case-insensitive).

Examples:
    Use a process pool by default from the shell::

        export BOOTSTRAP_MODELS_PARALLELISM=parallel

    Route resamples through your own executor::

        from concurrent.futures import ThreadPoolExecutor
        import bootstrap_models

        bootstrap_models.set_executor(ThreadPoolExecutor(max_workers=4))
        bootstrap_models.set_parallelism("future")

    Re-enable the default resolution::

        bootstrap_models.set_parallelism("auto")
"""

from __future__ import annotations

import os
from concurrent.futures import Executor

from .exceptions import ConfigError

PARALLELISM_CHOICES = ("none", "parallel", "future")

_VALID_SETTINGS = {*PARALLELISM_CHOICES, "auto"}

_ENV_VAR = "BOOTSTRAP_MODELS_PARALLELISM"

# Sentinel indicating "no programmatic override has been set".
_parallelism_override: str | None = None

_executor: Executor | None = None


def get_parallelism() -> str:
    """Return the active default parallelism name.

    Resolution order:
        1. Value set by :func:`set_parallelism` (unless ``"auto"``).
        2. ``BOOTSTRAP_MODELS_PARALLELISM`` environment variable.
        3. ``"none"``.

    Returns:
        ``"none"``, ``"parallel"`` or ``"future"``.
    """
    if _parallelism_override is not None and _parallelism_override != "auto":
        return _parallelism_override

    env = os.environ.get(_ENV_VAR, "").strip().lower()
    if env in PARALLELISM_CHOICES:
        return env

    return "none"


def set_parallelism(name: str) -> None:
    """Override the default parallelism.

    Args:
        name: One of ``"none"``, ``"parallel"``, ``"future"`` or
            ``"auto"`` (case-insensitive).  ``"auto"`` restores the
            default resolution order.

    Raises:
        ConfigError: If *name* is not a recognised setting.
    """
    global _parallelism_override
    normalised = name.strip().lower()
    if normalised not in _VALID_SETTINGS:
        raise ConfigError(
            f"Unknown parallelism '{name}'. Choose from: {sorted(_VALID_SETTINGS)}"
        )
    _parallelism_override = normalised


def get_executor() -> Executor | None:
    """Return the executor registered with :func:`set_executor`, if any."""
    return _executor


def set_executor(executor: Executor | None) -> None:
    """Register the executor used by the ``"future"`` strategy.

    The package never configures, resizes or shuts the executor down;
    that stays with the caller.  Pass ``None`` to clear it.

    Raises:
        TypeError: If *executor* is not a ``concurrent.futures.Executor``.
    """
    global _executor
    if executor is not None and not isinstance(executor, Executor):
        raise TypeError(
            "executor must be a concurrent.futures.Executor, "
            f"got {type(executor).__name__}."
        )
    _executor = executor
