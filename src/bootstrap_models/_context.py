"""Run context — mutable accumulator for bootstrap-run metadata.

A :class:`BootstrapContext` travels through one bootstrap run,
collecting the decisions made along the way (which resampling unit
was chosen, which concurrency strategy actually ran, how many retry
rounds were needed).  It is attached to the returned result so that
callers can inspect a run after the fact without re-computation.

The context is **not** part of the public serialisation API:
:meth:`~_results.ResampledCoefficients.to_dict` and
:meth:`~_results.BootstrapResult.to_dict` skip it automatically.

Lifecycle::

    ┌──────────────────────────────────────────────────┐
    │  bootstrap_model()                               │
    │  ├─ ctx = BootstrapContext()                     │
    │  ├─ BootstrapEngine(…, ctx=ctx)                  │
    │  │   ├─ ctx.n_rows / grouping / resample_blocks  │
    │  │   └─ ctx.sampling_mode                        │
    │  ├─ run_resamples(…, ctx=ctx)                    │
    │  │   ├─ ctx.parallelism / n_workers              │
    │  │   ├─ ctx.initial_failures                     │
    │  │   ├─ ctx.retry_rounds.append(n_failed)        │
    │  │   └─ ctx.residual_failures                    │
    │  └─ result.context = ctx                         │
    └──────────────────────────────────────────────────┘
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class BootstrapContext:
    """Mutable accumulator for run metadata.

    Every field defaults to ``None`` (or an empty container) so the
    context can be created empty at the start of a run and populated
    incrementally.
    """

    # ---- Data & grouping -----------------------------------------
    n_rows: int | None = None
    """Rows in the base data."""

    grouping: list[str] = field(default_factory=list)
    """Grouping variables found in the model formula."""

    resample_blocks: list[str] = field(default_factory=list)
    """Grouping variables actually resampled over (empty → case)."""

    sampling_mode: str | None = None
    """``"block"`` or ``"case"``."""

    n_levels: int | None = None
    """Distinct level combinations of the resampled blocks."""

    draw_size: int | None = None
    """Elements drawn per resample (levels or rows)."""

    # ---- Execution -----------------------------------------------
    parallelism: str | None = None
    """Strategy that actually ran (after any fallback)."""

    n_workers: int | None = None
    """Worker processes for the ``"parallel"`` strategy."""

    random_state: int | None = None
    """Root seed, or ``None`` for OS entropy."""

    n_resamples: int | None = None
    """Requested resample count."""

    # ---- Failures ------------------------------------------------
    initial_failures: int | None = None
    """Failed records after the initial pass."""

    retry_rounds: list[int] = field(default_factory=list)
    """Size of each retry round, in order."""

    residual_failures: int | None = None
    """Failed records left after the retry bound."""


__all__ = ["BootstrapContext"]
