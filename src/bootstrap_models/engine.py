"""Bootstrap engine — resolution of all run state before resampling.

The :class:`BootstrapEngine` centralises everything that happens
*before* the resamples execute:

1. **Model resolution** — wrap the caller's model in the
   :class:`~bootstrap_models.models.BootstrapModel` protocol.
2. **Data resolution** — use the supplied data, or read it from the
   model with a warning.
3. **Grouping extraction** — find the grouping variables of the
   model formula.
4. **Block selection** — pick the resampling unit (entropy argmax, or
   the caller's ``resample_specific_blocks``).
5. **Sampling plan** — precompute level offsets and minimum-coverage
   checks once.
6. **Base coefficients** — extract the base model's coefficient set
   and memoise its shape for every resample.

Every configuration problem is therefore raised here, before a single
refit runs.  :meth:`BootstrapEngine.run` then hands a picklable
per-resample task to :func:`~bootstrap_models.runner.run_resamples`.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping, Sequence
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from ._context import BootstrapContext
from ._data import DataFrameLike, resolve_base_data
from ._results import ResampledCoefficients
from .blocks import select_resample_blocks
from .coefficients import CoefficientExtractor
from .exceptions import ConfigError, ShapeError
from .formulas import grouping_variables
from .models import BootstrapModel, as_bootstrap_model, residual_df_of
from .resampling import SamplingPlan, build_sampling_plan, generate_resample_indices
from .runner import MAX_REDOS, run_resamples

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class _ResampleTask:
    """One resample: draw indices, refit, extract coefficients.

    Holds only read-only state so that it can be pickled to worker
    processes.  Each call builds its own generator from the seed it is
    given.
    """

    model: BootstrapModel
    data: pd.DataFrame
    plan: SamplingPlan
    extractor: CoefficientExtractor

    def __call__(self, seed: np.random.SeedSequence) -> dict[str, pd.DataFrame]:
        rng = np.random.default_rng(seed)
        indices = generate_resample_indices(self.plan, rng)
        resampled = self.data.iloc[indices].reset_index(drop=True)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            refitted = self.model.refit(resampled)
            return self.extractor(refitted)


def _validate_minimums(
    unique_resample_lim: Mapping[str, int] | None, grouping: Sequence[str]
) -> dict[str, int]:
    if unique_resample_lim is None:
        return {}
    if not isinstance(unique_resample_lim, Mapping):
        raise ConfigError(
            "unique_resample_lim must map grouping variables to minimum counts, "
            f"got {type(unique_resample_lim).__name__}."
        )
    unknown = [name for name in unique_resample_lim if name not in grouping]
    if unknown:
        raise ConfigError(
            f"unique_resample_lim names {unknown}, which are not grouping "
            f"variables of the model (found {list(grouping)})."
        )
    minimums = {}
    for name, minimum in unique_resample_lim.items():
        message = (
            f"unique_resample_lim for '{name}' must be a positive integer, "
            f"got {minimum!r}."
        )
        try:
            as_int = int(minimum)
        except (TypeError, ValueError) as exc:
            raise ConfigError(message) from exc
        if as_int != minimum or as_int < 1:
            raise ConfigError(message)
        minimums[name] = as_int
    return minimums


class BootstrapEngine:
    """Builder that resolves model, data and sampling state.

    Construct an engine, then call :meth:`run`.  The engine is
    immutable after construction: it captures a snapshot of the
    resolved state, so one engine can be run several times (with
    different seeds, say) and the outputs merged.

    Args:
        base_model: Fitted model: a :class:`BootstrapModel` or a
            statsmodels formula-API result.
        base_data: Data the model was fitted on.  ``None`` reads it
            from the model, with a warning.
        resample_specific_blocks: Grouping variable(s) to resample
            over instead of the entropy-based choice.
        unique_resample_lim: Grouping variable → minimum number of its
            distinct levels in every resample.
        narrowness_avoid: Draw n−1 instead of n units per resample.
        suppress_sampling_message: Do not log the chosen unit.
        ctx: Context to record run metadata on.

    Attributes:
        model: The resolved model.
        data: The resolved pandas data.
        grouping: Grouping variables of the model formula.
        blocks: Grouping variables resampled over (empty → case).
        plan: The :class:`~bootstrap_models.resampling.SamplingPlan`.
        extractor: Coefficient extractor memoising the base shape.
        base_coef_se: Coefficient set of the base model.
        residual_df: Residual df of the base model (``inf`` → z).

    Raises:
        ConfigError: For any invalid option, or a base model whose
            coefficient summary cannot be normalised.
        DataInferenceError: If no data is supplied and the model cannot
            provide it.
    """

    def __init__(
        self,
        base_model: Any,
        base_data: DataFrameLike | None = None,
        *,
        resample_specific_blocks: str | Sequence[str] | None = None,
        unique_resample_lim: Mapping[str, int] | None = None,
        narrowness_avoid: bool = True,
        suppress_sampling_message: bool = False,
        ctx: BootstrapContext | None = None,
    ) -> None:
        self.ctx: BootstrapContext = ctx if ctx is not None else BootstrapContext()

        # ---- Model & data -----------------------------------------
        self.model: BootstrapModel = as_bootstrap_model(base_model)
        self.data: pd.DataFrame = resolve_base_data(self.model, base_data)
        self.ctx.n_rows = len(self.data)

        # ---- Resampling unit --------------------------------------
        self.grouping: list[str] = grouping_variables(self.model.formula())
        self.blocks: list[str] = select_resample_blocks(
            self.grouping, self.data, resample_specific_blocks
        )
        minimums = _validate_minimums(unique_resample_lim, self.grouping)
        self.ctx.grouping = list(self.grouping)
        self.ctx.resample_blocks = list(self.blocks)

        if not suppress_sampling_message:
            if self.blocks:
                logger.info("Performing block resampling, over %s", ", ".join(self.blocks))
            else:
                logger.info("Performing case resampling (no random effects)")

        self.plan: SamplingPlan = build_sampling_plan(
            self.data,
            self.blocks,
            unique_minimums=minimums,
            narrowness_avoid=narrowness_avoid,
        )
        self.ctx.sampling_mode = "block" if self.plan.is_block else "case"
        self.ctx.n_levels = self.plan.n_levels if self.plan.is_block else None
        self.ctx.draw_size = self.plan.draw_size

        # ---- Base coefficients ------------------------------------
        summary = self.model.coefficient_summary()
        try:
            self.extractor: CoefficientExtractor = CoefficientExtractor.from_summary(summary)
            self.base_coef_se: dict[str, pd.DataFrame] = self.extractor.extract(summary)
        except ShapeError as exc:
            raise ConfigError(
                f"The base model's coefficient summary is not usable: {exc}"
            ) from exc
        self.residual_df: float = residual_df_of(self.model)

    # ---- Per-resample work ----------------------------------------

    def resample_task(self) -> _ResampleTask:
        """The picklable callable that produces one resample's record."""
        return _ResampleTask(self.model, self.data, self.plan, self.extractor)

    def run(
        self,
        resamples: int,
        *,
        parallelism: str | None = None,
        num_cores: int | None = None,
        executor: Executor | None = None,
        random_state: int | None = None,
        max_redos: int = MAX_REDOS,
    ) -> ResampledCoefficients:
        """Run *resamples* resamples and return the raw output.

        Args:
            resamples: Number of resamples.
            parallelism: ``"none"``, ``"parallel"`` or ``"future"``;
                ``None`` uses the configured default.
            num_cores: Worker processes for ``"parallel"``.
            executor: Executor for ``"future"``.
            random_state: Root seed for reproducibility.
            max_redos: Maximum retry rounds for failed refits.

        Returns:
            :class:`~bootstrap_models.ResampledCoefficients` with one
            record per resample.
        """
        records = run_resamples(
            self.resample_task(),
            resamples,
            base=self.base_coef_se,
            parallelism=parallelism,
            n_workers=num_cores,
            executor=executor,
            random_state=random_state,
            max_redos=max_redos,
            ctx=self.ctx,
        )
        return ResampledCoefficients(
            base_coef_se=self.base_coef_se,
            resampled_coef_se=records,
            residual_df=self.residual_df,
            context=self.ctx,
        )


__all__ = ["BootstrapEngine"]
