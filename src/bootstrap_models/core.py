"""Bootstrap confidence intervals for fitted statistical models.

:func:`bootstrap_model` is the one-call entry point: it resamples the
data the model was fitted on, refits the model on every resample, and
summarises the resampled coefficients into percentile intervals and
p-values next to the model's own parametric ones.

Resampling unit
---------------
Models with random effects are **block-resampled**: whole levels of a
grouping variable are drawn with replacement, so within-group
dependence survives in every resample.  Among several grouping
variables the one with the highest Shannon entropy of its level
frequencies is used, unless ``resample_specific_blocks`` says
otherwise.  Models without random effects are **case-resampled**
(rows drawn with replacement).

Failures
--------
A refit that errors on some resample does not abort the run.  Failed
resamples are redrawn for up to ten rounds; whatever still fails is
reported with a warning and ignored by the interval computation.

Distributed runs
----------------
With ``return_coefs_instead=True`` the raw coefficients come back
instead of intervals.  Outputs of independent runs (e.g. on separate
machines, each with its own ``random_state``) can be merged with
:func:`~bootstrap_models.combine_resampled_lists` and summarised with
:func:`~bootstrap_models.bootstrap_ci`.

References:
    * Davison, A. C. & Hinkley, D. V. (1997). *Bootstrap Methods and
      their Application*. Cambridge University Press.
    * Field, C. A. & Welsh, A. H. (2007). Bootstrapping clustered
      data. *J. R. Statist. Soc. B*, 69(3), 369–390.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from concurrent.futures import Executor
from typing import Any

from ._context import BootstrapContext
from ._data import DataFrameLike
from ._results import BootstrapResult, ResampledCoefficients
from .engine import BootstrapEngine
from .intervals import bootstrap_ci


def bootstrap_model(
    base_model: Any,
    base_data: DataFrameLike | None = None,
    resamples: int = 9999,
    *,
    return_coefs_instead: bool = False,
    parallelism: str | None = None,
    resample_specific_blocks: str | Sequence[str] | None = None,
    unique_resample_lim: Mapping[str, int] | None = None,
    narrowness_avoid: bool = True,
    num_cores: int | None = None,
    suppress_sampling_message: bool = False,
    random_state: int | None = None,
    executor: Executor | None = None,
    alpha_level: float = 0.05,
    probs: Sequence[float] | None = None,
) -> BootstrapResult | ResampledCoefficients:
    """Bootstrap a fitted model's coefficients.

    Args:
        base_model: A statsmodels formula-API result (``smf.ols(...).fit()``
            and friends), a :class:`~bootstrap_models.MixedModel`, or any
            object implementing the
            :class:`~bootstrap_models.BootstrapModel` protocol.
        base_data: The data the model was fitted on.  Accepts pandas
            or Polars DataFrames.  ``None`` reads it from the model,
            with a warning.
        resamples: Number of resamples.
        return_coefs_instead: Return the raw
            :class:`~bootstrap_models.ResampledCoefficients` instead of
            intervals.
        parallelism: ``"none"``, ``"parallel"`` (joblib worker
            processes) or ``"future"`` (a ``concurrent.futures``
            executor).  ``None`` uses
            :func:`~bootstrap_models.get_parallelism`.
        resample_specific_blocks: Grouping variable(s) to resample over
            instead of the entropy-based choice.
        unique_resample_lim: Grouping variable → minimum number of its
            distinct levels every resample must contain.
        narrowness_avoid: Draw n−1 instead of n units per resample,
            countering the narrowness of small-sample bootstrap
            distributions.
        num_cores: Worker processes for ``"parallel"``; defaults to the
            number of cores minus one.
        suppress_sampling_message: Do not log which resampling unit was
            chosen.
        random_state: Seed for reproducibility.
        executor: Executor for ``"future"``; overrides
            :func:`~bootstrap_models.set_executor`.
        alpha_level: Two-sided level of the intervals.
        probs: Explicit probability endpoints, overriding *alpha_level*.

    Returns:
        A :class:`~bootstrap_models.BootstrapResult`, or a
        :class:`~bootstrap_models.ResampledCoefficients` when
        *return_coefs_instead* is set.  Either carries the run's
        :class:`~bootstrap_models.BootstrapContext` as ``context``.

    Raises:
        ConfigError: For invalid options, or too few successful
            resamples to compute intervals.
        DataInferenceError: If *base_data* is ``None`` and the model
            cannot provide its data.

    Example:
        >>> import statsmodels.formula.api as smf
        >>> fit = smf.ols("y ~ x", data=df).fit()
        >>> result = bootstrap_model(fit, df, resamples=999, random_state=1)
        >>> result["cond"][["estimate", "boot 2.5%", "boot 97.5%"]]
    """
    ctx = BootstrapContext()
    engine = BootstrapEngine(
        base_model,
        base_data,
        resample_specific_blocks=resample_specific_blocks,
        unique_resample_lim=unique_resample_lim,
        narrowness_avoid=narrowness_avoid,
        suppress_sampling_message=suppress_sampling_message,
        ctx=ctx,
    )
    output = engine.run(
        resamples,
        parallelism=parallelism,
        num_cores=num_cores,
        executor=executor,
        random_state=random_state,
    )
    if return_coefs_instead:
        return output

    result = bootstrap_ci(
        output.base_coef_se,
        output.resampled_coef_se,
        output.residual_df,
        alpha_level=alpha_level,
        probs=probs,
    )
    return BootstrapResult(
        tables=result.tables,
        probs=result.probs,
        residual_df=result.residual_df,
        n_resamples=result.n_resamples,
        n_successful=result.n_successful,
        term_errors=result.term_errors,
        context=ctx,
    )


__all__ = ["bootstrap_model"]
