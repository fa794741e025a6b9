"""Merging resample outputs produced by separate runs.

A large bootstrap is easy to split across machines: run
``bootstrap_model(..., return_coefs_instead=True)`` with a smaller
``resamples`` and a different ``random_state`` on each, then merge the
raw outputs here and compute intervals once::

    parts = [bootstrap_model(fit, df, 3000, return_coefs_instead=True,
                             random_state=seed) for seed in (1, 2, 3)]
    merged = combine_resampled_lists(parts)
    result = bootstrap_ci(*merged, orig_df=merged.residual_df)

All inputs must come from the same base model; this is checked on the
labels and terms of the base coefficient sets.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from ._results import ResampledCoefficients
from .coefficients import coefficient_set_shape
from .exceptions import ConfigError


def _is_pair(obj: Any) -> bool:
    """A ``(base, records)`` pair rather than a container of outputs."""
    return (
        isinstance(obj, (tuple, list))
        and len(obj) == 2
        and isinstance(obj[0], Mapping)
        and isinstance(obj[1], Sequence)
        and not isinstance(obj[1], (str, bytes))
    )


def _flatten(inputs: tuple[Any, ...]) -> list[Any]:
    flat: list[Any] = []
    for item in inputs:
        if isinstance(item, ResampledCoefficients) or _is_pair(item):
            flat.append(item)
        elif isinstance(item, (list, tuple)):
            flat.extend(item)
        else:
            raise ConfigError(
                f"Cannot combine a {type(item).__name__}; expected resampling "
                "outputs or lists of them."
            )
    return flat


def _as_output(item: Any) -> ResampledCoefficients:
    if isinstance(item, ResampledCoefficients):
        return item
    if _is_pair(item):
        base, records = item
        return ResampledCoefficients(base_coef_se=dict(base), resampled_coef_se=list(records))
    raise ConfigError(
        f"Cannot combine a {type(item).__name__}; expected a resampling output "
        "or a (base_coef_se, resampled_coef_se) pair."
    )


def combine_resampled_lists(*inputs: Any) -> ResampledCoefficients:
    """Concatenate the records of several resampling outputs.

    Args:
        *inputs: :class:`~bootstrap_models.ResampledCoefficients`
            objects, ``(base_coef_se, resampled_coef_se)`` pairs, or
            lists/tuples of those (one level of nesting).

    Returns:
        A single output carrying the first input's base coefficients
        and residual df, and every record in input order.

    Raises:
        ConfigError: If no outputs are given, or their base models
            differ in component labels or terms.
    """
    outputs = [_as_output(item) for item in _flatten(inputs)]
    if not outputs:
        raise ConfigError("combine_resampled_lists() needs at least one output.")

    first = outputs[0]
    shape = coefficient_set_shape(first.base_coef_se)
    records: list[Any] = []
    for position, output in enumerate(outputs):
        if coefficient_set_shape(output.base_coef_se) != shape:
            raise ConfigError(
                f"Output {position} was produced from a different base model "
                "(component labels or terms differ from the first output)."
            )
        records.extend(output.resampled_coef_se)

    residual_df = first.residual_df if first.residual_df is not None else math.inf
    return ResampledCoefficients(
        base_coef_se=first.base_coef_se,
        resampled_coef_se=records,
        residual_df=residual_df,
    )


__all__ = ["combine_resampled_lists"]
