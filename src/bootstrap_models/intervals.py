"""Bootstrap and parametric intervals from resampled coefficients.

Percentile intervals
--------------------
For every term, the bootstrap interval endpoints are empirical
quantiles of the resampled estimates at the requested probabilities:

    lower = Q̂(α/2),   upper = Q̂(1 − α/2)

with ``numpy.quantile``'s default linear interpolation between order
statistics.  Failed resamples, and non-finite estimates within
otherwise successful resamples, contribute nothing to any term.

Mirrored-tail p-values
----------------------
The bootstrap p-value is the share of resampled estimates lying on the
opposite side of zero from the base estimate, doubled and capped at 1:

    p = min(1, 2 · #{β*_b ≤ 0} / B)    if β̂ ≥ 0
    p = min(1, 2 · #{β*_b ≥ 0} / B)    if β̂ < 0

A distribution centred on zero gives p ≈ 1; one entirely on the side
of the estimate gives p = 0.  The count is not shifted by one: a
bootstrap distribution is not a null reference set, so the
permutation-style (b + 1)/(B + 1) correction does not apply.

Parametric intervals
--------------------
For comparison the base model's own Wald intervals and p-values are
reported alongside:

    β̂ ± q · SE,   q = t⁻¹(p; df)   or   Φ⁻¹(p) when df = ∞

Usable-count floor
------------------
An empirical quantile of a handful of points is meaningless.  Fewer
than ``min_usable`` successful resamples overall is a configuration
error; a term with fewer than ``min_usable`` finite estimates is
reported as under-powered (NaN bounds and p-value) while the other
terms are still computed.
"""

from __future__ import annotations

import logging
import math
import warnings
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np
import pandas as pd
from scipy import stats

from ._results import BootstrapResult, is_failure
from .coefficients import check_alignment
from .exceptions import (
    ConfigError,
    ResampleFailureWarning,
    ShapeError,
    UnderPoweredTermError,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_USABLE = 10


def _bound_label(kind: str, prob: float) -> str:
    return f"{kind} {prob * 100:g}%"


def _resolve_probs(alpha_level: float, probs: Sequence[float] | None) -> tuple[float, ...]:
    if probs is None:
        if not 0 < alpha_level < 1:
            raise ConfigError(f"alpha_level must lie in (0, 1), got {alpha_level}.")
        return (alpha_level / 2, 1 - alpha_level / 2)

    resolved = tuple(float(p) for p in np.atleast_1d(probs))
    if not resolved:
        raise ConfigError("probs must contain at least one probability.")
    outside = [p for p in resolved if not 0 < p < 1]
    if outside:
        raise ConfigError(f"probs must lie in (0, 1); got {outside}.")
    return resolved


def _usable_records(
    base: Mapping[str, pd.DataFrame], records: Sequence[Any]
) -> list[Mapping[str, pd.DataFrame]]:
    usable = []
    for position, record in enumerate(records):
        if is_failure(record) or not isinstance(record, Mapping):
            continue
        try:
            check_alignment(base, record)
        except ShapeError as exc:
            logger.debug("Record %d discarded: %s", position, exc)
            continue
        usable.append(record)
    return usable


def _critical_values(probs: tuple[float, ...], df: float) -> np.ndarray:
    if math.isinf(df):
        return stats.norm.ppf(probs)
    return stats.t.ppf(probs, df)


def _wald_p_values(estimate: np.ndarray, std_error: np.ndarray, df: float) -> np.ndarray:
    with np.errstate(divide="ignore", invalid="ignore"):
        statistic = np.abs(estimate / std_error)
    if math.isinf(df):
        return 2 * stats.norm.sf(statistic)
    return 2 * stats.t.sf(statistic, df)


def _bootstrap_p_values(estimate: np.ndarray, draws: np.ndarray) -> np.ndarray:
    """Mirrored-tail p-values; *draws* is ``(B, n_terms)`` with NaN gaps."""
    finite = np.isfinite(draws)
    n_usable = finite.sum(axis=0)
    at_or_below = ((draws <= 0) & finite).sum(axis=0)
    at_or_above = ((draws >= 0) & finite).sum(axis=0)
    opposite = np.where(estimate >= 0, at_or_below, at_or_above)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.minimum(1.0, 2.0 * opposite / n_usable)


def _component_table(
    label: str,
    base: pd.DataFrame,
    draws: np.ndarray,
    probs: tuple[float, ...],
    orig_df: float,
    min_usable: int,
    term_errors: dict[tuple[str, str], UnderPoweredTermError],
) -> pd.DataFrame:
    estimate = base["estimate"].to_numpy(dtype=float)
    std_error = base["std_error"].to_numpy(dtype=float)

    draws = np.where(np.isfinite(draws), draws, np.nan)
    n_usable = np.isfinite(draws).sum(axis=0)
    powered = n_usable >= min_usable

    boot_bounds = np.full((len(probs), len(estimate)), np.nan)
    if powered.any():
        boot_bounds[:, powered] = np.nanquantile(draws[:, powered], probs, axis=0)

    boot_p = _bootstrap_p_values(estimate, draws)
    boot_p[~powered] = np.nan

    table = pd.DataFrame({"estimate": estimate, "std_error": std_error}, index=base.index)
    for prob, bounds in zip(probs, boot_bounds, strict=True):
        table[_bound_label("boot", prob)] = bounds
    for prob, q in zip(probs, _critical_values(probs, orig_df), strict=True):
        table[_bound_label("base", prob)] = estimate + q * std_error
    table["boot p_value"] = boot_p
    table["base p_value"] = _wald_p_values(estimate, std_error, orig_df)
    table["n_usable"] = n_usable

    for term, count in zip(base.index[~powered], n_usable[~powered], strict=True):
        term_errors[(label, term)] = UnderPoweredTermError(label, term, int(count), min_usable)

    return table


def bootstrap_ci(
    base_coef_se: Mapping[str, pd.DataFrame],
    resampled_coef_se: Sequence[Any],
    orig_df: float | None = math.inf,
    *,
    alpha_level: float = 0.05,
    probs: Sequence[float] | None = None,
    min_usable: int = DEFAULT_MIN_USABLE,
) -> BootstrapResult:
    """Compute bootstrap and parametric intervals for every term.

    Args:
        base_coef_se: Coefficient set of the base model.
        resampled_coef_se: One record per resample; failures and
            records that do not line up with *base_coef_se* are skipped.
        orig_df: Residual degrees of freedom of the base model;
            ``None`` or ``inf`` uses the normal distribution.
        alpha_level: Two-sided level, used when *probs* is ``None``.
        probs: Explicit probability endpoints, each in (0, 1).
        min_usable: Minimum number of usable estimates per term.

    Returns:
        A :class:`~bootstrap_models.BootstrapResult`.

    Raises:
        ConfigError: If the probabilities are invalid or fewer than
            *min_usable* successful resamples remain.
    """
    probs = _resolve_probs(alpha_level, probs)
    if min_usable < 1:
        raise ConfigError(f"min_usable must be at least 1, got {min_usable}.")
    df = math.inf if orig_df is None or not np.isfinite(orig_df) else float(orig_df)
    if df <= 0:
        raise ConfigError(f"orig_df must be positive, got {orig_df}.")

    usable = _usable_records(base_coef_se, resampled_coef_se)
    if len(usable) < min_usable:
        raise ConfigError(
            f"Only {len(usable)} successful resample(s) out of "
            f"{len(resampled_coef_se)}; at least {min_usable} are needed."
        )

    tables: dict[str, pd.DataFrame] = {}
    term_errors: dict[tuple[str, str], UnderPoweredTermError] = {}
    for label, base in base_coef_se.items():
        draws = np.vstack([record[label]["estimate"].to_numpy(dtype=float) for record in usable])
        tables[label] = _component_table(
            label, base, draws, probs, df, min_usable, term_errors
        )

    if term_errors:
        names = ", ".join(f"{label}:{term}" for label, term in term_errors)
        warnings.warn(
            f"Too few usable resampled estimates (< {min_usable}) for: {names}. "
            "Their bootstrap bounds and p-values are NaN.",
            ResampleFailureWarning,
            stacklevel=2,
        )

    return BootstrapResult(
        tables=tables,
        probs=probs,
        residual_df=df,
        n_resamples=len(resampled_coef_se),
        n_successful=len(usable),
        term_errors=term_errors,
    )


__all__ = ["DEFAULT_MIN_USABLE", "bootstrap_ci"]
