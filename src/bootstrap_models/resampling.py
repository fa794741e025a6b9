"""Resample index generation.

One bootstrap resample is a vector of row indices into the base data.
Two modes exist:

Block resampling
----------------
When grouping variables are selected, the resampling unit is a
*level combination* L of those variables (a single level when one
variable is selected).  Each resample draws |L| combinations **with
replacement** and expands every drawn combination into all of its
rows, once per occurrence::

    levels      a  b  c         rows: a → [0, 1]   b → [2]   c → [3, 4, 5]
    draw        c  a  c
    indices     3 4 5 0 1 3 4 5

Group sizes and the within-group row structure survive intact; only
the composition of groups changes between resamples.

Case resampling
---------------
Without grouping variables, each resample draws N row indices with
replacement from the N rows.

Narrowness avoidance
--------------------
Resampling exactly n elements with replacement yields a bootstrap
distribution that is systematically too narrow in small samples — the
plug-in variance of a mean is (n−1)/n times the unbiased one.  Drawing
n−1 elements instead inflates the spread by roughly the reciprocal
factor.  It is on by default and applies in both modes (n = rows or
level combinations).

Minimum unique levels
---------------------
With few groups, a draw can by chance contain only a handful of
distinct levels, giving a degenerate refit.  ``unique_minimums`` maps
a grouping variable to the minimum number of its distinct levels that
a draw must cover.  Draws that fall short are rejected and redrawn —
a rejection-sampling loop with a hard attempt cap, not enumeration.
Exhausting the cap raises :class:`~bootstrap_models.exceptions.UnmetMinimumsError`
for that one resample, which the runner records as a failure and
redraws.

Everything needed to draw is captured once in an immutable
:class:`SamplingPlan`; :func:`generate_resample_indices` is a pure
function of the plan and an explicit ``numpy.random.Generator``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from .exceptions import ConfigError, UnmetMinimumsError

logger = logging.getLogger(__name__)

_DEFAULT_MAX_DRAW_ATTEMPTS = 1_000


@dataclass(frozen=True, eq=False)
class SamplingPlan:
    """Immutable description of how to draw one resample.

    Build with :func:`build_sampling_plan` rather than directly.

    Attributes:
        n_rows: Rows in the base data.
        blocks: Grouping variables resampled over (empty → case mode).
        draw_size: Elements drawn per resample (combinations or rows).
        n_levels: Distinct level combinations (``0`` in case mode).
        row_order: Row indices sorted by combination code.
        level_offsets: ``row_order[level_offsets[c]:level_offsets[c + 1]]``
            are the rows of combination *c*.
        minimum_checks: ``(level_of_combination, minimum)`` pairs, one
            per constrained grouping variable.
        max_draw_attempts: Rejection-sampling cap per resample.
    """

    n_rows: int
    blocks: tuple[str, ...] = ()
    draw_size: int = 0
    n_levels: int = 0
    row_order: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.intp))
    level_offsets: np.ndarray = field(default_factory=lambda: np.zeros(1, dtype=np.intp))
    minimum_checks: tuple[tuple[np.ndarray, int], ...] = ()
    max_draw_attempts: int = _DEFAULT_MAX_DRAW_ATTEMPTS

    @property
    def is_block(self) -> bool:
        return bool(self.blocks)


def build_sampling_plan(
    data: pd.DataFrame,
    blocks: Sequence[str] = (),
    unique_minimums: Mapping[str, int] | None = None,
    narrowness_avoid: bool = True,
    max_draw_attempts: int = _DEFAULT_MAX_DRAW_ATTEMPTS,
) -> SamplingPlan:
    """Precompute everything :func:`generate_resample_indices` needs.

    Args:
        data: Base data.
        blocks: Grouping variables to resample over; empty for case
            resampling.
        unique_minimums: Grouping variable → minimum number of its
            distinct levels per draw.  Entries for variables not in
            *blocks* are ignored.
        narrowness_avoid: Draw n−1 elements instead of n.
        max_draw_attempts: Cap on redraws when a minimum is not met.

    Returns:
        A :class:`SamplingPlan`.

    Raises:
        ConfigError: If a draw would be empty, or a minimum cannot be
            met by any draw.
    """
    n_rows = len(data)
    blocks = tuple(blocks)

    if not blocks:
        draw_size = n_rows - 1 if narrowness_avoid else n_rows
        if draw_size < 1:
            raise ConfigError(
                f"Case resampling {n_rows} row(s) with narrowness_avoid="
                f"{narrowness_avoid} would draw no rows."
            )
        if unique_minimums:
            logger.debug("unique_resample_lim ignored under case resampling.")
        return SamplingPlan(
            n_rows=n_rows, draw_size=draw_size, max_draw_attempts=max_draw_attempts
        )

    # Combination codes 0..L-1, one per row; NaN is a level of its own.
    codes = (
        data.groupby(list(blocks), sort=False, dropna=False, observed=True)
        .ngroup()
        .to_numpy(dtype=np.intp)
    )
    n_levels = int(codes.max()) + 1
    draw_size = n_levels - 1 if narrowness_avoid else n_levels
    if draw_size < 1:
        raise ConfigError(
            f"Block resampling over {list(blocks)} with {n_levels} level(s) "
            f"and narrowness_avoid={narrowness_avoid} would draw no levels."
        )

    row_order = np.argsort(codes, kind="stable").astype(np.intp)
    counts = np.bincount(codes, minlength=n_levels)
    level_offsets = np.concatenate([[0], np.cumsum(counts)]).astype(np.intp)

    checks: list[tuple[np.ndarray, int]] = []
    for col, minimum in (unique_minimums or {}).items():
        if col not in blocks:
            logger.debug("unique_resample_lim for '%s' ignored: not resampled.", col)
            continue
        minimum = int(minimum)
        col_codes, uniques = pd.factorize(data[col], use_na_sentinel=False)
        if minimum > len(uniques):
            raise ConfigError(
                f"unique_resample_lim for '{col}' is {minimum} but it only has "
                f"{len(uniques)} level(s)."
            )
        if minimum > draw_size:
            raise ConfigError(
                f"unique_resample_lim for '{col}' is {minimum} but each resample "
                f"only draws {draw_size} level combination(s)."
            )
        level_of_combination = np.empty(n_levels, dtype=np.intp)
        level_of_combination[codes] = col_codes
        checks.append((level_of_combination, minimum))

    return SamplingPlan(
        n_rows=n_rows,
        blocks=blocks,
        draw_size=draw_size,
        n_levels=n_levels,
        row_order=row_order,
        level_offsets=level_offsets,
        minimum_checks=tuple(checks),
        max_draw_attempts=max_draw_attempts,
    )


def _meets_minimums(plan: SamplingPlan, draw: np.ndarray) -> bool:
    return all(
        np.unique(level_of_combination[draw]).size >= minimum
        for level_of_combination, minimum in plan.minimum_checks
    )


def _draw_levels(plan: SamplingPlan, rng: np.random.Generator) -> np.ndarray:
    for _ in range(plan.max_draw_attempts):
        draw = rng.integers(0, plan.n_levels, size=plan.draw_size)
        if _meets_minimums(plan, draw):
            return draw
    raise UnmetMinimumsError(
        f"Could not draw a resample meeting unique_resample_lim in "
        f"{plan.max_draw_attempts} attempts."
    )


def generate_resample_indices(
    plan: SamplingPlan, rng: np.random.Generator
) -> np.ndarray:
    """Draw the row indices of one resample.

    Args:
        plan: Output of :func:`build_sampling_plan`.
        rng: Generator used for every random draw of this resample.

    Returns:
        Integer array of row positions into the base data.  Case mode
        returns exactly ``plan.draw_size`` indices; block mode returns
        the concatenated rows of the drawn combinations.

    Raises:
        UnmetMinimumsError: If no draw within the plan's attempt cap
            covers the required unique levels.
    """
    if not plan.is_block:
        return rng.integers(0, plan.n_rows, size=plan.draw_size, dtype=np.intp)

    draw = _draw_levels(plan, rng)
    starts = plan.level_offsets[draw]
    stops = plan.level_offsets[draw + 1]
    return np.concatenate(
        [plan.row_order[start:stop] for start, stop in zip(starts, stops, strict=True)]
    )


__all__ = ["SamplingPlan", "build_sampling_plan", "generate_resample_indices"]
