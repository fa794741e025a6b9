"""Choice of the resampling unit.

A model with random effects can be block-resampled over any of its
grouping variables.  Resampling over several at once is valid but
conservative, so by default exactly **one** is chosen: the one whose
level distribution carries the most information, measured by Shannon
entropy

    H = −Σ_k p_k log p_k

of the empirical level frequencies p_k.  For balanced designs this is
log(#levels), so the variable with the most levels wins; with unequal
group sizes a variable with many tiny groups and one huge one can lose
to a balanced variable with fewer levels.

Ties go to the variable that appears first in the formula so that the
choice is deterministic.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
import pandas as pd
from scipy import stats

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


def calc_entropy(values: Sequence | np.ndarray | pd.Series) -> float:
    """Shannon entropy (natural log) of the empirical level distribution.

    Computed over the raw column: every row counts, missing values form
    their own level.

    Args:
        values: One column of level labels.

    Returns:
        Entropy in nats; ``0.0`` for a constant or empty column.
    """
    counts = pd.Series(values).value_counts(dropna=False).to_numpy()
    if counts.size == 0:
        return 0.0
    return float(stats.entropy(counts))


def select_resample_blocks(
    grouping: Sequence[str],
    data: pd.DataFrame,
    resample_blocks: Sequence[str] | None = None,
) -> list[str]:
    """Select the grouping variable(s) to resample over.

    Args:
        grouping: Grouping variables of the model, in formula order.
        data: Base data; must contain every grouping column.
        resample_blocks: Optional caller-chosen subset.  Intersected
            with *grouping*; several variables may be kept.

    Returns:
        The selected grouping variables.  An empty list means case
        (row-level) resampling.

    Raises:
        ConfigError: If a grouping variable is missing from *data*, or
            if *resample_blocks* shares nothing with a non-empty
            *grouping*.
    """
    grouping = list(grouping)
    missing = [g for g in grouping if g not in data.columns]
    if missing:
        raise ConfigError(
            f"Grouping variable(s) {missing} from the model formula are not "
            f"columns of base_data."
        )

    if resample_blocks is not None:
        if isinstance(resample_blocks, str):
            resample_blocks = [resample_blocks]
        requested = set(resample_blocks)
        selected = [g for g in grouping if g in requested]
        if not selected and grouping:
            raise ConfigError(
                "No random columns from formula found in resample_specific_blocks "
                f"(formula has {grouping}, got {list(resample_blocks)})."
            )
        return selected

    if len(grouping) <= 1:
        return grouping

    entropies = [calc_entropy(data[g]) for g in grouping]
    logger.debug(
        "Grouping entropies: %s",
        ", ".join(f"{g}={h:.4f}" for g, h in zip(grouping, entropies, strict=True)),
    )
    # np.argmax returns the first maximum, i.e. formula order on ties.
    return [grouping[int(np.argmax(entropies))]]


__all__ = ["calc_entropy", "select_resample_blocks"]
