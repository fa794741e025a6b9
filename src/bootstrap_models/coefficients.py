"""Normalisation of model coefficient summaries.

Model libraries disagree on what a "coefficient summary" is.  An OLS
or GLM fit has one table of estimates, standard errors and test
statistics; a zero-inflated or hurdle model has one table *per
component* (conditional, zero-inflation, dispersion), some of which
may be absent for a given specification.

Downstream code should never branch on that difference, so every
summary is normalised once, at extraction time, into a
**coefficient set**: an ordered ``dict`` mapping a component label to
a DataFrame indexed by term with exactly two columns, ``estimate`` and
``std_error``.  Single-table summaries land under the label
``"cond"``.  Columns beyond the first two (t/z statistics, p-values)
are dropped — they are not needed and mean different things across
model families.

The component labels present in the **base** model are memoised by
:class:`CoefficientExtractor`; every resample must produce exactly the
same labels and the same terms in the same order, otherwise the
resample is rejected with :class:`~bootstrap_models.exceptions.ShapeError`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from .exceptions import ShapeError

DEFAULT_LABEL = "cond"

COEF_COLUMNS = ["estimate", "std_error"]


def _two_column_table(table: Any, label: str) -> pd.DataFrame:
    if not isinstance(table, pd.DataFrame):
        raise ShapeError(
            f"Coefficient table for '{label}' must be a DataFrame, "
            f"got {type(table).__name__}."
        )
    if table.shape[1] < 2:
        raise ShapeError(
            f"Coefficient table for '{label}' needs estimate and standard-error "
            f"columns, got {table.shape[1]} column(s)."
        )
    out = table.iloc[:, :2].astype(float)
    out.columns = COEF_COLUMNS
    out.index = out.index.map(str)
    return out


def _as_component_mapping(summary: Any) -> dict[str, Any]:
    """Return *summary* as ``label → table-or-None``, or raise ShapeError."""
    if isinstance(summary, Mapping):
        return {str(label): table for label, table in summary.items()}
    if isinstance(summary, Sequence) and not isinstance(summary, (str, bytes)):
        return {str(i): table for i, table in enumerate(summary)}
    raise ShapeError(
        "The coefficient summary must be a DataFrame or a mapping/list of "
        f"DataFrames, got {type(summary).__name__}."
    )


@dataclass(frozen=True)
class CoefficientExtractor:
    """Turn coefficient summaries into coefficient sets.

    Build it from the base model's summary with :meth:`from_summary`;
    the instance then remembers whether the model is single-table and,
    if not, which component labels carried a table.

    Attributes:
        labels: Non-null component labels of the base model, or
            ``None`` for single-table models.
    """

    labels: tuple[str, ...] | None = None

    @classmethod
    def from_summary(cls, summary: Any) -> CoefficientExtractor:
        """Inspect the base model's summary and memoise its shape.

        Raises:
            ShapeError: If *summary* is neither a DataFrame nor a
                mapping/list of DataFrames, or if every component is
                null.
        """
        if isinstance(summary, pd.DataFrame):
            return cls(labels=None)

        components = _as_component_mapping(summary)
        labels = tuple(label for label, table in components.items() if table is not None)
        if not labels:
            raise ShapeError("Every component of the coefficient summary is empty.")
        for label in labels:
            if not isinstance(components[label], pd.DataFrame):
                raise ShapeError(
                    f"Component '{label}' of the coefficient summary is a "
                    f"{type(components[label]).__name__}, not a DataFrame."
                )
        return cls(labels=labels)

    def extract(self, summary: Any) -> dict[str, pd.DataFrame]:
        """Normalise one native summary into a coefficient set.

        Raises:
            ShapeError: If *summary* does not have the memoised shape.
        """
        if self.labels is None:
            if not isinstance(summary, pd.DataFrame):
                raise ShapeError(
                    "Expected a single coefficient table like the base model, "
                    f"got {type(summary).__name__}."
                )
            return {DEFAULT_LABEL: _two_column_table(summary, DEFAULT_LABEL)}

        if isinstance(summary, pd.DataFrame):
            raise ShapeError(
                "Expected per-component coefficient tables like the base model, "
                "got a single table."
            )
        components = _as_component_mapping(summary)
        present = tuple(label for label, table in components.items() if table is not None)
        if set(present) != set(self.labels):
            raise ShapeError(
                f"Components {list(present)} differ from the base model's "
                f"{list(self.labels)}."
            )
        return {label: _two_column_table(components[label], label) for label in self.labels}

    def __call__(self, model: Any) -> dict[str, pd.DataFrame]:
        """Extract the coefficient set of a fitted model."""
        return self.extract(model.coefficient_summary())


def coefficient_set_shape(
    coef_set: Mapping[str, pd.DataFrame],
) -> tuple[tuple[str, tuple[str, ...]], ...]:
    """Signature of a coefficient set: labels with their ordered terms."""
    return tuple((label, tuple(table.index)) for label, table in coef_set.items())


def check_alignment(
    base: Mapping[str, pd.DataFrame], candidate: Mapping[str, pd.DataFrame]
) -> None:
    """Verify that *candidate* has the labels and term order of *base*.

    Raises:
        ShapeError: On any difference in labels, term names or order.
    """
    if list(candidate) != list(base):
        raise ShapeError(
            f"Components {list(candidate)} differ from the base model's {list(base)}."
        )
    for label, table in base.items():
        other = candidate[label]
        if not other.index.equals(table.index):
            raise ShapeError(
                f"Terms of component '{label}' differ from the base model: "
                f"{list(other.index)} vs {list(table.index)}."
            )


__all__ = [
    "COEF_COLUMNS",
    "DEFAULT_LABEL",
    "CoefficientExtractor",
    "check_alignment",
    "coefficient_set_shape",
]
