"""Base-data resolution.

Every resample indexes rows of one pandas DataFrame — the data the base
model was fitted on.  This module turns whatever the caller handed us
into that DataFrame:

* ``pandas.DataFrame`` — used as-is (never mutated).
* ``polars.DataFrame`` / ``polars.LazyFrame`` — converted at the
  boundary.  Polars is optional; without it only pandas is accepted.
* ``None`` — recovered from the model via ``model_data()``, with a
  warning, because the frame a model keeps internally may already be
  filtered (NA rows dropped) or transformed.
"""

from __future__ import annotations

import warnings
from typing import TYPE_CHECKING, Any, TypeAlias

import pandas as pd

from .exceptions import DataInferenceError

if TYPE_CHECKING:
    import polars as pl

    DataFrameLike: TypeAlias = pd.DataFrame | pl.DataFrame | pl.LazyFrame
else:
    DataFrameLike: TypeAlias = pd.DataFrame

try:
    import polars as pl

    _HAS_POLARS = True
except ImportError:
    _HAS_POLARS = False


def _ensure_pandas_df(obj: Any, *, name: str = "base_data") -> pd.DataFrame:
    """Return *obj* as a pandas DataFrame, converting Polars input.

    Raises:
        TypeError: If *obj* is not a recognised DataFrame type.
    """
    if isinstance(obj, pd.DataFrame):
        return obj

    if _HAS_POLARS:
        if isinstance(obj, pl.LazyFrame):
            return obj.collect().to_pandas()
        if isinstance(obj, pl.DataFrame):
            return obj.to_pandas()

    raise TypeError(
        f"'{name}' must be a pandas DataFrame"
        + (" or Polars DataFrame/LazyFrame" if _HAS_POLARS else "")
        + f", got {type(obj).__name__}."
    )


def resolve_base_data(model: Any, base_data: DataFrameLike | None) -> pd.DataFrame:
    """Return the data to resample for *model*.

    Args:
        model: A :class:`~bootstrap_models.models.BootstrapModel`.
        base_data: Caller-supplied data, or ``None`` to read it from
            the model.

    Returns:
        A pandas DataFrame with at least one row.

    Raises:
        DataInferenceError: If *base_data* is ``None`` and the model
            cannot provide its data, or if the data has no rows.
    """
    if base_data is None:
        warnings.warn(
            "Please supply data through the argument base_data; automatic "
            "reading from your model can produce unforeseeable bugs.",
            UserWarning,
            stacklevel=3,
        )
        inferred = model.model_data() if hasattr(model, "model_data") else None
        if inferred is None:
            raise DataInferenceError(
                "base_data cannot be automatically inferred, please supply "
                "data as base_data."
            )
        base_data = inferred

    data = _ensure_pandas_df(base_data)
    if len(data) == 0:
        raise DataInferenceError("base_data has no rows to resample.")
    return data


__all__ = ["DataFrameLike", "resolve_base_data"]
