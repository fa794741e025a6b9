"""Typed result objects for bootstrap runs.

Frozen dataclasses that provide:

* **Attribute access** — ``result.tables``, ``result.probs``, etc.
* **Dict-like access** — ``result["tables"]``, ``result.get("key")``,
  ``"key" in result`` for consumers that prefer bracket syntax.
* **Serialisation** — ``.to_dict()`` returns a plain ``dict[str, Any]``
  with NumPy types converted to native Python and DataFrames converted
  to lists of row dicts.

Three types live here:

* :class:`FitFailure` — marker for one resample that produced no usable
  coefficients.
* :class:`ResampledCoefficients` — the raw output of a run (base
  coefficients plus one record per resample).  Unpacks as the pair
  ``(base_coef_se, resampled_coef_se)``.
* :class:`BootstrapResult` — intervals and p-values per component.

All are frozen: results are a snapshot of a completed run.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from ._context import BootstrapContext
    from .exceptions import UnderPoweredTermError

# ------------------------------------------------------------------ #
# Serialisation helper
# ------------------------------------------------------------------ #


def _numpy_to_python(obj: Any) -> Any:
    """Recursively convert NumPy / pandas objects to Python-native types.

    Handles nested dicts, lists, DataFrames (→ list of row dicts with
    the index under ``"term"``), ``np.ndarray``, ``np.integer`` and
    ``np.floating`` so that :meth:`to_dict` returns a fully
    JSON-serialisable structure.
    """
    if isinstance(obj, pd.DataFrame):
        frame = obj.reset_index(names="term")
        return [_numpy_to_python(row) for row in frame.to_dict(orient="records")]
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.integer, np.bool_)):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, BaseException):
        return str(obj)
    if isinstance(obj, FitFailure):
        return {"failure": obj.reason}
    if isinstance(obj, dict):
        return {str(k): _numpy_to_python(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        converted = [_numpy_to_python(item) for item in obj]
        return type(obj)(converted)
    return obj


# ------------------------------------------------------------------ #
# Dict-compatibility mixin
# ------------------------------------------------------------------ #


class _DictAccessMixin:
    """Dict-like access convenience for result dataclasses.

    Supports three access patterns:

    1. ``result["key"]``     — raises ``KeyError`` on miss
    2. ``result.get(key, d)`` — returns *d* on miss (default ``None``)
    3. ``"key" in result``   — membership test
    """

    # Fields to exclude from to_dict() serialisation.
    _EXCLUDE_FROM_DICT: ClassVar[frozenset[str]] = frozenset({"context"})

    def __getitem__(self, key: str) -> Any:
        try:
            return getattr(self, key)
        except AttributeError:
            raise KeyError(key) from None

    def get(self, key: str, default: Any = None) -> Any:
        return getattr(self, key, default)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return hasattr(self, key)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain, JSON-serialisable dictionary."""
        result: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            if f.name in self._EXCLUDE_FROM_DICT:
                continue
            result[f.name] = _numpy_to_python(getattr(self, f.name))
        return result


# ------------------------------------------------------------------ #
# FitFailure
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class FitFailure:
    """A resample whose refit or coefficient extraction failed.

    Carries no coefficient content, only a human-readable reason.
    """

    reason: str = "unknown failure"


def is_failure(record: Any) -> bool:
    """Return ``True`` if *record* marks a failed resample."""
    return isinstance(record, FitFailure)


# ------------------------------------------------------------------ #
# ResampledCoefficients
# ------------------------------------------------------------------ #


@dataclass(frozen=True, eq=False)
class ResampledCoefficients(_DictAccessMixin):
    """Raw output of a bootstrap run.

    Returned by ``bootstrap_model(..., return_coefs_instead=True)`` and
    by :func:`~bootstrap_models.combine.combine_resampled_lists`.
    Pass it to :func:`~bootstrap_models.intervals.bootstrap_ci` — or
    combine several of them first when resamples were produced on
    separate machines.
    """

    base_coef_se: dict[str, pd.DataFrame]
    """Coefficient set of the base model (label → table)."""

    resampled_coef_se: list[Any]
    """One record per resample: a coefficient set or a :class:`FitFailure`."""

    residual_df: float = math.inf
    """Residual degrees of freedom of the base model (``inf`` → z)."""

    context: BootstrapContext | None = field(default=None, repr=False, compare=False)
    """Run metadata.  Excluded from ``to_dict()`` serialisation."""

    def __iter__(self) -> Iterator[Any]:
        """Unpack as ``base, records = result``."""
        yield self.base_coef_se
        yield self.resampled_coef_se

    def __len__(self) -> int:
        return 2

    @property
    def n_failures(self) -> int:
        """Number of records marked as failed."""
        return sum(is_failure(r) for r in self.resampled_coef_se)


# ------------------------------------------------------------------ #
# BootstrapResult
# ------------------------------------------------------------------ #


@dataclass(frozen=True, eq=False)
class BootstrapResult(_DictAccessMixin):
    """Bootstrap and parametric intervals for every term.

    ``tables`` maps each component label (``"cond"`` for single-table
    models) to a DataFrame indexed by term with columns:

    * ``estimate``, ``std_error`` — base model values;
    * ``boot <p>%`` — percentile bootstrap bounds, one per probability;
    * ``base <p>%`` — parametric bounds (t or z);
    * ``boot p_value`` — mirrored-tail bootstrap p-value;
    * ``base p_value`` — two-sided Wald p-value;
    * ``n_usable`` — finite resampled estimates used.
    """

    tables: dict[str, pd.DataFrame]
    """Per-component result tables."""

    probs: tuple[float, ...]
    """Probability endpoints the bounds were computed at."""

    residual_df: float
    """Degrees of freedom behind the parametric bounds (``inf`` → z)."""

    n_resamples: int
    """Total records supplied, failures included."""

    n_successful: int
    """Records with usable coefficients."""

    term_errors: dict[tuple[str, str], UnderPoweredTermError] = field(
        default_factory=dict
    )
    """``(label, term)`` → error for terms without enough usable estimates."""

    context: BootstrapContext | None = field(default=None, repr=False, compare=False)
    """Run metadata.  Excluded from ``to_dict()`` serialisation."""

    def __getitem__(self, key: str) -> Any:
        """Attribute lookup, falling back to component tables."""
        if key in self.tables:
            return self.tables[key]
        return super().__getitem__(key)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["term_errors"] = {
            f"{label}:{term}": str(err)
            for (label, term), err in self.term_errors.items()
        }
        return result
