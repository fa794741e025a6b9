"""Exception and warning types for the bootstrap_models package.

Two families of problems exist:

* **Fatal configuration problems** — :class:`ConfigError` and
  :class:`DataInferenceError`.  These are raised before any resampling
  starts and are never retried.  Both subclass ``ValueError`` so that
  callers written against plain ``ValueError`` keep working.
* **Per-resample problems** — :class:`ShapeError` is raised inside a
  single resample when its coefficient output does not line up with the
  base model, and :class:`UnmetMinimumsError` when a block draw cannot
  satisfy ``unique_resample_lim`` within its attempt cap.  The runner
  converts these (and any exception raised by a refit) into a
  :class:`~bootstrap_models._results.FitFailure` record and retries;
  they never escape a run.

:class:`UnderPoweredTermError` is not raised out of the CI engine: an
instance is stored per term in
:attr:`~bootstrap_models._results.BootstrapResult.term_errors`.
"""

from __future__ import annotations


class BootstrapError(Exception):
    """Base class for all bootstrap_models errors."""


class ConfigError(BootstrapError, ValueError):
    """Invalid combination of caller options."""


class DataInferenceError(BootstrapError, ValueError):
    """The dataset was not supplied and cannot be recovered from the model."""


class ShapeError(BootstrapError):
    """Coefficient output whose labels or terms differ from the base model."""


class UnmetMinimumsError(BootstrapError):
    """No block draw met the unique-level minimums within the attempt cap."""


class UnderPoweredTermError(BootstrapError):
    """Too few usable resampled estimates to compute quantiles for a term.

    Attributes:
        label: Component label (e.g. ``"cond"``).
        term: Term name within the component.
        n_usable: Number of finite resampled estimates available.
        min_usable: The floor that was not met.
    """

    def __init__(self, label: str, term: str, n_usable: int, min_usable: int) -> None:
        self.label = label
        self.term = term
        self.n_usable = n_usable
        self.min_usable = min_usable
        super().__init__(
            f"Term '{term}' in component '{label}' has only {n_usable} usable "
            f"resampled estimate(s); at least {min_usable} are required."
        )


class ResampleFailureWarning(UserWarning):
    """High or unresolved failure counts among bootstrap resamples."""


__all__ = [
    "BootstrapError",
    "ConfigError",
    "DataInferenceError",
    "ResampleFailureWarning",
    "ShapeError",
    "UnderPoweredTermError",
    "UnmetMinimumsError",
]
