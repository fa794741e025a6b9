"""Model capability protocol and statsmodels adapters.

The bootstrap engine never fits models itself.  It talks to the
caller's fitted model through the :class:`BootstrapModel` protocol:

* ``formula()`` — the model formula, from which grouping variables
  are extracted (lme4-style ``( … | g )`` terms);
* ``refit(data)`` — the same model specification fitted on new data,
  returning a new ``BootstrapModel`` (or raising on failure);
* ``coefficient_summary()`` — one coefficient DataFrame, or a mapping
  of component label → DataFrame (``None`` for absent components).
  The first two columns must be estimate and standard error.

Two optional capabilities are used when present:

* ``residual_df()`` — residual degrees of freedom for t-based
  parametric intervals (``None`` → z);
* ``model_data()`` — the data the model was fitted on, used only when
  the caller does not pass data explicitly.

Adapters
~~~~~~~~
* :class:`StatsmodelsModel` wraps results from the statsmodels formula
  API (``smf.ols``, ``smf.glm``, ``smf.logit``, …).
* :class:`MixedModel` fits lme4-style formulas with statsmodels
  ``MixedLM``.

Adding support for another library means writing one small class that
satisfies the protocol — the engine programs against the protocol, not
against concrete classes.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from scipy import stats
from statsmodels.base.wrapper import ResultsWrapper
from statsmodels.discrete.discrete_model import DiscreteModel
from statsmodels.regression.mixed_linear_model import MixedLM
from typing_extensions import Self

from .exceptions import ConfigError, ShapeError
from .formulas import fixed_effects_formula, grouping_variables, random_effect_terms

# ------------------------------------------------------------------ #
# BootstrapModel protocol
# ------------------------------------------------------------------ #


@runtime_checkable
class BootstrapModel(Protocol):
    """Interface that every bootstrappable model must implement."""

    def formula(self) -> str:
        """Model formula; lme4-style bar terms mark grouping variables."""
        ...

    def refit(self, data: pd.DataFrame) -> BootstrapModel:
        """Fit the same specification on *data*.

        Raise (any exception) when the fit fails; the resample is then
        recorded as a failure and retried.
        """
        ...

    def coefficient_summary(self) -> pd.DataFrame | Mapping[str, pd.DataFrame | None]:
        """Coefficient table(s): estimate and standard error first."""
        ...


def _summary_frame(
    params: Any, bse: Any, stat_label: str, p_values: Any | None = None
) -> pd.DataFrame:
    if np.ndim(params) != 1:
        raise ShapeError("Only models with a single coefficient vector are supported.")
    params = pd.Series(params)
    bse = pd.Series(np.asarray(bse, dtype=float), index=params.index)
    with np.errstate(divide="ignore", invalid="ignore"):
        statistic = params / bse
    if p_values is None:
        p_values = 2 * stats.norm.sf(np.abs(statistic))
    return pd.DataFrame(
        {
            "Estimate": params,
            "Std. Error": bse,
            stat_label: statistic,
            f"Pr(>|{stat_label[0]}|)": np.asarray(p_values, dtype=float),
        },
        index=params.index,
    )


# ------------------------------------------------------------------ #
# StatsmodelsModel
# ------------------------------------------------------------------ #


def _default_model_kwargs(model: Any) -> dict[str, Any]:
    """Constructor keywords that ``from_formula`` needs to rebuild *model*."""
    kwargs: dict[str, Any] = {}
    if isinstance(model, sm.GLM):
        kwargs["family"] = model.family
    return kwargs


def _default_fit_kwargs(model: Any) -> dict[str, Any]:
    if isinstance(model, DiscreteModel):
        return {"disp": 0}
    return {}


class StatsmodelsModel:
    """Adapter for results from the statsmodels formula API.

    Refits call ``type(results.model).from_formula(formula, data,
    **model_kwargs).fit(**fit_kwargs)``.  For GLMs the fitted family is
    carried over automatically; pass *model_kwargs* for anything else
    the model constructor needed (offsets, weights, …).

    Args:
        results: Fitted statsmodels results from a formula-API model.
        model_kwargs: Constructor keywords for refits.
        fit_kwargs: ``fit()`` keywords for refits.

    Raises:
        ConfigError: If *results* did not come from the formula API, or
            is a ``MixedLM`` fit (use :class:`MixedModel`).
    """

    def __init__(
        self,
        results: Any,
        *,
        model_kwargs: Mapping[str, Any] | None = None,
        fit_kwargs: Mapping[str, Any] | None = None,
    ) -> None:
        model = results.model
        if isinstance(model, MixedLM):
            raise ConfigError(
                "MixedLM results carry no grouping formula; fit the model "
                "with bootstrap_models.MixedModel.from_formula instead."
            )
        formula = getattr(model, "formula", None)
        if not isinstance(formula, str):
            raise ConfigError(
                "The statsmodels model was not created from a formula; "
                "refit it with the statsmodels.formula.api interface."
            )
        self.results = results
        self._formula = formula
        self._model_class = type(model)
        self._model_kwargs = (
            dict(model_kwargs) if model_kwargs is not None else _default_model_kwargs(model)
        )
        self._fit_kwargs = (
            dict(fit_kwargs) if fit_kwargs is not None else _default_fit_kwargs(model)
        )

    def formula(self) -> str:
        return self._formula

    def refit(self, data: pd.DataFrame) -> Self:
        model = self._model_class.from_formula(
            self._formula, data=data, **self._model_kwargs
        )
        return type(self)(
            model.fit(**self._fit_kwargs),
            model_kwargs=self._model_kwargs,
            fit_kwargs=self._fit_kwargs,
        )

    def coefficient_summary(self) -> pd.DataFrame:
        use_t = bool(getattr(self.results, "use_t", False))
        return _summary_frame(
            self.results.params,
            self.results.bse,
            "t value" if use_t else "z value",
            self.results.pvalues,
        )

    def residual_df(self) -> float | None:
        """``df_resid`` when the model's own inference is t-based."""
        if getattr(self.results, "use_t", False):
            df = getattr(self.results, "df_resid", None)
            if df is not None and np.isfinite(df):
                return float(df)
        return None

    def model_data(self) -> pd.DataFrame | None:
        frame = getattr(getattr(self.results.model, "data", None), "frame", None)
        return frame if isinstance(frame, pd.DataFrame) else None

    def __repr__(self) -> str:
        return f"StatsmodelsModel({self._model_class.__name__}, {self._formula!r})"


# ------------------------------------------------------------------ #
# MixedModel
# ------------------------------------------------------------------ #


def _fit_mixedlm(
    formula: str, data: pd.DataFrame, reml: bool, fit_kwargs: Mapping[str, Any]
) -> Any:
    terms = random_effect_terms(formula)
    if not terms:
        raise ConfigError(
            f"Formula {formula!r} has no random-effect term such as '(1 | group)'."
        )
    grouping = grouping_variables(formula)
    re_lhs = terms[0][0]
    vc_formula = {g: f"0 + C({g})" for g in grouping[1:]}
    model = smf.mixedlm(
        fixed_effects_formula(formula),
        data,
        groups=grouping[0],
        re_formula=re_lhs or "1",
        vc_formula=vc_formula or None,
    )
    return model.fit(reml=reml, **fit_kwargs)


class MixedModel:
    """Linear mixed model with an lme4-style formula, fitted by statsmodels.

    The first grouping variable becomes the statsmodels ``groups``
    argument and the left-hand side of its bar term the
    ``re_formula`` (random intercept and slopes).  Further grouping
    variables become variance components ``0 + C(g)`` nested within
    the first grouping — statsmodels' way of expressing additional
    random intercepts.

    Crossed random effects are approximated by that nesting: a formula
    such as ``y ~ x + (1 | subj) + (1 | item)`` is fitted as ``item``
    within ``subj``, so an ``item`` level shared across subjects gets
    an independent effect in each subject.  Fit truly crossed designs
    yourself and wrap the result in a custom :class:`BootstrapModel`.

    Only fixed effects are reported by :meth:`coefficient_summary`;
    :meth:`residual_df` is ``None`` so parametric intervals are z-based.

    Example:
        >>> model = MixedModel.from_formula("y ~ x + (1 | subj)", data)
        >>> bootstrap_model(model, data, resamples=199)
    """

    def __init__(
        self,
        formula: str,
        results: Any,
        data: pd.DataFrame | None = None,
        *,
        reml: bool = True,
        fit_kwargs: Mapping[str, Any] | None = None,
    ) -> None:
        self._formula = formula
        self.results = results
        self._data = data
        self._reml = reml
        self._fit_kwargs = dict(fit_kwargs or {})

    @classmethod
    def from_formula(
        cls, formula: str, data: pd.DataFrame, *, reml: bool = True, **fit_kwargs: Any
    ) -> Self:
        """Fit *formula* on *data* and wrap the result."""
        results = _fit_mixedlm(formula, data, reml, fit_kwargs)
        return cls(formula, results, data, reml=reml, fit_kwargs=fit_kwargs)

    def formula(self) -> str:
        return self._formula

    def refit(self, data: pd.DataFrame) -> Self:
        results = _fit_mixedlm(self._formula, data, self._reml, self._fit_kwargs)
        # Resampled data is not kept; only the base model needs it.
        return type(self)(
            self._formula, results, None, reml=self._reml, fit_kwargs=self._fit_kwargs
        )

    def coefficient_summary(self) -> pd.DataFrame:
        return _summary_frame(self.results.fe_params, self.results.bse_fe, "z value")

    def residual_df(self) -> float | None:
        return None

    def model_data(self) -> pd.DataFrame | None:
        return self._data

    def __repr__(self) -> str:
        return f"MixedModel({self._formula!r})"


# ------------------------------------------------------------------ #
# Resolution
# ------------------------------------------------------------------ #


def as_bootstrap_model(obj: Any) -> BootstrapModel:
    """Return *obj* as a :class:`BootstrapModel`.

    Objects that already implement the protocol are returned unchanged;
    statsmodels formula-API results are wrapped in
    :class:`StatsmodelsModel`.

    Raises:
        ConfigError: If *obj* offers neither capability.
    """
    if isinstance(obj, BootstrapModel):
        return obj
    if isinstance(obj, ResultsWrapper) or (
        hasattr(obj, "model") and hasattr(obj, "params") and hasattr(obj, "bse")
    ):
        return StatsmodelsModel(obj)
    raise ConfigError(
        f"Cannot bootstrap a {type(obj).__name__}: it must implement formula(), "
        "refit() and coefficient_summary(), or be a statsmodels formula-API result."
    )


def residual_df_of(model: Any) -> float:
    """Residual df of *model*, ``inf`` when unavailable."""
    getter = getattr(model, "residual_df", None)
    df = getter() if callable(getter) else None
    if df is None or not np.isfinite(df) or df <= 0:
        return math.inf
    return float(df)


__all__ = [
    "BootstrapModel",
    "MixedModel",
    "StatsmodelsModel",
    "as_bootstrap_model",
    "residual_df_of",
]
