"""bootstrap_models — Non-parametric bootstrap intervals for fitted models.

Block-resamples grouped data over the most informative grouping
variable (or case-resamples rows), refits the caller's model on every
resample under a pluggable concurrency strategy with bounded retry of
failed refits, and summarises the resampled coefficients into
percentile intervals and mirrored-tail p-values alongside the model's
own parametric ones.  Raw outputs of separate runs can be merged
before summarising.

Public API:
    .. autosummary::
        bootstrap_model
        bootstrap_ci
        combine_resampled_lists
        run_resamples
        select_resample_blocks
        calc_entropy
        build_sampling_plan
        generate_resample_indices
        grouping_variables
        get_parallelism
        set_parallelism
        get_executor
        set_executor
        BootstrapModel
        StatsmodelsModel
        MixedModel
        CoefficientExtractor
        BootstrapEngine
        BootstrapContext
        BootstrapResult
        ResampledCoefficients
        FitFailure
"""

from ._config import get_executor, get_parallelism, set_executor, set_parallelism
from ._context import BootstrapContext
from ._results import BootstrapResult, FitFailure, ResampledCoefficients
from .blocks import calc_entropy, select_resample_blocks
from .coefficients import CoefficientExtractor
from .combine import combine_resampled_lists
from .core import bootstrap_model
from .engine import BootstrapEngine
from .exceptions import (
    BootstrapError,
    ConfigError,
    DataInferenceError,
    ResampleFailureWarning,
    ShapeError,
    UnderPoweredTermError,
    UnmetMinimumsError,
)
from .formulas import grouping_variables
from .intervals import bootstrap_ci
from .models import BootstrapModel, MixedModel, StatsmodelsModel
from .resampling import build_sampling_plan, generate_resample_indices
from .runner import run_resamples

__all__ = [
    "BootstrapContext",
    "BootstrapResult",
    "FitFailure",
    "ResampledCoefficients",
    "bootstrap_model",
    "bootstrap_ci",
    "combine_resampled_lists",
    "run_resamples",
    "calc_entropy",
    "select_resample_blocks",
    "build_sampling_plan",
    "generate_resample_indices",
    "grouping_variables",
    "get_executor",
    "get_parallelism",
    "set_executor",
    "set_parallelism",
    "BootstrapModel",
    "MixedModel",
    "StatsmodelsModel",
    "CoefficientExtractor",
    "BootstrapEngine",
    "BootstrapError",
    "ConfigError",
    "DataInferenceError",
    "ResampleFailureWarning",
    "ShapeError",
    "UnderPoweredTermError",
    "UnmetMinimumsError",
]

__version__ = "0.1.0"
