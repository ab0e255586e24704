"""
Plasma retinol regression analysis

Ordinary least squares, influence and multicollinearity diagnostics, AICc
model comparison, stepwise AIC selection and hierarchical partitioning of
R², applied to the plasma retinol dataset.
"""

from .data import Dataset, load_plasma, fetch_plasma_retinol, summarize
from .diagnostics import (
    influence_frame, flag_influential, qq_series, normality_tests,
    variance_inflation_factors, vif_for, high_vif,
)
from .errors import (
    RetinolError, DataError, SingularDesignError, AICcUndefinedError,
    CandidateMismatchError, PartitionInfeasibleError, PartitionCancelledError,
)
from .model import ModelSpec, FittedModel, fit_model
from .ols import OLSRegressor, OLSResult, ols_fit
from .partition import HierarchicalPartitioner
from .selection import StepwiseSelector, compare_models, aic, aicc

__version__ = "0.1.0"

__all__ = [
    "Dataset", "load_plasma", "fetch_plasma_retinol", "summarize",
    "influence_frame", "flag_influential", "qq_series", "normality_tests",
    "variance_inflation_factors", "vif_for", "high_vif",
    "RetinolError", "DataError", "SingularDesignError", "AICcUndefinedError",
    "CandidateMismatchError", "PartitionInfeasibleError",
    "PartitionCancelledError",
    "ModelSpec", "FittedModel", "fit_model",
    "OLSRegressor", "OLSResult", "ols_fit",
    "HierarchicalPartitioner",
    "StepwiseSelector", "compare_models", "aic", "aicc",
]
