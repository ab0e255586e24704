"""
Error taxonomy for the plasma retinol analysis.

Every failure here is deterministic: the same data and the same model
specification always fail the same way, so nothing is retried.  Errors
derive from ``ValueError`` (bad input) or ``RuntimeError`` (interrupted
work) so callers that already catch those keep working.
"""


class RetinolError(Exception):
    """Base class for all analysis errors."""


class DataError(RetinolError, ValueError):
    """Malformed rows, unknown categorical codes or missing values at load,
    or an exclusion naming a row id that is not in the dataset."""


class SingularDesignError(RetinolError, ValueError):
    """The design matrix does not have full column rank.

    Parameters
    ----------
    message : str
    columns : sequence of str
        The design columns found to be aliased (linearly dependent on the
        columns before them in pivot order).
    """

    def __init__(self, message, columns=()):
        super().__init__(message)
        self.columns = tuple(columns)


class AICcUndefinedError(RetinolError, ValueError):
    """n - k - 1 <= 0, so the small-sample correction is undefined."""


class CandidateMismatchError(RetinolError, ValueError):
    """Candidate models do not share a response or a set of observations."""


class PartitionInfeasibleError(RetinolError, ValueError):
    """Too many predictors for exhaustive subset enumeration."""


class PartitionCancelledError(RetinolError, RuntimeError):
    """Hierarchical partitioning was cancelled between subset fits."""
