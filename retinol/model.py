"""
Model specifications and fitted models.

A ``ModelSpec`` names a response, an ordered list of predictors and the row
ids to leave out.  ``fit_model`` turns a spec plus a Dataset into a
``FittedModel``, which is never modified after construction.
"""

import numpy as np
import pandas as pd

from .data import Dataset
from .design import build_design, term_columns
from .errors import AICcUndefinedError
from .ols import ols_fit


class ModelSpec:
    """
    Immutable ``response ~ predictors`` specification.

    Parameters
    ----------
    response : str
    predictors : sequence of str
    exclude : iterable of int, optional
        Row ids left out of the fit.
    """

    __slots__ = ('_response', '_predictors', '_exclude')

    def __init__(self, response, predictors, exclude=()):
        self._response = str(response)
        self._predictors = tuple(str(p) for p in predictors)
        self._exclude = frozenset(int(i) for i in exclude)

    response = property(lambda self: self._response)
    predictors = property(lambda self: self._predictors)
    exclude = property(lambda self: self._exclude)

    def drop(self, name):
        """Return a spec without predictor ``name``."""
        if name not in self._predictors:
            raise ValueError(f"'{name}' is not a predictor of {self}")
        return ModelSpec(self._response,
                         [p for p in self._predictors if p != name],
                         self._exclude)

    def add(self, name):
        """Return a spec with predictor ``name`` appended."""
        if name in self._predictors:
            raise ValueError(f"'{name}' is already a predictor of {self}")
        return ModelSpec(self._response, self._predictors + (name,),
                         self._exclude)

    def __eq__(self, other):
        if not isinstance(other, ModelSpec):
            return NotImplemented
        return (self._response == other._response
                and self._predictors == other._predictors
                and self._exclude == other._exclude)

    def __hash__(self):
        return hash((self._response, self._predictors, self._exclude))

    def __repr__(self):
        rhs = " + ".join(self._predictors) or "1"
        text = f"{self._response} ~ {rhs}"
        if self._exclude:
            text += f" [excluding {sorted(self._exclude)}]"
        return f"ModelSpec({text})"


def aic_value(rss, n, p):
    """AIC = n ln(RSS/n) + 2k with k = p + 1 (coefficients + variance)."""
    with np.errstate(divide='ignore'):
        return float(n * np.log(rss / n) + 2 * (p + 1))


def information_criteria(rss, n, p):
    """
    AIC and AICc for a Gaussian linear model.

    k = p + 1 counts the coefficients and the residual variance.

        AIC  = n ln(RSS/n) + 2k
        AICc = AIC + 2k(k + 1) / (n - k - 1)

    Raises
    ------
    AICcUndefinedError
        When n - k - 1 <= 0.
    """
    k = p + 1
    aic = aic_value(rss, n, p)
    denom = n - k - 1
    if denom <= 0:
        raise AICcUndefinedError(
            f"AICc undefined: n={n} observations for k={k} parameters "
            f"(n - k - 1 = {denom})"
        )
    return float(aic), float(aic + 2.0 * k * (k + 1) / denom)


class FittedModel:
    """
    A least-squares fit of one ModelSpec on one Dataset.

    Attributes
    ----------
    spec : ModelSpec
    dataset : Dataset
        Working copy with ``spec.exclude`` already removed.
    y : pd.Series
    design : pd.DataFrame
        Design matrix, indexed by row id.
    result : OLSResult
    terms : dict
        Predictor name -> design columns.
    """

    def __init__(self, spec, dataset, y, design, result, terms):
        self._spec = spec
        self._dataset = dataset
        self._y = y
        self._design = design
        self._result = result
        self._terms = terms

    spec = property(lambda self: self._spec)
    dataset = property(lambda self: self._dataset)
    result = property(lambda self: self._result)
    terms = property(lambda self: dict(self._terms))

    @property
    def y(self):
        return self._y.copy()

    @property
    def design(self):
        return self._design.copy()

    # ---- convenience accessors ------------------------------------------

    @property
    def response(self):
        return self._spec.response

    @property
    def predictors(self):
        return list(self._spec.predictors)

    @property
    def row_ids(self):
        return self._dataset.row_ids

    @property
    def n_obs(self):
        return self._result.n

    @property
    def n_params(self):
        """Number of estimated coefficients, intercept included."""
        return self._result.p

    @property
    def df_resid(self):
        return self._result.df_resid

    @property
    def k(self):
        """Parameters counted by AIC: coefficients plus residual variance."""
        return self._result.p + 1

    @property
    def rss(self):
        return self._result.rss

    @property
    def r2(self):
        return self._result.r2

    @property
    def adj_r2(self):
        return self._result.adj_r2

    @property
    def sigma(self):
        return self._result.sigma

    @property
    def loglik(self):
        return self._result.loglik

    @property
    def aic(self):
        return aic_value(self.rss, self.n_obs, self.n_params)

    @property
    def aicc(self):
        return information_criteria(self.rss, self.n_obs, self.n_params)[1]

    @property
    def params(self):
        return pd.Series(self._result.params, index=self._result.names)

    @property
    def pvalues(self):
        return pd.Series(self._result.pvalues, index=self._result.names)

    @property
    def fitted(self):
        return pd.Series(self._result.fitted, index=self._design.index,
                         name='fitted')

    @property
    def resid(self):
        return pd.Series(self._result.resid, index=self._design.index,
                         name='resid')

    @property
    def leverage(self):
        return pd.Series(self._result.hat, index=self._design.index,
                         name='leverage')

    def coef_table(self):
        """Estimate, Std_Error, t_value and p_value per design column."""
        return self._result.summary_frame()

    def significant(self, alpha=0.05):
        """Predictors with at least one design column significant at alpha."""
        pvals = self.pvalues
        return [name for name, cols in self._terms.items()
                if (pvals[cols] < alpha).any()]

    def __repr__(self):
        return (f"FittedModel({self._spec!r}, n={self.n_obs}, "
                f"r2={self.r2:.4f})")


def fit_model(dataset, response, predictors, exclude=()):
    """
    Fit ``response ~ predictors`` by OLS on ``dataset`` minus ``exclude``.

    Parameters
    ----------
    dataset : Dataset or pd.DataFrame
        A DataFrame is wrapped with ``Dataset.from_frame``.
    response : str
    predictors : sequence of str
    exclude : iterable of int, default=()
        Row ids to leave out.  Unknown ids raise ``DataError``.

    Returns
    -------
    FittedModel

    Raises
    ------
    SingularDesignError
        If the design is rank deficient.
    """
    if not isinstance(dataset, Dataset):
        dataset = Dataset.from_frame(dataset)
    spec = ModelSpec(response, predictors, exclude)
    working = dataset.exclude(spec.exclude)
    frame = working.frame
    y, X = build_design(frame, spec.response, spec.predictors)
    result = ols_fit(y.values, X.values, names=list(X.columns))
    terms = term_columns(frame, spec.predictors)
    return FittedModel(spec, working, y, X, result, terms)
