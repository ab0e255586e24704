"""
Ordinary least squares by column-pivoted QR decomposition.

``ols_fit`` is a pure function of (y, X).  It never forms or inverts XᵗX:
coefficients come from the triangular system R β = Qᵗy and the coefficient
covariance from R⁻¹, which keeps ill-conditioned (collinear) designs from
being amplified.  A rank-deficient design is an error, not a warning.
"""

import numpy as np
import pandas as pd
from scipy import linalg, stats
from sklearn.base import BaseEstimator, RegressorMixin

from .errors import SingularDesignError


class OLSResult:
    """
    Outcome of one least-squares fit.  All arrays are read-only.

    Attributes
    ----------
    names : list of str
        Design column names, in design order.
    params, bse, tvalues, pvalues : np.ndarray of shape (p,)
        Coefficients, standard errors, t statistics and two-sided p-values.
    cov_params : np.ndarray of shape (p, p)
        σ² (XᵗX)⁻¹.
    fitted, resid, hat : np.ndarray of shape (n,)
        Fitted values, residuals and the hat-matrix diagonal (leverage).
    n, p, df_resid : int
    rss, tss, sigma, r2, adj_r2, loglik : float
    fvalue, f_pvalue : float
        Overall F test against the intercept-only model (NaN when the
        design has no columns beyond the intercept).
    """

    def __init__(self, **fields):
        for key, value in fields.items():
            if isinstance(value, np.ndarray):
                value.setflags(write=False)
            setattr(self, key, value)

    def summary_frame(self):
        """Coefficient table indexed by design column name."""
        return pd.DataFrame({
            'Estimate': self.params,
            'Std_Error': self.bse,
            't_value': self.tvalues,
            'p_value': self.pvalues,
        }, index=pd.Index(self.names, name='Term'))

    def __repr__(self):
        return (f"OLSResult(n={self.n}, p={self.p}, r2={self.r2:.4f}, "
                f"sigma={self.sigma:.4f})")


def _has_constant(X):
    if X.shape[0] == 0:
        return False
    const = np.all(X == X[0], axis=0) & (X[0] != 0)
    return bool(np.any(const))


def ols_fit(y, X, names=None):
    """
    Fit y = Xβ + ε by least squares.

    Parameters
    ----------
    y : array-like of shape (n,)
    X : array-like of shape (n, p)
        Design matrix, normally with an intercept column of ones.  A
        DataFrame's column names are used when ``names`` is not given.
    names : sequence of str, optional

    Returns
    -------
    OLSResult

    Raises
    ------
    SingularDesignError
        If X does not have full column rank, or n <= p.
    """
    if names is None:
        names = (list(X.columns) if isinstance(X, pd.DataFrame)
                 else [f"x{i}" for i in range(np.shape(X)[1])])
    names = [str(c) for c in names]

    X = np.asarray(X, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64).ravel()
    if X.ndim != 2:
        raise ValueError(f"Design matrix must be 2-D, got shape {X.shape}")
    n, p = X.shape
    if len(y) != n:
        raise ValueError(f"Response length {len(y)} != design rows {n}")
    if p == 0:
        raise ValueError("Design matrix has no columns.")
    if len(names) != p:
        raise ValueError(f"Got {len(names)} names for {p} design columns")
    if not (np.all(np.isfinite(X)) and np.all(np.isfinite(y))):
        raise ValueError("Design matrix and response must be finite.")
    if n <= p:
        raise SingularDesignError(
            f"Singular design: {n} observations for {p} coefficients "
            f"leaves no residual degrees of freedom",
            columns=names,
        )

    Q, R, piv = linalg.qr(X, mode='economic', pivoting=True)
    diag = np.abs(np.diag(R))
    tol = (diag[0] if diag.size else 0.0) * max(n, p) * np.finfo(float).eps
    rank = int(np.sum(diag > tol))
    if rank < p:
        aliased = [names[j] for j in piv[rank:]]
        raise SingularDesignError(
            f"Singular design (rank {rank} < {p}); aliased column(s): "
            f"{aliased} among {names}",
            columns=aliased,
        )

    qty = Q.T @ y
    beta_piv = linalg.solve_triangular(R, qty)
    params = np.empty(p)
    params[piv] = beta_piv

    fitted = X @ params
    resid = y - fitted
    hat = np.sum(Q ** 2, axis=1)

    df_resid = n - p
    rss = float(resid @ resid)
    sigma2 = rss / df_resid

    r_inv = linalg.solve_triangular(R, np.eye(p))
    cov_piv = (r_inv @ r_inv.T) * sigma2
    cov = np.empty((p, p))
    cov[np.ix_(piv, piv)] = cov_piv
    bse = np.sqrt(np.diag(cov))

    with np.errstate(divide='ignore', invalid='ignore'):
        tvalues = params / bse
    pvalues = 2.0 * stats.t.sf(np.abs(tvalues), df_resid)

    intercept = _has_constant(X)
    tss = float(np.sum((y - y.mean()) ** 2) if intercept else y @ y)
    k0 = 1 if intercept else 0
    with np.errstate(divide='ignore', invalid='ignore'):
        r2 = 1.0 - rss / tss if tss > 0 else np.nan
        adj_r2 = 1.0 - (1.0 - r2) * (n - k0) / df_resid
        loglik = -0.5 * n * (np.log(2 * np.pi) + np.log(rss / n) + 1.0)

    df_model = p - k0
    if df_model > 0 and rss > 0:
        fvalue = ((tss - rss) / df_model) / sigma2
        f_pvalue = float(stats.f.sf(fvalue, df_model, df_resid))
    else:
        fvalue, f_pvalue = np.nan, np.nan

    return OLSResult(
        names=names, params=params, bse=bse, tvalues=tvalues,
        pvalues=pvalues, cov_params=cov, fitted=fitted, resid=resid,
        hat=hat, n=n, p=p, df_resid=df_resid, rss=rss, tss=tss,
        sigma=float(np.sqrt(sigma2)), r2=float(r2), adj_r2=float(adj_r2),
        loglik=float(loglik), fvalue=float(fvalue), f_pvalue=f_pvalue,
    )


class OLSRegressor(BaseEstimator, RegressorMixin):
    """
    scikit-learn style wrapper around :func:`ols_fit`.

    Parameters
    ----------
    fit_intercept : bool, default=True
        Prepend a column of ones to X before fitting.
    """

    def __init__(self, fit_intercept=True):
        self.fit_intercept = fit_intercept

    def _design(self, X):
        if isinstance(X, pd.DataFrame):
            names = [str(c) for c in X.columns]
        else:
            X = np.asarray(X, dtype=np.float64)
            if X.ndim == 1:
                X = X.reshape(-1, 1)
            names = [f"x{i}" for i in range(X.shape[1])]
        X = np.asarray(X, dtype=np.float64)
        if self.fit_intercept:
            X = np.column_stack([np.ones(len(X)), X])
            names = ['Intercept'] + names
        return X, names

    def fit(self, X, y):
        """Fit the model; raises SingularDesignError on a rank-deficient X."""
        design, names = self._design(X)
        self.result_ = ols_fit(y, design, names=names)
        self.n_features_in_ = design.shape[1] - int(self.fit_intercept)
        if self.fit_intercept:
            self.intercept_ = float(self.result_.params[0])
            self.coef_ = np.array(self.result_.params[1:])
        else:
            self.intercept_ = 0.0
            self.coef_ = np.array(self.result_.params)
        return self

    def predict(self, X):
        if not hasattr(self, 'result_'):
            raise RuntimeError(
                "Model has not been fitted. Call .fit(X, y) first."
            )
        design, _ = self._design(X)
        if design.shape[1] != len(self.result_.params):
            raise ValueError(
                f"X has {design.shape[1] - int(self.fit_intercept)} "
                f"features, expected {self.n_features_in_}"
            )
        return design @ self.result_.params
