"""
Regression diagnostics: influence, normality and multicollinearity.

Everything here reads a FittedModel and returns new pandas objects indexed
by row id.  Nothing is excluded automatically: the flags only point the
analyst at observations worth a second look.
"""

import warnings

import numpy as np
import pandas as pd
from scipy import stats

from .design import INTERCEPT, predictor_matrix
from .errors import SingularDesignError
from .ols import ols_fit


# ---------------------------------------------------------------------------
# Influence
# ---------------------------------------------------------------------------

def influence_frame(model):
    """
    Per-observation influence measures.

    Columns
    -------
    fitted, resid
    std_resid      e / (σ √(1 - h))                  (internally studentized)
    student_resid  r √((n - p - 1) / (n - p - r²))   (externally studentized)
    leverage       h, the hat-matrix diagonal
    cooks_d        r² h / (p (1 - h))
    sqrt_abs_std_resid   for the scale-location plot
    """
    res = model.result
    n, p = res.n, res.p
    h = np.asarray(res.hat)
    e = np.asarray(res.resid)

    with np.errstate(divide='ignore', invalid='ignore'):
        r = e / (res.sigma * np.sqrt(1.0 - h))
        dof = n - p - 1
        if dof > 0:
            t = r * np.sqrt(dof / (n - p - r ** 2))
        else:
            t = np.full(n, np.nan)
        cooks = r ** 2 * h / (p * (1.0 - h))

    return pd.DataFrame({
        'fitted': res.fitted,
        'resid': e,
        'std_resid': r,
        'student_resid': t,
        'leverage': h,
        'cooks_d': cooks,
        'sqrt_abs_std_resid': np.sqrt(np.abs(r)),
    }, index=model.design.index)


def flag_influential(model, leverage_threshold=None, residual_threshold=3.0,
                     cooks_threshold=None):
    """
    Observations worth reviewing before trusting the fit.

    Parameters
    ----------
    model : FittedModel
    leverage_threshold : float, optional
        Default 2p/n.
    residual_threshold : float, default=3.0
        Cut-off on |externally studentized residual|.
    cooks_threshold : float, optional
        Default 4/n.

    Returns
    -------
    pd.DataFrame
        The flagged rows of :func:`influence_frame` plus boolean columns
        ``high_leverage``, ``large_resid`` and ``high_cooks``, sorted by
        Cook's distance (largest first).
    """
    infl = influence_frame(model)
    n, p = model.n_obs, model.n_params
    if leverage_threshold is None:
        leverage_threshold = 2.0 * p / n
    if cooks_threshold is None:
        cooks_threshold = 4.0 / n

    infl['high_leverage'] = infl['leverage'] > leverage_threshold
    infl['large_resid'] = infl['student_resid'].abs() > residual_threshold
    infl['high_cooks'] = infl['cooks_d'] > cooks_threshold
    flagged = infl[infl[['high_leverage', 'large_resid',
                         'high_cooks']].any(axis=1)]
    return flagged.sort_values('cooks_d', ascending=False)


def qq_series(model):
    """
    Normal Q-Q series of the standardized residuals.

    Theoretical quantiles use R's ``ppoints``:  (i - a) / (n + 1 - 2a)
    with a = 3/8 for n <= 10 and 1/2 otherwise.
    """
    infl = influence_frame(model)
    n = len(infl)
    a = 0.375 if n <= 10 else 0.5
    probs = (np.arange(1, n + 1) - a) / (n + 1 - 2 * a)
    ordered = infl['std_resid'].sort_values(kind='mergesort')
    return pd.DataFrame({
        'row_id': ordered.index.values,
        'theoretical': stats.norm.ppf(probs),
        'sample': ordered.values,
    })


def normality_tests(model):
    """Shapiro-Wilk and Jarque-Bera tests on the residuals."""
    resid = np.asarray(model.result.resid)
    sw = stats.shapiro(resid)
    jb = stats.jarque_bera(resid)
    return {
        'shapiro_statistic': float(sw.statistic),
        'shapiro_pvalue': float(sw.pvalue),
        'jarque_bera_statistic': float(jb.statistic),
        'jarque_bera_pvalue': float(jb.pvalue),
    }


# ---------------------------------------------------------------------------
# Multicollinearity
# ---------------------------------------------------------------------------

def variance_inflation_factors(frame, predictors):
    """
    VIF of every design column of ``predictors``.

    Each column is regressed (with intercept) on all the others;
    VIF = 1 / (1 - R²) of that auxiliary regression.  Categorical
    predictors contribute one VIF per indicator column.

    Returns
    -------
    pd.Series
        Indexed by design column name.

    Raises
    ------
    SingularDesignError
        If an auxiliary regression is singular, or a column is an exact
        linear combination of the others (VIF undefined).
    """
    X = predictor_matrix(frame, predictors)
    cols = list(X.columns)
    vifs = {}
    for col in cols:
        others = [c for c in cols if c != col]
        names = [INTERCEPT] + others
        design = np.column_stack([np.ones(len(X)), X[others].values])
        try:
            aux = ols_fit(X[col].values, design, names=names)
        except SingularDesignError as exc:
            raise SingularDesignError(
                f"VIF undefined for {col}: auxiliary regression on "
                f"{others} is singular ({exc})",
                columns=exc.columns,
            ) from exc
        if not np.isfinite(aux.r2) or 1.0 - aux.r2 <= 1e-12:
            raise SingularDesignError(
                f"VIF undefined for {col}: it is an exact linear "
                f"combination of {others}",
                columns=[col] + others,
            )
        vifs[col] = 1.0 / (1.0 - aux.r2)
    return pd.Series(vifs, name='VIF', dtype=np.float64)


def vif_for(model):
    """VIFs of a fitted model's predictors, computed on its working data."""
    if not model.predictors:
        return pd.Series(dtype=np.float64, name='VIF')
    return variance_inflation_factors(model.dataset.frame, model.predictors)


def high_vif(vifs, threshold=5.0, warn=False):
    """
    VIFs above ``threshold``, largest first.

    A reporting convention only: nothing is dropped.  With ``warn=True`` a
    ``UserWarning`` lists the offenders.
    """
    high = vifs[vifs > threshold].sort_values(ascending=False)
    if warn and len(high):
        details = ", ".join(f"{k}={v:.2f}" for k, v in high.items())
        warnings.warn(f"VIF above {threshold}: {details}", UserWarning,
                      stacklevel=2)
    return high
