"""
Design-matrix construction from an explicit list of predictor names.

Numeric predictors contribute one column each.  Categorical predictors are
treatment-coded: one 0/1 indicator per non-reference level, named
``NAME[level]``, with the first category as the reference.
"""

import numpy as np
import pandas as pd

INTERCEPT = 'Intercept'


def _is_categorical(series):
    return isinstance(series.dtype, pd.CategoricalDtype)


def _check_names(frame, response, predictors):
    predictors = list(predictors)
    unknown = [p for p in predictors if p not in frame.columns]
    if response is not None and response not in frame.columns:
        unknown.insert(0, response)
    if unknown:
        raise ValueError(f"Unknown variable(s): {unknown}")
    if response is not None and response in predictors:
        raise ValueError(f"Response '{response}' cannot also be a predictor.")
    if len(set(predictors)) != len(predictors):
        raise ValueError(f"Duplicate predictor(s) in {predictors}")
    return predictors


def term_columns(frame, predictors):
    """
    Map each predictor name to the design columns it expands to.

    Returns
    -------
    dict
        predictor -> list of column names, in predictor order.
    """
    _check_names(frame, None, predictors)
    mapping = {}
    for name in predictors:
        series = frame[name]
        if _is_categorical(series):
            levels = list(series.cat.categories)[1:]
            mapping[name] = [f"{name}[{lvl}]" for lvl in levels]
        else:
            mapping[name] = [name]
    return mapping


def predictor_matrix(frame, predictors):
    """Numeric matrix of the predictor columns, without an intercept."""
    predictors = _check_names(frame, None, predictors)
    columns = {}
    for name, cols in term_columns(frame, predictors).items():
        series = frame[name]
        if _is_categorical(series):
            levels = list(series.cat.categories)[1:]
            for col, lvl in zip(cols, levels):
                columns[col] = (series == lvl).astype(np.float64).values
        else:
            columns[name] = pd.to_numeric(series).astype(np.float64).values
    return pd.DataFrame(columns, index=frame.index)


def build_design(frame, response, predictors, intercept=True):
    """
    Build the response vector and design matrix for ``response ~ predictors``.

    Parameters
    ----------
    frame : pd.DataFrame
    response : str
    predictors : sequence of str
        Ordered predictor names.  May be empty (intercept-only model).
    intercept : bool, default=True
        Prepend an ``Intercept`` column of ones.

    Returns
    -------
    y : pd.Series
    X : pd.DataFrame
    """
    predictors = _check_names(frame, response, predictors)
    y = pd.to_numeric(frame[response]).astype(np.float64)
    X = predictor_matrix(frame, predictors)
    if intercept:
        X.insert(0, INTERCEPT, 1.0)
    return y, X
