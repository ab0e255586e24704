"""
Tests for the least-squares fitter, design builder and fitted models.
"""

import os
import sys

import numpy as np
import pandas as pd
import pytest
from scipy import stats

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from retinol import (
    Dataset, DataError, ModelSpec, OLSRegressor, SingularDesignError,
    fit_model, ols_fit,
)
from retinol.design import build_design, term_columns


def _linear_frame(n=200, seed=42):
    rng = np.random.RandomState(seed)
    frame = pd.DataFrame({
        'a': rng.randn(n),
        'b': rng.randn(n) * 2 + 1,
        'c': rng.uniform(0, 10, n),
    })
    frame['y'] = (5 + 3 * frame['a'] - 2 * frame['b'] + 0.5 * frame['c']
                  + rng.randn(n) * 0.5)
    return frame


def test_normal_equations_hold():
    """XᵗX β = Xᵗy for a full-rank design."""
    frame = _linear_frame()
    y, X = build_design(frame, 'y', ['a', 'b', 'c'])
    res = ols_fit(y, X)

    Xv, yv = X.values, y.values
    lhs = Xv.T @ Xv @ res.params
    rhs = Xv.T @ yv
    assert np.allclose(lhs, rhs, rtol=1e-9, atol=1e-7)

    expected, *_ = np.linalg.lstsq(Xv, yv, rcond=None)
    assert np.allclose(res.params, expected)
    assert res.names == ['Intercept', 'a', 'b', 'c']


def test_standard_errors_and_pvalues():
    frame = _linear_frame()
    y, X = build_design(frame, 'y', ['a', 'b', 'c'])
    res = ols_fit(y, X)

    Xv = X.values
    n, p = Xv.shape
    sigma2 = np.sum(res.resid ** 2) / (n - p)
    cov = sigma2 * np.linalg.inv(Xv.T @ Xv)
    assert np.allclose(res.cov_params, cov)
    assert np.allclose(res.bse, np.sqrt(np.diag(cov)))
    assert np.allclose(res.tvalues, res.params / res.bse)
    assert np.allclose(res.pvalues,
                       2 * stats.t.sf(np.abs(res.tvalues), n - p))
    assert res.df_resid == n - p
    assert res.sigma == pytest.approx(np.sqrt(sigma2))


def test_r2_and_hat_values():
    frame = _linear_frame()
    y, X = build_design(frame, 'y', ['a', 'b', 'c'])
    res = ols_fit(y, X)

    ss_tot = np.sum((y - y.mean()) ** 2)
    assert res.r2 == pytest.approx(1 - res.rss / ss_tot)
    # The hat matrix is a projection onto p dimensions
    assert res.hat.sum() == pytest.approx(X.shape[1])
    assert np.all((res.hat > 0) & (res.hat < 1))


def test_singular_design_names_aliased_column():
    frame = _linear_frame()
    frame['a_copy'] = 2.0 * frame['a']
    y, X = build_design(frame, 'y', ['a', 'b', 'a_copy'])
    with pytest.raises(SingularDesignError) as exc_info:
        ols_fit(y, X)
    assert len(exc_info.value.columns) == 1
    assert exc_info.value.columns[0] in ('a', 'a_copy')


def test_too_few_observations_is_singular():
    X = np.column_stack([np.ones(3), [1.0, 2.0, 3.0], [2.0, 1.0, 5.0]])
    with pytest.raises(SingularDesignError):
        ols_fit([1.0, 2.0, 3.0], X)


def test_results_are_read_only():
    frame = _linear_frame(n=30)
    y, X = build_design(frame, 'y', ['a'])
    res = ols_fit(y, X)
    with pytest.raises(ValueError):
        res.params[0] = 0.0


def test_regressor_matches_sklearn():
    from sklearn.linear_model import LinearRegression

    frame = _linear_frame()
    X, y = frame[['a', 'b', 'c']], frame['y']
    ours = OLSRegressor().fit(X, y)
    ref = LinearRegression().fit(X, y)

    assert np.allclose(ours.coef_, ref.coef_)
    assert ours.intercept_ == pytest.approx(ref.intercept_)
    assert np.allclose(ours.predict(X), ref.predict(X))
    assert ours.score(X, y) == pytest.approx(ref.score(X, y))


def test_regressor_predict_before_fit():
    with pytest.raises(RuntimeError):
        OLSRegressor().predict(np.zeros((3, 2)))


def test_removing_a_row_keeps_df_equal_to_n_minus_p():
    frame = _linear_frame(n=50)
    ds = Dataset.from_frame(frame)
    full = fit_model(ds, 'y', ['a', 'b', 'c'])
    fewer = fit_model(ds, 'y', ['a', 'b', 'c'], exclude=[7])

    assert full.n_obs == 50
    assert fewer.n_obs == 49
    assert fewer.df_resid == fewer.n_obs - fewer.n_params
    assert fewer.df_resid == full.df_resid - 1
    assert 7 not in fewer.row_ids
    assert fewer.spec.exclude == frozenset({7})


def test_exclusion_matches_refit_on_filtered_frame():
    frame = _linear_frame(n=40)
    ds = Dataset.from_frame(frame)
    model = fit_model(ds, 'y', ['a', 'b'], exclude=[1, 40])

    manual = frame.iloc[1:39]
    ref = ols_fit(manual['y'],
                  np.column_stack([np.ones(38), manual[['a', 'b']].values]))
    assert np.allclose(model.params.values, ref.params)


def test_unknown_exclusion_is_a_data_error():
    ds = Dataset.from_frame(_linear_frame(n=10))
    with pytest.raises(DataError):
        fit_model(ds, 'y', ['a'], exclude=[11])


def test_categorical_predictors_are_treatment_coded():
    rng = np.random.RandomState(42)
    n = 90
    grp = pd.Categorical(np.repeat(['never', 'former', 'current'], 30),
                         categories=['never', 'former', 'current'])
    frame = pd.DataFrame({'grp': grp, 'x': rng.randn(n)})
    effect = pd.Series(grp).map({'never': 0.0, 'former': 2.0,
                                 'current': 5.0}).astype(float).values
    frame['y'] = 1 + effect + frame['x'] + rng.randn(n) * 0.1

    assert term_columns(frame, ['grp', 'x']) == {
        'grp': ['grp[former]', 'grp[current]'], 'x': ['x'],
    }
    model = fit_model(frame, 'y', ['grp', 'x'])
    assert list(model.params.index) == ['Intercept', 'grp[former]',
                                        'grp[current]', 'x']
    assert model.params['grp[former]'] == pytest.approx(2.0, abs=0.1)
    assert model.params['grp[current]'] == pytest.approx(5.0, abs=0.1)
    assert set(model.significant()) == {'grp', 'x'}


def test_design_rejects_bad_names():
    frame = _linear_frame(n=10)
    with pytest.raises(ValueError, match="Unknown"):
        build_design(frame, 'y', ['a', 'nope'])
    with pytest.raises(ValueError, match="Response"):
        build_design(frame, 'y', ['a', 'y'])


def test_intercept_only_model():
    frame = _linear_frame(n=25)
    model = fit_model(frame, 'y', [])
    assert model.n_params == 1
    assert model.params['Intercept'] == pytest.approx(frame['y'].mean())
    assert model.r2 == pytest.approx(0.0, abs=1e-12)


def test_model_spec_drop_and_add():
    spec = ModelSpec('y', ['a', 'b', 'c'], exclude=[3])
    dropped = spec.drop('b')
    assert dropped.predictors == ('a', 'c')
    assert dropped.exclude == frozenset({3})
    assert dropped.add('b').predictors == ('a', 'c', 'b')
    assert spec == ModelSpec('y', ('a', 'b', 'c'), exclude={3})
    with pytest.raises(ValueError):
        spec.drop('zzz')
    with pytest.raises(ValueError):
        spec.add('a')


if __name__ == '__main__':
    sys.exit(pytest.main([__file__, '-v']))
