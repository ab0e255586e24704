"""
Tests for influence measures, normality checks and VIF.
"""

import os
import sys
import warnings

import numpy as np
import pandas as pd
import pytest
from scipy.linalg import hadamard

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from retinol import (
    Dataset, SingularDesignError, fit_model, flag_influential, high_vif,
    influence_frame, normality_tests, qq_series,
    variance_inflation_factors, vif_for,
)


def _frame_with_outlier(n=50, seed=42):
    rng = np.random.RandomState(seed)
    frame = pd.DataFrame({'x': rng.randn(n), 'z': rng.randn(n)})
    frame['y'] = 2 + 1.5 * frame['x'] - frame['z'] + rng.randn(n) * 0.5
    # Last row: extreme x, response far off the line
    frame.loc[n - 1, 'x'] = 10.0
    frame.loc[n - 1, 'y'] = -20.0
    return frame


def test_influence_matches_leave_one_out_refit():
    """Externally studentized residual = e_i / (s_(i) √(1 - h_i))."""
    frame = _frame_with_outlier()
    ds = Dataset.from_frame(frame)
    model = fit_model(ds, 'y', ['x', 'z'])
    infl = influence_frame(model)

    row = 17
    without = fit_model(ds, 'y', ['x', 'z'], exclude=[row])
    e, h = infl.loc[row, 'resid'], infl.loc[row, 'leverage']
    expected = e / (without.sigma * np.sqrt(1 - h))
    assert infl.loc[row, 'student_resid'] == pytest.approx(expected)


def test_cooks_distance_matches_coefficient_shift():
    """Cook's D_i = (β - β_(i))ᵗ XᵗX (β - β_(i)) / (p σ²)."""
    frame = _frame_with_outlier()
    ds = Dataset.from_frame(frame)
    model = fit_model(ds, 'y', ['x', 'z'])
    infl = influence_frame(model)

    row = 50
    without = fit_model(ds, 'y', ['x', 'z'], exclude=[row])
    X = model.design.values
    delta = model.params.values - without.params.values
    expected = delta @ X.T @ X @ delta / (model.n_params * model.sigma ** 2)
    assert infl.loc[row, 'cooks_d'] == pytest.approx(expected)


def test_influence_frame_columns_and_index():
    frame = _frame_with_outlier()
    model = fit_model(frame, 'y', ['x', 'z'], exclude=[3])
    infl = influence_frame(model)
    assert list(infl.columns) == ['fitted', 'resid', 'std_resid',
                                  'student_resid', 'leverage', 'cooks_d',
                                  'sqrt_abs_std_resid']
    assert 3 not in infl.index
    assert len(infl) == 49
    assert infl['leverage'].sum() == pytest.approx(model.n_params)


def test_planted_outlier_is_flagged_not_removed():
    frame = _frame_with_outlier()
    model = fit_model(frame, 'y', ['x', 'z'])
    flagged = flag_influential(model)

    assert flagged.index[0] == 50
    assert flagged.loc[50, 'high_leverage']
    assert flagged.loc[50, 'high_cooks']
    # Flagging never changes the model
    assert model.n_obs == 50


def test_flag_thresholds_are_configurable():
    frame = _frame_with_outlier()
    model = fit_model(frame, 'y', ['x', 'z'])
    flagged = flag_influential(model, leverage_threshold=1.0,
                               residual_threshold=1e6, cooks_threshold=1e6)
    assert flagged.empty


def test_qq_series():
    frame = _frame_with_outlier()
    model = fit_model(frame, 'y', ['x', 'z'])
    qq = qq_series(model)

    assert len(qq) == 50
    assert np.all(np.diff(qq['theoretical']) > 0)
    assert np.all(np.diff(qq['sample']) >= 0)
    assert qq['theoretical'].sum() == pytest.approx(0.0, abs=1e-9)
    assert set(qq['row_id']) == set(model.row_ids)


def test_normality_tests():
    rng = np.random.RandomState(42)
    frame = pd.DataFrame({'x': rng.randn(200)})
    frame['y'] = frame['x'] + rng.randn(200)
    result = normality_tests(fit_model(frame, 'y', ['x']))

    assert set(result) == {'shapiro_statistic', 'shapiro_pvalue',
                           'jarque_bera_statistic', 'jarque_bera_pvalue'}
    assert 0.0 <= result['shapiro_pvalue'] <= 1.0
    assert 0.0 <= result['jarque_bera_pvalue'] <= 1.0


def test_vif_of_orthogonal_predictors_is_one():
    H = hadamard(8)[:, 1:5].astype(float)
    frame = pd.DataFrame(H, columns=['a', 'b', 'c', 'd'])
    vifs = variance_inflation_factors(frame, ['a', 'b', 'c', 'd'])
    assert np.allclose(vifs.values, 1.0)


def test_vif_of_predictor_orthogonal_to_correlated_others():
    H = hadamard(16)[:, 1:5].astype(float)
    frame = pd.DataFrame({
        'orth': H[:, 0],
        'b': H[:, 1],
        'c': H[:, 1] + 0.3 * H[:, 2],
        'd': H[:, 3],
    })
    vifs = variance_inflation_factors(frame, ['orth', 'b', 'c', 'd'])
    assert vifs['orth'] == pytest.approx(1.0)
    assert vifs['b'] > 5.0
    assert vifs['c'] > 5.0


def test_vif_matches_correlation_for_two_predictors():
    rng = np.random.RandomState(42)
    x = rng.randn(100)
    frame = pd.DataFrame({'x': x, 'w': x + rng.randn(100)})
    vifs = variance_inflation_factors(frame, ['x', 'w'])
    r = np.corrcoef(frame['x'], frame['w'])[0, 1]
    assert vifs['x'] == pytest.approx(1 / (1 - r ** 2))
    assert vifs['w'] == pytest.approx(vifs['x'])


def test_vif_undefined_for_exact_collinearity():
    rng = np.random.RandomState(42)
    frame = pd.DataFrame({'a': rng.randn(30), 'b': rng.randn(30)})
    frame['c'] = frame['a'] + frame['b']
    with pytest.raises(SingularDesignError, match="VIF undefined"):
        variance_inflation_factors(frame, ['a', 'b', 'c'])


def test_vif_for_model_and_high_vif():
    rng = np.random.RandomState(42)
    base = rng.randn(100)
    frame = pd.DataFrame({
        'cal': base,
        'fat': base + rng.randn(100) * 0.2,
        'age': rng.randn(100),
    })
    frame['y'] = frame['age'] + rng.randn(100)
    model = fit_model(frame, 'y', ['cal', 'fat', 'age'])
    vifs = vif_for(model)
    assert list(vifs.index) == ['cal', 'fat', 'age']

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always')
        high = high_vif(vifs, threshold=5.0, warn=True)
    assert set(high.index) == {'cal', 'fat'}
    assert any('VIF above 5.0' in str(w.message) for w in caught)

    reduced = fit_model(frame, 'y', ['fat', 'age'])
    assert (vif_for(reduced) < 5.0).all()


if __name__ == '__main__':
    sys.exit(pytest.main([__file__, '-v']))
