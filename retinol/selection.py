"""
Model selection: AICc ranking of candidate sets and stepwise AIC search.
"""

import warnings

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator

from .data import Dataset
from .errors import CandidateMismatchError
from .model import fit_model, information_criteria


def aic(model):
    """AIC = n ln(RSS/n) + 2k of a FittedModel."""
    return model.aic


def aicc(model):
    """Small-sample corrected AIC of a FittedModel.

    Raises AICcUndefinedError when n - k - 1 <= 0."""
    return information_criteria(model.rss, model.n_obs, model.n_params)[1]


# ---------------------------------------------------------------------------
# Candidate sets
# ---------------------------------------------------------------------------

def _check_candidates(items, strict):
    problems = []
    responses = {model.response for _, model in items}
    if len(responses) > 1:
        problems.append(f"different responses {sorted(responses)}")
    reference = set(items[0][1].row_ids)
    for name, model in items[1:]:
        ids = set(model.row_ids)
        if ids != reference:
            problems.append(
                f"'{name}' uses {len(ids)} observations "
                f"({len(ids ^ reference)} differ from '{items[0][0]}')"
            )
    if not problems:
        return
    message = ("AICc comparison needs one response and one set of "
               "observations: " + "; ".join(problems))
    if strict:
        raise CandidateMismatchError(message)
    warnings.warn(message, UserWarning, stacklevel=3)


def compare_models(candidates, strict=True):
    """
    Rank a named candidate set by AICc.

    Parameters
    ----------
    candidates : mapping of str -> FittedModel
    strict : bool, default=True
        Raise ``CandidateMismatchError`` when the models do not share a
        response and a set of row ids; otherwise only warn.

    Returns
    -------
    pd.DataFrame
        Columns ``Model, K, LL, AICc, Delta_AICc, Weight, Cum_Weight``,
        best model first.  Weights are exp(-Δ/2) normalised to sum to 1.
    """
    items = list(dict(candidates).items())
    if not items:
        raise ValueError("Candidate set is empty.")
    _check_candidates(items, strict)

    rows = [{
        'Model': name,
        'K': model.k,
        'LL': model.loglik,
        'AICc': aicc(model),
    } for name, model in items]

    table = pd.DataFrame(rows)
    table = table.sort_values('AICc', kind='mergesort').reset_index(drop=True)
    table['Delta_AICc'] = table['AICc'] - table['AICc'].iloc[0]
    rel = np.exp(-0.5 * table['Delta_AICc'])
    table['Weight'] = rel / rel.sum()
    table['Cum_Weight'] = table['Weight'].cumsum()
    return table[['Model', 'K', 'LL', 'AICc', 'Delta_AICc', 'Weight',
                  'Cum_Weight']]


# ---------------------------------------------------------------------------
# Stepwise search
# ---------------------------------------------------------------------------

class StepwiseSelector(BaseEstimator):
    """
    Greedy stepwise search over subsets of a fixed predictor list,
    minimising AIC.

    The search starts from the full model.  Every iteration scores each
    single removal and, in ``'both'`` mode, each single re-addition, then
    takes the move with the lowest AIC if it is strictly lower than the
    current one.  It stops when no move improves AIC, when the best move
    would return to an already visited predictor set, or after
    ``max_steps`` moves.

    This is a local search: the result is not guaranteed to be the
    AIC-minimal model among all 2^p subsets.

    Parameters
    ----------
    direction : {'both', 'backward'}, default='both'
    max_steps : int, optional
        Default 2p.
    verbose : bool, default=False
        Print the candidate moves of every step.
    """

    def __init__(self, direction='both', max_steps=None, verbose=False):
        self.direction = direction
        self.max_steps = max_steps
        self.verbose = verbose

    def fit(self, dataset, response, predictors, exclude=()):
        """
        Run the search.

        Sets ``model_``, ``selected_``, ``trace_``, ``n_steps_`` and
        ``stop_reason_`` (``'no_improvement'``, ``'cycle'`` or
        ``'max_steps'``).
        """
        if self.direction not in ('both', 'backward'):
            raise ValueError(
                f"direction must be 'both' or 'backward', "
                f"got {self.direction!r}"
            )
        if not isinstance(dataset, Dataset):
            dataset = Dataset.from_frame(dataset)
        full = list(predictors)
        if len(set(full)) != len(full):
            raise ValueError(f"Duplicate predictor(s) in {full}")
        max_steps = 2 * len(full) if self.max_steps is None else self.max_steps
        exclude = tuple(exclude)

        fits = {}

        def _fit(subset):
            key = frozenset(subset)
            if key not in fits:
                ordered = [p for p in full if p in key]
                fits[key] = fit_model(dataset, response, ordered, exclude)
            return fits[key]

        current = tuple(full)
        model = _fit(current)
        visited = {frozenset(current)}
        trace = [self._trace_row(0, '<start>', model)]
        stop_reason = 'no_improvement'

        if self.verbose:
            print("=" * 70)
            print("STEPWISE SELECTION (direction={})".format(self.direction))
            print("=" * 70)
            print(f"  Start: AIC={model.aic:.2f}")
            print(f"  {model.response} ~ {' + '.join(current) or '1'}")

        n_steps = 0
        while True:
            if n_steps >= max_steps:
                stop_reason = 'max_steps'
                break

            moves = [('-' + name, tuple(p for p in current if p != name))
                     for name in current]
            if self.direction == 'both':
                moves += [('+' + name, current + (name,))
                          for name in full if name not in current]

            scored = [(_fit(sub).aic, move, sub) for move, sub in moves]
            scored.sort(key=lambda item: item[0])

            if self.verbose:
                print()
                print(f"  {'Move':20s}  {'AIC':>10s}")
                print(f"  {'<none>':20s}  {model.aic:>10.2f}")
                for value, move, _ in scored:
                    print(f"  {move:20s}  {value:>10.2f}")

            if not scored or scored[0][0] >= model.aic:
                stop_reason = 'no_improvement'
                break

            _, best_move, best_sub = scored[0]
            if frozenset(best_sub) in visited:
                stop_reason = 'cycle'
                break

            current = best_sub
            model = _fit(current)
            visited.add(frozenset(current))
            n_steps += 1
            trace.append(self._trace_row(n_steps, best_move, model))

            if self.verbose:
                print()
                print(f"  Step {n_steps}: {best_move}  AIC={model.aic:.2f}")

        if self.verbose:
            print()
            print(f"  Stopped ({stop_reason}) after {n_steps} step(s): "
                  f"{model.response} ~ {' + '.join(current) or '1'}")
            print("=" * 70)

        self.model_ = model
        self.selected_ = list(model.predictors)
        self.trace_ = pd.DataFrame(trace)
        self.n_steps_ = n_steps
        self.stop_reason_ = stop_reason
        self.n_fits_ = len(fits)
        return self

    @staticmethod
    def _trace_row(step, move, model):
        return {
            'Step': step,
            'Move': move,
            'Predictors': ' + '.join(model.predictors) or '1',
            'AIC': model.aic,
        }
