"""
Hierarchical partitioning of R² across predictors.

Every non-empty subset of the p predictors is fitted (2^p - 1 regressions)
and each predictor's contribution is averaged over the subsets it can be
added to:

    level s = 1..p:   mean over subsets S with |S| = s - 1, i not in S, of
                      R²(S ∪ {i}) - R²(S)            (R²(∅) = 0)
    Independent  I_i = mean of the p level means
    Total        T_i = R²({i})                        (the level-1 increase)
    Joint        J_i = T_i - I_i

The independent contributions sum to the R² of the full model.  Joint
contributions are negative for suppressor variables.

Cost doubles with every extra predictor, so p is bounded by
``max_predictors`` and checked before any fit is run.
"""

import time
import warnings
from concurrent.futures import ThreadPoolExecutor, as_completed
from itertools import combinations

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator
from sklearn.linear_model import LinearRegression

from .data import Dataset
from .design import INTERCEPT, build_design, term_columns
from .errors import PartitionCancelledError, PartitionInfeasibleError
from .ols import ols_fit

# Hard ceiling on max_predictors: 2^20 - 1 fits
MAX_PARTITION_PREDICTORS = 20
# Above this many predictors a run takes noticeably long; warn
WARN_PARTITION_PREDICTORS = 12


def _subset_r2(X, y, columns):
    Xs = X[:, columns]
    mdl = LinearRegression().fit(Xs, y)
    return mdl.score(Xs, y)


class HierarchicalPartitioner(BaseEstimator):
    """
    Exhaustive-subset variance decomposition.

    Parameters
    ----------
    max_predictors : int, default=15
        Refuse to run above this many predictors.  Cannot exceed
        ``MAX_PARTITION_PREDICTORS``.
    n_jobs : int, default=1
        Worker threads for the subset fits.  Fits share no mutable state
        and results are keyed by subset, so completion order is irrelevant.
    cancel_event : threading.Event, optional
        Checked before each subset fit; once set, ``fit`` raises
        ``PartitionCancelledError``.
    verbose : bool, default=False
    """

    def __init__(self, max_predictors=15, n_jobs=1, cancel_event=None,
                 verbose=False):
        self.max_predictors = max_predictors
        self.n_jobs = n_jobs
        self.cancel_event = cancel_event
        self.verbose = verbose

    # ---- public interface ------------------------------------------------

    def fit(self, dataset, response, predictors, exclude=()):
        """
        Fit all subsets of ``predictors`` and partition R².

        Sets ``subset_r2_``, ``independent_``, ``joint_``, ``total_``,
        ``r2_full_``, ``n_fits_`` and ``runtime_``.

        Raises ``SingularDesignError`` before any subset fit when the full
        design is rank deficient.
        """
        t0 = time.time()
        predictors = list(predictors)
        p = len(predictors)
        self._check_size(p)

        if not isinstance(dataset, Dataset):
            dataset = Dataset.from_frame(dataset)
        frame = dataset.exclude(exclude).frame
        y, X = build_design(frame, response, predictors)
        # A full-rank full design makes every subset design full rank too
        ols_fit(y, X)
        X = X.drop(columns=INTERCEPT)
        groups = term_columns(frame, predictors)
        col_index = {c: j for j, c in enumerate(X.columns)}
        term_cols = [[col_index[c] for c in groups[name]]
                     for name in predictors]
        X = X.values
        y = y.values

        subsets = [combo for size in range(1, p + 1)
                   for combo in combinations(range(p), size)]

        if self.verbose:
            print("=" * 70)
            print("HIERARCHICAL PARTITIONING")
            print("=" * 70)
            print(f"  Response   : {response}")
            print(f"  Predictors : {p}  ({len(subsets)} subset fits, "
                  f"n_jobs={self.n_jobs})")

        r2 = self._fit_subsets(X, y, term_cols, subsets)
        r2[()] = 0.0

        independent, total = self._partition(r2, p)
        names = pd.Index(predictors, name='Predictor')
        self.independent_ = pd.Series(independent, index=names,
                                      name='Independent')
        self.total_ = pd.Series(total, index=names, name='Total')
        self.joint_ = (self.total_ - self.independent_).rename('Joint')
        self.r2_full_ = r2[tuple(range(p))]
        self.subset_r2_ = pd.Series(
            {' + '.join(predictors[i] for i in combo): r2[combo]
             for combo in subsets},
            name='R2',
        )
        self.n_fits_ = len(subsets)
        self.runtime_ = time.time() - t0

        if self.verbose:
            print(f"  Full R²    : {self.r2_full_:.4f}")
            print(f"  Sum of I   : {self.independent_.sum():.4f}")
            print(f"  Runtime    : {self.runtime_:.2f}s")
            print()

        return self

    def get_partition(self):
        """
        Independent, joint and total contribution per predictor.

        ``Independent_pct`` is each independent contribution as a
        percentage of the full-model R².
        """
        self._check_fitted()
        table = pd.DataFrame({
            'Independent': self.independent_,
            'Joint': self.joint_,
            'Total': self.total_,
        })
        table['Independent_pct'] = (100.0 * table['Independent']
                                    / table['Independent'].sum())
        return table

    # ---- internal helpers ------------------------------------------------

    def _check_size(self, p):
        if self.max_predictors > MAX_PARTITION_PREDICTORS:
            raise ValueError(
                f"max_predictors={self.max_predictors} exceeds the hard "
                f"limit of {MAX_PARTITION_PREDICTORS}"
            )
        if p == 0:
            raise ValueError("Hierarchical partitioning needs at least one "
                             "predictor.")
        if p > self.max_predictors:
            raise PartitionInfeasibleError(
                f"{p} predictors would need {2 ** p - 1} subset fits; "
                f"the limit is max_predictors={self.max_predictors}"
            )
        if p > WARN_PARTITION_PREDICTORS:
            warnings.warn(
                f"Hierarchical partitioning of {p} predictors runs "
                f"{2 ** p - 1} regressions", UserWarning, stacklevel=3,
            )

    def _cancelled(self):
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _fit_one(self, X, y, term_cols, combo):
        if self._cancelled():
            raise PartitionCancelledError(
                "Hierarchical partitioning cancelled")
        columns = [j for i in combo for j in term_cols[i]]
        return _subset_r2(X, y, columns)

    def _fit_subsets(self, X, y, term_cols, subsets):
        r2 = {}
        if self.n_jobs is None or self.n_jobs <= 1:
            for combo in subsets:
                r2[combo] = self._fit_one(X, y, term_cols, combo)
            return r2

        with ThreadPoolExecutor(max_workers=self.n_jobs) as executor:
            future_to_combo = {
                executor.submit(self._fit_one, X, y, term_cols, combo): combo
                for combo in subsets
            }
            try:
                for future in as_completed(future_to_combo):
                    r2[future_to_combo[future]] = future.result()
            except BaseException:
                for future in future_to_combo:
                    future.cancel()
                raise
        return r2

    @staticmethod
    def _partition(r2, p):
        independent = np.zeros(p)
        total = np.zeros(p)
        for i in range(p):
            others = [j for j in range(p) if j != i]
            level_means = []
            for size in range(p):
                gains = []
                for base in combinations(others, size):
                    grown = tuple(sorted(base + (i,)))
                    gains.append(r2[grown] - r2[base])
                level_means.append(np.mean(gains))
            independent[i] = np.mean(level_means)
            total[i] = level_means[0]
        return independent, total

    def _check_fitted(self):
        if not hasattr(self, 'independent_'):
            raise RuntimeError(
                "Partitioner has not been fitted. Call .fit() first."
            )
