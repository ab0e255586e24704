"""
End-to-end plasma retinol analysis.

    load -> fit full model -> influence review -> refit without the
    analyst's exclusions -> VIF screen -> AICc candidate set -> stepwise
    AIC search -> hierarchical partitioning

Exclusions are an explicit argument: the pipeline flags influential rows
but never drops one by itself.
"""

import time
import warnings

from .data import (
    NUMERIC_PREDICTORS, RESPONSE, fetch_plasma_retinol, load_plasma,
)
from .diagnostics import flag_influential, high_vif, vif_for
from .model import fit_model
from .partition import HierarchicalPartitioner
from .report import (
    coefficient_table, print_aicc_table, print_influence,
    print_model_summary, print_partition,
)
from .selection import StepwiseSelector, compare_models

# Predictors dropped one at a time to build the AICc candidate set
DROP_CANDIDATES = ('CALORIES', 'FAT')


def run_analysis(dataset=None, path=None, exclude=(), response=RESPONSE,
                 predictors=None, vif_threshold=5.0, partition_jobs=1,
                 plots=False, verbose=True):
    """
    Run the full workflow and return every intermediate result.

    Parameters
    ----------
    dataset : Dataset, optional
        Already-loaded data.  Otherwise ``path`` is loaded, or the dataset
        is fetched from OpenML when neither is given.
    path : str, optional
    exclude : iterable of int, default=()
        Row ids the analyst has decided to leave out (for example after
        reviewing the leverage plot).
    response : str, default='RETPLASMA'
    predictors : sequence of str, optional
        Defaults to the nine numeric dietary/anthropometric predictors.
    vif_threshold : float, default=5.0
        Reporting threshold only.
    partition_jobs : int, default=1
        Worker threads for hierarchical partitioning.
    plots : bool, default=False
        Also build the diagnostic and partitioning figures.
    verbose : bool, default=True

    Returns
    -------
    dict
    """
    t0 = time.time()
    if dataset is None:
        dataset = (load_plasma(path, verbose=verbose) if path is not None
                   else fetch_plasma_retinol(verbose=verbose))
    predictors = list(NUMERIC_PREDICTORS if predictors is None
                      else predictors)
    exclude = tuple(sorted(int(i) for i in exclude))

    if verbose:
        print("=" * 70)
        print("PLASMA RETINOL REGRESSION ANALYSIS")
        print("=" * 70)
        print(f"  Dataset  : n={len(dataset)}")
        print(f"  Response : {response}")
        print(f"  Excluded : {list(exclude) or 'none'}")

    # Step 1: full model on all rows, influence review -------------------
    initial = fit_model(dataset, response, predictors)
    if verbose:
        print_model_summary(initial, title="STEP 1: FULL MODEL, ALL ROWS")
        flagged = print_influence(initial)
    else:
        flagged = flag_influential(initial)

    # Step 2: refit without the analyst's exclusions ---------------------
    full = fit_model(dataset, response, predictors, exclude)
    full_vif = vif_for(full)
    with warnings.catch_warnings():
        if not verbose:
            warnings.simplefilter('ignore', UserWarning)
        high = high_vif(full_vif, vif_threshold, warn=True)
    if verbose:
        print_model_summary(full, title="STEP 2: FULL MODEL, AFTER EXCLUSIONS")

    # Step 3: AICc candidate set ------------------------------------------
    candidates = {'full': full}
    for name in DROP_CANDIDATES:
        if name in predictors:
            candidates[f"no_{name.lower()}"] = fit_model(
                dataset, response, full.spec.drop(name).predictors, exclude)
    ranking = compare_models(candidates)
    if verbose:
        for label, model in candidates.items():
            if label != 'full':
                print_model_summary(model, title=f"STEP 3: {label.upper()}")
        print_aicc_table(ranking)

    # Step 4: stepwise AIC ---------------------------------------------------
    stepwise = StepwiseSelector(direction='both', verbose=verbose)
    stepwise.fit(dataset, response, predictors, exclude)
    if verbose:
        print_model_summary(stepwise.model_, title="STEP 4: STEPWISE MODEL")

    # Step 5: hierarchical partitioning -------------------------------------
    partitioner = HierarchicalPartitioner(n_jobs=partition_jobs,
                                          verbose=verbose)
    partitioner.fit(dataset, response, predictors, exclude)
    partition = partitioner.get_partition()
    if verbose:
        print_partition(partition, partitioner.r2_full_)

    results = {
        'dataset': dataset,
        'initial_model': initial,
        'influential': flagged,
        'full_model': full,
        'full_coefficients': coefficient_table(full),
        'high_vif': high,
        'candidates': candidates,
        'aicc_ranking': ranking,
        'stepwise': stepwise,
        'partitioner': partitioner,
        'partition': partition,
        'runtime': time.time() - t0,
    }

    if plots:
        from .plots import plot_diagnostics, plot_partition
        results['figures'] = {
            'initial_diagnostics': plot_diagnostics(initial),
            'full_diagnostics': plot_diagnostics(full),
            'partition': plot_partition(partitioner),
        }

    if verbose:
        print()
        print(f"  Runtime: {results['runtime']:.2f}s")
        print("=" * 70)

    return results
