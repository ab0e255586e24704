"""
Report tables and their printed form.
"""

import numpy as np

from .diagnostics import flag_influential, normality_tests, vif_for


def coefficient_table(model, vif=True):
    """
    Coefficient table of a fitted model.

    Columns ``Estimate, Std_Error, t_value, p_value`` and, with
    ``vif=True``, ``VIF`` (NaN for the intercept).
    """
    table = model.coef_table()
    if vif:
        table['VIF'] = vif_for(model).reindex(table.index)
    return table


def _stars(p):
    if not np.isfinite(p):
        return ''
    if p < 0.001:
        return '***'
    if p < 0.01:
        return '**'
    if p < 0.05:
        return '*'
    if p < 0.1:
        return '.'
    return ''


def print_model_summary(model, title=None, vif=True):
    table = coefficient_table(model, vif=vif)
    res = model.result

    print()
    print("=" * 70)
    print(title or "MODEL SUMMARY")
    print("=" * 70)
    print(f"  {model.spec!r}")
    print(f"  n={model.n_obs}  p={model.n_params}  df={model.df_resid}")
    print()
    header = (f"  {'Term':20s}  {'Estimate':>11s}  {'Std.Error':>10s}  "
              f"{'t':>7s}  {'p':>9s}")
    if vif:
        header += f"  {'VIF':>6s}"
    print(header)
    print("-" * 70)
    for term, row in table.iterrows():
        line = (f"  {term:20s}  {row['Estimate']:>11.5f}  "
                f"{row['Std_Error']:>10.5f}  {row['t_value']:>7.3f}  "
                f"{row['p_value']:>9.4g}")
        if vif:
            v = row['VIF']
            line += f"  {v:>6.2f}" if np.isfinite(v) else f"  {'':>6s}"
        print(line + f" {_stars(row['p_value'])}")
    print("-" * 70)
    print(f"  Residual SE : {res.sigma:.4f} on {res.df_resid} df")
    print(f"  R²          : {res.r2:.4f}   adjusted R²: {res.adj_r2:.4f}")
    print(f"  F           : {res.fvalue:.3f}   p={res.f_pvalue:.4g}")
    print(f"  AIC         : {model.aic:.2f}   AICc: {model.aicc:.2f}")


def print_influence(model, **thresholds):
    flagged = flag_influential(model, **thresholds)
    norm = normality_tests(model)

    print()
    print("Influence review (flags only; nothing is excluded):")
    print("-" * 70)
    if flagged.empty:
        print("  No observations flagged")
    for row_id, row in flagged.iterrows():
        marks = [name for name in ('high_leverage', 'large_resid',
                                   'high_cooks') if row[name]]
        print(f"  row {row_id:>4d}  h={row['leverage']:.3f}  "
              f"t={row['student_resid']:>6.2f}  "
              f"D={row['cooks_d']:.3f}  {', '.join(marks)}")
    print(f"\n  Shapiro-Wilk W={norm['shapiro_statistic']:.4f} "
          f"(p={norm['shapiro_pvalue']:.3g})   "
          f"Jarque-Bera={norm['jarque_bera_statistic']:.2f} "
          f"(p={norm['jarque_bera_pvalue']:.3g})")
    return flagged


def print_aicc_table(table):
    print()
    print("AICc ranking:")
    print("-" * 70)
    print(f"  {'Model':20s}  {'K':>3s}  {'AICc':>10s}  {'ΔAICc':>8s}  "
          f"{'Weight':>7s}  {'Cum.Wt':>7s}")
    for _, row in table.iterrows():
        print(f"  {row['Model']:20s}  {row['K']:>3d}  {row['AICc']:>10.2f}  "
              f"{row['Delta_AICc']:>8.2f}  {row['Weight']:>7.3f}  "
              f"{row['Cum_Weight']:>7.3f}")


def print_partition(table, r2_full):
    print()
    print("Hierarchical partitioning of R²:")
    print("-" * 70)
    print(f"  {'Predictor':20s}  {'Independent':>11s}  {'Joint':>9s}  "
          f"{'Total':>9s}  {'I (%)':>7s}")
    for name, row in table.sort_values('Independent',
                                       ascending=False).iterrows():
        print(f"  {name:20s}  {row['Independent']:>11.4f}  "
              f"{row['Joint']:>9.4f}  {row['Total']:>9.4f}  "
              f"{row['Independent_pct']:>7.2f}")
    print(f"  {'Sum':20s}  {table['Independent'].sum():>11.4f}")
    print(f"  Full model R² = {r2_full:.4f}")
