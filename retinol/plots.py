"""
Diagnostic and partitioning charts.

The numeric series come from :mod:`retinol.diagnostics`; this module only
draws them.
"""

import numpy as np
import matplotlib.pyplot as plt

from .diagnostics import influence_frame, qq_series


def _label_extremes(ax, x, y, labels, n_label):
    if n_label <= 0:
        return
    order = np.argsort(-np.abs(np.asarray(y)))[:n_label]
    for idx in order:
        ax.annotate(str(labels[idx]), (x[idx], y[idx]), fontsize=8,
                    xytext=(3, 3), textcoords='offset points')


def _smooth(ax, x, y, frac=0.3):
    """Running-median trend line over sorted x."""
    order = np.argsort(x)
    xs, ys = np.asarray(x)[order], np.asarray(y)[order]
    w = max(int(len(xs) * frac) // 2, 1)
    trend = np.array([np.median(ys[max(0, i - w):i + w + 1])
                      for i in range(len(ys))])
    ax.plot(xs, trend, 'r-', lw=1.5)


def plot_diagnostics(model, figsize=(12, 10), n_label=3):
    """
    Four-panel regression diagnostics.

    Panels: residuals vs fitted, normal Q-Q, scale-location and residuals
    vs leverage with Cook's distance contours at 0.5 and 1.  The
    ``n_label`` most extreme observations are labelled by row id.

    Returns
    -------
    matplotlib.figure.Figure
    """
    infl = influence_frame(model)
    ids = infl.index.values
    p = model.n_params

    fig, axes = plt.subplots(2, 2, figsize=figsize)
    ax_rf, ax_qq, ax_sl, ax_lev = axes.flatten()

    # --- Residuals vs fitted ---
    x, y = infl['fitted'].values, infl['resid'].values
    ax_rf.scatter(x, y, s=10, alpha=0.6, color='steelblue')
    ax_rf.axhline(0, color='grey', ls='--', lw=1)
    _smooth(ax_rf, x, y)
    _label_extremes(ax_rf, x, y, ids, n_label)
    ax_rf.set_xlabel("Fitted values")
    ax_rf.set_ylabel("Residuals")
    ax_rf.set_title("Residuals vs Fitted")

    # --- Normal Q-Q ---
    qq = qq_series(model)
    ax_qq.scatter(qq['theoretical'], qq['sample'], s=10, alpha=0.6,
                  color='steelblue')
    q1, q3 = np.percentile(qq['sample'], [25, 75])
    t1, t3 = np.percentile(qq['theoretical'], [25, 75])
    slope = (q3 - q1) / (t3 - t1)
    lims = np.array([qq['theoretical'].min(), qq['theoretical'].max()])
    ax_qq.plot(lims, q1 + slope * (lims - t1), 'k--', lw=1)
    _label_extremes(ax_qq, qq['theoretical'].values, qq['sample'].values,
                    qq['row_id'].values, n_label)
    ax_qq.set_xlabel("Theoretical quantiles")
    ax_qq.set_ylabel("Standardized residuals")
    ax_qq.set_title("Normal Q-Q")

    # --- Scale-location ---
    y = infl['sqrt_abs_std_resid'].values
    ax_sl.scatter(x, y, s=10, alpha=0.6, color='steelblue')
    _smooth(ax_sl, x, y)
    _label_extremes(ax_sl, x, y, ids, n_label)
    ax_sl.set_xlabel("Fitted values")
    ax_sl.set_ylabel(r"$\sqrt{|\mathrm{Standardized\ residuals}|}$")
    ax_sl.set_title("Scale-Location")

    # --- Residuals vs leverage ---
    h, r = infl['leverage'].values, infl['std_resid'].values
    ax_lev.scatter(h, r, s=10, alpha=0.6, color='steelblue')
    ax_lev.axhline(0, color='grey', ls='--', lw=1)
    hh = np.linspace(max(h.min(), 1e-3), min(h.max() * 1.05, 0.999), 100)
    for level in (0.5, 1.0):
        bound = np.sqrt(level * p * (1 - hh) / hh)
        ax_lev.plot(hh, bound, 'r:', lw=1)
        ax_lev.plot(hh, -bound, 'r:', lw=1)
    cooks = infl['cooks_d'].values
    order = np.argsort(-cooks)[:max(n_label, 0)]
    for idx in order:
        ax_lev.annotate(str(ids[idx]), (h[idx], r[idx]), fontsize=8,
                        xytext=(3, 3), textcoords='offset points')
    ax_lev.set_ylim(min(r.min(), -3) * 1.1, max(r.max(), 3) * 1.1)
    ax_lev.set_xlabel("Leverage")
    ax_lev.set_ylabel("Standardized residuals")
    ax_lev.set_title("Residuals vs Leverage")

    for ax in axes.flatten():
        ax.grid(True, alpha=0.3)

    fig.suptitle(repr(model.spec), fontsize=11)
    fig.tight_layout()
    return fig


def plot_partition(partitioner, figsize=(10, 6), title=None):
    """
    Stacked bars of independent and joint R² contributions per predictor.

    Returns
    -------
    matplotlib.figure.Figure
    """
    table = partitioner.get_partition().sort_values('Independent',
                                                    ascending=False)
    names = list(table.index)
    pos = np.arange(len(names))

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.bar(pos, table['Independent'] * 100, color='#38bdf8',
           label='Independent')
    joint = table['Joint'].values * 100
    ax.bar(pos, joint, bottom=np.where(joint >= 0,
                                       table['Independent'] * 100, 0),
           color='#fb923c', alpha=0.8, label='Joint')
    for i, pct in enumerate(table['Independent_pct']):
        ax.text(i, table['Independent'].iloc[i] * 100, f"{pct:.1f}%",
                ha='center', va='bottom', fontsize=8)

    ax.axhline(0, color='grey', lw=0.8)
    ax.set_xticks(pos)
    ax.set_xticklabels(names, rotation=45, ha='right')
    ax.set_ylabel("R² contribution (%)")
    ax.set_title(title or
                 f"Hierarchical partitioning "
                 f"(full R² = {partitioner.r2_full_ * 100:.1f}%)")
    ax.legend(fontsize=9, loc='best')
    ax.grid(True, axis='y', alpha=0.3)
    fig.tight_layout()
    return fig
