"""
Posterior histograms and trace plots.

Convergence is judged by eye here: overlapping, stationary chains in
the trace plots. Numeric checks live in ``chorus.evaluation.diagnostics``.
"""

from typing import Optional

import arviz as az
import numpy as np
import pandas as pd
import xarray as xr


def _parameter_elements(
    trace: az.InferenceData,
    var_name: str,
) -> list[tuple[str, xr.DataArray]]:
    """Split a parameter into scalar (chain, draw) arrays with labels."""
    samples = trace.posterior[var_name]
    extra_dims = [d for d in samples.dims if d not in ("chain", "draw")]

    if not extra_dims:
        return [(var_name, samples)]

    elements = []
    stacked = samples.stack(element=extra_dims)
    for i in range(stacked.sizes["element"]):
        element = stacked.isel(element=i)
        key = stacked.coords["element"].values[i]
        parts = key if isinstance(key, tuple) else (key,)
        label = f"{var_name}[{', '.join(str(p) for p in parts)}]"
        elements.append((label, element))
    return elements


def _grid(n: int, max_cols: int = 4) -> tuple[int, int]:
    n_cols = min(n, max_cols)
    n_rows = int(np.ceil(n / n_cols))
    return n_rows, n_cols


def plot_posterior_histograms(
    trace: az.InferenceData,
    var_names: Optional[list[str]] = None,
    bins: int = 50,
    panel_size: tuple[float, float] = (4, 3),
) -> dict[str, "matplotlib.figure.Figure"]:
    """
    Marginal posterior histogram per parameter, chains pooled.

    A genre-indexed parameter gets one panel per genre.
    """
    import matplotlib.pyplot as plt

    if var_names is None:
        var_names = list(trace.posterior.data_vars)

    figures = {}
    for var in var_names:
        elements = _parameter_elements(trace, var)
        n_rows, n_cols = _grid(len(elements))
        fig, axes = plt.subplots(
            n_rows,
            n_cols,
            figsize=(panel_size[0] * n_cols, panel_size[1] * n_rows),
            squeeze=False,
        )

        for ax, (label, samples) in zip(axes.flat, elements):
            values = samples.values.ravel()
            ax.hist(values, bins=bins, density=True, alpha=0.8, edgecolor="white")
            ax.axvline(values.mean(), color="black", linestyle="--", linewidth=1)
            ax.set_title(label)
            ax.grid(True, alpha=0.3)

        for ax in list(axes.flat)[len(elements):]:
            ax.set_visible(False)

        fig.suptitle(f"Posterior of {var}")
        plt.tight_layout()
        figures[var] = fig

    return figures


def plot_traces(
    trace: az.InferenceData,
    var_names: Optional[list[str]] = None,
    panel_size: tuple[float, float] = (8, 2.5),
) -> dict[str, "matplotlib.figure.Figure"]:
    """Value against draw index per parameter element, one line per chain."""
    import matplotlib.pyplot as plt

    if var_names is None:
        var_names = list(trace.posterior.data_vars)

    figures = {}
    for var in var_names:
        elements = _parameter_elements(trace, var)
        fig, axes = plt.subplots(
            len(elements),
            1,
            figsize=(panel_size[0], panel_size[1] * len(elements)),
            squeeze=False,
        )

        for ax, (label, samples) in zip(axes[:, 0], elements):
            draws = samples.coords["draw"].values
            for chain in samples.coords["chain"].values:
                ax.plot(
                    draws,
                    samples.sel(chain=chain).values,
                    linewidth=0.5,
                    alpha=0.8,
                    label=f"chain {chain}",
                )
            ax.set_ylabel(label)
            ax.grid(True, alpha=0.3)

        axes[0, 0].legend(loc="upper right", fontsize="small")
        axes[-1, 0].set_xlabel("Draw")
        fig.suptitle(f"Trace of {var}")
        plt.tight_layout()
        figures[var] = fig

    return figures


def plot_model_comparison(
    comparison: pd.DataFrame,
    score_col: str = "DIC",
    figsize: tuple[int, int] = (8, 5),
) -> "matplotlib.figure.Figure":
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=figsize)
    ax.bar(comparison["Model"], comparison[score_col])

    best = comparison[score_col].min()
    ax.axhline(best, color="black", linestyle="--", linewidth=1)

    ax.set_xlabel("Model")
    ax.set_ylabel(f"{score_col} (lower is better)")
    ax.set_title("Model comparison")
    ax.grid(True, axis="y", alpha=0.3)

    plt.tight_layout()
    return fig
