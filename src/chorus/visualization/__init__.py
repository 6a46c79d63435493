"""Exploratory and posterior plots. All functions return matplotlib figures."""

from chorus.visualization.exploratory import (
    genre_counts,
    plot_feature_histograms,
    plot_genre_boxplots,
)
from chorus.visualization.posterior import (
    plot_posterior_histograms,
    plot_traces,
    plot_model_comparison,
)

__all__ = [
    "genre_counts",
    "plot_feature_histograms",
    "plot_genre_boxplots",
    "plot_posterior_histograms",
    "plot_traces",
    "plot_model_comparison",
]
