"""
Exploratory plots of the song table.

Purely diagnostic: they justify the choice of features and of genre as
the grouping level, and nothing downstream consumes them.
"""

from typing import Optional

import numpy as np
import pandas as pd

from chorus.data.schemas import FEATURE_COLUMNS


def genre_counts(df: pd.DataFrame, genre_col: str = "Genre") -> pd.Series:
    """Number of songs per genre, largest first."""
    counts = df[genre_col].value_counts()
    counts.name = "n_songs"
    return counts


def plot_feature_histograms(
    df: pd.DataFrame,
    features: Optional[list[str]] = None,
    bins: int = 30,
    figsize: tuple[int, int] = (8, 5),
) -> dict[str, "matplotlib.figure.Figure"]:
    """One histogram per feature, keyed by feature name."""
    import matplotlib.pyplot as plt

    if features is None:
        features = [c for c in FEATURE_COLUMNS if c in df.columns]
        if "Length_standardized" in df.columns:
            features.append("Length_standardized")

    figures = {}
    for feature in features:
        fig, ax = plt.subplots(figsize=figsize)
        values = df[feature].dropna().to_numpy()

        ax.hist(values, bins=bins, edgecolor="white")
        ax.axvline(np.mean(values), color="black", linestyle="--", label="mean")

        ax.set_xlabel(feature)
        ax.set_ylabel("Songs")
        ax.set_title(f"Distribution of {feature}")
        ax.legend()
        ax.grid(True, alpha=0.3)

        plt.tight_layout()
        figures[feature] = fig

    return figures


def plot_genre_boxplots(
    df: pd.DataFrame,
    features: Optional[list[str]] = None,
    genre_col: str = "Genre",
    figsize: tuple[int, int] = (10, 6),
) -> dict[str, "matplotlib.figure.Figure"]:
    """One figure per feature with a box per genre, keyed by feature name."""
    import matplotlib.pyplot as plt

    if features is None:
        features = [c for c in FEATURE_COLUMNS if c in df.columns]

    genres = sorted(df[genre_col].astype(str).unique())
    labels = df[genre_col].astype(str)

    figures = {}
    for feature in features:
        fig, ax = plt.subplots(figsize=figsize)
        groups = [df.loc[labels == g, feature].dropna().to_numpy() for g in genres]

        ax.boxplot(groups)
        ax.set_xticks(np.arange(1, len(genres) + 1))
        ax.set_xticklabels(genres, rotation=45, ha="right")

        ax.set_xlabel("Genre")
        ax.set_ylabel(feature)
        ax.set_title(f"{feature} by genre")
        ax.grid(True, axis="y", alpha=0.3)

        plt.tight_layout()
        figures[feature] = fig

    return figures
