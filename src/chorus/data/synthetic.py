"""
Synthetic song tables for validating the modelling pipeline.

The default configuration is the reference end-to-end scenario: 100
songs in 2 genres, popularity and danceability uniform on [0, 100],
raw length uniform on [100, 400], and no real relationship between the
columns. Genre-specific intercepts and slopes can be switched on to
produce data where unpooling actually helps.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


@dataclass
class SyntheticSongConfig:
    """
    Configuration for synthetic song generation.

    When ``genre_intercepts`` is None popularity is drawn independently
    from ``popularity_range``. Otherwise popularity follows a per-genre
    linear model in danceability and rescaled length with Normal noise,
    clipped to [0, 100].
    """

    n_songs: int = 100
    genres: list[str] = field(default_factory=lambda: ["pop", "rock"])

    popularity_range: tuple[float, float] = (0.0, 100.0)
    danceability_range: tuple[float, float] = (0.0, 100.0)
    length_range: tuple[float, float] = (100.0, 400.0)

    genre_intercepts: Optional[dict[str, float]] = None
    genre_dance_slopes: Optional[dict[str, float]] = None
    genre_length_slopes: Optional[dict[str, float]] = None
    noise_sigma: float = 5.0

    random_seed: int = 42


def generate_synthetic_songs(
    config: Optional[SyntheticSongConfig] = None,
    random_seed: Optional[int] = None,
) -> pd.DataFrame:
    """
    Generate a raw song table with Popularity, Danceability, Length, Genre.

    Parameters
    ----------
    config : SyntheticSongConfig, optional
        Generation settings. Uses the reference scenario if None.
    random_seed : int, optional
        Overrides ``config.random_seed``.

    Returns
    -------
    pd.DataFrame
        Raw table in the same shape as the real input.

    Examples
    --------
    >>> df = generate_synthetic_songs()
    >>> df.shape
    (100, 4)
    """
    if config is None:
        config = SyntheticSongConfig()

    rng = np.random.default_rng(
        random_seed if random_seed is not None else config.random_seed
    )
    n = config.n_songs

    genre = rng.choice(np.array(config.genres), size=n)
    # Every genre gets at least one song
    genre[: len(config.genres)] = config.genres[: min(n, len(config.genres))]

    danceability = rng.uniform(*config.danceability_range, size=n)
    length = rng.uniform(*config.length_range, size=n)

    if config.genre_intercepts is None:
        popularity = rng.uniform(*config.popularity_range, size=n)
    else:
        length_scaled = (length - length.min()) / (length.max() - length.min()) * 100
        dance_slopes = config.genre_dance_slopes or {}
        length_slopes = config.genre_length_slopes or {}

        intercept = np.array([config.genre_intercepts[g] for g in genre])
        b_dance = np.array([dance_slopes.get(g, 0.0) for g in genre])
        b_length = np.array([length_slopes.get(g, 0.0) for g in genre])

        mu = intercept + b_dance * danceability + b_length * length_scaled
        popularity = np.clip(mu + rng.normal(0, config.noise_sigma, size=n), 0, 100)

    return pd.DataFrame(
        {
            "Popularity": popularity.round(2),
            "Danceability": danceability.round(2),
            "Length": length.round(1),
            "Genre": genre,
        }
    )


def save_synthetic_songs(
    df: pd.DataFrame,
    output_dir: str = "data/",
    filename: str = "songs.csv",
    sep: str = ";",
) -> Path:
    """Write a synthetic table as a delimited file and return its path."""
    output_path = Path(output_dir)
    output_path.mkdir(exist_ok=True, parents=True)

    path = output_path / filename
    df.to_csv(path, sep=sep, index=False)
    logger.info("Saved %d synthetic songs to %s", len(df), path)
    return path
