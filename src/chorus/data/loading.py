"""
Loading and cleaning of the song attribute table.

The cleaning pipeline is a fixed sequence of pure steps, each returning
a new frame:

    read -> validate -> drop length outliers -> rescale length -> encode genre

Outlier bounds are percentiles of the full (validated) input; rescaling
bounds are the min/max of the retained rows.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from chorus.config import CleaningConfig
from chorus.data.schemas import validate_clean_songs, validate_raw_songs
from chorus.exceptions import DataValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SongData:
    """
    Cleaned songs ready for modelling.

    Attributes
    ----------
    frame : pd.DataFrame
        Cleaned table with ``Length_standardized`` and ``genre_idx``.
    genres : list[str]
        Genre labels; ``genres[j - 1]`` is the label of ``genre_idx == j``.
    length_bounds : tuple[float, float]
        Min and max raw length of the retained rows (rescaling constants).
    percentile_bounds : tuple[float, float]
        Raw length cut-offs used for outlier removal.
    n_raw : int
        Rows in the validated input, before outlier removal.
    """

    frame: pd.DataFrame
    genres: list[str]
    length_bounds: tuple[float, float]
    percentile_bounds: tuple[float, float]
    n_raw: int

    @property
    def n_obs(self) -> int:
        return len(self.frame)

    @property
    def n_genres(self) -> int:
        return len(self.genres)

    @property
    def genre_index0(self) -> NDArray[np.int64]:
        """Zero-based genre index per observation, for array indexing."""
        return self.frame["genre_idx"].to_numpy(dtype=np.int64) - 1

    @property
    def popularity(self) -> NDArray[np.floating]:
        return self.frame["Popularity"].to_numpy(dtype=np.float64)

    @property
    def danceability(self) -> NDArray[np.floating]:
        return self.frame["Danceability"].to_numpy(dtype=np.float64)

    @property
    def length(self) -> NDArray[np.floating]:
        return self.frame["Length_standardized"].to_numpy(dtype=np.float64)


def load_songs(path: Union[str, Path], sep: str = ";") -> pd.DataFrame:
    """
    Read and validate a delimited song table.

    Parameters
    ----------
    path : str or Path
        Path to the table.
    sep : str
        Column delimiter (the reference data is semicolon-separated).

    Returns
    -------
    pd.DataFrame
        Validated raw table.
    """
    df = pd.read_csv(path, sep=sep)
    logger.info("Read %d rows from %s", len(df), path)
    return validate_raw_songs(df)


def length_percentile_bounds(
    df: pd.DataFrame,
    lower: float = 1.0,
    upper: float = 96.0,
) -> tuple[float, float]:
    lengths = df["Length"].to_numpy(dtype=np.float64)
    low, high = np.percentile(lengths, [lower, upper])
    return float(low), float(high)


def remove_length_outliers(
    df: pd.DataFrame,
    lower: float = 1.0,
    upper: float = 96.0,
) -> pd.DataFrame:
    """
    Drop rows whose length lies outside the [lower, upper] percentiles.

    Rows exactly on a bound are kept.
    """
    low, high = length_percentile_bounds(df, lower, upper)
    mask = df["Length"].between(low, high, inclusive="both")
    return df.loc[mask].reset_index(drop=True)


def rescale_length(df: pd.DataFrame, rescale_max: float = 100.0) -> pd.DataFrame:
    """Min-max rescale ``Length`` into ``Length_standardized`` on [0, rescale_max]."""
    length = df["Length"].astype(np.float64)
    low, high = float(length.min()), float(length.max())

    if not high > low:
        raise DataValidationError(
            f"Cannot rescale Length: all retained rows have length {low}"
        )

    return df.assign(Length_standardized=(length - low) / (high - low) * rescale_max)


def encode_genres(df: pd.DataFrame) -> tuple[pd.DataFrame, list[str]]:
    """
    Map genre labels to dense integer codes 1..J in sorted label order.

    Returns
    -------
    tuple[pd.DataFrame, list[str]]
        (frame with ``genre_idx``, labels in code order)
    """
    labels = sorted(df["Genre"].astype(str).unique().tolist())
    genre_to_idx = {g: i + 1 for i, g in enumerate(labels)}
    encoded = df.assign(genre_idx=df["Genre"].astype(str).map(genre_to_idx).astype(int))
    return encoded, labels


def clean_songs(
    df: pd.DataFrame,
    config: Optional[CleaningConfig] = None,
) -> SongData:
    """
    Run the full cleaning pipeline on a raw song table.

    Parameters
    ----------
    df : pd.DataFrame
        Raw table with at least Popularity, Danceability, Length, Genre.
    config : CleaningConfig, optional
        Percentile cut-offs and rescale range. Defaults to the reference run.

    Returns
    -------
    SongData
        Cleaned observations plus the constants used to clean them.

    Raises
    ------
    DataValidationError
        On missing columns, invalid values, or if no rows survive.
    """
    if config is None:
        config = CleaningConfig()

    raw = validate_raw_songs(df)
    n_raw = len(raw)

    bounds = length_percentile_bounds(
        raw, config.lower_percentile, config.upper_percentile
    )
    filtered = remove_length_outliers(
        raw, config.lower_percentile, config.upper_percentile
    )
    if filtered.empty:
        raise DataValidationError("No rows left after length outlier removal")

    logger.info(
        "Removed %d of %d rows with Length outside [%.2f, %.2f]",
        n_raw - len(filtered),
        n_raw,
        *bounds,
    )

    length_bounds = (float(filtered["Length"].min()), float(filtered["Length"].max()))
    rescaled = rescale_length(filtered, config.rescale_max)
    encoded, genres = encode_genres(rescaled)

    logger.info(
        "Encoded %d genres: %s",
        len(genres),
        ", ".join(f"{i + 1}={g}" for i, g in enumerate(genres)),
    )
    if len(genres) < 2:
        logger.warning(
            "Only %d genre after cleaning; unpooled and hierarchical models "
            "reduce to the pooled model",
            len(genres),
        )

    return SongData(
        frame=validate_clean_songs(encoded),
        genres=genres,
        length_bounds=length_bounds,
        percentile_bounds=bounds,
        n_raw=n_raw,
    )
