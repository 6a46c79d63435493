"""Pandera schemas for song attribute tables."""

import pandas as pd
import pandera as pa
from pandera.typing import Series

from chorus.exceptions import DataValidationError


REQUIRED_COLUMNS = ["Popularity", "Danceability", "Length", "Genre"]

FEATURE_COLUMNS = ["Popularity", "Danceability", "Length"]


class RawSongDataFrame(pa.DataFrameModel):
    """
    Schema for the song table as read from disk.

    Only the modelled columns are checked; any other columns are kept
    and ignored.

    Example
    -------
    >>> df = pd.read_csv("songs.csv", sep=";")
    >>> RawSongDataFrame.validate(df)  # Raises if invalid
    """

    Popularity: Series[float] = pa.Field(
        ge=0, le=100, description="Popularity score (0-100)"
    )
    Danceability: Series[float] = pa.Field(
        ge=0, le=100, description="Danceability score (0-100)"
    )
    Length: Series[float] = pa.Field(ge=0, description="Track length (raw units)")
    Genre: Series[str] = pa.Field(nullable=False, description="Genre label")

    class Config:
        """Pandera configuration."""

        name = "RawSongData"
        strict = False
        coerce = True
        ordered = False


class CleanSongDataFrame(RawSongDataFrame):
    """Schema for the table after outlier removal, rescaling and encoding."""

    Length_standardized: Series[float] = pa.Field(
        ge=0, description="Min-max rescaled length"
    )
    genre_idx: Series[int] = pa.Field(ge=1, description="Dense genre code 1..J")

    class Config:
        """Pandera configuration."""

        name = "CleanSongData"
        strict = False
        coerce = True
        ordered = False


def validate_raw_songs(df: pd.DataFrame) -> pd.DataFrame:
    """
    Validate a raw song table.

    Parameters
    ----------
    df : pd.DataFrame
        Table with at least the columns in ``REQUIRED_COLUMNS``.

    Returns
    -------
    pd.DataFrame
        Validated (and coerced) table.

    Raises
    ------
    DataValidationError
        If a required column is missing, a value cannot be coerced, a
        value is out of range, or the table is empty.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DataValidationError(
            f"Missing required column(s): {', '.join(missing)}. "
            f"Found: {', '.join(map(str, df.columns))}"
        )

    if df.empty:
        raise DataValidationError("Song table is empty")

    try:
        return RawSongDataFrame.validate(df)
    except (pa.errors.SchemaError, pa.errors.SchemaErrors) as e:
        raise DataValidationError(f"Song table failed validation: {e}") from e


def validate_clean_songs(df: pd.DataFrame) -> pd.DataFrame:
    try:
        return CleanSongDataFrame.validate(df)
    except (pa.errors.SchemaError, pa.errors.SchemaErrors) as e:
        raise DataValidationError(f"Cleaned song table failed validation: {e}") from e
