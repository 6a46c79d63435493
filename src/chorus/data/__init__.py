"""Song table schemas, cleaning and synthetic data generation."""

from chorus.data.schemas import (
    REQUIRED_COLUMNS,
    FEATURE_COLUMNS,
    RawSongDataFrame,
    CleanSongDataFrame,
    validate_raw_songs,
)
from chorus.data.loading import (
    SongData,
    load_songs,
    length_percentile_bounds,
    remove_length_outliers,
    rescale_length,
    encode_genres,
    clean_songs,
)
from chorus.data.synthetic import (
    SyntheticSongConfig,
    generate_synthetic_songs,
    save_synthetic_songs,
)

__all__ = [
    "REQUIRED_COLUMNS",
    "FEATURE_COLUMNS",
    "RawSongDataFrame",
    "CleanSongDataFrame",
    "validate_raw_songs",
    "SongData",
    "load_songs",
    "length_percentile_bounds",
    "remove_length_outliers",
    "rescale_length",
    "encode_genres",
    "clean_songs",
    "SyntheticSongConfig",
    "generate_synthetic_songs",
    "save_synthetic_songs",
]
