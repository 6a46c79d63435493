import logging

import numpy as np

from chorus.data.loading import SongData
from chorus.exceptions import DataValidationError

logger = logging.getLogger(__name__)

OBSERVED_NAME = "popularity_obs"


def model_coords(data: SongData) -> dict[str, object]:
    return {
        "genre": data.genres,
        "obs_id": np.arange(data.n_obs),
    }


def check_genre_count(
    data: SongData,
    model_name: str,
    allow_single_genre: bool = False,
) -> None:
    """Refuse to build a genre-indexed model on fewer than two genres."""
    if data.n_genres >= 2:
        return

    if not allow_single_genre:
        raise DataValidationError(
            f"The {model_name} model needs at least 2 genres, got "
            f"{data.n_genres}. Pass allow_single_genre=True to fit it anyway "
            "(it then reduces to the pooled model)."
        )

    logger.warning(
        "Building %s model on %d genre; it is equivalent to the pooled model "
        "up to its priors",
        model_name,
        data.n_genres,
    )
