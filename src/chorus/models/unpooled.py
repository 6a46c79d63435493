"""
Fully unpooled regression: every genre is fitted on its own.

Philosophy: "Each genre is its own market"

Genres share nothing, not even the noise scale. With few songs in a
genre its estimates are driven mostly by the priors.
"""

from typing import Optional

import pymc as pm

from chorus.config import PriorConfig
from chorus.data.loading import SongData
from chorus.models.common import OBSERVED_NAME, check_genre_count, model_coords


def build_unpooled_model(
    data: SongData,
    priors: Optional[PriorConfig] = None,
    allow_single_genre: bool = False,
) -> pm.Model:
    """
    Build a model with an independent intercept, slopes and noise per genre.

    Parameters
    ----------
    data : SongData
        Cleaned songs with at least two genres.
    priors : PriorConfig, optional
        Prior hyperparameters, applied to every genre alike.
    allow_single_genre : bool
        Build on a single genre instead of raising. The model then
        reduces to the pooled one.

    Returns
    -------
    pm.Model
        PyMC model with ``intercept``, ``slope_dance``, ``slope_length``
        and ``sigma`` all dimensioned by ``genre`` (``4 * J`` scalars).

    Raises
    ------
    DataValidationError
        If there is only one genre and ``allow_single_genre`` is False.

    Notes
    -----
    Likelihood::

        Popularity_i ~ Normal(intercept[g_i] + slope_dance[g_i] * Danceability_i
                              + slope_length[g_i] * Length_i, sigma[g_i])

    where ``g_i`` is the genre of song ``i``.
    """
    if priors is None:
        priors = PriorConfig()

    check_genre_count(data, "unpooled", allow_single_genre)

    with pm.Model(coords=model_coords(data)) as model:
        dance = pm.Data("danceability", data.danceability, dims="obs_id")
        length = pm.Data("length", data.length, dims="obs_id")
        genre_idx = pm.Data("genre_idx", data.genre_index0, dims="obs_id")

        intercept = pm.Normal(
            "intercept",
            mu=priors.intercept_mu,
            sigma=priors.intercept_sigma,
            dims="genre",
        )
        slope_dance = pm.Normal(
            "slope_dance", mu=priors.slope_mu, sigma=priors.slope_sigma, dims="genre"
        )
        slope_length = pm.Normal(
            "slope_length", mu=priors.slope_mu, sigma=priors.slope_sigma, dims="genre"
        )

        sigma = pm.LogNormal(
            "sigma",
            mu=priors.noise_log_mu,
            sigma=priors.noise_log_sigma,
            dims="genre",
        )

        mu = (
            intercept[genre_idx]
            + slope_dance[genre_idx] * dance
            + slope_length[genre_idx] * length
        )

        pm.Normal(
            OBSERVED_NAME,
            mu=mu,
            sigma=sigma[genre_idx],
            observed=data.popularity,
            dims="obs_id",
        )

    return model
