"""
Fully pooled regression of popularity on danceability and length.

Philosophy: "Genre does not matter"

One intercept, one slope per predictor and one noise scale are shared
by every song. This ignores genre completely and serves as the baseline
the genre-aware models have to beat.
"""

from typing import Optional

import pymc as pm

from chorus.config import PriorConfig
from chorus.data.loading import SongData
from chorus.models.common import OBSERVED_NAME, model_coords


def build_pooled_model(
    data: SongData,
    priors: Optional[PriorConfig] = None,
    allow_single_genre: bool = True,
) -> pm.Model:
    """
    Build a fully pooled model where all genres share identical parameters.

    Parameters
    ----------
    data : SongData
        Cleaned songs.
    priors : PriorConfig, optional
        Prior hyperparameters. Defaults to the reference priors.
    allow_single_genre : bool
        Accepted for a uniform builder signature; the pooled model never
        looks at genre.

    Returns
    -------
    pm.Model
        PyMC model ready for sampling.

    Examples
    --------
    >>> model = build_pooled_model(data)
    >>> with model:
    ...     trace = pm.sample(1000, chains=3)

    Notes
    -----
    Likelihood::

        Popularity_i ~ Normal(intercept + slope_dance * Danceability_i
                              + slope_length * Length_i, sigma)

    with ``intercept ~ Normal(50, 20)``, slopes ``~ Normal(0, 20)`` and
    ``sigma ~ LogNormal(1, 1)``.
    """
    if priors is None:
        priors = PriorConfig()

    with pm.Model(coords=model_coords(data)) as model:
        dance = pm.Data("danceability", data.danceability, dims="obs_id")
        length = pm.Data("length", data.length, dims="obs_id")

        intercept = pm.Normal(
            "intercept", mu=priors.intercept_mu, sigma=priors.intercept_sigma
        )
        slope_dance = pm.Normal(
            "slope_dance", mu=priors.slope_mu, sigma=priors.slope_sigma
        )
        slope_length = pm.Normal(
            "slope_length", mu=priors.slope_mu, sigma=priors.slope_sigma
        )

        sigma = pm.LogNormal(
            "sigma", mu=priors.noise_log_mu, sigma=priors.noise_log_sigma
        )

        mu = intercept + slope_dance * dance + slope_length * length

        pm.Normal(
            OBSERVED_NAME,
            mu=mu,
            sigma=sigma,
            observed=data.popularity,
            dims="obs_id",
        )

    return model
