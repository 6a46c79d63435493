from typing import Mapping, Optional

import arviz as az
import numpy as np
import pandas as pd

from chorus.models.sampling import FitResult

COEFFICIENTS = ["intercept", "slope_dance", "slope_length"]


def summarize_posterior(
    trace: az.InferenceData,
    var_names: Optional[list[str]] = None,
    hdi_prob: float = 0.94,
) -> pd.DataFrame:
    """Posterior mean, sd and HDI for each monitored scalar."""
    return az.summary(trace, var_names=var_names, hdi_prob=hdi_prob, kind="stats")


def genre_effects(
    fits: Mapping[str, FitResult],
    genres: list[str],
) -> pd.DataFrame:
    """
    Per-genre posterior mean and sd of each regression coefficient.

    Pooled estimates are repeated for every genre so the three models
    line up row for row.

    Returns
    -------
    pd.DataFrame
        Long format with columns model, genre, parameter, mean, sd.
    """
    records = []

    for model_name, fit in fits.items():
        posterior = fit.trace.posterior

        for param in COEFFICIENTS:
            samples = posterior[param]
            mean = samples.mean(dim=["chain", "draw"])
            std = samples.std(dim=["chain", "draw"])

            for genre in genres:
                if "genre" in samples.dims:
                    m = float(mean.sel(genre=genre).values)
                    s = float(std.sel(genre=genre).values)
                else:
                    m = float(mean.values)
                    s = float(std.values)
                records.append(
                    {
                        "model": model_name,
                        "genre": genre,
                        "parameter": param,
                        "mean": m,
                        "sd": s,
                    }
                )

    return pd.DataFrame(records)


def compute_shrinkage(
    trace: az.InferenceData,
    unpooled_trace: Optional[az.InferenceData] = None,
) -> pd.DataFrame:
    """
    How far each genre coefficient was pulled toward the population.

    With an unpooled trace, shrinkage is ``1 - Var_hier / Var_unpooled``
    per genre and coefficient. Without one, posterior variance is
    compared against the spread of genre means. Values are clipped to
    [0, 1]; 1 means the genre is fully determined by the population.

    Returns
    -------
    pd.DataFrame
        Index genre, one column per coefficient.
    """
    posterior = trace.posterior

    for param in COEFFICIENTS:
        if param not in posterior:
            raise ValueError(f"Trace must contain '{param}' for shrinkage")
        if "genre" not in posterior[param].dims:
            raise ValueError(
                f"'{param}' has no genre dimension; shrinkage needs a grouped model"
            )

    genres = posterior["intercept"].coords["genre"].values
    columns = {}

    for param in COEFFICIENTS:
        samples = posterior[param]
        hier_var = samples.var(dim=["chain", "draw"]).values

        if unpooled_trace is not None and param in unpooled_trace.posterior:
            unpooled_var = (
                unpooled_trace.posterior[param].var(dim=["chain", "draw"]).values
            )
            shrinkage = 1 - hier_var / (unpooled_var + 1e-8)
        else:
            genre_means = samples.mean(dim=["chain", "draw"])
            between_var = float(genre_means.var(dim="genre").values)
            total_var = between_var + hier_var.mean()
            shrinkage = 1 - hier_var / (total_var + 1e-8)

        columns[param] = np.clip(shrinkage, 0, 1)

    return pd.DataFrame(columns, index=pd.Index(genres, name="genre"))
