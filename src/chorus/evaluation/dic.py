"""
Deviance information criterion and model comparison.

For a trace with pointwise log-likelihood ``log p(y_i | theta_s)``:

    D(theta)      = -2 * sum_i log p(y_i | theta)
    D(theta_bar)  = deviance at the posterior-mean parameters
    p_DIC         = 2 * Var_s[ sum_i log p(y_i | theta_s) ]
    DIC           = D(theta_bar) + 2 * p_DIC

Lower DIC is a better trade-off between fit and effective complexity.
"""

import logging
from dataclasses import dataclass
from typing import Literal, Mapping, Union

import arviz as az
import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy import stats

from chorus.data.loading import SongData
from chorus.exceptions import ModelFitError
from chorus.models.common import OBSERVED_NAME
from chorus.models.sampling import FitResult

logger = logging.getLogger(__name__)


@dataclass
class DICResult:
    dic: float
    deviance_at_mean: float
    mean_deviance: float
    p_dic: float
    p_d: float


def pointwise_log_likelihood(
    trace: az.InferenceData,
    var_name: str = OBSERVED_NAME,
) -> NDArray[np.floating]:
    """Log-likelihood per (chain, draw, observation)."""
    if "log_likelihood" not in trace.groups():
        raise ValueError("Trace must contain a log_likelihood group.")
    if var_name not in trace.log_likelihood:
        raise ValueError(f"'{var_name}' not in trace.log_likelihood")
    return trace.log_likelihood[var_name].values


def _posterior_mean_per_obs(
    trace: az.InferenceData,
    var_name: str,
    genre_index0: NDArray[np.int64],
) -> NDArray[np.floating]:
    mean = trace.posterior[var_name].mean(dim=["chain", "draw"])
    if "genre" in mean.dims:
        return mean.values[genre_index0]
    return np.full(len(genre_index0), float(mean.values))


def deviance_at_posterior_mean(trace: az.InferenceData, data: SongData) -> float:
    """
    Deviance of the observed popularity at the posterior-mean parameters.

    Works for all three architectures: a parameter with a ``genre``
    dimension is indexed by each song's genre, a scalar is broadcast.
    """
    idx = data.genre_index0

    intercept = _posterior_mean_per_obs(trace, "intercept", idx)
    slope_dance = _posterior_mean_per_obs(trace, "slope_dance", idx)
    slope_length = _posterior_mean_per_obs(trace, "slope_length", idx)
    sigma = _posterior_mean_per_obs(trace, "sigma", idx)

    mu = intercept + slope_dance * data.danceability + slope_length * data.length
    log_lik = stats.norm.logpdf(data.popularity, loc=mu, scale=sigma)
    return float(-2.0 * log_lik.sum())


def compute_dic(
    trace: az.InferenceData,
    data: SongData,
    model_name: str = "model",
) -> DICResult:
    """
    Compute DIC for one fitted model.

    Raises
    ------
    ModelFitError
        If the result is not a finite number.
    """
    try:
        log_lik = pointwise_log_likelihood(trace)
    except ValueError as e:
        raise ModelFitError(model_name, "log_likelihood", str(e)) from e

    total_log_lik = log_lik.sum(axis=-1).ravel()
    deviance = -2.0 * total_log_lik

    deviance_at_mean = deviance_at_posterior_mean(trace, data)
    mean_deviance = float(deviance.mean())
    p_dic = float(2.0 * total_log_lik.var())
    dic = deviance_at_mean + 2.0 * p_dic

    if not np.isfinite(dic):
        raise ModelFitError(model_name, "dic", f"DIC is not finite ({dic})")

    return DICResult(
        dic=float(dic),
        deviance_at_mean=deviance_at_mean,
        mean_deviance=mean_deviance,
        p_dic=p_dic,
        p_d=mean_deviance - deviance_at_mean,
    )


def compare_models(
    fits: Mapping[str, Union[FitResult, az.InferenceData]],
    data: SongData,
    criterion: Literal["dic", "waic", "loo"] = "dic",
) -> pd.DataFrame:
    """
    Score each model and sort best (lowest DIC) first.

    Each model is scored on its own, so the order of ``fits`` does not
    change any score; models with equal DIC keep their input order.

    Parameters
    ----------
    fits : Mapping[str, FitResult or az.InferenceData]
        Fitted models keyed by name.
    data : SongData
        Data the models were fitted to.
    criterion : {"dic", "waic", "loo"}
        "dic" uses this module; "waic" and "loo" delegate to ``az.compare``.

    Returns
    -------
    pd.DataFrame
        For DIC: columns ``Model``, ``DIC``, ``deviance_at_mean``,
        ``mean_deviance``, ``p_DIC``, ``p_D``, ``rank``.
    """
    traces = {
        name: fit.trace if isinstance(fit, FitResult) else fit
        for name, fit in fits.items()
    }

    if not traces:
        raise ValueError("Need at least one fitted model to compare.")

    if criterion in ("waic", "loo"):
        comparison = az.compare(traces, ic=criterion, scale="deviance")
        return comparison.rename_axis("Model").reset_index()

    if criterion != "dic":
        raise ValueError(f"Unknown criterion '{criterion}'. Use dic, waic or loo.")

    results = {
        name: compute_dic(trace, data, model_name=name)
        for name, trace in traces.items()
    }
    return dic_table(results)


def dic_table(results: Mapping[str, DICResult]) -> pd.DataFrame:
    """Rank already computed DIC results, best first, ties in input order."""
    if not results:
        raise ValueError("Need at least one DIC result to rank.")

    records = []
    for name, result in results.items():
        logger.info(
            "%s: DIC=%.2f (D(theta_bar)=%.2f, p_DIC=%.2f)",
            name,
            result.dic,
            result.deviance_at_mean,
            result.p_dic,
        )
        records.append(
            {
                "Model": name,
                "DIC": result.dic,
                "deviance_at_mean": result.deviance_at_mean,
                "mean_deviance": result.mean_deviance,
                "p_DIC": result.p_dic,
                "p_D": result.p_d,
            }
        )

    table = pd.DataFrame(records).sort_values("DIC", kind="stable")
    table = table.reset_index(drop=True)
    table["rank"] = np.arange(1, len(table) + 1)
    return table
