"""
Sampler driver: build a model, sample it, and check what came back.

Each model is fitted in isolation. Anything that goes wrong after the
input has been validated is raised as ``ModelFitError`` carrying the
model name and the stage that failed, so one broken model does not stop
the others from being compared.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import arviz as az
import numpy as np
import pandas as pd
import pymc as pm

from chorus.config import PriorConfig, SamplerConfig
from chorus.data.loading import SongData
from chorus.exceptions import DataValidationError, ModelFitError
from chorus.models.common import OBSERVED_NAME
from chorus.models.registry import ModelSpec

logger = logging.getLogger(__name__)


@dataclass
class FitResult:
    spec: ModelSpec
    model: pm.Model
    trace: az.InferenceData

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def monitored(self) -> list[str]:
        return list(self.spec.monitored)

    def n_divergences(self) -> int:
        diverging = self.trace.sample_stats.get("diverging", None)
        if diverging is None:
            return 0
        return int(diverging.sum().values)


def sample_model(
    model: pm.Model,
    config: Optional[SamplerConfig] = None,
) -> az.InferenceData:
    """
    Draw posterior samples, keeping the pointwise log-likelihood.

    The first ``config.tune`` iterations of every chain (adaptation plus
    burn-in) are discarded; ``config.draws`` are kept per chain.
    """
    if config is None:
        config = SamplerConfig()

    with model:
        trace = pm.sample(
            draws=config.draws,
            tune=config.tune,
            chains=config.chains,
            cores=config.cores,
            target_accept=config.target_accept,
            random_seed=config.random_seed,
            return_inferencedata=True,
            progressbar=config.progressbar,
            idata_kwargs={"log_likelihood": True},
        )
    return trace


def fit_model(
    spec: ModelSpec,
    data: SongData,
    priors: Optional[PriorConfig] = None,
    config: Optional[SamplerConfig] = None,
    allow_single_genre: bool = False,
    **build_kwargs,
) -> FitResult:
    """
    Build and sample one model.

    Raises
    ------
    DataValidationError
        If the data cannot support this model (e.g. a single genre for a
        genre-indexed model without ``allow_single_genre``).
    ModelFitError
        If building, sampling or the post-sampling checks fail.
    """
    if config is None:
        config = SamplerConfig()

    try:
        model = spec.build(
            data, priors, allow_single_genre=allow_single_genre, **build_kwargs
        )
    except DataValidationError:
        raise
    except Exception as e:
        raise ModelFitError(spec.name, "build", str(e)) from e

    logger.info(
        "Sampling %s model: %d chains x %d draws (%d adapt + %d burn-in discarded)",
        spec.name,
        config.chains,
        config.draws,
        config.n_adapt,
        config.n_burnin,
    )

    try:
        trace = sample_model(model, config)
    except Exception as e:
        raise ModelFitError(spec.name, "sample", str(e)) from e

    for var in spec.monitored:
        values = trace.posterior[var].values
        if not np.all(np.isfinite(values)):
            raise ModelFitError(spec.name, "sample", f"non-finite draws for '{var}'")

    if "log_likelihood" not in trace.groups() or (
        OBSERVED_NAME not in trace.log_likelihood
    ):
        raise ModelFitError(
            spec.name, "log_likelihood", "trace has no pointwise log-likelihood"
        )
    if not np.all(np.isfinite(trace.log_likelihood[OBSERVED_NAME].values)):
        raise ModelFitError(spec.name, "log_likelihood", "non-finite log-likelihood")

    result = FitResult(spec=spec, model=model, trace=trace)

    divergences = result.n_divergences()
    if divergences > 0:
        if config.fail_on_divergences:
            raise ModelFitError(
                spec.name, "sample", f"{divergences} divergent transitions"
            )
        logger.warning(
            "%s model: %d divergent transitions", spec.name, divergences
        )

    logger.info("Finished sampling %s model", spec.name)
    return result


def fit_models(
    specs: Iterable[ModelSpec],
    data: SongData,
    priors: Optional[PriorConfig] = None,
    config: Optional[SamplerConfig] = None,
    allow_single_genre: bool = False,
) -> tuple[dict[str, FitResult], dict[str, ModelFitError]]:
    """
    Fit several models one after the other.

    A ``ModelFitError`` in one model is recorded and the next model is
    still fitted. Data errors are not model-specific and propagate.

    Returns
    -------
    tuple[dict[str, FitResult], dict[str, ModelFitError]]
        (successful fits, failures) keyed by model name.
    """
    results: dict[str, FitResult] = {}
    failures: dict[str, ModelFitError] = {}

    for spec in specs:
        try:
            results[spec.name] = fit_model(
                spec, data, priors, config, allow_single_genre=allow_single_genre
            )
        except ModelFitError as e:
            logger.error("%s", e)
            failures[spec.name] = e

    return results, failures


def posterior_draws(trace: az.InferenceData, var_name: str) -> pd.DataFrame:
    """
    Draws of one parameter in long format.

    Returns
    -------
    pd.DataFrame
        Columns ``chain``, ``draw``, one column per extra dimension
        (e.g. ``genre``), and ``value``.
    """
    if var_name not in trace.posterior:
        raise KeyError(f"'{var_name}' not in posterior")
    return trace.posterior[var_name].to_dataframe(name="value").reset_index()
