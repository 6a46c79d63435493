"""
End-to-end analysis: load, clean, fit each model, compare by DIC.

The stages run strictly forward. A model that fails to fit is logged
and left out of the comparison; the run only fails when no model fits.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Union

import pandas as pd

from chorus.config import CleaningConfig, PriorConfig, SamplerConfig
from chorus.data.loading import SongData, clean_songs, load_songs
from chorus.data.schemas import validate_raw_songs
from chorus.evaluation.dic import DICResult, compute_dic, dic_table
from chorus.exceptions import ChorusError, ModelFitError
from chorus.models.registry import MODEL_SPECS, get_model_spec
from chorus.models.sampling import FitResult, fit_models

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    data: SongData
    fits: dict[str, FitResult]
    failures: dict[str, ModelFitError] = field(default_factory=dict)
    dic: dict[str, DICResult] = field(default_factory=dict)
    comparison: Optional[pd.DataFrame] = None

    @property
    def best_model(self) -> Optional[str]:
        if self.comparison is None or self.comparison.empty:
            return None
        return str(self.comparison["Model"].iloc[0])


def run_analysis(
    source: Union[str, Path, pd.DataFrame],
    cleaning: Optional[CleaningConfig] = None,
    priors: Optional[PriorConfig] = None,
    sampler: Optional[SamplerConfig] = None,
    models: Optional[Sequence[str]] = None,
) -> AnalysisResult:
    """
    Run the full popularity analysis.

    Parameters
    ----------
    source : str, Path or pd.DataFrame
        Path to the delimited song table, or an already loaded raw frame.
    cleaning, priors, sampler : optional
        Run configuration. Defaults reproduce the reference analysis.
    models : sequence of str, optional
        Model names to fit, in order. Defaults to all registered models.

    Returns
    -------
    AnalysisResult
        Cleaned data, successful fits, failures and the DIC table.

    Raises
    ------
    DataValidationError
        If the input cannot be cleaned or cannot support a requested model.
    ChorusError
        If every requested model fails.
    """
    if cleaning is None:
        cleaning = CleaningConfig()
    if models is None:
        models = list(MODEL_SPECS)

    specs = [get_model_spec(name) for name in models]

    if isinstance(source, pd.DataFrame):
        raw = validate_raw_songs(source)
    else:
        raw = load_songs(source, sep=cleaning.sep)

    data = clean_songs(raw, cleaning)
    logger.info(
        "Cleaned data: %d of %d songs kept, %d genres",
        data.n_obs,
        data.n_raw,
        data.n_genres,
    )

    fits, failures = fit_models(
        specs,
        data,
        priors,
        sampler,
        allow_single_genre=cleaning.allow_single_genre,
    )

    dic = {}
    for name in list(fits):
        try:
            dic[name] = compute_dic(fits[name].trace, data, model_name=name)
        except ModelFitError as e:
            logger.error("%s", e)
            failures[name] = e
            del fits[name]

    if not fits:
        raise ChorusError(
            "All models failed: "
            + "; ".join(str(e) for e in failures.values())
        )

    comparison = dic_table(dic)
    logger.info("Best model by DIC: %s", comparison["Model"].iloc[0])

    return AnalysisResult(
        data=data,
        fits=fits,
        failures=failures,
        dic=dic,
        comparison=comparison,
    )
