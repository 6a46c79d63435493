"""
Evaluation utilities for the fitted popularity models.

This module provides tools for:
- Model comparison by DIC (and WAIC/LOO via ArviZ)
- MCMC diagnostics (R-hat, ESS, divergences)
- Posterior summaries, per-genre effects and shrinkage analysis
"""

from chorus.evaluation.dic import (
    DICResult,
    pointwise_log_likelihood,
    deviance_at_posterior_mean,
    compute_dic,
    compare_models,
    dic_table,
)
from chorus.evaluation.diagnostics import (
    DiagnosticsReport,
    run_mcmc_diagnostics,
    format_diagnostics_report,
)
from chorus.evaluation.summary import (
    summarize_posterior,
    genre_effects,
    compute_shrinkage,
)

__all__ = [
    # DIC
    "DICResult",
    "pointwise_log_likelihood",
    "deviance_at_posterior_mean",
    "compute_dic",
    "compare_models",
    "dic_table",
    # Diagnostics
    "DiagnosticsReport",
    "run_mcmc_diagnostics",
    "format_diagnostics_report",
    # Summaries
    "summarize_posterior",
    "genre_effects",
    "compute_shrinkage",
]
