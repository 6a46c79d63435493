"""
Run configuration for the song popularity analysis.

Every constant of a run lives here as a validated pydantic model. The
defaults reproduce the reference analysis:

- length outliers removed below the 1st and above the 96th percentile
- weakly informative priors (sd 20 on intercept and slopes)
- 3 chains, 1000 adaptation + 1000 burn-in steps, 5000 kept draws
"""

import math
from typing import Optional

from pydantic import BaseModel, Field, model_validator


def precision_to_sigma(tau: float) -> float:
    """Convert a Normal precision (1 / variance) to a standard deviation."""
    if tau <= 0:
        raise ValueError(f"precision must be > 0, got {tau}")
    return 1.0 / math.sqrt(tau)


class CleaningConfig(BaseModel):
    sep: str = Field(";", description="Column delimiter of the input table")
    lower_percentile: float = Field(1.0, ge=0, le=100)
    upper_percentile: float = Field(96.0, ge=0, le=100)
    rescale_max: float = Field(100.0, gt=0, description="Upper end of rescaled length")
    allow_single_genre: bool = Field(
        False,
        description="Allow genre-indexed models on data with fewer than 2 genres",
    )

    @model_validator(mode="after")
    def check_percentile_order(self) -> "CleaningConfig":
        if self.lower_percentile >= self.upper_percentile:
            raise ValueError(
                "lower_percentile must be below upper_percentile, got "
                f"{self.lower_percentile} >= {self.upper_percentile}"
            )
        return self


class PriorConfig(BaseModel):
    """
    Prior hyperparameters shared by the three model architectures.

    All Normal priors are parameterised by standard deviation. Priors
    written as (mean, precision) pairs should go through
    ``PriorConfig.from_precisions`` so the effective variance is kept.
    """

    intercept_mu: float = 50.0
    intercept_sigma: float = Field(20.0, gt=0)

    slope_mu: float = 0.0
    slope_sigma: float = Field(20.0, gt=0)

    # LogNormal(mu, sigma) on the log scale
    noise_log_mu: float = 1.0
    noise_log_sigma: float = Field(1.0, gt=0)

    # Between-genre spread of the intercepts (hierarchical model)
    intercept_spread_log_mu: float = -1.0
    intercept_spread_log_sigma: float = Field(1.0, gt=0)

    # Between-genre spread of the slopes (hierarchical model)
    slope_spread_log_mu: float = 1.0
    slope_spread_log_sigma: float = Field(1.0, gt=0)

    @classmethod
    def from_precisions(
        cls,
        intercept_mu: float = 50.0,
        intercept_tau: float = 0.0025,
        slope_mu: float = 0.0,
        slope_tau: float = 0.0025,
        **kwargs,
    ) -> "PriorConfig":
        """
        Build priors from (mean, precision) pairs.

        >>> PriorConfig.from_precisions(intercept_tau=0.0025).intercept_sigma
        20.0
        """
        return cls(
            intercept_mu=intercept_mu,
            intercept_sigma=precision_to_sigma(intercept_tau),
            slope_mu=slope_mu,
            slope_sigma=precision_to_sigma(slope_tau),
            **kwargs,
        )


class SamplerConfig(BaseModel):
    chains: int = Field(3, ge=1)
    n_adapt: int = Field(1000, ge=0, description="Adaptation steps (discarded)")
    n_burnin: int = Field(1000, ge=0, description="Burn-in steps (discarded)")
    draws: int = Field(5000, ge=1, description="Kept draws per chain")
    target_accept: float = Field(0.9, gt=0, lt=1)
    random_seed: Optional[int] = 42
    cores: Optional[int] = Field(None, ge=1)
    progressbar: bool = False
    fail_on_divergences: bool = Field(
        False, description="Treat any divergent transition as a failed run"
    )

    @property
    def tune(self) -> int:
        # NUTS adapts its step size during tuning, so adaptation and
        # burn-in are a single discarded phase.
        return self.n_adapt + self.n_burnin
