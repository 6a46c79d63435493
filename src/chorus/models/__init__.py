"""
PyMC regressions of song popularity on danceability and length.

Three architectures for different assumptions about genres:

1. **Pooled**: every genre shares one intercept, slope pair and noise scale
   - Pro: Uses all data for every parameter
   - Con: Ignores genre differences entirely

2. **Unpooled**: each genre has its own intercept, slopes and noise scale
   - Pro: Maximum flexibility
   - Con: Small genres get noisy estimates

3. **Hierarchical**: genre parameters drawn from shared population
   distributions (partial pooling), with one shared noise scale
   - Pro: Small genres borrow strength from the rest
   - Con: More parameters to sample
"""

from chorus.models.pooled import build_pooled_model
from chorus.models.unpooled import build_unpooled_model
from chorus.models.hierarchical import build_hierarchical_model
from chorus.models.registry import (
    ModelSpec,
    MODEL_SPECS,
    get_model_spec,
    count_monitored_parameters,
)
from chorus.models.sampling import (
    FitResult,
    sample_model,
    fit_model,
    fit_models,
    posterior_draws,
)

__all__ = [
    "build_pooled_model",
    "build_unpooled_model",
    "build_hierarchical_model",
    "ModelSpec",
    "MODEL_SPECS",
    "get_model_spec",
    "count_monitored_parameters",
    "FitResult",
    "sample_model",
    "fit_model",
    "fit_models",
    "posterior_draws",
]
