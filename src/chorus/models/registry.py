from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
import pymc as pm

from chorus.config import PriorConfig
from chorus.data.loading import SongData
from chorus.models.hierarchical import build_hierarchical_model
from chorus.models.pooled import build_pooled_model
from chorus.models.unpooled import build_unpooled_model


@dataclass(frozen=True)
class ModelSpec:
    """
    A model architecture and the parameters to monitor when sampling it.

    All specs expose the same ``build`` signature, so the sampler
    driver and the comparator never need to know which one they hold.
    """

    name: str
    builder: Callable[..., pm.Model]
    monitored: tuple[str, ...]
    grouped: bool
    description: str = ""

    def build(
        self,
        data: SongData,
        priors: Optional[PriorConfig] = None,
        **kwargs,
    ) -> pm.Model:
        return self.builder(data, priors, **kwargs)


POOLED = ModelSpec(
    name="pooled",
    builder=build_pooled_model,
    monitored=("intercept", "slope_dance", "slope_length", "sigma"),
    grouped=False,
    description="One parameter set shared by every genre",
)

UNPOOLED = ModelSpec(
    name="unpooled",
    builder=build_unpooled_model,
    monitored=("intercept", "slope_dance", "slope_length", "sigma"),
    grouped=True,
    description="Independent parameters and noise scale per genre",
)

HIERARCHICAL = ModelSpec(
    name="hierarchical",
    builder=build_hierarchical_model,
    monitored=(
        "intercept",
        "slope_dance",
        "slope_length",
        "intercept_mu",
        "intercept_sigma",
        "slope_dance_mu",
        "slope_dance_sigma",
        "slope_length_mu",
        "slope_length_sigma",
        "sigma",
    ),
    grouped=True,
    description="Genre parameters drawn from shared population distributions",
)

MODEL_SPECS: dict[str, ModelSpec] = {
    spec.name: spec for spec in (POOLED, UNPOOLED, HIERARCHICAL)
}


def get_model_spec(name: str) -> ModelSpec:
    try:
        return MODEL_SPECS[name]
    except KeyError:
        raise KeyError(
            f"Unknown model '{name}'. Available: {', '.join(MODEL_SPECS)}"
        ) from None


def count_monitored_parameters(model: pm.Model, spec: ModelSpec) -> int:
    """Number of scalar quantities monitored for ``spec`` in ``model``."""
    return sum(int(np.prod(model[name].shape.eval())) for name in spec.monitored)
