class ChorusError(Exception):
    """Base class for all Chorus errors."""


class DataValidationError(ChorusError):
    """Raised when the song table cannot be used for modelling."""


class ModelFitError(ChorusError):
    """
    Raised when a model fails at a given stage of its run.

    Attributes
    ----------
    model_name : str
        Registry name of the model ("pooled", "unpooled", "hierarchical").
    stage : str
        One of "build", "sample", "log_likelihood", "dic".
    """

    def __init__(self, model_name: str, stage: str, message: str) -> None:
        self.model_name = model_name
        self.stage = stage
        super().__init__(f"[{model_name}] {stage} failed: {message}")
