"""
Exception hierarchy for data loading, model construction and training.
"""

from typing import Optional


class PongRegressionError(Exception):
    """Base class for all errors raised by this package."""


class IngestError(PongRegressionError):
    """A CSV source is missing, unreadable or malformed."""


class NotLoadedError(PongRegressionError):
    """Dataset state was accessed before a successful load."""


class ShapeError(PongRegressionError, ValueError):
    """Empty, ragged or mismatched matrices, tensors or models."""


class ConfigError(PongRegressionError, ValueError):
    """Invalid model construction or configuration parameters."""


class TrainingDivergenceError(PongRegressionError):
    """
    Numerical failure inside a training epoch.

    The log accumulated before the failure is kept on the exception so the
    caller can inspect how training went before it broke.
    """

    def __init__(self, message: str, training_log=None, epoch: Optional[int] = None):
        super().__init__(message)
        self.training_log = training_log
        self.epoch = epoch
