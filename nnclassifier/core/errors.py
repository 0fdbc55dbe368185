"""Exception and warning types raised by nnclassifier."""

from __future__ import annotations


class NNClassifierError(Exception):
    """Base class for all nnclassifier errors."""


class ConfigurationError(NNClassifierError, ValueError):
    """Raised when an option value is invalid or unsupported."""


class ShapeMismatchError(NNClassifierError, ValueError):
    """Raised when arrays or flat vectors disagree with the network topology."""


class DimensionMismatchError(NNClassifierError, ValueError):
    """Raised when inference input has a different feature count than training."""


class EmptyInputError(NNClassifierError, ValueError):
    """Raised when inference is asked for zero rows."""


class InvalidInputError(NNClassifierError, ValueError):
    """Raised when training data contains non-finite predictor values."""


class OptimizerFailedError(NNClassifierError, RuntimeError):
    """Raised when training ends without a usable model."""


class OptimizerNonConvergence(RuntimeWarning):
    """Warned when the iteration limit is hit before any tolerance is met."""


__all__ = [
    "NNClassifierError",
    "ConfigurationError",
    "ShapeMismatchError",
    "DimensionMismatchError",
    "EmptyInputError",
    "InvalidInputError",
    "OptimizerFailedError",
    "OptimizerNonConvergence",
]
