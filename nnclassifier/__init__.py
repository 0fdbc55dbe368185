"""nnclassifier public API."""

from .classifier import FittedModel, evaluate, expected_cost, fit, predict, predict_proba
from .config import TrainingConfig, load_config, load_preset, presets
from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.errors import (
    ConfigurationError,
    DimensionMismatchError,
    EmptyInputError,
    InvalidInputError,
    NNClassifierError,
    OptimizerFailedError,
    OptimizerNonConvergence,
    ShapeMismatchError,
)
from .training.trainer import Trainer

__all__ = [
    "ConfigurationError",
    "DimensionMismatchError",
    "EmptyInputError",
    "FittedModel",
    "InvalidInputError",
    "NNClassifierError",
    "OptimizerFailedError",
    "OptimizerNonConvergence",
    "ShapeMismatchError",
    "Trainer",
    "TrainingConfig",
    "activations",
    "evaluate",
    "expected_cost",
    "fit",
    "load_config",
    "load_preset",
    "predict",
    "predict_proba",
    "presets",
    "types",
]
