"""Training-data validation, class label mapping, priors, costs and scaling."""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

import numpy as np

from ..core.errors import (
    ConfigurationError,
    DimensionMismatchError,
    EmptyInputError,
    InvalidInputError,
    ShapeMismatchError,
)
from ..core.types import Array


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (float, np.floating)):
        return bool(np.isnan(value))
    return False


def _as_label_array(labels: Any) -> Array:
    if hasattr(labels, "to_numpy"):
        labels = labels.to_numpy()
    arr = np.asarray(labels)
    if arr.ndim == 2 and 1 in arr.shape:
        arr = arr.reshape(-1)
    if arr.ndim != 1:
        raise ShapeMismatchError(f"Labels must be a vector, got shape {arr.shape}")
    return arr


def _missing_mask(labels: Array) -> Array:
    if labels.dtype.kind == "f":
        return np.isnan(labels)
    if labels.dtype.kind == "O":
        return np.array([_is_missing(v) for v in labels], dtype=bool)
    return np.zeros(labels.shape, dtype=bool)


def _is_sortable(labels: Array) -> bool:
    if labels.dtype.kind in "biuf":
        return True
    if labels.dtype.kind == "O":
        return all(isinstance(v, (bool, np.bool_, numbers.Real)) for v in labels)
    return False


@dataclass(frozen=True)
class ClassLabels:
    """Ordered distinct class identifiers fixed at fit time.

    Numeric and boolean labels sort ascending; any other labels keep the
    order in which they first appear.
    """

    values: Array

    @classmethod
    def from_labels(cls, labels: Array) -> "ClassLabels":
        labels = _as_label_array(labels)
        if labels.size == 0:
            raise EmptyInputError("Cannot derive classes from an empty label vector")
        if _is_sortable(labels):
            values = np.unique(labels)
        else:
            _, first = np.unique(labels.astype(str), return_index=True)
            values = labels[np.sort(first)]
        return cls(values=values)

    def __len__(self) -> int:
        return int(self.values.shape[0])

    def encode(self, labels: Array) -> Array:
        labels = _as_label_array(labels)
        lookup = {self._key(v): idx for idx, v in enumerate(self.values)}
        try:
            return np.array([lookup[self._key(v)] for v in labels], dtype=np.int64)
        except KeyError as exc:
            raise ConfigurationError(f"Label {exc.args[0]!r} is not a known class") from exc

    def decode(self, indices: Array) -> Array:
        return self.values[np.asarray(indices, dtype=np.int64)]

    def tolist(self) -> list:
        return self.values.tolist()

    @staticmethod
    def _key(value: Any) -> Any:
        return value.item() if isinstance(value, np.generic) else value


@dataclass(frozen=True)
class TrainingData:
    """Validated training inputs ready for the training driver."""

    inputs: Array
    targets: Array
    classes: ClassLabels
    rows_used: Array
    mu: Optional[Array]
    sigma: Optional[Array]
    prior: Array
    cost: Array
    predictor_names: Tuple[str, ...]
    response_name: str

    @property
    def num_observations(self) -> int:
        return int(self.inputs.shape[0])

    @property
    def num_predictors(self) -> int:
        return int(self.inputs.shape[1])


def _as_feature_matrix(X: Any) -> Array:
    if hasattr(X, "to_numpy"):
        X = X.to_numpy()
    try:
        arr = np.asarray(X, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError("Predictor data must be numeric") from exc
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise ShapeMismatchError(f"Predictor data must be 2-D, got shape {arr.shape}")
    return arr


def standardization(inputs: Array) -> Tuple[Array, Array]:
    """Column means and sample standard deviations; constant columns get 1."""

    mu = inputs.mean(axis=0)
    if inputs.shape[0] > 1:
        sigma = inputs.std(axis=0, ddof=1)
    else:
        sigma = np.ones(inputs.shape[1])
    sigma = np.where((sigma == 0) | ~np.isfinite(sigma), 1.0, sigma)
    return mu, sigma


def resolve_prior(prior: str | Sequence[float], targets: Array, num_classes: int) -> Array:
    if isinstance(prior, str):
        if prior == "uniform":
            return np.full(num_classes, 1.0 / num_classes)
        counts = np.bincount(targets, minlength=num_classes).astype(np.float64)
        return counts / counts.sum()
    arr = np.asarray(prior, dtype=np.float64).reshape(-1)
    if arr.size != num_classes:
        raise ConfigurationError(
            f"prior has {arr.size} entries but the training data has {num_classes} classes"
        )
    return arr / arr.sum()


def resolve_cost(cost: Optional[Sequence[Sequence[float]]], num_classes: int) -> Array:
    if cost is None:
        return 1.0 - np.eye(num_classes)
    arr = np.asarray(cost, dtype=np.float64)
    if arr.shape != (num_classes, num_classes):
        raise ConfigurationError(
            f"cost must be {num_classes}x{num_classes} to match the classes, got {arr.shape}"
        )
    return arr


def prepare_training_data(X: Any, Y: Any, config) -> TrainingData:
    """Validate raw training data against ``config`` before any training."""

    inputs = _as_feature_matrix(X)
    labels = _as_label_array(Y)
    if inputs.shape[0] != labels.shape[0]:
        raise ShapeMismatchError(
            f"X has {inputs.shape[0]} rows but Y has {labels.shape[0]}; they must be equal"
        )

    num_predictors = inputs.shape[1]
    if config.predictor_names is not None and len(config.predictor_names) != num_predictors:
        raise ConfigurationError(
            f"predictor_names has {len(config.predictor_names)} entries but X has "
            f"{num_predictors} columns"
        )

    missing = _missing_mask(labels)
    if config.class_names is not None:
        present = {ClassLabels._key(v) for v in labels[~missing]}
        absent = [name for name in config.class_names if name not in present]
        if absent:
            raise ConfigurationError(f"Not all class_names are present in Y: missing {absent}")
        wanted = set(config.class_names)
        missing = missing | np.array([ClassLabels._key(v) not in wanted for v in labels], dtype=bool)

    rows_used = ~(np.isnan(inputs).any(axis=1) | missing)
    inputs = inputs[rows_used]
    labels = labels[rows_used]
    if inputs.shape[0] == 0:
        raise EmptyInputError("No usable training rows remain after removing missing values")
    if not np.all(np.isfinite(inputs)):
        raise InvalidInputError("Invalid values in X: predictor data must be finite")

    if config.class_names is not None:
        classes = ClassLabels(values=np.array(list(config.class_names), dtype=labels.dtype))
    else:
        classes = ClassLabels.from_labels(labels)
    targets = classes.encode(labels)
    num_classes = len(classes)

    mu = sigma = None
    if config.standardize:
        mu, sigma = standardization(inputs)
        inputs = (inputs - mu) / sigma

    predictor_names = config.predictor_names or tuple(f"x{i + 1}" for i in range(num_predictors))
    return TrainingData(
        inputs=inputs,
        targets=targets,
        classes=classes,
        rows_used=rows_used,
        mu=mu,
        sigma=sigma,
        prior=resolve_prior(config.prior, targets, num_classes),
        cost=resolve_cost(config.cost, num_classes),
        predictor_names=tuple(predictor_names),
        response_name=config.response_name,
    )


def check_inference_input(X: Any, input_size: int) -> Array:
    """Return ``X`` as a float matrix or raise for empty or mis-sized input.

    A scalar is a single observation. A 1-D input is a column of
    observations for a one-predictor model and a single observation
    otherwise, matching how training reads 1-D predictors.
    """

    if hasattr(X, "to_numpy"):
        X = X.to_numpy()
    try:
        arr = np.asarray(X, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError("Predictor data must be numeric") from exc
    if arr.size == 0:
        raise EmptyInputError("Cannot predict on empty input")
    if arr.ndim == 0:
        arr = arr.reshape(1, 1)
    elif arr.ndim == 1:
        arr = arr.reshape(-1, 1) if input_size == 1 else arr.reshape(1, -1)
    if arr.ndim != 2 or arr.shape[1] != input_size:
        found = arr.shape[1] if arr.ndim == 2 else arr.size
        raise DimensionMismatchError(
            f"Input has {found} features but the model was fitted with {input_size}"
        )
    return arr


__all__ = [
    "ClassLabels",
    "TrainingData",
    "check_inference_input",
    "prepare_training_data",
    "resolve_cost",
    "resolve_prior",
    "standardization",
]
