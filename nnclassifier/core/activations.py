"""Activation utilities for nnclassifier."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict

import numpy as np
from scipy.special import expit

from .errors import ConfigurationError
from .types import Array


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def sigmoid(x: Array) -> Array:
    return expit(x)


def tanh(x: Array) -> Array:
    return np.tanh(x)


def identity(x: Array) -> Array:
    return x


def softmax(z: Array) -> Array:
    """Row-wise normalised exponential."""

    shifted = z - np.max(z, axis=1, keepdims=True)
    e = np.exp(shifted)
    return e / np.sum(e, axis=1, keepdims=True)


# Derivatives are written in terms of the layer output A = g(Z).


def _relu_grad(a: Array) -> Array:
    return (a > 0).astype(a.dtype)


def _sigmoid_grad(a: Array) -> Array:
    return a * (1.0 - a)


def _tanh_grad(a: Array) -> Array:
    return 1.0 - a**2


def _identity_grad(a: Array) -> Array:
    return np.ones_like(a)


@dataclass(frozen=True)
class Activation:
    """Hidden-layer non-linearity paired with its derivative."""

    name: str
    fn: Callable[[Array], Array]
    grad: Callable[[Array], Array]

    def __call__(self, z: Array) -> Array:
        return self.fn(z)


ACTIVATIONS: Dict[str, Activation] = {
    "relu": Activation("relu", relu, _relu_grad),
    "tanh": Activation("tanh", tanh, _tanh_grad),
    "sigmoid": Activation("sigmoid", sigmoid, _sigmoid_grad),
    "none": Activation("none", identity, _identity_grad),
}


def get_activation(name: str | Activation) -> Activation:
    if isinstance(name, Activation):
        return name
    try:
        return ACTIVATIONS[str(name).lower()]
    except KeyError as exc:
        available = ", ".join(sorted(ACTIVATIONS))
        raise ConfigurationError(
            f"Unsupported activation {name!r}. Available activations: {available}"
        ) from exc


__all__ = [
    "ACTIVATIONS",
    "Activation",
    "get_activation",
    "identity",
    "relu",
    "sigmoid",
    "softmax",
    "tanh",
]
