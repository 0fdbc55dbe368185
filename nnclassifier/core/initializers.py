"""Initial values for layer weights and biases."""

from __future__ import annotations

from typing import Callable, Dict, Tuple

import numpy as np

from .errors import ConfigurationError
from .types import Array, ParameterSet, Topology

WeightInit = Callable[[Tuple[int, int], np.random.Generator], Array]
BiasInit = Callable[[Tuple[int], np.random.Generator], Array]


def glorot_uniform(shape: Tuple[int, int], rng: np.random.Generator) -> Array:
    fan_out, fan_in = shape
    limit = np.sqrt(6.0 / (fan_in + fan_out))
    return rng.uniform(-limit, limit, size=shape)


def he_normal(shape: Tuple[int, int], rng: np.random.Generator) -> Array:
    _, fan_in = shape
    return rng.standard_normal(shape) * np.sqrt(2.0 / fan_in)


def zeros(shape: Tuple[int], rng: np.random.Generator) -> Array:
    return np.zeros(shape, dtype=np.float64)


def ones(shape: Tuple[int], rng: np.random.Generator) -> Array:
    return np.ones(shape, dtype=np.float64)


WEIGHT_INITIALIZERS: Dict[str, WeightInit] = {"glorot": glorot_uniform, "he": he_normal}
BIAS_INITIALIZERS: Dict[str, BiasInit] = {"zeros": zeros, "ones": ones}


def _lookup(table: Dict[str, Callable], name: str, kind: str) -> Callable:
    try:
        return table[str(name).lower()]
    except KeyError as exc:
        available = ", ".join(sorted(table))
        raise ConfigurationError(f"Unsupported {kind} {name!r}. Available: {available}") from exc


def initialize_parameters(
    topology: Topology,
    weight_init: str = "glorot",
    bias_init: str = "zeros",
    rng: np.random.Generator | None = None,
) -> ParameterSet:
    """Return fresh parameters for every layer of ``topology``.

    Both initialiser names are resolved before any random draw, so an invalid
    name never consumes generator state.
    """

    w_fn = _lookup(WEIGHT_INITIALIZERS, weight_init, "weight initializer")
    b_fn = _lookup(BIAS_INITIALIZERS, bias_init, "bias initializer")
    rng = rng if rng is not None else np.random.default_rng()
    weights = [w_fn(shape, rng) for shape in topology.weight_shapes()]
    biases = [b_fn(shape, rng) for shape in topology.bias_shapes()]
    return ParameterSet(weights=tuple(weights), biases=tuple(biases))


__all__ = [
    "BIAS_INITIALIZERS",
    "WEIGHT_INITIALIZERS",
    "glorot_uniform",
    "he_normal",
    "initialize_parameters",
    "ones",
    "zeros",
]
