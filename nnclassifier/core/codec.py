"""Mapping between structured parameters and the optimiser's flat vector.

Layout, per layer from input to output: the row-major flattening of the
weight matrix followed by the bias vector.
"""

from __future__ import annotations

from typing import List

import numpy as np

from .errors import ShapeMismatchError
from .types import Array, ParameterSet, Topology


def flatten(params: ParameterSet, topology: Topology | None = None) -> Array:
    if topology is not None:
        params.check(topology)
    chunks: List[Array] = []
    for W, b in zip(params.weights, params.biases):
        chunks.append(np.ravel(W, order="C"))
        chunks.append(np.ravel(b, order="C"))
    return np.concatenate(chunks).astype(np.float64, copy=False)


def unflatten(vector: Array, topology: Topology) -> ParameterSet:
    vector = np.asarray(vector, dtype=np.float64)
    if vector.ndim != 1:
        raise ShapeMismatchError(f"Flat parameter vector must be 1-D, got shape {vector.shape}")
    expected = topology.parameter_count
    if vector.size != expected:
        raise ShapeMismatchError(
            f"Flat parameter vector has {vector.size} entries, topology {topology.layer_dims} "
            f"needs {expected}"
        )
    weights: List[Array] = []
    biases: List[Array] = []
    offset = 0
    for w_shape, b_shape in zip(topology.weight_shapes(), topology.bias_shapes()):
        w_size = w_shape[0] * w_shape[1]
        weights.append(vector[offset : offset + w_size].reshape(w_shape, order="C").copy())
        offset += w_size
        b_size = b_shape[0]
        biases.append(vector[offset : offset + b_size].copy())
        offset += b_size
    return ParameterSet(weights=tuple(weights), biases=tuple(biases))


__all__ = ["flatten", "unflatten"]
