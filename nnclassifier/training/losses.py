"""Cross-entropy loss and its backpropagated parameter gradients."""

from __future__ import annotations

from typing import List, Tuple

import numpy as np

from ..core.activations import Activation, get_activation
from ..core.codec import flatten, unflatten
from ..core.errors import ShapeMismatchError
from ..core.network import forward
from ..core.types import Array, ForwardCache, ParameterSet, Topology
from .optimizers import Objective

# Guards log(0) when a probability underflows.
EPS = float(np.finfo(np.float64).eps)


def one_hot(indices: Array, num_classes: int) -> Array:
    indices = np.asarray(indices).reshape(-1).astype(np.int64)
    if indices.size and (indices.min() < 0 or indices.max() >= num_classes):
        raise ShapeMismatchError(
            f"Class indices must lie in [0, {num_classes}), got range "
            f"[{indices.min()}, {indices.max()}]"
        )
    out = np.zeros((indices.shape[0], num_classes), dtype=np.float64)
    out[np.arange(indices.shape[0]), indices] = 1.0
    return out


def _ensure_one_hot(targets: Array, num_classes: int) -> Array:
    targets = np.asarray(targets)
    if targets.ndim == 2 and targets.shape[1] == num_classes:
        return targets.astype(np.float64)
    return one_hot(targets, num_classes)


def cross_entropy(probabilities: Array, targets: Array) -> float:
    """Mean negative log-likelihood of the true classes."""

    probabilities = np.asarray(probabilities, dtype=np.float64)
    y = _ensure_one_hot(targets, probabilities.shape[1])
    if y.shape != probabilities.shape:
        raise ShapeMismatchError(
            f"Targets of shape {y.shape} do not match probabilities of shape {probabilities.shape}"
        )
    m = probabilities.shape[0]
    return float(-np.sum(y * np.log(np.maximum(probabilities, EPS))) / m)


def backpropagate(
    cache: ForwardCache,
    targets: Array,
    params: ParameterSet,
    activation: Activation,
) -> ParameterSet:
    """Return loss gradients shaped like ``params``.

    The output error uses the closed form ``P - Y`` of softmax combined with
    cross-entropy.
    """

    probs = cache.activations[-1]
    m = probs.shape[0]
    delta = probs - targets
    last_idx = len(params.weights) - 1
    grad_w: List[Array] = [None] * (last_idx + 1)  # type: ignore[list-item]
    grad_b: List[Array] = [None] * (last_idx + 1)  # type: ignore[list-item]
    for idx in range(last_idx, -1, -1):
        if idx < last_idx:
            delta = (delta @ params.weights[idx + 1]) * activation.grad(cache.activations[idx + 1])
        grad_w[idx] = delta.T @ cache.activations[idx] / m
        grad_b[idx] = delta.sum(axis=0) / m
    return ParameterSet(weights=tuple(grad_w), biases=tuple(grad_b))


def loss_and_gradients(
    inputs: Array,
    targets: Array,
    params: ParameterSet,
    activation: str | Activation = "relu",
) -> Tuple[float, ParameterSet]:
    """Full-batch forward pass, cross-entropy loss and backpropagation."""

    act = get_activation(activation)
    num_classes = params.weights[-1].shape[0]
    y = _ensure_one_hot(targets, num_classes)
    inputs = np.asarray(inputs, dtype=np.float64)
    if inputs.ndim != 2 or y.shape[0] != inputs.shape[0]:
        raise ShapeMismatchError(
            f"Inputs of shape {inputs.shape} and targets of shape {y.shape} disagree on rows"
        )
    probs, cache = forward(inputs, params, act, keep_cache=True)
    assert cache is not None
    loss = cross_entropy(probs, y)
    grads = backpropagate(cache, y, params, act)
    return loss, grads


def make_objective(
    inputs: Array,
    targets: Array,
    topology: Topology,
    activation: str | Activation = "relu",
) -> Objective:
    """Build the ``flat -> (loss, flat_gradient)`` closure for a minimiser."""

    act = get_activation(activation)
    x = np.asarray(inputs, dtype=np.float64)
    y = _ensure_one_hot(targets, topology.num_classes)
    if x.ndim != 2 or x.shape[1] != topology.input_size:
        raise ShapeMismatchError(
            f"Inputs of shape {x.shape} do not match input size {topology.input_size}"
        )
    if y.shape[0] != x.shape[0]:
        raise ShapeMismatchError(f"{x.shape[0]} input rows but {y.shape[0]} target rows")

    def objective(flat: Array) -> Tuple[float, Array]:
        params = unflatten(flat, topology)
        loss, grads = loss_and_gradients(x, y, params, act)
        return loss, flatten(grads)

    return objective


__all__ = [
    "EPS",
    "Objective",
    "backpropagate",
    "cross_entropy",
    "loss_and_gradients",
    "make_objective",
    "one_hot",
]
