"""Forward propagation through the dense layer stack."""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .activations import Activation, get_activation, softmax
from .errors import ShapeMismatchError
from .types import Array, ForwardCache, ParameterSet


def forward(
    inputs: Array,
    params: ParameterSet,
    activation: str | Activation = "relu",
    *,
    keep_cache: bool = True,
) -> Tuple[Array, Optional[ForwardCache]]:
    """Return class probabilities for ``inputs`` and, optionally, the cache.

    ``inputs`` is ``(M, P)``. The hidden layers use ``activation`` and the
    output layer applies a row-wise softmax.
    """

    act = get_activation(activation)
    x = np.asarray(inputs, dtype=np.float64)
    if x.ndim != 2:
        raise ShapeMismatchError(f"Inputs must be a 2-D (rows, features) array, got shape {x.shape}")
    if x.shape[1] != params.weights[0].shape[1]:
        raise ShapeMismatchError(
            f"Inputs have {x.shape[1]} features, first layer expects {params.weights[0].shape[1]}"
        )

    pre_activations = []
    activations = [x]
    last_idx = len(params.weights) - 1
    for idx, (W, b) in enumerate(zip(params.weights, params.biases)):
        z = x @ W.T + b
        x = softmax(z) if idx == last_idx else act(z)
        if keep_cache:
            pre_activations.append(z)
            activations.append(x)

    if not keep_cache:
        return x, None
    return x, ForwardCache(pre_activations=pre_activations, activations=activations)


__all__ = ["forward"]
