"""Core typing contracts for nnclassifier."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np

from .errors import ShapeMismatchError

Array = np.ndarray


@dataclass(frozen=True)
class Topology:
    """Layer widths of the feed-forward network.

    ``layer_sizes`` lists the hidden layers only; the output layer is implicit
    and has ``num_classes`` units.
    """

    input_size: int
    layer_sizes: Tuple[int, ...]
    num_classes: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "layer_sizes", tuple(int(s) for s in self.layer_sizes))
        if not self.layer_sizes:
            raise ShapeMismatchError("Topology needs at least one hidden layer")
        dims = (self.input_size, *self.layer_sizes, self.num_classes)
        if any(int(d) <= 0 for d in dims):
            raise ShapeMismatchError(f"Layer widths must be positive, got {list(dims)}")

    @property
    def layer_dims(self) -> List[int]:
        return [int(self.input_size), *self.layer_sizes, int(self.num_classes)]

    @property
    def num_layers(self) -> int:
        """Number of weight layers, hidden plus output."""

        return len(self.layer_sizes) + 1

    def weight_shapes(self) -> List[Tuple[int, int]]:
        dims = self.layer_dims
        return [(out_dim, in_dim) for in_dim, out_dim in zip(dims[:-1], dims[1:])]

    def bias_shapes(self) -> List[Tuple[int]]:
        return [(out_dim,) for out_dim in self.layer_dims[1:]]

    @property
    def parameter_count(self) -> int:
        return int(sum(o * i + o for o, i in self.weight_shapes()))


@dataclass(frozen=True)
class ParameterSet:
    """Per-layer weight matrices and bias vectors, ordered input to output."""

    weights: Tuple[Array, ...]
    biases: Tuple[Array, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "weights", tuple(self.weights))
        object.__setattr__(self, "biases", tuple(self.biases))
        if len(self.weights) != len(self.biases):
            raise ShapeMismatchError(
                f"Got {len(self.weights)} weight matrices but {len(self.biases)} bias vectors"
            )

    def __len__(self) -> int:
        return len(self.weights)

    def check(self, topology: Topology) -> None:
        """Raise :class:`ShapeMismatchError` unless shapes match ``topology``."""

        if len(self.weights) != topology.num_layers:
            raise ShapeMismatchError(
                f"Expected {topology.num_layers} layers, got {len(self.weights)}"
            )
        for idx, (W, b, w_shape, b_shape) in enumerate(
            zip(self.weights, self.biases, topology.weight_shapes(), topology.bias_shapes())
        ):
            if W.shape != w_shape:
                raise ShapeMismatchError(f"Layer {idx} weights have shape {W.shape}, expected {w_shape}")
            if b.shape != b_shape:
                raise ShapeMismatchError(f"Layer {idx} biases have shape {b.shape}, expected {b_shape}")


@dataclass
class ForwardCache:
    """Intermediates captured during a training forward pass.

    ``activations[0]`` is the input batch, so ``activations[i]`` feeds layer
    ``i`` and ``pre_activations[i]`` is that layer's output before the
    non-linearity.
    """

    pre_activations: List[Array]
    activations: List[Array]


@dataclass(frozen=True)
class ConvergenceInfo:
    """How the optimiser finished."""

    solver: str
    iterations: int
    loss: float
    gradient_norm: float
    converged: bool
    message: str


@dataclass
class TrainingHistory:
    """Per-iteration optimiser records."""

    records: List[Dict[str, float]] = field(default_factory=list)

    def append(self, record: Dict[str, float]) -> None:
        self.records.append(dict(record))

    def __len__(self) -> int:
        return len(self.records)

    def column(self, name: str) -> Array:
        return np.asarray([r[name] for r in self.records], dtype=np.float64)

    @property
    def loss(self) -> Array:
        return self.column("loss")
