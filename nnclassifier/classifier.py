"""Public entry points: fit a classifier and predict with it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np

from .config import TrainingConfig
from .core.errors import ConfigurationError, ShapeMismatchError
from .core.network import forward
from .core.types import Array, ConvergenceInfo, ParameterSet, Topology, TrainingHistory
from .data.preprocessing import ClassLabels, check_inference_input, prepare_training_data
from .training.metrics import compute_metrics, default_metrics
from .training.optimizers import Minimizer, build_minimizer
from .training.trainer import Trainer

DECISIONS = ("argmax", "cost")


@dataclass(frozen=True)
class FittedModel:
    """Everything needed to predict with a trained network."""

    classes: ClassLabels
    topology: Topology
    parameters: ParameterSet
    activation: str
    output_activation: str
    standardize: bool
    mu: Optional[Array]
    sigma: Optional[Array]
    prior: Array
    cost: Array
    predictor_names: Tuple[str, ...]
    response_name: str
    num_observations: int
    rows_used: Array
    solver: str
    convergence: ConvergenceInfo
    history: TrainingHistory
    class_frequencies: Array

    @property
    def class_names(self) -> Array:
        return self.classes.values

    @property
    def num_predictors(self) -> int:
        return self.topology.input_size

    @property
    def layer_sizes(self) -> Tuple[int, ...]:
        return self.topology.layer_sizes

    @property
    def layer_weights(self) -> Tuple[Array, ...]:
        return self.parameters.weights

    @property
    def layer_biases(self) -> Tuple[Array, ...]:
        return self.parameters.biases

    def predict(self, X: Any, *, decision: str = "argmax") -> Array:
        return predict(self, X, decision=decision)

    def predict_proba(self, X: Any) -> Array:
        return predict_proba(self, X)


def fit(
    X: Any,
    Y: Any,
    config: TrainingConfig | Mapping[str, Any] | None = None,
    *,
    rng: np.random.Generator | None = None,
    minimizer: Minimizer | None = None,
    callbacks: Sequence[object] = (),
    **options: Any,
) -> FittedModel:
    """Train a feed-forward classifier on rows of ``X`` labelled by ``Y``.

    ``config`` may be a :class:`TrainingConfig` or a mapping of options; any
    keyword ``options`` are applied on top. Random initialisation draws from
    ``rng`` when given, else from a generator seeded with ``config.seed``.
    """

    if config is None:
        config = TrainingConfig.from_mapping(options)
    elif isinstance(config, Mapping):
        config = TrainingConfig.from_mapping({**config, **options})
    elif options:
        config = config.replace(**options)

    data = prepare_training_data(X, Y, config)
    topology = Topology(
        input_size=data.num_predictors,
        layer_sizes=config.layer_sizes,
        num_classes=len(data.classes),
    )
    if minimizer is None:
        minimizer = build_minimizer(config.solver, initial_step_size=config.initial_step_size)
    if rng is None:
        rng = np.random.default_rng(config.seed)

    trainer = Trainer(
        topology,
        activation=config.activation,
        weight_init=config.weight_init,
        bias_init=config.bias_init,
        minimizer=minimizer,
        stopping=config.stopping,
        strict_convergence=config.strict_convergence,
        callbacks=callbacks,
    )
    params = trainer.run(data.inputs, data.targets, rng)
    assert trainer.convergence is not None

    counts = np.bincount(data.targets, minlength=len(data.classes)).astype(np.float64)
    return FittedModel(
        classes=data.classes,
        topology=topology,
        parameters=params,
        activation=config.activation,
        output_activation=config.output_activation,
        standardize=config.standardize,
        mu=data.mu,
        sigma=data.sigma,
        prior=data.prior,
        cost=data.cost,
        predictor_names=data.predictor_names,
        response_name=data.response_name,
        num_observations=data.num_observations,
        rows_used=data.rows_used,
        solver=trainer.solver,
        convergence=trainer.convergence,
        history=trainer.history,
        class_frequencies=counts / counts.sum(),
    )


def predict_proba(model: FittedModel, X: Any) -> Array:
    """Return ``(M, K)`` class probabilities in ``model.class_names`` order."""

    inputs = check_inference_input(X, model.topology.input_size)
    if model.standardize:
        inputs = (inputs - model.mu) / model.sigma
    probs, _ = forward(inputs, model.parameters, model.activation, keep_cache=False)
    return probs


def predict(model: FittedModel, X: Any, *, decision: str = "argmax") -> Array:
    """Predict class labels for the rows of ``X``.

    ``decision="argmax"`` picks the most probable class. ``decision="cost"``
    rescales the probabilities from the training class frequencies to
    ``model.prior`` and picks the class with the lowest expected
    misclassification cost under ``model.cost``.
    """

    if decision not in DECISIONS:
        raise ConfigurationError(f"decision must be one of {DECISIONS}, got {decision!r}")
    probs = predict_proba(model, X)
    if decision == "argmax":
        indices = np.argmax(probs, axis=1)
    else:
        indices = np.argmin(expected_cost(model, probs), axis=1)
    return model.classes.decode(indices)


def expected_cost(model: FittedModel, probabilities: Array) -> Array:
    """Expected cost of predicting each class, ``(M, K)``.

    ``cost[i, j]`` is the cost of predicting class ``j`` when the true class is
    ``i``.
    """

    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.where(model.class_frequencies > 0, model.prior / model.class_frequencies, 0.0)
    adjusted = probabilities * ratio
    totals = adjusted.sum(axis=1, keepdims=True)
    adjusted = np.divide(adjusted, totals, out=np.zeros_like(adjusted), where=totals > 0)
    return adjusted @ model.cost


def evaluate(
    model: FittedModel, X: Any, Y: Any, metrics: Iterable[str] | None = None
) -> Mapping[str, float]:
    """Score ``model`` on labelled rows; labels must be known classes.

    Without ``metrics``, loss and accuracy are reported, plus macro-F1 for up
    to 20 classes.
    """

    probs = predict_proba(model, X)
    targets = model.classes.encode(Y)
    if targets.shape[0] != probs.shape[0]:
        raise ShapeMismatchError(f"X has {probs.shape[0]} rows but Y has {targets.shape[0]}")
    if metrics is None:
        metrics = default_metrics(len(model.classes))
    return compute_metrics(metrics, probs, targets)


__all__ = ["FittedModel", "evaluate", "expected_cost", "fit", "predict", "predict_proba"]
