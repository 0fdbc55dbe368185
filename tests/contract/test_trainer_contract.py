import warnings

import numpy as np
import pytest
from sklearn.datasets import make_blobs

from nnclassifier import fit
from nnclassifier.core.codec import flatten
from nnclassifier.core.errors import OptimizerFailedError, OptimizerNonConvergence
from nnclassifier.core.types import Topology
from nnclassifier.training.optimizers import OptimizeOutcome, StoppingConfig
from nnclassifier.training.trainer import FAILED, FITTED, INITIALIZED, Trainer


def _two_clusters(seed=0, n=20):
    rng = np.random.default_rng(seed)
    a = rng.normal(loc=0.0, scale=0.5, size=(n, 2))
    b = rng.normal(loc=5.0, scale=0.5, size=(n, 2))
    X = np.vstack([a, b])
    y = np.array([0] * n + [1] * n)
    return X, y


def test_fit_separates_two_clusters():
    X, y = _two_clusters()
    model = fit(X, y, layer_sizes=[4], seed=0)
    accuracy = np.mean(model.predict(X) == y)
    assert accuracy >= 0.95
    assert model.convergence.loss < 0.1
    assert model.class_names.tolist() == [0, 1]
    assert model.num_observations == 40


def test_fit_multiclass_blobs():
    X, y = make_blobs(n_samples=150, centers=3, cluster_std=0.6, random_state=2)
    model = fit(X, y, layer_sizes=[8], activation="tanh", standardize=True, seed=1)
    assert np.mean(model.predict(X) == y) >= 0.95
    assert model.predict_proba(X).shape == (150, 3)


def test_fit_is_deterministic_for_a_seed():
    X, y = _two_clusters()
    first = fit(X, y, layer_sizes=[3], seed=42)
    second = fit(X, y, layer_sizes=[3], seed=42)
    assert np.array_equal(flatten(first.parameters), flatten(second.parameters))
    assert first.convergence == second.convergence


def test_loss_history_mostly_decreases():
    X, y = _two_clusters()
    model = fit(X, y, layer_sizes=[5], seed=3)
    losses = model.history.loss
    assert len(model.history) == model.convergence.iterations
    assert losses[-1] <= losses[0]


def test_iteration_limit_warns_and_keeps_parameters():
    X, y = _two_clusters()
    with pytest.warns(OptimizerNonConvergence):
        model = fit(X, y, layer_sizes=[5], iteration_limit=1, seed=0)
    assert not model.convergence.converged
    assert model.convergence.iterations <= 1
    assert model.predict(X).shape == (40,)


def test_strict_convergence_raises():
    X, y = _two_clusters()
    with pytest.raises(OptimizerFailedError):
        fit(X, y, layer_sizes=[5], iteration_limit=1, strict_convergence=True, seed=0)


def test_gradient_descent_solver():
    X, y = _two_clusters()
    model = fit(
        X,
        y,
        layer_sizes=[4],
        solver="gradient_descent",
        initial_step_size=0.5,
        iteration_limit=2000,
        standardize=True,
        seed=0,
    )
    assert model.solver == "gradient_descent"
    assert np.mean(model.predict(X) == y) >= 0.95


def test_callbacks_receive_each_iteration():
    X, y = _two_clusters()
    seen = []

    class Recorder:
        def on_step(self, step, metrics):
            seen.append((step, metrics["loss"]))

    model = fit(X, y, layer_sizes=[3], seed=0, callbacks=[Recorder()])
    assert [s for s, _ in seen] == list(range(1, len(seen) + 1))
    assert len(seen) == len(model.history)


class _FixedMinimizer:
    """Returns the starting point unchanged."""

    name = "fixed"

    def __init__(self, converged=True, poison=False):
        self.converged = converged
        self.poison = poison
        self.calls = 0

    def minimize(self, objective, x0, stopping, callback=None):
        self.calls += 1
        loss, grad = objective(x0)
        x = x0.copy()
        if self.poison:
            x[0] = np.nan
        if callback is not None:
            callback({"iteration": 1.0, "loss": loss, "gradient_norm": 0.0, "step_norm": 0.0})
        return OptimizeOutcome(
            x=x,
            loss=loss,
            iterations=1,
            gradient_norm=float(np.max(np.abs(grad))),
            converged=self.converged,
            message="fixed",
        )


def test_trainer_state_machine_with_injected_minimizer():
    X, y = _two_clusters()
    topo = Topology(input_size=2, layer_sizes=(3,), num_classes=2)
    minimizer = _FixedMinimizer()
    trainer = Trainer(topo, minimizer=minimizer, stopping=StoppingConfig(iteration_limit=5))
    assert trainer.state == INITIALIZED
    params = trainer.run(X, y, np.random.default_rng(0))
    assert trainer.state == FITTED
    assert minimizer.calls == 1
    assert trainer.solver == "fixed"
    assert len(trainer.history) == 1
    params.check(topo)
    with pytest.raises(RuntimeError):
        trainer.run(X, y, np.random.default_rng(0))


def test_trainer_fails_on_non_finite_solution():
    X, y = _two_clusters()
    topo = Topology(input_size=2, layer_sizes=(3,), num_classes=2)
    trainer = Trainer(topo, minimizer=_FixedMinimizer(poison=True))
    with pytest.raises(OptimizerFailedError):
        trainer.run(X, y, np.random.default_rng(0))
    assert trainer.state == FAILED


def test_trainer_fails_when_minimizer_raises():
    class Broken:
        name = "broken"

        def minimize(self, objective, x0, stopping, callback=None):
            raise FloatingPointError("overflow")

    X, y = _two_clusters()
    topo = Topology(input_size=2, layer_sizes=(3,), num_classes=2)
    trainer = Trainer(topo, minimizer=Broken())
    with pytest.raises(FloatingPointError):
        trainer.run(X, y, np.random.default_rng(0))
    assert trainer.state == FAILED


def test_single_class_training_converges_immediately():
    X = np.random.default_rng(0).normal(size=(10, 2))
    y = np.zeros(10)
    with warnings.catch_warnings():
        warnings.simplefilter("error", OptimizerNonConvergence)
        model = fit(X, y, seed=0)
    assert model.predict(X).tolist() == [0.0] * 10
    assert np.allclose(model.predict_proba(X), 1.0)
