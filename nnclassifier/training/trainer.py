"""Training driver: initialise, optimise through the flat vector, unflatten."""

from __future__ import annotations

import logging
import warnings
from typing import Dict, Mapping, Sequence

import numpy as np

from ..core.activations import get_activation
from ..core.codec import flatten, unflatten
from ..core.errors import OptimizerFailedError, OptimizerNonConvergence
from ..core.initializers import initialize_parameters
from ..core.types import Array, ConvergenceInfo, ParameterSet, Topology, TrainingHistory
from .losses import make_objective
from .optimizers import LBFGSMinimizer, Minimizer, StoppingConfig

logger = logging.getLogger(__name__)

INITIALIZED = "initialized"
OPTIMIZING = "optimizing"
FITTED = "fitted"
FAILED = "failed"


class Trainer:
    """Fit the parameters of one network topology.

    A trainer runs once: ``initialized`` moves to ``optimizing`` and ends in
    ``fitted`` or ``failed``.
    """

    def __init__(
        self,
        topology: Topology,
        *,
        activation: str = "relu",
        weight_init: str = "glorot",
        bias_init: str = "zeros",
        minimizer: Minimizer | None = None,
        stopping: StoppingConfig | None = None,
        strict_convergence: bool = False,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        self.topology = topology
        self.activation = get_activation(activation)
        self.weight_init = weight_init
        self.bias_init = bias_init
        self.minimizer = minimizer or LBFGSMinimizer()
        self.stopping = stopping or StoppingConfig()
        self.strict_convergence = strict_convergence
        self.callbacks = list(callbacks or [])
        self.state = INITIALIZED
        self.history = TrainingHistory()
        self.params: ParameterSet | None = None
        self.convergence: ConvergenceInfo | None = None

    @property
    def solver(self) -> str:
        return str(getattr(self.minimizer, "name", type(self.minimizer).__name__))

    def run(self, inputs: Array, targets: Array, rng: np.random.Generator) -> ParameterSet:
        if self.state != INITIALIZED:
            raise RuntimeError(f"Trainer already ran (state: {self.state})")

        initial = initialize_parameters(self.topology, self.weight_init, self.bias_init, rng)
        objective = make_objective(inputs, targets, self.topology, self.activation)
        x0 = flatten(initial, self.topology)

        self.state = OPTIMIZING
        self._log_startup_summary(rows=int(np.shape(inputs)[0]))
        try:
            outcome = self.minimizer.minimize(
                objective, x0, self.stopping, callback=self._on_iteration
            )
        except Exception:
            self.state = FAILED
            raise

        self.convergence = ConvergenceInfo(
            solver=self.solver,
            iterations=int(outcome.iterations),
            loss=float(outcome.loss),
            gradient_norm=float(outcome.gradient_norm),
            converged=bool(outcome.converged),
            message=outcome.message,
        )
        if not np.isfinite(outcome.loss) or not np.all(np.isfinite(outcome.x)):
            self.state = FAILED
            raise OptimizerFailedError(f"Optimizer returned a non-finite solution: {outcome.message}")
        if not outcome.converged:
            if self.strict_convergence:
                self.state = FAILED
                raise OptimizerFailedError(
                    f"Optimizer stopped after {outcome.iterations} iterations without "
                    f"converging: {outcome.message}"
                )
            warnings.warn(
                f"Optimizer did not converge after {outcome.iterations} iterations "
                f"(loss {outcome.loss:.6g}): {outcome.message}. Keeping the best parameters found.",
                OptimizerNonConvergence,
                stacklevel=2,
            )

        self.params = unflatten(outcome.x, self.topology)
        self.state = FITTED
        logger.info(
            "Training finished: %d iterations, loss %.6g, converged=%s (%s)",
            outcome.iterations,
            outcome.loss,
            outcome.converged,
            outcome.message,
        )
        return self.params

    # ------------------------------------------------------------------
    # Internal helpers

    def _on_iteration(self, record: Mapping[str, float]) -> None:
        payload: Dict[str, float] = {k: float(v) for k, v in record.items()}
        self.history.append(payload)
        step = int(payload.get("iteration", len(self.history)))
        logger.debug(
            "iter %d: loss %.6g, |grad| %.3g, |step| %.3g",
            step,
            payload.get("loss", float("nan")),
            payload.get("gradient_norm", float("nan")),
            payload.get("step_norm", float("nan")),
        )
        for callback in self.callbacks:
            if hasattr(callback, "on_step"):
                callback.on_step(step, payload)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(step, payload)

    def _log_startup_summary(self, *, rows: int) -> None:
        logger.info(
            "Training network: dims=%s activation=%s output=softmax init=%s/%s "
            "solver=%s parameters=%d rows=%d",
            self.topology.layer_dims,
            self.activation.name,
            self.weight_init,
            self.bias_init,
            self.solver,
            self.topology.parameter_count,
            rows,
        )


__all__ = ["FAILED", "FITTED", "INITIALIZED", "OPTIMIZING", "Trainer"]
