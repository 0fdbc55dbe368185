"""Minimisers that drive training through the flat parameter vector."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol, Tuple

import numpy as np
from scipy import optimize

from ..core.errors import ConfigurationError
from ..core.types import Array

Objective = Callable[[Array], Tuple[float, Array]]
IterationCallback = Callable[[Dict[str, float]], None]


@dataclass(frozen=True)
class StoppingConfig:
    """Stopping controls shared by every minimiser."""

    iteration_limit: int = 1000
    gradient_tolerance: float = 1e-6
    loss_tolerance: float = 1e-6
    step_tolerance: float = 1e-6


@dataclass(frozen=True)
class OptimizeOutcome:
    """Result handed back to the training driver."""

    x: Array
    loss: float
    iterations: int
    gradient_norm: float
    converged: bool
    message: str


class Minimizer(Protocol):
    """Protocol implemented by unconstrained minimisers."""

    name: str

    def minimize(
        self,
        objective: Objective,
        x0: Array,
        stopping: StoppingConfig,
        callback: Optional[IterationCallback] = None,
    ) -> OptimizeOutcome:
        """Minimise ``objective`` starting from ``x0``."""


def _gradient_norm(grad: Array) -> float:
    return float(np.max(np.abs(grad))) if grad.size else 0.0


def _step_small(step_norm: float, x: Array, tolerance: float) -> bool:
    return step_norm <= tolerance * (1.0 + float(np.linalg.norm(x)))


class _TrackedObjective:
    """Remember the most recent evaluation so callbacks need not recompute it."""

    def __init__(self, objective: Objective) -> None:
        self._objective = objective
        self.evaluations = 0
        self.last_x: Array | None = None
        self.last_loss = float("nan")
        self.last_grad: Array | None = None

    def __call__(self, x: Array) -> Tuple[float, Array]:
        loss, grad = self._objective(x)
        self.evaluations += 1
        self.last_x = np.array(x, dtype=np.float64, copy=True)
        self.last_loss = float(loss)
        self.last_grad = np.asarray(grad, dtype=np.float64)
        return self.last_loss, self.last_grad

    def at(self, x: Array) -> Tuple[float, Array]:
        if self.last_x is not None and np.array_equal(self.last_x, x):
            assert self.last_grad is not None
            return self.last_loss, self.last_grad
        return self(x)


@dataclass
class LBFGSMinimizer:
    """Limited-memory BFGS from :func:`scipy.optimize.minimize`.

    The iteration limit, gradient tolerance and loss tolerance map onto the
    ``maxiter``, ``gtol`` and ``ftol`` options of L-BFGS-B. The step tolerance
    is checked after every iteration and halts the solver from the callback.
    """

    max_corrections: int = 10
    name: str = "lbfgs"

    def minimize(
        self,
        objective: Objective,
        x0: Array,
        stopping: StoppingConfig,
        callback: Optional[IterationCallback] = None,
    ) -> OptimizeOutcome:
        tracked = _TrackedObjective(objective)
        state = {"previous": np.array(x0, dtype=np.float64, copy=True), "iteration": 0}
        step_converged = False

        def _on_iteration(intermediate_result: optimize.OptimizeResult) -> None:
            nonlocal step_converged
            x = np.asarray(intermediate_result.x, dtype=np.float64)
            loss, grad = tracked.at(x)
            step_norm = float(np.linalg.norm(x - state["previous"]))
            state["previous"] = x.copy()
            state["iteration"] += 1
            if callback is not None:
                callback(
                    {
                        "iteration": float(state["iteration"]),
                        "loss": float(loss),
                        "gradient_norm": _gradient_norm(grad),
                        "step_norm": step_norm,
                    }
                )
            if _step_small(step_norm, x, stopping.step_tolerance):
                step_converged = True
                raise StopIteration

        result = optimize.minimize(
            tracked,
            np.asarray(x0, dtype=np.float64),
            jac=True,
            method="L-BFGS-B",
            callback=_on_iteration,
            options={
                "maxiter": int(stopping.iteration_limit),
                "gtol": float(stopping.gradient_tolerance),
                "ftol": float(stopping.loss_tolerance),
                "maxcor": int(self.max_corrections),
            },
        )
        x = np.asarray(result.x, dtype=np.float64)
        loss, grad = tracked.at(x)
        message = "Step tolerance reached" if step_converged else str(result.message)
        return OptimizeOutcome(
            x=x,
            loss=float(loss),
            iterations=int(getattr(result, "nit", state["iteration"])),
            gradient_norm=_gradient_norm(grad),
            converged=bool(result.success) or step_converged,
            message=message,
        )


@dataclass
class GradientDescentMinimizer:
    """Full-batch gradient descent with step halving on a loss increase."""

    step_size: float = 0.1
    max_backtracks: int = 30
    name: str = "gradient_descent"

    def __post_init__(self) -> None:
        if not self.step_size > 0:
            raise ConfigurationError(f"step_size must be positive, got {self.step_size}")

    def minimize(
        self,
        objective: Objective,
        x0: Array,
        stopping: StoppingConfig,
        callback: Optional[IterationCallback] = None,
    ) -> OptimizeOutcome:
        x = np.array(x0, dtype=np.float64, copy=True)
        loss, grad = objective(x)
        step = float(self.step_size)
        iterations = 0
        converged = False
        message = "Iteration limit reached"

        while True:
            if _gradient_norm(grad) <= stopping.gradient_tolerance:
                converged, message = True, "Gradient tolerance reached"
                break
            if iterations >= stopping.iteration_limit:
                break

            for _ in range(self.max_backtracks + 1):
                candidate = x - step * grad
                cand_loss, cand_grad = objective(candidate)
                if np.isfinite(cand_loss) and cand_loss <= loss:
                    break
                step *= 0.5
            else:
                message = "No descent step found"
                break

            iterations += 1
            step_norm = float(np.linalg.norm(candidate - x))
            loss_change = loss - cand_loss
            scale = max(abs(loss), abs(cand_loss), 1.0)
            x, loss, grad = candidate, float(cand_loss), cand_grad
            if callback is not None:
                callback(
                    {
                        "iteration": float(iterations),
                        "loss": loss,
                        "gradient_norm": _gradient_norm(grad),
                        "step_norm": step_norm,
                    }
                )
            if loss_change <= stopping.loss_tolerance * scale:
                converged, message = True, "Loss tolerance reached"
                break
            if _step_small(step_norm, x, stopping.step_tolerance):
                converged, message = True, "Step tolerance reached"
                break

        return OptimizeOutcome(
            x=x,
            loss=float(loss),
            iterations=iterations,
            gradient_norm=_gradient_norm(grad),
            converged=converged,
            message=message,
        )


def build_minimizer(solver: str, *, initial_step_size: float | None = None) -> Minimizer:
    name = str(solver).lower()
    if name == "lbfgs":
        return LBFGSMinimizer()
    if name == "gradient_descent":
        if initial_step_size is None:
            return GradientDescentMinimizer()
        return GradientDescentMinimizer(step_size=float(initial_step_size))
    raise ConfigurationError(f"Unknown solver: {solver!r}")


__all__ = [
    "GradientDescentMinimizer",
    "IterationCallback",
    "LBFGSMinimizer",
    "Minimizer",
    "Objective",
    "OptimizeOutcome",
    "StoppingConfig",
    "build_minimizer",
]
