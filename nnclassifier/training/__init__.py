"""Loss, optimisation and training-loop components."""

from . import losses, metrics, optimizers

__all__ = ["losses", "metrics", "optimizers"]
