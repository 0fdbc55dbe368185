"""Core numerical primitives for nnclassifier."""

from . import activations, codec, errors, initializers, network, types

__all__ = ["activations", "codec", "errors", "initializers", "network", "types"]
