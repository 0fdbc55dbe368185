"""Run artifact helpers."""

from __future__ import annotations

import json
import platform
import subprocess
import time
from pathlib import Path
from typing import Mapping

import numpy as np


def git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except (OSError, subprocess.CalledProcessError):  # pragma: no cover - git may be unavailable
        return "unknown"


def _to_builtin(value):
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    return str(value)


def describe_model(model) -> Mapping[str, object]:
    """JSON-ready description of a fitted model (no parameter values)."""

    info = model.convergence
    return {
        "class_names": model.classes.tolist(),
        "predictor_names": list(model.predictor_names),
        "response_name": model.response_name,
        "layer_sizes": list(model.layer_sizes),
        "activation": model.activation,
        "output_activation": model.output_activation,
        "standardize": model.standardize,
        "num_observations": model.num_observations,
        "parameter_count": model.topology.parameter_count,
        "prior": model.prior,
        "solver": model.solver,
        "convergence": {
            "iterations": info.iterations,
            "loss": info.loss,
            "gradient_norm": info.gradient_norm,
            "converged": info.converged,
            "message": info.message,
        },
    }


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset_provenance: Mapping[str, object],
    model: Mapping[str, object] | None = None,
) -> str:
    """Write a manifest JSON file capturing reproducibility metadata."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "git_sha": git_sha(),
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": config,
        "dataset": dict(dataset_provenance),
        "model": dict(model or {}),
        "environment": {
            "python": platform.python_version(),
            "numpy": np.__version__,
        },
    }
    path.write_text(json.dumps(manifest, indent=2, default=_to_builtin))
    return str(path)


__all__ = ["describe_model", "git_sha", "write_manifest"]
