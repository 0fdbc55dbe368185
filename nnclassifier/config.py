"""Training configuration: one validated record built before any numeric work."""

from __future__ import annotations

import json
import numbers
from copy import deepcopy
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import yaml

from .core.activations import ACTIVATIONS
from .core.errors import ConfigurationError
from .core.initializers import BIAS_INITIALIZERS, WEIGHT_INITIALIZERS
from .training.optimizers import StoppingConfig

SOLVERS = ("lbfgs", "gradient_descent")
PRIOR_KEYWORDS = ("empirical", "uniform")

_ALIASES = {
    "layersizes": "layer_sizes",
    "activations": "activation",
    "activation": "activation",
    "layerweightsinitializer": "weight_init",
    "weightinit": "weight_init",
    "layerbiasesinitializer": "bias_init",
    "biasinit": "bias_init",
    "iterationlimit": "iteration_limit",
    "gradienttolerance": "gradient_tolerance",
    "losstolerance": "loss_tolerance",
    "steptolerance": "step_tolerance",
    "solver": "solver",
    "initialstepsize": "initial_step_size",
    "standardize": "standardize",
    "predictornames": "predictor_names",
    "responsename": "response_name",
    "classnames": "class_names",
    "prior": "prior",
    "cost": "cost",
    "seed": "seed",
    "strictconvergence": "strict_convergence",
}


def _is_int(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, (bool, np.bool_))


def _is_real(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, (bool, np.bool_))


def _scalar(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value


@dataclass(frozen=True)
class TrainingConfig:
    """Options for :func:`nnclassifier.fit`.

    Every check runs in ``__post_init__``; checks that need the training data
    (predictor name count, class names, prior length, cost size) run in
    :func:`nnclassifier.data.preprocessing.prepare_training_data`.
    """

    layer_sizes: Tuple[int, ...] = (10,)
    activation: str = "relu"
    weight_init: str = "glorot"
    bias_init: str = "zeros"
    iteration_limit: int = 1000
    gradient_tolerance: float = 1e-6
    loss_tolerance: float = 1e-6
    step_tolerance: float = 1e-6
    solver: str = "lbfgs"
    initial_step_size: Optional[float] = None
    standardize: bool = False
    predictor_names: Optional[Tuple[str, ...]] = None
    response_name: str = "Y"
    class_names: Optional[Tuple[Any, ...]] = None
    prior: Union[str, Tuple[float, ...]] = "empirical"
    cost: Optional[Tuple[Tuple[float, ...], ...]] = None
    seed: Optional[int] = None
    strict_convergence: bool = False

    def __post_init__(self) -> None:
        self._set("layer_sizes", self._check_layer_sizes(self.layer_sizes))
        self._set("activation", self._check_choice("activation", self.activation, ACTIVATIONS))
        self._set(
            "weight_init",
            self._check_choice("weight_init", self.weight_init, WEIGHT_INITIALIZERS),
        )
        self._set("bias_init", self._check_choice("bias_init", self.bias_init, BIAS_INITIALIZERS))
        self._set("solver", self._check_choice("solver", self.solver, SOLVERS))

        limit = _scalar(self.iteration_limit)
        if isinstance(limit, float) and limit.is_integer():
            limit = int(limit)
        if not _is_int(limit) or limit <= 0:
            raise ConfigurationError(
                f"iteration_limit must be a positive integer, got {self.iteration_limit!r}"
            )
        self._set("iteration_limit", int(limit))

        for name in ("gradient_tolerance", "loss_tolerance", "step_tolerance"):
            value = _scalar(getattr(self, name))
            if not _is_real(value) or not np.isfinite(value) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative scalar, got {value!r}")
            self._set(name, float(value))

        if self.initial_step_size is not None:
            step = _scalar(self.initial_step_size)
            if not _is_real(step) or not step > 0:
                raise ConfigurationError(
                    f"initial_step_size must be a positive scalar, got {self.initial_step_size!r}"
                )
            self._set("initial_step_size", float(step))

        for name in ("standardize", "strict_convergence"):
            value = _scalar(getattr(self, name))
            if not isinstance(value, bool):
                raise ConfigurationError(f"{name} must be either True or False, got {value!r}")

        if self.predictor_names is not None:
            names = self.predictor_names
            if isinstance(names, str) or not all(isinstance(n, str) for n in names):
                raise ConfigurationError("predictor_names must be a sequence of strings")
            self._set("predictor_names", tuple(names))

        if self.response_name is None:
            self._set("response_name", "Y")
        elif not isinstance(self.response_name, str):
            raise ConfigurationError(
                f"response_name must be a string, got {type(self.response_name).__name__}"
            )

        if self.class_names is not None:
            self._set("class_names", self._check_class_names(self.class_names))

        self._set("prior", self._check_prior(self.prior))
        if self.cost is not None:
            self._set("cost", self._check_cost(self.cost))

        if self.seed is not None:
            seed = _scalar(self.seed)
            if not _is_int(seed) or seed < 0:
                raise ConfigurationError(f"seed must be a non-negative integer, got {self.seed!r}")
            self._set("seed", int(seed))

    # ------------------------------------------------------------------
    # Validation helpers

    def _set(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, value)

    @staticmethod
    def _check_layer_sizes(value: Any) -> Tuple[int, ...]:
        sizes = [value] if np.isscalar(value) else list(np.asarray(value).reshape(-1))
        sizes = [_scalar(s) for s in sizes]
        cleaned = []
        for size in sizes:
            if isinstance(size, float) and size.is_integer():
                size = int(size)
            if not _is_int(size) or size <= 0:
                raise ConfigurationError(
                    f"layer_sizes must be a vector of positive integers, got {value!r}"
                )
            cleaned.append(int(size))
        if not cleaned:
            raise ConfigurationError("layer_sizes needs at least one hidden layer")
        return tuple(cleaned)

    @staticmethod
    def _check_choice(name: str, value: Any, choices: Sequence[str] | Mapping[str, Any]) -> str:
        if not isinstance(value, str):
            raise ConfigurationError(f"{name} must be a string, got {type(value).__name__}")
        key = value.lower()
        if key not in choices:
            available = ", ".join(sorted(choices))
            raise ConfigurationError(f"Unsupported {name} {value!r}. Available: {available}")
        return key

    @staticmethod
    def _check_class_names(value: Any) -> Tuple[Any, ...]:
        if isinstance(value, str) or callable(value):
            raise ConfigurationError(
                "class_names must be a sequence of strings, numbers or booleans"
            )
        items = [_scalar(v) for v in np.asarray(value, dtype=object).reshape(-1)]
        if not items or not all(isinstance(v, (str, bool, numbers.Real)) for v in items):
            raise ConfigurationError(
                "class_names must be a sequence of strings, numbers or booleans"
            )
        return tuple(items)

    @staticmethod
    def _check_prior(value: Any) -> Union[str, Tuple[float, ...]]:
        if isinstance(value, str):
            key = value.lower()
            if key not in PRIOR_KEYWORDS:
                raise ConfigurationError(
                    f"prior must be 'empirical', 'uniform' or a numeric vector, got {value!r}"
                )
            return key
        try:
            arr = np.asarray(value, dtype=np.float64).reshape(-1)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"prior must be 'empirical', 'uniform' or a numeric vector, got {value!r}"
            ) from exc
        if arr.size == 0 or not np.all(np.isfinite(arr)) or np.any(arr < 0) or arr.sum() <= 0:
            raise ConfigurationError("prior vector must hold non-negative values with a positive sum")
        return tuple(float(v) for v in arr)

    @staticmethod
    def _check_cost(value: Any) -> Tuple[Tuple[float, ...], ...]:
        if isinstance(value, str):
            raise ConfigurationError("cost must be a numeric square matrix")
        try:
            arr = np.asarray(value, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("cost must be a numeric square matrix") from exc
        if arr.ndim != 2 or arr.shape[0] != arr.shape[1] or not np.all(np.isfinite(arr)):
            raise ConfigurationError("cost must be a numeric square matrix")
        return tuple(tuple(float(v) for v in row) for row in arr)

    # ------------------------------------------------------------------
    # Derived views

    @property
    def output_activation(self) -> str:
        return "softmax"

    @property
    def stopping(self) -> StoppingConfig:
        return StoppingConfig(
            iteration_limit=self.iteration_limit,
            gradient_tolerance=self.gradient_tolerance,
            loss_tolerance=self.loss_tolerance,
            step_tolerance=self.step_tolerance,
        )

    def replace(self, **changes: Any) -> "TrainingConfig":
        return replace(self, **_canonical_keys(changes))

    def to_dict(self) -> Dict[str, Any]:
        return json.loads(json.dumps(asdict(self)))

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "TrainingConfig":
        return cls(**_canonical_keys(options))


def _canonical_keys(options: Mapping[str, Any]) -> Dict[str, Any]:
    """Map option names onto field names, ignoring case, ``_`` and ``-``."""

    known = {f.name for f in fields(TrainingConfig)}
    resolved: Dict[str, Any] = {}
    for key, value in options.items():
        if not isinstance(key, str):
            raise ConfigurationError(f"Option names must be strings, got {key!r}")
        normalized = key.replace("_", "").replace("-", "").lower()
        name = _ALIASES.get(normalized)
        if name is None or name not in known:
            raise ConfigurationError(f"Invalid option name: {key!r}")
        if name in resolved:
            raise ConfigurationError(f"Option {key!r} given more than once")
        resolved[name] = value
    return resolved


def _read_config_file(path: Path) -> Mapping[str, Any]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ConfigurationError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Config {path.name} must decode to a mapping")
    return data


def load_config(path: str | Path, **overrides: Any) -> TrainingConfig:
    """Read a YAML or JSON config file; ``overrides`` win over file values."""

    data = dict(_canonical_keys(_read_config_file(Path(path))))
    data.update(_canonical_keys(overrides))
    return TrainingConfig(**data)


_PRESETS: Dict[str, Mapping[str, Any]] = {
    "default": {},
    "standardized-relu": {"layer_sizes": [10], "activation": "relu", "standardize": True},
    "deep-tanh": {
        "layer_sizes": [16, 8],
        "activation": "tanh",
        "weight_init": "glorot",
        "standardize": True,
    },
    "he-relu": {"layer_sizes": [32, 16], "activation": "relu", "weight_init": "he"},
    "sigmoid-small": {"layer_sizes": [5], "activation": "sigmoid", "iteration_limit": 500},
    "gradient-descent": {
        "layer_sizes": [10],
        "activation": "tanh",
        "solver": "gradient_descent",
        "initial_step_size": 0.5,
        "iteration_limit": 2000,
        "standardize": True,
    },
}


def presets() -> Mapping[str, Mapping[str, Any]]:
    return {name: deepcopy(cfg) for name, cfg in _PRESETS.items()}


def load_preset(name: str, **overrides: Any) -> TrainingConfig:
    try:
        base = deepcopy(_PRESETS[name])
    except KeyError as exc:
        raise ConfigurationError(f"Unknown preset: {name}") from exc
    data = _canonical_keys(base)
    data.update(_canonical_keys(overrides))
    return TrainingConfig(**data)


__all__ = ["TrainingConfig", "load_config", "load_preset", "presets"]
