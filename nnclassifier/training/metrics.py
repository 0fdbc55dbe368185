"""Classification metrics over predicted probabilities and class indices."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

import numpy as np

from ..core.types import Array
from .losses import cross_entropy


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def default_metrics(num_classes: int | None = None) -> List[str]:
    metrics = ["loss", "accuracy"]
    if num_classes and num_classes <= 20:
        metrics.append("macro_f1")
    return metrics


def _macro_f1(pred_idx: Array, targ_idx: Array, num_classes: int) -> float:
    f1_scores = []
    for cls in range(num_classes):
        tp = np.sum((pred_idx == cls) & (targ_idx == cls))
        fp = np.sum((pred_idx == cls) & (targ_idx != cls))
        fn = np.sum((pred_idx != cls) & (targ_idx == cls))
        precision = tp / (tp + fp + 1e-9)
        recall = tp / (tp + fn + 1e-9)
        f1_scores.append(2 * precision * recall / (precision + recall + 1e-9))
    return float(np.mean(f1_scores))


def compute_metric(name: str, probabilities: Array, targets: Array) -> MetricResult:
    """Evaluate ``name`` for ``(M, K)`` probabilities against class indices."""

    key = name.lower()
    num_classes = probabilities.shape[1]
    targ_idx = np.asarray(targets).reshape(-1).astype(int)
    pred_idx = np.argmax(probabilities, axis=1)
    if key == "loss":
        value = cross_entropy(probabilities, targ_idx)
    elif key == "accuracy":
        value = float(np.mean(pred_idx == targ_idx))
    elif key in {"error", "misclassification"}:
        value = float(np.mean(pred_idx != targ_idx))
    elif key == "macro_f1":
        value = _macro_f1(pred_idx, targ_idx, num_classes)
    else:
        raise KeyError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=value)


def compute_metrics(
    names: Iterable[str], probabilities: Array, targets: Array
) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, probabilities, targets)
        results[metric.name] = metric.value
    return results


__all__ = ["MetricResult", "compute_metric", "compute_metrics", "default_metrics"]
