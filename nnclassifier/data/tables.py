"""CSV tables of predictors and class labels."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Tuple

import numpy as np
import pandas as pd

from ..core.types import Array


@dataclass(frozen=True)
class LabelledTable:
    inputs: Array
    labels: Array
    predictor_names: Tuple[str, ...]
    response_name: str


def load_labelled_csv(
    path: str | Path, target_col: str, *, feature_cols: Sequence[str] | None = None
) -> LabelledTable:
    """Read predictors and the ``target_col`` labels from a CSV file."""

    df = pd.read_csv(path)
    if target_col not in df.columns:
        raise KeyError(f"Target column {target_col!r} not found in CSV")
    labels = df.pop(target_col).to_numpy()
    if feature_cols is not None:
        df = df[list(feature_cols)]
    return LabelledTable(
        inputs=df.to_numpy(dtype=np.float64),
        labels=labels,
        predictor_names=tuple(str(c) for c in df.columns),
        response_name=str(target_col),
    )


def load_feature_csv(
    path: str | Path, feature_cols: Sequence[str] | None = None
) -> Tuple[pd.DataFrame, Array]:
    """Read a predictor table; return the frame and its feature matrix."""

    df = pd.read_csv(path)
    features = df if feature_cols is None else df[list(feature_cols)]
    return df, features.to_numpy(dtype=np.float64)


def write_predictions(
    path: str | Path,
    labels: Array,
    probabilities: Array,
    class_names: Sequence[object],
    *,
    response_name: str = "Y",
) -> str:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = pd.DataFrame({response_name: labels})
    for idx, name in enumerate(class_names):
        frame[f"p_{name}"] = probabilities[:, idx]
    frame.to_csv(path, index=False)
    return str(path)


__all__ = ["LabelledTable", "load_feature_csv", "load_labelled_csv", "write_predictions"]
