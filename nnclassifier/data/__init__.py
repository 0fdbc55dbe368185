"""Input validation, label mapping and CSV helpers."""

from .preprocessing import ClassLabels, TrainingData, check_inference_input, prepare_training_data
from .tables import load_feature_csv, load_labelled_csv, write_predictions

__all__ = [
    "ClassLabels",
    "TrainingData",
    "check_inference_input",
    "load_feature_csv",
    "load_labelled_csv",
    "prepare_training_data",
    "write_predictions",
]
