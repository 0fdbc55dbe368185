import numpy as np
import pandas as pd
import pytest

from nnclassifier.config import TrainingConfig
from nnclassifier.core.errors import (
    ConfigurationError,
    DimensionMismatchError,
    EmptyInputError,
    InvalidInputError,
    ShapeMismatchError,
)
from nnclassifier.data.preprocessing import (
    ClassLabels,
    check_inference_input,
    prepare_training_data,
    resolve_cost,
    resolve_prior,
    standardization,
)


def test_numeric_labels_sort_and_strings_keep_first_appearance():
    assert ClassLabels.from_labels(np.array([3, 1, 2, 1])).tolist() == [1, 2, 3]
    assert ClassLabels.from_labels(np.array(["dog", "cat", "dog"])).tolist() == ["dog", "cat"]
    assert ClassLabels.from_labels(np.array([True, False])).tolist() == [False, True]


def test_label_encode_decode():
    classes = ClassLabels.from_labels(np.array(["b", "a", "b"]))
    idx = classes.encode(["a", "b"])
    assert idx.tolist() == [1, 0]
    assert classes.decode(idx).tolist() == ["a", "b"]
    with pytest.raises(ConfigurationError):
        classes.encode(["c"])


def test_prepare_drops_missing_rows():
    X = np.array([[0.0, 1.0], [np.nan, 1.0], [2.0, 3.0], [4.0, 5.0]])
    Y = np.array([0.0, 1.0, np.nan, 1.0])
    data = prepare_training_data(X, Y, TrainingConfig())
    assert data.rows_used.tolist() == [True, False, False, True]
    assert data.num_observations == 2
    assert data.targets.tolist() == [0, 1]
    assert data.predictor_names == ("x1", "x2")
    assert data.response_name == "Y"


def test_prepare_accepts_pandas_inputs():
    frame = pd.DataFrame({"a": [1.0, 2.0], "b": [3.0, 4.0]})
    labels = pd.Series(["yes", "no"])
    data = prepare_training_data(frame, labels, TrainingConfig())
    assert data.inputs.shape == (2, 2)
    assert data.classes.tolist() == ["yes", "no"]


def test_prepare_row_mismatch():
    with pytest.raises(ShapeMismatchError):
        prepare_training_data(np.ones((3, 2)), np.array([0, 1]), TrainingConfig())


def test_prepare_all_rows_missing():
    X = np.full((2, 2), np.nan)
    with pytest.raises(EmptyInputError):
        prepare_training_data(X, np.array([0, 1]), TrainingConfig())


def test_prepare_rejects_infinite_values():
    X = np.array([[np.inf, 0.0], [1.0, 1.0]])
    with pytest.raises(InvalidInputError):
        prepare_training_data(X, np.array([0, 1]), TrainingConfig())


def test_predictor_names_must_match_columns():
    cfg = TrainingConfig(predictor_names=("a",))
    with pytest.raises(ConfigurationError):
        prepare_training_data(np.ones((2, 2)), np.array([0, 1]), cfg)


def test_class_names_filter_rows_and_fix_order():
    X = np.arange(8.0).reshape(4, 2)
    Y = np.array(["a", "b", "c", "a"])
    data = prepare_training_data(X, Y, TrainingConfig(class_names=("b", "a")))
    assert data.classes.tolist() == ["b", "a"]
    assert data.rows_used.tolist() == [True, True, False, True]
    assert data.targets.tolist() == [1, 0, 1]


def test_class_names_must_exist():
    with pytest.raises(ConfigurationError):
        prepare_training_data(
            np.ones((2, 1)), np.array(["a", "b"]), TrainingConfig(class_names=("a", "z"))
        )


def test_standardization_uses_sample_std_and_guards_constants():
    X = np.array([[1.0, 5.0], [3.0, 5.0]])
    mu, sigma = standardization(X)
    assert np.allclose(mu, [2.0, 5.0])
    assert np.allclose(sigma, [np.sqrt(2.0), 1.0])

    data = prepare_training_data(X, np.array([0, 1]), TrainingConfig(standardize=True))
    assert np.allclose(data.inputs[:, 1], 0.0)
    assert np.allclose(data.mu, mu)


def test_priors():
    targets = np.array([0, 0, 0, 1])
    assert np.allclose(resolve_prior("empirical", targets, 2), [0.75, 0.25])
    assert np.allclose(resolve_prior("uniform", targets, 2), [0.5, 0.5])
    assert np.allclose(resolve_prior((1.0, 3.0), targets, 2), [0.25, 0.75])
    with pytest.raises(ConfigurationError):
        resolve_prior((1.0, 1.0, 1.0), targets, 2)


def test_costs():
    assert np.array_equal(resolve_cost(None, 3), 1.0 - np.eye(3))
    with pytest.raises(ConfigurationError):
        resolve_cost(((0.0, 1.0), (1.0, 0.0)), 3)


def test_inference_input_checks():
    assert check_inference_input([1.0, 2.0], 2).shape == (1, 2)
    with pytest.raises(EmptyInputError):
        check_inference_input(np.empty((0, 2)), 2)
    with pytest.raises(DimensionMismatchError):
        check_inference_input(np.ones((3, 3)), 2)
    with pytest.raises(InvalidInputError):
        check_inference_input([["a", "b"]], 2)


def test_inference_scalar_input():
    assert check_inference_input(5.0, 1).shape == (1, 1)
    with pytest.raises(DimensionMismatchError, match="Input has 1 features"):
        check_inference_input(1, 2)


def test_inference_vector_for_single_predictor_is_a_column():
    assert check_inference_input(np.arange(4.0), 1).shape == (4, 1)
    assert check_inference_input(pd.Series([1.0, 2.0]), 1).shape == (2, 1)
    assert check_inference_input(np.arange(3.0), 3).shape == (1, 3)
