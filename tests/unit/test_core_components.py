import numpy as np
import pytest

from nnclassifier.core.activations import ACTIVATIONS, get_activation, softmax
from nnclassifier.core.codec import flatten, unflatten
from nnclassifier.core.errors import ConfigurationError, ShapeMismatchError
from nnclassifier.core.initializers import initialize_parameters
from nnclassifier.core.network import forward
from nnclassifier.core.types import ParameterSet, Topology


def _params(topology, seed=0):
    return initialize_parameters(topology, "glorot", "zeros", np.random.default_rng(seed))


def test_topology_shapes_and_parameter_count():
    topo = Topology(input_size=4, layer_sizes=(5, 3), num_classes=2)
    assert topo.layer_dims == [4, 5, 3, 2]
    assert topo.weight_shapes() == [(5, 4), (3, 5), (2, 3)]
    assert topo.bias_shapes() == [(5,), (3,), (2,)]
    assert topo.parameter_count == 5 * 4 + 5 + 3 * 5 + 3 + 2 * 3 + 2


def test_topology_rejects_empty_or_nonpositive_layers():
    with pytest.raises(ShapeMismatchError):
        Topology(input_size=2, layer_sizes=(), num_classes=2)
    with pytest.raises(ShapeMismatchError):
        Topology(input_size=2, layer_sizes=(0,), num_classes=2)


def test_initializer_shapes_follow_topology():
    topo = Topology(input_size=3, layer_sizes=(4,), num_classes=2)
    params = _params(topo)
    assert len(params) == 2
    assert params.weights[0].shape == (4, 3)
    assert params.weights[1].shape == (2, 4)
    assert params.biases[0].shape == (4,)
    assert all(np.all(b == 0) for b in params.biases)


def test_glorot_weights_respect_limit():
    topo = Topology(input_size=30, layer_sizes=(20,), num_classes=10)
    params = _params(topo)
    limit = np.sqrt(6.0 / (30 + 20))
    assert np.max(np.abs(params.weights[0])) <= limit


def test_initializers_are_seeded():
    topo = Topology(input_size=3, layer_sizes=(4,), num_classes=2)
    a = initialize_parameters(topo, "he", "ones", np.random.default_rng(7))
    b = initialize_parameters(topo, "he", "ones", np.random.default_rng(7))
    assert np.array_equal(flatten(a), flatten(b))
    assert np.all(a.biases[1] == 1.0)


def test_unknown_initializer_does_not_consume_rng():
    topo = Topology(input_size=3, layer_sizes=(4,), num_classes=2)
    rng = np.random.default_rng(3)
    with pytest.raises(ConfigurationError):
        initialize_parameters(topo, "glorot", "bogus", rng)
    assert rng.random() == np.random.default_rng(3).random()


def test_codec_round_trip_and_layout():
    topo = Topology(input_size=2, layer_sizes=(3,), num_classes=2)
    params = _params(topo)
    flat = flatten(params, topo)
    assert flat.shape == (topo.parameter_count,)
    # Row-major weights of layer 0 come first, then its biases.
    assert np.array_equal(flat[:6], params.weights[0].reshape(-1))
    assert np.array_equal(flat[6:9], params.biases[0])

    restored = unflatten(flat, topo)
    for W, W2 in zip(params.weights, restored.weights):
        assert np.array_equal(W, W2)
    assert np.array_equal(flatten(restored), flat)


def test_codec_explicit_layout():
    topo = Topology(input_size=2, layer_sizes=(1,), num_classes=2)
    assert topo.parameter_count == 7
    params = unflatten(np.arange(1.0, 8.0), topo)
    assert np.array_equal(params.weights[0], [[1.0, 2.0]])
    assert np.array_equal(params.biases[0], [3.0])
    assert np.array_equal(params.weights[1], [[4.0], [5.0]])
    assert np.array_equal(params.biases[1], [6.0, 7.0])


def test_unflatten_rejects_wrong_length():
    topo = Topology(input_size=2, layer_sizes=(3,), num_classes=2)
    with pytest.raises(ShapeMismatchError):
        unflatten(np.zeros(topo.parameter_count - 1), topo)
    with pytest.raises(ShapeMismatchError):
        unflatten(np.zeros((1, topo.parameter_count)), topo)


def test_unflatten_copies_out_of_the_vector():
    topo = Topology(input_size=2, layer_sizes=(3,), num_classes=2)
    vec = np.zeros(topo.parameter_count)
    params = unflatten(vec, topo)
    vec[0] = 5.0
    assert params.weights[0][0, 0] == 0.0


def test_flatten_checks_shapes_against_topology():
    topo = Topology(input_size=2, layer_sizes=(3,), num_classes=2)
    bad = ParameterSet(weights=(np.zeros((3, 3)), np.zeros((2, 3))), biases=(np.zeros(3), np.zeros(2)))
    with pytest.raises(ShapeMismatchError):
        flatten(bad, topo)


def test_softmax_rows_sum_to_one_and_are_stable():
    z = np.array([[1000.0, 1000.0], [-1000.0, 0.0], [1.0, 2.0]])
    probs = softmax(z)
    assert np.all(np.isfinite(probs))
    assert np.allclose(probs.sum(axis=1), 1.0)
    assert np.allclose(probs[0], [0.5, 0.5])


def test_activation_lookup():
    assert set(ACTIVATIONS) == {"relu", "tanh", "sigmoid", "none"}
    assert get_activation("ReLU").name == "relu"
    with pytest.raises(ConfigurationError):
        get_activation("softplus")


@pytest.mark.parametrize("name", sorted(ACTIVATIONS))
def test_forward_outputs_probabilities(name):
    topo = Topology(input_size=4, layer_sizes=(6, 5), num_classes=3)
    params = _params(topo)
    x = np.random.default_rng(1).normal(size=(7, 4))
    probs, cache = forward(x, params, name)
    assert probs.shape == (7, 3)
    assert np.allclose(probs.sum(axis=1), 1.0)
    assert np.all(probs >= 0)
    assert len(cache.activations) == topo.num_layers + 1
    assert cache.activations[0] is not None and cache.activations[0].shape == (7, 4)


def test_forward_without_cache_matches():
    topo = Topology(input_size=2, layer_sizes=(3,), num_classes=2)
    params = _params(topo)
    x = np.ones((2, 2))
    cached, _ = forward(x, params)
    bare, cache = forward(x, params, keep_cache=False)
    assert cache is None
    assert np.allclose(cached, bare)


def test_forward_rejects_wrong_feature_count():
    topo = Topology(input_size=3, layer_sizes=(2,), num_classes=2)
    with pytest.raises(ShapeMismatchError):
        forward(np.ones((2, 2)), _params(topo))
