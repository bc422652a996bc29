import numpy as np
import pytest
from scipy.sparse import identity

from HACT.metric import MetricObject, distance_metric


@pytest.fixture
def sample_data():
    return {
        "list_a": [1.0, 2.1, 3],
        "list_b": [3.1, 4, -1.4],
        "list_c": [8.6, 9],
        "dict_a": {"a": 1, "b": 2},
        "dict_b": {"a": 3, "b": 4},
        "dict_c": {"a": 5, "f": 6},
        "array_a": np.array([1, 2, 3]),
        "array_b": np.array([4, 5, 6]),
        "array_c": np.array([[1, 2], [3, 4]]),
    }


def test_distance_metric_numbers():
    assert distance_metric(1, 4) == 3
    assert distance_metric(1.5, -2.5) == 4.0
    assert distance_metric(1.0 + 1.0j, 1.0) == 1.0


def test_distance_metric_lists(sample_data):
    assert distance_metric(
        sample_data["list_a"], sample_data["list_b"]
    ) == pytest.approx(4.4)
    with pytest.warns(UserWarning):
        assert distance_metric(sample_data["list_b"], sample_data["list_c"]) == 1.0
    assert distance_metric(sample_data["list_b"], sample_data["list_b"]) == 0.0


def test_distance_metric_arrays(sample_data):
    assert distance_metric(sample_data["array_a"], sample_data["array_b"]) == 3.0
    with pytest.warns(UserWarning):
        assert distance_metric(sample_data["array_a"], sample_data["array_c"]) == 1.0


def test_distance_metric_complex_arrays():
    a = np.array([1.0 + 0.0j, 2.0 + 0.0j])
    b = np.array([1.0 + 0.5j, 2.0 + 0.0j])
    assert distance_metric(a, b) == pytest.approx(0.5)


def test_distance_metric_sparse():
    assert distance_metric(identity(3, format="csr"), 2 * identity(3, format="csr")) == 1.0


def test_distance_metric_dicts(sample_data):
    assert distance_metric(sample_data["dict_a"], sample_data["dict_b"]) == 2.0
    with pytest.warns(UserWarning):
        assert distance_metric(sample_data["dict_a"], sample_data["dict_c"]) == 1000.0


def test_distance_metric_unsupported():
    with pytest.warns(UserWarning):
        assert distance_metric("a", "b") == 1000.0


class ValueHolder(MetricObject):
    distance_criteria = ["V", "r"]

    def __init__(self, V, r):
        self.V = V
        self.r = r


def test_metric_object_distance():
    first = ValueHolder(np.zeros((2, 2)), 0.01)
    second = ValueHolder(np.array([[0.0, 0.2], [0.1, 0.0]]), 0.02)
    assert first.distance(second) == pytest.approx(0.2)
    assert distance_metric(first, second) == pytest.approx(0.2)


def test_metric_object_no_criteria():
    with pytest.warns(UserWarning):
        assert MetricObject().distance(MetricObject()) == 1000.0
