"""Tests for cartrees._utils.py, cartrees._registry.py, cartrees._criterion.py and cartrees._threshold_method.py."""
from typing import Any, Dict

import numpy as np
import pytest
from pydantic import BaseModel, PositiveInt, ValidationError

from cartrees._criterion import entropy, gini_index, mean_absolute_error, mean_squared_error
from cartrees._registry import ClassifierCriteria, Registry, RegressorCriteria, ThresholdMethods
from cartrees._threshold_method import exact, histogram, percentile, random
from cartrees._utils import (
    calculate_max_value,
    comparison_mask,
    estimate_mean,
    estimate_proba,
    is_categorical,
    validate_parameters,
)
from cartrees.exceptions import CARTreesError, InvalidConfigurationError

pytestmark = pytest.mark.other


@pytest.mark.parametrize(
    "kwargs,expected",
    [
        ({"y": np.array([0, 0, 1, 1]), "n_classes": 2}, np.array([0.5, 0.5])),
        ({"y": np.array([0, 0, 1, 1]), "n_classes": 3}, np.array([0.5, 0.5, 0.0])),
        ({"y": np.array([1, 1, 2, 2]), "n_classes": 3}, np.array([0.0, 0.5, 0.5])),
    ],
)
def test_estimate_proba(kwargs: Dict[str, Any], expected: np.ndarray) -> None:
    """Test estimate_proba function."""
    proba = estimate_proba(**kwargs)
    assert np.all(proba == expected)


def test_estimate_mean() -> None:
    """Test estimate_mean function."""
    for test in range(1, 4):
        np.random.seed(test)
        x = np.random.normal(0, 1, 100)
        mean = estimate_mean(x)
        assert np.allclose(mean, np.mean(x))


@pytest.mark.parametrize(
    "desired_max,expected",
    [(None, 10), (4, 4), (20, 10), (0, 1), ("sqrt", 4), ("log2", 4), (0.25, 3), (1.0, 10)],
)
def test_calculate_max_value(desired_max: Any, expected: int) -> None:
    """Test calculate_max_value function."""
    assert calculate_max_value(n_values=10, desired_max=desired_max) == expected


def test_calculate_max_value_single() -> None:
    """Test calculate_max_value with a single value."""
    for desired_max in [None, "sqrt", "log2", 0.1, 5]:
        assert calculate_max_value(n_values=1, desired_max=desired_max) == 1


def test_is_categorical() -> None:
    """Test is_categorical function."""
    assert is_categorical("nice")
    assert not is_categorical(1.5)
    assert not is_categorical(np.float64(1.5))


def test_comparison_mask() -> None:
    """Test comparison_mask function."""
    x = np.array([1.0, 2.0, 3.0])
    assert list(comparison_mask(x, 2.0)) == [True, False, False]
    assert list(comparison_mask(x, "nice")) == [False, False, False]

    x = np.array(["nice", "mean", "nice"], dtype=object)
    assert list(comparison_mask(x, "nice")) == [True, False, True]


def test_validate_parameters() -> None:
    """Test validate_parameters function."""

    class Parameters(BaseModel):
        n: PositiveInt

    assert validate_parameters(Parameters, {"n": 3}).n == 3

    with pytest.raises(InvalidConfigurationError) as e:
        validate_parameters(Parameters, {"n": 0})

    assert isinstance(e.value, CARTreesError)
    assert isinstance(e.value, ValueError)
    assert isinstance(e.value.__cause__, ValidationError)
    assert "Parameters" in str(e.value) and "n:" in str(e.value)


def test_registry() -> None:
    """Test Registry functionality."""
    registry = Registry("Test")

    @registry.register("double")
    def double(x: int) -> int:
        return 2 * x

    assert registry.name == "Test"
    assert "double" in registry
    assert registry.keys() == ["double"]
    assert registry["double"](2) == 4

    with pytest.raises(KeyError):
        registry["triple"]

    with pytest.raises(KeyError):
        registry.register("double")(double)


def test_registered_names() -> None:
    """Test names registered on import."""
    assert ClassifierCriteria.keys() == ["gini", "entropy"]
    assert RegressorCriteria.keys() == ["mse", "mae"]
    assert ThresholdMethods.keys() == ["exact", "random", "percentile", "histogram"]


@pytest.mark.parametrize(
    "criterion,y,expected",
    [
        (gini_index, np.array([0, 0, 1, 1]), 0.5),
        (gini_index, np.array([1, 1, 1]), 0.0),
        (gini_index, np.array([], dtype=np.int64), 0.0),
        (entropy, np.array([0, 0, 1, 1]), 1.0),
        (entropy, np.array([2, 2]), 0.0),
        (mean_squared_error, np.array([1.0, 2.0, 3.0]), 2 / 3),
        (mean_squared_error, np.array([], dtype=float), 0.0),
        (mean_absolute_error, np.array([1.0, 2.0, 3.0]), 2 / 3),
        (mean_absolute_error, np.array([4.0, 4.0]), 0.0),
    ],
)
def test_criteria(criterion: Any, y: np.ndarray, expected: float) -> None:
    """Test impurity criteria."""
    assert np.isclose(criterion(y), expected)


def test_exact() -> None:
    """Test exact threshold method."""
    x = np.array([3.0, 1.0, 2.0, 2.0])
    assert np.allclose(exact(x, 10, 1), [1.5, 2.5])


def test_random() -> None:
    """Test random threshold method."""
    x = np.arange(10, dtype=float)
    midpoints = exact(x, 9, 1)

    thresholds = random(x, 4, 1718)
    assert len(thresholds) == 4
    assert set(thresholds) <= set(midpoints)
    assert np.allclose(thresholds, random(x, 4, 1718))


@pytest.mark.parametrize("method", [percentile, histogram])
def test_approximate_thresholds(method: Any) -> None:
    """Test percentile and histogram threshold methods."""
    x = np.arange(10, dtype=float)
    thresholds = method(x, 3, 1)

    assert 0 < len(thresholds) <= 3
    assert np.all((thresholds > x.min()) & (thresholds < x.max()))
