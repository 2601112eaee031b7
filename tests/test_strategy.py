"""Tests for cartrees._strategy.py."""
from typing import Any, Dict

import numpy as np
import pytest
from numpy.testing import assert_array_almost_equal, assert_array_equal

from cartrees._dataset import Labeled
from cartrees._node import Comparison
from cartrees._strategy import (
    ClassifierSplitter,
    ClassProbabilityTerminator,
    MeanTerminator,
    RegressorSplitter,
    Splitter,
    Terminator,
)
from cartrees.exceptions import InvalidConfigurationError

pytestmark = pytest.mark.strategy


def test_strategies_are_abstract() -> None:
    """Test Splitter and Terminator cannot be instantiated."""
    with pytest.raises(TypeError):
        Splitter()

    with pytest.raises(TypeError):
        Terminator()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"criterion": "mse"},
        {"criterion": "gini", "threshold_method": "unknown"},
        {"criterion": "gini", "max_features": -1},
        {"criterion": "gini", "max_features": 1.5},
        {"criterion": "gini", "max_thresholds": "cbrt"},
        {"criterion": "gini", "tolerance": -0.1},
        {"criterion": "gini", "random_state": -1},
    ],
)
def test_classifier_splitter_invalid(kwargs: Dict[str, Any]) -> None:
    """Test ClassifierSplitter rejects invalid hyperparameters."""
    with pytest.raises(InvalidConfigurationError):
        ClassifierSplitter(**kwargs)


def test_regressor_splitter_invalid() -> None:
    """Test RegressorSplitter rejects classification criteria."""
    with pytest.raises(InvalidConfigurationError) as e:
        RegressorSplitter("gini")
    assert "criterion" in str(e.value)


def test_classifier_splitter_continuous() -> None:
    """Test ClassifierSplitter finds a perfect threshold."""
    dataset = Labeled([[1.0], [2.0], [3.0], [4.0]], [0, 0, 1, 1])
    node = ClassifierSplitter("gini").find_best_split(dataset, 0)

    assert isinstance(node, Comparison)
    assert node.column == 0
    assert node.value == 2.5
    assert isinstance(node.value, float)
    assert node.impurity_decrease == pytest.approx(0.5)
    assert node.n_samples == 4

    left, right = node.take_groups()
    assert_array_equal(left.labels, [0, 0])
    assert_array_equal(right.labels, [1, 1])


def test_classifier_splitter_categorical() -> None:
    """Test ClassifierSplitter splits categorical columns on equality."""
    dataset = Labeled([["nice"], ["mean"], ["nice"], ["mean"]], ["a", "b", "a", "b"])
    node = ClassifierSplitter("entropy").find_best_split(dataset, 0)

    assert isinstance(node.value, str)
    assert node.value in ("nice", "mean")
    assert node.impurity_decrease == pytest.approx(1.0)

    left, right = node.take_groups()
    assert all(row[0] == node.value for row in left)
    assert all(row[0] != node.value for row in right)


def test_classifier_splitter_picks_informative_column() -> None:
    """Test the column separating the labels wins over a noisy one."""
    dataset = Labeled(
        [[5.0, "nice"], [1.0, "nice"], [4.0, "mean"], [2.0, "mean"], [3.0, "nice"], [6.0, "mean"]],
        [0, 0, 1, 1, 0, 1],
    )
    node = ClassifierSplitter("gini").find_best_split(dataset, 0)

    assert node.column == 1
    assert node.impurity_decrease == pytest.approx(0.5)


def test_splitter_constant_column() -> None:
    """Test a column with a single value yields a degenerate split."""
    dataset = Labeled([[1.0], [1.0], [1.0]], [0, 1, 0])
    node = ClassifierSplitter("gini").find_best_split(dataset, 3)

    assert node.column == 0
    assert node.impurity_decrease == 0.0

    left, right = node.take_groups()
    assert left.empty() or right.empty()
    assert left.num_rows + right.num_rows == 3


def test_splitter_empty_dataset() -> None:
    """Test splitting nothing is an error."""
    dataset = Labeled(np.empty((0, 2)), np.empty(0))

    with pytest.raises(ValueError):
        ClassifierSplitter("gini").find_best_split(dataset, 0)


@pytest.mark.parametrize("max_features", [1, "sqrt", "log2", 0.5])
def test_splitter_max_features(max_features: Any) -> None:
    """Test split selection over a random subset of columns."""
    prng = np.random.RandomState(1718)
    X = prng.normal(size=(50, 4))
    y = (X[:, 0] > 0).astype(int)

    node = ClassifierSplitter("gini", max_features=max_features, random_state=1718).find_best_split(
        Labeled(X, y), 0
    )

    assert 0 <= node.column < 4
    assert node.impurity_decrease >= 0.0


@pytest.mark.parametrize("threshold_method", ["exact", "random", "percentile", "histogram"])
def test_splitter_threshold_methods(threshold_method: str) -> None:
    """Test every threshold method finds a separating split on a step function."""
    X = np.arange(20, dtype=float).reshape(-1, 1)
    y = (X[:, 0] >= 10).astype(int)

    splitter = ClassifierSplitter(
        "gini",
        threshold_method=threshold_method,
        max_thresholds=None if threshold_method == "exact" else 19,
        random_state=1718,
    )
    node = splitter.find_best_split(Labeled(X, y), 0)

    assert 0.0 < node.value < 19.0
    assert node.impurity_decrease > 0.0


def test_splitter_reproducible() -> None:
    """Test the same random_state gives the same split."""
    prng = np.random.RandomState(0)
    X = prng.normal(size=(40, 6))
    y = prng.randint(0, 2, size=40)
    dataset = Labeled(X, y)

    a = ClassifierSplitter("gini", max_features=2, random_state=3).find_best_split(dataset, 0)
    b = ClassifierSplitter("gini", max_features=2, random_state=3).find_best_split(dataset, 0)

    assert (a.column, a.value) == (b.column, b.value)


def test_regressor_splitter() -> None:
    """Test RegressorSplitter finds the threshold separating two levels."""
    dataset = Labeled([[1.0], [2.0], [3.0], [4.0]], [1.0, 1.0, 5.0, 5.0])

    for criterion, decrease in [("mse", 4.0), ("mae", 2.0)]:
        node = RegressorSplitter(criterion).find_best_split(dataset, 0)
        assert node.value == 2.5
        assert node.impurity_decrease == pytest.approx(decrease)


def test_class_probability_terminator() -> None:
    """Test ClassProbabilityTerminator with fixed classes."""
    dataset = Labeled([[1.0], [2.0], [3.0]], [0, 0, 1])
    leaf = ClassProbabilityTerminator(classes=[0, 1, 2]).terminate(dataset, 2)

    assert leaf.outcome == 0
    assert_array_almost_equal(leaf.proba, [2 / 3, 1 / 3, 0.0])
    assert leaf.n_samples == 3
    assert leaf.impurity == pytest.approx(4 / 9)


def test_class_probability_terminator_observed_classes() -> None:
    """Test ClassProbabilityTerminator without fixed classes."""
    dataset = Labeled([["nice"], ["mean"], ["mean"]], ["a", "b", "b"])
    leaf = ClassProbabilityTerminator(criterion="entropy").terminate(dataset, 1)

    assert leaf.outcome == "b"
    assert_array_almost_equal(leaf.proba, [1 / 3, 2 / 3])


def test_class_probability_terminator_errors() -> None:
    """Test ClassProbabilityTerminator rejects unknown labels and empty datasets."""
    with pytest.raises(ValueError):
        ClassProbabilityTerminator(classes=[0, 1]).terminate(Labeled([[1.0]], [2]), 1)

    with pytest.raises(ValueError):
        ClassProbabilityTerminator().terminate(Labeled(np.empty((0, 1)), np.empty(0)), 1)

    with pytest.raises(KeyError):
        ClassProbabilityTerminator(criterion="mse")


def test_mean_terminator() -> None:
    """Test MeanTerminator functionality."""
    leaf = MeanTerminator().terminate(Labeled([[1.0], [2.0], [3.0]], [1.0, 2.0, 3.0]), 1)

    assert leaf.outcome == pytest.approx(2.0)
    assert leaf.impurity == pytest.approx(2 / 3)
    assert leaf.n_samples == 3
    assert leaf.proba is None

    with pytest.raises(ValueError):
        MeanTerminator().terminate(Labeled(np.empty((0, 1)), np.empty(0)), 1)
