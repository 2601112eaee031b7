from abc import ABCMeta, abstractmethod
from typing import Annotated, Any, Iterator, Literal, Optional, Sequence, Tuple, Union

import numpy as np
from pydantic import BaseModel, Field, NonNegativeFloat, NonNegativeInt, ValidationInfo, field_validator

from ._criterion import ClassifierCriteria, RegressorCriteria
from ._dataset import Labeled
from ._node import Comparison, Leaf
from ._registry import Registry
from ._threshold_method import ThresholdMethods
from ._utils import calculate_max_value, comparison_mask, estimate_mean, estimate_proba, validate_parameters

ProbabilityFloat = Annotated[float, Field(gt=0.0, le=1.0)]
MaxValuesOption = Optional[Union[Literal["sqrt", "log2"], NonNegativeInt, ProbabilityFloat]]

# Below this many unique values every midpoint is a candidate threshold
_MIN_UNIQUE_FOR_THRESHOLD_METHOD = 5


class Splitter(metaclass=ABCMeta):
    """Strategy choosing the split of a labeled dataset."""

    @abstractmethod
    def find_best_split(self, dataset: Labeled, depth: int) -> Comparison:
        """Greedily choose the best split of a dataset.

        Parameters
        ----------
        dataset : Labeled
            Training data reaching the node.

        depth : int
            Depth of the node, 0 for the root.

        Returns
        -------
        Comparison
            Node holding the column, the value, both row groups and the impurity decrease of the split.
        """
        pass


class Terminator(metaclass=ABCMeta):
    """Strategy turning a labeled dataset into a leaf."""

    @abstractmethod
    def terminate(self, dataset: Labeled, depth: int) -> Leaf:
        """Terminate a branch with the prediction for a dataset.

        Parameters
        ----------
        dataset : Labeled
            Training data reaching the leaf.

        depth : int
            Depth of the leaf.

        Returns
        -------
        Leaf
            Leaf holding the prediction.
        """
        pass


class BestSplitterParameters(BaseModel):
    """Model for BestSplitter parameters."""

    criteria: Literal["classifier", "regressor"]
    criterion: str
    max_features: MaxValuesOption
    threshold_method: Literal["exact", "random", "percentile", "histogram"]
    max_thresholds: MaxValuesOption
    tolerance: NonNegativeFloat
    random_state: Optional[NonNegativeInt]

    @field_validator("criterion")
    @classmethod
    def validate_criterion(cls, v: str, info: ValidationInfo) -> str:
        """Validate criterion against the registry of the estimator type."""
        registry = ClassifierCriteria if info.data.get("criteria") == "classifier" else RegressorCriteria
        if v not in registry:
            raise ValueError(f"criterion ({v}) not supported, expected one of: {registry.keys()}")

        return v


class BestSplitter(Splitter, metaclass=ABCMeta):
    """Exhaustive search for the split with the lowest weighted child impurity.

    Warning: This class should not be used directly. Use derived classes instead.

    Parameters
    ----------
    criterion : str
        Name of registered impurity criterion.

    max_features : {"sqrt", "log2"}, int, or float, default=None
        Number of randomly chosen columns searched at each node, all columns when None.

    threshold_method : {"exact", "random", "percentile", "histogram"}, default="exact"
        Method to calculate candidate thresholds on continuous columns.

    max_thresholds : {"sqrt", "log2"}, int, or float, default=None
        Maximum number of candidate thresholds per continuous column.

    tolerance : float, default=0.0
        Stop searching once a split has child impurity at or below this value.

    random_state : int, default=None
        Random seed.
    """

    _criteria: Registry

    def __init__(
        self,
        criterion: str,
        *,
        max_features: Optional[Union[str, float, int]] = None,
        threshold_method: str = "exact",
        max_thresholds: Optional[Union[str, float, int]] = None,
        tolerance: float = 0.0,
        random_state: Optional[int] = None,
    ) -> None:
        validate_parameters(
            BestSplitterParameters,
            {
                "criteria": "classifier" if self._criteria is ClassifierCriteria else "regressor",
                "criterion": criterion,
                "max_features": max_features,
                "threshold_method": threshold_method,
                "max_thresholds": max_thresholds,
                "tolerance": tolerance,
                "random_state": random_state,
            },
        )
        self.criterion = criterion
        self.max_features = max_features
        self.threshold_method = threshold_method
        self.max_thresholds = max_thresholds
        self.tolerance = tolerance
        self.random_state = random_state

        self._criterion = self._criteria[criterion]
        self._threshold_method = ThresholdMethods[threshold_method]
        self._prng = np.random.RandomState(random_state)

    @abstractmethod
    def _encode(self, labels: np.ndarray) -> np.ndarray:
        """Cast labels to the representation expected by the criterion."""
        pass

    def _thresholds(self, x: np.ndarray) -> np.ndarray:
        """Candidate thresholds for a continuous column.

        Parameters
        ----------
        x : np.ndarray
            Continuous feature.

        Returns
        -------
        np.ndarray
            Thresholds, never empty.
        """
        x = x.astype(float)
        x_unique = np.unique(x)
        n_unique = len(x_unique)

        if n_unique >= _MIN_UNIQUE_FOR_THRESHOLD_METHOD:
            max_thresholds = (
                calculate_max_value(n_values=n_unique, desired_max=self.max_thresholds)
                if self.max_thresholds
                else n_unique
            )
            thresholds = self._threshold_method(x, max_thresholds, int(self._prng.randint(1, 1_000_000)))
        else:
            thresholds = (x_unique[:-1] + x_unique[1:]) / 2

        # A constant column has no midpoints
        return thresholds if len(thresholds) else x_unique

    def _candidates(self, dataset: Labeled, columns: Sequence[int]) -> Iterator[Tuple[int, Any]]:
        for column in columns:
            x = dataset.column(column)
            values = np.unique(x) if dataset.column_type(column) == "categorical" else self._thresholds(x)
            for value in values:
                yield int(column), value

    def find_best_split(self, dataset: Labeled, depth: int) -> Comparison:
        """Greedily choose the best split of a dataset.

        Parameters
        ----------
        dataset : Labeled
            Training data reaching the node.

        depth : int
            Depth of the node, 0 for the root.

        Returns
        -------
        Comparison
            Node holding the column, the value, both row groups and the impurity decrease of the split.
        """
        n = dataset.num_rows
        if n == 0 or dataset.num_columns == 0:
            raise ValueError(
                f"Cannot split a dataset with ({n}) rows and ({dataset.num_columns}) columns at depth ({depth})"
            )

        y = self._encode(dataset.labels)
        parent_impurity = self._criterion(y)

        p = dataset.num_columns
        max_features = calculate_max_value(n_values=p, desired_max=self.max_features)
        columns = self._prng.choice(p, size=max_features, replace=False) if max_features < p else np.arange(p)

        fallback = None
        best_column, best_value, best_impurity = None, None, np.inf
        for column, value in self._candidates(dataset, columns):
            if fallback is None:
                fallback = (column, value)

            mask = comparison_mask(dataset.column(column), value)
            n_left = int(mask.sum())
            n_right = n - n_left
            if n_left == 0 or n_right == 0:
                continue

            impurity = (n_left / n) * self._criterion(y[mask]) + (n_right / n) * self._criterion(y[~mask])
            if impurity < best_impurity:
                best_column, best_value, best_impurity = column, value, impurity
                if best_impurity <= self.tolerance:
                    break

        # Every candidate sends all rows to the same side
        if best_column is None:
            best_column, best_value = fallback  # type: ignore
            best_impurity = parent_impurity

        if not isinstance(best_value, str):
            best_value = float(best_value)

        return Comparison(
            column=best_column,
            value=best_value,
            groups=dataset.partition_on(best_column, best_value),
            impurity_decrease=max(float(parent_impurity - best_impurity), 0.0),
            n_samples=n,
        )


class ClassifierSplitter(BestSplitter):
    """Best split search for classification trees.

    Parameters
    ----------
    criterion : {"gini", "entropy"}, default="gini"
        Impurity criterion.

    **kwargs
        See BestSplitter.
    """

    _criteria = ClassifierCriteria

    def __init__(self, criterion: str = "gini", **kwargs: Any) -> None:
        super().__init__(criterion, **kwargs)

    def _encode(self, labels: np.ndarray) -> np.ndarray:
        return np.unique(labels, return_inverse=True)[1].ravel().astype(np.int64)


class RegressorSplitter(BestSplitter):
    """Best split search for regression trees.

    Parameters
    ----------
    criterion : {"mse", "mae"}, default="mse"
        Impurity criterion.

    **kwargs
        See BestSplitter.
    """

    _criteria = RegressorCriteria

    def __init__(self, criterion: str = "mse", **kwargs: Any) -> None:
        super().__init__(criterion, **kwargs)

    def _encode(self, labels: np.ndarray) -> np.ndarray:
        return labels.astype(float)


class ClassProbabilityTerminator(Terminator):
    """Predict the most probable class.

    Parameters
    ----------
    classes : Sequence, default=None
        Class labels that probabilities are aligned to. When None, each leaf uses the labels reaching it.

    criterion : {"gini", "entropy"}, default="gini"
        Impurity criterion recorded on the leaf.
    """

    def __init__(self, classes: Optional[Sequence[Any]] = None, criterion: str = "gini") -> None:
        self.classes = None if classes is None else np.asarray(classes)
        self.criterion = criterion
        self._criterion = ClassifierCriteria[criterion]

    def terminate(self, dataset: Labeled, depth: int) -> Leaf:
        """Terminate a branch with the class probabilities of a dataset.

        Parameters
        ----------
        dataset : Labeled
            Training data reaching the leaf.

        depth : int
            Depth of the leaf.

        Returns
        -------
        Leaf
            Leaf with the most probable class as outcome and class probabilities.
        """
        if dataset.empty():
            raise ValueError(f"Cannot terminate an empty dataset at depth ({depth})")

        classes = self.classes if self.classes is not None else dataset.possible_outcomes()
        index = {label: j for j, label in enumerate(classes.tolist())}
        try:
            y = np.array([index[label] for label in dataset.labels.tolist()], dtype=np.int64)
        except KeyError as e:
            raise ValueError(f"Label ({e.args[0]}) not found in classes ({classes.tolist()})") from e

        proba = estimate_proba(y, len(classes))

        return Leaf(
            outcome=classes[int(np.argmax(proba))],
            n_samples=dataset.num_rows,
            impurity=float(self._criterion(y)),
            proba=proba,
        )


class MeanTerminator(Terminator):
    """Predict the mean of the target.

    Parameters
    ----------
    criterion : {"mse", "mae"}, default="mse"
        Impurity criterion recorded on the leaf.
    """

    def __init__(self, criterion: str = "mse") -> None:
        self.criterion = criterion
        self._criterion = RegressorCriteria[criterion]

    def terminate(self, dataset: Labeled, depth: int) -> Leaf:
        """Terminate a branch with the mean target of a dataset.

        Parameters
        ----------
        dataset : Labeled
            Training data reaching the leaf.

        depth : int
            Depth of the leaf.

        Returns
        -------
        Leaf
            Leaf with the mean as outcome.
        """
        if dataset.empty():
            raise ValueError(f"Cannot terminate an empty dataset at depth ({depth})")

        y = dataset.labels.astype(float)

        return Leaf(
            outcome=float(estimate_mean(y)),
            n_samples=dataset.num_rows,
            impurity=float(self._criterion(y)),
        )
