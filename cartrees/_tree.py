import warnings
from abc import ABCMeta, abstractmethod
from typing import Any, Dict, List, Literal, Optional, Tuple, Type, Union

import numpy as np
from pydantic import BaseModel, NonNegativeFloat, NonNegativeInt, PositiveInt, ValidationInfo, field_validator
from sklearn.base import BaseEstimator, ClassifierMixin, RegressorMixin
from sklearn.preprocessing import LabelEncoder
from sklearn.utils.validation import check_is_fitted

from ._cart import CART
from ._criterion import ClassifierCriteria, RegressorCriteria
from ._dataset import Labeled
from ._strategy import (
    ClassifierSplitter,
    ClassProbabilityTerminator,
    MaxValuesOption,
    MeanTerminator,
    RegressorSplitter,
    Splitter,
    Terminator,
)
from ._utils import validate_parameters


class BaseCARTParameters(BaseModel):
    """Model for BaseCARTree parameters."""

    estimator_type: Literal["classifier", "regressor"]
    criterion: str
    max_depth: Optional[PositiveInt]
    max_leaf_size: PositiveInt
    max_features: MaxValuesOption
    threshold_method: Literal["exact", "random", "percentile", "histogram"]
    max_thresholds: MaxValuesOption
    tolerance: NonNegativeFloat
    random_state: Optional[NonNegativeInt]
    verbose: NonNegativeInt

    @field_validator("criterion")
    @classmethod
    def validate_criterion(cls, v: str, info: ValidationInfo) -> str:
        """Validate criterion."""
        estimator_type = info.data.get("estimator_type")
        registry = ClassifierCriteria if estimator_type == "classifier" else RegressorCriteria
        if v not in registry:
            raise ValueError(
                f"criterion ({v}) not supported for ({estimator_type}) estimator, expected one of: {registry.keys()}"
            )

        return v


def _as_array(data: Any, name: str) -> Tuple[np.ndarray, Optional[List[str]]]:
    """Convert array-like input to np.ndarray, keeping column names of data frames."""
    columns = None
    if isinstance(data, np.ndarray):
        return data, columns
    if isinstance(data, (list, tuple)):
        # Object dtype stops numpy from coercing mixed rows to strings
        array = np.array(data)
        if array.dtype.kind in "US":
            array = np.array(data, dtype=object)
        return array, columns
    if hasattr(data, "values"):
        if hasattr(data, "columns"):
            columns = [str(column) for column in data.columns]
        return np.asarray(data.values), columns

    raise ValueError(f"Unsupported type for {name} ({type(data)}), expected np.ndarray, list, tuple, or data frame")


class BaseCARTree(BaseEstimator, metaclass=ABCMeta):
    """Base class for classification and regression trees.

    Warning: This class should not be used directly. Use derived classes instead.
    """

    _tree_type: str

    @abstractmethod
    def __init__(
        self,
        *,
        criterion: str,
        max_depth: Optional[int],
        max_leaf_size: int,
        max_features: Optional[Union[str, float, int]],
        threshold_method: str,
        max_thresholds: Optional[Union[str, float, int]],
        tolerance: float,
        random_state: Optional[int],
        verbose: int,
    ) -> None:
        self.criterion = criterion
        self.max_depth = max_depth
        self.max_leaf_size = max_leaf_size
        self.max_features = max_features
        self.threshold_method = threshold_method
        self.max_thresholds = max_thresholds
        self.tolerance = tolerance
        self.random_state = random_state
        self.verbose = verbose

        validate_parameters(self._parameter_model, {**self.get_params(), "estimator_type": self._tree_type})

    @property
    def _parameter_model(self) -> Type[BaseModel]:
        """Model for hyperparameter validation."""
        return BaseCARTParameters

    @abstractmethod
    def _splitter(self, random_state: int) -> Splitter:
        """Split selection strategy used to grow the tree."""
        pass

    @abstractmethod
    def _terminator(self) -> Terminator:
        """Termination strategy used to grow the tree."""
        pass

    def _validate_data_fit(self, X: Any, y: Any) -> Tuple[np.ndarray, np.ndarray]:
        """Validate data for training by checking types and casting.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Training features.

        y : array-like of shape (n_samples,)
            Training target.

        Returns
        -------
        np.ndarray
            Training features.

        np.ndarray
            Training target.
        """
        X, feature_names_in = _as_array(X, "X")

        if X.ndim == 1:
            X = X[:, None]
        elif X.ndim > 2:
            raise ValueError(
                f"Arrays with more than 2 dimensions are not supported for X, detected ({X.ndim}) dimensions"
            )

        if feature_names_in is None:
            feature_names_in = [f"f{j}" for j in range(X.shape[1])]
        self.feature_names_in_ = feature_names_in

        y, _ = _as_array(y, "y")
        if y.ndim == 2:
            y = y.ravel()
        elif y.ndim > 2:
            raise ValueError(f"Multi-output labels are not supported for y, detected ({y.ndim - 1}) outputs")

        if len(X) != len(y):
            raise ValueError(f"Different number of samples between X ({len(X)}) and y ({len(y)})")
        if len(X) == 0:
            raise ValueError("At least one sample is required to fit a tree")

        return X, y

    def _validate_data_predict(self, X: Any) -> np.ndarray:
        """Validate data for inference by checking types and casting.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Inference features.

        Returns
        -------
        np.ndarray
            Inference features.
        """
        check_is_fitted(self, "tree_")

        X, feature_names = _as_array(X, "X")

        if X.ndim == 1:
            X = X[:, None]
        elif X.ndim > 2:
            raise ValueError(
                f"Arrays with more than 2 dimensions are not supported for X, detected ({X.ndim}) dimensions"
            )

        if X.shape[1] != self.n_features_in_:
            raise ValueError(f"X should have ({self.n_features_in_}) features, got ({X.shape[1]})")

        if feature_names:
            if set(feature_names) != set(self.feature_names_in_):
                diff = list(set(self.feature_names_in_) - set(feature_names))
                raise ValueError(f"Mismatch in feature names for X, missing ({len(diff)}) features: {diff}")

            # Columns are searched by position, so follow the order seen during fit
            if feature_names != self.feature_names_in_:
                X = X[:, [feature_names.index(name) for name in self.feature_names_in_]]

        return X

    def _fit_labeled(self, dataset: Labeled) -> None:
        """Grow the underlying tree and set fitted attributes shared by all trees."""
        if self.threshold_method != "exact" and self.max_thresholds is None:
            warnings.warn(
                f"Using threshold_method='{self.threshold_method}' with max_thresholds=None is not recommended, "
                "consider reducing max_thresholds to speed up split selection."
            )

        random_state = int(np.random.randint(1, 1_000_000)) if self.random_state is None else self.random_state

        self.n_features_in_ = dataset.num_columns
        self.tree_ = CART(
            self._splitter(random_state),
            self._terminator(),
            max_depth=self.max_depth,
            max_leaf_size=self.max_leaf_size,
            verbose=self.verbose,
        ).grow(dataset)

        self.feature_importances_ = np.zeros(self.n_features_in_, dtype=float)
        for column, importance in self.tree_.feature_importances().items():
            self.feature_importances_[column] = importance

    def _leaves(self, X: Any) -> List[Any]:
        X = self._validate_data_predict(X)

        return [self.tree_.search(x) for x in X]

    @abstractmethod
    def fit(self, X: Any, y: Any) -> "BaseCARTree":
        """Train estimator."""
        pass

    @abstractmethod
    def predict(self, X: Any) -> np.ndarray:
        """Predict target."""
        pass

    def _common_params(self, random_state: int) -> Dict[str, Any]:
        return {
            "max_features": self.max_features,
            "threshold_method": self.threshold_method,
            "max_thresholds": self.max_thresholds,
            "tolerance": self.tolerance,
            "random_state": random_state,
        }


class ClassificationTree(ClassifierMixin, BaseCARTree):
    """Classification tree.

    Parameters
    ----------
    criterion : {"gini", "entropy"}, default="gini"
        Impurity criterion for split selection.

    max_depth : int, default=None
        Maximum depth to grow tree.

    max_leaf_size : int, default=3
        Maximum number of samples a branch may hold before it is split again.

    max_features : {"sqrt", "log2"}, int, or float, default=None
        Maximum number of features to search at each split.

    threshold_method : {"exact", "random", "histogram", "percentile"}, default="exact"
        Method to calculate thresholds on a continuous feature used during split selection.

    max_thresholds : {"sqrt", "log2"}, int, or float, default=None
        Maximum number of thresholds to use for split selection.

    tolerance : float, default=0.0
        Stop searching for a split once child impurity is at or below this value.

    random_state : int, default=None
        Random seed.

    verbose : int, default=1
        Controls verbosity when fitting.

    Attributes
    ----------
    classes_ : np.ndarray
        Unique class labels.

    n_classes_ : int
        Number of classes.

    feature_importances_ : np.ndarray
        Feature importances for each feature.

    n_features_in_ : int
        Number of features seen during fit.

    feature_names_in_ : List[str]
        List of feature names seen during fit.

    tree_ : CART
        Underlying decision tree object.
    """

    _tree_type = "classifier"

    def __init__(
        self,
        *,
        criterion: str = "gini",
        max_depth: Optional[int] = None,
        max_leaf_size: int = 3,
        max_features: Optional[Union[str, float, int]] = None,
        threshold_method: str = "exact",
        max_thresholds: Optional[Union[str, float, int]] = None,
        tolerance: float = 0.0,
        random_state: Optional[int] = None,
        verbose: int = 1,
    ) -> None:
        super().__init__(
            criterion=criterion,
            max_depth=max_depth,
            max_leaf_size=max_leaf_size,
            max_features=max_features,
            threshold_method=threshold_method,
            max_thresholds=max_thresholds,
            tolerance=tolerance,
            random_state=random_state,
            verbose=verbose,
        )

    def _splitter(self, random_state: int) -> Splitter:
        return ClassifierSplitter(self.criterion, **self._common_params(random_state))

    def _terminator(self) -> Terminator:
        return ClassProbabilityTerminator(classes=np.arange(self.n_classes_), criterion=self.criterion)

    def fit(self, X: Any, y: Any) -> "ClassificationTree":
        """Train estimator.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Training features, categorical features as strings.

        y : array-like of shape (n_samples,)
            Training target.

        Returns
        -------
        self
            Fitted estimator.
        """
        X, y = self._validate_data_fit(X, y)

        self._label_encoder = LabelEncoder()
        y = self._label_encoder.fit_transform(y)
        self.classes_ = self._label_encoder.classes_
        self.n_classes_ = len(self.classes_)

        self._fit_labeled(Labeled(X, y))

        return self

    def predict_proba(self, X: Any) -> np.ndarray:
        """Predict class probabilities.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Features.

        Returns
        -------
        np.ndarray
            Predicted class probabilities, columns ordered as classes_.
        """
        return np.array([leaf.proba for leaf in self._leaves(X)])

    def predict(self, X: Any) -> np.ndarray:
        """Predict target.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Features.

        Returns
        -------
        np.ndarray
            Predicted class labels.
        """
        outcomes = np.array([leaf.outcome for leaf in self._leaves(X)], dtype=int)
        return self._label_encoder.inverse_transform(outcomes)


class RegressionTree(RegressorMixin, BaseCARTree):
    """Regression tree.

    Parameters
    ----------
    criterion : {"mse", "mae"}, default="mse"
        Impurity criterion for split selection.

    max_depth : int, default=None
        Maximum depth to grow tree.

    max_leaf_size : int, default=3
        Maximum number of samples a branch may hold before it is split again.

    max_features : {"sqrt", "log2"}, int, or float, default=None
        Maximum number of features to search at each split.

    threshold_method : {"exact", "random", "histogram", "percentile"}, default="exact"
        Method to calculate thresholds on a continuous feature used during split selection.

    max_thresholds : {"sqrt", "log2"}, int, or float, default=None
        Maximum number of thresholds to use for split selection.

    tolerance : float, default=0.0
        Stop searching for a split once child impurity is at or below this value.

    random_state : int, default=None
        Random seed.

    verbose : int, default=1
        Controls verbosity when fitting.

    Attributes
    ----------
    feature_importances_ : np.ndarray
        Feature importances for each feature.

    n_features_in_ : int
        Number of features seen during fit.

    feature_names_in_ : List[str]
        List of feature names seen during fit.

    tree_ : CART
        Underlying decision tree object.
    """

    _tree_type = "regressor"

    def __init__(
        self,
        *,
        criterion: str = "mse",
        max_depth: Optional[int] = None,
        max_leaf_size: int = 3,
        max_features: Optional[Union[str, float, int]] = None,
        threshold_method: str = "exact",
        max_thresholds: Optional[Union[str, float, int]] = None,
        tolerance: float = 0.0,
        random_state: Optional[int] = None,
        verbose: int = 1,
    ) -> None:
        super().__init__(
            criterion=criterion,
            max_depth=max_depth,
            max_leaf_size=max_leaf_size,
            max_features=max_features,
            threshold_method=threshold_method,
            max_thresholds=max_thresholds,
            tolerance=tolerance,
            random_state=random_state,
            verbose=verbose,
        )

    def _splitter(self, random_state: int) -> Splitter:
        return RegressorSplitter(self.criterion, **self._common_params(random_state))

    def _terminator(self) -> Terminator:
        return MeanTerminator(criterion=self.criterion)

    def fit(self, X: Any, y: Any) -> "RegressionTree":
        """Train estimator.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Training features, categorical features as strings.

        y : array-like of shape (n_samples,)
            Training target.

        Returns
        -------
        self
            Fitted estimator.
        """
        X, y = self._validate_data_fit(X, y)
        self._fit_labeled(Labeled(X, y.astype(float)))

        return self

    def predict(self, X: Any) -> np.ndarray:
        """Predict target.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Features.

        Returns
        -------
        np.ndarray
            Predicted target.
        """
        return np.array([leaf.outcome for leaf in self._leaves(X)], dtype=float)
