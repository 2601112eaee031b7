from math import ceil
from typing import Any, Dict, Optional, Type, TypeVar, Union

import numpy as np
from numba import njit
from pydantic import BaseModel, ValidationError

from .exceptions import InvalidConfigurationError

# Substitutes for a zero denominator when normalizing
EPSILON = 1e-8

M = TypeVar("M", bound=BaseModel)


@njit(cache=True, fastmath=True, nogil=True)
def estimate_proba(y: np.ndarray, n_classes: int) -> np.ndarray:
    """Estimate class probabilities.

    Note: This function assumes that for K classes, the labels are 0, 1, ..., K-1.

    Parameters
    ----------
    y : np.ndarray
        Integer encoded labels.

    n_classes : int
        Number of classes.

    Returns
    -------
    np.ndarray
        Estimated probabilities for each class.
    """
    proba = np.zeros(n_classes)
    for label in y:
        proba[label] += 1.0

    return proba / len(y)


@njit(cache=True, fastmath=True, nogil=True)
def estimate_mean(y: np.ndarray) -> float:
    """Estimate the mean.

    Parameters
    ----------
    y : np.ndarray
        Input data.

    Returns
    -------
    float
        Estimated mean.
    """
    return np.mean(y)


def calculate_max_value(*, n_values: int, desired_max: Optional[Union[str, float, int]] = None) -> int:
    """Calculate the maximum desired value based on a fixed input size.

    Parameters
    ----------
    n_values : int
        Total number of values.

    desired_max : Union[str, float, int], default=None
        Desired number of values, either a count, a fraction of ``n_values``, "sqrt" or "log2".

    Returns
    -------
    int
        Maximum value, at least 1 and at most ``n_values``.
    """
    if type(desired_max) is int:
        total = min(desired_max, n_values)
    elif desired_max == "sqrt":
        total = ceil(np.sqrt(n_values))
    elif desired_max == "log2":
        total = ceil(np.log2(n_values)) if n_values > 1 else 1
    elif type(desired_max) is float:
        total = ceil(n_values * desired_max)
    else:
        total = n_values

    return max(1, min(n_values, total))


def is_categorical(value: Any) -> bool:
    """Whether a split or feature value is categorical.

    Parameters
    ----------
    value : Any
        Single value.

    Returns
    -------
    bool
        True for strings, False otherwise.
    """
    return isinstance(value, str)


def comparison_mask(x: np.ndarray, value: Any) -> np.ndarray:
    """Boolean mask of the values routed to the left branch of a comparison.

    Categorical values go left on equality, everything else goes left when strictly less than the value.

    Parameters
    ----------
    x : np.ndarray
        Column of feature values.

    value : Any
        Split value.

    Returns
    -------
    np.ndarray
        Mask where True marks the left branch.
    """
    if is_categorical(value):
        if x.dtype != object:
            return np.zeros(len(x), dtype=bool)
        return np.asarray(x == value, dtype=bool)

    return np.asarray(x < value, dtype=bool)


def validate_parameters(model: Type[M], params: Dict[str, Any]) -> M:
    """Validate hyperparameters against a parameter model.

    Parameters
    ----------
    model : Type[BaseModel]
        Model describing valid hyperparameters.

    params : Dict[str, Any]
        Hyperparameters.

    Returns
    -------
    BaseModel
        Validated parameters.
    """
    try:
        return model(**params)
    except ValidationError as e:
        reasons = "; ".join(
            f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise InvalidConfigurationError(f"Invalid hyperparameters for ({model.__name__}): {reasons}") from e
