import numpy as np
from numba import njit
from scipy.stats import entropy as _entropy

from ._registry import ClassifierCriteria, RegressorCriteria  # noqa: F401


@ClassifierCriteria.register("gini")
@njit(cache=True, fastmath=True, nogil=True)
def gini_index(y: np.ndarray) -> float:
    """Calculate gini index.

    Parameters
    ----------
    y : np.ndarray
        Integer encoded labels.

    Returns
    -------
    float
        Gini index, 0 for a pure node.
    """
    n = len(y)
    if n == 0:
        return 0.0

    p = np.bincount(y) / n
    return 1.0 - np.sum(p * p)


@ClassifierCriteria.register("entropy")
def entropy(y: np.ndarray) -> float:
    """Calculate Shannon entropy in bits.

    Parameters
    ----------
    y : np.ndarray
        Integer encoded labels.

    Returns
    -------
    float
        Entropy, 0 for a pure node.
    """
    if len(y) == 0:
        return 0.0

    return float(_entropy(np.bincount(y), base=2))


@RegressorCriteria.register("mse")
@njit(cache=True, fastmath=True, nogil=True)
def mean_squared_error(y: np.ndarray) -> float:
    """Mean squared error around the mean.

    Parameters
    ----------
    y : np.ndarray
        Target.

    Returns
    -------
    float
        Variance of target.
    """
    if len(y) == 0:
        return 0.0

    dev = y - y.mean()
    dev *= dev

    return np.mean(dev)


@RegressorCriteria.register("mae")
def mean_absolute_error(y: np.ndarray) -> float:
    """Mean absolute error around the median.

    Parameters
    ----------
    y : np.ndarray
        Target.

    Returns
    -------
    float
        Mean absolute deviation from the median.
    """
    if len(y) == 0:
        return 0.0

    return float(np.mean(np.abs(y - np.median(y))))
