import numpy as np
from numba import njit

from ._registry import ThresholdMethods  # noqa: F401


@ThresholdMethods.register("exact")
@njit(cache=True, fastmath=True, nogil=True)
def exact(x: np.ndarray, max_thresholds: int, random_state: int) -> np.ndarray:
    """Unique midpoints in array.

    Parameters
    ----------
    x : np.ndarray
        Continuous feature.

    max_thresholds : int
        Maximum number of thresholds to generate. Kept here for API compatibility with other threshold methods.

    random_state : int
        Random seed. Kept here for API compatibility with other threshold methods.

    Returns
    -------
    np.ndarray
        Thresholds in array.
    """
    values = np.unique(x)
    return (values[:-1] + values[1:]) / 2


@ThresholdMethods.register("random")
def random(x: np.ndarray, max_thresholds: int, random_state: int) -> np.ndarray:
    """Random sample of unique midpoints in array.

    Parameters
    ----------
    x : np.ndarray
        Continuous feature.

    max_thresholds : int
        Maximum number of thresholds to generate.

    random_state : int
        Random seed.

    Returns
    -------
    np.ndarray
        Thresholds in array.
    """
    prng = np.random.RandomState(random_state)

    values = np.unique(x)
    midpoints = (values[:-1] + values[1:]) / 2
    size = min(len(midpoints), max_thresholds)

    return prng.choice(midpoints, size=size, replace=False)


@ThresholdMethods.register("percentile")
@njit(cache=True, fastmath=True, nogil=True)
def percentile(x: np.ndarray, max_thresholds: int, random_state: int) -> np.ndarray:
    """Percentiles of array.

    Parameters
    ----------
    x : np.ndarray
        Continuous feature.

    max_thresholds : int
        Maximum number of thresholds to generate.

    random_state : int
        Random seed. Kept here for API compatibility with other threshold methods.

    Returns
    -------
    np.ndarray
        Thresholds in array.
    """
    q = np.linspace(0, 100, max_thresholds + 2)[1:-1]
    return np.unique(np.percentile(x, q))


@ThresholdMethods.register("histogram")
@njit(cache=True, fastmath=True, nogil=True)
def histogram(x: np.ndarray, max_thresholds: int, random_state: int) -> np.ndarray:
    """Interior histogram bin edges of array.

    Parameters
    ----------
    x : np.ndarray
        Continuous feature.

    max_thresholds : int
        Maximum number of thresholds to generate.

    random_state : int
        Random seed. Kept here for API compatibility with other threshold methods.

    Returns
    -------
    np.ndarray
        Thresholds in array.
    """
    edges = np.histogram(x, max_thresholds + 1)[1]
    return np.unique(edges[1:-1])
