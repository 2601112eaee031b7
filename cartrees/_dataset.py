from abc import ABCMeta, abstractmethod
from numbers import Real
from typing import Any, Callable, Iterator, List, Optional, Tuple, TypeVar

import numpy as np

from ._utils import comparison_mask, is_categorical

D = TypeVar("D", bound="Dataset")


def _as_samples(samples: Any) -> np.ndarray:
    """Cast samples to a 2d array, float when every value is numeric and object otherwise.

    Parameters
    ----------
    samples : array-like of shape (n_samples, n_features)
        Samples.

    Returns
    -------
    np.ndarray
        Samples as a 2d array.
    """
    # Object dtype stops numpy from coercing mixed rows to strings
    array = samples if isinstance(samples, np.ndarray) else np.array(samples, dtype=object)

    if array.ndim == 1 and array.size == 0:
        array = array.reshape(0, 0)
    if array.ndim != 2:
        raise ValueError(
            f"Samples should be a 2d array of rows with equal width, detected ({array.ndim}) dimensions"
        )

    if array.dtype.kind in "biuf":
        return array.astype(float, copy=False)
    if array.dtype.kind in "US":
        return array.astype(str).astype(object)
    if array.dtype == object:
        if all(isinstance(value, Real) for value in array.flat):
            return array.astype(float)
        return array

    raise ValueError(f"Unsupported data type for samples ({array.dtype}), expected numeric or string values")


class Dataset(metaclass=ABCMeta):
    """Ordered rows of a fixed number of feature columns.

    Warning: This class should not be used directly. Use derived classes instead.

    Parameters
    ----------
    samples : array-like of shape (n_samples, n_features)
        Samples, continuous features as numbers and categorical features as strings.
    """

    def __init__(self, samples: Any) -> None:
        self._samples = _as_samples(samples)

    @abstractmethod
    def _select(self: D, idx: np.ndarray) -> D:
        """New dataset of the same type holding the rows at idx."""
        pass

    @abstractmethod
    def _assign(self, idx: np.ndarray) -> None:
        """Keep only the rows at idx, in that order."""
        pass

    @abstractmethod
    def _replace(self: D, other: D) -> None:
        """Take over the rows of other."""
        pass

    @abstractmethod
    def _concatenate(self: D, other: D) -> D:
        """New dataset of the same type holding the rows of self followed by the rows of other."""
        pass

    @property
    def samples(self) -> np.ndarray:
        """Samples as a 2d array."""
        return self._samples

    @property
    def num_rows(self) -> int:
        """Number of rows."""
        return self._samples.shape[0]

    @property
    def num_columns(self) -> int:
        """Number of feature columns."""
        return self._samples.shape[1]

    def empty(self) -> bool:
        """Whether the dataset has no rows."""
        return self.num_rows == 0

    def row(self, index: int) -> np.ndarray:
        """Row at a position."""
        return self._samples[index]

    def column(self, index: int) -> np.ndarray:
        """Values of a feature column."""
        return self._samples[:, index]

    def column_type(self, index: int) -> str:
        """Type of a feature column.

        Parameters
        ----------
        index : int
            Column index.

        Returns
        -------
        str
            "categorical" for string valued columns, otherwise "continuous".
        """
        if self.empty() or self._samples.dtype != object:
            return "continuous"

        return "categorical" if is_categorical(self._samples[0, index]) else "continuous"

    def __len__(self) -> int:
        return self.num_rows

    def __getitem__(self, index: int) -> np.ndarray:
        return self.row(index)

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter(self._samples)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(num_rows={self.num_rows}, num_columns={self.num_columns})"

    def _partition_mask(self: D, mask: np.ndarray) -> Tuple[D, D]:
        idx = np.arange(self.num_rows)
        return self._select(idx[mask]), self._select(idx[~mask])

    def partition(self: D, predicate: Callable[[np.ndarray], Any]) -> Tuple[D, D]:
        """Partition rows in two groups using a predicate.

        Parameters
        ----------
        predicate : Callable[[np.ndarray], Any]
            Called with each row, rows with a truthy result go to the left group.

        Returns
        -------
        left : Dataset
            Rows that satisfied the predicate.

        right : Dataset
            Remaining rows.
        """
        mask = np.fromiter((bool(predicate(row)) for row in self._samples), dtype=bool, count=self.num_rows)
        return self._partition_mask(mask)

    def partition_on(self: D, column: int, value: Any) -> Tuple[D, D]:
        """Partition rows in two groups by comparing a column against a value.

        Categorical values send equal rows left, other values send rows strictly below the value left.

        Parameters
        ----------
        column : int
            Column index.

        value : Any
            Category or threshold.

        Returns
        -------
        left : Dataset
            Rows routed left.

        right : Dataset
            Rows routed right.
        """
        return self._partition_mask(comparison_mask(self.column(column), value))

    def _check_compatible(self, other: "Dataset") -> None:
        if isinstance(other, Labeled) != isinstance(self, Labeled):
            raise ValueError(
                f"Cannot combine ({self.__class__.__name__}) with ({other.__class__.__name__}), expected matching "
                "dataset types"
            )
        if not self.empty() and not other.empty() and self.num_columns != other.num_columns:
            raise ValueError(
                f"Cannot combine datasets with ({self.num_columns}) and ({other.num_columns}) columns"
            )

    def _concatenate_samples(self, other: "Dataset") -> np.ndarray:
        if other.empty():
            return self._samples
        if self.empty():
            return other._samples
        return np.concatenate([self._samples, other._samples])

    def merge(self: D, other: D) -> D:
        """Combine with another dataset.

        Parameters
        ----------
        other : Dataset
            Dataset whose rows are placed after the rows of this one.

        Returns
        -------
        Dataset
            New dataset holding the rows of both.
        """
        self._check_compatible(other)
        return self._concatenate(other)

    def append(self: D, other: D) -> D:
        """Add the rows of another dataset to the end, in place."""
        self._replace(self.merge(other))
        return self

    def prepend(self: D, other: D) -> D:
        """Add the rows of another dataset to the beginning, in place."""
        self._replace(other.merge(self))
        return self

    def head(self: D, n: int = 10) -> D:
        """New dataset with the first n rows."""
        return self._select(np.arange(min(n, self.num_rows)))

    def take(self: D, n: int = 1) -> D:
        """Remove the first n rows and return them as a new dataset."""
        return self.splice(0, n)

    def leave(self: D, n: int = 1) -> D:
        """Keep the first n rows and return the rest as a new dataset."""
        return self.splice(n, max(self.num_rows - n, 0))

    def splice(self: D, offset: int, n: int) -> D:
        """Remove n rows starting at offset and return them as a new dataset.

        Parameters
        ----------
        offset : int
            Position of first row to remove.

        n : int
            Number of rows to remove.

        Returns
        -------
        Dataset
            Removed rows.
        """
        if offset < 0 or n < 0:
            raise ValueError(f"Offset ({offset}) and number of rows ({n}) should be >= 0")

        idx = np.arange(self.num_rows)
        removed = (idx >= offset) & (idx < offset + n)
        spliced = self._select(idx[removed])
        self._assign(idx[~removed])

        return spliced

    def split(self: D, ratio: float = 0.5) -> Tuple[D, D]:
        """Split into two datasets.

        Parameters
        ----------
        ratio : float, default=0.5
            Fraction of rows in the first dataset.

        Returns
        -------
        Tuple[Dataset, Dataset]
            First ``floor(ratio * num_rows)`` rows and the remaining rows.
        """
        if not 0.0 < ratio < 1.0:
            raise ValueError(f"ratio ({ratio}) should be in range (0, 1)")

        n = int(ratio * self.num_rows)
        idx = np.arange(self.num_rows)
        return self._select(idx[:n]), self._select(idx[n:])

    def fold(self: D, k: int = 3) -> List[D]:
        """Split into k folds of equal size, leftover rows are dropped.

        Parameters
        ----------
        k : int, default=3
            Number of folds.

        Returns
        -------
        List[Dataset]
            Folds in row order.
        """
        if k < 2:
            raise ValueError(f"Number of folds ({k}) should be >= 2")

        n = self.num_rows // k
        return [self._select(np.arange(i * n, (i + 1) * n)) for i in range(k)]

    def randomize(self: D, random_state: Optional[int] = None) -> D:
        """Shuffle rows in place."""
        prng = np.random.RandomState(random_state)
        self._assign(prng.permutation(self.num_rows))
        return self

    def sort_by_column(self: D, column: int, descending: bool = False) -> D:
        """Sort rows in place by the values of a column."""
        idx = np.argsort(self.column(column), kind="stable")
        self._assign(idx[::-1] if descending else idx)
        return self


class Unlabeled(Dataset):
    """Dataset of samples without labels.

    Parameters
    ----------
    samples : array-like of shape (n_samples, n_features)
        Samples, continuous features as numbers and categorical features as strings.
    """

    def _select(self, idx: np.ndarray) -> "Unlabeled":
        dataset = Unlabeled.__new__(Unlabeled)
        dataset._samples = self._samples[idx]
        return dataset

    def _assign(self, idx: np.ndarray) -> None:
        self._samples = self._samples[idx]

    def _replace(self, other: "Unlabeled") -> None:
        self._samples = other._samples

    def _concatenate(self, other: "Unlabeled") -> "Unlabeled":
        return Unlabeled(self._concatenate_samples(other))


class Labeled(Dataset):
    """Dataset of samples with one label per row.

    Rows and labels are kept in the same order by every operation.

    Parameters
    ----------
    samples : array-like of shape (n_samples, n_features)
        Samples, continuous features as numbers and categorical features as strings.

    labels : array-like of shape (n_samples,)
        Labels.
    """

    def __init__(self, samples: Any, labels: Any) -> None:
        super().__init__(samples)

        labels = np.asarray(labels)
        if labels.ndim != 1:
            raise ValueError(f"Labels should be a 1d array, detected ({labels.ndim}) dimensions")
        if len(labels) != self.num_rows:
            raise ValueError(f"Different number of samples ({self.num_rows}) and labels ({len(labels)})")

        self._labels = labels

    @property
    def labels(self) -> np.ndarray:
        """Labels as a 1d array."""
        return self._labels

    def label(self, index: int) -> Any:
        """Label of the row at a position."""
        return self._labels[index]

    def possible_outcomes(self) -> np.ndarray:
        """Sorted unique labels."""
        return np.unique(self._labels)

    def sort_by_label(self, descending: bool = False) -> "Labeled":
        """Sort rows in place by their labels."""
        idx = np.argsort(self._labels, kind="stable")
        self._assign(idx[::-1] if descending else idx)
        return self

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(num_rows={self.num_rows}, num_columns={self.num_columns}, "
            f"num_outcomes={len(self.possible_outcomes())})"
        )

    def _select(self, idx: np.ndarray) -> "Labeled":
        dataset = Labeled.__new__(Labeled)
        dataset._samples = self._samples[idx]
        dataset._labels = self._labels[idx]
        return dataset

    def _assign(self, idx: np.ndarray) -> None:
        self._samples = self._samples[idx]
        self._labels = self._labels[idx]

    def _replace(self, other: "Labeled") -> None:
        self._samples = other._samples
        self._labels = other._labels

    def _concatenate(self, other: "Labeled") -> "Labeled":
        if other.empty():
            labels = self._labels
        elif self.empty():
            labels = other._labels
        else:
            labels = np.concatenate([self._labels, other._labels])

        return Labeled(self._concatenate_samples(other), labels)
