import weakref
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Tuple, Union

import numpy as np

if TYPE_CHECKING:
    from ._dataset import Dataset


@dataclass(eq=False)
class BinaryNode:
    """Node in a binary tree.

    The parent is held through a weak reference, ownership flows strictly from parent to child. Nodes compare by
    identity, so the same node may be attached under both edges of its parent.
    """

    _parent: Optional["weakref.ReferenceType[Comparison]"] = field(default=None, init=False, repr=False)

    @property
    def parent(self) -> Optional["Comparison"]:
        """Parent node, None for the root or once the parent has been garbage collected."""
        return self._parent() if self._parent is not None else None

    def _set_parent(self, node: "Comparison") -> None:
        self._parent = weakref.ref(node)


@dataclass(eq=False)
class Leaf(BinaryNode):
    """Terminal node holding a prediction.

    Parameters
    ----------
    outcome : Any
        Predicted class label for classification trees, central tendency estimate for regression trees.

    n_samples : int, default=0
        Number of training samples that reached the leaf.

    impurity : float, default=0.0
        Impurity of the training samples that reached the leaf.

    proba : np.ndarray, optional (default=None)
        Class probabilities, only populated by classification terminators.
    """

    outcome: Any
    n_samples: int = 0
    impurity: float = 0.0
    proba: Optional[np.ndarray] = field(default=None, repr=False)


@dataclass(eq=False)
class Comparison(BinaryNode):
    """Decision node comparing a single column against a value.

    Parameters
    ----------
    column : int
        Index location of feature or column.

    value : Union[str, float]
        Split value. Strings are categories matched on equality, anything else is a threshold.

    groups : Tuple[Dataset, Dataset], optional (default=None)
        Rows routed left and right by the comparison. Consumed once by ``take_groups`` while the tree is grown.

    impurity_decrease : float, default=0.0
        Decrease in impurity achieved by the split.

    n_samples : int, default=0
        Number of training samples partitioned by the node.
    """

    column: int
    value: Union[str, float]
    groups: Optional[Tuple["Dataset", "Dataset"]] = field(default=None, repr=False)
    impurity_decrease: float = 0.0
    n_samples: int = 0
    left: Optional["Node"] = field(default=None, init=False, repr=False)
    right: Optional["Node"] = field(default=None, init=False, repr=False)

    def take_groups(self) -> Tuple["Dataset", "Dataset"]:
        """Return the left and right row groups and release them from the node.

        Returns
        -------
        Tuple[Dataset, Dataset]
            Rows routed left and right.
        """
        if self.groups is None:
            raise ValueError(f"Groups of comparison on column ({self.column}) already consumed or never set")

        groups, self.groups = self.groups, None
        return groups

    def attach_left(self, node: "Node") -> None:
        """Attach node as left child."""
        node._set_parent(self)
        self.left = node
        self._release_groups()

    def attach_right(self, node: "Node") -> None:
        """Attach node as right child."""
        node._set_parent(self)
        self.right = node
        self._release_groups()

    def _release_groups(self) -> None:
        if self.left is not None and self.right is not None:
            self.groups = None


Node = Union[Comparison, Leaf]
