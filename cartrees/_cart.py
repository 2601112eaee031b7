from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, NonNegativeInt, PositiveInt

from ._dataset import Labeled
from ._node import Comparison, Leaf, Node
from ._strategy import Splitter, Terminator
from ._utils import EPSILON, validate_parameters


class CARTParameters(BaseModel):
    """Model for CART parameters."""

    max_depth: Optional[PositiveInt]
    max_leaf_size: PositiveInt
    verbose: NonNegativeInt


class CART:
    """Classification and regression tree.

    A binary tree of comparison nodes, grown greedily from the root by a split selection strategy until a branch is
    small enough or deep enough to be terminated with a leaf.

    Parameters
    ----------
    splitter : Splitter
        Strategy choosing the split at each comparison node.

    terminator : Terminator
        Strategy producing the leaf that terminates a branch.

    max_depth : int, default=None
        Maximum depth of a branch before it is forced to terminate, unlimited when None.

    max_leaf_size : int, default=3
        Maximum number of samples a branch may hold before it is split again.

    verbose : int, default=0
        Controls verbosity when growing.

    References
    ----------
    W. Y. Loh. (2011). Classification and Regression Trees.
    """

    def __init__(
        self,
        splitter: Splitter,
        terminator: Terminator,
        max_depth: Optional[int] = None,
        max_leaf_size: int = 3,
        verbose: int = 0,
    ) -> None:
        validate_parameters(
            CARTParameters, {"max_depth": max_depth, "max_leaf_size": max_leaf_size, "verbose": verbose}
        )
        self.splitter = splitter
        self.terminator = terminator
        self.verbose = verbose

        self._max_depth = max_depth
        self._max_leaf_size = max_leaf_size
        self._root: Optional[Node] = None
        self._splits = 0

    @property
    def max_depth(self) -> Optional[int]:
        """Maximum depth of a branch, None when unlimited."""
        return self._max_depth

    @property
    def max_leaf_size(self) -> int:
        """Maximum number of samples a branch may hold before it is split again."""
        return self._max_leaf_size

    @property
    def root(self) -> Optional[Node]:
        """Root node, None when the tree is bare."""
        return self._root

    def bare(self) -> bool:
        """Whether the tree has not been grown."""
        return self._root is None

    def complexity(self) -> int:
        """Number of splits, i.e. decisions, made while growing the tree."""
        return self._splits

    def grow(self, dataset: Labeled) -> "CART":
        """Insert a root node and recursively split the training data until a terminating condition is met.

        Growing again replaces the previous tree.

        Parameters
        ----------
        dataset : Labeled
            Training data.

        Returns
        -------
        self
            Grown tree.
        """
        if self.verbose > 1:
            print(f"Growing tree on ({dataset.num_rows}) samples and ({dataset.num_columns}) features")

        self._root = self.splitter.find_best_split(dataset, 0)
        self._splits = 1
        self._split(self._root, 1)

        return self

    def _split(self, current: Comparison, depth: int) -> None:
        """Recursively attach children to a comparison node.

        A branch terminates when all of its rows went to one side, when the maximum depth is reached, or when it
        holds no more than max_leaf_size samples.

        Parameters
        ----------
        current : Comparison
            Node whose row groups are consumed.

        depth : int
            Depth of the children of the node.
        """
        left, right = current.take_groups()

        if self.verbose > 2:
            print(
                f"Splitting column ({current.column}) at depth ({depth}) into ({left.num_rows}) and "
                f"({right.num_rows}) samples"
            )

        if left.empty() or right.empty():
            node = self.terminator.terminate(left.merge(right), depth)
            current.attach_left(node)
            current.attach_right(node)
            return

        if self._max_depth is not None and depth >= self._max_depth:
            current.attach_left(self.terminator.terminate(left, depth))
            current.attach_right(self.terminator.terminate(right, depth))
            return

        child = self._branch(left, depth)
        del left
        current.attach_left(child)
        if isinstance(child, Comparison):
            self._split(child, depth + 1)

        child = self._branch(right, depth)
        del right
        current.attach_right(child)
        if isinstance(child, Comparison):
            self._split(child, depth + 1)

    def _branch(self, dataset: Labeled, depth: int) -> Node:
        """Split a group again when it holds more than max_leaf_size samples, terminate it otherwise."""
        if dataset.num_rows > self._max_leaf_size:
            node = self.splitter.find_best_split(dataset, depth)
            self._splits += 1
            return node

        return self.terminator.terminate(dataset, depth)

    def search(self, sample: Sequence[Any]) -> Optional[Leaf]:
        """Search the tree for the leaf a sample falls in.

        Parameters
        ----------
        sample : Sequence[Any]
            Feature values of a single sample.

        Returns
        -------
        Leaf
            Leaf reached by the sample, None if the tree is bare or malformed.
        """
        current = self._root

        while current is not None:
            if isinstance(current, Comparison):
                value = current.value
                feature = sample[current.column]
                if isinstance(value, str):
                    go_left = feature == value
                else:
                    go_left = feature < value

                current = current.left if go_left else current.right
                continue

            if isinstance(current, Leaf):
                return current

            return None

        return None

    def feature_importances(self) -> Dict[int, float]:
        """Normalized importance of each column, computed from the impurity decrease of its splits.

        Returns
        -------
        Dict[int, float]
            Importance by column index, sorted by importance in descending order. Columns never split on are left
            out. Empty when the tree is bare.
        """
        if self._root is None:
            return {}

        importances: Dict[int, float] = {}
        for node in self.dump(self._root):
            if isinstance(node, Comparison):
                importances[node.column] = importances.get(node.column, 0.0) + node.impurity_decrease

        total = sum(importances.values()) or EPSILON

        return dict(
            sorted(
                ((column, importance / total) for column, importance in importances.items()),
                key=lambda item: item[1],
                reverse=True,
            )
        )

    def dump(self, current: Node) -> List[Node]:
        """All nodes reachable from a node, in pre-order.

        A leaf shared by both edges of a degenerate split is listed once per edge.

        Parameters
        ----------
        current : Node
            Starting node.

        Returns
        -------
        List[Node]
            Node, then the nodes of its left subtree, then the nodes of its right subtree.
        """
        if isinstance(current, Leaf):
            return [current]

        nodes = [current]
        if current.left is not None:
            nodes.extend(self.dump(current.left))
        if current.right is not None:
            nodes.extend(self.dump(current.right))

        return nodes

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(max_depth={self._max_depth}, max_leaf_size={self._max_leaf_size}, "
            f"splits={self._splits})"
        )
