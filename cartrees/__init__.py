# flake8: noqa
import sys

from ._cart import CART, CARTParameters
from ._dataset import Dataset, Labeled, Unlabeled
from ._node import BinaryNode, Comparison, Leaf, Node
from ._registry import ClassifierCriteria, RegressorCriteria, Registry, ThresholdMethods
from ._strategy import (
    BestSplitter,
    ClassifierSplitter,
    ClassProbabilityTerminator,
    MeanTerminator,
    RegressorSplitter,
    Splitter,
    Terminator,
)
from ._tree import ClassificationTree, RegressionTree
from .exceptions import CARTreesError, InvalidConfigurationError

# Growing and dumping recurse once per level of the tree
sys.setrecursionlimit(max(sys.getrecursionlimit(), 10_000))
