"""
This module contains the node types and the IsolationTree class that
implement a single randomized isolation tree over named-feature samples.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence, Union

import numpy as np
import numpy.typing as npt

from .sample import Sample

EULER_GAMMA = 0.5772156649

MISSING_POLICIES = ("right", "left")


def average_path_length(n: int) -> float:
    """
    Expected path length of an unsuccessful search in a binary search tree
    built over n points, c(n) in the Isolation Forest paper. Used both as the
    correction added at external nodes and to normalize forest scores.
    Args:
        n: Number of points.
    Returns:
        c(n), with c(0) = c(1) = 0 and c(2) = 1. For n = 2 the exact
        value is returned on purpose instead of the approximation, which
        would give about 0.154.
    """
    if n <= 1:
        return 0.0
    if n == 2:
        # ln(1) + gamma badly underestimates H(1) = 1
        return 1.0
    HARMONIC_NUMBER = math.log(n - 1) + EULER_GAMMA
    return 2.0 * HARMONIC_NUMBER - 2.0 * (n - 1) / n


def height_limit_for(sub_sampling_size: int) -> int:
    """
    Args:
        sub_sampling_size: Number of samples each tree is built from.
    Returns:
        ceil(log2(sub_sampling_size)), the height at which growth stops.
    """
    if sub_sampling_size < 1:
        raise ValueError("sub_sampling_size must be a positive integer.")
    return math.ceil(math.log2(sub_sampling_size))


@dataclass(frozen=True)
class ExternalNode:
    """
    Leaf of an isolation tree.
    Attributes:
        size: Number of training samples that reached this node.
    """
    size: int


@dataclass(frozen=True)
class InternalNode:
    """
    Split of an isolation tree.
    Attributes:
        split_feature: Name of the feature tested at this node.
        split_value: Samples with a value below it go left, the rest go right.
        left: Subtree for values < split_value.
        right: Subtree for values >= split_value.
    """
    split_feature: str
    split_value: float
    left: Node
    right: Node


Node = Union[InternalNode, ExternalNode]


def _goes_left(value: float | None, split_value: float, missing: str) -> bool:
    if value is None:
        return missing == "left"
    return value < split_value


def build_node(
    samples: Sequence[Sample],
    current_height: int,
    height_limit: int,
    rng: np.random.RandomState,
    missing: str = "right",
) -> Node:
    """
    Recursively partition the samples using random features and random
    split values.
    Args:
        samples: Training samples that reached this node.
        current_height: Depth of the node being built (root is 0).
        height_limit: Depth at which growth stops.
        rng: Random source for feature and split value selection.
        missing: Side taken by samples lacking the split feature.
    Returns:
        Root of the built subtree.
    """
    if len(samples) <= 1 or current_height >= height_limit:
        return ExternalNode(size=len(samples))

    # Sorted so the choice does not depend on string hash randomization
    feature_names = sorted({name for sample in samples for name in sample.feature_names})
    if not feature_names:
        return ExternalNode(size=len(samples))

    split_feature = feature_names[rng.randint(len(feature_names))]
    values = [v for v in (sample.get(split_feature) for sample in samples) if v is not None]
    lower, upper = min(values), max(values)
    if lower == upper:
        return ExternalNode(size=len(samples))

    split_value = float(rng.uniform(lower, upper))
    # uniform draws from [lower, upper); the split must be strictly above lower
    while split_value == lower:
        split_value = float(rng.uniform(lower, upper))

    samples_left = []
    samples_right = []
    for sample in samples:
        if _goes_left(sample.get(split_feature), split_value, missing):
            samples_left.append(sample)
        else:
            samples_right.append(sample)

    return InternalNode(
        split_feature=split_feature,
        split_value=split_value,
        left=build_node(samples_left, current_height + 1, height_limit, rng, missing),
        right=build_node(samples_right, current_height + 1, height_limit, rng, missing),
    )


class IsolationTree:
    """
    Single Isolation Tree for anomaly detection.
    Attributes:
        missing: Side ("right" or "left") taken by samples lacking a split feature.
        root: Root node of the tree.
        height_limit: Depth at which tree growth stopped.
        sample_size: Number of samples the tree was built from.
        feature_limits: Padded [min, max] of every feature in the subsample.
        PADDING: Padding added to feature limits so plots show boundary points.
    """

    def __init__(self, missing: str = "right") -> None:
        """
        Initialize an IsolationTree.
        Args:
            missing: Routing policy for samples lacking a split feature.
        """
        if missing not in MISSING_POLICIES:
            raise ValueError(f"missing must be one of {MISSING_POLICIES}, got {missing!r}.")
        self.missing = missing

        self.root: Node | None = None
        self.height_limit: int | None = None
        self.sample_size = 0
        self.feature_limits: dict[str, list[float]] | None = None

        self.PADDING = 1.0

    def fit(
        self,
        samples: Sequence[Sample],
        sub_sampling_size: int,
        rng: np.random.RandomState,
    ) -> None:
        """
        Draws a subsample without replacement and builds the tree structure
        by partitioning it.
        Args:
            samples: Training pool, must be non-empty.
            sub_sampling_size: Number of samples to build the tree from.
                If >= len(samples), the whole pool is used.
            rng: Random source for subsampling and splitting.
        """
        if sub_sampling_size < len(samples):
            subsample_indices = rng.choice(len(samples), sub_sampling_size, replace=False)
            samples_train = [samples[i] for i in subsample_indices]
        else:
            samples_train = list(samples)

        limits: dict[str, list[float]] = {}
        for sample in samples_train:
            for feature in sample:
                bounds = limits.setdefault(feature.name, [feature.value, feature.value])
                bounds[0] = min(bounds[0], feature.value)
                bounds[1] = max(bounds[1], feature.value)
        self.feature_limits = {
            name: [lower - self.PADDING, upper + self.PADDING]
            for name, (lower, upper) in limits.items()
        }

        self.sample_size = len(samples_train)
        self.height_limit = height_limit_for(sub_sampling_size)
        self.root = build_node(samples_train, 0, self.height_limit, rng, self.missing)

    def path_length(self, query: Sample) -> float:
        """
        Args:
            query: Sample to isolate.
        Returns:
            Number of edges from the root to the external node reached by
            the query, plus c(size) of that node.
        """
        assert self.root is not None

        node = self.root
        edges = 0
        while isinstance(node, InternalNode):
            if _goes_left(query.get(node.split_feature), node.split_value, self.missing):
                node = node.left
            else:
                node = node.right
            edges += 1
        return edges + average_path_length(node.size)

    def get_path_lengths(self, queries: Sequence[Sample]) -> npt.NDArray[np.floating[Any]]:
        """
        Args:
            queries: Samples to isolate.
        Returns:
            Path lengths for each sample of shape (n_samples,).
        """
        return np.array([self.path_length(query) for query in queries], dtype=np.float64)

    def depth(self) -> int:
        """Number of edges from the root to the deepest external node."""
        assert self.root is not None

        deepest = 0
        stack: list[tuple[Node, int]] = [(self.root, 0)]
        while stack:
            node, level = stack.pop()
            if isinstance(node, InternalNode):
                stack.append((node.left, level + 1))
                stack.append((node.right, level + 1))
            else:
                deepest = max(deepest, level)
        return deepest

    def num_nodes(self) -> int:
        assert self.root is not None

        count = 0
        stack: list[Node] = [self.root]
        while stack:
            node = stack.pop()
            count += 1
            if isinstance(node, InternalNode):
                stack.extend((node.left, node.right))
        return count
