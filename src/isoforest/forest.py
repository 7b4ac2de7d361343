"""
This module contains the Forest class that implements an ensemble
of isolation trees for robust anomaly detection.
"""

from __future__ import annotations

import logging
import sys
import time
from typing import Any, Iterable, Sequence, TextIO, Union

import numpy as np
import numpy.typing as npt
from joblib import Parallel, delayed

from .config import ForestConfig
from .dump import dump_trees, plot_partition_space_2D, tree_to_dict
from .errors import DegenerateConfigError, EmptyPoolError, InvalidStateError
from .sample import Sample
from .tree import MISSING_POLICIES, IsolationTree, average_path_length

logger = logging.getLogger(__name__)

RandomStateLike = Union[int, np.random.RandomState, None]


def _fit_single_tree(
    seed: int,
    samples: Sequence[Sample],
    sub_sampling_size: int,
    missing: str,
) -> IsolationTree:
    """
    Worker function to fit an isolation tree with a given seed.
    This function is designed to be called in parallel using joblib.
    Each worker receives an integer seed to ensure reproducibility.

    Args:
        seed: Random seed for this tree (integer).
        samples: Training pool.
        sub_sampling_size: Number of samples to use for building the tree.
        missing: Routing policy for samples lacking a split feature.
    Returns:
        Fitted IsolationTree instance.
    """
    rng = np.random.RandomState(seed)

    tree = IsolationTree(missing=missing)
    tree.fit(samples, sub_sampling_size, rng)
    return tree


def _score_single_tree(
    tree: IsolationTree,
    samples: Sequence[Sample],
) -> npt.NDArray[np.floating[Any]]:
    """
    Worker function to compute path lengths on a single tree.
    This function is designed to be called in parallel using joblib.
    Args:
        tree: Fitted IsolationTree instance.
        samples: Query samples.
    Returns:
        Path lengths for each sample of shape (n_samples,).
    """
    return tree.get_path_lengths(samples)


class Forest:
    """
    Ensemble of Isolation Trees for anomaly detection.

    Samples are added to a training pool, then the forest is created once:
    each tree is trained on a random subsample of the pool, and queries are
    scored by averaging path lengths across all trees.

    Attributes:
        num_trees: Number of trees in the ensemble.
        sub_sampling_size: Number of pool samples each tree is built from.
        n_jobs: Number of parallel jobs to run. -1 means using all processors.
        random_state: Seed or random source for reproducibility.
        missing: Side ("right" or "left") taken by samples lacking a split feature.
        contamination: Expected proportion of anomalies in the training pool.
        expected_path_length: c(sub_sampling_size), set by create.
        anomaly_threshold: Normalized score at or above which samples are anomalies.
        trees: List of fitted IsolationTree instances, empty until create.
    """
    def __init__(
        self,
        num_trees: int,
        sub_sampling_size: int = 256,
        n_jobs: int = 1,
        random_state: RandomStateLike = None,
        missing: str = "right",
        contamination: float | None = None,
    ) -> None:
        """
        Initialize a Forest.
        Args:
            num_trees: Number of isolation trees to create in the ensemble.
            sub_sampling_size: Size of the random subsample each tree is built
                from. The whole pool is used when it is smaller.
            n_jobs: Number of parallel jobs to run for tree building and scoring.
                - If 1 (default): sequential execution (no parallelization)
                - If -1: use all available processors
                - If > 1: use specified number of processors
            random_state: Random seed or numpy RandomState. If None, results
                vary between runs. With a fixed seed, sequential and parallel
                modes build identical trees.
            missing: Side taken at a split by samples lacking the split
                feature, "right" (default) or "left".
            contamination: Expected proportion of anomalies in (0, 0.5]. If
                None, the anomaly threshold is 0.5.
        """
        if int(num_trees) != num_trees or num_trees < 1:
            raise ValueError(f"num_trees must be a positive integer, got {num_trees!r}.")
        if int(sub_sampling_size) != sub_sampling_size or sub_sampling_size < 1:
            raise ValueError(
                f"sub_sampling_size must be a positive integer, got {sub_sampling_size!r}."
            )
        if missing not in MISSING_POLICIES:
            raise ValueError(f"missing must be one of {MISSING_POLICIES}, got {missing!r}.")
        if contamination is not None and not 0.0 < contamination <= 0.5:
            raise ValueError(f"contamination must be in (0, 0.5], got {contamination!r}.")

        self.num_trees = int(num_trees)
        self.sub_sampling_size = int(sub_sampling_size)
        self.n_jobs = n_jobs
        self.random_state = random_state
        self.missing = missing
        self.contamination = contamination

        self.expected_path_length: float | None = None
        self.anomaly_threshold: float | None = None

        self.trees: list[IsolationTree] = []
        self._pool: list[Sample] = []

    @classmethod
    def from_config(cls, config: ForestConfig) -> Forest:
        return cls(
            num_trees=config.num_trees,
            sub_sampling_size=config.sub_sampling_size,
            n_jobs=config.n_jobs,
            random_state=config.random_state,
            missing=config.missing,
            contamination=config.contamination,
        )

    @property
    def is_created(self) -> bool:
        return bool(self.trees)

    @property
    def pool_size(self) -> int:
        return len(self._pool)

    def add_sample(self, sample: Sample) -> None:
        """
        Adds a copy of the sample to the training pool.
        Args:
            sample: Training sample.
        """
        if not isinstance(sample, Sample):
            raise TypeError(f"Expected a Sample, got {type(sample).__name__}.")
        if self.is_created:
            raise InvalidStateError("Cannot add samples after the forest has been created.")
        self._pool.append(sample.copy())

    def add_samples(self, samples: Iterable[Sample]) -> None:
        for sample in samples:
            self.add_sample(sample)

    def _random_source(self) -> np.random.RandomState:
        if isinstance(self.random_state, np.random.RandomState):
            return self.random_state
        return np.random.RandomState(self.random_state)

    def create(self) -> None:
        """
        Creates num_trees isolation trees, each trained on a random subsample
        of the training pool, then calculates the anomaly threshold. Either
        every tree is built or the forest stays empty.
        """
        if self.is_created:
            logger.warning("create called on a forest that already has %d trees", len(self.trees))
            raise InvalidStateError("The forest has already been created.")
        if not self._pool:
            logger.warning("create called with an empty training pool")
            raise EmptyPoolError("Cannot create a forest without training samples.")
        if self.contamination is not None and self.sub_sampling_size <= 1:
            raise DegenerateConfigError(
                "contamination needs normalized scores, which are undefined "
                "for sub_sampling_size <= 1."
            )

        logger.info(
            "Building %d trees from %d samples (sub_sampling_size=%d, n_jobs=%d)",
            self.num_trees, len(self._pool), self.sub_sampling_size, self.n_jobs,
        )
        start = time.perf_counter()

        rng = self._random_source()
        MAX_INT = np.iinfo(np.int32).max
        seeds = rng.randint(MAX_INT, size=self.num_trees)

        # Build trees in parallel or sequentially
        if self.n_jobs == 1:
            trees = []
            for seed in seeds:
                tree = _fit_single_tree(seed, self._pool, self.sub_sampling_size, self.missing)
                trees.append(tree)
        else:
            trees_list = Parallel(n_jobs=self.n_jobs, backend="loky")(
                delayed(_fit_single_tree)(seed, self._pool, self.sub_sampling_size, self.missing)
                for seed in seeds
            )
            trees = list(trees_list)  # type: ignore[arg-type]

        if logger.isEnabledFor(logging.DEBUG):
            for tree_idx, tree in enumerate(trees):
                logger.debug(
                    "Tree %d: %d samples, depth %d, %d nodes",
                    tree_idx, tree.sample_size, tree.depth(), tree.num_nodes(),
                )

        expected_path_length = average_path_length(self.sub_sampling_size)

        if self.contamination is None:
            anomaly_threshold = 0.5
        else:
            mean_depths = self._mean_path_lengths(trees, self._pool)
            pool_scores = 2.0 ** (-mean_depths / expected_path_length)
            anomaly_threshold = float(np.quantile(pool_scores, 1.0 - self.contamination))

        # Published last so a failure above leaves the forest unbuilt
        self.expected_path_length = expected_path_length
        self.anomaly_threshold = anomaly_threshold
        self.trees = trees

        logger.info(
            "Built %d trees in %.3f seconds (anomaly threshold %.4f)",
            len(self.trees), time.perf_counter() - start, self.anomaly_threshold,
        )

    def _mean_path_lengths(
        self,
        trees: list[IsolationTree],
        samples: Sequence[Sample],
    ) -> npt.NDArray[np.floating[Any]]:
        samples = list(samples)
        if self.n_jobs == 1:
            depth_matrix = np.zeros((len(samples), len(trees)))
            for tree_idx, tree in enumerate(trees):
                depth_matrix[:, tree_idx] = tree.get_path_lengths(samples)
        else:
            depth_results = Parallel(n_jobs=self.n_jobs, backend="loky")(
                delayed(_score_single_tree)(tree, samples) for tree in trees
            )
            depth_matrix = np.column_stack(list(depth_results))

        logger.debug("Scored %d samples on %d trees", len(samples), len(trees))
        # Columns are in tree order, so the reduction order is fixed
        return np.mean(depth_matrix, axis=1)

    def _check_created(self) -> None:
        if not self.is_created:
            raise InvalidStateError("The forest must be created before it is used.")

    def scores(self, samples: Sequence[Sample]) -> npt.NDArray[np.floating[Any]]:
        """
        Average path length E[h(x)] across all trees. Smaller values
        indicate anomalies.
        Args:
            samples: Query samples.
        Returns:
            Average path lengths for each sample of shape (n_samples,).
        """
        self._check_created()
        return self._mean_path_lengths(self.trees, samples)

    def score(self, query: Sample) -> float:
        """
        Args:
            query: Sample to score.
        Returns:
            Average path length of the query across all trees.
        """
        return float(self.scores([query])[0])

    def normalized_scores(self, samples: Sequence[Sample]) -> npt.NDArray[np.floating[Any]]:
        """
        Anomaly scores are in (0, 1] where higher scores indicate anomalies.
        Based on the formula: 2^(-mean_path_length / c(sub_sampling_size)).
        Args:
            samples: Query samples.
        Returns:
            Anomaly scores for each sample of shape (n_samples,).
        """
        self._check_created()
        if self.sub_sampling_size <= 1:
            raise DegenerateConfigError(
                "Normalized scores are undefined for sub_sampling_size <= 1."
            )
        assert self.expected_path_length is not None

        mean_depths = self.scores(samples)
        return 2.0 ** (-mean_depths / self.expected_path_length)

    def normalized_score(self, query: Sample) -> float:
        return float(self.normalized_scores([query])[0])

    def predict(self, samples: Sequence[Sample]) -> npt.NDArray[np.int_]:
        """
        Predict anomaly labels for samples.
        Args:
            samples: Query samples.
        Returns:
            Binary labels (0=normal, 1=anomaly) of shape (n_samples,).
        """
        scores_arr = self.normalized_scores(samples)
        return (scores_arr >= self.anomaly_threshold).astype(int)

    def dump(self, stream: TextIO | None = None) -> None:
        """
        Writes an indented text rendering of every tree.
        Args:
            stream: Writable text stream, sys.stdout by default.
        """
        self._check_created()
        dump_trees(self.trees, sys.stdout if stream is None else stream)

    def to_dict(self) -> dict[str, Any]:
        self._check_created()
        return {
            "num_trees": self.num_trees,
            "sub_sampling_size": self.sub_sampling_size,
            "expected_path_length": self.expected_path_length,
            "anomaly_threshold": self.anomaly_threshold,
            "trees": [tree_to_dict(tree) for tree in self.trees],
        }

    def plot_partition_space_2D(self, tree_idx: int, x_feature: str, y_feature: str) -> None:
        """
        Visualize the space partitioning of one tree, projected onto two features.
        """
        self._check_created()
        plot_partition_space_2D(self.trees[tree_idx], x_feature, y_feature)
