"""Demonstration driver: trains forests on synthetic uniform data and
compares the scores of control samples with those of outliers.

Usage:
    python -m isoforest.demo [--outfile points.csv] [--dump] [--seed 7]
"""

from __future__ import annotations

import argparse
import logging
import time
from typing import TextIO

import numpy as np

from .config import ForestConfig, load_config
from .forest import Forest
from .sample import Feature, Sample

logger = logging.getLogger(__name__)

NUM_TRAINING_SAMPLES = 100
NUM_TEST_SAMPLES = 10
NUM_TREES_IN_FOREST = 10
SUBSAMPLING_SIZE = 10


def make_sample(name: str, x: float, y: float) -> Sample:
    return Sample(name, [Feature("x", x), Feature("y", y)])


def run_scenario(
    rng: np.random.RandomState,
    config: ForestConfig,
    num_training_samples: int,
    num_test_samples: int,
    out: TextIO | None = None,
    dump: bool = False,
) -> dict[str, float]:
    """
    Trains a forest on points from [0, 25)^2 and scores control points from
    the same range and outliers from [20, 45)^2.
    Args:
        rng: Random source for the synthetic points.
        config: Forest settings.
        num_training_samples: Size of the training pool.
        num_test_samples: Number of control and of outlier queries.
        out: Optional stream receiving "kind,x,y" lines for every point.
        dump: Whether to print the trees of the forest.
    Returns:
        Average raw and normalized scores for both query groups, and the
        elapsed time in seconds.
    """
    forest = Forest.from_config(config)
    start = time.perf_counter()

    for _ in range(num_training_samples):
        x, y = rng.randint(25, size=2)
        forest.add_sample(make_sample("training", x, y))
        if out is not None:
            out.write(f"training,{x},{y}\n")

    forest.create()

    control = []
    for _ in range(num_test_samples):
        x, y = rng.randint(25, size=2)
        control.append(make_sample("control sample", x, y))
        if out is not None:
            out.write(f"control,{x},{y}\n")

    outliers = []
    for _ in range(num_test_samples):
        x, y = 20 + rng.randint(25, size=2)
        outliers.append(make_sample("outlier sample", x, y))
        if out is not None:
            out.write(f"outlier,{x},{y}\n")

    results = {
        "control_score": float(np.mean(forest.scores(control))),
        "control_normalized_score": float(np.mean(forest.normalized_scores(control))),
        "outlier_score": float(np.mean(forest.scores(outliers))),
        "outlier_normalized_score": float(np.mean(forest.normalized_scores(outliers))),
        "elapsed": time.perf_counter() - start,
    }

    if dump:
        forest.dump()
    return results


def _print_results(results: dict[str, float]) -> None:
    print(f"Average of control test samples: {results['control_score']}")
    print(f"Average of control test samples (normalized): {results['control_normalized_score']}")
    print(f"Average of outlier test samples: {results['outlier_score']}")
    print(f"Average of outlier test samples (normalized): {results['outlier_normalized_score']}")
    print(f"Total time: {results['elapsed']:.4f} seconds.")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--outfile", help="Write every generated point to this CSV file.")
    parser.add_argument("--dump", action="store_true", help="Print the trees of each forest.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for data and forests.")
    parser.add_argument("--config", help="YAML file with forest settings.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )

    base = load_config(args.config) if args.config else ForestConfig()
    if args.seed is not None:
        base = base.model_copy(update={"random_state": args.seed})
    rng = np.random.RandomState(args.seed)

    scenarios = [
        (1, NUM_TRAINING_SAMPLES, NUM_TEST_SAMPLES, NUM_TREES_IN_FOREST, SUBSAMPLING_SIZE),
        (2, NUM_TRAINING_SAMPLES * 10, NUM_TEST_SAMPLES * 10,
         NUM_TREES_IN_FOREST * 10, SUBSAMPLING_SIZE * 10),
    ]

    out = open(args.outfile, "w", encoding="utf-8") if args.outfile else None
    try:
        for number, n_train, n_test, n_trees, sub_size in scenarios:
            config = base.model_copy(
                update={"num_trees": n_trees, "sub_sampling_size": sub_size}
            )
            logger.info("Running test %d", number)
            print(f"Test {number}:")
            print("-------")
            _print_results(run_scenario(rng, config, n_train, n_test, out=out, dump=args.dump))
            print()
    finally:
        if out is not None:
            out.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
