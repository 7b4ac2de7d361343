"""Verify that parallel tree building and scoring reproduce sequential results."""

import numpy as np

from conftest import uniform_samples
from isoforest import Forest


def generate_test_data(n_samples=300, random_state=42):
    """Uniform inliers with a tenth of the points shifted away as anomalies."""
    rng = np.random.RandomState(random_state)
    normal = uniform_samples(rng, int(n_samples * 0.9), 0.0, 25.0, name="normal")
    anomalies = uniform_samples(rng, int(n_samples * 0.1), 40.0, 65.0, name="anomaly")
    return normal + anomalies


def _fit(n_jobs, samples):
    forest = Forest(num_trees=20, sub_sampling_size=64, n_jobs=n_jobs, random_state=12345)
    forest.add_samples(samples)
    forest.create()
    return forest


def test_forest_reproducible_across_n_jobs():
    train = generate_test_data(random_state=42)
    test = generate_test_data(n_samples=50, random_state=43)

    forest_seq = _fit(1, train)
    forest_par = _fit(2, train)

    assert forest_seq.to_dict() == forest_par.to_dict()
    assert np.array_equal(forest_seq.scores(test), forest_par.scores(test))
    assert np.array_equal(
        forest_seq.normalized_scores(test), forest_par.normalized_scores(test)
    )
