import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from isoforest import Feature, Sample


def make_sample(x, y, name="sample"):
    return Sample(name, [Feature("x", x), Feature("y", y)])


def uniform_samples(rng, n, low, high, name="sample"):
    points = rng.uniform(low, high, size=(n, 2))
    return [make_sample(x, y, name) for x, y in points]


@pytest.fixture
def rng():
    return np.random.RandomState(42)


@pytest.fixture
def training_samples(rng):
    return uniform_samples(rng, 100, 0.0, 25.0, name="training")
