"""Isolation Forest implementation for anomaly detection.

This package provides the Isolation Forest algorithm over samples made of
named numeric features:
- sample: Feature and Sample containers
- tree: randomized isolation trees and the c(n) normalization term
- forest: the ensemble, from training pool to normalized anomaly scores
- dump: text, dictionary and plot renderings of built trees
"""

from .config import ForestConfig, load_config
from .errors import (
    DegenerateConfigError,
    EmptyPoolError,
    InvalidStateError,
    IsolationForestError,
)
from .forest import Forest
from .sample import Feature, Sample
from .tree import ExternalNode, InternalNode, IsolationTree, average_path_length

__all__ = [
    "DegenerateConfigError",
    "EmptyPoolError",
    "ExternalNode",
    "Feature",
    "Forest",
    "ForestConfig",
    "InternalNode",
    "InvalidStateError",
    "IsolationForestError",
    "IsolationTree",
    "Sample",
    "average_path_length",
    "load_config",
]
