"""
This module contains the Feature and Sample classes used to feed named
numeric data to the isolation forest.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping


@dataclass(frozen=True)
class Feature:
    """
    A named scalar value.
    Attributes:
        name: Name of the feature, unique within its sample.
        value: Numeric value of the feature.
    """
    name: str
    value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", float(self.value))


class Sample:
    """
    A named bag of features.

    Samples are sparse: a tree may split on a feature that a given sample
    does not carry, so lookups return None instead of raising.

    Attributes:
        name: Diagnostic label, not required to be unique.
    """
    def __init__(self, name: str = "", features: Iterable[Feature] = ()) -> None:
        self.name = name
        self._features: dict[str, Feature] = {}
        self.add_features(features)

    @classmethod
    def from_values(cls, name: str, values: Mapping[str, float]) -> Sample:
        """
        Args:
            name: Label of the new sample.
            values: Mapping of feature name to value.
        Returns:
            Sample holding one Feature per mapping entry.
        """
        return cls(name, (Feature(key, value) for key, value in values.items()))

    def add_feature(self, feature: Feature) -> None:
        if feature.name in self._features:
            raise ValueError(
                f"Sample {self.name!r} already has a feature named {feature.name!r}."
            )
        self._features[feature.name] = feature

    def add_features(self, features: Iterable[Feature]) -> None:
        for feature in features:
            self.add_feature(feature)

    def get(self, name: str) -> float | None:
        """
        Args:
            name: Feature name to look up.
        Returns:
            The feature value, or None if this sample lacks the feature.
        """
        feature = self._features.get(name)
        if feature is None:
            return None
        return feature.value

    @property
    def feature_names(self) -> list[str]:
        return list(self._features)

    def copy(self) -> Sample:
        # Features are frozen, so sharing them between copies is safe.
        return Sample(self.name, self._features.values())

    def __contains__(self, name: object) -> bool:
        return name in self._features

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._features.values())

    def __len__(self) -> int:
        return len(self._features)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sample):
            return NotImplemented
        return self.name == other.name and self._features == other._features

    def __repr__(self) -> str:
        values = ", ".join(f"{f.name}={f.value:g}" for f in self._features.values())
        return f"Sample({self.name!r}, {values})"
