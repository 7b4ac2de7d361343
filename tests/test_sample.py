import pytest

from isoforest import Feature, Sample


def test_feature_value_is_float():
    feature = Feature("x", 3)

    assert feature.value == 3.0
    assert isinstance(feature.value, float)


def test_feature_is_immutable():
    feature = Feature("x", 1.0)

    with pytest.raises(AttributeError):
        feature.value = 2.0


def test_get_returns_none_for_absent_feature():
    sample = Sample.from_values("s", {"x": 1.5})

    assert sample.get("x") == 1.5
    assert sample.get("y") is None
    assert "x" in sample
    assert "y" not in sample


def test_duplicate_feature_names_rejected():
    sample = Sample("s", [Feature("x", 1.0)])

    with pytest.raises(ValueError):
        sample.add_feature(Feature("x", 2.0))


def test_add_features_keeps_insertion_order():
    sample = Sample("s")
    sample.add_features([Feature("b", 1.0), Feature("a", 2.0)])

    assert sample.feature_names == ["b", "a"]
    assert len(sample) == 2
    assert [f.value for f in sample] == [1.0, 2.0]


def test_copy_is_independent():
    sample = Sample.from_values("s", {"x": 1.0})
    copied = sample.copy()
    sample.add_feature(Feature("y", 2.0))

    assert copied == Sample.from_values("s", {"x": 1.0})
    assert "y" not in copied
