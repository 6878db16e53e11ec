import pandas as pd
import pytest

from cytomark.core.splitting import generate_split
from cytomark.exceptions import ConfigurationError, DegenerateDataError


def test_split_sizes_and_partition():
    ids = [f"S{i:03d}" for i in range(100)]
    split = generate_split(ids, train_fraction=0.75, seed=1)

    assert len(split.train_ids) == 75
    assert len(split.test_ids) == 25
    assert set(split.train_ids).isdisjoint(split.test_ids)
    assert set(split.train_ids) | set(split.test_ids) == set(ids)


def test_train_size_is_floored():
    split = generate_split(list(range(10)), train_fraction=0.66, seed=0)
    assert len(split.train_ids) == 6


def test_same_seed_same_split():
    ids = [f"S{i}" for i in range(50)]
    assert generate_split(ids, seed=11) == generate_split(ids, seed=11)


def test_different_seed_different_split():
    ids = [f"S{i}" for i in range(50)]
    assert generate_split(ids, seed=1).train_ids != generate_split(ids, seed=2).train_ids


@pytest.mark.parametrize("fraction", [0.0, 1.0, -0.2, 1.5])
def test_invalid_fraction(fraction):
    with pytest.raises(ConfigurationError):
        generate_split(list(range(10)), train_fraction=fraction)


def test_empty_partition_rejected():
    with pytest.raises(ConfigurationError):
        generate_split(["A", "B"], train_fraction=0.4)


def test_duplicate_ids_rejected():
    with pytest.raises(ValueError):
        generate_split(["A", "A", "B"])


def test_require_both_classes():
    ids = ["A", "B", "C", "D"]
    labels = pd.Series(["normal", "normal", "normal", "obese"], index=ids)
    split = generate_split(ids, train_fraction=0.5, seed=0)

    counts = split.class_counts(labels)
    assert sum(counts["train"].values()) == 2
    with pytest.raises(DegenerateDataError):
        split.require_both_classes(labels, ["normal", "obese"])
