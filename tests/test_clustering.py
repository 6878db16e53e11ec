import numpy as np
import pandas as pd
import pytest

from cytomark.core.clustering import (
    cluster_analytes, cluster_contingency, cluster_samples, cluster_samples_divisive,
)
from cytomark.core.data_loader import SampleTable
from cytomark.exceptions import DegenerateDataError


def _two_group_table(seed=0):
    rng = np.random.default_rng(seed)
    low = rng.normal(0.0, 0.3, size=(10, 4))
    high = rng.normal(5.0, 0.3, size=(10, 4))
    frame = pd.DataFrame(np.vstack([low, high]), columns=["IL1", "IL2", "IL3", "IL4"],
                         index=[f"S{i:02d}" for i in range(20)])
    frame["Karyotype"] = ["D21"] * 10 + ["T21"] * 10
    return SampleTable(frame=frame, analytes=["IL1", "IL2", "IL3", "IL4"])


def test_agglomerative_recovers_groups():
    table = _two_group_table()
    result = cluster_samples(table, n_clusters=2)

    assert result.n_clusters == 2
    assert result.labels.iloc[:10].nunique() == 1
    assert result.labels.iloc[10:].nunique() == 1
    assert result.labels.iloc[0] != result.labels.iloc[-1]
    assert sorted(result.order) == sorted(table.sample_ids)


def test_divisive_recovers_groups():
    result = cluster_samples_divisive(_two_group_table(), n_clusters=2, random_state=0)
    assert result.linkage is None
    assert result.labels.iloc[:10].nunique() == 1
    assert result.labels.iloc[0] != result.labels.iloc[-1]


def test_contingency_against_karyotype():
    table = _two_group_table()
    result = cluster_samples(table, n_clusters=2)
    contingency = cluster_contingency(result.labels, table.frame["Karyotype"])

    assert contingency.to_numpy().sum() == 20
    assert sorted(contingency.max(axis=1).tolist()) == [10, 10]


def test_correlated_analytes_cluster_together():
    rng = np.random.default_rng(1)
    base = rng.normal(size=50)
    frame = pd.DataFrame({
        "IL1": base,
        "IL2": base + rng.normal(scale=0.05, size=50),
        "IL3": -base + rng.normal(scale=0.05, size=50),
        "IL4": rng.normal(size=50),
    })
    table = SampleTable(frame=frame, analytes=list(frame.columns))

    result = cluster_analytes(table, n_clusters=2)
    assert result.labels["IL1"] == result.labels["IL2"] == result.labels["IL3"]
    assert result.labels["IL4"] != result.labels["IL1"]


def test_too_few_samples():
    table = _two_group_table()
    single = table.filter(table.frame.index == "S00", "single")
    with pytest.raises(DegenerateDataError):
        cluster_samples(single, n_clusters=1)


def test_unknown_linkage():
    with pytest.raises(ValueError):
        cluster_samples(_two_group_table(), method="median-ish")
