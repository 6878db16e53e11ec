import numpy as np
import pandas as pd
import pytest

from cytomark.core.data_loader import SampleTable
from cytomark.core.outlier_filter import compute_pca, remove_pca_outliers
from cytomark.exceptions import InputDataError


def _table(n=40, p=8, seed=0):
    rng = np.random.default_rng(seed)
    values = rng.normal(5.0, 1.0, size=(n, p))
    values[0] += 20.0
    frame = pd.DataFrame(values, columns=[f"IL{i}" for i in range(p)],
                         index=[f"S{i:02d}" for i in range(n)])
    frame["Karyotype"] = "T21"
    return SampleTable(frame=frame, analytes=[f"IL{i}" for i in range(p)])


def test_pca_scores_indexed_by_sample():
    table = _table()
    result = compute_pca(table, n_components=5)

    assert list(result.scores.columns) == ["PC1", "PC2", "PC3", "PC4", "PC5"]
    assert list(result.scores.index) == list(table.sample_ids)
    assert result.explained_variance_ratio[0] > 0.5


def test_extreme_sample_removed():
    table = _table()
    score = compute_pca(table).component(1)["S00"]
    direction = "below" if score < 0 else "above"
    threshold = -10.0 if score < 0 else 10.0

    outcome = remove_pca_outliers(table, component=1, threshold=threshold, direction=direction)

    assert outcome.removed_ids == ["S00"]
    assert len(outcome.table) == len(table) - 1
    assert "S00" not in outcome.final_pca.scores.index


def test_threshold_is_strict():
    table = _table()
    scores = compute_pca(table).component(1)
    cutoff = scores.min()

    outcome = remove_pca_outliers(table, component=1, threshold=cutoff, direction="below")
    assert outcome.removed_ids == []


def test_incomplete_samples_are_kept():
    table = _table()
    frame = table.frame.copy()
    frame.loc["S05", "IL3"] = np.nan
    table = SampleTable(frame=frame, analytes=table.analytes)

    outcome = remove_pca_outliers(table, threshold=-1e6)
    assert "S05" in outcome.table.sample_ids
    assert "S05" not in outcome.initial_pca.scores.index


def test_unknown_component_rejected():
    with pytest.raises(InputDataError):
        remove_pca_outliers(_table(p=3), component=5)


def test_unknown_direction_rejected():
    with pytest.raises(ValueError):
        remove_pca_outliers(_table(), direction="sideways")
