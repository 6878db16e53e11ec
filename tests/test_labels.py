import math

import numpy as np
import pandas as pd
import pytest

from cytomark.core.data_loader import SampleTable
from cytomark.core.labels import (
    class_counts, classify_bmi, classify_bmi_series, compute_bmi, derive_bmi_labels,
    filter_binary_classes,
)
from cytomark.exceptions import DegenerateDataError


@pytest.mark.parametrize("value, expected", [
    (25.0, "normal"),
    (29.9, "overweight"),
    (30.0, "obese"),
    (35.0, "obese"),
    (18.0, "normal"),
    (25.01, "overweight"),
])
def test_classify_bmi_boundaries(value, expected):
    assert classify_bmi(value) == expected


def test_obese_check_precedes_normal_when_cutoffs_coincide():
    assert classify_bmi(27.0, lower=27.0, upper=27.0) == "obese"


def test_classify_missing_is_none():
    assert classify_bmi(float("nan")) is None


def test_compute_bmi_scalar():
    assert compute_bmi(80.0, 200.0) == pytest.approx(20.0)


@pytest.mark.parametrize("weight, height", [
    (70.0, 0.0),
    (70.0, np.nan),
    (np.nan, 170.0),
    (-5.0, 170.0),
])
def test_compute_bmi_undefined(weight, height):
    assert math.isnan(compute_bmi(weight, height))


def test_compute_bmi_non_negative_for_positive_inputs():
    rng = np.random.default_rng(0)
    weight = pd.Series(rng.uniform(1, 200, 50))
    height = pd.Series(rng.uniform(50, 220, 50))
    assert (compute_bmi(weight, height) >= 0).all()


def test_classify_series_is_ordered_categorical():
    labels = classify_bmi_series(pd.Series([20.0, 27.0, 31.0, np.nan]))
    assert labels.cat.ordered
    assert list(labels.cat.categories) == ["normal", "overweight", "obese"]
    assert labels.isna().iloc[3]


def _table(weights, heights):
    ids = [f"S{i}" for i in range(len(weights))]
    frame = pd.DataFrame({
        "Weight_kg": weights,
        "Height_cm": heights,
        "IL6": np.arange(len(weights), dtype=float),
    }, index=ids)
    return SampleTable(frame=frame, analytes=["IL6"])


def test_derive_labels_excludes_missing_bmi():
    table = _table([60.0, 80.0, np.nan, 100.0, 70.0], [175.0, 170.0, 170.0, 165.0, 0.0])
    labelled = derive_bmi_labels(table, "Weight_kg", "Height_cm")

    assert list(labelled.sample_ids) == ["S0", "S1", "S3"]
    assert class_counts(labelled.frame["BMI_class"]) == {"normal": 1, "overweight": 1, "obese": 1}


def test_filter_binary_drops_middle_class():
    table = _table([60.0, 80.0, 100.0, 55.0], [175.0, 170.0, 165.0, 170.0])
    binary = filter_binary_classes(derive_bmi_labels(table, "Weight_kg", "Height_cm"))

    assert list(binary.sample_ids) == ["S0", "S2", "S3"]
    assert list(binary.frame["BMI_class"].cat.categories) == ["normal", "obese"]


def test_filter_binary_raises_when_class_empty():
    table = _table([60.0, 80.0, 55.0], [175.0, 170.0, 170.0])
    labelled = derive_bmi_labels(table, "Weight_kg", "Height_cm")
    with pytest.raises(DegenerateDataError, match="obese"):
        filter_binary_classes(labelled)
