"""
Clinical label derivation.

BMI is computed from weight (kg) and height (cm) and binned into three
ordered classes. The middle class is discarded afterwards to obtain a
binary response.
"""

import logging
from typing import Dict, Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from .data_loader import SampleTable
from ..exceptions import DegenerateDataError

logger = logging.getLogger(__name__)

BMI_CLASSES = ["normal", "overweight", "obese"]


def compute_bmi(weight_kg, height_cm):
    """
    BMI = weight / (height in metres) ** 2.

    Missing, zero or negative inputs give NaN.
    """
    weight = pd.to_numeric(pd.Series(weight_kg), errors='coerce').astype(float)
    height = pd.to_numeric(pd.Series(height_cm), errors='coerce').astype(float)
    valid = (weight > 0) & (height > 0)

    bmi = weight.where(valid) / (height.where(valid) / 100.0) ** 2
    if np.isscalar(weight_kg) and np.isscalar(height_cm):
        return float(bmi.iloc[0])
    if isinstance(weight_kg, pd.Series):
        bmi.index = weight_kg.index
    return bmi


def classify_bmi(value: float, lower: float = 25.0, upper: float = 30.0) -> Optional[str]:
    """
    Assign a BMI value to one of three ordered classes.

    The obese check runs before the normal check, so a value equal to both
    cutoffs (lower == upper) is "obese".
    """
    if value is None or pd.isna(value):
        return None
    if value >= upper:
        return "obese"
    if value <= lower:
        return "normal"
    return "overweight"


def classify_bmi_series(values: pd.Series, lower: float = 25.0, upper: float = 30.0) -> pd.Series:
    """Vectorised :func:`classify_bmi` returning an ordered categorical."""
    labels = [classify_bmi(v, lower, upper) for v in values]
    return pd.Series(
        pd.Categorical(labels, categories=BMI_CLASSES, ordered=True),
        index=values.index,
        name="BMI_class",
    )


def class_counts(labels: Iterable) -> Dict[str, int]:
    """Count members per class, ignoring missing labels."""
    counts = pd.Series(list(labels)).dropna().value_counts()
    return {str(k): int(v) for k, v in counts.items()}


def derive_bmi_labels(table: SampleTable,
                      weight_column: str,
                      height_column: str,
                      lower: float = 25.0,
                      upper: float = 30.0) -> SampleTable:
    """
    Add ``BMI`` and ``BMI_class`` columns and drop samples without a BMI.

    Returns:
        New SampleTable restricted to samples with a defined BMI
    """
    bmi = compute_bmi(table.frame[weight_column], table.frame[height_column])
    labelled = table.with_column("BMI", bmi)
    labelled = labelled.with_column("BMI_class", classify_bmi_series(bmi, lower, upper))

    n_missing = int(bmi.isna().sum())
    if n_missing > 0:
        logger.warning(f"{n_missing} samples have missing or invalid weight/height; excluded from classification")

    labelled = labelled.filter(bmi.notna(), "missing BMI")
    logger.info(f"BMI classes: {class_counts(labelled.frame['BMI_class'])}")
    return labelled


def filter_binary_classes(table: SampleTable,
                          label_column: str = "BMI_class",
                          discard: str = "overweight",
                          expected: Sequence[str] = ("normal", "obese")) -> SampleTable:
    """
    Drop the ``discard`` class and check that both expected classes remain.

    Raises:
        DegenerateDataError: if an expected class has no members
    """
    labels = table.frame[label_column]
    binary = table.filter(labels != discard, f"discard '{discard}'")

    counts = class_counts(binary.frame[label_column])
    empty = [c for c in expected if counts.get(c, 0) == 0]
    if empty:
        raise DegenerateDataError(
            f"No samples in class(es) {empty} after filtering; counts: {counts}"
        )

    remaining = binary.frame[label_column]
    if isinstance(remaining.dtype, pd.CategoricalDtype):
        remaining = remaining.cat.remove_unused_categories()
        binary = binary.with_column(label_column, remaining)

    logger.info(f"Binary classes: {counts}")
    return binary
