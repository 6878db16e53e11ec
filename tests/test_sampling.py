import numpy as np
import pandas as pd
import pytest

from cytomark.core.sampling import SamplingManager


def _imbalanced():
    rng = np.random.default_rng(0)
    X = pd.DataFrame(rng.normal(size=(30, 3)), columns=["IL1", "IL2", "IL3"])
    y = pd.Series(["normal"] * 22 + ["obese"] * 8, name="BMI_class")
    return X, y


def test_none_is_identity():
    X, y = _imbalanced()
    X_out, y_out = SamplingManager("none").apply_sampling(X, y)
    assert X_out is X and y_out is y


@pytest.mark.parametrize("method, size", [
    ("random_undersample", 16),
    ("random_oversample", 44),
    ("smote", 44),
])
def test_resampling_balances_classes(method, size):
    X, y = _imbalanced()
    X_out, y_out = SamplingManager(method, random_state=1).apply_sampling(X, y)

    assert len(X_out) == len(y_out) == size
    assert y_out.value_counts().nunique() == 1
    assert list(X_out.columns) == list(X.columns)
    assert list(X_out.index) == list(y_out.index)


def test_unknown_method():
    with pytest.raises(ValueError):
        SamplingManager("bootstrap")
