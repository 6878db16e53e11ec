"""
Optional class re-balancing of the training partition.

The split itself is never stratified; when the train partition is strongly
imbalanced a sampler from imbalanced-learn can be applied to it before
fitting. The test partition is never resampled.
"""

import logging
from typing import Tuple

import pandas as pd
from imblearn.over_sampling import SMOTE, RandomOverSampler
from imblearn.under_sampling import NearMiss, RandomUnderSampler

logger = logging.getLogger(__name__)

SAMPLING_METHODS = ("none", "random_undersample", "random_oversample", "smote", "nearmiss")


class SamplingManager:
    """Applies one of :data:`SAMPLING_METHODS` to a feature matrix and its labels."""

    def __init__(self, method: str = "none", random_state: int = 42):
        if method not in SAMPLING_METHODS:
            raise ValueError(f"Unknown sampling method: {method}. Available: {list(SAMPLING_METHODS)}")
        self.method = method
        self.random_state = random_state

    def _sampler(self):
        if self.method == "random_undersample":
            return RandomUnderSampler(random_state=self.random_state)
        if self.method == "random_oversample":
            return RandomOverSampler(random_state=self.random_state)
        if self.method == "smote":
            return SMOTE(random_state=self.random_state)
        return NearMiss(version=1)

    def apply_sampling(self, X: pd.DataFrame, y: pd.Series) -> Tuple[pd.DataFrame, pd.Series]:
        """Resample ``X``/``y``; the returned frames get fresh synthetic row labels."""
        if self.method == "none":
            return X, y

        logger.info(f"Applying {self.method} sampling")
        labels = y.astype(object)
        X_resampled, y_resampled = self._sampler().fit_resample(X, labels)

        logger.info(f"Original class distribution: {dict(labels.value_counts())}")
        logger.info(f"Resampled class distribution: {dict(pd.Series(y_resampled).value_counts())}")

        index = [f"resampled_{i}" for i in range(len(y_resampled))]
        return (pd.DataFrame(X_resampled, columns=X.columns, index=index),
                pd.Series(list(y_resampled), index=index, name=y.name))
