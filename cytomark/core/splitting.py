"""
Train/test split generation.

The split is a seeded random draw without stratification: exactly
floor(fraction * N) identifiers go to the train set. Because classes are not
balanced across partitions, callers inspect :meth:`SplitAssignment.class_counts`
and may enforce :meth:`SplitAssignment.require_both_classes`.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Sequence

import pandas as pd
from sklearn.model_selection import train_test_split

from .labels import class_counts
from ..exceptions import ConfigurationError, DegenerateDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitAssignment:
    """Disjoint train/test partition of sample identifiers."""

    train_ids: List[str]
    test_ids: List[str]
    train_fraction: float
    seed: int

    @property
    def n_samples(self) -> int:
        return len(self.train_ids) + len(self.test_ids)

    def class_counts(self, labels: pd.Series) -> Dict[str, Dict[str, int]]:
        """Per-partition class counts of ``labels`` (indexed by sample id)."""
        return {
            'train': class_counts(labels.loc[self.train_ids]),
            'test': class_counts(labels.loc[self.test_ids]),
        }

    def require_both_classes(self, labels: pd.Series, classes: Sequence[str]) -> None:
        """Raise ``DegenerateDataError`` if a partition lacks one of ``classes``."""
        counts = self.class_counts(labels)
        for partition, partition_counts in counts.items():
            missing = [c for c in classes if partition_counts.get(c, 0) == 0]
            if missing:
                raise DegenerateDataError(
                    f"{partition} partition has no samples of class(es) {missing}; "
                    f"counts: {partition_counts}. Try another seed or train fraction."
                )

    def as_dict(self) -> Dict:
        return {
            'train_fraction': self.train_fraction,
            'seed': self.seed,
            'n_train': len(self.train_ids),
            'n_test': len(self.test_ids),
            'train_ids': list(self.train_ids),
            'test_ids': list(self.test_ids),
        }


def generate_split(sample_ids: Sequence, train_fraction: float = 0.75, seed: int = 42) -> SplitAssignment:
    """
    Draw a seeded random train/test partition.

    Args:
        sample_ids: Sample identifiers; their order matters for reproducibility
        train_fraction: Fraction of samples assigned to train
        seed: Random seed

    Returns:
        SplitAssignment with floor(train_fraction * N) train identifiers
    """
    ids = list(sample_ids)
    n = len(ids)
    if len(set(ids)) != n:
        raise ValueError("Sample identifiers must be unique")
    if not 0 < train_fraction < 1:
        raise ConfigurationError(f"train_fraction must be in (0, 1), got {train_fraction}")

    n_train = int(math.floor(train_fraction * n))
    if n_train < 1 or n_train >= n:
        raise ConfigurationError(
            f"A train fraction of {train_fraction} leaves an empty partition for {n} samples"
        )

    train_ids, test_ids = train_test_split(
        ids, train_size=n_train, random_state=seed, shuffle=True, stratify=None
    )
    logger.info(f"Split {n} samples: {len(train_ids)} train / {len(test_ids)} test (seed={seed})")
    return SplitAssignment(train_ids=list(train_ids), test_ids=list(test_ids),
                           train_fraction=train_fraction, seed=seed)
