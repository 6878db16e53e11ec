"""
Evaluation of hard class predictions against held-out labels.

Counts are exact categorical matches against a designated positive class.
Precision and recall are NaN (not 0) when their denominator is zero, i.e.
when the positive class is never predicted or never observed; a warning is
logged in that case.
"""

import logging
import math
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, Optional, Sequence

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

from ..exceptions import InputDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfusionCounts:
    tp: int
    fp: int
    tn: int
    fn: int

    @property
    def n(self) -> int:
        return self.tp + self.fp + self.tn + self.fn


@dataclass(frozen=True)
class EvaluationResult:
    """Confusion counts for one model on one dataset plus derived metrics."""

    counts: ConfusionCounts
    positive_class: str
    accuracy: float
    precision: float
    recall: float
    model_name: Optional[str] = None
    dataset: Optional[str] = None

    @property
    def precision_defined(self) -> bool:
        return not math.isnan(self.precision)

    @property
    def recall_defined(self) -> bool:
        return not math.isnan(self.recall)

    def as_dict(self) -> Dict:
        row = {
            'model': self.model_name,
            'dataset': self.dataset,
            'positive_class': self.positive_class,
            **asdict(self.counts),
            'accuracy': self.accuracy,
            'precision': self.precision,
            'recall': self.recall,
        }
        return row

    def confusion_table(self, negative_label: str = "other") -> pd.DataFrame:
        """2x2 table with predictions in rows and true labels in columns."""
        c = self.counts
        labels = [self.positive_class, negative_label]
        return pd.DataFrame([[c.tp, c.fp], [c.fn, c.tn]],
                            index=pd.Index(labels, name="predicted"),
                            columns=pd.Index(labels, name="true"))


def _as_labels(values: Iterable) -> np.ndarray:
    if isinstance(values, pd.Series):
        return values.astype(object).to_numpy()
    return np.asarray(list(values), dtype=object)


def confusion_counts(predicted: Sequence, true: Sequence, positive) -> ConfusionCounts:
    """
    Count tp/fp/tn/fn by exact match with the positive class.

    Args:
        predicted: Predicted labels
        true: True labels, parallel to ``predicted``
        positive: The designated positive class

    Returns:
        ConfusionCounts
    """
    pred = _as_labels(predicted)
    obs = _as_labels(true)
    if len(pred) != len(obs):
        raise ValueError(f"Length mismatch: {len(pred)} predictions vs {len(obs)} true labels")
    if len(pred) == 0:
        raise InputDataError("Cannot evaluate an empty set of predictions")

    pred_pos = pred == positive
    obs_pos = obs == positive
    return ConfusionCounts(
        tp=int(np.sum(pred_pos & obs_pos)),
        fp=int(np.sum(pred_pos & ~obs_pos)),
        tn=int(np.sum(~pred_pos & ~obs_pos)),
        fn=int(np.sum(~pred_pos & obs_pos)),
    )


def _ratio(numerator: int, denominator: int, metric: str, reason: str, context: str) -> float:
    if denominator == 0:
        logger.warning(f"{metric} undefined{context}: {reason}; reported as NaN")
        return float('nan')
    return numerator / denominator


def evaluate(predicted: Sequence, true: Sequence, positive,
             model_name: Optional[str] = None, dataset: Optional[str] = None) -> EvaluationResult:
    """
    Compute confusion counts, accuracy, precision and recall.

    accuracy  = (tp + tn) / n
    precision = tp / (tp + fp)   NaN when the positive class is never predicted
    recall    = tp / (tp + fn)   NaN when the positive class is never observed
    """
    counts = confusion_counts(predicted, true, positive)
    context = f" for {model_name}" if model_name else ""

    precision = _ratio(counts.tp, counts.tp + counts.fp, "Precision",
                       f"positive class '{positive}' never predicted", context)
    recall = _ratio(counts.tp, counts.tp + counts.fn, "Recall",
                    f"positive class '{positive}' never observed", context)

    return EvaluationResult(
        counts=counts,
        positive_class=positive,
        accuracy=(counts.tp + counts.tn) / counts.n,
        precision=precision,
        recall=recall,
        model_name=model_name,
        dataset=dataset,
    )


def evaluate_model(model, X, y, positive, model_name: Optional[str] = None,
                   dataset: Optional[str] = None, **predict_kwargs) -> EvaluationResult:
    """Predict with a fitted model and evaluate against ``y``."""
    predicted = model.predict(X, **predict_kwargs)
    result = evaluate(predicted, y, positive, model_name=model_name, dataset=dataset)
    logger.info(f"{model_name or 'model'} [{dataset or 'data'}]: accuracy={result.accuracy:.4f}, "
                f"precision={result.precision:.4f}, recall={result.recall:.4f}")
    return result


def metrics_table(results: Iterable[EvaluationResult]) -> pd.DataFrame:
    """Stack several results into one table, one row per model/dataset."""
    return pd.DataFrame([r.as_dict() for r in results])


def plot_confusion(result: EvaluationResult, output_path: Optional[str] = None, show: bool = False):
    table = result.confusion_table()
    fig, ax = plt.subplots(figsize=(4.5, 4))
    sns.heatmap(table, annot=True, fmt='d', cmap='Blues', cbar=False, ax=ax)
    ax.set_title(result.model_name or "Confusion matrix")
    fig.tight_layout()
    if output_path is not None:
        fig.savefig(output_path, dpi=300, bbox_inches='tight')
    if show:
        plt.show()
    plt.close(fig)
