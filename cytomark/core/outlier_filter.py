"""
PCA projection and outlier removal.

The projection is fitted on complete rows only (centred, unscaled), samples
beyond a fixed score on one component are removed and the projection is
recomputed on what remains.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.decomposition import PCA

from .data_loader import SampleTable
from ..exceptions import InputDataError

logger = logging.getLogger(__name__)


@dataclass
class PCAResult:
    """Scores, loadings and explained variance of a fitted projection."""

    scores: pd.DataFrame
    loadings: pd.DataFrame
    explained_variance_ratio: np.ndarray
    pca: PCA

    def component(self, k: int) -> pd.Series:
        """Scores of the 1-based component ``k``."""
        return self.scores[f"PC{k}"]


@dataclass
class OutlierResult:
    table: SampleTable
    removed_ids: List[str]
    initial_pca: PCAResult
    final_pca: PCAResult


def compute_pca(table: SampleTable, n_components: int = 10) -> PCAResult:
    """
    Fit a PCA on the complete rows of the feature matrix.

    Args:
        table: Sample table with log-transformed analytes
        n_components: Maximum number of components to keep

    Returns:
        PCAResult with scores indexed by sample id
    """
    complete = table.complete_features()
    n_dropped = len(table) - len(complete)
    if n_dropped > 0:
        logger.info(f"PCA: {n_dropped} samples with missing analyte values excluded from projection")

    if complete.shape[0] < 2 or complete.shape[1] < 1:
        raise InputDataError(f"Not enough complete data for PCA: {complete.shape}")

    n_components = min(n_components, complete.shape[0], complete.shape[1])
    pca = PCA(n_components=n_components)
    scores = pca.fit_transform(complete.values)

    names = [f"PC{i + 1}" for i in range(n_components)]
    scores_df = pd.DataFrame(scores, index=complete.index, columns=names)
    loadings = pd.DataFrame(pca.components_.T, index=complete.columns, columns=names)

    logger.info("PCA explained variance: " + ", ".join(
        f"{n}={v:.1%}" for n, v in zip(names[:3], pca.explained_variance_ratio_[:3])
    ))
    return PCAResult(scores=scores_df, loadings=loadings,
                     explained_variance_ratio=pca.explained_variance_ratio_, pca=pca)


def remove_pca_outliers(table: SampleTable,
                        component: int = 1,
                        threshold: float = -10.0,
                        direction: str = "below",
                        n_components: int = 10) -> OutlierResult:
    """
    Remove samples whose score on ``component`` lies beyond ``threshold``.

    Samples that were not projected (missing values) are kept.

    Args:
        table: Sample table
        component: 1-based principal component index
        threshold: Score cutoff
        direction: 'below' removes scores < threshold, 'above' removes scores > threshold
        n_components: Components computed for the projection

    Returns:
        OutlierResult with the filtered table and both projections
    """
    if direction not in ("below", "above"):
        raise ValueError(f"Unknown outlier direction: {direction}")

    initial = compute_pca(table, n_components)
    if f"PC{component}" not in initial.scores.columns:
        raise InputDataError(f"Component PC{component} not available "
                             f"(only {initial.scores.shape[1]} components)")
    scores = initial.component(component)

    if direction == "below":
        outliers = scores[scores < threshold]
    else:
        outliers = scores[scores > threshold]

    removed_ids = outliers.index.tolist()
    logger.info(f"PC{component} outliers ({direction} {threshold}): {len(removed_ids)} samples")

    keep = ~table.sample_ids.isin(removed_ids)
    filtered = table.filter(keep, f"PC{component} {direction} {threshold}")
    final = compute_pca(filtered, n_components)

    return OutlierResult(table=filtered, removed_ids=removed_ids,
                         initial_pca=initial, final_pca=final)


def plot_pca_scores(pca_result: PCAResult,
                    metadata: Optional[pd.DataFrame] = None,
                    color_by: Optional[str] = None,
                    components=(1, 2),
                    output_path: Optional[str] = None,
                    show: bool = False):
    """Scatter plot of two components, optionally coloured by a metadata column."""
    x_name, y_name = (f"PC{c}" for c in components)
    plot_df = pca_result.scores[[x_name, y_name]].copy()
    hue = None
    if metadata is not None and color_by is not None:
        plot_df[color_by] = metadata.reindex(plot_df.index)[color_by]
        hue = color_by

    fig, ax = plt.subplots(figsize=(7, 6))
    sns.scatterplot(data=plot_df, x=x_name, y=y_name, hue=hue, ax=ax, s=25, alpha=0.8)
    ratio = pca_result.explained_variance_ratio
    ax.set_xlabel(f"{x_name} ({ratio[components[0] - 1]:.1%})")
    ax.set_ylabel(f"{y_name} ({ratio[components[1] - 1]:.1%})")
    ax.set_title("PCA scores")
    fig.tight_layout()

    if output_path is not None:
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=300, bbox_inches='tight')
    if show:
        plt.show()
    plt.close(fig)


def plot_scree(pca_result: PCAResult, output_path: Optional[str] = None, show: bool = False):
    ratio = pca_result.explained_variance_ratio
    fig, ax = plt.subplots(figsize=(7, 4))
    ax.bar(range(1, len(ratio) + 1), ratio, color='steelblue')
    ax.plot(range(1, len(ratio) + 1), np.cumsum(ratio), color='darkred', marker='o')
    ax.set_xlabel("Principal component")
    ax.set_ylabel("Explained variance ratio")
    fig.tight_layout()

    if output_path is not None:
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=300, bbox_inches='tight')
    if show:
        plt.show()
    plt.close(fig)
