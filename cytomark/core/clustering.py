"""
Hierarchical clustering of samples and analytes.

Samples are clustered agglomeratively on their log-transformed analyte
profiles (complete rows only) or divisively with bisecting k-means.
Analytes are clustered on the correlation distance 1 - |rho|.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from scipy.cluster.hierarchy import linkage, dendrogram, fcluster
from scipy.spatial.distance import squareform
from sklearn.cluster import BisectingKMeans

from .data_loader import SampleTable
from ..exceptions import DegenerateDataError

logger = logging.getLogger(__name__)

LINKAGE_METHODS = ('ward', 'complete', 'average', 'single')


@dataclass
class ClusteringResult:
    """Cluster membership plus the tree it was cut from (None for divisive)."""

    labels: pd.Series
    linkage: Optional[np.ndarray]
    order: List[str]
    method: str

    @property
    def n_clusters(self) -> int:
        return int(self.labels.nunique())

    def sizes(self) -> Dict[int, int]:
        return {int(k): int(v) for k, v in self.labels.value_counts().sort_index().items()}


def _check_n_clusters(n_clusters: int, n_items: int, what: str):
    if n_items < 2:
        raise DegenerateDataError(f"At least 2 {what} are needed for clustering, got {n_items}")
    if not 1 <= n_clusters <= n_items:
        raise ValueError(f"n_clusters must be between 1 and {n_items}, got {n_clusters}")


def cluster_samples(table: SampleTable, n_clusters: int = 3, method: str = 'ward') -> ClusteringResult:
    """
    Agglomerative clustering of samples on complete analyte profiles.

    Args:
        table: Sample table
        n_clusters: Number of clusters to cut the tree into
        method: scipy linkage method

    Returns:
        ClusteringResult with labels indexed by sample id
    """
    if method not in LINKAGE_METHODS:
        raise ValueError(f"Unknown linkage method: {method}. Available: {list(LINKAGE_METHODS)}")

    features = table.complete_features()
    _check_n_clusters(n_clusters, len(features), "samples with complete profiles")

    logger.info(f"Clustering {len(features)} samples ({method} linkage, {n_clusters} clusters)")
    tree = linkage(features.values, method=method, metric='euclidean')
    clusters = fcluster(tree, n_clusters, criterion='maxclust')
    dendro = dendrogram(tree, labels=features.index.tolist(), no_plot=True)

    labels = pd.Series(clusters, index=features.index, name='sample_cluster')
    result = ClusteringResult(labels=labels, linkage=tree, order=list(dendro['ivl']), method=method)
    logger.info(f"Sample cluster sizes: {result.sizes()}")
    return result


def cluster_samples_divisive(table: SampleTable, n_clusters: int = 3,
                             random_state: int = 42) -> ClusteringResult:
    """Top-down clustering of samples with bisecting k-means."""
    features = table.complete_features()
    _check_n_clusters(n_clusters, len(features), "samples with complete profiles")

    model = BisectingKMeans(n_clusters=n_clusters, random_state=random_state)
    clusters = model.fit_predict(features.values) + 1

    labels = pd.Series(clusters, index=features.index, name='sample_cluster')
    order = labels.sort_values(kind='mergesort').index.tolist()
    result = ClusteringResult(labels=labels, linkage=None, order=order, method='bisecting_kmeans')
    logger.info(f"Divisive cluster sizes: {result.sizes()}")
    return result


def analyte_correlation(table: SampleTable, method: str = 'spearman') -> pd.DataFrame:
    return table.features().corr(method=method)


def cluster_analytes(table: SampleTable, n_clusters: int = 3, method: str = 'average',
                     correlation: str = 'spearman') -> ClusteringResult:
    """
    Cluster analytes on the distance 1 - |rho|.

    Constant analytes have undefined correlation and are placed at the
    maximum distance from everything else.
    """
    corr = analyte_correlation(table, correlation).fillna(0.0)
    _check_n_clusters(n_clusters, corr.shape[0], "analytes")

    distance = 1 - np.abs(corr)
    distance = (distance + distance.T) / 2
    np.fill_diagonal(distance.values, 0.0)

    tree = linkage(squareform(distance.values, checks=False), method=method)
    clusters = fcluster(tree, n_clusters, criterion='maxclust')
    dendro = dendrogram(tree, labels=corr.columns.tolist(), no_plot=True)

    labels = pd.Series(clusters, index=corr.columns, name='analyte_cluster')
    result = ClusteringResult(labels=labels, linkage=tree, order=list(dendro['ivl']), method=method)
    logger.info(f"Analyte cluster sizes: {result.sizes()}")
    return result


def cluster_contingency(labels: pd.Series, metadata: pd.Series) -> pd.DataFrame:
    """Cross-tabulate cluster membership against a metadata column."""
    aligned = metadata.reindex(labels.index)
    return pd.crosstab(labels, aligned, dropna=False)


def plot_dendrogram(result: ClusteringResult, title: str = 'Dendrogram',
                    output_path: Optional[str] = None, show: bool = False):
    if result.linkage is None:
        raise ValueError(f"No tree available for {result.method} clustering")

    fig, ax = plt.subplots(figsize=(15, 8))
    labels = result.labels.index.tolist()
    dendrogram(result.linkage, labels=labels, leaf_rotation=90,
               leaf_font_size=8 if len(labels) > 50 else 10, ax=ax)
    ax.set_title(title, fontsize=16)
    ax.set_ylabel('Distance', fontsize=12)
    ax.grid(axis='y', linestyle='--', alpha=0.7)
    fig.tight_layout()

    if output_path is not None:
        fig.savefig(output_path, dpi=300, bbox_inches='tight')
    if show:
        plt.show()
    plt.close(fig)


def plot_clustered_correlation(table: SampleTable, analyte_result: ClusteringResult,
                               correlation: str = 'spearman',
                               output_path: Optional[str] = None, show: bool = False):
    """Analyte correlation heatmap reordered by the analyte dendrogram."""
    corr = analyte_correlation(table, correlation)
    ordered = corr.reindex(index=analyte_result.order, columns=analyte_result.order)

    fig, ax = plt.subplots(figsize=(12, 12))
    sns.heatmap(ordered, cmap='RdYlBu_r', vmin=-1, vmax=1, linewidths=.5, ax=ax,
                cbar_kws={"label": f"{correlation.capitalize()} correlation", "shrink": 0.7})
    ax.set_title('Analyte Correlation Heatmap (Clustered)', fontsize=16)
    plt.setp(ax.get_xticklabels(), rotation=90)
    fig.tight_layout()

    if output_path is not None:
        fig.savefig(output_path, dpi=300, bbox_inches='tight')
    if show:
        plt.show()
    plt.close(fig)
