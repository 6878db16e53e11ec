"""
Core modules for the CytoMark package.

Data loading, quality control, label derivation, classifiers, evaluation
and the statistical side analyses.
"""

from .data_loader import DataLoader, SampleTable, JoinReport, load_sample_table
from .outlier_filter import PCAResult, OutlierResult, compute_pca, remove_pca_outliers
from .labels import compute_bmi, classify_bmi, derive_bmi_labels, filter_binary_classes
from .splitting import SplitAssignment, generate_split
from .sampling import SamplingManager
from .classifiers import (
    Classifier, FittedModel, PenalizedLogisticClassifier, PenalizedLogisticModel,
    RandomForestClassifierModel, ForestModel, ridge, lasso, elastic_net,
)
from .evaluation import ConfusionCounts, EvaluationResult, evaluate, evaluate_model, metrics_table
from .sweep import HyperparameterSweep, SweepResult
from .clustering import ClusteringResult, cluster_samples, cluster_samples_divisive, cluster_analytes
from .association import karyotype_association

__all__ = [
    'DataLoader',
    'SampleTable',
    'JoinReport',
    'load_sample_table',
    'PCAResult',
    'OutlierResult',
    'compute_pca',
    'remove_pca_outliers',
    'compute_bmi',
    'classify_bmi',
    'derive_bmi_labels',
    'filter_binary_classes',
    'SplitAssignment',
    'generate_split',
    'SamplingManager',
    'Classifier',
    'FittedModel',
    'PenalizedLogisticClassifier',
    'PenalizedLogisticModel',
    'RandomForestClassifierModel',
    'ForestModel',
    'ridge',
    'lasso',
    'elastic_net',
    'ConfusionCounts',
    'EvaluationResult',
    'evaluate',
    'evaluate_model',
    'metrics_table',
    'HyperparameterSweep',
    'SweepResult',
    'ClusteringResult',
    'cluster_samples',
    'cluster_samples_divisive',
    'cluster_analytes',
    'karyotype_association',
]
