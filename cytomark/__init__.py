"""
CytoMark: Cytokine Biomarker Analysis and BMI Classification

A Python package for the analysis of cohort cytokine panels: joining clinical
metadata with long-format measurements, PCA quality control, clustering,
karyotype association and penalized / ensemble classification of BMI class.

Main Components:
- Data loading, pivoting and log transformation
- PCA outlier filtering
- Hierarchical clustering and karyotype association tests
- Ridge, lasso, elastic-net and random forest classifiers
- Repeated cross-validation hyperparameter sweep
"""

__version__ = "0.1.0"

from .config import AnalysisConfig, InputConfig, load_config
from .exceptions import (
    CytoMarkError, ConfigurationError, InputDataError, DegenerateDataError, FitError,
)
from .core.data_loader import DataLoader, SampleTable
from .core.classifiers import PenalizedLogisticClassifier, RandomForestClassifierModel
from .core.sweep import HyperparameterSweep
from .pipeline.auto_pipeline import CytokinePipeline, PipelineResult

__all__ = [
    'AnalysisConfig',
    'InputConfig',
    'load_config',
    'CytoMarkError',
    'ConfigurationError',
    'InputDataError',
    'DegenerateDataError',
    'FitError',
    'DataLoader',
    'SampleTable',
    'PenalizedLogisticClassifier',
    'RandomForestClassifierModel',
    'HyperparameterSweep',
    'CytokinePipeline',
    'PipelineResult',
]

PACKAGE_INFO = {
    'name': 'cytomark',
    'version': __version__,
    'description': 'Cytokine biomarker analysis and BMI classification',
    'license': 'MIT',
}
