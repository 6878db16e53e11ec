"""
Configuration objects for CytoMark.

All settings of an analysis run live in two dataclasses: ``InputConfig``
names the input files and their column layout, ``AnalysisConfig`` holds
the thresholds, seeds and model settings of every pipeline stage. Both can
be built from a (nested) dictionary or a JSON file.
"""

import json
import logging
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class InputConfig:
    """Location and column layout of the metadata and measurement tables."""

    metadata_path: Optional[str] = None
    measurements_path: Optional[str] = None
    sep: str = "\t"

    # Metadata columns
    sample_id_column: str = "RecordID"
    karyotype_column: str = "Karyotype"
    sex_column: str = "Sex"
    source_column: str = "Sample_source_code"
    weight_column: str = "Weight_kg"
    height_column: str = "Height_cm"

    # Long-format measurement columns
    analyte_column: str = "Analyte"
    value_column: str = "Value"

    # Repeated draws of the same analyte for one sample
    duplicate_aggregation: str = "mean"
    log_base: float = 2.0

    @property
    def required_metadata_columns(self) -> List[str]:
        return [self.sample_id_column, self.karyotype_column, self.weight_column,
                self.height_column]

    @property
    def optional_metadata_columns(self) -> List[str]:
        return [self.sex_column, self.source_column]


@dataclass
class AnalysisConfig:
    """Configuration class for a complete cytokine analysis run."""

    input: InputConfig = field(default_factory=InputConfig)

    # Output configuration
    output_dir: str = "cytomark_outputs"
    random_state: int = 42
    save_plots: bool = False
    show_plots: bool = False
    export_workbook: bool = False

    # Outlier filter (PCA)
    n_components: int = 10
    outlier_component: int = 1
    outlier_threshold: float = -10.0
    outlier_direction: str = "below"

    # Clustering / association
    cluster_linkage: str = "ward"
    n_clusters: int = 3
    association_alpha: float = 0.05
    fdr_method: str = "fdr_bh"

    # Label derivation
    bmi_lower: float = 25.0
    bmi_upper: float = 30.0
    discard_class: str = "overweight"
    positive_class: str = "obese"

    # Train/test split
    train_fraction: float = 0.75
    sampling_method: str = "none"

    # Penalized regression
    n_lambda: int = 100
    lambda_min_ratio: Optional[float] = None
    cv_folds: int = 10
    cv_scoring: str = "roc_auc"
    elastic_net_alpha: float = 0.5
    eval_lambda: Optional[float] = None
    max_iter: int = 5000
    tol: float = 1e-4

    # Hyperparameter sweep
    run_sweep: bool = True
    sweep_alphas: List[float] = field(
        default_factory=lambda: [round(0.1 * i, 1) for i in range(11)]
    )
    sweep_lambdas: List[float] = field(
        default_factory=lambda: [0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25]
    )
    sweep_folds: int = 10
    sweep_repeats: int = 3
    sweep_n_jobs: int = 1
    strict_convergence: bool = True

    # Random forest
    n_trees: int = 500
    max_features: Union[str, int, float] = "sqrt"
    oob_checkpoint: int = 25
    permutation_repeats: int = 0

    # Optional stages
    run_clustering: bool = True
    run_association: bool = True

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "AnalysisConfig":
        """Build a configuration from a nested dictionary, rejecting unknown keys."""
        config = dict(config)
        input_section = config.pop("input", {}) or {}

        known = {f.name for f in fields(cls)} - {"input"}
        unknown = set(config) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        input_known = {f.name for f in fields(InputConfig)}
        input_unknown = set(input_section) - input_known
        if input_unknown:
            raise ConfigurationError(f"Unknown input configuration keys: {sorted(input_unknown)}")

        return cls(input=InputConfig(**input_section), **config)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self) -> "AnalysisConfig":
        """Check value ranges; raises ``ConfigurationError`` on the first violation."""
        if not 0 < self.train_fraction < 1:
            raise ConfigurationError("train_fraction must be between 0 and 1 (exclusive)")
        if self.bmi_lower > self.bmi_upper:
            raise ConfigurationError(
                f"bmi_lower ({self.bmi_lower}) must not exceed bmi_upper ({self.bmi_upper})"
            )
        if self.cv_folds < 2 or self.sweep_folds < 2:
            raise ConfigurationError("cross-validation needs at least 2 folds")
        if self.sweep_repeats < 1:
            raise ConfigurationError("sweep_repeats must be at least 1")
        if not 0 <= self.elastic_net_alpha <= 1:
            raise ConfigurationError("elastic_net_alpha must lie in [0, 1]")
        if any(not 0 <= a <= 1 for a in self.sweep_alphas):
            raise ConfigurationError("sweep_alphas must lie in [0, 1]")
        if any(lam <= 0 for lam in self.sweep_lambdas):
            raise ConfigurationError("sweep_lambdas must be positive")
        if self.eval_lambda is not None and self.eval_lambda <= 0:
            raise ConfigurationError("eval_lambda must be positive")
        if self.outlier_direction not in ("below", "above"):
            raise ConfigurationError("outlier_direction must be 'below' or 'above'")
        if self.outlier_component < 1:
            raise ConfigurationError("outlier_component is 1-based and must be >= 1")
        if self.n_trees < 1:
            raise ConfigurationError("n_trees must be at least 1")
        if self.input.log_base <= 0 or self.input.log_base == 1:
            raise ConfigurationError("log_base must be positive and different from 1")
        return self


def load_config(config_path: Union[str, Path]) -> AnalysisConfig:
    """Load an :class:`AnalysisConfig` from a JSON file."""
    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")
    try:
        with open(path, 'r') as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Error parsing configuration file {path}: {e}") from e

    logger.info(f"Loaded configuration from {path}")
    return AnalysisConfig.from_dict(raw).validate()
