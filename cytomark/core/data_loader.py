"""
Data Loading Module for Cytokine Cohort Analysis

This module turns the two tabular inputs of a cohort study into a single
per-sample table:
1. Clinical metadata (one row per sample)
2. Long-format cytokine measurements (sample, analyte, value)
3. Pivot to samples x analytes with duplicate-draw aggregation
4. Log transformation of concentrations
5. Join on the sample identifier with an explicit mismatch report
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..config import InputConfig
from ..exceptions import InputDataError

logger = logging.getLogger(__name__)


@dataclass
class SampleTable:
    """
    One row per sample carrying both metadata fields and analyte values.

    Filtering always goes through :meth:`filter`, which returns a new table
    so the metadata and the feature matrix can never drift apart.
    """

    frame: pd.DataFrame
    analytes: List[str]
    history: List[Tuple[str, int, int]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def sample_ids(self) -> pd.Index:
        return self.frame.index

    @property
    def metadata_columns(self) -> List[str]:
        analytes = set(self.analytes)
        return [c for c in self.frame.columns if c not in analytes]

    def features(self) -> pd.DataFrame:
        """Samples x analytes matrix of log-transformed values."""
        return self.frame[self.analytes]

    def metadata(self) -> pd.DataFrame:
        return self.frame[self.metadata_columns]

    def complete_features(self) -> pd.DataFrame:
        """Feature rows without any missing analyte value."""
        features = self.features()
        return features.dropna(axis=0, how='any')

    def filter(self, mask, reason: str) -> "SampleTable":
        """
        Keep the samples where ``mask`` is True.

        Args:
            mask: Boolean Series aligned on the sample index (or array of
                  the same length)
            reason: Short description recorded in the filter history

        Returns:
            New SampleTable with the surviving samples
        """
        if isinstance(mask, pd.Series):
            mask = mask.reindex(self.frame.index, fill_value=False)
        mask = np.asarray(mask, dtype=bool)
        if len(mask) != len(self.frame):
            raise ValueError(f"Mask length {len(mask)} does not match table length {len(self.frame)}")

        before = len(self.frame)
        filtered = self.frame.loc[mask].copy()
        after = len(filtered)
        logger.info(f"Filter '{reason}': removed {before - after} of {before} samples ({after} remain)")

        return SampleTable(frame=filtered, analytes=list(self.analytes),
                           history=self.history + [(reason, before, after)])

    def with_column(self, name: str, values) -> "SampleTable":
        """Return a copy of the table with an added (or replaced) metadata column."""
        if name in self.analytes:
            raise ValueError(f"Column '{name}' would shadow an analyte")
        frame = self.frame.copy()
        frame[name] = values
        return SampleTable(frame=frame, analytes=list(self.analytes), history=list(self.history))


@dataclass
class JoinReport:
    """Outcome of joining metadata and measurements on the sample identifier."""

    n_metadata: int
    n_measured: int
    matched: List[str]
    metadata_only: List[str]
    measurements_only: List[str]

    @property
    def n_matched(self) -> int:
        return len(self.matched)

    @property
    def n_unmatched(self) -> int:
        return len(self.metadata_only) + len(self.measurements_only)

    def as_dict(self) -> Dict[str, int]:
        return {
            'n_metadata': self.n_metadata,
            'n_measured': self.n_measured,
            'n_matched': self.n_matched,
            'n_metadata_only': len(self.metadata_only),
            'n_measurements_only': len(self.measurements_only),
        }


def _read_table(path: Optional[str], sep: str, label: str,
                id_column: Optional[str] = None) -> pd.DataFrame:
    if path is None:
        raise InputDataError(f"No {label} file configured")
    file_path = Path(path)
    if not file_path.exists():
        raise InputDataError(f"{label.capitalize()} file not found: {file_path}")

    logger.info(f"Loading {label} from {file_path}")
    try:
        # Identifiers stay text: numeric IDs must not become floats
        dtype = {id_column: str} if id_column else None
        df = pd.read_csv(file_path, sep=sep, dtype=dtype)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise InputDataError(f"Could not parse {label} file {file_path}: {e}") from e

    logger.info(f"{label.capitalize()} shape: {df.shape}")
    return df


def _drop_blank_ids(df: pd.DataFrame, id_column: str, label: str) -> pd.DataFrame:
    """Strip identifiers and drop rows whose identifier is blank."""
    ids = df[id_column].str.strip()
    blank = ids.isna() | (ids == "")
    if blank.any():
        logger.warning(f"Dropped {int(blank.sum())} {label} rows with a blank {id_column}")
    return df.loc[~blank].assign(**{id_column: ids[~blank].astype(str)})


def _require_columns(df: pd.DataFrame, columns: List[str], label: str):
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise InputDataError(
            f"Required {label} columns missing: {missing}. Available columns: {list(df.columns)}"
        )


def read_metadata(config: InputConfig) -> pd.DataFrame:
    """
    Read the clinical metadata table.

    Returns:
        DataFrame indexed by the sample identifier
    """
    df = _read_table(config.metadata_path, config.sep, "metadata", config.sample_id_column)
    _require_columns(df, config.required_metadata_columns, "metadata")
    df = _drop_blank_ids(df, config.sample_id_column, "metadata")

    absent = [c for c in config.optional_metadata_columns if c not in df.columns]
    if absent:
        logger.warning(f"Optional metadata columns not found: {absent}")

    ids = df[config.sample_id_column].astype(str)
    duplicated = ids[ids.duplicated()].unique().tolist()
    if duplicated:
        raise InputDataError(f"Duplicate sample identifiers in metadata: {duplicated[:10]}")

    df = df.assign(**{config.sample_id_column: ids}).set_index(config.sample_id_column)
    for col in (config.weight_column, config.height_column):
        df[col] = pd.to_numeric(df[col], errors='coerce')
    return df


def read_measurements(config: InputConfig) -> pd.DataFrame:
    """Read the long-format measurement table and coerce values to numbers."""
    df = _read_table(config.measurements_path, config.sep, "measurements", config.sample_id_column)
    columns = [config.sample_id_column, config.analyte_column, config.value_column]
    _require_columns(df, columns, "measurements")

    df = _drop_blank_ids(df[columns], config.sample_id_column, "measurements")

    raw_missing = df[config.value_column].isna().sum()
    df[config.value_column] = pd.to_numeric(df[config.value_column], errors='coerce')
    n_coerced = df[config.value_column].isna().sum() - raw_missing
    if n_coerced > 0:
        logger.warning(f"{n_coerced} non-numeric measurement values were set to missing")

    return df


def pivot_measurements(long_df: pd.DataFrame, config: InputConfig) -> pd.DataFrame:
    """
    Reshape long measurements into a samples x analytes matrix.

    Repeated (sample, analyte) draws are aggregated with
    ``config.duplicate_aggregation``.
    """
    keys = [config.sample_id_column, config.analyte_column]
    n_duplicates = long_df.duplicated(subset=keys).sum()
    if n_duplicates > 0:
        logger.warning(f"{n_duplicates} duplicate (sample, analyte) draws aggregated "
                       f"with '{config.duplicate_aggregation}'")

    matrix = long_df.pivot_table(
        index=config.sample_id_column,
        columns=config.analyte_column,
        values=config.value_column,
        aggfunc=config.duplicate_aggregation,
        dropna=False,
    )
    matrix.columns = [str(c) for c in matrix.columns]
    matrix.columns.name = None
    logger.info(f"Measurement matrix: {matrix.shape[0]} samples x {matrix.shape[1]} analytes")
    return matrix


def log_transform(matrix: pd.DataFrame, base: float = 2.0) -> pd.DataFrame:
    """Log-transform concentrations; non-positive values become missing."""
    non_positive = (matrix <= 0).sum().sum()
    if non_positive > 0:
        logger.warning(f"{non_positive} non-positive concentrations set to missing before log transform")

    positive = matrix.where(matrix > 0)
    return np.log(positive) / np.log(base)


def join_tables(metadata: pd.DataFrame, matrix: pd.DataFrame) -> Tuple[pd.DataFrame, JoinReport]:
    """
    Inner-join metadata and the analyte matrix on the sample identifier.

    Unmatched identifiers on either side are reported, never dropped silently.
    """
    meta_ids = set(metadata.index)
    measured_ids = set(matrix.index)

    report = JoinReport(
        n_metadata=len(meta_ids),
        n_measured=len(measured_ids),
        matched=sorted(meta_ids & measured_ids),
        metadata_only=sorted(meta_ids - measured_ids),
        measurements_only=sorted(measured_ids - meta_ids),
    )

    if report.n_unmatched > 0:
        logger.warning(
            f"Join mismatch: {len(report.metadata_only)} metadata samples without measurements, "
            f"{len(report.measurements_only)} measured samples without metadata"
        )

    overlap = set(metadata.columns) & set(matrix.columns)
    if overlap:
        raise InputDataError(f"Analyte names collide with metadata columns: {sorted(overlap)}")

    joined = metadata.join(matrix, how='inner')
    logger.info(f"Joined table: {joined.shape[0]} samples")
    return joined, report


class DataLoader:
    """Loads the cohort tables described by an :class:`InputConfig`."""

    def __init__(self, config: InputConfig):
        self.config = config
        self.join_report: Optional[JoinReport] = None

    def load(self) -> Tuple[SampleTable, JoinReport]:
        """Read, pivot, log-transform and join both tables."""
        metadata = read_metadata(self.config)
        measurements = read_measurements(self.config)

        matrix = pivot_measurements(measurements, self.config)
        matrix = log_transform(matrix, self.config.log_base)

        joined, report = join_tables(metadata, matrix)
        if joined.empty:
            raise InputDataError("No samples left after joining metadata and measurements")

        analytes = list(matrix.columns)
        if not analytes:
            raise InputDataError("Measurement table contains no analytes")

        self.join_report = report
        table = SampleTable(frame=joined, analytes=analytes,
                            history=[("join", report.n_metadata, report.n_matched)])
        return table, report


def load_sample_table(config: InputConfig) -> SampleTable:
    """Convenience wrapper returning only the joined sample table."""
    table, _ = DataLoader(config).load()
    return table
