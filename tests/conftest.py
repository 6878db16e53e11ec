"""Shared fixtures: small synthetic cytokine cohorts written as TSV files."""

import matplotlib
import numpy as np
import pandas as pd
import pytest

from cytomark.config import AnalysisConfig, InputConfig

matplotlib.use("Agg")


def make_cohort(n_samples: int = 120, n_analytes: int = 12, seed: int = 7):
    """
    Build a synthetic cohort.

    BMI classes are drawn roughly 40% normal, 20% overweight, 40% obese.
    The first two analytes are shifted upwards in obese samples and the
    third is shifted in the second karyotype group, with enough noise that
    no class is linearly separable.

    Returns:
        (metadata DataFrame, long-format measurements DataFrame)
    """
    rng = np.random.default_rng(seed)
    ids = [f"S{i:03d}" for i in range(n_samples)]

    bmi_class = rng.choice(["normal", "overweight", "obese"], size=n_samples, p=[0.4, 0.2, 0.4])
    bmi_centres = {"normal": 21.5, "overweight": 27.5, "obese": 34.0}
    bmi = np.array([bmi_centres[c] for c in bmi_class]) + rng.uniform(-1.5, 1.5, n_samples)
    height = rng.uniform(150, 190, n_samples)
    weight = bmi * (height / 100) ** 2

    karyotype = np.where(np.arange(n_samples) % 2 == 0, "T21", "D21")
    metadata = pd.DataFrame({
        "RecordID": ids,
        "Karyotype": karyotype,
        "Sex": rng.choice(["Female", "Male"], size=n_samples),
        "Sample_source_code": rng.choice(["A", "B"], size=n_samples),
        "Weight_kg": np.round(weight, 2),
        "Height_cm": np.round(height, 1),
    })

    analytes = [f"IL{i + 1}" for i in range(n_analytes)]
    log_values = rng.normal(5.0, 1.0, size=(n_samples, n_analytes))
    obese = bmi_class == "obese"
    log_values[obese, 0] += 0.8
    log_values[obese, 1] += 0.6
    log_values[karyotype == "T21", 2] += 1.5

    rows = []
    for i, sample_id in enumerate(ids):
        for j, analyte in enumerate(analytes):
            rows.append((sample_id, analyte, float(2 ** log_values[i, j])))
    measurements = pd.DataFrame(rows, columns=["RecordID", "Analyte", "Value"])
    return metadata, measurements


def write_cohort(directory, metadata: pd.DataFrame, measurements: pd.DataFrame):
    metadata_path = directory / "metadata.tsv"
    measurements_path = directory / "measurements.tsv"
    metadata.to_csv(metadata_path, sep="\t", index=False)
    measurements.to_csv(measurements_path, sep="\t", index=False)
    return str(metadata_path), str(measurements_path)


@pytest.fixture
def cohort():
    return make_cohort()


@pytest.fixture
def cohort_files(tmp_path, cohort):
    metadata, measurements = cohort
    return write_cohort(tmp_path, metadata, measurements)


@pytest.fixture
def input_config(cohort_files):
    metadata_path, measurements_path = cohort_files
    return InputConfig(metadata_path=metadata_path, measurements_path=measurements_path)


@pytest.fixture
def fast_config(tmp_path, input_config):
    """A configuration small enough for an end-to-end run in a few seconds."""
    return AnalysisConfig(
        input=input_config,
        output_dir=str(tmp_path / "outputs"),
        n_lambda=10,
        lambda_min_ratio=0.01,
        cv_folds=3,
        sweep_alphas=[0.0, 0.5, 1.0],
        sweep_lambdas=[0.02, 0.05, 0.1],
        sweep_folds=3,
        sweep_repeats=1,
        n_trees=40,
        oob_checkpoint=10,
        max_iter=2000,
        strict_convergence=False,
    )


@pytest.fixture
def binary_data():
    """Overlapping two-class data: 80 samples x 6 features, labels normal/obese."""
    rng = np.random.default_rng(3)
    n = 80
    y = np.array(["normal"] * 40 + ["obese"] * 40, dtype=object)
    X = rng.normal(0.0, 1.0, size=(n, 6))
    X[y == "obese", 0] += 1.0
    X[y == "obese", 1] += 0.5
    frame = pd.DataFrame(X, columns=[f"IL{i + 1}" for i in range(6)],
                         index=[f"S{i:03d}" for i in range(n)])
    return frame, pd.Series(y, index=frame.index, name="BMI_class")
