"""End-to-end runs of CytokinePipeline on synthetic cohorts."""

import dataclasses
import json

import pandas as pd
import pytest

from cytomark.config import InputConfig
from cytomark.core.labels import classify_bmi, compute_bmi
from cytomark.exceptions import DegenerateDataError
from cytomark.pipeline.auto_pipeline import CytokinePipeline

from conftest import make_cohort, write_cohort


def test_full_pipeline_counts_and_metrics(fast_config, cohort):
    metadata, _ = cohort
    results = CytokinePipeline(fast_config, verbose=False).run_full_pipeline()
    counts = results.stage_counts()

    assert counts["loaded"] == len(metadata)
    assert counts["after_outlier_filter"] == len(metadata) - len(results["outliers"].removed_ids)
    assert counts["train"] + counts["test"] == counts["labelled"]
    assert counts["train"] == int(0.75 * counts["labelled"])

    kept = metadata.set_index("RecordID").loc[results["filtered_table"].sample_ids]
    bmi = compute_bmi(kept["Weight_kg"], kept["Height_cm"])
    expected = sum(classify_bmi(v) in ("normal", "obese") for v in bmi)
    assert counts["labelled"] == expected

    metrics = results.metrics()
    assert len(metrics) == 8
    assert set(metrics["model"]) == {"ridge", "lasso", "elastic_net", "sweep_best", "random_forest"}
    assert set(metrics["dataset"]) == {"train", "test"}
    assert metrics["accuracy"].between(0, 1).all()
    assert (metrics["positive_class"] == "obese").all()

    best = results["sweep_best"]
    assert best["alpha"] in fast_config.sweep_alphas
    assert best["lambda"] in fast_config.sweep_lambdas


def test_pipeline_is_deterministic(fast_config, tmp_path):
    first = CytokinePipeline(fast_config, verbose=False).run_full_pipeline()
    second_config = dataclasses.replace(fast_config, output_dir=str(tmp_path / "second"))
    second = CytokinePipeline(second_config, verbose=False).run_full_pipeline()

    assert first.stage_counts() == second.stage_counts()
    assert first["split"] == second["split"]
    pd.testing.assert_frame_equal(first.metrics(), second.metrics())


def test_outputs_written(fast_config):
    config = dataclasses.replace(fast_config, run_sweep=False, run_clustering=False,
                                 export_workbook=True, save_plots=True)
    pipeline = CytokinePipeline(config, verbose=False)
    results = pipeline.run_full_pipeline()
    report = pipeline.save_summary_report()

    out = pipeline.output_dir
    assert (out / "metrics.csv").exists()
    assert (out / "cytomark_results.xlsx").exists()
    assert (out / "outliers" / "pca_before_filter.png").exists()
    assert (out / "forest" / "oob_error.png").exists()
    assert "Metrics:" in report.read_text()

    summary = json.loads((out / "run_summary.json").read_text())
    assert summary["stage_counts"] == results.stage_counts()
    assert len(summary["metrics"]) == 6
    assert "clustering" not in results


def test_clustering_and_association_results(fast_config):
    config = dataclasses.replace(fast_config, run_sweep=False)
    results = CytokinePipeline(config, verbose=False).run_full_pipeline()

    contingency = results["clustering"]["contingency"]
    assert contingency.to_numpy().sum() == len(results["filtered_table"])
    assert results["association"].index[0] == "IL3"


def test_missing_class_aborts(tmp_path, fast_config):
    metadata, measurements = make_cohort(n_samples=40, n_analytes=5)
    metadata["Weight_kg"] = 20.0 * (metadata["Height_cm"] / 100) ** 2
    metadata_path, measurements_path = write_cohort(tmp_path, metadata, measurements)

    config = dataclasses.replace(
        fast_config,
        input=InputConfig(metadata_path=metadata_path, measurements_path=measurements_path),
    )
    with pytest.raises(DegenerateDataError, match="obese"):
        CytokinePipeline(config, verbose=False).run_full_pipeline()


def test_stages_can_run_individually(fast_config):
    pipeline = CytokinePipeline(fast_config, verbose=False)
    table = pipeline.run_data_loading()
    table = pipeline.run_outlier_filter(table)
    _, _, labelled = pipeline.run_label_derivation(table)
    split = pipeline.run_split(labelled)

    X_train, y_train, X_test, y_test = pipeline.prepare_partitions(labelled, split)
    assert list(X_train.index) == split.train_ids
    assert set(y_train) == {"normal", "obese"}
    assert len(X_test) == len(y_test) == len(split.test_ids)
