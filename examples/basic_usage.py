"""Basic usage example for the CytoMark package.

Creates a small synthetic cohort (metadata + long-format cytokine table),
writes it as TSV files and runs the complete pipeline on it.
"""

from pathlib import Path

import numpy as np
import pandas as pd

from cytomark import AnalysisConfig, InputConfig, CytokinePipeline


def create_sample_cohort(output_dir: Path, n_samples: int = 300, n_analytes: int = 54):
    """Write synthetic metadata and measurement tables and return their paths."""
    rng = np.random.default_rng(42)
    ids = [f"REC{i:04d}" for i in range(n_samples)]

    height = rng.normal(165, 10, n_samples)
    bmi = rng.normal(28, 5, n_samples)
    metadata = pd.DataFrame({
        "RecordID": ids,
        "Karyotype": rng.choice(["T21", "D21"], size=n_samples, p=[0.6, 0.4]),
        "Sex": rng.choice(["Female", "Male"], size=n_samples),
        "Sample_source_code": rng.choice([1, 2, 3], size=n_samples),
        "Weight_kg": np.round(bmi * (height / 100) ** 2, 1),
        "Height_cm": np.round(height, 1),
    })
    # A few samples without a recorded weight
    metadata.loc[rng.choice(n_samples, 10, replace=False), "Weight_kg"] = np.nan

    analytes = [f"CYT{j:02d}" for j in range(n_analytes)]
    log_values = rng.normal(6, 1.2, size=(n_samples, n_analytes))
    log_values[:, :5] += 0.15 * (bmi[:, None] - 28)
    measurements = pd.DataFrame(
        [(sid, a, 2 ** log_values[i, j]) for i, sid in enumerate(ids) for j, a in enumerate(analytes)],
        columns=["RecordID", "Analyte", "Value"],
    )

    output_dir.mkdir(parents=True, exist_ok=True)
    metadata_path = output_dir / "metadata.tsv"
    measurements_path = output_dir / "cytokines.tsv"
    metadata.to_csv(metadata_path, sep="\t", index=False)
    measurements.to_csv(measurements_path, sep="\t", index=False)
    return str(metadata_path), str(measurements_path)


def main():
    """Run the complete CytoMark analysis."""
    print("🧬 CytoMark Basic Usage Example")
    print("=" * 50)

    metadata_path, measurements_path = create_sample_cohort(Path("example_data"))

    config = AnalysisConfig(
        input=InputConfig(metadata_path=metadata_path, measurements_path=measurements_path),
        output_dir="example_outputs",
        save_plots=True,
        export_workbook=True,
        sweep_repeats=1,
        n_trees=300,
    )

    pipeline = CytokinePipeline(config, verbose=True)
    results = pipeline.run_full_pipeline()

    print("\n📊 Samples per stage:")
    for stage, count in results.stage_counts().items():
        print(f"  {stage}: {count}")

    print("\n🏆 Test set performance:")
    metrics = results.metrics()
    print(metrics[metrics["dataset"] == "test"][["model", "accuracy", "precision", "recall"]]
          .to_string(index=False))

    best = results["sweep_best"]
    print(f"\n🥇 Sweep best: alpha={best['alpha']:g}, lambda={best['lambda']:g}")

    print("\n🎯 Top random forest analytes:")
    for i, (analyte, value) in enumerate(results["forest_importance"].head(5).items(), 1):
        print(f"  {i}. {analyte} ({value:.3f})")

    report = pipeline.save_summary_report()
    print(f"\n✅ Done. Summary report: {report}")


if __name__ == "__main__":
    main()
