"""Step-by-step usage example for the CytoMark package.

This example uses the individual components directly instead of the
pipeline class, which gives control over every intermediate result.
Run ``basic_usage.py`` first to create the example input files.
"""

from pathlib import Path

from cytomark.config import InputConfig
from cytomark.core.data_loader import DataLoader
from cytomark.core.outlier_filter import remove_pca_outliers, plot_pca_scores
from cytomark.core.clustering import cluster_samples, cluster_contingency
from cytomark.core.association import karyotype_association
from cytomark.core.labels import derive_bmi_labels, filter_binary_classes
from cytomark.core.splitting import generate_split
from cytomark.core.classifiers import ridge, lasso, elastic_net, RandomForestClassifierModel
from cytomark.core.evaluation import evaluate_model, metrics_table
from cytomark.core.sweep import HyperparameterSweep


def main():
    """Run step-by-step CytoMark analysis."""
    print("🔬 CytoMark Step-by-Step Analysis")
    print("=" * 50)

    output_dir = Path("step_by_step_outputs")
    output_dir.mkdir(exist_ok=True)

    # 1. Load and join
    print("\n[1] Loading data ...")
    config = InputConfig(metadata_path="example_data/metadata.tsv",
                         measurements_path="example_data/cytokines.tsv")
    table, report = DataLoader(config).load()
    print(f"Joined samples: {len(table)}; join report: {report.as_dict()}")

    # 2. PCA outliers
    print("\n[2] PCA outlier filter ...")
    outliers = remove_pca_outliers(table, component=1, threshold=-10.0)
    table = outliers.table
    print(f"Removed {len(outliers.removed_ids)} samples: {outliers.removed_ids}")
    plot_pca_scores(outliers.final_pca, table.metadata(), color_by="Karyotype",
                    output_path=str(output_dir / "pca.png"))

    # 3. Clustering and association
    print("\n[3] Clustering and karyotype association ...")
    clusters = cluster_samples(table, n_clusters=3)
    print(cluster_contingency(clusters.labels, table.frame["Karyotype"]))
    association = karyotype_association(table)
    print(association.head(10)[["log2_fold_change", "p_value", "p_adjusted"]])

    # 4. Labels
    print("\n[4] BMI labels ...")
    labelled = derive_bmi_labels(table, "Weight_kg", "Height_cm")
    binary = filter_binary_classes(labelled)
    binary = binary.filter(binary.features().notna().all(axis=1), "incomplete analyte profile")

    # 5. Split
    print("\n[5] Train/test split ...")
    split = generate_split(binary.sample_ids, train_fraction=0.75, seed=42)
    labels = binary.frame["BMI_class"].astype(str)
    print(split.class_counts(labels))
    split.require_both_classes(labels, ["normal", "obese"])

    X = binary.features()
    X_train, y_train = X.loc[split.train_ids], labels.loc[split.train_ids]
    X_test, y_test = X.loc[split.test_ids], labels.loc[split.test_ids]

    # 6. Penalized models
    print("\n[6] Penalized logistic regression ...")
    ridge_model = ridge().fit(X_train, y_train)
    lasso_model = lasso().fit(X_train, y_train)
    enet_model = elastic_net(0.5).fit_cv(X_train, y_train, n_folds=10)
    print(f"Lasso keeps {lasso_model.n_nonzero()} analytes; "
          f"elastic net lambda.min = {enet_model.lambda_min:.4g}")

    # 7. Sweep
    print("\n[7] Hyperparameter sweep ...")
    sweep = HyperparameterSweep(alphas=[0.0, 0.25, 0.5, 0.75, 1.0],
                                lambdas=[0.005, 0.01, 0.05, 0.1], n_repeats=1)
    sweep_result = sweep.run(X_train, y_train)
    sweep_result.plot_grid(output_path=str(output_dir / "sweep_grid.png"))

    # 8. Random forest
    print("\n[8] Random forest ...")
    forest = RandomForestClassifierModel(n_trees=500).fit(X_train, y_train)
    print(forest.feature_importance().head(10))

    results = [
        evaluate_model(ridge_model, X_test, y_test, "obese", "ridge", "test"),
        evaluate_model(lasso_model, X_test, y_test, "obese", "lasso", "test"),
        evaluate_model(enet_model, X_test, y_test, "obese", "elastic_net", "test"),
        evaluate_model(forest, X_test, y_test, "obese", "random_forest", "test"),
    ]
    table = metrics_table(results)
    table.to_csv(output_dir / "metrics.csv", index=False)
    print(table[["model", "accuracy", "precision", "recall"]].to_string(index=False))

    print("\n✅ Step-by-step analysis finished.")


if __name__ == "__main__":
    main()
