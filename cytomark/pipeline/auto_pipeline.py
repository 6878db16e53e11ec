"""
CytokinePipeline: main pipeline class for cytokine biomarker analysis.

This module provides a unified interface for the whole CytoMark workflow,
from loading the two input tables to evaluating the fitted classifiers.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from ..config import AnalysisConfig
from ..exceptions import ConfigurationError
from ..core.data_loader import DataLoader, SampleTable
from ..core.outlier_filter import remove_pca_outliers, plot_pca_scores, plot_scree
from ..core.clustering import (
    cluster_samples, cluster_samples_divisive, cluster_analytes, cluster_contingency,
    plot_dendrogram, plot_clustered_correlation,
)
from ..core.association import karyotype_association, plot_top_analytes
from ..core.labels import BMI_CLASSES, class_counts, derive_bmi_labels, filter_binary_classes
from ..core.splitting import SplitAssignment, generate_split
from ..core.sampling import SamplingManager
from ..core.classifiers import (
    PenalizedLogisticClassifier, RandomForestClassifierModel, ridge, lasso, elastic_net,
    plot_cv_curve, plot_error_trend, plot_feature_importance,
)
from ..core.evaluation import evaluate_model, metrics_table, plot_confusion
from ..core.sweep import HyperparameterSweep
from ..core.export import export_csv, export_workbook, save_json
from ..utils.paths import CytoMarkPathManager

LABEL_COLUMN = "BMI_class"


class PipelineResult(dict):
    """Dictionary of every intermediate produced by a pipeline run."""

    def stage_counts(self) -> Dict[str, int]:
        return dict(self.get('stage_counts', {}))

    def metrics(self) -> pd.DataFrame:
        return self.get('metrics', pd.DataFrame())

    def summary(self) -> Dict[str, Any]:
        return {
            'stage_counts': self.stage_counts(),
            'metrics': self.metrics(),
            'sweep_best': self.get('sweep_best'),
        }


class CytokinePipeline:
    """
    Main pipeline class for cytokine-based BMI classification.

    This class orchestrates the entire workflow:
    1. Load metadata and measurements, pivot, log-transform and join
    2. Remove PCA outliers
    3. Cluster samples and analytes, test analytes against karyotype
    4. Derive BMI labels and drop the middle class
    5. Random train/test split (+ optional re-balancing of train)
    6. Ridge, lasso and elastic-net logistic regression
    7. Repeated-CV sweep over (alpha, lambda)
    8. Random forest

    Parameters
    ----------
    config : AnalysisConfig
        Run configuration
    verbose : bool, optional
        Whether to log progress to the console. Default is True
    """

    def __init__(self, config: Optional[AnalysisConfig] = None, verbose: bool = True):
        self.config = (config or AnalysisConfig()).validate()
        self.verbose = verbose
        self.output_dir = Path(self.config.output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.paths = CytoMarkPathManager(self.output_dir)

        self.results = PipelineResult()
        self._setup_logging()

    def _setup_logging(self):
        """Setup logging configuration."""
        log_file = self.output_dir / "cytomark_pipeline.log"
        logging.basicConfig(
            level=logging.INFO if self.verbose else logging.WARNING,
            format='%(asctime)s - %(levelname)s - %(message)s',
            handlers=[
                logging.FileHandler(log_file),
                logging.StreamHandler() if self.verbose else logging.NullHandler()
            ]
        )
        self.logger = logging.getLogger(__name__)

    def _plot_path(self, component: str, filename: str) -> Optional[str]:
        if not self.config.save_plots:
            return None
        directory = self.paths.ensure_dir(self.paths.component_dir(component))
        return str(directory / filename)

    @property
    def _plotting(self) -> bool:
        return self.config.save_plots or self.config.show_plots

    # -- full run ------------------------------------------------------------

    def run_full_pipeline(self) -> PipelineResult:
        """
        Run every stage in order.

        Returns
        -------
        PipelineResult
            All intermediates plus ``stage_counts`` and a ``metrics`` table
        """
        cfg = self.config
        self.logger.info("Starting CytoMark pipeline...")
        counts: Dict[str, int] = {}

        self.logger.info("Step 1: Loading data...")
        table = self.run_data_loading()
        counts['loaded'] = len(table)

        self.logger.info("Step 2: PCA outlier filter...")
        table = self.run_outlier_filter(table)
        counts['after_outlier_filter'] = len(table)

        if cfg.run_clustering:
            self.logger.info("Step 3a: Hierarchical clustering...")
            self.run_clustering(table)
        if cfg.run_association:
            self.logger.info("Step 3b: Karyotype association...")
            self.run_association(table)

        self.logger.info("Step 4: Deriving BMI labels...")
        labelled, binary, complete = self.run_label_derivation(table)
        counts['with_bmi'] = len(labelled)
        counts['binary_classes'] = len(binary)
        counts['labelled'] = len(complete)

        self.logger.info("Step 5: Train/test split...")
        split = self.run_split(complete)
        counts['train'] = len(split.train_ids)
        counts['test'] = len(split.test_ids)
        data = self.prepare_partitions(complete, split)

        self.logger.info("Step 6: Penalized logistic regression...")
        evaluations = self.run_penalized_models(*data)

        if cfg.run_sweep:
            self.logger.info("Step 7: Hyperparameter sweep...")
            evaluations += self.run_sweep(*data)

        self.logger.info("Step 8: Random forest...")
        evaluations += self.run_random_forest(*data)

        self.results['stage_counts'] = counts
        self.results['metrics'] = metrics_table(evaluations)
        self._save_outputs()

        self.logger.info("CytoMark pipeline completed successfully!")
        self.logger.info(f"Outputs in {self.paths.get_relative_path(self.output_dir)}")
        return self.results

    # -- stages --------------------------------------------------------------

    def run_data_loading(self) -> SampleTable:
        """Load, pivot, log-transform and join the input tables."""
        table, report = DataLoader(self.config.input).load()
        self.results['loaded_table'] = table
        self.results['join_report'] = report
        return table

    def run_outlier_filter(self, table: SampleTable) -> SampleTable:
        cfg = self.config
        outcome = remove_pca_outliers(table, component=cfg.outlier_component,
                                      threshold=cfg.outlier_threshold,
                                      direction=cfg.outlier_direction,
                                      n_components=cfg.n_components)
        self.results['outliers'] = outcome
        self.results['filtered_table'] = outcome.table

        if self._plotting:
            metadata = table.metadata()
            color_by = cfg.input.karyotype_column if cfg.input.karyotype_column in metadata else None
            plot_pca_scores(outcome.initial_pca, metadata, color_by,
                            output_path=self._plot_path('outliers', 'pca_before_filter.png'),
                            show=cfg.show_plots)
            plot_pca_scores(outcome.final_pca, outcome.table.metadata(), color_by,
                            output_path=self._plot_path('outliers', 'pca_after_filter.png'),
                            show=cfg.show_plots)
            plot_scree(outcome.final_pca, output_path=self._plot_path('outliers', 'scree.png'),
                       show=cfg.show_plots)
        return outcome.table

    def run_clustering(self, table: SampleTable) -> Dict[str, Any]:
        """Agglomerative and divisive sample clustering plus analyte clustering."""
        cfg = self.config
        samples = cluster_samples(table, n_clusters=cfg.n_clusters, method=cfg.cluster_linkage)
        divisive = cluster_samples_divisive(table, n_clusters=cfg.n_clusters,
                                            random_state=cfg.random_state)
        analytes = cluster_analytes(table, n_clusters=min(cfg.n_clusters, len(table.analytes)))
        karyotype = table.frame[cfg.input.karyotype_column]

        clustering = {
            'samples': samples,
            'divisive': divisive,
            'analytes': analytes,
            'contingency': cluster_contingency(samples.labels, karyotype),
            'divisive_contingency': cluster_contingency(divisive.labels, karyotype),
        }
        self.results['clustering'] = clustering
        self.logger.info(f"Clusters vs karyotype:\n{clustering['contingency']}")

        if self._plotting:
            plot_dendrogram(samples, title='Sample Dendrogram',
                            output_path=self._plot_path('clustering', 'sample_dendrogram.png'),
                            show=cfg.show_plots)
            plot_dendrogram(analytes, title='Analyte Dendrogram',
                            output_path=self._plot_path('clustering', 'analyte_dendrogram.png'),
                            show=cfg.show_plots)
            plot_clustered_correlation(table, analytes,
                                       output_path=self._plot_path('clustering', 'correlation_clustered.png'),
                                       show=cfg.show_plots)
        return clustering

    def run_association(self, table: SampleTable) -> pd.DataFrame:
        cfg = self.config
        results = karyotype_association(table, group_column=cfg.input.karyotype_column,
                                        fdr_method=cfg.fdr_method, alpha=cfg.association_alpha)
        self.results['association'] = results
        if self._plotting:
            plot_top_analytes(table, results, group_column=cfg.input.karyotype_column,
                              output_path=self._plot_path('association', 'top_analytes.png'),
                              show=cfg.show_plots)
        return results

    def run_label_derivation(self, table: SampleTable) -> Tuple[SampleTable, SampleTable, SampleTable]:
        """
        Add BMI labels, drop the discarded class and incomplete profiles.

        Returns
        -------
        tuple
            (table with BMI, two-class table, two-class table with complete analytes)
        """
        cfg = self.config
        expected = [c for c in BMI_CLASSES if c != cfg.discard_class]
        if cfg.positive_class not in expected:
            raise ConfigurationError(
                f"positive_class '{cfg.positive_class}' must be one of {expected}"
            )

        labelled = derive_bmi_labels(table, cfg.input.weight_column, cfg.input.height_column,
                                     lower=cfg.bmi_lower, upper=cfg.bmi_upper)
        binary = filter_binary_classes(labelled, LABEL_COLUMN, discard=cfg.discard_class,
                                       expected=expected)
        complete = binary.filter(binary.features().notna().all(axis=1), "incomplete analyte profile")
        if len(complete) < len(binary):
            filter_binary_classes(complete, LABEL_COLUMN, discard=cfg.discard_class, expected=expected)

        self.results['labelled_table'] = complete
        self.results['class_counts'] = class_counts(complete.frame[LABEL_COLUMN])
        return labelled, binary, complete

    def run_split(self, table: SampleTable) -> SplitAssignment:
        cfg = self.config
        split = generate_split(table.sample_ids, train_fraction=cfg.train_fraction,
                               seed=cfg.random_state)
        labels = table.frame[LABEL_COLUMN]
        self.logger.info(f"Class counts per partition: {split.class_counts(labels)}")
        split.require_both_classes(labels, [c for c in BMI_CLASSES if c != cfg.discard_class])
        self.results['split'] = split
        return split

    def prepare_partitions(self, table: SampleTable, split: SplitAssignment):
        """Feature matrices and labels for both partitions; train is re-balanced if configured."""
        features = table.features()
        labels = table.frame[LABEL_COLUMN].astype(str)

        X_train, y_train = features.loc[split.train_ids], labels.loc[split.train_ids]
        X_test, y_test = features.loc[split.test_ids], labels.loc[split.test_ids]

        sampler = SamplingManager(self.config.sampling_method, self.config.random_state)
        X_train, y_train = sampler.apply_sampling(X_train, y_train)
        return X_train, y_train, X_test, y_test

    def _penalized_options(self) -> Dict[str, Any]:
        cfg = self.config
        return {
            'n_lambda': cfg.n_lambda,
            'lambda_min_ratio': cfg.lambda_min_ratio,
            'max_iter': cfg.max_iter,
            'tol': cfg.tol,
            'random_state': cfg.random_state,
        }

    def _evaluate_both(self, model, name, X_train, y_train, X_test, y_test, **predict_kwargs):
        positive = self.config.positive_class
        return [
            evaluate_model(model, X_train, y_train, positive, name, 'train', **predict_kwargs),
            evaluate_model(model, X_test, y_test, positive, name, 'test', **predict_kwargs),
        ]

    def run_penalized_models(self, X_train, y_train, X_test, y_test):
        """Fit ridge, lasso (lambda path) and elastic net (CV over lambda) and evaluate them."""
        cfg = self.config
        options = self._penalized_options()
        models = {
            'ridge': ridge(**options).fit(X_train, y_train),
            'lasso': lasso(**options).fit(X_train, y_train),
            'elastic_net': elastic_net(cfg.elastic_net_alpha, **options).fit_cv(
                X_train, y_train, n_folds=cfg.cv_folds, scoring=cfg.cv_scoring),
        }
        eval_lambdas = {
            'ridge': cfg.eval_lambda if cfg.eval_lambda is not None else models['ridge'].lambda_,
            'lasso': cfg.eval_lambda if cfg.eval_lambda is not None else models['lasso'].lambda_,
            'elastic_net': models['elastic_net'].lambda_min,
        }

        evaluations = []
        coefficients = {}
        for name, model in models.items():
            lam = eval_lambdas[name]
            self.logger.info(f"{name}: lambda={lam:.6g}, {model.n_nonzero(lam)} non-zero coefficients")
            evaluations += self._evaluate_both(model, name, X_train, y_train, X_test, y_test, lam=lam)
            coefficients[name] = model.coef(lam)

        self.results['penalized_models'] = models
        self.results['eval_lambdas'] = eval_lambdas
        self.results['coefficients'] = pd.DataFrame(coefficients)

        if self._plotting:
            plot_cv_curve(models['elastic_net'],
                          output_path=self._plot_path('models', 'elastic_net_cv.png'),
                          show=cfg.show_plots)
            for result in evaluations:
                if result.dataset == 'test':
                    plot_confusion(result, output_path=self._plot_path(
                        'models', f'{result.model_name}_confusion.png'), show=cfg.show_plots)
        return evaluations

    def run_sweep(self, X_train, y_train, X_test, y_test):
        """Select (alpha, lambda) by repeated CV on train, refit and evaluate."""
        cfg = self.config
        sweep = HyperparameterSweep(
            alphas=cfg.sweep_alphas, lambdas=cfg.sweep_lambdas, n_folds=cfg.sweep_folds,
            n_repeats=cfg.sweep_repeats, random_state=cfg.random_state, n_jobs=cfg.sweep_n_jobs,
            strict=cfg.strict_convergence, max_iter=cfg.max_iter, tol=cfg.tol,
            progress=self.verbose,
        )
        outcome = sweep.run(X_train, y_train)
        self.results['sweep'] = outcome
        self.results['sweep_best'] = {'alpha': outcome.best_alpha, 'lambda': outcome.best_lambda,
                                      'cv_accuracy': outcome.best_score}

        best = PenalizedLogisticClassifier(alpha=outcome.best_alpha, max_iter=cfg.max_iter,
                                           tol=cfg.tol, random_state=cfg.random_state)
        model = best.fit(X_train, y_train, lambdas=[outcome.best_lambda])
        self.results['sweep_model'] = model

        if self._plotting:
            outcome.plot_grid(output_path=self._plot_path('sweep', 'accuracy_grid.png'),
                              show=cfg.show_plots)
        return self._evaluate_both(model, 'sweep_best', X_train, y_train, X_test, y_test)

    def run_random_forest(self, X_train, y_train, X_test, y_test):
        cfg = self.config
        trainer = RandomForestClassifierModel(n_trees=cfg.n_trees, max_features=cfg.max_features,
                                              oob_checkpoint=cfg.oob_checkpoint,
                                              random_state=cfg.random_state)
        model = trainer.fit(X_train, y_train)
        self.results['forest'] = model
        self.results['forest_importance'] = model.feature_importance()
        if cfg.permutation_repeats > 0:
            self.results['forest_permutation_importance'] = model.permutation_importance(
                X_test, y_test, n_repeats=cfg.permutation_repeats, random_state=cfg.random_state)

        if self._plotting:
            plot_error_trend(model, output_path=self._plot_path('forest', 'oob_error.png'),
                             show=cfg.show_plots)
            plot_feature_importance(self.results['forest_importance'],
                                    output_path=self._plot_path('forest', 'importance.png'),
                                    show=cfg.show_plots)
        return self._evaluate_both(model, 'random_forest', X_train, y_train, X_test, y_test)

    # -- reporting -----------------------------------------------------------

    def result_tables(self) -> Dict[str, pd.DataFrame]:
        """Named result tables available after a run."""
        tables = {'metrics': self.results.get('metrics')}
        if 'join_report' in self.results:
            tables['join_report'] = pd.DataFrame([self.results['join_report'].as_dict()])
        if 'coefficients' in self.results:
            tables['coefficients'] = self.results['coefficients']
        if 'association' in self.results:
            tables['association'] = self.results['association']
        if 'clustering' in self.results:
            tables['cluster_contingency'] = self.results['clustering']['contingency']
        if 'sweep' in self.results:
            tables['sweep_results'] = self.results['sweep'].results
        if 'forest' in self.results:
            tables['forest_importance'] = self.results['forest_importance'].to_frame()
            tables['forest_oob_error'] = self.results['forest'].error_trend_
        return {name: table for name, table in tables.items() if table is not None}

    def summary(self) -> Dict[str, Any]:
        return self.results.summary()

    def _save_outputs(self):
        cfg = self.config
        export_csv({'metrics': self.results['metrics']}, self.output_dir)
        save_json({
            'config': cfg.to_dict(),
            'stage_counts': self.results['stage_counts'],
            'class_counts': self.results.get('class_counts'),
            'join_report': self.results['join_report'].as_dict(),
            'removed_outliers': self.results['outliers'].removed_ids,
            'eval_lambdas': self.results.get('eval_lambdas'),
            'sweep_best': self.results.get('sweep_best'),
            'metrics': self.results['metrics'].to_dict(orient='records'),
        }, self.output_dir / "run_summary.json")

        if cfg.export_workbook:
            export_workbook(self.result_tables(), self.output_dir / "cytomark_results.xlsx")

    def save_summary_report(self, filename: str = "pipeline_summary.txt") -> Path:
        """Save a plain-text summary report of the pipeline results."""
        report_path = self.output_dir / filename

        with open(report_path, 'w') as f:
            f.write("CytoMark Pipeline Summary Report\n")
            f.write("=" * 40 + "\n\n")

            for stage, count in self.results.stage_counts().items():
                f.write(f"{stage}: {count} samples\n")

            if 'class_counts' in self.results:
                f.write(f"\nClass counts: {self.results['class_counts']}\n")

            if 'sweep_best' in self.results:
                best = self.results['sweep_best']
                f.write(f"Sweep best: alpha={best['alpha']:g}, lambda={best['lambda']:g} "
                        f"(CV accuracy {best['cv_accuracy']:.4f})\n")

            metrics = self.results.metrics()
            if not metrics.empty:
                f.write("\nMetrics:\n")
                f.write(metrics[['model', 'dataset', 'accuracy', 'precision', 'recall']]
                        .to_string(index=False, float_format=lambda v: f"{v:.4f}"))
                f.write("\n")

        self.logger.info(f"Summary report saved to {report_path}")
        return report_path
