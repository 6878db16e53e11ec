"""
Hyperparameter sweep for penalized logistic regression.

Every (alpha, lambda) cell of a Cartesian grid is scored by repeated
stratified K-fold cross-validation (accuracy on the held-out fold). All cells
share the same folds. Cells are independent and can run in parallel through
joblib; a cell whose fit fails is reported as NaN and the sweep carries on.

Selection rule: highest mean accuracy; ties go to the smallest alpha, then
the smallest lambda (first maximum in grid order).
"""

import logging
from dataclasses import dataclass, field
from itertools import product
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from joblib import Parallel, delayed
from sklearn.model_selection import RepeatedStratifiedKFold
from tqdm import tqdm

from .classifiers import PenalizedLogisticClassifier, _as_matrix, _binary_classes
from ..exceptions import FitError

logger = logging.getLogger(__name__)


def _evaluate_cell(alpha: float, lam: float, values: np.ndarray, labels: np.ndarray,
                   folds: List[Tuple[np.ndarray, np.ndarray]], max_iter: int, tol: float,
                   strict: bool, random_state: int) -> Dict:
    """Mean held-out accuracy of one grid cell over all folds."""
    trainer = PenalizedLogisticClassifier(alpha=alpha, max_iter=max_iter, tol=tol,
                                          strict=strict, random_state=random_state)
    scores = []
    try:
        for train_idx, test_idx in folds:
            model = trainer.fit(values[train_idx], labels[train_idx], lambdas=[lam])
            predicted = model.predict(values[test_idx], lam=lam)
            scores.append(float(np.mean(predicted == labels[test_idx])))
    except FitError as e:
        return {'alpha': alpha, 'lambda': lam, 'mean_accuracy': np.nan,
                'sd_accuracy': np.nan, 'n_folds': len(scores), 'error': str(e)}

    return {
        'alpha': alpha,
        'lambda': lam,
        'mean_accuracy': float(np.mean(scores)),
        'sd_accuracy': float(np.std(scores, ddof=1)) if len(scores) > 1 else np.nan,
        'n_folds': len(scores),
        'error': None,
    }


@dataclass
class SweepResult:
    """Per-cell cross-validated accuracy and the selected configuration."""

    results: pd.DataFrame
    best_alpha: float
    best_lambda: float
    best_score: float
    failed_cells: List[Tuple[float, float, str]] = field(default_factory=list)

    def accuracy_grid(self) -> pd.DataFrame:
        """Mean accuracy with alpha in rows and lambda in columns."""
        return self.results.pivot(index='alpha', columns='lambda', values='mean_accuracy')

    def plot_grid(self, output_path: Optional[str] = None, show: bool = False):
        grid = self.accuracy_grid()
        fig, ax = plt.subplots(figsize=(1.0 + 0.9 * grid.shape[1], 1.0 + 0.5 * grid.shape[0]))
        sns.heatmap(grid, annot=True, fmt='.3f', cmap='viridis', ax=ax,
                    xticklabels=[f"{c:g}" for c in grid.columns],
                    cbar_kws={"label": "CV accuracy"})
        ax.set_xlabel("lambda")
        ax.set_ylabel("alpha")
        ax.set_title(f"Best: alpha={self.best_alpha:g}, lambda={self.best_lambda:g}")
        fig.tight_layout()
        if output_path is not None:
            fig.savefig(output_path, dpi=300, bbox_inches='tight')
        if show:
            plt.show()
        plt.close(fig)


class HyperparameterSweep:
    """
    Repeated-CV grid search over (alpha, lambda).

    Parameters
    ----------
    alphas, lambdas : sequences of float
        Grid axes
    n_folds, n_repeats : int
        Repeated stratified K-fold settings
    random_state : int
        Seed for the fold assignment and the solver
    n_jobs : int
        joblib workers for the grid cells
    strict : bool
        Count solver non-convergence as a failed cell
    """

    def __init__(self,
                 alphas: Sequence[float],
                 lambdas: Sequence[float],
                 n_folds: int = 10,
                 n_repeats: int = 3,
                 random_state: int = 42,
                 n_jobs: int = 1,
                 strict: bool = True,
                 max_iter: int = 5000,
                 tol: float = 1e-4,
                 progress: bool = True):
        if not alphas or not lambdas:
            raise ValueError("Sweep grid must contain at least one alpha and one lambda")
        self.alphas = sorted(float(a) for a in alphas)
        self.lambdas = sorted(float(lam) for lam in lambdas)
        self.n_folds = n_folds
        self.n_repeats = n_repeats
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.strict = strict
        self.max_iter = max_iter
        self.tol = tol
        self.progress = progress

    def folds(self, labels: np.ndarray) -> List[Tuple[np.ndarray, np.ndarray]]:
        rskf = RepeatedStratifiedKFold(n_splits=self.n_folds, n_repeats=self.n_repeats,
                                       random_state=self.random_state)
        return list(rskf.split(np.zeros(len(labels)), labels))

    @staticmethod
    def select_best(results: pd.DataFrame) -> pd.Series:
        """First maximum of mean accuracy in (alpha, lambda) ascending order."""
        valid = results.dropna(subset=['mean_accuracy'])
        if valid.empty:
            raise FitError("Every cell of the hyperparameter grid failed")
        ordered = valid.sort_values(['alpha', 'lambda'], kind='mergesort')
        best_value = ordered['mean_accuracy'].max()
        return ordered[ordered['mean_accuracy'] == best_value].iloc[0]

    def run(self, X, y) -> SweepResult:
        """Score every grid cell and select the best configuration."""
        values, _ = _as_matrix(X)
        labels, _ = _binary_classes(y)
        folds = self.folds(labels)
        cells = list(product(self.alphas, self.lambdas))

        logger.info("=" * 60)
        logger.info(f"HYPERPARAMETER SWEEP: {len(self.alphas)} alphas x {len(self.lambdas)} lambdas, "
                    f"{self.n_repeats} x {self.n_folds}-fold CV")
        logger.info("=" * 60)

        tasks = (
            delayed(_evaluate_cell)(alpha, lam, values, labels, folds, self.max_iter,
                                    self.tol, self.strict, self.random_state)
            for alpha, lam in cells
        )
        if self.progress:
            tasks = tqdm(tasks, total=len(cells), desc="Sweep cells")
        rows = Parallel(n_jobs=self.n_jobs)(tasks)

        results = pd.DataFrame(rows).sort_values(['alpha', 'lambda'], kind='mergesort')
        results = results.reset_index(drop=True)

        failed = [(r['alpha'], r['lambda'], r['error']) for r in rows if r['error'] is not None]
        for alpha, lam, error in failed:
            logger.warning(f"Sweep cell alpha={alpha:g}, lambda={lam:g} failed: {error}")

        best = self.select_best(results)
        logger.info(f"Best configuration: alpha={best['alpha']:g}, lambda={best['lambda']:g}, "
                    f"mean accuracy={best['mean_accuracy']:.4f}")

        return SweepResult(results=results, best_alpha=float(best['alpha']),
                           best_lambda=float(best['lambda']),
                           best_score=float(best['mean_accuracy']), failed_cells=failed)
