#!/usr/bin/env python3
"""
Classifier Module

This module provides the binary classifiers used on the cytokine feature
matrix behind one small interface:

    Classifier.fit(X, y, **hyperparameters) -> FittedModel
    FittedModel.predict(X) -> labels

Implementations:
- Penalized logistic regression (ridge / lasso / elastic net) fitted over a
  lambda path, optionally with K-fold cross-validation of lambda
- Random forest with out-of-bag error trend and feature importance

The penalized objective follows the usual elastic-net parameterisation,

    -loglik / n + lambda * ((1 - alpha) / 2 * ||b||^2 + alpha * ||b||_1)

on standardized features, which maps onto scikit-learn's
``LogisticRegression`` through ``C = 1 / (lambda * n)`` and
``l1_ratio = alpha``.
"""

import copy
import logging
import re
import warnings
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import sklearn
from sklearn.ensemble import RandomForestClassifier
from sklearn.exceptions import ConvergenceWarning
from sklearn.inspection import permutation_importance
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import accuracy_score, log_loss, roc_auc_score
from sklearn.model_selection import StratifiedKFold
from sklearn.preprocessing import StandardScaler

from ..exceptions import DegenerateDataError, FitError, InputDataError

logger = logging.getLogger(__name__)


def _sklearn_version_tuple(ver: str) -> Tuple[int, int, int]:
    # Robust parse (handles rc/dev suffixes).
    nums = re.findall(r"\d+", ver)
    nums = (nums + ["0", "0", "0"])[:3]
    return (int(nums[0]), int(nums[1]), int(nums[2]))


SKLEARN_VER = _sklearn_version_tuple(getattr(sklearn, "__version__", "0.0.0"))

# Ridge has no finite lambda_max; the path starts where alpha=0.001 would.
RIDGE_ALPHA_FLOOR = 1e-3


def _as_matrix(X) -> Tuple[np.ndarray, List[str]]:
    if isinstance(X, pd.DataFrame):
        names = [str(c) for c in X.columns]
        values = X.to_numpy(dtype=float)
    else:
        values = np.asarray(X, dtype=float)
        if values.ndim == 1:
            values = values.reshape(-1, 1)
        names = [f"x{i}" for i in range(values.shape[1])]

    if values.shape[0] == 0 or values.shape[1] == 0:
        raise InputDataError(f"Empty feature matrix: {values.shape}")
    if np.isnan(values).any():
        raise InputDataError("Feature matrix contains missing values; drop incomplete samples first")
    return values, names


def _binary_classes(y) -> Tuple[np.ndarray, Tuple[str, str]]:
    """Return labels as an array plus the (negative, positive) class pair."""
    if isinstance(y, pd.Series) and isinstance(y.dtype, pd.CategoricalDtype):
        present = set(y.dropna().unique())
        classes = [c for c in y.cat.categories if c in present]
        labels = y.astype(object).to_numpy()
    else:
        labels = np.asarray(y, dtype=object)
        classes = sorted(set(labels.tolist()), key=str)

    if len(classes) != 2:
        raise DegenerateDataError(
            f"Binary classification needs exactly two classes, found {len(classes)}: {classes}"
        )
    return labels, (classes[0], classes[1])


def _logistic(z: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-z))


class FittedModel(ABC):
    """A trained model; only used for scoring after construction."""

    classes_: Tuple[str, str]
    feature_names_: List[str]
    hyperparameters: Dict[str, Any]

    @abstractmethod
    def predict(self, X) -> np.ndarray:
        """Hard class labels for the rows of ``X``."""

    @property
    def positive_class(self) -> str:
        return self.classes_[1]


class Classifier(ABC):
    """Factory of fitted models sharing one ``fit`` signature."""

    name = "classifier"

    @abstractmethod
    def fit(self, X, y, **hyperparameters) -> FittedModel:
        """Fit on features ``X`` and labels ``y``."""


# ---------------------------------------------------------------------------
# Penalized logistic regression
# ---------------------------------------------------------------------------

class PenalizedLogisticModel(FittedModel):
    """
    Logistic regression fitted along a lambda path.

    Coefficients are stored on the standardized scale; :meth:`coef` returns
    them on the original feature scale.
    """

    def __init__(self,
                 alpha: float,
                 lambdas: np.ndarray,
                 coef_path: np.ndarray,
                 intercept_path: np.ndarray,
                 scaler: StandardScaler,
                 classes: Tuple[str, str],
                 feature_names: List[str],
                 default_lambda: float,
                 trainer: "PenalizedLogisticClassifier",
                 training_data: Tuple[np.ndarray, np.ndarray],
                 cv_results: Optional[pd.DataFrame] = None,
                 lambda_min: Optional[float] = None,
                 lambda_1se: Optional[float] = None):
        self.alpha = alpha
        self.lambdas_ = lambdas
        self.coef_path_ = coef_path
        self.intercept_path_ = intercept_path
        self.scaler_ = scaler
        self.classes_ = classes
        self.feature_names_ = feature_names
        self.lambda_ = default_lambda
        self.cv_results_ = cv_results
        self.lambda_min = lambda_min
        self.lambda_1se = lambda_1se
        self.hyperparameters = {'alpha': alpha, 'lambda': default_lambda}
        # Solver settings are frozen at fit time
        self._trainer = copy.copy(trainer)
        self._training_data = training_data

    def _path_index(self, lam: float) -> Optional[int]:
        hits = np.flatnonzero(np.isclose(self.lambdas_, lam, rtol=1e-9, atol=0.0))
        return int(hits[0]) if len(hits) else None

    def _standardized_coefficients(self, lam: Optional[float]) -> Tuple[np.ndarray, float]:
        lam = self.lambda_ if lam is None else lam
        idx = self._path_index(lam)
        if idx is not None:
            return self.coef_path_[idx], float(self.intercept_path_[idx])

        # Off-path lambda: fit it exactly on the training data
        Z, target = self._training_data
        coef, intercept = self._trainer._fit_single(Z, target, lam)
        return coef, intercept

    def coef(self, lam: Optional[float] = None) -> pd.Series:
        """Coefficients on the original feature scale (intercept first)."""
        coef, intercept = self._standardized_coefficients(lam)
        n_features = len(self.feature_names_)
        scale = self.scaler_.scale_ if self.scaler_.scale_ is not None else np.ones(n_features)
        mean = self.scaler_.mean_ if self.scaler_.with_mean else np.zeros(n_features)
        raw = coef / scale
        raw_intercept = intercept - np.sum(raw * mean)
        return pd.Series(np.concatenate([[raw_intercept], raw]),
                         index=["(Intercept)"] + list(self.feature_names_))

    def n_nonzero(self, lam: Optional[float] = None) -> int:
        coef, _ = self._standardized_coefficients(lam)
        return int(np.count_nonzero(coef))

    def predict_proba(self, X, lam: Optional[float] = None) -> np.ndarray:
        """Probability of the positive (second) class."""
        values, _ = _as_matrix(X)
        if values.shape[1] != len(self.feature_names_):
            raise InputDataError(
                f"Expected {len(self.feature_names_)} features, got {values.shape[1]}"
            )
        coef, intercept = self._standardized_coefficients(lam)
        Z = self.scaler_.transform(values)
        return _logistic(Z @ coef + intercept)

    def predict(self, X, lam: Optional[float] = None) -> np.ndarray:
        proba = self.predict_proba(X, lam)
        negative, positive = self.classes_
        return np.where(proba >= 0.5, positive, negative).astype(object)

    def path_summary(self) -> pd.DataFrame:
        """Number of non-zero coefficients per lambda on the path."""
        return pd.DataFrame({
            'lambda': self.lambdas_,
            'n_nonzero': np.count_nonzero(self.coef_path_, axis=1),
        })


class PenalizedLogisticClassifier(Classifier):
    """
    Elastic-net penalized binomial regression.

    Parameters
    ----------
    alpha : float
        Mixing parameter; 0 is ridge, 1 is lasso
    n_lambda : int
        Length of the automatic lambda path
    lambda_min_ratio : float, optional
        Smallest lambda as a fraction of lambda_max (0.01 if n < p else 1e-4)
    standardize : bool
        Standardize features before fitting
    max_iter, tol : solver settings for saga
    strict : bool
        Treat solver non-convergence as a :class:`FitError`
    random_state : int
        Seed for the solver and the CV folds
    """

    name = "penalized_logistic"

    def __init__(self,
                 alpha: float = 0.5,
                 n_lambda: int = 100,
                 lambda_min_ratio: Optional[float] = None,
                 standardize: bool = True,
                 max_iter: int = 5000,
                 tol: float = 1e-4,
                 strict: bool = False,
                 random_state: int = 42):
        if not 0 <= alpha <= 1:
            raise ValueError(f"alpha must lie in [0, 1], got {alpha}")
        self.alpha = float(alpha)
        self.n_lambda = n_lambda
        self.lambda_min_ratio = lambda_min_ratio
        self.standardize = standardize
        self.max_iter = max_iter
        self.tol = tol
        self.strict = strict
        self.random_state = random_state

    # -- internals ---------------------------------------------------------

    def _estimator(self, C: float) -> LogisticRegression:
        common = dict(
            solver="saga",
            C=C,
            max_iter=self.max_iter,
            tol=self.tol,
            random_state=self.random_state,
            warm_start=True,
        )
        # scikit-learn >=1.8 deprecates `penalty`; `l1_ratio` alone selects the penalty.
        if SKLEARN_VER >= (1, 8, 0):
            return LogisticRegression(l1_ratio=self.alpha, **common)
        return LogisticRegression(penalty="elasticnet", l1_ratio=self.alpha, **common)

    def _fit_estimator(self, estimator: LogisticRegression, Z: np.ndarray, target: np.ndarray, lam: float):
        with warnings.catch_warnings(record=not self.strict) as caught:
            if self.strict:
                warnings.simplefilter("error", ConvergenceWarning)
            else:
                warnings.simplefilter("always", ConvergenceWarning)
            try:
                estimator.fit(Z, target)
            except ConvergenceWarning as e:
                raise FitError(f"Solver did not converge (alpha={self.alpha}, lambda={lam:.6g})",
                               alpha=self.alpha, lam=lam) from e
            except (ValueError, FloatingPointError, np.linalg.LinAlgError) as e:
                raise FitError(f"Fit failed (alpha={self.alpha}, lambda={lam:.6g}): {e}",
                               alpha=self.alpha, lam=lam) from e

        for w in caught or []:
            if issubclass(w.category, ConvergenceWarning):
                continue
            warnings.warn_explicit(w.message, w.category, w.filename, w.lineno, source=w.source)
        if caught and any(issubclass(w.category, ConvergenceWarning) for w in caught):
            logger.warning(f"Solver did not fully converge (alpha={self.alpha}, lambda={lam:.6g})")

    def _fit_single(self, Z: np.ndarray, target: np.ndarray, lam: float) -> Tuple[np.ndarray, float]:
        estimator = self._estimator(1.0 / (lam * len(target)))
        self._fit_estimator(estimator, Z, target, lam)
        return estimator.coef_.ravel().copy(), float(estimator.intercept_[0])

    def _fit_path(self, Z: np.ndarray, target: np.ndarray, lambdas: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        n = len(target)
        coef_path = np.zeros((len(lambdas), Z.shape[1]))
        intercept_path = np.zeros(len(lambdas))

        estimator = self._estimator(1.0 / (lambdas[0] * n))
        for i, lam in enumerate(lambdas):
            estimator.set_params(C=1.0 / (lam * n))
            self._fit_estimator(estimator, Z, target, lam)
            coef_path[i] = estimator.coef_.ravel()
            intercept_path[i] = estimator.intercept_[0]
        return coef_path, intercept_path

    def _prepare(self, X, y):
        values, names = _as_matrix(X)
        labels, classes = _binary_classes(y)
        if len(labels) != values.shape[0]:
            raise ValueError(f"X has {values.shape[0]} rows but y has {len(labels)} labels")

        target = (labels == classes[1]).astype(int)
        scaler = StandardScaler(with_mean=self.standardize, with_std=self.standardize)
        Z = scaler.fit_transform(values)
        return Z, target, scaler, classes, names

    def lambda_path(self, Z: np.ndarray, target: np.ndarray) -> np.ndarray:
        """Geometric lambda sequence from lambda_max down to lambda_min_ratio * lambda_max."""
        n, p = Z.shape
        residual = target - target.mean()
        gradient = np.abs(Z.T @ residual) / n
        lambda_max = gradient.max() / max(self.alpha, RIDGE_ALPHA_FLOOR)
        if lambda_max <= 0:
            raise DegenerateDataError("All features are constant; lambda path is undefined")

        ratio = self.lambda_min_ratio
        if ratio is None:
            ratio = 0.01 if n < p else 1e-4
        return np.geomspace(lambda_max, lambda_max * ratio, self.n_lambda)

    @staticmethod
    def _check_lambdas(lambdas) -> np.ndarray:
        lambdas = np.sort(np.atleast_1d(np.asarray(lambdas, dtype=float)))[::-1]
        if np.any(lambdas <= 0):
            raise ValueError("lambda values must be positive")
        return lambdas

    # -- public API --------------------------------------------------------

    def fit(self, X, y, lambdas=None, **hyperparameters) -> PenalizedLogisticModel:
        """
        Fit the lambda path.

        Args:
            X: Feature matrix (samples x analytes)
            y: Two-level labels; the second level is the positive class
            lambdas: Explicit lambda sequence; automatic path if None

        Returns:
            PenalizedLogisticModel whose default lambda is the smallest on the path
        """
        if 'alpha' in hyperparameters:
            raise TypeError("alpha is fixed at construction; create another classifier")
        Z, target, scaler, classes, names = self._prepare(X, y)
        lambdas = self.lambda_path(Z, target) if lambdas is None else self._check_lambdas(lambdas)

        logger.info(f"Fitting alpha={self.alpha} over {len(lambdas)} lambda values on {len(target)} samples")
        coef_path, intercept_path = self._fit_path(Z, target, lambdas)

        return PenalizedLogisticModel(
            alpha=self.alpha, lambdas=lambdas, coef_path=coef_path,
            intercept_path=intercept_path, scaler=scaler, classes=classes,
            feature_names=names, default_lambda=float(lambdas[-1]),
            trainer=self, training_data=(Z, target),
        )

    def fit_cv(self, X, y, lambdas=None, n_folds: int = 10,
               scoring: str = "roc_auc") -> PenalizedLogisticModel:
        """
        Cross-validate lambda and fit the full path.

        Args:
            X, y: Training data
            lambdas: Lambda sequence; automatic path (on all of X) if None
            n_folds: Number of stratified folds
            scoring: 'roc_auc', 'accuracy' or 'neg_log_loss' (higher is better)

        Returns:
            PenalizedLogisticModel with ``cv_results_``, ``lambda_min`` and
            ``lambda_1se``; its default lambda is ``lambda_min``
        """
        scorers = {
            'roc_auc': lambda t, p: roc_auc_score(t, p),
            'accuracy': lambda t, p: accuracy_score(t, (p >= 0.5).astype(int)),
            'neg_log_loss': lambda t, p: -log_loss(t, p, labels=[0, 1]),
        }
        if scoring not in scorers:
            raise ValueError(f"Unknown scoring: {scoring}. Available: {list(scorers)}")
        score_fn = scorers[scoring]

        Z_all, target_all, _, _, _ = self._prepare(X, y)
        lambdas = self.lambda_path(Z_all, target_all) if lambdas is None else self._check_lambdas(lambdas)

        values, _ = _as_matrix(X)
        labels, classes = _binary_classes(y)
        target = (labels == classes[1]).astype(int)

        skf = StratifiedKFold(n_splits=n_folds, shuffle=True, random_state=self.random_state)
        fold_scores = np.full((n_folds, len(lambdas)), np.nan)

        for fold, (train_idx, val_idx) in enumerate(skf.split(values, target)):
            scaler = StandardScaler(with_mean=self.standardize, with_std=self.standardize)
            Z_train = scaler.fit_transform(values[train_idx])
            Z_val = scaler.transform(values[val_idx])

            coef_path, intercept_path = self._fit_path(Z_train, target[train_idx], lambdas)
            for j in range(len(lambdas)):
                proba = _logistic(Z_val @ coef_path[j] + intercept_path[j])
                try:
                    fold_scores[fold, j] = score_fn(target[val_idx], proba)
                except ValueError as e:
                    logger.warning(f"Fold {fold + 1}: {scoring} undefined ({e})")
            logger.info(f"    CV fold {fold + 1}/{n_folds} completed")

        counts = np.sum(~np.isnan(fold_scores), axis=0)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", RuntimeWarning)
            cv_mean = np.nanmean(fold_scores, axis=0)
            cv_sd = np.nanstd(fold_scores, axis=0, ddof=1)
        cv_se = cv_sd / np.sqrt(np.maximum(counts, 1))

        if np.all(np.isnan(cv_mean)):
            raise FitError(f"Cross-validated {scoring} undefined for every lambda", alpha=self.alpha)

        best = np.nanmax(cv_mean)
        # Largest lambda among ties
        idx_min = int(np.flatnonzero(cv_mean == best)[0])
        lambda_min = float(lambdas[idx_min])
        threshold = best - cv_se[idx_min]
        within = np.flatnonzero(cv_mean >= threshold)
        lambda_1se = float(lambdas[within[0]])

        cv_results = pd.DataFrame({
            'lambda': lambdas,
            'mean_score': cv_mean,
            'se_score': cv_se,
            'n_folds': counts,
        })
        logger.info(f"CV ({scoring}): lambda.min={lambda_min:.6g} (score {best:.4f}), "
                    f"lambda.1se={lambda_1se:.6g}")

        model = self.fit(X, y, lambdas=lambdas)
        return PenalizedLogisticModel(
            alpha=model.alpha, lambdas=model.lambdas_, coef_path=model.coef_path_,
            intercept_path=model.intercept_path_, scaler=model.scaler_,
            classes=model.classes_, feature_names=model.feature_names_,
            default_lambda=lambda_min, trainer=self, training_data=model._training_data,
            cv_results=cv_results, lambda_min=lambda_min, lambda_1se=lambda_1se,
        )


def ridge(**kwargs) -> PenalizedLogisticClassifier:
    return PenalizedLogisticClassifier(alpha=0.0, **kwargs)


def lasso(**kwargs) -> PenalizedLogisticClassifier:
    return PenalizedLogisticClassifier(alpha=1.0, **kwargs)


def elastic_net(alpha: float = 0.5, **kwargs) -> PenalizedLogisticClassifier:
    return PenalizedLogisticClassifier(alpha=alpha, **kwargs)


def plot_cv_curve(model: PenalizedLogisticModel, output_path: Optional[str] = None, show: bool = False):
    """Mean CV score (+/- 1 SE) against log(lambda)."""
    if model.cv_results_ is None:
        raise ValueError("Model was not cross-validated")
    cv = model.cv_results_
    fig, ax = plt.subplots(figsize=(7, 5))
    ax.errorbar(np.log(cv['lambda']), cv['mean_score'], yerr=cv['se_score'],
                fmt='o', color='darkred', ecolor='grey', markersize=3, capsize=2)
    ax.axvline(np.log(model.lambda_min), linestyle='--', color='black', linewidth=1)
    ax.axvline(np.log(model.lambda_1se), linestyle=':', color='black', linewidth=1)
    ax.set_xlabel("log(lambda)")
    ax.set_ylabel("CV score")
    ax.set_title(f"Cross-validation, alpha = {model.alpha}")
    fig.tight_layout()
    if output_path is not None:
        fig.savefig(output_path, dpi=300, bbox_inches='tight')
    if show:
        plt.show()
    plt.close(fig)


# ---------------------------------------------------------------------------
# Random forest
# ---------------------------------------------------------------------------

class ForestModel(FittedModel):
    """A fitted random forest with out-of-bag diagnostics."""

    def __init__(self, forest: RandomForestClassifier, classes: Tuple[str, str],
                 feature_names: List[str], error_trend: pd.DataFrame,
                 hyperparameters: Dict[str, Any]):
        self.forest_ = forest
        self.classes_ = classes
        self.feature_names_ = feature_names
        self.error_trend_ = error_trend
        self.hyperparameters = hyperparameters

    def _encode(self, X) -> np.ndarray:
        values, _ = _as_matrix(X)
        if values.shape[1] != len(self.feature_names_):
            raise InputDataError(
                f"Expected {len(self.feature_names_)} features, got {values.shape[1]}"
            )
        return values

    def predict_proba(self, X) -> np.ndarray:
        """Fraction of trees voting for the positive class."""
        return self.forest_.predict_proba(self._encode(X))[:, 1]

    def predict(self, X) -> np.ndarray:
        votes = self.forest_.predict(self._encode(X))
        return np.asarray([self.classes_[int(v)] for v in votes], dtype=object)

    @property
    def oob_error(self) -> float:
        return float(1.0 - self.forest_.oob_score_)

    def feature_importance(self) -> pd.Series:
        """Mean decrease in impurity, sorted from most to least important."""
        importance = pd.Series(self.forest_.feature_importances_, index=self.feature_names_,
                               name="mean_decrease_impurity")
        return importance.sort_values(ascending=False)

    def permutation_importance(self, X, y, n_repeats: int = 10, random_state: int = 42) -> pd.DataFrame:
        """Decrease in accuracy when each feature is shuffled."""
        values = self._encode(X)
        labels = np.asarray(y, dtype=object)
        target = (labels == self.classes_[1]).astype(int)
        result = permutation_importance(self.forest_, values, target, n_repeats=n_repeats,
                                        random_state=random_state, scoring='accuracy')
        return pd.DataFrame({
            'importance_mean': result.importances_mean,
            'importance_std': result.importances_std,
        }, index=self.feature_names_).sort_values('importance_mean', ascending=False)


class RandomForestClassifierModel(Classifier):
    """
    Random forest of bootstrap trees with random feature subsets at each split.

    The forest is grown in steps of ``oob_checkpoint`` trees (``warm_start``)
    so the out-of-bag error can be tracked against the number of trees.
    """

    name = "random_forest"

    def __init__(self, n_trees: int = 500, max_features="sqrt", oob_checkpoint: int = 25,
                 random_state: int = 42, n_jobs: Optional[int] = None):
        self.n_trees = n_trees
        self.max_features = max_features
        self.oob_checkpoint = oob_checkpoint
        self.random_state = random_state
        self.n_jobs = n_jobs

    def _checkpoints(self, n_trees: int) -> List[int]:
        step = self.oob_checkpoint
        if not step or step <= 0 or step >= n_trees:
            return [n_trees]
        points = list(range(step, n_trees, step))
        return points + [n_trees]

    @staticmethod
    def _oob_errors(forest: RandomForestClassifier, target: np.ndarray, classes) -> Dict[str, float]:
        decision = np.nan_to_num(forest.oob_decision_function_)
        has_oob = decision.sum(axis=1) > 0
        predicted = decision.argmax(axis=1)
        wrong = (predicted != target) & has_oob

        errors = {'OOB': float(wrong.sum() / max(has_oob.sum(), 1))}
        for code, label in enumerate(classes):
            members = (target == code) & has_oob
            errors[str(label)] = float(wrong[members].sum() / members.sum()) if members.any() else np.nan
        return errors

    def fit(self, X, y, **hyperparameters) -> ForestModel:
        n_trees = hyperparameters.get('n_trees', self.n_trees)
        max_features = hyperparameters.get('max_features', self.max_features)

        values, names = _as_matrix(X)
        labels, classes = _binary_classes(y)
        target = (labels == classes[1]).astype(int)

        forest = RandomForestClassifier(
            n_estimators=1,
            max_features=max_features,
            bootstrap=True,
            oob_score=True,
            warm_start=True,
            random_state=self.random_state,
            n_jobs=self.n_jobs,
        )

        logger.info(f"Training random forest ({n_trees} trees) on {len(target)} samples...")
        trend = []
        for n in self._checkpoints(n_trees):
            forest.set_params(n_estimators=n)
            with warnings.catch_warnings():
                # Early checkpoints leave some samples without OOB votes
                warnings.filterwarnings("ignore", message=".*OOB.*", category=UserWarning)
                warnings.filterwarnings("ignore", category=RuntimeWarning)
                forest.fit(values, target)
            trend.append({'n_trees': n, **self._oob_errors(forest, target, classes)})

        error_trend = pd.DataFrame(trend)
        logger.info(f"Random forest OOB error: {error_trend['OOB'].iloc[-1]:.4f}")

        return ForestModel(
            forest=forest, classes=classes, feature_names=names, error_trend=error_trend,
            hyperparameters={'n_trees': n_trees, 'max_features': max_features,
                             'random_state': self.random_state},
        )


def plot_error_trend(model: ForestModel, output_path: Optional[str] = None, show: bool = False):
    """OOB and per-class error rate against the number of trees."""
    trend = model.error_trend_.set_index('n_trees')
    fig, ax = plt.subplots(figsize=(7, 5))
    for column in trend.columns:
        ax.plot(trend.index, trend[column], label=column,
                linewidth=2.0 if column == 'OOB' else 1.2)
    ax.set_xlabel("Number of trees")
    ax.set_ylabel("Error rate")
    ax.legend(loc="upper right")
    fig.tight_layout()
    if output_path is not None:
        fig.savefig(output_path, dpi=300, bbox_inches='tight')
    if show:
        plt.show()
    plt.close(fig)


def plot_feature_importance(importance: pd.Series, top_n: int = 20,
                            output_path: Optional[str] = None, show: bool = False):
    top = importance.head(top_n)[::-1]
    fig, ax = plt.subplots(figsize=(7, max(4, 0.3 * len(top))))
    ax.barh(top.index, top.values, color='steelblue')
    ax.set_xlabel(importance.name or "importance")
    fig.tight_layout()
    if output_path is not None:
        fig.savefig(output_path, dpi=300, bbox_inches='tight')
    if show:
        plt.show()
    plt.close(fig)
