import warnings

import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LogisticRegression

from cytomark.core.classifiers import (
    PenalizedLogisticClassifier, RandomForestClassifierModel, elastic_net, lasso, ridge,
)
from cytomark.exceptions import DegenerateDataError, FitError, InputDataError


def test_ridge_never_zeroes_coefficients(binary_data):
    X, y = binary_data
    model = ridge(n_lambda=5, lambda_min_ratio=0.05).fit(X, y)

    for lam in model.lambdas_:
        coef = model.coef(lam).drop("(Intercept)")
        assert (coef != 0).all()


def test_lasso_all_zero_at_large_lambda(binary_data):
    X, y = binary_data
    trainer = lasso()
    Z, target, _, _, _ = trainer._prepare(X, y)
    lambda_max = trainer.lambda_path(Z, target)[0]

    model = trainer.fit(X, y, lambdas=[2 * lambda_max])
    assert model.n_nonzero() == 0
    assert (model.coef().drop("(Intercept)") == 0).all()


def test_lasso_path_becomes_sparser_with_lambda(binary_data):
    X, y = binary_data
    model = lasso(n_lambda=8, lambda_min_ratio=0.01).fit(X, y)
    summary = model.path_summary()

    assert summary["lambda"].is_monotonic_decreasing
    assert summary["n_nonzero"].iloc[0] <= summary["n_nonzero"].iloc[-1]


def test_predict_returns_class_labels(binary_data):
    X, y = binary_data
    model = elastic_net(0.5, n_lambda=5, lambda_min_ratio=0.05).fit(X, y)

    predicted = model.predict(X)
    assert set(predicted) <= {"normal", "obese"}
    assert model.positive_class == "obese"
    assert np.mean(predicted == y.to_numpy()) > 0.5


def test_predict_at_off_path_lambda(binary_data):
    X, y = binary_data
    model = ridge(n_lambda=3, lambda_min_ratio=0.1).fit(X, y)
    proba = model.predict_proba(X, lam=0.07)
    assert proba.shape == (len(X),)
    assert ((proba > 0) & (proba < 1)).all()


def test_off_path_prediction_ignores_later_trainer_changes(binary_data):
    X, y = binary_data
    trainer = PenalizedLogisticClassifier(alpha=0.0, n_lambda=3, lambda_min_ratio=0.1)
    model = trainer.fit(X, y)
    before = model.predict_proba(X, lam=0.07)

    trainer.alpha = 1.0
    trainer.max_iter = 1
    after = model.predict_proba(X, lam=0.07)
    np.testing.assert_allclose(after, before)


def test_non_convergence_warnings_are_not_swallowed(binary_data, monkeypatch):
    X, y = binary_data
    original_fit = LogisticRegression.fit

    def noisy_fit(self, *args, **kwargs):
        warnings.warn("numeric trouble", RuntimeWarning)
        return original_fit(self, *args, **kwargs)

    monkeypatch.setattr(LogisticRegression, "fit", noisy_fit)
    with pytest.warns(RuntimeWarning, match="numeric trouble"):
        PenalizedLogisticClassifier(alpha=0.5, strict=False).fit(X, y, lambdas=[0.05])


def test_alpha_cannot_be_passed_to_fit(binary_data):
    X, y = binary_data
    with pytest.raises(TypeError):
        ridge().fit(X, y, alpha=0.3)


def test_alpha_range_checked():
    with pytest.raises(ValueError):
        PenalizedLogisticClassifier(alpha=1.5)


def test_fit_cv_selects_lambda_on_path(binary_data):
    X, y = binary_data
    model = elastic_net(0.5, n_lambda=8, lambda_min_ratio=0.01).fit_cv(X, y, n_folds=4)

    assert model.lambda_min in model.lambdas_
    assert model.lambda_1se >= model.lambda_min
    assert model.lambda_ == model.lambda_min
    assert list(model.cv_results_.columns) == ["lambda", "mean_score", "se_score", "n_folds"]


def test_coefficients_on_original_scale(binary_data):
    X, y = binary_data
    model = ridge(n_lambda=3, lambda_min_ratio=0.1).fit(X, y)
    coef = model.coef()

    linear = coef["(Intercept)"] + X.to_numpy() @ coef.drop("(Intercept)").to_numpy()
    expected = model.predict_proba(X)
    assert np.allclose(1 / (1 + np.exp(-linear)), expected)


def test_missing_values_rejected(binary_data):
    X, y = binary_data
    X = X.copy()
    X.iloc[0, 0] = np.nan
    with pytest.raises(InputDataError):
        ridge().fit(X, y)


def test_single_class_rejected(binary_data):
    X, _ = binary_data
    y = pd.Series(["obese"] * len(X), index=X.index)
    with pytest.raises(DegenerateDataError):
        ridge().fit(X, y)


def test_strict_mode_raises_on_non_convergence(binary_data):
    X, y = binary_data
    trainer = PenalizedLogisticClassifier(alpha=0.5, max_iter=1, tol=1e-12, strict=True)
    with pytest.raises(FitError):
        trainer.fit(X, y, lambdas=[0.001])


def test_random_forest_is_reproducible(binary_data):
    X, y = binary_data
    first = RandomForestClassifierModel(n_trees=30, oob_checkpoint=10, random_state=5).fit(X, y)
    second = RandomForestClassifierModel(n_trees=30, oob_checkpoint=10, random_state=5).fit(X, y)

    assert list(first.predict(X)) == list(second.predict(X))
    assert first.feature_importance().equals(second.feature_importance())


def test_random_forest_error_trend_and_importance(binary_data):
    X, y = binary_data
    model = RandomForestClassifierModel(n_trees=40, oob_checkpoint=10, random_state=0).fit(X, y)

    trend = model.error_trend_
    assert list(trend["n_trees"]) == [10, 20, 30, 40]
    assert list(trend.columns) == ["n_trees", "OOB", "normal", "obese"]
    assert trend["OOB"].between(0, 1).all()

    importance = model.feature_importance()
    assert "IL1" in importance.index[:2]
    assert importance.sum() == pytest.approx(1.0)
    assert set(model.predict(X)) <= {"normal", "obese"}


def test_random_forest_permutation_importance(binary_data):
    X, y = binary_data
    model = RandomForestClassifierModel(n_trees=20, oob_checkpoint=0, random_state=0).fit(X, y)
    table = model.permutation_importance(X, y, n_repeats=3, random_state=0)
    assert list(table.columns) == ["importance_mean", "importance_std"]
    assert set(table.index) == set(X.columns)
