"""Tests for the one-vs-rest wrapper, including the iris cross-validation scenario."""

import numpy as np
import pytest
from sklearn.exceptions import NotFittedError

from rf_bagging.models import (
    DecisionTreeHyperparameters,
    ForestHyperparameters,
    OneVsRestWrapper,
    RandomForest,
    TrainingError,
)
from rf_bagging.models.forest_components.random_stream import std_rng
from rf_bagging.utils.model_interface import cross_validate_forest

# 10-fold CV の平均正解率の下限
IRIS_MIN_ACCURACY = 0.96

# フォールド分割のシャッフルに使うシード（フォレスト自体は std_rng のまま）
IRIS_FOLD_SEED = 1


@pytest.fixture
def iris_forest_params(iris):
    X, _ = iris
    tree_params = DecisionTreeHyperparameters(X.shape[1], min_samples_split=10, max_features=4)
    return ForestHyperparameters(tree_params, 10).set_rng(std_rng())


class TestOneVsRestWrapper:

    def test_fit_and_predict(self, iris, iris_forest_params):
        X, y = iris
        model = iris_forest_params.one_vs_rest().fit(X, y)

        assert model.classes_.tolist() == [0.0, 1.0, 2.0]
        assert len(model.models()) == 3
        assert all(isinstance(m, RandomForest) for m in model.models())

        scores = model.decision_function(X)
        assert scores.shape == (150, 3)

        y_pred = model.predict(X)
        assert y_pred.shape == (150,)
        assert set(np.unique(y_pred)) <= {0.0, 1.0, 2.0}
        assert model.evaluate(X, y)['accuracy'] > 0.95

    def test_predict_is_argmax_of_scores(self, iris, iris_forest_params):
        X, y = iris
        model = iris_forest_params.one_vs_rest().fit(X, y)
        expected = model.classes_[np.argmax(model.decision_function(X), axis=1)]
        assert np.array_equal(model.predict(X), expected)

    def test_non_contiguous_labels(self, binary_data, forest_params):
        X, y = binary_data
        labels = np.where(y > 0, 7.0, -3.0)
        model = forest_params.one_vs_rest().fit(X, labels)
        assert model.classes_.tolist() == [-3.0, 7.0]
        assert set(np.unique(model.predict(X))) <= {-3.0, 7.0}

    def test_base_model_is_not_fitted(self, binary_data, forest_params):
        X, y = binary_data
        model = forest_params.one_vs_rest().fit(X, y)
        assert not model.base_model.is_fitted

    def test_tree_base_model(self, binary_data, tree_params):
        X, y = binary_data
        model = OneVsRestWrapper(tree_params.build()).fit(X, y)
        assert model.decision_function(X).shape == (X.shape[0], 2)

    def test_predict_before_fit(self, binary_data, forest_params):
        X, _ = binary_data
        with pytest.raises(NotFittedError):
            forest_params.one_vs_rest().predict(X)

    def test_failed_fit_commits_nothing(self, binary_data, forest_params):
        X, y = binary_data
        model = forest_params.one_vs_rest()
        with pytest.raises(TrainingError):
            model.fit(X, y[:-1])
        assert model.classes_ is None
        assert model.models() == []

    def test_parallel_matches_sequential(self, iris, iris_forest_params):
        X, y = iris
        sequential = iris_forest_params.one_vs_rest().fit(X, y)
        parallel = iris_forest_params.one_vs_rest().fit_parallel(X, y, 2)

        assert np.array_equal(parallel.decision_function_parallel(X, 2), sequential.decision_function(X))
        assert np.array_equal(parallel.predict_parallel(X, 2), sequential.predict(X))


class TestIrisCrossValidation:

    def test_dense(self, iris, iris_forest_params):
        X, y = iris
        result = cross_validate_forest(X, y, iris_forest_params, variant='dense', rng=IRIS_FOLD_SEED)
        assert len(result['fold_accuracies']) == 10
        assert result['mean_accuracy'] > IRIS_MIN_ACCURACY

    def test_sparse(self, iris, iris_forest_params):
        X, y = iris
        result = cross_validate_forest(X, y, iris_forest_params, variant='sparse', rng=IRIS_FOLD_SEED)
        assert result['mean_accuracy'] > IRIS_MIN_ACCURACY

    def test_parallel(self, iris, iris_forest_params):
        X, y = iris
        result = cross_validate_forest(X, y, iris_forest_params, variant='parallel', n_jobs=2, rng=IRIS_FOLD_SEED)
        assert result['mean_accuracy'] > IRIS_MIN_ACCURACY

    def test_variants_agree_fold_by_fold(self, iris, iris_forest_params):
        X, y = iris
        results = [
            cross_validate_forest(X, y, iris_forest_params, variant=variant, rng=IRIS_FOLD_SEED)
            for variant in ('dense', 'sparse', 'parallel')
        ]
        assert results[0]['fold_accuracies'] == results[1]['fold_accuracies']
        assert results[0]['fold_accuracies'] == results[2]['fold_accuracies']
