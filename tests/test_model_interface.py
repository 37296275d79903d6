"""Tests for the evaluation utilities."""

import numpy as np
import pytest

from rf_bagging.models.forest_components.random_stream import EncodableRng, std_rng
from rf_bagging.utils.datasets import load_iris, make_classification_data
from rf_bagging.utils.model_interface import (
    accuracy,
    cross_validate_forest,
    cross_validation_splits,
    evaluate_model_interface,
)


class TestCrossValidationSplits:

    def test_folds_partition_rows(self):
        splits = cross_validation_splits(23, 5, std_rng())
        assert len(splits) == 5

        test_rows = np.concatenate([test for _, test in splits])
        assert sorted(test_rows.tolist()) == list(range(23))

        for train, test in splits:
            assert len(np.intersect1d(train, test)) == 0
            assert len(train) + len(test) == 23

    def test_deterministic_and_does_not_advance_stream(self):
        rng = EncodableRng(3)
        first = cross_validation_splits(30, 3, rng)
        second = cross_validation_splits(30, 3, rng)

        assert rng == EncodableRng(3)
        for (a_train, a_test), (b_train, b_test) in zip(first, second):
            assert np.array_equal(a_train, b_train)
            assert np.array_equal(a_test, b_test)


def test_accuracy():
    assert accuracy([0, 1, 1, 2], np.array([0, 1, 2, 2])) == 0.75


class TestCrossValidateForest:

    def test_result_fields(self, binary_data, forest_params):
        X, y = binary_data
        result = cross_validate_forest(X, y, forest_params, n_splits=3, rng=std_rng())

        assert result['variant'] == 'dense'
        assert len(result['fold_accuracies']) == 3
        assert result['mean_accuracy'] == pytest.approx(np.mean(result['fold_accuracies']))
        assert result['train_time'] >= 0.0
        assert result['predict_time'] >= 0.0

    def test_unknown_variant(self, binary_data, forest_params):
        X, y = binary_data
        with pytest.raises(ValueError):
            cross_validate_forest(X, y, forest_params, variant='gpu')


def test_evaluate_model_interface(binary_data, forest_params):
    X, y = binary_data
    results = evaluate_model_interface(forest_params.build(), X[:40], y[:40], X[40:], y[40:])

    assert results['model_class'] == 'RandomForest'
    assert results['n_predictions'] == 20
    assert 0.0 <= results['evaluation']['accuracy'] <= 1.0


class TestDatasets:

    def test_iris_shape(self):
        X, y = load_iris()
        assert X.shape == (150, 4)
        assert y.shape == (150,)
        assert X.dtype == np.float64
        assert sorted(np.unique(y).tolist()) == [0.0, 1.0, 2.0]

    def test_sparse_synthetic(self):
        X, y = make_classification_data(n_samples=50, n_features=8, n_informative=3, density=0.5)
        assert X.format == "csr"
        assert X.shape == (50, 8)
        assert X.nnz < 50 * 8
        assert y.shape == (50,)
