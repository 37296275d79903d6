"""Tests for the bootstrap-aggregated random forest."""

import numpy as np
import pytest
import scipy.sparse as sp

from rf_bagging.models import (
    DecisionTreeHyperparameters,
    ForestHyperparameters,
    PredictionError,
    RandomForest,
    SamplingError,
    TrainingError,
)
from rf_bagging.models.forest_components.random_stream import EncodableRng


class TestForestBuild:

    def test_builds_requested_number_of_trees(self, forest_params):
        forest = forest_params.build()
        assert forest.n_trees == 5
        assert not forest.is_fitted

    def test_trees_get_distinct_streams(self, forest_params):
        forest = forest_params.build()
        streams = [tree.rng for tree in forest.trees]
        for i in range(len(streams)):
            for j in range(i + 1, len(streams)):
                assert streams[i] != streams[j]

    def test_seeds_are_drawn_in_tree_order(self, forest_params):
        master = forest_params.rng.clone()
        expected = [EncodableRng.from_seed(master.seed_values()) for _ in range(5)]

        forest = forest_params.build()

        assert [tree.rng for tree in forest.trees] == expected

    def test_forest_stream_is_unaltered_master(self, forest_params):
        forest = forest_params.build()
        assert forest.rng == forest_params.rng
        assert forest.rng is not forest_params.rng

    def test_build_is_repeatable(self, forest_params):
        a = forest_params.build()
        b = forest_params.build()
        assert [tree.rng for tree in a.trees] == [tree.rng for tree in b.trees]

    def test_set_rng_changes_trees(self, tree_params):
        a = ForestHyperparameters(tree_params, 3).build()
        b = ForestHyperparameters(tree_params, 3).set_rng(7).build()
        assert a.trees[0].rng != b.trees[0].rng

    def test_one_vs_rest_wraps_forest(self, forest_params):
        model = forest_params.one_vs_rest()
        assert isinstance(model.base_model, RandomForest)


class TestForestFit:

    def test_decision_function_length(self, binary_data, forest_params):
        X, y = binary_data
        forest = forest_params.build().fit(X, y)
        scores = forest.decision_function(X)
        assert scores.shape == (X.shape[0], 1)

    def test_deterministic(self, binary_data, forest_params):
        X, y = binary_data
        a = forest_params.build().fit(X, y)
        b = forest_params.build().fit(X, y)
        assert np.array_equal(a.decision_function(X), b.decision_function(X))

    def test_score_is_mean_of_tree_scores(self, binary_data, forest_params):
        X, y = binary_data
        forest = forest_params.build().fit(X, y)
        expected = np.mean([tree.decision_function(X) for tree in forest.trees], axis=0)
        np.testing.assert_allclose(forest.decision_function(X), expected, rtol=1e-12, atol=0)

    def test_predict_is_binary(self, binary_data, forest_params):
        X, y = binary_data
        forest = forest_params.build().fit(X, y)
        y_pred = forest.predict(X)
        assert y_pred.shape == (X.shape[0],)
        assert set(np.unique(y_pred)) <= {0.0, 1.0}
        assert forest.evaluate(X, y)['accuracy'] > 0.8

    def test_fit_advances_sampling_stream(self, binary_data, forest_params):
        X, y = binary_data
        forest = forest_params.build()
        forest.fit(X, y)
        after_first = forest.rng.clone()
        forest.fit(X, y)

        assert after_first != forest_params.rng
        assert forest.rng != after_first

    def test_prediction_does_not_touch_stream(self, binary_data, forest_params):
        X, y = binary_data
        forest = forest_params.build().fit(X, y)
        rng = forest.rng.clone()
        forest.decision_function(X)
        forest.decision_function_parallel(X, 2)
        assert forest.rng == rng

    def test_zero_rows(self, forest_params):
        forest = forest_params.build()
        rng = forest.rng.clone()
        with pytest.raises(SamplingError):
            forest.fit(np.zeros((0, 3)), np.zeros(0))
        assert forest.rng == rng
        assert not forest.is_fitted

    def test_failed_tree_leaves_forest_unchanged(self, binary_data, forest_params):
        X, y = binary_data
        forest = forest_params.build().fit(X, y)
        trees = list(forest.trees)
        rng = forest.rng.clone()

        wide = np.hstack([X, X[:, :1]])
        with pytest.raises(TrainingError):
            forest.fit(wide, y)

        assert all(a is b for a, b in zip(forest.trees, trees))
        assert forest.rng == rng

    def test_single_row(self, tree_params):
        forest = ForestHyperparameters(tree_params, 3).build()
        forest.fit(np.array([[1.0, 2.0, 3.0]]), np.array([1.0]))
        assert forest.decision_function(np.array([[0.0, 0.0, 0.0]])).tolist() == [[1.0]]

    def test_zero_tree_forest_cannot_predict(self, binary_data, tree_params):
        X, y = binary_data
        forest = ForestHyperparameters(tree_params, 0).build()
        forest.fit(X, y)
        with pytest.raises(PredictionError):
            forest.decision_function(X)

    def test_feature_importance(self, binary_data, forest_params):
        X, y = binary_data
        forest = forest_params.build().fit(X, y)
        importance = forest.get_feature_importance()
        assert importance.shape == (3,)
        assert np.isclose(importance.sum(), 1.0)

    def test_node_logs_are_tagged(self, binary_data, forest_params):
        X, y = binary_data
        forest = forest_params.build().fit(X, y)
        logs = forest.get_node_logs()
        assert {log['tree_index'] for log in logs} == set(range(5))

    def test_training_summary(self, binary_data, forest_params, capsys):
        X, y = binary_data
        forest_params.build().fit(X, y).print_training_summary()
        assert "Random Forest Summary" in capsys.readouterr().out


class TestSparseInput:

    def test_dense_and_sparse_agree(self, binary_data, sparse_binary_data, forest_params):
        X, y = binary_data
        X_sparse, _ = sparse_binary_data

        dense = forest_params.build().fit(X, y)
        sparse = forest_params.build().fit(X_sparse, y)

        assert np.array_equal(dense.decision_function(X), sparse.decision_function(X_sparse))
        assert np.array_equal(dense.decision_function(X), sparse.decision_function(X))
        assert dense.rng == sparse.rng

    def test_column_sparse_input(self, binary_data, forest_params):
        X, y = binary_data
        dense = forest_params.build().fit(X, y)
        sparse = forest_params.build().fit(sp.csc_matrix(X), y)
        assert np.array_equal(dense.decision_function(X), sparse.decision_function(sp.csc_matrix(X)))


class TestParallel:

    def test_fit_parallel_matches_sequential(self, binary_data, forest_params):
        X, y = binary_data
        sequential = forest_params.build().fit(X, y)
        parallel = forest_params.build().fit_parallel(X, y, 2)

        assert parallel.rng == sequential.rng
        assert np.array_equal(parallel.decision_function(X), sequential.decision_function(X))

    def test_decision_function_parallel_matches_sequential(self, binary_data, forest_params):
        X, y = binary_data
        forest = forest_params.build().fit(X, y)
        assert np.array_equal(forest.decision_function_parallel(X, 2), forest.decision_function(X))
        assert np.array_equal(forest.predict_parallel(X, 2), forest.predict(X))

    def test_parallel_sparse(self, sparse_binary_data, forest_params):
        X, y = sparse_binary_data
        sequential = forest_params.build().fit(X, y)
        parallel = forest_params.build().fit_parallel(X, y, 2)
        assert np.array_equal(parallel.decision_function_parallel(X, 2), sequential.decision_function(X))

    def test_parallel_failure_leaves_forest_unchanged(self, binary_data, forest_params):
        X, y = binary_data
        forest = forest_params.build()
        rng = forest.rng.clone()

        with pytest.raises(TrainingError):
            forest.fit_parallel(np.hstack([X, X]), y, 2)

        assert forest.rng == rng
        assert not forest.is_fitted


class TestForestHyperparametersDict:

    def test_round_trip(self, forest_params):
        restored = ForestHyperparameters.from_dict(forest_params.to_dict())
        assert restored.n_trees == forest_params.n_trees
        assert restored.rng == forest_params.rng
        assert [t.rng for t in restored.build().trees] == [t.rng for t in forest_params.build().trees]

    def test_get_params(self, forest_params):
        params = forest_params.get_params()
        assert params['n_trees'] == 5
        assert params['tree_hyperparameters']['max_features'] == 2
