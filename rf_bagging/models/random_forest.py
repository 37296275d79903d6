"""
Random Forest Module

Fits a forest of decision trees on bootstrap samples of the training data
and averages their scores. Averaging counters the tendency of individual
trees to overfit; in general, the more trees, the better the out-of-sample
predictions.

Example:
--------
>>> from rf_bagging.models import DecisionTreeHyperparameters, ForestHyperparameters
>>> from rf_bagging.utils.datasets import load_iris
>>> X, y = load_iris()
>>> tree_params = DecisionTreeHyperparameters(X.shape[1], min_samples_split=10, max_features=4)
>>> model = ForestHyperparameters(tree_params, 10).one_vs_rest()
>>> model.fit(X, y)
>>> y_pred = model.predict(X)
"""

import logging
import numpy as np
from typing import Any, Dict, List

from joblib import Parallel, delayed

from .base import ParallelSupervisedModel
from .decision_tree import DecisionTree, DecisionTreeHyperparameters
from .exceptions import ModelFormatError, PredictionError, TrainingError
from .forest_components.bootstrap import bootstrap_indices, draw_bootstrap_sets
from .forest_components.data_transforms import validate_input_data
from .forest_components.matrix import Matrix, add_inplace, div_inplace, zeros
from .forest_components.random_stream import EncodableRng, SeedLike, as_rng
from .one_vs_rest import OneVsRestWrapper

logger = logging.getLogger(__name__)


def _fit_tree(tree: DecisionTree, X: Matrix, y: np.ndarray, indices: np.ndarray) -> DecisionTree:
    """
    Fit a copy of ``tree`` on the rows selected by ``indices``.

    Row-oriented sparse input is converted to column orientation after row
    selection, once per tree.
    """
    X_sample = X.get_rows(indices).to_column_major()
    y_sample = y[indices]

    fitted = DecisionTree(tree.hyperparameters.clone())
    fitted.rng = tree.rng.clone()
    return fitted.fit(X_sample, y_sample)


def _tree_scores(tree: DecisionTree, X: Matrix) -> np.ndarray:
    return tree.decision_function(X)


class ForestHyperparameters:
    """
    Random forest configuration

    Holds the decision tree hyperparameters, the number of trees and the
    master random stream from which every tree's private stream is derived.

    Attributes:
    -----------
    tree_hyperparameters : DecisionTreeHyperparameters
        Hyperparameters shared by all trees (each tree gets its own reseeded copy)
    n_trees : int
        Number of trees to build
    rng : EncodableRng
        Master random stream
    """

    def __init__(self, tree_hyperparameters: DecisionTreeHyperparameters, n_trees: int):
        self.tree_hyperparameters = tree_hyperparameters
        self.n_trees = n_trees
        self.rng = EncodableRng()

    def set_rng(self, rng: SeedLike) -> 'ForestHyperparameters':
        """
        Replace the master random stream
        """
        self.rng = as_rng(rng)
        return self

    def build(self) -> 'RandomForest':
        """
        Build an untrained random forest

        Seeds are drawn one tree after another from a single clone of the
        master stream, so every tree gets a different 32-value seed. The
        forest's bootstrap stream is a separate clone of the unaltered master
        stream.

        Returns:
        --------
        forest : RandomForest
            Forest of ``n_trees`` untrained, independently seeded trees
        """
        rng = self.rng.clone()
        trees = []

        for _ in range(self.n_trees):
            # 再シードしないと全ての木が同一のコピーになる
            hyperparameters = self.tree_hyperparameters.clone().reseed(rng.seed_values())
            trees.append(hyperparameters.build())

        return RandomForest(trees, self.rng.clone())

    def one_vs_rest(self) -> OneVsRestWrapper:
        """
        Build a forest and wrap it for multiclass classification
        """
        return OneVsRestWrapper(self.build())

    def get_params(self) -> Dict[str, Any]:
        return {
            'n_trees': self.n_trees,
            'tree_hyperparameters': self.tree_hyperparameters.get_params(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'model_type': 'ForestHyperparameters',
            'n_trees': self.n_trees,
            'tree_hyperparameters': self.tree_hyperparameters.to_dict(),
            'rng': self.rng.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ForestHyperparameters':
        try:
            params = cls(
                DecisionTreeHyperparameters.from_dict(data['tree_hyperparameters']),
                int(data['n_trees'])
            )
            params.rng = EncodableRng.from_dict(data['rng'])
        except ModelFormatError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise ModelFormatError(f"Invalid forest hyperparameters: {e}") from e
        return params


class RandomForest(ParallelSupervisedModel):
    """
    Random forest of decision trees trained on bootstrap samples

    The forest owns its trees and a random stream used only for bootstrap
    sampling. The stream is advanced by every successful fit, so a second fit
    draws new samples instead of repeating the first ones.
    """

    _param_names = ('trees', 'rng')

    def __init__(self, trees: List[DecisionTree], rng: EncodableRng):
        self.trees = trees
        self.rng = rng

    @property
    def n_trees(self) -> int:
        return len(self.trees)

    @property
    def is_fitted(self) -> bool:
        return bool(self.trees) and all(tree.is_fitted for tree in self.trees)

    def fit(self, X: Any, y: Any) -> 'RandomForest':
        """
        Fit every tree on its own bootstrap sample

        Parameters:
        -----------
        X : array-like or scipy.sparse matrix, shape=(n_samples, n_features)
            Training features (dense, CSR or CSC)
        y : array-like, shape=(n_samples,) or (n_samples, 1)
            Training targets

        Returns:
        --------
        self : RandomForest
            Fitted model
        """
        X, y = validate_input_data(X, y, TrainingError)
        rng = self.rng.clone()

        logger.debug("Fitting %d trees on %d samples", self.n_trees, X.rows())

        fitted = []
        for tree in self.trees:
            indices = bootstrap_indices(X.rows(), rng)
            fitted.append(_fit_tree(tree, X, y, indices))

        # 全ての木の学習に成功した場合のみ状態を更新する
        self.trees = fitted
        self.rng = rng

        return self

    def fit_parallel(self, X: Any, y: Any, n_jobs: int) -> 'RandomForest':
        """
        Fit the trees on ``n_jobs`` workers

        All bootstrap index sets are drawn sequentially before any tree is
        dispatched, so the samples (and therefore the fitted trees) are
        identical to those of ``fit``.

        Parameters:
        -----------
        X : array-like or scipy.sparse matrix, shape=(n_samples, n_features)
            Training features
        y : array-like, shape=(n_samples,) or (n_samples, 1)
            Training targets
        n_jobs : int
            Number of workers

        Returns:
        --------
        self : RandomForest
            Fitted model
        """
        X, y = validate_input_data(X, y, TrainingError)
        rng = self.rng.clone()

        samples = draw_bootstrap_sets(self.n_trees, X.rows(), rng)

        logger.debug("Fitting %d trees on %d samples with %d workers", self.n_trees, X.rows(), n_jobs)

        fitted = Parallel(n_jobs=n_jobs, prefer="threads")(
            delayed(_fit_tree)(tree, X, y, indices)
            for tree, indices in zip(self.trees, samples)
        )

        self.trees = list(fitted)
        self.rng = rng

        return self

    def decision_function(self, X: Any) -> np.ndarray:
        """
        Average of the trees' scores

        Parameters:
        -----------
        X : array-like or scipy.sparse matrix, shape=(n_samples, n_features)
            Input features

        Returns:
        --------
        scores : array-like, shape=(n_samples, 1)
            Mean tree score per row
        """
        X = self._prediction_matrix(X)

        scores = zeros(X.rows(), 1)
        for tree in self.trees:
            add_inplace(scores, tree.decision_function(X))

        return div_inplace(scores, self.n_trees)

    def decision_function_parallel(self, X: Any, n_jobs: int) -> np.ndarray:
        """
        Average of the trees' scores, computed on ``n_jobs`` workers

        Tree scores are summed in tree order once all workers are done, so the
        result equals ``decision_function`` exactly.
        """
        X = self._prediction_matrix(X)

        tree_scores = Parallel(n_jobs=n_jobs, prefer="threads")(
            delayed(_tree_scores)(tree, X) for tree in self.trees
        )

        scores = zeros(X.rows(), 1)
        for score in tree_scores:
            add_inplace(scores, score)

        return div_inplace(scores, self.n_trees)

    def _prediction_matrix(self, X: Any) -> Matrix:
        if self.n_trees == 0:
            raise PredictionError("Cannot compute a decision function with a forest of zero trees")

        X, _ = validate_input_data(X, error_cls=PredictionError)

        # 予測では行の再サンプリングがないので、変換は全ての木で共有する
        return X.to_column_major()

    def get_feature_importance(self) -> np.ndarray:
        """
        Mean of the trees' normalized feature importances
        """
        if not self.is_fitted:
            raise ValueError("Model has not been fitted yet")

        importance = np.mean([tree.feature_importances_ for tree in self.trees], axis=0)

        total = np.sum(importance)
        if total > 0:
            importance = importance / total

        return importance

    def get_node_logs(self) -> List[Dict]:
        """
        Node logs from all trees, tagged with the tree index
        """
        all_logs = []

        for i, tree in enumerate(self.trees):
            if not tree.is_fitted:
                continue
            for log in tree.get_node_logs():
                log['tree_index'] = i
                all_logs.append(log)

        return all_logs

    def to_dict(self) -> Dict[str, Any]:
        return {
            'model_type': 'RandomForest',
            'trees': [tree.to_dict() for tree in self.trees],
            'rng': self.rng.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RandomForest':
        try:
            trees = [DecisionTree.from_dict(tree) for tree in data['trees']]
            rng = EncodableRng.from_dict(data['rng'])
        except ModelFormatError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise ModelFormatError(f"Invalid random forest payload: {e}") from e
        return cls(trees, rng)

    def print_training_summary(self) -> None:
        """
        Print training summary
        """
        print(f"\n=== Random Forest Summary ===")
        print(f"Trees: {self.n_trees}")
        print(f"Fitted: {self.is_fitted}")

        if self.is_fitted:
            depths = [tree.root.get_depth() for tree in self.trees]
            nodes = [tree.root.count_nodes() for tree in self.trees]
            print(f"Depth - Avg: {np.mean(depths):.2f}, Min: {np.min(depths)}, Max: {np.max(depths)}")
            print(f"Nodes - Avg: {np.mean(nodes):.2f}, Min: {np.min(nodes)}, Max: {np.max(nodes)}")

            importance = self.get_feature_importance()
            print(f"Top 5 features: {np.argsort(importance)[-5:][::-1]}")

    def __repr__(self) -> str:
        return f"RandomForest(n_trees={self.n_trees}, fitted={self.is_fitted})"
