"""
Decision Tree

This module contains the DecisionTree base learner and its hyperparameters.
A tree is trained from a (matrix, target) pair and produces one score per
row; it accepts dense matrices and column-oriented sparse matrices.
"""

import logging
import numpy as np
from typing import Any, Dict, List, Optional, Sequence

from sklearn.exceptions import NotFittedError

from .base import SupervisedModel
from .exceptions import ModelFormatError, PredictionError, TrainingError
from .forest_components.data_transforms import validate_input_data
from .forest_components.random_stream import EncodableRng, SeedLike, as_rng
from .forest_components.tree_builder import TreeBuilder
from .forest_components.tree_node import DecisionTreeNode

logger = logging.getLogger(__name__)


class DecisionTreeHyperparameters:
    """
    決定木のハイパーパラメータ

    Attributes:
    -----------
    n_features : int
        特徴量数
    max_depth : int or None
        最大深度
    min_samples_split : int
        分割に必要な最小サンプル数
    min_samples_leaf : int
        リーフノードに必要な最小サンプル数
    max_features : int or None
        各ノードで候補とする特徴量数（Noneの場合は全特徴量）
    rng : EncodableRng
        木が内部で使う乱数ストリーム
    """

    def __init__(self,
                 n_features: int,
                 max_depth: Optional[int] = None,
                 min_samples_split: int = 2,
                 min_samples_leaf: int = 1,
                 max_features: Optional[int] = None,
                 rng: SeedLike = None):
        self.n_features = n_features
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.max_features = max_features
        self.rng = as_rng(rng)

    def set_rng(self, rng: SeedLike) -> 'DecisionTreeHyperparameters':
        """
        Replace the tree's random stream
        """
        self.rng = as_rng(rng)
        return self

    def reseed(self, seed_values: Sequence[int]) -> 'DecisionTreeHyperparameters':
        """
        Reseed the tree's random stream from a 32-value seed
        """
        self.rng = EncodableRng.from_seed(seed_values)
        return self

    def clone(self) -> 'DecisionTreeHyperparameters':
        return DecisionTreeHyperparameters(
            n_features=self.n_features,
            max_depth=self.max_depth,
            min_samples_split=self.min_samples_split,
            min_samples_leaf=self.min_samples_leaf,
            max_features=self.max_features,
            rng=self.rng.clone()
        )

    def validate(self) -> None:
        """
        ハイパーパラメータの検証（不正な場合は TrainingError）
        """
        if self.n_features < 1:
            raise TrainingError(f"n_features must be at least 1, got {self.n_features}")
        if self.min_samples_split < 2:
            raise TrainingError(f"min_samples_split must be at least 2, got {self.min_samples_split}")
        if self.min_samples_leaf < 1:
            raise TrainingError(f"min_samples_leaf must be at least 1, got {self.min_samples_leaf}")
        if self.max_depth is not None and self.max_depth < 0:
            raise TrainingError(f"max_depth must be non-negative, got {self.max_depth}")
        if self.max_features is not None and not 1 <= self.max_features <= self.n_features:
            raise TrainingError(
                f"max_features must be between 1 and n_features ({self.n_features}), got {self.max_features}"
            )

    def build(self) -> 'DecisionTree':
        """
        未学習の決定木を作成
        """
        return DecisionTree(self.clone())

    def get_params(self) -> Dict[str, Any]:
        return {
            'n_features': self.n_features,
            'max_depth': self.max_depth,
            'min_samples_split': self.min_samples_split,
            'min_samples_leaf': self.min_samples_leaf,
            'max_features': self.max_features,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.get_params()
        data['model_type'] = 'DecisionTreeHyperparameters'
        data['rng'] = self.rng.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DecisionTreeHyperparameters':
        try:
            return cls(
                n_features=int(data['n_features']),
                max_depth=None if data['max_depth'] is None else int(data['max_depth']),
                min_samples_split=int(data['min_samples_split']),
                min_samples_leaf=int(data['min_samples_leaf']),
                max_features=None if data['max_features'] is None else int(data['max_features']),
                rng=EncodableRng.from_dict(data['rng'])
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ModelFormatError(f"Invalid decision tree hyperparameters: {e}") from e


class DecisionTree(SupervisedModel):
    """
    決定木（ランダムフォレストの基本学習器）

    リーフの値はそのリーフに到達した学習サンプルのターゲット平均値。
    0/1 ターゲットでは正例の割合（確率）になる。
    """

    _param_names = ('hyperparameters',)

    def __init__(self, hyperparameters: DecisionTreeHyperparameters):
        self.hyperparameters = hyperparameters
        self.rng = hyperparameters.rng.clone()

        # 木の状態
        self.root = None
        self.is_fitted = False
        self.feature_importances_ = None

    @property
    def n_features(self) -> int:
        return self.hyperparameters.n_features

    def fit(self, X: Any, y: Any) -> 'DecisionTree':
        """
        決定木を訓練

        Parameters:
        -----------
        X : array-like, Matrix or scipy.sparse CSC matrix, shape=(n_samples, n_features)
            入力特徴量（行方向の疎行列は不可）
        y : array-like, shape=(n_samples,) or (n_samples, 1)
            ターゲット値

        Returns:
        --------
        self : DecisionTree
            訓練済みの決定木
        """
        self.hyperparameters.validate()
        X, y = validate_input_data(X, y, TrainingError)

        if X.rows() == 0:
            raise TrainingError("Cannot fit a decision tree on zero samples")
        if not X.is_column_major:
            raise TrainingError("Decision trees require a dense or column-oriented matrix")
        if X.cols() != self.n_features:
            raise TrainingError(f"X has {X.cols()} features, but the tree expects {self.n_features}")

        # 失敗した場合に状態が変わらないよう、作業用のコピーで構築する
        rng = self.rng.clone()
        builder = TreeBuilder(
            max_depth=self.hyperparameters.max_depth,
            min_samples_split=self.hyperparameters.min_samples_split,
            min_samples_leaf=self.hyperparameters.min_samples_leaf,
            max_features=self.hyperparameters.max_features
        )
        root = builder.build_tree(X, y, rng)

        self.root = root
        self.rng = rng
        self.is_fitted = True
        self.feature_importances_ = self._compute_feature_importance(self.n_features)

        logger.debug("Fitted decision tree on %d samples: %d nodes", X.rows(), builder.node_counter)
        return self

    def decision_function(self, X: Any) -> np.ndarray:
        """
        予測スコアを計算

        Parameters:
        -----------
        X : array-like, Matrix or scipy.sparse CSC matrix, shape=(n_samples, n_features)
            入力特徴量

        Returns:
        --------
        scores : array-like, shape=(n_samples, 1)
            各行が到達したリーフの値
        """
        if not self.is_fitted:
            raise NotFittedError("Model must be fitted before prediction")

        X, _ = validate_input_data(X, error_cls=PredictionError)

        if not X.is_column_major:
            raise PredictionError("Decision trees require a dense or column-oriented matrix")
        if X.cols() != self.n_features:
            raise PredictionError(f"X has {X.cols()} features, but the tree expects {self.n_features}")

        cache: Dict[int, np.ndarray] = {}

        def column(j: int) -> np.ndarray:
            if j not in cache:
                cache[j] = X.column(j)
            return cache[j]

        scores = np.zeros(X.rows(), dtype=np.float64)
        if X.rows() > 0:
            self.root.predict(column, np.arange(X.rows()), scores)

        return scores.reshape(-1, 1)

    def _nodes(self) -> List[DecisionTreeNode]:
        """
        前順走査でノードを列挙
        """
        nodes = []
        stack = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            nodes.append(node)
            if not node.is_leaf:
                stack.append(node.right)
                stack.append(node.left)
        return nodes

    def _compute_feature_importance(self, n_features: int) -> np.ndarray:
        """
        特徴量重要度（不純度減少量の合計を正規化したもの）を計算
        """
        importance = np.zeros(n_features)

        for node in self._nodes():
            if not node.is_leaf:
                importance[node.feature_idx] += node.information_gain

        total_importance = np.sum(importance)
        if total_importance > 0:
            importance = importance / total_importance

        return importance

    def get_node_logs(self) -> List[Dict]:
        return [node.to_log() for node in self._nodes()]

    def get_info(self) -> Dict[str, Any]:
        """
        決定木の情報を取得
        """
        info = self.hyperparameters.get_params()
        info["is_fitted"] = self.is_fitted

        if self.is_fitted and self.root is not None:
            info.update({
                "actual_depth": self.root.get_depth(),
                "n_nodes": self.root.count_nodes(),
                "feature_importance": self.feature_importances_.tolist()
            })

        return info

    def to_dict(self) -> Dict[str, Any]:
        """
        木の構造を配列（前順）に平坦化して辞書にする

        リーフは feature = left = right = -1、threshold = 0.0（未使用）で表す。
        """
        data = {
            'model_type': 'DecisionTree',
            'hyperparameters': self.hyperparameters.to_dict(),
            'rng': self.rng.to_dict(),
            'is_fitted': self.is_fitted,
        }
        if not self.is_fitted:
            return data

        nodes = self._nodes()
        position = {id(node): i for i, node in enumerate(nodes)}
        data['nodes'] = {
            'feature': np.array([-1 if n.is_leaf else n.feature_idx for n in nodes], dtype=np.int64),
            'threshold': np.array([0.0 if n.is_leaf else n.threshold for n in nodes], dtype=np.float64),
            'value': np.array([n.value for n in nodes], dtype=np.float64),
            'left': np.array([-1 if n.is_leaf else position[id(n.left)] for n in nodes], dtype=np.int64),
            'right': np.array([-1 if n.is_leaf else position[id(n.right)] for n in nodes], dtype=np.int64),
            'n_samples': np.array([n.n_samples for n in nodes], dtype=np.int64),
            'depth': np.array([n.depth for n in nodes], dtype=np.int64),
            'information_gain': np.array([n.information_gain for n in nodes], dtype=np.float64),
        }
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DecisionTree':
        try:
            tree = cls(DecisionTreeHyperparameters.from_dict(data['hyperparameters']))
            tree.rng = EncodableRng.from_dict(data['rng'])
            if not data['is_fitted']:
                return tree

            table = data['nodes']
            feature = np.asarray(table['feature'], dtype=np.int64)
            threshold = np.asarray(table['threshold'], dtype=np.float64)
            value = np.asarray(table['value'], dtype=np.float64)
            left = np.asarray(table['left'], dtype=np.int64)
            right = np.asarray(table['right'], dtype=np.int64)
            n_samples = np.asarray(table['n_samples'], dtype=np.int64)
            depth = np.asarray(table['depth'], dtype=np.int64)
            information_gain = np.asarray(table['information_gain'], dtype=np.float64)
        except ModelFormatError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise ModelFormatError(f"Invalid decision tree payload: {e}") from e

        if feature.shape[0] == 0:
            raise ModelFormatError("Fitted decision tree payload has no nodes")
        columns = (threshold, value, left, right, n_samples, depth, information_gain)
        if any(c.shape != feature.shape for c in columns):
            raise ModelFormatError("Node arrays in decision tree payload differ in length")

        nodes = [DecisionTreeNode(node_id=i, depth=int(depth[i])) for i in range(feature.shape[0])]
        for i, node in enumerate(nodes):
            node.value = float(value[i])
            node.n_samples = int(n_samples[i])
            node.information_gain = float(information_gain[i])
            if feature[i] < 0:
                node.is_leaf = True
                continue
            # 前順の配置では子は必ず親より後ろにある
            if not (i < left[i] < len(nodes) and i < right[i] < len(nodes)):
                raise ModelFormatError(f"Node {i} has children outside the preorder layout")
            if feature[i] >= tree.n_features:
                raise ModelFormatError(f"Node {i} splits on feature {feature[i]} of {tree.n_features}")
            node.feature_idx = int(feature[i])
            node.threshold = float(threshold[i])
            node.left = nodes[left[i]]
            node.right = nodes[right[i]]

        children = np.concatenate([left[feature >= 0], right[feature >= 0]])
        if np.unique(children).shape[0] != children.shape[0]:
            raise ModelFormatError("Decision tree payload shares a node between parents")

        tree.root = nodes[0]
        tree.is_fitted = True
        tree.feature_importances_ = tree._compute_feature_importance(tree.n_features)
        return tree

    def __str__(self) -> str:
        if not self.is_fitted:
            return f"DecisionTree(not fitted, n_features={self.n_features})"

        info = self.get_info()
        return f"DecisionTree(n_features={self.n_features}, depth={info['actual_depth']}, nodes={info['n_nodes']})"

    def __repr__(self) -> str:
        return self.__str__()
