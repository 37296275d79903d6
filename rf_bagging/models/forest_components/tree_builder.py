"""
Tree Builder

This module handles the construction of decision trees, including split
finding, leaf value computation, and tree building logic.
"""

import numpy as np
from typing import Callable, Dict, Optional, Tuple

from .matrix import Matrix
from .random_stream import EncodableRng
from .tree_node import DecisionTreeNode


class TreeBuilder:
    """
    決定木構築を担当するクラス

    分割基準は二乗誤差和（SSE）の減少量。0/1 ターゲットの場合、
    SSE はジニ不純度に比例するため、分類・回帰の両方に使える。

    Attributes:
    -----------
    max_depth : int or None
        最大深度（Noneの場合は制限なし）
    min_samples_split : int
        分割に必要な最小サンプル数
    min_samples_leaf : int
        リーフノードに必要な最小サンプル数
    max_features : int or None
        各ノードで候補とする特徴量数（Noneの場合は全特徴量）
    node_counter : int
        ノードカウンター
    """

    def __init__(
        self,
        max_depth: Optional[int] = None,
        min_samples_split: int = 2,
        min_samples_leaf: int = 1,
        max_features: Optional[int] = None
    ):
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.max_features = max_features
        self.node_counter = 0

    def build_tree(self, X: Matrix, y: np.ndarray, rng: EncodableRng) -> DecisionTreeNode:
        """
        決定木を構築

        Parameters:
        -----------
        X : Matrix
            列方向にアクセス可能な入力特徴量（DenseMatrix または SparseColumnMatrix）
        y : array-like, shape=(n_samples,)
            ターゲット値
        rng : EncodableRng
            特徴量サンプリング用の乱数ストリーム（その場で進む）

        Returns:
        --------
        root : DecisionTreeNode
            構築された決定木のルートノード
        """
        self.node_counter = 0
        n_features = X.cols()
        max_features = n_features if self.max_features is None else self.max_features

        # 同じ列を何度も取り出さないよう、構築中だけキャッシュする
        cache: Dict[int, np.ndarray] = {}

        def column(j: int) -> np.ndarray:
            if j not in cache:
                cache[j] = X.column(j)
            return cache[j]

        root = DecisionTreeNode(node_id=self.node_counter, depth=0)
        self._build_tree_recursive(
            root, column, y, np.arange(y.shape[0]), 0, rng, n_features, max_features
        )

        return root

    def _build_tree_recursive(
        self,
        node: DecisionTreeNode,
        column: Callable[[int], np.ndarray],
        y: np.ndarray,
        indices: np.ndarray,
        depth: int,
        rng: EncodableRng,
        n_features: int,
        max_features: int
    ) -> None:
        """
        再帰的に決定木を構築

        Parameters:
        -----------
        node : DecisionTreeNode
            現在のノード
        column : callable
            特徴インデックスから列の値を返す関数
        y : array-like, shape=(n_samples,)
            ターゲット値（全サンプル）
        indices : array-like
            このノードに属するサンプルのインデックス
        depth : int
            現在の深さ
        rng : EncodableRng
            乱数ストリーム
        n_features : int
            特徴量数
        max_features : int
            各ノードで候補とする特徴量数
        """
        n_samples = indices.shape[0]
        y_node = y[indices]

        # ノード情報の設定
        node.node_id = self.node_counter
        node.depth = depth
        node.n_samples = n_samples
        node.value = float(np.mean(y_node))
        self.node_counter += 1

        # 終了条件のチェック（純粋なノードもリーフにする）
        if self._should_stop_splitting(n_samples, depth) or np.all(y_node == y_node[0]):
            node.is_leaf = True
            return

        # 最適な分割を探索
        best_split = self._search_best_split(column, y_node, indices, rng, n_features, max_features)

        if best_split is None:
            node.is_leaf = True
            return

        feature_idx, threshold, information_gain = best_split
        node.feature_idx = feature_idx
        node.threshold = threshold
        node.information_gain = information_gain

        left_mask = column(feature_idx)[indices] <= threshold

        node.left = DecisionTreeNode(depth=depth + 1)
        self._build_tree_recursive(
            node.left, column, y, indices[left_mask], depth + 1, rng, n_features, max_features
        )

        node.right = DecisionTreeNode(depth=depth + 1)
        self._build_tree_recursive(
            node.right, column, y, indices[~left_mask], depth + 1, rng, n_features, max_features
        )

    def _should_stop_splitting(self, n_samples: int, depth: int) -> bool:
        """
        分割を停止するかどうかを判定
        """
        return (
            (self.max_depth is not None and depth >= self.max_depth) or
            n_samples < self.min_samples_split or
            n_samples < 2 * self.min_samples_leaf
        )

    def _search_best_split(
        self,
        column: Callable[[int], np.ndarray],
        y_node: np.ndarray,
        indices: np.ndarray,
        rng: EncodableRng,
        n_features: int,
        max_features: int
    ) -> Optional[Tuple[int, float, float]]:
        """
        最適な分割を探索

        候補特徴量をランダムに選び、各特徴量について値をソートして
        累積和から全ての閾値の SSE 減少量を一度に計算する。

        Returns:
        --------
        best_split : tuple or None
            最適な分割 (feature_idx, threshold, information_gain)
        """
        n_samples = y_node.shape[0]
        candidates = rng.choice(n_features, size=max_features, replace=False)

        total_sum = np.sum(y_node)
        total_sq = np.sum(y_node * y_node)
        total_sse = total_sq - total_sum * total_sum / n_samples

        n_left = np.arange(1, n_samples, dtype=np.float64)
        n_right = n_samples - n_left
        size_ok = (n_left >= self.min_samples_leaf) & (n_right >= self.min_samples_leaf)

        best_gain = -np.inf
        best_feature = None
        best_threshold = None

        for feature_idx in candidates:
            feature_values = column(int(feature_idx))[indices]
            order = np.argsort(feature_values, kind="mergesort")
            sorted_values = feature_values[order]
            sorted_y = y_node[order]

            # 同じ値の間では分割できない
            valid = size_ok & (sorted_values[:-1] < sorted_values[1:])
            if not np.any(valid):
                continue

            left_sum = np.cumsum(sorted_y)[:-1]
            left_sq = np.cumsum(sorted_y * sorted_y)[:-1]
            left_sse = left_sq - left_sum * left_sum / n_left
            right_sum = total_sum - left_sum
            right_sse = (total_sq - left_sq) - right_sum * right_sum / n_right

            gains = total_sse - left_sse - right_sse
            gains[~valid] = -np.inf

            k = int(np.argmax(gains))
            if gains[k] > best_gain:
                best_gain = float(gains[k])
                best_feature = int(feature_idx)
                best_threshold = self._midpoint(sorted_values[k], sorted_values[k + 1])

        if best_feature is not None:
            return best_feature, best_threshold, max(best_gain, 0.0)
        else:
            return None

    @staticmethod
    def _midpoint(lower: float, upper: float) -> float:
        threshold = (lower + upper) / 2
        # 隣接する浮動小数点数では中点が上側の値に丸められることがある
        if threshold >= upper:
            threshold = lower
        return float(threshold)
