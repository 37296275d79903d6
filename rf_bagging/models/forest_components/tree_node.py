"""
Decision Tree Node Implementation

This module contains the DecisionTreeNode class that represents
individual nodes of a decision tree.
"""

from typing import Callable, Dict
import numpy as np


class DecisionTreeNode:
    """
    決定木のノードクラス

    Attributes:
    -----------
    feature_idx : int or None
        分割に使用する特徴のインデックス（リーフノードの場合はNone）
    threshold : float or None
        分割の閾値（リーフノードの場合はNone）。x <= threshold なら左へ
    left : DecisionTreeNode or None
        左の子ノード
    right : DecisionTreeNode or None
        右の子ノード
    is_leaf : bool
        リーフノードかどうか
    value : float
        このノードに到達した学習サンプルのターゲット平均値
    node_id : int
        ノードID（前順走査の順番）
    depth : int
        ノードの深さ
    n_samples : int
        このノードのサンプル数
    information_gain : float
        分割による不純度の減少量（分割ノードの場合）
    """

    def __init__(self, node_id: int = 0, depth: int = 0):
        self.feature_idx = None
        self.threshold = None
        self.left = None
        self.right = None
        self.is_leaf = False
        self.value = 0.0
        self.node_id = node_id
        self.depth = depth
        self.n_samples = 0
        self.information_gain = 0.0

    def predict(self, column: Callable[[int], np.ndarray], indices: np.ndarray, out: np.ndarray) -> None:
        """
        行インデックスを子ノードへ振り分け、到達したリーフの値を書き込む

        Parameters:
        -----------
        column : callable
            特徴インデックスから列全体の値（shape=(n_rows,)）を返す関数
        indices : array-like
            このノードに到達した行のインデックス
        out : array-like, shape=(n_rows,)
            予測値の書き込み先
        """
        if self.is_leaf:
            out[indices] = self.value
            return

        mask = column(self.feature_idx)[indices] <= self.threshold
        left_indices = indices[mask]
        right_indices = indices[~mask]

        if left_indices.size > 0:
            self.left.predict(column, left_indices, out)
        if right_indices.size > 0:
            self.right.predict(column, right_indices, out)

    def get_depth(self) -> int:
        """
        このノードを根とする部分木の深さを計算
        """
        if self.is_leaf:
            return 0

        left_depth = self.left.get_depth() if self.left else 0
        right_depth = self.right.get_depth() if self.right else 0

        return 1 + max(left_depth, right_depth)

    def count_nodes(self) -> int:
        """
        このノードを根とする部分木のノード数を計算
        """
        if self.is_leaf:
            return 1

        left_count = self.left.count_nodes() if self.left else 0
        right_count = self.right.count_nodes() if self.right else 0

        return 1 + left_count + right_count

    def to_log(self) -> Dict:
        """
        ノード情報を辞書として返す（ログ出力用）
        """
        return {
            "node_id": self.node_id,
            "depth": self.depth,
            "n_samples": self.n_samples,
            "is_leaf": self.is_leaf,
            "feature_idx": self.feature_idx,
            "threshold": self.threshold,
            "value": self.value,
            "information_gain": self.information_gain,
        }

    def __str__(self) -> str:
        if self.is_leaf:
            return f"Leaf(id={self.node_id}, depth={self.depth}, samples={self.n_samples}, value={self.value:.4f})"
        else:
            return f"Node(id={self.node_id}, depth={self.depth}, samples={self.n_samples}, feature={self.feature_idx}, threshold={self.threshold:.4f})"

    def __repr__(self) -> str:
        return self.__str__()
