"""
データセット読み込み・生成ユーティリティ
"""

import numpy as np
import scipy.sparse as sp
from typing import Optional, Tuple

from sklearn import datasets


def load_iris() -> Tuple[np.ndarray, np.ndarray]:
    """
    Iris データセット（150サンプル、4特徴量、3クラス）を読み込む

    Returns:
    --------
    X : array-like, shape=(150, 4)
        特徴量（float64）
    y : array-like, shape=(150,)
        クラスラベル 0.0, 1.0, 2.0（float64）
    """
    iris = datasets.load_iris()
    return iris.data.astype(np.float64), iris.target.astype(np.float64)


def make_classification_data(n_samples: int = 500, n_features: int = 20, n_informative: int = 5,
                             n_classes: int = 2, density: Optional[float] = None,
                             random_state: int = 42) -> Tuple:
    """
    分類用の人工データを生成

    Parameters:
    -----------
    n_samples : int, default=500
        サンプル数
    n_features : int, default=20
        特徴量の数
    n_informative : int, default=5
        ターゲットに関係する特徴量の数
    n_classes : int, default=2
        クラス数
    density : float, optional
        指定した場合、各要素をこの確率で残し、それ以外を 0 にした CSR 行列を返す
    random_state : int, default=42
        乱数シード

    Returns:
    --------
    X : array-like or scipy.sparse.csr_matrix, shape=(n_samples, n_features)
        特徴量
    y : array-like, shape=(n_samples,)
        クラスラベル（float64）
    """
    X, y = datasets.make_classification(
        n_samples=n_samples,
        n_features=n_features,
        n_informative=n_informative,
        n_redundant=0,
        n_classes=n_classes,
        random_state=random_state
    )

    if density is not None:
        # 疎な入力を模すため、ランダムに要素を 0 にする
        rng = np.random.default_rng(random_state)
        X = sp.csr_matrix(X * (rng.random(X.shape) < density))

    return X, y.astype(np.float64)
