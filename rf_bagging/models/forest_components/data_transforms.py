"""
Data Transform Utilities

This module contains utility functions for validating model inputs and
transforming targets.
"""

import numpy as np
from typing import Any, Optional, Tuple, Type

from ..exceptions import TrainingError
from .matrix import Matrix, as_matrix


def as_target_vector(y: Any) -> np.ndarray:
    """
    ターゲットを1次元のfloat64配列に変換

    Parameters:
    -----------
    y : array-like, shape=(n_samples,) or (n_samples, 1)
        ターゲット値

    Returns:
    --------
    y_vector : array-like, shape=(n_samples,)
    """
    y = np.asarray(y, dtype=np.float64)
    if y.ndim == 2 and y.shape[1] == 1:
        y = y[:, 0]
    if y.ndim != 1:
        raise ValueError(f"y must be a vector or a single-column matrix, got shape {y.shape}")
    return y


def validate_input_data(
    X: Any,
    y: Optional[Any] = None,
    error_cls: Type[ValueError] = TrainingError
) -> Tuple[Matrix, Optional[np.ndarray]]:
    """
    入力データの検証と前処理

    Parameters:
    -----------
    X : array-like, Matrix or scipy.sparse matrix, shape=(n_samples, n_features)
        特徴量行列
    y : array-like, shape=(n_samples,) or (n_samples, 1), optional
        ターゲット
    error_cls : type, default=TrainingError
        検証エラー時に送出する例外クラス

    Returns:
    --------
    X_validated : Matrix
        検証済み特徴量行列
    y_validated : array-like, shape=(n_samples,) or None
        検証済みターゲット
    """
    try:
        X = as_matrix(X)
        if y is not None:
            y = as_target_vector(y)
    except (TypeError, ValueError) as e:
        raise error_cls(str(e)) from e

    if y is not None:
        if X.rows() != y.shape[0]:
            raise error_cls(f"X and y must have same number of samples, got {X.rows()} and {y.shape[0]}")
        if np.any(~np.isfinite(y)):
            raise error_cls("y contains inf or NaN values")

    # 無限値とNaN値のチェック
    if not X.is_finite():
        raise error_cls("X contains inf or NaN values")

    return X, y


def binarize_target(y: np.ndarray, label: float) -> np.ndarray:
    """
    one-vs-rest 用に、指定ラベルを1.0、それ以外を0.0に変換
    """
    return (y == label).astype(np.float64)
