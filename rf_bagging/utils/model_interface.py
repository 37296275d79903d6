"""
モデル評価用ユーティリティモジュール

このモジュールは、ランダムフォレストの各実行形態（密行列・疎行列・並列）を
同じ交差検証の分割で評価するためのユーティリティを提供します。
"""

import logging
import time
import numpy as np
import scipy.sparse as sp
from typing import Any, Dict, List, Optional, Tuple

from sklearn.metrics import accuracy_score
from sklearn.model_selection import KFold

from ..models.base import SupervisedModel
from ..models.forest_components.random_stream import SeedLike, as_rng
from ..models.random_forest import ForestHyperparameters

logger = logging.getLogger(__name__)

VARIANTS = ('dense', 'sparse', 'parallel')


def cross_validation_splits(n_rows: int, n_splits: int = 10,
                            rng: SeedLike = None) -> List[Tuple[np.ndarray, np.ndarray]]:
    """
    シャッフル付き k-fold 分割を生成

    Parameters:
    -----------
    n_rows : int
        サンプル数
    n_splits : int, default=10
        分割数
    rng : EncodableRng or int, optional
        シャッフル用の乱数ストリーム（渡されたストリームは進めない）

    Returns:
    --------
    splits : list of (train_idx, test_idx)
    """
    random_state = int(as_rng(rng).integers(0, 2 ** 31 - 1))
    kfold = KFold(n_splits=n_splits, shuffle=True, random_state=random_state)
    return list(kfold.split(np.zeros((n_rows, 1))))


def accuracy(y_true: Any, y_pred: Any) -> float:
    """
    正解率
    """
    return float(accuracy_score(np.ravel(y_true), np.ravel(y_pred)))


def cross_validate_forest(X: Any, y: np.ndarray, forest_params: ForestHyperparameters,
                          variant: str = 'dense', n_splits: int = 10, n_jobs: int = 2,
                          rng: SeedLike = None) -> Dict:
    """
    one-vs-rest ランダムフォレストを交差検証で評価

    Parameters:
    -----------
    X : array-like or scipy.sparse matrix, shape=(n_samples, n_features)
        入力特徴量
    y : array-like, shape=(n_samples,)
        クラスラベル
    forest_params : ForestHyperparameters
        フォールドごとに新しいフォレストを作るための設定
    variant : str, default='dense'
        'dense'（密行列）、'sparse'（CSR 行列）、'parallel'（ワーカー並列）
    n_splits : int, default=10
        分割数
    n_jobs : int, default=2
        'parallel' で使うワーカー数
    rng : EncodableRng or int, optional
        分割用の乱数ストリーム

    Returns:
    --------
    results : dict
        フォールドごとの正解率、平均正解率、学習時間、予測時間
    """
    if variant not in VARIANTS:
        raise ValueError(f"Unknown variant: {variant}. Choose from {VARIANTS}")

    if variant == 'sparse':
        X = sp.csr_matrix(X)
    y = np.asarray(y, dtype=np.float64)

    fold_accuracies = []
    train_time = 0.0
    predict_time = 0.0

    for fold, (train_idx, test_idx) in enumerate(cross_validation_splits(y.shape[0], n_splits, rng)):
        model = forest_params.one_vs_rest()

        start_time = time.time()
        if variant == 'parallel':
            model.fit_parallel(X[train_idx], y[train_idx], n_jobs)
        else:
            model.fit(X[train_idx], y[train_idx])
        train_time += time.time() - start_time

        start_time = time.time()
        if variant == 'parallel':
            y_pred = model.predict_parallel(X[test_idx], n_jobs)
        else:
            y_pred = model.predict(X[test_idx])
        predict_time += time.time() - start_time

        fold_accuracies.append(accuracy(y[test_idx], y_pred))
        logger.debug("Fold %d (%s): accuracy=%.4f", fold, variant, fold_accuracies[-1])

    mean_accuracy = float(np.mean(fold_accuracies))
    logger.info("Cross-validation (%s): mean accuracy=%.4f", variant, mean_accuracy)

    return {
        'variant': variant,
        'fold_accuracies': fold_accuracies,
        'mean_accuracy': mean_accuracy,
        'train_time': train_time,
        'predict_time': predict_time
    }


def evaluate_model_interface(model: SupervisedModel, X_train: Any, y_train: Any,
                             X_test: Any, y_test: Any,
                             metrics: Optional[List[str]] = None) -> Dict:
    """
    モデルの学習・予測・評価を一通り実行して時間を計測

    Returns:
    --------
    results : dict
        モデルクラス名、学習時間、予測時間、評価結果
    """
    if metrics is None:
        metrics = ['accuracy']

    # 学習時間を計測
    start_time = time.time()
    model.fit(X_train, y_train)
    train_time = time.time() - start_time

    # 予測時間を計測
    start_time = time.time()
    y_pred = model.predict(X_test)
    predict_time = time.time() - start_time

    results = {
        'model_class': type(model).__name__,
        'train_time': train_time,
        'predict_time': predict_time,
        'n_predictions': int(np.ravel(y_pred).shape[0]),
        'evaluation': model.evaluate(X_test, y_test, metrics=metrics)
    }

    return results
