"""
教師あり学習モデルの基底クラスモジュール

このモジュールは、決定木・ランダムフォレスト・one-vs-rest ラッパーが共有する
抽象基底クラスを提供します。すべてのモデルは fit / decision_function を実装し、
並列実行に対応するモデルは fit_parallel / decision_function_parallel も実装します。
"""

from abc import ABC, abstractmethod
import numpy as np
from typing import Any, Dict, List, Optional

from .forest_components.data_transforms import as_target_vector


class SupervisedModel(ABC):
    """
    教師あり学習モデルの抽象基底クラス

    decision_function は行ごとの実数スコア（閾値処理前）を返し、
    predict はそれを 0.5 で二値化したラベルを返します。
    """

    # get_params / set_params で公開する属性名
    _param_names: tuple = ()

    @abstractmethod
    def fit(self, X: Any, y: Any) -> 'SupervisedModel':
        """
        モデルを学習

        Parameters:
        -----------
        X : array-like or scipy.sparse matrix, shape=(n_samples, n_features)
            入力特徴量
        y : array-like, shape=(n_samples,) or (n_samples, 1)
            ターゲット値

        Returns:
        --------
        self : SupervisedModel
            学習済みモデル
        """
        pass

    @abstractmethod
    def decision_function(self, X: Any) -> np.ndarray:
        """
        行ごとのスコアを計算

        Parameters:
        -----------
        X : array-like or scipy.sparse matrix, shape=(n_samples, n_features)
            入力特徴量

        Returns:
        --------
        scores : array-like, shape=(n_samples, 1)
            スコア
        """
        pass

    def predict(self, X: Any) -> np.ndarray:
        """
        スコアを 0.5 で二値化したラベルを返す

        Returns:
        --------
        y_pred : array-like, shape=(n_samples,)
            0.0 または 1.0
        """
        return self._threshold(self.decision_function(X))

    @staticmethod
    def _threshold(scores: np.ndarray) -> np.ndarray:
        return (np.ravel(scores) > 0.5).astype(np.float64)

    def evaluate(self, X: Any, y: Any, metrics: List[str] = ['accuracy']) -> Dict[str, float]:
        """
        モデルの評価

        Parameters:
        -----------
        X : array-like, shape=(n_samples, n_features)
            入力特徴量
        y : array-like, shape=(n_samples,)
            真のターゲット値
        metrics : list of str, default=['accuracy']
            使用する評価指標のリスト（accuracy, mse, rmse, mae, r2）

        Returns:
        --------
        results : dict
            各評価指標の値
        """
        y = as_target_vector(y)
        results = {}

        for metric in metrics:
            if metric.lower() == 'accuracy':
                # 正解率（ラベル予測に対して計算）
                results['accuracy'] = float(np.mean(self.predict(X) == y))
                continue

            scores = np.ravel(self.decision_function(X))

            if metric.lower() == 'mse':
                results['mse'] = float(np.mean((y - scores) ** 2))

            elif metric.lower() == 'rmse':
                results['rmse'] = float(np.sqrt(np.mean((y - scores) ** 2)))

            elif metric.lower() == 'mae':
                results['mae'] = float(np.mean(np.abs(y - scores)))

            elif metric.lower() == 'r2':
                ss_tot = np.sum((y - np.mean(y)) ** 2)
                ss_res = np.sum((y - scores) ** 2)
                results['r2'] = float(1 - ss_res / ss_tot) if ss_tot > 0 else 0.0

            else:
                raise ValueError(f"Unknown metric: {metric}")

        return results

    def get_params(self) -> Dict[str, Any]:
        """
        モデルパラメータの取得
        """
        return {name: getattr(self, name) for name in self._param_names}

    def set_params(self, **params) -> 'SupervisedModel':
        """
        モデルパラメータの設定
        """
        for key, value in params.items():
            if key in self._param_names:
                setattr(self, key, value)
            else:
                raise ValueError(f"Invalid parameter: {key}")
        return self


class ParallelSupervisedModel(SupervisedModel):
    """
    ワーカー数を指定して学習・予測できるモデルの抽象基底クラス

    並列版は全ワーカーの完了を待ってから結果を集約します（バリア同期）。
    """

    @abstractmethod
    def fit_parallel(self, X: Any, y: Any, n_jobs: int) -> 'ParallelSupervisedModel':
        pass

    @abstractmethod
    def decision_function_parallel(self, X: Any, n_jobs: int) -> np.ndarray:
        pass

    def predict_parallel(self, X: Any, n_jobs: int) -> np.ndarray:
        return self._threshold(self.decision_function_parallel(X, n_jobs))
