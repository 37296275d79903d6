"""
One-vs-Rest Wrapper

Turns a binary model (a random forest or a single decision tree) into a
multiclass classifier by fitting one copy of the model per class.
"""

import copy
import logging
import numpy as np
from typing import Any, Dict, List, Optional, Tuple

from joblib import Parallel, delayed
from sklearn.exceptions import NotFittedError

from .base import ParallelSupervisedModel, SupervisedModel
from .exceptions import ModelFormatError, TrainingError
from .forest_components.data_transforms import as_target_vector, binarize_target, validate_input_data
from .forest_components.matrix import Matrix

logger = logging.getLogger(__name__)


def _fit_class_model(base_model: SupervisedModel, X: Any, y: np.ndarray, label: float) -> SupervisedModel:
    model = copy.deepcopy(base_model)
    return model.fit(X, binarize_target(y, label))


def _class_scores(model: SupervisedModel, X: Any) -> np.ndarray:
    return np.ravel(model.decision_function(X))


class OneVsRestWrapper(ParallelSupervisedModel):
    """
    One-vs-rest マルチクラス分類器

    クラスごとにベースモデルのコピーを「そのクラス vs それ以外」で学習し、
    最もスコアの高いクラスを予測ラベルとする。

    Attributes:
    -----------
    base_model : SupervisedModel
        未学習のベースモデル（各クラスでディープコピーされる）
    classes_ : array-like, shape=(n_classes,)
        学習データに現れたラベル（昇順）
    """

    _param_names = ('base_model',)

    def __init__(self, base_model: SupervisedModel):
        self.base_model = base_model
        self.classes_: Optional[np.ndarray] = None
        self._models: List[SupervisedModel] = []

    @property
    def is_fitted(self) -> bool:
        return self.classes_ is not None

    @property
    def n_classes(self) -> int:
        return 0 if self.classes_ is None else len(self.classes_)

    def models(self) -> List[SupervisedModel]:
        """
        クラスごとの学習済みモデル（classes_ と同じ順序）
        """
        return list(self._models)

    def _prepare_data(self, X: Any, y: Any) -> Tuple[Matrix, np.ndarray, np.ndarray]:
        X, y = validate_input_data(X, y, TrainingError)

        classes = np.unique(y)
        if classes.shape[0] == 0:
            raise TrainingError("Cannot fit a one-vs-rest model without samples")

        logger.info("Fitting one-vs-rest model: %d classes, %d samples", classes.shape[0], y.shape[0])
        return X, y, classes

    def fit(self, X: Any, y: Any) -> 'OneVsRestWrapper':
        """
        クラスごとにモデルを学習

        Parameters:
        -----------
        X : array-like or scipy.sparse matrix, shape=(n_samples, n_features)
            入力特徴量
        y : array-like, shape=(n_samples,)
            クラスラベル

        Returns:
        --------
        self : OneVsRestWrapper
            学習済みモデル
        """
        X, y, classes = self._prepare_data(X, y)

        models = [_fit_class_model(self.base_model, X, y, label) for label in classes]

        self._models = models
        self.classes_ = classes
        return self

    def fit_parallel(self, X: Any, y: Any, n_jobs: int) -> 'OneVsRestWrapper':
        """
        クラス単位でワーカーに分配して学習（各クラスのモデルは逐次版で学習）
        """
        X, y, classes = self._prepare_data(X, y)

        models = Parallel(n_jobs=n_jobs, prefer="threads")(
            delayed(_fit_class_model)(self.base_model, X, y, label) for label in classes
        )

        self._models = list(models)
        self.classes_ = classes
        return self

    def decision_function(self, X: Any) -> np.ndarray:
        """
        クラスごとのスコア

        Returns:
        --------
        scores : array-like, shape=(n_samples, n_classes)
            k 列目が classes_[k] のスコア
        """
        self._check_is_fitted()
        return np.column_stack([_class_scores(model, X) for model in self._models])

    def decision_function_parallel(self, X: Any, n_jobs: int) -> np.ndarray:
        self._check_is_fitted()
        scores = Parallel(n_jobs=n_jobs, prefer="threads")(
            delayed(_class_scores)(model, X) for model in self._models
        )
        return np.column_stack(scores)

    def predict(self, X: Any) -> np.ndarray:
        """
        最もスコアの高いクラスのラベルを返す
        """
        return self.classes_[np.argmax(self.decision_function(X), axis=1)]

    def predict_parallel(self, X: Any, n_jobs: int) -> np.ndarray:
        return self.classes_[np.argmax(self.decision_function_parallel(X, n_jobs), axis=1)]

    def _check_is_fitted(self) -> None:
        if not self.is_fitted:
            raise NotFittedError("Model must be fitted before prediction")

    def evaluate(self, X: Any, y: Any, metrics: List[str] = ['accuracy']) -> Dict[str, float]:
        """
        正解率のみ対応（スコアは多列のため回帰指標は計算しない）
        """
        y = as_target_vector(y)
        results = {}
        for metric in metrics:
            if metric.lower() != 'accuracy':
                raise ValueError(f"Unknown metric for multiclass model: {metric}")
            results['accuracy'] = float(np.mean(self.predict(X) == y))
        return results

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'model_type': 'OneVsRestWrapper',
            'base_model': self.base_model.to_dict(),
            'classes': None if self.classes_ is None else self.classes_.copy(),
            'models': [model.to_dict() for model in self._models],
        }
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OneVsRestWrapper':
        from ..utils.serialization import model_from_dict

        try:
            wrapper = cls(model_from_dict(data['base_model']))
            classes = data['classes']
            models = [model_from_dict(model) for model in data['models']]
        except ModelFormatError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise ModelFormatError(f"Invalid one-vs-rest payload: {e}") from e

        if classes is not None:
            classes = np.asarray(classes, dtype=np.float64)
            if classes.shape[0] != len(models):
                raise ModelFormatError(
                    f"Payload has {classes.shape[0]} classes but {len(models)} models"
                )
            wrapper.classes_ = classes
            wrapper._models = models

        return wrapper

    def __repr__(self) -> str:
        return f"OneVsRestWrapper(base_model={self.base_model!r}, n_classes={self.n_classes})"
