"""
Models Package

Decision trees, the bootstrap-aggregated random forest and the one-vs-rest
multiclass wrapper.
"""

from .exceptions import TrainingError, PredictionError, SamplingError, ModelFormatError
from .base import SupervisedModel, ParallelSupervisedModel
from .decision_tree import DecisionTree, DecisionTreeHyperparameters
from .one_vs_rest import OneVsRestWrapper
from .random_forest import ForestHyperparameters, RandomForest

__all__ = [
    'TrainingError',
    'PredictionError',
    'SamplingError',
    'ModelFormatError',
    'SupervisedModel',
    'ParallelSupervisedModel',
    'DecisionTree',
    'DecisionTreeHyperparameters',
    'OneVsRestWrapper',
    'ForestHyperparameters',
    'RandomForest'
]
