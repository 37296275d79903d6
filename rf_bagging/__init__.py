"""
rf_bagging: bootstrap-aggregated random forests over dense and sparse matrices
"""

from .models import (
    DecisionTree,
    DecisionTreeHyperparameters,
    ForestHyperparameters,
    OneVsRestWrapper,
    RandomForest
)

__version__ = "0.1.0"

__all__ = [
    'DecisionTree',
    'DecisionTreeHyperparameters',
    'ForestHyperparameters',
    'OneVsRestWrapper',
    'RandomForest'
]
