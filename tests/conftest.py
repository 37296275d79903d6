"""Shared fixtures for the rf_bagging tests."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest
import scipy.sparse as sp

from rf_bagging.models import DecisionTreeHyperparameters, ForestHyperparameters
from rf_bagging.utils.datasets import load_iris


@pytest.fixture(scope="session")
def iris():
    """Iris features (150, 4) and labels (150,)."""
    return load_iris()


@pytest.fixture
def binary_data():
    """Small binary problem with some exact zeros in the features."""
    rng = np.random.default_rng(0)
    X = rng.normal(size=(60, 3))
    X = np.where(rng.random(X.shape) < 0.3, 0.0, X)
    y = (X[:, 0] + 0.5 * X[:, 1] > 0).astype(np.float64)
    return X, y


@pytest.fixture
def sparse_binary_data(binary_data):
    X, y = binary_data
    return sp.csr_matrix(X), y


@pytest.fixture
def tree_params():
    return DecisionTreeHyperparameters(3, min_samples_split=4, max_features=2)


@pytest.fixture
def forest_params(tree_params):
    return ForestHyperparameters(tree_params, 5)
