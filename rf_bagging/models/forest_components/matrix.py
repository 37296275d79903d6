"""
Matrix Abstraction

Dense and sparse feature matrices behind a single small interface, so the
tree and forest code is written once for all three representations:

- DenseMatrix        : numpy.ndarray
- SparseRowMatrix    : scipy.sparse CSR (row-oriented)
- SparseColumnMatrix : scipy.sparse CSC (column-oriented)

Decision trees scan features column by column, so they only accept dense or
column-oriented matrices. Row-oriented input must be converted with
``to_column_major`` first.
"""

from abc import ABC, abstractmethod
from typing import Any

import numpy as np
import scipy.sparse as sp


class Matrix(ABC):
    """
    Common interface of the matrix adapters

    Attributes:
    -----------
    data : np.ndarray or scipy.sparse matrix
        Wrapped matrix
    """

    is_sparse = False
    is_column_major = True

    def __init__(self, data: Any):
        self.data = data

    def rows(self) -> int:
        return self.data.shape[0]

    def cols(self) -> int:
        return self.data.shape[1]

    @property
    def shape(self) -> tuple:
        return self.data.shape

    @abstractmethod
    def get_rows(self, indices: np.ndarray) -> 'Matrix':
        """Matrix of the same kind restricted to ``indices`` (repeats allowed)"""

    @abstractmethod
    def to_column_major(self) -> 'Matrix':
        """Column-oriented view or copy of the matrix"""

    @abstractmethod
    def column(self, j: int) -> np.ndarray:
        """Dense copy or view of column ``j``, shape=(n_rows,)"""

    @abstractmethod
    def is_finite(self) -> bool:
        """Whether every stored value is finite"""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(shape={self.shape})"


class DenseMatrix(Matrix):

    def __init__(self, data: Any):
        data = np.asarray(data, dtype=np.float64)
        if data.ndim == 1:
            data = data.reshape(-1, 1)
        if data.ndim != 2:
            raise ValueError(f"Matrix must be 2D, got {data.ndim}D")
        super().__init__(data)

    def get_rows(self, indices: np.ndarray) -> 'DenseMatrix':
        return DenseMatrix(self.data[np.asarray(indices, dtype=np.int64)])

    def to_column_major(self) -> 'DenseMatrix':
        return self

    def column(self, j: int) -> np.ndarray:
        return self.data[:, j]

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.data)))


class SparseRowMatrix(Matrix):

    is_sparse = True
    is_column_major = False

    def __init__(self, data: Any):
        super().__init__(sp.csr_matrix(data, dtype=np.float64))

    def get_rows(self, indices: np.ndarray) -> 'SparseRowMatrix':
        return SparseRowMatrix(self.data[np.asarray(indices, dtype=np.int64)])

    def to_column_major(self) -> 'SparseColumnMatrix':
        return SparseColumnMatrix(self.data.tocsc())

    def column(self, j: int) -> np.ndarray:
        raise TypeError("Row-oriented sparse matrices do not support column access; "
                        "call to_column_major() first")

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.data.data)))


class SparseColumnMatrix(Matrix):

    is_sparse = True

    def __init__(self, data: Any):
        data = sp.csc_matrix(data, dtype=np.float64)
        # column() は重複エントリがないことを前提とする
        if not data.has_canonical_format:
            data = data.copy()
            data.sum_duplicates()
        super().__init__(data)

    def get_rows(self, indices: np.ndarray) -> 'SparseColumnMatrix':
        return SparseColumnMatrix(self.data[np.asarray(indices, dtype=np.int64)])

    def to_column_major(self) -> 'SparseColumnMatrix':
        return self

    def column(self, j: int) -> np.ndarray:
        start, end = self.data.indptr[j], self.data.indptr[j + 1]
        values = np.zeros(self.rows(), dtype=np.float64)
        values[self.data.indices[start:end]] = self.data.data[start:end]
        return values

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.data.data)))


def as_matrix(X: Any) -> Matrix:
    """
    Wrap ``X`` in the adapter matching its representation

    Parameters:
    -----------
    X : Matrix, np.ndarray, array-like or scipy.sparse matrix
        Input features

    Returns:
    --------
    matrix : Matrix
        DenseMatrix for dense input, SparseColumnMatrix for CSC input and
        SparseRowMatrix for any other sparse format
    """
    if isinstance(X, Matrix):
        return X
    if sp.issparse(X):
        if X.format == "csc":
            return SparseColumnMatrix(X)
        return SparseRowMatrix(X)
    return DenseMatrix(X)


def zeros(rows: int, cols: int) -> np.ndarray:
    """
    Zero-filled score buffer
    """
    return np.zeros((rows, cols), dtype=np.float64)


def add_inplace(target: np.ndarray, other: np.ndarray) -> np.ndarray:
    """
    target += other, checking shapes
    """
    if target.shape != other.shape:
        raise ValueError(f"Shape mismatch: {target.shape} and {other.shape}")
    np.add(target, other, out=target)
    return target


def div_inplace(target: np.ndarray, scalar: float) -> np.ndarray:
    """
    target /= scalar
    """
    np.divide(target, scalar, out=target)
    return target
