"""
Forest Components Package

This package contains the building blocks shared by the tree and forest
models: matrix adapters, random streams, bootstrap sampling, tree nodes and
the tree builder.
"""

from .matrix import (
    Matrix,
    DenseMatrix,
    SparseRowMatrix,
    SparseColumnMatrix,
    as_matrix,
    zeros,
    add_inplace,
    div_inplace
)
from .random_stream import EncodableRng, DEFAULT_SEED, std_rng, as_rng
from .bootstrap import bootstrap_indices, draw_bootstrap_sets
from .tree_node import DecisionTreeNode
from .tree_builder import TreeBuilder
from .data_transforms import as_target_vector, validate_input_data, binarize_target

__all__ = [
    'Matrix',
    'DenseMatrix',
    'SparseRowMatrix',
    'SparseColumnMatrix',
    'as_matrix',
    'zeros',
    'add_inplace',
    'div_inplace',
    'EncodableRng',
    'DEFAULT_SEED',
    'std_rng',
    'as_rng',
    'bootstrap_indices',
    'draw_bootstrap_sets',
    'DecisionTreeNode',
    'TreeBuilder',
    'as_target_vector',
    'validate_input_data',
    'binarize_target'
]
