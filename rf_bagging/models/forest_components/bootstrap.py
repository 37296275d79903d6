"""
Bootstrap Sampler

Draws sample-with-replacement row index sets for bagging.
"""

import numpy as np
from typing import List, Optional

from ..exceptions import SamplingError
from .random_stream import EncodableRng


def bootstrap_indices(upper_bound: int, rng: EncodableRng, size: Optional[int] = None) -> np.ndarray:
    """
    Draw a bootstrap index set

    Every index is drawn independently and uniformly from [0, upper_bound),
    so all rows, including the last one, can be selected.

    Parameters:
    -----------
    upper_bound : int
        Number of rows in the population (exclusive upper bound)
    rng : EncodableRng
        Stream to draw from; it is advanced in place
    size : int, optional
        Length of the index set (defaults to upper_bound)

    Returns:
    --------
    indices : array-like, shape=(size,)
        Sampled row indices
    """
    if upper_bound <= 0:
        raise SamplingError(f"Cannot draw a bootstrap sample from {upper_bound} rows")

    if size is None:
        size = upper_bound

    return rng.integers(0, upper_bound, size=size)


def draw_bootstrap_sets(n_sets: int, upper_bound: int, rng: EncodableRng) -> List[np.ndarray]:
    """
    Draw ``n_sets`` index sets one after another from the same stream.

    The i-th set is exactly what a sequential loop would have drawn for the
    i-th learner.
    """
    return [bootstrap_indices(upper_bound, rng) for _ in range(n_sets)]

