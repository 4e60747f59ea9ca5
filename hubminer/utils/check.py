# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numpy as np

__all__ = [
    "check_n_neighbors",
    "check_labels",
]


def check_n_neighbors(k, n_samples: int = None, name: str = "k"):
    """ Ensure a valid neighborhood size.

    Parameters
    ----------
    k : int
        Neighborhood size
    n_samples : int, optional
        If given, `k` must be strictly smaller than the number of samples,
        because points are never their own neighbors.
    name : str
        Parameter name used in error messages
    """
    if not np.issubdtype(type(k), np.integer):
        raise TypeError(f"{name} does not take {type(k)} value, enter integer value")
    if k < 1:
        raise ValueError(f"Neighborhood size '{name}' must be >= 1, but is {k}")
    if n_samples is not None and k >= n_samples:
        raise ValueError(f"Neighborhood size '{name}'={k} must be smaller than "
                         f"the number of samples ({n_samples}).")
    return int(k)


def check_labels(labels, n_samples: int) -> np.ndarray:
    """ Return integer class labels, defaulting to a single class.

    Parameters
    ----------
    labels : array-like of shape (n_samples, ) or None
        Non-negative integer class labels
    n_samples : int
        Expected number of labels
    """
    if labels is None:
        return np.zeros(n_samples, dtype=np.int64)
    labels = np.asarray(labels)
    if labels.ndim != 1:
        raise ValueError(f"Labels must be one-dimensional, got shape {labels.shape}.")
    if labels.shape[0] != n_samples:
        raise ValueError(f"Number of labels ({labels.shape[0]}) does not match "
                         f"the number of samples ({n_samples}).")
    if labels.size and not np.issubdtype(labels.dtype, np.integer):
        if not np.all(np.mod(labels, 1) == 0):
            raise ValueError("Class labels must be integers.")
        labels = labels.astype(np.int64)
    if labels.size and labels.min() < 0:
        raise ValueError(f"Class labels must be non-negative, got {labels.min()}.")
    return labels.astype(np.int64, copy=False)
