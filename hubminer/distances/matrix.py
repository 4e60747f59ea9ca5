# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations
import logging
from typing import Sequence, Union

import numpy as np
from joblib import Parallel, delayed
from scipy.spatial.distance import squareform
from tqdm.auto import tqdm

from ..data.dataset import DataSet
from ..utils.multiprocessing import triangular_row_slices, validate_n_jobs
from .primary import CombinedMetric, DistanceMeasure, get_metric

__all__ = [
    "DistanceMatrix",
    "compute_distance_matrix",
]


def _n_samples_from_condensed(n_entries: int) -> int:
    n_samples = int(round((1 + np.sqrt(1 + 8 * n_entries)) / 2))
    if n_samples * (n_samples - 1) // 2 != n_entries:
        raise ValueError(f"A condensed distance matrix of length {n_entries} does not "
                         f"correspond to a square matrix.")
    return n_samples


class DistanceMatrix:
    """ Symmetric distance matrix with zero diagonal, storing only the upper triangle.

    Row i of the upper triangle holds the distances from point i to the
    points i + 1, ..., n - 1. Entries are kept in a single condensed vector
    (the layout used by :func:`scipy.spatial.distance.squareform`), which is
    read-only after construction.

    Parameters
    ----------
    condensed : array-like of shape (n_samples * (n_samples - 1) / 2, )
        Upper-triangular distances in row-major order
    n_samples : int, optional
        Number of points. Required to represent a single point,
        inferred from the length of `condensed` otherwise.
    """

    def __init__(self, condensed, n_samples: int = None):
        condensed = np.array(condensed, dtype=np.float64).ravel()
        if n_samples is None:
            if condensed.size == 0:
                raise ValueError("Number of points is ambiguous for an empty distance matrix; "
                                 "pass n_samples explicitly.")
            n_samples = _n_samples_from_condensed(condensed.size)
        elif n_samples * (n_samples - 1) // 2 != condensed.size:
            raise ValueError(f"Distance matrix of {n_samples} points requires "
                             f"{n_samples * (n_samples - 1) // 2} entries, got {condensed.size}.")
        condensed.setflags(write=False)
        self._condensed = condensed
        self.n_samples = int(n_samples)

    @classmethod
    def from_square(cls, D, check_symmetric: bool = True) -> DistanceMatrix:
        """ Create from a full square matrix, using its upper triangle. """
        D = np.asarray(D, dtype=np.float64)
        if D.ndim != 2 or D.shape[0] != D.shape[1]:
            raise ValueError(f"Distance matrix must be square, got shape {D.shape}.")
        if check_symmetric and not np.allclose(D, D.T, equal_nan=True):
            raise ValueError("Distance matrix must be symmetric.")
        n_samples = D.shape[0]
        return cls(D[np.triu_indices(n_samples, k=1)], n_samples=n_samples)

    @classmethod
    def from_rows(cls, rows: Sequence[np.ndarray], n_samples: int = None) -> DistanceMatrix:
        """ Create from upper-triangular rows, where row i holds ``n_samples - i - 1`` distances.

        The last (empty) row may be omitted.
        """
        rows = [np.asarray(r, dtype=np.float64).ravel() for r in rows]
        if n_samples is None:
            n_samples = len(rows) + 1 if rows and rows[-1].size else max(len(rows), 1)
        for i, r in enumerate(rows):
            if r.size != max(n_samples - i - 1, 0):
                raise ValueError(f"Row {i} holds {r.size} distances, expected {n_samples - i - 1}.")
        condensed = np.concatenate(rows) if rows else np.empty(0)
        return cls(condensed, n_samples=n_samples)

    @property
    def condensed(self) -> np.ndarray:
        """ Read-only condensed distance vector. """
        return self._condensed

    def __len__(self):
        return self.n_samples

    def _row_start(self, i: int) -> int:
        return i * self.n_samples - i * (i + 1) // 2

    def _check_index(self, i: int) -> int:
        if i < 0:
            i += self.n_samples
        if not 0 <= i < self.n_samples:
            raise IndexError(f"Index {i} out of range for {self.n_samples} points.")
        return i

    def get(self, i: int, j: int) -> float:
        """ Distance between points i and j, mirrored for i > j and zero for i == j. """
        i = self._check_index(i)
        j = self._check_index(j)
        if i == j:
            return 0.
        if i > j:
            i, j = j, i
        return float(self._condensed[self._row_start(i) + j - i - 1])

    def __getitem__(self, index):
        i, j = index
        return self.get(i, j)

    def row(self, i: int) -> np.ndarray:
        """ Upper-triangular row i: distances to points i + 1, ..., n - 1. """
        i = self._check_index(i)
        start = self._row_start(i)
        return self._condensed[start:start + self.n_samples - i - 1]

    def full_row(self, i: int) -> np.ndarray:
        """ Distances from point i to all points (zero for i itself). """
        i = self._check_index(i)
        n = self.n_samples
        out = np.zeros(n)
        if i > 0:
            # Column i of the upper triangle holds the distances to points before i
            lower = np.arange(i)
            out[:i] = self._condensed[lower * n - lower * (lower + 1) // 2 + i - lower - 1]
        out[i + 1:] = self.row(i)
        return out

    def to_square(self) -> np.ndarray:
        """ Full symmetric matrix. Requires O(n^2) memory. """
        if self.n_samples == 1:
            return np.zeros((1, 1))
        return squareform(self._condensed, checks=False)

    def mean(self) -> float:
        """ Mean over all pairwise distances (each pair counted once). """
        if self._condensed.size == 0:
            return 0.
        return float(self._condensed.mean())

    def variance(self) -> float:
        """ Population variance over all pairwise distances. """
        if self._condensed.size == 0:
            return 0.
        return float(self._condensed.var())

    def __eq__(self, other):
        if not isinstance(other, DistanceMatrix):
            return NotImplemented
        return self.n_samples == other.n_samples and np.array_equal(self._condensed, other._condensed)

    def __repr__(self):
        return f"DistanceMatrix(n_samples={self.n_samples})"


def _fill_rows(dataset: DataSet, metric: CombinedMetric, out: np.ndarray, rows: slice, verbose: int = 0):
    """ Compute upper-triangular rows `rows` and write them to their (disjoint) region of `out`. """
    n = dataset.size
    F = dataset.float_attributes
    I = dataset.int_attributes  # noqa: E741
    for i in tqdm(range(rows.start, rows.stop),
                  desc=f"Distances [{rows.start}, {rows.stop})",
                  disable=verbose < 1,
                  leave=False):
        if i == n - 1:
            continue
        start = i * n - i * (i + 1) // 2
        out[start:start + n - i - 1] = metric.dist_many((F[i], I[i]), (F[i + 1:], I[i + 1:]))


def compute_distance_matrix(
        X: Union[DataSet, np.ndarray],
        metric: Union[str, DistanceMeasure, CombinedMetric] = "euclidean",
        n_jobs: int = 1,
        verbose: int = 0,
) -> DistanceMatrix:
    """ Compute the upper-triangular distance matrix of a data set.

    Parameters
    ----------
    X : DataSet or array-like of shape (n_samples, n_features)
        Data; plain arrays are treated as float attributes.
    metric : str, DistanceMeasure or CombinedMetric, default = "euclidean"
        See :func:`hubminer.distances.get_metric`
    n_jobs : int, default = 1
        Number of worker threads. Rows are split into slices of about
        equal numbers of distances, each worker filling its own slice.
    verbose : int, default = 0
        Show progress bars if verbose > 0.

    Returns
    -------
    dist : DistanceMatrix

    Raises
    ------
    ValueError
        If the data set is empty.
    MetricError
        If the metric fails for any pair; no partial result is returned.
    """
    if not isinstance(X, DataSet):
        X = np.asarray(X, dtype=np.float64)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        X = DataSet.from_array(X)
    if X.is_empty():
        raise ValueError("Cannot compute distances for an empty data set.")
    metric = get_metric(metric)
    n_jobs = validate_n_jobs(n_jobs)
    verbose = 0 if verbose is None else verbose

    n_samples = X.size
    out = np.empty(n_samples * (n_samples - 1) // 2, dtype=np.float64)
    slices = list(triangular_row_slices(n_samples, n_jobs))
    if len(slices) == 1:
        _fill_rows(X, metric, out, slices[0], verbose)
    else:
        logging.debug(f"Computing distances of {n_samples} points in {len(slices)} threads.")
        Parallel(n_jobs=len(slices), prefer="threads")(
            delayed(_fill_rows)(X, metric, out, s, verbose)
            for s in slices
        )
    return DistanceMatrix(out, n_samples=n_samples)
