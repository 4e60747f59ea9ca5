# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
Shared nearest neighbor (SNN) secondary distances.

Two points are similar if their kNN sets overlap. Each shared neighbor
contributes its instance weight to the similarity, which is 1 for plain
SNN (simcos), and a hubness-derived weight otherwise (e.g. simhub).
"""
from __future__ import annotations
import logging
from typing import Callable, Dict

import numpy as np
from joblib import Parallel, delayed, effective_n_jobs
from scipy.sparse import csr_matrix
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_is_fitted

from ._base import SecondaryDistance
from ..distances.matrix import DistanceMatrix
from ..neighbors._selection import count_shared_neighbors_rows
from ..neighbors.neighbor_set_finder import NeighborSetFinder
from ..utils.check import check_n_neighbors
from ..utils.multiprocessing import triangular_row_slices, validate_n_jobs

__all__ = [
    "SHARED_NEIGHBOR_WEIGHTINGS",
    "SharedNeighborDistance",
    "SharedNeighborFinder",
    "SimcosDistance",
    "SimhubDistance",
]


def _no_weights(nsf: NeighborSetFinder, theta: float, k_classification: int, k: int) -> np.ndarray:
    return np.ones(nsf.n_samples)


#: Instance weighting schemes for shared neighbors
SHARED_NEIGHBOR_WEIGHTINGS: Dict[str, Callable[..., np.ndarray]] = {
    "none": _no_weights,
    "hubness": lambda nsf, theta, k_classification, k: nsf.penalize_hubness_weights(),
    "bad_hubness": lambda nsf, theta, k_classification, k: nsf.hw_knn_weights(),
    "hubness_information": lambda nsf, theta, k_classification, k: nsf.simhub_weights(theta),
    "imbalance": lambda nsf, theta, k_classification, k: nsf.imbalance_weights(k, k_classification),
}


class SharedNeighborFinder:
    """ Count shared neighbors between all pairs of points.

    Parameters
    ----------
    nsf : NeighborSetFinder
        Finder with computed kNN sets
    k : int, optional
        Shared neighbor neighborhood size. Defaults to the current k of
        `nsf` and must not exceed its stored neighborhood size.
    k_classification : int, default = 5
        Neighborhood size used by the "imbalance" weighting
    weighting : str, default = "none"
        Instance weighting, one of :data:`SHARED_NEIGHBOR_WEIGHTINGS`
    theta : float, default = 0
        Offset of the reverse neighbor purity in "hubness_information" weights
    """

    def __init__(self, nsf: NeighborSetFinder, k: int = None, k_classification: int = 5,
                 weighting: str = "none", theta: float = 0.):
        SecondaryDistance._check_finder(nsf, k)
        self.nsf = nsf
        self.k = nsf.current_k_ if k is None else check_n_neighbors(k, nsf.n_samples)
        self.k_classification = k_classification
        self.theta = theta
        self.instance_weights = None
        self.set_weighting(weighting)
        self.shared_neighbor_counts_ = None

    def set_weighting(self, weighting: str = "none") -> SharedNeighborFinder:
        """ Select and compute instance weights by name. """
        try:
            scheme = SHARED_NEIGHBOR_WEIGHTINGS[weighting]
        except KeyError:
            raise ValueError(f"Unknown weighting '{weighting}'. "
                             f"Must be one of {sorted(SHARED_NEIGHBOR_WEIGHTINGS)}.")
        self.weighting = weighting
        self.instance_weights = np.asarray(
            scheme(self.nsf, self.theta, self.k_classification, self.k), dtype=np.float64)
        return self

    def set_weights(self, weights) -> SharedNeighborFinder:
        """ Use custom instance weights. """
        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != (self.nsf.n_samples, ):
            raise ValueError(f"Expected {self.nsf.n_samples} instance weights, got shape {weights.shape}.")
        self.weighting = "custom"
        self.instance_weights = weights
        return self

    @property
    def neighbors(self) -> np.ndarray:
        return self.nsf.kneighbors_[:, :self.k]

    def count_shared_neighbors(self, n_jobs: int = 1) -> np.ndarray:
        """ (Weighted) shared neighbor counts for all pairs.

        Parameters
        ----------
        n_jobs : int, default = 1
            Number of threads; rows are split into slices of equal work.

        Returns
        -------
        counts : np.ndarray of shape (n_samples * (n_samples - 1) / 2, )
            Condensed upper-triangular counts
        """
        n_jobs = validate_n_jobs(n_jobs)
        n = self.nsf.n_samples
        neighbors = np.ascontiguousarray(self.neighbors, dtype=np.int64)
        counts = np.zeros(n * (n - 1) // 2, dtype=np.float64)
        slices = list(triangular_row_slices(n, effective_n_jobs(n_jobs)))
        if len(slices) <= 1:
            count_shared_neighbors_rows(neighbors, self.instance_weights, 0, n, counts)
        else:
            logging.debug(f"Counting shared neighbors of {n} points in {len(slices)} threads.")
            Parallel(n_jobs=len(slices), prefer="threads")(
                delayed(count_shared_neighbors_rows)(neighbors, self.instance_weights, s.start, s.stop, counts)
                for s in slices
            )
        self.shared_neighbor_counts_ = counts
        return counts

    def _indicator(self, neighbors: np.ndarray, weights: np.ndarray = None) -> csr_matrix:
        """ Sparse (n_rows, n_samples) matrix of kNN set membership, optionally weighted. """
        neighbors = np.ascontiguousarray(neighbors[:, :self.k])
        data = np.ones(neighbors.size) if weights is None else weights[neighbors].ravel()
        return csr_matrix(
            (data, neighbors.ravel(), np.arange(0, neighbors.size + 1, self.k)),
            shape=(neighbors.shape[0], self.nsf.n_samples),
        )

    def count_shared_neighbors_with(self, X, n_jobs: int = 1) -> np.ndarray:
        """ (Weighted) shared neighbor counts between query points and all indexed points.

        The kNN sets of the queries are searched among the indexed points
        (see :meth:`NeighborSetFinder.kneighbors`) and compared to the
        stored kNN sets.

        Parameters
        ----------
        X : DataSet or array-like of shape (n_queries, n_float_attributes)
            Query points, not part of the indexed data
        n_jobs : int, default = 1
            Number of threads for the query distances

        Returns
        -------
        counts : np.ndarray of shape (n_queries, n_samples)
        """
        query_neighbors = self.nsf.kneighbors(X, k=self.k, return_distance=False, n_jobs=n_jobs)
        shared = self._indicator(query_neighbors, self.instance_weights) @ self._indicator(self.neighbors).T
        return shared.toarray()

    def shared_neighbor_count(self, i: int, j: int) -> float:
        """ (Weighted) number of shared neighbors of points i and j. """
        if i == j:
            return float(self.instance_weights[self.neighbors[i]].sum())
        if self.shared_neighbor_counts_ is not None:
            n = self.nsf.n_samples
            low, high = min(i, j), max(i, j)
            return float(self.shared_neighbor_counts_[low * n - low * (low + 1) // 2 + high - low - 1])
        return self.count_between(self.neighbors[i], self.neighbors[j])

    def shared_neighbors(self, i: int, j: int) -> np.ndarray:
        """ Indices of the neighbors shared by points i and j, in the neighbor order of i. """
        first = self.neighbors[i]
        if i == j:
            return first.copy()
        return first[np.isin(first, self.neighbors[j])]

    def count_between(self, neighbors_first, neighbors_second) -> float:
        """ (Weighted) size of the intersection of two arbitrary kNN sets. """
        shared = np.intersect1d(np.asarray(neighbors_first)[:self.k], np.asarray(neighbors_second)[:self.k])
        return float(self.instance_weights[shared].sum())


class SharedNeighborDistance(SecondaryDistance, TransformerMixin, BaseEstimator):
    """ Secondary distance ``k - snn(i, j)`` from shared nearest neighbors.

    Parameters
    ----------
    k : int, optional
        Shared neighbor neighborhood size, by default the current k of the finder
    weighting : str, default = "none"
        Instance weighting, one of :data:`SHARED_NEIGHBOR_WEIGHTINGS`.
        With weights at most one (e.g. "hubness_information") distances stay non-negative.
    theta : float, default = 0
        Purity offset of the "hubness_information" weighting
    k_classification : int, default = 5
        Neighborhood size for the "imbalance" weighting
    n_jobs : int, default = 1
        Number of threads for counting shared neighbors

    References
    ----------
    .. [1] Tomasev, N. & Mladenic, D. Hubness-aware shared neighbor distances
           for high-dimensional k-nearest neighbor classification.
           Knowledge and Information Systems, 2014, 39, 89-122.
    """

    def __init__(self, k: int = None, *, weighting: str = "none", theta: float = 0.,
                 k_classification: int = 5, n_jobs: int = 1, **kwargs):
        super().__init__(**kwargs)
        self.k = k
        self.weighting = weighting
        self.theta = theta
        self.k_classification = k_classification
        self.n_jobs = n_jobs

    def fit(self, X: NeighborSetFinder, y=None, **kwargs) -> SharedNeighborDistance:
        """ Compute instance weights from the kNN sets in `X`. """
        nsf = self._check_finder(X, self.k)
        if self.weighting not in SHARED_NEIGHBOR_WEIGHTINGS:
            raise ValueError(f"Unknown weighting '{self.weighting}'. "
                             f"Must be one of {sorted(SHARED_NEIGHBOR_WEIGHTINGS)}.")
        self.n_jobs = validate_n_jobs(self.n_jobs)
        self.finder_ = SharedNeighborFinder(
            nsf, k=self.k, k_classification=self.k_classification,
            weighting=self.weighting, theta=self.theta,
        )
        self.n_indexed_ = nsf.n_samples
        return self

    def transform(self, X: NeighborSetFinder, y=None, **kwargs) -> DistanceMatrix:
        """ Shared neighbor distances between all points of the fitted finder.

        Parameters
        ----------
        X : NeighborSetFinder
            The finder passed to :meth:`fit`

        Returns
        -------
        dist : DistanceMatrix
            ``k - count`` for each pair, where `count` is the (weighted) number of shared neighbors
        """
        check_is_fitted(self, ["finder_", "n_indexed_"])
        if X is not self.finder_.nsf:
            raise ValueError("Shared neighbor distances are only available between "
                             "the points of the finder passed to fit().")
        counts = self.finder_.count_shared_neighbors(n_jobs=self.n_jobs)
        return DistanceMatrix(self.finder_.k - counts, n_samples=self.n_indexed_)

    def distances_to(self, X) -> np.ndarray:
        """ Shared neighbor distances from out-of-sample query points to all fitted points.

        Returns
        -------
        dist : np.ndarray of shape (n_queries, n_indexed)
        """
        check_is_fitted(self, ["finder_", "n_indexed_"])
        return self.finder_.k - self.finder_.count_shared_neighbors_with(X, n_jobs=self.n_jobs)


class SimcosDistance(SharedNeighborDistance):
    """ Unweighted shared neighbor distance (simcos). """

    def __init__(self, k: int = None, *, n_jobs: int = 1):
        super().__init__(k, weighting="none", n_jobs=n_jobs)


class SimhubDistance(SharedNeighborDistance):
    """ Hubness-aware shared neighbor distance (simhub), weighting by hubness information. """

    def __init__(self, k: int = None, *, theta: float = 0., n_jobs: int = 1):
        super().__init__(k, weighting="hubness_information", theta=theta, n_jobs=n_jobs)
