#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
This file is part of hubminer.

Hubness measures computed from the k-occurrence distribution of a
:class:`~hubminer.neighbors.NeighborSetFinder`.
"""
from __future__ import annotations
from typing import List, Union
import warnings

import numpy as np
from scipy import stats
from scipy.sparse import issparse
from sklearn.base import BaseEstimator
from sklearn.utils.validation import check_is_fitted
from tqdm.auto import tqdm

from ..distances.matrix import DistanceMatrix
from ..neighbors.neighbor_set_finder import NeighborSetFinder
from ..utils.io import validate_verbose
from ..utils.multiprocessing import validate_n_jobs
from .statistics import kurtosis, skewness

__all__ = [
    "Hubness",
    "VALID_HUBNESS_MEASURES",
]

#: Values of `Hubness(return_value=...)`; "all" and "all_but_gini" select several measures
VALID_HUBNESS_MEASURES = [
    "all",
    "all_but_gini",
    "antihub_occurrence",
    "atkinson",
    "bad_occurrence",
    "gini",
    "groupie_ratio",
    "hub_occurrence",
    "k_kurtosis",
    "k_skewness",
    "k_skewness_truncnorm",
    "robinhood",
]


class Hubness(BaseEstimator):
    """ Measure hubness of the k-occurrence distribution.

    Parameters
    ----------
    k : int, default = 10
        Neighborhood size
    hub_size : float, default = 2
        Points with k-occurrence >= hub_size * k count as hubs.
    metric : str, DistanceMeasure or CombinedMetric, default = "euclidean"
        Metric for vector data. Ignored for neighbor set finders,
        distance matrices and k-neighbors graphs.
    return_value : str, default = "k_skewness"
        Measure returned by :meth:`score`, one of `VALID_HUBNESS_MEASURES`.
        "all" returns a dict of every measure, "all_but_gini" skips the
        Gini index, which is slow for large data.
    return_hubs : bool, default = False
        Additionally return the indices of hubs
    return_antihubs : bool, default = False
        Additionally return the indices of anti-hubs (points that never occur)
    return_k_occurrence : bool, default = False
        Additionally return the k-occurrence of each point
    verbose : int, default = 0
        Show progress bars if verbose > 0.
    n_jobs : int, default = 1
        Number of threads for distance and neighbor computations, -1 for all CPUs

    Attributes
    ----------
    nsf_ : NeighborSetFinder
        Neighbor sets of the fitted objects at neighborhood size `k`
    n_samples_in_ : int

    References
    ----------
    .. [1] `Radovanović, M.; Nanopoulos, A. & Ivanovic, M.
            Hubs in space: Popular nearest neighbors in high-dimensional data.
            Journal of Machine Learning Research, 2010, 11, 2487-2531`
    .. [2] `Feldbauer, R.; Leodolter, M.; Plant, C. & Flexer, A.
            Fast approximate hubness reduction for large high-dimensional data.
            IEEE International Conference of Big Knowledge (2018).`
    """

    def __init__(
            self,
            k: int = 10,
            hub_size: float = 2,
            metric="euclidean",
            return_value: str = "k_skewness",
            return_hubs: bool = False,
            return_antihubs: bool = False,
            return_k_occurrence: bool = False,
            verbose: int = 0,
            n_jobs: int = 1,
    ):
        self.k = k
        self.hub_size = hub_size
        self.metric = metric
        self.return_value = return_value
        self.return_hubs = return_hubs
        self.return_antihubs = return_antihubs
        self.return_k_occurrence = return_k_occurrence
        self.verbose = verbose
        self.n_jobs = n_jobs

    def _neighbor_set_finder(self, X, y=None) -> NeighborSetFinder:
        """ Obtain a finder with neighbor sets up to k from any supported input. """
        if isinstance(X, NeighborSetFinder):
            if not X.is_calculated_up_to_k(self.k):
                raise ValueError(f"Neighbor set finder holds fewer than {self.k} "
                                 f"neighbors per object.")
            return X.copy().recalculate_stats_for_smaller_k(self.k)
        if issparse(X):
            nsf = NeighborSetFinder.from_kneighbors_graph(X, labels=y)
            if self.k > nsf.k_max:
                raise ValueError(f"The k-neighbors graph stores {nsf.k_max} neighbors "
                                 f"per object, but k={self.k} are required.")
            return nsf.recalculate_stats_for_smaller_k(self.k)
        if isinstance(X, DistanceMatrix):
            nsf = NeighborSetFinder(distance_matrix=X, labels=y)
        else:
            nsf = NeighborSetFinder(dataset=np.asarray(X, dtype=np.float64), metric=self.metric, labels=y)
            nsf.calculate_distances(n_jobs=self.n_jobs, verbose=self.verbose)
        return nsf.calculate_neighbor_sets(self.k, n_jobs=self.n_jobs)

    def fit(self, X, y=None) -> Hubness:
        """ Compute neighbor sets of the objects to examine.

        Parameters
        ----------
        X : NeighborSetFinder, DistanceMatrix, csr_matrix or array-like of shape (n_samples, n_features)
            A finder with neighbor sets of at least `k` neighbors, a distance
            matrix, a sorted sparse k-neighbors graph (without self distances),
            or vector data.
        y : array-like of shape (n_samples, ), optional
            Class labels, used for the "bad_occurrence" measure

        Returns
        -------
        self
        """
        if isinstance(X, (NeighborSetFinder, DistanceMatrix)):
            n_samples = X.n_samples
        else:
            if not issparse(X):
                X = np.asarray(X, dtype=np.float64)
            n_samples = X.shape[0]

        # Neighbor sets computed here hold at most n - 1 neighbors
        if not issparse(X) and not isinstance(X, NeighborSetFinder) and n_samples <= self.k:
            if n_samples < 2:
                raise ValueError(f"Hubness is undefined for {n_samples} sample(s).")
            warnings.warn(f"Only {n_samples} samples available, "
                          f"reducing k from {self.k} to {n_samples - 1}.")
            self.k = n_samples - 1
        if self.k < 1:
            raise ValueError(f"Neighborhood size 'k' must be >= 1, but is {self.k}")

        if self.return_value is None:
            self.return_value = "k_skewness"
        if self.return_value not in VALID_HUBNESS_MEASURES:
            raise ValueError(f"Unknown hubness measure '{self.return_value}'. "
                             f"Must be one of {VALID_HUBNESS_MEASURES}.")
        if self.hub_size is None:
            self.hub_size = 2.
        if self.hub_size <= 0:
            raise ValueError(f"Hub size must be positive, but is {self.hub_size}.")

        self.n_jobs = validate_n_jobs(self.n_jobs)
        self.verbose = validate_verbose(self.verbose)

        self.nsf_: NeighborSetFinder = self._neighbor_set_finder(X, y)
        self.n_samples_in_ = n_samples
        return self

    @staticmethod
    def _calc_skewness_truncnorm(k_occurrence: np.ndarray) -> float:
        """ Skewness of a normal distribution truncated at zero, fitted to the k-occurrence.

        k-occurrences are non-negative, so this corrects the plain
        skewness for the truncation of the distribution.
        """
        loc = k_occurrence.mean()
        scale = k_occurrence.std(ddof=1)
        if scale == 0:
            return 0.
        lower = -loc / scale
        upper = (np.iinfo(np.int64).max - loc) / scale
        return float(stats.truncnorm(lower, upper).moment(3))

    @staticmethod
    def _calc_gini_index(k_occurrence: np.ndarray, verbose: int = 0) -> float:
        """ Gini index of the k-occurrence distribution.

        Computed from the sorted occurrences as
        ``sum_i (2i - n - 1) x_(i) / (n sum x)``, which equals the mean
        absolute difference over all pairs divided by twice the mean.
        """
        n = k_occurrence.size
        total = k_occurrence.sum()
        if n == 0 or total == 0:
            return 0.
        x = np.sort(k_occurrence).astype(np.float64)
        numerator = 0.
        chunks = np.array_split(np.arange(n), max(1, n // 100_000))
        for chunk in tqdm(chunks, disable=verbose < 1, desc="Gini"):
            numerator += np.sum((2 * (chunk + 1) - n - 1) * x[chunk])
        return float(numerator / (n * total))

    @staticmethod
    def _calc_robinhood_index(k_occurrence: np.ndarray) -> float:
        """ Robin Hood (Hoover) index: share of occurrences to redistribute for equal occurrence.

        References
        ----------
        .. [1] `Feldbauer, R.; Leodolter, M.; Plant, C. & Flexer, A.
                Fast approximate hubness reduction for large high-dimensional data.
                IEEE International Conference of Big Knowledge (2018).`
        """
        total = float(np.sum(k_occurrence))
        if total == 0:
            return 0.
        return .5 * float(np.sum(np.abs(k_occurrence - k_occurrence.mean()))) / total

    @staticmethod
    def _calc_atkinson_index(k_occurrence: np.ndarray, eps: float = .5) -> float:
        """ Atkinson index with inequality aversion `eps`.

        For ``eps == 1`` the generalized mean is the geometric mean,
        which is zero as soon as a single point never occurs.
        """
        occ = np.asarray(k_occurrence, dtype=np.float64)
        if eps == 1:
            with np.errstate(divide="ignore"):
                generalized_mean = np.exp(np.mean(np.log(occ)))
        else:
            generalized_mean = np.mean(occ ** (1. - eps)) ** (1. / (1. - eps))
        return float(1. - generalized_mean / occ.mean())

    def _requested_measures(self) -> List[str]:
        if self.return_value == "all":
            return [m for m in VALID_HUBNESS_MEASURES if not m.startswith("all")]
        elif self.return_value == "all_but_gini":
            return [m for m in VALID_HUBNESS_MEASURES if not m.startswith("all") and m != "gini"]
        return [self.return_value]

    def _measure(self, name: str, nsf: NeighborSetFinder, hubs: np.ndarray, antihubs: np.ndarray) -> float:
        occ = nsf.neighbor_frequencies_
        n_slots = self.k * nsf.n_samples
        if name == "k_skewness":
            return skewness(occ)
        elif name == "k_kurtosis":
            return kurtosis(occ)
        elif name == "k_skewness_truncnorm":
            return self._calc_skewness_truncnorm(occ)
        elif name == "gini":
            return self._calc_gini_index(occ, verbose=self.verbose)
        elif name == "robinhood":
            return self._calc_robinhood_index(occ)
        elif name == "atkinson":
            return self._calc_atkinson_index(occ)
        elif name == "antihub_occurrence":
            return antihubs.size / nsf.n_samples
        elif name == "hub_occurrence":
            # Share of all neighbor slots taken by hubs
            return float(occ[hubs].sum() / n_slots)
        elif name == "groupie_ratio":
            return float(occ.max() / n_slots)
        elif name == "bad_occurrence":
            return float(nsf.bad_frequencies_.sum() / n_slots)
        raise ValueError(f"Unknown hubness measure '{name}'.")

    def score(self, X=None, y=None) -> Union[float, dict]:
        """ Estimate hubness.

        Parameters
        ----------
        X : optional
            Any input accepted by :meth:`fit`, to estimate hubness within
            other objects with the fitted parameters. If None, use the
            fitted objects.
        y : array-like, optional
            Class labels of `X`

        Returns
        -------
        hubness_measure: float or dict
            The measure selected by `return_value`, or a dict of several
            measures for "all" and "all_but_gini", or whenever hubs,
            anti-hubs or k-occurrences are requested additionally.
        """
        check_is_fitted(self, "nsf_")
        nsf = self.nsf_ if X is None else self._neighbor_set_finder(X, y)
        k_occurrence = nsf.neighbor_frequencies_
        hubs = np.flatnonzero(k_occurrence >= self.hub_size * self.k)
        antihubs = np.flatnonzero(k_occurrence == 0)

        results = {name: self._measure(name, nsf, hubs, antihubs)
                   for name in self._requested_measures()}
        if self.return_hubs:
            results["hubs"] = hubs
        if self.return_antihubs:
            results["antihubs"] = antihubs
        if self.return_k_occurrence:
            results["k_occurrence"] = k_occurrence

        if len(results) == 1:
            return results[self.return_value]
        return results
