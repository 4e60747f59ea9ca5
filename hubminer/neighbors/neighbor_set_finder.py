# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
This file is part of hubminer.

The :class:`NeighborSetFinder` computes k-nearest neighbor sets from an
upper-triangular distance matrix, and derives neighbor occurrence
statistics from them: how often each point occurs in the kNN sets of other
points (k-occurrence), which of these occurrences are label matches (good)
or mismatches (bad), and the reverse neighbor lists.
"""
from __future__ import annotations
from collections import namedtuple
import copy
import logging
from typing import List, Optional, Union
import warnings

import numpy as np
from joblib import Parallel, delayed, effective_n_jobs
from scipy.sparse import csr_matrix
from sklearn.utils import gen_even_slices

from ..data.dataset import DataSet
from ..distances.matrix import DistanceMatrix, compute_distance_matrix
from ..distances.primary import CombinedMetric, DistanceMeasure, get_metric
from ..utils.check import check_labels, check_n_neighbors
from ..utils.kneighbors_graph import check_kneighbors_graph
from ..utils.multiprocessing import validate_n_jobs
from ._selection import select_k_nearest, select_k_nearest_dense

__all__ = [
    "HubnessStatistics",
    "NeighborSetFinder",
]

#: Means and population standard deviations of the neighbor occurrence counts
HubnessStatistics = namedtuple("HubnessStatistics", [
    "occ_mean", "occ_std",
    "bad_mean", "bad_std",
    "good_mean", "good_std",
    "good_minus_bad_mean", "good_minus_bad_std",
    "relative_good_minus_bad_mean", "relative_good_minus_bad_std",
])


def _entropy(proba: np.ndarray) -> np.ndarray:
    """ Row-wise Shannon entropy (base 2) with 0 log 0 = 0. """
    with np.errstate(divide="ignore", invalid="ignore"):
        terms = np.where(proba > 0, proba * np.log2(proba), 0.)
    return -terms.sum(axis=1)


def _sigmoid_of_zscores(values: np.ndarray) -> np.ndarray:
    std = values.std()
    if std == 0:
        return np.full_like(values, 0.5, dtype=np.float64)
    return 1. / (1. + np.exp(-(values - values.mean()) / std))


def _fill_query_rows(metric: CombinedMetric, queries: DataSet, indexed: DataSet, out: np.ndarray, rows: slice):
    """ Write distances from queries `rows` to all indexed points into their rows of `out`. """
    others = (indexed.float_attributes, indexed.int_attributes)
    for q in range(rows.start, rows.stop):
        out[q] = metric.dist_many((queries.float_attributes[q], queries.int_attributes[q]), others)


class NeighborSetFinder:
    """ k-nearest neighbor sets and neighbor occurrence statistics.

    Parameters
    ----------
    dataset : DataSet or array-like of shape (n_samples, n_features), optional
        Data to compute distances for. Required for density estimates.
    distance_matrix : DistanceMatrix, optional
        Precomputed distances. If None, they are computed from `dataset`
        on first use (see :meth:`calculate_distances`).
    metric : str, DistanceMeasure or CombinedMetric, default = "euclidean"
        Metric for distances between points of `dataset`
    labels : array-like of shape (n_samples, ), optional
        Class labels, overriding those of `dataset`. Without any labels,
        all points are in class 0 (and all occurrences are good).

    Attributes
    ----------
    kneighbors_ : np.ndarray of shape (n_samples, k)
        Neighbor indices per point, nearest first. Ties in distance are
        broken in favor of the lower index.
    kdistances_ : np.ndarray of shape (n_samples, k)
        Corresponding ascending distances
    current_k_ : int
        Neighborhood size the occurrence statistics currently refer to
    neighbor_frequencies_, good_frequencies_, bad_frequencies_ : np.ndarray of shape (n_samples, )
        k-occurrence of each point, split into label matches and mismatches
    reverse_neighbors_ : list of np.ndarray
        Ascending indices of the points that have point i among their `current_k_` neighbors
    hubness_stats_ : HubnessStatistics

    Examples
    --------
    >>> nsf = NeighborSetFinder([[0.], [1.], [2.], [10.], [11.]])
    >>> nsf.calculate_neighbor_sets(k=2)  # doctest: +ELLIPSIS
    <...NeighborSetFinder object at ...>
    >>> nsf.kneighbors_[0]
    array([1, 2])
    """

    def __init__(
            self,
            dataset: Union[DataSet, np.ndarray] = None,
            distance_matrix: DistanceMatrix = None,
            metric: Union[str, DistanceMeasure, CombinedMetric] = "euclidean",
            labels=None,
    ):
        if dataset is None and distance_matrix is None:
            raise ValueError("Either a data set or a distance matrix is required.")
        if dataset is not None and not isinstance(dataset, DataSet):
            dataset = DataSet.from_array(dataset, labels)
        if distance_matrix is not None and not isinstance(distance_matrix, DistanceMatrix):
            raise TypeError(f"distance_matrix must be a DistanceMatrix, got {type(distance_matrix)}.")
        if dataset is not None and distance_matrix is not None and dataset.size != distance_matrix.n_samples:
            raise ValueError(f"Distance matrix of {distance_matrix.n_samples} points does not "
                             f"match data set of {dataset.size} points.")
        self.dataset = dataset
        self.metric = get_metric(metric)
        self._distances = distance_matrix
        self.n_samples = dataset.size if dataset is not None else distance_matrix.n_samples
        if labels is None and dataset is not None:
            labels = dataset.labels
        self.labels = check_labels(labels, self.n_samples)

    # ------------------------------------------------------------------ distances

    def calculate_distances(self, n_jobs: int = 1, verbose: int = 0) -> DistanceMatrix:
        """ Compute (or recompute) the distance matrix of the data set. """
        if self.dataset is None:
            raise ValueError("Cannot calculate distances without a data set.")
        self._distances = compute_distance_matrix(self.dataset, self.metric, n_jobs=n_jobs, verbose=verbose)
        return self._distances

    @property
    def distances(self) -> DistanceMatrix:
        if self._distances is None:
            self.calculate_distances()
        return self._distances

    def distances_calculated(self) -> bool:
        return self._distances is not None

    # ------------------------------------------------------------------ kNN sets

    def calculate_neighbor_sets(self, k: int, n_jobs: int = 1) -> NeighborSetFinder:
        """ Find the k nearest neighbors of each point and derive occurrence statistics.

        Parameters
        ----------
        k : int
            Neighborhood size, 1 <= k < n_samples
        n_jobs : int, default = 1
            Number of threads for the neighbor selection. Points are split
            into even slices; occurrence statistics are aggregated once all
            threads joined. Results do not depend on `n_jobs`.

        Returns
        -------
        self
        """
        if self.n_samples < 2:
            raise ValueError(f"Cannot find neighbors in a data set of {self.n_samples} points.")
        k = check_n_neighbors(k, self.n_samples)
        n_jobs = validate_n_jobs(n_jobs)
        n = self.n_samples
        condensed = self.distances.condensed

        neigh_ind = np.empty((n, k), dtype=np.int64)
        neigh_dist = np.empty((n, k), dtype=np.float64)
        n_jobs = min(effective_n_jobs(n_jobs), n)
        if n_jobs == 1:
            select_k_nearest(condensed, n, k, 0, n, neigh_ind, neigh_dist)
        else:
            logging.debug(f"Selecting {k} nearest neighbors of {n} points in {n_jobs} threads.")
            Parallel(n_jobs=n_jobs, prefer="threads")(
                delayed(select_k_nearest)(condensed, n, k, s.start, s.stop, neigh_ind, neigh_dist)
                for s in gen_even_slices(n, n_jobs)
            )
        self.kneighbors_ = neigh_ind
        self.kdistances_ = neigh_dist
        self._update_occurrences(k)
        return self

    def calculate_neighbor_sets_multithreaded(self, k: int, n_jobs: int) -> NeighborSetFinder:
        """ Same as :meth:`calculate_neighbor_sets` with a required number of threads. """
        return self.calculate_neighbor_sets(k, n_jobs=n_jobs)

    def set_k_neighbors(self, neigh_ind, neigh_dist) -> NeighborSetFinder:
        """ Use externally computed kNN sets, e.g. from an approximate neighbor search.

        Parameters
        ----------
        neigh_ind : array-like of shape (n_samples, k)
            Neighbor indices, nearest first; must not contain the point itself.
        neigh_dist : array-like of shape (n_samples, k)
            Ascending neighbor distances
        """
        neigh_ind = np.asarray(neigh_ind)
        neigh_dist = np.asarray(neigh_dist, dtype=np.float64)
        if neigh_ind.ndim != 2 or neigh_ind.shape != neigh_dist.shape:
            raise ValueError(f"Neighbor indices {neigh_ind.shape} and distances "
                             f"{neigh_dist.shape} must be 2-D arrays of equal shape.")
        if neigh_ind.shape[0] != self.n_samples:
            raise ValueError(f"Expected neighbors for {self.n_samples} points, got {neigh_ind.shape[0]}.")
        check_n_neighbors(neigh_ind.shape[1], self.n_samples)
        if neigh_ind.size and (neigh_ind.min() < 0 or neigh_ind.max() >= self.n_samples):
            raise ValueError("Neighbor indices out of range.")
        self.kneighbors_ = neigh_ind.astype(np.int64)
        self.kdistances_ = neigh_dist
        self._update_occurrences(neigh_ind.shape[1])
        return self

    def _check_calculated(self):
        if getattr(self, "kneighbors_", None) is None:
            raise ValueError("Neighbor sets have not been calculated yet. "
                             "Call calculate_neighbor_sets(k) first.")

    def is_calculated_up_to_k(self, k: int) -> bool:
        return getattr(self, "kneighbors_", None) is not None and self.kneighbors_.shape[1] >= k

    @property
    def k_max(self) -> int:
        """ Neighborhood size of the stored kNN sets. """
        self._check_calculated()
        return self.kneighbors_.shape[1]

    # ------------------------------------------------------------------ occurrences

    def _occurrences(self, k: int):
        """ Occurrence, good occurrence and reverse neighbors from the first k columns. """
        n = self.n_samples
        targets = self.kneighbors_[:, :k]
        occurrence = np.bincount(targets.ravel(), minlength=n)
        good_mask = self.labels[targets] == self.labels[:, np.newaxis]
        good = np.bincount(targets[good_mask], minlength=n)
        return occurrence, good

    def _reverse_neighbors(self, k: int) -> List[np.ndarray]:
        n = self.n_samples
        targets = self.kneighbors_[:, :k].ravel()
        sources = np.repeat(np.arange(n), k)
        # Stable sort keeps sources in ascending order per target
        order = np.argsort(targets, kind="stable")
        counts = np.bincount(targets, minlength=n)
        return np.split(sources[order], np.cumsum(counts)[:-1])

    def _update_occurrences(self, k: int):
        occurrence, good = self._occurrences(k)
        self.current_k_ = k
        self.neighbor_frequencies_ = occurrence
        self.good_frequencies_ = good
        self.bad_frequencies_ = occurrence - good
        self.reverse_neighbors_ = self._reverse_neighbors(k)
        self.calculate_hubness_stats()

    def recalculate_stats_for_smaller_k(self, k_small: int) -> NeighborSetFinder:
        """ Derive all occurrence statistics for a smaller neighborhood size.

        Only the first `k_small` columns of the stored kNN sets are used,
        so neither distances nor neighbor sets are recomputed. The stored
        kNN sets are kept, so that larger values up to the originally
        computed k can be restored later.

        Parameters
        ----------
        k_small : int
            New operating neighborhood size. Values larger than the stored
            neighborhood size are reduced to it.
        """
        self._check_calculated()
        if k_small < 1:
            raise ValueError(f"Neighborhood size must be >= 1, but is {k_small}")
        if k_small > self.k_max:
            warnings.warn(f"Neighbor sets are only available up to k={self.k_max}. "
                          f"Using k={self.k_max} instead of {k_small}.")
            k_small = self.k_max
        self._update_occurrences(k_small)
        return self

    def calculate_hubness_stats(self) -> HubnessStatistics:
        """ Means and population standard deviations of the occurrence counts at the current k. """
        occ = self.neighbor_frequencies_.astype(np.float64)
        good = self.good_frequencies_.astype(np.float64)
        bad = self.bad_frequencies_.astype(np.float64)
        good_minus_bad = good - bad
        relative = self._relative_good_minus_bad()
        self.hubness_stats_ = HubnessStatistics(
            occ_mean=occ.mean(), occ_std=occ.std(),
            bad_mean=bad.mean(), bad_std=bad.std(),
            good_mean=good.mean(), good_std=good.std(),
            good_minus_bad_mean=good_minus_bad.mean(), good_minus_bad_std=good_minus_bad.std(),
            relative_good_minus_bad_mean=relative.mean(), relative_good_minus_bad_std=relative.std(),
        )
        return self.hubness_stats_

    def _relative_good_minus_bad(self) -> np.ndarray:
        """ (good - bad) / occurrence, and 1 for points that never occur. """
        occ = self.neighbor_frequencies_
        diff = (self.good_frequencies_ - self.bad_frequencies_).astype(np.float64)
        relative = np.ones(self.n_samples)
        np.divide(diff, occ, out=relative, where=occ > 0)
        return relative

    def neighbor_occurrence_frequencies(self, k_small: int) -> np.ndarray:
        """ k-occurrence for a smaller k, leaving the current statistics untouched. """
        self._check_calculated()
        k_small = min(check_n_neighbors(k_small), self.k_max)
        occurrence, _ = self._occurrences(k_small)
        return occurrence

    def occurrence_frequencies_all_k(self) -> np.ndarray:
        """ k-occurrence for every k from 1 to the stored neighborhood size.

        Returns
        -------
        occ : np.ndarray of shape (k_max, n_samples)
            Row k - 1 holds the k-occurrences for neighborhood size k.
        """
        self._check_calculated()
        per_column = np.stack([
            np.bincount(self.kneighbors_[:, col], minlength=self.n_samples)
            for col in range(self.k_max)
        ])
        return np.cumsum(per_column, axis=0)

    def label_mismatch_percentages_all_k(self, k_max: int = None) -> np.ndarray:
        """ Share of label mismatches among all neighbor slots, for each k up to `k_max`. """
        self._check_calculated()
        k_max = self.k_max if k_max is None else min(check_n_neighbors(k_max, name="k_max"), self.k_max)
        mismatch = self.labels[self.kneighbors_[:, :k_max]] != self.labels[:, np.newaxis]
        cumulative = np.cumsum(mismatch.sum(axis=0))
        return cumulative / (self.n_samples * np.arange(1, k_max + 1))

    def error_inducing_hubness(self, k: int = None) -> np.ndarray:
        """ Bad occurrences within kNN sets whose majority vote mislabels the query point.

        The majority vote breaks ties in favor of the lower class index.
        """
        self._check_calculated()
        k = self.current_k_ if k is None else min(check_n_neighbors(k), self.k_max)
        n_classes = self.n_classes
        neighbors = self.kneighbors_[:, :k]
        neighbor_labels = self.labels[neighbors]
        votes = np.zeros((self.n_samples, n_classes), dtype=np.int64)
        np.add.at(votes, (np.repeat(np.arange(self.n_samples), k), neighbor_labels.ravel()), 1)
        misclassified = votes.argmax(axis=1) != self.labels
        bad_slots = (neighbor_labels != self.labels[:, np.newaxis]) & misclassified[:, np.newaxis]
        return np.bincount(neighbors[bad_slots], minlength=self.n_samples).astype(np.float64)

    def frequent_at_least(self, threshold: int) -> np.ndarray:
        """ Indices of points with k-occurrence >= `threshold`. """
        self._check_calculated()
        return np.flatnonzero(self.neighbor_frequencies_ >= threshold)

    def percentage_frequent_at_least(self, threshold: int) -> float:
        self._check_calculated()
        return float(np.mean(self.neighbor_frequencies_ >= threshold))

    def percentage_frequent_at_most(self, threshold: int) -> float:
        self._check_calculated()
        return float(np.mean(self.neighbor_frequencies_ <= threshold))

    def hub_index(self) -> Optional[int]:
        """ Index of the most frequent neighbor (lowest index among equals), None if nothing occurs. """
        self._check_calculated()
        if self.neighbor_frequencies_.max(initial=0) == 0:
            return None
        return int(np.argmax(self.neighbor_frequencies_))

    def major_hub_instance(self):
        """ The data instance of the most frequent neighbor. """
        index = self.hub_index()
        if index is None or self.dataset is None:
            return None
        return self.dataset[index]

    def avg_dist_to_neighbors(self, k: int = None) -> np.ndarray:
        """ Mean distance of each point to its k nearest neighbors (k clipped to the stored size). """
        self._check_calculated()
        k = self.current_k_ if k is None else check_n_neighbors(k)
        k = min(k, self.k_max)
        return self.kdistances_[:, :k].mean(axis=1)

    def avg_dist_to_nn_position(self, position: int) -> float:
        """ Mean distance to the neighbor at (1-based) rank `position` over all points. """
        self._check_calculated()
        if not 1 <= position <= self.k_max:
            raise ValueError(f"Neighbor position must be in [1, {self.k_max}], got {position}.")
        return float(self.kdistances_[:, position - 1].mean())

    # ------------------------------------------------------------------ weighting schemes

    def standardized_bad_frequencies(self) -> np.ndarray:
        """ z-scores of the bad occurrence counts (zeros if they do not vary). """
        self._check_calculated()
        stats = self.hubness_stats_
        if stats.bad_std == 0:
            return np.zeros(self.n_samples)
        return (self.bad_frequencies_ - stats.bad_mean) / stats.bad_std

    def hw_knn_weights(self) -> np.ndarray:
        """ Instance weights ``exp(-z_bad)`` of hubness-weighted kNN. """
        self._check_calculated()
        if self.hubness_stats_.bad_std == 0:
            return np.ones(self.n_samples)
        return np.exp(-self.standardized_bad_frequencies())

    def maxed_at_one_hw_knn_weights(self) -> np.ndarray:
        """ hw-kNN weights, capped at one. """
        return np.minimum(self.hw_knn_weights(), 1.)

    def bounded_good_minus_bad_weights(self, lower: float = 0.2, upper: float = 1.8) -> np.ndarray:
        """ ``exp(z_(good - bad))`` clipped to [lower, upper]. """
        self._check_calculated()
        stats = self.hubness_stats_
        if stats.good_minus_bad_std == 0:
            return np.ones(self.n_samples)
        z = (self.good_frequencies_ - self.bad_frequencies_ - stats.good_minus_bad_mean) / stats.good_minus_bad_std
        return np.clip(np.exp(z), lower, upper)

    def relative_good_minus_bad_weights(self) -> np.ndarray:
        """ ``exp(z)`` of the relative good-minus-bad occurrence. """
        self._check_calculated()
        stats = self.hubness_stats_
        if stats.relative_good_minus_bad_std == 0:
            return np.ones(self.n_samples)
        z = (self._relative_good_minus_bad() - stats.relative_good_minus_bad_mean) \
            / stats.relative_good_minus_bad_std
        return np.exp(z)

    def _occurrence_zscores(self) -> Optional[np.ndarray]:
        stats = self.hubness_stats_
        if stats.occ_std == 0:
            return None
        return (self.neighbor_frequencies_ - stats.occ_mean) / stats.occ_std

    def penalize_hubness_weights(self) -> np.ndarray:
        """ ``exp(-z_occ)``: frequent neighbors get lower weights. """
        self._check_calculated()
        z = self._occurrence_zscores()
        return np.ones(self.n_samples) if z is None else np.exp(-z)

    def reward_hubness_weights(self) -> np.ndarray:
        """ ``exp(z_occ)``: frequent neighbors get higher weights. """
        self._check_calculated()
        z = self._occurrence_zscores()
        return np.ones(self.n_samples) if z is None else np.exp(z)

    # ------------------------------------------------------------------ class relations

    @property
    def n_classes(self) -> int:
        return int(self.labels.max()) + 1 if self.labels.size else 0

    def _resolve(self, k, n_classes):
        self._check_calculated()
        k = self.current_k_ if k is None else min(check_n_neighbors(k), self.k_max)
        n_classes = self.n_classes if n_classes is None else n_classes
        if n_classes < self.n_classes:
            raise ValueError(f"Number of classes {n_classes} is smaller than the "
                             f"number of classes in the labels ({self.n_classes}).")
        return k, n_classes

    def class_data_neighbor_relation(self, k: int = None, n_classes: int = None,
                                     extend_by_element: bool = False) -> np.ndarray:
        """ Class-conditional k-occurrence counts.

        Returns
        -------
        relation : np.ndarray of shape (n_classes, n_samples)
            Entry [c, j] counts how often point j is among the k nearest
            neighbors of points of class c. If `extend_by_element`, each
            point also counts once as a neighbor of itself.
        """
        k, n_classes = self._resolve(k, n_classes)
        n = self.n_samples
        relation = np.zeros((n_classes, n))
        np.add.at(relation, (np.repeat(self.labels, k), self.kneighbors_[:, :k].ravel()), 1)
        if extend_by_element:
            relation[self.labels, np.arange(n)] += 1
        return relation

    def data_class_neighbor_relation(self, k: int = None, n_classes: int = None,
                                     extend_by_element: bool = False) -> np.ndarray:
        """ Transposed class-data relation of shape (n_samples, n_classes). """
        return self.class_data_neighbor_relation(k, n_classes, extend_by_element).T.copy()

    def global_class_to_class(self, k: int = None, n_classes: int = None) -> np.ndarray:
        """ Entry [c1, c2] counts occurrences of class c1 points in kNN sets of class c2 points. """
        k, n_classes = self._resolve(k, n_classes)
        c2c = np.zeros((n_classes, n_classes))
        neighbor_labels = self.labels[self.kneighbors_[:, :k]].ravel()
        np.add.at(c2c, (neighbor_labels, np.repeat(self.labels, k)), 1)
        return c2c

    # ------------------------------------------------------------------ entropies

    def k_entropies(self, n_classes: int = None, neighborhood_size: int = None) -> np.ndarray:
        """ Entropy of the label distribution within each kNN set.

        The neighborhood size is limited to the stored kNN sets.
        """
        k, n_classes = self._resolve(neighborhood_size, n_classes)
        neighbor_labels = self.labels[self.kneighbors_[:, :k]]
        counts = np.zeros((self.n_samples, n_classes))
        np.add.at(counts, (np.repeat(np.arange(self.n_samples), k), neighbor_labels.ravel()), 1)
        self.k_entropies_ = _entropy(counts / k)
        return self.k_entropies_

    def reverse_neighbor_entropies(self, n_classes: int = None, category_weights=None) -> np.ndarray:
        """ Entropy of the label distribution of each point's reverse neighbors at the current k.

        Points with at most one reverse neighbor have entropy 0.

        Parameters
        ----------
        n_classes : int, optional
            Number of classes, by default inferred from the labels
        category_weights : array-like of shape (n_classes, ), optional
            Relevance of each class. If given, class frequencies are
            reweighted (weights floored at 1e-7) and renormalized before
            computing the entropy.
        """
        _, n_classes = self._resolve(None, n_classes)
        counts = self.data_class_neighbor_relation(n_classes=n_classes)
        occ = self.neighbor_frequencies_
        proba = counts / np.maximum(occ, 1)[:, np.newaxis]
        if category_weights is not None:
            category_weights = np.maximum(np.asarray(category_weights, dtype=np.float64), 1e-7)
            if category_weights.shape != (n_classes, ):
                raise ValueError(f"Expected {n_classes} category weights, got shape {category_weights.shape}.")
            proba = proba * category_weights
            denominator = proba.sum(axis=1, keepdims=True)
            proba = np.divide(proba, denominator, out=np.zeros_like(proba), where=denominator > 0)
        entropies = _entropy(proba)
        entropies[occ <= 1] = 0.
        self.reverse_neighbor_entropies_ = entropies
        return entropies

    def occurrence_self_information(self) -> np.ndarray:
        """ ``log2(n / (occ + 1))``, normalized by its largest magnitude (if that exceeds one). """
        self._check_calculated()
        info = np.log2(self.n_samples / (self.neighbor_frequencies_ + 1.))
        return info / max(np.abs(info).max(initial=0), 1.)

    # ------------------------------------------------------------------ simhub weights

    def simhub_weights(self, theta: float = 0., n_classes: int = None) -> np.ndarray:
        """ Hubness-information weights of the simhub secondary distance.

        Each point is weighted by the self-information of its occurrence,
        ``log2(n / (occ + 1))``, times the purity of its reverse neighbors,
        ``log2(n_classes) - H_rnn + theta``. Weights are divided by the
        largest absolute weight if that exceeds one.
        """
        _, n_classes = self._resolve(None, n_classes)
        max_entropy = np.log2(n_classes) if n_classes > 0 else 0.
        info = np.log2(self.n_samples / (self.neighbor_frequencies_ + 1.))
        purity = max_entropy - self.reverse_neighbor_entropies(n_classes) + theta
        weights = info * purity
        return weights / max(np.abs(weights).max(initial=0), 1.)

    def simhub_unsupervised_weights(self) -> np.ndarray:
        """ The occurrence self-information part of :meth:`simhub_weights`. """
        return self.occurrence_self_information()

    def simhub_supervised_weights(self, theta: float = 0.) -> np.ndarray:
        """ The reverse neighbor purity part of :meth:`simhub_weights`. """
        _, n_classes = self._resolve(None, None)
        max_entropy = np.log2(n_classes) if n_classes > 0 else 0.
        weights = max_entropy - self.reverse_neighbor_entropies(n_classes) + theta
        return weights / max(np.abs(weights).max(initial=0), 1.)

    def _goodness_indicator(self, k: int = None) -> np.ndarray:
        """ ``1.5 * sum_c occ_c^2 - occ^2`` with class-conditional occurrences occ_c. """
        k, _ = self._resolve(k, None)
        class_occ = self.class_data_neighbor_relation(k)
        occ = class_occ.sum(axis=0)
        return 1.5 * (class_occ ** 2).sum(axis=0) - occ ** 2

    def simhub_binary_weights(self) -> np.ndarray:
        """ 1 for points whose occurrences are dominated by a single class, 0 otherwise. """
        return (self._goodness_indicator() > 0).astype(np.float64)

    def simhub_goodness_proportional_weights(self, k: int = None) -> np.ndarray:
        """ Goodness indicator scaled to [0, 1] (with 0 always within the scaled range). """
        indicator = self._goodness_indicator(k)
        low = min(indicator.min(initial=0), 0.)
        high = max(indicator.max(initial=0), 0.)
        if high == low:
            return np.zeros(self.n_samples)
        return (indicator - low) / (high - low)

    def imbalance_weights(self, k: int = None, k_classification: int = 5) -> np.ndarray:
        """ Instance weights for shared neighbor similarity on class-imbalanced data.

        Combines the occurrence self-information, the purity of the reverse
        neighbors under class-relevance weighting, and a sigmoid of the
        standardized difference between within-class and cross-class
        co-occurrence mass.

        Parameters
        ----------
        k : int, optional
            Neighborhood size for the class-conditional occurrences
        k_classification : int, default = 5
            Neighborhood size for the class-to-class occurrence matrix
        """
        k, n_classes = self._resolve(k, None)
        k_classification = min(check_n_neighbors(k_classification, name="k_classification"), self.k_max)
        class_counts = np.bincount(self.labels, minlength=n_classes).astype(np.float64)
        class_occ = self.class_data_neighbor_relation(k, n_classes)
        c2c = self.global_class_to_class(k_classification, n_classes)
        expected = k_classification * class_counts + 1e-5
        relevance = 1. - (np.diag(c2c) + 1e-5) / expected

        # Within-class pairs, weighted by class relevance
        good_mass = ((class_occ * (class_occ - 1) / 2) * relevance[:, np.newaxis]).sum(axis=0)
        # Cross-class pairs, weighted by mutual class confusion
        confusion = (c2c.T + 1e-5) / expected[:, np.newaxis] + (c2c + 1e-5) / expected[np.newaxis, :]
        np.fill_diagonal(confusion, 0.)
        bad_mass = 0.5 * np.einsum("ci,cd,di->i", class_occ, confusion, class_occ)
        indicator = np.where(self.neighbor_frequencies_ < 1, 1., good_mass - bad_mass)

        max_entropy = np.log2(n_classes) if n_classes > 0 else 0.
        profile = max_entropy - self.reverse_neighbor_entropies(n_classes, category_weights=relevance)
        return self.occurrence_self_information() * profile * _sigmoid_of_zscores(indicator)

    # ------------------------------------------------------------------ co-occurrence and density

    def k_cooccurrences(self, k: int = None) -> np.ndarray:
        """ How often each pair of points occurs together in a kNN set.

        Returns
        -------
        cooccurrences : np.ndarray of shape (n_samples * (n_samples - 1) / 2, )
            Condensed upper-triangular counts (see :class:`DistanceMatrix`)
        """
        k, _ = self._resolve(k, None)
        n = self.n_samples
        first, second = np.triu_indices(k, k=1)
        a = self.kneighbors_[:, first].ravel()
        b = self.kneighbors_[:, second].ravel()
        low, high = np.minimum(a, b), np.maximum(a, b)
        index = low * n - low * (low + 1) // 2 + high - low - 1
        return np.bincount(index, minlength=n * (n - 1) // 2).astype(np.float64)

    def data_densities(self, k: int = None) -> np.ndarray:
        """ Density estimates ``k / r^d`` from normalized kNN volume radii.

        The radius of point i is the largest distance of its k neighbors to
        their centroid, divided by the largest radius over all points.
        Points with zero radius get density 0, as do all points if every
        radius is zero.
        """
        if self.dataset is None:
            raise ValueError("Density estimates require the data set.")
        k, _ = self._resolve(k, None)
        radii = np.array([
            self.dataset.radius_of_volume(self.kneighbors_[i, :k], self.metric)
            for i in range(self.n_samples)
        ])
        densities = np.zeros(self.n_samples)
        max_radius = radii.max(initial=0)
        if max_radius == 0:
            warnings.warn("All kNN volume radii are zero. Returning zero densities.")
            return densities
        nonzero = radii != 0
        densities[nonzero] = k / np.power(radii[nonzero] / max_radius, self.dataset.n_dimensions)
        return densities

    # ------------------------------------------------------------------ queries

    def _check_queries(self, X) -> DataSet:
        if self.dataset is None:
            raise ValueError("Out-of-sample queries require the data set of the indexed points.")
        if not isinstance(X, DataSet):
            X = np.asarray(X, dtype=np.float64)
            if X.ndim == 1:
                X = X.reshape(1, -1)
            X = DataSet.from_array(X)
        expected = (self.dataset.n_float_attributes, self.dataset.n_int_attributes)
        if (X.n_float_attributes, X.n_int_attributes) != expected:
            raise ValueError(f"Queries with {X.n_float_attributes} float and {X.n_int_attributes} "
                             f"integer attributes do not match the indexed data set "
                             f"({expected[0]} float, {expected[1]} integer).")
        return X

    def distances_to(self, X, n_jobs: int = 1) -> np.ndarray:
        """ Distances from query points to all indexed points.

        Parameters
        ----------
        X : DataSet or array-like of shape (n_queries, n_float_attributes)
            Query points, not part of the indexed data
        n_jobs : int, default = 1
            Number of threads, each handling an even slice of the queries

        Returns
        -------
        dist : np.ndarray of shape (n_queries, n_samples)
        """
        queries = self._check_queries(X)
        n_jobs = validate_n_jobs(n_jobs)
        dist = np.empty((queries.size, self.n_samples), dtype=np.float64)
        n_jobs = min(effective_n_jobs(n_jobs), max(queries.size, 1))
        if n_jobs == 1:
            _fill_query_rows(self.metric, queries, self.dataset, dist, slice(0, queries.size))
        else:
            Parallel(n_jobs=n_jobs, prefer="threads")(
                delayed(_fill_query_rows)(self.metric, queries, self.dataset, dist, s)
                for s in gen_even_slices(queries.size, n_jobs)
            )
        return dist

    def kneighbors(self, X, k: int = None, return_distance: bool = True, n_jobs: int = 1):
        """ Find the k nearest indexed points of out-of-sample query points.

        Ties and NaN distances are handled as in :meth:`calculate_neighbor_sets`.
        Occurrence statistics of the indexed points are not changed.

        Parameters
        ----------
        X : DataSet or array-like of shape (n_queries, n_float_attributes)
            Query points
        k : int, optional
            Neighborhood size, 1 <= k <= n_samples. Defaults to `current_k_`.
        return_distance : bool, default = True
            Whether to return the neighbor distances as well
        n_jobs : int, default = 1
            Number of threads for the distance computation

        Returns
        -------
        neigh_dist : np.ndarray of shape (n_queries, k)
            Ascending distances, only if `return_distance`
        neigh_ind : np.ndarray of shape (n_queries, k)
            Indices of the nearest indexed points
        """
        if k is None:
            self._check_calculated()
            k = self.current_k_
        k = check_n_neighbors(k)
        # Query points are not indexed, so all n_samples points are candidates
        if k > self.n_samples:
            raise ValueError(f"Cannot find {k} neighbors among {self.n_samples} indexed points.")
        dist = self.distances_to(X, n_jobs=n_jobs)
        n_queries = dist.shape[0]
        neigh_ind = np.empty((n_queries, k), dtype=np.int64)
        neigh_dist = np.empty((n_queries, k), dtype=np.float64)
        select_k_nearest_dense(dist, k, 0, n_queries, neigh_ind, neigh_dist)
        if return_distance:
            return neigh_dist, neigh_ind
        return neigh_ind

    # ------------------------------------------------------------------ conversion

    def kneighbors_graph(self) -> csr_matrix:
        """ Sparse k-neighbors graph (distances, nearest first) at the current k. """
        self._check_calculated()
        k = self.current_k_
        n = self.n_samples
        return csr_matrix(
            (self.kdistances_[:, :k].ravel(), self.kneighbors_[:, :k].ravel(), np.arange(0, n * k + 1, k)),
            shape=(n, n),
        )

    @classmethod
    def from_neighbor_sets(cls, neigh_ind, neigh_dist, dataset: DataSet = None,
                           distance_matrix: DistanceMatrix = None,
                           metric: Union[str, DistanceMeasure, CombinedMetric] = "euclidean",
                           labels=None) -> NeighborSetFinder:
        """ Create a finder from stored kNN sets.

        Parameters
        ----------
        neigh_ind, neigh_dist : array-like of shape (n_samples, k)
            Neighbor indices (nearest first, without the point itself) and distances
        dataset : DataSet or array-like, optional
            Data of the indexed points
        distance_matrix : DistanceMatrix, optional
            Full distances. Without data set and distance matrix, only the
            neighbor distances are known and all other entries are infinity.
        metric : str, DistanceMeasure or CombinedMetric, default = "euclidean"
        labels : array-like, optional
        """
        neigh_ind = np.asarray(neigh_ind)
        neigh_dist = np.asarray(neigh_dist, dtype=np.float64)
        if neigh_ind.ndim != 2 or neigh_ind.shape != neigh_dist.shape:
            raise ValueError(f"Neighbor indices {neigh_ind.shape} and distances "
                             f"{neigh_dist.shape} must be 2-D arrays of equal shape.")
        n_samples = neigh_ind.shape[0]
        if neigh_ind.size and (neigh_ind.min() < 0 or neigh_ind.max() >= n_samples):
            raise ValueError("Neighbor indices out of range.")
        if dataset is None and distance_matrix is None:
            square = np.full((n_samples, n_samples), np.inf)
            np.fill_diagonal(square, 0.)
            rows = np.repeat(np.arange(n_samples), neigh_ind.shape[1])
            square[rows, neigh_ind.ravel()] = neigh_dist.ravel()
            square = np.minimum(square, square.T)
            distance_matrix = DistanceMatrix.from_square(square, check_symmetric=False)
        nsf = cls(dataset=dataset, distance_matrix=distance_matrix, metric=metric, labels=labels)
        return nsf.set_k_neighbors(neigh_ind, neigh_dist)

    @classmethod
    def from_kneighbors_graph(cls, graph: csr_matrix, distance_matrix: DistanceMatrix = None,
                              labels=None, exclude_self: bool = False) -> NeighborSetFinder:
        """ Create a finder from a square sparse k-neighbors graph.

        Parameters
        ----------
        graph : csr_matrix of shape (n_samples, n_samples)
            Sorted k-neighbors graph, as obtained from sklearn `kneighbors_graph`.
        distance_matrix : DistanceMatrix, optional
            Full distances. If None, missing entries are set to infinity.
        labels : array-like, optional
        exclude_self : bool, default = False
            Drop the first neighbor of each row (graphs built with ``include_self=True``).
        """
        graph = check_kneighbors_graph(graph)
        n_query, n_indexed = graph.shape
        if n_query != n_indexed:
            raise ValueError(f"The k-neighbors graph must be square, got shape {graph.shape}.")
        n_neighbors = graph.indptr[1]
        neigh_ind = graph.indices.reshape(n_query, n_neighbors)
        neigh_dist = graph.data.reshape(n_query, n_neighbors)
        if exclude_self:
            neigh_ind, neigh_dist = neigh_ind[:, 1:], neigh_dist[:, 1:]
        return cls.from_neighbor_sets(neigh_ind, neigh_dist, distance_matrix=distance_matrix, labels=labels)

    def copy(self) -> NeighborSetFinder:
        """ Deep copy of neighbor sets and statistics; data set and distances are shared (immutable). """
        new = copy.copy(self)
        for attr in ["kneighbors_", "kdistances_", "neighbor_frequencies_", "good_frequencies_",
                     "bad_frequencies_", "labels"]:
            if getattr(self, attr, None) is not None:
                setattr(new, attr, getattr(self, attr).copy())
        if getattr(self, "reverse_neighbors_", None) is not None:
            new.reverse_neighbors_ = [r.copy() for r in self.reverse_neighbors_]
        return new
