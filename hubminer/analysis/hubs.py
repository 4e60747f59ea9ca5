# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations
from collections import namedtuple
from typing import List, Union

import numpy as np

from ..data.dataset import DataInstance, DataSet
from ..distances.matrix import DistanceMatrix
from ..neighbors.neighbor_set_finder import NeighborSetFinder
from .statistics import mean, stdev

__all__ = [
    "HubFinder",
    "HubOrphanRegular",
    "antihub_threshold",
    "find_antihubs",
    "find_hubs",
    "find_orphans",
    "hub_orphan_regular_percentages",
    "hub_threshold",
]

HubOrphanRegular = namedtuple("HubOrphanRegular", ["hubs", "orphans", "regulars"])


def hub_threshold(occurrence, n_std: float = 2.) -> float:
    """ Occurrence above which points are hubs: mean + n_std * stdev. """
    return mean(occurrence) + n_std * stdev(occurrence)


def antihub_threshold(occurrence, n_std: float = 2.) -> float:
    """ Occurrence below which points are anti-hubs: mean - n_std * stdev. """
    return mean(occurrence) - n_std * stdev(occurrence)


def find_hubs(occurrence, n_std: float = 2.) -> np.ndarray:
    """ Indices of points occurring more often than :func:`hub_threshold`. """
    occurrence = np.asarray(occurrence)
    return np.flatnonzero(occurrence > hub_threshold(occurrence, n_std))


def find_antihubs(occurrence, n_std: float = 2.) -> np.ndarray:
    """ Indices of points occurring less often than :func:`antihub_threshold`. """
    occurrence = np.asarray(occurrence)
    return np.flatnonzero(occurrence < antihub_threshold(occurrence, n_std))


def find_orphans(occurrence) -> np.ndarray:
    """ Indices of points that are never neighbors of other points. """
    return np.flatnonzero(np.asarray(occurrence) == 0)


def hub_orphan_regular_percentages(occurrence, n_std: float = 2.) -> HubOrphanRegular:
    """ Shares of hubs, orphans and all remaining (regular) points. """
    occurrence = np.asarray(occurrence)
    n = occurrence.size
    if n == 0:
        return HubOrphanRegular(0., 0., 0.)
    hubs = occurrence > hub_threshold(occurrence, n_std)
    orphans = occurrence == 0
    regulars = ~(hubs | orphans)
    return HubOrphanRegular(hubs.sum() / n, orphans.sum() / n, regulars.sum() / n)


class HubFinder:
    """ Find hubs of a data set for varying neighborhood sizes.

    Distances are computed once and reused for each k.

    Parameters
    ----------
    data : DataSet, array-like or DistanceMatrix
        Data to find hubs in, or their precomputed distances
    metric : str, DistanceMeasure or CombinedMetric, default = "euclidean"
        Metric for data sets; ignored for distance matrices
    n_std : float, default = 2
        Hubs occur more than `n_std` standard deviations above the mean occurrence.
    n_jobs : int, default = 1
        Threads for distance and neighbor computations
    """

    def __init__(self, data: Union[DataSet, np.ndarray, DistanceMatrix], metric="euclidean",
                 n_std: float = 2., n_jobs: int = 1):
        if isinstance(data, DistanceMatrix):
            self.nsf = NeighborSetFinder(distance_matrix=data)
        else:
            self.nsf = NeighborSetFinder(dataset=data, metric=metric)
        self.n_std = n_std
        self.n_jobs = n_jobs
        self.current_k = None

    def find_hubs_for_k(self, k: int) -> np.ndarray:
        """ Indices of hubs for neighborhood size k. """
        if not self.nsf.distances_calculated():
            self.nsf.calculate_distances(n_jobs=self.n_jobs)
        if self.nsf.is_calculated_up_to_k(k):
            self.nsf.recalculate_stats_for_smaller_k(k)
        else:
            self.nsf.calculate_neighbor_sets(k, n_jobs=self.n_jobs)
        self.current_k = k
        return find_hubs(self.nsf.neighbor_frequencies_, self.n_std)

    def find_hub_instances_for_k(self, k: int) -> List[DataInstance]:
        """ Data instances of hubs for neighborhood size k. """
        if self.nsf.dataset is None:
            raise ValueError("Hub instances require a data set, not only distances.")
        return [self.nsf.dataset[i] for i in self.find_hubs_for_k(k)]
