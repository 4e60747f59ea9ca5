# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

from abc import ABC, abstractmethod

from ..distances.matrix import DistanceMatrix
from ..neighbors.neighbor_set_finder import NeighborSetFinder


class SecondaryDistance(ABC):
    """ Base class for secondary distances derived from primary kNN sets and distances. """
    @abstractmethod
    def __init__(self, **kwargs):
        pass

    @abstractmethod
    def fit(self, X: NeighborSetFinder, y=None, **kwargs):
        pass

    @abstractmethod
    def transform(self, X: NeighborSetFinder, y=None, **kwargs) -> DistanceMatrix:
        pass

    @staticmethod
    def _check_finder(X, k: int = None) -> NeighborSetFinder:
        if not isinstance(X, NeighborSetFinder):
            raise TypeError(f"Expected a NeighborSetFinder, got {type(X)}.")
        if getattr(X, "kneighbors_", None) is None:
            raise ValueError("Neighbor sets have not been calculated yet. "
                             "Call calculate_neighbor_sets(k) first.")
        if k is not None and k > X.k_max:
            raise ValueError(f"Neighborhood size k={k} exceeds the computed "
                             f"neighbor sets (k={X.k_max}).")
        return X
