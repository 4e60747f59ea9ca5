# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

from __future__ import annotations
from collections import namedtuple

import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_is_fitted
from tqdm.auto import tqdm

from ._base import SecondaryDistance
from ..distances.matrix import DistanceMatrix
from ..neighbors.neighbor_set_finder import NeighborSetFinder
from ..utils.io import validate_verbose

__all__ = [
    "LocalScaling",
]

LocalStatistic = namedtuple("LocalStatistic", ["radius", "k"])


class LocalScaling(SecondaryDistance, TransformerMixin, BaseEstimator):
    """ Secondary distances with Local Scaling [1]_ or NICDM.

    Parameters
    ----------
    k: int, default = 5
        Number of neighbors to consider for the rescaling
    method: 'standard' or 'nicdm', default = 'standard'
        Perform local scaling with the specified variant:

        - 'standard' or 'ls' computes ``1 - exp(-d^2 / (r_i r_j))``,
          where r is the distance to the k-th neighbor
        - 'nicdm' computes ``d / sqrt(mu_i mu_j)``,
          where mu is the mean distance to the k nearest neighbors
    verbose: int, default = 0
        If verbose > 0, show progress bar.

    References
    ----------
    .. [1] Schnitzer, D., Flexer, A., Schedl, M., & Widmer, G. (2012).
           Local and global scaling reduce hubs in space. The Journal of Machine
           Learning Research, 13(1), 2871–2902.
    """

    def __init__(self, k: int = 5, *, method: str = "standard", verbose: int = 0, **kwargs):
        super().__init__(**kwargs)
        self.k = k
        self.method = method
        self.verbose = verbose

    def fit(self, X: NeighborSetFinder, y=None, **kwargs) -> LocalScaling:
        """ Extract local scales from the kNN distances of a neighbor set finder.

        Parameters
        ----------
        X : NeighborSetFinder
            Finder with neighbor sets computed for at least `k` neighbors
        y : ignored

        Returns
        -------
        self
        """
        if self.method in ["ls", "standard"]:
            self.effective_method_ = "ls"
        elif self.method == "nicdm":
            self.effective_method_ = "nicdm"
        else:
            raise ValueError(f"Unknown local scaling method: {self.method}. "
                             f"Must be one of: 'ls', 'standard', 'nicdm'.")
        if self.k is None or self.k < 1:
            raise ValueError(f"Local scaling neighbor parameter k must be >= 1, got {self.k}.")
        nsf = self._check_finder(X, self.k)
        self.verbose = validate_verbose(self.verbose)

        if self.effective_method_ == "nicdm":
            radius = nsf.kdistances_[:, :self.k].mean(axis=1)
        else:
            radius = nsf.kdistances_[:, self.k - 1].copy()
        self.local_statistic_ = LocalStatistic(radius=radius, k=self.k)
        self.n_indexed_ = nsf.n_samples
        return self

    def transform(self, X: NeighborSetFinder, y=None, **kwargs) -> DistanceMatrix:
        """ Rescale the primary distances of `X`.

        Parameters
        ----------
        X : NeighborSetFinder
            The finder passed to :meth:`fit`, providing the primary distances
        y : ignored

        Returns
        -------
        dist : DistanceMatrix
            Secondary distances
        """
        check_is_fitted(self, ["local_statistic_", "n_indexed_"])
        if not isinstance(X, NeighborSetFinder):
            raise TypeError(f"Expected a NeighborSetFinder, got {type(X)}.")
        if X.n_samples != self.n_indexed_:
            raise ValueError(f"Finder of {X.n_samples} points does not match "
                             f"the {self.n_indexed_} fitted points.")
        primary = X.distances
        n = primary.n_samples
        r = self.local_statistic_.radius
        secondary = np.empty_like(primary.condensed)

        range_n = tqdm(
            range(n - 1),
            desc=f"{self.effective_method_.upper()} trafo",
            disable=self.verbose < 1,
        )
        start = 0
        for i in range_n:
            stop = start + n - i - 1
            dist_i = primary.condensed[start:stop]
            scale = r[i] * r[i + 1:]
            with np.errstate(divide="ignore", invalid="ignore"):
                if self.effective_method_ == "ls":
                    dist_i = 1. - np.exp(-dist_i ** 2 / scale)
                else:
                    dist_i = dist_i / np.sqrt(scale)
            # Identical points stay at distance zero, even with zero local scale
            secondary[start:stop] = np.where(primary.condensed[start:stop] == 0, 0., dist_i)
            start = stop
        return DistanceMatrix(secondary, n_samples=n)
