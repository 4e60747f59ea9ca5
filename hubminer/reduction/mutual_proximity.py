# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

from __future__ import annotations

import numpy as np
from scipy import stats
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_is_fitted
from tqdm.auto import tqdm

from ._base import SecondaryDistance
from ..distances.matrix import DistanceMatrix
from ..neighbors.neighbor_set_finder import NeighborSetFinder
from ..utils.io import validate_verbose

__all__ = [
    "MutualProximity",
]


def _normal_sf(d, mu, sd):
    """ Survival function of N(mu, sd); degenerates to a step at mu where sd == 0. """
    d, mu, sd = np.broadcast_arrays(d, mu, sd)
    step = np.where(d < mu, 1., np.where(d > mu, 0., .5))
    step[np.isnan(d)] = np.nan
    spread = sd > 0
    if not spread.any():
        return step
    return np.where(spread, stats.norm.sf(d, mu, np.where(spread, sd, 1.)), step)


class MutualProximity(SecondaryDistance, TransformerMixin, BaseEstimator):
    """ Secondary distances with Mutual Proximity [1]_ under independent Gaussians.

    The distances from each point to all other points are modeled by a
    normal distribution. The mutual proximity distance of two points is
    ``1 - sf_i(d) * sf_j(d)``, i.e. one minus the probability that a random
    point is farther away from both of them.

    Points at equal distance to all others (e.g. either point of a pair)
    have a zero standard deviation. Their survival function is the step
    1 below the mean, 0 above it, and .5 at the mean.

    Parameters
    ----------
    method: "normal", default = "normal"
        Model distance distribution with "method". Only "normal" (or "gaussi") is available.
    verbose: int, default = 0
        If verbose > 0, show progress bar.

    References
    ----------
    .. [1] Schnitzer, D., Flexer, A., Schedl, M., & Widmer, G. (2012).
           Local and global scaling reduce hubs in space. The Journal of Machine
           Learning Research, 13(1), 2871–2902.
    """

    def __init__(self, method: str = "normal", verbose: int = 0, **kwargs):
        super().__init__(**kwargs)
        self.method = method
        self.verbose = verbose

    def fit(self, X: NeighborSetFinder, y=None, **kwargs) -> MutualProximity:
        """ Estimate mean and standard deviation of each point's distances to all others. """
        if self.method is None or self.method.lower() not in ["normal", "gaussi"]:
            raise ValueError(f'Mutual proximity method "{self.method}" not recognized. Try "normal".')
        if not isinstance(X, NeighborSetFinder):
            raise TypeError(f"Expected a NeighborSetFinder, got {type(X)}.")
        self.verbose = validate_verbose(self.verbose)
        primary = X.distances
        n = primary.n_samples
        if n < 2:
            raise ValueError("Mutual proximity requires at least two points.")

        mu = np.empty(n)
        sd = np.empty(n)
        for i in tqdm(range(n), desc="MP fit", disable=self.verbose < 1):
            row = np.delete(primary.full_row(i), i)
            mu[i] = np.nanmean(row)
            sd[i] = np.nanstd(row, ddof=0)
        self.mu_indexed_ = mu
        self.sd_indexed_ = sd
        self.n_indexed_ = n
        return self

    def transform(self, X: NeighborSetFinder, y=None, **kwargs) -> DistanceMatrix:
        """ Mutual proximity distances between all points of `X`. """
        check_is_fitted(self, ["mu_indexed_", "sd_indexed_", "n_indexed_"])
        if not isinstance(X, NeighborSetFinder):
            raise TypeError(f"Expected a NeighborSetFinder, got {type(X)}.")
        if X.n_samples != self.n_indexed_:
            raise ValueError(f"Finder of {X.n_samples} points does not match "
                             f"the {self.n_indexed_} fitted points.")
        primary = X.distances
        n = self.n_indexed_
        mu, sd = self.mu_indexed_, self.sd_indexed_
        secondary = np.ones_like(primary.condensed)
        start = 0
        for i in tqdm(range(n - 1), desc="MP (normal) trafo", disable=self.verbose < 1):
            stop = start + n - i - 1
            d = primary.condensed[start:stop]
            p1 = _normal_sf(d, mu[i], sd[i])
            p2 = _normal_sf(d, mu[i + 1:], sd[i + 1:])
            secondary[start:stop] -= p1 * p2
            start = stop
        return DistanceMatrix(secondary, n_samples=n)
