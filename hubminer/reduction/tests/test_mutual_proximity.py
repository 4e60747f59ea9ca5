# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numpy as np
import pytest
from scipy import stats
from sklearn.datasets import make_classification

from hubminer.distances import DistanceMatrix
from hubminer.neighbors import NeighborSetFinder
from hubminer.reduction import MutualProximity


@pytest.fixture
def nsf():
    X, y = make_classification(n_samples=40, n_features=5, random_state=11)
    return NeighborSetFinder(X, labels=y).calculate_neighbor_sets(k=5)


@pytest.mark.parametrize("method", ["normal", "gaussi"])
def test_mutual_proximity(nsf, method):
    mp = MutualProximity(method=method).fit(nsf)
    dist = mp.transform(nsf)
    assert dist.n_samples == nsf.n_samples
    assert np.all((dist.condensed >= 0.) & (dist.condensed <= 1.))

    D = nsf.distances.to_square()
    i, j = 3, 17
    row_i, row_j = np.delete(D[i], i), np.delete(D[j], j)
    expected = 1. - (stats.norm.sf(D[i, j], row_i.mean(), row_i.std())
                     * stats.norm.sf(D[i, j], row_j.mean(), row_j.std()))
    assert dist.get(i, j) == pytest.approx(expected)
    np.testing.assert_array_almost_equal(mp.mu_indexed_[i], row_i.mean())


def test_invalid(nsf):
    with pytest.raises(ValueError):
        MutualProximity(method="empiric").fit(nsf)
    with pytest.raises(TypeError):
        MutualProximity().fit(np.zeros((3, 3)))
    other = NeighborSetFinder(np.zeros((3, 2)))
    mp = MutualProximity().fit(nsf)
    with pytest.raises(ValueError):
        mp.transform(other)


def test_constant_distances_use_step_survival_function():
    pair = NeighborSetFinder(np.array([[0.], [1.]]))
    np.testing.assert_array_equal(MutualProximity().fit(pair).transform(pair).condensed, [.75])

    triangle = NeighborSetFinder(distance_matrix=DistanceMatrix(np.array([1., 1., 1.])))
    mp = MutualProximity().fit(triangle)
    np.testing.assert_array_equal(mp.sd_indexed_, 0.)
    np.testing.assert_array_equal(mp.transform(triangle).condensed, [.75, .75, .75])
