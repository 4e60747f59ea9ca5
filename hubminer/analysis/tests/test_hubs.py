# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numpy as np
import pytest
from sklearn.datasets import make_classification

from hubminer.analysis import (
    HubFinder,
    antihub_threshold,
    find_antihubs,
    find_hubs,
    find_orphans,
    hub_orphan_regular_percentages,
    hub_threshold,
)
from hubminer.distances import compute_distance_matrix
from hubminer.neighbors import NeighborSetFinder


def test_hub_threshold():
    occ = np.array([2, 2, 4, 1, 1])
    assert hub_threshold(occ) == pytest.approx(2. + 2 * np.sqrt(1.2))
    assert antihub_threshold(occ, n_std=1.) == pytest.approx(2. - np.sqrt(1.2))
    np.testing.assert_array_equal(find_hubs(occ), [])
    np.testing.assert_array_equal(find_hubs(occ, n_std=1.), [2])


def test_find_hubs():
    occ = np.array([1] * 19 + [30])
    np.testing.assert_array_equal(find_hubs(occ), [19])
    np.testing.assert_array_equal(find_antihubs(occ), [])


def test_hubs_exceed_threshold_strictly():
    # mean 1, stdev 1: threshold 2 with n_std=1
    occ = np.array([0, 2, 0, 2])
    np.testing.assert_array_equal(find_hubs(occ, n_std=1.), [])


def test_find_antihubs_and_orphans():
    occ = np.array([5] * 9 + [0])
    np.testing.assert_array_equal(find_antihubs(occ), [9])
    np.testing.assert_array_equal(find_orphans([0, 1, 0, 3]), [0, 2])
    np.testing.assert_array_equal(find_hubs(np.full(5, 3)), [])


def test_hub_orphan_regular_percentages():
    result = hub_orphan_regular_percentages([0, 1, 0, 3], n_std=1.)
    assert result.hubs == pytest.approx(.25)
    assert result.orphans == pytest.approx(.5)
    assert result.regulars == pytest.approx(.25)
    assert sum(hub_orphan_regular_percentages(np.arange(20))) == pytest.approx(1.)
    assert hub_orphan_regular_percentages([]) == (0., 0., 0.)


def test_hub_finder_reuses_neighbor_sets():
    X, y = make_classification(n_samples=100, n_features=30, random_state=5)
    finder = HubFinder(X)
    hubs_10 = finder.find_hubs_for_k(10)
    hubs_5 = finder.find_hubs_for_k(5)
    assert finder.nsf.k_max == 10
    assert finder.current_k == 5
    fresh = NeighborSetFinder(X).calculate_neighbor_sets(k=5)
    np.testing.assert_array_equal(hubs_5, find_hubs(fresh.neighbor_frequencies_))
    np.testing.assert_array_equal(finder.find_hubs_for_k(10), hubs_10)
    instances = finder.find_hub_instances_for_k(10)
    assert [inst.index for inst in instances] == hubs_10.tolist()


def test_hub_finder_on_distances():
    X, _ = make_classification(n_samples=50, random_state=6)
    dist = compute_distance_matrix(X)
    finder = HubFinder(dist, n_std=1.)
    np.testing.assert_array_equal(finder.find_hubs_for_k(5), HubFinder(X, n_std=1.).find_hubs_for_k(5))
    with pytest.raises(ValueError):
        finder.find_hub_instances_for_k(5)
