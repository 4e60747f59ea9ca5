# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numpy as np
import pytest
from scipy.sparse import csr_matrix

from hubminer.utils.check import check_labels, check_n_neighbors
from hubminer.utils.kneighbors_graph import check_kneighbors_graph


def test_check_n_neighbors():
    assert check_n_neighbors(3, 5) == 3
    assert check_n_neighbors(np.int32(3)) == 3
    with pytest.raises(ValueError):
        check_n_neighbors(0)
    with pytest.raises(ValueError):
        check_n_neighbors(5, n_samples=5)
    with pytest.raises(TypeError):
        check_n_neighbors(2.5)


def test_check_labels():
    np.testing.assert_array_equal(check_labels(None, 3), [0, 0, 0])
    np.testing.assert_array_equal(check_labels([1., 0., 2.], 3), [1, 0, 2])
    with pytest.raises(ValueError):
        check_labels([0, 1], 3)
    with pytest.raises(ValueError):
        check_labels([0, -1, 1], 3)
    with pytest.raises(ValueError):
        check_labels([0.5, 1., 2.], 3)


def test_check_kneighbors_graph_sorts_rows():
    data = np.array([.3, .1, .2, .5])
    indices = np.array([1, 2, 0, 2])
    indptr = np.array([0, 2, 4])
    graph = csr_matrix((data, indices, indptr), shape=(2, 3))
    checked = check_kneighbors_graph(graph)
    np.testing.assert_array_equal(checked.indices, [2, 1, 0, 2])
    np.testing.assert_array_almost_equal(checked.data, [.1, .3, .2, .5])
    with pytest.raises(ValueError):
        check_kneighbors_graph(graph, sort_if_necessary=False)


def test_check_kneighbors_graph_invalid():
    with pytest.raises(ValueError):
        check_kneighbors_graph(np.ones((3, 3)))
    ragged = csr_matrix((np.ones(3), np.array([0, 1, 0]), np.array([0, 2, 3])), shape=(2, 2))
    with pytest.raises(ValueError):
        check_kneighbors_graph(ragged)
