# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numba
import numpy as np
from scipy.sparse import csr_matrix, issparse

__all__ = [
    "check_kneighbors_graph",
    "sort_kneighbors_graph",
]


@numba.jit(nopython=True)
def _is_sorted_per_row(arr: np.ndarray) -> bool:
    n, m = arr.shape
    for i in range(n):
        for j in range(m - 1):
            if arr[i, j] > arr[i, j + 1]:
                return False
    return True


def sort_kneighbors_graph(graph: csr_matrix) -> csr_matrix:
    """ Return a copy of a homogeneous k-neighbors graph with ascending distances per row. """
    n_query = graph.shape[0]
    n_neighbors = graph.indptr[1]
    data = graph.data.reshape(n_query, n_neighbors)
    indices = graph.indices.reshape(n_query, n_neighbors)
    order = np.argsort(data, axis=1, kind="stable")
    return csr_matrix(
        (np.take_along_axis(data, order, axis=1).ravel(),
         np.take_along_axis(indices, order, axis=1).ravel(),
         graph.indptr.copy()),
        shape=graph.shape,
    )


def check_kneighbors_graph(graph, sort_if_necessary: bool = True) -> csr_matrix:
    """ Validate a sparse k-neighbors graph and cast it to CSR format.

    Parameters
    ----------
    graph : sparse matrix of shape (n_query, n_indexed)
        k-neighbors graph storing the same number of neighbor distances for each query
    sort_if_necessary : bool, default = True
        Sort rows by ascending distance if they are not yet sorted.
        Otherwise, unsorted rows raise a ValueError.

    Returns
    -------
    graph : csr_matrix
    """
    if not issparse(graph):
        raise ValueError("The k-neighbors graph is expected to be a sparse matrix.")
    graph = graph.tocsr()
    n_query, n_indexed = graph.shape
    if n_query < 1 or n_indexed < 1:
        raise ValueError(f"K-neighbors graph must not be empty. Got shape ({n_query}, {n_indexed}).")

    n_neighbors = graph.indptr[1]
    if np.any(np.diff(graph.indptr) != n_neighbors):
        raise ValueError("Misshaped k-neighbors graph. For each object, "
                         "identically many neighbors must be stored.")
    if n_neighbors < 1:
        raise ValueError("The k-neighbors graph stores no neighbors.")

    if not _is_sorted_per_row(graph.data.reshape(n_query, n_neighbors)):
        if not sort_if_necessary:
            raise ValueError("K-neighbors graph must be sorted, that is, store ascending distances per row.")
        graph = sort_kneighbors_graph(graph)
    return graph
