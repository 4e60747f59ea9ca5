# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numba
import numpy as np

__all__ = [
    "select_k_nearest",
    "select_k_nearest_dense",
    "count_shared_neighbors_rows",
]


@numba.jit(nopython=True, nogil=True)
def _condensed_index(n: int, i: int, j: int) -> int:
    if i > j:
        i, j = j, i
    return n * i - i * (i + 1) // 2 + j - i - 1


@numba.jit(nopython=True, nogil=True)
def _insert(ind_row, dist_row, filled, k, j, d):
    """ Insert candidate j at distance d into a sorted neighbor row holding `filled` entries.

    Returns the new number of entries.
    """
    if d != d:
        d = np.inf
    if filled < k:
        pos = filled
        filled += 1
    elif d < dist_row[k - 1]:
        pos = k - 1
    else:
        return filled
    while pos > 0 and d < dist_row[pos - 1]:
        dist_row[pos] = dist_row[pos - 1]
        ind_row[pos] = ind_row[pos - 1]
        pos -= 1
    dist_row[pos] = d
    ind_row[pos] = j
    return filled


@numba.jit(nopython=True, nogil=True)
def select_k_nearest(condensed, n, k, start, stop, neigh_ind, neigh_dist):
    """ Bounded insertion of the k nearest neighbors for rows [start, stop).

    Candidates are visited in increasing index order and only strictly
    smaller distances move an entry forward, so that ties keep the
    lower index first. NaN distances are treated as infinitely far.
    Rows outside [start, stop) of the output arrays are not touched.
    """
    for i in range(start, stop):
        filled = 0
        for j in range(n):
            if j == i:
                continue
            filled = _insert(neigh_ind[i], neigh_dist[i], filled, k, j, condensed[_condensed_index(n, i, j)])


@numba.jit(nopython=True, nogil=True)
def select_k_nearest_dense(dist, k, start, stop, neigh_ind, neigh_dist):
    """ Same selection for query rows [start, stop) of a dense (n_queries, n_indexed) distance array.

    Queries are not part of the indexed points, so no candidate is skipped.
    """
    n = dist.shape[1]
    for i in range(start, stop):
        filled = 0
        for j in range(n):
            filled = _insert(neigh_ind[i], neigh_dist[i], filled, k, j, dist[i, j])


@numba.jit(nopython=True, nogil=True)
def count_shared_neighbors_rows(neigh_ind, weights, start, stop, out):
    """ (Weighted) sizes of kNN set intersections for upper-triangular rows [start, stop).

    Writes row i (pairs i < j) into its region of the condensed output `out`.
    """
    n, k = neigh_ind.shape
    # Last row whose kNN set contains each point, -1 if none yet
    marker = np.full(n, -1, dtype=np.int64)
    for i in range(start, stop):
        for m in range(k):
            marker[neigh_ind[i, m]] = i
        row_start = n * i - i * (i + 1) // 2
        for j in range(i + 1, n):
            total = 0.
            for m in range(k):
                neighbor = neigh_ind[j, m]
                if marker[neighbor] == i:
                    total += weights[neighbor]
            out[row_start + j - i - 1] = total
