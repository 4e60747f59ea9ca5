# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
"""
Read and write distance matrices and kNN sets in simple text formats.

Distance matrices: the first line holds the number of points N. It is
followed by N - 1 lines, where line i holds the comma-separated distances
from point i to the points i + 1, ..., N - 1. The zero diagonal and the
lower triangle are implied.

kNN sets: the header lines ``size:N`` and ``k:K`` are followed by two lines
per point, the space-separated neighbor indices and their distances.
"""
import logging
from pathlib import Path
from typing import TextIO, Tuple, Union

import numpy as np

from ..distances.matrix import DistanceMatrix
from ..neighbors.neighbor_set_finder import NeighborSetFinder

__all__ = [
    "load_distance_matrix",
    "load_neighbor_sets",
    "read_distance_matrix",
    "read_neighbor_sets",
    "save_distance_matrix",
    "save_neighbor_sets",
    "validate_verbose",
    "write_distance_matrix",
    "write_neighbor_sets",
]


def validate_verbose(verbose):
    """ Handle special values for verbosity: None and negative values mean silent. """
    if verbose is None:
        verbose = 0
    elif verbose < 0:
        verbose = 0
    return int(verbose)


def _format_distance(d: float) -> str:
    if np.isnan(d):
        return "NaN"
    if np.isinf(d):
        return "Infinity" if d > 0 else "-Infinity"
    return repr(float(d))


def write_distance_matrix(dist: DistanceMatrix, fh: TextIO) -> None:
    """ Write a distance matrix to an open text stream. """
    n_samples = dist.n_samples
    fh.write(f"{n_samples}\n")
    for i in range(n_samples - 1):
        fh.write(",".join(_format_distance(d) for d in dist.row(i)))
        fh.write("\n")


def read_distance_matrix(fh: TextIO) -> DistanceMatrix:
    """ Read a distance matrix from an open text stream.

    Raises
    ------
    ValueError
        If the header is missing, a row has the wrong number of entries,
        or an entry cannot be parsed as float.
    """
    header = fh.readline().strip()
    try:
        n_samples = int(header)
    except ValueError:
        raise ValueError(f"Invalid distance matrix header: expected number of points, got {header!r}.")
    if n_samples < 0:
        raise ValueError(f"Number of points must not be negative, got {n_samples}.")

    rows = []
    for i in range(n_samples - 1):
        line = fh.readline()
        if not line:
            raise ValueError(f"Unexpected end of file: read {i} of {n_samples - 1} rows.")
        line = line.strip()
        values = line.split(",") if line else []
        if len(values) != n_samples - i - 1:
            raise ValueError(f"Row {i} holds {len(values)} distances, "
                             f"expected {n_samples - i - 1}.")
        try:
            rows.append(np.array([float(v) for v in values], dtype=np.float64))
        except ValueError:
            raise ValueError(f"Could not parse distances in row {i}.")
    return DistanceMatrix.from_rows(rows, n_samples=n_samples)


def save_distance_matrix(dist: DistanceMatrix, path: Union[str, Path]) -> None:
    """ Persist a distance matrix to `path`, creating parent directories as necessary. """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as fh:
        write_distance_matrix(dist, fh)
    logging.info(f"Saved distance matrix of {dist.n_samples} points to {path}.")


def load_distance_matrix(path: Union[str, Path]) -> DistanceMatrix:
    """ Load a distance matrix previously written by :func:`save_distance_matrix`. """
    with open(path, "r") as fh:
        dist = read_distance_matrix(fh)
    logging.info(f"Loaded distance matrix of {dist.n_samples} points from {path}.")
    return dist


def write_neighbor_sets(nsf: NeighborSetFinder, fh: TextIO) -> None:
    """ Write all stored kNN sets (k_max neighbors per point) to an open text stream. """
    neigh_ind = getattr(nsf, "kneighbors_", None)
    if neigh_ind is None or neigh_ind.size == 0:
        fh.write("size:0\nk:0\n")
        return
    fh.write(f"size:{neigh_ind.shape[0]}\nk:{neigh_ind.shape[1]}\n")
    for ind, dist in zip(neigh_ind, nsf.kdistances_):
        fh.write(" ".join(str(int(j)) for j in ind))
        fh.write("\n")
        fh.write(" ".join(_format_distance(d) for d in dist))
        fh.write("\n")


def _read_header(fh: TextIO, key: str) -> int:
    line = fh.readline().strip()
    name, _, value = line.partition(":")
    if name != key:
        raise ValueError(f"Invalid kNN set header: expected '{key}:<int>', got {line!r}.")
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid kNN set header: expected '{key}:<int>', got {line!r}.")


def read_neighbor_sets(fh: TextIO) -> Tuple[np.ndarray, np.ndarray]:
    """ Read kNN sets from an open text stream.

    Returns
    -------
    neigh_ind : np.ndarray of shape (n_samples, k)
    neigh_dist : np.ndarray of shape (n_samples, k)

    Raises
    ------
    ValueError
        If a header is missing, the file ends early, or a row does not hold k entries.
    """
    n_samples = _read_header(fh, "size")
    k = _read_header(fh, "k")
    if n_samples < 0 or k < 0:
        raise ValueError(f"Invalid kNN set header: size={n_samples}, k={k}.")
    neigh_ind = np.empty((n_samples, k), dtype=np.int64)
    neigh_dist = np.empty((n_samples, k), dtype=np.float64)
    for i in range(n_samples):
        for out, kind, parse in [(neigh_ind, "indices", int), (neigh_dist, "distances", float)]:
            line = fh.readline()
            if not line:
                raise ValueError(f"Unexpected end of file in the kNN set of point {i}.")
            values = line.split()
            if len(values) != k:
                raise ValueError(f"Point {i} holds {len(values)} neighbor {kind}, expected {k}.")
            try:
                out[i] = [parse(v) for v in values]
            except ValueError:
                raise ValueError(f"Could not parse neighbor {kind} of point {i}.")
    return neigh_ind, neigh_dist


def save_neighbor_sets(nsf: NeighborSetFinder, path: Union[str, Path]) -> None:
    """ Persist the kNN sets of `nsf` to `path`, creating parent directories as necessary. """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as fh:
        write_neighbor_sets(nsf, fh)
    logging.info(f"Saved kNN sets of {nsf.n_samples} points to {path}.")


def load_neighbor_sets(path: Union[str, Path], dataset=None, distance_matrix: DistanceMatrix = None,
                       metric="euclidean", labels=None) -> NeighborSetFinder:
    """ Load kNN sets written by :func:`save_neighbor_sets` into a new finder.

    Parameters
    ----------
    path : str or Path
    dataset : DataSet or array-like, optional
        Data of the points the kNN sets refer to
    distance_matrix : DistanceMatrix, optional
        Their distances. Without data set and distances, only the stored
        neighbor distances are known.
    metric : str, DistanceMeasure or CombinedMetric, default = "euclidean"
    labels : array-like, optional
        Class labels for good and bad occurrence counts

    Returns
    -------
    nsf : NeighborSetFinder
        Finder with statistics at the stored neighborhood size
    """
    with open(path, "r") as fh:
        neigh_ind, neigh_dist = read_neighbor_sets(fh)
    if neigh_ind.size == 0:
        raise ValueError(f"{path} holds no kNN sets.")
    nsf = NeighborSetFinder.from_neighbor_sets(
        neigh_ind, neigh_dist, dataset=dataset, distance_matrix=distance_matrix, metric=metric, labels=labels,
    )
    logging.info(f"Loaded kNN sets of {nsf.n_samples} points (k={nsf.k_max}) from {path}.")
    return nsf
