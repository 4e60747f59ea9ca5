# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
from multiprocessing import cpu_count

import numpy as np

__all__ = [
    "validate_n_jobs",
    "triangular_row_slices",
]


def validate_n_jobs(n_jobs):
    """ Handle special integers and non-integer `n_jobs` values. """
    if n_jobs is None:
        n_jobs = 1
    elif n_jobs == -1:
        n_jobs = cpu_count()
    elif n_jobs < -1 or n_jobs == 0:
        raise ValueError(f"Number of parallel processes 'n_jobs' must be "
                         f"a positive integer, or ``-1`` to use all local"
                         f" CPU cores. Was {n_jobs} instead.")
    return n_jobs


def triangular_row_slices(n_samples: int, n_packs: int):
    """ Generator to create row slices of roughly equal work in an upper-triangular matrix.

    Row i of the upper triangle holds ``n_samples - i - 1`` entries, so evenly
    sized row slices would leave the first worker with most of the work.
    Slice boundaries are instead placed at equal shares of the total entries.

    Parameters
    ----------
    n_samples : int
        Number of rows of the (square) matrix
    n_packs : int
        Number of slices to generate

    Yields
    ------
    slice
        Consecutive, non-overlapping, non-empty row slices covering all rows
    """
    if n_samples < 1:
        return
    n_packs = max(1, min(n_packs, n_samples))
    # Cumulative number of entries before row i: i * n - i * (i + 1) / 2
    rows = np.arange(n_samples + 1)
    work_before = rows * n_samples - rows * (rows + 1) // 2
    total = work_before[-1]
    if total == 0:
        yield slice(0, n_samples)
        return
    targets = np.linspace(0, total, n_packs + 1)[1:-1]
    boundaries = np.searchsorted(work_before, targets, side="left")
    start = 0
    for stop in [*boundaries.tolist(), n_samples]:
        if stop > start:
            yield slice(start, stop)
            start = stop
