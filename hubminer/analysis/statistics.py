# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
"""
Moments and correlations of occurrence frequency arrays.

All functions return 0.0 instead of raising or returning NaN on
empty or zero-variance input.
"""
import numpy as np
from scipy import stats

__all__ = [
    "kurtosis",
    "mean",
    "pearson_correlation",
    "skewness",
    "stdev",
]


def _as_finite(values) -> np.ndarray:
    values = np.asarray(values, dtype=np.float64).ravel()
    return values[np.isfinite(values)]


def mean(values) -> float:
    """ Mean of the finite values. """
    values = _as_finite(values)
    if values.size == 0:
        return 0.
    return float(values.mean())


def stdev(values) -> float:
    """ Population standard deviation of the finite values. """
    values = _as_finite(values)
    if values.size == 0:
        return 0.
    return float(values.std(ddof=0))


def skewness(values) -> float:
    """ Third standardized moment (biased/population estimate). """
    values = _as_finite(values)
    if values.size == 0 or np.all(values == values[0]):
        return 0.
    return float(stats.skew(values, bias=True))


def kurtosis(values) -> float:
    """ Excess kurtosis, i.e. fourth standardized moment minus 3 (biased/population estimate). """
    values = _as_finite(values)
    if values.size == 0 or np.all(values == values[0]):
        return 0.
    return float(stats.kurtosis(values, fisher=True, bias=True))


def pearson_correlation(first, second) -> float:
    """ Pearson correlation over the pairs where both values are finite.

    Parameters
    ----------
    first, second : array-like of shape (n, )
        E.g. occurrence frequencies and an auxiliary quantity such as
        point norms or local densities

    Returns
    -------
    r : float
        Correlation in [-1, 1], or 0.0 if fewer than two valid pairs
        remain or either variable is constant.
    """
    first = np.asarray(first, dtype=np.float64).ravel()
    second = np.asarray(second, dtype=np.float64).ravel()
    if first.shape != second.shape:
        raise ValueError(f"Cannot correlate arrays of different lengths "
                         f"({first.size} vs. {second.size}).")
    valid = np.isfinite(first) & np.isfinite(second)
    first, second = first[valid], second[valid]
    if first.size < 2 or np.all(first == first[0]) or np.all(second == second[0]):
        return 0.
    r = np.corrcoef(first, second)[0, 1]
    return float(np.clip(r, -1., 1.))
