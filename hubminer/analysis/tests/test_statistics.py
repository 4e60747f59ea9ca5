# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numpy as np
import pytest
from scipy import stats

from hubminer.analysis import kurtosis, mean, pearson_correlation, skewness, stdev

VALUES = np.array([1., 2., 3., 10., 4., 0.])


def test_moments():
    assert mean(VALUES) == pytest.approx(VALUES.mean())
    assert stdev(VALUES) == pytest.approx(VALUES.std())
    assert skewness(VALUES) == pytest.approx(stats.skew(VALUES, bias=True))
    assert kurtosis(VALUES) == pytest.approx(stats.kurtosis(VALUES, bias=True))


def test_moments_ignore_non_finite_values():
    with_missing = np.append(VALUES, [np.nan, np.inf])
    assert mean(with_missing) == pytest.approx(mean(VALUES))
    assert stdev(with_missing) == pytest.approx(stdev(VALUES))
    assert skewness(with_missing) == pytest.approx(skewness(VALUES))
    assert kurtosis(with_missing) == pytest.approx(kurtosis(VALUES))


@pytest.mark.parametrize("func", [mean, stdev, skewness, kurtosis])
@pytest.mark.parametrize("values", [[], [np.nan]])
def test_empty_input(func, values):
    assert func(values) == 0.


@pytest.mark.parametrize("func", [stdev, skewness, kurtosis])
def test_constant_input(func):
    assert func(np.full(10, 3.)) == 0.


def test_skewness_sign():
    assert skewness([0, 0, 0, 0, 10]) > 0
    assert skewness([10, 10, 10, 10, 0]) < 0


def test_pearson_correlation():
    x = np.array([1., 2., 3., 4.])
    assert pearson_correlation(x, 2 * x + 1) == pytest.approx(1.)
    assert pearson_correlation(x, -x) == pytest.approx(-1.)
    y = np.array([1., 3., 2., 5.])
    assert pearson_correlation(x, y) == pytest.approx(stats.pearsonr(x, y)[0])


def test_pearson_correlation_excludes_non_finite_pairs():
    x = np.array([1., 2., np.nan, 3., 4.])
    y = np.array([2., 4., 0., np.inf, 8.])
    assert pearson_correlation(x, y) == pytest.approx(1.)


@pytest.mark.parametrize("x, y", [
    ([1., 1., 1.], [1., 2., 3.]),
    ([1., 2., 3.], [5., 5., 5.]),
    ([1.], [2.]),
    ([], []),
    ([1., np.nan], [np.nan, 2.]),
])
def test_pearson_correlation_degenerate(x, y):
    assert pearson_correlation(x, y) == 0.


def test_pearson_correlation_length_mismatch():
    with pytest.raises(ValueError):
        pearson_correlation([1., 2.], [1., 2., 3.])
