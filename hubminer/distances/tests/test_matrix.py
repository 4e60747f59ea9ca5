# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numpy as np
import pytest
from scipy.spatial.distance import pdist, squareform
from sklearn.datasets import make_classification

from hubminer.data import DataSet
from hubminer.distances import (
    DistanceMatrix,
    DistanceMeasure,
    MetricError,
    compute_distance_matrix,
)

DIST = np.array([.2, .1, .8, .4, .3, .5, .7, 1., .6, .9])


def test_access():
    dist = DistanceMatrix(DIST)
    assert dist.n_samples == len(dist) == 5
    assert dist.get(0, 1) == dist.get(1, 0) == dist[1, 0] == pytest.approx(.2)
    assert dist.get(3, 4) == pytest.approx(.9)
    assert dist.get(2, 2) == 0.
    assert dist.get(-1, 0) == pytest.approx(.4)
    np.testing.assert_array_equal(dist.row(1), [.3, .5, .7])
    assert dist.row(4).size == 0
    np.testing.assert_array_equal(dist.full_row(2), [.1, .3, 0., 1., .6])
    with pytest.raises(IndexError):
        dist.get(0, 5)


def test_read_only():
    dist = DistanceMatrix(DIST)
    with pytest.raises(ValueError):
        dist.condensed[0] = 1.


def test_square_conversion():
    D = squareform(DIST)
    dist = DistanceMatrix.from_square(D)
    np.testing.assert_array_equal(dist.condensed, DIST)
    np.testing.assert_array_equal(dist.to_square(), D)
    for i in range(5):
        np.testing.assert_array_equal(dist.full_row(i), D[i])
    with pytest.raises(ValueError):
        DistanceMatrix.from_square(np.arange(9.).reshape(3, 3))
    with pytest.raises(ValueError):
        DistanceMatrix.from_square(np.zeros((2, 3)))


def test_from_rows():
    dist = DistanceMatrix.from_rows([[.2, .1, .8, .4], [.3, .5, .7], [1., .6], [.9]])
    assert dist == DistanceMatrix(DIST)
    with pytest.raises(ValueError):
        DistanceMatrix.from_rows([[.2, .1], [.3, .5]])


def test_invalid_sizes():
    with pytest.raises(ValueError):
        DistanceMatrix(np.ones(4))
    with pytest.raises(ValueError):
        DistanceMatrix(np.ones(3), n_samples=4)
    with pytest.raises(ValueError):
        DistanceMatrix(np.empty(0))
    single = DistanceMatrix(np.empty(0), n_samples=1)
    assert single.to_square().shape == (1, 1)
    assert single.mean() == single.variance() == 0.


def test_mean_and_variance():
    dist = DistanceMatrix(DIST)
    assert dist.mean() == pytest.approx(DIST.mean())
    assert dist.variance() == pytest.approx(DIST.var())


@pytest.mark.parametrize("metric, scipy_metric", [
    ("euclidean", "euclidean"),
    ("manhattan", "cityblock"),
    ("bray_curtis", "braycurtis"),
    ("canberra", "canberra"),
])
def test_compute_distance_matrix_matches_scipy(metric, scipy_metric):
    X, _ = make_classification(n_samples=30, n_features=5, random_state=123)
    X = np.abs(X) if metric in ("bray_curtis", "canberra") else X
    dist = compute_distance_matrix(X, metric=metric)
    np.testing.assert_array_almost_equal(dist.condensed, pdist(X, scipy_metric))


def test_cosine_distance_is_scaled():
    X, _ = make_classification(n_samples=20, n_features=4, random_state=1)
    dist = compute_distance_matrix(X, metric="cosine")
    np.testing.assert_array_almost_equal(dist.condensed, pdist(X, "cosine") / 2)


@pytest.mark.parametrize("n_jobs", [2, 3, -1])
def test_parallel_equals_serial(n_jobs):
    X, _ = make_classification(n_samples=101, n_features=8, random_state=2)
    serial = compute_distance_matrix(X, n_jobs=1)
    parallel = compute_distance_matrix(X, n_jobs=n_jobs)
    np.testing.assert_array_equal(serial.condensed, parallel.condensed)


def test_mixed_attribute_data_set():
    ds = DataSet(float_attributes=[[0., 0.], [3., 4.], [np.nan, 4.]],
                 int_attributes=[[1], [2], [1]])
    dist = compute_distance_matrix(ds, metric="euclidean")
    np.testing.assert_array_almost_equal(dist.condensed, [6., 4., 1.])


def test_single_point_and_empty_data():
    dist = compute_distance_matrix(np.zeros((1, 3)))
    assert dist.n_samples == 1
    with pytest.raises(ValueError):
        compute_distance_matrix(np.empty((0, 3)))


class _FailingMeasure(DistanceMeasure):

    def _dist_many(self, first, others, mask):
        raise MetricError("cannot compare")


@pytest.mark.parametrize("n_jobs", [1, 2])
def test_metric_failure_propagates(n_jobs):
    X = np.random.RandomState(0).rand(10, 2)
    with pytest.raises(MetricError):
        compute_distance_matrix(X, metric=_FailingMeasure(), n_jobs=n_jobs)
