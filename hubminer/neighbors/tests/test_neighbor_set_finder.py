# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
import numpy as np
import pytest
from sklearn.datasets import make_classification
from sklearn.neighbors import NearestNeighbors

from hubminer.data import DataSet
from hubminer.distances import DistanceMatrix, compute_distance_matrix
from hubminer.neighbors import NeighborSetFinder

X_LINE = np.array([[0.], [1.], [2.], [10.], [11.]])
Y_LINE = np.array([0, 0, 0, 1, 1])


@pytest.fixture
def nsf():
    return NeighborSetFinder(X_LINE, labels=Y_LINE).calculate_neighbor_sets(k=2)


@pytest.fixture
def data():
    return make_classification(n_samples=80, n_features=10, n_informative=5,
                               n_classes=3, random_state=123)


def test_neighbor_sets(nsf):
    np.testing.assert_array_equal(nsf.kneighbors_, [[1, 2], [0, 2], [1, 0], [4, 2], [3, 2]])
    np.testing.assert_array_almost_equal(nsf.kdistances_, [[1, 2], [1, 1], [1, 2], [1, 8], [1, 9]])
    assert nsf.current_k_ == nsf.k_max == 2


def test_ties_prefer_lower_index():
    dist = DistanceMatrix.from_square(np.array([[0., 1., 1., 1.],
                                                [1., 0., 2., 2.],
                                                [1., 2., 0., 2.],
                                                [1., 2., 2., 0.]]))
    nsf = NeighborSetFinder(distance_matrix=dist).calculate_neighbor_sets(k=2)
    np.testing.assert_array_equal(nsf.kneighbors_[0], [1, 2])
    np.testing.assert_array_equal(nsf.kneighbors_[3], [0, 1])


def test_nan_distances_are_farthest():
    dist = DistanceMatrix.from_square(np.array([[0., np.nan, 3.],
                                                [np.nan, 0., 1.],
                                                [3., 1., 0.]]))
    nsf = NeighborSetFinder(distance_matrix=dist).calculate_neighbor_sets(k=1)
    np.testing.assert_array_equal(nsf.kneighbors_.ravel(), [2, 2, 1])


def test_occurrences(nsf):
    np.testing.assert_array_equal(nsf.neighbor_frequencies_, [2, 2, 4, 1, 1])
    np.testing.assert_array_equal(nsf.good_frequencies_, [2, 2, 2, 1, 1])
    np.testing.assert_array_equal(nsf.bad_frequencies_, [0, 0, 2, 0, 0])
    expected_rnn = [[1, 2], [0, 2], [0, 1, 3, 4], [4], [3]]
    for actual, expected in zip(nsf.reverse_neighbors_, expected_rnn):
        np.testing.assert_array_equal(actual, expected)
    assert nsf.hubness_stats_.occ_mean == pytest.approx(2.)
    assert nsf.hubness_stats_.occ_std == pytest.approx(np.sqrt(1.2))
    assert nsf.hub_index() == 2
    assert nsf.major_hub_instance().index == 2
    np.testing.assert_array_equal(nsf.frequent_at_least(2), [0, 1, 2])
    assert nsf.percentage_frequent_at_least(2) == pytest.approx(.6)
    assert nsf.percentage_frequent_at_most(1) == pytest.approx(.4)


def test_occurrence_invariants(data):
    X, y = data
    nsf = NeighborSetFinder(X, labels=y).calculate_neighbor_sets(k=10)
    occ = nsf.neighbor_frequencies_
    assert occ.sum() == 10 * X.shape[0]
    np.testing.assert_array_equal(nsf.good_frequencies_ + nsf.bad_frequencies_, occ)
    np.testing.assert_array_equal([r.size for r in nsf.reverse_neighbors_], occ)
    for i, rnn in enumerate(nsf.reverse_neighbors_):
        assert np.all(np.diff(rnn) > 0)
        assert all(i in nsf.kneighbors_[j] for j in rnn)
    assert not np.any(nsf.kneighbors_ == np.arange(X.shape[0])[:, np.newaxis])
    assert np.all(np.diff(nsf.kdistances_, axis=1) >= 0)


def test_neighbors_match_sklearn(data):
    X, _ = data
    nsf = NeighborSetFinder(X).calculate_neighbor_sets(k=5)
    ind = NearestNeighbors(n_neighbors=5).fit(X).kneighbors(return_distance=False)
    np.testing.assert_array_equal(nsf.kneighbors_, ind)


def test_smaller_k_equals_fresh_computation(data):
    X, y = data
    dist = compute_distance_matrix(X)
    large = NeighborSetFinder(distance_matrix=dist, labels=y).calculate_neighbor_sets(k=10)
    large.recalculate_stats_for_smaller_k(4)
    fresh = NeighborSetFinder(distance_matrix=dist, labels=y).calculate_neighbor_sets(k=4)
    assert large.current_k_ == 4
    assert large.k_max == 10
    np.testing.assert_array_equal(large.kneighbors_[:, :4], fresh.kneighbors_)
    np.testing.assert_array_equal(large.neighbor_frequencies_, fresh.neighbor_frequencies_)
    np.testing.assert_array_equal(large.good_frequencies_, fresh.good_frequencies_)
    np.testing.assert_array_equal(large.bad_frequencies_, fresh.bad_frequencies_)
    for a, b in zip(large.reverse_neighbors_, fresh.reverse_neighbors_):
        np.testing.assert_array_equal(a, b)
    assert large.hubness_stats_ == fresh.hubness_stats_
    np.testing.assert_array_equal(large.neighbor_occurrence_frequencies(2),
                                  fresh.neighbor_occurrence_frequencies(2))


def test_recalculate_for_larger_k_is_clipped(nsf):
    with pytest.warns(UserWarning):
        nsf.recalculate_stats_for_smaller_k(5)
    assert nsf.current_k_ == 2
    with pytest.raises(ValueError):
        nsf.recalculate_stats_for_smaller_k(0)


@pytest.mark.parametrize("n_jobs", [2, 4, -1])
def test_multithreaded_equals_serial(data, n_jobs):
    X, y = data
    dist = compute_distance_matrix(X)
    serial = NeighborSetFinder(distance_matrix=dist, labels=y).calculate_neighbor_sets(k=7)
    parallel = NeighborSetFinder(distance_matrix=dist, labels=y).calculate_neighbor_sets_multithreaded(7, n_jobs)
    np.testing.assert_array_equal(serial.kneighbors_, parallel.kneighbors_)
    np.testing.assert_array_equal(serial.kdistances_, parallel.kdistances_)
    np.testing.assert_array_equal(serial.neighbor_frequencies_, parallel.neighbor_frequencies_)


@pytest.mark.parametrize("k", [0, 5, 6])
def test_invalid_k(k):
    with pytest.raises(ValueError):
        NeighborSetFinder(X_LINE).calculate_neighbor_sets(k=k)


def test_invalid_construction():
    with pytest.raises(ValueError):
        NeighborSetFinder()
    with pytest.raises(TypeError):
        NeighborSetFinder(distance_matrix=np.zeros((3, 3)))
    with pytest.raises(ValueError):
        NeighborSetFinder(X_LINE, distance_matrix=DistanceMatrix(np.ones(3)))
    with pytest.raises(ValueError):
        NeighborSetFinder(X_LINE[:1]).calculate_neighbor_sets(k=1)
    with pytest.raises(ValueError):
        NeighborSetFinder(X_LINE).hub_index()


def test_labels_from_dataset():
    ds = DataSet.from_array(X_LINE, y=Y_LINE)
    nsf = NeighborSetFinder(ds)
    np.testing.assert_array_equal(nsf.labels, Y_LINE)
    unlabeled = NeighborSetFinder(distance_matrix=compute_distance_matrix(X_LINE)).calculate_neighbor_sets(k=2)
    np.testing.assert_array_equal(unlabeled.bad_frequencies_, 0)
    np.testing.assert_array_equal(unlabeled.hw_knn_weights(), 1.)


def test_occurrence_frequencies_all_k(nsf):
    occ = nsf.occurrence_frequencies_all_k()
    np.testing.assert_array_equal(occ, [[1, 2, 0, 1, 1], [2, 2, 4, 1, 1]])
    np.testing.assert_array_equal(nsf.neighbor_occurrence_frequencies(1), occ[0])


def test_label_mismatch_and_error_inducing_hubness(nsf):
    np.testing.assert_array_almost_equal(nsf.label_mismatch_percentages_all_k(), [0., .2])
    np.testing.assert_array_equal(nsf.error_inducing_hubness(), [0, 0, 2, 0, 0])
    np.testing.assert_array_equal(nsf.error_inducing_hubness(k=1), 0)


def test_avg_distances(nsf):
    np.testing.assert_array_almost_equal(nsf.avg_dist_to_neighbors(), [1.5, 1., 1.5, 4.5, 5.])
    np.testing.assert_array_almost_equal(nsf.avg_dist_to_neighbors(k=1), 1.)
    assert nsf.avg_dist_to_nn_position(2) == pytest.approx(22. / 5)
    with pytest.raises(ValueError):
        nsf.avg_dist_to_nn_position(3)


def test_weighting_schemes(nsf):
    # bad occurrences [0, 0, 2, 0, 0] have mean 0.4 and std 0.8
    z_bad = np.array([-.5, -.5, 2., -.5, -.5])
    np.testing.assert_array_almost_equal(nsf.standardized_bad_frequencies(), z_bad)
    np.testing.assert_array_almost_equal(nsf.hw_knn_weights(), np.exp(-z_bad))
    assert nsf.maxed_at_one_hw_knn_weights().max() == pytest.approx(1.)
    z_occ = (np.array([2, 2, 4, 1, 1]) - 2.) / np.sqrt(1.2)
    np.testing.assert_array_almost_equal(nsf.penalize_hubness_weights(), np.exp(-z_occ))
    np.testing.assert_array_almost_equal(nsf.reward_hubness_weights(), np.exp(z_occ))
    bounded = nsf.bounded_good_minus_bad_weights()
    assert np.all((bounded >= .2) & (bounded <= 1.8))
    relative = nsf.relative_good_minus_bad_weights()
    # point 2 has relative good-minus-bad 0, all others 1
    assert relative[2] < relative[0]
    np.testing.assert_array_almost_equal(relative[[0, 1, 3, 4]], relative[0])


def test_class_relations(nsf):
    np.testing.assert_array_equal(nsf.class_data_neighbor_relation(),
                                  [[2, 2, 2, 0, 0], [0, 0, 2, 1, 1]])
    extended = nsf.class_data_neighbor_relation(extend_by_element=True)
    np.testing.assert_array_equal(extended, [[3, 3, 3, 0, 0], [0, 0, 2, 2, 2]])
    np.testing.assert_array_equal(nsf.data_class_neighbor_relation().shape, (5, 2))
    np.testing.assert_array_equal(nsf.global_class_to_class(), [[6, 2], [0, 2]])
    np.testing.assert_array_equal(nsf.global_class_to_class(n_classes=3).shape, (3, 3))
    with pytest.raises(ValueError):
        nsf.global_class_to_class(n_classes=1)


def test_entropies(nsf):
    np.testing.assert_array_almost_equal(nsf.k_entropies(), [0, 0, 0, 1, 1])
    np.testing.assert_array_almost_equal(nsf.k_entropies(neighborhood_size=1), 0)
    np.testing.assert_array_almost_equal(nsf.reverse_neighbor_entropies(), [0, 0, 1, 0, 0])
    weighted = nsf.reverse_neighbor_entropies(category_weights=[1., 3.])
    # class proportions 1/2, 1/2 reweighted to 1/4, 3/4
    expected = -(.25 * np.log2(.25) + .75 * np.log2(.75))
    assert weighted[2] == pytest.approx(expected)
    with pytest.raises(ValueError):
        nsf.reverse_neighbor_entropies(category_weights=[1., 1., 1.])


def test_simhub_weights(nsf):
    info = np.log2(5. / (np.array([2, 2, 4, 1, 1]) + 1.))
    np.testing.assert_array_almost_equal(nsf.occurrence_self_information(),
                                         info / np.abs(info).max())
    weights = nsf.simhub_weights()
    assert weights[2] == pytest.approx(0.)
    assert np.all(np.abs(weights) <= 1.)
    np.testing.assert_array_almost_equal(nsf.simhub_unsupervised_weights(), nsf.occurrence_self_information())
    np.testing.assert_array_almost_equal(nsf.simhub_supervised_weights(), [1., 1., 0., 1., 1.])
    np.testing.assert_array_equal(nsf.simhub_binary_weights(), [1., 1., 0., 1., 1.])
    proportional = nsf.simhub_goodness_proportional_weights()
    assert proportional.min() >= 0. and proportional.max() == pytest.approx(1.)


def test_imbalance_weights(data):
    X, y = data
    nsf = NeighborSetFinder(X, labels=y).calculate_neighbor_sets(k=10)
    weights = nsf.imbalance_weights(k=5, k_classification=5)
    assert weights.shape == (X.shape[0], )
    assert np.all(np.isfinite(weights))
    assert nsf.current_k_ == 10


def test_k_cooccurrences(nsf):
    np.testing.assert_array_equal(nsf.k_cooccurrences(), [1, 1, 0, 0, 1, 0, 0, 1, 1, 0])
    np.testing.assert_array_equal(nsf.k_cooccurrences(k=1), 0)


def test_data_densities(nsf):
    densities = nsf.data_densities()
    # kNN volume radii are [.5, 1., .5, 4.5, 4.]
    np.testing.assert_array_almost_equal(densities, 2. / (np.array([.5, 1., .5, 4.5, 4.]) / 4.5))
    with pytest.warns(UserWarning):
        same = NeighborSetFinder(np.zeros((4, 2))).calculate_neighbor_sets(k=2)
        np.testing.assert_array_equal(same.data_densities(), 0.)
    with pytest.raises(ValueError):
        NeighborSetFinder(distance_matrix=nsf.distances).calculate_neighbor_sets(k=2).data_densities()


def test_kneighbors_graph_roundtrip(nsf):
    graph = nsf.kneighbors_graph()
    assert graph.shape == (5, 5)
    assert graph.nnz == 10
    restored = NeighborSetFinder.from_kneighbors_graph(graph, distance_matrix=nsf.distances, labels=Y_LINE)
    np.testing.assert_array_equal(restored.kneighbors_, nsf.kneighbors_)
    np.testing.assert_array_equal(restored.bad_frequencies_, nsf.bad_frequencies_)
    without_distances = NeighborSetFinder.from_kneighbors_graph(graph, labels=Y_LINE)
    np.testing.assert_array_equal(without_distances.kneighbors_, nsf.kneighbors_)
    assert without_distances.distances.get(0, 1) == pytest.approx(1.)
    assert np.isinf(without_distances.distances.get(0, 4))


def test_from_sklearn_kneighbors_graph(data):
    X, y = data
    graph = NearestNeighbors(n_neighbors=6).fit(X).kneighbors_graph(X, mode="distance")
    nsf = NeighborSetFinder.from_kneighbors_graph(graph, labels=y, exclude_self=True)
    expected = NeighborSetFinder(X, labels=y).calculate_neighbor_sets(k=5)
    np.testing.assert_array_equal(nsf.kneighbors_, expected.kneighbors_)
    np.testing.assert_array_equal(nsf.neighbor_frequencies_, expected.neighbor_frequencies_)


def test_set_k_neighbors(nsf):
    other = NeighborSetFinder(distance_matrix=nsf.distances, labels=Y_LINE)
    other.set_k_neighbors(nsf.kneighbors_, nsf.kdistances_)
    np.testing.assert_array_equal(other.neighbor_frequencies_, nsf.neighbor_frequencies_)
    with pytest.raises(ValueError):
        other.set_k_neighbors(nsf.kneighbors_ + 1, nsf.kdistances_)
    with pytest.raises(ValueError):
        other.set_k_neighbors(nsf.kneighbors_[:3], nsf.kdistances_[:3])


def test_copy_is_independent(nsf):
    clone = nsf.copy()
    clone.recalculate_stats_for_smaller_k(1)
    clone.kneighbors_[0, 0] = 4
    assert nsf.current_k_ == 2
    assert nsf.kneighbors_[0, 0] == 1
    np.testing.assert_array_equal(nsf.neighbor_frequencies_, [2, 2, 4, 1, 1])
    assert clone.distances is nsf.distances


def test_kneighbors_of_queries(nsf):
    occurrences = nsf.neighbor_frequencies_.copy()
    dist, ind = nsf.kneighbors([[1.4], [10.6], [5.]])
    np.testing.assert_array_equal(ind, [[1, 2], [4, 3], [2, 1]])
    np.testing.assert_array_almost_equal(dist, [[.4, .6], [.4, .6], [3., 4.]])
    # Queries leave the statistics of the indexed points untouched
    np.testing.assert_array_equal(nsf.neighbor_frequencies_, occurrences)


def test_kneighbors_of_queries_ties_and_sizes(nsf):
    np.testing.assert_array_equal(nsf.kneighbors([1.5], k=2, return_distance=False), [[1, 2]])
    # An indexed point can be its own nearest neighbor as a query
    dist, ind = nsf.kneighbors([[2.]], k=5)
    np.testing.assert_array_equal(ind, [[2, 1, 0, 3, 4]])
    assert dist[0, 0] == 0.
    with pytest.raises(ValueError):
        nsf.kneighbors([[2.]], k=6)
    with pytest.raises(ValueError):
        nsf.kneighbors([[2., 3.]])
    with pytest.raises(ValueError):
        NeighborSetFinder(distance_matrix=nsf.distances).calculate_neighbor_sets(2).kneighbors([[2.]])


@pytest.mark.parametrize("n_jobs", [1, 3])
def test_kneighbors_of_queries_match_sklearn(data, n_jobs):
    X, y = data
    nsf = NeighborSetFinder(X[:60], labels=y[:60]).calculate_neighbor_sets(k=5)
    dist, ind = nsf.kneighbors(X[60:], n_jobs=n_jobs)
    nn = NearestNeighbors(n_neighbors=5).fit(X[:60])
    dist_true, ind_true = nn.kneighbors(X[60:])
    np.testing.assert_array_equal(ind, ind_true)
    np.testing.assert_array_almost_equal(dist, dist_true)
    assert nsf.distances_to(X[60:], n_jobs=n_jobs).shape == (20, 60)


def test_from_neighbor_sets(nsf):
    restored = NeighborSetFinder.from_neighbor_sets(nsf.kneighbors_, nsf.kdistances_, labels=Y_LINE)
    np.testing.assert_array_equal(restored.kneighbors_, nsf.kneighbors_)
    np.testing.assert_array_equal(restored.bad_frequencies_, nsf.bad_frequencies_)
    # Only neighbor distances are known without data
    assert restored.distances.get(0, 1) == 1.
    assert restored.distances.get(0, 4) == np.inf
    with_data = NeighborSetFinder.from_neighbor_sets(nsf.kneighbors_, nsf.kdistances_, dataset=X_LINE)
    assert with_data.distances.get(0, 4) == pytest.approx(11.)
    with pytest.raises(ValueError):
        NeighborSetFinder.from_neighbor_sets([[1, 5], [0, 1]], [[1., 1.], [1., 1.]])
