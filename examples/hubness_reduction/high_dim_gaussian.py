"""
========================================
Example: Hubness-aware secondary distances
========================================

This example shows how to measure hubness in high-dimensional data,
and how shared neighbor and local scaling secondary distances reduce it.
"""
from sklearn.datasets import make_classification

from hubminer.analysis import Hubness, hub_orphan_regular_percentages
from hubminer.distances import compute_distance_matrix
from hubminer.neighbors import NeighborSetFinder
from hubminer.reduction import LocalScaling, MutualProximity, SimcosDistance, SimhubDistance
from hubminer.utils.io import save_distance_matrix

# High-dimensional artificial data
X, y = make_classification(n_samples=2_000,
                           n_features=500,
                           n_informative=400,
                           random_state=543)

# Primary distances and neighbor sets, computed once
dist = compute_distance_matrix(X, metric='euclidean', n_jobs=-1, verbose=1)
nsf = NeighborSetFinder(distance_matrix=dist, labels=y)
nsf.calculate_neighbor_sets(k=50, n_jobs=-1)

for k in [5, 10, 50]:
    nsf.recalculate_stats_for_smaller_k(k)
    shares = hub_orphan_regular_percentages(nsf.neighbor_frequencies_)
    print(f'k={k:2d}: skewness {Hubness(k=k).fit(nsf).score():.3f}, '
          f'hubs {shares.hubs:.3f}, orphans {shares.orphans:.3f}, '
          f'bad occurrences {nsf.bad_frequencies_.sum() / (k * nsf.n_samples):.3f}')

# Hubness after secondary distances
nsf.recalculate_stats_for_smaller_k(50)
for name, secondary in [('ls', LocalScaling(k=10)),
                        ('nicdm', LocalScaling(k=10, method='nicdm')),
                        ('mp', MutualProximity()),
                        ('simcos', SimcosDistance(k=50, n_jobs=-1)),
                        ('simhub', SimhubDistance(k=50, n_jobs=-1))]:
    secondary_dist = secondary.fit(nsf).transform(nsf)
    hub = Hubness(k=10, return_value='robinhood').fit(secondary_dist, y)
    print(f'{name:>6}: Robin Hood index {hub.score():.3f}')

save_distance_matrix(secondary_dist, 'simhub_distances.txt')
