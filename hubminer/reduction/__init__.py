# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
The :mod:`hubminer.reduction` package provides secondary distances that reduce hubness.
"""
from ._base import SecondaryDistance
from .local_scaling import LocalScaling
from .mutual_proximity import MutualProximity
from .shared_neighbors import (
    SHARED_NEIGHBOR_WEIGHTINGS,
    SharedNeighborDistance,
    SharedNeighborFinder,
    SimcosDistance,
    SimhubDistance,
)

#: Supported secondary distances
secondary_distances = [
    "ls",
    "nicdm",
    "mp",
    "simcos",
    "simhub",
]


__all__ = [
    "LocalScaling",
    "MutualProximity",
    "SHARED_NEIGHBOR_WEIGHTINGS",
    "SecondaryDistance",
    "SharedNeighborDistance",
    "SharedNeighborFinder",
    "SimcosDistance",
    "SimhubDistance",
    "secondary_distances",
]
