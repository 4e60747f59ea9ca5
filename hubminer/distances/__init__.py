# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
The :mod:`hubminer.distances` package provides primary distance measures and distance matrices.
"""
from .primary import (
    BrayCurtis,
    Canberra,
    CombinedMetric,
    CosineMetric,
    DistanceMeasure,
    Manhattan,
    METRICS,
    MetricError,
    MinkowskiMetric,
    Mixer,
    TanimotoDistance,
    get_metric,
)
from .matrix import DistanceMatrix, compute_distance_matrix

__all__ = [
    "BrayCurtis",
    "Canberra",
    "CombinedMetric",
    "CosineMetric",
    "DistanceMatrix",
    "DistanceMeasure",
    "Manhattan",
    "METRICS",
    "MetricError",
    "MinkowskiMetric",
    "Mixer",
    "TanimotoDistance",
    "compute_distance_matrix",
    "get_metric",
]
