# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
The :mod:`hubminer.analysis` package provides methods for measuring hubness.
"""
from .estimation import Hubness, VALID_HUBNESS_MEASURES
from .hubs import (
    HubFinder,
    antihub_threshold,
    find_antihubs,
    find_hubs,
    find_orphans,
    hub_orphan_regular_percentages,
    hub_threshold,
)
from .statistics import kurtosis, mean, pearson_correlation, skewness, stdev

__all__ = [
    "HubFinder",
    "Hubness",
    "VALID_HUBNESS_MEASURES",
    "antihub_threshold",
    "find_antihubs",
    "find_hubs",
    "find_orphans",
    "hub_orphan_regular_percentages",
    "hub_threshold",
    "kurtosis",
    "mean",
    "pearson_correlation",
    "skewness",
    "stdev",
]
