# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
The :mod:`hubminer.neighbors` package provides k-nearest neighbor sets and neighbor occurrence statistics.
"""
from .neighbor_set_finder import HubnessStatistics, NeighborSetFinder

__all__ = [
    "HubnessStatistics",
    "NeighborSetFinder",
]
