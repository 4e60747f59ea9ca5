# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

"""
The :mod:`hubminer.data` package provides the in-memory data representation.
"""
from .dataset import DataInstance, DataSet

__all__ = [
    "DataInstance",
    "DataSet",
]
