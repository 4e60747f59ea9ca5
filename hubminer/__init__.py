# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

""" Python package for analyzing and exploiting hubness in k-nearest neighbor sets."""

__version__ = '0.1.0'

from . import analysis
from . import data
from . import distances
from .analysis.estimation import Hubness
from . import neighbors
from . import reduction
from . import utils


__all__ = ['analysis',
           'data',
           'distances',
           'Hubness',
           'neighbors',
           'reduction',
           'utils',
           ]
