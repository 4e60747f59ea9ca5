#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause

""" hubminer: Hubness analysis of k-nearest neighbor sets.

Package metadata and dependencies are declared in pyproject.toml.
"""

import setuptools

if __name__ == "__main__":
    setuptools.setup()
