# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations
from typing import Sequence
import warnings
import weakref

import numpy as np

from ..utils.check import check_labels

__all__ = [
    "DataInstance",
    "DataSet",
]


def _as_attribute_block(block, n_samples: int = None, name: str = "attributes") -> np.ndarray:
    """ Cast an attribute block to a 2-D float array, keeping NaN as missing value marker. """
    if block is None:
        return np.empty((0 if n_samples is None else n_samples, 0), dtype=np.float64)
    try:
        block = np.asarray(block, dtype=np.float64)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be numeric, missing values encoded as NaN.")
    if block.ndim == 1:
        block = block.reshape(-1, 1)
    elif block.ndim != 2:
        raise ValueError(f"{name} must be two-dimensional, got shape {block.shape}.")
    return block


class DataInstance:
    """ View on a single row of a :class:`DataSet`.

    The instance does not own its data set. It keeps a weak reference,
    so that instances do not keep a discarded data set alive.
    """

    def __init__(self, dataset: DataSet, index: int):
        self._dataset_ref = weakref.ref(dataset)
        self.index = index

    @property
    def dataset(self) -> DataSet:
        dataset = self._dataset_ref()
        if dataset is None:
            raise ReferenceError("The data set of this instance no longer exists.")
        return dataset

    @property
    def float_attributes(self) -> np.ndarray:
        return self.dataset.float_attributes[self.index]

    @property
    def int_attributes(self) -> np.ndarray:
        return self.dataset.int_attributes[self.index]

    @property
    def nominal_attributes(self) -> np.ndarray:
        return self.dataset.nominal_attributes[self.index]

    @property
    def label(self) -> int:
        return int(self.dataset.labels[self.index])

    def __repr__(self):
        return f"DataInstance(index={self.index}, label={self.label})"


class DataSet:
    """ Tabular data with float, integer and nominal attributes and class labels.

    Parameters
    ----------
    float_attributes : array-like of shape (n_samples, n_float), optional
        Real-valued attributes. Missing values are encoded as NaN.
    int_attributes : array-like of shape (n_samples, n_int), optional
        Integer attributes. They are stored as floats, so that missing
        values can be encoded as NaN.
    nominal_attributes : array-like of shape (n_samples, n_nominal), optional
        Nominal (string) attributes. These are carried along but ignored by metrics.
    labels : array-like of shape (n_samples, ), optional
        Non-negative integer class labels. If None, all points belong to class 0.
    float_names, int_names, nominal_names : list of str, optional
        Attribute names

    Examples
    --------
    >>> ds = DataSet([[0.], [1.], [2.], [10.], [11.]], labels=[0, 0, 0, 1, 1])
    >>> len(ds)
    5
    >>> ds.class_frequencies()
    array([3, 2])
    """

    def __init__(
            self,
            float_attributes=None,
            int_attributes=None,
            nominal_attributes=None,
            labels=None,
            *,
            float_names: Sequence[str] = None,
            int_names: Sequence[str] = None,
            nominal_names: Sequence[str] = None,
    ):
        sizes = set()
        for block in [float_attributes, int_attributes, nominal_attributes, labels]:
            if block is not None:
                sizes.add(len(block))
        if len(sizes) > 1:
            raise ValueError(f"Inconsistent numbers of samples in attribute blocks and labels: {sorted(sizes)}.")
        n_samples = sizes.pop() if sizes else 0

        self.float_attributes = _as_attribute_block(float_attributes, n_samples, "float_attributes")
        self.int_attributes = _as_attribute_block(int_attributes, n_samples, "int_attributes")
        if nominal_attributes is None:
            nominal_attributes = np.empty((n_samples, 0), dtype=object)
        else:
            nominal_attributes = np.asarray(nominal_attributes, dtype=object)
            if nominal_attributes.ndim == 1:
                nominal_attributes = nominal_attributes.reshape(-1, 1)
        self.nominal_attributes = nominal_attributes
        self.labels = check_labels(labels, n_samples)

        self.float_names = list(float_names) if float_names is not None else \
            [f"float_{i}" for i in range(self.n_float_attributes)]
        self.int_names = list(int_names) if int_names is not None else \
            [f"int_{i}" for i in range(self.n_int_attributes)]
        self.nominal_names = list(nominal_names) if nominal_names is not None else \
            [f"nominal_{i}" for i in range(self.nominal_attributes.shape[1])]

    @property
    def size(self) -> int:
        return self.labels.shape[0]

    def __len__(self):
        return self.size

    def __getitem__(self, index: int) -> DataInstance:
        if index < 0:
            index += self.size
        if not 0 <= index < self.size:
            raise IndexError(f"Instance index {index} out of range for data set of size {self.size}.")
        return DataInstance(self, index)

    def __iter__(self):
        for i in range(self.size):
            yield DataInstance(self, i)

    @property
    def n_float_attributes(self) -> int:
        return self.float_attributes.shape[1]

    @property
    def n_int_attributes(self) -> int:
        return self.int_attributes.shape[1]

    @property
    def n_dimensions(self) -> int:
        """ Number of attributes used by metrics, i.e. float and integer attributes. """
        return self.n_float_attributes + self.n_int_attributes

    def is_empty(self) -> bool:
        return self.size == 0

    @classmethod
    def from_array(cls, X, y=None) -> DataSet:
        """ Create a data set with float attributes from a 2-D array. """
        return cls(float_attributes=X, labels=y)

    def count_categories(self) -> int:
        """ Number of classes, that is, the largest label plus one. """
        if self.size == 0:
            return 0
        return int(self.labels.max()) + 1

    def class_frequencies(self) -> np.ndarray:
        """ Number of points per class. """
        return np.bincount(self.labels, minlength=self.count_categories())

    def standardize_categories(self) -> np.ndarray:
        """ Relabel classes to 0, ..., C - 1 in order of first appearance.

        Returns
        -------
        mapping : np.ndarray
            The original label of each new class index
        """
        _, first_seen, inverse = np.unique(self.labels, return_index=True, return_inverse=True)
        order = np.argsort(first_seen)
        rank = np.empty_like(order)
        rank[order] = np.arange(order.size)
        mapping = np.unique(self.labels)[order]
        self.labels = rank[inverse].astype(np.int64)
        return mapping

    def features(self, indices=None) -> np.ndarray:
        """ Concatenated float and integer attributes (rows `indices`, or all). """
        X = np.hstack([self.float_attributes, self.int_attributes])
        if indices is not None:
            indices = np.asarray(indices)
            if indices.dtype != bool:
                # Empty lists would otherwise become float arrays
                indices = indices.astype(np.intp)
            X = X[indices]
        return X

    def centroid(self, indices=None) -> np.ndarray:
        """ Attribute-wise mean of the selected points, ignoring missing values.

        Attributes missing in all selected points are NaN in the centroid.
        """
        X = self.features(indices)
        if X.shape[0] == 0:
            raise ValueError("Cannot compute the centroid of an empty selection.")
        with warnings.catch_warnings():
            # all-NaN columns stay NaN in the centroid
            warnings.simplefilter("ignore", category=RuntimeWarning)
            return np.nanmean(X, axis=0)

    def radius_of_volume(self, indices, metric="euclidean") -> float:
        """ Largest distance of the selected points to their centroid.

        Parameters
        ----------
        indices : array-like of int
            Points spanning the volume
        metric : str or DistanceMeasure
            Metric as accepted by :func:`hubminer.distances.get_metric`
        """
        from ..distances.primary import get_metric
        metric = get_metric(metric)
        indices = np.asarray(indices)
        centroid = self.centroid(indices)
        n_float = self.n_float_attributes
        dists = metric.dist_many(
            (centroid[:n_float], centroid[n_float:]),
            (self.float_attributes[indices], self.int_attributes[indices]),
        )
        if dists.size == 0:
            return 0.
        return float(np.max(dists))

    def __repr__(self):
        return (f"DataSet(n_samples={self.size}, n_float={self.n_float_attributes}, "
                f"n_int={self.n_int_attributes}, n_nominal={self.nominal_attributes.shape[1]})")
