# -*- coding: utf-8 -*-
# SPDX-License-Identifier: BSD-3-Clause
"""
Primary distance measures on attribute vectors.

All measures aggregate only over components that are finite in both
vectors. Missing (NaN) or infinite components are skipped, so that a
single missing value does not invalidate the whole comparison.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, Tuple, Union

import numpy as np

__all__ = [
    "BrayCurtis",
    "Canberra",
    "CombinedMetric",
    "CosineMetric",
    "DistanceMeasure",
    "Manhattan",
    "METRICS",
    "MetricError",
    "MinkowskiMetric",
    "Mixer",
    "TanimotoDistance",
    "get_metric",
]


class MetricError(ValueError):
    """ Raised when a distance cannot be computed for the given inputs. """


class DistanceMeasure(ABC):
    """ Base class for distances between two attribute vectors.

    Subclasses implement :meth:`dist_many`, which compares one vector
    with each row of a matrix. Single comparisons use the same code path.
    """

    @abstractmethod
    def _dist_many(self, first: np.ndarray, others: np.ndarray, mask: np.ndarray) -> np.ndarray:
        """ Distances of `first` to each row of `others`, using only entries where `mask` is True. """

    def dist_many(self, first, others) -> np.ndarray:
        """ Distances from vector `first` to each row of `others`.

        Parameters
        ----------
        first : array-like of shape (n_features, )
        others : array-like of shape (n_samples, n_features)

        Returns
        -------
        dist : np.ndarray of shape (n_samples, )
        """
        first = np.asarray(first, dtype=np.float64)
        others = np.asarray(others, dtype=np.float64)
        if first.ndim != 1:
            raise MetricError(f"First argument must be a vector, got shape {first.shape}.")
        if others.ndim == 1:
            others = others.reshape(1, -1)
        if others.shape[1] != first.shape[0]:
            raise MetricError(f"Cannot compare vectors of different lengths "
                              f"({first.shape[0]} vs. {others.shape[1]}).")
        mask = np.isfinite(others) & np.isfinite(first)
        first = np.where(np.isfinite(first), first, 0.)
        others = np.where(mask, others, 0.)
        return self._dist_many(first, others, mask)

    def dist(self, first, second) -> float:
        """ Distance between two attribute vectors. """
        return float(self.dist_many(first, np.asarray(second).reshape(1, -1))[0])

    def __repr__(self):
        return f"{self.__class__.__name__}()"


class MinkowskiMetric(DistanceMeasure):
    """ Minkowski distance of degree `p`; Euclidean distance for ``p = 2``. """

    def __init__(self, p: float = 2.):
        if p <= 0:
            raise ValueError(f"Minkowski degree p must be positive, got {p}.")
        self.p = p

    def _dist_many(self, first, others, mask):
        diff = np.abs(others - first) * mask
        if self.p == 2:
            return np.sqrt(np.einsum("ij,ij->i", diff, diff))
        elif self.p == 1:
            return diff.sum(axis=1)
        return np.power(np.power(diff, self.p).sum(axis=1), 1. / self.p)

    def norm(self, vector) -> float:
        """ Minkowski norm of a vector, ignoring non-finite entries. """
        vector = np.asarray(vector, dtype=np.float64)
        return self.dist(vector, np.zeros_like(vector))

    def __repr__(self):
        return f"MinkowskiMetric(p={self.p})"


class Manhattan(MinkowskiMetric):
    """ City block distance. """

    def __init__(self):
        super().__init__(p=1.)

    def __repr__(self):
        return "Manhattan()"


class CosineMetric(DistanceMeasure):
    """ Cosine distance scaled to [0, 1], i.e. ``(1 - cos) / 2``.

    Vector norms are computed over all finite entries of each vector, while
    the dot product only uses components finite in both vectors.
    Two zero vectors are identical (distance 0), while a zero vector is
    maximally distant (distance 1) from any non-zero vector.
    """

    def dist_many(self, first, others) -> np.ndarray:
        first = np.asarray(first, dtype=np.float64)
        others = np.asarray(others, dtype=np.float64)
        if others.ndim == 1:
            others = others.reshape(1, -1)
        if first.ndim != 1 or others.shape[1] != first.shape[0]:
            raise MetricError(f"Cannot compare vectors of shapes {first.shape} and {others.shape[1:]}.")
        first_finite = np.where(np.isfinite(first), first, 0.)
        others_finite = np.where(np.isfinite(others), others, 0.)
        # Components missing in either vector contribute zero to the dot product
        mask = np.isfinite(others) & np.isfinite(first)
        return self._dist_many(first_finite, others_finite, mask)

    def _dist_many(self, first, others, mask):
        dot = np.einsum("ij,j->i", others * mask, first)
        norm_first = np.sqrt(first @ first)
        norm_others = np.sqrt(np.einsum("ij,ij->i", others, others))
        both_zero = (norm_first == 0) & (norm_others == 0)
        one_zero = ((norm_first == 0) | (norm_others == 0)) & ~both_zero
        with np.errstate(divide="ignore", invalid="ignore"):
            sim = dot / (norm_first * norm_others)
        sim[both_zero] = 1.
        sim[one_zero] = -1.
        sim = np.clip(sim, -1., 1.)
        return (1. - sim) * 0.5


class TanimotoDistance(DistanceMeasure):
    """ Extended Jaccard (Tanimoto) distance ``1 - ab / (aa + bb - ab)``.

    Two zero vectors have distance 0.
    """

    def _dist_many(self, first, others, mask):
        masked_first = first * mask
        dot = np.einsum("ij,ij->i", others, masked_first)
        sq_first = np.einsum("ij,ij->i", masked_first, masked_first)
        sq_others = np.einsum("ij,ij->i", others, others)
        denominator = sq_first + sq_others - dot
        dist = np.zeros(others.shape[0])
        nonzero = denominator != 0
        dist[nonzero] = 1. - dot[nonzero] / denominator[nonzero]
        return dist


class BrayCurtis(DistanceMeasure):
    """ Bray-Curtis dissimilarity ``sum |a - b| / sum (|a| + |b|)``, zero for an empty denominator. """

    def _dist_many(self, first, others, mask):
        numerator = (np.abs(others - first) * mask).sum(axis=1)
        denominator = ((np.abs(others) + np.abs(first)) * mask).sum(axis=1)
        dist = np.zeros(others.shape[0])
        nonzero = denominator != 0
        dist[nonzero] = numerator[nonzero] / denominator[nonzero]
        return dist


class Canberra(DistanceMeasure):
    """ Canberra distance; components that are zero in both vectors are skipped. """

    def _dist_many(self, first, others, mask):
        denominator = np.abs(others) + np.abs(first)
        valid = mask & (denominator != 0)
        terms = np.zeros_like(others)
        np.divide(np.abs(others - first), denominator, out=terms, where=valid)
        return terms.sum(axis=1)


class Mixer(str, Enum):
    """ Rules for combining the integer and float parts of a distance. """
    SUM = "sum"
    AVERAGE = "average"
    MAX = "max"
    MIN = "min"
    PRODUCT = "product"
    EUCLIDEAN = "euclidean"


def _mix(parts: np.ndarray, mixer: Mixer) -> np.ndarray:
    """ Combine partial distances of shape (n_parts, n_samples), skipping non-finite entries. """
    finite = np.isfinite(parts)
    n_finite = finite.sum(axis=0)
    if mixer is Mixer.PRODUCT:
        return np.where(finite, parts, 1.).prod(axis=0)
    if mixer is Mixer.SUM:
        return np.where(finite, parts, 0.).sum(axis=0)
    if mixer is Mixer.AVERAGE:
        total = np.where(finite, parts, 0.).sum(axis=0)
        return total / np.maximum(n_finite, 1)
    if mixer is Mixer.MAX:
        total = np.where(finite, parts, -np.inf).max(axis=0, initial=-np.inf)
    elif mixer is Mixer.MIN:
        total = np.where(finite, parts, np.inf).min(axis=0, initial=np.inf)
    elif mixer is Mixer.EUCLIDEAN:
        return np.sqrt(np.where(finite, parts ** 2, 0.).sum(axis=0))
    else:
        raise ValueError(f"Unknown mixer: {mixer}")
    return np.where(n_finite > 0, total, 0.)


AttributeRows = Union[Tuple[np.ndarray, np.ndarray], "DataInstance"]  # noqa: F821


class CombinedMetric:
    """ Distance between data instances with float and integer attributes.

    Float and integer attribute blocks are compared by separate measures,
    and the two partial distances are combined by a :class:`Mixer`.

    Parameters
    ----------
    int_metric : DistanceMeasure, optional
        Measure for the integer attributes. If None, they are ignored.
    float_metric : DistanceMeasure, optional
        Measure for the float attributes. If None, they are ignored.
    mixer : str or Mixer, default = "sum"
        How to combine the partial distances. Non-finite partial distances
        are skipped. If no partial distance is available, the distance is
        1 for "product" and 0 otherwise.
    """

    def __init__(self, int_metric: DistanceMeasure = None, float_metric: DistanceMeasure = None,
                 mixer: Union[str, Mixer] = Mixer.SUM):
        if int_metric is None and float_metric is None:
            raise ValueError("At least one of int_metric or float_metric is required.")
        self.int_metric = int_metric
        self.float_metric = float_metric
        try:
            self.mixer = Mixer(mixer)
        except ValueError:
            raise ValueError(f"Unknown mixer '{mixer}'. Must be one of {[m.value for m in Mixer]}.")

    @staticmethod
    def _split(x) -> Tuple[np.ndarray, np.ndarray]:
        if isinstance(x, tuple):
            float_part, int_part = x
        elif hasattr(x, "float_attributes") and hasattr(x, "int_attributes"):
            float_part, int_part = x.float_attributes, x.int_attributes
        else:
            # Plain vectors are float attributes
            float_part, int_part = x, None
        float_part = np.empty(0) if float_part is None else np.asarray(float_part, dtype=np.float64)
        int_part = np.empty(0) if int_part is None else np.asarray(int_part, dtype=np.float64)
        return float_part, int_part

    def dist_many(self, first: AttributeRows, others: AttributeRows) -> np.ndarray:
        """ Distances from one instance to many.

        Parameters
        ----------
        first : DataInstance, tuple of (float_attributes, int_attributes), or vector
        others : DataSet, tuple of (float_matrix, int_matrix), or matrix
            Plain vectors and matrices are treated as float attributes.

        Returns
        -------
        dist : np.ndarray of shape (n_samples, )
        """
        first_float, first_int = self._split(first)
        others_float, others_int = self._split(others)
        if others_float.ndim == 1 and others_float.size:
            others_float = others_float.reshape(1, -1)
        if others_int.ndim == 1 and others_int.size:
            others_int = others_int.reshape(1, -1)
        n_samples = max(others_float.shape[0] if others_float.ndim == 2 else 0,
                        others_int.shape[0] if others_int.ndim == 2 else 0)

        parts = []
        for metric, a, B in [(self.int_metric, first_int, others_int),
                             (self.float_metric, first_float, others_float)]:
            if metric is None or a.size == 0 or B.ndim != 2 or B.shape[1] == 0:
                continue
            parts.append(metric.dist_many(a, B))
        if not parts:
            fill = 1. if self.mixer is Mixer.PRODUCT else 0.
            return np.full(n_samples, fill)
        return _mix(np.vstack(parts), self.mixer)

    def dist(self, first: AttributeRows, second: AttributeRows) -> float:
        """ Distance between two instances. """
        second_float, second_int = self._split(second)
        others = (second_float.reshape(1, -1), second_int.reshape(1, -1))
        return float(self.dist_many(first, others)[0])

    def __repr__(self):
        return f"CombinedMetric(int_metric={self.int_metric!r}, " \
               f"float_metric={self.float_metric!r}, mixer='{self.mixer.value}')"


_MEASURES: Dict[str, Callable[[], DistanceMeasure]] = {
    "euclidean": MinkowskiMetric,
    "manhattan": Manhattan,
    "cosine": CosineMetric,
    "tanimoto": TanimotoDistance,
    "bray_curtis": BrayCurtis,
    "canberra": Canberra,
}

#: Named metrics; "float_*" and "int_*" variants only use the respective attributes
METRICS: Dict[str, Callable[[], CombinedMetric]] = {}
for _name, _measure in _MEASURES.items():
    METRICS[_name] = lambda m=_measure: CombinedMetric(m(), m(), Mixer.SUM)
    METRICS[f"float_{_name}"] = lambda m=_measure: CombinedMetric(None, m(), Mixer.SUM)
    METRICS[f"int_{_name}"] = lambda m=_measure: CombinedMetric(m(), None, Mixer.SUM)
del _name, _measure


def get_metric(metric: Union[str, DistanceMeasure, CombinedMetric] = "euclidean", **kwargs) -> CombinedMetric:
    """ Resolve a metric by name, or wrap a single measure for all attributes.

    Parameters
    ----------
    metric : str, DistanceMeasure or CombinedMetric
        Name from :data:`METRICS`, "minkowski" (requires keyword `p`),
        or a metric instance.
    kwargs
        Passed to the Minkowski metric, e.g. ``p=3``.
    """
    if isinstance(metric, CombinedMetric):
        return metric
    if isinstance(metric, DistanceMeasure):
        return CombinedMetric(metric, metric, Mixer.SUM)
    if isinstance(metric, str):
        name = metric.lower()
        if name == "minkowski":
            p = kwargs.get("p", 2)
            return CombinedMetric(MinkowskiMetric(p), MinkowskiMetric(p), Mixer.SUM)
        try:
            return METRICS[name]()
        except KeyError:
            pass
    raise ValueError(f"Unknown metric: {metric}. Valid metrics are 'minkowski' and {sorted(METRICS)}.")
