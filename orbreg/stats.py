# -*- coding: utf-8 -*-
"""
Running Statistics - Single-pass mean and variance accumulation.

Provides ``RunningStatistics``, a Welford accumulator (Knuth TAOCP vol. 2,
3rd edition, p. 232) that yields the mean and sample variance of a stream
of values without buffering them. Used by the offset reducer to summarize
millions of disparity components in one pass.

Author
------
orbreg developers

License
-------
MIT License
Copyright (c) 2024 geoint.org
See LICENSE file for full text.

Created
-------
2026-10-06

Modified
--------
2026-10-12
"""

# Standard library
import math
from typing import Iterable

# Third-party
import numpy as np


class RunningStatistics:
    """Numerically stable streaming mean / variance accumulator.

    Attributes
    ----------
    count : int
        Number of values pushed.
    mean : float
        Running mean, ``0.0`` when empty.
    m2 : float
        Running sum of squared deviations from the mean.

    Examples
    --------
    >>> stats = RunningStatistics()
    >>> stats.extend([1.0, 2.0, 4.0])
    >>> stats.mean
    2.3333333333333335
    >>> round(stats.variance, 6)
    2.333333
    """

    __slots__ = ('count', '_mean', 'm2')

    def __init__(self) -> None:
        self.count = 0
        self._mean = 0.0
        self.m2 = 0.0

    def clear(self) -> None:
        """Reset the accumulator to its empty state."""
        self.count = 0
        self._mean = 0.0
        self.m2 = 0.0

    def push(self, value: float) -> None:
        """Add a single value.

        Parameters
        ----------
        value : float
            Value to accumulate.
        """
        value = float(value)
        self.count += 1
        if self.count == 1:
            self._mean = value
            self.m2 = 0.0
            return
        delta = value - self._mean
        self._mean += delta / self.count
        self.m2 += delta * (value - self._mean)

    def extend(self, values: Iterable[float]) -> None:
        """Add every value of an iterable, in order."""
        for value in values:
            self.push(value)

    def push_array(self, values: np.ndarray) -> None:
        """Merge a batch of values using the parallel Welford update.

        Equivalent to pushing each element, but vectorized over the batch
        (Chan et al. pairwise combination), so a whole disparity row can be
        accumulated at once.

        Parameters
        ----------
        values : np.ndarray
            Values of any shape; flattened before merging.
        """
        values = np.asarray(values, dtype=np.float64).ravel()
        n_b = values.size
        if n_b == 0:
            return
        mean_b = float(values.mean())
        m2_b = float(np.sum((values - mean_b) ** 2))
        if self.count == 0:
            self.count = n_b
            self._mean = mean_b
            self.m2 = m2_b
            return
        n_a = self.count
        n = n_a + n_b
        delta = mean_b - self._mean
        self._mean += delta * n_b / n
        self.m2 += m2_b + delta * delta * n_a * n_b / n
        self.count = n

    @property
    def mean(self) -> float:
        """Running mean, or ``0.0`` when no values were pushed."""
        return self._mean if self.count > 0 else 0.0

    @property
    def variance(self) -> float:
        """Sample variance ``m2 / (count - 1)``, or ``0.0`` for count <= 1."""
        return self.m2 / (self.count - 1) if self.count > 1 else 0.0

    @property
    def stddev(self) -> float:
        """Sample standard deviation."""
        return math.sqrt(self.variance)

    def __len__(self) -> int:
        return self.count

    def __repr__(self) -> str:
        return (
            f"RunningStatistics(count={self.count}, "
            f"mean={self.mean:.6g}, stddev={self.stddev:.6g})"
        )
