# -*- coding: utf-8 -*-
"""
Tests for the streaming mean / variance accumulator.

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

import numpy as np
import pytest

from orbreg.stats import RunningStatistics


class TestRunningStatistics:

    def test_empty(self):
        stats = RunningStatistics()
        assert len(stats) == 0
        assert stats.mean == 0.0
        assert stats.variance == 0.0
        assert stats.stddev == 0.0

    def test_single_value_has_zero_variance(self):
        stats = RunningStatistics()
        stats.push(7.5)
        assert stats.mean == 7.5
        assert stats.variance == 0.0

    def test_matches_numpy(self):
        rng = np.random.default_rng(3)
        values = rng.normal(10.0, 2.0, size=500)
        stats = RunningStatistics()
        stats.extend(values)
        assert stats.count == 500
        assert stats.mean == pytest.approx(values.mean(), rel=1e-12)
        assert stats.variance == pytest.approx(values.var(ddof=1), rel=1e-9)
        assert stats.stddev == pytest.approx(values.std(ddof=1), rel=1e-9)

    def test_push_array_equals_push(self):
        rng = np.random.default_rng(4)
        values = rng.uniform(-5, 5, size=(20, 30))
        one = RunningStatistics()
        one.extend(values.ravel())
        batched = RunningStatistics()
        for row in values:
            batched.push_array(row)
        assert batched.count == one.count
        assert batched.mean == pytest.approx(one.mean, rel=1e-12)
        assert batched.variance == pytest.approx(one.variance, rel=1e-9)

    def test_push_array_empty_is_noop(self):
        stats = RunningStatistics()
        stats.push(1.0)
        stats.push_array(np.array([]))
        assert stats.count == 1
        assert stats.mean == 1.0

    def test_clear(self):
        stats = RunningStatistics()
        stats.extend([1.0, 2.0, 3.0])
        stats.clear()
        assert stats.count == 0
        assert stats.mean == 0.0
        assert stats.m2 == 0.0

    def test_large_offset_stability(self):
        stats = RunningStatistics()
        stats.extend([1e9 + 4, 1e9 + 7, 1e9 + 13, 1e9 + 16])
        assert stats.variance == pytest.approx(30.0)
