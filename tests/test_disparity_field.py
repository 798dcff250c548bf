# -*- coding: utf-8 -*-
"""
Tests for the DisparityField container.

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
2026-10-08

Modified
--------
2026-10-14
"""

import numpy as np
import pytest

from orbreg.disparity.field import DisparityField
from orbreg.exceptions import ValidationError


class TestConstruction:

    def test_shape_properties(self):
        f = DisparityField.invalid((3, 5))
        assert f.shape == (3, 5)
        assert f.rows == 3
        assert f.cols == 5
        assert f.valid_count == 0

    def test_constant(self):
        f = DisparityField.constant((2, 2), 1.5, -2)
        assert f.valid_count == 4
        assert f.vector(1, 1) == (1.5, -2.0)

    def test_not_2d(self):
        with pytest.raises(ValidationError):
            DisparityField(np.zeros(4), np.zeros(4), np.ones(4, dtype=bool))

    def test_shape_mismatch(self):
        with pytest.raises(ValidationError):
            DisparityField(np.zeros((2, 3)), np.zeros((3, 2)),
                           np.ones((2, 3), dtype=bool))

    def test_non_finite_cells_become_invalid(self):
        dx = np.array([[1.0, np.nan], [np.inf, 2.0]])
        f = DisparityField(dx, np.zeros((2, 2)), np.ones((2, 2), dtype=bool))
        np.testing.assert_array_equal(f.valid, [[True, False], [False, True]])
        assert f.dx[0, 1] == 0.0

    def test_invalid_cells_zeroed(self):
        f = DisparityField(np.full((1, 2), 9.0), np.full((1, 2), 9.0),
                           np.array([[True, False]]))
        assert f.dx[0, 1] == 0.0
        assert f.dy[0, 1] == 0.0

    def test_inputs_are_copied(self):
        dx = np.zeros((2, 2))
        f = DisparityField(dx, np.zeros((2, 2)), np.ones((2, 2), dtype=bool))
        dx[0, 0] = 5.0
        assert f.dx[0, 0] == 0.0


class TestAccess:

    def test_vector_of_invalid_cell(self):
        f = DisparityField.invalid((2, 2))
        assert not f.is_valid(0, 0)
        with pytest.raises(ValidationError):
            f.vector(0, 0)

    def test_slice_rows(self):
        dx = np.arange(12, dtype=float).reshape(4, 3)
        f = DisparityField(dx, -dx, np.ones((4, 3), dtype=bool))
        part = f.slice_rows(1, 3)
        assert part.shape == (2, 3)
        assert part.vector(0, 0) == (3.0, -3.0)

    def test_equality_ignores_garbage_in_invalid_cells(self):
        valid = np.array([[True, False]])
        a = DisparityField([[1.0, 7.0]], [[2.0, 7.0]], valid)
        b = DisparityField([[1.0, -3.0]], [[2.0, 0.5]], valid)
        assert a == b
        assert a != DisparityField.constant((1, 2), 1.0, 2.0)

    def test_copy_is_independent(self):
        f = DisparityField.constant((2, 2), 1.0, 1.0)
        g = f.copy()
        g.dx[0, 0] = 4.0
        assert f.dx[0, 0] == 1.0

    def test_unhashable(self):
        with pytest.raises(TypeError):
            hash(DisparityField.invalid((1, 1)))

    def test_repr(self):
        assert 'valid=4/4' in repr(DisparityField.constant((2, 2), 0, 0))
