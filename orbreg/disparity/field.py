# -*- coding: utf-8 -*-
"""
Disparity Field - Per-pixel 2D displacements with a validity mask.

A ``DisparityField`` holds, for every pixel ``(x, y)`` of a reference
(left) image, a displacement ``(dx, dy)`` such that the pixel corresponds
to ``(x + dx, y + dy)`` in the second (right) image, together with a
boolean mask telling whether the displacement was actually measured.
Displacements of invalid cells are meaningless and must never be read.

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

# Standard library
from typing import Tuple

# Third-party
import numpy as np

# orbreg internal
from orbreg.exceptions import ValidationError


class DisparityField:
    """Dense disparity field.

    Parameters
    ----------
    dx : np.ndarray
        Horizontal (column) displacements, shape ``(rows, cols)``.
    dy : np.ndarray
        Vertical (row) displacements, shape ``(rows, cols)``.
    valid : np.ndarray
        Boolean validity mask, shape ``(rows, cols)``.

    Raises
    ------
    ValidationError
        If the three arrays are not 2D arrays of the same shape.

    Notes
    -----
    The arrays are copied on construction and displacements of invalid
    cells are zeroed, so fields compare equal regardless of the garbage a
    producer left behind in rejected cells. Whole-field operations in
    ``orbreg.disparity.transform`` return new fields.
    """

    __slots__ = ('dx', 'dy', 'valid')

    def __init__(
        self,
        dx: np.ndarray,
        dy: np.ndarray,
        valid: np.ndarray,
    ) -> None:
        dx = np.array(dx, dtype=np.float64)
        dy = np.array(dy, dtype=np.float64)
        valid = np.array(valid, dtype=bool)
        if dx.ndim != 2:
            raise ValidationError(f"Disparity arrays must be 2D, got {dx.ndim}D")
        if dy.shape != dx.shape or valid.shape != dx.shape:
            raise ValidationError(
                f"Disparity array shapes differ: dx {dx.shape}, "
                f"dy {dy.shape}, valid {valid.shape}"
            )
        valid &= np.isfinite(dx) & np.isfinite(dy)
        dx[~valid] = 0.0
        dy[~valid] = 0.0
        self.dx = dx
        self.dy = dy
        self.valid = valid

    @classmethod
    def invalid(cls, shape: Tuple[int, int]) -> 'DisparityField':
        """Field of the given shape with every cell invalid."""
        return cls(np.zeros(shape), np.zeros(shape), np.zeros(shape, dtype=bool))

    @classmethod
    def constant(
        cls,
        shape: Tuple[int, int],
        dx: float,
        dy: float,
    ) -> 'DisparityField':
        """Field of the given shape with every cell valid and equal."""
        return cls(np.full(shape, float(dx)), np.full(shape, float(dy)),
                   np.ones(shape, dtype=bool))

    @property
    def shape(self) -> Tuple[int, int]:
        return self.dx.shape

    @property
    def rows(self) -> int:
        return self.dx.shape[0]

    @property
    def cols(self) -> int:
        return self.dx.shape[1]

    @property
    def valid_count(self) -> int:
        return int(np.count_nonzero(self.valid))

    def is_valid(self, row: int, col: int) -> bool:
        return bool(self.valid[row, col])

    def vector(self, row: int, col: int) -> Tuple[float, float]:
        """Displacement ``(dx, dy)`` of a cell.

        Raises
        ------
        ValidationError
            If the cell is invalid.
        """
        if not self.valid[row, col]:
            raise ValidationError(
                f"Disparity at row {row}, col {col} is invalid"
            )
        return (float(self.dx[row, col]), float(self.dy[row, col]))

    def slice_rows(self, row_start: int, row_end: int) -> 'DisparityField':
        """New field holding rows ``[row_start, row_end)``."""
        return DisparityField(self.dx[row_start:row_end],
                              self.dy[row_start:row_end],
                              self.valid[row_start:row_end])

    def copy(self) -> 'DisparityField':
        return DisparityField(self.dx, self.dy, self.valid)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DisparityField):
            return NotImplemented
        return (np.array_equal(self.valid, other.valid)
                and np.array_equal(self.dx, other.dx)
                and np.array_equal(self.dy, other.dy))

    __hash__ = None

    def __repr__(self) -> str:
        return (f"DisparityField(shape={self.shape}, "
                f"valid={self.valid_count}/{self.dx.size})")
