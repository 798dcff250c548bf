# -*- coding: utf-8 -*-
"""
Tiling - Chip region arithmetic for streaming raster access.

``ChipRegion`` describes a clipped rectangle in image coordinates.
``tile_regions`` yields a row-major grid of such regions covering an image
and ``strip_regions`` yields full-width row strips with an optional overlap
margin, as used by correlation over arbitrarily tall images.

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
2026-10-07

Modified
--------
2026-10-13
"""

# Standard library
from typing import Iterator, NamedTuple, Tuple

# Third-party
import numpy as np


class ChipRegion(NamedTuple):
    """Rectangular region within an image, defined by clipped pixel bounds.

    Use directly with ``ImageReader.read_chip``::

        chip = reader.read_chip(region.row_start, region.row_end,
                                region.col_start, region.col_end)

    Attributes
    ----------
    row_start : int
        First row (inclusive). Always ``>= 0``.
    col_start : int
        First column (inclusive). Always ``>= 0``.
    row_end : int
        Last row (exclusive). Always ``<= nrows``.
    col_end : int
        Last column (exclusive). Always ``<= ncols``.
    """

    row_start: int
    col_start: int
    row_end: int
    col_end: int

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.row_end - self.row_start, self.col_end - self.col_start)


class StripRegion(NamedTuple):
    """Row strip plus the margin-padded rows needed to process it.

    Attributes
    ----------
    core : ChipRegion
        Rows whose results belong to this strip.
    padded : ChipRegion
        ``core`` grown by the margin and clipped to the image.
    """

    core: ChipRegion
    padded: ChipRegion

    @property
    def offset(self) -> int:
        """Row of ``core`` relative to the start of ``padded``."""
        return self.core.row_start - self.padded.row_start


def tile_regions(
    shape: Tuple[int, int],
    tile_size: Tuple[int, int] = (1024, 1024),
) -> Iterator[ChipRegion]:
    """Yield a row-major grid of non-overlapping tiles covering *shape*.

    Edge tiles are clipped to the image, so they may be smaller than
    ``tile_size``.

    Parameters
    ----------
    shape : Tuple[int, int]
        Image ``(rows, cols)``.
    tile_size : Tuple[int, int]
        Tile ``(rows, cols)``. Both must be positive.

    Raises
    ------
    ValueError
        If a tile dimension is not positive.
    """
    rows, cols = shape
    tr, tc = tile_size
    if tr <= 0 or tc <= 0:
        raise ValueError(f"tile_size must be positive, got {tile_size}")
    row_starts = np.arange(0, max(rows, 1), tr)
    col_starts = np.arange(0, max(cols, 1), tc)
    for r0 in row_starts:
        for c0 in col_starts:
            yield ChipRegion(
                int(r0), int(c0),
                int(min(r0 + tr, rows)), int(min(c0 + tc, cols)),
            )


def strip_regions(
    shape: Tuple[int, int],
    strip_rows: int,
    margin: int = 0,
) -> Iterator[StripRegion]:
    """Yield full-width row strips with a symmetric overlap margin.

    Parameters
    ----------
    shape : Tuple[int, int]
        Image ``(rows, cols)``.
    strip_rows : int
        Rows per strip core. Must be positive.
    margin : int
        Extra rows read above and below each core, clipped to the image.

    Raises
    ------
    ValueError
        If ``strip_rows`` is not positive or ``margin`` is negative.
    """
    rows, cols = shape
    if strip_rows <= 0:
        raise ValueError(f"strip_rows must be positive, got {strip_rows}")
    if margin < 0:
        raise ValueError(f"margin must be non-negative, got {margin}")
    for r0 in range(0, rows, strip_rows):
        r1 = min(r0 + strip_rows, rows)
        yield StripRegion(
            core=ChipRegion(r0, 0, r1, cols),
            padded=ChipRegion(max(r0 - margin, 0), 0,
                              min(r1 + margin, rows), cols),
        )
