# -*- coding: utf-8 -*-
"""
Disparity Module - Dense disparity fields, correlation, and reduction.

Key Classes
-----------
- DisparityField: Per-pixel (dx, dy) displacements with a validity mask
- WindowedCorrelator: Windowed integer disparity search
- OffsetReducer: Per-row and global mean offsets of a field
- DisparityAligner: Pre-alignment warp and its reversal on disparities

Usage
-----
    >>> from orbreg.disparity import WindowedCorrelator, SearchRange, OffsetReducer
    >>> field = WindowedCorrelator().correlate(left, right,
    ...                                        SearchRange(-30, -5, 30, 5))
    >>> summary = OffsetReducer().reduce(field)

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
2026-10-09

Modified
--------
2026-10-17
"""

from orbreg.disparity.field import DisparityField
from orbreg.disparity.correlate import SearchRange, WindowedCorrelator
from orbreg.disparity.offsets import (
    OffsetReducer,
    OffsetSummary,
    ReportHeader,
    format_offset_report,
    write_offset_report,
)
from orbreg.disparity.transform import (
    DisparityAligner,
    HomographyTransform,
    disparity_targets,
    mask_disparities,
    remove_invalid_pixels,
    transform_disparities,
)

__all__ = [
    'DisparityField',
    'SearchRange',
    'WindowedCorrelator',
    'OffsetReducer',
    'OffsetSummary',
    'ReportHeader',
    'format_offset_report',
    'write_offset_report',
    'DisparityAligner',
    'HomographyTransform',
    'disparity_targets',
    'mask_disparities',
    'remove_invalid_pixels',
    'transform_disparities',
]
