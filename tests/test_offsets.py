# -*- coding: utf-8 -*-
"""
Tests for per-row offset reduction and the registration report.

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
2026-10-11

Modified
--------
2026-10-16
"""

import numpy as np
import pytest

from orbreg.disparity.field import DisparityField
from orbreg.disparity.offsets import (
    OffsetReducer,
    OffsetSummary,
    ReportHeader,
    format_offset_report,
    write_offset_report,
)
from orbreg.exceptions import NoValidMatchesError
from orbreg.vocabulary import CostFunction


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def field():
    dx = np.array([[1.0, 3.0], [0.0, 0.0], [2.0, 0.0]])
    dy = np.array([[0.0, 2.0], [0.0, 0.0], [1.0, 0.0]])
    valid = np.array([[True, True], [False, False], [True, False]])
    return DisparityField(dx, dy, valid)


@pytest.fixture
def header():
    return ReportHeader(left_path='left.cub', right_path='right.cub',
                        image_width=1000, image_height=3, crop_start=350,
                        crop_width=300, kernel_x=15, kernel_y=11,
                        cost_function=CostFunction.SQUARED_DIFFERENCE)


# ---------------------------------------------------------------------------
# Reduction
# ---------------------------------------------------------------------------

class TestOffsetReducer:

    def test_reduce(self, field):
        s = OffsetReducer().reduce(field)
        np.testing.assert_allclose(s.row_offsets, [[1, 2], [0, 0], [1, 2]])
        assert s.mean_x == pytest.approx(2.0)
        assert s.mean_y == pytest.approx(1.0)
        assert s.std_x == pytest.approx(1.0)
        assert s.std_y == pytest.approx(1.0)
        assert s.valid_pixel_count == 3
        assert s.valid_row_count == 2
        assert s.rows == 3

    def test_streaming_equals_whole(self, field):
        reducer = OffsetReducer()
        for r in range(field.rows):
            reducer.push(field.slice_rows(r, r + 1))
        streamed = reducer.summary()
        whole = OffsetReducer().reduce(field)
        np.testing.assert_array_equal(streamed.row_offsets, whole.row_offsets)
        assert streamed.mean_x == pytest.approx(whole.mean_x)
        assert streamed.std_y == pytest.approx(whole.std_y)
        assert streamed.valid_row_count == whole.valid_row_count

    def test_no_valid_rows(self):
        with pytest.raises(NoValidMatchesError) as info:
            OffsetReducer().reduce(DisparityField.invalid((4, 3)))
        summary = info.value.summary
        assert summary.valid_row_count == 0
        np.testing.assert_array_equal(summary.row_offsets, np.zeros((4, 2)))

    def test_clear(self, field):
        reducer = OffsetReducer()
        reducer.push(field)
        reducer.clear()
        s = reducer.summary()
        assert s.rows == 0
        assert s.valid_pixel_count == 0

    def test_summary_logs_counts(self, field, caplog):
        with caplog.at_level('INFO', logger='orbreg.disparity.offsets'):
            OffsetReducer().reduce(field)
        assert '3 valid pixels in 2 rows' in caplog.text


class TestOffsetSummary:

    def test_require_valid_returns_self(self):
        s = OffsetSummary(row_offsets=np.zeros((1, 2)), valid_row_count=1)
        assert s.require_valid() is s

    def test_require_valid_raises(self):
        s = OffsetSummary(row_offsets=np.zeros((1, 2)))
        assert not s.has_valid_rows
        with pytest.raises(NoValidMatchesError):
            s.require_valid()


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

class TestOffsetReport:

    def test_rows_and_averages(self, field, header):
        text = format_offset_report(OffsetReducer().reduce(field), header)
        lines = text.splitlines()
        assert '0, 1, 2' in lines
        assert '1, 0, 0' in lines
        assert '2, 1, 2' in lines
        assert '#   Average Sample Offset: 2  StdDev: 1' in lines
        assert '#   Average Line Offset:   1 StdDev: 1' in lines
        assert text.endswith('\n')

    def test_header(self, field, header):
        text = format_offset_report(OffsetReducer().reduce(field), header)
        assert '#  FROM:  left.cub' in text
        assert '#  MATCH: right.cub' in text
        assert '#    SampOffset:  350' in text
        assert '#    TopLeft:         350       0' in text
        assert '#    LowerRight:      650       3' in text
        assert '#   Columns, Rows:    15 11' in text
        assert '#   Corr. Algorithm:  SQUARED_DIFFERENCE' in text

    def test_null_averages(self, header):
        summary = OffsetSummary(row_offsets=np.zeros((2, 2)))
        text = format_offset_report(summary, header)
        assert '#   Average Sample Offset: NULL' in text
        assert '#   Average Line Offset:   NULL' in text
        assert '0, 0, 0' in text.splitlines()

    def test_fractional_offsets(self, header):
        summary = OffsetSummary(row_offsets=np.array([[0.25, -1.125]]),
                                mean_x=-1.125, mean_y=0.25,
                                valid_row_count=1, valid_pixel_count=8)
        text = format_offset_report(summary, header)
        assert '0, 0.25, -1.125' in text.splitlines()
        assert '#   Average Sample Offset: -1.125  StdDev: 0' in text

    def test_write(self, tmp_path, field, header):
        path = write_offset_report(tmp_path / 'offsets.txt',
                                   OffsetReducer().reduce(field), header)
        assert path.read_text().startswith(
            '#       Lronacjitreg ISIS Application Results')

    def test_write_to_missing_directory(self, tmp_path, field, header):
        with pytest.raises(OSError):
            write_offset_report(tmp_path / 'nope' / 'offsets.txt',
                                OffsetReducer().reduce(field), header)
