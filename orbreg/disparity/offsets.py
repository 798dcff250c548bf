# -*- coding: utf-8 -*-
"""
Offset Reduction - Per-row and global mean offsets of a disparity field.

``OffsetReducer`` consumes a disparity field, either whole or as a stream
of row strips, and accumulates for each row the mean vertical and
horizontal disparity of its valid cells plus running statistics over every
valid cell. Rows without valid cells report a zero offset and are excluded
from the valid-row count.

``format_offset_report`` renders the result as the registration log read
by jitter-correction tooling: an image information header, one
``row, vertical, horizontal`` line per row, and a registration data
trailer with the averages (or ``NULL`` when no row was valid).

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

# Standard library
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

# Third-party
import numpy as np

# orbreg internal
from orbreg.disparity.field import DisparityField
from orbreg.exceptions import NoValidMatchesError
from orbreg.stats import RunningStatistics
from orbreg.vocabulary import CostFunction

logger = logging.getLogger(__name__)


@dataclass
class OffsetSummary:
    """Aggregated offsets of one disparity field.

    Attributes
    ----------
    row_offsets : np.ndarray
        Shape (rows, 2): mean vertical and mean horizontal disparity of
        each row, 0 for rows without valid cells.
    mean_x, mean_y : float
        Mean horizontal and vertical disparity over all valid cells.
    std_x, std_y : float
        Sample standard deviations over all valid cells.
    valid_pixel_count : int
        Number of valid cells.
    valid_row_count : int
        Number of rows with at least one valid cell.
    """

    row_offsets: np.ndarray
    mean_x: float = 0.0
    mean_y: float = 0.0
    std_x: float = 0.0
    std_y: float = 0.0
    valid_pixel_count: int = 0
    valid_row_count: int = 0

    @property
    def rows(self) -> int:
        return int(self.row_offsets.shape[0])

    @property
    def has_valid_rows(self) -> bool:
        return self.valid_row_count > 0

    def require_valid(self) -> 'OffsetSummary':
        """Return self, or raise ``NoValidMatchesError`` if no row was valid."""
        if not self.has_valid_rows:
            raise NoValidMatchesError(
                "No valid pixel matches found", summary=self
            )
        return self


class OffsetReducer:
    """Streaming reduction of disparity rows to mean offsets.

    Strips must be pushed top to bottom; their rows are appended in order.

    Parameters
    ----------
    logger : logging.Logger, optional
        Logger used instead of the module logger.

    Examples
    --------
    >>> reducer = OffsetReducer()
    >>> for strip in correlator.correlate_strips(left, right, window, rng):
    ...     reducer.push(strip)
    >>> summary = reducer.summary().require_valid()
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.log = logger or globals()['logger']
        self.clear()

    def clear(self) -> None:
        """Forget every pushed row."""
        self._stats_x = RunningStatistics()
        self._stats_y = RunningStatistics()
        self._row_offsets: List[np.ndarray] = []
        self._valid_rows = 0
        self._valid_pixels = 0

    def push(self, field: DisparityField) -> None:
        """Accumulate every row of *field*."""
        valid = field.valid
        counts = valid.sum(axis=1)
        sum_dy = np.where(valid, field.dy, 0.0).sum(axis=1)
        sum_dx = np.where(valid, field.dx, 0.0).sum(axis=1)
        has = counts > 0
        denom = np.maximum(counts, 1)
        offsets = np.zeros((field.rows, 2), dtype=np.float64)
        offsets[has, 0] = sum_dy[has] / denom[has]
        offsets[has, 1] = sum_dx[has] / denom[has]
        self._row_offsets.append(offsets)

        self._stats_x.push_array(field.dx[valid])
        self._stats_y.push_array(field.dy[valid])
        self._valid_rows += int(has.sum())
        self._valid_pixels += int(counts.sum())

    def summary(self) -> OffsetSummary:
        """Offsets of everything pushed so far."""
        if self._row_offsets:
            row_offsets = np.vstack(self._row_offsets)
        else:
            row_offsets = np.zeros((0, 2), dtype=np.float64)
        summary = OffsetSummary(
            row_offsets=row_offsets,
            mean_x=self._stats_x.mean,
            mean_y=self._stats_y.mean,
            std_x=self._stats_x.stddev,
            std_y=self._stats_y.stddev,
            valid_pixel_count=self._valid_pixels,
            valid_row_count=self._valid_rows,
        )
        self.log.info("%d valid pixels in %d rows",
                      summary.valid_pixel_count, summary.valid_row_count)
        return summary

    def reduce(self, field: DisparityField) -> OffsetSummary:
        """Summarize a whole field.

        Raises
        ------
        NoValidMatchesError
            If no row of *field* has a valid cell.
        """
        self.clear()
        self.push(field)
        return self.summary().require_valid()


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@dataclass
class ReportHeader:
    """Run description printed around the offsets in a report.

    ``image_width`` and ``image_height`` are the common input size; the
    correlated window spans ``crop_width`` columns starting at
    ``crop_start`` in both images.
    """

    left_path: str
    right_path: str
    image_width: int
    image_height: int
    crop_start: int
    crop_width: int
    kernel_x: int
    kernel_y: int
    cost_function: CostFunction = CostFunction.ABSOLUTE_DIFFERENCE


def _image_block(tag: str, path: str, header: ReportHeader) -> List[str]:
    h = header
    return [
        f"#  {tag} {path}",
        f"#    Lines:       {h.image_height}",
        f"#    Samples:     {h.image_width}",
        "#    FPSamp0:     0",
        f"#    SampOffset:  {h.crop_start}",
        "#    LineOffset:  0",
        "#    CPMMNumber:  0",
        "#    Summing:     0",
        "#    TdiMode:     0",
        "#    Channel:     0",
        "#    LineRate:    0 <seconds>",
        f"#    TopLeft:     {h.crop_start:7d} {0:7d}",
        f"#    LowerRight:  {h.crop_start + h.crop_width:7d} {h.image_height:7d}",
        "#    StartTime:   0 <UTC>",
        "#    SCStartTime: 0 <SCLK>",
        "#    StartTime:   0 <seconds>",
        "",
    ]


def format_offset_report(summary: OffsetSummary, header: ReportHeader) -> str:
    """Render *summary* as registration log text.

    Parameters
    ----------
    summary : OffsetSummary
        Offsets to report; may have no valid rows.
    header : ReportHeader
        Input and correlator description.

    Returns
    -------
    str
        Report text ending with a newline.
    """
    lines = [
        "#       Lronacjitreg ISIS Application Results",
        "#    Coordinates are (Sample, Line) unless indicated",
        "#           RunDate:  0",
        "#",
        "#    ****  Image Input Information ****",
    ]
    lines += _image_block("FROM: ", header.left_path, header)
    lines += _image_block("MATCH:", header.right_path, header)

    for row, (vert, horiz) in enumerate(summary.row_offsets):
        lines.append(f"{row}, {vert:.8g}, {horiz:.8g}")

    lines += [
        "",
        "#  **** Registration Data ****",
        "#   RegFile: ",
        f"#   OverlapSize:      {header.crop_width:7d} {header.image_height:7d}",
        "#   Sample Spacing:   1",
        "#   Line Spacing:     1",
        f"#   Columns, Rows:    {header.kernel_x} {header.kernel_y}",
        f"#   Corr. Algorithm:  {header.cost_function.report_name}",
        "#   Corr. Tolerance:  0",
        "#   Total Registers:  0 of 0",
        "#   Number Suspect:   0",
    ]
    if summary.has_valid_rows:
        lines.append(f"#   Average Sample Offset: {summary.mean_x:.4g}"
                     f"  StdDev: {summary.std_x:.4g}")
        lines.append(f"#   Average Line Offset:   {summary.mean_y:.4g}"
                     f" StdDev: {summary.std_y:.4g}")
    else:
        lines.append("#   Average Sample Offset: NULL")
        lines.append("#   Average Line Offset:   NULL")
    return "\n".join(lines) + "\n"


def write_offset_report(
    path: Union[str, Path],
    summary: OffsetSummary,
    header: ReportHeader,
) -> Path:
    """Write :func:`format_offset_report` output to *path*.

    Raises
    ------
    OSError
        If the file cannot be created.
    """
    path = Path(path)
    with open(path, 'w') as f:
        f.write(format_offset_report(summary, header))
    logger.debug("Wrote offset report %s", path)
    return path
