# -*- coding: utf-8 -*-
"""
Jitter Registration - Mean sample and line offsets between two images.

Correlates a centered column band of two nearly aligned images (for
example the overlap of two pushbroom detectors after projection onto a
common frame) and reports the mean horizontal (sample) and vertical
(line) disparity. With ``--row-log`` the per-row offsets are written as
a registration report for jitter analysis.

Usage
-----
    orbreg-jitreg left.tif right.tif --row-log offsets.txt
    python -m orbreg.tools.jitreg left.tif right.tif --pyramid -v

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
2026-10-13

Modified
--------
2026-10-16
"""

# Standard library
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

# orbreg internal
from orbreg.disparity.correlate import SearchRange, WindowedCorrelator
from orbreg.disparity.offsets import (
    OffsetReducer,
    OffsetSummary,
    ReportHeader,
    write_offset_report,
)
from orbreg.exceptions import CorrelationError, NoValidMatchesError
from orbreg.IO import open_image
from orbreg.IO.tiling import ChipRegion
from orbreg.vocabulary import CorrelatorMode, CostFunction

logger = logging.getLogger(__name__)


def crop_window(cols: int, rows: int, crop_width: int) -> ChipRegion:
    """Centered band of *crop_width* columns spanning all rows.

    The band is clipped to the image when *crop_width* exceeds *cols*.
    """
    width = min(crop_width, cols)
    start = cols // 2 - width // 2
    return ChipRegion(0, start, rows, start + width)


def build_correlator(args: argparse.Namespace) -> WindowedCorrelator:
    """Correlator configured from parsed options."""
    return WindowedCorrelator(
        kernel_x=args.xkernel,
        kernel_y=args.ykernel,
        cost_function=CostFunction.from_selector(args.correlator_type),
        lr_threshold=args.lrthresh,
        mode=CorrelatorMode.PYRAMID if args.pyramid else CorrelatorMode.DIRECT,
        log_sigma=args.log,
    )


def determine_shifts(
    args: argparse.Namespace,
) -> Tuple[OffsetSummary, ReportHeader]:
    """Correlate the centered bands of both inputs and reduce to offsets.

    Progress is printed to stdout. The returned summary may have no
    valid rows; callers decide how to report that.

    Raises
    ------
    ValueError
        If the correlator or strip options are invalid.
    CorrelationError
        If correlation cannot complete.
    """
    correlator = build_correlator(args)
    search_range = SearchRange(args.h_corr_min, args.v_corr_min,
                               args.h_corr_max, args.v_corr_max)

    print(f"Loading images left={args.left} and right={args.right}...")
    with open_image(args.left) as left, open_image(args.right) as right:
        left_rows, left_cols = left.get_shape()
        right_rows, right_cols = right.get_shape()
        cols = min(left_cols, right_cols)
        rows = min(left_rows, right_rows)
        print(f"Input image size = {cols} by {rows}")

        window = crop_window(cols, rows, args.crop_width)
        width = window.col_end - window.col_start
        print(f"Disparity search image size = {width} by {rows}")

        print("Running stereo correlation...")
        if correlator.mode is CorrelatorMode.PYRAMID:
            print("Using pyramid search.")
        else:
            print("Using non-pyramid search.")

        reducer = OffsetReducer()
        strips = correlator.correlate_strips(left, right, window, search_range,
                                             strip_rows=args.strip_rows)
        print("Accumulating offsets...")
        for strip in strips:
            reducer.push(strip)
        summary = reducer.summary()

    header = ReportHeader(
        left_path=str(args.left),
        right_path=str(args.right),
        image_width=cols,
        image_height=rows,
        crop_start=window.col_start,
        crop_width=width,
        kernel_x=correlator.kernel_x,
        kernel_y=correlator.kernel_y,
        cost_function=correlator.cost_function,
    )
    return summary, header


# ── CLI ───────────────────────────────────────────────────────────────


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns
    -------
    argparse.Namespace
        Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        prog="orbreg-jitreg",
        description=(
            "Measure the mean sample and line offsets between two nearly "
            "aligned images by correlating a centered column band."
        ),
    )
    parser.add_argument("left", type=Path, help="Left (reference) image.")
    parser.add_argument("right", type=Path, help="Right (matched) image.")
    parser.add_argument(
        "--row-log", "--rowLog",
        dest="row_log",
        type=Path,
        default=None,
        help="Write per-row offsets and statistics to this report file.",
    )
    parser.add_argument(
        "--log",
        type=float,
        default=1.4,
        help="Laplacian-of-Gaussian prefilter sigma, 0 to disable "
             "(default: 1.4).",
    )
    parser.add_argument(
        "--crop-width", "--cropWidth",
        dest="crop_width",
        type=int,
        default=300,
        help="Width of the centered band to correlate (default: 300).",
    )
    parser.add_argument("--h-corr-min", type=int, default=-30,
                        help="Minimum horizontal disparity (default: -30).")
    parser.add_argument("--h-corr-max", type=int, default=30,
                        help="Maximum horizontal disparity (default: 30).")
    parser.add_argument("--v-corr-min", type=int, default=-5,
                        help="Minimum vertical disparity (default: -5).")
    parser.add_argument("--v-corr-max", type=int, default=5,
                        help="Maximum vertical disparity (default: 5).")
    parser.add_argument("--xkernel", type=int, default=15,
                        help="Horizontal kernel size, odd (default: 15).")
    parser.add_argument("--ykernel", type=int, default=15,
                        help="Vertical kernel size, odd (default: 15).")
    parser.add_argument(
        "--lrthresh",
        type=int,
        default=2,
        help="Left/right consistency threshold, -1 disables (default: 2).",
    )
    parser.add_argument(
        "--correlator-type",
        type=int,
        choices=[0, 1, 2],
        default=0,
        help="0 - absolute difference, 1 - squared difference, "
             "2 - normalized cross-correlation (default: 0).",
    )
    parser.add_argument("--pyramid", action="store_true",
                        help="Use the coarse-to-fine pyramid search.")
    parser.add_argument(
        "--strip-rows",
        type=int,
        default=512,
        help="Rows correlated per strip (default: 512).",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true",
                           help="Enable debug logging.")
    verbosity.add_argument("-q", "--quiet", action="store_true",
                           help="Only log errors.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the offset measurement; returns the process exit status."""
    args = parse_args(argv)

    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    for path in (args.left, args.right):
        if not path.exists():
            print(f"Error: input file {path} is missing!")
            return 1

    try:
        summary, header = determine_shifts(args)
    except (ValueError, CorrelationError) as e:
        print(f"Error: {e}")
        return 1

    if args.row_log is not None:
        try:
            write_offset_report(args.row_log, summary, header)
        except OSError as e:
            logger.debug("Report write failed: %s", e)
            print(f"Failed to create output log file {args.row_log}!")
            return 1
        print(f"Created output log file {args.row_log}")

    print(f"{summary.valid_pixel_count} valid pixels in "
          f"{summary.valid_row_count} rows")

    try:
        summary.require_valid()
    except NoValidMatchesError:
        print("Error: No valid pixel matches found!")
        return 1

    print(f"Mean sample offset = {summary.mean_x:f}")
    print(f"Mean line   offset = {summary.mean_y:f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
