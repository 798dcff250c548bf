# -*- coding: utf-8 -*-
"""
Tests for the jitter registration command-line tool.

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

import re

import numpy as np
import pytest

from orbreg.IO.tiling import ChipRegion
from orbreg.tools.jitreg import build_correlator, crop_window, main, parse_args
from orbreg.vocabulary import CorrelatorMode, CostFunction


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

SEARCH = ['--h-corr-min', '-5', '--h-corr-max', '5',
          '--v-corr-min', '-4', '--v-corr-max', '4']


@pytest.fixture
def shifted_images(tmp_path):
    rng = np.random.default_rng(12)
    base = rng.random((60, 110))
    left = tmp_path / 'left.npy'
    right = tmp_path / 'right.npy'
    np.save(left, base[5:55, 5:105])
    np.save(right, base[7:57, 2:102])
    return left, right


def _offset(stdout, name):
    match = re.search(rf"Mean {name}\s+offset = (-?[\d.]+)", stdout)
    assert match, stdout
    return float(match.group(1))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestCropWindow:

    def test_centered(self):
        assert crop_window(100, 50, 60) == ChipRegion(0, 20, 50, 80)

    def test_clipped_to_image(self):
        assert crop_window(40, 10, 300) == ChipRegion(0, 0, 10, 40)


class TestParseArgs:

    def test_defaults(self, tmp_path):
        args = parse_args(['a.tif', 'b.tif'])
        assert args.crop_width == 300
        assert args.log == 1.4
        assert (args.h_corr_min, args.h_corr_max) == (-30, 30)
        assert (args.v_corr_min, args.v_corr_max) == (-5, 5)
        assert args.row_log is None
        assert not args.pyramid

    def test_legacy_spellings(self):
        args = parse_args(['a', 'b', '--rowLog', 'o.txt', '--cropWidth', '20'])
        assert str(args.row_log) == 'o.txt'
        assert args.crop_width == 20

    def test_verbosity_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(['a', 'b', '-v', '-q'])

    def test_correlator_type_choices(self):
        with pytest.raises(SystemExit):
            parse_args(['a', 'b', '--correlator-type', '3'])

    def test_build_correlator(self):
        c = build_correlator(parse_args(['a', 'b', '--correlator-type', '2',
                                         '--pyramid', '--xkernel', '9',
                                         '--lrthresh', '-1']))
        assert c.cost_function is CostFunction.CROSS_CORRELATION
        assert c.mode is CorrelatorMode.PYRAMID
        assert c.kernel_x == 9
        assert c.lr_threshold == -1


# ---------------------------------------------------------------------------
# main
# ---------------------------------------------------------------------------

class TestMain:

    def test_measures_offsets(self, shifted_images, tmp_path, capsys):
        left, right = shifted_images
        report = tmp_path / 'offsets.txt'
        status = main([str(left), str(right), '--log', '0', '--crop-width',
                       '60', '--strip-rows', '16', '--row-log', str(report)]
                      + SEARCH)
        out = capsys.readouterr().out
        assert status == 0
        assert 'Input image size = 100 by 50' in out
        assert 'Disparity search image size = 60 by 50' in out
        assert 'Using non-pyramid search.' in out
        assert f"Created output log file {report}" in out
        assert abs(_offset(out, 'sample') - 3.0) < 0.1
        assert abs(_offset(out, 'line') + 2.0) < 0.1

        lines = report.read_text().splitlines()
        rows = [l for l in lines if re.match(r'^\d+, ', l)]
        assert len(rows) == 50
        assert any(l.startswith('#   Average Sample Offset: ') for l in lines)

    def test_pyramid_flag(self, shifted_images, capsys):
        left, right = shifted_images
        status = main([str(left), str(right), '--log', '0', '--pyramid',
                       '--xkernel', '7', '--ykernel', '7'] + SEARCH)
        out = capsys.readouterr().out
        assert status == 0
        assert 'Using pyramid search.' in out

    def test_missing_input(self, tmp_path, shifted_images, capsys):
        left, _ = shifted_images
        missing = tmp_path / 'nope.npy'
        assert main([str(left), str(missing)]) == 1
        assert f"Error: input file {missing} is missing!" in capsys.readouterr().out

    def test_no_valid_matches(self, tmp_path, capsys):
        left = tmp_path / 'l.npy'
        right = tmp_path / 'r.npy'
        np.save(left, np.full((20, 30), np.nan))
        np.save(right, np.full((20, 30), np.nan))
        report = tmp_path / 'rows.txt'
        status = main([str(left), str(right), '--row-log', str(report)] + SEARCH)
        out = capsys.readouterr().out
        assert status == 1
        assert '0 valid pixels in 0 rows' in out
        assert 'Error: No valid pixel matches found!' in out
        assert '#   Average Sample Offset: NULL' in report.read_text()

    def test_invalid_kernel(self, shifted_images, capsys):
        left, right = shifted_images
        assert main([str(left), str(right), '--xkernel', '4']) == 1
        assert 'Error:' in capsys.readouterr().out

    def test_empty_search_range(self, shifted_images, capsys):
        left, right = shifted_images
        assert main([str(left), str(right), '--h-corr-min', '3',
                     '--h-corr-max', '1']) == 1
        assert 'Empty search range' in capsys.readouterr().out

    def test_unwritable_report(self, shifted_images, tmp_path, capsys):
        left, right = shifted_images
        report = tmp_path / 'missing_dir' / 'rows.txt'
        status = main([str(left), str(right), '--log', '0', '--crop-width',
                       '30', '--row-log', str(report)] + SEARCH)
        assert status == 1
        assert f"Failed to create output log file {report}!" in \
            capsys.readouterr().out
