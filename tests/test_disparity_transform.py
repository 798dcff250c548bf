# -*- coding: utf-8 -*-
"""
Tests for disparity re-expression, masking, and the forward/reverse
alignment of an unprojected image pair.

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

import numpy as np
import pytest

from orbreg.coregistration.alignment import alignment_path, write_alignment_matrix
from orbreg.disparity.field import DisparityField
from orbreg.disparity.transform import (
    DisparityAligner,
    HomographyTransform,
    disparity_targets,
    make_normalizer,
    mask_disparities,
    remove_invalid_pixels,
    transform_disparities,
)
from orbreg.exceptions import AlignmentFileError, ValidationError
from orbreg.IO import open_image
from orbreg.IO.numpy_io import ArrayReader


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

SHIFT_X = np.array([[1.0, 0.0, 3.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])


@pytest.fixture
def random_field():
    rng = np.random.default_rng(21)
    dx = rng.uniform(-5, 5, size=(20, 30))
    dy = rng.uniform(-5, 5, size=(20, 30))
    valid = rng.random((20, 30)) > 0.2
    return DisparityField(dx, dy, valid)


@pytest.fixture
def image_pair():
    rows, cols = 12, 16
    left = np.add.outer(np.arange(rows) * 20.0, np.arange(cols) + 1.0)
    # right[r, c] == left[r, c + 3]
    right = np.zeros_like(left)
    right[:, :cols - 3] = left[:, 3:]
    return ArrayReader(left, name='left'), ArrayReader(right, name='right')


# ---------------------------------------------------------------------------
# HomographyTransform / transform_disparities
# ---------------------------------------------------------------------------

class TestHomographyTransform:

    def test_forward_reverse(self):
        t = HomographyTransform(SHIFT_X)
        x, y = t.forward(np.array([0.0, 2.0]), np.array([1.0, 5.0]))
        np.testing.assert_allclose(x, [3.0, 5.0])
        np.testing.assert_allclose(y, [1.0, 5.0])
        bx, by = t.reverse(x, y)
        np.testing.assert_allclose(bx, [0.0, 2.0])
        np.testing.assert_allclose(by, [1.0, 5.0])

    def test_shape_preserved(self):
        x = np.zeros((2, 3))
        out_x, out_y = HomographyTransform(np.eye(3)).forward(x, x)
        assert out_x.shape == (2, 3)
        assert out_y.shape == (2, 3)

    def test_singular(self):
        with pytest.raises(ValidationError):
            HomographyTransform(np.zeros((3, 3)))

    def test_not_3x3(self):
        with pytest.raises(ValidationError):
            HomographyTransform(np.eye(2))


class TestTransformDisparities:

    def test_identity_is_noop(self, random_field):
        out = transform_disparities(random_field, HomographyTransform(np.eye(3)))
        np.testing.assert_array_equal(out.valid, random_field.valid)
        np.testing.assert_allclose(out.dx, random_field.dx, atol=1e-12)

    def test_translation(self):
        field = DisparityField.constant((4, 5), 2.0, 1.0)
        out = transform_disparities(field, HomographyTransform(SHIFT_X))
        np.testing.assert_allclose(out.dx, -1.0)
        np.testing.assert_allclose(out.dy, 1.0)

    def test_inverse_round_trip(self, random_field):
        H = np.array([[1.01, 0.02, 4.0], [-0.01, 0.99, -2.5],
                      [1e-5, -2e-5, 1.0]])
        once = transform_disparities(random_field, HomographyTransform(H))
        back = transform_disparities(once,
                                     HomographyTransform(np.linalg.inv(H)))
        np.testing.assert_array_equal(back.valid, random_field.valid)
        np.testing.assert_allclose(back.dx, random_field.dx, atol=1e-6)
        np.testing.assert_allclose(back.dy, random_field.dy, atol=1e-6)

    def test_invalid_cells_stay_invalid(self):
        field = DisparityField.invalid((3, 3))
        out = transform_disparities(field, HomographyTransform(SHIFT_X))
        assert out.valid_count == 0


class TestRemoveInvalidPixels:

    def test_targets_outside_are_dropped(self):
        field = DisparityField.constant((2, 4), 1.0, 0.0)
        out = remove_invalid_pixels(field, cols=4, rows=2)
        np.testing.assert_array_equal(out.valid[:, :3], True)
        np.testing.assert_array_equal(out.valid[:, 3], False)

    def test_negative_targets(self):
        field = DisparityField.constant((3, 3), 0.0, -1.0)
        out = remove_invalid_pixels(field, cols=3, rows=3)
        np.testing.assert_array_equal(out.valid[0], False)
        assert out.valid[1:].all()


class TestMaskDisparities:

    def test_masks_both_sides(self):
        field = DisparityField.constant((3, 4), 1.0, 0.0)
        left_mask = np.ones((3, 4))
        left_mask[0, 0] = 0
        right_mask = np.ones((3, 4))
        right_mask[1, 2] = 0
        out = mask_disparities(field, left_mask, right_mask)
        assert not out.valid[0, 0]
        assert not out.valid[1, 1]
        np.testing.assert_array_equal(out.valid[:, 3], False)
        assert out.valid_count == 12 - 3 - 2

    def test_tile_with_right_chip(self):
        # Tile at rows 10-11, cols 20-22; targets land at rows 11-12,
        # cols 18-20 of the right image, read as a chip at (11, 18).
        tile = DisparityField.constant((2, 3), -2.0, 1.0)
        right_chip = np.ones((2, 3))
        right_chip[1, 0] = 0
        out = mask_disparities(tile, np.ones((2, 3)), right_chip,
                               origin=(10, 20), right_origin=(11, 18))
        expected = np.ones((2, 3), dtype=bool)
        expected[1, 0] = False
        np.testing.assert_array_equal(out.valid, expected)

    def test_disparity_targets(self):
        field = DisparityField.constant((2, 2), 1.4, -0.6)
        tx, ty = disparity_targets(field, origin=(5, 7))
        np.testing.assert_array_equal(tx, [[8, 9], [8, 9]])
        np.testing.assert_array_equal(ty, [[4, 4], [5, 5]])

    def test_shape_mismatch(self):
        with pytest.raises(ValidationError):
            mask_disparities(DisparityField.invalid((2, 2)),
                             np.ones((3, 3)), np.ones((2, 2)))


class TestMakeNormalizer:

    def test_scales_and_clips(self):
        prep = make_normalizer((2.0, 6.0))
        out = prep(np.array([[2.0, 4.0, 6.0, 8.0, np.nan]]))
        np.testing.assert_allclose(out, [[0.0, 0.5, 1.0, 1.0, 0.0]])

    def test_nodata(self):
        prep = make_normalizer((2.0, 6.0), nodata=4.0)
        np.testing.assert_allclose(prep(np.array([[4.0, 6.0]])), [[0.0, 1.0]])

    def test_without_bounds(self):
        prep = make_normalizer(None)
        np.testing.assert_allclose(prep(np.array([[np.nan, 7.0]])), [[0.0, 7.0]])

    def test_flat_bounds(self):
        prep = make_normalizer((3.0, 3.0))
        np.testing.assert_array_equal(prep(np.array([[3.0, 5.0]])), 0.0)


# ---------------------------------------------------------------------------
# DisparityAligner
# ---------------------------------------------------------------------------

class TestDisparityAligner:

    def test_forward_writes_aligned_images(self, tmp_path, image_pair):
        left, right = image_pair
        aligner = DisparityAligner(tmp_path / 'run', tile_size=5)
        left_out = tmp_path / 'run-L.npy'
        right_out = tmp_path / 'run-R.npy'
        H = aligner.forward(left, right, left_out, right_out, matrix=SHIFT_X)

        np.testing.assert_array_equal(H, SHIFT_X)
        assert alignment_path(tmp_path / 'run').is_file()
        with open_image(left_out) as r:
            np.testing.assert_allclose(r.read_full(), left.read_full())
        with open_image(right_out) as r:
            warped = r.read_full()
        assert warped.shape == left.get_shape()
        np.testing.assert_allclose(warped[:, 3:], left.read_full()[:, 3:])
        np.testing.assert_array_equal(warped[:, :3], 0.0)

    def test_forward_normalizes(self, tmp_path, image_pair):
        left, right = image_pair
        aligner = DisparityAligner(tmp_path / 'run')
        hi = float(left.read_full().max())
        aligner.forward(left, right, tmp_path / 'L.npy', tmp_path / 'R.npy',
                        bounds=(0.0, hi))
        with open_image(tmp_path / 'L.npy') as r:
            out = r.read_full()
        assert out.max() == pytest.approx(1.0)
        assert out.min() >= 0.0

    def test_forward_defaults_to_identity(self, tmp_path, image_pair):
        left, right = image_pair
        aligner = DisparityAligner(tmp_path / 'run')
        H = aligner.forward(left, right, tmp_path / 'L.npy', tmp_path / 'R.npy')
        np.testing.assert_array_equal(H, np.eye(3))

    def test_reverse_undoes_alignment(self, tmp_path):
        aligner = DisparityAligner(tmp_path / 'run')
        write_alignment_matrix(tmp_path / 'run', SHIFT_X)
        field = DisparityField.constant((4, 6), 0.0, 0.0)
        out = aligner.reverse(field, right_shape=(4, 6))
        np.testing.assert_array_equal(out.valid[:, :3], False)
        assert out.valid[:, 3:].all()
        np.testing.assert_allclose(out.dx[:, 3:], -3.0)
        np.testing.assert_allclose(out.dy[:, 3:], 0.0)

    def test_forward_then_reverse(self, tmp_path, image_pair):
        left, right = image_pair
        aligner = DisparityAligner(tmp_path / 'run')
        aligner.forward(left, right, tmp_path / 'L.npy', tmp_path / 'R.npy',
                        matrix=SHIFT_X)
        # Against the aligned image the pair has zero disparity.
        field = DisparityField.constant(left.get_shape(), 0.0, 0.0)
        out = aligner.reverse(field, right.get_shape())
        r, c = 5, 8
        dx, dy = out.vector(r, c)
        shift = int(round(dx))
        assert right.read_chip(r, r + 1, c + shift, c + shift + 1)[0, 0] \
            == left.read_chip(r, r + 1, c, c + 1)[0, 0]
        assert dy == pytest.approx(0.0)

    def test_reverse_without_alignment_file(self, tmp_path):
        aligner = DisparityAligner(tmp_path / 'missing')
        with pytest.raises(AlignmentFileError):
            aligner.reverse(DisparityField.invalid((2, 2)), (2, 2))

    def test_not_map_projected_without_georefs(self):
        assert not DisparityAligner.is_map_projected(None, None)
