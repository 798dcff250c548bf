# -*- coding: utf-8 -*-
"""
Tests for point transforms, residuals, and image warping helpers.

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
2026-10-17

Modified
--------
2026-10-17
"""

import numpy as np
import pytest

from orbreg.coregistration.utils import (
    apply_transform_to_points,
    compute_residuals,
    compute_rms,
    homography_coordinate_map,
    warp_image,
    warp_to_writer,
)
from orbreg.IO.numpy_io import ArrayReader, NumpyReader, NumpyWriter


SHIFT = np.array([
    [1.0, 0.0, 3.0],
    [0.0, 1.0, -2.0],
    [0.0, 0.0, 1.0],
])


@pytest.fixture
def image():
    rows, cols = np.mgrid[0:20, 0:30]
    return (rows * 100 + cols + 1).astype(np.float64)


class TestPointTransforms:

    def test_translation(self):
        pts = np.array([[0.0, 0.0], [10.0, 5.0]])
        out = apply_transform_to_points(pts, SHIFT)
        np.testing.assert_allclose(out, [[3.0, -2.0], [13.0, 3.0]])

    def test_projective_divide(self):
        H = np.diag([2.0, 2.0, 2.0])
        out = apply_transform_to_points(np.array([[4.0, 6.0]]), H)
        np.testing.assert_allclose(out, [[4.0, 6.0]])

    def test_bad_matrix_shape(self):
        with pytest.raises(ValueError):
            apply_transform_to_points(np.zeros((1, 2)), np.eye(2))

    def test_residuals_and_rms(self):
        src = np.array([[0.0, 0.0], [1.0, 1.0]])
        dst = np.array([[3.0, -2.0], [4.0, 3.0]])
        res = compute_residuals(dst, src, SHIFT)
        np.testing.assert_allclose(res, [0.0, 4.0])
        assert compute_rms(res) == pytest.approx(np.sqrt(8.0))

    def test_rms_empty(self):
        assert compute_rms(np.array([])) == 0.0

    def test_coordinate_map_inverts(self):
        x = np.array([[5.0]])
        y = np.array([[7.0]])
        sx, sy = homography_coordinate_map(SHIFT)(x, y)
        assert (sx[0, 0], sy[0, 0]) == pytest.approx((2.0, 9.0))


class TestWarping:

    def test_warp_image_translation(self, image):
        out = warp_image(image, SHIFT, order=0, fill_value=-1.0)
        assert out.shape == image.shape
        np.testing.assert_array_equal(out[0:18, 3:], image[2:, 0:27])
        assert (out[:, :3] == -1.0).all()
        assert (out[18:, :] == -1.0).all()

    def test_warp_image_output_shape(self, image):
        out = warp_image(image, np.eye(3), output_shape=(10, 12))
        np.testing.assert_allclose(out, image[:10, :12])

    def test_tiled_warp_matches_in_memory(self, image, tmp_path):
        path = tmp_path / 'warped.npy'
        reader = ArrayReader(image, name='src')
        with NumpyWriter(path, image.shape, dtype=np.float64) as writer:
            warp_to_writer(reader, homography_coordinate_map(SHIFT), writer,
                           tile_size=8, order=1, fill_value=-1.0)
        with NumpyReader(path) as result:
            tiled = result.read_full()
        expected = warp_image(image, SHIFT, order=1, fill_value=-1.0)
        np.testing.assert_allclose(tiled, expected)

    def test_tiled_warp_prepare_and_crop(self, image, tmp_path):
        path = tmp_path / 'crop.npy'
        reader = ArrayReader(image, name='src')
        with NumpyWriter(path, (5, 6), dtype=np.float64) as writer:
            warp_to_writer(reader, homography_coordinate_map(np.eye(3)),
                           writer, tile_size=4, crop_offset=(10, 4),
                           prepare=lambda chip: chip * 2.0)
        with NumpyReader(path) as result:
            np.testing.assert_allclose(result.read_full(),
                                       image[4:9, 10:16] * 2.0)

    @pytest.mark.parametrize('ty', [1e-9, -1e-9])
    def test_round_off_keeps_border(self, image, ty):
        H = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, ty], [0.0, 0.0, 1.0]])
        out = warp_image(image, H, fill_value=-1.0)
        np.testing.assert_allclose(out, image, atol=1e-6)

    def test_tiled_round_off_keeps_border(self, image, tmp_path):
        H = np.array([[1.0, 0.0, 2.0], [0.0, 1.0, 1e-12], [0.0, 0.0, 1.0]])
        path = tmp_path / 'shifted.npy'
        with NumpyWriter(path, image.shape, dtype=np.float64) as writer:
            warp_to_writer(ArrayReader(image, name='src'),
                           homography_coordinate_map(H), writer, tile_size=7)
        with NumpyReader(path) as result:
            out = result.read_full()
        np.testing.assert_allclose(out[0, 2:], image[0, :28], atol=1e-6)
        np.testing.assert_allclose(out[-1, 2:], image[-1, :28], atol=1e-6)
        assert (out[:, 0] == 0.0).all()
