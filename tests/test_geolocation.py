# -*- coding: utf-8 -*-
"""
Tests for georeferences, pixel transforms between projected images, and
the map-projected alignment branch.

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

pytest.importorskip('rasterio')
pyproj = pytest.importorskip('pyproj')

from rasterio.transform import Affine

from orbreg.disparity.field import DisparityField
from orbreg.disparity.transform import DisparityAligner, transform_disparities
from orbreg.exceptions import GeolocationError
from orbreg.geolocation.georef import GeoReference, GeoTransform, is_map_projected
from orbreg.IO import open_image
from orbreg.IO.numpy_io import ArrayReader, NumpyWriter


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

CRS = 'EPSG:32610'
LEFT_T = Affine(1.0, 0.0, 100.0, 0.0, -1.0, 200.0)
RIGHT_T = Affine(1.0, 0.0, 90.0, 0.0, -1.0, 205.0)


@pytest.fixture
def georefs():
    return (GeoReference(LEFT_T, CRS, (20, 30)),
            GeoReference(RIGHT_T, CRS, (20, 30)))


# ---------------------------------------------------------------------------
# GeoReference
# ---------------------------------------------------------------------------

class TestGeoReference:

    def test_pixel_map_round_trip(self, georefs):
        left, _ = georefs
        mx, my = left.pixel_to_map(np.array([0.0, 3.0]), np.array([0.0, 4.0]))
        np.testing.assert_allclose(mx, [100.0, 103.0])
        np.testing.assert_allclose(my, [200.0, 196.0])
        x, y = left.map_to_pixel(mx, my)
        np.testing.assert_allclose(x, [0.0, 3.0])
        np.testing.assert_allclose(y, [0.0, 4.0])

    def test_bad_crs(self):
        with pytest.raises(GeolocationError):
            GeoReference(LEFT_T, 'not a crs', (2, 2))

    def test_transform_type(self):
        with pytest.raises(TypeError):
            GeoReference((1, 0, 0, 0, 1, 0), CRS, (2, 2))

    def test_from_reader(self):
        reader = ArrayReader(np.zeros((4, 5)),
                             geolocation={'transform': LEFT_T, 'crs': CRS})
        ref = GeoReference.from_reader(reader)
        assert ref.shape == (4, 5)
        assert ref.transform == LEFT_T

    def test_from_reader_tuple_transform(self):
        reader = ArrayReader(np.zeros((4, 5)),
                             geolocation={'transform': tuple(LEFT_T)[:6],
                                          'crs': CRS})
        assert GeoReference.from_reader(reader).transform == LEFT_T

    def test_from_npy_sidecar(self, tmp_path):
        path = tmp_path / 'proj.npy'
        geo = {'transform': LEFT_T, 'crs': pyproj.CRS(CRS)}
        with NumpyWriter(path, (4, 5), geolocation=geo) as writer:
            writer.write(np.zeros((4, 5)))
        with open_image(path) as reader:
            ref = GeoReference.from_reader(reader)
        assert ref is not None
        assert ref.transform == LEFT_T
        assert ref.crs == pyproj.CRS(CRS)

    def test_from_reader_without_geolocation(self):
        assert GeoReference.from_reader(ArrayReader(np.zeros((2, 2)))) is None

    def test_identity_transform_is_not_projected(self):
        reader = ArrayReader(np.zeros((2, 2)),
                             geolocation={'transform': Affine.identity(),
                                          'crs': CRS})
        assert GeoReference.from_reader(reader) is None

    def test_is_map_projected(self, georefs):
        assert is_map_projected(*georefs)
        assert not is_map_projected(georefs[0], None)


class TestGeoTransform:

    def test_same_crs(self, georefs):
        left, right = georefs
        t = GeoTransform(right, left)
        x, y = t.forward(np.array([15.0]), np.array([10.0]))
        np.testing.assert_allclose(x, [5.0])
        np.testing.assert_allclose(y, [5.0])
        bx, by = t.reverse(x, y)
        np.testing.assert_allclose(bx, [15.0])
        np.testing.assert_allclose(by, [10.0])

    def test_cross_crs_round_trip(self):
        utm = GeoReference(Affine(30.0, 0.0, 500000.0, 0.0, -30.0, 4100000.0),
                           'EPSG:32610', (100, 100))
        geo = GeoReference(Affine(0.0003, 0.0, -123.01, 0.0, -0.0003, 37.05),
                           'EPSG:4326', (100, 100))
        t = GeoTransform(utm, geo)
        x = np.array([10.0, 50.0])
        y = np.array([20.0, 60.0])
        bx, by = t.reverse(*t.forward(x, y))
        np.testing.assert_allclose(bx, x, atol=1e-6)
        np.testing.assert_allclose(by, y, atol=1e-6)

    def test_transform_disparities(self, georefs):
        left, right = georefs
        field = DisparityField.constant((3, 4), 1.0, 2.0)
        out = transform_disparities(field, GeoTransform(right, left))
        # Left pixel p + d maps to right pixel p + d + (10, 5).
        np.testing.assert_allclose(out.dx, 11.0)
        np.testing.assert_allclose(out.dy, 7.0)


# ---------------------------------------------------------------------------
# Map-projected alignment branch
# ---------------------------------------------------------------------------

class TestMapProjectedAlignment:

    def _readers(self):
        rng = np.random.default_rng(1)
        base = rng.random((40, 50))
        left = ArrayReader(base[5:25, 10:40], name='left',
                           geolocation={'transform': LEFT_T, 'crs': CRS})
        right = ArrayReader(base[0:20, 0:30], name='right',
                            geolocation={'transform': RIGHT_T, 'crs': CRS})
        return left, right

    def test_forward_resamples_right_into_left_frame(self, tmp_path):
        left, right = self._readers()
        ga = GeoReference.from_reader(left)
        gb = GeoReference.from_reader(right)
        aligner = DisparityAligner(tmp_path / 'run')
        H = aligner.forward(left, right, tmp_path / 'L.npy', tmp_path / 'R.npy',
                            georef_a=ga, georef_b=gb)
        np.testing.assert_array_equal(H, np.eye(3))
        assert not (tmp_path / 'run-align.txt').exists()
        with open_image(tmp_path / 'R.npy') as r:
            warped = r.read_full()
        # Left pixel (x, y) sits at right pixel (x + 10, y + 5).
        np.testing.assert_allclose(warped[:15, :20],
                                   right.read_full()[5:20, 10:30], rtol=1e-6)

    def test_reverse_uses_georeferences(self, tmp_path):
        left, right = self._readers()
        aligner = DisparityAligner(tmp_path / 'run')
        out = aligner.reverse(DisparityField.constant((20, 30), 0.0, 0.0),
                              (20, 30),
                              georef_a=GeoReference.from_reader(left),
                              georef_b=GeoReference.from_reader(right))
        np.testing.assert_allclose(out.dx, 10.0)
        np.testing.assert_allclose(out.dy, 5.0)
