# -*- coding: utf-8 -*-
"""
Georeferences - Pixel/map transforms between two map-projected images.

``GeoReference`` pairs a six-parameter affine transform with a coordinate
reference system. ``GeoTransform`` chains two of them so pixels of one
image can be expressed in the pixel frame of another:

    source pixel (x, y) --affine--> source CRS --pyproj--> target CRS
                        --inverse affine--> target pixel (x, y)

The pyproj step is skipped when both images share a CRS.

Dependencies
------------
rasterio
pyproj

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
2026-10-15
"""

# Standard library
from typing import Optional, Tuple, TYPE_CHECKING

# Third-party
import numpy as np

try:
    from rasterio.transform import Affine
    import pyproj
    _HAS_GEO = True
except ImportError:
    _HAS_GEO = False

# orbreg internal
from orbreg.exceptions import DependencyError, GeolocationError

if TYPE_CHECKING:
    from orbreg.IO.base import ImageReader


def require_geo_backend() -> None:
    """Raise ``DependencyError`` unless rasterio and pyproj are importable."""
    if not _HAS_GEO:
        raise DependencyError(
            "Georeferenced alignment requires rasterio and pyproj. "
            "Install with: pip install rasterio pyproj"
        )


class GeoReference:
    """Affine pixel-to-map transform plus CRS of one image.

    The affine transform maps pixel ``(col, row)`` to map ``(x, y)`` as::

        x = c + col * a + row * b
        y = f + col * d + row * e

    Parameters
    ----------
    transform : rasterio.transform.Affine
        Pixel to native CRS transform.
    crs : str
        Coordinate reference system, e.g. ``'EPSG:32610'`` or a PROJ
        string for a planetary body.
    shape : Tuple[int, int]
        Image ``(rows, cols)``.

    Raises
    ------
    DependencyError
        If rasterio or pyproj is not installed.
    TypeError
        If *transform* is not a ``rasterio.transform.Affine``.
    GeolocationError
        If the CRS cannot be parsed.
    """

    def __init__(
        self,
        transform: 'Affine',
        crs: str,
        shape: Tuple[int, int],
    ) -> None:
        require_geo_backend()
        if not isinstance(transform, Affine):
            raise TypeError(
                f"transform must be a rasterio.transform.Affine instance, "
                f"got {type(transform).__name__}"
            )
        try:
            self.crs = pyproj.CRS(crs)
        except pyproj.exceptions.CRSError as e:
            raise GeolocationError(f"Invalid CRS {crs!r}: {e}") from e
        self.transform = transform
        self.shape = (int(shape[0]), int(shape[1]))

    @classmethod
    def from_reader(cls, reader: 'ImageReader') -> Optional['GeoReference']:
        """Georeference of *reader*, or None if it is not map-projected.

        Readers without geolocation, and readers whose affine transform
        is the identity (GDAL's default for raw images), yield None.
        """
        geo = reader.get_geolocation()
        if not geo or geo.get('transform') is None or not geo.get('crs'):
            return None
        require_geo_backend()
        transform = geo['transform']
        if not isinstance(transform, Affine):
            transform = Affine(*tuple(transform)[:6])
        if transform == Affine.identity():
            return None
        return cls(transform, geo['crs'], reader.get_shape())

    @property
    def is_identity(self) -> bool:
        return self.transform == Affine.identity()

    def pixel_to_map(
        self,
        x: np.ndarray,
        y: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Pixel ``(col, row)`` arrays to native map ``(x, y)`` arrays."""
        t = self.transform
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        return t.c + x * t.a + y * t.b, t.f + x * t.d + y * t.e

    def map_to_pixel(
        self,
        mx: np.ndarray,
        my: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Native map ``(x, y)`` arrays to pixel ``(col, row)`` arrays."""
        inv = ~self.transform
        mx = np.asarray(mx, dtype=np.float64)
        my = np.asarray(my, dtype=np.float64)
        return inv.c + mx * inv.a + my * inv.b, inv.f + mx * inv.d + my * inv.e

    def __repr__(self) -> str:
        return (f"GeoReference(crs={self.crs.to_string()!r}, "
                f"shape={self.shape})")


def is_map_projected(
    georef_a: Optional[GeoReference],
    georef_b: Optional[GeoReference],
) -> bool:
    """Whether both images carry a non-identity map projection."""
    return (georef_a is not None and georef_b is not None
            and not georef_a.is_identity and not georef_b.is_identity)


class GeoTransform:
    """Pixel transform from one georeferenced image into another.

    ``forward`` maps source pixels to destination pixels and ``reverse``
    maps destination pixels back to source pixels, mirroring
    ``HomographyTransform``.

    Parameters
    ----------
    src : GeoReference
        Georeference of the image whose pixels are transformed (the
        right image).
    dst : GeoReference
        Georeference of the common frame (the left image).

    Examples
    --------
    >>> trans = GeoTransform(GeoReference.from_reader(right),
    ...                      GeoReference.from_reader(left))
    >>> x_left, y_left = trans.forward(x_right, y_right)
    """

    def __init__(self, src: GeoReference, dst: GeoReference) -> None:
        self.src = src
        self.dst = dst
        self._to_dst = None
        self._to_src = None
        if src.crs != dst.crs:
            self._to_dst = pyproj.Transformer.from_crs(
                src.crs, dst.crs, always_xy=True
            )
            self._to_src = pyproj.Transformer.from_crs(
                dst.crs, src.crs, always_xy=True
            )

    def forward(
        self,
        x: np.ndarray,
        y: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Source pixel ``(x, y)`` to destination pixel ``(x, y)``."""
        mx, my = self.src.pixel_to_map(x, y)
        if self._to_dst is not None:
            mx, my = self._to_dst.transform(mx, my)
        return self.dst.map_to_pixel(mx, my)

    def reverse(
        self,
        x: np.ndarray,
        y: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Destination pixel ``(x, y)`` to source pixel ``(x, y)``."""
        mx, my = self.dst.pixel_to_map(x, y)
        if self._to_src is not None:
            mx, my = self._to_src.transform(mx, my)
        return self.src.map_to_pixel(mx, my)
