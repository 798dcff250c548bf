# -*- coding: utf-8 -*-
"""
GeoTIFF Reader and Writer - Windowed raster access through rasterio.

``GeoTIFFReader`` reads single-band chips from any GDAL-readable raster
(GeoTIFF, COG, ISIS cubes exported to GeoTIFF) and exposes the affine
georeference when present. ``GeoTIFFWriter`` creates a tiled GeoTIFF of a
known shape and fills it chip by chip.

Dependencies
------------
rasterio

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
2026-10-17
"""

# Standard library
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

# Third-party
import numpy as np

try:
    import rasterio
    from rasterio.transform import Affine
    from rasterio.windows import Window
    _HAS_RASTERIO = True
except ImportError:
    _HAS_RASTERIO = False

# orbreg internal
from orbreg.IO.base import ImageReader, ImageWriter
from orbreg.exceptions import DependencyError


def _require_rasterio() -> None:
    if not _HAS_RASTERIO:
        raise DependencyError(
            "rasterio is required for GeoTIFF access. "
            "Install with: pip install rasterio"
        )


class GeoTIFFReader(ImageReader):
    """Read chips from the first band of a GDAL-readable raster.

    Parameters
    ----------
    filepath : str or Path
        Path to the raster file.

    Attributes
    ----------
    dataset : rasterio.DatasetReader
        Rasterio dataset object for direct access.

    Raises
    ------
    DependencyError
        If rasterio is not installed.
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file cannot be opened by rasterio.

    Examples
    --------
    >>> with GeoTIFFReader('left.tif') as reader:
    ...     chip = reader.read_chip(0, 512, 0, 512)
    """

    def __init__(self, filepath: Union[str, Path]) -> None:
        _require_rasterio()
        super().__init__(filepath)

    def _load_metadata(self) -> None:
        """Load raster metadata using rasterio."""
        try:
            self.dataset = rasterio.open(str(self.filepath))
        except Exception as e:
            raise ValueError(f"Failed to open raster {self.filepath}: {e}") from e

        self.metadata = {
            'format': 'GeoTIFF',
            'rows': self.dataset.height,
            'cols': self.dataset.width,
            'bands': self.dataset.count,
            'dtype': str(self.dataset.dtypes[0]),
            'crs': str(self.dataset.crs) if self.dataset.crs else None,
            'transform': self.dataset.transform,
            'nodata': self.dataset.nodata,
        }

    def read_chip(
        self,
        row_start: int,
        row_end: int,
        col_start: int,
        col_end: int,
    ) -> np.ndarray:
        """Read a windowed chip from band 1.

        Parameters
        ----------
        row_start : int
            Starting row index (inclusive).
        row_end : int
            Ending row index (exclusive).
        col_start : int
            Starting column index (inclusive).
        col_end : int
            Ending column index (exclusive).

        Returns
        -------
        np.ndarray
            Chip with shape ``(rows, cols)``.
        """
        self._check_bounds(row_start, row_end, col_start, col_end)
        window = Window(
            col_start, row_start,
            col_end - col_start, row_end - row_start,
        )
        return self.dataset.read(1, window=window)

    def get_dtype(self) -> np.dtype:
        return np.dtype(self.metadata['dtype'])

    def get_geolocation(self) -> Optional[Dict[str, Any]]:
        """Affine transform and CRS, or None if the raster has no CRS."""
        if self.metadata['crs'] is None:
            return None
        return {
            'crs': self.metadata['crs'],
            'transform': self.metadata['transform'],
        }

    def close(self) -> None:
        """Close the rasterio dataset."""
        if getattr(self, 'dataset', None) is not None:
            self.dataset.close()
            self.dataset = None


class GeoTIFFWriter(ImageWriter):
    """Write a single-band tiled GeoTIFF chip by chip.

    Parameters
    ----------
    filepath : str or Path
        Output path.
    shape : Tuple[int, int]
        Output ``(rows, cols)``.
    dtype : str or np.dtype
        Output pixel type. Default float32.
    geolocation : Dict[str, Any], optional
        ``'transform'`` and ``'crs'`` to stamp on the output.
    nodata : float, optional
        Nodata value to record.
    block_size : int
        Internal tile size when the output is large enough to tile.
    """

    def __init__(
        self,
        filepath: Union[str, Path],
        shape: Tuple[int, int],
        dtype: Union[str, np.dtype] = np.float32,
        geolocation: Optional[Dict[str, Any]] = None,
        nodata: Optional[float] = None,
        block_size: int = 256,
    ) -> None:
        _require_rasterio()
        super().__init__(filepath, shape, dtype, geolocation)
        profile: Dict[str, Any] = {
            'driver': 'GTiff',
            'height': self.shape[0],
            'width': self.shape[1],
            'count': 1,
            'dtype': self.dtype.name,
        }
        if self.shape[0] >= block_size and self.shape[1] >= block_size:
            profile.update(tiled=True, blockxsize=block_size,
                           blockysize=block_size)
        if geolocation:
            profile['crs'] = geolocation.get('crs')
            transform = geolocation.get('transform')
            if transform is not None and not isinstance(transform, Affine):
                transform = Affine(*tuple(transform)[:6])
            profile['transform'] = transform
        if nodata is not None:
            profile['nodata'] = nodata
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        self._dataset = rasterio.open(str(self.filepath), 'w', **profile)

    def write_chip(
        self,
        data: np.ndarray,
        row_start: int,
        col_start: int,
    ) -> None:
        self._check_chip(data, row_start, col_start)
        window = Window(col_start, row_start, data.shape[1], data.shape[0])
        self._dataset.write(data.astype(self.dtype, copy=False), 1,
                            window=window)

    def close(self) -> None:
        if self._dataset is not None:
            self._dataset.close()
            self._dataset = None
