# -*- coding: utf-8 -*-
"""
NumPy IO - Chip access to in-memory arrays and NumPy ``.npy`` files.

``ArrayReader`` wraps an array already in memory (synthetic test scenes,
intermediate products) behind the ``ImageReader`` interface.
``NumpyReader`` memory-maps a ``.npy`` file so chips are paged in on
demand. ``NumpyWriter`` creates a ``.npy`` file of known shape, fills it
chip by chip through a writable memory map, and writes a JSON sidecar with
shape, dtype, and any extra metadata.

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
import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

# Third-party
import numpy as np

# orbreg internal
from orbreg.IO.base import ImageReader, ImageWriter


class ArrayReader(ImageReader):
    """Expose an in-memory 2D array through the ``ImageReader`` interface.

    Parameters
    ----------
    data : np.ndarray
        2D image array.
    name : str
        Identifier used in place of a file name (cache keys, reports).
    geolocation : Dict[str, Any], optional
        ``'transform'`` and ``'crs'`` to report from ``get_geolocation``.
    nodata : float, optional
        Nodata value of the array.

    Examples
    --------
    >>> reader = ArrayReader(np.zeros((50, 100)), name='left')
    >>> reader.get_shape()
    (50, 100)
    """

    def __init__(
        self,
        data: np.ndarray,
        name: str = 'array',
        geolocation: Optional[Dict[str, Any]] = None,
        nodata: Optional[float] = None,
    ) -> None:
        data = np.asarray(data)
        if data.ndim != 2:
            raise ValueError(f"Expected a 2D array, got {data.ndim}D")
        self._data = data
        self._geolocation = geolocation
        self.filepath = Path(name)
        self.metadata: Dict[str, Any] = {}
        self._nodata = nodata
        self._load_metadata()

    def _load_metadata(self) -> None:
        self.metadata = {
            'format': 'array',
            'rows': self._data.shape[0],
            'cols': self._data.shape[1],
            'dtype': str(self._data.dtype),
            'nodata': self._nodata,
        }
        if self._geolocation:
            self.metadata.update(self._geolocation)

    def read_chip(
        self,
        row_start: int,
        row_end: int,
        col_start: int,
        col_end: int,
    ) -> np.ndarray:
        self._check_bounds(row_start, row_end, col_start, col_end)
        return self._data[row_start:row_end, col_start:col_end].copy()

    def get_dtype(self) -> np.dtype:
        return self._data.dtype

    def get_geolocation(self) -> Optional[Dict[str, Any]]:
        return self._geolocation


class NumpyReader(ImageReader):
    """Read chips from a 2D ``.npy`` file through a read-only memory map."""

    def _load_metadata(self) -> None:
        self._data = np.load(str(self.filepath), mmap_mode='r')
        if self._data.ndim != 2:
            raise ValueError(
                f"Expected a 2D array in {self.filepath}, "
                f"got {self._data.ndim}D"
            )
        self.metadata = {
            'format': 'npy',
            'rows': self._data.shape[0],
            'cols': self._data.shape[1],
            'dtype': str(self._data.dtype),
        }
        sidecar = _sidecar_path(self.filepath)
        if sidecar.is_file():
            with open(sidecar) as f:
                extra = json.load(f)
            if 'nodata' in extra:
                self.metadata['nodata'] = extra['nodata']
            if extra.get('geolocation'):
                self.metadata['geolocation'] = extra['geolocation']

    def read_chip(
        self,
        row_start: int,
        row_end: int,
        col_start: int,
        col_end: int,
    ) -> np.ndarray:
        self._check_bounds(row_start, row_end, col_start, col_end)
        return np.array(self._data[row_start:row_end, col_start:col_end])

    def get_dtype(self) -> np.dtype:
        return self._data.dtype

    def get_geolocation(self) -> Optional[Dict[str, Any]]:
        """Sidecar geolocation: six affine coefficients and a WKT CRS."""
        return self.metadata.get('geolocation')

    def close(self) -> None:
        self._data = None


class NumpyWriter(ImageWriter):
    """Write a 2D array to a ``.npy`` file chip by chip.

    The output is created as a writable memory map of the full shape, so
    only the chips being written are resident. On ``close`` a JSON
    sidecar (``<file>.npy.json``) records shape, dtype, geolocation, and
    any extra metadata.

    Parameters
    ----------
    filepath : str or Path
        Output ``.npy`` path.
    shape : Tuple[int, int]
        Output ``(rows, cols)``.
    dtype : str or np.dtype
        Output pixel type. Default float32.
    geolocation : Dict[str, Any], optional
        Geolocation information included in the sidecar.
    metadata : Dict[str, Any], optional
        Additional sidecar entries (e.g. ``nodata``, processing params).

    Examples
    --------
    >>> with NumpyWriter('warped.npy', (512, 512)) as writer:
    ...     writer.write_chip(chip, 0, 0)
    """

    def __init__(
        self,
        filepath: Union[str, Path],
        shape: Tuple[int, int],
        dtype: Union[str, np.dtype] = np.float32,
        geolocation: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(filepath, shape, dtype, geolocation)
        self.metadata = dict(metadata or {})
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        self._data = np.lib.format.open_memmap(
            str(self.filepath), mode='w+', dtype=self.dtype, shape=self.shape,
        )

    def write_chip(
        self,
        data: np.ndarray,
        row_start: int,
        col_start: int,
    ) -> None:
        self._check_chip(data, row_start, col_start)
        self._data[row_start:row_start + data.shape[0],
                   col_start:col_start + data.shape[1]] = data

    def close(self) -> None:
        if self._data is None:
            return
        self._data.flush()
        self._data = None
        write_sidecar(self.filepath, {
            'shape': list(self.shape),
            'dtype': str(self.dtype),
            **({'geolocation': encode_geolocation(self.geolocation)}
               if self.geolocation else {}),
            **self.metadata,
        })


def _sidecar_path(filepath: Path) -> Path:
    return filepath.with_suffix(filepath.suffix + '.json')


def write_sidecar(filepath: Union[str, Path], sidecar: Dict[str, Any]) -> Path:
    """Write a JSON sidecar next to *filepath*.

    Returns
    -------
    Path
        The sidecar path (``<filepath>.json``).
    """
    path = _sidecar_path(Path(filepath))
    with open(path, 'w') as f:
        json.dump(sidecar, f, indent=2, default=str)
    return path


def read_sidecar(filepath: Union[str, Path]) -> Dict[str, Any]:
    """Read the JSON sidecar next to *filepath*, or ``{}`` if absent."""
    path = _sidecar_path(Path(filepath))
    if not path.is_file():
        return {}
    with open(path) as f:
        return json.load(f)


def encode_geolocation(geolocation: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-ready copy of a ``{'transform', 'crs'}`` geolocation.

    The affine transform becomes its six coefficients ``[a, b, c, d, e, f]``
    and a CRS object becomes WKT. ``GeoReference.from_reader`` accepts
    both forms back.
    """
    encoded = dict(geolocation)
    transform = encoded.get('transform')
    if transform is not None:
        encoded['transform'] = [float(v) for v in tuple(transform)[:6]]
    crs = encoded.get('crs')
    if crs is not None and not isinstance(crs, str):
        encoded['crs'] = crs.to_wkt()
    return encoded
