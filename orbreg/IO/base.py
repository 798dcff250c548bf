# -*- coding: utf-8 -*-
"""
IO Base Classes - Abstract interfaces for raster readers and writers.

Defines the chip-oriented reader and writer interfaces through which every
registration stage touches pixels. Readers are lazy: metadata is loaded at
construction and pixels are only read one chip at a time, so arbitrarily
large orbital images never need to be buffered whole.

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
2026-10-15
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Tuple, Union, Any

import numpy as np


class ImageReader(ABC):
    """
    Abstract base class for single-band raster readers.

    Attributes
    ----------
    filepath : Path
        Path to the image file
    metadata : Dict[str, Any]
        Image metadata extracted from the file. Always contains ``'rows'``
        and ``'cols'``; georeferenced formats add ``'transform'`` and
        ``'crs'``, and may add ``'nodata'``.

    Notes
    -----
    Implementations must read lazily. Callers are expected to iterate over
    fixed-size chips (see ``orbreg.IO.tiling``) instead of ``read_full``.
    """

    def __init__(self, filepath: Union[str, Path]) -> None:
        """
        Initialize the image reader.

        Parameters
        ----------
        filepath : Union[str, Path]
            Path to the image file

        Raises
        ------
        FileNotFoundError
            If the specified filepath does not exist
        """
        self.filepath = Path(filepath)
        if not self.filepath.exists():
            raise FileNotFoundError(f"File not found: {self.filepath}")

        self.metadata: Dict[str, Any] = {}
        self._load_metadata()

    @abstractmethod
    def _load_metadata(self) -> None:
        """
        Load metadata from the image file into ``self.metadata``.
        """
        pass

    @abstractmethod
    def read_chip(
        self,
        row_start: int,
        row_end: int,
        col_start: int,
        col_end: int,
    ) -> np.ndarray:
        """
        Read a spatial subset (chip) of the first band.

        Parameters
        ----------
        row_start : int
            Starting row index (inclusive)
        row_end : int
            Ending row index (exclusive)
        col_start : int
            Starting column index (inclusive)
        col_end : int
            Ending column index (exclusive)

        Returns
        -------
        np.ndarray
            Chip with shape (row_end - row_start, col_end - col_start)

        Raises
        ------
        ValueError
            If indices are out of bounds or invalid
        """
        pass

    def read_full(self) -> np.ndarray:
        """
        Read the entire image.

        Notes
        -----
        Use only for small images and tests; pipeline stages read chips.
        """
        rows, cols = self.get_shape()
        return self.read_chip(0, rows, 0, cols)

    def get_shape(self) -> Tuple[int, int]:
        """
        Get the shape of the image.

        Returns
        -------
        Tuple[int, int]
            ``(rows, cols)``
        """
        return (self.metadata['rows'], self.metadata['cols'])

    @abstractmethod
    def get_dtype(self) -> np.dtype:
        """
        Get the data type of the image.

        Returns
        -------
        np.dtype
            NumPy data type of the image pixels
        """
        pass

    def get_nodata(self) -> Optional[float]:
        """
        Nodata value of the image, or None if the format has none.
        """
        return self.metadata.get('nodata')

    def get_geolocation(self) -> Optional[Dict[str, Any]]:
        """
        Get georeferencing information for the image.

        Returns
        -------
        Optional[Dict[str, Any]]
            Dictionary with ``'transform'`` (rasterio ``Affine``) and
            ``'crs'``, or None if the image is not georeferenced.
        """
        return None

    def _check_bounds(
        self,
        row_start: int,
        row_end: int,
        col_start: int,
        col_end: int,
    ) -> None:
        """Raise ``ValueError`` for chips outside the image."""
        rows, cols = self.get_shape()
        if row_start < 0 or col_start < 0:
            raise ValueError("Start indices must be non-negative")
        if row_end > rows or col_end > cols:
            raise ValueError("End indices exceed image dimensions")
        if row_end < row_start or col_end < col_start:
            raise ValueError("End indices must not precede start indices")

    def close(self) -> None:
        """
        Close the reader and release resources.
        """
        pass

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False


class ImageWriter(ABC):
    """
    Abstract base class for single-band raster writers.

    Writers are created with the full output shape so chips can be written
    in any order as they are produced.

    Attributes
    ----------
    filepath : Path
        Path where the image will be written
    shape : Tuple[int, int]
        Output ``(rows, cols)``
    dtype : np.dtype
        Output pixel type
    """

    def __init__(
        self,
        filepath: Union[str, Path],
        shape: Tuple[int, int],
        dtype: Union[str, np.dtype] = np.float32,
        geolocation: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the image writer.

        Parameters
        ----------
        filepath : Union[str, Path]
            Path where the image will be written
        shape : Tuple[int, int]
            Output ``(rows, cols)``
        dtype : str or np.dtype, default=float32
            Output pixel type
        geolocation : Optional[Dict[str, Any]], default=None
            ``'transform'`` and ``'crs'`` for georeferenced formats
        """
        self.filepath = Path(filepath)
        self.shape = (int(shape[0]), int(shape[1]))
        self.dtype = np.dtype(dtype)
        self.geolocation = geolocation

    @abstractmethod
    def write_chip(
        self,
        data: np.ndarray,
        row_start: int,
        col_start: int,
    ) -> None:
        """
        Write a spatial subset of the output.

        Parameters
        ----------
        data : np.ndarray
            Chip data, shape (rows, cols)
        row_start : int
            Starting row index in the output
        col_start : int
            Starting column index in the output

        Raises
        ------
        ValueError
            If chip location is out of bounds
        """
        pass

    def write(self, data: np.ndarray) -> None:
        """
        Write a whole image in one chip.
        """
        if data.shape != self.shape:
            raise ValueError(
                f"Data shape {data.shape} does not match writer shape "
                f"{self.shape}"
            )
        self.write_chip(data, 0, 0)

    def _check_chip(self, data: np.ndarray, row_start: int, col_start: int) -> None:
        """Raise ``ValueError`` for chips outside the output."""
        if data.ndim != 2:
            raise ValueError(f"Chip must be 2D, got {data.ndim}D")
        if row_start < 0 or col_start < 0:
            raise ValueError("Start indices must be non-negative")
        if (row_start + data.shape[0] > self.shape[0]
                or col_start + data.shape[1] > self.shape[1]):
            raise ValueError("Chip exceeds output dimensions")

    def close(self) -> None:
        """
        Close the writer and release resources.
        """
        pass

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False
