# -*- coding: utf-8 -*-
"""
IO Module - Chip-oriented raster readers and writers.

Provides the ``ImageReader`` / ``ImageWriter`` interfaces, concrete
GeoTIFF and NumPy implementations, disparity field persistence, and the
``open_image`` / ``get_writer`` factories that select an implementation
from the file extension.

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

# Standard library
import importlib
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

# Third-party
import numpy as np

# orbreg internal
from orbreg.IO.base import ImageReader, ImageWriter
from orbreg.IO.geotiff import GeoTIFFReader
from orbreg.IO.numpy_io import ArrayReader, NumpyReader
from orbreg.IO.tiling import ChipRegion, StripRegion, strip_regions, tile_regions


# Writer registry: maps format strings to (module_path, class_name)
_WRITER_REGISTRY: Dict[str, tuple] = {
    'geotiff': ('orbreg.IO.geotiff', 'GeoTIFFWriter'),
    'numpy': ('orbreg.IO.numpy_io', 'NumpyWriter'),
}

# Extension-to-format mapping for auto-detection
_EXTENSION_MAP: Dict[str, str] = {
    '.tif': 'geotiff',
    '.tiff': 'geotiff',
    '.geotiff': 'geotiff',
    '.npy': 'numpy',
}


def format_for_path(filepath: Union[str, Path]) -> str:
    """Writer format implied by the extension of *filepath*.

    Raises
    ------
    ValueError
        If the extension is not recognized.
    """
    ext = Path(filepath).suffix.lower()
    if ext not in _EXTENSION_MAP:
        raise ValueError(
            f"Cannot determine format from extension '{ext}'. "
            f"Supported extensions: {sorted(_EXTENSION_MAP.keys())}."
        )
    return _EXTENSION_MAP[ext]


def get_writer(
    filepath: Union[str, Path],
    shape: Tuple[int, int],
    dtype: Union[str, np.dtype] = np.float32,
    geolocation: Optional[Dict[str, Any]] = None,
    format: Optional[str] = None,
) -> ImageWriter:
    """Create an ImageWriter for *filepath*.

    Uses lazy imports so optional dependencies are only required when the
    corresponding writer is requested.

    Parameters
    ----------
    filepath : str or Path
        Output file path.
    shape : Tuple[int, int]
        Output ``(rows, cols)``.
    dtype : str or np.dtype
        Output pixel type. Default float32.
    geolocation : Dict[str, Any], optional
        ``'transform'`` and ``'crs'`` for georeferenced outputs.
    format : str, optional
        ``'geotiff'`` or ``'numpy'``. Auto-detected from the extension
        when omitted.

    Returns
    -------
    ImageWriter
        Concrete writer instance for the requested format.

    Raises
    ------
    ValueError
        If the format is not recognized.

    Examples
    --------
    >>> from orbreg.IO import get_writer
    >>> with get_writer('out-R.tif', (1024, 1024)) as writer:
    ...     writer.write_chip(chip, 0, 0)
    """
    key = (format or format_for_path(filepath)).lower()
    if key not in _WRITER_REGISTRY:
        raise ValueError(
            f"Unknown writer format: {format!r}. "
            f"Supported formats: {sorted(_WRITER_REGISTRY.keys())}"
        )
    module_path, class_name = _WRITER_REGISTRY[key]
    module = importlib.import_module(module_path)
    writer_cls = getattr(module, class_name)
    return writer_cls(filepath, shape, dtype=dtype, geolocation=geolocation)


def open_image(filepath: Union[str, Path]) -> ImageReader:
    """Open a supported raster image file.

    ``.npy`` files are memory-mapped; everything else is handed to
    rasterio, which covers GeoTIFF and the other GDAL formats.

    Parameters
    ----------
    filepath : str or Path
        Path to raster image file.

    Returns
    -------
    ImageReader
        Appropriate reader instance.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file cannot be opened.

    Examples
    --------
    >>> from orbreg.IO import open_image
    >>> with open_image('M123_left.tif') as reader:
    ...     chip = reader.read_chip(0, 512, 0, 512)
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filepath}")
    if filepath.suffix.lower() == '.npy':
        return NumpyReader(filepath)
    return GeoTIFFReader(filepath)


__all__ = [
    'ImageReader',
    'ImageWriter',
    'ArrayReader',
    'NumpyReader',
    'GeoTIFFReader',
    'ChipRegion',
    'StripRegion',
    'tile_regions',
    'strip_regions',
    'format_for_path',
    'get_writer',
    'open_image',
]
