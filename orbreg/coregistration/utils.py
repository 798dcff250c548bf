# -*- coding: utf-8 -*-
"""
Co-Registration Utilities - Point transforms, residuals, and warping.

All points here use the ``(x, y) = (col, row)`` convention of the
homography files. ``warp_image`` resamples an in-memory array;
``warp_to_writer`` does the same tile by tile from an ``ImageReader`` into
an ``ImageWriter``, reading only the source chip each output tile needs.

Dependencies
------------
scipy

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
2026-10-08

Modified
--------
2026-10-17
"""

# Standard library
import logging
from typing import Callable, Optional, Tuple

# Third-party
import numpy as np
from scipy.ndimage import map_coordinates

# orbreg internal
from orbreg.IO.base import ImageReader, ImageWriter
from orbreg.IO.tiling import tile_regions

logger = logging.getLogger(__name__)

#: Maps output ``(x, y)`` arrays to source ``(x, y)`` arrays.
CoordinateMap = Callable[[np.ndarray, np.ndarray], Tuple[np.ndarray, np.ndarray]]


def apply_transform_to_points(
    points: np.ndarray,
    transform_matrix: np.ndarray,
) -> np.ndarray:
    """Apply a 3x3 projective transform to a set of 2D points.

    Parameters
    ----------
    points : np.ndarray
        Points to transform. Shape (N, 2), columns are (x, y).
    transform_matrix : np.ndarray
        Projective (3, 3) transform matrix.

    Returns
    -------
    np.ndarray
        Transformed points. Shape (N, 2), columns are (x, y).
    """
    if transform_matrix.shape != (3, 3):
        raise ValueError(
            f"Transform matrix must be (3, 3), got {transform_matrix.shape}"
        )
    points = np.asarray(points, dtype=np.float64)
    ones = np.ones((points.shape[0], 1))
    pts_h = np.hstack([points, ones])
    result_h = pts_h @ transform_matrix.T
    w = result_h[:, 2:3]
    w = np.where(np.abs(w) < 1e-12, 1e-12, w)
    return result_h[:, :2] / w


def compute_residuals(
    dst_points: np.ndarray,
    src_points: np.ndarray,
    transform_matrix: np.ndarray,
) -> np.ndarray:
    """Per-point reprojection error of ``src_points`` mapped onto ``dst_points``.

    Returns
    -------
    np.ndarray
        Euclidean residuals in pixels. Shape (N,).
    """
    transformed = apply_transform_to_points(src_points, transform_matrix)
    diff = dst_points - transformed
    return np.sqrt(np.sum(diff ** 2, axis=1))


def compute_rms(residuals: np.ndarray) -> float:
    """Root mean square of residual errors, 0.0 for an empty set."""
    if residuals.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(residuals ** 2)))


def homography_coordinate_map(transform_matrix: np.ndarray) -> CoordinateMap:
    """Inverse mapping for warping with a source-to-output homography.

    The returned callable maps output pixel ``p`` to ``H^-1 p``.
    """
    inv_matrix = np.linalg.inv(transform_matrix)

    def _map(x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        pts = np.column_stack([x.ravel(), y.ravel()])
        src = apply_transform_to_points(pts, inv_matrix)
        return src[:, 0].reshape(x.shape), src[:, 1].reshape(x.shape)

    return _map


def _inside(
    src_x: np.ndarray,
    src_y: np.ndarray,
    shape: Tuple[int, int],
) -> np.ndarray:
    """Source coordinates within one pixel of the image footprint."""
    rows, cols = shape
    return (src_x > -1) & (src_x < cols) & (src_y > -1) & (src_y < rows)


def _interpolate(
    data: np.ndarray,
    x: np.ndarray,
    y: np.ndarray,
    order: int,
) -> np.ndarray:
    """Interpolate *data* at ``(x, y)``, clamping to the outer pixel centers.

    Coordinates a fraction of a pixel outside ``[0, n-1]`` (homography
    round-off, or the half pixel past the last center) take the edge
    value instead of the fill value.
    """
    rows, cols = data.shape
    return map_coordinates(
        data,
        [np.clip(y, 0, rows - 1), np.clip(x, 0, cols - 1)],
        order=order,
        mode='nearest',
    )


def _sample(
    reader: ImageReader,
    src_x: np.ndarray,
    src_y: np.ndarray,
    order: int,
    fill_value: float,
    prepare: Optional[Callable[[np.ndarray], np.ndarray]] = None,
) -> np.ndarray:
    """Interpolate *reader* at the given source coordinates.

    Reads only the bounding chip of the in-bounds coordinates.
    """
    rows, cols = reader.get_shape()
    out = np.full(src_x.shape, fill_value, dtype=np.float64)
    inside = _inside(src_x, src_y, (rows, cols))
    if not inside.any():
        return out

    pad = order + 1
    c0 = max(int(np.floor(src_x[inside].min())) - pad, 0)
    c1 = min(int(np.ceil(src_x[inside].max())) + pad + 1, cols)
    r0 = max(int(np.floor(src_y[inside].min())) - pad, 0)
    r1 = min(int(np.ceil(src_y[inside].max())) + pad + 1, rows)
    chip = reader.read_chip(r0, r1, c0, c1).astype(np.float64)
    if prepare is not None:
        chip = prepare(chip)

    out[inside] = _interpolate(chip, src_x[inside] - c0, src_y[inside] - r0,
                               order)
    return out


def warp_image(
    image: np.ndarray,
    transform_matrix: np.ndarray,
    output_shape: Optional[Tuple[int, int]] = None,
    order: int = 1,
    fill_value: float = 0.0,
) -> np.ndarray:
    """Warp an in-memory image by a source-to-output homography.

    Parameters
    ----------
    image : np.ndarray
        Input image, shape (rows, cols).
    transform_matrix : np.ndarray
        3x3 homography mapping input ``(x, y)`` to output ``(x, y)``.
    output_shape : Tuple[int, int], optional
        Output (rows, cols). Defaults to the input shape.
    order : int
        Interpolation order: 0=nearest, 1=bilinear, 3=bicubic.
    fill_value : float
        Value for pixels that map outside the input.

    Returns
    -------
    np.ndarray
        Warped float64 image.
    """
    if output_shape is None:
        output_shape = image.shape[:2]
    out_rows, out_cols = output_shape
    y, x = np.mgrid[0:out_rows, 0:out_cols].astype(np.float64)
    src_x, src_y = homography_coordinate_map(transform_matrix)(x, y)
    image = np.asarray(image, dtype=np.float64)
    out = np.full((out_rows, out_cols), fill_value, dtype=np.float64)
    inside = _inside(src_x, src_y, image.shape[:2])
    out[inside] = _interpolate(image, src_x[inside], src_y[inside], order)
    return out


def warp_to_writer(
    reader: ImageReader,
    coordinate_map: CoordinateMap,
    writer: ImageWriter,
    tile_size: int = 512,
    order: int = 1,
    fill_value: float = 0.0,
    crop_offset: Tuple[int, int] = (0, 0),
    prepare: Optional[Callable[[np.ndarray], np.ndarray]] = None,
) -> None:
    """Resample *reader* into *writer* one output tile at a time.

    Parameters
    ----------
    reader : ImageReader
        Source image.
    coordinate_map : CoordinateMap
        Maps output-frame ``(x, y)`` to source ``(x, y)``; see
        ``homography_coordinate_map``.
    writer : ImageWriter
        Destination; its ``shape`` defines the output extent.
    tile_size : int
        Output tile edge length.
    order : int
        Interpolation order.
    fill_value : float
        Value for output pixels with no source.
    crop_offset : Tuple[int, int]
        ``(x, y)`` of the writer's origin in the output frame, used when
        the output is a crop of a larger frame.
    prepare : Callable, optional
        Applied to each source chip before interpolation, e.g. to replace
        nodata and normalize radiometry.
    """
    out_rows, out_cols = writer.shape
    ox, oy = crop_offset
    for region in tile_regions((out_rows, out_cols), (tile_size, tile_size)):
        y, x = np.mgrid[region.row_start:region.row_end,
                        region.col_start:region.col_end].astype(np.float64)
        src_x, src_y = coordinate_map(x + ox, y + oy)
        tile = _sample(reader, src_x, src_y, order, fill_value, prepare)
        writer.write_chip(tile, region.row_start, region.col_start)
    logger.debug("Warped %s into %s", reader.filepath, writer.filepath)
