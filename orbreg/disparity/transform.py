# -*- coding: utf-8 -*-
"""
Disparity Alignment - Undo pre-alignment warps on disparity fields.

Stereo correlation runs on a left image and a right image that was warped
into the left image's frame. ``DisparityAligner`` performs that warp
(``forward``) and later maps the measured disparities back onto the
original, unwarped right image (``reverse``).

Two branches are selected per image pair by ``is_map_projected``:

- map-projected: both images carry a real map projection, the right image
  is resampled into the left image's projection with a ``GeoTransform``,
  and no alignment file is involved;
- unprojected: a homography is persisted to ``<prefix>-align.txt`` on the
  forward pass and must be read back on the reverse pass.

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

# Standard library
import logging
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

# Third-party
import numpy as np

# orbreg internal
from orbreg.coregistration.alignment import (
    read_alignment_matrix,
    write_alignment_matrix,
)
from orbreg.coregistration.utils import (
    apply_transform_to_points,
    homography_coordinate_map,
    warp_to_writer,
)
from orbreg.disparity.field import DisparityField
from orbreg.exceptions import ValidationError
from orbreg.geolocation.georef import GeoReference, GeoTransform, is_map_projected
from orbreg.IO import ImageReader, get_writer

logger = logging.getLogger(__name__)


class HomographyTransform:
    """Point transform defined by a 3x3 homography.

    ``forward`` applies ``H`` (right image to left image) and ``reverse``
    applies ``H^-1``.

    Parameters
    ----------
    matrix : np.ndarray
        3x3 homography.

    Raises
    ------
    ValidationError
        If the matrix is not 3x3 or is singular.
    """

    def __init__(self, matrix: np.ndarray) -> None:
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (3, 3):
            raise ValidationError(f"Homography must be 3x3, got {matrix.shape}")
        try:
            self.inverse = np.linalg.inv(matrix)
        except np.linalg.LinAlgError as e:
            raise ValidationError(f"Homography is singular: {e}") from e
        self.matrix = matrix

    @staticmethod
    def _apply(
        matrix: np.ndarray,
        x: np.ndarray,
        y: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        out = apply_transform_to_points(np.column_stack([x.ravel(), y.ravel()]),
                                        matrix)
        return out[:, 0].reshape(x.shape), out[:, 1].reshape(y.shape)

    def forward(self, x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        return self._apply(self.matrix, x, y)

    def reverse(self, x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        return self._apply(self.inverse, x, y)


def transform_disparities(field: DisparityField, transform) -> DisparityField:
    """Re-express disparities through a point transform.

    For every valid cell ``p`` the new disparity is
    ``transform.reverse(p + d) - p``: the matched pixel ``p + d`` in the
    aligned frame is mapped back to the original right image. Invalid cells
    stay invalid; cells whose mapped position is not finite become invalid.

    Parameters
    ----------
    field : DisparityField
        Disparities measured against the aligned right image.
    transform : HomographyTransform or GeoTransform
        Anything with ``reverse(x, y) -> (x, y)`` over arrays.

    Returns
    -------
    DisparityField
        New field of the same shape.
    """
    rows, cols = field.shape
    y, x = np.mgrid[0:rows, 0:cols].astype(np.float64)
    valid = field.valid
    dx = np.zeros(field.shape)
    dy = np.zeros(field.shape)
    if valid.any():
        px = x[valid] + field.dx[valid]
        py = y[valid] + field.dy[valid]
        qx, qy = transform.reverse(px, py)
        dx[valid] = np.asarray(qx) - x[valid]
        dy[valid] = np.asarray(qy) - y[valid]
    return DisparityField(dx, dy, valid)


def remove_invalid_pixels(
    field: DisparityField,
    cols: int,
    rows: int,
) -> DisparityField:
    """Invalidate cells whose target ``p + d`` lies outside ``cols x rows``.

    Parameters
    ----------
    field : DisparityField
        Input field.
    cols, rows : int
        Dimensions of the image the disparities point into.
    """
    r, c = np.mgrid[0:field.rows, 0:field.cols]
    tx = c + field.dx
    ty = r + field.dy
    inside = (tx >= 0) & (tx < cols) & (ty >= 0) & (ty < rows)
    return DisparityField(field.dx, field.dy, field.valid & inside)


def disparity_targets(
    field: DisparityField,
    origin: Tuple[int, int] = (0, 0),
) -> Tuple[np.ndarray, np.ndarray]:
    """Nearest right-image pixel ``(tx, ty)`` of every cell of *field*.

    *origin* is the ``(row, col)`` of the field's first cell in the left
    image, for fields that are tiles of a larger one.
    """
    r, c = np.mgrid[0:field.rows, 0:field.cols]
    tx = np.rint(c + origin[1] + field.dx).astype(np.int64)
    ty = np.rint(r + origin[0] + field.dy).astype(np.int64)
    return tx, ty


def mask_disparities(
    field: DisparityField,
    left_mask: np.ndarray,
    right_mask: np.ndarray,
    origin: Tuple[int, int] = (0, 0),
    right_origin: Tuple[int, int] = (0, 0),
) -> DisparityField:
    """Invalidate cells that touch masked-out pixels of either image.

    A cell ``p`` is kept only if ``left_mask[p]`` is set and
    ``right_mask`` is set at the nearest pixel to ``p + d``; targets outside
    the right mask are invalidated.

    Parameters
    ----------
    field : DisparityField
        Input field, same shape as ``left_mask``.
    left_mask : np.ndarray
        Usable-pixel mask of the left image (nonzero = usable).
    right_mask : np.ndarray
        Usable-pixel mask of the right image.
    origin : Tuple[int, int]
        ``(row, col)`` of *field* and *left_mask* in the left image.
    right_origin : Tuple[int, int]
        ``(row, col)`` of *right_mask* in the right image, when it is a
        chip.

    Raises
    ------
    ValidationError
        If ``left_mask`` does not match the field shape.
    """
    left_mask = np.asarray(left_mask) != 0
    right_mask = np.asarray(right_mask) != 0
    if left_mask.shape != field.shape:
        raise ValidationError(
            f"Left mask shape {left_mask.shape} does not match field "
            f"{field.shape}"
        )
    tx, ty = disparity_targets(field, origin)
    tx -= right_origin[1]
    ty -= right_origin[0]
    rrows, rcols = right_mask.shape
    inside = (tx >= 0) & (tx < rcols) & (ty >= 0) & (ty < rrows)
    right_ok = np.zeros(field.shape, dtype=bool)
    right_ok[inside] = right_mask[ty[inside], tx[inside]]
    return DisparityField(field.dx, field.dy,
                          field.valid & left_mask & right_ok)


def make_normalizer(
    bounds: Optional[Tuple[float, float]],
    nodata: Optional[float] = None,
) -> Callable[[np.ndarray], np.ndarray]:
    """Chip preparation that maps ``[lo, hi]`` onto ``[0, 1]``.

    Nodata and non-finite pixels are replaced by ``lo`` before scaling, so
    they become 0. Without bounds only that replacement is done, using 0.
    """
    def _prepare(chip: np.ndarray) -> np.ndarray:
        chip = np.asarray(chip, dtype=np.float64)
        bad = ~np.isfinite(chip)
        if nodata is not None:
            bad |= chip == nodata
        if bounds is None:
            return np.where(bad, 0.0, chip)
        lo, hi = bounds
        chip = np.where(bad, lo, chip)
        if hi > lo:
            chip = (chip - lo) / (hi - lo)
        else:
            chip = np.zeros_like(chip)
        return np.clip(chip, 0.0, 1.0)

    return _prepare


class DisparityAligner:
    """Forward image alignment and reverse disparity alignment for a pair.

    Parameters
    ----------
    out_prefix : str or Path
        Run output prefix; the alignment matrix lives at
        ``<out_prefix>-align.txt``.
    tile_size : int
        Output tile edge used when warping.
    logger : logging.Logger, optional
        Logger used instead of the module logger.

    Examples
    --------
    >>> aligner = DisparityAligner('run/out')
    >>> aligner.forward(left, right, 'run/out-L.tif', 'run/out-R.tif', H)
    >>> corrected = aligner.reverse(field, right.get_shape())
    """

    def __init__(
        self,
        out_prefix: Union[str, Path],
        tile_size: int = 512,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.out_prefix = str(out_prefix)
        self.tile_size = tile_size
        self.log = logger or globals()['logger']

    @staticmethod
    def is_map_projected(
        georef_a: Optional[GeoReference],
        georef_b: Optional[GeoReference],
    ) -> bool:
        """Whether both images carry a non-identity map projection."""
        return is_map_projected(georef_a, georef_b)

    def forward(
        self,
        left: ImageReader,
        right: ImageReader,
        left_out: Union[str, Path],
        right_out: Union[str, Path],
        matrix: Optional[np.ndarray] = None,
        bounds: Optional[Tuple[float, float]] = None,
        georef_a: Optional[GeoReference] = None,
        georef_b: Optional[GeoReference] = None,
    ) -> np.ndarray:
        """Write normalized left and aligned right images.

        Both outputs have the left image's shape. In the unprojected branch
        *matrix* (identity when None) maps right pixels onto left pixels
        and is persisted as the alignment file before warping.

        Returns
        -------
        np.ndarray
            The homography used, or the identity in the map-projected
            branch.
        """
        shape = left.get_shape()
        if self.is_map_projected(georef_a, georef_b):
            self.log.info("Map projected images detected. Placing both "
                          "images into the same map projection.")
            coordinate_map = GeoTransform(georef_b, georef_a).reverse
            matrix = np.eye(3)
            geolocation = left.get_geolocation()
        else:
            self.log.info("Unprojected images detected. Aligning images "
                          "with a homography.")
            matrix = np.eye(3) if matrix is None else np.asarray(matrix)
            path = write_alignment_matrix(self.out_prefix, matrix)
            self.log.info("Wrote alignment matrix to %s", path)
            coordinate_map = homography_coordinate_map(matrix)
            geolocation = None

        identity = homography_coordinate_map(np.eye(3))
        with get_writer(left_out, shape, geolocation=geolocation) as writer:
            warp_to_writer(left, identity, writer, tile_size=self.tile_size,
                           order=0,
                           prepare=make_normalizer(bounds, left.get_nodata()))
        with get_writer(right_out, shape, geolocation=geolocation) as writer:
            warp_to_writer(right, coordinate_map, writer,
                           tile_size=self.tile_size,
                           prepare=make_normalizer(bounds, right.get_nodata()))
        self.log.info("Wrote pre-aligned images %s and %s", left_out, right_out)
        return matrix

    def reverse(
        self,
        field: DisparityField,
        right_shape: Tuple[int, int],
        georef_a: Optional[GeoReference] = None,
        georef_b: Optional[GeoReference] = None,
    ) -> DisparityField:
        """Express *field* against the original, unwarped right image.

        Parameters
        ----------
        field : DisparityField
            Disparities measured against the aligned right image.
        right_shape : Tuple[int, int]
            ``(rows, cols)`` of the original right image.
        georef_a, georef_b : GeoReference, optional
            Georeferences of the left and right images.

        Raises
        ------
        AlignmentFileError
            In the unprojected branch, if the alignment file is missing.
        """
        if self.is_map_projected(georef_a, georef_b):
            self.log.info("Map projected images detected. Transforming "
                          "disparities between map projections.")
            return transform_disparities(field, GeoTransform(georef_b, georef_a))

        self.log.info("Unprojected images detected. Removing the effects of "
                      "interest point alignment from the disparities.")
        matrix = read_alignment_matrix(self.out_prefix)
        self.log.debug("Alignment matrix:\n%s", matrix)
        result = transform_disparities(field, HomographyTransform(matrix))
        rows, cols = right_shape
        return remove_invalid_pixels(result, cols, rows)
