# -*- coding: utf-8 -*-
"""
Stereo Session - Pipeline hooks around correlation of an image pair.

``StereoSession`` owns one left/right image pair and an output prefix and
runs the stages that bracket stereo correlation:

- ``pre_preprocessing_hook`` normalizes both images to a shared
  ``[lo, hi]`` range and writes ``<prefix>-L`` and a right image aligned
  to it as ``<prefix>-R`` (common map projection when both inputs are
  map-projected, otherwise an interest point homography);
- ``pre_filtering_hook`` optionally masks the raw disparity with the
  saturation masks ``<prefix>-lMask`` / ``<prefix>-rMask``;
- ``pre_pointcloud_hook`` undoes the pre-alignment so the disparity
  refers to the original right image, writing ``<prefix>-F-corrected``.

Camera construction is not done here. ``camera_model`` classifies the
camera descriptor with ``classify_camera_file`` and hands off to the
factory registered for that kind.

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
2026-10-12

Modified
--------
2026-10-17
"""

# Standard library
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

# Third-party
import numpy as np

# orbreg internal
from orbreg.coregistration.alignment import (
    AlignmentSettings,
    determine_image_alignment,
)
from orbreg.coregistration.ransac import RobustHomographyEstimator
from orbreg.disparity.field import DisparityField
from orbreg.disparity.transform import (
    DisparityAligner,
    disparity_targets,
    mask_disparities,
)
from orbreg.exceptions import AlignmentFileError, ValidationError
from orbreg.geolocation.georef import GeoReference
from orbreg.interest_points.cache import InterestPointStore
from orbreg.interest_points.detect import FeatureDetector
from orbreg.interest_points.match import InterestPointMatcher
from orbreg.IO import ImageReader, open_image
from orbreg.IO.disparity import read_disparity, write_disparity
from orbreg.IO.tiling import tile_regions
from orbreg.store import FileStore
from orbreg.vocabulary import CameraModelKind

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
CameraFactory = Callable[[str, str], Any]

ADJUSTED_CAMERA_SUFFIX = '.isis_adjust'


def classify_camera_file(camera_file: PathLike) -> CameraModelKind:
    """Kind of camera model described by *camera_file*.

    Files ending in ``.isis_adjust`` (any case) describe an adjusted
    model; anything else is a standard model.
    """
    if str(camera_file).lower().endswith(ADJUSTED_CAMERA_SUFFIX):
        return CameraModelKind.ADJUSTED
    return CameraModelKind.STANDARD


def image_min_max(
    reader: ImageReader,
    nodata: Optional[float] = None,
    tile_size: int = 1024,
) -> Tuple[float, float]:
    """Minimum and maximum of the usable pixels of *reader*.

    Non-finite pixels and pixels equal to *nodata* are ignored. The image
    is scanned tile by tile.

    Raises
    ------
    ValidationError
        If the image has no usable pixel.
    """
    lo, hi = np.inf, -np.inf
    for region in tile_regions(reader.get_shape(), (tile_size, tile_size)):
        chip = reader.read_chip(region.row_start, region.row_end,
                                region.col_start, region.col_end)
        usable = np.isfinite(chip)
        if nodata is not None:
            usable &= chip != nodata
        if usable.any():
            lo = min(lo, float(chip[usable].min()))
            hi = max(hi, float(chip[usable].max()))
    if lo > hi:
        raise ValidationError(f"{reader.filepath} has no usable pixels")
    return lo, hi


def mask_black_pixels(image: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Clear *mask* wherever *image* is zero or negative."""
    return (np.asarray(mask) != 0) & (np.asarray(image) > 0)


class StereoSession:
    """Pre- and post-correlation hooks for one image pair.

    Parameters
    ----------
    left_image, right_image : str or Path
        Input images.
    out_prefix : str or Path
        Prefix of every file the session writes.
    settings : AlignmentSettings, optional
        Alignment tunables. Defaults to ``AlignmentSettings()``.
    ip_store : InterestPointStore, optional
        Cached detection and matching. Built from *settings* on first use,
        caching beside the left image, when not supplied.
    estimator : RobustHomographyEstimator, optional
        Robust fitter. Built from *settings* when not supplied.
    camera_factories : Mapping[CameraModelKind, Callable], optional
        Constructors called as ``factory(image_file, camera_file)``.
    image_extension : str
        Extension of written images; ``'.tif'`` or ``'.npy'``.
    opener : Callable
        Opens an image path as an ``ImageReader``.
    tile_size : int
        Tile edge used for scanning and warping.
    logger : logging.Logger, optional
        Logger used instead of the module logger.

    Examples
    --------
    >>> session = StereoSession('left.tif', 'right.tif', 'run/out')
    >>> left_out, right_out = session.pre_preprocessing_hook()
    >>> # ... correlate left_out against right_out into run/out-D.npz ...
    >>> corrected = session.pre_pointcloud_hook('run/out-D.npz')
    """

    def __init__(
        self,
        left_image: PathLike,
        right_image: PathLike,
        out_prefix: PathLike,
        settings: Optional[AlignmentSettings] = None,
        ip_store: Optional[InterestPointStore] = None,
        estimator: Optional[RobustHomographyEstimator] = None,
        camera_factories: Optional[Mapping[CameraModelKind, CameraFactory]] = None,
        image_extension: str = '.tif',
        opener: Callable[[PathLike], ImageReader] = open_image,
        tile_size: int = 512,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.left_image = Path(left_image)
        self.right_image = Path(right_image)
        self.out_prefix = str(out_prefix)
        self.settings = settings or AlignmentSettings()
        self._ip_store = ip_store
        self.estimator = estimator or RobustHomographyEstimator(
            trials=self.settings.ransac_trials,
            inlier_threshold=self.settings.inlier_threshold,
        )
        self.camera_factories: Dict[CameraModelKind, CameraFactory] = dict(
            camera_factories or {}
        )
        self.image_extension = image_extension
        self.opener = opener
        self.tile_size = tile_size
        self.log = logger or globals()['logger']
        self.aligner = DisparityAligner(self.out_prefix, tile_size=tile_size,
                                        logger=self.log)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def output_path(self, suffix: str, extension: Optional[str] = None) -> Path:
        """``<out_prefix><suffix><extension>``."""
        ext = self.image_extension if extension is None else extension
        return Path(self.out_prefix + suffix + ext)

    @property
    def ip_store(self) -> InterestPointStore:
        if self._ip_store is None:
            s = self.settings
            self._ip_store = InterestPointStore(
                FileStore(self.left_image.parent),
                FeatureDetector(method=s.detector_method,
                                max_points=s.max_points_per_tile,
                                tile_size=s.detector_tile_size),
                InterestPointMatcher(ratio=s.match_ratio,
                                     cross_check=s.cross_check),
                opener=self.opener,
                logger=self.log,
            )
        return self._ip_store

    def _nodata(self, reader: ImageReader) -> Optional[float]:
        if self.settings.nodata_value is not None:
            return self.settings.nodata_value
        return reader.get_nodata()

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def pre_preprocessing_hook(
        self,
        left_image: Optional[PathLike] = None,
        right_image: Optional[PathLike] = None,
    ) -> Tuple[Path, Path]:
        """Write normalized, pre-aligned ``<prefix>-L`` and ``<prefix>-R``.

        Parameters
        ----------
        left_image, right_image : str or Path, optional
            Inputs; default to the session's pair.

        Returns
        -------
        Tuple[Path, Path]
            Left and right output paths.
        """
        left_path = Path(left_image) if left_image is not None else self.left_image
        right_path = Path(right_image) if right_image is not None else self.right_image
        left_out = self.output_path('-L')
        right_out = self.output_path('-R')

        with self.opener(left_path) as left, self.opener(right_path) as right:
            left_lo, left_hi = image_min_max(left, self._nodata(left),
                                             self.tile_size)
            right_lo, right_hi = image_min_max(right, self._nodata(right),
                                               self.tile_size)
            self.log.info("Normalization bounds: left [%g %g], right [%g %g]",
                          left_lo, left_hi, right_lo, right_hi)
            bounds = (min(left_lo, right_lo), min(left_hi, right_hi))

            georef_a = GeoReference.from_reader(left)
            georef_b = GeoReference.from_reader(right)
            matrix = None
            if not self.aligner.is_map_projected(georef_a, georef_b):
                matrix = np.eye(3)
                if self.settings.keypoint_alignment:
                    matrix = determine_image_alignment(
                        left_path, right_path, self.ip_store, self.estimator,
                        bounds=bounds, logger=self.log,
                    )
            self.aligner.forward(left, right, left_out, right_out,
                                 matrix=matrix, bounds=bounds,
                                 georef_a=georef_a, georef_b=georef_b)
        return left_out, right_out

    def pre_filtering_hook(self, disparity_path: PathLike) -> Path:
        """Mask the disparity with saturation masks when ``mask_flatfield``.

        Pixels that are zero or negative in either original image are
        removed from its mask first. The masks and images are read one
        tile at a time; on the right side only the chip spanned by the
        tile's disparity targets is read. Returns the masked disparity path
        ``<prefix>-R-masked.npz``, or *disparity_path* unchanged when
        masking is disabled.
        """
        if not self.settings.mask_flatfield:
            return Path(disparity_path)

        self.log.info("Masking pixels that are less than or equal to 0.0")
        field = read_disparity(disparity_path)
        valid = field.valid.copy()
        with self.opener(self.output_path('-lMask')) as left_mask, \
                self.opener(self.output_path('-rMask')) as right_mask, \
                self.opener(self.left_image) as left, \
                self.opener(self.right_image) as right:
            right_rows, right_cols = right.get_shape()
            for region in tile_regions(field.shape,
                                       (self.tile_size, self.tile_size)):
                rows = slice(region.row_start, region.row_end)
                cols = slice(region.col_start, region.col_end)
                tile = DisparityField(field.dx[rows, cols], field.dy[rows, cols],
                                      field.valid[rows, cols])
                origin = (region.row_start, region.col_start)

                tx, ty = disparity_targets(tile, origin)
                reach = (tile.valid & (tx >= 0) & (tx < right_cols)
                         & (ty >= 0) & (ty < right_rows))
                if not reach.any():
                    valid[rows, cols] = False
                    continue
                r0, r1 = int(ty[reach].min()), int(ty[reach].max()) + 1
                c0, c1 = int(tx[reach].min()), int(tx[reach].max()) + 1

                left_ok = mask_black_pixels(
                    left.read_chip(region.row_start, region.row_end,
                                   region.col_start, region.col_end),
                    left_mask.read_chip(region.row_start, region.row_end,
                                        region.col_start, region.col_end),
                )
                right_ok = mask_black_pixels(
                    right.read_chip(r0, r1, c0, c1),
                    right_mask.read_chip(r0, r1, c0, c1),
                )
                masked = mask_disparities(tile, left_ok, right_ok,
                                          origin=origin, right_origin=(r0, c0))
                valid[rows, cols] = masked.valid

        result = DisparityField(field.dx, field.dy, valid)
        return write_disparity(self.output_path('-R-masked', '.npz'), result)

    def pre_pointcloud_hook(self, disparity_path: PathLike) -> Path:
        """Write ``<prefix>-F-corrected.npz`` against the original right image.

        Raises
        ------
        SystemExit
            With status 1 if the alignment file of an unprojected pair is
            missing.
        """
        field = read_disparity(disparity_path)
        with self.opener(self.left_image) as left, \
                self.opener(self.right_image) as right:
            georef_a = GeoReference.from_reader(left)
            georef_b = GeoReference.from_reader(right)
            right_shape = right.get_shape()
        try:
            result = self.aligner.reverse(field, right_shape,
                                          georef_a=georef_a,
                                          georef_b=georef_b)
        except AlignmentFileError as e:
            self.log.error("Could not read in alignment matrix: %s Exiting.", e)
            raise SystemExit(1) from e
        return write_disparity(self.output_path('-F-corrected', '.npz'), result)

    # ------------------------------------------------------------------
    # Cameras
    # ------------------------------------------------------------------

    def camera_model(self, image_file: PathLike, camera_file: PathLike) -> Any:
        """Build the camera model for *image_file* from *camera_file*.

        Raises
        ------
        ValidationError
            If no factory is registered for the file's kind.
        """
        kind = classify_camera_file(camera_file)
        factory = self.camera_factories.get(kind)
        if factory is None:
            raise ValidationError(
                f"No camera model factory registered for {kind.value} "
                f"camera file {camera_file}"
            )
        self.log.info("Using %s camera model: %s", kind.value, camera_file)
        return factory(str(image_file), str(camera_file))
