# -*- coding: utf-8 -*-
"""
Interest Point Detector - Tile-wise SIFT / ORB detection over a reader.

Runs an OpenCV feature detector over fixed-size tiles read from an
``ImageReader`` so full-resolution images are never held in memory. Each
tile is read with a small overlap margin; keypoints falling in the margin
are discarded so features are neither lost nor duplicated at tile seams.

Dependencies
------------
opencv-python-headless

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
2026-10-15
"""

# Standard library
from typing import Annotated, List, Optional, Tuple

# Third-party
import numpy as np

try:
    import cv2
    _HAS_CV2 = True
except ImportError:
    _HAS_CV2 = False

# orbreg internal
from orbreg.exceptions import DependencyError
from orbreg.IO.base import ImageReader
from orbreg.IO.tiling import tile_regions
from orbreg.interest_points.models import InterestPoint
from orbreg.params import Configurable, Desc, Options, Range


def _to_uint8(
    image: np.ndarray,
    bounds: Optional[Tuple[float, float]] = None,
) -> np.ndarray:
    """Convert an image chip to uint8 for OpenCV feature detection.

    Parameters
    ----------
    image : np.ndarray
        Input chip, shape (rows, cols).
    bounds : Tuple[float, float], optional
        ``(min, max)`` used for normalization. When omitted the chip's own
        finite range is used. Passing image-wide bounds keeps the
        radiometry consistent across tiles.

    Returns
    -------
    np.ndarray
        Single-channel uint8 image. Non-finite pixels map to 0.
    """
    img = image.astype(np.float64)
    finite = np.isfinite(img)
    if bounds is None:
        if not finite.any():
            return np.zeros(img.shape, dtype=np.uint8)
        vmin, vmax = np.min(img[finite]), np.max(img[finite])
    else:
        vmin, vmax = bounds

    if vmax - vmin > 0:
        img = (img - vmin) / (vmax - vmin) * 255.0
    else:
        img = np.zeros_like(img)
    img[~finite] = 0.0
    return np.clip(img, 0.0, 255.0).astype(np.uint8)


class FeatureDetector(Configurable):
    """Detect interest points tile by tile.

    Parameters
    ----------
    method : str
        ``'sift'`` or ``'orb'``. Default ``'sift'``. ORB binary
        descriptors are unpacked to 0/1 floats so both methods share the
        same Euclidean matcher.
    max_points : int
        Maximum keypoints per tile. Default 1000.
    tile_size : int
        Tile edge length in pixels. Default 1024.
    tile_margin : int
        Overlap read around each tile. Default 32.

    Raises
    ------
    DependencyError
        If OpenCV is not installed.
    """

    method: Annotated[str, Options('sift', 'orb'), Desc('Feature operator')] = 'sift'
    max_points: Annotated[int, Range(min=1), Desc('Keypoints per tile')] = 1000
    tile_size: Annotated[int, Range(min=16), Desc('Detection tile edge')] = 1024
    tile_margin: Annotated[int, Range(min=0), Desc('Tile overlap margin')] = 32

    def __post_init__(self) -> None:
        if not _HAS_CV2:
            raise DependencyError(
                "FeatureDetector requires opencv-python-headless. "
                "Install with: pip install opencv-python-headless>=4.5"
            )

    def _create_detector(self) -> 'cv2.Feature2D':
        if self.method == 'orb':
            return cv2.ORB_create(nfeatures=self.max_points)
        return cv2.SIFT_create(nfeatures=self.max_points)

    def detect(
        self,
        reader: ImageReader,
        bounds: Optional[Tuple[float, float]] = None,
    ) -> List[InterestPoint]:
        """Detect interest points over the whole image.

        Parameters
        ----------
        reader : ImageReader
            Source image.
        bounds : Tuple[float, float], optional
            Image-wide ``(min, max)`` for uint8 conversion, e.g. from
            ``orbreg.session.image_min_max``.

        Returns
        -------
        List[InterestPoint]
            Points in full-image pixel coordinates, in tile order.
        """
        rows, cols = reader.get_shape()
        detector = self._create_detector()
        margin = self.tile_margin
        points: List[InterestPoint] = []

        for region in tile_regions((rows, cols), (self.tile_size, self.tile_size)):
            r0 = max(region.row_start - margin, 0)
            c0 = max(region.col_start - margin, 0)
            r1 = min(region.row_end + margin, rows)
            c1 = min(region.col_end + margin, cols)
            chip = _to_uint8(reader.read_chip(r0, r1, c0, c1), bounds)

            keypoints, descriptors = detector.detectAndCompute(chip, None)
            if descriptors is None:
                continue
            if self.method == 'orb':
                descriptors = np.unpackbits(descriptors, axis=1)
            descriptors = descriptors.astype(np.float32)

            for kp, desc in zip(keypoints, descriptors):
                x = kp.pt[0] + c0
                y = kp.pt[1] + r0
                if not (region.col_start <= x < region.col_end
                        and region.row_start <= y < region.row_end):
                    continue
                points.append(InterestPoint(
                    x=float(x),
                    y=float(y),
                    scale=float(kp.size),
                    orientation=float(np.deg2rad(kp.angle)) if kp.angle >= 0 else 0.0,
                    interest=float(kp.response),
                    descriptor=tuple(float(v) for v in desc),
                ))

        self.log.info("Detected %d interest points in %s",
                      len(points), reader.filepath)
        return points
