# -*- coding: utf-8 -*-
"""
Image Alignment - Correspondences to a persisted global homography.

``determine_image_alignment`` chains the cached detector/matcher, the
duplicate filter, and the robust estimator into the homography that maps
the right image onto the left one. ``write_alignment_matrix`` and
``read_alignment_matrix`` persist that matrix as ``<prefix>-align.txt``,
the single record of how the right image was warped. Unlike the interest
point caches, this file is authoritative: reading it back when it is
missing raises ``AlignmentFileError``.

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
import logging
from pathlib import Path
from typing import Annotated, Optional, Tuple, Union

# Third-party
import numpy as np

# orbreg internal
from orbreg.coregistration.ransac import RobustHomographyEstimator
from orbreg.exceptions import AlignmentFileError
from orbreg.interest_points.cache import InterestPointStore
from orbreg.interest_points.duplicates import remove_duplicates
from orbreg.params import Configurable, Desc, Options, Range

logger = logging.getLogger(__name__)

#: Suffix appended to the output prefix for the alignment matrix file.
ALIGNMENT_SUFFIX = '-align.txt'


class AlignmentSettings(Configurable):
    """Tunables of the pre-alignment stage.

    Parameters
    ----------
    keypoint_alignment : bool
        Warp the right image onto the left with a fitted homography.
        When False, images are passed through unwarped.
    detector_method : str
        ``'sift'`` or ``'orb'``.
    detector_tile_size : int
        Detection tile edge in pixels.
    max_points_per_tile : int
        Keypoint cap per detection tile.
    match_ratio : float
        Ratio-test acceptance ratio.
    cross_check : bool
        Require mutual nearest-neighbour matches.
    ransac_trials : int
        RANSAC samples.
    inlier_threshold : float
        RANSAC inlier threshold in pixels.
    mask_flatfield : bool
        Mask disparities with the saturated-pixel masks before filtering.
    nodata_value : float, optional
        Pixel value treated as missing in both images.
    """

    keypoint_alignment: Annotated[bool, Desc('Pre-align with a homography')] = True
    detector_method: Annotated[str, Options('sift', 'orb')] = 'sift'
    detector_tile_size: Annotated[int, Range(min=16)] = 1024
    max_points_per_tile: Annotated[int, Range(min=1)] = 1000
    match_ratio: Annotated[float, Range(min=0.0, max=1.0)] = 0.8
    cross_check: Annotated[bool, Desc('Mutual matches only')] = False
    ransac_trials: Annotated[int, Range(min=1)] = 10
    inlier_threshold: Annotated[float, Range(min=0.0)] = 10.0
    mask_flatfield: Annotated[bool, Desc('Apply saturation masks')] = False
    nodata_value: Annotated[Optional[float], Desc('Missing-pixel value')] = None


def determine_image_alignment(
    image_a: Union[str, Path],
    image_b: Union[str, Path],
    ip_store: InterestPointStore,
    estimator: RobustHomographyEstimator,
    bounds: Optional[Tuple[float, float]] = None,
    logger: Optional[logging.Logger] = None,
) -> np.ndarray:
    """Homography mapping *image_b* pixels onto *image_a* pixels.

    Never fails on poor correspondences: when no transform can be fitted
    the estimator logs a warning and the identity is returned.

    Parameters
    ----------
    image_a : str or Path
        Left (fixed) image.
    image_b : str or Path
        Right (moving) image.
    ip_store : InterestPointStore
        Cached detection and matching.
    estimator : RobustHomographyEstimator
        Robust fitter.
    bounds : Tuple[float, float], optional
        Normalization bounds for detection.
    logger : logging.Logger, optional
        Logger used instead of the module logger.

    Returns
    -------
    np.ndarray
        3x3 homography.
    """
    log = logger or globals()['logger']
    log.info("Computing homography between %s and %s", image_a, image_b)
    matched_a, matched_b = ip_store.load_or_compute(image_a, image_b,
                                                    bounds=bounds)
    filtered_a, filtered_b = remove_duplicates(matched_a, matched_b)
    log.info("%d correspondences after removing %d ambiguous matches",
             len(filtered_a), len(matched_a) - len(filtered_a))

    fit = estimator.fit(filtered_a, filtered_b)
    H = fit.matrix_or_identity()
    log.info("Alignment matrix:\n%s", H)
    return H


def alignment_path(out_prefix: Union[str, Path]) -> Path:
    """Path of the alignment matrix file for *out_prefix*."""
    return Path(str(out_prefix) + ALIGNMENT_SUFFIX)


def write_alignment_matrix(
    out_prefix: Union[str, Path],
    matrix: np.ndarray,
) -> Path:
    """Persist a 3x3 matrix to ``<out_prefix>-align.txt``.

    Returns
    -------
    Path
        The written file.
    """
    path = alignment_path(out_prefix)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savetxt(str(path), np.asarray(matrix, dtype=np.float64))
    return path


def read_alignment_matrix(out_prefix: Union[str, Path]) -> np.ndarray:
    """Read the matrix written by :func:`write_alignment_matrix`.

    Raises
    ------
    AlignmentFileError
        If the file is missing or does not hold a 3x3 matrix.
    """
    path = alignment_path(out_prefix)
    if not path.is_file():
        raise AlignmentFileError(
            f"Alignment file not found: {path}. The disparity cannot be "
            f"mapped back to the unaligned right image without it."
        )
    try:
        matrix = np.loadtxt(str(path), dtype=np.float64)
    except ValueError as e:
        raise AlignmentFileError(f"Unreadable alignment file {path}: {e}") from e
    if matrix.shape != (3, 3):
        raise AlignmentFileError(
            f"Alignment file {path} holds a {matrix.shape} array, expected 3x3"
        )
    return matrix
