# -*- coding: utf-8 -*-
"""
Projective Fit - Normalized Direct Linear Transform homography estimation.

Estimates the 3x3 homography mapping source points onto destination points
by least squares over all given correspondences (Hartley normalization,
SVD null vector). Used both for RANSAC minimal samples and for the final
refit on the consensus set.

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
2026-10-11
"""

# Standard library
from itertools import combinations
from typing import Tuple

# Third-party
import numpy as np

# orbreg internal
from orbreg.exceptions import ValidationError


def _normalize_points(
    points: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """Normalize points for numerical stability in DLT.

    Translates centroid to origin and scales so mean distance from
    origin is sqrt(2).

    Parameters
    ----------
    points : np.ndarray
        Points to normalize. Shape (N, 2).

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        (normalized_points, normalization_matrix) where the matrix
        is 3x3 and can be used to denormalize results.
    """
    centroid = np.mean(points, axis=0)
    shifted = points - centroid
    mean_dist = np.mean(np.sqrt(np.sum(shifted ** 2, axis=1)))

    if mean_dist < 1e-12:
        scale = 1.0
    else:
        scale = np.sqrt(2.0) / mean_dist

    T = np.array([
        [scale, 0, -scale * centroid[0]],
        [0, scale, -scale * centroid[1]],
        [0, 0, 1],
    ])
    return shifted * scale, T


def fit_homography_dlt(
    src: np.ndarray,
    dst: np.ndarray,
) -> np.ndarray:
    """Least-squares homography ``H`` with ``dst ~ H @ src``.

    Parameters
    ----------
    src : np.ndarray
        Source points, shape (N, 2), columns ``(x, y)``. N >= 4.
    dst : np.ndarray
        Destination points, same shape.

    Returns
    -------
    np.ndarray
        3x3 homography, scaled so ``H[2, 2] == 1`` when that entry is
        not vanishingly small.

    Raises
    ------
    ValidationError
        If fewer than 4 pairs are given or the shapes differ.
    np.linalg.LinAlgError
        If the SVD does not converge.
    """
    src = np.asarray(src, dtype=np.float64)
    dst = np.asarray(dst, dtype=np.float64)
    if src.shape != dst.shape or src.ndim != 2 or src.shape[1] != 2:
        raise ValidationError(
            f"Point arrays must both be (N, 2); got {src.shape} and {dst.shape}"
        )
    n = src.shape[0]
    if n < 4:
        raise ValidationError(
            f"Homography estimation requires at least 4 point pairs, got {n}"
        )

    src_norm, T_src = _normalize_points(src)
    dst_norm, T_dst = _normalize_points(dst)

    # Build DLT system: Ah = 0
    xs, ys = src_norm[:, 0], src_norm[:, 1]
    xd, yd = dst_norm[:, 0], dst_norm[:, 1]
    zeros = np.zeros(n)
    ones = np.ones(n)
    A = np.empty((2 * n, 9))
    A[0::2] = np.column_stack([xs, ys, ones, zeros, zeros, zeros,
                               -xd * xs, -xd * ys, -xd])
    A[1::2] = np.column_stack([zeros, zeros, zeros, xs, ys, ones,
                               -yd * xs, -yd * ys, -yd])

    _, _, Vt = np.linalg.svd(A)
    H_norm = Vt[-1].reshape(3, 3)

    H = np.linalg.inv(T_dst) @ H_norm @ T_src
    if abs(H[2, 2]) > 1e-12:
        H = H / H[2, 2]
    return H


def has_collinear_triple(points: np.ndarray, tol: float = 1e-6) -> bool:
    """Whether any three of *points* are (nearly) collinear.

    Parameters
    ----------
    points : np.ndarray
        Points, shape (N, 2). Intended for minimal samples (N = 4).
    tol : float
        Area threshold relative to the squared extent of the points.
    """
    extent = float(np.ptp(points, axis=0).max()) if len(points) else 0.0
    if extent == 0.0:
        return True
    limit = tol * extent * extent
    for i, j, k in combinations(range(len(points)), 3):
        (x1, y1), (x2, y2), (x3, y3) = points[i], points[j], points[k]
        area2 = abs((x2 - x1) * (y3 - y1) - (x3 - x1) * (y2 - y1))
        if area2 <= limit:
            return True
    return False
