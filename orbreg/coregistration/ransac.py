# -*- coding: utf-8 -*-
"""
Robust Homography Estimation - RANSAC over 4-point DLT fits.

``RobustHomographyEstimator.fit`` estimates the homography mapping image-B
pixels onto image-A pixels from index-aligned correspondences that may
contain outliers. Each trial fits a minimal sample, counts the
correspondences whose reprojection error is under the inlier threshold,
and the best consensus set (ties broken by summed error) is refit by
least squares.

The result is a ``HomographyFit``: either a matrix or a ``FitFailure``
reason. Failure is never raised; it is logged at WARNING and callers
substitute the identity with ``HomographyFit.matrix_or_identity()``.

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
from dataclasses import dataclass, field
from typing import Annotated, Optional, Sequence, Union

# Third-party
import numpy as np

# orbreg internal
from orbreg.coregistration.projective import fit_homography_dlt, has_collinear_triple
from orbreg.coregistration.utils import compute_residuals, compute_rms
from orbreg.exceptions import ValidationError
from orbreg.interest_points.models import InterestPoint, points_to_array
from orbreg.params import Configurable, Desc, Range
from orbreg.vocabulary import FitFailure

PointsLike = Union[np.ndarray, Sequence[InterestPoint]]

_MIN_SAMPLE = 4


@dataclass
class HomographyFit:
    """Outcome of a robust homography fit.

    Exactly one of ``matrix`` and ``failure`` is set.

    Attributes
    ----------
    matrix : np.ndarray or None
        3x3 homography mapping B pixels to A pixels.
    failure : FitFailure or None
        Why no transform was produced.
    inliers : np.ndarray
        Boolean consensus mask over the input correspondences.
    rms : float
        RMS reprojection error over the inliers.
    message : str
        Human-readable detail.
    """

    matrix: Optional[np.ndarray] = None
    failure: Optional[FitFailure] = None
    inliers: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=bool))
    rms: float = 0.0
    message: str = ''

    @property
    def ok(self) -> bool:
        return self.matrix is not None

    @property
    def num_inliers(self) -> int:
        return int(np.count_nonzero(self.inliers))

    def matrix_or_identity(self) -> np.ndarray:
        """The fitted matrix, or the 3x3 identity when the fit failed."""
        if self.matrix is None:
            return np.eye(3)
        return self.matrix.copy()


class RobustHomographyEstimator(Configurable):
    """RANSAC homography estimator.

    Parameters
    ----------
    trials : int
        Random minimal samples drawn per fit. Default 10; correspondences
        reaching this stage are already ratio-tested and de-duplicated.
    inlier_threshold : float
        Maximum reprojection error in pixels for an inlier. Default 10.
    min_inliers : int
        Smallest acceptable consensus set. Default 4.
    seed : int, optional
        Seed for the sample generator, for reproducible fits.

    Examples
    --------
    >>> estimator = RobustHomographyEstimator(inlier_threshold=3.0)
    >>> fit = estimator.fit(matched_left, matched_right)
    >>> H = fit.matrix_or_identity()
    """

    trials: Annotated[int, Range(min=1), Desc('RANSAC samples per fit')] = 10
    inlier_threshold: Annotated[float, Range(min=0.0),
                                Desc('Inlier reprojection error, pixels')] = 10.0
    min_inliers: Annotated[int, Range(min=_MIN_SAMPLE),
                           Desc('Minimum consensus size')] = _MIN_SAMPLE
    seed: Annotated[Optional[int], Desc('Sampling seed')] = None

    def fit(
        self,
        points_a: PointsLike,
        points_b: PointsLike,
        trials: Optional[int] = None,
    ) -> HomographyFit:
        """Fit the homography mapping *points_b* onto *points_a*.

        Parameters
        ----------
        points_a : np.ndarray or Sequence[InterestPoint]
            Points in image A, (N, 2) ``(x, y)`` or interest points.
        points_b : np.ndarray or Sequence[InterestPoint]
            Index-aligned points in image B.
        trials : int, optional
            Overrides the configured number of samples for this call.

        Returns
        -------
        HomographyFit
            Matrix on success, failure reason otherwise.

        Raises
        ------
        ValidationError
            If the two point sets differ in length.
        """
        a = self._as_array(points_a)
        b = self._as_array(points_b)
        if a.shape != b.shape:
            raise ValidationError(
                f"Correspondence sets differ in shape: {a.shape} vs {b.shape}"
            )
        n = a.shape[0]
        n_trials = self.trials if trials is None else int(trials)

        if n < max(_MIN_SAMPLE, self.min_inliers):
            return self._fail(FitFailure.TOO_FEW_POINTS, n,
                              f"{n} correspondences, need "
                              f"{max(_MIN_SAMPLE, self.min_inliers)}")

        rng = np.random.default_rng(self.seed)
        best_inliers = None
        best_key = None
        degenerate = 0
        for _ in range(n_trials):
            sample = rng.choice(n, size=_MIN_SAMPLE, replace=False)
            if has_collinear_triple(b[sample]) or has_collinear_triple(a[sample]):
                degenerate += 1
                continue
            try:
                H = fit_homography_dlt(b[sample], a[sample])
            except np.linalg.LinAlgError:
                continue
            if not np.all(np.isfinite(H)):
                continue
            residuals = compute_residuals(a, b, H)
            inliers = residuals < self.inlier_threshold
            key = (int(inliers.sum()), -float(residuals[inliers].sum()))
            if best_key is None or key > best_key:
                best_key = key
                best_inliers = inliers

        if best_inliers is None:
            if degenerate == n_trials:
                return self._fail(FitFailure.DEGENERATE, n,
                                  "every sample was collinear")
            return self._fail(FitFailure.NUMERICAL, n,
                              "no sample produced a finite model")
        if best_key[0] < self.min_inliers:
            return self._fail(FitFailure.NO_CONSENSUS, n,
                              f"best consensus {best_key[0]} below "
                              f"{self.min_inliers}")

        try:
            H = fit_homography_dlt(b[best_inliers], a[best_inliers])
        except np.linalg.LinAlgError as e:
            return self._fail(FitFailure.NUMERICAL, n, str(e))
        if not self._is_invertible(H):
            return self._fail(FitFailure.SINGULAR, n, "refit is singular")

        residuals = compute_residuals(a[best_inliers], b[best_inliers], H)
        fit = HomographyFit(matrix=H, inliers=best_inliers,
                            rms=compute_rms(residuals))
        self.log.info("Homography fit: %d of %d inliers, RMS %.3f px",
                      fit.num_inliers, n, fit.rms)
        return fit

    @staticmethod
    def _as_array(points: PointsLike) -> np.ndarray:
        if isinstance(points, np.ndarray):
            points = np.asarray(points, dtype=np.float64)
            if points.size == 0:
                return points.reshape(0, 2)
            if points.ndim != 2 or points.shape[1] != 2:
                raise ValidationError(
                    f"Point arrays must be (N, 2), got {points.shape}"
                )
            return points
        return points_to_array(list(points))

    @staticmethod
    def _is_invertible(H: np.ndarray) -> bool:
        if not np.all(np.isfinite(H)):
            return False
        return np.linalg.cond(H) < 1e12

    def _fail(self, reason: FitFailure, n: int, message: str) -> HomographyFit:
        self.log.warning(
            "RANSAC homography fit failed (%s): %s. "
            "Proceeding with the identity transform.",
            reason.value, message,
        )
        return HomographyFit(failure=reason, inliers=np.zeros(n, dtype=bool),
                             message=message)
