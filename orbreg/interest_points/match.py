# -*- coding: utf-8 -*-
"""
Interest Point Matcher - Nearest-neighbour descriptor matching.

Pairs points of image A with points of image B by descriptor distance,
accepting a pair only when the best candidate is clearly better than the
second best (Lowe's ratio test) and, optionally, only when the pairing is
mutual (cross-check).

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
2026-10-12
"""

# Standard library
from typing import Annotated, List, Sequence, Tuple

# Third-party
import numpy as np
from scipy.spatial import cKDTree

# orbreg internal
from orbreg.interest_points.models import InterestPoint, descriptors_to_array
from orbreg.params import Configurable, Desc, Range


class InterestPointMatcher(Configurable):
    """Ratio-test descriptor matcher backed by a k-d tree.

    Parameters
    ----------
    ratio : float
        Maximum ratio of best to second-best descriptor distance for a
        match to be accepted. Default 0.8.
    cross_check : bool
        Keep only pairs that are each other's nearest neighbour. Default
        False.

    Examples
    --------
    >>> matcher = InterestPointMatcher(ratio=0.7, cross_check=True)
    >>> matched_a, matched_b = matcher.match(ips_left, ips_right)
    """

    ratio: Annotated[float, Range(min=0.0, max=1.0),
                     Desc('Best / second-best distance acceptance ratio')] = 0.8
    cross_check: Annotated[bool, Desc('Require mutual nearest neighbours')] = False

    def match(
        self,
        points_a: Sequence[InterestPoint],
        points_b: Sequence[InterestPoint],
    ) -> Tuple[List[InterestPoint], List[InterestPoint]]:
        """Match two point sets.

        Parameters
        ----------
        points_a : Sequence[InterestPoint]
            Points detected in image A.
        points_b : Sequence[InterestPoint]
            Points detected in image B.

        Returns
        -------
        Tuple[List[InterestPoint], List[InterestPoint]]
            Index-aligned matched points, in the order of ``points_a``.

        Raises
        ------
        ValueError
            If the descriptor lengths of the two sets differ.
        """
        if len(points_a) == 0 or len(points_b) < 2:
            self.log.info("Too few interest points to match (%d, %d)",
                          len(points_a), len(points_b))
            return [], []

        desc_a = descriptors_to_array(points_a)
        desc_b = descriptors_to_array(points_b)
        if desc_a.shape[1] != desc_b.shape[1]:
            raise ValueError(
                f"Descriptor lengths differ: {desc_a.shape[1]} vs "
                f"{desc_b.shape[1]}"
            )

        dist, idx = cKDTree(desc_b).query(desc_a, k=2)
        accepted = dist[:, 0] < self.ratio * dist[:, 1]
        best = idx[:, 0]

        if self.cross_check:
            _, back = cKDTree(desc_a).query(desc_b, k=1)
            accepted &= back[best] == np.arange(len(points_a))

        matched_a = [points_a[i] for i in np.flatnonzero(accepted)]
        matched_b = [points_b[best[i]] for i in np.flatnonzero(accepted)]
        self.log.info("Matched %d of %d interest points",
                      len(matched_a), len(points_a))
        return matched_a, matched_b
