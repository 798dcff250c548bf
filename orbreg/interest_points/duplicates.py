# -*- coding: utf-8 -*-
"""
Duplicate Filter - Drop ambiguous correspondences before robust fitting.

A correspondence is ambiguous when its point in either image also appears
in another correspondence: the detector found one feature and the matcher
paired it twice. Both (all) correspondences sharing the point are dropped,
since there is no way to tell which pairing is right.

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
2026-10-08
"""

# Standard library
from collections import Counter
from typing import List, Sequence, Tuple

# orbreg internal
from orbreg.exceptions import ValidationError
from orbreg.interest_points.models import InterestPoint


def remove_duplicates(
    points_a: Sequence[InterestPoint],
    points_b: Sequence[InterestPoint],
) -> Tuple[List[InterestPoint], List[InterestPoint]]:
    """Remove correspondences whose A or B point location repeats.

    Points are compared by pixel location ``(x, y)``. Index ``i`` is kept
    only if ``points_a[i]`` is the sole A-side point at its location and
    ``points_b[i]`` the sole B-side point at its location. Surviving
    correspondences keep their relative order. The function is pure and
    idempotent.

    Parameters
    ----------
    points_a : Sequence[InterestPoint]
        Points in image A.
    points_b : Sequence[InterestPoint]
        Index-aligned matching points in image B.

    Returns
    -------
    Tuple[List[InterestPoint], List[InterestPoint]]
        Filtered, still index-aligned, lists.

    Raises
    ------
    ValidationError
        If the two lists differ in length.

    Examples
    --------
    >>> a = [InterestPoint(1, 1), InterestPoint(1, 1), InterestPoint(5, 5)]
    >>> b = [InterestPoint(2, 2), InterestPoint(3, 3), InterestPoint(6, 6)]
    >>> remove_duplicates(a, b)[0]
    [InterestPoint(x=5, y=5, scale=1.0, orientation=0.0, interest=0.0)]
    """
    if len(points_a) != len(points_b):
        raise ValidationError(
            f"Correspondence lists differ in length: "
            f"{len(points_a)} vs {len(points_b)}"
        )
    counts_a = Counter(p.location for p in points_a)
    counts_b = Counter(p.location for p in points_b)
    kept_a: List[InterestPoint] = []
    kept_b: List[InterestPoint] = []
    for pa, pb in zip(points_a, points_b):
        if counts_a[pa.location] == 1 and counts_b[pb.location] == 1:
            kept_a.append(pa)
            kept_b.append(pb)
    return kept_a, kept_b
