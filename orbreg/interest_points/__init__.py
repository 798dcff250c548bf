# -*- coding: utf-8 -*-
"""
Interest Points Module - Detection, matching, and cached correspondences.

``FeatureDetector`` requires opencv-python-headless and raises
``DependencyError`` on construction without it; every other name works
without OpenCV.

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

from orbreg.interest_points.models import (
    InterestPoint,
    decode_interest_points,
    decode_matches,
    encode_interest_points,
    encode_matches,
    ip_key,
    match_key,
)
from orbreg.interest_points.duplicates import remove_duplicates
from orbreg.interest_points.match import InterestPointMatcher
from orbreg.interest_points.cache import InterestPointStore
from orbreg.interest_points.detect import FeatureDetector

__all__ = [
    'InterestPoint',
    'decode_interest_points',
    'decode_matches',
    'encode_interest_points',
    'encode_matches',
    'ip_key',
    'match_key',
    'remove_duplicates',
    'InterestPointMatcher',
    'InterestPointStore',
    'FeatureDetector',
]
