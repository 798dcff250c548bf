# -*- coding: utf-8 -*-
"""
Co-Registration Module - Homographies between overlapping images.

Key Classes
-----------
- RobustHomographyEstimator: RANSAC homography fit with explicit failure
- HomographyFit: Fit result carrying either a matrix or a failure reason
- AlignmentSettings: Tunables of the pre-alignment stage

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
2026-10-15
"""

from orbreg.coregistration.projective import fit_homography_dlt
from orbreg.coregistration.ransac import HomographyFit, RobustHomographyEstimator
from orbreg.coregistration.alignment import (
    AlignmentSettings,
    determine_image_alignment,
    read_alignment_matrix,
    write_alignment_matrix,
)

__all__ = [
    'fit_homography_dlt',
    'HomographyFit',
    'RobustHomographyEstimator',
    'AlignmentSettings',
    'determine_image_alignment',
    'read_alignment_matrix',
    'write_alignment_matrix',
]
