# -*- coding: utf-8 -*-
"""
orbreg - Orbital image registration.

Building blocks for aligning overlapping orbital images and measuring the
residual offsets between them: cached interest point detection and
matching, robust homography fitting, pre-alignment of image pairs, windowed
disparity correlation, and per-row offset reduction for jitter analysis.

Dependencies
------------
numpy
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
2026-10-06

Modified
--------
2026-10-16
"""

__version__ = "0.1.0"

from orbreg.exceptions import (
    OrbregError,
    ValidationError,
    ProcessorError,
    CorrelationError,
    NoValidMatchesError,
    AlignmentFileError,
    DependencyError,
    GeolocationError,
)
from orbreg.vocabulary import (
    CostFunction,
    CorrelatorMode,
    FitFailure,
    CameraModelKind,
)
from orbreg.stats import RunningStatistics
from orbreg.disparity import (
    DisparityField,
    SearchRange,
    WindowedCorrelator,
    OffsetReducer,
    OffsetSummary,
    DisparityAligner,
)
from orbreg.coregistration import (
    RobustHomographyEstimator,
    HomographyFit,
    determine_image_alignment,
)

__all__ = [
    'OrbregError',
    'ValidationError',
    'ProcessorError',
    'CorrelationError',
    'NoValidMatchesError',
    'AlignmentFileError',
    'DependencyError',
    'GeolocationError',
    'CostFunction',
    'CorrelatorMode',
    'FitFailure',
    'CameraModelKind',
    'RunningStatistics',
    'DisparityField',
    'SearchRange',
    'WindowedCorrelator',
    'OffsetReducer',
    'OffsetSummary',
    'DisparityAligner',
    'RobustHomographyEstimator',
    'HomographyFit',
    'determine_image_alignment',
]
