# -*- coding: utf-8 -*-
"""
orbreg Vocabulary - Enumerations shared across registration components.

Centralizes the small closed sets of choices that configure correlation,
describe homography fitting failures, and classify camera descriptor
files, so that every component and the command line agree on names.

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
2026-10-13
"""

from enum import Enum


class CostFunction(Enum):
    """Window cost used by the correlator.

    The integer selector values match the ``--correlator-type`` option of
    the offset tool.
    """

    ABSOLUTE_DIFFERENCE = "absolute_difference"
    SQUARED_DIFFERENCE = "squared_difference"
    CROSS_CORRELATION = "cross_correlation"

    @classmethod
    def from_selector(cls, selector: int) -> 'CostFunction':
        """Map a numeric selector (0, 1, 2) to a cost function.

        Unknown selectors fall back to absolute difference.
        """
        if selector == 1:
            return cls.SQUARED_DIFFERENCE
        if selector == 2:
            return cls.CROSS_CORRELATION
        return cls.ABSOLUTE_DIFFERENCE

    @property
    def report_name(self) -> str:
        """Upper-case name written to offset reports."""
        return self.name


class CorrelatorMode(Enum):
    """Disparity search strategy."""

    DIRECT = "direct"
    PYRAMID = "pyramid"


class FitFailure(Enum):
    """Reason a robust homography fit did not produce a transform."""

    TOO_FEW_POINTS = "too_few_points"
    DEGENERATE = "degenerate"
    NO_CONSENSUS = "no_consensus"
    NUMERICAL = "numerical"
    SINGULAR = "singular"


class CameraModelKind(Enum):
    """Kind of camera model described by a camera descriptor file."""

    STANDARD = "standard"
    ADJUSTED = "adjusted"
