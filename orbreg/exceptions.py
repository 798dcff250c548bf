# -*- coding: utf-8 -*-
"""
orbreg Exception Hierarchy - Domain-specific exceptions for registration.

Provides a small exception hierarchy that lets callers (the offset tool, the
stereo session hooks, or an enclosing scheduler) catch orbreg-specific
errors distinctly from Python built-in exceptions. All orbreg exceptions
subclass both ``OrbregError`` and the appropriate built-in exception for
backward compatibility.

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
2026-10-14
"""


class OrbregError(Exception):
    """Base exception for all orbreg errors."""


class ValidationError(OrbregError, ValueError):
    """Invalid input data, parameters, or configuration.

    Raised for shape mismatches, out-of-range parameters, empty search
    ranges, unequal correspondence lists, and other input validation
    failures.
    """


class ProcessorError(OrbregError, RuntimeError):
    """Algorithm or processing failure.

    Raised when a processing stage encounters a non-recoverable error
    during execution (not an input validation issue).
    """


class CorrelationError(ProcessorError):
    """Windowed correlation could not produce a disparity field.

    Raised when the search exceeds its time budget or the inputs cannot
    be correlated at all. Correlation never degrades to a partial result.
    """


class NoValidMatchesError(ProcessorError):
    """A disparity field had no valid cells in any row.

    The offending ``OffsetSummary`` is attached as ``summary`` so callers
    can still render a report with NULL averages before failing.
    """

    def __init__(self, message: str, summary=None) -> None:
        super().__init__(message)
        self.summary = summary


class AlignmentFileError(OrbregError, FileNotFoundError):
    """The persisted alignment transform is missing or unreadable.

    Reversing the pre-alignment of a disparity field without the original
    homography would silently corrupt downstream geometry, so this error
    is treated as fatal by the command-line entry points.
    """


class DependencyError(OrbregError, ImportError):
    """Missing optional dependency required for a specific module.

    Raised when a module requires an optional package (opencv, rasterio,
    pyproj) that is not installed.
    """


class GeolocationError(OrbregError, RuntimeError):
    """Georeference or map-projection transformation failure.

    Raised for missing affine transforms, unusable CRS definitions, or
    non-invertible pixel-to-map transforms.
    """
