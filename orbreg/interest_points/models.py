# -*- coding: utf-8 -*-
"""
Interest Point Models - Immutable interest points and their binary files.

``InterestPoint`` is a detected image feature: a sub-pixel location, the
detector's scale, orientation and response, and a fixed-length descriptor.

Two little-endian binary encodings are provided:

- interest-point files (``.vwip``): ``uint64`` count followed by that many
  point records;
- match files (``.match``): ``uint64`` count of A-side records, ``uint64``
  count of B-side records, then the A records, then the B records.

A point record is ``float32`` x, y, scale, orientation, interest, a
``uint32`` descriptor length ``n`` and ``n`` ``float32`` descriptor values.

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
2026-10-12
"""

# Standard library
import io
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, List, Sequence, Tuple, Union

# Third-party
import numpy as np


_COUNT = struct.Struct('<Q')
_HEADER = struct.Struct('<5fI')

#: Extension of per-image interest point cache entries.
IP_EXTENSION = '.vwip'

#: Extension of per-pair correspondence cache entries.
MATCH_EXTENSION = '.match'


@dataclass(frozen=True)
class InterestPoint:
    """A detected image feature.

    Attributes
    ----------
    x : float
        Column coordinate in pixels.
    y : float
        Row coordinate in pixels.
    scale : float
        Detector scale (keypoint size).
    orientation : float
        Dominant orientation in radians.
    interest : float
        Detector response strength.
    descriptor : Tuple[float, ...]
        Descriptor vector.
    """

    x: float
    y: float
    scale: float = 1.0
    orientation: float = 0.0
    interest: float = 0.0
    descriptor: Tuple[float, ...] = field(default=(), repr=False)

    @property
    def location(self) -> Tuple[float, float]:
        """``(x, y)`` pixel location."""
        return (self.x, self.y)


def points_to_array(points: Sequence[InterestPoint]) -> np.ndarray:
    """``(N, 2)`` float64 array of ``(x, y)`` locations."""
    if not points:
        return np.empty((0, 2), dtype=np.float64)
    return np.array([p.location for p in points], dtype=np.float64)


def descriptors_to_array(points: Sequence[InterestPoint]) -> np.ndarray:
    """``(N, D)`` float32 descriptor matrix.

    Raises
    ------
    ValueError
        If descriptors have differing lengths.
    """
    if not points:
        return np.empty((0, 0), dtype=np.float32)
    lengths = {len(p.descriptor) for p in points}
    if len(lengths) != 1:
        raise ValueError(f"Descriptors have mixed lengths: {sorted(lengths)}")
    return np.array([p.descriptor for p in points], dtype=np.float32)


# ---------------------------------------------------------------------------
# Binary encoding
# ---------------------------------------------------------------------------

def _write_records(stream: BinaryIO, points: Sequence[InterestPoint]) -> None:
    for p in points:
        stream.write(_HEADER.pack(p.x, p.y, p.scale, p.orientation,
                                  p.interest, len(p.descriptor)))
        if p.descriptor:
            stream.write(struct.pack(f'<{len(p.descriptor)}f', *p.descriptor))


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise ValueError(
            f"Truncated interest point data: expected {size} bytes, "
            f"got {len(data)}"
        )
    return data


def _read_records(stream: BinaryIO, count: int) -> List[InterestPoint]:
    points = []
    for _ in range(count):
        x, y, scale, orientation, interest, n = _HEADER.unpack(
            _read_exact(stream, _HEADER.size))
        descriptor: Tuple[float, ...] = ()
        if n:
            descriptor = struct.unpack(f'<{n}f', _read_exact(stream, 4 * n))
        points.append(InterestPoint(x, y, scale, orientation, interest,
                                    descriptor))
    return points


def encode_interest_points(points: Sequence[InterestPoint]) -> bytes:
    """Encode a point sequence in the ``.vwip`` layout."""
    buf = io.BytesIO()
    buf.write(_COUNT.pack(len(points)))
    _write_records(buf, points)
    return buf.getvalue()


def decode_interest_points(payload: bytes) -> List[InterestPoint]:
    """Decode a ``.vwip`` payload.

    Raises
    ------
    ValueError
        If the payload is truncated.

    Notes
    -----
    Values round-trip through ``float32``, so decoded coordinates equal
    the originals only to single precision.
    """
    stream = io.BytesIO(payload)
    (count,) = _COUNT.unpack(_read_exact(stream, _COUNT.size))
    return _read_records(stream, count)


def encode_matches(
    points_a: Sequence[InterestPoint],
    points_b: Sequence[InterestPoint],
) -> bytes:
    """Encode two index-aligned point lists in the ``.match`` layout."""
    buf = io.BytesIO()
    buf.write(_COUNT.pack(len(points_a)))
    buf.write(_COUNT.pack(len(points_b)))
    _write_records(buf, points_a)
    _write_records(buf, points_b)
    return buf.getvalue()


def decode_matches(
    payload: bytes,
) -> Tuple[List[InterestPoint], List[InterestPoint]]:
    """Decode a ``.match`` payload into its A and B point lists.

    Raises
    ------
    ValueError
        If the payload is truncated or the two lists differ in length.
    """
    stream = io.BytesIO(payload)
    (n_a,) = _COUNT.unpack(_read_exact(stream, _COUNT.size))
    (n_b,) = _COUNT.unpack(_read_exact(stream, _COUNT.size))
    if n_a != n_b:
        raise ValueError(
            f"Match data lists differ in length: {n_a} vs {n_b}"
        )
    return _read_records(stream, n_a), _read_records(stream, n_b)


# ---------------------------------------------------------------------------
# Cache keys
# ---------------------------------------------------------------------------

def image_stem(image: Union[str, Path]) -> str:
    """File name of *image* without directory or final extension."""
    return Path(image).stem


def ip_key(image: Union[str, Path]) -> str:
    """Cache key of the interest points of *image*, e.g. ``left.vwip``."""
    return image_stem(image) + IP_EXTENSION


def match_key(image_a: Union[str, Path], image_b: Union[str, Path]) -> str:
    """Cache key of the correspondences of a pair, e.g. ``left__right.match``."""
    return f"{image_stem(image_a)}__{image_stem(image_b)}{MATCH_EXTENSION}"
