# -*- coding: utf-8 -*-
"""
Interest Point Store - Cached detection and matching for an image pair.

``InterestPointStore.load_or_compute`` returns the correspondences between
two images, reusing whatever earlier runs left in the backing
``KeyValueStore``:

1. a pair entry (``<a>__<b>.match``) is returned as is;
2. otherwise per-image entries (``<a>.vwip``, ``<b>.vwip``) are read and
   matched, detecting only the images that have no entry;
3. fresh detections are persisted before matching, and the match result
   is always persisted afterwards.

Entries are never invalidated. Delete them when the inputs change.

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
import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

# orbreg internal
from orbreg.IO import ImageReader, open_image
from orbreg.interest_points.models import (
    InterestPoint,
    decode_interest_points,
    decode_matches,
    encode_interest_points,
    encode_matches,
    ip_key,
    match_key,
)
from orbreg.store import KeyValueStore

logger = logging.getLogger(__name__)

ImageRef = Union[str, Path]
Correspondences = Tuple[List[InterestPoint], List[InterestPoint]]


class InterestPointStore:
    """Cache-aware front end to a detector and matcher.

    Parameters
    ----------
    store : KeyValueStore
        Backing store for ``.vwip`` and ``.match`` entries.
    detector : object
        Anything with ``detect(reader, bounds=None) -> List[InterestPoint]``,
        typically a ``FeatureDetector``.
    matcher : object
        Anything with ``match(points_a, points_b) -> (list, list)``,
        typically an ``InterestPointMatcher``.
    opener : Callable
        Opens an image reference as an ``ImageReader``. Default
        ``orbreg.IO.open_image``.
    logger : logging.Logger, optional
        Logger used instead of the module logger.

    Examples
    --------
    >>> ips = InterestPointStore(FileStore('run1'), FeatureDetector(),
    ...                          InterestPointMatcher())
    >>> matched_left, matched_right = ips.load_or_compute('left.tif',
    ...                                                   'right.tif')
    """

    def __init__(
        self,
        store: KeyValueStore,
        detector,
        matcher,
        opener: Callable[[ImageRef], ImageReader] = open_image,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.store = store
        self.detector = detector
        self.matcher = matcher
        self.opener = opener
        self.log = logger or globals()['logger']

    def load_or_compute(
        self,
        image_a: ImageRef,
        image_b: ImageRef,
        bounds: Optional[Tuple[float, float]] = None,
    ) -> Correspondences:
        """Correspondences between *image_a* and *image_b*.

        Parameters
        ----------
        image_a, image_b : str or Path
            Image references; their file stems form the cache keys.
        bounds : Tuple[float, float], optional
            Normalization bounds forwarded to the detector.

        Returns
        -------
        Tuple[List[InterestPoint], List[InterestPoint]]
            Index-aligned matched points of A and B.
        """
        key = match_key(image_a, image_b)
        if self.store.exists(key):
            self.log.info("Using cached match file %s", key)
            return decode_matches(self.store.read(key))

        points_a = self._load_or_detect(image_a, bounds)
        points_b = self._load_or_detect(image_b, bounds)

        self.log.info("Matching interest points")
        matched_a, matched_b = self.matcher.match(points_a, points_b)
        self.store.write(key, encode_matches(matched_a, matched_b))
        self.log.info("Wrote %d correspondences to %s", len(matched_a), key)
        return matched_a, matched_b

    def _load_or_detect(
        self,
        image: ImageRef,
        bounds: Optional[Tuple[float, float]],
    ) -> List[InterestPoint]:
        key = ip_key(image)
        if self.store.exists(key):
            self.log.info("Using cached interest points %s", key)
            return decode_interest_points(self.store.read(key))

        self.log.info("Detecting interest points in %s", image)
        with self.opener(image) as reader:
            points = self.detector.detect(reader, bounds=bounds)
        self.store.write(key, encode_interest_points(points))
        return points
