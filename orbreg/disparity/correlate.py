# -*- coding: utf-8 -*-
"""
Windowed Correlator - Integer disparity search between two image windows.

``WindowedCorrelator.correlate`` finds, for every pixel of the left window,
the integer displacement within a search range that minimizes a windowed
matching cost against the right window:

- ``ABSOLUTE_DIFFERENCE``: mean absolute difference over the kernel;
- ``SQUARED_DIFFERENCE``: mean squared difference over the kernel;
- ``CROSS_CORRELATION``: one minus the normalized cross-correlation.

Costs are averaged over the kernel cells where both images have data, so
pixels near the window edges are still matched from the part of their
kernel that overlaps. A left/right consistency check then searches from
the right image back to the left and rejects cells where the two answers
disagree by more than ``lr_threshold`` pixels on either axis.

``PYRAMID`` mode searches the full range on a downsampled pyramid level,
then refines level by level, restricting each block of the finer level to
the disparities its coarse estimate predicts.

``correlate_strips`` streams tall windows from two ``ImageReader`` objects
in row strips, each read with enough overlap that its core rows are
correlated exactly as they would be in one pass.

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
2026-10-10

Modified
--------
2026-10-16
"""

# Standard library
import math
import time
from dataclasses import dataclass
from typing import Annotated, Iterator, Optional, Tuple

# Third-party
import numpy as np
from scipy.ndimage import gaussian_filter, gaussian_laplace, uniform_filter

# orbreg internal
from orbreg.disparity.field import DisparityField
from orbreg.exceptions import CorrelationError, ValidationError
from orbreg.IO.base import ImageReader
from orbreg.IO.tiling import ChipRegion, strip_regions, tile_regions
from orbreg.params import Configurable, Desc, Options, Range
from orbreg.vocabulary import CorrelatorMode, CostFunction

_EPS = 1e-12

# Refinement block edge at every pyramid level.
_BLOCK = 64

# Gaussian truncation used by scipy's gaussian_laplace.
_LOG_TRUNCATE = 4.0


@dataclass(frozen=True)
class SearchRange:
    """Inclusive integer disparity search bounds.

    Raises
    ------
    ValidationError
        If a minimum exceeds its maximum.
    """

    min_dx: int
    min_dy: int
    max_dx: int
    max_dy: int

    def __post_init__(self) -> None:
        if self.min_dx > self.max_dx or self.min_dy > self.max_dy:
            raise ValidationError(
                f"Empty search range: x [{self.min_dx}, {self.max_dx}], "
                f"y [{self.min_dy}, {self.max_dy}]"
            )

    @property
    def count(self) -> int:
        """Number of candidate disparities."""
        return ((self.max_dx - self.min_dx + 1)
                * (self.max_dy - self.min_dy + 1))

    @property
    def max_abs_dx(self) -> int:
        return max(abs(self.min_dx), abs(self.max_dx))

    @property
    def max_abs_dy(self) -> int:
        return max(abs(self.min_dy), abs(self.max_dy))

    def negated(self) -> 'SearchRange':
        """Range of the reverse (right to left) search."""
        return SearchRange(-self.max_dx, -self.max_dy,
                           -self.min_dx, -self.min_dy)

    def scaled(self, factor: int) -> 'SearchRange':
        """Range at a pyramid level downsampled by *factor*."""
        return SearchRange(
            math.floor(self.min_dx / factor), math.floor(self.min_dy / factor),
            math.ceil(self.max_dx / factor), math.ceil(self.max_dy / factor),
        )


class _Budget:
    """Wall-clock budget for one correlation."""

    def __init__(self, timeout: float, seconds_per_op: float, ops: int) -> None:
        self.timeout = timeout
        self.deadline = None
        if timeout > 0:
            estimate = ops * seconds_per_op
            if estimate > timeout:
                raise CorrelationError(
                    f"Estimated correlation time {estimate:.1f}s exceeds "
                    f"the {timeout:.1f}s budget"
                )
            self.deadline = time.monotonic() + timeout

    def check(self) -> None:
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise CorrelationError(
                f"Correlation exceeded its {self.timeout:.1f}s budget"
            )


def _shifted(
    image: np.ndarray,
    mask: np.ndarray,
    row: int,
    col: int,
    shape: Tuple[int, int],
) -> Tuple[np.ndarray, np.ndarray]:
    """Window of *image* at ``(row, col)``, zero-filled outside the image."""
    h, w = shape
    rows, cols = image.shape
    out = np.zeros(shape, dtype=np.float64)
    out_mask = np.zeros(shape, dtype=bool)
    r0, r1 = max(row, 0), min(row + h, rows)
    c0, c1 = max(col, 0), min(col + w, cols)
    if r1 > r0 and c1 > c0:
        out[r0 - row:r1 - row, c0 - col:c1 - col] = image[r0:r1, c0:c1]
        out_mask[r0 - row:r1 - row, c0 - col:c1 - col] = mask[r0:r1, c0:c1]
    return out, out_mask


def _upsample(values: np.ndarray, shape: Tuple[int, int]) -> np.ndarray:
    """Nearest-neighbour 2x upsampling cropped to *shape*."""
    return np.repeat(np.repeat(values, 2, axis=0), 2, axis=1)[:shape[0], :shape[1]]


class WindowedCorrelator(Configurable):
    """Exhaustive or pyramidal windowed disparity search.

    Parameters
    ----------
    kernel_x : int
        Kernel width in pixels, odd. Default 15.
    kernel_y : int
        Kernel height in pixels, odd. Default 15.
    cost_function : CostFunction
        Matching cost. Default ``ABSOLUTE_DIFFERENCE``.
    lr_threshold : int
        Left/right consistency tolerance in pixels; negative disables the
        check. Default 2.
    mode : CorrelatorMode
        ``DIRECT`` or ``PYRAMID``. Default ``DIRECT``.
    max_pyramid_levels : int
        Upper bound on downsampled levels in pyramid mode. Default 5.
    log_sigma : float
        Sigma of the Laplacian-of-Gaussian prefilter; 0 disables it.
        Default 1.4.
    min_support : float
        Smallest fraction of the kernel that must overlap both images for
        a cost to count. Default 0.25.

    Raises
    ------
    ValidationError
        If a kernel dimension is even.

    Examples
    --------
    >>> correlator = WindowedCorrelator(kernel_x=15, kernel_y=15,
    ...                                 cost_function='cross_correlation')
    >>> field = correlator.correlate(left, right, SearchRange(-5, -5, 5, 5))
    """

    kernel_x: Annotated[int, Range(min=1), Desc('Kernel width, odd')] = 15
    kernel_y: Annotated[int, Range(min=1), Desc('Kernel height, odd')] = 15
    cost_function: Annotated[CostFunction, Options(*CostFunction),
                             Desc('Window matching cost')] = CostFunction.ABSOLUTE_DIFFERENCE
    lr_threshold: Annotated[int, Range(min=-1),
                            Desc('Left/right tolerance, -1 disables')] = 2
    mode: Annotated[CorrelatorMode, Options(*CorrelatorMode),
                    Desc('Search strategy')] = CorrelatorMode.DIRECT
    max_pyramid_levels: Annotated[int, Range(min=0, max=12)] = 5
    log_sigma: Annotated[float, Range(min=0.0), Desc('LoG prefilter sigma')] = 1.4
    min_support: Annotated[float, Range(min=0.0, max=1.0),
                           Desc('Minimum overlapping kernel fraction')] = 0.25

    def __post_init__(self) -> None:
        if self.kernel_x % 2 == 0 or self.kernel_y % 2 == 0:
            raise ValidationError(
                f"Kernel dimensions must be odd, got "
                f"{self.kernel_x}x{self.kernel_y}"
            )

    @property
    def kernel_size(self) -> Tuple[int, int]:
        """Kernel ``(rows, cols)``."""
        return (self.kernel_y, self.kernel_x)

    @property
    def prefilter_radius(self) -> int:
        """Rows of context the prefilter reads beyond a pixel."""
        if self.log_sigma <= 0:
            return 0
        return int(_LOG_TRUNCATE * self.log_sigma + 0.5)

    def strip_margin(self, search_range: SearchRange) -> int:
        """Overlap rows needed so strip cores correlate exactly."""
        return (self.kernel_y // 2 + 2 * search_range.max_abs_dy
                + self.prefilter_radius)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def correlate(
        self,
        left: np.ndarray,
        right: np.ndarray,
        search_range: SearchRange,
        timeout: float = 0.0,
        seconds_per_op: float = 0.0,
    ) -> DisparityField:
        """Disparity of every left pixel against the right window.

        Parameters
        ----------
        left : np.ndarray
            Left window, shape (rows, cols). Non-finite pixels are treated
            as missing data.
        right : np.ndarray
            Right window, same shape.
        search_range : SearchRange
            Candidate displacements.
        timeout : float
            Wall-clock budget in seconds; 0 means unbounded.
        seconds_per_op : float
            Expected seconds per pixel-disparity evaluation, used to reject
            searches that cannot fit the budget before starting.

        Returns
        -------
        DisparityField
            Integer disparities; rejected cells are invalid.

        Raises
        ------
        ValidationError
            If the windows are not 2D arrays of the same shape.
        CorrelationError
            If the search exceeds its time budget.
        """
        left = np.asarray(left)
        right = np.asarray(right)
        if left.ndim != 2 or right.ndim != 2:
            raise ValidationError("Correlation windows must be 2D")
        if left.shape != right.shape:
            raise ValidationError(
                f"Correlation windows differ in size: {left.shape} vs "
                f"{right.shape}"
            )
        if left.size == 0:
            raise ValidationError("Correlation windows are empty")

        budget = _Budget(timeout, seconds_per_op,
                         2 * left.size * search_range.count)
        left_img, left_mask = self._prepare(left)
        right_img, right_mask = self._prepare(right)

        if self.mode is CorrelatorMode.PYRAMID:
            search = self._pyramid_search
        else:
            search = self._direct_search

        dx, dy, cost = search(left_img, left_mask, right_img, right_mask,
                              search_range, budget)
        valid = np.isfinite(cost)

        if self.lr_threshold >= 0:
            rdx, rdy, rcost = search(right_img, right_mask, left_img,
                                     left_mask, search_range.negated(),
                                     budget)
            valid = self._consistent(dx, dy, valid, rdx, rdy,
                                     np.isfinite(rcost))

        field = DisparityField(dx.astype(np.float64), dy.astype(np.float64),
                               valid)
        self.log.debug("Correlated %dx%d window: %d valid cells",
                       left.shape[0], left.shape[1], field.valid_count)
        return field

    def correlate_strips(
        self,
        left_reader: ImageReader,
        right_reader: ImageReader,
        window: ChipRegion,
        search_range: SearchRange,
        strip_rows: int = 256,
        timeout: float = 0.0,
        seconds_per_op: float = 0.0,
    ) -> Iterator[DisparityField]:
        """Correlate *window* of both readers one row strip at a time.

        Parameters
        ----------
        left_reader, right_reader : ImageReader
            Source images; *window* must lie inside both.
        window : ChipRegion
            Region correlated in both images.
        search_range : SearchRange
            Candidate displacements.
        strip_rows : int
            Rows per yielded strip.
        timeout, seconds_per_op : float
            Per-strip budget, as in :meth:`correlate`.

        Yields
        ------
        DisparityField
            Strips of the window's disparity field, top to bottom.
        """
        margin = self.strip_margin(search_range)
        for strip in strip_regions(window.shape, strip_rows, margin):
            r0 = window.row_start + strip.padded.row_start
            r1 = window.row_start + strip.padded.row_end
            left = left_reader.read_chip(r0, r1, window.col_start, window.col_end)
            right = right_reader.read_chip(r0, r1, window.col_start, window.col_end)
            field = self.correlate(left, right, search_range,
                                   timeout=timeout, seconds_per_op=seconds_per_op)
            core_rows = strip.core.row_end - strip.core.row_start
            yield field.slice_rows(strip.offset, strip.offset + core_rows)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _prepare(self, image: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        image = image.astype(np.float64)
        mask = np.isfinite(image)
        image = np.where(mask, image, 0.0)
        if self.log_sigma > 0:
            image = gaussian_laplace(image, self.log_sigma,
                                     truncate=_LOG_TRUNCATE)
        return image, mask

    def _window_cost(
        self,
        ref: np.ndarray,
        tgt: np.ndarray,
        weight: np.ndarray,
        support: np.ndarray,
    ) -> np.ndarray:
        size = self.kernel_size
        s = np.maximum(support, _EPS)

        def mean(values: np.ndarray) -> np.ndarray:
            return uniform_filter(values * weight, size=size, mode='constant') / s

        if self.cost_function is CostFunction.SQUARED_DIFFERENCE:
            return mean((ref - tgt) ** 2)
        if self.cost_function is CostFunction.CROSS_CORRELATION:
            mu_r = mean(ref)
            mu_t = mean(tgt)
            var_r = np.maximum(mean(ref * ref) - mu_r ** 2, 0.0)
            var_t = np.maximum(mean(tgt * tgt) - mu_t ** 2, 0.0)
            cov = mean(ref * tgt) - mu_r * mu_t
            denom = np.sqrt(var_r * var_t)
            ncc = np.where(denom > _EPS, cov / np.maximum(denom, _EPS), 0.0)
            return 1.0 - ncc
        return mean(np.abs(ref - tgt))

    def _direct_search(
        self,
        ref: np.ndarray,
        ref_mask: np.ndarray,
        tgt: np.ndarray,
        tgt_mask: np.ndarray,
        search_range: SearchRange,
        budget: _Budget,
        origin: Tuple[int, int] = (0, 0),
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Best disparity of each *ref* pixel by exhaustive search.

        *ref* is located at *origin* in *tgt*'s pixel frame. Cells with no
        sufficiently supported candidate get an infinite cost.
        """
        shape = ref.shape
        r0, c0 = origin
        best_cost = np.full(shape, np.inf)
        best_dx = np.zeros(shape, dtype=np.int64)
        best_dy = np.zeros(shape, dtype=np.int64)

        for dy in range(search_range.min_dy, search_range.max_dy + 1):
            for dx in range(search_range.min_dx, search_range.max_dx + 1):
                budget.check()
                shifted, shifted_mask = _shifted(tgt, tgt_mask,
                                                 r0 + dy, c0 + dx, shape)
                weight = (shifted_mask & ref_mask).astype(np.float64)
                support = uniform_filter(weight, size=self.kernel_size,
                                         mode='constant')
                cost = self._window_cost(ref, shifted, weight, support)
                cost[(support < self.min_support - _EPS) | ~ref_mask] = np.inf
                better = cost < best_cost
                best_cost[better] = cost[better]
                best_dx[better] = dx
                best_dy[better] = dy

        return best_dx, best_dy, best_cost

    def _pyramid_levels(self, shape: Tuple[int, int]) -> int:
        smallest = 2 * max(self.kernel_x, self.kernel_y)
        levels = 0
        rows, cols = shape
        while (levels < self.max_pyramid_levels
               and min(rows, cols) // 2 >= smallest):
            rows, cols = (rows + 1) // 2, (cols + 1) // 2
            levels += 1
        return levels

    def _pyramid_search(
        self,
        ref: np.ndarray,
        ref_mask: np.ndarray,
        tgt: np.ndarray,
        tgt_mask: np.ndarray,
        search_range: SearchRange,
        budget: _Budget,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Coarse-to-fine search; falls back to direct search on small inputs."""
        levels = self._pyramid_levels(ref.shape)
        if levels == 0:
            return self._direct_search(ref, ref_mask, tgt, tgt_mask,
                                       search_range, budget)

        refs, ref_masks = [ref], [ref_mask]
        tgts, tgt_masks = [tgt], [tgt_mask]
        for _ in range(levels):
            refs.append(gaussian_filter(refs[-1], 1.0)[::2, ::2])
            ref_masks.append(ref_masks[-1][::2, ::2])
            tgts.append(gaussian_filter(tgts[-1], 1.0)[::2, ::2])
            tgt_masks.append(tgt_masks[-1][::2, ::2])

        dx, dy, cost = self._direct_search(
            refs[levels], ref_masks[levels], tgts[levels], tgt_masks[levels],
            search_range.scaled(2 ** levels), budget,
        )
        self.log.debug("Pyramid level %d: full search over %s", levels,
                       search_range.scaled(2 ** levels))

        half_y, half_x = self.kernel_y // 2, self.kernel_x // 2
        for level in range(levels - 1, -1, -1):
            level_range = search_range.scaled(2 ** level)
            shape = refs[level].shape
            pred_dx = _upsample(dx * 2, shape)
            pred_dy = _upsample(dy * 2, shape)
            pred_ok = _upsample(np.isfinite(cost), shape)

            dx = np.zeros(shape, dtype=np.int64)
            dy = np.zeros(shape, dtype=np.int64)
            cost = np.full(shape, np.inf)
            for block in tile_regions(shape, (_BLOCK, _BLOCK)):
                core = (slice(block.row_start, block.row_end),
                        slice(block.col_start, block.col_end))
                block_range = self._block_range(pred_dx[core], pred_dy[core],
                                                pred_ok[core], level_range)
                r0 = max(block.row_start - half_y, 0)
                r1 = min(block.row_end + half_y, shape[0])
                c0 = max(block.col_start - half_x, 0)
                c1 = min(block.col_end + half_x, shape[1])
                bdx, bdy, bcost = self._direct_search(
                    refs[level][r0:r1, c0:c1], ref_masks[level][r0:r1, c0:c1],
                    tgts[level], tgt_masks[level], block_range, budget,
                    origin=(r0, c0),
                )
                inner = (slice(block.row_start - r0, block.row_end - r0),
                         slice(block.col_start - c0, block.col_end - c0))
                dx[core] = bdx[inner]
                dy[core] = bdy[inner]
                cost[core] = bcost[inner]

        return dx, dy, cost

    @staticmethod
    def _block_range(
        pred_dx: np.ndarray,
        pred_dy: np.ndarray,
        pred_ok: np.ndarray,
        level_range: SearchRange,
        slack: int = 2,
    ) -> SearchRange:
        """Search range of one refinement block from its coarse estimate."""
        if not pred_ok.any():
            return level_range
        vx = pred_dx[pred_ok]
        vy = pred_dy[pred_ok]

        def clamp(v: int, lo: int, hi: int) -> int:
            return int(min(max(v, lo), hi))

        return SearchRange(
            clamp(vx.min() - slack, level_range.min_dx, level_range.max_dx),
            clamp(vy.min() - slack, level_range.min_dy, level_range.max_dy),
            clamp(vx.max() + slack, level_range.min_dx, level_range.max_dx),
            clamp(vy.max() + slack, level_range.min_dy, level_range.max_dy),
        )

    def _consistent(
        self,
        dx: np.ndarray,
        dy: np.ndarray,
        valid: np.ndarray,
        rdx: np.ndarray,
        rdy: np.ndarray,
        rvalid: np.ndarray,
    ) -> np.ndarray:
        """Left/right consistency mask.

        A cell whose match lands outside the right window cannot be
        cross-checked and keeps its forward validity.
        """
        rows, cols = dx.shape
        r, c = np.mgrid[0:rows, 0:cols]
        qx = c + dx
        qy = r + dy
        inside = valid & (qx >= 0) & (qx < cols) & (qy >= 0) & (qy < rows)
        ok = np.ones((rows, cols), dtype=bool)
        qxi, qyi = qx[inside], qy[inside]
        thr = self.lr_threshold
        ok[inside] = (rvalid[qyi, qxi]
                      & (np.abs(dx[inside] + rdx[qyi, qxi]) <= thr)
                      & (np.abs(dy[inside] + rdy[qyi, qxi]) <= thr))
        return valid & ok
