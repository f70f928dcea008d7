"""
Box conversions between pixel and normalized coordinates.

Pixel boxes treat (y2, x2) as exclusive, normalized boxes treat it as inclusive,
hence the (0, 0, 1, 1) shift. Nothing here clamps: boxes slightly outside
[0, 1] come straight from the network and are passed through as-is.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np

from .errors import DimensionError


ArrayLike = Union[np.ndarray, Sequence[float], Sequence[Sequence[float]]]

_SHIFT = np.array([0.0, 0.0, 1.0, 1.0])


def round_half_away(values):
    """
    Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3).

    `np.round` rounds halves to even, which moves box edges by one pixel.
    """

    v = np.asarray(values, dtype=np.float64)
    return np.sign(v) * np.floor(np.abs(v) + 0.5)


def _box_scale(shape: Sequence[float]) -> np.ndarray:
    if len(shape) < 2:
        raise DimensionError(f"Shape must have at least (height, width), got {tuple(shape)}")
    h, w = float(shape[0]), float(shape[1])
    if h <= 1 or w <= 1:
        raise DimensionError(f"Cannot normalize against a shape of {h:g}x{w:g}; both sides must be > 1.")
    return np.array([h - 1, w - 1, h - 1, w - 1])


def norm_boxes(boxes: ArrayLike, shape: Sequence[float]) -> np.ndarray:
    """
    Pixel -> normalized coordinates.

    Args:
        boxes: (4,) or (N, 4) as (y1, x1, y2, x2) in pixels
        shape: (height, width, ...) of the image the boxes live in
    """

    b = np.asarray(boxes, dtype=np.float64)
    return (b - _SHIFT) / _box_scale(shape)


def denorm_boxes(boxes: ArrayLike, shape: Sequence[float]) -> np.ndarray:
    """
    Normalized -> integer pixel coordinates (inverse of `norm_boxes`).
    """

    b = np.asarray(boxes, dtype=np.float64)
    return round_half_away(b * _box_scale(shape) + _SHIFT).astype(np.int32)


def window_relative(boxes: ArrayLike, window: ArrayLike) -> np.ndarray:
    """
    Re-express normalized boxes relative to a normalized window.

    A box covering the window exactly maps to (0, 0, 1, 1). With the unit window
    (0, 0, 1, 1) this is the identity.
    """

    b = np.asarray(boxes, dtype=np.float64)
    wy1, wx1, wy2, wx2 = np.asarray(window, dtype=np.float64).reshape(4)
    wh = wy2 - wy1
    ww = wx2 - wx1
    if wh <= 0 or ww <= 0:
        raise DimensionError(f"Window must have positive extent, got {(wy1, wx1, wy2, wx2)}")
    shift = np.array([wy1, wx1, wy1, wx1])
    scale = np.array([wh, ww, wh, ww])
    return (b - shift) / scale
