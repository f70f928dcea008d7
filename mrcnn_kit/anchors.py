from __future__ import annotations

import math
from functools import lru_cache
from typing import List, Sequence, Tuple

import numpy as np
from loguru import logger

from .config import MaskRcnnConfig
from .errors import ConfigError
from .geometry import norm_boxes


def compute_backbone_shapes(image_shape: Sequence[float], strides: Sequence[float]) -> List[Tuple[int, int]]:
    """
    Feature map (height, width) at every pyramid level.
    """

    h, w = float(image_shape[0]), float(image_shape[1])
    return [(int(math.ceil(h / s)), int(math.ceil(w / s))) for s in strides]


def generate_anchors(
    scale: float,
    ratios: Sequence[float],
    shape: Sequence[int],
    feature_stride: float,
    anchor_stride: int,
) -> np.ndarray:
    """
    Anchors for one pyramid level, in pixels, as (N, 4) (y1, x1, y2, x2).

    Ordering: ratios vary fastest, then x positions, then y positions. The RPN
    head was trained against this layout, so it must not change.
    """

    ratios = np.asarray(ratios, dtype=np.float64)
    heights = scale / np.sqrt(ratios)
    widths = scale * np.sqrt(ratios)

    # Cell positions in feature space, mapped to image space
    shifts_y = np.arange(0, shape[0], anchor_stride) * feature_stride
    shifts_x = np.arange(0, shape[1], anchor_stride) * feature_stride
    shifts_x, shifts_y = np.meshgrid(shifts_x, shifts_y)

    # (P, R): one row per position, one column per ratio
    box_widths, box_centers_x = np.meshgrid(widths, shifts_x.ravel())
    box_heights, box_centers_y = np.meshgrid(heights, shifts_y.ravel())

    centers = np.stack([box_centers_y, box_centers_x], axis=2).reshape(-1, 2)
    sizes = np.stack([box_heights, box_widths], axis=2).reshape(-1, 2)

    return np.concatenate([centers - 0.5 * sizes, centers + 0.5 * sizes], axis=1)


def generate_pyramid_anchors(
    scales: Sequence[float],
    ratios: Sequence[float],
    feature_shapes: Sequence[Sequence[int]],
    feature_strides: Sequence[float],
    anchor_stride: int,
) -> np.ndarray:
    """
    Concatenate per-level anchors in level order. Pixel coordinates.
    """

    if not (len(scales) == len(feature_shapes) == len(feature_strides)):
        raise ConfigError(
            f"Need one anchor scale per pyramid level: got {len(scales)} scales, "
            f"{len(feature_strides)} strides and {len(feature_shapes)} feature shapes."
        )
    levels = [
        generate_anchors(scales[i], ratios, feature_shapes[i], feature_strides[i], anchor_stride)
        for i in range(len(scales))
    ]
    return np.concatenate(levels, axis=0)


def expected_anchor_count(
    image_shape: Sequence[float], ratios: Sequence[float], strides: Sequence[float], anchor_stride: int
) -> int:
    total = 0
    for fh, fw in compute_backbone_shapes(image_shape, strides):
        total += len(ratios) * math.ceil(fh / anchor_stride) * math.ceil(fw / anchor_stride)
    return total


@lru_cache(maxsize=16)
def _cached_anchors(
    height: int,
    width: int,
    scales: Tuple[float, ...],
    ratios: Tuple[float, ...],
    strides: Tuple[float, ...],
    anchor_stride: int,
) -> np.ndarray:
    feature_shapes = compute_backbone_shapes((height, width), strides)
    anchors = generate_pyramid_anchors(scales, ratios, feature_shapes, strides, anchor_stride)
    anchors = norm_boxes(anchors, (height, width)).astype(np.float32)
    anchors.setflags(write=False)
    logger.debug(f"Generated {anchors.shape[0]} anchors for image shape {height}x{width}")
    return anchors


def get_anchors(image_shape: Sequence[float], cfg: MaskRcnnConfig) -> np.ndarray:
    """
    Normalized anchor set for a molded image shape.

    Cached per (shape, anchor settings); the returned array is read-only and
    shared between callers.
    """

    return _cached_anchors(
        int(image_shape[0]),
        int(image_shape[1]),
        tuple(float(s) for s in cfg.rpn_anchor_scales),
        tuple(float(r) for r in cfg.rpn_anchor_ratios),
        tuple(float(s) for s in cfg.backbone_strides),
        int(cfg.rpn_anchor_stride),
    )
