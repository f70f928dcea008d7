from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
from loguru import logger

from .config import MaskRcnnConfig
from .errors import ConfigError, DimensionError, UnsupportedModeError
from .geometry import round_half_away
from .types import PreprocessResult


Padding = Tuple[Tuple[int, int], Tuple[int, int], Tuple[int, int]]

PAD64 = 64

_RESIZABLE_DTYPES = tuple(np.dtype(t) for t in (np.uint8, np.uint16, np.int16, np.float32, np.float64))


def _cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for resizing. Install with `pip install opencv-python`.") from e
    return cv2


def _as_hwc(image: np.ndarray) -> np.ndarray:
    if image is None or not hasattr(image, "shape"):
        raise TypeError("image must be a NumPy array (H, W) or (H, W, C).")
    if image.ndim == 2:
        return image[:, :, None]
    if image.ndim != 3:
        raise ValueError(f"Expected image shape (H, W) or (H, W, C), got {image.shape}")
    return image


def resize_bilinear(image: np.ndarray, height: int, width: int) -> np.ndarray:
    """
    Bilinear resize that keeps the channel axis, even for a single channel.
    """

    cv2 = _cv2()
    src = _as_hwc(image)
    if src.dtype not in _RESIZABLE_DTYPES:
        # cv2.resize has no linear kernel for int32/int64/bool/float16
        if not (np.issubdtype(src.dtype, np.integer) or np.issubdtype(src.dtype, np.floating) or src.dtype == np.bool_):
            raise TypeError(f"Cannot resize an image of dtype {src.dtype}; expected a real-valued array.")
        src = src.astype(np.float32)
    out = cv2.resize(src, (int(width), int(height)), interpolation=cv2.INTER_LINEAR)
    return out.reshape(int(height), int(width), src.shape[2])


def pad_image(image: np.ndarray, padding: Padding) -> np.ndarray:
    """
    Zero-pad an (H, W, C) image with ((top, bottom), (left, right), (0, 0)).
    """

    cv2 = _cv2()
    src = _as_hwc(image)
    (top, bottom), (left, right) = padding[0], padding[1]
    if min(top, bottom, left, right) < 0:
        raise DimensionError(f"Padding must be non-negative, got {padding}")
    if top == bottom == left == right == 0:
        return src
    out = cv2.copyMakeBorder(src, top, bottom, left, right, cv2.BORDER_CONSTANT, value=0)
    return out.reshape(src.shape[0] + top + bottom, src.shape[1] + left + right, src.shape[2])


def compute_scale(h: int, w: int, min_dim: int, min_scale: float, max_dim: int, mode: str) -> float:
    scale = 1.0
    if min_dim:
        # Scale up but not down
        scale = max(1.0, min_dim / min(h, w))
    if min_scale and scale < min_scale:
        scale = float(min_scale)

    # Does it exceed max dim?
    if mode == "square":
        image_max = max(h, w)
        if round_half_away(image_max * scale) > max_dim:
            scale = max_dim / image_max
    return scale


def _split(total: int) -> Tuple[int, int]:
    before = total // 2
    return before, total - before


def resize_image(
    image: np.ndarray,
    min_dim: int = 800,
    min_scale: float = 0.0,
    max_dim: int = 1024,
    mode: str = "square",
    strict_pad64: bool = True,
):
    """
    Resize an image keeping its aspect ratio, then pad it for the network.

    Modes:
        none: return the image unchanged.
        square: scale so the short side reaches `min_dim` (never beyond `max_dim`
            on the long side), then zero-pad to exactly `max_dim x max_dim`.
        pad64: scale by `min_dim`/`min_scale` only (`max_dim` ignored). With
            `strict_pad64` the scaled image must already be a multiple of 64 on
            both axes; otherwise each axis is padded up to its next multiple of 64.
        crop: training only, rejected.

    Returns:
        image: resized + padded image (H', W', C)
        window: (y1, x1, y2, x2) of the real content inside the padded image
        scale: factor applied to the original image
        padding: ((top, bottom), (left, right), (0, 0))
    """

    if mode == "crop":
        raise UnsupportedModeError(
            "IMAGE_RESIZE_MODE 'crop' picks random crops and is training-only; use 'square' or 'pad64'."
        )
    if mode not in ("none", "square", "pad64"):
        raise UnsupportedModeError(f"Unsupported IMAGE_RESIZE_MODE {mode!r}; allowed: 'none', 'square', 'pad64'.")

    image = _as_hwc(image)
    h, w = image.shape[:2]
    no_padding: Padding = ((0, 0), (0, 0), (0, 0))

    if mode == "none":
        return image, (0.0, 0.0, float(h), float(w)), 1.0, no_padding

    scale = compute_scale(h, w, min_dim, min_scale, max_dim, mode)

    if scale != 1:
        new_h = int(round_half_away(h * scale))
        new_w = int(round_half_away(w * scale))
        if new_h <= 0 or new_w <= 0:
            raise DimensionError(f"Scaling {h}x{w} by {scale:g} gives an empty image ({new_h}x{new_w}).")
        image = resize_bilinear(image, new_h, new_w)

    h, w = image.shape[:2]
    if mode == "square":
        top, bottom = _split(max_dim - h)
        left, right = _split(max_dim - w)
    else:
        if strict_pad64 and (h % PAD64 != 0 or w % PAD64 != 0):
            raise DimensionError(
                f"IMAGE_RESIZE_MODE 'pad64' needs height and width that are multiples of {PAD64}, got {h}x{w}."
            )
        top, bottom = _split(-h % PAD64)
        left, right = _split(-w % PAD64)

    padding: Padding = ((top, bottom), (left, right), (0, 0))
    image = pad_image(image, padding)
    window = (float(top), float(left), float(h + top), float(w + left))

    logger.debug(f"resize_image mode={mode} scale={scale:.4f} window={window} shape={image.shape}")
    return image, window, scale, padding


def mold_image(image: np.ndarray, mean_pixel: Sequence[float]) -> np.ndarray:
    """
    Subtract the per-channel mean pixel. Returns a new float32 array.
    """

    image = _as_hwc(image)
    if mean_pixel is None or len(mean_pixel) == 0:
        raise ConfigError("MEAN_PIXEL is missing; expected something like [123.7, 116.8, 103.9].")
    channels = image.shape[2]
    if len(mean_pixel) < channels:
        raise ConfigError(f"MEAN_PIXEL has {len(mean_pixel)} values but the image has {channels} channels.")
    mean = np.asarray(mean_pixel[:channels], dtype=np.float32)
    return image.astype(np.float32) - mean


def mold_inputs(image: np.ndarray, cfg: MaskRcnnConfig) -> PreprocessResult:
    """
    Resize, pad and mean-subtract one image. Meta and anchors are left empty.
    """

    image = _as_hwc(image)
    if len(cfg.mean_pixel) < image.shape[2]:
        raise ConfigError(f"MEAN_PIXEL has {len(cfg.mean_pixel)} values but the image has {image.shape[2]} channels.")
    original_shape = tuple(float(v) for v in image.shape)

    molded, window, scale, padding = resize_image(
        image.astype(np.float32),
        min_dim=cfg.image_min_dim,
        min_scale=cfg.image_min_scale,
        max_dim=cfg.image_max_dim,
        mode=cfg.image_resize_mode,
        strict_pad64=cfg.strict_pad64,
    )
    processing_shape = tuple(float(v) for v in molded.shape)
    molded = mold_image(molded, cfg.mean_pixel)

    return PreprocessResult(
        image=molded,
        window=window,
        scale=scale,
        original_shape=original_shape,
        processing_shape=processing_shape,
        padding=padding,
    )
