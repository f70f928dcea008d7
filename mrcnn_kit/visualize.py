from __future__ import annotations

from typing import Dict, Optional, Tuple

import numpy as np

from .types import MaskResult


# Ten strong tones, then their light variants (RGB).
_MASK_COLORS_RGB = (
    (31, 119, 180),
    (255, 127, 14),
    (44, 160, 44),
    (214, 39, 40),
    (148, 103, 189),
    (140, 86, 75),
    (227, 119, 194),
    (127, 127, 127),
    (188, 189, 34),
    (23, 190, 207),
    (174, 199, 232),
    (255, 187, 120),
    (152, 223, 138),
    (255, 152, 150),
    (197, 176, 213),
    (196, 156, 148),
    (247, 182, 210),
    (199, 199, 199),
    (219, 219, 141),
    (158, 218, 229),
)


def _cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for drawing overlays. Install with `pip install opencv-python`.") from e
    return cv2


def color_for_class_id(class_id: int) -> Tuple[int, int, int]:
    """
    Deterministic BGR color for a class id.

    Ids past the fixed table walk the hue circle in steps of 47 degrees (OpenCV
    hue units), at full value.
    """

    if 0 <= class_id < len(_MASK_COLORS_RGB):
        r, g, b = _MASK_COLORS_RGB[class_id]
        return b, g, r

    cv2 = _cv2()
    hsv = np.array([[[(int(class_id) * 47) % 180, 200, 255]]], dtype=np.uint8)
    bgr = cv2.cvtColor(hsv, cv2.COLOR_HSV2BGR)[0, 0]
    return int(bgr[0]), int(bgr[1]), int(bgr[2])


def draw_instances(
    image_bgr: np.ndarray,
    result: MaskResult,
    *,
    class_names: Optional[Dict[int, str]] = None,
    alpha: float = 0.5,
    show_boxes: bool = True,
    show_score: bool = True,
    font_scale: float = 0.5,
) -> np.ndarray:
    """
    Blend instance masks (and optionally boxes + labels) onto a copy of the
    original image.
    """

    cv2 = _cv2()

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")
    if image_bgr.shape[:2] != result.masks.shape[:2]:
        raise ValueError(
            f"Image is {image_bgr.shape[:2]} but masks were reconstructed for {result.masks.shape[:2]}"
        )
    if not 0.0 <= alpha <= 1.0:
        raise ValueError("alpha must be within [0, 1]")

    out = image_bgr.astype(np.float32)
    for n, class_id in enumerate(result.class_ids):
        color = np.array(color_for_class_id(int(class_id)), dtype=np.float32)
        inside = result.masks[:, :, n] > 0
        out[inside] = (1.0 - alpha) * out[inside] + alpha * color
    out = np.clip(out, 0, 255).astype(np.uint8)

    if not show_boxes:
        return out

    for n, (y1, x1, y2, x2) in enumerate(result.boxes):
        class_id = int(result.class_ids[n])
        color = color_for_class_id(class_id)
        cv2.rectangle(out, (int(x1), int(y1)), (int(x2) - 1, int(y2) - 1), color, thickness=1)

        label = class_names.get(class_id, str(class_id)) if class_names else str(class_id)
        score = float(result.scores[n])
        if show_score and not np.isnan(score):
            label = f"{label} {score:.2f}"
        cv2.putText(
            out,
            label,
            (int(x1), max(int(y1) - 2, 0)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=1,
            lineType=cv2.LINE_AA,
        )
    return out
