from __future__ import annotations

from typing import Dict, Sequence, Union

import numpy as np


def compose_image_meta(
    image_id: float,
    original_shape: Sequence[float],
    processing_shape: Sequence[float],
    window: Sequence[float],
    scale: float,
    active_class_ids: Union[int, Sequence[float]],
) -> np.ndarray:
    """
    Pack image attributes into the flat float32 vector the network expects.

    Layout:

        [image_id, original (h, w, c), processing (h, w, c),
         window (y1, x1, y2, x2), scale, active_class_ids (num_classes)]

    At inference time `active_class_ids` is all zeros, so an int `num_classes`
    may be passed instead of the vector.
    """

    if isinstance(active_class_ids, (int, np.integer)):
        active = np.zeros(int(active_class_ids), dtype=np.float32)
    else:
        active = np.asarray(active_class_ids, dtype=np.float32).ravel()

    if len(original_shape) != 3 or len(processing_shape) != 3:
        raise ValueError(
            f"Shapes must be (height, width, channels), got {tuple(original_shape)} and {tuple(processing_shape)}"
        )
    if len(window) != 4:
        raise ValueError(f"Window must be (y1, x1, y2, x2), got {tuple(window)}")

    meta = np.concatenate(
        [
            [image_id],
            list(original_shape),
            list(processing_shape),
            list(window),
            [scale],
            active,
        ]
    )
    return meta.astype(np.float32)


def parse_image_meta(meta: np.ndarray) -> Dict[str, np.ndarray]:
    """
    Split a meta vector from `compose_image_meta` back into its parts.
    """

    m = np.asarray(meta, dtype=np.float32)
    if m.ndim == 2:
        if m.shape[0] != 1:
            raise ValueError(f"Batch > 1 is not supported (got shape {m.shape}).")
        m = m[0]
    if m.shape[0] < 12:
        raise ValueError(f"Image meta needs at least 12 values, got {m.shape[0]}")
    return {
        "image_id": m[0],
        "original_image_shape": m[1:4],
        "image_shape": m[4:7],
        "window": m[7:11],
        "scale": m[11],
        "active_class_ids": m[12:],
    }
