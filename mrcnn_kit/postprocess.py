from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple, Union

import numpy as np
from loguru import logger

from .errors import EmptyResultError, ReconstructionError
from .geometry import denorm_boxes, norm_boxes, window_relative
from .resize import resize_bilinear
from .types import Detection, MaskResult, PreprocessResult, RuntimeParameters


def _as_table(table) -> np.ndarray:
    t = np.asarray(table)
    if t.ndim == 3:
        if t.shape[0] != 1:
            raise ValueError(f"Batch > 1 is not supported (got shape {t.shape}). Pass one image at a time.")
        t = t[0]
    if t.ndim == 1 and t.size == 0:
        return t.reshape(0, 5)
    if t.ndim != 2 or t.shape[1] < 5:
        raise ValueError(f"Detection table must be (N, >=5) [y1, x1, y2, x2, class_id, (score)], got {t.shape}")
    return t


def _class_id(value, row: int) -> int:
    try:
        as_float = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Row {row}: class id {value!r} is not a number") from exc
    if not as_float.is_integer():
        raise ValueError(f"Row {row}: class id {value!r} is not an integer")
    return int(as_float)


def decode_detections(table) -> List[Detection]:
    """
    Keep the table rows whose class id is non-zero, in row order.

    Columns: y1, x1, y2, x2, class_id and optionally score. Cells may be
    numbers or numeric strings. Zero-class rows are padding emitted by the
    network and are dropped, so an empty list means "nothing detected".
    """

    t = _as_table(table)
    detections: List[Detection] = []
    for i, row in enumerate(t):
        class_id = _class_id(row[4], i)
        if class_id == 0:
            continue
        try:
            y1, x1, y2, x2 = (float(v) for v in row[:4])
            score = float(row[5]) if len(row) > 5 else None
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Row {i}: box values {list(row[:4])} are not numbers") from exc
        detections.append(Detection(y1=y1, x1=x1, y2=y2, x2=x2, class_id=class_id, score=score, index=i))
    return detections


def count_detections(table) -> int:
    t = _as_table(table)
    return sum(1 for i, row in enumerate(t) if _class_id(row[4], i) != 0)


def _as_mask_volume(mrcnn_mask: np.ndarray) -> np.ndarray:
    m = np.asarray(mrcnn_mask)
    if m.ndim == 5:
        if m.shape[0] != 1:
            raise ValueError(f"Batch > 1 is not supported (got shape {m.shape}). Pass one image at a time.")
        m = m[0]
    if m.ndim != 4:
        raise ValueError(f"Mask volume must be (rows, height, width, num_classes), got {m.shape}")
    return m


def select_masks(mrcnn_mask: np.ndarray, detections: List[Detection]) -> np.ndarray:
    """
    Pick each detection's class channel from the per-class probability volume.

    Returns (N, mh, mw) float32, one probability map per detection.
    """

    m = _as_mask_volume(mrcnn_mask)
    rows, mh, mw, num_classes = m.shape
    selected = np.empty((len(detections), mh, mw), dtype=np.float32)
    for n, det in enumerate(detections):
        if det.index >= rows:
            raise ReconstructionError(f"Detection row {det.index} has no mask (mask volume has {rows} rows).")
        if not 0 <= det.class_id < num_classes:
            raise ReconstructionError(
                f"Detection row {det.index} has class id {det.class_id}, outside the {num_classes} mask channels."
            )
        selected[n] = m[det.index, :, :, det.class_id]
    return selected


def boxes_to_original(
    detections: List[Detection],
    runtime: RuntimeParameters,
) -> np.ndarray:
    """
    Map normalized boxes from the processed image into original-image pixels.
    """

    if not detections:
        return np.zeros((0, 4), dtype=np.int32)
    boxes = np.array([d.as_yxyx() for d in detections], dtype=np.float64)
    window = norm_boxes(runtime.window, runtime.processing_shape)
    boxes = window_relative(boxes, window)
    return denorm_boxes(boxes, runtime.original_shape)


def check_boxes(boxes: np.ndarray, height: int, width: int) -> None:
    for i, (y1, x1, y2, x2) in enumerate(boxes):
        if y2 <= y1 or x2 <= x1:
            raise ReconstructionError(f"Detection {i} has a degenerate box {(y1, x1, y2, x2)} in the original image.")
        if y1 < 0 or x1 < 0 or y2 > height or x2 > width:
            raise ReconstructionError(
                f"Detection {i} box {(y1, x1, y2, x2)} falls outside the {height}x{width} original image."
            )


@dataclass
class MaskRcnnPostprocessor:
    """
    Unmold raw Mask R-CNN outputs into full-resolution instance masks.
    """

    threshold: float = 0.5

    def process(
        self,
        table,
        mrcnn_mask: np.ndarray,
        runtime: Union[RuntimeParameters, PreprocessResult],
    ) -> MaskResult:
        """
        Arg:
            table: detection table (N, >=5) [y1, x1, y2, x2, class_id, (score)]
            mrcnn_mask: (N, mh, mw, num_classes) mask probabilities
            runtime: window and shapes recorded when the input was molded

        Raises:
            EmptyResultError: no row has a non-zero class id
            ReconstructionError: a box is degenerate or outside the original image
        """

        if isinstance(runtime, PreprocessResult):
            runtime = runtime.runtime_parameters()

        raw_table = _as_table(table)
        detections = decode_detections(raw_table)
        if not detections:
            raise EmptyResultError("No object was detected in the input image.")
        logger.debug(f"Unmolding {len(detections)} of {raw_table.shape[0]} detection rows")

        height, width = int(runtime.original_shape[0]), int(runtime.original_shape[1])
        boxes = boxes_to_original(detections, runtime)
        check_boxes(boxes, height, width)
        selected = select_masks(mrcnn_mask, detections)

        masks = np.zeros((height, width, len(detections)), dtype=np.float32)
        for n, (y1, x1, y2, x2) in enumerate(boxes):
            full = self._unmold_mask(selected[n], (y2 - y1, x2 - x1))
            masks[y1:y2, x1:x2, n][full] = 1.0

        return MaskResult(
            masks=masks,
            boxes=boxes,
            class_ids=np.array([d.class_id for d in detections], dtype=np.int32),
            scores=np.array([np.nan if d.score is None else d.score for d in detections], dtype=np.float32),
            detections=detections,
            table=raw_table,
        )

    def _unmold_mask(self, mask: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
        h, w = int(size[0]), int(size[1])
        resized = resize_bilinear(mask.astype(np.float32), h, w)[:, :, 0]
        return resized >= self.threshold


def unmold_detections(
    table,
    mrcnn_mask: np.ndarray,
    runtime: Union[RuntimeParameters, PreprocessResult],
    threshold: float = 0.5,
) -> MaskResult:
    return MaskRcnnPostprocessor(threshold=threshold).process(table, mrcnn_mask, runtime)
