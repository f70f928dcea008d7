from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from .config import parse_array
from .errors import ConfigError


Shape = Tuple[float, float, float]
Window = Tuple[float, float, float, float]


@dataclass(frozen=True)
class Detection:
    """
    One valid row of the network's detection table.

    The box is normalized relative to the processed (molded) image. `index` is
    the row the detection came from; the mask volume is indexed by it.
    """

    y1: float
    x1: float
    y2: float
    x2: float
    class_id: int
    score: Optional[float] = None
    index: int = 0

    def as_yxyx(self) -> Tuple[float, float, float, float]:
        return self.y1, self.x1, self.y2, self.x2


def format_array(values) -> str:
    """Format numbers as "[112.0, 83.0, 912.0, 940.0]"."""

    return "[" + ", ".join(repr(float(v)) for v in values) + "]"


@dataclass(frozen=True)
class RuntimeParameters:
    """
    Everything post-processing needs to know about how the input was molded.
    """

    window: Window
    original_shape: Shape
    processing_shape: Shape

    def __post_init__(self) -> None:
        shapes = (("ORIGINAL_IMAGE_SIZE", self.original_shape), ("PROCESSING_IMAGE_SIZE", self.processing_shape))
        for key, shape in shapes:
            if len(shape) != 3:
                raise ConfigError(f"{key} must have 3 values (height, width, channels), got {len(shape)}")
            for v in shape:
                if not (float(v) >= 0 and float(v).is_integer()):
                    raise ConfigError(f"{key} must hold non-negative whole numbers, got {format_array(shape)}")
        if len(self.window) != 4:
            raise ConfigError(f"WINDOW_SIZE must have 4 values (y1, x1, y2, x2), got {len(self.window)}")
        y1, x1, y2, x2 = (float(v) for v in self.window)
        if not (y2 >= y1 and x2 >= x1):
            raise ConfigError(f"WINDOW_SIZE must satisfy y2 >= y1 and x2 >= x1, got {format_array(self.window)}")

    def to_mapping(self) -> Dict[str, str]:
        return {
            "WINDOW_SIZE": format_array(self.window),
            "ORIGINAL_IMAGE_SIZE": format_array(self.original_shape),
            "PROCESSING_IMAGE_SIZE": format_array(self.processing_shape),
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "RuntimeParameters":
        window = parse_array(mapping.get("WINDOW_SIZE"), "WINDOW_SIZE")
        original = parse_array(mapping.get("ORIGINAL_IMAGE_SIZE"), "ORIGINAL_IMAGE_SIZE")
        processing = parse_array(mapping.get("PROCESSING_IMAGE_SIZE"), "PROCESSING_IMAGE_SIZE")
        return cls(window=window, original_shape=original, processing_shape=processing)


@dataclass(frozen=True)
class PreprocessResult:
    image: np.ndarray
    window: Window
    scale: float
    original_shape: Shape
    processing_shape: Shape
    padding: Tuple[Tuple[int, int], Tuple[int, int], Tuple[int, int]]
    image_meta: Optional[np.ndarray] = None
    anchors: Optional[np.ndarray] = None

    def runtime_parameters(self) -> RuntimeParameters:
        return RuntimeParameters(
            window=self.window,
            original_shape=self.original_shape,
            processing_shape=self.processing_shape,
        )

    def as_inputs(self) -> Dict[str, np.ndarray]:
        """
        Network inputs with a leading batch axis of 1.
        """

        if self.image_meta is None or self.anchors is None:
            raise ValueError("image_meta and anchors are required; build the result with MaskRcnnPipeline.preprocess().")
        return {
            "input_image": self.image[None, ...],
            "input_image_meta": self.image_meta[None, ...],
            "input_anchors": self.anchors[None, ...],
        }


@dataclass(frozen=True)
class MaskResult:
    """
    Full-resolution instance masks, paired with the raw detection table.

    masks: (H, W, N) float32, 1 inside the instance and 0 elsewhere
    boxes: (N, 4) int32 pixel boxes (y1, x1, y2, x2) in the original image
    """

    masks: np.ndarray
    boxes: np.ndarray
    class_ids: np.ndarray
    scores: np.ndarray
    detections: List[Detection]
    table: np.ndarray

    def __len__(self) -> int:
        return len(self.detections)
