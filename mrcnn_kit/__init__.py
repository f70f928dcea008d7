"""
Mask R-CNN inference pre- and post-processing helpers.

Framework-agnostic: molds images and builds anchors/meta as NumPy arrays for
whatever runtime executes the network, then turns the raw detection table and
per-class mask volume back into full-resolution instance masks. No external
dependencies beyond NumPy, OpenCV (resizing) and loguru.
"""

from .errors import (
    ConfigError,
    DimensionError,
    EmptyResultError,
    MaskRcnnError,
    ReconstructionError,
    UnsupportedModeError,
)
from .types import Detection, MaskResult, PreprocessResult, RuntimeParameters
from .config import MaskRcnnConfig, config_from_mapping, parse_array
from .geometry import denorm_boxes, norm_boxes, round_half_away, window_relative
from .resize import mold_image, mold_inputs, resize_image
from .anchors import compute_backbone_shapes, generate_anchors, generate_pyramid_anchors, get_anchors
from .metadata import compose_image_meta, parse_image_meta
from .postprocess import MaskRcnnPostprocessor, count_detections, decode_detections, unmold_detections
from .parameters import format_array, load_parameters, parse_parameters, update_runtime_parameters
from .runtime import MaskRcnnPipeline
from .visualize import draw_instances

__all__ = [
    "ConfigError",
    "DimensionError",
    "EmptyResultError",
    "MaskRcnnError",
    "ReconstructionError",
    "UnsupportedModeError",
    "Detection",
    "MaskResult",
    "PreprocessResult",
    "RuntimeParameters",
    "MaskRcnnConfig",
    "config_from_mapping",
    "parse_array",
    "denorm_boxes",
    "norm_boxes",
    "round_half_away",
    "window_relative",
    "mold_image",
    "mold_inputs",
    "resize_image",
    "compute_backbone_shapes",
    "generate_anchors",
    "generate_pyramid_anchors",
    "get_anchors",
    "compose_image_meta",
    "parse_image_meta",
    "MaskRcnnPostprocessor",
    "count_detections",
    "decode_detections",
    "unmold_detections",
    "format_array",
    "load_parameters",
    "parse_parameters",
    "update_runtime_parameters",
    "MaskRcnnPipeline",
    "draw_instances",
]
