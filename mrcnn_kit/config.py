from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from .errors import ConfigError, UnsupportedModeError


RESIZE_MODES = ("none", "square", "pad64")


@dataclass(frozen=True)
class MaskRcnnConfig:
    """
    Inference-time Mask R-CNN settings.

    Defaults mirror the stock COCO configuration the network is usually exported with.
    """

    image_min_dim: int = 800
    image_min_scale: float = 0.0
    image_max_dim: int = 1024
    image_resize_mode: str = "square"
    num_classes: int = 81
    mean_pixel: Tuple[float, ...] = (123.7, 116.8, 103.9)
    rpn_anchor_scales: Tuple[float, ...] = (32.0, 64.0, 128.0, 256.0, 512.0)
    rpn_anchor_ratios: Tuple[float, ...] = (0.5, 1.0, 2.0)
    backbone_strides: Tuple[float, ...] = (4.0, 8.0, 16.0, 32.0, 64.0)
    rpn_anchor_stride: int = 1
    # pad64 only: require an already 64-aligned image (True) or pad each axis up
    # to its own next multiple of 64 (False).
    strict_pad64: bool = True
    detection_output: str = "mrcnn_detection"
    mask_output: str = "mrcnn_mask"

    def __post_init__(self) -> None:
        if self.image_resize_mode == "crop":
            raise UnsupportedModeError(
                "IMAGE_RESIZE_MODE 'crop' is training-only and not supported here; use 'square' or 'pad64'."
            )
        if self.image_resize_mode not in RESIZE_MODES:
            raise UnsupportedModeError(
                f"IMAGE_RESIZE_MODE is {self.image_resize_mode!r}; allowed values: {list(RESIZE_MODES)}"
            )
        if self.image_min_dim < 0:
            raise ConfigError("IMAGE_MIN_DIM must be >= 0")
        if self.image_min_scale < 0:
            raise ConfigError("IMAGE_MIN_SCALE must be >= 0")
        if self.image_resize_mode == "square" and self.image_max_dim <= 0:
            raise ConfigError("IMAGE_MAX_DIM must be > 0 in 'square' mode")
        if self.num_classes <= 0:
            raise ConfigError("NUM_CLASSES must be > 0")
        if not self.mean_pixel:
            raise ConfigError("MEAN_PIXEL must not be empty")
        if not self.rpn_anchor_scales or not self.rpn_anchor_ratios:
            raise ConfigError("RPN_ANCHOR_SCALES and RPN_ANCHOR_RATIOS must not be empty")
        if len(self.rpn_anchor_scales) != len(self.backbone_strides):
            raise ConfigError(
                f"RPN_ANCHOR_SCALES has {len(self.rpn_anchor_scales)} entries but "
                f"BACKBONE_STRIDES has {len(self.backbone_strides)}; one scale per pyramid level is required."
            )
        if any(r <= 0 for r in self.rpn_anchor_ratios):
            raise ConfigError("RPN_ANCHOR_RATIOS must be > 0")
        if any(s <= 0 for s in self.backbone_strides):
            raise ConfigError("BACKBONE_STRIDES must be > 0")
        if self.rpn_anchor_stride <= 0:
            raise ConfigError("RPN_ANCHOR_STRIDE must be > 0")


def parse_array(text: Optional[str], key: str = "value") -> Tuple[float, ...]:
    """
    Parse "[a, b, c]", "(a, b, c)" or "a, b, c" into a tuple of floats.
    """

    if text is None:
        raise ConfigError(f"Missing required key: {key}")
    s = str(text).strip()
    if "[" in s:
        s = s[s.index("[") + 1 :]
    elif "(" in s:
        s = s[s.index("(") + 1 :]
    if "]" in s:
        s = s[: s.index("]")]
    elif ")" in s:
        s = s[: s.index(")")]

    parts = [p.strip() for p in s.split(",")]
    if not parts or any(not p for p in parts):
        raise ConfigError(f"{key} must be a comma-separated list of numbers, got {text!r}")
    try:
        return tuple(float(p) for p in parts)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a comma-separated list of numbers, got {text!r}") from exc


def _require(mapping: Mapping[str, str], key: str) -> str:
    if key not in mapping or mapping[key] is None:
        raise ConfigError(f"Missing required key: {key}")
    return str(mapping[key]).strip()


def _require_number(mapping: Mapping[str, str], key: str) -> float:
    raw = _require(mapping, key)
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from exc


def _require_int(mapping: Mapping[str, str], key: str) -> int:
    value = _require_number(mapping, key)
    if not value.is_integer():
        raise ConfigError(f"{key} must be an integer, got {mapping[key]!r}")
    return int(value)


def _optional_bool(mapping: Mapping[str, str], key: str, default: bool) -> bool:
    if key not in mapping:
        return default
    raw = str(mapping[key]).strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"{key} must be a boolean, got {mapping[key]!r}")


def config_from_mapping(mapping: Mapping[str, str]) -> MaskRcnnConfig:
    """
    Build a validated config from the flat key -> string mapping.

    All keys are parsed before anything else runs, so a bad mapping fails
    before any image buffer is touched.
    """

    return MaskRcnnConfig(
        image_min_dim=_require_int(mapping, "IMAGE_MIN_DIM"),
        image_min_scale=_require_number(mapping, "IMAGE_MIN_SCALE"),
        image_max_dim=_require_int(mapping, "IMAGE_MAX_DIM"),
        image_resize_mode=_require(mapping, "IMAGE_RESIZE_MODE").strip("'\""),
        num_classes=_require_int(mapping, "NUM_CLASSES"),
        mean_pixel=parse_array(mapping.get("MEAN_PIXEL"), "MEAN_PIXEL"),
        rpn_anchor_scales=parse_array(mapping.get("RPN_ANCHOR_SCALES"), "RPN_ANCHOR_SCALES"),
        rpn_anchor_ratios=parse_array(mapping.get("RPN_ANCHOR_RATIOS"), "RPN_ANCHOR_RATIOS"),
        backbone_strides=parse_array(mapping.get("BACKBONE_STRIDES"), "BACKBONE_STRIDES"),
        rpn_anchor_stride=_require_int(mapping, "RPN_ANCHOR_STRIDE"),
        strict_pad64=_optional_bool(mapping, "IMAGE_PAD64_STRICT", True),
        detection_output=str(mapping.get("MRCNN_DETECTION", "mrcnn_detection")).strip(),
        mask_output=str(mapping.get("MRCNN_MASK", "mrcnn_mask")).strip(),
    )
