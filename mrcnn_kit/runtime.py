from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from .anchors import get_anchors
from .config import MaskRcnnConfig, config_from_mapping
from .metadata import compose_image_meta
from .postprocess import MaskRcnnPostprocessor
from .resize import mold_inputs
from .types import MaskResult, PreprocessResult, RuntimeParameters


InferOutput = Union[Mapping[str, np.ndarray], Tuple[np.ndarray, np.ndarray]]


class MaskRcnnPipeline:
    """
    Plug-and-play pipeline: mold -> inference -> unmold.

    `infer_fn` receives the dict from `PreprocessResult.as_inputs()` and returns
    either a mapping keyed by the configured output names or a
    `(detections, masks)` tuple. Nothing is kept between calls: the window and
    shapes travel from `preprocess` to `postprocess` inside the returned value.
    """

    def __init__(
        self,
        infer_fn: Optional[Callable[[Dict[str, np.ndarray]], InferOutput]] = None,
        *,
        config: MaskRcnnConfig = MaskRcnnConfig(),
        mask_threshold: float = 0.5,
    ):
        self._infer_fn = infer_fn
        self.config = config
        self.post = MaskRcnnPostprocessor(threshold=mask_threshold)

    @classmethod
    def from_parameters(
        cls,
        parameters: Mapping[str, str],
        infer_fn: Optional[Callable[[Dict[str, np.ndarray]], InferOutput]] = None,
        **kwargs,
    ) -> "MaskRcnnPipeline":
        return cls(infer_fn, config=config_from_mapping(parameters), **kwargs)

    def preprocess(self, image: np.ndarray, image_id: float = 0.0) -> PreprocessResult:
        prep = mold_inputs(image, self.config)
        meta = compose_image_meta(
            image_id,
            prep.original_shape,
            prep.processing_shape,
            prep.window,
            prep.scale,
            self.config.num_classes,
        )
        anchors = get_anchors(prep.processing_shape, self.config)
        return replace(prep, image_meta=meta, anchors=anchors)

    def postprocess(
        self,
        detections: np.ndarray,
        masks: np.ndarray,
        runtime: Union[RuntimeParameters, PreprocessResult],
    ) -> MaskResult:
        return self.post.process(detections, masks, runtime)

    def _split_outputs(self, outputs: InferOutput) -> Tuple[np.ndarray, np.ndarray]:
        if isinstance(outputs, Mapping):
            missing = [k for k in (self.config.detection_output, self.config.mask_output) if k not in outputs]
            if missing:
                raise KeyError(f"Inference outputs are missing {missing}; got {sorted(outputs.keys())}")
            return outputs[self.config.detection_output], outputs[self.config.mask_output]
        detections, masks = outputs
        return detections, masks

    def __call__(self, image: np.ndarray) -> MaskResult:
        if self._infer_fn is None:
            raise RuntimeError("No infer_fn was given; call preprocess()/postprocess() around your own inference.")
        prep = self.preprocess(image)
        detections, masks = self._split_outputs(self._infer_fn(prep.as_inputs()))
        return self.postprocess(detections, masks, prep)
