"""
Run Mask R-CNN pre- and post-processing as two separate steps around an
external inference runtime.

    python Scripts/mask_rcnn_stages.py prepare --image cells.png --config config.ijm --out inputs.npz
    # ... run the network on inputs.npz, save mrcnn_detection.npy / mrcnn_mask.npy ...
    python Scripts/mask_rcnn_stages.py unmold --detections mrcnn_detection.npy \
        --masks mrcnn_mask.npy --config config.ijm --out masks.npy

`prepare` records the window and shapes in the config file's runtime section so
`unmold` can be invoked later, by itself.
"""

import argparse
from pathlib import Path

import cv2
import numpy as np
from loguru import logger

from mrcnn_kit import (
    EmptyResultError,
    MaskRcnnPipeline,
    RuntimeParameters,
    draw_instances,
    load_parameters,
    update_runtime_parameters,
)


def prepare(args: argparse.Namespace) -> int:
    img = cv2.imread(args.image, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {args.image}")
    if img.ndim == 3 and img.shape[2] >= 3:
        # Mask R-CNN is trained on RGB
        img = cv2.cvtColor(img[:, :, :3], cv2.COLOR_BGR2RGB)

    pipeline = MaskRcnnPipeline.from_parameters(load_parameters(args.config))
    prep = pipeline.preprocess(img)

    np.savez(args.out, **prep.as_inputs())
    logger.info(f"Wrote network inputs: {args.out}")

    config_path = Path(args.config)
    text = config_path.read_text(encoding="utf-8")
    config_path.write_text(update_runtime_parameters(text, prep.runtime_parameters()), encoding="utf-8")
    logger.info(f"Recorded runtime parameters in: {config_path} {prep.runtime_parameters().to_mapping()}")
    return 0


def unmold(args: argparse.Namespace) -> int:
    parameters = load_parameters(args.config)
    runtime = RuntimeParameters.from_mapping(parameters)
    pipeline = MaskRcnnPipeline.from_parameters(parameters, mask_threshold=args.threshold)

    detections = np.load(args.detections, allow_pickle=False)
    masks = np.load(args.masks, allow_pickle=False)
    try:
        result = pipeline.postprocess(detections, masks, runtime)
    except EmptyResultError as exc:
        logger.warning(str(exc))
        return 1

    np.save(args.out, result.masks)
    logger.info(f"Wrote {len(result)} instance masks {result.masks.shape}: {args.out}")

    if args.overlay:
        if not args.image:
            raise ValueError("--overlay needs --image")
        img = cv2.imread(args.image, cv2.IMREAD_COLOR)
        if img is None:
            raise FileNotFoundError(f"Could not read image at path: {args.image}")
        vis = draw_instances(img, result)
        if not cv2.imwrite(args.overlay, vis):
            raise RuntimeError(f"Failed to write overlay image: {args.overlay}")
        logger.info(f"Wrote overlay: {args.overlay}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Mask R-CNN pre/post-processing around an external runtime.")
    sub = parser.add_subparsers(dest="stage", required=True)

    p = sub.add_parser("prepare", help="Mold an image and write network inputs (.npz).")
    p.add_argument("--image", required=True, help="Path to the input image.")
    p.add_argument("--config", required=True, help="Parameter file (e.g. config.ijm).")
    p.add_argument("--out", required=True, help="Output .npz with input_image/input_image_meta/input_anchors.")
    p.set_defaults(func=prepare)

    u = sub.add_parser("unmold", help="Rebuild full-resolution masks from network outputs.")
    u.add_argument("--detections", required=True, help="Detection table .npy (N, 6).")
    u.add_argument("--masks", required=True, help="Mask volume .npy (N, mh, mw, num_classes).")
    u.add_argument("--config", required=True, help="Parameter file written by `prepare`.")
    u.add_argument("--out", required=True, help="Output .npy with (H, W, N) masks.")
    u.add_argument("--threshold", type=float, default=0.5, help="Mask probability threshold.")
    u.add_argument("--image", default=None, help="Original image, for --overlay.")
    u.add_argument("--overlay", default=None, help="Optional path to save a mask overlay image.")
    u.set_defaults(func=unmold)

    args = parser.parse_args()
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
