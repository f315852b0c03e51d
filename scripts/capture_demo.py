#!/usr/bin/env python3
"""
Iris Capture Demo Script
========================

Standalone script to exercise the full capture pipeline.

This script:
    1. Captures the left eye, then the right eye
    2. Logs the quality, fusion and enhancement outcome per eye
    3. Optionally accepts below-gate fallbacks
    4. Enrolls both eyes into an in-memory template store

Frame sources:
    - A local camera (default, via OpenCV)
    - A directory of images, replayed in name order (--images)

Usage:
    python scripts/capture_demo.py --camera 0
    python scripts/capture_demo.py --images ./samples --accept-fallback
    python scripts/capture_demo.py --images ./samples --burst 3 --model ./models/espcn_x2.onnx
"""

import argparse
import asyncio
import base64
import logging
import sys
from pathlib import Path
from typing import List, Optional

from iris_capture.auth import EnrollmentService, InMemoryAuthLog, InMemoryTemplateStore
from iris_capture.config import settings, setup_logging
from iris_capture.enhancement import SuperResolutionEngine
from iris_capture.models import EyeLabel, IrisCaptureResult
from iris_capture.pipeline import CaptureSessionController
from iris_capture.stream import CapturedPhoto, OpenCVFrameSource, ReplayFrameSource
from iris_capture.stream.image_codec import decode_b64_bgr


logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg"}


def load_photos(directory: Path) -> List[CapturedPhoto]:
    """Load every image in a directory as a replayable photo."""
    photos = []
    for path in sorted(directory.iterdir()):
        if path.suffix.lower() not in IMAGE_SUFFIXES:
            continue
        image_b64 = base64.b64encode(path.read_bytes()).decode("ascii")
        height, width = decode_b64_bgr(image_b64).shape[:2]
        photos.append(CapturedPhoto(image_b64=image_b64, width=width, height=height, uri=path.as_uri()))
    logger.info(f"Loaded {len(photos)} images from {directory}")
    return photos


def log_result(result: IrisCaptureResult) -> None:
    quality = result.quality
    enhancement = result.enhancement
    logger.info("-" * 40)
    logger.info(f"{result.eye.value.upper()} eye")
    logger.info(f"  Frames used: {result.used_frame_count}/{result.frame_count}")
    logger.info(
        f"  Quality: composite={quality.composite:.3f} focus={quality.focus:.3f} "
        f"exposure={quality.exposure:.3f} occlusion={quality.occlusion:.3f} "
        f"gaze={quality.gaze:.3f} radius={quality.iris_radius_px:.0f}px"
    )
    if enhancement is not None:
        logger.info(
            f"  Enhancement: {enhancement.source.value} in {enhancement.duration_ms:.0f}ms"
            + (f" ({enhancement.error})" if enhancement.error else "")
        )
    if result.is_fallback:
        logger.info("  Accepted below-gate fallback")


async def capture(
    controller: CaptureSessionController,
    eye: EyeLabel,
    accept_fallback: bool,
) -> Optional[IrisCaptureResult]:
    result = await controller.capture_eye(eye)
    if result is not None:
        return result

    logger.warning(f"{eye.value} eye capture failed:\n{controller.error}")
    if accept_fallback and controller.fallback_result is not None:
        return controller.accept_fallback()
    return None


async def run_demo(args: argparse.Namespace) -> int:
    """
    Capture both eyes and enroll them.

    Returns:
        Process exit code
    """
    if args.images:
        source = ReplayFrameSource(load_photos(Path(args.images)))
    else:
        source = OpenCVFrameSource(camera_index=args.camera)

    enhancement_config = settings.enhancement
    if args.model:
        enhancement_config = enhancement_config.model_copy(update={"model_path": args.model})
    engine = SuperResolutionEngine(config=enhancement_config)

    overrides = {}
    if args.burst:
        overrides["burst_frame_count"] = args.burst
    if args.fusion:
        overrides["fusion_frame_count"] = args.fusion

    controller = CaptureSessionController(source, engine=engine, overrides=overrides)

    logger.info("=" * 60)
    logger.info("Iris Capture Demo")
    logger.info("=" * 60)
    logger.info(f"Source: {args.images or f'camera {args.camera}'}")
    logger.info(f"Model: {enhancement_config.model_path}")
    logger.info(f"Model available: {await engine.warm_up()}")

    results = {}
    try:
        for eye in (EyeLabel.LEFT, EyeLabel.RIGHT):
            result = await capture(controller, eye, args.accept_fallback)
            if result is None:
                break
            log_result(result)
            results[eye] = result
            controller.reset()
    finally:
        if isinstance(source, OpenCVFrameSource):
            source.release()

    logger.info("=" * 60)
    if len(results) < 2:
        logger.error("❌ Capture incomplete, nothing enrolled")
        return 1

    template = EnrollmentService(InMemoryTemplateStore(), InMemoryAuthLog()).enroll(
        results[EyeLabel.LEFT], results[EyeLabel.RIGHT]
    )
    logger.info(f"✅ Enrolled template {template.template_id} (quality={template.quality:.3f})")
    logger.info(f"Engine metrics: {engine.get_metrics()}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Iris capture pipeline demo")
    parser.add_argument("--camera", type=int, default=0, help="OpenCV camera index (default: 0)")
    parser.add_argument("--images", type=str, default=None, help="Directory of images to replay")
    parser.add_argument("--model", type=str, default=None, help="Path to the ONNX super-resolution model")
    parser.add_argument("--burst", type=int, default=None, help="Frames per burst")
    parser.add_argument("--fusion", type=int, default=None, help="Frames fused per eye")
    parser.add_argument(
        "--accept-fallback",
        action="store_true",
        help="Proceed with the best below-gate frame when the quality gate fails",
    )

    args = parser.parse_args()

    setup_logging(settings)
    sys.exit(asyncio.run(run_demo(args)))


if __name__ == "__main__":
    main()
