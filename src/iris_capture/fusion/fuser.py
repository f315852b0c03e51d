"""
Frame Fuser
===========

Combines the top-ranked passing frames into one representative frame.

Strategies:
    - best:    the single highest-ranked frame is the fused image
    - average: the used frames are decoded and pixel-averaged; frames whose
               size differs from the best frame are left out of the pixel
               average (but still count toward the averaged quality).
               The averaged image has no file of its own, so fused_uri
               is None

Invariants:
    - fuse([]) is None (callers treat it as total failure)
    - 0 < frames_used <= min(fusion_frame_count, len(passing))
    - average_quality is the mean over exactly the frames used
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from iris_capture.config import CaptureConfig
from iris_capture.models.capture import FusionResult, ScoredFrame
from iris_capture.models.quality import average_quality
from iris_capture.stream.image_codec import (
    ImageDecodeError,
    ImageEncodeError,
    decode_b64_bgr,
    encode_bgr_b64,
)


logger = logging.getLogger(__name__)


class FrameFuser:
    """Fuses ranked passing frames into a FusionResult."""

    def fuse(self, passing: Sequence[ScoredFrame], config: CaptureConfig) -> Optional[FusionResult]:
        """
        Fuse the top passing frames.

        Args:
            passing: Passing frames, already ranked best first
            config: Capture configuration (fusion_frame_count, fusion_strategy)

        Returns:
            FusionResult, or None if `passing` is empty
        """
        if not passing:
            return None

        used = list(passing[: min(config.fusion_frame_count, len(passing))])
        representative = used[0].frame
        averaged = average_quality([item.quality for item in used])

        fused_b64 = representative.image_b64
        fused_uri = representative.uri
        strategy = "best"
        if config.fusion_strategy == "average" and len(used) > 1:
            pixel_average = self._average_pixels(used, config)
            if pixel_average is not None:
                fused_b64 = pixel_average
                fused_uri = None
                strategy = "average"

        logger.info(
            f"Fused {len(used)} frame(s) with '{strategy}': "
            f"representative={representative.frame_id}, "
            f"avg_composite={averaged.composite:.3f}"
        )

        return FusionResult(
            fused_b64=fused_b64,
            fused_uri=fused_uri,
            frames_used=len(used),
            average_quality=averaged,
            strategy=strategy,
        )

    def _average_pixels(self, used: List[ScoredFrame], config: CaptureConfig) -> Optional[str]:
        """
        Pixel-average the used frames.

        Returns:
            Encoded averaged image, or None to fall back to the best frame
        """
        try:
            reference = decode_b64_bgr(used[0].frame.image_b64)
            accumulator = reference.astype(np.float64)
            count = 1
            for item in used[1:]:
                image = decode_b64_bgr(item.frame.image_b64)
                if image.shape != reference.shape:
                    logger.debug(
                        f"Skipping {item.frame.frame_id} in pixel average: "
                        f"shape {image.shape} != {reference.shape}"
                    )
                    continue
                accumulator += image
                count += 1

            if count == 1:
                return None

            fused = np.clip(np.rint(accumulator / count), 0, 255).astype(np.uint8)
            jpeg_quality = max(1, min(100, int(round(config.capture_quality * 100))))
            return encode_bgr_b64(fused, fmt="jpg", jpeg_quality=jpeg_quality)

        except (ImageDecodeError, ImageEncodeError) as e:
            logger.warning(f"Pixel averaging failed, using best frame: {e}")
            return None
