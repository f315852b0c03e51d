"""
Frame Quality Scorer
====================

Deterministic pixel-domain quality metrics for a single iris frame.

Metrics (all normalized to [0, 1], higher is better):
    - focus:      Laplacian variance v, mapped as v / (v + FOCUS_HALF_POINT)
    - exposure:   closeness of mean luminance to mid-gray, scaled down by
                  the fraction of clipped (crushed or blown) pixels
    - occlusion:  1 - occluded_fraction / occlusion_max, where a block of
                  the central iris region is occluded when it is textureless
                  (eyelid, skin) or saturated (specular glare)
    - gaze:       angle implied by the offset of the pupil proxy (darkest
                  pixels) from the frame centre, mapped linearly as
                  1 - angle / gaze_angle_max (straight on = 1, at or beyond
                  the maximum tolerated angle = 0)
    - iris_radius_score: min(w, h) / 2 relative to iris_radius_ideal

Design Rules:
    - Pure: same frame + config always yields the same FrameQuality
    - Never raises; an undecodable frame scores 0 on content metrics
      and therefore fails the quality gate
    - Every output is clamped into [0, 1]
"""

import logging
import math

import cv2
import numpy as np

from iris_capture.config import CaptureConfig
from iris_capture.models.quality import FrameQuality
from iris_capture.stream.frame import Frame
from iris_capture.stream.image_codec import ImageDecodeError, decode_b64_grayscale


logger = logging.getLogger(__name__)


class FrameQualityScorer:
    """
    Computes FrameQuality from decoded pixels.

    The scorer holds only constants, so one instance can be shared
    freely across sessions.
    """

    # Laplacian variance that maps to focus = 0.5
    FOCUS_HALF_POINT = 100.0

    # Luminance levels counted as clipped
    CLIP_LOW = 5
    CLIP_HIGH = 250
    MID_GRAY = 128.0

    # Occlusion block grid over the central square
    OCCLUSION_GRID = 8
    TEXTURELESS_STD = 4.0
    SATURATED_MEAN = 245.0

    # Darkest percentile used as the pupil proxy
    PUPIL_PERCENTILE = 5.0

    def score(self, frame: Frame, config: CaptureConfig) -> FrameQuality:
        """
        Score a frame.

        Args:
            frame: Captured frame
            config: Capture configuration (radius ideal, gaze/occlusion limits)

        Returns:
            FrameQuality with clamped sub-scores and composite
        """
        try:
            gray = decode_b64_grayscale(frame.image_b64)
        except ImageDecodeError as e:
            logger.warning(f"Cannot score frame {frame.frame_id}: {e}")
            radius_px = self._iris_radius_px(frame.width, frame.height)
            return FrameQuality.from_scores(
                focus=0.0,
                gaze=0.0,
                exposure=0.0,
                occlusion=0.0,
                iris_radius_score=radius_px / config.iris_radius_ideal,
                iris_radius_px=radius_px,
            )

        # Trust reported dimensions, fall back to decoded ones when unknown
        width = frame.width or gray.shape[1]
        height = frame.height or gray.shape[0]
        radius_px = self._iris_radius_px(width, height)

        quality = FrameQuality.from_scores(
            focus=self._focus(gray),
            gaze=self._gaze(gray, config.gaze_angle_max),
            exposure=self._exposure(gray),
            occlusion=self._occlusion(gray, config.occlusion_max),
            iris_radius_score=radius_px / config.iris_radius_ideal,
            iris_radius_px=radius_px,
        )

        logger.debug(
            f"Scored {frame.frame_id}: focus={quality.focus:.3f}, "
            f"gaze={quality.gaze:.3f}, exposure={quality.exposure:.3f}, "
            f"occlusion={quality.occlusion:.3f}, radius={quality.iris_radius_px:.0f}px, "
            f"composite={quality.composite:.3f}"
        )
        return quality

    @staticmethod
    def _iris_radius_px(width: int, height: int) -> float:
        return max(1.0, min(width, height) / 2.0)

    def _focus(self, gray: np.ndarray) -> float:
        """Laplacian variance, squashed into [0, 1)."""
        variance = float(cv2.Laplacian(gray, cv2.CV_64F).var())
        if not math.isfinite(variance) or variance <= 0.0:
            return 0.0
        return variance / (variance + self.FOCUS_HALF_POINT)

    def _exposure(self, gray: np.ndarray) -> float:
        mean = float(np.mean(gray))
        clipped = float(np.mean((gray <= self.CLIP_LOW) | (gray >= self.CLIP_HIGH)))
        balance = 1.0 - abs(mean - self.MID_GRAY) / self.MID_GRAY
        return max(0.0, balance) * (1.0 - clipped)

    def _occlusion(self, gray: np.ndarray, occlusion_max: float) -> float:
        """
        Visibility of the central iris region.

        The central square is split into an OCCLUSION_GRID x OCCLUSION_GRID
        block grid. Lids and skin show up as textureless blocks, glare as
        saturated blocks.
        """
        height, width = gray.shape
        side = min(height, width)
        y0 = (height - side) // 2
        x0 = (width - side) // 2

        cells = min(self.OCCLUSION_GRID, side)
        block = side // cells
        roi = gray[y0:y0 + cells * block, x0:x0 + cells * block].astype(np.float64)
        blocks = roi.reshape(cells, block, cells, block)

        means = blocks.mean(axis=(1, 3))
        stds = blocks.std(axis=(1, 3))
        occluded = (stds < self.TEXTURELESS_STD) | (means >= self.SATURATED_MEAN)
        occluded_fraction = float(occluded.mean())

        return 1.0 - occluded_fraction / occlusion_max

    def _gaze(self, gray: np.ndarray, gaze_angle_max: float) -> float:
        """
        Gaze alignment from the pupil proxy position.

        An off-axis gaze shifts the pupil away from the frame centre; the
        normalized offset is read as the sine of the gaze angle. An angle
        of gaze_angle_max or more scores 0.
        """
        height, width = gray.shape
        threshold = np.percentile(gray, self.PUPIL_PERCENTILE)
        ys, xs = np.nonzero(gray <= threshold)
        if len(xs) == 0:
            return 0.0

        dx = float(xs.mean()) - (width - 1) / 2.0
        dy = float(ys.mean()) - (height - 1) / 2.0
        radius = min(height, width) / 2.0
        offset = min(1.0, math.hypot(dx, dy) / radius)
        angle = math.degrees(math.asin(offset))

        return 1.0 - angle / gaze_angle_max


_default_scorer = FrameQualityScorer()


def score_frame(frame: Frame, config: CaptureConfig) -> FrameQuality:
    """Score a frame with the shared default scorer."""
    return _default_scorer.score(frame, config)
