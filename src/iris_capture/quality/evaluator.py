"""
Frame Evaluator
===============

Ranks a burst by composite score and applies the quality gate.

Two independent judgements:
    - Ranking: weighted composite, tolerates trade-offs between metrics
    - Gating: fixed per-metric floors, tolerates none

A frame with a high composite can still fail the gate if any single
metric misses its floor.

Quality Gate (fixed policy):
    focus          >= 0.65
    exposure       >= 0.60
    occlusion      >= 0.60
    iris_radius_px >= config.iris_radius_min
"""

import logging
from typing import List, Optional, Sequence

from iris_capture.config import CaptureConfig
from iris_capture.models.capture import ScoredFrame
from iris_capture.models.quality import FrameQuality
from iris_capture.models.reason_codes import QualityIssue
from iris_capture.quality.scorer import FrameQualityScorer
from iris_capture.stream.frame import Frame


logger = logging.getLogger(__name__)


FOCUS_FLOOR = 0.65
EXPOSURE_FLOOR = 0.60
OCCLUSION_FLOOR = 0.60


def failed_checks(quality: FrameQuality, config: CaptureConfig) -> List[QualityIssue]:
    """
    List the quality floors a frame misses.

    Args:
        quality: Frame quality to check
        config: Capture configuration (iris_radius_min)

    Returns:
        Issues in fixed order: focus, exposure, occlusion, iris radius
    """
    issues = []
    if quality.focus < FOCUS_FLOOR:
        issues.append(QualityIssue.FOCUS_LOW)
    if quality.exposure < EXPOSURE_FLOOR:
        issues.append(QualityIssue.EXPOSURE_LOW)
    if quality.occlusion < OCCLUSION_FLOOR:
        issues.append(QualityIssue.OCCLUSION_HIGH)
    if quality.iris_radius_px < config.iris_radius_min:
        issues.append(QualityIssue.IRIS_TOO_SMALL)
    return issues


def passes_quality_gate(quality: FrameQuality, config: CaptureConfig) -> bool:
    """True if the quality clears every floor."""
    return not failed_checks(quality, config)


class FrameEvaluator:
    """
    Scores, ranks and gates a burst of frames.

    Attributes:
        scorer: Per-frame quality scorer
    """

    def __init__(self, scorer: Optional[FrameQualityScorer] = None) -> None:
        self.scorer = scorer or FrameQualityScorer()

    def evaluate(self, frames: Sequence[Frame], config: CaptureConfig) -> List[ScoredFrame]:
        """
        Score every frame and rank by composite, best first.

        Frames with equal composite keep their capture order.

        Args:
            frames: Burst in capture order
            config: Capture configuration

        Returns:
            Scored frames sorted descending by composite
        """
        scored = [
            ScoredFrame(frame=frame, quality=self.scorer.score(frame, config), capture_index=index)
            for index, frame in enumerate(frames)
        ]
        # sorted() is stable, so ties stay in capture order
        ranked = sorted(scored, key=lambda item: -item.quality.composite)

        if ranked:
            logger.info(
                f"Evaluated {len(ranked)} frames: "
                f"best={ranked[0].quality.composite:.3f}, "
                f"worst={ranked[-1].quality.composite:.3f}"
            )
        return ranked

    def filter_passing(self, scored: Sequence[ScoredFrame], config: CaptureConfig) -> List[ScoredFrame]:
        """
        Keep only frames that clear the quality gate, preserving order.

        Args:
            scored: Ranked scored frames
            config: Capture configuration

        Returns:
            Passing frames, still ranked
        """
        passing = [item for item in scored if passes_quality_gate(item.quality, config)]
        logger.info(f"Quality gate: {len(passing)}/{len(scored)} frames passed")
        return passing
