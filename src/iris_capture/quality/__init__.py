"""
Quality Module
==============

Frame scoring, ranking and the quality gate.

Components:
    - FrameQualityScorer: Pixel-domain focus/gaze/exposure/occlusion metrics
    - FrameEvaluator: Composite ranking + per-metric floors
    - build_quality_feedback: Gate failure message and retake tips
"""

from iris_capture.quality.scorer import FrameQualityScorer, score_frame
from iris_capture.quality.evaluator import (
    EXPOSURE_FLOOR,
    FOCUS_FLOOR,
    OCCLUSION_FLOOR,
    FrameEvaluator,
    failed_checks,
    passes_quality_gate,
)
from iris_capture.quality.feedback import QualityFeedback, build_quality_feedback

__all__ = [
    "FrameQualityScorer",
    "score_frame",
    "FrameEvaluator",
    "failed_checks",
    "passes_quality_gate",
    "FOCUS_FLOOR",
    "EXPOSURE_FLOOR",
    "OCCLUSION_FLOOR",
    "QualityFeedback",
    "build_quality_feedback",
]
