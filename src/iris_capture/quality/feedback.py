"""
Quality Feedback
================

Turns a failed quality gate into an actionable message and retake tips.

Example output:
    Best left eye frame scored 71%.
    Target focus ≥ 65%, exposure ≥ 60%, occlusion ≥ 60%, iris radius ≥ 100px.
    Needs improvement on occlusion 0%.

    Tips:
    • Reduce occlusion: open your eyes wider so lashes and lids are clear of the iris.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from iris_capture.config import CaptureConfig
from iris_capture.models.capture import EyeLabel
from iris_capture.models.quality import FrameQuality
from iris_capture.models.reason_codes import QualityIssue
from iris_capture.quality.evaluator import (
    EXPOSURE_FLOOR,
    FOCUS_FLOOR,
    OCCLUSION_FLOOR,
    failed_checks,
)


_TIPS: Dict[QualityIssue, str] = {
    QualityIssue.FOCUS_LOW: "Focus is low: hold the phone steadier and look straight ahead to reduce motion blur.",
    QualityIssue.EXPOSURE_LOW: "Exposure is low: move to brighter, even lighting or tilt to avoid shadows across the eye.",
    QualityIssue.OCCLUSION_HIGH: "Reduce occlusion: open your eyes wider so lashes and lids are clear of the iris.",
}

_HOLD_STEADY_TIP = "Hold steady for a few seconds while the burst completes."


@dataclass(frozen=True, slots=True)
class QualityFeedback:
    """
    Failure message and tips for one gate failure.

    Attributes:
        message: Multi-line, human-readable failure summary
        tips: Individual remediation tips (never empty)
    """

    message: str
    tips: Tuple[str, ...]


def _percent(value: float) -> int:
    return int(round(value * 100))


def build_quality_feedback(eye: EyeLabel, quality: FrameQuality, config: CaptureConfig) -> QualityFeedback:
    """
    Build the gate failure message for the best frame of a burst.

    Args:
        eye: Eye being captured
        quality: Quality of the best-scoring frame
        config: Capture configuration (iris_radius_min)

    Returns:
        QualityFeedback naming each missed floor with a matching tip
    """
    radius_min = int(round(config.iris_radius_min))
    issues = failed_checks(quality, config)

    target_summary = (
        f"Target focus ≥ {_percent(FOCUS_FLOOR)}%, exposure ≥ {_percent(EXPOSURE_FLOOR)}%, "
        f"occlusion ≥ {_percent(OCCLUSION_FLOOR)}%, iris radius ≥ {radius_min}px."
    )

    described = {
        QualityIssue.FOCUS_LOW: f"focus {_percent(quality.focus)}%",
        QualityIssue.EXPOSURE_LOW: f"exposure {_percent(quality.exposure)}%",
        QualityIssue.OCCLUSION_HIGH: f"occlusion {_percent(quality.occlusion)}%",
        QualityIssue.IRIS_TOO_SMALL: f"iris radius {int(round(quality.iris_radius_px))}px",
    }
    if issues:
        issue_line = f"Needs improvement on {', '.join(described[issue] for issue in issues)}."
    else:
        issue_line = "Overall quality was just below the acceptance gate."

    tips = []
    for issue in issues:
        if issue is QualityIssue.IRIS_TOO_SMALL:
            tips.append(
                "Bring the device slightly closer so the iris fills more of the frame "
                f"(aim for ≥ {radius_min}px radius)."
            )
        else:
            tips.append(_TIPS[issue])
    if not tips:
        tips.append(_HOLD_STEADY_TIP)

    message = "\n".join([
        f"Best {eye.value} eye frame scored {_percent(quality.composite)}%.",
        target_summary,
        issue_line,
        "",
        "Tips:",
        "\n".join(f"• {tip}" for tip in tips),
    ])

    return QualityFeedback(message=message, tips=tuple(tips))
