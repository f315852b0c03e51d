"""
Frame Quality Models
====================

Quality scores attached to a frame after evaluation.

Composite Score:
    composite = 0.35 * focus
              + 0.20 * gaze
              + 0.20 * exposure
              + 0.15 * occlusion
              + 0.10 * iris_radius_score

    The composite is used for RANKING only. Pass/fail is decided by
    independent per-metric floors (see quality.evaluator).

Invariants:
    - Every score is in [0, 1], never NaN
    - Weights sum to 1.0
    - Values are never mutated after creation
"""

import math
from typing import Dict, Sequence

from pydantic import BaseModel, Field


QUALITY_WEIGHTS: Dict[str, float] = {
    "focus": 0.35,
    "gaze": 0.20,
    "exposure": 0.20,
    "occlusion": 0.15,
    "iris_radius_score": 0.10,
}

if not math.isclose(sum(QUALITY_WEIGHTS.values()), 1.0):
    raise ValueError("QUALITY_WEIGHTS must sum to 1.0")


def clamp_unit(value: float) -> float:
    """Clamp a value into [0, 1]. NaN maps to 0."""
    if value is None or math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


class FrameQuality(BaseModel):
    """
    Multi-metric quality of a single frame.

    Attributes:
        focus: Sharpness score (1.0 = crisp)
        gaze: Gaze alignment score (1.0 = looking straight at camera)
        exposure: Exposure score (1.0 = well lit, nothing clipped)
        occlusion: Visibility score (1.0 = iris fully unoccluded)
        iris_radius_score: Iris size relative to the ideal radius
        iris_radius_px: Estimated iris radius in pixels
        composite: Weighted combination of the five scores
    """

    focus: float = Field(..., ge=0.0, le=1.0, description="Sharpness score")
    gaze: float = Field(..., ge=0.0, le=1.0, description="Gaze alignment score")
    exposure: float = Field(..., ge=0.0, le=1.0, description="Exposure score")
    occlusion: float = Field(..., ge=0.0, le=1.0, description="Visibility score")
    iris_radius_score: float = Field(..., ge=0.0, le=1.0, description="Iris size score")
    iris_radius_px: float = Field(..., ge=0.0, description="Iris radius in pixels")
    composite: float = Field(..., ge=0.0, le=1.0, description="Weighted composite")

    class Config:
        """Pydantic model configuration."""

        frozen = True

    @classmethod
    def from_scores(
        cls,
        focus: float,
        gaze: float,
        exposure: float,
        occlusion: float,
        iris_radius_score: float,
        iris_radius_px: float,
    ) -> "FrameQuality":
        """
        Build a quality from raw sub-scores, clamping and weighting them.

        Any out-of-range or NaN input is clamped into [0, 1] before the
        composite is computed, so the result always validates.
        """
        scores = {
            "focus": clamp_unit(focus),
            "gaze": clamp_unit(gaze),
            "exposure": clamp_unit(exposure),
            "occlusion": clamp_unit(occlusion),
            "iris_radius_score": clamp_unit(iris_radius_score),
        }
        composite = sum(scores[name] * weight for name, weight in QUALITY_WEIGHTS.items())
        radius = 0.0 if iris_radius_px is None or math.isnan(iris_radius_px) else max(0.0, iris_radius_px)
        return cls(
            **scores,
            iris_radius_px=radius,
            composite=clamp_unit(composite),
        )

    @classmethod
    def empty(cls) -> "FrameQuality":
        """All-zero quality."""
        return cls(
            focus=0.0,
            gaze=0.0,
            exposure=0.0,
            occlusion=0.0,
            iris_radius_score=0.0,
            iris_radius_px=0.0,
            composite=0.0,
        )


def average_quality(qualities: Sequence[FrameQuality]) -> FrameQuality:
    """
    Field-wise mean of a set of qualities.

    Args:
        qualities: Qualities to average

    Returns:
        Averaged FrameQuality, or FrameQuality.empty() for an empty input
    """
    if not qualities:
        return FrameQuality.empty()

    count = len(qualities)
    fields = list(FrameQuality.model_fields)
    totals = {name: sum(getattr(q, name) for q in qualities) for name in fields}
    averaged = {name: total / count for name, total in totals.items()}

    # Means of in-range values stay in range; clamp guards float drift
    for name in fields:
        if name != "iris_radius_px":
            averaged[name] = clamp_unit(averaged[name])

    return FrameQuality(**averaged)
