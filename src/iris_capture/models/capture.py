"""
Capture Result Models
=====================

Values produced as a burst moves through the pipeline:

    Frame -> ScoredFrame -> FusionResult -> IrisCaptureResult

All values are immutable. An IrisCaptureResult is created once per
successful (or accepted-fallback) capture and is owned by the matching
or enrollment step afterwards.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from iris_capture.models.enhancement import EnhancementResult
from iris_capture.models.quality import FrameQuality
from iris_capture.stream.frame import Frame


class EyeLabel(str, Enum):
    """Which eye a capture belongs to."""

    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True, slots=True)
class ScoredFrame:
    """
    A frame paired with its quality.

    Attributes:
        frame: The captured frame
        quality: Quality computed by the scorer
        capture_index: Position in the burst (tie-break for ranking)
    """

    frame: Frame
    quality: FrameQuality
    capture_index: int

    def __repr__(self) -> str:
        return (
            f"ScoredFrame({self.frame.frame_id}, "
            f"composite={self.quality.composite:.3f})"
        )


@dataclass(frozen=True, slots=True)
class FusionResult:
    """
    Output of fusing the top passing frames.

    Attributes:
        fused_b64: Fused (representative or averaged) image
        fused_uri: URI of the representative frame; None for a pixel average
        frames_used: Number of frames fused (>= 1)
        average_quality: Mean quality over the frames used
        strategy: Fusion strategy actually applied
    """

    fused_b64: str
    fused_uri: Optional[str]
    frames_used: int
    average_quality: FrameQuality
    strategy: str = "best"


@dataclass(frozen=True, slots=True)
class IrisCaptureResult:
    """
    Final pipeline output for one eye.

    Attributes:
        eye: Which eye was captured
        frame_count: Frames captured in the burst
        used_frame_count: Frames used in fusion
        fused_b64: Fused image (pre-enhancement)
        fused_uri: URI of the representative frame; None for a pixel average
        top_frames: Top-ranked scored frames (bounded)
        quality: Averaged quality of the frames used
        enhancement: Super-resolution result, absent for fallbacks
        is_fallback: True for a below-gate capture
        failure_reason: Human-readable gate failure message
        tips: Improvement tips for a retake
    """

    eye: EyeLabel
    frame_count: int
    used_frame_count: int
    fused_b64: str
    quality: FrameQuality
    top_frames: Tuple[ScoredFrame, ...] = ()
    fused_uri: Optional[str] = None
    enhancement: Optional[EnhancementResult] = None
    is_fallback: bool = False
    failure_reason: Optional[str] = None
    tips: Tuple[str, ...] = ()

    @property
    def preview_b64(self) -> str:
        """Enhanced image when enhancement transformed it, else the fused image."""
        if self.enhancement is not None and self.enhancement.enhanced:
            return self.enhancement.image_b64
        return self.fused_b64

    def __repr__(self) -> str:
        return (
            f"IrisCaptureResult(eye={self.eye.value}, "
            f"frames={self.used_frame_count}/{self.frame_count}, "
            f"composite={self.quality.composite:.3f}, "
            f"fallback={self.is_fallback})"
        )
