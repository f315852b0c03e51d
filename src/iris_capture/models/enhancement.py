"""
Enhancement Models
==================

Output contract of the super-resolution step.

Invariants:
    - source != NONE  -> image_b64 differs from the input image
    - source == NONE  -> image_b64 IS the input image, unchanged
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class EnhancementSource(str, Enum):
    """
    Where the enhanced image came from.

    Attributes:
        ON_DEVICE: Local ONNX super-resolution model
        CLOUD: Remote enhancement endpoint
        NONE: Passthrough of the original image
    """

    ON_DEVICE = "on-device"
    CLOUD = "cloud"
    NONE = "none"


class EnhancementResult(BaseModel):
    """
    Result of enhancing one fused frame.

    Attributes:
        image_b64: Enhanced image, or the original on passthrough
        source: Which path produced the image
        duration_ms: Wall time spent, reported regardless of outcome
        error: Failure description when a path failed
    """

    image_b64: str = Field(..., description="Base64-encoded image")
    source: EnhancementSource = Field(..., description="Enhancement source")
    duration_ms: float = Field(..., ge=0.0, description="Elapsed milliseconds")
    error: Optional[str] = Field(default=None, description="Failure description")

    class Config:
        """Pydantic model configuration."""

        frozen = True
        use_enum_values = False

    @property
    def enhanced(self) -> bool:
        """True when the image was actually transformed."""
        return self.source != EnhancementSource.NONE

    @classmethod
    def passthrough(cls, image_b64: str, duration_ms: float, error: Optional[str]) -> "EnhancementResult":
        """Safe fallback: the original image, unmodified."""
        return cls(
            image_b64=image_b64,
            source=EnhancementSource.NONE,
            duration_ms=max(0.0, duration_ms),
            error=error,
        )

    def __repr__(self) -> str:
        return (
            f"EnhancementResult(source={self.source.value}, "
            f"duration_ms={self.duration_ms:.1f}, error={self.error!r})"
        )
