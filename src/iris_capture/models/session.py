"""
Capture Session Models
======================

State exposed by the capture session controller for UI polling.

Phases:
    IDLE -> CAPTURING -> PROCESSING -> (IDLE | ERROR)
    ERROR -> IDLE via reset() or accept_fallback()
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SessionPhase(str, Enum):
    """
    Capture session phases.

    Attributes:
        IDLE: Ready for a capture request
        CAPTURING: Burst acquisition in progress
        PROCESSING: Scoring, fusion and enhancement in progress
        ERROR: Last capture failed; see error message
    """

    IDLE = "idle"
    CAPTURING = "capturing"
    PROCESSING = "processing"
    ERROR = "error"


class SessionSnapshot(BaseModel):
    """
    Point-in-time view of a capture session.

    Attributes:
        phase: Current phase
        progress: Burst progress in [0, 1]
        error: Human-readable error for the ERROR phase
        is_busy: True while a capture is in flight
        has_result: True when a successful result is stored
        has_fallback: True when a below-gate result can be accepted
        generation: Session generation counter
    """

    phase: SessionPhase = Field(default=SessionPhase.IDLE)
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    error: Optional[str] = Field(default=None)
    is_busy: bool = Field(default=False)
    has_result: bool = Field(default=False)
    has_fallback: bool = Field(default=False)
    generation: int = Field(default=0, ge=0)

    class Config:
        """Pydantic model configuration."""

        frozen = True
