"""
Enrollment & Verification Models
================================

Records exchanged with the secure template store, the auth log and the
matching step. These are the only models persisted by hosts, so they
round-trip through JSON (model_dump_json / model_validate_json).
"""

import time
import uuid
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class AuthOutcome(str, Enum):
    """Kinds of auth log entries."""

    SUCCESS = "success"
    FAILURE = "failure"
    EXPIRED = "expired"
    PIN_SUCCESS = "pin_success"
    PIN_FAILURE = "pin_failure"


def _new_id() -> str:
    return uuid.uuid4().hex


class AuthLogEntry(BaseModel):
    """
    Append-only auth log entry.

    Attributes:
        entry_id: Unique entry id
        timestamp: UNIX timestamp
        outcome: Outcome kind
        details: Free-form details for the log screen
        confidence: Match or enrollment quality, if any
    """

    entry_id: str = Field(default_factory=_new_id)
    timestamp: float = Field(default_factory=time.time)
    outcome: AuthOutcome
    details: str
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class IrisTemplate(BaseModel):
    """
    Enrolled iris template.

    Attributes:
        template_id: Unique template id
        frames: Preview images [left, right] (enhanced when available)
        raw_frames: Fused, unenhanced images [left, right]
        enhancement_sources: Enhancement source per eye label
        quality: Mean composite quality of both eyes, in [0, 1]
        created_at: UNIX timestamp of enrollment
    """

    template_id: str = Field(default_factory=_new_id)
    frames: List[str]
    raw_frames: List[str] = Field(default_factory=list)
    enhancement_sources: Dict[str, str] = Field(default_factory=dict)
    quality: float = Field(..., ge=0.0, le=1.0)
    created_at: float = Field(default_factory=time.time)


class MatchResult(BaseModel):
    """Matching step output."""

    success: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    details: str


class VerificationReport(BaseModel):
    """
    Verification outcome plus user-facing feedback.

    Attributes:
        match: Matching step output
        errors: Likely capture problems, worst last
        improvements: Matching remediation tips
    """

    match: MatchResult
    errors: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
