"""
Data Models
===========

Value types for the iris capture pipeline.

This module re-exports all data models for convenient access.

Models:
    Quality:
        - FrameQuality: Per-frame scores + weighted composite
        - QualityIssue: Quality gate failure codes

    Capture:
        - EyeLabel, ScoredFrame, FusionResult, IrisCaptureResult

    Enhancement:
        - EnhancementSource, EnhancementResult

    Session:
        - SessionPhase, SessionSnapshot

    Auth:
        - AuthOutcome, AuthLogEntry, IrisTemplate, MatchResult, VerificationReport
"""

from iris_capture.models.quality import QUALITY_WEIGHTS, FrameQuality, average_quality
from iris_capture.models.reason_codes import QualityIssue
from iris_capture.models.capture import EyeLabel, FusionResult, IrisCaptureResult, ScoredFrame
from iris_capture.models.enhancement import EnhancementResult, EnhancementSource
from iris_capture.models.session import SessionPhase, SessionSnapshot
from iris_capture.models.auth import (
    AuthLogEntry,
    AuthOutcome,
    IrisTemplate,
    MatchResult,
    VerificationReport,
)

__all__ = [
    # Quality
    "QUALITY_WEIGHTS",
    "FrameQuality",
    "average_quality",
    "QualityIssue",
    # Capture
    "EyeLabel",
    "ScoredFrame",
    "FusionResult",
    "IrisCaptureResult",
    # Enhancement
    "EnhancementSource",
    "EnhancementResult",
    # Session
    "SessionPhase",
    "SessionSnapshot",
    # Auth
    "AuthOutcome",
    "AuthLogEntry",
    "IrisTemplate",
    "MatchResult",
    "VerificationReport",
]
