"""
Verification
============

Hands a left + right capture to the matching step and records the outcome.

The matcher itself is an external collaborator; this module only owns
template lookup, error containment, logging and user feedback.

Feedback tiers (by match confidence):
    < 0.8  capture clarity           use brighter, indirect lighting
    < 0.7  uneven lighting           hold the device steady at eye level
    < 0.6  eye alignment off-centre  center the iris within the guide
    < 0.5  movement                  avoid blinking
"""

import logging
from typing import List, Optional, Protocol, Tuple

from iris_capture.auth.stores import AuthLogSink, TemplateStore
from iris_capture.models.auth import (
    AuthLogEntry,
    AuthOutcome,
    IrisTemplate,
    MatchResult,
    VerificationReport,
)
from iris_capture.models.capture import IrisCaptureResult


logger = logging.getLogger(__name__)


NO_TEMPLATE_DETAILS = "No iris template found"
VERIFICATION_ERROR_DETAILS = "Verification error"

_FEEDBACK_TIERS = (
    (0.8, "Capture clarity could be improved.", "Use brighter, indirect lighting."),
    (0.7, "Lighting appears uneven.", "Hold the device steady at eye level."),
    (0.6, "Eye alignment may be off-center.", "Center the iris fully within the guide."),
    (0.5, "Movement detected during capture.", "Avoid blinking during capture."),
)


class IrisMatcher(Protocol):
    """Compares two captures against an enrolled template."""

    def match(
        self,
        left: IrisCaptureResult,
        right: IrisCaptureResult,
        template: IrisTemplate,
    ) -> MatchResult:
        ...


def build_feedback(confidence: float) -> Tuple[List[str], List[str]]:
    """
    Confidence-tiered feedback.

    Returns:
        (errors, improvements) lists, empty for confidence >= 0.8
    """
    errors: List[str] = []
    improvements: List[str] = []
    for threshold, error, improvement in _FEEDBACK_TIERS:
        if confidence < threshold:
            errors.append(error)
            improvements.append(improvement)
    return errors, improvements


class VerificationService:
    """
    Runs verification against the enrolled template.

    Attributes:
        store: Template store
        matcher: Matching step
        log: Auth log sink
    """

    def __init__(self, store: TemplateStore, matcher: IrisMatcher, log: AuthLogSink) -> None:
        self.store = store
        self.matcher = matcher
        self.log = log

    def _match(self, left: IrisCaptureResult, right: IrisCaptureResult) -> MatchResult:
        template: Optional[IrisTemplate] = self.store.get()
        if template is None:
            return MatchResult(success=False, confidence=0.0, details=NO_TEMPLATE_DETAILS)

        try:
            return self.matcher.match(left, right, template)
        except Exception as e:
            logger.error(f"Iris matcher failed: {e}")
            return MatchResult(success=False, confidence=0.0, details=VERIFICATION_ERROR_DETAILS)

    def verify(self, left: IrisCaptureResult, right: IrisCaptureResult) -> VerificationReport:
        """
        Verify a left + right capture.

        Returns:
            VerificationReport with the match result and feedback
        """
        match = self._match(left, right)

        left_source = left.enhancement.source.value if left.enhancement else "none"
        right_source = right.enhancement.source.value if right.enhancement else "none"
        self.log.append(AuthLogEntry(
            outcome=AuthOutcome.SUCCESS if match.success else AuthOutcome.FAILURE,
            details=f"{match.details} ({left_source} / {right_source})",
            confidence=match.confidence,
        ))

        errors, improvements = build_feedback(match.confidence)
        logger.info(
            f"Verification {'succeeded' if match.success else 'failed'}: "
            f"confidence={match.confidence:.2f}"
        )
        return VerificationReport(match=match, errors=errors, improvements=improvements)
