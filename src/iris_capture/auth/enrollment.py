"""
Enrollment
==========

Builds an iris template from a left + right capture and stores it.
"""

import logging

from iris_capture.auth.stores import AuthLogSink, TemplateStore
from iris_capture.models.auth import AuthLogEntry, AuthOutcome, IrisTemplate
from iris_capture.models.capture import EyeLabel, IrisCaptureResult
from iris_capture.models.enhancement import EnhancementSource
from iris_capture.models.quality import clamp_unit


logger = logging.getLogger(__name__)


class EnrollmentError(Exception):
    """Raised when captures cannot form a template."""
    pass


def _enhancement_source(capture: IrisCaptureResult) -> str:
    if capture.enhancement is None:
        return EnhancementSource.NONE.value
    return capture.enhancement.source.value


def build_enrollment_template(left: IrisCaptureResult, right: IrisCaptureResult) -> IrisTemplate:
    """
    Build a template from both eyes.

    Args:
        left: Left eye capture
        right: Right eye capture

    Returns:
        IrisTemplate with preview and fused frames, and the clamped mean
        composite quality of both eyes

    Raises:
        EnrollmentError: If the captures are not one left and one right eye
    """
    if left.eye is not EyeLabel.LEFT or right.eye is not EyeLabel.RIGHT:
        raise EnrollmentError(
            f"Expected left and right captures, got {left.eye.value} and {right.eye.value}"
        )

    quality = clamp_unit((left.quality.composite + right.quality.composite) / 2.0)
    return IrisTemplate(
        frames=[left.preview_b64, right.preview_b64],
        raw_frames=[left.fused_b64, right.fused_b64],
        enhancement_sources={
            EyeLabel.LEFT.value: _enhancement_source(left),
            EyeLabel.RIGHT.value: _enhancement_source(right),
        },
        quality=quality,
    )


class EnrollmentService:
    """
    Stores enrollment templates and logs the outcome.

    Attributes:
        store: Template store
        log: Auth log sink
    """

    def __init__(self, store: TemplateStore, log: AuthLogSink) -> None:
        self.store = store
        self.log = log

    def enroll(self, left: IrisCaptureResult, right: IrisCaptureResult) -> IrisTemplate:
        """
        Enroll both eyes, replacing any existing template.

        Returns:
            The stored template
        """
        template = build_enrollment_template(left, right)
        self.store.store(template)
        self.log.append(AuthLogEntry(
            outcome=AuthOutcome.SUCCESS,
            details="Iris enrollment completed",
            confidence=template.quality,
        ))

        if left.is_fallback or right.is_fallback:
            logger.warning("Enrollment includes a below-gate capture accepted by the user")
        logger.info(f"Enrollment completed: quality={template.quality:.2f}")
        return template
