"""
Auth Module
===========

Enrollment and verification bookkeeping around the capture results.
"""

from iris_capture.auth.enrollment import (
    EnrollmentError,
    EnrollmentService,
    build_enrollment_template,
)
from iris_capture.auth.stores import (
    AuthLogSink,
    InMemoryAuthLog,
    InMemoryTemplateStore,
    TemplateStore,
)
from iris_capture.auth.verification import IrisMatcher, VerificationService, build_feedback

__all__ = [
    "EnrollmentError",
    "EnrollmentService",
    "build_enrollment_template",
    "TemplateStore",
    "AuthLogSink",
    "InMemoryTemplateStore",
    "InMemoryAuthLog",
    "IrisMatcher",
    "VerificationService",
    "build_feedback",
]
