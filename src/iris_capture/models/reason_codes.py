"""
Quality Issue Codes
===================

Fixed set of machine-readable codes naming which quality floor a
frame missed.

Rules:
    - One code per gated metric
    - Gaze is ranked but never gated, so it has no code
"""

from enum import Enum


class QualityIssue(str, Enum):
    """
    Quality gate failure codes.

    Attributes:
        FOCUS_LOW: Focus below the 0.65 floor (motion blur, defocus)
        EXPOSURE_LOW: Exposure below the 0.60 floor (dark, clipped)
        OCCLUSION_HIGH: Occlusion score below the 0.60 floor (lids, lashes, glare)
        IRIS_TOO_SMALL: Iris radius below the configured minimum
    """

    FOCUS_LOW = "FOCUS_LOW"
    EXPOSURE_LOW = "EXPOSURE_LOW"
    OCCLUSION_HIGH = "OCCLUSION_HIGH"
    IRIS_TOO_SMALL = "IRIS_TOO_SMALL"
