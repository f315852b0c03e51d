"""Frame fusion."""

from iris_capture.fusion.fuser import FrameFuser

__all__ = ["FrameFuser"]
