"""
Iris Capture
============

On-device iris capture-and-enhancement pipeline for biometric authentication.

Takes a burst of camera frames for one eye, scores each frame's biometric
usability, gates and fuses the best frames, and runs the fused frame through
an on-device super-resolution model before handing it to a matching step.

Components:
    - stream: Frame model, image codec, camera frame sources
    - quality: Frame scoring, ranking, quality gate and retake feedback
    - fusion: Top-N frame fusion
    - enhancement: ONNX super-resolution with passthrough fallback
    - pipeline: LangGraph processing graph + capture session controller
    - auth: Enrollment template and verification bookkeeping

Example:
    from iris_capture.pipeline import CaptureSessionController
    from iris_capture.stream import OpenCVFrameSource

    controller = CaptureSessionController(OpenCVFrameSource(camera_index=0))
    result = await controller.capture_eye("left")
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
