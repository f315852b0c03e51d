"""
Stream Module
=============

Frame acquisition and image codec components.

This module provides the ingestion layer for the capture pipeline:
    - Frame / CapturedPhoto: Typed frame data models
    - FrameSource: Camera protocol (ReplayFrameSource, OpenCVFrameSource)
    - image_codec: The only place images are decoded or encoded
"""

from iris_capture.stream.frame import CapturedPhoto, Frame
from iris_capture.stream.image_codec import (
    ImageDecodeError,
    ImageEncodeError,
    decode_b64_bgr,
    decode_b64_grayscale,
    encode_bgr_b64,
)
from iris_capture.stream.source import (
    CameraError,
    FrameSource,
    OpenCVFrameSource,
    ReplayFrameSource,
)


__all__ = [
    "CapturedPhoto",
    "Frame",
    "ImageDecodeError",
    "ImageEncodeError",
    "decode_b64_bgr",
    "decode_b64_grayscale",
    "encode_bgr_b64",
    "CameraError",
    "FrameSource",
    "OpenCVFrameSource",
    "ReplayFrameSource",
]
