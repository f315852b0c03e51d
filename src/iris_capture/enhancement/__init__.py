"""
Enhancement Module
==================

On-device super-resolution of the fused frame.

Components:
    - SuperResolutionEngine: Tensor conversion, inference, passthrough fallback
    - SessionProvider: Once-only ONNX session construction
    - CloudEnhancer: Opt-in remote fallback
"""

from iris_capture.enhancement.cloud import CloudEnhancementError, CloudEnhancer
from iris_capture.enhancement.engine import (
    SuperResolutionEngine,
    default_engine,
    TensorShapeError,
    image_to_tensor,
    tensor_to_image,
)
from iris_capture.enhancement.session import (
    LocalModelResolver,
    ModelAssetResolver,
    ModelUnavailableError,
    SessionProvider,
    create_onnx_session,
)

__all__ = [
    "SuperResolutionEngine",
    "default_engine",
    "TensorShapeError",
    "image_to_tensor",
    "tensor_to_image",
    "SessionProvider",
    "ModelAssetResolver",
    "LocalModelResolver",
    "ModelUnavailableError",
    "create_onnx_session",
    "CloudEnhancer",
    "CloudEnhancementError",
]
