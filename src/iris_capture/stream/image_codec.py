"""
Image Codec
===========

Dedicated module for converting between base64-encoded images and
OpenCV matrices.

Design Rules:
    - This is the ONLY place in the codebase that decodes or encodes images
    - Validates shape and dtype
    - Fails fast with ImageDecodeError / ImageEncodeError, never
      raw OpenCV or binascii errors
"""

import base64
import binascii
import logging

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """Raised when image decoding fails."""
    pass


class ImageEncodeError(Exception):
    """Raised when image encoding fails."""
    pass


def decode_b64_bgr(image_b64: str) -> np.ndarray:
    """
    Decode a base64 image (JPEG, PNG, ...) to a BGR numpy array.

    Args:
        image_b64: Base64-encoded image data

    Returns:
        BGR image as np.ndarray (H, W, 3), dtype=uint8

    Raises:
        ImageDecodeError: If decoding fails or image is invalid
    """
    if not image_b64:
        raise ImageDecodeError("Empty image data")

    try:
        image_bytes = base64.b64decode(image_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Base64 decode failed: {e}")

    nparr = np.frombuffer(image_bytes, np.uint8)
    if nparr.size == 0:
        raise ImageDecodeError("Empty image data")

    try:
        bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise ImageDecodeError(f"cv2.imdecode failed: {e}")

    if bgr is None:
        raise ImageDecodeError("cv2.imdecode returned None")

    if len(bgr.shape) != 3 or bgr.shape[2] != 3:
        raise ImageDecodeError(f"Invalid image shape: {bgr.shape}")

    if bgr.shape[0] == 0 or bgr.shape[1] == 0:
        raise ImageDecodeError(f"Image has zero size: {bgr.shape}")

    if bgr.dtype != np.uint8:
        raise ImageDecodeError(f"Invalid dtype: {bgr.dtype}")

    return bgr


def decode_b64_grayscale(image_b64: str) -> np.ndarray:
    """
    Decode a base64 image to a grayscale numpy array.

    This is the primary decoder for quality scoring.

    Returns:
        Grayscale image as np.ndarray (H, W), dtype=uint8

    Raises:
        ImageDecodeError: If decoding fails or image is invalid
    """
    return cv2.cvtColor(decode_b64_bgr(image_b64), cv2.COLOR_BGR2GRAY)


def encode_bgr_b64(image: np.ndarray, fmt: str = "png", jpeg_quality: int = 95) -> str:
    """
    Encode a BGR image to base64.

    Args:
        image: BGR image (H, W, 3), dtype=uint8
        fmt: "png" or "jpg"
        jpeg_quality: JPEG quality in [1, 100] (ignored for PNG)

    Returns:
        Base64-encoded image string

    Raises:
        ImageEncodeError: If the image is invalid or encoding fails
    """
    if image is None or image.ndim != 3 or image.shape[2] != 3:
        raise ImageEncodeError(f"Invalid image for encoding: {getattr(image, 'shape', None)}")
    if image.dtype != np.uint8:
        raise ImageEncodeError(f"Invalid dtype for encoding: {image.dtype}")

    if fmt == "png":
        ext, params = ".png", []
    elif fmt in ("jpg", "jpeg"):
        ext, params = ".jpg", [int(cv2.IMWRITE_JPEG_QUALITY), int(jpeg_quality)]
    else:
        raise ImageEncodeError(f"Unsupported image format: {fmt}")

    try:
        ok, buffer = cv2.imencode(ext, image, params)
    except cv2.error as e:
        raise ImageEncodeError(f"cv2.imencode failed: {e}")

    if not ok:
        raise ImageEncodeError(f"cv2.imencode returned failure for {ext}")

    return base64.b64encode(buffer.tobytes()).decode("ascii")
