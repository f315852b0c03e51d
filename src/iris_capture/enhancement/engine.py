"""
Super-Resolution Engine
=======================

On-device super-resolution of the fused iris frame via ONNX Runtime.

Pipeline:
    base64 -> bytes -> cv2.imdecode (BGR, uint8)
           -> RGB float32 in [0, 1] -> CHW -> NCHW (batch = 1)
           -> session.run
           -> validate output (rank 4, 3 channels; warn if batch != 1)
           -> x * 255, saturating clamp to [0, 255] -> uint8 HWC BGR
           -> cv2.imencode (PNG or JPEG) -> base64

Failure Semantics:
    enhance() NEVER raises. Any failure at model load, decode, inference
    or encode yields source = "none" with the ORIGINAL image and an error
    description. If cloud fallback is enabled it is tried next; if it also
    fails the original image is still returned.

Timing:
    Elapsed time is reported on every result. Exceeding the soft time
    budget is logged, never enforced.
"""

import asyncio
import threading
import logging
import time
from functools import partial
from typing import Any, List, Optional, Sequence

import cv2
import numpy as np

from iris_capture.config import EnhancementConfig, settings
from iris_capture.enhancement.cloud import CloudEnhancer
from iris_capture.enhancement.session import (
    LocalModelResolver,
    ModelAssetResolver,
    SessionFactory,
    SessionProvider,
    create_onnx_session,
)
from iris_capture.models.enhancement import EnhancementResult, EnhancementSource
from iris_capture.stream.image_codec import decode_b64_bgr, encode_bgr_b64


logger = logging.getLogger(__name__)


class TensorShapeError(Exception):
    """Raised when a model tensor does not have the expected layout."""
    pass


MODEL_CHANNELS = 3


def image_to_tensor(bgr: np.ndarray) -> np.ndarray:
    """
    Convert a BGR uint8 image to the model input layout.

    Args:
        bgr: BGR image (H, W, 3), dtype=uint8

    Returns:
        Float32 tensor (1, 3, H, W), RGB planes in [0, 1]

    Raises:
        TensorShapeError: If the image is empty or not 3-channel
    """
    if bgr.ndim != 3 or bgr.shape[2] != MODEL_CHANNELS:
        raise TensorShapeError(f"Expected (H, W, 3) image, got {bgr.shape}")
    if bgr.shape[0] == 0 or bgr.shape[1] == 0:
        raise TensorShapeError(f"Image has zero size: {bgr.shape}")

    rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB).astype(np.float32) / 255.0
    # HWC → CHW → NCHW
    return np.ascontiguousarray(rgb.transpose(2, 0, 1)[np.newaxis])


def tensor_to_image(output: Any) -> np.ndarray:
    """
    Convert a model output tensor back to a BGR uint8 image.

    Args:
        output: Tensor (N, 3, H, W) with values nominally in [0, 1]

    Returns:
        BGR image (H, W, 3), dtype=uint8

    Raises:
        TensorShapeError: On unexpected rank, channel count or empty size
    """
    tensor = np.asarray(output, dtype=np.float32)
    if tensor.ndim != 4:
        raise TensorShapeError(f"Expected rank-4 output, got shape {tensor.shape}")

    batch, channels, height, width = tensor.shape
    if channels != MODEL_CHANNELS:
        raise TensorShapeError(f"Expected {MODEL_CHANNELS} output channels, got {channels}")
    if batch < 1 or height == 0 or width == 0:
        raise TensorShapeError(f"Empty output tensor: {tensor.shape}")
    if batch != 1:
        logger.warning(f"Model returned batch={batch}, using the first image only")

    chw = np.nan_to_num(tensor[0], nan=0.0, posinf=1.0, neginf=0.0)
    rgb = np.clip(np.rint(chw.transpose(1, 2, 0) * 255.0), 0, 255).astype(np.uint8)
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)


class SuperResolutionEngine:
    """
    On-device super-resolution with passthrough fallback.

    The inference session is held by an owned SessionProvider and is
    constructed at most once, on the first enhance() or warm_up() call.

    Attributes:
        config: Enhancement configuration

    Example:
        engine = SuperResolutionEngine()
        result = await engine.enhance(fused_b64)
        if result.source is EnhancementSource.NONE:
            print(f"Passthrough: {result.error}")
    """

    def __init__(
        self,
        config: Optional[EnhancementConfig] = None,
        resolver: Optional[ModelAssetResolver] = None,
        session_factory: Optional[SessionFactory] = None,
        cloud: Optional[CloudEnhancer] = None,
    ) -> None:
        """
        Initialize the engine. No model is loaded here.

        Args:
            config: Enhancement configuration (global settings if None)
            resolver: Model asset resolver (config.model_path if None)
            session_factory: Session constructor (ONNX Runtime if None)
            cloud: Cloud client (built from config if None and enabled)
        """
        self.config = config or settings.enhancement

        resolver = resolver or LocalModelResolver(self.config.model_path)
        factory = session_factory or partial(
            create_onnx_session, providers=self.config.execution_providers
        )
        self._provider = SessionProvider(resolver, factory)

        self._cloud: Optional[CloudEnhancer] = None
        if self.config.allow_cloud_fallback:
            if cloud is not None:
                self._cloud = cloud
            elif self.config.cloud_url:
                self._cloud = CloudEnhancer(
                    self.config.cloud_url, timeout=self.config.cloud_timeout_seconds
                )

        self._enhance_count: int = 0
        self._on_device_count: int = 0
        self._passthrough_count: int = 0

        logger.info(
            f"SuperResolutionEngine initialized: scale=x{self.config.scale}, "
            f"budget={self.config.time_budget_ms:.0f}ms, "
            f"cloud_fallback={self._cloud is not None}"
        )

    @property
    def session_provider(self) -> SessionProvider:
        """The owned session provider."""
        return self._provider

    @property
    def metadata(self) -> dict:
        """Static model metadata."""
        return {
            "scale": self.config.scale,
            "on_device_time_budget_ms": self.config.time_budget_ms,
        }

    async def warm_up(self) -> bool:
        """
        Construct the session ahead of the first capture.

        Returns:
            True if the on-device model is available
        """
        session = await self._provider.aget()
        return session is not None

    async def enhance(self, image_b64: str) -> EnhancementResult:
        """
        Enhance one image. Never raises.

        Args:
            image_b64: Base64-encoded fused frame

        Returns:
            EnhancementResult; on failure, source NONE with the input image
        """
        start = time.perf_counter()
        self._enhance_count += 1

        result = await self._enhance_on_device(image_b64, start)
        if result.source is EnhancementSource.ON_DEVICE:
            self._on_device_count += 1
            return result

        if self._cloud is not None:
            cloud_result = await self._cloud.enhance(image_b64)
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            if cloud_result.source is EnhancementSource.CLOUD:
                return cloud_result.model_copy(update={"duration_ms": elapsed_ms})
            result = EnhancementResult.passthrough(
                image_b64,
                duration_ms=elapsed_ms,
                error=f"{result.error}; {cloud_result.error}",
            )

        self._passthrough_count += 1
        return result

    async def enhance_many(self, images: Sequence[str]) -> List[EnhancementResult]:
        """Enhance images one after another, in order."""
        results = []
        for image_b64 in images:
            results.append(await self.enhance(image_b64))
        return results

    async def _enhance_on_device(self, image_b64: str, start: float) -> EnhancementResult:
        try:
            session = await self._provider.aget()
            if session is None:
                reason = self._provider.error or "unknown error"
                return EnhancementResult.passthrough(
                    image_b64,
                    duration_ms=(time.perf_counter() - start) * 1000.0,
                    error=f"On-device model unavailable: {reason}",
                )

            enhanced = await asyncio.to_thread(self._run_inference, session, image_b64)

        except Exception as e:
            logger.warning(f"On-device enhancement failed: {type(e).__name__}: {e}")
            return EnhancementResult.passthrough(
                image_b64,
                duration_ms=(time.perf_counter() - start) * 1000.0,
                error=f"On-device enhancement error: {e}",
            )

        duration_ms = (time.perf_counter() - start) * 1000.0
        if duration_ms > self.config.time_budget_ms:
            logger.warning(
                f"On-device enhancement exceeded time budget: "
                f"{duration_ms:.0f}ms > {self.config.time_budget_ms:.0f}ms"
            )

        if enhanced == image_b64:
            return EnhancementResult.passthrough(
                image_b64,
                duration_ms=duration_ms,
                error="Model output identical to input",
            )

        logger.info(f"On-device enhancement completed in {duration_ms:.0f}ms")
        return EnhancementResult(
            image_b64=enhanced,
            source=EnhancementSource.ON_DEVICE,
            duration_ms=duration_ms,
        )

    def _run_inference(self, session: Any, image_b64: str) -> str:
        """Decode, infer and re-encode. Runs in a worker thread."""
        bgr = decode_b64_bgr(image_b64)
        tensor = image_to_tensor(bgr)

        input_name = session.get_inputs()[0].name
        outputs = session.run(None, {input_name: tensor})
        if not outputs:
            raise TensorShapeError("Model returned no outputs")

        image = tensor_to_image(outputs[0])
        logger.debug(f"Super-resolution {bgr.shape[1]}x{bgr.shape[0]} -> {image.shape[1]}x{image.shape[0]}")

        return encode_bgr_b64(
            image,
            fmt=self.config.output_format,
            jpeg_quality=self.config.jpeg_quality,
        )

    def get_metrics(self) -> dict:
        """Get engine metrics for observability."""
        return {
            "enhance_count": self._enhance_count,
            "on_device_count": self._on_device_count,
            "passthrough_count": self._passthrough_count,
            "session_available": self._provider.initialized and self._provider.error is None,
        }


# =============================================================================
# Process-wide Default Engine
# =============================================================================

_default_engine: Optional[SuperResolutionEngine] = None
_default_engine_lock = threading.Lock()


def default_engine() -> SuperResolutionEngine:
    """
    Return the process-wide engine built from global settings.

    Built on first call. Every caller shares it, so the model session
    is constructed at most once per process.
    """
    global _default_engine

    if _default_engine is not None:
        return _default_engine

    with _default_engine_lock:
        if _default_engine is None:
            _default_engine = SuperResolutionEngine()
    return _default_engine
