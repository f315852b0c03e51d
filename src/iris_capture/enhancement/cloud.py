"""
Cloud Enhancement Fallback
==========================

Optional remote super-resolution, attempted only when explicitly enabled
and only after on-device enhancement failed.

Wire format:
    POST <url>  {"image": "<base64>"}
    200 OK      {"image": "<base64 enhanced>"}

Design Rules:
    - Never raises; every failure becomes a passthrough result
    - Runs the blocking HTTP call in a worker thread
"""

import asyncio
import logging
import time
from typing import Optional

import requests

from iris_capture.models.enhancement import EnhancementResult, EnhancementSource


logger = logging.getLogger(__name__)


class CloudEnhancementError(Exception):
    """Raised when the cloud endpoint returns an unusable response."""
    pass


class CloudEnhancer:
    """
    HTTP client for the remote enhancement endpoint.

    Attributes:
        url: Endpoint URL
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._http = http or requests.Session()
        self._call_count: int = 0
        self._error_count: int = 0

    def _post(self, image_b64: str) -> str:
        response = self._http.post(self.url, json={"image": image_b64}, timeout=self.timeout)
        response.raise_for_status()

        payload = response.json()
        enhanced = payload.get("image") if isinstance(payload, dict) else None
        if not isinstance(enhanced, str) or not enhanced:
            raise CloudEnhancementError("Response has no 'image' field")
        if enhanced == image_b64:
            raise CloudEnhancementError("Cloud returned the image unchanged")
        return enhanced

    async def enhance(self, image_b64: str) -> EnhancementResult:
        """
        Enhance an image remotely.

        Args:
            image_b64: Base64-encoded image

        Returns:
            EnhancementResult with source CLOUD, or a passthrough on failure
        """
        start = time.perf_counter()
        self._call_count += 1

        try:
            enhanced = await asyncio.to_thread(self._post, image_b64)
        except Exception as e:
            self._error_count += 1
            logger.warning(f"Cloud enhancement failed: {e}. Total errors: {self._error_count}")
            return EnhancementResult.passthrough(
                image_b64,
                duration_ms=(time.perf_counter() - start) * 1000.0,
                error=f"Cloud enhancement error: {e}",
            )

        duration_ms = (time.perf_counter() - start) * 1000.0
        logger.info(f"Cloud enhancement succeeded in {duration_ms:.0f}ms")
        return EnhancementResult(
            image_b64=enhanced,
            source=EnhancementSource.CLOUD,
            duration_ms=duration_ms,
        )

    def get_metrics(self) -> dict:
        """Get client metrics for observability."""
        return {
            "call_count": self._call_count,
            "error_count": self._error_count,
        }
