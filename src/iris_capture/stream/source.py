"""
Frame Sources
=============

Camera-side interface for burst acquisition.

Interface:
    FrameSource.capture(quality) -> Optional[CapturedPhoto]

Implementations:
    - ReplayFrameSource: Replays a fixed list of photos (testing, demos)
    - OpenCVFrameSource: Grabs frames from a local camera via cv2.VideoCapture

Design Rules:
    - One photo per call; the controller owns timing between calls
    - A call may raise; the controller converts that into a capture error
    - A photo with no image data is skipped, not an error
"""

import asyncio
import logging
import time
from typing import List, Optional, Protocol, Sequence

import cv2
import numpy as np

from iris_capture.stream.frame import CapturedPhoto
from iris_capture.stream.image_codec import encode_bgr_b64


logger = logging.getLogger(__name__)


class CameraError(Exception):
    """Raised when a camera cannot be opened or read."""
    pass


class FrameSource(Protocol):
    """
    Protocol for camera backends.

    All implementations must provide an async `capture` method that
    takes one shot and returns it (or None / a photo without data when
    the camera produced nothing).
    """

    async def capture(self, quality: float) -> Optional[CapturedPhoto]:
        """
        Take a single photo.

        Args:
            quality: Compression quality in (0, 1]

        Returns:
            CapturedPhoto, or None if no photo was produced
        """
        ...


class ReplayFrameSource:
    """
    Deterministic frame source that replays pre-recorded photos.

    Photos are returned in order and the sequence wraps around, so a
    five-photo list can serve any number of bursts. An entry may be an
    Exception instance, which is raised when its turn comes, to simulate
    camera I/O failures.

    Example:
        source = ReplayFrameSource([photo_a, photo_b])
        photo = await source.capture(quality=0.6)
    """

    def __init__(self, photos: Sequence[object]) -> None:
        """
        Initialize replay source.

        Args:
            photos: CapturedPhoto, None, or Exception entries
        """
        self._photos: List[object] = list(photos)
        self._index: int = 0
        self._capture_count: int = 0

    @property
    def capture_count(self) -> int:
        """Total capture calls made."""
        return self._capture_count

    async def capture(self, quality: float) -> Optional[CapturedPhoto]:
        self._capture_count += 1
        if not self._photos:
            return None

        entry = self._photos[self._index % len(self._photos)]
        self._index += 1

        if isinstance(entry, Exception):
            raise entry
        return entry


class OpenCVFrameSource:
    """
    Local camera source backed by cv2.VideoCapture.

    The device is opened lazily on first capture. Reads run in a worker
    thread so the event loop is never blocked by camera I/O. Frames are
    JPEG-encoded at the requested quality.

    Attributes:
        camera_index: OpenCV device index
        width: Requested frame width (0 = camera default)
        height: Requested frame height (0 = camera default)
    """

    def __init__(self, camera_index: int = 0, width: int = 0, height: int = 0) -> None:
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self._camera: Optional[cv2.VideoCapture] = None

        logger.info(f"OpenCVFrameSource created for camera {camera_index}")

    def _open(self) -> cv2.VideoCapture:
        if self._camera is not None and self._camera.isOpened():
            return self._camera

        camera = cv2.VideoCapture(self.camera_index)
        if not camera.isOpened():
            raise CameraError(f"Failed to open camera {self.camera_index}")

        if self.width:
            camera.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        if self.height:
            camera.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        camera.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        logger.info(
            f"Camera {self.camera_index} opened: "
            f"{int(camera.get(cv2.CAP_PROP_FRAME_WIDTH))}x"
            f"{int(camera.get(cv2.CAP_PROP_FRAME_HEIGHT))}"
        )
        self._camera = camera
        return camera

    def _read(self, quality: float) -> Optional[CapturedPhoto]:
        camera = self._open()
        ok, frame = camera.read()
        if not ok or frame is None:
            logger.warning(f"Camera {self.camera_index} returned no frame")
            return None

        frame = np.ascontiguousarray(frame)
        height, width = frame.shape[:2]
        jpeg_quality = max(1, min(100, int(round(quality * 100))))
        return CapturedPhoto(
            image_b64=encode_bgr_b64(frame, fmt="jpg", jpeg_quality=jpeg_quality),
            width=width,
            height=height,
            timestamp=time.time(),
        )

    async def capture(self, quality: float) -> Optional[CapturedPhoto]:
        return await asyncio.to_thread(self._read, quality)

    def release(self) -> None:
        """Release the camera device."""
        if self._camera is not None:
            self._camera.release()
            self._camera = None
            logger.info(f"Camera {self.camera_index} released")
