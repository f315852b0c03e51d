"""
Frame Data Model
=================

Internal frame representation for the capture pipeline.

This module defines the typed Frame class that is passed from the
capture burst to the evaluation stage, and the CapturedPhoto record
a frame source returns for a single shot.

Design Rules:
    - Frame is the ONLY frame format passed to downstream stages
    - Does NOT decode or manipulate image data
    - Immutable once created
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class CapturedPhoto:
    """
    One shot as returned by a frame source.

    Attributes:
        image_b64: Base64-encoded image, or None if the shot produced no data
        width: Pixel width reported by the camera
        height: Pixel height reported by the camera
        uri: Optional local URI of the stored photo
        timestamp: UNIX timestamp of the shot (None = use capture time)
    """

    image_b64: Optional[str]
    width: int = 0
    height: int = 0
    uri: Optional[str] = None
    timestamp: Optional[float] = None


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Raw captured frame for one eye.

    Attributes:
        frame_id: Unique id, "<capture-ms>-<burst index>"
        image_b64: Base64-encoded image data (NOT decoded)
        width: Pixel width
        height: Pixel height
        timestamp: UNIX timestamp of capture
        uri: Optional source URI
    """

    frame_id: str
    image_b64: str
    width: int
    height: int
    timestamp: float
    uri: Optional[str] = None

    @classmethod
    def from_photo(cls, photo: CapturedPhoto, index: int, captured_at: float) -> "Frame":
        """
        Build a frame from a frame-source photo.

        Args:
            photo: Photo with non-empty image data
            index: Position of the shot within its burst
            captured_at: Capture time used for the id (and timestamp if
                the photo carries none)
        """
        return cls(
            frame_id=f"{int(captured_at * 1000)}-{index}",
            image_b64=photo.image_b64 or "",
            width=photo.width or 0,
            height=photo.height or 0,
            timestamp=photo.timestamp if photo.timestamp is not None else captured_at,
            uri=photo.uri,
        )

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the full image."""
        return (
            f"Frame(frame_id={self.frame_id}, "
            f"size={self.width}x{self.height}, "
            f"timestamp={self.timestamp:.3f})"
        )
