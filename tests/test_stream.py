"""
Stream Tests
============

Tests for frame records, the image codec and replayed frame sources.
"""

import asyncio
import base64

import numpy as np
import pytest

from conftest import encode_png, noise_image

from iris_capture.stream.frame import CapturedPhoto, Frame
from iris_capture.stream.image_codec import (
    ImageDecodeError,
    ImageEncodeError,
    decode_b64_bgr,
    decode_b64_grayscale,
    encode_bgr_b64,
)
from iris_capture.stream.source import CameraError, ReplayFrameSource


class TestFrame:
    """Tests for the Frame model."""

    def test_from_photo(self):
        photo = CapturedPhoto(image_b64="abc", width=640, height=480, uri="file:///tmp/a.jpg")
        frame = Frame.from_photo(photo, 3, 1_700_000_000.25)

        assert frame.frame_id == "1700000000250-3"
        assert frame.timestamp == 1_700_000_000.25
        assert frame.uri == "file:///tmp/a.jpg"
        assert (frame.width, frame.height) == (640, 480)

    def test_photo_timestamp_preferred(self):
        photo = CapturedPhoto(image_b64="abc", timestamp=42.0)
        assert Frame.from_photo(photo, 0, 100.0).timestamp == 42.0

    def test_repr_hides_image(self):
        frame = Frame(frame_id="1-0", image_b64="x" * 10_000, width=4, height=4, timestamp=1.0)
        assert "xxxx" not in repr(frame)

    def test_immutable(self):
        frame = Frame(frame_id="1-0", image_b64="abc", width=4, height=4, timestamp=1.0)
        with pytest.raises(AttributeError):
            frame.width = 8


class TestImageCodec:
    """Tests for base64 image decoding and encoding."""

    def test_png_is_lossless(self):
        image = noise_image(seed=40, size=24)
        assert np.array_equal(decode_b64_bgr(encode_bgr_b64(image)), image)

    def test_grayscale(self):
        gray = decode_b64_grayscale(encode_png(noise_image(seed=41, size=24)))
        assert gray.shape == (24, 24)
        assert gray.dtype == np.uint8

    def test_jpeg_encoding(self):
        encoded = encode_bgr_b64(noise_image(seed=42, size=24), fmt="jpg", jpeg_quality=80)
        assert base64.b64decode(encoded)[:2] == b"\xff\xd8"

    @pytest.mark.parametrize("payload", ["", "not base64!", base64.b64encode(b"not an image").decode()])
    def test_decode_errors(self, payload):
        with pytest.raises(ImageDecodeError):
            decode_b64_bgr(payload)

    def test_encode_errors(self):
        with pytest.raises(ImageEncodeError):
            encode_bgr_b64(np.zeros((4, 4), dtype=np.uint8))
        with pytest.raises(ImageEncodeError):
            encode_bgr_b64(np.zeros((4, 4, 3), dtype=np.float32))
        with pytest.raises(ImageEncodeError):
            encode_bgr_b64(np.zeros((4, 4, 3), dtype=np.uint8), fmt="gif")


class TestReplayFrameSource:
    """Tests for ReplayFrameSource."""

    def test_wraps_around(self):
        a = CapturedPhoto(image_b64="a")
        b = CapturedPhoto(image_b64="b")
        source = ReplayFrameSource([a, b])

        async def take(count):
            return [await source.capture(0.6) for _ in range(count)]

        assert asyncio.run(take(3)) == [a, b, a]
        assert source.capture_count == 3

    def test_raises_exception_entries(self):
        source = ReplayFrameSource([CameraError("busy")])
        with pytest.raises(CameraError):
            asyncio.run(source.capture(0.6))

    def test_empty_source_returns_none(self):
        assert asyncio.run(ReplayFrameSource([]).capture(0.6)) is None
