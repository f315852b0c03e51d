"""
Test Configuration
==================

Pytest fixtures and test configuration for the iris capture pipeline.

Image fixtures:
    - sharp photo: seeded uniform noise, 320x320 PNG. Sharp, balanced,
      unoccluded and large enough to clear every quality floor.
    - occluded photo: the same noise with the top half flattened to
      mid-gray. Half the iris blocks are textureless, so only the
      occlusion floor is missed.
"""

import base64
from pathlib import Path

import cv2
import numpy as np
import pytest

from iris_capture.config import CaptureConfig, EnhancementConfig
from iris_capture.enhancement.engine import SuperResolutionEngine
from iris_capture.stream.frame import CapturedPhoto, Frame


IMAGE_SIZE = 320


def encode_png(image: np.ndarray) -> str:
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return base64.b64encode(buffer.tobytes()).decode("ascii")


def noise_image(seed: int = 0, size: int = IMAGE_SIZE) -> np.ndarray:
    rng = np.random.default_rng(seed)
    gray = rng.integers(0, 256, size=(size, size), dtype=np.uint8)
    return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)


def occluded_image(seed: int = 0, size: int = IMAGE_SIZE) -> np.ndarray:
    image = noise_image(seed, size)
    image[: size // 2, :, :] = 128
    return image


def make_photo(image: np.ndarray, uri=None) -> CapturedPhoto:
    return CapturedPhoto(
        image_b64=encode_png(image),
        width=image.shape[1],
        height=image.shape[0],
        uri=uri,
    )


def make_frame(image: np.ndarray, index: int = 0) -> Frame:
    return Frame.from_photo(make_photo(image), index, 1_700_000_000.0)


class FakeInput:
    """Stand-in for onnxruntime.NodeArg."""

    def __init__(self, name: str) -> None:
        self.name = name


class UpscalingSession:
    """Fake inference session that upsamples x2 by pixel repetition."""

    def __init__(self) -> None:
        self.run_count = 0

    def get_inputs(self):
        return [FakeInput("input")]

    def run(self, output_names, feeds):
        self.run_count += 1
        tensor = feeds["input"]
        return [np.repeat(np.repeat(tensor, 2, axis=2), 2, axis=3)]


class StaticResolver:
    """Resolver that always reports a model path."""

    def __init__(self, path: str = "/models/espcn_x2.onnx") -> None:
        self.path = path
        self.resolve_count = 0

    def resolve(self):
        self.resolve_count += 1
        return Path(self.path)


@pytest.fixture
def sharp_photo() -> CapturedPhoto:
    """Photo that clears every quality floor."""
    return make_photo(noise_image(seed=1))


@pytest.fixture
def occluded_photo() -> CapturedPhoto:
    """Photo that misses only the occlusion floor."""
    return make_photo(occluded_image(seed=2))


@pytest.fixture
def capture_config() -> CaptureConfig:
    """Default capture config with no delay between shots."""
    return CaptureConfig(capture_interval_ms=0)


@pytest.fixture
def enhancement_config(tmp_path) -> EnhancementConfig:
    """Enhancement config pointing at a model path that does not exist."""
    return EnhancementConfig(model_path=str(tmp_path / "missing.onnx"))


@pytest.fixture
def upscaling_session() -> UpscalingSession:
    return UpscalingSession()


@pytest.fixture
def working_engine(enhancement_config, upscaling_session) -> SuperResolutionEngine:
    """Engine backed by the fake x2 session."""
    return SuperResolutionEngine(
        config=enhancement_config,
        resolver=StaticResolver(),
        session_factory=lambda path: upscaling_session,
    )


@pytest.fixture
def missing_model_engine(enhancement_config) -> SuperResolutionEngine:
    """Engine whose model asset is absent."""
    return SuperResolutionEngine(config=enhancement_config)
