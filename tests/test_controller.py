"""
Capture Session Tests
=====================

End-to-end tests for the capture session controller and its
processing graph, driven by replayed photos.
"""

import asyncio

import pytest

from conftest import make_photo, noise_image, occluded_image

import iris_capture.config as config_module
import iris_capture.enhancement.engine as engine_module
from iris_capture.config import EnhancementConfig
from iris_capture.models.capture import EyeLabel
from iris_capture.models.enhancement import EnhancementSource
from iris_capture.models.session import SessionPhase
from iris_capture.pipeline.controller import (
    CAPTURE_FAILED_MESSAGE,
    NO_FRAMES_MESSAGE,
    CaptureSessionController,
)
from iris_capture.stream.frame import CapturedPhoto
from iris_capture.stream.source import CameraError, ReplayFrameSource


class GatedSource:
    """Frame source that blocks each shot until released."""

    def __init__(self, photo):
        self.photo = photo
        self.release = asyncio.Event()
        self.started = asyncio.Event()

    async def capture(self, quality):
        self.started.set()
        await self.release.wait()
        return self.photo


class TestSuccessfulCapture:
    """Five good frames, model available."""

    def test_enhanced_result(self, sharp_photo, capture_config, working_engine):
        source = ReplayFrameSource([sharp_photo])
        progress = []
        controller = CaptureSessionController(
            source, engine=working_engine, config=capture_config, on_progress=progress.append,
        )

        result = asyncio.run(controller.capture_eye(EyeLabel.LEFT))

        assert result is not None
        assert result.eye is EyeLabel.LEFT
        assert result.frame_count == 5
        assert result.used_frame_count == 1
        assert result.fused_b64 == sharp_photo.image_b64
        assert result.enhancement.source is EnhancementSource.ON_DEVICE
        assert result.preview_b64 == result.enhancement.image_b64
        assert not result.is_fallback
        assert len(result.top_frames) == 1

        assert controller.phase is SessionPhase.IDLE
        assert controller.progress == 1.0
        assert controller.last_result is result
        assert not controller.is_busy
        assert source.capture_count == 5
        assert progress == pytest.approx([0.2, 0.4, 0.6, 0.8, 1.0])

    def test_string_eye_label(self, sharp_photo, capture_config, working_engine):
        controller = CaptureSessionController(
            ReplayFrameSource([sharp_photo]), engine=working_engine, config=capture_config,
        )
        result = asyncio.run(controller.capture_eye("right"))
        assert result.eye is EyeLabel.RIGHT

    def test_overrides_are_applied(self, sharp_photo, capture_config, working_engine):
        source = ReplayFrameSource([sharp_photo])
        controller = CaptureSessionController(
            source,
            engine=working_engine,
            config=capture_config,
            overrides={"burst_frame_count": 3, "fusion_frame_count": 2},
        )
        result = asyncio.run(controller.capture_eye(EyeLabel.LEFT))

        assert result.frame_count == 3
        assert result.used_frame_count == 2
        assert [item.capture_index for item in result.top_frames] == [0, 1]

    def test_interval_between_shots_only(self, sharp_photo, working_engine):
        delays = []

        async def record_sleep(seconds):
            delays.append(seconds)

        controller = CaptureSessionController(
            ReplayFrameSource([sharp_photo]),
            engine=working_engine,
            overrides={"capture_interval_ms": 80, "burst_frame_count": 4},
            sleep=record_sleep,
        )
        asyncio.run(controller.capture_eye(EyeLabel.LEFT))

        assert delays == [0.08, 0.08, 0.08]


class TestGateFailure:
    """Every frame misses the occlusion floor."""

    def test_fallback_offered(self, occluded_photo, capture_config, working_engine):
        controller = CaptureSessionController(
            ReplayFrameSource([occluded_photo]), engine=working_engine, config=capture_config,
        )

        result = asyncio.run(controller.capture_eye(EyeLabel.LEFT))

        assert result is None
        assert controller.phase is SessionPhase.ERROR
        assert "occlusion" in controller.error
        assert "Reduce occlusion" in controller.error
        assert controller.last_result is None

        fallback = controller.fallback_result
        assert fallback.is_fallback
        assert fallback.used_frame_count == 1
        assert fallback.enhancement is None
        assert fallback.fused_b64 == occluded_photo.image_b64
        assert fallback.tips[0].startswith("Reduce occlusion")
        assert not controller.is_busy

    def test_accept_fallback(self, occluded_photo, capture_config, working_engine):
        controller = CaptureSessionController(
            ReplayFrameSource([occluded_photo]), engine=working_engine, config=capture_config,
        )
        asyncio.run(controller.capture_eye(EyeLabel.LEFT))

        accepted = controller.accept_fallback()

        assert accepted is not None
        assert accepted.is_fallback
        assert controller.last_result is accepted
        assert controller.fallback_result is None
        assert controller.phase is SessionPhase.IDLE
        assert controller.error is None

    def test_accept_without_fallback(self, capture_config, working_engine):
        controller = CaptureSessionController(
            ReplayFrameSource([]), engine=working_engine, config=capture_config,
        )
        assert controller.accept_fallback() is None


class TestCaptureErrors:
    """Camera failures and empty bursts."""

    def test_camera_error(self, sharp_photo, capture_config, working_engine):
        source = ReplayFrameSource([sharp_photo, sharp_photo, CameraError("I/O failure")])
        controller = CaptureSessionController(source, engine=working_engine, config=capture_config)

        result = asyncio.run(controller.capture_eye(EyeLabel.LEFT))

        assert result is None
        assert controller.phase is SessionPhase.ERROR
        assert controller.error == CAPTURE_FAILED_MESSAGE
        assert controller.fallback_result is None
        assert not controller.is_busy

    def test_zero_frames(self, capture_config, working_engine):
        source = ReplayFrameSource([None, CapturedPhoto(image_b64=None)])
        controller = CaptureSessionController(source, engine=working_engine, config=capture_config)

        result = asyncio.run(controller.capture_eye(EyeLabel.RIGHT))

        assert result is None
        assert controller.phase is SessionPhase.ERROR
        assert controller.error == NO_FRAMES_MESSAGE

        controller.reset()
        assert controller.phase is SessionPhase.IDLE
        assert controller.error is None
        assert controller.progress == 0.0

    def test_empty_shots_are_skipped(self, sharp_photo, capture_config, working_engine):
        source = ReplayFrameSource([sharp_photo, None])
        controller = CaptureSessionController(source, engine=working_engine, config=capture_config)

        result = asyncio.run(controller.capture_eye(EyeLabel.LEFT))

        assert result.frame_count == 3
        assert source.capture_count == 5


class TestMissingModel:
    """Good frames, super-resolution model absent."""

    def test_capture_completes_unenhanced(self, sharp_photo, capture_config, missing_model_engine):
        controller = CaptureSessionController(
            ReplayFrameSource([sharp_photo]), engine=missing_model_engine, config=capture_config,
        )

        result = asyncio.run(controller.capture_eye(EyeLabel.LEFT))

        assert result is not None
        assert result.enhancement.source is EnhancementSource.NONE
        assert result.enhancement.image_b64 == result.fused_b64
        assert result.enhancement.error is not None
        assert result.preview_b64 == result.fused_b64
        assert controller.phase is SessionPhase.IDLE


class TestConcurrency:
    """Busy guard and generation handling."""

    def test_capture_while_busy_is_rejected(self, sharp_photo, capture_config, working_engine):
        source = GatedSource(sharp_photo)
        controller = CaptureSessionController(
            source, engine=working_engine, config=capture_config.merged({"burst_frame_count": 1}),
        )

        async def scenario():
            first = asyncio.create_task(controller.capture_eye(EyeLabel.LEFT))
            await source.started.wait()

            assert controller.is_busy
            assert controller.phase is SessionPhase.CAPTURING
            generation = controller.generation
            second = await controller.capture_eye(EyeLabel.RIGHT)
            assert second is None
            assert controller.generation == generation

            source.release.set()
            return await first

        result = asyncio.run(scenario())

        assert result is not None
        assert result.eye is EyeLabel.LEFT
        assert not controller.is_busy

    def test_reset_discards_late_result(self, sharp_photo, capture_config, working_engine):
        source = GatedSource(sharp_photo)
        controller = CaptureSessionController(
            source, engine=working_engine, config=capture_config.merged({"burst_frame_count": 1}),
        )

        async def scenario():
            task = asyncio.create_task(controller.capture_eye(EyeLabel.LEFT))
            await source.started.wait()

            controller.reset()
            assert controller.phase is SessionPhase.IDLE
            assert not controller.is_busy

            source.release.set()
            return await task

        result = asyncio.run(scenario())

        assert result is None
        assert controller.phase is SessionPhase.IDLE
        assert controller.last_result is None
        assert controller.progress == 0.0

    def test_new_capture_after_reset(self, sharp_photo, capture_config, working_engine):
        controller = CaptureSessionController(
            ReplayFrameSource([sharp_photo]), engine=working_engine, config=capture_config,
        )

        async def scenario():
            await controller.capture_eye(EyeLabel.LEFT)
            controller.reset()
            return await controller.capture_eye(EyeLabel.RIGHT)

        result = asyncio.run(scenario())
        assert result.eye is EyeLabel.RIGHT
        assert controller.last_result is result

    def test_snapshot(self, sharp_photo, capture_config, working_engine):
        controller = CaptureSessionController(
            ReplayFrameSource([sharp_photo]), engine=working_engine, config=capture_config,
        )
        assert controller.snapshot().phase is SessionPhase.IDLE

        asyncio.run(controller.capture_eye(EyeLabel.LEFT))
        snapshot = controller.snapshot()

        assert snapshot.has_result
        assert not snapshot.has_fallback
        assert not snapshot.is_busy
        assert snapshot.progress == 1.0
        assert snapshot.generation == 1


class TestProcessingGraph:
    def test_two_frame_fusion_uses_passing_frames_only(self, capture_config, working_engine):
        """Verify a below-gate frame never reaches fusion."""
        source = ReplayFrameSource([
            make_photo(occluded_image(seed=30)),
            make_photo(noise_image(seed=31)),
        ])
        controller = CaptureSessionController(
            source,
            engine=working_engine,
            config=capture_config,
            overrides={"burst_frame_count": 2, "fusion_frame_count": 2},
        )
        result = asyncio.run(controller.capture_eye(EyeLabel.LEFT))

        assert result.frame_count == 2
        assert result.used_frame_count == 1
        assert [item.capture_index for item in result.top_frames] == [1]


class TestDefaultEngine:
    """Controllers built without an engine."""

    def test_controllers_share_one_model_session(
        self, tmp_path, monkeypatch, sharp_photo, capture_config, upscaling_session,
    ):
        """Verify two default controllers load the model once between them."""
        model = tmp_path / "espcn_x2.onnx"
        model.write_bytes(b"onnx")
        sessions = []

        def counting_factory(path, providers=()):
            sessions.append(path)
            return upscaling_session

        monkeypatch.setattr(config_module.settings, "enhancement", EnhancementConfig(model_path=str(model)))
        monkeypatch.setattr(engine_module, "create_onnx_session", counting_factory)
        monkeypatch.setattr(engine_module, "_default_engine", None)

        left = CaptureSessionController(ReplayFrameSource([sharp_photo]), config=capture_config)
        right = CaptureSessionController(ReplayFrameSource([sharp_photo]), config=capture_config)

        left_result = asyncio.run(left.capture_eye(EyeLabel.LEFT))
        right_result = asyncio.run(right.capture_eye(EyeLabel.RIGHT))

        assert left.engine is right.engine
        assert sessions == [model]
        assert left_result.enhancement.source is EnhancementSource.ON_DEVICE
        assert right_result.enhancement.source is EnhancementSource.ON_DEVICE
