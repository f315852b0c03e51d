"""
Capture Session Controller
==========================

Orchestrates one eye's capture: burst acquisition, processing, and the
session state a host UI polls.

State Machine:
    IDLE → CAPTURING      capture_eye(eye), only when not busy
    CAPTURING → ERROR     acquisition raised, or zero frames captured
    CAPTURING → PROCESSING all shots taken
    PROCESSING → ERROR    no frame passed the gate (fallback stored),
                          or fusion returned nothing
    PROCESSING → IDLE     success; progress = 1.0, last_result stored
    ERROR → IDLE          reset(), or accept_fallback()

Concurrency:
    - Frames are acquired strictly sequentially, with capture_interval_ms
      between shots (none after the last)
    - A capture requested while busy returns None and changes nothing
    - reset() does not cancel in-flight work; every capture carries a
      generation token and results from a stale generation are discarded
    - The busy state is cleared on every exit path of the current generation
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from iris_capture.config import CaptureConfig, settings
from iris_capture.enhancement.engine import SuperResolutionEngine, default_engine
from iris_capture.fusion.fuser import FrameFuser
from iris_capture.models.capture import EyeLabel, IrisCaptureResult
from iris_capture.models.session import SessionPhase, SessionSnapshot
from iris_capture.pipeline.graph import ProcessingGraph
from iris_capture.quality.evaluator import FrameEvaluator
from iris_capture.stream.frame import Frame
from iris_capture.stream.source import FrameSource


logger = logging.getLogger(__name__)


CAPTURE_FAILED_MESSAGE = "Unable to capture iris burst. Please hold steady and try again."
NO_FRAMES_MESSAGE = "No frames were captured."
UNEXPECTED_FAILURE_MESSAGE = "Iris capture failed unexpectedly. Please try again."


class CaptureSessionController:
    """
    Per-eye capture session state machine.

    Attributes:
        frame_source: Camera backend
        config: Effective capture configuration (defaults merged with overrides)
        engine: Super-resolution engine

    Example:
        controller = CaptureSessionController(ReplayFrameSource(photos))
        result = await controller.capture_eye(EyeLabel.LEFT)
        if result is None and controller.phase is SessionPhase.ERROR:
            print(controller.error)
            if controller.fallback_result is not None:
                result = controller.accept_fallback()
    """

    def __init__(
        self,
        frame_source: FrameSource,
        engine: Optional[SuperResolutionEngine] = None,
        config: Optional[CaptureConfig] = None,
        overrides: Optional[Dict[str, Any]] = None,
        evaluator: Optional[FrameEvaluator] = None,
        fuser: Optional[FrameFuser] = None,
        on_progress: Optional[Callable[[float], None]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the controller.

        Args:
            frame_source: Camera backend
            engine: Super-resolution engine (the shared default if None)
            config: Base capture configuration (global settings if None)
            overrides: Per-session overrides merged over `config`
            evaluator: Frame evaluator (default scorer if None)
            fuser: Frame fuser
            on_progress: Called with burst progress after each shot
            sleep: Awaitable delay used between shots
        """
        self.frame_source = frame_source
        self.config = (config or settings.capture).merged(overrides)
        self.engine = engine or default_engine()

        self._graph = ProcessingGraph(self.engine, evaluator=evaluator, fuser=fuser)
        self._on_progress = on_progress
        self._sleep = sleep

        self._phase: SessionPhase = SessionPhase.IDLE
        self._busy: bool = False
        self._progress: float = 0.0
        self._error: Optional[str] = None
        self._last_result: Optional[IrisCaptureResult] = None
        self._fallback_result: Optional[IrisCaptureResult] = None
        self._generation: int = 0

        logger.info(
            f"CaptureSessionController initialized: "
            f"burst={self.config.burst_frame_count}, "
            f"interval={self.config.capture_interval_ms}ms, "
            f"fusion={self.config.fusion_frame_count}"
        )

    # -------------------------------------------------------------------------
    # Polling surface
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> SessionPhase:
        """Current session phase."""
        return self._phase

    @property
    def progress(self) -> float:
        """Burst progress in [0, 1]."""
        return self._progress

    @property
    def error(self) -> Optional[str]:
        """Error message while in the ERROR phase."""
        return self._error

    @property
    def last_result(self) -> Optional[IrisCaptureResult]:
        """Last successful (or accepted fallback) result."""
        return self._last_result

    @property
    def fallback_result(self) -> Optional[IrisCaptureResult]:
        """Below-gate result available to accept_fallback()."""
        return self._fallback_result

    @property
    def is_busy(self) -> bool:
        """True while a capture is in flight."""
        return self._busy

    @property
    def generation(self) -> int:
        """Session generation; bumped by every capture and reset."""
        return self._generation

    def snapshot(self) -> SessionSnapshot:
        """Point-in-time view for UI polling."""
        return SessionSnapshot(
            phase=self._phase,
            progress=self._progress,
            error=self._error,
            is_busy=self._busy,
            has_result=self._last_result is not None,
            has_fallback=self._fallback_result is not None,
            generation=self._generation,
        )

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def capture_eye(self, eye: Union[EyeLabel, str]) -> Optional[IrisCaptureResult]:
        """
        Capture, score, fuse and enhance one eye.

        Args:
            eye: EyeLabel or "left" / "right"

        Returns:
            IrisCaptureResult on success; None when busy, on error (see
            `error` and `fallback_result`), or when the capture was
            superseded by reset()
        """
        eye = EyeLabel(eye)

        if self._busy:
            logger.info(f"Capture request for {eye.value} eye rejected: session busy")
            return None

        self._generation += 1
        generation = self._generation
        self._busy = True
        self._phase = SessionPhase.CAPTURING
        self._progress = 0.0
        self._error = None
        self._last_result = None
        self._fallback_result = None

        logger.info(f"Capture started: eye={eye.value}, generation={generation}")

        try:
            return await self._run_capture(eye, generation)
        except Exception as e:
            logger.exception(f"Unexpected capture failure (generation={generation}): {e}")
            if self._is_current(generation):
                self._fail(UNEXPECTED_FAILURE_MESSAGE)
            return None
        finally:
            if self._is_current(generation):
                self._busy = False

    def reset(self) -> None:
        """
        Return to IDLE and clear session state.

        In-flight work is not cancelled; its results are discarded.
        """
        self._generation += 1
        self._phase = SessionPhase.IDLE
        self._busy = False
        self._progress = 0.0
        self._error = None
        self._last_result = None
        self._fallback_result = None
        logger.info(f"Capture session reset (generation={self._generation})")

    def accept_fallback(self) -> Optional[IrisCaptureResult]:
        """
        Accept the stored below-gate result and proceed with it.

        Returns:
            The accepted fallback result, or None if there is none
        """
        if self._fallback_result is None:
            return None

        result = self._fallback_result
        self._last_result = result
        self._fallback_result = None
        self._error = None
        self._phase = SessionPhase.IDLE

        logger.warning(
            f"Fallback accepted for {result.eye.value} eye "
            f"(composite={result.quality.composite:.3f})"
        )
        return result

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _fail(self, message: str) -> None:
        self._phase = SessionPhase.ERROR
        self._error = message
        logger.warning(f"Capture failed: {message.splitlines()[0]}")

    def _set_progress(self, progress: float) -> None:
        self._progress = max(0.0, min(1.0, progress))
        if self._on_progress is not None:
            self._on_progress(self._progress)

    async def _acquire_burst(self, generation: int) -> Optional[List[Frame]]:
        """
        Take the burst, one shot at a time.

        Returns:
            Frames in capture order, or None if superseded by reset()
        """
        frames: List[Frame] = []
        count = self.config.burst_frame_count
        interval = self.config.capture_interval_ms / 1000.0

        for index in range(count):
            photo = await self.frame_source.capture(self.config.capture_quality)
            if not self._is_current(generation):
                return None

            if photo is not None and photo.image_b64:
                frames.append(Frame.from_photo(photo, index, time.time()))
            else:
                logger.debug(f"Shot {index} produced no image data")

            self._set_progress((index + 1) / count)

            if index < count - 1:
                await self._sleep(interval)
                if not self._is_current(generation):
                    return None

        return frames

    async def _run_capture(self, eye: EyeLabel, generation: int) -> Optional[IrisCaptureResult]:
        try:
            frames = await self._acquire_burst(generation)
        except Exception as e:
            logger.error(f"Burst capture failed: {type(e).__name__}: {e}")
            if self._is_current(generation):
                self._fail(CAPTURE_FAILED_MESSAGE)
            return None

        if frames is None:
            logger.info(f"Discarding burst from superseded generation {generation}")
            return None

        if not frames:
            self._fail(NO_FRAMES_MESSAGE)
            return None

        self._phase = SessionPhase.PROCESSING
        state = await self._graph.run(eye, frames, self.config)

        if not self._is_current(generation):
            logger.info(f"Discarding result from superseded generation {generation}")
            return None

        result = state.get("result")
        if result is None:
            self._fallback_result = state.get("fallback")
            self._fail(state.get("error") or UNEXPECTED_FAILURE_MESSAGE)
            return None

        self._last_result = result
        self._phase = SessionPhase.IDLE
        self._progress = 1.0

        enhancement = result.enhancement
        logger.info(
            f"Capture completed: eye={eye.value}, "
            f"frames={result.used_frame_count}/{result.frame_count}, "
            f"composite={result.quality.composite:.3f}, "
            f"enhancement={enhancement.source.value if enhancement else 'none'}"
        )
        return result
