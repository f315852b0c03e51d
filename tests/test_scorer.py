"""
Quality Scorer Tests
====================

Tests for pixel-domain frame metrics and the composite.
"""

import math

import cv2
import numpy as np
import pytest

from conftest import make_frame, noise_image, occluded_image

from iris_capture.config import CaptureConfig
from iris_capture.models.quality import QUALITY_WEIGHTS, FrameQuality, average_quality, clamp_unit
from iris_capture.quality.scorer import FrameQualityScorer, score_frame
from iris_capture.stream.frame import Frame


class TestFrameQuality:
    """Tests for the FrameQuality model."""

    def test_weights_sum_to_one(self):
        """Verify composite weights sum to 1."""
        assert math.isclose(sum(QUALITY_WEIGHTS.values()), 1.0)

    def test_composite_is_weighted_sum(self):
        """Verify composite = 0.35f + 0.20g + 0.20e + 0.15o + 0.10r."""
        quality = FrameQuality.from_scores(
            focus=1.0, gaze=0.5, exposure=0.5, occlusion=0.0, iris_radius_score=1.0, iris_radius_px=160,
        )
        assert quality.composite == pytest.approx(0.35 + 0.10 + 0.10 + 0.0 + 0.10)

    def test_out_of_range_scores_are_clamped(self):
        """Verify negative, >1 and NaN inputs land in [0, 1]."""
        quality = FrameQuality.from_scores(
            focus=1.7, gaze=-0.4, exposure=float("nan"), occlusion=-2.0,
            iris_radius_score=2.0, iris_radius_px=400,
        )
        assert quality.focus == 1.0
        assert quality.gaze == 0.0
        assert quality.exposure == 0.0
        assert quality.occlusion == 0.0
        assert quality.iris_radius_score == 1.0
        assert 0.0 <= quality.composite <= 1.0

    def test_clamp_unit(self):
        assert clamp_unit(float("nan")) == 0.0
        assert clamp_unit(-1) == 0.0
        assert clamp_unit(0.25) == 0.25
        assert clamp_unit(3) == 1.0

    def test_average_quality(self):
        """Verify field-wise mean."""
        a = FrameQuality.from_scores(1.0, 1.0, 1.0, 1.0, 1.0, 200)
        b = FrameQuality.from_scores(0.5, 0.0, 0.5, 0.0, 0.5, 100)
        avg = average_quality([a, b])
        assert avg.focus == pytest.approx(0.75)
        assert avg.gaze == pytest.approx(0.5)
        assert avg.iris_radius_px == pytest.approx(150)
        assert avg.composite == pytest.approx((a.composite + b.composite) / 2)

    def test_average_of_nothing_is_empty(self):
        assert average_quality([]) == FrameQuality.empty()


class TestFrameQualityScorer:
    """Tests for FrameQualityScorer."""

    def test_sharp_frame_clears_floors(self):
        """Verify a sharp, balanced, unoccluded frame scores high."""
        quality = score_frame(make_frame(noise_image(seed=3)), CaptureConfig())

        assert quality.focus > 0.9
        assert quality.exposure > 0.9
        assert quality.occlusion == 1.0
        assert quality.iris_radius_px == 160
        assert quality.iris_radius_score == 1.0

    def test_deterministic(self):
        """Verify the same frame and config give the same quality."""
        frame = make_frame(noise_image(seed=4))
        scorer = FrameQualityScorer()
        assert scorer.score(frame, CaptureConfig()) == scorer.score(frame, CaptureConfig())

    def test_flat_frame_has_no_focus(self):
        """Verify a textureless frame scores zero focus and full occlusion."""
        flat = np.full((320, 320, 3), 128, dtype=np.uint8)
        quality = score_frame(make_frame(flat), CaptureConfig())

        assert quality.focus == 0.0
        assert quality.occlusion == 0.0
        assert quality.exposure == pytest.approx(1.0)

    def test_occluded_frame(self):
        """Verify a half-flat frame misses only the occlusion floor."""
        quality = score_frame(make_frame(occluded_image(seed=5)), CaptureConfig())

        assert quality.occlusion == 0.0
        assert quality.focus >= 0.65
        assert quality.exposure >= 0.60

    def test_dark_frame_exposure(self):
        """Verify crushed blacks drive exposure to zero."""
        dark = np.zeros((320, 320, 3), dtype=np.uint8)
        quality = score_frame(make_frame(dark), CaptureConfig())
        assert quality.exposure == 0.0

    def test_small_frame_radius(self):
        """Verify iris radius is half the shorter side."""
        small = noise_image(seed=6, size=120)
        quality = score_frame(make_frame(small), CaptureConfig())

        assert quality.iris_radius_px == 60
        assert quality.iris_radius_score == pytest.approx(60 / 160)

    def test_off_centre_pupil_lowers_gaze(self):
        """Verify a pupil proxy far from centre reduces gaze."""
        image = np.full((320, 320, 3), 200, dtype=np.uint8)
        image += np.random.default_rng(7).integers(0, 20, size=image.shape, dtype=np.uint8)
        centred = image.copy()
        cv2.circle(centred, (160, 160), 30, (0, 0, 0), -1)
        offset = image.copy()
        cv2.circle(offset, (260, 160), 30, (0, 0, 0), -1)

        config = CaptureConfig()
        centred_gaze = score_frame(make_frame(centred), config).gaze
        offset_gaze = score_frame(make_frame(offset), config).gaze

        assert centred_gaze > 0.9
        assert offset_gaze < centred_gaze

    def test_gaze_reaches_zero_at_max_angle(self):
        """Verify gaze falls linearly from 1 to 0 at gaze_angle_max."""
        # pupil proxy 55px right of centre on a 200px frame: asin(0.55)
        image = np.full((200, 200, 3), 255, dtype=np.uint8)
        image[75:125, 130:180] = 0
        frame = make_frame(image)
        angle = math.degrees(math.asin(0.55))

        assert score_frame(frame, CaptureConfig(gaze_angle_max=angle)).gaze == pytest.approx(0.0, abs=1e-6)
        assert score_frame(frame, CaptureConfig(gaze_angle_max=2 * angle)).gaze == pytest.approx(0.5, abs=1e-6)
        assert score_frame(frame, CaptureConfig(gaze_angle_max=angle / 2)).gaze == 0.0

    def test_undecodable_frame_scores_zero(self):
        """Verify garbage image data never raises."""
        frame = Frame(frame_id="x-0", image_b64="not an image", width=320, height=320, timestamp=0.0)
        quality = score_frame(frame, CaptureConfig())

        assert quality.focus == 0.0
        assert quality.exposure == 0.0
        assert quality.occlusion == 0.0
        assert quality.iris_radius_px == 160
