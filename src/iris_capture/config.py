"""
Iris Capture Configuration
==========================

This module handles configuration loading for the iris capture pipeline.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    IRIS_BURST_FRAME_COUNT    -> capture.burst_frame_count
    IRIS_CAPTURE_INTERVAL_MS  -> capture.capture_interval_ms
    IRIS_FUSION_FRAME_COUNT   -> capture.fusion_frame_count
    IRIS_FUSION_STRATEGY      -> capture.fusion_strategy
    IRIS_SR_MODEL_PATH        -> enhancement.model_path
    IRIS_SR_ALLOW_CLOUD       -> enhancement.allow_cloud_fallback
    IRIS_SR_CLOUD_URL         -> enhancement.cloud_url
    IRIS_LOG_LEVEL            -> logging.level

Example:
    from iris_capture.config import settings

    print(settings.capture.burst_frame_count)
    print(settings.enhancement.model_path)
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, model_validator


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class CaptureConfig(BaseModel):
    """
    Burst capture and quality gate tuning.

    Read-only during a session. A session may override individual
    fields via `merged()`, which re-validates against these bounds.
    """

    burst_frame_count: int = Field(
        default=5,
        ge=1,
        description="Number of frames captured per eye burst",
    )
    capture_interval_ms: int = Field(
        default=80,
        ge=0,
        description="Delay between consecutive frames in a burst (ms)",
    )
    fusion_frame_count: int = Field(
        default=1,
        ge=1,
        description="Maximum number of passing frames fused into one",
    )
    fusion_strategy: str = Field(
        default="best",
        pattern="^(best|average)$",
        description="Fusion strategy: 'best' or 'average'",
    )
    iris_radius_min: float = Field(
        default=100.0,
        gt=0,
        description="Minimum iris radius in pixels to pass the gate",
    )
    iris_radius_ideal: float = Field(
        default=160.0,
        gt=0,
        description="Iris radius in pixels that scores 1.0",
    )
    gaze_angle_max: float = Field(
        default=15.0,
        gt=0,
        description="Maximum tolerated gaze angle in degrees",
    )
    occlusion_max: float = Field(
        default=0.3,
        gt=0,
        le=1.0,
        description="Occluded fraction of the iris region that scores 0.0",
    )
    capture_quality: float = Field(
        default=0.6,
        gt=0,
        le=1.0,
        description="Camera compression quality (0, 1]",
    )

    class Config:
        """Pydantic model configuration."""

        frozen = True

    @model_validator(mode="after")
    def _fusion_within_burst(self) -> "CaptureConfig":
        """Fusion cannot use more frames than a burst captures."""
        if self.fusion_frame_count > self.burst_frame_count:
            raise ValueError(
                f"fusion_frame_count ({self.fusion_frame_count}) must not exceed "
                f"burst_frame_count ({self.burst_frame_count})"
            )
        return self

    def merged(self, overrides: Optional[Dict[str, Any]] = None) -> "CaptureConfig":
        """
        Merge per-session overrides over this configuration.

        Args:
            overrides: Field values to replace. None or empty returns self.

        Returns:
            CaptureConfig: Validated merged configuration

        Raises:
            pydantic.ValidationError: If an override is out of bounds
        """
        if not overrides:
            return self
        return CaptureConfig.model_validate({**self.model_dump(), **overrides})


class EnhancementConfig(BaseModel):
    """On-device super-resolution configuration."""

    model_path: str = Field(
        default="./models/espcn_x2.onnx",
        description="Path to the bundled ONNX super-resolution model",
    )
    execution_providers: List[str] = Field(
        default_factory=lambda: ["CoreMLExecutionProvider", "CPUExecutionProvider"],
        description="Preferred ONNX Runtime execution providers, in order",
    )
    scale: int = Field(default=2, ge=1, description="Model upscaling factor")
    time_budget_ms: float = Field(
        default=500.0,
        gt=0,
        description="Soft on-device latency budget (logged, never enforced)",
    )
    output_format: str = Field(
        default="png",
        pattern="^(png|jpg)$",
        description="Encoding of the enhanced image: 'png' or 'jpg'",
    )
    jpeg_quality: int = Field(default=95, ge=1, le=100, description="JPEG quality")
    allow_cloud_fallback: bool = Field(
        default=False,
        description="Try the cloud endpoint when on-device enhancement fails",
    )
    cloud_url: Optional[str] = Field(
        default=None,
        description="Cloud enhancement endpoint (POST JSON)",
    )
    cloud_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout for the cloud endpoint",
    )


class AuthConfig(BaseModel):
    """Enrollment and verification bookkeeping."""

    max_log_entries: int = Field(
        default=50,
        ge=1,
        description="Number of auth log entries retained (newest first)",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the iris capture pipeline.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    enhancement: EnhancementConfig = Field(default_factory=EnhancementConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data: Dict[str, Any] = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Capture settings
    if env_burst := os.environ.get("IRIS_BURST_FRAME_COUNT"):
        config_data.setdefault("capture", {})["burst_frame_count"] = int(env_burst)
    if env_interval := os.environ.get("IRIS_CAPTURE_INTERVAL_MS"):
        config_data.setdefault("capture", {})["capture_interval_ms"] = int(env_interval)
    if env_fusion := os.environ.get("IRIS_FUSION_FRAME_COUNT"):
        config_data.setdefault("capture", {})["fusion_frame_count"] = int(env_fusion)
    if env_strategy := os.environ.get("IRIS_FUSION_STRATEGY"):
        config_data.setdefault("capture", {})["fusion_strategy"] = env_strategy

    # Enhancement settings
    if env_model := os.environ.get("IRIS_SR_MODEL_PATH"):
        config_data.setdefault("enhancement", {})["model_path"] = env_model
    if env_cloud := os.environ.get("IRIS_SR_ALLOW_CLOUD"):
        config_data.setdefault("enhancement", {})["allow_cloud_fallback"] = _env_flag(env_cloud)
    if env_url := os.environ.get("IRIS_SR_CLOUD_URL"):
        config_data.setdefault("enhancement", {})["cloud_url"] = env_url

    # Logging settings
    if env_log := os.environ.get("IRIS_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
