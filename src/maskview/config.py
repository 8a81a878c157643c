"""
maskview Configuration
======================

This module handles configuration loading for the overlay viewer.

Configuration Sources (in order of precedence):
    1. Command-line flags (applied by main)
    2. Environment variables
    3. maskview.yaml / config.yaml file
    4. Default values (lowest priority)

Environment Variable Mapping:
    MASKVIEW_STREAM_URL      -> stream.url
    MASKVIEW_TOPIC           -> stream.topic
    MASKVIEW_TRANSPORT       -> stream.transport
    MASKVIEW_WINDOW_NAME     -> display.window_name
    MASKVIEW_AUTOSIZE        -> display.autosize
    MASKVIEW_FILENAME_FORMAT -> snapshot.filename_format
    MASKVIEW_LOG_LEVEL       -> logging.level

Example:
    from maskview.config import load_config

    settings = load_config()
    print(settings.stream.topic)
    print(settings.window_name)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from maskview.overlay.state import DEFAULT_FILENAME_FORMAT, validate_filename_format
from maskview.stream.consumer import TRANSPORTS


logger = logging.getLogger(__name__)


DEFAULT_TOPIC = "image"


# =============================================================================
# Configuration Models
# =============================================================================

class StreamConfig(BaseModel):
    """Image stream subscription configuration."""

    url: str = Field(
        default="ws://localhost:9090/ws/images",
        description="Websocket URL of the image stream server",
    )
    topic: str = Field(
        default=DEFAULT_TOPIC,
        min_length=1,
        description="Image topic to subscribe to",
    )
    transport: str = Field(
        default="raw",
        description="Transport to negotiate: 'raw' or 'compressed'",
    )
    reconnect_backoff_ms: int = Field(
        default=500,
        ge=100,
        description="Backoff in milliseconds between reconnect attempts",
    )
    max_reconnect_attempts: int = Field(
        default=0,
        ge=0,
        description="Maximum reconnection attempts (0 = unlimited)",
    )
    queue_size: int = Field(
        default=1,
        ge=1,
        description="Frames buffered between transport and compositor",
    )

    @field_validator("transport")
    @classmethod
    def _check_transport(cls, value: str) -> str:
        if value not in TRANSPORTS:
            raise ValueError(f"transport must be one of {TRANSPORTS}, got {value!r}")
        return value


class DisplayConfig(BaseModel):
    """Overlay window configuration."""

    window_name: Optional[str] = Field(
        default=None,
        description="Window title (defaults to the stream topic)",
    )
    autosize: bool = Field(
        default=False,
        description="Fix the window size to the image size",
    )
    pump_interval_ms: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="cv2.waitKey delay per UI loop iteration",
    )


class SnapshotConfig(BaseModel):
    """Click-to-save configuration."""

    filename_format: str = Field(
        default=DEFAULT_FILENAME_FORMAT,
        description="Snapshot filename with one integer placeholder",
    )

    @field_validator("filename_format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        return validate_filename_format(value)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for maskview.

    Loads configuration from a YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    stream: StreamConfig = Field(default_factory=StreamConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    snapshot: SnapshotConfig = Field(default_factory=SnapshotConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def window_name(self) -> str:
        """Configured window name, or the resolved topic name."""
        return self.display.window_name or self.stream.topic


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Args:
        config_path: Path to a YAML file. If None, searches common locations.

    Returns:
        Settings: Loaded configuration

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
        pydantic.ValidationError: If the merged configuration is invalid
    """
    if config_path is None:
        for path in (Path("maskview.yaml"), Path("config.yaml"), Path("config.yml")):
            if path.exists():
                config_path = str(path)
                break
    elif not Path(config_path).exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    config_data = {}
    if config_path:
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    if env_url := os.environ.get("MASKVIEW_STREAM_URL"):
        config_data.setdefault("stream", {})["url"] = env_url
    if env_topic := os.environ.get("MASKVIEW_TOPIC"):
        config_data.setdefault("stream", {})["topic"] = env_topic
    if env_transport := os.environ.get("MASKVIEW_TRANSPORT"):
        config_data.setdefault("stream", {})["transport"] = env_transport

    if env_window := os.environ.get("MASKVIEW_WINDOW_NAME"):
        config_data.setdefault("display", {})["window_name"] = env_window
    if env_autosize := os.environ.get("MASKVIEW_AUTOSIZE"):
        config_data.setdefault("display", {})["autosize"] = env_autosize

    if env_format := os.environ.get("MASKVIEW_FILENAME_FORMAT"):
        config_data.setdefault("snapshot", {})["filename_format"] = env_format

    if env_log := os.environ.get("MASKVIEW_LOG_LEVEL"):
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
