# =============================================================================
# DISCLAIMER: This software is NOT a medical device and is NOT intended for
# medical monitoring, diagnosis, or treatment. This is a proof of concept for
# educational purposes only. Do not rely on this system for health decisions.
# =============================================================================
"""Configuration loader for the drowsiness client.

Loads configuration from YAML file with environment variable substitution.
"""

import os
import re
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import yaml
from dotenv import load_dotenv

from drowsiness_client.models import CameraSelection, SourceType

logger = logging.getLogger(__name__)

# Default config file locations (in order of priority)
CONFIG_PATHS = [
    "config.local.yaml",  # Local overrides (not in git)
    "config.yaml",        # Default config
]

# Width x height for each resolution preset
RESOLUTION_PRESETS = {
    "low": (320, 240),
    "medium": (720, 480),
    "high": (1280, 720),
}


@dataclass
class DetectionConfig:
    """Remote inference endpoint."""
    endpoint_url: str = "http://192.168.1.9:5000/api/detect_drowsiness"
    timeout_seconds: float = 15.0


@dataclass
class CameraConfig:
    """Image source and camera selection.

    Attributes:
        source: "device" for a camera, "file_picker" for image files
        selection: "first" (first available) or "front" (first front-facing)
        missing_is_fatal: Abort startup when no eligible camera exists
        resolution: Capture resolution preset (low, medium, high)
        jpeg_quality: JPEG encoding quality for captured frames (1-100)
        max_devices: Number of device indices probed during enumeration
        front_facing_indices: Device indices reported as front-facing
        image_path: Image file or directory for the file_picker source
    """
    source: str = SourceType.DEVICE.value
    selection: str = CameraSelection.FIRST.value
    missing_is_fatal: bool = True
    resolution: str = "medium"
    jpeg_quality: int = 85
    max_devices: int = 4
    front_facing_indices: List[int] = field(default_factory=lambda: [0])
    image_path: str = ""

    @property
    def source_type(self) -> SourceType:
        return SourceType(self.source)

    @property
    def selection_mode(self) -> CameraSelection:
        return CameraSelection(self.selection)

    @property
    def frame_size(self):
        """(width, height) for the configured resolution preset."""
        return RESOLUTION_PRESETS[self.resolution]


@dataclass
class OutputConfig:
    """Where annotated images returned by the server are written."""
    annotated_dir: str = ""


@dataclass
class WebConfig:
    """Web presentation adapter configuration."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 5050


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: str = ""
    max_size_mb: int = 10
    backup_count: int = 5


@dataclass
class Config:
    """Main configuration container.

    This is the root configuration object containing all settings.
    """
    mock_mode: bool = False
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    web: WebConfig = field(default_factory=WebConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Internal: base path for resolving relative paths
    _base_path: Path = field(default_factory=Path.cwd)

    def resolve_path(self, path: str) -> Path:
        """Resolve a path relative to the config file location."""
        p = Path(path)
        if p.is_absolute():
            return p
        return self._base_path / p


def _substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR} patterns with environment variables.

    Args:
        value: Value to process (can be str, dict, list, or other)

    Returns:
        Value with environment variables substituted
    """
    if isinstance(value, str):
        pattern = r'\$\{([^}]+)\}'

        def replace_env(match):
            var_name = match.group(1)
            env_value = os.environ.get(var_name, "")
            if not env_value:
                logger.warning(f"Environment variable {var_name} not set")
            return env_value

        return re.sub(pattern, replace_env, value)

    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]

    return value


def _dict_to_dataclass(cls, data: Dict[str, Any]):
    """Convert a dictionary to a dataclass, handling nested structures.

    Args:
        cls: The dataclass type to create
        data: Dictionary of values

    Returns:
        Instance of cls populated with data
    """
    if data is None:
        return cls()

    field_types = {f.name: f.type for f in cls.__dataclass_fields__.values()}

    kwargs = {}
    for field_name, field_type in field_types.items():
        if field_name.startswith('_'):
            continue

        if field_name not in data:
            continue

        value = data[field_name]

        # Handle nested dataclasses
        if hasattr(field_type, '__dataclass_fields__'):
            kwargs[field_name] = _dict_to_dataclass(field_type, value)

        # YAML may give a single index instead of a list
        elif field_name == 'front_facing_indices' and not isinstance(value, list):
            kwargs[field_name] = [] if value is None else [value]

        else:
            kwargs[field_name] = value

    return cls(**kwargs)


def load_config(config_path: Optional[str] = None, base_path: Optional[Path] = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, searches default locations.
        base_path: Base path for resolving relative paths. Defaults to cwd.

    Returns:
        Config object with all settings loaded

    Raises:
        FileNotFoundError: If no config file is found
        yaml.YAMLError: If config file is invalid YAML
        ValueError: If settings are invalid
    """
    # Load .env file if present
    env_path = Path(base_path or Path.cwd()) / ".env"
    if env_path.exists():
        load_dotenv(env_path)
        logger.debug(f"Loaded environment from {env_path}")

    # Find config file
    if config_path:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        base = base_path or Path.cwd()
        config_file = None
        for path in CONFIG_PATHS:
            candidate = base / path
            if candidate.exists():
                config_file = candidate
                break

        if config_file is None:
            raise FileNotFoundError(
                f"No config file found. Searched: {', '.join(CONFIG_PATHS)}"
            )

    logger.info(f"Loading config from {config_file}")

    with open(config_file, 'r') as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raw_config = {}

    config_data = _substitute_env_vars(raw_config)

    # Check for MOCK_HARDWARE env var override
    if os.environ.get("MOCK_HARDWARE", "").lower() in ("true", "1", "yes"):
        logger.info("MOCK_HARDWARE environment variable set - enabling mock mode")
        config_data["mock_mode"] = True

    config = _dict_to_dataclass(Config, config_data)
    config._base_path = config_file.parent

    _validate_config(config)

    return config


def _validate_config(config: Config) -> None:
    """Validate configuration settings.

    Args:
        config: Config object to validate

    Raises:
        ValueError: If required settings are missing or invalid
    """
    errors = []

    url = urlparse(config.detection.endpoint_url or "")
    if url.scheme.lower() not in ("http", "https") or not url.netloc:
        errors.append(
            f"detection.endpoint_url must be an http(s) URL, got '{config.detection.endpoint_url}'"
        )

    valid_sources = [s.value for s in SourceType]
    if config.camera.source not in valid_sources:
        errors.append(f"camera.source must be one of {valid_sources}")

    valid_selections = [s.value for s in CameraSelection]
    if config.camera.selection not in valid_selections:
        errors.append(f"camera.selection must be one of {valid_selections}")

    if config.camera.resolution not in RESOLUTION_PRESETS:
        errors.append(f"camera.resolution must be one of {list(RESOLUTION_PRESETS)}")

    if config.camera.source == SourceType.FILE_PICKER.value and not config.camera.image_path:
        errors.append("camera.image_path is required for the file_picker source")

    if config.detection.timeout_seconds <= 0:
        logger.warning("detection.timeout_seconds must be positive, using 15")
        config.detection.timeout_seconds = 15.0

    if config.camera.jpeg_quality < 1 or config.camera.jpeg_quality > 100:
        logger.warning("camera.jpeg_quality must be 1-100, clamping to valid range")
        config.camera.jpeg_quality = max(1, min(100, config.camera.jpeg_quality))

    if config.camera.max_devices < 1:
        logger.warning("camera.max_devices must be at least 1, using 1")
        config.camera.max_devices = 1

    if errors:
        raise ValueError("Configuration errors:\n  " + "\n  ".join(errors))


def get_default_config() -> Config:
    """Get a Config object with all default values.

    Useful for testing or when no config file exists.

    Returns:
        Config with default values
    """
    return Config()
