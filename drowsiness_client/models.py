# =============================================================================
# DISCLAIMER: This software is NOT a medical device and is NOT intended for
# medical monitoring, diagnosis, or treatment. This is a proof of concept for
# educational purposes only. Do not rely on this system for health decisions.
# =============================================================================
"""Data models for the drowsiness detection client.

Contains the session state enum, the immutable detection result and
session snapshot published to presenters, camera descriptors, and the
error hierarchy raised by the capture and network layers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class SessionState(Enum):
    """Capture-submit controller states."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CAPTURING = "capturing"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CameraFacing(Enum):
    """Which way a camera device points."""

    FRONT = "front"
    BACK = "back"
    EXTERNAL = "external"


class CameraSelection(Enum):
    """How a device is chosen from the enumerated camera list."""

    FIRST = "first"  # First available device
    FRONT = "front"  # First front-facing device


class SourceType(Enum):
    """Image source variant."""

    DEVICE = "device"
    FILE_PICKER = "file_picker"


@dataclass(frozen=True)
class DeviceDescriptor:
    """A camera device as reported by a provider."""

    index: int
    name: str = ""
    facing: CameraFacing = CameraFacing.EXTERNAL

    def __str__(self) -> str:
        return f"{self.name or 'camera'} (#{self.index}, {self.facing.value})"


@dataclass(frozen=True)
class DetectionResult:
    """Parsed response of the inference server for one frame."""

    drowsy_detected: bool
    confidence: float
    annotated_image: Optional[bytes] = None

    @property
    def confidence_percent(self) -> str:
        """Confidence rendered as a percentage with two decimals."""
        return f"{self.confidence * 100:.2f}%"

    @property
    def has_annotated_image(self) -> bool:
        return bool(self.annotated_image)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "drowsy_detected": self.drowsy_detected,
            "confidence": self.confidence,
            "confidence_percent": self.confidence_percent,
            "has_annotated_image": self.has_annotated_image,
            "annotated_image_bytes": len(self.annotated_image) if self.annotated_image else 0,
        }


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of the capture session handed to presenters."""

    state: SessionState = SessionState.UNINITIALIZED
    status_text: str = "Initializing..."
    is_error: bool = False
    in_flight: bool = False
    last_error: Optional[str] = None
    result: Optional[DetectionResult] = None
    camera_name: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "state": self.state.value,
            "status": self.status_text,
            "is_error": self.is_error,
            "in_flight": self.in_flight,
            "last_error": self.last_error,
            "result": self.result.to_dict() if self.result else None,
            "camera_name": self.camera_name,
            "timestamp": self.timestamp.isoformat(),
        }


# ==================== Errors ====================


class DrowsinessClientError(Exception):
    """Base class for all client errors."""


class NoCameraFound(DrowsinessClientError):
    """No eligible camera device was enumerated."""

    def __init__(self, detail: str = "No cameras available on this device"):
        super().__init__(detail)
        self.detail = detail


class CameraInitError(DrowsinessClientError):
    """The selected camera device could not be opened."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class CaptureError(DrowsinessClientError):
    """A frame could not be captured from the image source."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class RemoteError(DrowsinessClientError):
    """The inference server answered with a non-200 status."""

    def __init__(self, status_code: int):
        super().__init__(f"API Error: {status_code}")
        self.status_code = status_code


class TransportError(DrowsinessClientError):
    """Network, timeout or response decoding failure."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail
