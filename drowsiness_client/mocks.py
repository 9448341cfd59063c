# =============================================================================
# DISCLAIMER: This software is NOT a medical device and is NOT intended for
# medical monitoring, diagnosis, or treatment. This is a proof of concept for
# educational purposes only. Do not rely on this system for health decisions.
# =============================================================================
"""Mock hardware implementations for testing without physical devices.

This module provides a simulated camera provider that generates
synthetic JPEG frames, so the full capture-submit cycle can be exercised
without a webcam.

Enable mock mode by:
- Setting MOCK_HARDWARE=true environment variable, OR
- Setting mock_mode: true in config.yaml, OR
- Passing --mock on the command line
"""

import logging
import time
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from drowsiness_client.capture.camera import CameraHandle, CameraProvider
from drowsiness_client.models import (
    CameraFacing,
    CameraInitError,
    CaptureError,
    DeviceDescriptor,
)

logger = logging.getLogger(__name__)

DEFAULT_MOCK_DEVICES = (
    DeviceDescriptor(index=0, name="Mock Back Camera", facing=CameraFacing.BACK),
    DeviceDescriptor(index=1, name="Mock Front Camera", facing=CameraFacing.FRONT),
)


class MockCameraProvider(CameraProvider):
    """Simulated camera provider.

    Produces a gradient test frame stamped with a frame counter and the
    current time. The mock can be controlled to:
    - Report a custom (or empty) device list
    - Fail to open a device
    - Fail individual captures

    Attributes:
        devices: Descriptors returned by list_devices()
        opened: Handles currently open
        capture_count: Number of successful captures
    """

    def __init__(
        self,
        devices: Optional[Sequence[DeviceDescriptor]] = None,
        frame_size: Tuple[int, int] = (720, 480),
        jpeg_quality: int = 85,
        capture_delay: float = 0.0,
    ):
        """Initialize mock camera provider.

        Args:
            devices: Devices to report (defaults to a back and a front camera)
            frame_size: (width, height) of generated frames
            jpeg_quality: JPEG encoding quality
            capture_delay: Seconds each capture blocks, to simulate exposure
        """
        self.devices: List[DeviceDescriptor] = list(
            DEFAULT_MOCK_DEVICES if devices is None else devices
        )
        self.frame_size = frame_size
        self.jpeg_quality = jpeg_quality
        self.capture_delay = capture_delay

        self.opened: List[CameraHandle] = []
        self.capture_count = 0

        # Simulation controls
        self._simulate_open_failure = False
        self._simulate_capture_failure = False

        logger.info(f"MockCameraProvider initialized ({len(self.devices)} devices)")

    # ==================== Simulation Controls ====================

    def simulate_open_failure(self, enabled: bool = True) -> None:
        """Make the next open() calls fail."""
        self._simulate_open_failure = enabled
        logger.info(f"MockCameraProvider: Open failure simulation {'enabled' if enabled else 'disabled'}")

    def simulate_capture_failure(self, enabled: bool = True) -> None:
        """Make capture() calls fail."""
        self._simulate_capture_failure = enabled
        logger.info(f"MockCameraProvider: Capture failure simulation {'enabled' if enabled else 'disabled'}")

    # ==================== Provider Interface ====================

    def list_devices(self) -> List[DeviceDescriptor]:
        return list(self.devices)

    def open(self, descriptor: DeviceDescriptor) -> CameraHandle:
        if self._simulate_open_failure:
            raise CameraInitError(f"Simulated failure opening {descriptor.name}")
        handle = CameraHandle(descriptor)
        self.opened.append(handle)
        logger.info(f"MockCameraProvider: Opened {descriptor}")
        return handle

    def capture(self, handle: CameraHandle) -> bytes:
        if handle.released:
            raise CaptureError("Camera is not open")
        if self.capture_delay:
            time.sleep(self.capture_delay)
        if self._simulate_capture_failure:
            raise CaptureError("Simulated capture failure")

        self.capture_count += 1
        frame = self._generate_frame(self.capture_count)
        ok, buf = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        if not ok:
            raise CaptureError("Failed to encode frame as JPEG")
        return buf.tobytes()

    def release(self, handle: CameraHandle) -> None:
        handle.released = True
        if handle in self.opened:
            self.opened.remove(handle)
        logger.info(f"MockCameraProvider: Released {handle.descriptor}")

    def _generate_frame(self, number: int) -> np.ndarray:
        """Build a BGR test frame."""
        width, height = self.frame_size
        gradient = np.linspace(0, 255, width, dtype=np.uint8)
        frame = np.zeros((height, width, 3), dtype=np.uint8)
        frame[:, :, 0] = gradient
        frame[:, :, 1] = (number * 37) % 256
        frame[:, :, 2] = gradient[::-1]

        label = f"MOCK #{number} {datetime.now().strftime('%H:%M:%S')}"
        cv2.putText(frame, label, (10, height // 2), cv2.FONT_HERSHEY_SIMPLEX,
                    0.8, (255, 255, 255), 2, cv2.LINE_AA)
        return frame
