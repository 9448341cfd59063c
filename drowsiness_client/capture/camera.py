# =============================================================================
# DISCLAIMER: This software is NOT a medical device and is NOT intended for
# medical monitoring, diagnosis, or treatment. This is a proof of concept for
# educational purposes only. Do not rely on this system for health decisions.
# =============================================================================
"""Camera device providers.

A provider enumerates camera devices, opens one, grabs JPEG encoded
frames from it and releases it. The OpenCV provider talks to local
webcams; a mock provider lives in drowsiness_client.mocks.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

import cv2

from drowsiness_client.models import (
    CameraFacing,
    CameraInitError,
    CameraSelection,
    CaptureError,
    DeviceDescriptor,
    NoCameraFound,
)

logger = logging.getLogger(__name__)


class CameraHandle:
    """Opaque handle for an opened device.

    Only the provider that created it looks inside.
    """

    def __init__(self, descriptor: DeviceDescriptor, device=None):
        self.descriptor = descriptor
        self.device = device
        self.released = False

    def __repr__(self) -> str:
        return f"CameraHandle({self.descriptor}, released={self.released})"


class CameraProvider(ABC):
    """Interface for camera device access.

    All methods are blocking; callers run them off the event loop.
    """

    @abstractmethod
    def list_devices(self) -> List[DeviceDescriptor]:
        ...

    @abstractmethod
    def open(self, descriptor: DeviceDescriptor) -> CameraHandle:
        """Open a device. Raises CameraInitError on failure."""
        ...

    @abstractmethod
    def capture(self, handle: CameraHandle) -> bytes:
        """Grab one frame as JPEG bytes. Raises CaptureError on failure."""
        ...

    @abstractmethod
    def release(self, handle: CameraHandle) -> None:
        ...


def select_device(
    devices: Sequence[DeviceDescriptor],
    selection: CameraSelection,
) -> DeviceDescriptor:
    """Pick a device from the enumerated list.

    Args:
        devices: Devices reported by the provider
        selection: FIRST for the first available device, FRONT for the
            first front-facing one

    Returns:
        The selected descriptor

    Raises:
        NoCameraFound: If no device matches
    """
    if not devices:
        raise NoCameraFound()

    if selection == CameraSelection.FRONT:
        for device in devices:
            if device.facing == CameraFacing.FRONT:
                return device
        raise NoCameraFound("No front-facing camera available on this device")

    return devices[0]


class OpenCVCameraProvider(CameraProvider):
    """Local webcam access through OpenCV.

    Devices are discovered by probing indices 0..max_devices-1. OpenCV
    has no notion of lens direction, so indices listed in
    front_facing_indices are reported as front-facing and the rest as
    external.
    """

    def __init__(
        self,
        max_devices: int = 4,
        front_facing_indices: Sequence[int] = (0,),
        frame_size: Tuple[int, int] = (720, 480),
        jpeg_quality: int = 85,
    ):
        """Initialize OpenCV provider.

        Args:
            max_devices: Number of device indices to probe
            front_facing_indices: Indices reported as front-facing
            frame_size: Requested (width, height)
            jpeg_quality: JPEG encoding quality (1-100)
        """
        self.max_devices = max_devices
        self.front_facing_indices = set(front_facing_indices)
        self.frame_size = frame_size
        self.jpeg_quality = jpeg_quality

        self._lock = threading.Lock()

    def _facing(self, index: int) -> CameraFacing:
        if index in self.front_facing_indices:
            return CameraFacing.FRONT
        return CameraFacing.EXTERNAL

    def list_devices(self) -> List[DeviceDescriptor]:
        devices = []
        for index in range(self.max_devices):
            cap = cv2.VideoCapture(index)
            try:
                if cap.isOpened():
                    devices.append(DeviceDescriptor(
                        index=index,
                        name=f"Camera {index}",
                        facing=self._facing(index),
                    ))
            finally:
                cap.release()

        logger.info(f"Found {len(devices)} camera device(s)")
        return devices

    def open(self, descriptor: DeviceDescriptor) -> CameraHandle:
        logger.info(f"Opening {descriptor}")
        try:
            cap = cv2.VideoCapture(descriptor.index)
        except cv2.error as e:
            raise CameraInitError(f"OpenCV error: {e}")

        if not cap.isOpened():
            cap.release()
            raise CameraInitError(f"Failed to open camera device {descriptor.index}")

        width, height = self.frame_size
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        # Keep only the newest frame so a capture is not a stale buffered one
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        return CameraHandle(descriptor, device=cap)

    def capture(self, handle: CameraHandle) -> bytes:
        if handle.released or handle.device is None:
            raise CaptureError("Camera is not open")

        with self._lock:
            try:
                ret, frame = handle.device.read()
            except cv2.error as e:
                raise CaptureError(f"OpenCV error: {e}")

            if not ret or frame is None:
                raise CaptureError("Failed to read frame from camera")

            ok, buf = cv2.imencode(
                ".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality]
            )
            if not ok:
                raise CaptureError("Failed to encode frame as JPEG")

        height, width = frame.shape[:2]
        logger.debug(f"Captured frame {width}x{height} from {handle.descriptor}")
        return buf.tobytes()

    def release(self, handle: CameraHandle) -> None:
        # Waits for a read in progress on another thread
        with self._lock:
            if handle.released:
                return
            if handle.device is not None:
                handle.device.release()
            handle.released = True
        logger.info(f"Released {handle.descriptor}")


def get_camera_provider(config) -> CameraProvider:
    """Factory function to get appropriate provider based on config."""
    camera = config.camera
    if config.mock_mode:
        from drowsiness_client.mocks import MockCameraProvider
        logger.info("Using MockCameraProvider (mock_mode=True)")
        return MockCameraProvider(
            frame_size=camera.frame_size,
            jpeg_quality=camera.jpeg_quality,
        )

    logger.info("Using OpenCVCameraProvider")
    return OpenCVCameraProvider(
        max_devices=camera.max_devices,
        front_facing_indices=camera.front_facing_indices,
        frame_size=camera.frame_size,
        jpeg_quality=camera.jpeg_quality,
    )


def describe(handle: Optional[CameraHandle]) -> Optional[str]:
    """Human readable name of an opened device."""
    if handle is None:
        return None
    return handle.descriptor.name or str(handle.descriptor)
