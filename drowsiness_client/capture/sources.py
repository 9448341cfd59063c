# =============================================================================
# DISCLAIMER: This software is NOT a medical device and is NOT intended for
# medical monitoring, diagnosis, or treatment. This is a proof of concept for
# educational purposes only. Do not rely on this system for health decisions.
# =============================================================================
"""Image sources for the capture-submit controller.

An ImageSource is chosen once at startup:
    DeviceCameraSource - frames from a camera device via a CameraProvider
    FilePickerSource   - images picked from a file or directory
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from drowsiness_client.capture.camera import (
    CameraHandle,
    CameraProvider,
    describe,
    get_camera_provider,
    select_device,
)
from drowsiness_client.models import (
    CameraInitError,
    CameraSelection,
    CaptureError,
    SourceType,
)

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}


class ImageSource(ABC):
    """Something the controller can open, capture from, and close."""

    ready_message = "Ready"

    @property
    def name(self) -> Optional[str]:
        return None

    @abstractmethod
    async def open(self) -> None:
        """Acquire the source.

        Raises:
            NoCameraFound: No eligible device
            CameraInitError: Device could not be opened
        """
        ...

    @abstractmethod
    async def capture(self) -> bytes:
        """Produce one encoded image. Raises CaptureError on failure."""
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


class DeviceCameraSource(ImageSource):
    """Camera device selected from the provider's device list."""

    ready_message = "Camera initialized"

    def __init__(
        self,
        provider: CameraProvider,
        selection: CameraSelection = CameraSelection.FIRST,
    ):
        self.provider = provider
        self.selection = selection
        self._handle: Optional[CameraHandle] = None

    @property
    def name(self) -> Optional[str]:
        return describe(self._handle)

    @property
    def is_open(self) -> bool:
        return self._handle is not None and not self._handle.released

    async def open(self) -> None:
        if self.is_open:
            return

        devices = await asyncio.to_thread(self.provider.list_devices)
        descriptor = select_device(devices, self.selection)
        logger.info(f"Selected {descriptor} (selection={self.selection.value})")

        self._handle = await asyncio.to_thread(self.provider.open, descriptor)

    async def capture(self) -> bytes:
        if not self.is_open:
            raise CaptureError("Camera is not initialized")
        return await asyncio.to_thread(self.provider.capture, self._handle)

    async def close(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        await asyncio.to_thread(self.provider.release, handle)


class FilePickerSource(ImageSource):
    """Picks images from disk instead of a live camera.

    The path may be a single image or a directory. For a directory,
    each capture picks the next image by file name, wrapping around.
    """

    ready_message = "File picker ready. Capture picks the next image."

    def __init__(self, path):
        self.path = Path(path)
        self._cursor = 0
        self._opened = False

    @property
    def name(self) -> Optional[str]:
        return f"files:{self.path}"

    def _candidates(self) -> List[Path]:
        if self.path.is_file():
            return [self.path]
        return sorted(
            p for p in self.path.iterdir()
            if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS
        )

    async def open(self) -> None:
        if not self.path.exists():
            raise CameraInitError(f"Image path not found: {self.path}")
        self._opened = True
        self._cursor = 0
        logger.info(f"File picker using {self.path}")

    async def capture(self) -> bytes:
        if not self._opened:
            raise CaptureError("Image source is not initialized")

        candidates = self._candidates() if self.path.exists() else []
        if not candidates:
            raise CaptureError("No image captured")

        picked = candidates[self._cursor % len(candidates)]
        self._cursor += 1
        logger.info(f"Picked {picked.name}")

        try:
            data = await asyncio.to_thread(picked.read_bytes)
        except OSError as e:
            raise CaptureError(f"Could not read {picked.name}: {e}")
        if not data:
            raise CaptureError("No image captured")
        return data

    async def close(self) -> None:
        self._opened = False


def get_image_source(config, provider: Optional[CameraProvider] = None) -> ImageSource:
    """Factory function to build the configured image source."""
    camera = config.camera
    if camera.source_type == SourceType.FILE_PICKER:
        return FilePickerSource(config.resolve_path(camera.image_path))

    return DeviceCameraSource(
        provider or get_camera_provider(config),
        selection=camera.selection_mode,
    )
