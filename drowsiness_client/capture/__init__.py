# =============================================================================
# DISCLAIMER: This software is NOT a medical device and is NOT intended for
# medical monitoring, diagnosis, or treatment. This is a proof of concept for
# educational purposes only. Do not rely on this system for health decisions.
# =============================================================================
"""Camera providers and image sources."""

from drowsiness_client.capture.camera import CameraProvider, OpenCVCameraProvider
from drowsiness_client.capture.sources import (
    DeviceCameraSource,
    FilePickerSource,
    ImageSource,
)

__all__ = [
    "CameraProvider",
    "DeviceCameraSource",
    "FilePickerSource",
    "ImageSource",
    "OpenCVCameraProvider",
]
