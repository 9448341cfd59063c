# =============================================================================
# DISCLAIMER: This software is NOT a medical device and is NOT intended for
# medical monitoring, diagnosis, or treatment. This is a proof of concept for
# educational purposes only. Do not rely on this system for health decisions.
# =============================================================================
"""Capture-submit controller.

This module implements the only stateful part of the client:
- Acquires and releases the image source (camera or file picker)
- Runs one capture -> submit -> publish cycle at a time
- Maps results and failures to a presentable status text
- Publishes an immutable SessionSnapshot to subscribed presenters

State Flow:
    UNINITIALIZED -> READY (source acquired)
    UNINITIALIZED -> FAILED (no camera / open failure; terminal until re-init)
    READY -> CAPTURING (request_capture)
    CAPTURING -> SUBMITTING (frame captured)
    CAPTURING -> FAILED (capture failure)
    SUBMITTING -> SUCCEEDED | FAILED (network exchange outcome)
    SUCCEEDED | FAILED -> READY (in-flight guard released)

A request_capture() issued while CAPTURING or SUBMITTING is rejected with
a busy status; it is never queued.

Usage:
    from drowsiness_client.controller import CaptureController

    controller = CaptureController(source, client)
    controller.add_callback(presenter.render)
    await controller.initialize_camera()
    result = await controller.request_capture()
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from drowsiness_client.models import (
    CameraInitError,
    CaptureError,
    DetectionResult,
    NoCameraFound,
    RemoteError,
    SessionSnapshot,
    SessionState,
    TransportError,
)

logger = logging.getLogger(__name__)

STATUS_INITIALIZING = "Initializing..."
STATUS_BUSY = "Detection already in progress"
STATUS_DETECTING = "Detecting..."
STATUS_NOT_INITIALIZED = "Error: Camera is not initialized"
STATUS_RELEASED = "Camera released"


def describe_result(result: DetectionResult) -> str:
    """Status text for a successful detection."""
    if result.drowsy_detected:
        return f"Drowsy Detected (Confidence: {result.confidence_percent})"
    return "No Drowsiness Detected"


def describe_error(error: Exception) -> str:
    """Status text for a failed capture or detection."""
    if isinstance(error, RemoteError):
        return f"API Error: {error.status_code}"
    if isinstance(error, CaptureError):
        if error.detail == "No image captured":
            return error.detail
        return f"Error capturing image: {error.detail}"
    if isinstance(error, CameraInitError):
        return f"Error initializing camera: {error.detail}"
    if isinstance(error, NoCameraFound):
        return error.detail
    if isinstance(error, TransportError):
        return f"Error during detection: {error.detail}"
    return f"Error during detection: {error}"


class CaptureController:
    """Owns the image source and the detection request lifecycle.

    Presenters subscribe with add_callback() and receive a SessionSnapshot
    on every transition; they never hold authoritative state.

    Attributes:
        source: ImageSource (exclusively owned)
        client: DetectionClient used for submissions
        missing_camera_fatal: Re-raise NoCameraFound from the startup acquisition
    """

    def __init__(
        self,
        source,
        client,
        missing_camera_fatal: bool = True,
    ):
        """Initialize controller.

        Args:
            source: ImageSource to capture from
            client: DetectionClient (anything with async submit_frame(bytes))
            missing_camera_fatal: Whether an absent camera aborts startup
        """
        self.source = source
        self.client = client
        self.missing_camera_fatal = missing_camera_fatal

        # Session state
        self._state = SessionState.UNINITIALIZED
        self._status_text = STATUS_INITIALIZING
        self._is_error = False
        self._last_error: Optional[str] = None
        self._result: Optional[DetectionResult] = None
        self._last_frame: Optional[bytes] = None
        self._in_flight = False
        self._shutting_down = False

        self._callbacks: List[Callable[[SessionSnapshot], None]] = []
        self._snapshot = SessionSnapshot()

        logger.info(f"CaptureController initialized ({type(source).__name__})")

    # ==================== Properties ====================

    @property
    def state(self) -> SessionState:
        """Current session state."""
        return self._state

    @property
    def in_flight(self) -> bool:
        """True while a capture/submit cycle is running."""
        return self._in_flight

    @property
    def snapshot(self) -> SessionSnapshot:
        """Most recently published snapshot."""
        return self._snapshot

    @property
    def result(self) -> Optional[DetectionResult]:
        """Result of the last successful detection, cleared by the next request."""
        return self._result

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def last_frame(self) -> Optional[bytes]:
        """Image bytes of the most recent capture."""
        return self._last_frame

    # ==================== Subscription ====================

    def add_callback(self, callback: Callable[[SessionSnapshot], None]) -> None:
        """Subscribe to published snapshots.

        Args:
            callback: Function(SessionSnapshot) called on every publish
        """
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[SessionSnapshot], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _publish(
        self,
        state: Optional[SessionState] = None,
        status_text: Optional[str] = None,
        is_error: bool = False,
        error: Optional[str] = None,
    ) -> None:
        """Apply a transition and notify subscribers."""
        if state is not None and state != self._state:
            logger.debug(f"State transition: {self._state.value} -> {state.value}")
            self._state = state
        if status_text is not None:
            self._status_text = status_text
            self._is_error = is_error
        if error is not None:
            self._last_error = error

        self._snapshot = SessionSnapshot(
            state=self._state,
            status_text=self._status_text,
            is_error=self._is_error,
            in_flight=self._in_flight,
            last_error=self._last_error,
            result=self._result,
            camera_name=self.source.name,
            timestamp=datetime.now(),
        )

        for callback in list(self._callbacks):
            try:
                callback(self._snapshot)
            except Exception as e:
                logger.error(f"Presenter callback error: {e}")

    # ==================== Camera Lifecycle ====================

    async def initialize_camera(self, fatal: Optional[bool] = None) -> bool:
        """Acquire the image source.

        Args:
            fatal: Re-raise NoCameraFound (defaults to missing_camera_fatal)

        Returns:
            True if the session is READY

        Raises:
            NoCameraFound: If no camera exists and the acquisition is fatal
        """
        if fatal is None:
            fatal = self.missing_camera_fatal

        if self._in_flight:
            self._publish(status_text=STATUS_BUSY)
            return False

        self._shutting_down = False
        self._result = None

        try:
            await self.source.open()

        except NoCameraFound as e:
            logger.error(f"No camera found: {e.detail}")
            self._publish(SessionState.FAILED, describe_error(e), is_error=True, error=e.detail)
            if fatal:
                raise
            return False

        except CameraInitError as e:
            logger.error(f"Camera initialization failed: {e.detail}")
            self._publish(SessionState.FAILED, describe_error(e), is_error=True, error=e.detail)
            return False

        except Exception as e:
            logger.exception("Unexpected error initializing camera")
            self._publish(
                SessionState.FAILED,
                f"Error initializing camera: {e}",
                is_error=True,
                error=str(e),
            )
            return False

        self._last_error = None
        logger.info(f"Image source ready: {self.source.name}")
        self._publish(SessionState.READY, self.source.ready_message)
        return True

    async def reinitialize_camera(self) -> bool:
        """Release and re-acquire the image source.

        This is the explicit recovery path out of a terminal FAILED state.
        A missing camera is never fatal here; the session stays FAILED.
        """
        if self._in_flight:
            self._publish(status_text=STATUS_BUSY)
            return False

        await self._release_source()
        self._publish(SessionState.UNINITIALIZED, STATUS_INITIALIZING)
        return await self.initialize_camera(fatal=False)

    async def shutdown(self) -> None:
        """Release the image source (view destroyed)."""
        self._shutting_down = True
        await self._release_source()
        if not self._in_flight:
            self._publish(SessionState.UNINITIALIZED, STATUS_RELEASED)
        logger.info("CaptureController shut down")

    async def _release_source(self) -> None:
        try:
            await self.source.close()
        except Exception as e:
            logger.error(f"Error releasing image source: {e}")

    # ==================== Capture Cycle ====================

    async def request_capture(self) -> Optional[DetectionResult]:
        """Run one capture -> submit -> publish cycle.

        All failures are converted to a status text here; none propagate.

        Returns:
            DetectionResult on success, None if rejected or failed
        """
        if self._in_flight:
            logger.info("Capture requested while busy, ignoring")
            self._publish(status_text=STATUS_BUSY)
            return None

        if self._state != SessionState.READY:
            logger.warning(f"Capture requested in state {self._state.value}")
            self._publish(status_text=STATUS_NOT_INITIALIZED, is_error=True)
            return None

        self._in_flight = True
        self._result = None
        self._publish(SessionState.CAPTURING, STATUS_DETECTING)

        try:
            frame = await self.source.capture()
            self._last_frame = frame
            self._publish(SessionState.SUBMITTING, STATUS_DETECTING)

            result = await self._submit_frame(frame)
            self._result = result
            logger.info(
                f"Detection result: drowsy={result.drowsy_detected} "
                f"confidence={result.confidence_percent} "
                f"annotated={result.has_annotated_image}"
            )
            self._publish(SessionState.SUCCEEDED, describe_result(result))
            return result

        except (CaptureError, RemoteError, TransportError) as e:
            logger.warning(f"Detection failed in {self._state.value}: {e}")
            self._publish(SessionState.FAILED, describe_error(e), is_error=True, error=str(e))
            return None

        except Exception as e:
            logger.exception("Unexpected error during detection")
            self._publish(SessionState.FAILED, describe_error(e), is_error=True, error=str(e))
            return None

        finally:
            self._in_flight = False
            if self._shutting_down:
                self._publish(SessionState.UNINITIALIZED, STATUS_RELEASED)
            else:
                self._publish(SessionState.READY)

    async def _submit_frame(self, image_bytes: bytes) -> DetectionResult:
        """Submit a captured frame; only called while the guard is held."""
        if not self._in_flight:
            raise RuntimeError("submit without in-flight guard")
        return await self.client.submit_frame(image_bytes)
