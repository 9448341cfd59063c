# =============================================================================
# DISCLAIMER: This software is NOT a medical device and is NOT intended for
# medical monitoring, diagnosis, or treatment. This is a proof of concept for
# educational purposes only. Do not rely on this system for health decisions.
# =============================================================================
"""Inference service client.

Submits a single captured frame to the remote drowsiness detection
endpoint and parses its JSON verdict.

Wire contract:
    POST <endpoint_url>
    Content-Type: application/json
    {"image": "<base64 image bytes>"}

    200 -> {"drowsy_detected": bool, "confidence": float,
            "processed_image": "<base64, optional/empty>"}
    any other status is an API error; its body is never parsed.
"""

import asyncio
import base64
import binascii
import json
import logging
import numbers
from typing import Any, Dict, Optional

import aiohttp

from drowsiness_client.models import DetectionResult, RemoteError, TransportError

logger = logging.getLogger(__name__)


class DetectionClient:
    """Client for the drowsiness inference endpoint.

    Usage:
        client = DetectionClient("http://192.168.1.9:5000/api/detect_drowsiness")
        result = await client.submit_frame(jpeg_bytes)
        await client.close()
    """

    def __init__(
        self,
        endpoint_url: str,
        timeout_seconds: float = 15.0,
    ):
        """Initialize detection client.

        Args:
            endpoint_url: Full URL of the detection endpoint
            timeout_seconds: Bound on the whole request/response exchange
        """
        self.endpoint_url = endpoint_url
        self.timeout_seconds = timeout_seconds

        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the client and cleanup resources."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def submit_frame(self, image_bytes: bytes) -> DetectionResult:
        """Send one frame to the inference server.

        Args:
            image_bytes: Encoded image (JPEG or PNG)

        Returns:
            DetectionResult parsed from the 200 response

        Raises:
            RemoteError: Server answered with a non-200 status
            TransportError: Connection, timeout or response decoding failure
        """
        payload = {"image": base64.b64encode(image_bytes).decode("ascii")}
        headers = {"Content-Type": "application/json"}

        logger.debug(f"POST {self.endpoint_url} ({len(image_bytes)} image bytes)")

        try:
            session = await self._get_session()
            async with session.post(
                self.endpoint_url, data=json.dumps(payload), headers=headers
            ) as resp:
                if resp.status != 200:
                    logger.warning(f"Detection API returned HTTP {resp.status}")
                    raise RemoteError(resp.status)
                body = await resp.read()

        except asyncio.TimeoutError:
            raise TransportError("Connection timeout")
        except aiohttp.ClientError as e:
            raise TransportError(f"Connection error: {e}")

        try:
            data = json.loads(body)
        except ValueError as e:
            raise TransportError(f"Malformed JSON response: {e}")

        return self._parse_result(data)

    def _parse_result(self, data: Any) -> DetectionResult:
        """Parse a 200 response body from the inference server."""
        if not isinstance(data, dict):
            raise TransportError("Malformed response: expected a JSON object")

        drowsy = data.get("drowsy_detected")
        if not isinstance(drowsy, bool):
            raise TransportError("Malformed response: 'drowsy_detected' must be a boolean")

        confidence = data.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, numbers.Real):
            raise TransportError("Malformed response: 'confidence' must be a number")
        confidence = float(confidence)
        if not 0.0 <= confidence <= 1.0:
            logger.warning(f"Confidence {confidence} outside [0, 1]")

        return DetectionResult(
            drowsy_detected=drowsy,
            confidence=confidence,
            annotated_image=self._decode_image(data.get("processed_image")),
        )

    @staticmethod
    def _decode_image(value: Any) -> Optional[bytes]:
        """Decode the optional annotated image.

        Absent, null and empty values all mean no annotated image.
        """
        if value is None or value == "":
            return None
        if not isinstance(value, str):
            raise TransportError("Malformed response: 'processed_image' must be a string")
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise TransportError(f"Invalid processed image: {e}")

    def to_dict(self) -> Dict[str, Any]:
        """Describe the client for status reporting."""
        return {
            "endpoint_url": self.endpoint_url,
            "timeout_seconds": self.timeout_seconds,
        }


def get_detection_client(config) -> DetectionClient:
    """Create a detection client from configuration."""
    return DetectionClient(
        endpoint_url=config.detection.endpoint_url,
        timeout_seconds=config.detection.timeout_seconds,
    )
