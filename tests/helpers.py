"""Shared helpers for the drowsiness client tests.

Provides a synchronous runner for coroutines, a fake inference server
built on aiohttp.web, and a scripted detection client for controller
tests that do not need the network.
"""

from __future__ import annotations

import asyncio
import socket
from typing import Any, Coroutine, Dict, List, Optional, Tuple, TypeVar

from aiohttp import web

from drowsiness_client.models import DetectionResult

T = TypeVar("T")

DETECT_PATH = "/api/detect_drowsiness"


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine synchronously for testing."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def free_port() -> int:
    """Return a local TCP port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class ScriptedResponse:
    """One canned answer of the fake inference server."""

    def __init__(
        self,
        status: int = 200,
        json_body: Any = None,
        text_body: Optional[str] = None,
        delay: float = 0.0,
    ):
        self.status = status
        self.json_body = json_body
        self.text_body = text_body
        self.delay = delay


def make_detection_app(*responses: ScriptedResponse) -> Tuple[web.Application, List[Dict[str, Any]]]:
    """Build a fake inference server.

    Each POST consumes the next scripted response; the last one repeats.

    Returns:
        (application, list of recorded requests)
    """
    script = list(responses) or [ScriptedResponse(json_body={"drowsy_detected": False, "confidence": 0.1})]
    recorded: List[Dict[str, Any]] = []

    async def handler(request: web.Request) -> web.Response:
        recorded.append({
            "content_type": request.content_type,
            "json": await request.json(),
        })
        response = script.pop(0) if len(script) > 1 else script[0]
        if response.delay:
            await asyncio.sleep(response.delay)
        if response.text_body is not None:
            return web.Response(
                status=response.status,
                text=response.text_body,
                content_type="application/json",
            )
        return web.json_response(response.json_body, status=response.status)

    app = web.Application()
    app.router.add_post(DETECT_PATH, handler)
    return app, recorded


class ScriptedClient:
    """Stands in for DetectionClient in controller tests.

    Outcomes are DetectionResult instances or exceptions to raise; the
    last outcome repeats. When a gate is set, every submission waits on
    it before answering.
    """

    def __init__(self, *outcomes, gate: Optional[asyncio.Event] = None):
        self.outcomes = list(outcomes) or [DetectionResult(False, 0.1)]
        self.gate = gate
        self.calls: List[bytes] = []
        self.active = 0
        self.max_active = 0

    async def submit_frame(self, image_bytes: bytes) -> DetectionResult:
        self.calls.append(image_bytes)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        finally:
            self.active -= 1
