"""Tests for the Flask web presentation adapter.

The controller runs on an event loop in a background thread, the same
way it does when the app is started with --web.
"""

from __future__ import annotations

import asyncio
import threading
import time

import pytest

from drowsiness_client import __version__
from drowsiness_client.capture.sources import DeviceCameraSource
from drowsiness_client.controller import CaptureController
from drowsiness_client.detection_client import DetectionClient
from drowsiness_client.mocks import MockCameraProvider
from drowsiness_client.models import DetectionResult, RemoteError
from drowsiness_client.web.app import create_app
from tests.helpers import ScriptedClient

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


async def make_event() -> asyncio.Event:
    return asyncio.Event()


@pytest.fixture
def event_loop_thread():
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    yield loop
    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=5)
    loop.close()


def make_web_client(default_config, loop, scripted):
    controller = CaptureController(
        DeviceCameraSource(MockCameraProvider(frame_size=(64, 48))),
        scripted,
    )
    asyncio.run_coroutine_threadsafe(controller.initialize_camera(), loop).result(timeout=5)
    detection_client = DetectionClient(default_config.detection.endpoint_url)
    app = create_app(default_config, controller=controller, loop=loop, client=detection_client)
    app.config['TESTING'] = True
    return app.test_client(), controller


class TestWithoutController:

    def test_health(self, default_config):
        client = create_app(default_config).test_client()
        response = client.get('/api/health')

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'ok'
        assert data['version'] == __version__
        assert data['detection'] is None

    @pytest.mark.parametrize("method,path", [
        ("get", "/api/status"),
        ("post", "/api/capture"),
        ("get", "/api/annotated"),
        ("get", "/api/frame"),
    ])
    def test_unavailable(self, default_config, method, path):
        client = create_app(default_config).test_client()
        response = getattr(client, method)(path)
        assert response.status_code == 503


class TestWithController:

    def test_health_reports_endpoint(self, default_config, event_loop_thread):
        client, _ = make_web_client(default_config, event_loop_thread, ScriptedClient())
        data = client.get('/api/health').get_json()
        assert data['detection']['endpoint_url'] == default_config.detection.endpoint_url

    def test_status_after_init(self, default_config, event_loop_thread):
        client, _ = make_web_client(default_config, event_loop_thread, ScriptedClient())
        data = client.get('/api/status').get_json()

        assert data['state'] == 'ready'
        assert data['status'] == 'Camera initialized'
        assert data['in_flight'] is False
        assert data['camera_name'] == 'Mock Back Camera'

    def test_capture_success(self, default_config, event_loop_thread):
        scripted = ScriptedClient(DetectionResult(True, 0.87, annotated_image=PNG_BYTES))
        client, _ = make_web_client(default_config, event_loop_thread, scripted)

        response = client.post('/api/capture')
        assert response.status_code == 200
        data = response.get_json()
        assert data['state'] == 'ready'
        assert data['status'] == 'Drowsy Detected (Confidence: 87.00%)'
        assert data['result']['confidence_percent'] == '87.00%'
        assert data['result']['has_annotated_image'] is True

        annotated = client.get('/api/annotated')
        assert annotated.status_code == 200
        assert annotated.mimetype == 'image/png'
        assert annotated.data == PNG_BYTES

        frame = client.get('/api/frame')
        assert frame.status_code == 200
        assert frame.mimetype == 'image/jpeg'
        assert frame.data == scripted.calls[0]

    def test_capture_failure(self, default_config, event_loop_thread):
        client, _ = make_web_client(default_config, event_loop_thread, ScriptedClient(RemoteError(502)))

        data = client.post('/api/capture').get_json()
        assert data['status'] == 'API Error: 502'
        assert data['is_error'] is True
        assert data['result'] is None

        assert client.get('/api/annotated').status_code == 404

    def test_no_annotated_image(self, default_config, event_loop_thread):
        client, _ = make_web_client(
            default_config, event_loop_thread, ScriptedClient(DetectionResult(False, 0.1))
        )
        client.post('/api/capture')
        assert client.get('/api/annotated').status_code == 404

    def test_no_frame_yet(self, default_config, event_loop_thread):
        client, _ = make_web_client(default_config, event_loop_thread, ScriptedClient())
        assert client.get('/api/frame').status_code == 404

    def test_capture_while_busy(self, default_config, event_loop_thread):
        gate = asyncio.run_coroutine_threadsafe(make_event(), event_loop_thread).result(timeout=5)
        scripted = ScriptedClient(DetectionResult(False, 0.2), gate=gate)
        client, controller = make_web_client(default_config, event_loop_thread, scripted)

        first = asyncio.run_coroutine_threadsafe(controller.request_capture(), event_loop_thread)
        for _ in range(500):
            if scripted.calls:
                break
            time.sleep(0.01)

        data = client.post('/api/capture').get_json()
        assert data['status'] == 'Detection already in progress'
        assert data['in_flight'] is True

        event_loop_thread.call_soon_threadsafe(gate.set)
        assert first.result(timeout=5) is not None
        assert len(scripted.calls) == 1

