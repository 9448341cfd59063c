"""Pytest fixtures for the drowsiness client tests."""

from __future__ import annotations

import logging
from pathlib import Path

import cv2
import numpy as np
import pytest

from drowsiness_client.config import get_default_config


@pytest.fixture(autouse=True)
def no_mock_hardware_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a MOCK_HARDWARE variable in the developer's shell out of tests."""
    monkeypatch.delenv("MOCK_HARDWARE", raising=False)


@pytest.fixture
def default_config():
    return get_default_config()


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A small valid JPEG image."""
    frame = np.full((48, 64, 3), 128, dtype=np.uint8)
    ok, buf = cv2.imencode(".jpg", frame)
    assert ok
    return buf.tobytes()


@pytest.fixture
def image_dir(tmp_path: Path, jpeg_bytes: bytes) -> Path:
    """Directory with two images and one non-image file."""
    directory = tmp_path / "images"
    directory.mkdir()
    (directory / "b_second.png").write_bytes(b"\x89PNG\r\n\x1a\nfake-png")
    (directory / "a_first.jpg").write_bytes(jpeg_bytes)
    (directory / "notes.txt").write_text("not an image")
    return directory


@pytest.fixture
def restore_root_logger():
    """Undo handlers added by setup_logging()."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
