"""Unit tests for configuration loading."""

from __future__ import annotations

import os
import textwrap
from pathlib import Path

import pytest

from drowsiness_client.config import get_default_config, load_config
from drowsiness_client.models import CameraSelection, SourceType


def write_config(directory: Path, body: str, name: str = "config.yaml") -> Path:
    path = directory / name
    path.write_text(textwrap.dedent(body))
    return path


class TestLoadConfig:

    def test_defaults(self):
        config = get_default_config()
        assert config.detection.endpoint_url.endswith("/api/detect_drowsiness")
        assert config.detection.timeout_seconds == 15.0
        assert config.camera.source_type == SourceType.DEVICE
        assert config.camera.selection_mode == CameraSelection.FIRST
        assert config.camera.frame_size == (720, 480)
        assert config.mock_mode is False

    def test_full_file(self, tmp_path):
        path = write_config(tmp_path, """
            mock_mode: true
            detection:
              endpoint_url: "https://inference.local:8443/api/detect_drowsiness"
              timeout_seconds: 5
            camera:
              selection: front
              resolution: high
              missing_is_fatal: false
            output:
              annotated_dir: annotated
            web:
              enabled: true
              port: 6060
        """)
        config = load_config(str(path))

        assert config.mock_mode is True
        assert config.detection.endpoint_url == "https://inference.local:8443/api/detect_drowsiness"
        assert config.detection.timeout_seconds == 5
        assert config.camera.selection_mode == CameraSelection.FRONT
        assert config.camera.frame_size == (1280, 720)
        assert config.camera.missing_is_fatal is False
        assert config.web.enabled is True
        assert config.web.port == 6060
        assert config.resolve_path(config.output.annotated_dir) == tmp_path / "annotated"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = write_config(tmp_path, "")
        config = load_config(str(path))
        assert config.camera.resolution == "medium"
        assert config.web.enabled is False

    def test_search_under_base_path(self, tmp_path):
        write_config(tmp_path, "web:\n  port: 7000\n")
        write_config(tmp_path, "web:\n  port: 7001\n", name="config.local.yaml")
        config = load_config(base_path=tmp_path)
        assert config.web.port == 7001

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_nothing_found(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(base_path=tmp_path)

    def test_scalar_front_facing_index(self, tmp_path):
        path = write_config(tmp_path, "camera:\n  front_facing_indices: 2\n")
        assert load_config(str(path)).camera.front_facing_indices == [2]


class TestEnvironment:

    def test_env_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DETECTION_HOST", "10.0.0.7:5000")
        path = write_config(tmp_path, """
            detection:
              endpoint_url: "http://${DETECTION_HOST}/api/detect_drowsiness"
        """)
        config = load_config(str(path))
        assert config.detection.endpoint_url == "http://10.0.0.7:5000/api/detect_drowsiness"

    def test_unset_variable_fails_validation(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DETECTION_HOST_UNSET", raising=False)
        path = write_config(tmp_path, """
            detection:
              endpoint_url: "http://${DETECTION_HOST_UNSET}"
        """)
        with pytest.raises(ValueError):
            load_config(str(path))

    def test_mock_hardware_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MOCK_HARDWARE", "true")
        path = write_config(tmp_path, "mock_mode: false\n")
        assert load_config(str(path)).mock_mode is True

    def test_dotenv_file(self, tmp_path):
        var = "DROWSINESS_TEST_DOTENV_HOST"
        (tmp_path / ".env").write_text(f"{var}=dotenv.local:5000\n")
        path = write_config(tmp_path, f"""
            detection:
              endpoint_url: "http://${{{var}}}/api/detect_drowsiness"
        """)
        try:
            config = load_config(str(path), base_path=tmp_path)
        finally:
            os.environ.pop(var, None)
        assert config.detection.endpoint_url == "http://dotenv.local:5000/api/detect_drowsiness"


class TestValidation:

    @pytest.mark.parametrize("body", [
        "detection:\n  endpoint_url: ftp://server/detect\n",
        "detection:\n  endpoint_url: not a url\n",
        "camera:\n  source: webcam\n",
        "camera:\n  selection: rear\n",
        "camera:\n  resolution: ultra\n",
        "camera:\n  source: file_picker\n",
    ])
    def test_invalid_values(self, tmp_path, body):
        path = write_config(tmp_path, body)
        with pytest.raises(ValueError):
            load_config(str(path))

    def test_values_fixed_up(self, tmp_path):
        path = write_config(tmp_path, """
            detection:
              timeout_seconds: 0
            camera:
              jpeg_quality: 150
              max_devices: 0
        """)
        config = load_config(str(path))
        assert config.detection.timeout_seconds == 15.0
        assert config.camera.jpeg_quality == 100
        assert config.camera.max_devices == 1

    def test_file_picker_with_path(self, tmp_path):
        path = write_config(tmp_path, """
            camera:
              source: file_picker
              image_path: samples
        """)
        config = load_config(str(path))
        assert config.camera.source_type == SourceType.FILE_PICKER
        assert config.resolve_path(config.camera.image_path) == tmp_path / "samples"
