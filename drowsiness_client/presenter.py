# =============================================================================
# DISCLAIMER: This software is NOT a medical device and is NOT intended for
# medical monitoring, diagnosis, or treatment. This is a proof of concept for
# educational purposes only. Do not rely on this system for health decisions.
# =============================================================================
"""Console presentation adapter.

Renders each published SessionSnapshot as a status line and writes
annotated images returned by the server to disk.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO

from drowsiness_client.models import SessionSnapshot, SessionState

logger = logging.getLogger(__name__)


class ConsolePresenter:
    """Prints status changes and saves annotated images.

    Only the latest rendered line and the latest saved image path are
    remembered; the line is kept to avoid printing the same status twice
    in a row.
    """

    def __init__(self, annotated_dir: Optional[Path] = None, stream: TextIO = None):
        self.annotated_dir = Path(annotated_dir) if annotated_dir else None
        self.stream = stream or sys.stdout
        self._last_line: Optional[str] = None
        self.last_saved: Optional[Path] = None

    def render(self, snapshot: SessionSnapshot) -> None:
        """Callback for CaptureController.add_callback()."""
        prefix = "!!" if snapshot.is_error else "--"
        line = f"{prefix} [{snapshot.state.value}] {snapshot.status_text}"
        if line != self._last_line:
            print(line, file=self.stream, flush=True)
            self._last_line = line

        if snapshot.state == SessionState.SUCCEEDED and snapshot.result:
            if snapshot.result.has_annotated_image:
                self._save_annotated(snapshot.result.annotated_image, snapshot.timestamp)

    def _save_annotated(self, image: bytes, timestamp: datetime) -> None:
        if self.annotated_dir is None:
            return
        try:
            self.annotated_dir.mkdir(parents=True, exist_ok=True)
            path = self.annotated_dir / f"annotated_{timestamp.strftime('%Y%m%d_%H%M%S_%f')}.jpg"
            path.write_bytes(image)
        except OSError as e:
            logger.error(f"Error saving processed image: {e}")
            print("!! Error saving processed image", file=self.stream, flush=True)
            return
        self.last_saved = path
        print(f"   annotated image saved to {path}", file=self.stream, flush=True)
