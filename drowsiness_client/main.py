#!/usr/bin/env python3
# =============================================================================
# DISCLAIMER: This software is NOT a medical device and is NOT intended for
# medical monitoring, diagnosis, or treatment. This is a proof of concept for
# educational purposes only. Do not rely on this system for health decisions.
# =============================================================================
"""Drowsiness Client - Main Entry Point.

Initializes the image source, the detection client and the presenters,
then runs an interactive capture loop.

Usage:
    python -m drowsiness_client.main [--config CONFIG] [--debug] [--mock]
                                     [--image PATH] [--once] [--web]

Interactive commands:
    <Enter> / c   capture a frame and submit it
    r             re-initialize the camera
    s             show current status
    q             quit
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
import threading
from logging.handlers import RotatingFileHandler
from typing import Optional

from drowsiness_client.capture.sources import get_image_source
from drowsiness_client.config import get_default_config, load_config
from drowsiness_client.controller import CaptureController
from drowsiness_client.detection_client import DetectionClient, get_detection_client
from drowsiness_client.models import NoCameraFound, SourceType
from drowsiness_client.presenter import ConsolePresenter

logger = logging.getLogger(__name__)


def setup_logging(config, debug: bool = False) -> None:
    """Configure logging based on config settings.

    Args:
        config: Configuration object
        debug: Enable debug mode
    """
    level = logging.DEBUG if debug else getattr(
        logging, config.logging.level.upper(), logging.INFO
    )

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Log to stderr so status lines on stdout stay readable
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if config.logging.file:
        log_dir = os.path.dirname(config.logging.file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = RotatingFileHandler(
            config.logging.file,
            maxBytes=config.logging.max_size_mb * 1024 * 1024,
            backupCount=config.logging.backup_count,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Reduce verbosity of some noisy libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    logger.info(f"Logging configured (level: {logging.getLevelName(level)})")


class DrowsinessClientApp:
    """Main application class.

    Coordinates all components and manages the application lifecycle.
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        debug: bool = False,
        mock: bool = False,
        image_path: Optional[str] = None,
        once: bool = False,
        web: bool = False,
    ):
        """Initialize the application.

        Args:
            config_path: Path to configuration file (None searches defaults)
            debug: Enable debug logging
            mock: Force mock camera regardless of config
            image_path: Use the file picker source on this path
            once: Capture a single frame and exit
            web: Start the web presentation adapter
        """
        self.config_path = config_path
        self.debug = debug
        self.force_mock = mock
        self.image_path = image_path
        self.once = once
        self.force_web = web

        # Components (initialized in start())
        self.config = None
        self.client: Optional[DetectionClient] = None
        self.source = None
        self.controller: Optional[CaptureController] = None
        self.presenter: Optional[ConsolePresenter] = None
        self.web_app = None

        # Control
        self._stop_event: Optional[asyncio.Event] = None
        self._commands: Optional[asyncio.Queue] = None

    def _load_config(self):
        try:
            return load_config(self.config_path)
        except FileNotFoundError:
            if self.config_path:
                raise
            logger.warning("No config file found, using defaults")
            return get_default_config()

    async def start(self) -> int:
        """Run the application.

        Returns:
            Process exit code
        """
        self.config = self._load_config()

        if self.force_mock:
            self.config.mock_mode = True
        if self.image_path:
            self.config.camera.source = SourceType.FILE_PICKER.value
            self.config.camera.image_path = self.image_path
        if self.force_web:
            self.config.web.enabled = True

        setup_logging(self.config, self.debug)

        logger.info("=" * 50)
        logger.info("Drowsiness Client Starting")
        logger.info("NOT FOR MEDICAL USE - Proof of concept only")
        logger.info("=" * 50)
        logger.info(f"Endpoint: {self.config.detection.endpoint_url}")
        logger.info(f"Source: {self.config.camera.source} / Mock mode: {self.config.mock_mode}")

        self._stop_event = asyncio.Event()
        self._install_signal_handlers()

        self._initialize_components()

        try:
            try:
                await self.controller.initialize_camera()
            except NoCameraFound as e:
                logger.error(f"Fatal: {e.detail}")
                return 1

            if self.once:
                result = await self.controller.request_capture()
                return 0 if result is not None else 1

            await self._run_interactive()
            return 0
        finally:
            await self._shutdown()

    def _initialize_components(self) -> None:
        """Initialize all application components."""
        logger.info("Initializing components...")

        logger.info("  - Detection Client")
        self.client = get_detection_client(self.config)

        logger.info("  - Image Source")
        self.source = get_image_source(self.config)

        logger.info("  - Capture Controller")
        self.controller = CaptureController(
            source=self.source,
            client=self.client,
            missing_camera_fatal=self.config.camera.missing_is_fatal,
        )

        logger.info("  - Console Presenter")
        annotated_dir = None
        if self.config.output.annotated_dir:
            annotated_dir = self.config.resolve_path(self.config.output.annotated_dir)
        self.presenter = ConsolePresenter(annotated_dir=annotated_dir)
        self.controller.add_callback(self.presenter.render)

        if self.config.web.enabled:
            from drowsiness_client.web.app import create_app, start_web_server

            logger.info("  - Web Server")
            self.web_app = create_app(
                config=self.config,
                controller=self.controller,
                loop=asyncio.get_running_loop(),
                client=self.client,
            )
            start_web_server(self.web_app, self.config.web.host, self.config.web.port)

        logger.info("All components initialized")

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform; KeyboardInterrupt still works
                pass

    def _start_stdin_reader(self) -> None:
        """Feed stdin lines into the command queue from a daemon thread."""
        loop = asyncio.get_running_loop()
        queue = self._commands

        def reader():
            for line in sys.stdin:
                loop.call_soon_threadsafe(queue.put_nowait, line.strip().lower())
            loop.call_soon_threadsafe(queue.put_nowait, "q")

        threading.Thread(target=reader, daemon=True).start()

    async def _run_interactive(self) -> None:
        """Read commands until quit."""
        self._commands = asyncio.Queue()
        self._start_stdin_reader()
        print("Press Enter to detect drowsiness, 'r' to re-initialize the camera, 'q' to quit.")

        while not self._stop_event.is_set():
            get_command = asyncio.ensure_future(self._commands.get())
            wait_stop = asyncio.ensure_future(self._stop_event.wait())
            done, pending = await asyncio.wait(
                {get_command, wait_stop}, return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()
            if get_command not in done:
                break

            command = get_command.result()
            if command in ("q", "quit", "exit"):
                break
            elif command in ("", "c", "capture"):
                await self.controller.request_capture()
            elif command in ("r", "reinit"):
                await self.controller.reinitialize_camera()
            elif command in ("s", "status"):
                print(self.controller.snapshot.to_dict())
            else:
                print(f"Unknown command: {command}")

    async def _shutdown(self) -> None:
        """Clean shutdown of all components."""
        logger.info("Shutting down...")

        if self.controller:
            await self.controller.shutdown()

        if self.client:
            await self.client.close()

        logger.info("Shutdown complete")

    def stop(self) -> None:
        """Request application stop."""
        logger.info("Stop requested")
        if self._stop_event is not None:
            self._stop_event.set()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Drowsiness Detection Client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Interactive capture with default config
    python -m drowsiness_client.main

    # Mock camera, single capture, debug logging
    python -m drowsiness_client.main --mock --once --debug

    # Pick images from a directory instead of a camera
    python -m drowsiness_client.main --image ./samples
        """
    )
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to configuration file (default: config.local.yaml or config.yaml)"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--mock", "-m",
        action="store_true",
        help="Use mock camera (for testing)"
    )
    parser.add_argument(
        "--image", "-i",
        default=None,
        help="Image file or directory to pick frames from instead of a camera"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Capture a single frame, print the result and exit"
    )
    parser.add_argument(
        "--web",
        action="store_true",
        help="Start the web status API"
    )
    args = parser.parse_args()

    if args.config and not os.path.exists(args.config):
        print(f"Error: Config file not found: {args.config}")
        sys.exit(1)

    app = DrowsinessClientApp(
        config_path=args.config,
        debug=args.debug,
        mock=args.mock,
        image_path=args.image,
        once=args.once,
        web=args.web,
    )

    try:
        exit_code = asyncio.run(app.start())
    except KeyboardInterrupt:
        print("\nInterrupted")
        exit_code = 130
    except Exception as e:
        print(f"Error: {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
