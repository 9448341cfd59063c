# =============================================================================
# DISCLAIMER: This software is NOT a medical device and is NOT intended for
# medical monitoring, diagnosis, or treatment. This is a proof of concept for
# educational purposes only. Do not rely on this system for health decisions.
# =============================================================================
"""Flask application factory for the web presentation adapter.

The Flask app runs in a background thread while the controller lives on
the asyncio loop. Handlers only read the controller's immutable snapshot;
capture requests are dispatched onto the loop.

Usage:
    from drowsiness_client.web.app import create_app

    app = create_app(config, controller, loop)
    app.run()
"""

import logging
import threading
from typing import Optional

from flask import Flask, g

logger = logging.getLogger(__name__)


def create_app(config, controller=None, loop=None, client=None):
    """Create and configure Flask application.

    Args:
        config: Application configuration object
        controller: CaptureController instance (for live status)
        loop: asyncio loop the controller runs on
        client: DetectionClient (for health reporting)

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    app.config['CONTROLLER'] = controller
    app.config['EVENT_LOOP'] = loop
    app.config['DETECTION_CLIENT'] = client
    app.config['APP_CONFIG'] = config

    from drowsiness_client.web.api import api_bp

    app.register_blueprint(api_bp, url_prefix='/api')

    @app.before_request
    def before_request():
        """Set up request context."""
        g.controller = app.config.get('CONTROLLER')
        g.loop = app.config.get('EVENT_LOOP')
        g.client = app.config.get('DETECTION_CLIENT')
        g.config = app.config.get('APP_CONFIG')

    logger.info("Flask application created")
    return app


def start_web_server(app, host: str = '127.0.0.1', port: int = 5050) -> Optional[threading.Thread]:
    """Run the Flask application in a daemon thread.

    Args:
        app: Flask application instance
        host: Host to bind to
        port: Port to listen on

    Returns:
        The server thread
    """
    def run_flask():
        app.run(
            host=host,
            port=port,
            debug=False,
            use_reloader=False,
            threaded=True,
        )

    thread = threading.Thread(target=run_flask, daemon=True)
    thread.start()
    logger.info(f"Web server started on http://{host}:{port}")
    return thread
