# =============================================================================
# DISCLAIMER: This software is NOT a medical device and is NOT intended for
# medical monitoring, diagnosis, or treatment. This is a proof of concept for
# educational purposes only. Do not rely on this system for health decisions.
# =============================================================================
"""REST API endpoints for the web presentation adapter.

Provides JSON API for:
- Health
- Current session status
- Triggering a capture
- Last annotated image and last captured frame
"""

import asyncio
import concurrent.futures
import logging
from datetime import datetime

from flask import Blueprint, Response, g, jsonify

from drowsiness_client import __version__

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)

# Time the capture cycle may take beyond the network timeout
CAPTURE_GRACE_SECONDS = 30.0


def _image_response(data: bytes) -> Response:
    mimetype = 'image/png' if data[:8] == b'\x89PNG\r\n\x1a\n' else 'image/jpeg'
    return Response(data, mimetype=mimetype)


# ==================== Health Check ====================

@api_bp.route('/health')
def health():
    """Health check endpoint."""
    return jsonify({
        'status': 'ok',
        'version': __version__,
        'detection': g.client.to_dict() if g.client else None,
        'timestamp': datetime.now().isoformat(),
    })


# ==================== Status ====================

@api_bp.route('/status')
def get_status():
    """Get current session snapshot."""
    if not g.controller:
        return jsonify({'error': 'Controller not available'}), 503
    return jsonify(g.controller.snapshot.to_dict())


@api_bp.route('/capture', methods=['POST'])
def capture():
    """Trigger one capture and wait for its outcome.

    A request while another capture is running returns immediately with
    the busy status in the snapshot.
    """
    if not g.controller or g.loop is None:
        return jsonify({'error': 'Controller not available'}), 503

    timeout = CAPTURE_GRACE_SECONDS
    if g.config is not None:
        timeout += g.config.detection.timeout_seconds

    future = asyncio.run_coroutine_threadsafe(g.controller.request_capture(), g.loop)
    try:
        future.result(timeout=timeout)
    except concurrent.futures.TimeoutError:
        logger.error("Capture did not finish in time")
        return jsonify(g.controller.snapshot.to_dict()), 504

    return jsonify(g.controller.snapshot.to_dict())


# ==================== Images ====================

@api_bp.route('/annotated')
def get_annotated():
    """Annotated image returned by the last successful detection."""
    if not g.controller:
        return jsonify({'error': 'Controller not available'}), 503
    result = g.controller.result
    if result is None or not result.has_annotated_image:
        return jsonify({'error': 'No annotated image available'}), 404
    return _image_response(result.annotated_image)


@api_bp.route('/frame')
def get_frame():
    """Most recently captured frame."""
    if not g.controller:
        return jsonify({'error': 'Controller not available'}), 503
    frame = g.controller.last_frame
    if not frame:
        return jsonify({'error': 'No frame captured yet'}), 404
    return _image_response(frame)
