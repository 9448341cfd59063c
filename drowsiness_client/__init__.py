# =============================================================================
# DISCLAIMER: This software is NOT a medical device and is NOT intended for
# medical monitoring, diagnosis, or treatment. This is a proof of concept for
# educational purposes only. Do not rely on this system for health decisions.
# =============================================================================
"""Drowsiness detection client.

Captures a frame from a camera or image file, submits it to a remote
inference service and publishes the drowsiness result to presenters.
"""

__version__ = "0.1.0"
