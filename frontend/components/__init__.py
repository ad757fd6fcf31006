"""
Frontend UI components for the Biometric Access demo.
"""

from .webcam_capture import WebcamCapture, CaptureConfig

__all__ = [
    "WebcamCapture", "CaptureConfig",
]
