"""
Webcam capture component for the Biometric Access demo.

Wraps an OpenCV VideoCapture device and exposes it as a video source for the
liveness monitor: check_stream() reports the stream state as a StreamSample and
grab_frame() returns the most recent picture for the covered-camera check.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from core.liveness import StreamSample

logger = logging.getLogger(__name__)


@dataclass
class CaptureConfig:
    """Configuration for webcam capture."""
    width: int = 640
    height: int = 480
    fps: int = 30
    device_id: int = 0

    @classmethod
    def from_widget_config(cls, config: dict) -> "CaptureConfig":
        return cls(
            width=int(config.get("width", 640)),
            height=int(config.get("height", 480)),
            device_id=int(config.get("device_id", 0)),
        )


class WebcamCapture:
    """
    Manages webcam access for the biometric widget.

    This component handles:
    - Opening/closing the webcam device
    - Capturing frames at the configured resolution
    - Reporting stream state for the liveness heuristic
    """

    def __init__(self, config: Optional[CaptureConfig] = None):
        self.config = config or CaptureConfig()
        self._cap: Optional[cv2.VideoCapture] = None
        self._is_running: bool = False
        self._last_frame: Optional[np.ndarray] = None

    def open(self) -> bool:
        """
        Open the webcam device.

        Returns:
            True if webcam opened successfully, False otherwise.
        """
        if self._cap is not None:
            self.close()

        self._cap = cv2.VideoCapture(self.config.device_id)

        if not self._cap.isOpened():
            logger.warning(f"Failed to open camera {self.config.device_id}")
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        self._cap.set(cv2.CAP_PROP_FPS, self.config.fps)

        self._is_running = True
        logger.info(f"Opened camera {self.config.device_id} at {self.config.width}x{self.config.height}")
        return True

    def close(self) -> None:
        """Release the webcam device."""
        self._is_running = False
        self._last_frame = None
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Camera closed")

    def read_frame(self) -> Tuple[bool, Optional[np.ndarray]]:
        """
        Read a single frame from the webcam.

        Returns:
            Tuple of (success, frame) where frame is BGR numpy array or None.
        """
        if self._cap is None or not self._is_running:
            return False, None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            return False, None

        self._last_frame = frame
        return True, frame

    def check_stream(self) -> StreamSample:
        """
        Report the current stream state.

        Reads one frame. The capture counts as playing when the read succeeds,
        and as having a live video track when that frame has non-zero size.
        """
        has_video = self._cap is not None
        has_active_stream = self.is_open
        success, frame = self.read_frame()

        height, width = (frame.shape[:2] if success else (0, 0))
        return StreamSample(
            has_video=has_video,
            is_playing=success,
            has_active_stream=has_active_stream,
            has_video_tracks=success and width > 0 and height > 0,
            width=int(width),
            height=int(height),
        )

    def grab_frame(self) -> Optional[np.ndarray]:
        """Return a fresh frame, falling back to the last one read."""
        success, frame = self.read_frame()
        return frame if success else self._last_frame

    @property
    def is_open(self) -> bool:
        """Check if webcam is currently open."""
        return self._cap is not None and self._cap.isOpened()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
