"""
Video Liveness Heuristic Module

Decides whether a camera feed is trustworthy enough to submit as evidence of
a live biometric capture. This is a heuristic, not a biometric check: it only
establishes that a camera has been actively delivering a non-black picture
for a sustained period.

The check has two stages:
1. Streak: the stream is sampled on a fixed interval. A sample is valid when
   a video source is bound, it is playing with buffered data, its capture
   stream is active, and it has an enabled, unmuted, live video track with
   non-zero dimensions. Valid samples must be consecutive; one invalid
   sample resets the count. The streak must be reached within a bounded
   number of attempts.
2. Content: once the streak is reached, a single frame is inspected. If fewer
   than 5% of the sampled pixels have any colour channel above the
   brightness floor, the camera is treated as covered.

This module is pure decision logic. The timer that produces samples lives in
frontend.liveness_monitor.

Usage:
    from core.liveness import LivenessConfig, StreakTracker, check_frame_content

    tracker = StreakTracker(LivenessConfig())
    state = tracker.observe(sample)
    if state is TrackerState.STREAK_REACHED:
        content = check_frame_content(frame, tracker.config)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np


class FailureReason(str, Enum):
    """Why a liveness attempt failed. Values are the messages shown to users."""
    NOT_CAPTURING = (
        "Camera is not capturing video properly. Please ensure camera is uncovered, "
        "has proper lighting, and your face is visible, then try again."
    )
    STOPPED = "Camera stopped capturing. Please try again."
    NO_DIMENSIONS = "Camera is not producing video. Please ensure camera is uncovered and try again."
    TRACK_INACTIVE = "Camera track is not active. Please ensure camera is uncovered and try again."
    COVERED = (
        "Camera appears to be covered or not capturing properly. Please ensure camera "
        "is uncovered and your face is visible, then try again."
    )
    UNVERIFIABLE = "Unable to validate camera stream. Please try again."
    SOURCE_LOST = "Camera container lost. Please try again."
    NO_PERMISSION = "Camera permission denied. Please allow camera access and try again."
    SESSION_MISSING = "Session ID not found. Please try again."


@dataclass
class StreamSample:
    """
    One observation of the video source.

    Attributes:
        has_video: A video source is bound and rendering.
        is_playing: The source is playing (not paused/ended) with enough buffered data.
        has_active_stream: The underlying capture stream is active.
        has_video_tracks: There is an enabled, unmuted, live video track with
                          non-zero negotiated dimensions.
        width: Frame width reported by the source (0 if unknown).
        height: Frame height reported by the source (0 if unknown).
    """
    has_video: bool = False
    is_playing: bool = False
    has_active_stream: bool = False
    has_video_tracks: bool = False
    width: int = 0
    height: int = 0

    @property
    def is_valid(self) -> bool:
        return self.has_video and self.is_playing and self.has_active_stream and self.has_video_tracks


@dataclass
class LivenessConfig:
    """Thresholds for the liveness heuristic."""
    sample_interval_sec: float = 0.5
    max_attempts: int = 30
    required_valid_samples: int = 20
    brightness_floor: int = 30
    min_non_black_ratio: float = 0.05
    sample_pixels: int = 2500

    def __post_init__(self):
        if self.required_valid_samples < 1:
            raise ValueError("required_valid_samples must be at least 1")
        if self.max_attempts < self.required_valid_samples:
            raise ValueError(
                f"max_attempts ({self.max_attempts}) cannot be smaller than "
                f"required_valid_samples ({self.required_valid_samples})"
            )

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "LivenessConfig":
        """
        Build from the `liveness` config section.

        Args:
            config: Optional section dict. If None, loads from config.yaml.
        """
        if config is None:
            from core.config import get_liveness_config
            config = get_liveness_config()

        defaults = cls()
        return cls(
            sample_interval_sec=config.get("sample_interval_ms", defaults.sample_interval_sec * 1000) / 1000.0,
            max_attempts=int(config.get("max_attempts", defaults.max_attempts)),
            required_valid_samples=int(config.get("required_valid_samples", defaults.required_valid_samples)),
            brightness_floor=int(config.get("brightness_floor", defaults.brightness_floor)),
            min_non_black_ratio=float(config.get("min_non_black_ratio", defaults.min_non_black_ratio)),
            sample_pixels=int(config.get("sample_pixels", defaults.sample_pixels)),
        )


class TrackerState(Enum):
    """Where the streak tracker stands after a sample."""
    SAMPLING = "sampling"
    STREAK_REACHED = "streak_reached"
    EXHAUSTED = "exhausted"


class StreakTracker:
    """
    Counts consecutive valid samples against an attempt budget.

    Once the tracker leaves SAMPLING it stays in that state; a new attempt
    needs a new tracker (or reset()).
    """

    def __init__(self, config: Optional[LivenessConfig] = None):
        self.config = config or LivenessConfig()
        self.reset()

    def reset(self) -> None:
        self.attempts = 0
        self.valid_count = 0
        self.state = TrackerState.SAMPLING
        self.last_sample: Optional[StreamSample] = None

    def observe(self, sample: StreamSample) -> TrackerState:
        """
        Feed one sample and return the resulting state.

        Args:
            sample: The latest stream observation.

        Returns:
            SAMPLING while more samples are needed, STREAK_REACHED when the
            required run of consecutive valid samples has been seen, or
            EXHAUSTED when the attempt budget ran out first.
        """
        if self.state is not TrackerState.SAMPLING:
            return self.state

        self.attempts += 1
        self.last_sample = sample

        if sample.is_valid:
            self.valid_count += 1
        else:
            self.valid_count = 0

        if self.valid_count >= self.config.required_valid_samples:
            self.state = TrackerState.STREAK_REACHED
        elif self.attempts >= self.config.max_attempts:
            self.state = TrackerState.EXHAUSTED

        return self.state


@dataclass
class ContentCheck:
    """Result of inspecting one frame for a covered/black camera."""
    covered: bool
    non_black_pixels: int
    sampled_pixels: int

    @property
    def non_black_ratio(self) -> float:
        if self.sampled_pixels == 0:
            return 0.0
        return self.non_black_pixels / self.sampled_pixels


def check_frame_content(frame: Optional[np.ndarray], config: Optional[LivenessConfig] = None) -> ContentCheck:
    """
    Check whether a frame is mostly black.

    Samples the first `sample_pixels` pixels in row-major order and counts
    those with any colour channel above `brightness_floor`. An alpha channel,
    if present, is ignored. Channel order (RGB/BGR) does not matter.

    Args:
        frame: Image array of shape (H, W, C) with C >= 3, or (H, W) grayscale.
        config: Thresholds; defaults to LivenessConfig().

    Returns:
        ContentCheck with covered=True when the non-black ratio is below
        `min_non_black_ratio` (an empty or missing frame is covered).
    """
    config = config or LivenessConfig()

    if frame is None or frame.size == 0:
        return ContentCheck(covered=True, non_black_pixels=0, sampled_pixels=0)

    if frame.ndim == 2:
        pixels = frame.reshape(-1, 1)
    else:
        pixels = frame.reshape(-1, frame.shape[-1])[:, :3]

    sample = pixels[: config.sample_pixels]
    non_black = int(np.count_nonzero((sample > config.brightness_floor).any(axis=1)))
    sampled = len(sample)

    return ContentCheck(
        covered=(non_black / sampled) < config.min_non_black_ratio,
        non_black_pixels=non_black,
        sampled_pixels=sampled,
    )


@dataclass
class LivenessVerdict:
    """Outcome of one full liveness attempt."""
    passed: bool
    reason: Optional[FailureReason] = None
    attempts: int = 0
    valid_samples: int = 0
    non_black_ratio: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> str:
        return self.reason.value if self.reason else "Camera stream validated"


def final_recheck(sample: Optional[StreamSample]) -> Optional[FailureReason]:
    """
    Re-validate the stream right after the streak completes.

    Returns:
        A FailureReason, or None if the stream still looks live.
    """
    if sample is None or not sample.is_valid:
        if sample is not None and sample.has_video and sample.is_playing and sample.has_active_stream:
            return FailureReason.TRACK_INACTIVE
        return FailureReason.STOPPED
    if sample.width <= 0 or sample.height <= 0:
        return FailureReason.NO_DIMENSIONS
    return None
