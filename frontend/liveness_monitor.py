"""
Liveness monitor for the Biometric Access demo.

Runs the video liveness heuristic against a live video source as a
cancellable asyncio task:

    sample_stream()   - timer: yields one StreamSample per interval
    LivenessMonitor   - consumes the samples with a StreakTracker, then runs
                        the final re-check and the covered-camera check

Any failure, and any cancellation, releases the camera/widget through the
on_release callback before the verdict is returned. Nothing carries over
between attempts: each run starts its streak at zero.

Usage:
    monitor = LivenessMonitor(widget.source, config, on_release=widget.release)
    verdict = await monitor.run()
    if verdict.passed:
        ...
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional, Protocol

import numpy as np

from core.liveness import (
    FailureReason,
    LivenessConfig,
    LivenessVerdict,
    StreakTracker,
    StreamSample,
    TrackerState,
    check_frame_content,
    final_recheck,
)

logger = logging.getLogger(__name__)


class VideoSource(Protocol):
    """What the monitor needs from a camera."""

    def check_stream(self) -> StreamSample:
        ...

    def grab_frame(self) -> Optional[np.ndarray]:
        ...


async def sample_stream(source: VideoSource, interval_sec: float, max_samples: int) -> AsyncIterator[StreamSample]:
    """
    Yield one stream sample per tick, up to max_samples.

    The first sample is taken after one interval, like a browser setInterval.
    A stream check that raises is reported as an all-false sample.
    """
    for _ in range(max_samples):
        await asyncio.sleep(interval_sec)
        try:
            yield source.check_stream()
        except Exception as e:
            logger.warning(f"Error checking video stream: {e}")
            yield StreamSample()


class LivenessMonitor:
    """
    One liveness attempt against one video source.

    Attributes:
        config: Heuristic thresholds and timing.
        tracker: Streak state for this attempt.
        verdict: Final verdict once run() has finished, else None.
    """

    def __init__(
        self,
        source: Optional[VideoSource],
        config: Optional[LivenessConfig] = None,
        on_release: Optional[Callable[[], None]] = None,
    ):
        self.source = source
        self.config = config or LivenessConfig()
        self.tracker = StreakTracker(self.config)
        self.verdict: Optional[LivenessVerdict] = None
        self._on_release = on_release
        self._task: Optional[asyncio.Task] = None

    def _release(self) -> None:
        if self._on_release is not None:
            self._on_release()

    def _fail(self, reason: FailureReason, **details) -> LivenessVerdict:
        logger.warning(f"Liveness check failed: {reason.name}")
        self._release()
        self.verdict = LivenessVerdict(
            passed=False,
            reason=reason,
            attempts=self.tracker.attempts,
            valid_samples=self.tracker.valid_count,
            details=details,
        )
        return self.verdict

    async def run(self) -> LivenessVerdict:
        """
        Sample the source until the streak is reached or the budget runs out.

        Returns:
            LivenessVerdict. On success the camera is left running; the
            caller releases it when it submits the csid.
        """
        if self.source is None:
            return self._fail(FailureReason.SOURCE_LOST)

        try:
            async for sample in sample_stream(self.source, self.config.sample_interval_sec, self.config.max_attempts):
                state = self.tracker.observe(sample)
                logger.debug(
                    f"Capture check {self.tracker.attempts}/{self.config.max_attempts}: "
                    f"hasVideo={sample.has_video}, isPlaying={sample.is_playing}, "
                    f"hasActiveStream={sample.has_active_stream}, hasVideoTracks={sample.has_video_tracks}, "
                    f"validCount={self.tracker.valid_count}/{self.config.required_valid_samples}"
                )
                if state is not TrackerState.SAMPLING:
                    break
        except asyncio.CancelledError:
            self._release()
            raise

        if self.tracker.state is not TrackerState.STREAK_REACHED:
            return self._fail(FailureReason.NOT_CAPTURING)

        return self._check_final_state()

    def _check_final_state(self) -> LivenessVerdict:
        reason = final_recheck(self.tracker.last_sample)
        if reason is not None:
            return self._fail(reason)

        try:
            frame = self.source.grab_frame()
        except Exception as e:
            logger.warning(f"Final video validation error: {e}")
            return self._fail(FailureReason.UNVERIFIABLE)

        content = check_frame_content(frame, self.config)
        logger.info(
            f"Video content check: {content.non_black_pixels} non-black pixels out of "
            f"{content.sampled_pixels} sampled ({content.non_black_ratio * 100:.1f}%)"
        )
        if content.covered:
            verdict = self._fail(FailureReason.COVERED)
            verdict.non_black_ratio = content.non_black_ratio
            return verdict

        self.verdict = LivenessVerdict(
            passed=True,
            attempts=self.tracker.attempts,
            valid_samples=self.tracker.valid_count,
            non_black_ratio=content.non_black_ratio,
        )
        return self.verdict

    # ==================== Task control ====================

    def start(self) -> asyncio.Task:
        """Schedule run() on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    def cancel(self) -> None:
        """
        Stop sampling and release the camera now.

        The release happens synchronously here, not when the task unwinds.
        Safe to call from a thread other than the one running the loop.
        """
        if self._task is not None and not self._task.done():
            self._task.get_loop().call_soon_threadsafe(self._task.cancel)
        self._release()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
