"""
Biometric enrollment and verification flows.

Ties together the API client, the widget handle and the liveness monitor,
and owns the session identifier (csid) lifecycle:

- a csid is minted when the widget is initialized,
- it is read once, when the enrollment or verification claim is submitted,
- the widget (and with it the csid) is released before the claim is sent,
  and on any failure or cancel.

Usage:
    flow = BiometricFlow(client, widget)
    flow.begin_enrollment(user_id)
    result = flow.complete_enrollment()

    result = asyncio.run(flow.verify(user_id))
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from core.liveness import FailureReason, LivenessConfig, LivenessVerdict
from frontend.api_client import APIClient, APIError
from frontend.biometric_widget import BiometricWidget, SessionOptions, WidgetBusyError
from frontend.liveness_monitor import LivenessMonitor

logger = logging.getLogger(__name__)

SESSION_NOT_FOUND = FailureReason.SESSION_MISSING.value
START_FAILED = "Failed to start biometric verification. Please try again."
CANCELLED = "Verification cancelled."


@dataclass
class FlowResult:
    """Outcome of an enrollment or verification flow."""
    success: bool
    message: str = ""
    status_code: Optional[int] = None
    liveness: Optional[LivenessVerdict] = None


class BiometricFlow:
    """
    Runs one biometric flow at a time for the logged-in user.

    Attributes:
        client: Backend API client holding the user's token.
        widget: The biometric widget handle.
        liveness_config: Thresholds for the verification liveness check.
    """

    def __init__(
        self,
        client: APIClient,
        widget: BiometricWidget,
        liveness_config: Optional[LivenessConfig] = None,
    ):
        self.client = client
        self.widget = widget
        self.liveness_config = liveness_config or LivenessConfig.from_config()
        self.monitor: Optional[LivenessMonitor] = None
        self._cancel_requested = False

    def _start_widget(self, uid: str, action_id: str) -> None:
        # A leftover instance from an abandoned attempt is ours to clear
        if self.widget.is_live:
            self.widget.release()
        self.widget.initialize(uid)
        self.widget.start(SessionOptions(action_id=action_id, opacity=1.0))

    # ==================== Enrollment ====================

    def begin_enrollment(self, uid: str) -> FlowResult:
        """Start the camera so the widget can capture enrollment frames."""
        try:
            self._start_widget(uid, "enrollment")
        except (WidgetBusyError, RuntimeError) as e:
            logger.error(f"Error starting enrollment: {e}")
            self.widget.release()
            return FlowResult(success=False, message=f"Failed to start enrollment: {e}")

        return FlowResult(success=True, message="Enrollment started. Look at the camera.")

    def complete_enrollment(self) -> FlowResult:
        """
        Submit the enrollment claim for the current csid.

        The widget is released before the request is sent.
        """
        csid = self.widget.csid
        self.widget.release()

        if not csid:
            return FlowResult(success=False, message="Session ID not found. Please try starting enrollment again.")

        try:
            response = self.client.complete_enrollment(csid)
        except APIError as e:
            logger.error(f"Enrollment completion error: {e}")
            return FlowResult(success=False, message=e.message, status_code=e.status_code)

        if not response.get("enrolled"):
            return FlowResult(success=False, message="Enrollment failed. Please try again.")

        return FlowResult(success=True, message=response.get("message", "Enrolled"))

    # ==================== Verification ====================

    async def verify(self, uid: str) -> FlowResult:
        """
        Run the liveness check and, if it passes, submit a verification claim.

        videoValidated=True is only ever sent after a passing verdict.
        """
        self._cancel_requested = False
        try:
            self._start_widget(uid, "login")
        except WidgetBusyError as e:
            logger.error(f"Error starting biometric verification: {e}")
            self.widget.release()
            return FlowResult(success=False, message=START_FAILED)
        except RuntimeError as e:
            logger.error(f"Camera unavailable for verification: {e}")
            self.widget.release()
            return FlowResult(success=False, message=FailureReason.NO_PERMISSION.value)

        self.monitor = LivenessMonitor(self.widget.source, self.liveness_config, on_release=self.widget.release)
        task = self.monitor.start()
        try:
            verdict = await task
        except asyncio.CancelledError:
            # Only a cancel() on this flow ends quietly; outer cancellation propagates
            if not (self._cancel_requested and task.cancelled()):
                raise
            return FlowResult(success=False, message=CANCELLED)

        if not verdict.passed:
            return FlowResult(success=False, message=verdict.message, liveness=verdict)

        csid = self.widget.csid
        self.widget.release()

        if not csid:
            return FlowResult(success=False, message=SESSION_NOT_FOUND, liveness=verdict)

        try:
            response = await asyncio.to_thread(
                self.client.verify_biometric, csid, action_id="login", video_validated=True
            )
        except APIError as e:
            logger.error(f"Biometric verification error: {e}")
            return FlowResult(success=False, message=e.message, status_code=e.status_code, liveness=verdict)

        if not response.get("verified"):
            return FlowResult(
                success=False,
                message=response.get("message") or "Biometric verification failed. Please try again.",
                liveness=verdict,
            )

        return FlowResult(success=True, message=response.get("message", "Verified"), liveness=verdict)

    def cancel(self) -> None:
        """Abandon the current flow and release the camera immediately."""
        self._cancel_requested = True
        if self.monitor is not None:
            self.monitor.cancel()
        self.widget.release()
