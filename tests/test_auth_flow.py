"""
Tests for the biometric enrollment and verification flows

The flows run against a real BiometricWidget with a scripted camera and a
real APIClient over httpx.MockTransport. The liveness sampling interval is
zero so a full verification attempt finishes instantly.

Run with: pytest tests/test_auth_flow.py -v
"""

import os
import sys
import json
import time
import asyncio
import httpx
import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.liveness import FailureReason, LivenessConfig, StreamSample
from frontend.api_client import APIClient
from frontend.auth_flow import BiometricFlow, CANCELLED
from frontend.biometric_widget import BiometricWidget, WidgetConfig

VALID = StreamSample(True, True, True, True, 640, 480)
INVALID = StreamSample(True, False, True, True, 640, 480)


class ScriptedCamera:
    def __init__(self, sample=VALID, frame=None, opens=True):
        self.sample = sample
        self.frame = np.full((480, 640, 3), 120, dtype=np.uint8) if frame is None else frame
        self.opens = opens
        self.closed = 0

    def open(self):
        return self.opens

    def close(self):
        self.closed += 1

    def check_stream(self):
        return self.sample

    def grab_frame(self):
        return self.frame


class FakeBackend:
    def __init__(self):
        self.routes = {
            ("POST", "/login"): (200, {"user": {"id": "user-1", "email": "a@example.com", "enrolled": False}, "token": "tok"}),
            ("POST", "/enroll/complete"): (200, {"enrolled": True, "message": "Biometric enrollment completed successfully"}),
            ("POST", "/verify-biometric"): (200, {"verified": True, "message": "Biometric verification successful"}),
        }
        self.bodies = {}
        self.delay_sec = 0.0

    def __call__(self, request):
        path = request.url.path
        if self.delay_sec and path == "/verify-biometric":
            time.sleep(self.delay_sec)
        self.bodies.setdefault(path, []).append(json.loads(request.content) if request.content else None)
        status, body = self.routes[(request.method, path)]
        return httpx.Response(status, json=body)


@pytest.fixture(autouse=True)
def free_instance():
    BiometricWidget._live_owner = None
    yield
    BiometricWidget._live_owner = None


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(backend):
    c = APIClient(base_url="http://backend.test", transport=httpx.MockTransport(backend))
    c.login("a@example.com", "password123")
    return c


def make_flow(client, camera):
    widget = BiometricWidget(WidgetConfig(), source_factory=lambda: camera)
    return BiometricFlow(client, widget, LivenessConfig(sample_interval_sec=0))


class TestEnrollment:
    """Tests for the enrollment flow."""

    def test_enrollment_round_trip(self, client, backend):
        camera = ScriptedCamera()
        flow = make_flow(client, camera)

        assert flow.begin_enrollment("user-1").success
        csid = flow.widget.csid

        result = flow.complete_enrollment()

        assert result.success
        assert backend.bodies["/enroll/complete"] == [{"csid": csid}]
        assert client.current_user()["enrolled"] is True
        # Released before the claim went out
        assert camera.closed == 1
        assert flow.widget.csid == ""

    def test_complete_without_session(self, client, backend):
        flow = make_flow(client, ScriptedCamera())

        result = flow.complete_enrollment()

        assert not result.success
        assert "Session ID not found" in result.message
        assert "/enroll/complete" not in backend.bodies

    def test_begin_enrollment_camera_denied(self, client):
        flow = make_flow(client, ScriptedCamera(opens=False))

        result = flow.begin_enrollment("user-1")

        assert not result.success
        assert not flow.widget.is_live

    def test_enrollment_rejected_by_backend(self, client, backend):
        backend.routes[("POST", "/enroll/complete")] = (400, {"detail": "CSID is required"})
        flow = make_flow(client, ScriptedCamera())
        flow.begin_enrollment("user-1")

        result = flow.complete_enrollment()

        assert not result.success
        assert result.status_code == 400
        assert result.message == "CSID is required"

    def test_restart_clears_leftover_instance(self, client):
        flow = make_flow(client, ScriptedCamera())
        flow.begin_enrollment("user-1")
        first = flow.widget.csid

        assert flow.begin_enrollment("user-1").success
        assert flow.widget.csid != first


class TestVerification:
    """Tests for the verification flow."""

    def test_live_camera_verifies(self, client, backend):
        camera = ScriptedCamera()
        flow = make_flow(client, camera)

        result = asyncio.run(flow.verify("user-1"))

        assert result.success
        assert result.liveness.passed
        body = backend.bodies["/verify-biometric"][0]
        assert body["videoValidated"] is True
        assert body["actionID"] == "login"
        assert camera.closed == 1
        assert not flow.widget.is_live

    def test_liveness_failure_never_calls_backend(self, client, backend):
        flow = make_flow(client, ScriptedCamera(sample=INVALID))

        result = asyncio.run(flow.verify("user-1"))

        assert not result.success
        assert result.liveness.reason is FailureReason.NOT_CAPTURING
        assert "/verify-biometric" not in backend.bodies
        assert not flow.widget.is_live

    def test_covered_camera_never_calls_backend(self, client, backend):
        black = np.zeros((480, 640, 3), dtype=np.uint8)
        flow = make_flow(client, ScriptedCamera(frame=black))

        result = asyncio.run(flow.verify("user-1"))

        assert not result.success
        assert result.message == FailureReason.COVERED.value
        assert "/verify-biometric" not in backend.bodies

    def test_camera_denied(self, client, backend):
        flow = make_flow(client, ScriptedCamera(opens=False))

        result = asyncio.run(flow.verify("user-1"))

        assert not result.success
        assert result.message == FailureReason.NO_PERMISSION.value
        assert "/verify-biometric" not in backend.bodies

    def test_backend_rejection_surfaces_message(self, client, backend):
        backend.routes[("POST", "/verify-biometric")] = (
            400, {"detail": "User must complete enrollment before biometric verification"},
        )
        flow = make_flow(client, ScriptedCamera())

        result = asyncio.run(flow.verify("user-1"))

        assert not result.success
        assert result.status_code == 400
        assert "enrollment" in result.message
        # Biometric 401/400s leave the login session alone
        assert client.is_authenticated()

    def test_each_attempt_uses_fresh_csid(self, client, backend):
        flow = make_flow(client, ScriptedCamera())

        asyncio.run(flow.verify("user-1"))
        asyncio.run(flow.verify("user-1"))

        first, second = backend.bodies["/verify-biometric"]
        assert first["csid"] != second["csid"]

    def test_cancel_during_sampling(self, client, backend):
        camera = ScriptedCamera(sample=INVALID)
        widget = BiometricWidget(WidgetConfig(), source_factory=lambda: camera)
        flow = BiometricFlow(client, widget, LivenessConfig(sample_interval_sec=0.01))

        async def scenario():
            pending = asyncio.ensure_future(flow.verify("user-1"))
            await asyncio.sleep(0.05)
            flow.cancel()
            return await pending

        result = asyncio.run(scenario())

        assert not result.success
        assert result.message == CANCELLED
        assert not widget.is_live
        assert "/verify-biometric" not in backend.bodies

    def test_outer_cancellation_propagates(self, client, backend):
        camera = ScriptedCamera(sample=INVALID)
        widget = BiometricWidget(WidgetConfig(), source_factory=lambda: camera)
        flow = BiometricFlow(client, widget, LivenessConfig(sample_interval_sec=0.01))

        async def scenario():
            pending = asyncio.ensure_future(flow.verify("user-1"))
            await asyncio.sleep(0.05)
            pending.cancel()
            with pytest.raises(asyncio.CancelledError):
                await pending

        asyncio.run(scenario())

        assert not widget.is_live
        assert "/verify-biometric" not in backend.bodies

    def test_cancel_flag_does_not_leak_into_next_attempt(self, client, backend):
        flow = make_flow(client, ScriptedCamera())
        flow.cancel()

        result = asyncio.run(flow.verify("user-1"))

        assert result.success

    def test_event_loop_runs_during_verification_request(self, client, backend):
        backend.delay_sec = 0.3
        flow = make_flow(client, ScriptedCamera())

        async def scenario():
            ticks = 0
            pending = asyncio.ensure_future(flow.verify("user-1"))
            while not pending.done():
                ticks += 1
                await asyncio.sleep(0.01)
            return await pending, ticks

        result, ticks = asyncio.run(scenario())

        assert result.success
        # A blocked loop would only tick once or twice over the slow request
        assert ticks >= 10


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
