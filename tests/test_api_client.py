"""
Tests for the frontend API client

The backend is replaced with an httpx.MockTransport, so these tests check
request shapes and session handling without a running server.

Run with: pytest tests/test_api_client.py -v
"""

import os
import sys
import json
import httpx
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from frontend.api_client import APIClient, APIError

USER = {"id": "user-1", "email": "test@example.com", "enrolled": False}


class FakeBackend:
    """Records requests and answers from a {(method, path): (status, body)} table."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get((request.method, request.url.path), (404, {"detail": "Not Found"}))
        return httpx.Response(status, json=body)

    @property
    def last(self):
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


def make_client(routes):
    backend = FakeBackend(routes)
    return APIClient(base_url="http://backend.test", transport=httpx.MockTransport(backend)), backend


@pytest.fixture
def logged_in():
    client, backend = make_client({
        ("POST", "/login"): (200, {"message": "Login successful", "user": dict(USER), "token": "tok-1"}),
    })
    client.login("test@example.com", "password123")
    return client, backend


class TestSession:
    """Tests for login, register and logout."""

    def test_register_stores_session(self):
        client, backend = make_client({
            ("POST", "/register"): (201, {"message": "User registered successfully", "user": dict(USER), "token": "tok-1"}),
        })

        client.register("test@example.com", "password123")

        assert client.is_authenticated()
        assert client.current_user()["email"] == "test@example.com"
        assert backend.last_json() == {"email": "test@example.com", "password": "password123"}

    def test_login_failure_raises(self):
        client, _ = make_client({("POST", "/login"): (401, {"detail": "Invalid credentials"})})

        with pytest.raises(APIError) as exc_info:
            client.login("test@example.com", "wrong")

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid credentials"
        assert not client.is_authenticated()

    def test_token_sent_as_bearer(self, logged_in):
        client, backend = logged_in
        backend.routes[("GET", "/profile")] = (200, {"user": {**USER, "enrolled": True}})

        client.get_profile()

        assert backend.last.headers["Authorization"] == "Bearer tok-1"
        assert client.current_user()["enrolled"] is True

    def test_logout_clears_session(self, logged_in):
        client, _ = logged_in
        client.logout()
        assert not client.is_authenticated()
        assert client.current_user() is None

    def test_profile_401_clears_session(self, logged_in):
        client, backend = logged_in
        backend.routes[("GET", "/profile")] = (401, {"detail": "Invalid or expired token"})

        with pytest.raises(APIError):
            client.get_profile()

        assert not client.is_authenticated()

    def test_biometric_401_keeps_session(self, logged_in):
        client, backend = logged_in
        backend.routes[("POST", "/verify-biometric")] = (401, {"detail": "Invalid or expired token"})

        with pytest.raises(APIError):
            client.verify_biometric("csid", video_validated=True)

        assert client.is_authenticated()

    def test_non_json_error_body(self):
        def handler(request):
            return httpx.Response(502, text="Bad gateway")

        client = APIClient(base_url="http://backend.test", transport=httpx.MockTransport(handler))

        with pytest.raises(APIError) as exc_info:
            client.login("a@example.com", "pw")

        assert exc_info.value.status_code == 502


class TestBiometric:
    """Tests for the biometric endpoints."""

    def test_verify_request_shape(self, logged_in):
        client, backend = logged_in
        backend.routes[("POST", "/verify-biometric")] = (200, {"verified": True, "message": "ok"})

        result = client.verify_biometric("abc", action_id="login", video_validated=True)

        assert result["verified"] is True
        assert backend.last_json() == {"csid": "abc", "actionID": "login", "videoValidated": True}

    def test_video_validated_defaults_false(self, logged_in):
        client, backend = logged_in
        backend.routes[("POST", "/verify-biometric")] = (400, {"detail": "Video stream validation required."})

        with pytest.raises(APIError):
            client.verify_biometric("abc")

        assert backend.last_json()["videoValidated"] is False

    def test_complete_enrollment_updates_cached_user(self, logged_in):
        client, backend = logged_in
        backend.routes[("POST", "/enroll/complete")] = (200, {"enrolled": True, "message": "done"})

        client.complete_enrollment("abc")

        assert backend.last_json() == {"csid": "abc"}
        assert client.current_user()["enrolled"] is True


class TestHealth:
    """Tests for the reachability check."""

    def test_backend_available(self):
        client, _ = make_client({("GET", "/health"): (200, {"status": "ok"})})
        assert client.check_backend_available() is True

    def test_backend_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = APIClient(base_url="http://backend.test", transport=httpx.MockTransport(handler))
        assert client.check_backend_available() is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
