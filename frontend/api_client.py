"""
API client for the Biometric Access demo.

Talks to the backend over REST with httpx and keeps the logged-in session
(token and cached user) in memory. A 401 from any endpoint except the two
biometric ones clears the session, since it means the token is no longer
usable; biometric 401s are left to the caller.
"""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

BIOMETRIC_PATHS = ("/verify-biometric", "/enroll/complete")


class APIError(Exception):
    """A non-2xx response from the backend."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class APIClient:
    """
    Client for communicating with the Biometric Access backend API.

    Attributes:
        base_url: Backend base URL (routes are appended directly).
        token: Bearer token of the logged-in user, if any.
        user: Cached {id, email, enrolled} of the logged-in user, if any.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        timeout_sec: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout_sec, transport=transport)

    def close(self) -> None:
        self._http.close()

    # ==================== Plumbing ====================

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self._http.request(method, path, json=json, headers=self._headers())

        if response.is_success:
            return response.json()

        try:
            message = response.json().get("detail") or response.reason_phrase
        except ValueError:
            message = response.text or response.reason_phrase

        if response.status_code == 401 and not path.endswith(BIOMETRIC_PATHS):
            logger.info(f"{method} {path} returned 401, clearing session")
            self.logout()

        raise APIError(response.status_code, str(message))

    def _store_session(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if data.get("token"):
            self.token = data["token"]
            self.user = dict(data.get("user") or {})
        return data

    def check_backend_available(self) -> bool:
        """Check if the backend server is reachable."""
        try:
            response = self._http.get("/health", timeout=2.0)
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    # ==================== Accounts ====================

    def register(self, email: str, password: str) -> Dict[str, Any]:
        """Register and keep the returned session."""
        return self._store_session(self._request("POST", "/register", {"email": email, "password": password}))

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Log in and keep the returned session."""
        return self._store_session(self._request("POST", "/login", {"email": email, "password": password}))

    def get_profile(self) -> Dict[str, Any]:
        data = self._request("GET", "/profile")
        if self.user is not None and data.get("user"):
            self.user.update(data["user"])
        return data

    def logout(self) -> None:
        self.token = None
        self.user = None

    def is_authenticated(self) -> bool:
        return bool(self.token)

    def current_user(self) -> Optional[Dict[str, Any]]:
        return self.user

    # ==================== Biometric ====================

    def verify_biometric(self, csid: str, action_id: str = "login", video_validated: bool = False) -> Dict[str, Any]:
        """Submit a verification claim for the current session."""
        return self._request(
            "POST",
            "/verify-biometric",
            {"csid": csid, "actionID": action_id, "videoValidated": video_validated},
        )

    def complete_enrollment(self, csid: str) -> Dict[str, Any]:
        """Complete enrollment and update the cached user on success."""
        data = self._request("POST", "/enroll/complete", {"csid": csid})
        if data.get("enrolled") and self.user is not None:
            self.user["enrolled"] = True
        return data


# Global client instance
_api_client: Optional[APIClient] = None


def get_api_client() -> APIClient:
    """Get or create the global API client instance, pointed at the configured backend."""
    global _api_client
    if _api_client is None:
        from core.config import get_api_config
        _api_client = APIClient(base_url=get_api_config().get("base_url", "http://localhost:3001"))
    return _api_client
