"""
Core Module for the Biometric Access Demo

This package contains the backend logic that does not depend on HTTP:
configuration, account storage, credentials, the video liveness heuristic,
and the enrollment/verification acceptance policy.

Main components:
    - config: Configuration loading and management
    - user_store: SQLite account storage
    - credentials: bcrypt password hashing and JWT bearer tokens
    - liveness: Streak and covered-camera checks for a video stream
    - acceptance_policy: Server-side enrollment/verification decisions

Usage:
    from core.config import get_config
    from core.user_store import get_user_store
    from core.credentials import get_credential_service
    from core.acceptance_policy import evaluate_verification
"""

from core.config import (
    get_config,
    get_section,
    get_api_config,
    get_storage_config,
    get_auth_config,
    get_liveness_config,
    get_widget_config,
    get_logging_config,
    get_server_config,
)

from core.user_store import (
    Account,
    UserStore,
    DuplicateAccountError,
    get_user_store,
    normalize_email,
)

from core.credentials import (
    CredentialService,
    InvalidCredentialsError,
    PasswordPolicyError,
    TokenError,
    get_credential_service,
)

from core.liveness import (
    FailureReason,
    StreamSample,
    LivenessConfig,
    StreakTracker,
    TrackerState,
    ContentCheck,
    LivenessVerdict,
    check_frame_content,
)

from core.acceptance_policy import (
    PolicyDecision,
    evaluate_enrollment,
    evaluate_verification,
    client_reported_liveness,
    is_canonical_csid,
)

__all__ = [
    # Configuration
    "get_config",
    "get_section",
    "get_api_config",
    "get_storage_config",
    "get_auth_config",
    "get_liveness_config",
    "get_widget_config",
    "get_logging_config",
    "get_server_config",
    # Storage
    "Account",
    "UserStore",
    "DuplicateAccountError",
    "get_user_store",
    "normalize_email",
    # Credentials
    "CredentialService",
    "InvalidCredentialsError",
    "PasswordPolicyError",
    "TokenError",
    "get_credential_service",
    # Liveness
    "FailureReason",
    "StreamSample",
    "LivenessConfig",
    "StreakTracker",
    "TrackerState",
    "ContentCheck",
    "LivenessVerdict",
    "check_frame_content",
    # Acceptance policy
    "PolicyDecision",
    "evaluate_enrollment",
    "evaluate_verification",
    "client_reported_liveness",
    "is_canonical_csid",
]
