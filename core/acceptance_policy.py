"""
Acceptance Policy Module

Server-side decisions for biometric enrollment and verification.

No biometric matching service is available to this backend, so neither
decision looks at biometric data. Enrollment is accepted on the client's
word once it presents a session identifier (csid). Verification accepts any
canonically shaped csid from an enrolled, authenticated account whose client
reports a validated camera stream.

The csid is not bound to the enrollment that produced it, not time-limited,
and not single-use. Anything that tightens that belongs here, behind
evaluate_verification, so call sites do not change.

Usage:
    from core.acceptance_policy import evaluate_verification

    decision = evaluate_verification(account, csid, video_validated)
    if not decision.accepted:
        raise HTTPException(status_code=decision.status_code, detail=decision.reason)
"""

import re
import logging
from dataclasses import dataclass
from typing import Optional

from core.user_store import Account

# Setup logging
logger = logging.getLogger(__name__)

CSID_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)

MISSING_CSID = "CSID is required"
VIDEO_NOT_VALIDATED = "Video stream validation required. Camera must be active and capturing."
INVALID_CSID_FORMAT = "Invalid CSID format"
NOT_ENROLLED = "User must complete enrollment before biometric verification"


@dataclass(frozen=True)
class PolicyDecision:
    """
    Accept/reject outcome of a policy evaluation.

    Attributes:
        accepted: True if the claim is accepted.
        reason: Human-readable rejection reason (None when accepted).
        status_code: HTTP status to use for a rejection.
    """
    accepted: bool
    reason: Optional[str] = None
    status_code: int = 200

    @classmethod
    def accept(cls) -> "PolicyDecision":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: str, status_code: int = 400) -> "PolicyDecision":
        return cls(accepted=False, reason=reason, status_code=status_code)


def is_canonical_csid(csid: str) -> bool:
    """True if csid has the 8-4-4-4-12 hexadecimal UUID shape."""
    return bool(CSID_PATTERN.fullmatch(csid))


def client_reported_liveness(video_validated: Optional[bool]) -> bool:
    """
    Liveness evidence as currently available: the client's own flag.

    The browser runs the video heuristic and reports the outcome; the server
    has no way to check it. Replace this with a real attestation check when
    one exists.
    """
    return video_validated is True


def evaluate_enrollment(account: Account, csid: Optional[str]) -> PolicyDecision:
    """
    Decide whether to mark an account enrolled.

    Only the presence of a csid is checked; its format is not.
    """
    if not csid:
        return PolicyDecision.reject(MISSING_CSID)

    logger.info(f"Enrollment accepted on client assertion: account={account.id}")
    return PolicyDecision.accept()


def evaluate_verification(
    account: Account,
    csid: Optional[str],
    video_validated: Optional[bool],
) -> PolicyDecision:
    """
    Decide whether to accept a login-time biometric verification.

    Checks run in a fixed order and the first failure wins:
    1. csid missing
    2. client did not report a validated video stream
    3. csid is not UUID-shaped
    4. account is not enrolled

    Args:
        account: The authenticated account, freshly loaded from storage.
        csid: Session identifier minted by the client widget.
        video_validated: Client-reported outcome of the liveness heuristic.

    Returns:
        PolicyDecision; rejections carry status 400.
    """
    if not csid:
        return PolicyDecision.reject(MISSING_CSID)

    if not client_reported_liveness(video_validated):
        return PolicyDecision.reject(VIDEO_NOT_VALIDATED)

    if not is_canonical_csid(csid):
        return PolicyDecision.reject(INVALID_CSID_FORMAT)

    if not account.enrolled:
        return PolicyDecision.reject(NOT_ENROLLED)

    return PolicyDecision.accept()
