"""
Biometric API Routes

This module provides:
- POST /enroll/complete: mark the authenticated account as enrolled
- POST /verify-biometric: accept or reject a login-time verification

The biometric widget talks to its vendor backend directly; this API only
ever sees the widget's session identifier (csid) and the client's liveness
flag. Decisions are made by core.acceptance_policy.
Handlers are plain functions so storage calls run in the threadpool.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_current_account, get_store
from api.schemas import (
    BiometricVerifyRequest,
    BiometricVerifyResponse,
    EnrollCompleteRequest,
    EnrollCompleteResponse,
)
from core.acceptance_policy import evaluate_enrollment, evaluate_verification
from core.user_store import Account, UserStore

# Setup logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["biometric"])


@router.post("/enroll/complete", response_model=EnrollCompleteResponse)
def complete_enrollment(
    request: EnrollCompleteRequest,
    account: Account = Depends(get_current_account),
    store: UserStore = Depends(get_store),
):
    """
    Complete biometric enrollment for the authenticated account.

    Idempotent: completing twice leaves the account enrolled.

    Raises:
        400: csid missing.
        401: Account disappeared between authentication and update.
    """
    decision = evaluate_enrollment(account, request.csid)
    if not decision.accepted:
        raise HTTPException(status_code=decision.status_code, detail=decision.reason)

    updated = store.mark_enrolled(account.id)
    if updated is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    logger.info(f"Biometric enrollment completed: account={account.id}, csid={request.csid}")
    return EnrollCompleteResponse(
        enrolled=True,
        message="Biometric enrollment completed successfully",
    )


@router.post("/verify-biometric", response_model=BiometricVerifyResponse)
def verify_biometric(
    request: BiometricVerifyRequest,
    account: Account = Depends(get_current_account),
):
    """
    Verify a biometric login attempt.

    The request is accepted when it carries a UUID-shaped csid, the client
    reports a validated video stream, and the account is enrolled.

    Raises:
        400: With the reason of the first failing check.
    """
    logger.info(
        f"Biometric verification attempt: account={account.id}, csid={request.csid}, "
        f"videoValidated={request.video_validated}, enrolled={account.enrolled}"
    )

    decision = evaluate_verification(account, request.csid, request.video_validated)
    if not decision.accepted:
        logger.warning(f"Biometric verification rejected for {account.id}: {decision.reason}")
        raise HTTPException(status_code=decision.status_code, detail=decision.reason)

    return BiometricVerifyResponse(
        verified=True,
        message="Biometric verification successful",
    )
