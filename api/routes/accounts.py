"""
Account API Routes

This module provides registration, login and profile endpoints.

Login failures share one message ("Invalid credentials") so a
caller cannot tell an unknown email from a wrong password.

Handlers are plain functions: bcrypt and sqlite3 block, so FastAPI runs
them in its threadpool.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_current_account, get_credentials, get_store
from api.schemas import AuthResponse, CredentialsRequest, ProfileResponse, UserPublic
from core.credentials import (
    CredentialService,
    DuplicateAccountError,
    InvalidCredentialsError,
    PasswordPolicyError,
)
from core.user_store import Account, UserStore

# Setup logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["accounts"])


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(
    request: CredentialsRequest,
    store: UserStore = Depends(get_store),
    credentials: CredentialService = Depends(get_credentials),
):
    """
    Register a new account.

    Returns:
        201 with the new (not yet enrolled) user and a bearer token.

    Raises:
        400: Missing email/password, unusable password, or duplicate email.
    """
    try:
        account, token = credentials.register(store, request.email, request.password)
    except (PasswordPolicyError, DuplicateAccountError) as e:
        logger.info(f"Registration rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"User registered: id={account.id}")
    return AuthResponse(
        message="User registered successfully",
        user=UserPublic(**account.public_view()),
        token=token,
    )


@router.post("/login", response_model=AuthResponse)
def login(
    request: CredentialsRequest,
    store: UserStore = Depends(get_store),
    credentials: CredentialService = Depends(get_credentials),
):
    """
    Log in with email and password.

    Raises:
        400: Missing email or password.
        401: Invalid credentials.
    """
    try:
        account, token = credentials.authenticate(store, request.email, request.password)
    except PasswordPolicyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidCredentialsError as e:
        logger.info("Login failed: invalid credentials")
        raise HTTPException(status_code=401, detail=e.message)

    logger.info(f"User logged in: id={account.id}, enrolled={account.enrolled}")
    return AuthResponse(
        message="Login successful",
        user=UserPublic(**account.public_view()),
        token=token,
    )


@router.get("/profile", response_model=ProfileResponse)
def get_profile(account: Account = Depends(get_current_account)):
    """Return the authenticated user's profile."""
    return ProfileResponse(user=UserPublic(**account.public_view()))
