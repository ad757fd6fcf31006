"""
Shared FastAPI dependencies.

Routes get the account store and credential service through these functions
so tests can swap them with app.dependency_overrides. get_current_account
is the bearer-auth gate for protected routes.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.credentials import CredentialService, TokenError, get_credential_service
from core.user_store import Account, UserStore, get_user_store

logger = logging.getLogger(__name__)

# Missing headers are answered by get_current_account with a 401
bearer_scheme = HTTPBearer(auto_error=False)


def get_store() -> UserStore:
    return get_user_store()


def get_credentials() -> CredentialService:
    return get_credential_service()


def get_current_account(
    authorization: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: UserStore = Depends(get_store),
    credentials: CredentialService = Depends(get_credentials),
) -> Account:
    """
    Resolve the bearer token to an account loaded fresh from storage.

    Raises:
        401: If the token is missing, invalid, expired, or its account is gone.
    """
    if authorization is None or not authorization.credentials:
        raise HTTPException(status_code=401, detail="Access token required")

    try:
        return credentials.resolve_account(store, authorization.credentials)
    except TokenError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token")
