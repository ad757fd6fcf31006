"""
Credential Service Module

Password hashing and bearer token handling for the biometric access demo.

- Passwords are hashed with bcrypt (salted, irreversible).
- Tokens are HS256 JWTs carrying the account id and email, valid for a fixed
  window (24 hours by default). There is no revocation list: a token stays
  valid until it expires, but every protected request re-reads the account
  from storage, so a token for a vanished account is useless.
- Login failures are uniform: unknown email and wrong password raise the same
  InvalidCredentialsError, and an unknown email still pays for one bcrypt
  comparison.

Usage:
    from core.credentials import CredentialService

    credentials = CredentialService.from_config()
    account, token = credentials.register(store, "alice@example.com", "password123")
    account = credentials.resolve_account(store, token)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import bcrypt
import jwt

from core.user_store import Account, UserStore, DuplicateAccountError

# Setup logging
logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
MISSING_FIELDS_MESSAGE = "Email and password are required"
MALFORMED_FIELDS_MESSAGE = "Email and password must be valid text"


class InvalidCredentialsError(Exception):
    """Raised on any login failure. The message never says which part was wrong."""

    def __init__(self, message: str = INVALID_CREDENTIALS_MESSAGE):
        super().__init__(message)
        self.message = message


class PasswordPolicyError(ValueError):
    """Raised when a registration request is missing fields or the password is unusable."""


class TokenError(Exception):
    """Raised when a bearer token is malformed, expired, or names an unknown account."""


def _require_fields(email: Optional[str], password: Optional[str]) -> None:
    """
    Reject missing fields and text that cannot be encoded as UTF-8.

    JSON can carry lone surrogates (e.g. "\\ud800"), which decode to a Python
    str but fail on encode, both for bcrypt and for the SQLite binding.
    """
    if not email or not password:
        raise PasswordPolicyError(MISSING_FIELDS_MESSAGE)
    try:
        email.encode("utf-8")
        password.encode("utf-8")
    except UnicodeEncodeError as e:
        raise PasswordPolicyError(MALFORMED_FIELDS_MESSAGE) from e


class CredentialService:
    """
    Hashes passwords, issues and validates bearer tokens.

    Attributes:
        secret: HMAC key used to sign tokens.
        algorithm: JWT signing algorithm.
        token_ttl: Validity window of issued tokens.
        bcrypt_rounds: bcrypt cost factor.
        max_password_bytes: Longest password accepted (bcrypt only reads 72 bytes).
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        token_ttl_hours: float = 24,
        bcrypt_rounds: int = 10,
        max_password_bytes: int = 72,
    ):
        if not secret:
            raise ValueError("A token signing secret is required")

        self.secret = secret
        self.algorithm = algorithm
        self.token_ttl = timedelta(hours=token_ttl_hours)
        self.bcrypt_rounds = bcrypt_rounds
        self.max_password_bytes = max_password_bytes

        # Compared against when the email is unknown so both failure paths cost the same
        self._dummy_hash = self.hash_password("not-a-real-password")

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "CredentialService":
        """
        Build a CredentialService from the `auth` config section.

        Args:
            config: Optional auth config dict. If None, loads from config.yaml.
        """
        if config is None:
            from core.config import get_auth_config
            config = get_auth_config()

        return cls(
            secret=config["jwt_secret"],
            algorithm=config.get("jwt_algorithm", "HS256"),
            token_ttl_hours=config.get("token_ttl_hours", 24),
            bcrypt_rounds=config.get("bcrypt_rounds", 10),
            max_password_bytes=config.get("max_password_bytes", 72),
        )

    # ==================== Passwords ====================

    def hash_password(self, password: str) -> str:
        """Hash a password with a fresh bcrypt salt."""
        salt = bcrypt.gensalt(rounds=self.bcrypt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        """
        Check a password against a stored bcrypt hash.

        Over-long passwords never match; they could not have been registered.
        """
        try:
            encoded = password.encode("utf-8")
        except UnicodeEncodeError:
            return False
        if len(encoded) > self.max_password_bytes:
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False

    # ==================== Tokens ====================

    def issue_token(self, account: Account) -> str:
        """
        Issue a signed bearer token for an account.

        Claims: userId, email, iat, exp.
        """
        now = datetime.now(timezone.utc)
        payload = {
            "userId": account.id,
            "email": account.email,
            "iat": now,
            "exp": now + self.token_ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_token(self, token: str) -> Dict[str, Any]:
        """
        Verify a token's signature and expiry and return its claims.

        Raises:
            TokenError: If the token is expired, tampered with, or lacks claims.
        """
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "userId"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise TokenError(f"Invalid token: {e}") from e

        return claims

    def resolve_account(self, store: UserStore, token: str) -> Account:
        """
        Decode a token and load its account fresh from storage.

        Raises:
            TokenError: If the token is invalid or its account no longer exists.
        """
        claims = self.decode_token(token)
        account = store.find_by_id(str(claims["userId"]))
        if account is None:
            raise TokenError("Token refers to an unknown account")
        return account

    # ==================== Registration / Login ====================

    def register(self, store: UserStore, email: Optional[str], password: Optional[str]) -> Tuple[Account, str]:
        """
        Create an account and issue its first token.

        Raises:
            PasswordPolicyError: Missing email/password or password too long.
            DuplicateAccountError: Email already registered (case-insensitive).
        """
        _require_fields(email, password)
        if len(password.encode("utf-8")) > self.max_password_bytes:
            raise PasswordPolicyError(
                f"Password must be at most {self.max_password_bytes} bytes"
            )

        if store.find_by_email(email) is not None:
            raise DuplicateAccountError("User already exists")

        account = store.create(email, self.hash_password(password))
        return account, self.issue_token(account)

    def authenticate(self, store: UserStore, email: Optional[str], password: Optional[str]) -> Tuple[Account, str]:
        """
        Check email/password and issue a token.

        Raises:
            PasswordPolicyError: Missing email or password.
            InvalidCredentialsError: Unknown email or wrong password (same message).
        """
        _require_fields(email, password)

        account = store.find_by_email(email)
        if account is None:
            self.verify_password(password, self._dummy_hash)
            raise InvalidCredentialsError()

        if not self.verify_password(password, account.password_hash):
            raise InvalidCredentialsError()

        return account, self.issue_token(account)


# Singleton instance for the service
_service_instance: Optional[CredentialService] = None


def get_credential_service() -> CredentialService:
    """Get or create the singleton CredentialService built from config."""
    global _service_instance

    if _service_instance is None:
        _service_instance = CredentialService.from_config()

    return _service_instance


__all__ = [
    "CredentialService",
    "InvalidCredentialsError",
    "PasswordPolicyError",
    "TokenError",
    "DuplicateAccountError",
    "get_credential_service",
]
