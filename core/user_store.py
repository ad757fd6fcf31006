"""
User Store Module

This module handles persistence of user accounts for the biometric access demo.

Accounts live in a single SQLite table. Every operation touches at most one
row, so no explicit multi-statement transactions are needed; a lock keeps the
shared connection safe when request handlers run on different threads.

The UserStore class provides:
- create: Register a new account (email is unique, case-insensitive)
- find_by_email / find_by_id: Look up an account
- mark_enrolled: Flip the enrolled flag to true (never back)

Accounts are never deleted by any operation exposed here.

Usage:
    from core.user_store import UserStore

    store = UserStore(db_path="storage/users.sqlite")
    account = store.create("alice@example.com", password_hash)
    store.mark_enrolled(account.id)
"""

import sqlite3
import threading
import uuid
import logging
from pathlib import Path
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Optional

# Setup logging
logger = logging.getLogger(__name__)


class DuplicateAccountError(ValueError):
    """Raised when registering an email that already has an account."""


@dataclass
class Account:
    """
    A registered user account.

    Attributes:
        id: Opaque unique identifier (UUID4 string).
        email: Lower-cased email address, unique across accounts.
        password_hash: bcrypt hash of the account password.
        enrolled: True once biometric enrollment has been completed.
        created_at: ISO timestamp of registration.
        updated_at: ISO timestamp of the last change.
    """

    id: str
    email: str
    password_hash: str
    enrolled: bool = False
    created_at: str = ""
    updated_at: str = ""

    def public_view(self) -> dict:
        """Fields safe to return to clients."""
        return {"id": self.id, "email": self.email, "enrolled": self.enrolled}


def normalize_email(email: str) -> str:
    """Case-fold an email address for storage and lookup."""
    return email.strip().lower()


def generate_account_id() -> str:
    """Generate a unique account ID (UUID4)."""
    return str(uuid.uuid4())


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserStore:
    """
    SQLite-backed account storage.

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str):
        """
        Initialize the UserStore.

        Creates the database file and schema if they don't exist.

        Args:
            db_path: Path to SQLite database file.
        """
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

        logger.info(f"UserStore initialized: db={self.db_path}")

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get or create the SQLite connection.

        Returns:
            SQLite connection with Row factory for dict-like access.
        """
        if self._conn is None:
            # Handlers may run on worker threads; access is serialized by _lock
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_database(self) -> None:
        """Create the users table and its email index."""
        with self._lock:
            conn = self._get_connection()
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT UNIQUE NOT NULL,
                    password_hash TEXT NOT NULL,
                    enrolled BOOLEAN NOT NULL DEFAULT 0,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_users_email ON users(email)")
            conn.commit()
        logger.debug("Database schema initialized")

    @staticmethod
    def _row_to_account(row: sqlite3.Row) -> Account:
        return Account(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            enrolled=bool(row["enrolled"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def create(self, email: str, password_hash: str) -> Account:
        """
        Create a new, not-yet-enrolled account.

        Args:
            email: Email address (case-folded before storage).
            password_hash: Already-hashed password.

        Returns:
            The stored Account.

        Raises:
            DuplicateAccountError: If an account with this email exists.
        """
        now = _utcnow()
        account = Account(
            id=generate_account_id(),
            email=normalize_email(email),
            password_hash=password_hash,
            enrolled=False,
            created_at=now,
            updated_at=now,
        )

        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute(
                    """
                    INSERT INTO users (id, email, password_hash, enrolled, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (account.id, account.email, account.password_hash, 0, now, now),
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise DuplicateAccountError("User already exists") from e

        logger.info(f"Account created: id={account.id}")
        return account

    def find_by_email(self, email: str) -> Optional[Account]:
        """Look up an account by email (case-insensitive)."""
        with self._lock:
            row = self._get_connection().execute(
                "SELECT * FROM users WHERE email = ?", (normalize_email(email),)
            ).fetchone()
        return self._row_to_account(row) if row else None

    def find_by_id(self, account_id: str) -> Optional[Account]:
        """Look up an account by its identifier."""
        with self._lock:
            row = self._get_connection().execute(
                "SELECT * FROM users WHERE id = ?", (account_id,)
            ).fetchone()
        return self._row_to_account(row) if row else None

    def mark_enrolled(self, account_id: str) -> Optional[Account]:
        """
        Mark an account as biometrically enrolled.

        Calling this on an already-enrolled account is a no-op apart from
        refreshing updated_at.

        Args:
            account_id: The account's identifier.

        Returns:
            The updated Account, or None if no such account exists.
        """
        with self._lock:
            conn = self._get_connection()
            cursor = conn.execute(
                "UPDATE users SET enrolled = 1, updated_at = ? WHERE id = ?",
                (_utcnow(), account_id),
            )
            conn.commit()
            updated = cursor.rowcount > 0

        if not updated:
            logger.warning(f"mark_enrolled: account {account_id} not found")
            return None

        return self.find_by_id(account_id)

    def count(self) -> int:
        """Return the number of registered accounts."""
        with self._lock:
            row = self._get_connection().execute("SELECT COUNT(*) FROM users").fetchone()
        return int(row[0])

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.debug("Database connection closed")


# Singleton instance for the store
_store_instance: Optional[UserStore] = None


def get_user_store(db_path: Optional[str] = None) -> UserStore:
    """
    Get or create the singleton UserStore instance.

    Args:
        db_path: Path to SQLite database. If None, uses the value from config,
                 resolved relative to the project root.

    Returns:
        The shared UserStore instance.
    """
    global _store_instance

    if _store_instance is None:
        if db_path is None:
            from core.config import get_storage_config, get_project_root

            configured = Path(get_storage_config()["db_path"])
            db_path = str(configured if configured.is_absolute() else get_project_root() / configured)

        _store_instance = UserStore(db_path)

    return _store_instance
