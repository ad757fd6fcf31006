"""
Tests for the UserStore module.

This test suite verifies:
- Account creation and lookup
- Case-insensitive email uniqueness
- The enrolled flag only moving from false to true
- Persistence across store instances

Run with: pytest tests/test_user_store.py -v
"""

import os
import sys
import uuid
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.user_store import (
    Account,
    UserStore,
    DuplicateAccountError,
    normalize_email,
    generate_account_id,
)


@pytest.fixture
def store(tmp_path):
    """Create a UserStore backed by a temporary database."""
    s = UserStore(db_path=str(tmp_path / "db" / "users.sqlite"))
    yield s
    s.close()


class TestHelpers:
    """Tests for module-level helpers."""

    def test_normalize_email(self):
        assert normalize_email("  Alice@Example.COM ") == "alice@example.com"

    def test_generate_account_id_is_uuid(self):
        account_id = generate_account_id()
        assert str(uuid.UUID(account_id)) == account_id

    def test_generate_account_id_unique(self):
        ids = {generate_account_id() for _ in range(100)}
        assert len(ids) == 100


class TestCreate:
    """Tests for account creation."""

    def test_create_returns_unenrolled_account(self, store):
        account = store.create("alice@example.com", "hash")

        assert isinstance(account, Account)
        assert account.email == "alice@example.com"
        assert account.enrolled is False
        assert account.created_at
        assert store.count() == 1

    def test_create_lowercases_email(self, store):
        account = store.create("Alice@Example.com", "hash")
        assert account.email == "alice@example.com"

    def test_duplicate_email_rejected(self, store):
        store.create("alice@example.com", "hash")

        with pytest.raises(DuplicateAccountError):
            store.create("alice@example.com", "other")

        assert store.count() == 1

    def test_duplicate_email_different_case_rejected(self, store):
        store.create("alice@example.com", "hash")

        with pytest.raises(DuplicateAccountError):
            store.create("ALICE@example.COM", "other")

        assert store.count() == 1

    def test_creates_database_directory(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "users.sqlite"
        s = UserStore(str(db_path))
        assert db_path.parent.exists()
        s.close()


class TestLookup:
    """Tests for account lookup."""

    def test_find_by_email_case_insensitive(self, store):
        created = store.create("bob@example.com", "hash")

        found = store.find_by_email("BOB@EXAMPLE.COM")
        assert found is not None
        assert found.id == created.id

    def test_find_by_email_unknown(self, store):
        assert store.find_by_email("nobody@example.com") is None

    def test_find_by_id(self, store):
        created = store.create("carol@example.com", "hash")

        found = store.find_by_id(created.id)
        assert found == created

    def test_find_by_id_unknown(self, store):
        assert store.find_by_id(generate_account_id()) is None

    def test_public_view_hides_password_hash(self, store):
        account = store.create("dave@example.com", "secret-hash")

        view = account.public_view()
        assert view == {"id": account.id, "email": "dave@example.com", "enrolled": False}


class TestMarkEnrolled:
    """Tests for the enrolled flag."""

    def test_mark_enrolled(self, store):
        account = store.create("erin@example.com", "hash")

        updated = store.mark_enrolled(account.id)

        assert updated is not None
        assert updated.enrolled is True
        assert store.find_by_id(account.id).enrolled is True

    def test_mark_enrolled_is_idempotent(self, store):
        account = store.create("frank@example.com", "hash")

        first = store.mark_enrolled(account.id)
        second = store.mark_enrolled(account.id)

        assert first.enrolled is True
        assert second.enrolled is True

    def test_mark_enrolled_unknown_account(self, store):
        assert store.mark_enrolled(generate_account_id()) is None

    def test_mark_enrolled_leaves_other_accounts(self, store):
        a = store.create("a@example.com", "hash")
        b = store.create("b@example.com", "hash")

        store.mark_enrolled(a.id)

        assert store.find_by_id(b.id).enrolled is False


class TestPersistence:
    """Tests that data survives reopening the database."""

    def test_reopen_keeps_accounts(self, tmp_path):
        db_path = str(tmp_path / "users.sqlite")

        first = UserStore(db_path)
        account = first.create("grace@example.com", "hash")
        first.mark_enrolled(account.id)
        first.close()

        second = UserStore(db_path)
        found = second.find_by_email("grace@example.com")
        assert found is not None
        assert found.enrolled is True
        second.close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
