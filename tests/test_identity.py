"""
Tests for identity providers and the user directory.
"""

import asyncio

import pytest

from expense_insights.audit import AuditLogger
from expense_insights.config import get_settings
from expense_insights.identity import StaticIdentityProvider, UserDirectory
from expense_insights.models.audit import AuditEventType
from expense_insights.models.user import IdentityUser, UserProfile
from expense_insights.services.storage import (
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryUserStorage,
)


ADA = IdentityUser(
    id="user_ada",
    first_name="Ada",
    last_name="Lovelace",
    image_url="https://img.example/ada.png",
    email_addresses=["ada@example.com"],
)


class RacingUserStorage(InMemoryUserStorage):
    """Another request creates the user between our lookup and insert."""

    def __init__(self):
        super().__init__()
        self._lookups = 0

    async def find_by_external_id(self, external_id):
        self._lookups += 1
        if self._lookups == 1:
            return None
        return await super().find_by_external_id(external_id)

    async def create_user(self, profile):
        self._users[profile.external_id] = UserProfile(
            external_id=profile.external_id,
            name="Created elsewhere",
        )
        raise DuplicateError(profile.external_id)


class TestUserDirectory:
    """Tests for find-or-create."""

    def test_no_identity_returns_none(self):
        """Test that nobody signed in means no profile."""
        directory = UserDirectory(InMemoryUserStorage())
        assert asyncio.run(directory.check_user(None)) is None

    def test_first_sign_in_creates_profile(self):
        """Test profile creation from identity data."""
        audit_storage = InMemoryAuditStorage()
        directory = UserDirectory(InMemoryUserStorage(), AuditLogger(audit_storage))

        result = asyncio.run(directory.check_user(ADA))
        assert result.is_new is True
        assert result.user.external_id == "user_ada"
        assert result.user.name == "Ada Lovelace"
        assert result.user.email == "ada@example.com"
        assert result.user.image_url == "https://img.example/ada.png"
        assert audit_storage.events[-1].event_type == AuditEventType.USER_CREATED

    def test_second_sign_in_returns_existing(self):
        """Test that the same profile comes back, not a new one."""
        audit_storage = InMemoryAuditStorage()
        directory = UserDirectory(InMemoryUserStorage(), AuditLogger(audit_storage))

        first = asyncio.run(directory.check_user(ADA))
        second = asyncio.run(directory.check_user(ADA))
        assert second.is_new is False
        assert second.user.id == first.user.id
        assert audit_storage.events[-1].event_type == AuditEventType.USER_SIGNED_IN

    def test_concurrent_create_returns_existing(self):
        """Test recovery from a unique-constraint race."""
        directory = UserDirectory(RacingUserStorage())
        result = asyncio.run(directory.check_user(ADA))
        assert result.is_new is False
        assert result.user.name == "Created elsewhere"


class TestStaticIdentityProvider:
    """Tests for the development identity provider."""

    @pytest.fixture(autouse=True)
    def fresh_settings(self):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_reports_given_user(self):
        """Test a fixed user."""
        provider = StaticIdentityProvider(ADA)
        assert provider.current_user() == ADA
        assert provider.current_user_id() == "user_ada"

    def test_anonymous(self):
        """Test no user."""
        provider = StaticIdentityProvider()
        assert provider.current_user() is None
        assert provider.current_user_id() is None

    def test_from_settings(self, monkeypatch):
        """Test AUTH_DEV_USER_* variables."""
        monkeypatch.setenv("AUTH_DEV_USER_ID", "dev_1")
        monkeypatch.setenv("AUTH_DEV_USER_NAME", "Grace Hopper")
        monkeypatch.setenv("AUTH_DEV_USER_EMAIL", "grace@example.com")

        user = StaticIdentityProvider.from_settings().current_user()
        assert user.id == "dev_1"
        assert user.display_name == "Grace Hopper"
        assert user.primary_email == "grace@example.com"

    def test_from_settings_without_dev_user(self, monkeypatch):
        """Test that an unset dev user means nobody is signed in."""
        monkeypatch.delenv("AUTH_DEV_USER_ID", raising=False)
        assert StaticIdentityProvider.from_settings().current_user() is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
