"""
User Directory

Finds the local profile for a signed-in user, creating it on first
sign-in.
"""

from typing import Optional
from uuid import UUID

from expense_insights.audit import AuditLogger
from expense_insights.models.user import CheckUserResult, IdentityUser, UserProfile
from expense_insights.services.storage import DuplicateError, UserStorageInterface


class UserDirectory:

    def __init__(
        self,
        storage: UserStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def check_user(
        self,
        identity: Optional[IdentityUser],
        correlation_id: Optional[UUID] = None,
    ) -> Optional[CheckUserResult]:
        """
        Find or create the profile for `identity`.

        Returns:
            None when nobody is signed in, otherwise the profile and
            whether this call created it.

        Raises:
            StorageError: If the lookup or insert fails
        """
        if identity is None:
            return None

        existing = await self._storage.find_by_external_id(identity.id)
        if existing:
            if self._audit_logger:
                await self._audit_logger.log_user_signed_in(
                    profile_id=existing.id,
                    user_id=identity.id,
                    correlation_id=correlation_id,
                )
            return CheckUserResult(user=existing, is_new=False)

        try:
            created = await self._storage.create_user(UserProfile.from_identity(identity))
        except DuplicateError:
            # Another request created it between our lookup and insert
            existing = await self._storage.find_by_external_id(identity.id)
            if existing is None:
                raise
            return CheckUserResult(user=existing, is_new=False)

        if self._audit_logger:
            await self._audit_logger.log_user_created(
                profile_id=created.id,
                user_id=identity.id,
                correlation_id=correlation_id,
            )
        return CheckUserResult(user=created, is_new=True)
