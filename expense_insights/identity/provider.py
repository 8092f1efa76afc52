"""
Identity Providers

Sign-in is handled by an external identity provider. The app only asks
it one question: who is signed in right now, if anyone. The answer is
then passed explicitly to every flow.
"""

from abc import ABC, abstractmethod
from typing import Optional

from expense_insights.config import get_settings
from expense_insights.models.user import IdentityUser


class IdentityProvider(ABC):

    @abstractmethod
    def current_user(self) -> Optional[IdentityUser]:
        """The signed-in user, or None."""
        pass

    def current_user_id(self) -> Optional[str]:
        user = self.current_user()
        return user.id if user else None


class StaticIdentityProvider(IdentityProvider):
    """Always reports the same user. For development and tests."""

    def __init__(self, user: Optional[IdentityUser] = None):
        self._user = user

    def current_user(self) -> Optional[IdentityUser]:
        return self._user

    @classmethod
    def from_settings(cls) -> 'StaticIdentityProvider':
        """Sign in as AUTH_DEV_USER_ID if it is set, otherwise nobody."""
        auth = get_settings().auth
        if not auth.dev_user_id:
            return cls(None)
        first, _, last = auth.dev_user_name.partition(" ")
        return cls(
            IdentityUser(
                id=auth.dev_user_id,
                first_name=first or None,
                last_name=last or None,
                email_addresses=[auth.dev_user_email] if auth.dev_user_email else [],
            )
        )
