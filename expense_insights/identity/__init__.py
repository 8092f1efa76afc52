"""Identity package."""

from expense_insights.identity.provider import IdentityProvider, StaticIdentityProvider
from expense_insights.identity.users import UserDirectory

__all__ = ["IdentityProvider", "StaticIdentityProvider", "UserDirectory"]
