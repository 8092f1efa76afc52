"""
User Models

The identity provider owns sign-in. We only keep a small local profile
keyed on the provider's user id so that records and audit events have
someone to belong to.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from expense_insights.models.record import utcnow


class IdentityUser(BaseModel):
    """What the identity provider tells us about the signed-in user."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Provider user id"
    )
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    email_addresses: list[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def primary_email(self) -> Optional[str]:
        return self.email_addresses[0] if self.email_addresses else None


class UserProfile(BaseModel):
    """Local user row."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    external_id: str = Field(
        ...,
        min_length=1,
        description="Provider user id this profile belongs to"
    )
    name: str = Field(default="", max_length=200)
    image_url: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_identity(cls, identity: IdentityUser) -> 'UserProfile':
        return cls(
            external_id=identity.id,
            name=identity.display_name,
            image_url=identity.image_url,
            email=identity.primary_email,
        )


class CheckUserResult(BaseModel):
    """A profile plus whether this call created it."""

    user: UserProfile
    is_new: bool
