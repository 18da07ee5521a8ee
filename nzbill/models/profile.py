"""
Profile and Session Models

A profile holds the user's tracked cash balance and gamification level.
A session carries the identity supplied by the auth provider.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from nzbill.models.labels import Language


class UserProfile(BaseModel):
    """Per-user profile stored alongside bills."""

    user_id: str = Field(..., min_length=1)
    balance: Decimal = Field(
        default=Decimal("5000"),
        description="Cash on hand in the configured currency"
    )
    level: int = Field(default=1, ge=1)
    language: Language = Field(default=Language.TH)
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class UserSession(BaseModel):
    """
    Identity for the active session.

    `user_id` is None when nobody is signed in; every persistence
    operation is a no-op in that case.
    """

    user_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)
