"""
Member model for the LibraryDB circulation server.

Members are referenced by borrowings but never owned by them. The model holds
contact details only; credentials live with an external identity service.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class MembershipStatus(str, Enum):
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    EXPIRED = "Expired"


class Member(BaseModel):
    """A registered library member."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Member identifier", ge=1)
    first_name: str = Field(..., min_length=1, max_length=100, examples=["Jane"])
    last_name: str = Field(..., min_length=1, max_length=100, examples=["Austen"])
    email: EmailStr = Field(..., description="Contact email, unique per member")
    phone: str | None = Field(None, max_length=30, examples=["+1-555-0123"])
    address: str | None = Field(None, max_length=500)
    membership_status: MembershipStatus = Field(default=MembershipStatus.ACTIVE)
    created_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_active(self) -> bool:
        return self.membership_status == MembershipStatus.ACTIVE
