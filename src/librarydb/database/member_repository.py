"""
Member repository implementation for the LibraryDB circulation server.

Registers, edits and removes library members. A member's borrowing history
pins the row: members who have ever borrowed cannot be deleted, only
suspended or expired.
"""

from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func, select

from ..models.member import Member as MemberModel
from ..models.member import MembershipStatus
from .repository import (
    BaseRepository,
    ConflictError,
    DuplicateError,
    PaginatedResponse,
    PaginationParams,
)
from .schema import Borrowing as BorrowingDB
from .schema import Member as MemberDB
from .schema import MembershipStatusEnum


class MemberCreateSchema(BaseModel):
    """Schema for registering a member. New members are always Active."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str | None = Field(None, max_length=30)
    address: str | None = Field(None, max_length=500)


class MemberUpdateSchema(BaseModel):
    """Schema for updating a member - all fields optional."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=30)
    address: str | None = Field(None, max_length=500)
    membership_status: MembershipStatus | None = None


class MemberRepository(
    BaseRepository[MemberDB, MemberCreateSchema, MemberUpdateSchema, MemberModel]
):
    """Repository for library members."""

    @property
    def model_class(self):
        return MemberDB

    @property
    def response_schema(self):
        return MemberModel

    def _to_response_model(self, db_obj: MemberDB) -> MemberModel:
        return MemberModel(
            id=db_obj.id,
            first_name=db_obj.first_name,
            last_name=db_obj.last_name,
            email=db_obj.email,
            phone=db_obj.phone,
            address=db_obj.address,
            membership_status=MembershipStatus(db_obj.membership_status.value),
            created_at=db_obj.created_at,
        )

    def create(self, data: MemberCreateSchema) -> MemberModel:
        """
        Register a new, Active member.

        Raises:
            DuplicateError: If the email is already registered
        """
        self._check_email_free(data.email)
        member = MemberDB(**data.model_dump(), membership_status=MembershipStatusEnum.ACTIVE)
        self.session.add(member)
        self._flush("create Member")
        return self._to_response_model(member)

    def update(self, id: int, data: MemberUpdateSchema) -> MemberModel:
        """
        Update contact details or membership status.

        Raises:
            NotFoundError: If the member does not exist
            DuplicateError: If the new email belongs to another member
        """
        member = self._get_db_obj(id, for_update=True)
        fields = data.model_dump(exclude_unset=True)
        if fields.get("email") and fields["email"] != member.email:
            self._check_email_free(fields["email"])
        if fields.get("membership_status") is not None:
            fields["membership_status"] = MembershipStatusEnum(fields["membership_status"].value)
        for field, value in fields.items():
            setattr(member, field, value)
        self._flush("update Member")
        return self._to_response_model(member)

    def delete(self, id: int) -> None:
        """
        Remove a member who has never borrowed.

        Raises:
            NotFoundError: If the member does not exist
            ConflictError: If the member has borrowing history
        """
        history = self.session.execute(
            select(func.count()).select_from(BorrowingDB).where(BorrowingDB.member_id == id)
        ).scalar()
        if history:
            raise ConflictError(f"Member {id} has borrowing history and cannot be deleted")
        super().delete(id)

    def list_members(self, pagination: PaginationParams | None = None) -> PaginatedResponse[MemberModel]:
        """Newest members first."""
        return self.get_all(pagination or PaginationParams(), order_by="id", order_desc=True)

    def get_by_email(self, email: str) -> MemberModel | None:
        member = self.session.execute(
            select(MemberDB).where(func.lower(MemberDB.email) == email.lower())
        ).scalar_one_or_none()
        return self._to_response_model(member) if member else None

    def _check_email_free(self, email: str) -> None:
        if self.get_by_email(email) is not None:
            raise DuplicateError(f"Member with email {email} already exists")
