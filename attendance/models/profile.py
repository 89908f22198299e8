"""Denormalized user profile kept in step with registrations.

Profiles belong to the member-account side of the website. Registration
fills in details an attendee typed on the form, but never creates a
profile that does not already exist.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class UserProfile(SQLModel, table=True):
    """Member profile details.

    Attributes:
        id: Unique identifier (UUID).
        email: Member's email, stored normalized (lowercased).
        name: Display name.
        major: Declared major.
        graduation_year: Expected graduation year.
        phone: Contact phone number.
        updated_at: Last time any field changed.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(index=True, unique=True)
    name: str | None = None
    major: str | None = None
    graduation_year: int | None = None
    phone: str | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
