"""Attendance record model.

This module defines the AttendanceRecord table, one row per person per
event. Attendee details are stored flat on the row; ``email_key`` is the
normalized identity every lookup and uniqueness check goes through.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Index, text
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from attendance.models.event import Event


class AttendanceStatus(str, Enum):
    confirmed = "confirmed"
    waitlisted = "waitlisted"
    attended = "attended"
    cancelled = "cancelled"


class RegistrationSource(str, Enum):
    website = "website"
    admin = "admin"
    import_ = "import"


class GradeLevel(str, Enum):
    Freshman = "Freshman"
    Sophomore = "Sophomore"
    Junior = "Junior"
    Senior = "Senior"
    Graduate = "Graduate"
    PhD = "PhD"


def normalize_email(email: str) -> str:
    """Return the identity key used to match an attendee's email."""
    return email.strip().lower()


class AttendanceRecord(SQLModel, table=True):
    """A person's registration for an event.

    Attributes:
        id: Unique identifier (UUID).
        event_id: Foreign key to the Event; never changes.
        name: Attendee's display name, if given.
        contact_email: Email exactly as the attendee entered it.
        email_key: Lowercased, stripped ``contact_email``. At most one
            non-cancelled record may exist per (event_id, email_key).
        major: Attendee's major, if given.
        grade_level: Attendee's class standing, if given.
        phone: Attendee's phone number, if given.
        status: confirmed, waitlisted, attended, or cancelled.
        registered_at: When the record was created.
        confirmed_at: When the record last became confirmed, either at
            registration or on promotion from the waitlist.
        attended_at: When the attendee checked in.
        waitlist_position: 1-based place in the waitlist. Set exactly when
            status is waitlisted; positions for one event are always 1..N.
        source: Where the registration came from (website, admin, import).
        check_in_code: Short unique code shown on the attendee's ticket.
        event: Reference to the parent Event object.
    """
    __table_args__ = (
        Index(
            "uq_attendance_active_email",
            "event_id",
            "email_key",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
        CheckConstraint(
            "(status = 'waitlisted') = (waitlist_position IS NOT NULL)",
            name="ck_attendance_waitlist_position_set",
        ),
        CheckConstraint(
            "waitlist_position IS NULL OR waitlist_position >= 1",
            name="ck_attendance_waitlist_position_positive",
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    event_id: UUID = Field(foreign_key="event.id", index=True)
    name: str | None = None
    contact_email: str
    email_key: str = Field(index=True)
    major: str | None = None
    grade_level: GradeLevel | None = None
    phone: str | None = None
    status: AttendanceStatus = Field(index=True)
    registered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    confirmed_at: datetime | None = None
    attended_at: datetime | None = None
    waitlist_position: int | None = None
    source: RegistrationSource = Field(default=RegistrationSource.website)
    check_in_code: str = Field(index=True, unique=True)

    # Relationship
    event: Optional["Event"] = Relationship(back_populates="records")

    @property
    def display_name(self) -> str:
        return self.name or self.contact_email
