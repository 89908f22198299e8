"""Event model read by the attendance registry.

This module defines the Event table. Events are created and edited by the
content side of the website; the attendance registry only reads them,
through the EventStore view in ``attendance.registry.store``.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from attendance.models.attendance import AttendanceRecord


class Event(SQLModel, table=True):
    """An event people can register to attend.

    Attributes:
        id: Unique identifier (UUID).
        title: Event title, used in check-in responses and logs.
        slug: URL-friendly name used by the public pages.
        published: Unpublished events are invisible to the registry.
        attendance_enabled: Whether attendees may register at all.
        attendance_password_hash: passlib hash of the attendance password.
            When set, registrations must supply the matching password.
        capacity: Maximum number of confirmed attendees, or None for
            unlimited.
        waitlist_enabled: Whether registrations past capacity may join the
            waitlist instead of being refused.
        waitlist_max_size: Maximum number of waitlisted attendees, or None
            for unlimited.
        waitlist_auto_promote: Whether the background sweep should promote
            waitlisted attendees into seats that open up.
        host_email: Contact email of the hosting member, used to scope the
            host dashboard.
        ends_at: When the event ends; registration closes afterwards.
        records: Attendance records for this event.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str
    slug: str | None = Field(default=None, index=True, unique=True)
    published: bool = Field(default=False)
    attendance_enabled: bool = Field(default=False)
    attendance_password_hash: str | None = None
    capacity: int | None = None
    waitlist_enabled: bool = Field(default=False)
    waitlist_max_size: int | None = None
    waitlist_auto_promote: bool = Field(default=False)
    host_email: str | None = Field(default=None, index=True)
    ends_at: datetime | None = None

    # Relationship
    records: list["AttendanceRecord"] = Relationship(back_populates="event")
