"""Read-only view of event settings for the attendance registry."""
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlmodel import Session, select

from attendance.models import Event


@dataclass(frozen=True)
class EventConfig:
    """The event settings that govern registration and admission."""

    event_id: UUID
    title: str
    published: bool
    attendance_enabled: bool
    password_hash: str | None
    capacity: int | None
    waitlist_enabled: bool
    waitlist_max_size: int | None
    waitlist_auto_promote: bool
    host_email: str | None
    ends_at: datetime | None

    @property
    def password_required(self) -> bool:
        return bool(self.password_hash)

    @classmethod
    def from_event(cls, event: Event) -> "EventConfig":
        # A zero limit means unset
        capacity = event.capacity if event.capacity and event.capacity > 0 else None
        max_size = (
            event.waitlist_max_size
            if event.waitlist_max_size and event.waitlist_max_size > 0
            else None
        )
        return cls(
            event_id=event.id,
            title=event.title,
            published=event.published,
            attendance_enabled=event.attendance_enabled,
            password_hash=event.attendance_password_hash,
            capacity=capacity,
            waitlist_enabled=event.waitlist_enabled,
            waitlist_max_size=max_size,
            waitlist_auto_promote=event.waitlist_auto_promote,
            host_email=event.host_email,
            ends_at=event.ends_at,
        )


class EventStore:
    """Looks up published events. Never writes."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, event_id: UUID, published_only: bool = True) -> EventConfig | None:
        """Return the config of an event, or None.

        Unpublished events are treated as missing unless ``published_only``
        is False.
        """
        event = self.session.get(Event, event_id)
        if event is None or (published_only and not event.published):
            return None
        return EventConfig.from_event(event)

    def hosted_by(self, host_email: str) -> list[UUID]:
        """IDs of events whose host email matches, case-insensitively."""
        statement = select(Event.id).where(
            func.lower(Event.host_email) == host_email.strip().lower()
        )
        return list(self.session.exec(statement).all())

    def auto_promote_candidates(self) -> list[UUID]:
        """Published events whose waitlist should be swept into open seats."""
        statement = (
            select(Event.id)
            .where(Event.published == True)  # noqa: E712
            .where(Event.waitlist_enabled == True)  # noqa: E712
            .where(Event.waitlist_auto_promote == True)  # noqa: E712
            .where(Event.capacity != None)  # noqa: E711
        )
        return list(self.session.exec(statement).all())
