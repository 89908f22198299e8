"""Per-event version row used to serialize attendance changes."""

from uuid import UUID

from sqlmodel import Field, SQLModel


class EventGuard(SQLModel, table=True):
    """Version counter claimed by every change to an event's attendance.

    A writer reads ``version``, then claims the row by bumping it with a
    compare-and-swap UPDATE before touching any attendance record. The row
    carries no attendance numbers; counts are always recomputed from the
    records themselves.

    Attributes:
        event_id: The guarded Event (primary key).
        version: Incremented once per committed change.
    """
    event_id: UUID = Field(foreign_key="event.id", primary_key=True)
    version: int = Field(default=0)
