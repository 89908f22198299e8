"""Helpers shared by the test modules."""

from uuid import UUID

from sqlmodel import Session, select

from attendance.models import AttendanceRecord, AttendanceStatus
from attendance.registry.service import AttendeeDetails


def attendee(local_part: str, **fields) -> AttendeeDetails:
    """Attendee details with an institutional email address."""
    return AttendeeDetails(contact_email=f"{local_part}@umich.edu", **fields)


def records_by_status(session: Session, event_id: UUID, status: AttendanceStatus) -> list[AttendanceRecord]:
    session.expire_all()
    return list(
        session.exec(
            select(AttendanceRecord)
            .where(AttendanceRecord.event_id == event_id)
            .where(AttendanceRecord.status == status)
            .order_by(AttendanceRecord.waitlist_position, AttendanceRecord.registered_at)
        ).all()
    )


def waitlist_positions(session: Session, event_id: UUID) -> dict[str, int]:
    """Map of email local part to waitlist position."""
    return {
        record.email_key.split("@")[0]: record.waitlist_position
        for record in records_by_status(session, event_id, AttendanceStatus.waitlisted)
    }


def confirmed_names(session: Session, event_id: UUID) -> set[str]:
    return {
        record.email_key.split("@")[0]
        for record in records_by_status(session, event_id, AttendanceStatus.confirmed)
    }
