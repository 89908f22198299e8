"""Admin routes for event rosters, the host dashboard and the waitlist."""
import csv
import io
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from attendance.models import AttendanceRecord, AttendanceStatus
from attendance.registry.service import AttendanceRegistry
from attendance.routes.deps import get_registry, require_admin_token
from attendance.schemas import (
    AttendanceRecordOut,
    RosterResponse,
    WaitlistActionRequest,
    WaitlistActionResponse,
)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin_token)],
)

CSV_HEADERS = [
    "Email",
    "Name",
    "Major",
    "Grade Level",
    "Phone",
    "Status",
    "Waitlist Position",
    "Registered At",
    "Confirmed At",
    "Check-in Code",
]


def roster_response(records: list[AttendanceRecord]) -> RosterResponse:
    def count(status: AttendanceStatus) -> int:
        return sum(1 for record in records if record.status == status)

    return RosterResponse(
        attendees=[AttendanceRecordOut.from_record(record) for record in records],
        confirmed=count(AttendanceStatus.confirmed),
        waitlisted=count(AttendanceStatus.waitlisted),
        attended=count(AttendanceStatus.attended),
        total=len(records),
    )


def roster_csv(records: list[AttendanceRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow([
            record.contact_email,
            record.name or "",
            record.major or "",
            record.grade_level.value if record.grade_level else "",
            record.phone or "",
            record.status.value,
            record.waitlist_position or "",
            record.registered_at.isoformat(),
            record.confirmed_at.isoformat() if record.confirmed_at else "",
            record.check_in_code,
        ])
    return buffer.getvalue()


@router.get("/events/{event_id}/attendance", response_model=RosterResponse)
def event_roster(
    event_id: UUID,
    format: str | None = None,
    registry: AttendanceRegistry = Depends(get_registry),
):
    """
    Roster of an event's active registrations.

    Pass format=csv to download the roster as a CSV file instead of JSON.
    """
    records = registry.list_for_event(event_id)
    if format == "csv":
        return Response(
            content=roster_csv(records),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="event-{event_id}-attendance.csv"'
            },
        )
    return roster_response(records)


@router.get("/hosts/{host_email}/attendance", response_model=RosterResponse)
def host_roster(host_email: str, registry: AttendanceRegistry = Depends(get_registry)):
    """Active registrations across every event the host runs."""
    return roster_response(registry.list_for_host(host_email))


@router.post("/events/{event_id}/waitlist", response_model=WaitlistActionResponse)
def manage_waitlist(
    event_id: UUID,
    body: WaitlistActionRequest,
    registry: AttendanceRegistry = Depends(get_registry),
):
    """
    Promote or remove waitlisted attendees.

    promote: fills open seats in waitlist order, limited to attendanceIds
    when given. remove: cancels the listed waitlisted attendees. Either way
    the remaining waitlist is renumbered from 1.
    """
    if body.action == "promote":
        promoted = registry.promote_waitlisted(event_id, body.attendance_ids)
        return WaitlistActionResponse(
            action=body.action, affected=len(promoted), attendance_ids=promoted
        )

    if not body.attendance_ids:
        raise HTTPException(status_code=400, detail="No attendance IDs provided")
    removed = registry.remove_from_waitlist(event_id, body.attendance_ids)
    return WaitlistActionResponse(action=body.action, affected=removed)
