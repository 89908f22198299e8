"""Event routes for attendance statistics and check-in."""
from uuid import UUID

from fastapi import APIRouter, Depends

from attendance.registry.service import AttendanceRegistry
from attendance.routes.deps import get_registry
from attendance.schemas import (
    CheckInRequest,
    CheckInResponse,
    DemographicBreakdown,
    StatsResponse,
)

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/{event_id}/stats", response_model=StatsResponse)
def event_stats(event_id: UUID, registry: AttendanceRegistry = Depends(get_registry)):
    """
    Attendance statistics for an event.

    Counts are recomputed from the attendance records on every request.
    """
    stats = registry.get_stats(event_id)
    return StatsResponse(
        confirmed_count=stats.confirmed_count,
        waitlist_count=stats.waitlist_count,
        attended_count=stats.attended_count,
        total_registrations=stats.total_registrations,
        attendance_rate=round(stats.attendance_rate, 1),
        demographic_breakdown=DemographicBreakdown(
            by_grade=stats.by_grade,
            by_major=stats.by_major,
        ),
    )


@router.post("/{event_id}/checkin", response_model=CheckInResponse)
def check_in(
    event_id: UUID,
    body: CheckInRequest,
    registry: AttendanceRegistry = Depends(get_registry),
):
    """
    Check in with the code from a registration.

    Checking in twice succeeds with alreadyCheckedIn set. Waitlisted
    attendees cannot check in.
    """
    result = registry.check_in(event_id, body.check_in_code)
    return CheckInResponse(
        message="You are already checked in!" if result.already_checked_in else "Successfully checked in!",
        attendee_name=result.attendee_name,
        already_checked_in=result.already_checked_in,
        checked_in_at=result.checked_in_at,
    )
