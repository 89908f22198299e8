"""Attendance routes for registering, looking up and cancelling."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from attendance.registry.service import AttendanceRegistry, AttendeeDetails
from attendance.routes.deps import get_registry
from attendance.schemas import (
    AttendanceRecordOut,
    CancellationResponse,
    RegistrationRequest,
    RegistrationResponse,
)

router = APIRouter(prefix="/events/{event_id}/attendance", tags=["attendance"])


def require_email(email: str | None) -> str:
    if not email or not email.strip():
        raise HTTPException(status_code=400, detail="Email parameter is required")
    return email


@router.post("", status_code=status.HTTP_201_CREATED, response_model=RegistrationResponse)
def register(
    event_id: UUID,
    body: RegistrationRequest,
    registry: AttendanceRegistry = Depends(get_registry),
):
    """
    Register for an event.

    Answers 201 with the new attendance ID, whether the attendee was
    confirmed or waitlisted (with their position), and their check-in code.
    Business-rule rejections answer 400, a missing or wrong event password
    401, and an unknown or unpublished event 404.
    """
    result = registry.register(
        event_id,
        AttendeeDetails(
            contact_email=body.contact_email,
            name=body.name,
            major=body.major,
            grade_level=body.grade_level,
            phone=body.phone,
        ),
        password=body.password,
    )
    return RegistrationResponse(
        attendance_id=result.attendance_id,
        status=result.status,
        waitlist_position=result.waitlist_position,
        check_in_code=result.check_in_code,
    )


@router.get("", response_model=AttendanceRecordOut)
def get_registration(
    event_id: UUID,
    email: str | None = None,
    registry: AttendanceRegistry = Depends(get_registry),
):
    """Look up the active registration for an email address."""
    record = registry.get_registration(event_id, require_email(email))
    return AttendanceRecordOut.from_record(record)


@router.delete("", response_model=CancellationResponse)
def cancel_registration(
    event_id: UUID,
    email: str | None = None,
    registry: AttendanceRegistry = Depends(get_registry),
):
    """
    Cancel a registration.

    The message names anyone promoted from the waitlist into the freed seat.
    """
    result = registry.cancel(event_id, require_email(email))
    return CancellationResponse(message=result.message, promoted=result.promoted)
