"""Request and response bodies for the attendance API.

Field names are camelCase on the wire and snake_case in Python.
"""
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from attendance.models import AttendanceRecord, AttendanceStatus, GradeLevel, RegistrationSource


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegistrationRequest(WireModel):
    name: str | None = None
    contact_email: str = Field(min_length=1)
    major: str | None = None
    grade_level: GradeLevel | None = None
    phone: str | None = None
    password: str | None = None

    @field_validator("name", "major", "grade_level", "phone", "password", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class RegistrationResponse(WireModel):
    attendance_id: UUID
    status: AttendanceStatus
    waitlist_position: int | None = None
    check_in_code: str


class AttendeeOut(WireModel):
    name: str | None = None
    contact_email: str
    major: str | None = None
    grade_level: GradeLevel | None = None
    phone: str | None = None


class AttendanceRecordOut(WireModel):
    id: UUID
    event_id: UUID
    attendee: AttendeeOut
    status: AttendanceStatus
    registered_at: datetime
    confirmed_at: datetime | None = None
    attended_at: datetime | None = None
    waitlist_position: int | None = None
    source: RegistrationSource
    check_in_code: str

    @classmethod
    def from_record(cls, record: AttendanceRecord) -> "AttendanceRecordOut":
        return cls(
            id=record.id,
            event_id=record.event_id,
            attendee=AttendeeOut(
                name=record.name,
                contact_email=record.contact_email,
                major=record.major,
                grade_level=record.grade_level,
                phone=record.phone,
            ),
            status=record.status,
            registered_at=record.registered_at,
            confirmed_at=record.confirmed_at,
            attended_at=record.attended_at,
            waitlist_position=record.waitlist_position,
            source=record.source,
            check_in_code=record.check_in_code,
        )


class CancellationResponse(WireModel):
    success: bool = True
    message: str
    promoted: str | None = None


class DemographicBreakdown(WireModel):
    by_grade: dict[str, int]
    by_major: dict[str, int]


class StatsResponse(WireModel):
    confirmed_count: int
    waitlist_count: int
    attended_count: int
    total_registrations: int
    attendance_rate: float
    demographic_breakdown: DemographicBreakdown


class CheckInRequest(WireModel):
    check_in_code: str = Field(min_length=1)


class CheckInResponse(WireModel):
    success: bool = True
    message: str
    attendee_name: str
    already_checked_in: bool
    checked_in_at: datetime


class WaitlistActionRequest(WireModel):
    action: Literal["promote", "remove"]
    attendance_ids: list[UUID] | None = None


class WaitlistActionResponse(WireModel):
    success: bool = True
    action: str
    affected: int
    attendance_ids: list[UUID] = []


class RosterResponse(WireModel):
    attendees: list[AttendanceRecordOut]
    confirmed: int
    waitlisted: int
    attended: int
    total: int
