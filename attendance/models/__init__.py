from attendance.models.attendance import (
    AttendanceRecord,
    AttendanceStatus,
    GradeLevel,
    RegistrationSource,
    normalize_email,
)
from attendance.models.event import Event
from attendance.models.guard import EventGuard
from attendance.models.profile import UserProfile

__all__ = [
    "Event",
    "AttendanceRecord",
    "AttendanceStatus",
    "GradeLevel",
    "RegistrationSource",
    "EventGuard",
    "UserProfile",
    "normalize_email",
]
