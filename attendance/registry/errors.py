"""Failures the attendance registry reports to its callers.

Every error carries a stable ``code`` and the HTTP ``status_code`` the API
answers with. None of them is retried automatically except ``Busy``, which
the registry raises only after its own retries are used up.
"""


class AttendanceError(Exception):
    """Base class for registry failures."""

    code = "attendance_error"
    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class EventNotFound(AttendanceError):
    code = "event_not_found"
    status_code = 404

    def __init__(self, event_id) -> None:
        self.event_id = event_id
        super().__init__("Event not found")


class RegistrationDisabled(AttendanceError):
    code = "registration_disabled"

    def __init__(self) -> None:
        super().__init__("Attendance confirmation is not enabled for this event")


class RegistrationClosed(AttendanceError):
    code = "registration_closed"

    def __init__(self) -> None:
        super().__init__("Registration for this event has ended")


class PasswordRequired(AttendanceError):
    code = "password_required"
    status_code = 401

    def __init__(self) -> None:
        super().__init__("Password is required for this event")


class PasswordInvalid(AttendanceError):
    code = "password_invalid"
    status_code = 401

    def __init__(self) -> None:
        super().__init__("Incorrect event password")


class InvalidEmailDomain(AttendanceError):
    code = "invalid_email_domain"

    def __init__(self, domain: str) -> None:
        self.domain = domain
        super().__init__(f"Must use an email address ending in {domain}")


class AlreadyRegistered(AttendanceError):
    code = "already_registered"

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("You are already registered for this event")


class EventFull(AttendanceError):
    code = "event_full"

    def __init__(self) -> None:
        super().__init__("Event is at full capacity and waitlist is not enabled")


class WaitlistFull(AttendanceError):
    code = "waitlist_full"

    def __init__(self) -> None:
        super().__init__("Waitlist is also full")


class RegistrationNotFound(AttendanceError):
    code = "registration_not_found"
    status_code = 404

    def __init__(self, message: str = "Registration not found") -> None:
        super().__init__(message)


class NotConfirmed(AttendanceError):
    code = "not_confirmed"

    def __init__(self) -> None:
        super().__init__(
            "You are on the waitlist for this event. Only confirmed attendees can check in."
        )


class NoOpenSeats(AttendanceError):
    code = "no_open_seats"

    def __init__(self) -> None:
        super().__init__("Cannot promote: event is at capacity")


class WaitlistEmpty(AttendanceError):
    code = "waitlist_empty"

    def __init__(self) -> None:
        super().__init__("No waitlisted attendees to promote")


class Busy(AttendanceError):
    """Raised when the per-event claim kept losing to concurrent writers."""

    code = "busy"
    status_code = 409

    def __init__(self, event_id, attempts: int) -> None:
        self.event_id = event_id
        self.attempts = attempts
        super().__init__("Too many simultaneous changes to this event, please try again")
