"""Attendance registry: registration, waitlist and cancellation.

Every change to an event's attendance runs inside one database transaction
that first claims the event's ``EventGuard`` row with a compare-and-swap
UPDATE. Once the claim succeeds the transaction holds that row's write lock
(a row lock on PostgreSQL, the database write lock on SQLite), so the counts
it reads cannot change underneath it before commit. A lost claim, a unique
index violation or a "database is locked" error rolls everything back and the
whole read-decide-write sequence is retried, up to
``settings.registration_max_attempts`` times, before ``Busy`` is raised.

Confirmed and waitlist counts are never stored; they are recounted from the
records inside the claimed transaction.
"""
import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TypeVar
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, select

from attendance.core.config import settings
from attendance.core.security import verify_password
from attendance.models import (
    AttendanceRecord,
    AttendanceStatus,
    EventGuard,
    GradeLevel,
    RegistrationSource,
    normalize_email,
)
from attendance.registry.errors import (
    AlreadyRegistered,
    AttendanceError,
    Busy,
    EventFull,
    EventNotFound,
    InvalidEmailDomain,
    NoOpenSeats,
    NotConfirmed,
    PasswordInvalid,
    PasswordRequired,
    RegistrationClosed,
    RegistrationDisabled,
    RegistrationNotFound,
    WaitlistEmpty,
    WaitlistFull,
)
from attendance.registry.profiles import update_profile_from_registration
from attendance.registry.store import EventConfig, EventStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# No 0/O or 1/I so codes can be read back over the phone
CHECK_IN_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

# Statuses that hold a seat at the event
SEATED = (AttendanceStatus.confirmed, AttendanceStatus.attended)


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo; stored datetimes are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def generate_check_in_code(length: int | None = None) -> str:
    length = length or settings.check_in_code_length
    return "".join(secrets.choice(CHECK_IN_ALPHABET) for _ in range(length))


class StaleClaim(Exception):
    """Another writer bumped the event guard between our read and our claim."""


def is_contention(exc: OperationalError) -> bool:
    message = str(exc.orig).lower()
    return any(marker in message for marker in ("locked", "deadlock", "could not serialize"))


@dataclass(frozen=True)
class AttendeeDetails:
    """What a person submits when registering."""

    contact_email: str
    name: str | None = None
    major: str | None = None
    grade_level: GradeLevel | None = None
    phone: str | None = None


@dataclass(frozen=True)
class RegistrationResult:
    attendance_id: UUID
    status: AttendanceStatus
    waitlist_position: int | None
    check_in_code: str


@dataclass(frozen=True)
class CancellationResult:
    cancelled_status: AttendanceStatus
    promoted: str | None = None

    @property
    def message(self) -> str:
        message = "Registration cancelled successfully"
        if self.promoted:
            message += f". {self.promoted} has been automatically promoted from the waitlist."
        return message


@dataclass(frozen=True)
class CheckInResult:
    attendance_id: UUID
    attendee_name: str
    checked_in_at: datetime
    already_checked_in: bool


@dataclass(frozen=True)
class AttendanceStats:
    confirmed_count: int
    waitlist_count: int
    attended_count: int = 0
    by_grade: dict[str, int] = field(default_factory=dict)
    by_major: dict[str, int] = field(default_factory=dict)

    @property
    def total_registrations(self) -> int:
        return self.confirmed_count + self.waitlist_count + self.attended_count

    @property
    def attendance_rate(self) -> float:
        seated = self.confirmed_count + self.attended_count
        if seated == 0:
            return 0.0
        return self.attended_count / seated * 100


class AttendanceRegistry:
    """Owns the attendance records of events.

    One registry wraps one database session; build a new one per request.
    """

    def __init__(
        self,
        session: Session,
        *,
        email_domain: str | None = None,
        max_attempts: int | None = None,
        retry_backoff: float | None = None,
        password_verifier: Callable[[str | None, str | None], bool] = verify_password,
        profile_updater: Callable[..., bool] = update_profile_from_registration,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.events = EventStore(session)
        self.email_domain = (email_domain or settings.institutional_email_domain).lower()
        self.max_attempts = max(1, max_attempts or settings.registration_max_attempts)
        self.retry_backoff = (
            settings.registration_retry_backoff_seconds if retry_backoff is None else retry_backoff
        )
        self.password_verifier = password_verifier
        self.profile_updater = profile_updater
        self.clock = clock

    # Registration

    def register(
        self,
        event_id: UUID,
        attendee: AttendeeDetails,
        password: str | None = None,
        source: RegistrationSource = RegistrationSource.website,
    ) -> RegistrationResult:
        """
        Register an attendee for an event.

        Checks, in order: the event is published, attendance is enabled and
        still open, the event password (if any), the institutional email
        domain, and that the attendee is not already registered. Then admits
        the attendee as confirmed while seats remain, otherwise onto the end
        of the waitlist.
        """
        config = self._published(event_id)
        if not config.attendance_enabled:
            raise RegistrationDisabled()
        if config.ends_at and self.clock() > as_utc(config.ends_at):
            raise RegistrationClosed()
        if config.password_required:
            if not password:
                raise PasswordRequired()
            if not self.password_verifier(password, config.password_hash):
                raise PasswordInvalid()

        contact_email = (attendee.contact_email or "").strip()
        email_key = normalize_email(contact_email)
        local_part, _, _ = email_key.partition("@")
        if (
            not local_part
            or email_key.count("@") != 1
            or not email_key.endswith(self.email_domain)
        ):
            raise InvalidEmailDomain(self.email_domain)

        def admit() -> RegistrationResult:
            if self._active_record(event_id, email_key) is not None:
                raise AlreadyRegistered(contact_email)

            seated = self._count(event_id, *SEATED)
            waitlisted = self._count(event_id, AttendanceStatus.waitlisted)
            at_capacity = config.capacity is not None and seated >= config.capacity

            if at_capacity and not config.waitlist_enabled:
                raise EventFull()
            if (
                at_capacity
                and config.waitlist_max_size is not None
                and waitlisted >= config.waitlist_max_size
            ):
                raise WaitlistFull()

            now = self.clock()
            record = AttendanceRecord(
                event_id=event_id,
                name=attendee.name or None,
                contact_email=contact_email,
                email_key=email_key,
                major=attendee.major or None,
                grade_level=attendee.grade_level,
                phone=attendee.phone or None,
                registered_at=now,
                source=source,
                check_in_code=generate_check_in_code(),
            )
            if at_capacity:
                record.status = AttendanceStatus.waitlisted
                record.waitlist_position = waitlisted + 1
            else:
                record.status = AttendanceStatus.confirmed
                record.confirmed_at = now

            self.session.add(record)
            self.session.flush()
            return RegistrationResult(
                attendance_id=record.id,
                status=record.status,
                waitlist_position=record.waitlist_position,
                check_in_code=record.check_in_code,
            )

        result = self._serialized(event_id, admit)
        logger.info(
            f"Registered {email_key} for event {event_id}: {result.status.value}"
            + (f" at position {result.waitlist_position}" if result.waitlist_position else "")
        )

        self._update_profile(attendee)
        return result

    def _update_profile(self, attendee: AttendeeDetails) -> None:
        """Best-effort profile sync; never fails the registration."""
        try:
            self.profile_updater(
                self.session,
                attendee.contact_email,
                name=attendee.name,
                major=attendee.major,
                grade_level=attendee.grade_level,
                phone=attendee.phone,
            )
        except Exception as e:
            self.session.rollback()
            logger.error(f"Error updating user profile for {attendee.contact_email}: {e}")

    # Cancellation

    def cancel(self, event_id: UUID, contact_email: str) -> CancellationResult:
        """
        Cancel an attendee's registration.

        The record is deleted. A waitlisted record's place is closed up; the
        seat of a confirmed or checked-in record goes to the head of the
        waitlist when the event has a capacity.
        """
        config = self._published(event_id)
        email_key = normalize_email(contact_email or "")

        def withdraw() -> CancellationResult:
            record = self._active_record(event_id, email_key)
            if record is None:
                raise RegistrationNotFound("Registration not found for this email")

            status = record.status
            if status == AttendanceStatus.waitlisted:
                self._close_gap(event_id, record.waitlist_position)
            self.session.delete(record)
            self.session.flush()

            promoted = None
            if status in SEATED and config.capacity is not None:
                if self._count(event_id, *SEATED) < config.capacity:
                    head = self._waitlist(event_id, limit=1)
                    if head:
                        self._promote(head[0])
                        promoted = head[0].display_name
            return CancellationResult(cancelled_status=status, promoted=promoted)

        result = self._serialized(event_id, withdraw)
        logger.info(f"Cancelled {email_key} for event {event_id} ({result.cancelled_status.value})")
        if result.promoted:
            logger.info(f"Promoted {result.promoted} from the waitlist of event {event_id}")
        return result

    # Check-in

    def check_in(self, event_id: UUID, check_in_code: str) -> CheckInResult:
        """Mark a confirmed attendee as attended using their check-in code."""
        self._published(event_id)
        code = (check_in_code or "").strip().upper()

        def mark_attended() -> CheckInResult:
            record = self.session.exec(
                select(AttendanceRecord)
                .where(AttendanceRecord.event_id == event_id)
                .where(AttendanceRecord.check_in_code == code)
                .where(AttendanceRecord.status != AttendanceStatus.cancelled)
            ).first()
            if record is None:
                raise RegistrationNotFound("Invalid check-in code or attendee not found")
            if record.status == AttendanceStatus.waitlisted:
                raise NotConfirmed()

            already = record.status == AttendanceStatus.attended
            if not already:
                record.status = AttendanceStatus.attended
                record.attended_at = self.clock()
                self.session.add(record)
                self.session.flush()
            return CheckInResult(
                attendance_id=record.id,
                attendee_name=record.display_name,
                checked_in_at=as_utc(record.attended_at),
                already_checked_in=already,
            )

        result = self._serialized(event_id, mark_attended)
        if not result.already_checked_in:
            logger.info(f"Checked in {result.attendee_name} at event {event_id}")
        return result

    # Waitlist administration

    def promote_waitlisted(
        self, event_id: UUID, attendance_ids: list[UUID] | None = None
    ) -> list[UUID]:
        """
        Promote waitlisted attendees into open seats, in waitlist order.

        When ``attendance_ids`` is given only those records are considered.
        Raises NoOpenSeats if the event has no capacity or no free seat, and
        WaitlistEmpty if nobody eligible is waiting.
        """
        config = self._published(event_id)

        def promote() -> list[UUID]:
            open_seats = self._open_seats(config)
            if open_seats <= 0:
                raise NoOpenSeats()
            promoted = self._promote_batch(event_id, open_seats, attendance_ids)
            if not promoted:
                raise WaitlistEmpty()
            return promoted

        promoted = self._serialized(event_id, promote)
        logger.info(f"Promoted {len(promoted)} attendees from waitlist for event {event_id}")
        return promoted

    def fill_open_seats(self, event_id: UUID) -> list[UUID]:
        """Promote from the waitlist while seats are open. Never raises for a full event."""
        config = self._published(event_id)

        def fill() -> list[UUID]:
            open_seats = self._open_seats(config)
            if open_seats <= 0:
                return []
            return self._promote_batch(event_id, open_seats)

        promoted = self._serialized(event_id, fill)
        if promoted:
            logger.info(f"Auto-promoted {len(promoted)} attendees for event {event_id}")
        return promoted

    def remove_from_waitlist(self, event_id: UUID, attendance_ids: list[UUID]) -> int:
        """Mark waitlisted records cancelled and renumber the rest. Returns how many."""
        self._published(event_id)
        if not attendance_ids:
            return 0

        def remove() -> int:
            records = self.session.exec(
                select(AttendanceRecord)
                .where(AttendanceRecord.event_id == event_id)
                .where(AttendanceRecord.status == AttendanceStatus.waitlisted)
                .where(AttendanceRecord.id.in_(attendance_ids))
            ).all()
            for record in records:
                record.status = AttendanceStatus.cancelled
                record.waitlist_position = None
                self.session.add(record)
            self.session.flush()
            self._resequence(event_id)
            return len(records)

        removed = self._serialized(event_id, remove)
        logger.info(f"Removed {removed} attendees from waitlist for event {event_id}")
        return removed

    # Queries

    def get_registration(self, event_id: UUID, contact_email: str) -> AttendanceRecord:
        record = self._active_record(event_id, normalize_email(contact_email or ""))
        if record is None:
            raise RegistrationNotFound()
        return record

    def get_stats(self, event_id: UUID) -> AttendanceStats:
        """Recount an event's attendance from its records."""
        self._published(event_id)
        by_status = dict(
            self.session.exec(
                select(AttendanceRecord.status, func.count())
                .where(AttendanceRecord.event_id == event_id)
                .group_by(AttendanceRecord.status)
            ).all()
        )
        return AttendanceStats(
            confirmed_count=by_status.get(AttendanceStatus.confirmed, 0),
            waitlist_count=by_status.get(AttendanceStatus.waitlisted, 0),
            attended_count=by_status.get(AttendanceStatus.attended, 0),
            by_grade={
                grade.value: count
                for grade, count in self._breakdown(event_id, AttendanceRecord.grade_level)
            },
            by_major=dict(self._breakdown(event_id, AttendanceRecord.major)),
        )

    def list_for_event(self, event_id: UUID) -> list[AttendanceRecord]:
        """Roster of an event, published or not, for administrators."""
        if self.events.get(event_id, published_only=False) is None:
            raise EventNotFound(event_id)
        return self._roster([event_id])

    def list_for_host(self, host_email: str) -> list[AttendanceRecord]:
        """Every active record of the events a host runs."""
        event_ids = self.events.hosted_by(host_email)
        if not event_ids:
            return []
        return self._roster(event_ids)

    # Internals

    def _published(self, event_id: UUID) -> EventConfig:
        config = self.events.get(event_id)
        if config is None:
            raise EventNotFound(event_id)
        return config

    def _serialized(self, event_id: UUID, work: Callable[[], T]) -> T:
        """Run ``work`` in one transaction under the event's claim, retrying on contention."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                self._claim(event_id)
                result = work()
                self.session.commit()
                return result
            except AttendanceError:
                self.session.rollback()
                raise
            except (StaleClaim, IntegrityError) as e:
                self.session.rollback()
                reason = e
            except OperationalError as e:
                self.session.rollback()
                if not is_contention(e):
                    raise
                reason = e
            except Exception:
                self.session.rollback()
                raise

            logger.warning(
                f"Contention on event {event_id} (attempt {attempt}/{self.max_attempts}): {reason}"
            )
            if attempt < self.max_attempts:
                time.sleep(self.retry_backoff * attempt)

        raise Busy(event_id, self.max_attempts)

    def _claim(self, event_id: UUID) -> None:
        version = self.session.exec(
            select(EventGuard.version).where(EventGuard.event_id == event_id)
        ).first()
        if version is None:
            # A concurrent first claim fails here with IntegrityError and retries
            self.session.add(EventGuard(event_id=event_id, version=1))
            self.session.flush()
            return

        guard = EventGuard.__table__
        result = self.session.connection().execute(
            update(guard)
            .where(guard.c.event_id == event_id)
            .where(guard.c.version == version)
            .values(version=version + 1)
        )
        if result.rowcount != 1:
            raise StaleClaim(f"event guard moved past version {version}")

    def _active_record(self, event_id: UUID, email_key: str) -> AttendanceRecord | None:
        return self.session.exec(
            select(AttendanceRecord)
            .where(AttendanceRecord.event_id == event_id)
            .where(AttendanceRecord.email_key == email_key)
            .where(AttendanceRecord.status != AttendanceStatus.cancelled)
        ).first()

    def _count(self, event_id: UUID, *statuses: AttendanceStatus) -> int:
        return self.session.exec(
            select(func.count())
            .select_from(AttendanceRecord)
            .where(AttendanceRecord.event_id == event_id)
            .where(AttendanceRecord.status.in_(statuses))
        ).one()

    def _open_seats(self, config: EventConfig) -> int:
        if config.capacity is None:
            return 0
        return config.capacity - self._count(config.event_id, *SEATED)

    def _waitlist(self, event_id: UUID, limit: int | None = None) -> list[AttendanceRecord]:
        statement = (
            select(AttendanceRecord)
            .where(AttendanceRecord.event_id == event_id)
            .where(AttendanceRecord.status == AttendanceStatus.waitlisted)
            .order_by(AttendanceRecord.waitlist_position)
        )
        if limit is not None:
            statement = statement.limit(limit)
        return list(self.session.exec(statement).all())

    def _close_gap(self, event_id: UUID, position: int) -> None:
        """Move every waitlisted record behind ``position`` up by one."""
        behind = self.session.exec(
            select(AttendanceRecord)
            .where(AttendanceRecord.event_id == event_id)
            .where(AttendanceRecord.status == AttendanceStatus.waitlisted)
            .where(AttendanceRecord.waitlist_position > position)
            .order_by(AttendanceRecord.waitlist_position)
        ).all()
        for record in behind:
            record.waitlist_position -= 1
            self.session.add(record)
        self.session.flush()

    def _promote(self, record: AttendanceRecord) -> None:
        """Confirm a waitlisted record and close the gap it leaves."""
        position = record.waitlist_position
        record.status = AttendanceStatus.confirmed
        record.confirmed_at = self.clock()
        record.waitlist_position = None
        self.session.add(record)
        self.session.flush()
        self._close_gap(record.event_id, position)

    def _promote_batch(
        self, event_id: UUID, seats: int, attendance_ids: list[UUID] | None = None
    ) -> list[UUID]:
        statement = (
            select(AttendanceRecord)
            .where(AttendanceRecord.event_id == event_id)
            .where(AttendanceRecord.status == AttendanceStatus.waitlisted)
            .order_by(AttendanceRecord.waitlist_position)
        )
        if attendance_ids:
            statement = statement.where(AttendanceRecord.id.in_(attendance_ids))
        batch = self.session.exec(statement.limit(seats)).all()

        now = self.clock()
        for record in batch:
            record.status = AttendanceStatus.confirmed
            record.confirmed_at = now
            record.waitlist_position = None
            self.session.add(record)
        self.session.flush()
        self._resequence(event_id)
        return [record.id for record in batch]

    def _resequence(self, event_id: UUID) -> None:
        """Renumber the waitlist 1..N, keeping its current order."""
        for position, record in enumerate(self._waitlist(event_id), start=1):
            if record.waitlist_position != position:
                record.waitlist_position = position
                self.session.add(record)
        self.session.flush()

    def _breakdown(self, event_id: UUID, column) -> list[tuple]:
        return self.session.exec(
            select(column, func.count())
            .where(AttendanceRecord.event_id == event_id)
            .where(AttendanceRecord.status != AttendanceStatus.cancelled)
            .where(column != None)  # noqa: E711
            .group_by(column)
            .order_by(column)
        ).all()

    def _roster(self, event_ids: list[UUID]) -> list[AttendanceRecord]:
        statement = (
            select(AttendanceRecord)
            .where(AttendanceRecord.event_id.in_(event_ids))
            .where(AttendanceRecord.status != AttendanceStatus.cancelled)
            .order_by(
                AttendanceRecord.event_id,
                AttendanceRecord.status,
                AttendanceRecord.waitlist_position,
                AttendanceRecord.registered_at,
            )
        )
        return list(self.session.exec(statement).all())
