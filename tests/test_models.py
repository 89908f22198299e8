"""Tests for database models."""

from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from attendance.models import (
    AttendanceRecord,
    AttendanceStatus,
    Event,
    EventGuard,
    GradeLevel,
    RegistrationSource,
    normalize_email,
)


def make_record(event: Event, email: str, **fields) -> AttendanceRecord:
    defaults = {
        "event_id": event.id,
        "contact_email": email,
        "email_key": normalize_email(email),
        "status": AttendanceStatus.confirmed,
        "confirmed_at": datetime.now(UTC),
        "check_in_code": f"CODE{email[:4].upper()}",
    }
    defaults.update(fields)
    return AttendanceRecord(**defaults)


class TestEventModel:
    """Tests for the Event model."""

    def test_create_event_defaults(self, session: Session):
        """Test creating a basic event."""
        event = Event(title="Kickoff")
        session.add(event)
        session.commit()

        retrieved = session.exec(select(Event).where(Event.title == "Kickoff")).first()

        assert retrieved is not None
        assert retrieved.published is False
        assert retrieved.attendance_enabled is False
        assert retrieved.waitlist_enabled is False
        assert retrieved.capacity is None

    def test_event_records_relationship(self, sample_event: Event, session: Session):
        """Test that records are linked to their event."""
        session.add(make_record(sample_event, "ann@umich.edu"))
        session.commit()
        session.refresh(sample_event)

        assert len(sample_event.records) == 1
        assert sample_event.records[0].contact_email == "ann@umich.edu"


class TestAttendanceRecordModel:
    """Tests for the AttendanceRecord model."""

    def test_create_record(self, sample_event: Event, session: Session):
        """Test creating a record with attendee details."""
        record = make_record(
            sample_event,
            "Ann@UMich.edu",
            name="Ann Arbor",
            major="Economics",
            grade_level=GradeLevel.Junior,
        )
        session.add(record)
        session.commit()

        retrieved = session.get(AttendanceRecord, record.id)
        assert retrieved.email_key == "ann@umich.edu"
        assert retrieved.grade_level == GradeLevel.Junior
        assert retrieved.source == RegistrationSource.website
        assert retrieved.registered_at is not None
        assert retrieved.display_name == "Ann Arbor"

    def test_display_name_falls_back_to_email(self, sample_event: Event):
        record = make_record(sample_event, "bo@umich.edu")
        assert record.display_name == "bo@umich.edu"

    def test_one_active_record_per_email(self, sample_event: Event, session: Session):
        """Test the unique index on (event, email) for non-cancelled records."""
        session.add(make_record(sample_event, "ann@umich.edu", check_in_code="AAAA1111"))
        session.commit()

        session.add(make_record(sample_event, "ANN@umich.edu", email_key="ann@umich.edu", check_in_code="AAAA2222"))
        with pytest.raises(IntegrityError):
            session.commit()

    def test_cancelled_record_does_not_block_new_one(self, sample_event: Event, session: Session):
        """Test that cancelled records are outside the uniqueness rule."""
        session.add(
            make_record(
                sample_event,
                "ann@umich.edu",
                status=AttendanceStatus.cancelled,
                check_in_code="AAAA1111",
            )
        )
        session.add(make_record(sample_event, "ann@umich.edu", check_in_code="AAAA2222"))
        session.commit()

        rows = session.exec(
            select(AttendanceRecord).where(AttendanceRecord.email_key == "ann@umich.edu")
        ).all()
        assert len(rows) == 2

    def test_waitlisted_requires_position(self, sample_event: Event, session: Session):
        """Test that a waitlisted record must carry a position."""
        session.add(
            make_record(sample_event, "ann@umich.edu", status=AttendanceStatus.waitlisted)
        )
        with pytest.raises(IntegrityError):
            session.commit()

    def test_confirmed_cannot_have_position(self, sample_event: Event, session: Session):
        session.add(make_record(sample_event, "ann@umich.edu", waitlist_position=1))
        with pytest.raises(IntegrityError):
            session.commit()

    def test_check_in_code_unique(self, sample_event: Event, session: Session):
        session.add(make_record(sample_event, "ann@umich.edu", check_in_code="SAMECODE"))
        session.add(make_record(sample_event, "bo@umich.edu", check_in_code="SAMECODE"))
        with pytest.raises(IntegrityError):
            session.commit()


class TestEventGuardModel:
    """Tests for the EventGuard model."""

    def test_one_guard_per_event(self, sample_event: Event, session: Session):
        session.add(EventGuard(event_id=sample_event.id))
        session.commit()

        retrieved = session.get(EventGuard, sample_event.id)
        assert retrieved.version == 0

        session.add(EventGuard(event_id=sample_event.id, version=5))
        with pytest.raises(Exception):  # IntegrityError or identity conflict
            session.commit()


def test_normalize_email():
    assert normalize_email("  Ann@UMICH.edu ") == "ann@umich.edu"
